"""Delimited file decoding."""
