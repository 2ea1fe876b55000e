"""Bulk import of course categories from delimited text files."""

__version__ = "0.1.0"
