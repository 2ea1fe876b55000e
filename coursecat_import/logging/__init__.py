"""Logging setup and rejected-row log for the course category uploader."""
