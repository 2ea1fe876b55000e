"""Command line entry point (python -m coursecat_import.cli)."""
