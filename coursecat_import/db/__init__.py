"""Category store implementations."""
