"""Import services: hierarchy resolution, category records, processor and output."""
