"""Service layer: ingestion, profiling, analyses and file storage."""
