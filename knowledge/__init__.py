"""Resume knowledge pipeline - ingestion, extraction, enrichment, diffing and merging."""
