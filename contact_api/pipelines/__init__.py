"""Request pipelines: submission ingestion and retrieval."""
