"""Sheet ingestion and weekly report generation."""
