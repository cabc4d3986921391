"""CSV ingestion: parsing helpers, per-format adapters and upload routing."""
