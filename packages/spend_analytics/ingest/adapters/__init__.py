"""Source-format adapters turning parsed CSV rows into canonical records."""
