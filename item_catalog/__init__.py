"""Community item catalog: identify-dump ingestion and consolidation."""

__version__ = "0.1.0"
