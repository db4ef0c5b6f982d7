"""echometa - metadata enrichment and conflict resolution for a music library."""

__version__ = "1.0.0"
