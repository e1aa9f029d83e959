"""Output helpers."""

from .serialization import serialize, write_ndjson

__all__ = ["serialize", "write_ndjson"]
