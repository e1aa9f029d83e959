"""Record ingestion: NDJSON decoding, schema validation and repair."""

from .ndjson_reader import iter_ndjson, read_ndjson
from .repair_service import RepairService
from .validation_service import RecordValidator

__all__ = [
    "iter_ndjson",
    "read_ndjson",
    "RepairService",
    "RecordValidator",
]
