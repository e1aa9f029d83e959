"""Shape validation for raw node, edge and metadata records"""

from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..core.errors import SchemaError
from ..core.logging import get_logger
from ..models.records import (
    RECORD_KINDS,
    EdgeRecord,
    MetadataRecord,
    NodeRecord,
    record_adapter,
)

logger = get_logger(__name__)

ValidRecord = Union[MetadataRecord, NodeRecord, EdgeRecord]


def _describe(raw: Dict[str, Any]) -> str:
    kind = raw.get("kind")
    if kind == "node":
        return f"Node {raw.get('id')}"
    if kind == "edge":
        return f"Edge {raw.get('source')}->{raw.get('target')}"
    if kind == "meta":
        return "Metadata"
    return "Record"


def _format_errors(error: ValidationError) -> List[str]:
    details = []
    for item in error.errors():
        # drop the discriminator tag pydantic prepends to every location
        location = [str(part) for part in item["loc"][1:]] or [str(p) for p in item["loc"]]
        details.append(f"{'.'.join(location)}: {item['msg']}")
    return details


class RecordValidator:
    """Validates raw attribute dictionaries into typed records."""

    def validate(self, raw: Any, index: Optional[int] = None) -> Union[ValidRecord, SchemaError]:
        """Return a typed record, or a SchemaError describing why the shape is invalid"""
        if not isinstance(raw, dict):
            return SchemaError(
                code="not_a_mapping",
                message=f"Record {index}: expected an attribute mapping, got {type(raw).__name__}",
                record_index=index,
            )

        kind = raw.get("kind")
        if kind not in RECORD_KINDS:
            return SchemaError(
                code="unknown_kind",
                message=f"Record {index}: unknown kind {kind!r}",
                record_index=index,
                kind=kind if isinstance(kind, str) else None,
            )

        try:
            record = record_adapter.validate_python(raw)
        except ValidationError as e:
            details = _format_errors(e)
            node_id = raw.get("id") if kind == "node" and isinstance(raw.get("id"), str) else None
            logger.debug("record_invalid", index=index, kind=kind, details=details)
            return SchemaError(
                code="invalid_shape",
                message=f"{_describe(raw)}: {'; '.join(details)}",
                record_index=index,
                kind=kind,
                node_id=node_id,
                details=details,
            )

        return record
