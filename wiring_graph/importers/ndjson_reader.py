"""NDJSON reader producing raw attribute dictionaries for the pipeline"""

import json
from typing import Any, Dict, Iterable, Iterator, List, Tuple, Union

from ..core.errors import IssueLog, SchemaError, SchemaViolation
from ..core.logging import get_logger

logger = get_logger(__name__)

RawRecord = Dict[str, Any]


def iter_ndjson(lines: Iterable[str]) -> Iterator[Tuple[int, Union[RawRecord, SchemaError]]]:
    """Yield ``(line_number, record_or_error)`` for every non-blank line"""
    for line_number, line in enumerate(lines, start=1):
        text = line.strip()
        if not text:
            continue
        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            yield line_number, SchemaError(
                code="malformed_json",
                message=f"Line {line_number}: invalid JSON: {e.msg}",
                record_index=line_number,
            )
            continue
        if not isinstance(value, dict):
            yield line_number, SchemaError(
                code="malformed_json",
                message=f"Line {line_number}: expected a JSON object, got {type(value).__name__}",
                record_index=line_number,
            )
            continue
        yield line_number, value


def read_ndjson(lines: Iterable[str], issues: IssueLog, strict: bool = False) -> List[RawRecord]:
    """
    Decode NDJSON lines into raw records.

    Undecodable lines are recorded as schema errors, or raised in strict mode.
    """
    records: List[RawRecord] = []
    for _, item in iter_ndjson(lines):
        if isinstance(item, SchemaError):
            if strict:
                raise SchemaViolation(item)
            logger.warning("ndjson_line_rejected", message=item.message)
            issues.add_error(item)
            continue
        records.append(item)
    return records
