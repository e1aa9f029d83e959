"""Best-effort repair of recoverable field issues on validated nodes"""

import re
from typing import Callable, List, Optional, Tuple

from ..core.errors import RepairRecord
from ..core.logging import get_logger
from ..models.records import NodeRecord

logger = get_logger(__name__)

PARENTHETICAL_PATTERN = re.compile(r"\s*\([^)]*\)")
TRAILING_PARENTHETICALS_PATTERN = re.compile(r"(?:\s*\([^)]*\))+\s*$")


def normalize_delimiters(value: str) -> str:
    """B/W -> B-W"""
    return value.replace("/", "-")


def strip_annotations(value: str) -> str:
    """Drop every parenthetical from a categorical code, e.g. "B-W (stripe)"."""
    return PARENTHETICAL_PATTERN.sub("", value).strip()


def strip_annotation_suffix(value: str) -> str:
    """Drop trailing parentheticals from free text; inline ones are content."""
    return TRAILING_PARENTHETICALS_PATTERN.sub("", value).strip()


# (field, fix) pairs applied in order; categorical fields first, then free text
REPAIR_RULES: Tuple[Tuple[str, Callable[[str], str]], ...] = (
    ("color", normalize_delimiters),
    ("color", strip_annotations),
    ("notes", strip_annotation_suffix),
)


class RepairService:
    """
    Normalizes delimiter variants and strips annotation suffixes.

    Repairs never invent data: a field that is absent stays absent, and a
    field that is already canonical is left untouched, so repairing twice
    is the same as repairing once.
    """

    def __init__(self, rules: Tuple[Tuple[str, Callable[[str], str]], ...] = REPAIR_RULES):
        self.rules = rules

    def repair(self, node: NodeRecord) -> List[RepairRecord]:
        """Repair ``node`` in place and return one record per changed field"""
        originals = {}
        for field_name, fix in self.rules:
            value: Optional[str] = getattr(node, field_name)
            if not value:
                continue
            fixed = fix(value)
            if fixed == value:
                continue
            originals.setdefault(field_name, value)
            setattr(node, field_name, fixed or None)

        repairs = [
            RepairRecord(node_id=node.id, field=field_name, before=before, after=getattr(node, field_name))
            for field_name, before in originals.items()
        ]
        if repairs:
            logger.debug("node_repaired", node_id=node.id, fields=[r.field for r in repairs])
        return repairs
