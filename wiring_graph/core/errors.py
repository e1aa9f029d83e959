"""
Issue taxonomy and session-scoped issue log for a normalization run.

Issues are plain records that describe what went wrong (or what was fixed)
while normalizing a graph. They are collected in an ``IssueLog`` and handed
to the caller alongside the canonical graph. In strict mode the pipeline
raises a ``WiringGraphError`` subclass wrapping the first blocking issue
instead of recording it.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field


class IssueSeverity(str, Enum):
    """Severity of a recorded issue."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class EdgeRef(BaseModel):
    """Identifies an edge by its endpoints and relationship."""
    source: Optional[str] = None
    target: Optional[str] = None
    relationship: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.source} -[{self.relationship}]-> {self.target}"


class SchemaError(BaseModel):
    """A raw record failed shape validation and was excluded."""
    severity: IssueSeverity = IssueSeverity.ERROR
    code: str
    message: str
    record_index: Optional[int] = Field(None, description="Position of the record in the input sequence")
    kind: Optional[str] = None
    node_id: Optional[str] = None
    details: List[str] = Field(default_factory=list)


class IntegrityError(BaseModel):
    """A dangling reference or relationship-to-endpoint-type violation."""
    severity: IssueSeverity = IssueSeverity.ERROR
    code: str
    message: str
    edge: EdgeRef
    edge_index: Optional[int] = None


class GeometryWarning(BaseModel):
    """Missing or unbridgeable spatial data. Never blocks a run."""
    severity: IssueSeverity = IssueSeverity.WARNING
    code: str
    message: str
    node_id: str
    field: str


class RepairRecord(BaseModel):
    """Informational before/after diff for a successful auto-fix."""
    severity: IssueSeverity = IssueSeverity.INFO
    kind: str = "field_normalized"
    node_id: str
    field: str
    before: Any = None
    after: Any = None


Issue = Union[SchemaError, IntegrityError, GeometryWarning, RepairRecord]


class WiringGraphError(Exception):
    """Base exception for the wiring graph engine."""


class SchemaViolation(WiringGraphError):
    """Raised in strict mode when a record fails schema validation."""

    def __init__(self, issue: SchemaError):
        super().__init__(issue.message)
        self.issue = issue


class IntegrityViolation(WiringGraphError):
    """Raised in strict mode when an edge breaks referential or type integrity."""

    def __init__(self, issue: IntegrityError):
        super().__init__(issue.message)
        self.issue = issue


class UnknownNodeError(WiringGraphError, KeyError):
    """Raised when an analysis is asked about a node id that is not in the graph."""

    def __init__(self, node_id: str):
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"Unknown node id: {self.node_id}"


class IssueLog:
    """Session-scoped accumulator of errors, warnings and repairs."""

    def __init__(self):
        self.errors: List[Union[SchemaError, IntegrityError]] = []
        self.warnings: List[GeometryWarning] = []
        self.repairs: List[RepairRecord] = []
        self._warning_slots: Dict[Tuple[str, str], int] = {}

    @property
    def schema_errors(self) -> List[SchemaError]:
        return [e for e in self.errors if isinstance(e, SchemaError)]

    @property
    def integrity_errors(self) -> List[IntegrityError]:
        return [e for e in self.errors if isinstance(e, IntegrityError)]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def add_error(self, error: Union[SchemaError, IntegrityError]) -> None:
        """Append a schema or integrity error"""
        self.errors.append(error)

    def add_warning(self, warning: GeometryWarning) -> None:
        """
        Record a geometry warning.

        One warning is kept per ``(node_id, field)`` subject. A later warning
        about the same subject replaces the earlier one in place, so the
        synthesis pass supersedes the advisory integrity check and re-running
        synthesis does not duplicate warnings.
        """
        key = (warning.node_id, warning.field)
        slot = self._warning_slots.get(key)
        if slot is None:
            self._warning_slots[key] = len(self.warnings)
            self.warnings.append(warning)
        else:
            self.warnings[slot] = warning

    def clear_warning(self, node_id: str, field: str) -> bool:
        """Drop the warning about a subject once a later stage has fixed it"""
        slot = self._warning_slots.pop((node_id, field), None)
        if slot is None:
            return False
        del self.warnings[slot]
        self._warning_slots = {
            key: index - 1 if index > slot else index
            for key, index in self._warning_slots.items()
        }
        return True

    def add_repair(self, repair: RepairRecord) -> None:
        self.repairs.append(repair)

    def warnings_for(self, node_id: str) -> List[GeometryWarning]:
        return [w for w in self.warnings if w.node_id == node_id]

    def errors_for_edge(self, source: str, target: str) -> List[IntegrityError]:
        return [
            e for e in self.integrity_errors
            if e.edge.source == source and e.edge.target == target
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "errors": [e.model_dump(mode="json") for e in self.errors],
            "warnings": [w.model_dump(mode="json") for w in self.warnings],
            "repairs": [r.model_dump(mode="json") for r in self.repairs],
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "repair_count": len(self.repairs),
        }
