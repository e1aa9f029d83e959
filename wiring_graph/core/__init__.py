"""Configuration, logging and error handling."""

from .config import Settings, get_settings
from .errors import (
    EdgeRef,
    GeometryWarning,
    IntegrityError,
    IntegrityViolation,
    IssueLog,
    RepairRecord,
    SchemaError,
    SchemaViolation,
    UnknownNodeError,
    WiringGraphError,
)
from .logging import configure_logging, get_logger, log_stage

__all__ = [
    "Settings",
    "get_settings",
    "EdgeRef",
    "GeometryWarning",
    "IntegrityError",
    "IntegrityViolation",
    "IssueLog",
    "RepairRecord",
    "SchemaError",
    "SchemaViolation",
    "UnknownNodeError",
    "WiringGraphError",
    "configure_logging",
    "get_logger",
    "log_stage",
]
