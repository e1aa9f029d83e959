"""Record and graph models."""

from .graph_model import Anchor, GraphModel, build_indices
from .records import (
    EdgeRecord,
    MetadataRecord,
    NodeRecord,
    NodeType,
    Record,
    Relationship,
)
from .zones import DEFAULT_BBOX_M, REFERENCE_ZONES, Zone, ZoneTable

__all__ = [
    "Anchor",
    "GraphModel",
    "build_indices",
    "EdgeRecord",
    "MetadataRecord",
    "NodeRecord",
    "NodeType",
    "Record",
    "Relationship",
    "DEFAULT_BBOX_M",
    "REFERENCE_ZONES",
    "Zone",
    "ZoneTable",
]
