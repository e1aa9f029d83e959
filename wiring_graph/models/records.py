"""
Canonical record models: metadata, nodes and edges.

Raw attribute dictionaries are validated into one of three record types,
discriminated by their ``kind`` field. Unknown attributes are preserved on
the record so nothing the upstream parser supplied is lost.
"""

import json
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

# ints and floats only; booleans, numeric strings, NaN and infinities are rejected
Coordinate = Annotated[float, Field(strict=True, allow_inf_nan=False)]
Vector3 = Annotated[List[Coordinate], Field(min_length=3, max_length=3)]


class NodeType(str, Enum):
    """Node types with dedicated handling in the pipeline"""
    COMPONENT = "component"
    FUSE = "fuse"
    RELAY = "relay"
    CONNECTOR = "connector"
    PIN = "pin"
    WIRE = "wire"
    HARNESS = "harness"
    GROUND_POINT = "ground_point"
    GROUND_PLANE = "ground_plane"
    SPLICE = "splice"
    BUS = "bus"
    LOCATION = "location"


class Relationship(str, Enum):
    """Edge relationships known to the integrity checker and the synthesizer"""
    HAS_PIN = "has_pin"
    PIN_TO_WIRE = "pin_to_wire"
    WIRE_TO_PIN = "wire_to_pin"
    WIRE_TO_FUSE = "wire_to_fuse"
    WIRE_TO_GROUND = "wire_to_ground"
    GROUND_TO_PLANE = "ground_to_plane"
    IN_LOCATION = "in_location"
    HAS_CONNECTOR = "has_connector"
    ROUTED_ON = "routed_on"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Relationship"]:
        """Return the matching member, or None for relationships outside the vocabulary"""
        try:
            return cls(value)
        except ValueError:
            return None


DEFAULT_UNITS = {"length": "m", "angle": "deg", "voltage": "V"}
DEFAULT_COORD_FRAME = {
    "x": "forward",
    "y": "left",
    "z": "up",
    "origin": "front_axle_centerline_floor",
}


def _parse_vector(value: Any) -> Any:
    """Accept "[1.2, 0.0, 0.8]" and "1.2, 0.0, 0.8" string forms of a 3-vector."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text.startswith("["):
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"not a JSON array: {value}") from e
    if "," in text:
        parts = [p.strip() for p in text.split(",")]
        try:
            return [float(p) for p in parts]
        except ValueError as e:
            raise ValueError(f"not a comma-separated vector: {value}") from e
    raise ValueError(f"cannot parse vector: {value}")


def _blank_to_none(data: Any, required: set) -> Any:
    if isinstance(data, dict):
        return {
            k: (None if isinstance(v, str) and not v.strip() and k not in required else v)
            for k, v in data.items()
        }
    return data


class MetadataRecord(BaseModel):
    """Graph-level metadata. Singleton per graph."""

    model_config = ConfigDict(extra="allow")

    kind: Literal["meta"] = "meta"
    model: str = Field(..., min_length=1, description="Vehicle model identifier")
    version: str = Field(..., min_length=1)
    units: Dict[str, Any] = Field(default_factory=lambda: dict(DEFAULT_UNITS))
    coord_frame: Dict[str, Any] = Field(default_factory=lambda: dict(DEFAULT_COORD_FRAME))


class NodeRecord(BaseModel):
    """One electrical entity: component, fuse, relay, connector, pin, wire, ..."""

    model_config = ConfigDict(extra="allow")

    kind: Literal["node"] = "node"
    id: str = Field(..., min_length=1)
    node_type: str = Field(..., min_length=1)
    canonical_id: Optional[str] = None
    anchor_zone: Optional[str] = None
    anchor_xyz: Optional[Vector3] = None
    anchor_ypr_deg: Optional[Vector3] = None
    bbox_m: Optional[Vector3] = None
    rail: Optional[str] = None
    path_xyz: Optional[List[Vector3]] = None
    color: Optional[str] = None
    gauge: Optional[str] = None
    signal: Optional[str] = None
    voltage: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def blank_optionals_are_absent(cls, data: Any) -> Any:
        return _blank_to_none(data, {"kind", "id", "node_type"})

    @field_validator("anchor_xyz", "anchor_ypr_deg", "bbox_m", mode="before")
    @classmethod
    def parse_vector_strings(cls, v: Any) -> Any:
        return _parse_vector(v)

    @field_validator("path_xyz", mode="before")
    @classmethod
    def parse_path_string(cls, v: Any) -> Any:
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"path_xyz is not a JSON list of points: {v}") from e
        return v

    @property
    def label(self) -> Optional[str]:
        """Free-text label supplied by the upstream parser, if any"""
        extra = self.model_extra or {}
        value = extra.get("label")
        return value if isinstance(value, str) else None

    @property
    def is_wire(self) -> bool:
        return self.node_type == NodeType.WIRE.value

    def attribute(self, name: str, default: Any = None) -> Any:
        """Read a declared field or a preserved extra attribute"""
        if name in type(self).model_fields:
            return getattr(self, name)
        return (self.model_extra or {}).get(name, default)


class EdgeRecord(BaseModel):
    """A directed, typed relation between two nodes."""

    model_config = ConfigDict(extra="allow")

    kind: Literal["edge"] = "edge"
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    relationship: str = Field(..., min_length=1)
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def blank_optionals_are_absent(cls, data: Any) -> Any:
        return _blank_to_none(data, {"kind", "source", "target", "relationship"})

    @property
    def relationship_kind(self) -> Optional[Relationship]:
        return Relationship.parse(self.relationship)

    def attribute(self, name: str, default: Any = None) -> Any:
        if name in type(self).model_fields:
            return getattr(self, name)
        return (self.model_extra or {}).get(name, default)

    def other_end(self, node_id: str) -> str:
        """Endpoint opposite ``node_id``"""
        return self.target if self.source == node_id else self.source

    @property
    def sort_key(self):
        return (self.source, self.target, self.relationship)


Record = Annotated[
    Union[MetadataRecord, NodeRecord, EdgeRecord],
    Field(discriminator="kind"),
]

record_adapter: TypeAdapter = TypeAdapter(Record)

RECORD_KINDS = ("meta", "node", "edge")
