"""
Rule tables for node-level electrical heuristics.

Each heuristic is a single ordered table of ``(condition, outcome)`` rules.
The first matching rule wins, so the order of every table is part of its
behaviour and is pinned by the test suite.
"""

from dataclasses import asdict, dataclass
from typing import Callable, Dict, Iterable, Optional, Set, Tuple

from ..models.records import NodeRecord


class CircuitFamily:
    """Coarse functional classification tags"""
    POWER_DISTRIBUTION = "power_distribution"
    LIGHTING = "lighting"
    ENGINE_MANAGEMENT = "engine_management"
    BODY_CONTROL = "body_control"
    SAFETY_SYSTEMS = "safety_systems"
    COMFORT_CONVENIENCE = "comfort_convenience"
    UNKNOWN = "unknown"

    ALL = (
        POWER_DISTRIBUTION,
        LIGHTING,
        ENGINE_MANAGEMENT,
        BODY_CONTROL,
        SAFETY_SYSTEMS,
        COMFORT_CONVENIENCE,
        UNKNOWN,
    )


@dataclass(frozen=True)
class NodeContext:
    """Lower-cased text view of a node used by the rule tables"""
    node_type: str
    label: str
    notes: str

    @property
    def text(self) -> str:
        return f"{self.label} {self.notes}"

    def mentions(self, *terms: str) -> bool:
        text = self.text
        return any(term in text for term in terms)

    def label_mentions(self, *terms: str) -> bool:
        return any(term in self.label for term in terms)


def node_label(node: NodeRecord) -> str:
    """Label used for text heuristics: explicit label, else canonical id, else id"""
    return node.label or node.canonical_id or node.id


def node_context(node: NodeRecord) -> NodeContext:
    return NodeContext(
        node_type=node.node_type,
        label=node_label(node).lower(),
        notes=(node.notes or "").lower(),
    )


# ==================== Circuit family classification ====================

FamilyRule = Tuple[str, Callable[[NodeContext], bool]]

FAMILY_RULES: Tuple[FamilyRule, ...] = (
    (CircuitFamily.POWER_DISTRIBUTION, lambda c: c.node_type == "battery"),
    (CircuitFamily.POWER_DISTRIBUTION, lambda c: c.node_type == "fuse" and c.mentions("main")),
    (CircuitFamily.POWER_DISTRIBUTION, lambda c: c.mentions("distribution", "power supply")),
    (CircuitFamily.LIGHTING, lambda c: c.node_type == "lamp"),
    (CircuitFamily.LIGHTING, lambda c: c.mentions("light", "headlamp", "taillight", "indicator", "brake light")),
    (CircuitFamily.ENGINE_MANAGEMENT, lambda c: c.node_type == "ecu" and c.mentions("engine")),
    (CircuitFamily.ENGINE_MANAGEMENT, lambda c: c.node_type == "sensor" and c.mentions("engine", "fuel", "ignition")),
    (CircuitFamily.ENGINE_MANAGEMENT, lambda c: c.mentions("injection", "ignition", "fuel pump", "starter")),
    (CircuitFamily.BODY_CONTROL, lambda c: c.mentions("door", "window", "mirror", "seat", "central lock")),
    (CircuitFamily.BODY_CONTROL, lambda c: c.node_type == "ecu" and c.mentions("body")),
    (CircuitFamily.SAFETY_SYSTEMS, lambda c: c.mentions("abs", "airbag", "brake", "safety", "srs", "stability")),
    (CircuitFamily.COMFORT_CONVENIENCE, lambda c: c.mentions(
        "air condition", "hvac", "radio", "navigation", "infotainment", "climate")),
)


def classify_circuit_family(node: NodeRecord, rules: Iterable[FamilyRule] = FAMILY_RULES) -> str:
    """Map a node to one circuit family; first matching rule wins"""
    context = node_context(node)
    for family, condition in rules:
        if condition(context):
            return family
    return CircuitFamily.UNKNOWN


# ==================== Current draw estimation ====================

@dataclass(frozen=True)
class CurrentEstimate:
    """Estimated draw in amperes"""
    min: float
    max: float
    typical: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


NO_LOAD = CurrentEstimate(0, 0, 0)
UNKNOWN_LOAD = CurrentEstimate(0, 5, 1)

CURRENT_BY_TYPE: Dict[str, CurrentEstimate] = {
    "battery": NO_LOAD,
    "lamp": CurrentEstimate(1, 15, 5),
    "motor": CurrentEstimate(2, 150, 10),
    "ecu": CurrentEstimate(0.05, 2, 0.3),
    "sensor": CurrentEstimate(0.001, 0.1, 0.02),
    "actuator": CurrentEstimate(0.5, 20, 3),
    "relay": CurrentEstimate(0.05, 0.3, 0.15),
    "fuse": NO_LOAD,
    "connector": NO_LOAD,
    "pin": NO_LOAD,
    "wire": NO_LOAD,
    "harness": NO_LOAD,
    "bus": NO_LOAD,
    "ground": NO_LOAD,
    "ground_point": NO_LOAD,
    "ground_plane": NO_LOAD,
    "location": NO_LOAD,
    "terminal": NO_LOAD,
    "splice": NO_LOAD,
}

CurrentRule = Tuple[Callable[[NodeContext], bool], CurrentEstimate]

CURRENT_LABEL_OVERRIDES: Tuple[CurrentRule, ...] = (
    (lambda c: c.label_mentions("starter"), CurrentEstimate(80, 300, 150)),
    (lambda c: c.label_mentions("headlight", "main beam"), CurrentEstimate(5, 12, 8)),
    (lambda c: c.label_mentions("fog", "auxiliary"), CurrentEstimate(3, 8, 5)),
    (lambda c: c.label_mentions("fan") and c.node_type == "motor", CurrentEstimate(8, 25, 15)),
    (lambda c: c.label_mentions("fuel pump"), CurrentEstimate(2, 6, 4)),
    (lambda c: c.label_mentions("air condition", "compressor"), CurrentEstimate(10, 40, 20)),
)


def estimate_current_draw(node: NodeRecord) -> CurrentEstimate:
    """
    Type-keyed draw estimate refined by the first matching label override.

    Sources and passive parts (batteries, fuses, wires, pins, grounds...)
    never draw current, whatever their label says.
    """
    base = CURRENT_BY_TYPE.get(node.node_type, UNKNOWN_LOAD)
    if base is NO_LOAD:
        return base
    context = node_context(node)
    for condition, estimate in CURRENT_LABEL_OVERRIDES:
        if condition(context):
            return estimate
    return base


# ==================== Sizing recommendations ====================

# (minimum typical amps, gauge up to 3 m, gauge beyond 3 m)
WIRE_GAUGE_STEPS: Tuple[Tuple[float, str, str], ...] = (
    (100, "16mm²", "25mm²"),
    (50, "10mm²", "16mm²"),
    (20, "6mm²", "10mm²"),
    (10, "4mm²", "6mm²"),
    (5, "2.5mm²", "4mm²"),
    (1, "1mm²", "2.5mm²"),
)
MIN_WIRE_GAUGE = "0.5mm²"
LONG_RUN_M = 3.0

STANDARD_FUSE_RATINGS: Tuple[float, ...] = (5, 7.5, 10, 15, 20, 25, 30, 40, 50, 60, 70, 80, 100, 120, 150)
FUSE_HEADROOM = 1.25

HEAVY_GAUGES = frozenset({"10mm²", "16mm²", "25mm²"})
THIN_GAUGES = frozenset({"0.5mm²", "1mm²"})


def recommend_wire_gauge(a: NodeRecord, b: NodeRecord, distance_m: float = 1.0) -> str:
    """Smallest standard gauge that carries the larger of both endpoint draws"""
    draw = max(estimate_current_draw(a).typical, estimate_current_draw(b).typical)
    for threshold, short_run, long_run in WIRE_GAUGE_STEPS:
        if draw >= threshold:
            return long_run if distance_m > LONG_RUN_M else short_run
    return MIN_WIRE_GAUGE


def recommend_fuse_rating(nodes: Iterable[NodeRecord]) -> float:
    """Smallest standard rating at least 25% above the summed typical draw"""
    total = sum(estimate_current_draw(n).typical for n in nodes)
    required = total * FUSE_HEADROOM
    for rating in STANDARD_FUSE_RATINGS:
        if rating >= required:
            return rating
    return STANDARD_FUSE_RATINGS[-1]


def normalize_gauge(value: Optional[str]) -> Optional[str]:
    """Normalize spellings such as "16 mm2" to "16mm²"."""
    if not value:
        return None
    text = value.strip().lower().replace(" ", "")
    if text.endswith("mm2"):
        text = text[:-3] + "mm²"
    return text


# ==================== Circuit type and placement hints ====================

GROUND_TYPES = frozenset({"ground", "ground_point", "ground_plane"})

CIRCUIT_LABEL_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("starter",), "starting"),
    (("alternator",), "charging"),
    (("headlight", "taillight"), "lighting"),
    (("ignition",), "ignition"),
    (("fuel",), "fuel_system"),
    (("cooling", "fan"), "cooling"),
    (("air condition", "hvac"), "hvac"),
)

CIRCUIT_TYPE_RULES: Tuple[Tuple[Callable[[Set[str]], bool], str], ...] = (
    (lambda types: {"ecu", "sensor"} <= types, "engine_management"),
    (lambda types: {"battery", "fuse"} <= types, "power_distribution"),
    (lambda types: "lamp" in types, "lighting"),
    (lambda types: "motor" in types, "motor_control"),
    (lambda types: bool(types & GROUND_TYPES), "ground_distribution"),
)


def detect_circuit_type(nodes: Iterable[NodeRecord]) -> str:
    """Functional circuit type for a group of nodes; labels outrank node types"""
    nodes = list(nodes)
    labels = " ".join(node_context(n).label for n in nodes)
    for terms, circuit_type in CIRCUIT_LABEL_RULES:
        if any(term in labels for term in terms):
            return circuit_type

    types = {n.node_type for n in nodes}
    for condition, circuit_type in CIRCUIT_TYPE_RULES:
        if condition(types):
            return circuit_type
    return "general"


ZONE_RULES: Tuple[Tuple[Callable[[NodeContext], bool], str], ...] = (
    (lambda c: c.node_type == "battery", "engine"),
    (lambda c: c.node_type == "ecu" and not c.label_mentions("body"), "engine"),
    (lambda c: c.node_type == "fuse" and c.label_mentions("main"), "engine"),
    (lambda c: c.node_type == "connector" and c.label_mentions("diagnostic"), "dash"),
    (lambda c: c.label_mentions("engine", "starter", "alternator"), "engine"),
    (lambda c: c.label_mentions("dash", "instrument", "cluster"), "dash"),
    (lambda c: c.label_mentions("interior", "cabin", "seat"), "interior"),
    (lambda c: c.label_mentions("trunk", "boot", "rear"), "trunk"),
    (lambda c: c.label_mentions("headlight", "taillight", "exterior"), "exterior"),
)

ZONE_BY_TYPE: Dict[str, str] = {
    "lamp": "exterior",
    "connector": "dash",
    "terminal": "dash",
}
DEFAULT_ZONE_HINT = "engine"


def suggest_zone_placement(node: NodeRecord) -> str:
    """Coarse placement hint (engine, dash, interior, trunk, exterior) for an unplaced node"""
    context = node_context(node)
    for condition, zone in ZONE_RULES:
        if condition(context):
            return zone
    return ZONE_BY_TYPE.get(node.node_type, DEFAULT_ZONE_HINT)
