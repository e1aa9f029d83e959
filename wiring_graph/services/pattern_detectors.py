"""
Detectors for common automotive circuit patterns.

Each detector scores a candidate by adding the weights of the conditions it
satisfies, clamps the sum to ``[0, 1]`` and reports the pattern as detected
when the score exceeds the detection threshold. Weights live in one table per
detector so they can be recalibrated without touching the traversal code.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Tuple

from ..core.logging import get_logger
from ..models.graph_model import GraphModel
from ..models.records import NodeRecord
from .heuristics import HEAVY_GAUGES, node_context, normalize_gauge

logger = get_logger(__name__)

DEFAULT_DETECTION_THRESHOLD = 0.5


@dataclass
class PatternMatch:
    """Scored candidate for one pattern"""
    pattern: str
    confidence: float
    detected: bool
    components: List[str] = field(default_factory=list)
    conditions: List[str] = field(default_factory=list)
    description: str = ""

    def to_dict(self) -> Dict:
        return {
            "pattern": self.pattern,
            "confidence": self.confidence,
            "detected": self.detected,
            "components": list(self.components),
            "conditions": list(self.conditions),
            "description": self.description,
        }


@dataclass(frozen=True)
class WeightedCondition:
    name: str
    weight: float


def _score(conditions: Sequence[Tuple[WeightedCondition, bool]]) -> Tuple[float, List[str]]:
    total = 0.0
    met = []
    for condition, satisfied in conditions:
        if satisfied:
            total += condition.weight
            met.append(condition.name)
    return round(min(max(total, 0.0), 1.0), 4), met


def _unique(ids: List[str]) -> List[str]:
    return list(dict.fromkeys(ids))


def _edge_gauges(graph: GraphModel, node_id: str) -> List[str]:
    """Gauges on incident edges and on directly connected wire nodes"""
    gauges = []
    for edge in graph.edges_of(node_id):
        gauge = normalize_gauge(edge.attribute("gauge"))
        if gauge:
            gauges.append(gauge)
        other = graph.node(edge.other_end(node_id))
        if other is not None and other.is_wire:
            gauge = normalize_gauge(other.gauge)
            if gauge:
                gauges.append(gauge)
    return gauges


# ==================== Starter circuit ====================

STARTER_WEIGHTS = {
    "starter_present": WeightedCondition("starter_present", 0.3),
    "battery_connected": WeightedCondition("battery_connected", 0.3),
    "relay_connected": WeightedCondition("relay_connected", 0.2),
    "heavy_gauge": WeightedCondition("heavy_gauge", 0.2),
}


def _is_starter(node: NodeRecord) -> bool:
    context = node_context(node)
    return context.label_mentions("starter") or (node.node_type == "motor" and context.label_mentions("start"))


def detect_starter_circuit(graph: GraphModel, threshold: float = DEFAULT_DETECTION_THRESHOLD) -> List[PatternMatch]:
    starters = [n for n in graph.nodes if _is_starter(n)]
    if not starters:
        return [PatternMatch(pattern="starter_circuit", confidence=0.0, detected=False)]

    weights = STARTER_WEIGHTS
    checks: List[Tuple[WeightedCondition, bool]] = [(weights["starter_present"], True)]
    components: List[str] = []

    for starter in starters:
        connected = graph.connected_nodes(starter.id)
        components.append(starter.id)
        components.extend(n.id for n in connected)
        checks.append((weights["battery_connected"], any(n.node_type == "battery" for n in connected)))
        checks.append((weights["relay_connected"], any(n.node_type == "relay" for n in connected)))
        checks.append((weights["heavy_gauge"], any(g in HEAVY_GAUGES for g in _edge_gauges(graph, starter.id))))

    confidence, met = _score(checks)
    return [PatternMatch(
        pattern="starter_circuit",
        confidence=confidence,
        detected=confidence > threshold,
        components=_unique(components),
        conditions=_unique(met),
        description="High-current starting system",
    )]


# ==================== Charging circuit ====================

CHARGING_WEIGHTS = {
    "alternator_and_battery": WeightedCondition("alternator_and_battery", 0.4),
    "alternator_battery_link": WeightedCondition("alternator_battery_link", 0.3),
}


def detect_charging_circuit(graph: GraphModel, threshold: float = DEFAULT_DETECTION_THRESHOLD) -> List[PatternMatch]:
    alternators = [
        n for n in graph.nodes
        if node_context(n).label_mentions("alternator", "generator")
    ]
    batteries = graph.nodes_of_type("battery")
    if not alternators or not batteries:
        return [PatternMatch(pattern="charging_circuit", confidence=0.0, detected=False)]

    weights = CHARGING_WEIGHTS
    checks: List[Tuple[WeightedCondition, bool]] = [(weights["alternator_and_battery"], True)]
    for alternator in alternators:
        linked = set(graph.neighbors.get(alternator.id, []))
        for battery in batteries:
            checks.append((weights["alternator_battery_link"], battery.id in linked))

    confidence, met = _score(checks)
    return [PatternMatch(
        pattern="charging_circuit",
        confidence=confidence,
        detected=confidence > threshold,
        components=_unique([a.id for a in alternators] + [b.id for b in batteries]),
        conditions=_unique(met),
        description="Battery charging system",
    )]


# ==================== Relay control ====================

RELAY_WEIGHTS = {
    "control_input": WeightedCondition("control_input", 0.3),
    "power_output": WeightedCondition("power_output", 0.3),
    "fully_wired": WeightedCondition("fully_wired", 0.2),
}
RELAY_LOAD_TYPES = frozenset({"motor", "lamp", "actuator"})
RELAY_MIN_CONNECTIONS = 4


def detect_relay_control(graph: GraphModel, threshold: float = DEFAULT_DETECTION_THRESHOLD) -> List[PatternMatch]:
    """One candidate per relay, in store order"""
    matches = []
    weights = RELAY_WEIGHTS
    for relay in graph.nodes_of_type("relay"):
        edges = graph.edges_of(relay.id)
        connected = graph.connected_nodes(relay.id)
        has_control = any(
            n.node_type in ("ecu", "sensor") or node_context(n).label_mentions("control")
            for n in connected
        )
        has_load = any(n.node_type in RELAY_LOAD_TYPES for n in connected)

        confidence, met = _score([
            (weights["control_input"], has_control),
            (weights["power_output"], has_load),
            (weights["fully_wired"], len(edges) >= RELAY_MIN_CONNECTIONS),
        ])
        matches.append(PatternMatch(
            pattern="relay_control",
            confidence=confidence,
            detected=confidence > threshold,
            components=_unique([relay.id] + [n.id for n in connected]),
            conditions=met,
            description=f"Relay control for {relay.label or 'unknown load'}",
        ))
    return matches


# ==================== CAN bus network ====================

CAN_WEIGHTS = {
    "bus_links": WeightedCondition("bus_links", 0.4),
    "bus_nodes": WeightedCondition("bus_nodes", 0.3),
    "three_or_more_ecus": WeightedCondition("three_or_more_ecus", 0.3),
}
CAN_MIN_ECUS = 2


def _edge_mentions_bus(edge) -> bool:
    label = (edge.attribute("label") or "").lower()
    notes = (edge.notes or "").lower()
    return "can" in label or "can" in notes or "bus" in label or "data" in notes


def _node_mentions_bus(node: NodeRecord) -> bool:
    context = node_context(node)
    return (
        node.node_type == "bus"
        or context.label_mentions("can", "gateway", "bus")
        or "can" in context.notes
    )


def detect_can_bus_network(graph: GraphModel, threshold: float = DEFAULT_DETECTION_THRESHOLD) -> List[PatternMatch]:
    ecus = graph.nodes_of_type("ecu")
    if len(ecus) < CAN_MIN_ECUS:
        return [PatternMatch(pattern="can_bus_network", confidence=0.0, detected=False)]

    bus_edges = [e for e in graph.edges if _edge_mentions_bus(e)]
    bus_nodes = [n for n in graph.nodes if _node_mentions_bus(n)]

    weights = CAN_WEIGHTS
    confidence, met = _score([
        (weights["bus_links"], bool(bus_edges)),
        (weights["bus_nodes"], bool(bus_nodes)),
        (weights["three_or_more_ecus"], len(ecus) >= 3),
    ])
    return [PatternMatch(
        pattern="can_bus_network",
        confidence=confidence,
        detected=confidence > threshold,
        components=_unique([e.id for e in ecus] + [n.id for n in bus_nodes]),
        conditions=met,
        description="Controller Area Network communication",
    )]


Detector = Callable[[GraphModel, float], List[PatternMatch]]

# Declaration order is the merge order of the results
DETECTORS: Tuple[Tuple[str, Detector], ...] = (
    ("starter_circuit", detect_starter_circuit),
    ("charging_circuit", detect_charging_circuit),
    ("relay_control", detect_relay_control),
    ("can_bus_network", detect_can_bus_network),
)


def detect_patterns(
    graph: GraphModel,
    threshold: float = DEFAULT_DETECTION_THRESHOLD,
    parallel: bool = False,
    detectors: Sequence[Tuple[str, Detector]] = DETECTORS,
) -> List[PatternMatch]:
    """
    Run every detector and merge candidates in declaration order.

    Detectors only read the graph snapshot, so they may run on a thread
    pool; ``executor.map`` keeps results in submission order.
    """
    if parallel:
        with ThreadPoolExecutor(max_workers=len(detectors) or 1) as executor:
            results = list(executor.map(lambda item: item[1](graph, threshold), detectors))
    else:
        results = [detector(graph, threshold) for _, detector in detectors]

    merged = [match for result in results for match in result]
    for match in merged:
        if match.detected:
            logger.debug("pattern_detected", pattern=match.pattern, confidence=match.confidence)
    return merged
