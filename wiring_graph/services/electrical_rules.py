"""
Electrical sanity rules over the canonical graph.

``ELECTRICAL_RULES`` is the single ordered rule table. Every rule returns one
``RuleResult``; a failed rule carries ``warning`` severity except a missing
power source, which is an ``error``. The graph passes when no rule reports
an error, and its score is the share of rules that passed.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.logging import get_logger
from ..models.graph_model import GraphModel
from ..models.records import NodeRecord
from .heuristics import GROUND_TYPES, HEAVY_GAUGES, THIN_GAUGES, node_context, normalize_gauge

logger = get_logger(__name__)

Circuits = Mapping[str, Sequence[str]]

HIGH_CURRENT_TYPES = frozenset({"motor", "actuator", "lamp"})
LOW_VOLTAGE_TYPES = frozenset({"ecu", "sensor"})
LOW_VOLTAGE_LEVELS = frozenset({"5V", "12V"})
HIGH_VOLTAGE_LEVEL = "400V"
LOAD_TYPES = frozenset({"motor", "lamp", "ecu", "actuator"})
MAX_BATTERIES = 3
RELAY_MIN_CONNECTIONS = 3
RELAY_MAX_CONNECTIONS = 6
RELAY_CHECKED_CONNECTIONS = 4


class ValidationLevel(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class RuleResult:
    rule: str
    passed: bool
    severity: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ElectricalValidation:
    """Outcome of running the whole rule table against one graph"""
    results: List[RuleResult]

    def _messages(self, level: ValidationLevel) -> List[str]:
        return [r.message for r in self.results if r.severity == level.value]

    @property
    def errors(self) -> List[str]:
        return self._messages(ValidationLevel.ERROR)

    @property
    def warnings(self) -> List[str]:
        return self._messages(ValidationLevel.WARNING)

    @property
    def info(self) -> List[str]:
        return self._messages(ValidationLevel.INFO)

    @property
    def passed(self) -> bool:
        return not self.errors

    @property
    def score(self) -> int:
        """Percentage of rules that passed, rounded to a whole number"""
        if not self.results:
            return 100
        return round(100 * sum(r.passed for r in self.results) / len(self.results))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "score": self.score,
            "errors": self.errors,
            "warnings": self.warnings,
            "info": self.info,
            "details": [r.to_dict() for r in self.results],
            "summary": {
                "total_rules": len(self.results),
                "passed_rules": sum(r.passed for r in self.results),
                "error_count": len(self.errors),
                "warning_count": len(self.warnings),
                "info_count": len(self.info),
            },
        }


@dataclass
class GaugeIssue:
    subject: str
    gauge: str
    message: str


def wired_subjects(graph: GraphModel, attribute: str) -> List[Tuple[str, Any, List[NodeRecord]]]:
    """``(subject, value, endpoints)`` for every edge and wire node carrying ``attribute``"""
    subjects = []
    for edge in graph.edges:
        value = edge.attribute(attribute)
        if value:
            endpoints = [n for n in (graph.node(edge.source), graph.node(edge.target)) if n is not None]
            subjects.append((f"Edge {edge.source}->{edge.target}", value, endpoints))
    for wire in graph.nodes_of_type("wire"):
        value = wire.attribute(attribute)
        if value:
            endpoints = [n for n in graph.connected_nodes(wire.id) if n.id != wire.id]
            subjects.append((f"Wire {wire.id}", value, endpoints))
    return subjects


def check_wire_gauges(graph: GraphModel) -> List[GaugeIssue]:
    """Flag thin wires on high-current loads and undersized starter feeds"""
    issues: List[GaugeIssue] = []
    for subject, value, endpoints in wired_subjects(graph, "gauge"):
        gauge = normalize_gauge(value)
        if not gauge:
            continue
        if gauge in THIN_GAUGES and any(n.node_type in HIGH_CURRENT_TYPES for n in endpoints):
            issues.append(GaugeIssue(subject, gauge, f"{subject}: thin wire ({gauge}) for high-current component"))
        if gauge not in HEAVY_GAUGES and any(node_context(n).label_mentions("starter") for n in endpoints):
            issues.append(GaugeIssue(subject, gauge, f"{subject}: inadequate wire gauge for starter circuit"))
    return issues


def _ok(rule: str, message: str, severity: ValidationLevel = ValidationLevel.INFO) -> RuleResult:
    return RuleResult(rule=rule, passed=True, severity=severity.value, message=message)


def _fail(rule: str, message: str, severity: ValidationLevel = ValidationLevel.WARNING) -> RuleResult:
    return RuleResult(rule=rule, passed=False, severity=severity.value, message=message)


def _has_safety_note(node: NodeRecord) -> bool:
    notes = node_context(node).notes
    return "high voltage" in notes or "danger" in notes


def _normalize_voltage(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().upper().replace(" ", "")
    return text or None


class ElectricalRuleChecker:
    """Runs the electrical rule table against one graph snapshot."""

    def __init__(self, graph: GraphModel, circuits: Optional[Circuits] = None):
        self.graph = graph
        self.circuits = circuits or {}

    def _neighbors(self, node_id: str) -> List[NodeRecord]:
        return self.graph.connected_nodes(node_id)

    def _connection_count(self, node_id: str) -> int:
        return len(self.graph.edges_of(node_id))

    # ==================== Rules ====================

    def has_power_source(self) -> RuleResult:
        batteries = self.graph.nodes_of_type("battery")
        if not batteries:
            return _fail("R001", "No power source (battery) found in electrical system", ValidationLevel.ERROR)
        if len(batteries) > MAX_BATTERIES:
            return _ok(
                "R001",
                f"Unusual number of batteries ({len(batteries)}) - verify if correct",
                ValidationLevel.WARNING,
            )
        return _ok("R001", f"Found {len(batteries)} power source(s)")

    def has_ground_references(self) -> RuleResult:
        grounds = [n for n in self.graph.nodes if n.node_type in GROUND_TYPES]
        if not grounds:
            return _fail("R002", "No ground points found - electrical system requires ground references")
        return _ok("R002", f"Found {len(grounds)} ground reference(s)")

    def has_circuit_protection(self) -> RuleResult:
        fuses = len(self.graph.nodes_of_type("fuse"))
        relays = len(self.graph.nodes_of_type("relay"))
        if not fuses and not relays:
            return _fail("R003", "No circuit protection (fuses/relays) found")
        return _ok("R003", f"Found circuit protection: {fuses} fuse(s), {relays} relay(s)")

    def no_isolated_components(self) -> RuleResult:
        isolated = [n.id for n in self.graph.nodes if not self.graph.edges_of(n.id)]
        if isolated:
            return _fail("R004", f"Found {len(isolated)} isolated component(s): {', '.join(isolated)}")
        return _ok("R004", "All components are connected")

    def battery_connections(self) -> RuleResult:
        problems = []
        for battery in self.graph.nodes_of_type("battery"):
            count = self._connection_count(battery.id)
            if count == 0:
                problems.append(f"Battery {battery.id} has no connections")
                continue
            if count == 1:
                problems.append(f"Battery {battery.id} has only one connection (typically needs positive and negative)")
            if not any(n.node_type in ("fuse", "connector") for n in self._neighbors(battery.id)):
                problems.append(f"Battery {battery.id} should connect through fuse or distribution point")

        if problems:
            return _fail("R005", "; ".join(problems))
        return _ok("R005", "Battery connections are properly configured")

    def fuse_placement(self) -> RuleResult:
        problems = []
        for fuse in self.graph.nodes_of_type("fuse"):
            if self._connection_count(fuse.id) < 2:
                problems.append(f"Fuse {fuse.id} should have input and output connections")
                continue
            types = {n.node_type for n in self._neighbors(fuse.id)}
            has_input = bool(types & {"battery", "connector"})
            has_load = bool(types & LOAD_TYPES)
            if not has_input and not has_load:
                problems.append(f"Fuse {fuse.id} power source and load connections unclear")

        if problems:
            return _fail("R006", "; ".join(problems))
        return _ok("R006", "Fuse placements are appropriate")

    def ecu_power_and_ground(self) -> RuleResult:
        problems = []
        for ecu in self.graph.nodes_of_type("ecu"):
            types = {n.node_type for n in self._neighbors(ecu.id)}
            if not types & {"fuse", "battery"}:
                problems.append(f"ECU {ecu.id} has no clear power connection")
            if not types & GROUND_TYPES:
                problems.append(f"ECU {ecu.id} has no ground connection")

        if problems:
            return _fail("R007", "; ".join(problems))
        return _ok("R007", "ECU power and ground connections are proper")

    def wire_gauge_appropriate(self) -> RuleResult:
        problems = [issue.message for issue in check_wire_gauges(self.graph)]
        if problems:
            return _fail("R008", "; ".join(problems))
        return _ok("R008", "Wire gauges are appropriate for connected components")

    def voltage_level_consistency(self) -> RuleResult:
        problems = []
        for subject, value, endpoints in wired_subjects(self.graph, "voltage"):
            voltage = _normalize_voltage(value)
            if voltage not in LOW_VOLTAGE_LEVELS and any(n.node_type in LOW_VOLTAGE_TYPES for n in endpoints):
                problems.append(f"{subject}: high voltage ({voltage}) for ECU/sensor connection")
            if voltage == HIGH_VOLTAGE_LEVEL and not any(_has_safety_note(n) for n in endpoints):
                problems.append(f"{subject}: {HIGH_VOLTAGE_LEVEL} connection should have safety warnings")

        if problems:
            return _fail("R009", "; ".join(problems))
        return _ok("R009", "Voltage levels are consistent with component types")

    def circuit_completeness(self) -> RuleResult:
        if not self.circuits:
            return _ok("R010", "No circuits defined for validation")

        problems = []
        for circuit_id, member_ids in self.circuits.items():
            if len(member_ids) < 2:
                problems.append(f"Circuit {circuit_id}: incomplete (needs at least 2 nodes)")
                continue
            members = set(member_ids)
            types = {self.graph.nodes_by_id[i].node_type for i in member_ids if i in self.graph}
            if not types & {"battery", "fuse"}:
                problems.append(f"Circuit {circuit_id}: no clear power source")
            if not types & LOAD_TYPES:
                problems.append(f"Circuit {circuit_id}: no clear electrical load")
            internal = [e for e in self.graph.edges if e.source in members and e.target in members]
            if len(internal) < len(member_ids) - 1:
                problems.append(f"Circuit {circuit_id}: nodes may not form connected path")

        if problems:
            return _fail("R010", "; ".join(problems))
        return _ok("R010", "All circuits are complete and properly configured")

    def relay_configuration(self) -> RuleResult:
        problems = []
        for relay in self.graph.nodes_of_type("relay"):
            count = self._connection_count(relay.id)
            if count < RELAY_MIN_CONNECTIONS:
                problems.append(f"Relay {relay.id}: insufficient connections (needs coil + contact circuit)")
            elif count > RELAY_MAX_CONNECTIONS:
                problems.append(f"Relay {relay.id}: excessive connections ({count}) for typical relay")

            if count < RELAY_CHECKED_CONNECTIONS:
                continue
            neighbors = self._neighbors(relay.id)
            has_control = any(
                n.node_type in LOW_VOLTAGE_TYPES or node_context(n).label_mentions("control") for n in neighbors
            )
            has_power = any(n.node_type in ("battery", "fuse", "motor", "lamp") for n in neighbors)
            if not has_control:
                problems.append(f"Relay {relay.id}: no clear control input connection")
            if not has_power:
                problems.append(f"Relay {relay.id}: no clear power circuit connection")

        if problems:
            return _fail("R011", "; ".join(problems))
        return _ok("R011", "Relay configurations are appropriate")

    # ==================== Table ====================

    def validate_all(self) -> ElectricalValidation:
        results = [getattr(self, name)() for name in ELECTRICAL_RULES]
        validation = ElectricalValidation(results=results)
        logger.info(
            "electrical_validation_completed",
            passed=validation.passed,
            score=validation.score,
            failed_rules=[r.rule for r in results if not r.passed],
        )
        return validation


# Run order; each entry names an ElectricalRuleChecker method
ELECTRICAL_RULES: Tuple[str, ...] = (
    "has_power_source",
    "has_ground_references",
    "has_circuit_protection",
    "no_isolated_components",
    "battery_connections",
    "fuse_placement",
    "ecu_power_and_ground",
    "wire_gauge_appropriate",
    "voltage_level_consistency",
    "circuit_completeness",
    "relay_configuration",
)


def validate_electrical(graph: GraphModel, circuits: Optional[Circuits] = None) -> ElectricalValidation:
    """Run every electrical rule in table order"""
    return ElectricalRuleChecker(graph, circuits).validate_all()
