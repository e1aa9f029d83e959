"""
Topology analysis over the canonical graph.

Every function here is read-only over a ``GraphModel`` snapshot and
deterministic: the same graph always yields the same report.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.config import Settings
from ..core.errors import UnknownNodeError
from ..core.logging import get_logger
from ..models.graph_model import GraphModel
from .electrical_rules import (
    Circuits,
    ElectricalValidation,
    GaugeIssue,
    check_wire_gauges,
    validate_electrical,
)
from .heuristics import (
    CircuitFamily,
    classify_circuit_family,
    detect_circuit_type,
    estimate_current_draw,
    node_context,
    recommend_fuse_rating,
    suggest_zone_placement,
)
from .pattern_detectors import DEFAULT_DETECTION_THRESHOLD, PatternMatch, detect_patterns

logger = get_logger(__name__)

DISTRIBUTION_TYPES = frozenset({"fuse", "connector", "relay"})


@dataclass
class PowerPath:
    source: str
    path: List[str]

    @property
    def length(self) -> int:
        return len(self.path)


@dataclass
class PowerDistributionAnalysis:
    """Power distribution architecture result"""
    architecture: str
    main_distribution_points: List[str]
    power_paths: List[PowerPath]
    redundancy: str
    confidence: float


@dataclass
class FamilyAnalysis:
    """Per circuit family characteristics"""
    node_count: int
    connectivity: float
    component_types: Dict[str, int]
    estimated_power: float
    issues: List[str]
    circuit_type: str = "general"


@dataclass
class CriticalLoad:
    id: str
    node_type: str
    label: Optional[str]
    current: float


@dataclass
class LoadDistributionAnalysis:
    """System-wide load estimate"""
    total_load: float
    load_by_zone: Dict[str, float]
    critical_loads: List[CriticalLoad]
    recommendations: List[str]


@dataclass
class AnalysisReport:
    """Bundle of every topology analysis for one graph"""
    power_distribution: PowerDistributionAnalysis
    families: Dict[str, List[str]]
    family_analysis: Dict[str, FamilyAnalysis]
    load_distribution: LoadDistributionAnalysis
    gauge_issues: List[GaugeIssue]
    electrical: ElectricalValidation
    patterns: List[PatternMatch] = field(default_factory=list)
    zone_suggestions: Dict[str, str] = field(default_factory=dict)

    @property
    def detected_patterns(self) -> List[PatternMatch]:
        return [p for p in self.patterns if p.detected]

    def to_dict(self) -> Dict[str, Any]:
        power = self.power_distribution
        load = self.load_distribution
        return {
            "power_distribution": {
                "architecture": power.architecture,
                "main_distribution_points": power.main_distribution_points,
                "power_paths": [
                    {"source": p.source, "path": p.path, "length": p.length}
                    for p in power.power_paths
                ],
                "redundancy": power.redundancy,
                "confidence": power.confidence,
            },
            "families": self.families,
            "family_analysis": {
                name: {
                    "node_count": a.node_count,
                    "connectivity": a.connectivity,
                    "component_types": a.component_types,
                    "estimated_power": a.estimated_power,
                    "issues": a.issues,
                    "circuit_type": a.circuit_type,
                }
                for name, a in self.family_analysis.items()
            },
            "load_distribution": {
                "total_load": load.total_load,
                "load_by_zone": load.load_by_zone,
                "critical_loads": [
                    {"id": c.id, "node_type": c.node_type, "label": c.label, "current": c.current}
                    for c in load.critical_loads
                ],
                "recommendations": load.recommendations,
            },
            "gauge_issues": [
                {"subject": g.subject, "gauge": g.gauge, "message": g.message}
                for g in self.gauge_issues
            ],
            "electrical_validation": self.electrical.to_dict(),
            "patterns": [p.to_dict() for p in self.patterns],
            "zone_suggestions": self.zone_suggestions,
        }


# ==================== Power path tracing ====================

def trace_power_path(graph: GraphModel, source_id: str, max_depth: int = 5) -> List[str]:
    """
    Depth-first walk from a power source through distribution nodes.

    The walk follows edge direction, enters only fuses, connectors and
    relays, and stops at ``max_depth`` because the graph may contain cycles.
    Returns node ids in visit order, starting with the source.
    """
    if source_id not in graph:
        raise UnknownNodeError(source_id)

    visited = set()
    path: List[str] = []

    def visit(node_id: str, depth: int) -> None:
        if depth >= max_depth or node_id in visited:
            return
        visited.add(node_id)
        path.append(node_id)

        node = graph.node(node_id)
        if depth > 0 and node.node_type not in DISTRIBUTION_TYPES:
            return
        for edge in graph.outgoing(node_id):
            target = graph.node(edge.target)
            if target is not None and target.node_type in DISTRIBUTION_TYPES:
                visit(edge.target, depth + 1)

    visit(source_id, 0)
    return path


def analyze_power_distribution(graph: GraphModel, max_depth: int = 3) -> PowerDistributionAnalysis:
    batteries = graph.nodes_of_type("battery")
    if not batteries:
        return PowerDistributionAnalysis(
            architecture="unknown",
            main_distribution_points=[],
            power_paths=[],
            redundancy="none",
            confidence=0.0,
        )

    architecture = "unknown"
    points: List[str] = []
    confidence = 0.5

    main_fuse = next(
        (f for f in graph.nodes_of_type("fuse") if node_context(f).label_mentions("main", "master", "primary")),
        None,
    )
    if main_fuse is not None:
        architecture = "centralized"
        points.append(main_fuse.id)
        confidence += 0.2

    junctions = [
        c for c in graph.nodes_of_type("connector")
        if node_context(c).label_mentions("distribution", "junction", "block")
    ]
    if len(junctions) > 2:
        architecture = "hybrid" if architecture == "centralized" else "distributed"
        points.extend(c.id for c in junctions)
        confidence += 0.1

    paths = []
    for battery in batteries:
        path = trace_power_path(graph, battery.id, max_depth)
        if len(path) > 1:
            paths.append(PowerPath(source=battery.id, path=path))

    if len(batteries) > 1:
        redundancy = "multiple_sources"
    elif len(paths) > 1:
        redundancy = "multiple_paths"
    else:
        redundancy = "none"

    return PowerDistributionAnalysis(
        architecture=architecture,
        main_distribution_points=points,
        power_paths=paths,
        redundancy=redundancy,
        confidence=round(confidence, 2),
    )


# ==================== Circuit families ====================

def identify_circuit_families(graph: GraphModel) -> Dict[str, List[str]]:
    """Node ids grouped by family, every family key present"""
    families: Dict[str, List[str]] = {family: [] for family in CircuitFamily.ALL}
    for node in graph.nodes:
        families[classify_circuit_family(node)].append(node.id)
    return families


def analyze_circuit_family(graph: GraphModel, node_ids: List[str]) -> FamilyAnalysis:
    members = set(node_ids)
    nodes = [graph.nodes_by_id[i] for i in node_ids if i in graph]
    internal_edges = [e for e in graph.edges if e.source in members and e.target in members]

    connectivity = len(internal_edges) / max(1, len(nodes) - 1)
    type_counts = dict(Counter(n.node_type for n in nodes))
    estimated_power = sum(estimate_current_draw(n).typical for n in nodes)

    issues = []
    if connectivity < 0.5 and len(nodes) > 2:
        issues.append("Low connectivity within family")
    if estimated_power > 50 and not type_counts.get("fuse"):
        issues.append("High power family without protection")

    return FamilyAnalysis(
        node_count=len(nodes),
        connectivity=round(connectivity, 2),
        component_types=type_counts,
        estimated_power=round(estimated_power, 1),
        issues=issues,
        circuit_type=detect_circuit_type(nodes),
    )


# ==================== Load distribution ====================

def analyze_load_distribution(
    graph: GraphModel,
    critical_load_amps: float = 20.0,
    zone_load_warning_amps: float = 30.0,
    total_load_warning_amps: float = 100.0,
) -> LoadDistributionAnalysis:
    total = 0.0
    by_zone: Dict[str, float] = {}
    critical: List[CriticalLoad] = []

    for node in graph.nodes:
        typical = estimate_current_draw(node).typical
        total += typical
        zone = node.anchor_zone or "unknown"
        by_zone[zone] = by_zone.get(zone, 0.0) + typical
        if typical > critical_load_amps:
            critical.append(CriticalLoad(id=node.id, node_type=node.node_type, label=node.label, current=typical))

    recommendations = []
    if total > total_load_warning_amps:
        recommendations.append("High total system load - verify alternator capacity")
    for zone, load in by_zone.items():
        if load > zone_load_warning_amps:
            recommendations.append(f"High load in {zone} zone ({round(load)}A) - check wiring capacity")
    if len(critical) > 3:
        recommendations.append("Multiple high-current loads - consider load management strategy")

    return LoadDistributionAnalysis(
        total_load=round(total, 1),
        load_by_zone={zone: round(load, 1) for zone, load in by_zone.items()},
        critical_loads=critical,
        recommendations=recommendations,
    )


def recommend_protection(graph: GraphModel, fuse_id: str) -> float:
    """Fuse rating for the loads wired directly downstream of ``fuse_id``"""
    if fuse_id not in graph:
        raise UnknownNodeError(fuse_id)
    loads = [graph.node(e.target) for e in graph.outgoing(fuse_id) if e.target in graph]
    return recommend_fuse_rating(loads)


def suggest_zones(graph: GraphModel) -> Dict[str, str]:
    """Coarse placement hints for non-wire nodes that carry neither a zone nor an anchor"""
    return {
        node.id: suggest_zone_placement(node)
        for node in graph.nodes
        if not node.is_wire and not node.anchor_zone and node.anchor_xyz is None
    }


# ==================== Full report ====================

def analyze(
    graph: GraphModel,
    config: Optional[Settings] = None,
    circuits: Optional[Circuits] = None,
) -> AnalysisReport:
    """
    Run every analysis in a fixed order.

    ``circuits`` maps circuit ids to member node ids for the circuit
    completeness rule; without it that rule has nothing to check.
    """
    power_depth = config.distribution_max_depth if config else 3
    threshold = config.detection_threshold if config else DEFAULT_DETECTION_THRESHOLD
    parallel = config.parallel_detectors if config else False

    families = identify_circuit_families(graph)
    family_analysis = {
        name: analyze_circuit_family(graph, ids)
        for name, ids in families.items()
        if ids
    }

    load_kwargs = {}
    if config:
        load_kwargs = {
            "critical_load_amps": config.critical_load_amps,
            "zone_load_warning_amps": config.zone_load_warning_amps,
            "total_load_warning_amps": config.total_load_warning_amps,
        }

    report = AnalysisReport(
        power_distribution=analyze_power_distribution(graph, power_depth),
        families=families,
        family_analysis=family_analysis,
        load_distribution=analyze_load_distribution(graph, **load_kwargs),
        gauge_issues=check_wire_gauges(graph),
        electrical=validate_electrical(graph, circuits),
        patterns=detect_patterns(graph, threshold=threshold, parallel=parallel),
        zone_suggestions=suggest_zones(graph),
    )
    logger.info(
        "analysis_completed",
        patterns_detected=len(report.detected_patterns),
        total_load=report.load_distribution.total_load,
        gauge_issues=len(report.gauge_issues),
        electrical_score=report.electrical.score,
    )
    return report
