"""
Topology integrity checks: dangling references, relationship endpoint types
and the advisory wire-placement check.
"""

from typing import Dict, List, Optional, Set, Tuple

from ..core.errors import (
    EdgeRef,
    GeometryWarning,
    IntegrityError,
    IntegrityViolation,
    IssueLog,
)
from ..core.logging import get_logger
from ..models.graph_model import GraphModel
from ..models.records import EdgeRecord, NodeRecord, NodeType, Relationship
from .graph_service import GraphStore

logger = get_logger(__name__)

# relationship -> (required source type, required target type); None means unconstrained
ENDPOINT_RULES: Dict[Relationship, Tuple[Optional[str], Optional[str]]] = {
    Relationship.HAS_PIN: (NodeType.CONNECTOR.value, None),
    Relationship.PIN_TO_WIRE: (NodeType.PIN.value, NodeType.WIRE.value),
    Relationship.WIRE_TO_PIN: (NodeType.WIRE.value, NodeType.PIN.value),
    Relationship.WIRE_TO_FUSE: (None, NodeType.FUSE.value),
    Relationship.WIRE_TO_GROUND: (None, NodeType.GROUND_POINT.value),
    Relationship.GROUND_TO_PLANE: (None, NodeType.GROUND_PLANE.value),
    Relationship.IN_LOCATION: (None, NodeType.LOCATION.value),
    Relationship.HAS_CONNECTOR: (None, None),
    Relationship.ROUTED_ON: (None, None),
}

# Edges that can place a wire between two anchored endpoints
WIRE_ENDPOINT_RELATIONSHIPS = frozenset({
    Relationship.PIN_TO_WIRE.value,
    Relationship.WIRE_TO_PIN.value,
    Relationship.WIRE_TO_FUSE.value,
    Relationship.WIRE_TO_GROUND.value,
    Relationship.HAS_CONNECTOR.value,
})


def anchored_wire_endpoints(wire: NodeRecord, model: GraphModel, limit: Optional[int] = None) -> List[str]:
    """
    Ids of anchored nodes reached from ``wire`` through qualifying edges.

    Edges are visited in store order, so the first two results are stable
    across runs.
    """
    endpoints: List[str] = []
    for edge in model.edges_of(wire.id):
        if edge.relationship not in WIRE_ENDPOINT_RELATIONSHIPS:
            continue
        other = edge.other_end(wire.id)
        if other in model.anchors:
            endpoints.append(other)
            if limit is not None and len(endpoints) >= limit:
                break
    return endpoints


def is_routed(wire: NodeRecord, model: GraphModel) -> bool:
    """True when the wire declares the harness it is routed on"""
    return any(e.relationship == Relationship.ROUTED_ON.value for e in model.outgoing(wire.id))


def check_endpoint_types(edge: EdgeRecord, source: NodeRecord, target: NodeRecord) -> Optional[str]:
    """Return a violation message when the endpoint types do not fit the relationship"""
    relationship = edge.relationship_kind
    if relationship is None:
        return None

    required_source, required_target = ENDPOINT_RULES[relationship]
    problems = []
    if required_source is not None and source.node_type != required_source:
        problems.append(f"source must be {required_source} (got {source.node_type})")
    if required_target is not None and target.node_type != required_target:
        problems.append(f"target must be {required_target} (got {target.node_type})")

    if not problems:
        return None
    return f"{relationship.value} {edge.source} -> {edge.target}: {', '.join(problems)}"


class IntegrityChecker:
    """Checks every edge against the node store and the endpoint-type table."""

    def __init__(self, issues: IssueLog, strict: bool = False):
        self.issues = issues
        self.strict = strict

    def _report(self, error: IntegrityError) -> None:
        if self.strict:
            raise IntegrityViolation(error)
        logger.warning("integrity_error", code=error.code, message=error.message)
        self.issues.add_error(error)

    def check(self, store: GraphStore) -> List[IntegrityError]:
        """
        Run all edge checks, quarantine dangling edges and rebuild indices.

        Relationship-type violations are reported but the edge stays in the
        canonical edge set.
        """
        model = store.model
        found: List[IntegrityError] = []
        dangling: Set[int] = set()

        for index, edge in enumerate(store.edges):
            ref = EdgeRef(source=edge.source, target=edge.target, relationship=edge.relationship)
            source = model.node(edge.source)
            target = model.node(edge.target)

            missing = [
                (role, node_id)
                for role, node_id, node in (("source", edge.source, source), ("target", edge.target, target))
                if node is None
            ]
            for role, node_id in missing:
                error = IntegrityError(
                    code=f"unknown_{role}",
                    message=f"Unknown {role} id in edge {ref}: {node_id}",
                    edge=ref,
                    edge_index=index,
                )
                self._report(error)
                found.append(error)
            if missing:
                dangling.add(index)
                continue

            violation = check_endpoint_types(edge, source, target)
            if violation:
                error = IntegrityError(
                    code="relationship_type",
                    message=violation,
                    edge=ref,
                    edge_index=index,
                )
                self._report(error)
                found.append(error)

        quarantined = store.quarantine_edges(dangling)
        if quarantined:
            logger.info("edges_quarantined", count=len(quarantined))
        store.rebuild()

        self.check_wire_placement(store.model)
        return found

    def check_wire_placement(self, model: GraphModel) -> List[GeometryWarning]:
        """Advisory: flag unrouted wires with no path and fewer than two anchored endpoints"""
        warnings = []
        for wire in model.nodes_of_type(NodeType.WIRE.value):
            if wire.path_xyz:
                continue
            if is_routed(wire, model):
                continue
            if len(anchored_wire_endpoints(wire, model, limit=2)) >= 2:
                continue
            warning = GeometryWarning(
                code="wire_unplaced",
                message=f"Wire {wire.id} missing path_xyz and insufficient endpoint anchors - synthesis will attempt a fix",
                node_id=wire.id,
                field="path_xyz",
            )
            self.issues.add_warning(warning)
            warnings.append(warning)
        if warnings:
            logger.info("wires_unplaced", count=len(warnings))
        return warnings
