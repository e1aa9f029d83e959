"""
Derived lookup structures over the canonical node/edge store.

``build_indices`` is a pure function of the current nodes and edges. It is
re-run after every mutating stage and never updated incrementally, so a
``GraphModel`` always reflects one consistent snapshot.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .records import EdgeRecord, NodeRecord, NodeType, Relationship


@dataclass(frozen=True)
class Anchor:
    """3D placement of a node"""
    xyz: Tuple[float, float, float]
    ypr: Optional[Tuple[float, float, float]] = None
    bbox: Optional[Tuple[float, float, float]] = None


@dataclass(frozen=True)
class GraphModel:
    """Read-only snapshot of the graph plus derived indices"""
    nodes_by_id: Dict[str, NodeRecord]
    edges: Tuple[EdgeRecord, ...]
    by_type: Dict[str, List[str]] = field(default_factory=dict)
    by_zone: Dict[str, List[str]] = field(default_factory=dict)
    neighbors: Dict[str, List[str]] = field(default_factory=dict)
    pins_by_connector: Dict[str, List[str]] = field(default_factory=dict)
    wires_by_harness_rail: Dict[str, List[str]] = field(default_factory=dict)
    anchors: Dict[str, Anchor] = field(default_factory=dict)
    incident_edges: Dict[str, List[int]] = field(default_factory=dict)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes_by_id

    @property
    def nodes(self) -> List[NodeRecord]:
        return list(self.nodes_by_id.values())

    def node(self, node_id: str) -> Optional[NodeRecord]:
        return self.nodes_by_id.get(node_id)

    def nodes_of_type(self, node_type: str) -> List[NodeRecord]:
        return [self.nodes_by_id[i] for i in self.by_type.get(node_type, [])]

    def edges_of(self, node_id: str) -> List[EdgeRecord]:
        """Edges touching ``node_id`` in either direction, in store order"""
        return [self.edges[i] for i in self.incident_edges.get(node_id, [])]

    def outgoing(self, node_id: str) -> List[EdgeRecord]:
        return [e for e in self.edges_of(node_id) if e.source == node_id]

    def connected_nodes(self, node_id: str) -> List[NodeRecord]:
        """Resolved nodes on the far side of each incident edge"""
        result = []
        for edge in self.edges_of(node_id):
            other = self.nodes_by_id.get(edge.other_end(node_id))
            if other is not None:
                result.append(other)
        return result


def _append_unique(index: Dict[str, List[str]], key: str, value: str) -> None:
    bucket = index.setdefault(key, [])
    if value not in bucket:
        bucket.append(value)


def _as_tuple(values: Optional[List[float]]) -> Optional[Tuple[float, float, float]]:
    return tuple(values) if values is not None else None


def build_indices(nodes: Iterable[NodeRecord], edges: Iterable[EdgeRecord]) -> GraphModel:
    """Recompute every index from scratch"""
    nodes_by_id: Dict[str, NodeRecord] = {}
    by_type: Dict[str, List[str]] = {}
    by_zone: Dict[str, List[str]] = {}
    wires_by_harness_rail: Dict[str, List[str]] = {}
    anchors: Dict[str, Anchor] = {}

    for node in nodes:
        nodes_by_id[node.id] = node
        _append_unique(by_type, node.node_type, node.id)

        if node.anchor_zone:
            _append_unique(by_zone, node.anchor_zone, node.id)

        if node.node_type == NodeType.WIRE.value and node.rail:
            _append_unique(wires_by_harness_rail, node.rail, node.id)

        if node.anchor_xyz is not None:
            anchors[node.id] = Anchor(
                xyz=_as_tuple(node.anchor_xyz),
                ypr=_as_tuple(node.anchor_ypr_deg),
                bbox=_as_tuple(node.bbox_m),
            )

    edge_list = tuple(edges)
    neighbors: Dict[str, List[str]] = {}
    pins_by_connector: Dict[str, List[str]] = {}
    incident_edges: Dict[str, List[int]] = {}

    for index, edge in enumerate(edge_list):
        _append_unique(neighbors, edge.source, edge.target)
        _append_unique(neighbors, edge.target, edge.source)

        incident_edges.setdefault(edge.source, []).append(index)
        if edge.target != edge.source:
            incident_edges.setdefault(edge.target, []).append(index)

        if edge.relationship == Relationship.HAS_PIN.value:
            _append_unique(pins_by_connector, edge.source, edge.target)

    return GraphModel(
        nodes_by_id=nodes_by_id,
        edges=edge_list,
        by_type=by_type,
        by_zone=by_zone,
        neighbors=neighbors,
        pins_by_connector=pins_by_connector,
        wires_by_harness_rail=wires_by_harness_rail,
        anchors=anchors,
        incident_edges=incident_edges,
    )
