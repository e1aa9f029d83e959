"""
Canonical node/edge store and the builder that fills it from validated records.
"""

from typing import Dict, Iterable, List, Optional, Set

from ..core.errors import IssueLog, SchemaError, SchemaViolation
from ..core.logging import get_logger
from ..models.graph_model import GraphModel, build_indices
from ..models.records import EdgeRecord, MetadataRecord, NodeRecord

logger = get_logger(__name__)


class GraphStore:
    """
    Primary maps for one pipeline run.

    A store is owned by exactly one run; concurrent runs use separate
    instances. Edges whose endpoints do not resolve are moved to
    ``dangling_edges`` by the integrity checker; they are kept for
    reporting but are not part of the canonical edge set.
    """

    def __init__(self):
        self.metadata: Optional[MetadataRecord] = None
        self.nodes: Dict[str, NodeRecord] = {}
        self.edges: List[EdgeRecord] = []
        self.dangling_edges: List[EdgeRecord] = []
        self._model: Optional[GraphModel] = None

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def add_node(self, node: NodeRecord) -> None:
        self.nodes[node.id] = node

    def add_edge(self, edge: EdgeRecord) -> None:
        self.edges.append(edge)

    def quarantine_edges(self, indices: Set[int]) -> List[EdgeRecord]:
        """Move the edges at ``indices`` out of the canonical edge set"""
        if not indices:
            return []
        moved = [e for i, e in enumerate(self.edges) if i in indices]
        self.edges = [e for i, e in enumerate(self.edges) if i not in indices]
        self.dangling_edges.extend(moved)
        return moved

    def rebuild(self) -> GraphModel:
        """Recompute all indices from the current nodes and edges"""
        self._model = build_indices(self.nodes.values(), self.edges)
        logger.debug(
            "indices_built",
            nodes=len(self._model.nodes_by_id),
            edges=len(self._model.edges),
            anchors=len(self._model.anchors),
        )
        return self._model

    @property
    def model(self) -> GraphModel:
        """Most recently built index snapshot"""
        if self._model is None:
            return self.rebuild()
        return self._model


def duplicate_node_error(node: NodeRecord) -> SchemaError:
    return SchemaError(
        code="duplicate_id",
        message=f"Node {node.id}: duplicate id, first occurrence kept",
        kind="node",
        node_id=node.id,
    )


class GraphBuilder:
    """Inserts validated records into a store, enforcing unique ids and a single metadata record."""

    def __init__(self, issues: IssueLog, strict: bool = False):
        self.issues = issues
        self.strict = strict

    def _reject(self, error: SchemaError) -> None:
        if self.strict:
            raise SchemaViolation(error)
        logger.warning("record_rejected", code=error.code, message=error.message)
        self.issues.add_error(error)

    def build(
        self,
        metadata: Iterable[MetadataRecord],
        nodes: Iterable[NodeRecord],
        edges: Iterable[EdgeRecord],
    ) -> GraphStore:
        store = GraphStore()

        for meta in metadata:
            if store.metadata is not None:
                self._reject(SchemaError(
                    code="duplicate_metadata",
                    message=f"Metadata for {meta.model!r} ignored: graph already has metadata for {store.metadata.model!r}",
                    kind="meta",
                ))
                continue
            store.metadata = meta

        for node in nodes:
            if node.id in store:
                self._reject(duplicate_node_error(node))
                continue
            store.add_node(node)

        for edge in edges:
            store.add_edge(edge)

        store.rebuild()
        logger.info("graph_built", nodes=len(store.nodes), edges=len(store.edges))
        return store
