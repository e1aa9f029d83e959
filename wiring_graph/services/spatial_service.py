"""
Spatial synthesis: zone anchors, default bounding boxes and bridged wire paths.

Every write is guarded by a presence check, so synthesis only fills gaps and
running it again over an already-synthesized graph changes nothing.
"""

from typing import Dict, List, Optional, Tuple

from ..core.errors import GeometryWarning, IssueLog, RepairRecord
from ..core.logging import get_logger
from ..models.graph_model import GraphModel
from ..models.records import NodeRecord
from ..models.zones import DEFAULT_BBOX_M, ZoneTable
from .graph_service import GraphStore
from .integrity_service import anchored_wire_endpoints

logger = get_logger(__name__)

DEFAULT_BRIDGE_OFFSET_M = 0.2


class SpatialSynthesizer:
    """Fills missing anchors, boxes and wire paths"""

    def __init__(
        self,
        issues: IssueLog,
        zones: Optional[ZoneTable] = None,
        bbox_defaults: Dict[str, Tuple[float, float, float]] = DEFAULT_BBOX_M,
        bridge_offset_m: float = DEFAULT_BRIDGE_OFFSET_M,
    ):
        self.issues = issues
        self.zones = zones or ZoneTable()
        self.bbox_defaults = bbox_defaults
        self.bridge_offset_m = bridge_offset_m

    # ==================== Node-level operations ====================

    @staticmethod
    def _warning_field(node: NodeRecord, field: str) -> str:
        # a wire has one geometry subject: its path
        return "path_xyz" if node.is_wire else field

    def synthesize_anchor(self, node: NodeRecord) -> bool:
        """Assign the zone's representative point when a node has a zone but no anchor"""
        if node.anchor_xyz is not None or not node.anchor_zone:
            return False

        anchor = self.zones.anchor_for(node.anchor_zone)
        if anchor is None:
            self.issues.add_warning(GeometryWarning(
                code="unknown_zone",
                message=f"Node {node.id}: zone {node.anchor_zone!r} has no reference anchor",
                node_id=node.id,
                field=self._warning_field(node, "anchor_xyz"),
            ))
            return False

        node.anchor_xyz = anchor
        self.issues.add_warning(GeometryWarning(
            code="anchor_synthesized",
            message=f"Synthesized anchor for {node.id} from zone {node.anchor_zone}",
            node_id=node.id,
            field=self._warning_field(node, "anchor_xyz"),
        ))
        logger.debug("anchor_synthesized", node_id=node.id, zone=node.anchor_zone)
        return True

    def default_bbox(self, node: NodeRecord) -> bool:
        if node.bbox_m is not None:
            return False
        default = self.bbox_defaults.get(node.node_type)
        if default is None:
            return False
        node.bbox_m = list(default)
        return True

    def bridge_wire_path(self, wire: NodeRecord, model: GraphModel) -> bool:
        """
        Build ``[P1, M, P2]`` from the first two anchored endpoints of a wire.

        ``M`` is the midpoint shifted along X by the bridge offset so several
        wires bridged between the same points do not collapse onto one
        straight segment. A wire with fewer than two anchored endpoints keeps
        ``path_xyz = None`` and gets a geometry warning.
        """
        if not wire.is_wire or wire.path_xyz:
            return False

        endpoints = anchored_wire_endpoints(wire, model, limit=2)
        if len(endpoints) < 2:
            self.issues.add_warning(GeometryWarning(
                code="wire_unbridged",
                message=f"Wire {wire.id}: {len(endpoints)} anchored endpoint(s), path left empty",
                node_id=wire.id,
                field="path_xyz",
            ))
            return False

        start = list(model.anchors[endpoints[0]].xyz)
        end = list(model.anchors[endpoints[1]].xyz)
        mid = [
            (start[0] + end[0]) / 2 + self.bridge_offset_m,
            (start[1] + end[1]) / 2,
            (start[2] + end[2]) / 2,
        ]
        wire.path_xyz = [start, mid, end]
        self.issues.clear_warning(wire.id, "path_xyz")
        self.issues.add_repair(RepairRecord(
            kind="bridged_wire_path",
            node_id=wire.id,
            field="path_xyz",
            before=None,
            after=wire.path_xyz,
        ))
        logger.debug("wire_bridged", node_id=wire.id, endpoints=endpoints)
        return True

    # ==================== Store-level pass ====================

    def synthesize(self, store: GraphStore) -> Dict[str, int]:
        """Run anchor, bbox and wire synthesis over the whole store"""
        stats = {"anchors": 0, "bboxes": 0, "wire_paths": 0}

        for node in store.nodes.values():
            if self.synthesize_anchor(node):
                stats["anchors"] += 1
            if self.default_bbox(node):
                stats["bboxes"] += 1

        # wire bridging needs the freshly synthesized anchors
        model = store.rebuild()
        for wire in model.nodes_of_type("wire"):
            if self.bridge_wire_path(wire, model):
                stats["wire_paths"] += 1

        store.rebuild()
        logger.info("spatial_synthesis_completed", **stats)
        return stats

    def unbridged_wires(self, model: GraphModel) -> List[str]:
        return [w.id for w in model.nodes_of_type("wire") if not w.path_xyz]
