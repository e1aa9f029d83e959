"""
End-to-end normalization pipeline.

Stages run strictly in order: validate, repair, index, integrity check,
synthesize. Each stage consumes the complete output of the previous one and
indices are rebuilt after every mutating stage. Analysis and serialization
read the resulting store and never mutate it.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

import structlog

from .core.config import Settings, get_settings
from .core.errors import IssueLog, SchemaError, SchemaViolation
from .core.logging import get_logger, log_stage
from .importers.repair_service import RepairService
from .importers.validation_service import RecordValidator
from .models.graph_model import GraphModel
from .models.records import EdgeRecord, MetadataRecord, NodeRecord
from .models.zones import ZoneTable
from .services.analysis_service import AnalysisReport, analyze
from .services.graph_service import GraphBuilder, GraphStore, duplicate_node_error
from .services.integrity_service import IntegrityChecker
from .services.spatial_service import SpatialSynthesizer

logger = get_logger(__name__)


@dataclass
class PipelineResult:
    """Canonical store, its indices and every issue recorded during the run"""
    run_id: str
    store: GraphStore
    issues: IssueLog
    synthesis_stats: Dict[str, int] = field(default_factory=dict)

    @property
    def model(self) -> GraphModel:
        return self.store.model

    def quality_gates(self) -> Dict[str, Any]:
        """
        Summarize the run against the acceptance gates.

        ``passed`` only reflects the blocking gates; missing wire paths are
        reported but never fail a run.
        """
        model = self.model
        unresolved = [
            e for e in model.edges
            if e.source not in model or e.target not in model
        ]
        wires = model.nodes_of_type("wire")
        unplaced = [w.id for w in wires if not w.path_xyz]

        gates = {
            "no_unresolved_ids": not unresolved and not self.store.dangling_edges,
            "no_schema_errors": not self.issues.schema_errors,
            "all_wires_have_paths": not unplaced,
        }
        return {
            "passed": gates["no_unresolved_ids"] and gates["no_schema_errors"],
            "gates": gates,
            "dangling_edges": len(self.store.dangling_edges),
            "schema_errors": len(self.issues.schema_errors),
            "wires_without_path": unplaced,
        }

    def analyze(self, config: Optional[Settings] = None) -> AnalysisReport:
        return analyze(self.model, config)

    def summary(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "nodes": len(self.store.nodes),
            "edges": len(self.store.edges),
            "dangling_edges": len(self.store.dangling_edges),
            "errors": len(self.issues.errors),
            "warnings": len(self.issues.warnings),
            "repairs": len(self.issues.repairs),
            "synthesis": self.synthesis_stats,
        }


class NormalizationPipeline:
    """Runs the staged normalization over one sequence of raw records."""

    def __init__(self, config: Optional[Settings] = None, zones: Optional[ZoneTable] = None):
        self.config = config or get_settings()
        self.zones = zones or ZoneTable()
        self.validator = RecordValidator()
        self.repairer = RepairService()

    def _validate(self, records: Iterable[Any], issues: IssueLog):
        metadata: List[MetadataRecord] = []
        nodes: List[NodeRecord] = []
        edges: List[EdgeRecord] = []
        seen: Set[str] = set()

        for index, raw in enumerate(records):
            result = self.validator.validate(raw, index)
            # duplicates are rejected here, before repair sees them
            if isinstance(result, NodeRecord) and result.id in seen:
                result = duplicate_node_error(result)
            if isinstance(result, SchemaError):
                if self.config.strict_mode:
                    raise SchemaViolation(result)
                logger.warning("record_rejected", code=result.code, message=result.message)
                issues.add_error(result)
            elif isinstance(result, MetadataRecord):
                metadata.append(result)
            elif isinstance(result, NodeRecord):
                seen.add(result.id)
                nodes.append(result)
            else:
                edges.append(result)

        return metadata, nodes, edges

    def run(self, records: Iterable[Any], issues: Optional[IssueLog] = None) -> PipelineResult:
        """Normalize ``records`` into a fresh store owned by this run"""
        run_id = uuid.uuid4().hex[:12]
        issues = issues if issues is not None else IssueLog()
        strict = self.config.strict_mode

        with structlog.contextvars.bound_contextvars(run_id=run_id):
            with log_stage(logger, "validate"):
                metadata, nodes, edges = self._validate(records, issues)

            if self.config.auto_repair:
                with log_stage(logger, "repair", nodes=len(nodes)):
                    for node in nodes:
                        for repair in self.repairer.repair(node):
                            issues.add_repair(repair)

            with log_stage(logger, "index"):
                store = GraphBuilder(issues, strict=strict).build(metadata, nodes, edges)

            with log_stage(logger, "integrity"):
                IntegrityChecker(issues, strict=strict).check(store)

            stats: Dict[str, int] = {}
            if self.config.synthesize_spatial:
                with log_stage(logger, "synthesize"):
                    synthesizer = SpatialSynthesizer(
                        issues,
                        zones=self.zones,
                        bridge_offset_m=self.config.wire_bridge_offset_m,
                    )
                    stats = synthesizer.synthesize(store)

            result = PipelineResult(run_id=run_id, store=store, issues=issues, synthesis_stats=stats)
            logger.info("pipeline_completed", **result.summary())
            return result


def run_pipeline(records: Iterable[Any], config: Optional[Settings] = None) -> PipelineResult:
    """Convenience wrapper around ``NormalizationPipeline.run``"""
    return NormalizationPipeline(config).run(records)
