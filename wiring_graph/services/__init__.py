"""Graph store, integrity checks, spatial synthesis and topology analysis."""

from .analysis_service import AnalysisReport, analyze, trace_power_path
from .electrical_rules import ElectricalValidation, validate_electrical
from .graph_service import GraphBuilder, GraphStore
from .integrity_service import IntegrityChecker
from .pattern_detectors import PatternMatch, detect_patterns
from .spatial_service import SpatialSynthesizer

__all__ = [
    "AnalysisReport",
    "analyze",
    "trace_power_path",
    "ElectricalValidation",
    "validate_electrical",
    "GraphBuilder",
    "GraphStore",
    "IntegrityChecker",
    "PatternMatch",
    "detect_patterns",
    "SpatialSynthesizer",
]
