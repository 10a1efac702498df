"""Code analysis engine: digest, control flow, data flow, metrics, anonymization."""

from .analyzer import AnalyzerConfig, CodeAnalyzer, FailurePolicy
from .anonymizer import AnonymizationOutcome, AnonymizationScope, anonymize
from .cfg import BasicBlock, BlockType, CFGEdge, ControlFlowGraph, EdgeLabel, build_cfg
from .codec import bytes_to_floats, floats_to_bytes
from .dfg import DataFlowGraph, Definition, ReachingDefinitions, Use, build_dfg, solve_reaching_definitions
from .digest import AstDigest, extract_digest
from .metrics import CodeMetrics, FunctionMetrics, compute_metrics
from .result import CodeAnalysisResult

__all__ = [
    "AnalyzerConfig",
    "AnonymizationOutcome",
    "AnonymizationScope",
    "AstDigest",
    "BasicBlock",
    "BlockType",
    "CFGEdge",
    "CodeAnalysisResult",
    "CodeAnalyzer",
    "CodeMetrics",
    "ControlFlowGraph",
    "DataFlowGraph",
    "Definition",
    "EdgeLabel",
    "FailurePolicy",
    "FunctionMetrics",
    "ReachingDefinitions",
    "Use",
    "anonymize",
    "build_cfg",
    "build_dfg",
    "bytes_to_floats",
    "compute_metrics",
    "extract_digest",
    "floats_to_bytes",
    "solve_reaching_definitions",
]
