"""Analysis orchestrator: one document in, one CodeAnalysisResult out.

Steps (digest, cfg + dfg, metrics, anonymize) run independently over the same
read-only tree. A failing step is logged and leaves its fields None; a CFG
failure also leaves the DFG unset. Empty or unparseable input is not an error
and produces an all-null result without attempting any step.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from codemodeler.exceptions import InvalidArgumentError
from codemodeler.syntax.model import Document, SyntaxTree
from codemodeler.syntax.registry import ProviderRegistry, default_registry
from codemodeler.utils.constants import DEFAULT_MAX_DEPTH
from codemodeler.utils.helpers import canonical_json
from codemodeler.utils.logging import logger

from .anonymizer import AnonymizationScope, anonymize
from .cfg import build_cfg, function_nodes, has_executable_top_level
from .dfg import build_dfg
from .digest import extract_digest
from .metrics import compute_metrics
from .result import CodeAnalysisResult


class FailurePolicy:
    """What a failing step does to the rest of the result."""

    CONTINUE = "continue"
    ABORT = "abort"

    ALL = (CONTINUE, ABORT)


@dataclass(frozen=True)
class AnalyzerConfig:
    anonymize_scope: str = AnonymizationScope.LOCALS
    failure_policy: str = FailurePolicy.CONTINUE
    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self):
        if self.anonymize_scope not in AnonymizationScope.ALL:
            raise InvalidArgumentError(
                f"anonymize_scope must be one of {', '.join(AnonymizationScope.ALL)}, got {self.anonymize_scope!r}"
            )
        if self.failure_policy not in FailurePolicy.ALL:
            raise InvalidArgumentError(
                f"failure_policy must be one of {', '.join(FailurePolicy.ALL)}, got {self.failure_policy!r}"
            )
        if self.max_depth < 1:
            raise InvalidArgumentError(f"max_depth must be positive, got {self.max_depth}")

    @classmethod
    def from_runtime(cls, cfg: dict[str, Any]) -> "AnalyzerConfig":
        """Build from the `analysis` section of load_runtime_config()."""
        section = cfg.get("analysis", {})
        return cls(
            anonymize_scope=str(section.get("anonymize_scope", AnonymizationScope.LOCALS)).lower(),
            failure_policy=str(section.get("failure_policy", FailurePolicy.CONTINUE)).lower(),
            max_depth=int(section.get("max_depth", DEFAULT_MAX_DEPTH)),
        )


class _StepFailed(Exception):
    """Raised internally to stop at the first failing step under FailurePolicy.ABORT."""


class CodeAnalyzer:
    """Runs every analysis step over one document."""

    def __init__(self, config: AnalyzerConfig | None = None, registry: ProviderRegistry | None = None):
        self.config = config or AnalyzerConfig()
        self.registry = registry or default_registry()

    def parse(self, document: Document) -> SyntaxTree | None:
        """Tree for a document, or None when nothing can be analyzed."""
        if document.text is None or not document.text.strip():
            return None
        provider = self.registry.resolve(document.language, document.path)
        if provider is None:
            logger.debug(f"No syntax provider for {document.path} (language={document.language!r})")
            return None
        tree = provider.parse(document)
        if tree is None or tree.is_empty:
            return None
        return tree

    def analyze(self, document: Document) -> CodeAnalysisResult:
        """Analyze one document. Never raises for absent, empty or unparseable input."""
        log = logger.bind(path=document.path)
        try:
            tree = self.parse(document)
        except MemoryError:
            raise
        except Exception as e:
            log.opt(exception=True).warning(f"Provider failed on {document.path}: {e}")
            return CodeAnalysisResult(failures=("parse",))
        if tree is None:
            return CodeAnalysisResult.empty()

        fields: dict[str, str | None] = {}
        failures: list[str] = []

        def run(step: str, func: Callable[[], dict[str, str]]) -> bool:
            try:
                fields.update(func())
                return True
            except MemoryError:
                raise
            except Exception as e:
                log.opt(exception=True).warning(f"Step '{step}' failed for {document.path}: {e}")
                failures.append(step)
                if self.config.failure_policy == FailurePolicy.ABORT:
                    raise _StepFailed(step) from e
                return False

        try:
            run("digest", lambda: {"ast_json": canonical_json(extract_digest(tree.root).to_dict())})
            graphs = []
            if run("cfg", lambda: self._cfg_step(tree, graphs)):
                run("dfg", lambda: self._dfg_step(tree, graphs))
            run("metrics", lambda: {"metrics_json": canonical_json(compute_metrics(tree.root).to_dict())})
            run("anonymize", lambda: self._anonymize_step(tree))
        except _StepFailed:
            return CodeAnalysisResult(failures=tuple(failures))

        log.debug(f"Analyzed {document.path}: {len(graphs)} graphs, failures={failures}")
        return CodeAnalysisResult(**fields, failures=tuple(failures))

    async def analyze_async(self, document: Document) -> CodeAnalysisResult:
        """analyze() on a worker thread."""
        return await asyncio.to_thread(self.analyze, document)

    # -------------------------------------------------------------------------

    def _cfg_step(self, tree: SyntaxTree, graphs: list) -> dict[str, str]:
        max_depth = self.config.max_depth
        if has_executable_top_level(tree.root):
            graphs.append(build_cfg(tree.root, max_depth))
        graphs.extend(build_cfg(node, max_depth) for node in function_nodes(tree.root))
        return {"cfg_json": canonical_json({"graphs": [g.to_dict() for g in graphs]})}

    def _dfg_step(self, tree: SyntaxTree, graphs: list) -> dict[str, str]:
        flows = [build_dfg(graph, tree.model) for graph in graphs]
        return {"dfg_json": canonical_json({"graphs": [f.to_dict() for f in flows]})}

    def _anonymize_step(self, tree: SyntaxTree) -> dict[str, str]:
        outcome = anonymize(tree.root, tree.text, self.config.anonymize_scope)
        return {
            "normalized_code": outcome.normalized_text,
            "anonymization_map_json": canonical_json(outcome.mapping),
        }
