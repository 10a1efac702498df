"""Code metrics computed straight from the syntax tree (no CFG/DFG needed)."""

from dataclasses import asdict, dataclass, field
from typing import Any

from codemodeler.syntax.model import (
    FUNCTION_KINDS,
    LOOP_KINDS,
    STATEMENT_KINDS,
    NodeKind,
    Role,
    Span,
    SyntaxNode,
)

# Control structures that deepen nesting
_NESTING_KINDS = LOOP_KINDS | {NodeKind.IF, NodeKind.SWITCH, NodeKind.TRY}

_COUNTED_STATEMENTS = STATEMENT_KINDS - {NodeKind.BLOCK}


@dataclass
class FunctionMetrics:
    name: str
    start_line: int
    lines: int
    statements: int = 0
    complexity: int = 1
    max_nesting: int = 0
    parameters: int = 0


@dataclass
class CodeMetrics:
    lines: int
    statements: int = 0
    cyclomatic_complexity: int = 1
    max_method_complexity: int = 0
    max_nesting: int = 0
    types: int = 0
    methods: int = 0
    fields: int = 0
    properties: int = 0
    functions: list[FunctionMetrics] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _lines(span: Span) -> int:
    end_line = span.end_line
    if span.end_col == 0 and end_line > span.start_line:
        end_line -= 1
    return end_line - span.start_line + 1


def decision_points(node: SyntaxNode) -> int:
    """Decision points contributed by one node."""
    kind = node.kind
    if kind == NodeKind.IF or kind in LOOP_KINDS or kind == NodeKind.CONDITIONAL or kind == NodeKind.CATCH:
        return 1
    if kind == NodeKind.SWITCH_SECTION:
        return int(node.attrs.get("case_labels", 0))
    if kind == NodeKind.LOGICAL:
        return max(len(node.children) - 1, 0)
    return 0


def _is_else_if(node: SyntaxNode) -> bool:
    """`else if` (C#) or `elif` (Python): an IF that is the entire else arm."""
    if node.kind != NodeKind.IF or node.parent is None:
        return False
    if node.role == Role.ELSE and node.parent.kind == NodeKind.IF:
        return True
    parent = node.parent
    return (
        parent.kind == NodeKind.BLOCK
        and parent.role == Role.ELSE
        and len(parent.children) == 1
        and parent.parent is not None
        and parent.parent.kind == NodeKind.IF
    )


def compute_metrics(root: SyntaxNode) -> CodeMetrics:
    """Compute file metrics plus a per-function breakdown.

    Nested functions are measured on their own and excluded from the
    enclosing function's figures; the file totals include everything.
    """
    metrics = CodeMetrics(lines=_lines(root.span))

    # (node, nesting depth, index of enclosing function or -1)
    stack: list[tuple[SyntaxNode, int, int]] = [(root, 0, -1)]
    while stack:
        node, depth, owner = stack.pop()
        kind = node.kind

        if kind in FUNCTION_KINDS:
            if kind == NodeKind.METHOD_DECL:
                metrics.methods += 1
            function = FunctionMetrics(
                name=node.name or kind,
                start_line=node.span.start_line,
                lines=_lines(node.span),
                parameters=len(node.children_with(Role.PARAMETERS)),
            )
            metrics.functions.append(function)
            owner = len(metrics.functions) - 1
            depth = 0
        elif kind == NodeKind.TYPE_DECL:
            metrics.types += 1
        elif kind == NodeKind.FIELD_DECL:
            declarators = node.children_of_kind(NodeKind.VARIABLE_DECLARATOR)
            metrics.fields += len(declarators) or 1
        elif kind == NodeKind.PROPERTY_DECL:
            metrics.properties += 1

        points = decision_points(node)
        metrics.cyclomatic_complexity += points
        if kind in _COUNTED_STATEMENTS:
            metrics.statements += 1

        deepens = kind in _NESTING_KINDS and not _is_else_if(node)
        child_depth = depth + 1 if deepens else depth
        metrics.max_nesting = max(metrics.max_nesting, child_depth)

        if owner >= 0:
            function = metrics.functions[owner]
            function.complexity += points
            if kind in _COUNTED_STATEMENTS:
                function.statements += 1
            function.max_nesting = max(function.max_nesting, child_depth)

        for child in reversed(node.children):
            stack.append((child, child_depth, owner))

    metrics.functions.sort(key=lambda f: f.start_line)
    metrics.max_method_complexity = max((f.complexity for f in metrics.functions), default=0)
    return metrics
