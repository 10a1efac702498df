"""AST digest: a compact structural summary of one syntax tree."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from codemodeler.syntax.model import NodeKind, Role, SyntaxNode

_DECLARATION_LABELS = {
    NodeKind.NAMESPACE: "namespace",
    NodeKind.TYPE_DECL: "type",
    NodeKind.METHOD_DECL: "method",
}


@dataclass
class AstDigest:
    root_kind: str
    node_count: int
    max_depth: int
    node_types: dict[str, int] = field(default_factory=dict)
    declarations: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_kind": self.root_kind,
            "node_count": self.node_count,
            "max_depth": self.max_depth,
            "node_types": dict(sorted(self.node_types.items())),
            "declarations": self.declarations,
        }


def _members(node: SyntaxNode):
    """Direct declarations inside a container (looking through a body block)."""
    for child in node.children:
        if child.kind == NodeKind.BLOCK and child.role == Role.BODY:
            yield from (c for c in child.children if c.kind in _DECLARATION_LABELS)
        elif child.kind in _DECLARATION_LABELS:
            yield child


def _declaration_entry(node: SyntaxNode, parent: SyntaxNode | None) -> dict[str, Any]:
    label = _DECLARATION_LABELS[node.kind]
    if label == "method" and (parent is None or parent.kind != NodeKind.TYPE_DECL):
        label = "function"
    return {
        "kind": label,
        "name": node.name,
        "span": node.span.to_list(),
        "members": [],
    }


def extract_digest(root: SyntaxNode) -> AstDigest:
    """Histogram, depth, size and the top-level declaration outline of a tree."""
    histogram: Counter[str] = Counter()
    node_count = 0
    max_depth = 0

    stack = [(root, 1)]
    while stack:
        node, depth = stack.pop()
        node_count += 1
        histogram[node.type or node.kind] += 1
        if depth > max_depth:
            max_depth = depth
        for child in node.children:
            stack.append((child, depth + 1))

    declarations: list[dict[str, Any]] = []
    pending = [(child, None, declarations) for child in reversed(list(_members(root)))]
    while pending:
        node, parent, target = pending.pop()
        entry = _declaration_entry(node, parent)
        target.append(entry)
        if node.kind == NodeKind.METHOD_DECL:
            continue
        for member in reversed(list(_members(node))):
            if member.kind == NodeKind.NAMESPACE and node.kind != NodeKind.NAMESPACE:
                continue
            pending.append((member, node, entry["members"]))

    return AstDigest(
        root_kind=root.kind,
        node_count=node_count,
        max_depth=max_depth,
        node_types=dict(sorted(histogram.items())),
        declarations=declarations,
    )
