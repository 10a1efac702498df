"""Identifier anonymization and source normalization.

Every occurrence of an eligible symbol is replaced by a generated token
(var_1, param_1, Type_1, ...). Only identifier spans change; comments,
whitespace and literals are copied verbatim.
"""

from dataclasses import dataclass, field

from codemodeler.syntax.model import NodeKind, Symbol, SymbolKind, SyntaxNode
from codemodeler.utils.logging import logger


class AnonymizationScope:
    """Which symbols get anonymized."""

    LOCALS = "locals"
    DECLARATIONS = "declarations"

    ALL = (LOCALS, DECLARATIONS)


_TOKEN_PREFIXES = {
    SymbolKind.LOCAL: "var",
    SymbolKind.GLOBAL: "var",
    SymbolKind.PARAMETER: "param",
    SymbolKind.FIELD: "field",
    SymbolKind.PROPERTY: "prop",
    SymbolKind.METHOD: "method",
    SymbolKind.FUNCTION: "func",
    SymbolKind.TYPE: "Type",
    SymbolKind.NAMESPACE: "ns",
}

_SCOPE_KINDS = {
    AnonymizationScope.LOCALS: frozenset({SymbolKind.LOCAL, SymbolKind.PARAMETER}),
    AnonymizationScope.DECLARATIONS: frozenset(_TOKEN_PREFIXES),
}


@dataclass(frozen=True)
class AnonymizationOutcome:
    normalized_text: str
    mapping: dict[str, str]


@dataclass
class _AnonymizerState:
    """Counters and assignments for one anonymize() call."""

    reserved: set[str]
    counters: dict[str, int] = field(default_factory=dict)
    tokens: dict[int, str] = field(default_factory=dict)
    order: list[Symbol] = field(default_factory=list)

    def next_token(self, prefix: str) -> str:
        while True:
            count = self.counters.get(prefix, 0) + 1
            self.counters[prefix] = count
            token = f"{prefix}_{count}"
            if token not in self.reserved:
                return token

    def assign(self, symbol: Symbol) -> None:
        if symbol.symbol_id in self.tokens:
            return
        self.tokens[symbol.symbol_id] = self.next_token(_TOKEN_PREFIXES[symbol.kind])
        self.order.append(symbol)


def _eligible(symbol: Symbol | None, kinds: frozenset[str]) -> bool:
    if symbol is None or symbol.external or not symbol.renamable:
        return False
    if symbol.kind not in kinds:
        return False
    # Dunder names (__init__, __eq__) are protocol hooks
    return not (symbol.name.startswith("__") and symbol.name.endswith("__"))


def _mapping(state: _AnonymizerState) -> dict[str, str]:
    by_name: dict[str, int] = {}
    for symbol in state.order:
        by_name[symbol.name] = by_name.get(symbol.name, 0) + 1
    mapping = {}
    for symbol in state.order:
        key = symbol.name if by_name[symbol.name] == 1 else symbol.key
        mapping[key] = state.tokens[symbol.symbol_id]
    return mapping


def anonymize(
    root: SyntaxNode,
    original_text: str,
    scope: str = AnonymizationScope.LOCALS,
) -> AnonymizationOutcome:
    """Rewrite eligible identifiers of one file.

    Args:
        root: tree produced from original_text
        original_text: the exact text the spans point into
        scope: AnonymizationScope.LOCALS (locals and parameters) or
            AnonymizationScope.DECLARATIONS (every symbol declared in the file)

    Returns:
        AnonymizationOutcome with the rewritten text and the
        original-name -> token mapping
    """
    if scope not in _SCOPE_KINDS:
        raise ValueError(f"Unknown anonymization scope: {scope!r}")
    kinds = _SCOPE_KINDS[scope]

    identifiers = [node for node in root.walk() if node.kind == NodeKind.IDENTIFIER]
    state = _AnonymizerState(reserved={node.name for node in identifiers if node.name})

    for node in identifiers:
        if node.is_declaration and _eligible(node.symbol, kinds):
            state.assign(node.symbol)
    for node in identifiers:
        if _eligible(node.symbol, kinds):
            state.assign(node.symbol)

    replacements = []
    skipped = 0
    for node in identifiers:
        symbol = node.symbol
        if symbol is None or symbol.symbol_id not in state.tokens:
            continue
        start, end = node.span.start, node.span.end
        if original_text[start:end] != symbol.name:
            skipped += 1
            continue
        replacements.append((start, end, state.tokens[symbol.symbol_id]))
    replacements.sort()

    parts = []
    cursor = 0
    for start, end, token in replacements:
        if start < cursor:
            continue
        parts.append(original_text[cursor:start])
        parts.append(token)
        cursor = end
    parts.append(original_text[cursor:])

    if skipped:
        logger.debug(f"[ANON] {skipped} occurrences left unchanged (span text mismatch)")
    return AnonymizationOutcome("".join(parts), _mapping(state))
