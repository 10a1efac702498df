"""Language-neutral syntax tree and symbol model.

Providers (python_provider, csharp_provider) translate their native trees into
these types. The analysis engine only ever reads them.

ARCHITECTURAL CONTRACT:
- kind:  one of NodeKind (language-neutral), NodeKind.OTHER when unmapped
- type:  raw grammar type from the native parser (ast class name / tree-sitter type)
- role:  what the node is to its parent (Role), None for plain children
- span:  character offsets into the original text plus 1-based lines
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

# Qualified name of the file-level scope
MODULE_SCOPE = "<module>"


class NodeKind:
    """Language-neutral node tags."""

    COMPILATION_UNIT = "compilation_unit"
    NAMESPACE = "namespace"
    TYPE_DECL = "type_declaration"
    METHOD_DECL = "method_declaration"
    ACCESSOR_DECL = "accessor_declaration"
    LAMBDA = "lambda"
    FIELD_DECL = "field_declaration"
    PROPERTY_DECL = "property_declaration"
    PARAMETER = "parameter"
    IMPORT = "import"

    # Statements
    BLOCK = "block"
    LOCAL_DECL = "local_declaration"
    EXPRESSION_STATEMENT = "expression_statement"
    IF = "if"
    WHILE = "while"
    DO = "do"
    FOR = "for"
    FOREACH = "foreach"
    SWITCH = "switch"
    SWITCH_SECTION = "switch_section"
    TRY = "try"
    CATCH = "catch"
    FINALLY = "finally"
    RETURN = "return"
    THROW = "throw"
    BREAK = "break"
    CONTINUE = "continue"
    WITH = "with"
    STATEMENT = "statement"

    # Expressions
    VARIABLE_DECLARATOR = "variable_declarator"
    ASSIGNMENT = "assignment"
    INCREMENT = "increment"
    IDENTIFIER = "identifier"
    BINARY = "binary"
    LOGICAL = "logical"
    CONDITIONAL = "conditional"
    CALL = "call"
    MEMBER_ACCESS = "member_access"
    LITERAL = "literal"

    OTHER = "other"


LOOP_KINDS = frozenset({NodeKind.WHILE, NodeKind.DO, NodeKind.FOR, NodeKind.FOREACH})

COMPOUND_STATEMENT_KINDS = frozenset(
    {
        NodeKind.BLOCK,
        NodeKind.IF,
        NodeKind.WHILE,
        NodeKind.DO,
        NodeKind.FOR,
        NodeKind.FOREACH,
        NodeKind.SWITCH,
        NodeKind.TRY,
        NodeKind.WITH,
    }
)

SIMPLE_STATEMENT_KINDS = frozenset(
    {
        NodeKind.LOCAL_DECL,
        NodeKind.EXPRESSION_STATEMENT,
        NodeKind.RETURN,
        NodeKind.THROW,
        NodeKind.BREAK,
        NodeKind.CONTINUE,
        NodeKind.STATEMENT,
        NodeKind.IMPORT,
    }
)

STATEMENT_KINDS = COMPOUND_STATEMENT_KINDS | SIMPLE_STATEMENT_KINDS

FUNCTION_KINDS = frozenset({NodeKind.METHOD_DECL, NodeKind.ACCESSOR_DECL})

DECLARATION_KINDS = frozenset(
    {
        NodeKind.NAMESPACE,
        NodeKind.TYPE_DECL,
        NodeKind.METHOD_DECL,
        NodeKind.FIELD_DECL,
        NodeKind.PROPERTY_DECL,
    }
)


class Role:
    """Role of a child inside its parent. Values follow tree-sitter field names."""

    CONDITION = "condition"
    THEN = "consequence"
    ELSE = "alternative"
    BODY = "body"
    INIT = "initializer"
    UPDATE = "update"
    LEFT = "left"
    RIGHT = "right"
    VALUE = "value"
    NAME = "name"
    PARAMETERS = "parameters"
    PATTERN = "pattern"
    GUARD = "guard"
    HANDLER = "handler"
    FINALLY = "finally"


class SymbolKind:
    """Declaration kinds."""

    LOCAL = "local"
    PARAMETER = "parameter"
    GLOBAL = "global"
    FIELD = "field"
    PROPERTY = "property"
    METHOD = "method"
    FUNCTION = "function"
    TYPE = "type"
    NAMESPACE = "namespace"
    IMPORT = "import"


VARIABLE_SYMBOL_KINDS = frozenset({SymbolKind.LOCAL, SymbolKind.PARAMETER, SymbolKind.GLOBAL})


class Access:
    """How an identifier reference touches its symbol."""

    READ = "read"
    WRITE = "write"
    READ_WRITE = "read_write"


@dataclass(frozen=True)
class Span:
    """Source location. start/end are character offsets, end exclusive."""

    start: int
    end: int
    start_line: int
    end_line: int
    start_col: int = 0
    end_col: int = 0

    def to_list(self) -> list[int]:
        return [self.start_line, self.start_col, self.end_line, self.end_col]


@dataclass(eq=False)
class Symbol:
    """A declared name. Identity is the object itself (or symbol_id)."""

    symbol_id: int
    name: str
    kind: str
    scope: str
    owner: str = ""
    external: bool = False
    renamable: bool = True

    @property
    def key(self) -> str:
        return f"{self.scope}::{self.name}"

    def __repr__(self) -> str:
        return f"Symbol({self.symbol_id}, {self.key!r}, {self.kind})"


@dataclass(eq=False)
class SyntaxNode:
    """One node of the neutral tree."""

    kind: str
    span: Span
    type: str = ""
    role: str | None = None
    children: list["SyntaxNode"] = field(default_factory=list)
    parent: "SyntaxNode | None" = field(default=None, repr=False)
    name: str | None = None
    operator: str | None = None
    symbol: Symbol | None = None
    access: str | None = None
    is_declaration: bool = False
    attrs: dict[str, Any] = field(default_factory=dict)

    def add(self, child: "SyntaxNode", role: str | None = None) -> "SyntaxNode":
        """Append a child (setting its parent and, when given, its role)."""
        if role is not None:
            child.role = role
        child.parent = self
        self.children.append(child)
        return child

    def child(self, role: str) -> "SyntaxNode | None":
        """First child playing the given role."""
        for c in self.children:
            if c.role == role:
                return c
        return None

    def children_with(self, role: str) -> list["SyntaxNode"]:
        return [c for c in self.children if c.role == role]

    def children_of_kind(self, *kinds: str) -> list["SyntaxNode"]:
        return [c for c in self.children if c.kind in kinds]

    def walk(self) -> Iterator["SyntaxNode"]:
        """Pre-order, document-order traversal (iterative)."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def __repr__(self) -> str:
        label = f" {self.name!r}" if self.name else ""
        return f"<{self.kind}{label} {self.span.start_line}:{self.span.start_col}>"


class SemanticModel:
    """Symbol table for one tree: every symbol the provider bound."""

    def __init__(self, symbols: list[Symbol] | None = None):
        self._symbols: list[Symbol] = list(symbols or [])

    @property
    def symbols(self) -> list[Symbol]:
        return list(self._symbols)

    def __len__(self) -> int:
        return len(self._symbols)


class SymbolTable:
    """Allocates symbols with run-local sequential ids."""

    def __init__(self):
        self._symbols: list[Symbol] = []

    def new(self, name: str, kind: str, scope: str, owner: str | None = None,
            external: bool = False) -> Symbol:
        """Create a symbol. owner is the enclosing function/type/module scope (defaults to scope)."""
        symbol = Symbol(
            symbol_id=len(self._symbols) + 1,
            name=name,
            kind=kind,
            scope=scope,
            owner=owner if owner is not None else scope,
            external=external,
        )
        self._symbols.append(symbol)
        return symbol

    def model(self) -> SemanticModel:
        return SemanticModel(self._symbols)


@dataclass
class Document:
    """Raw input: path plus text. language is inferred from the path when None."""

    path: str
    text: str | None
    language: str | None = None


@dataclass
class SyntaxTree:
    """Provider output for one document."""

    root: SyntaxNode
    text: str
    language: str
    model: SemanticModel = field(default_factory=SemanticModel)

    @property
    def is_empty(self) -> bool:
        return not self.root.children


class SourceText:
    """Converts native positions (line/byte column, byte offset) to character offsets."""

    def __init__(self, text: str):
        self.text = text
        self._line_starts = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._line_starts.append(i + 1)
        self._lines = text.split("\n")
        encoded = text.encode("utf-8")
        self._ascii = len(encoded) == len(text)
        self._byte_to_char: list[int] | None = None

    def offset(self, line: int, byte_col: int) -> int:
        """Character offset of a 1-based line and a UTF-8 byte column."""
        if line < 1:
            return 0
        if line > len(self._line_starts):
            return len(self.text)
        start = self._line_starts[line - 1]
        if self._ascii:
            return start + byte_col
        raw = self._lines[line - 1].encode("utf-8")[:byte_col]
        return start + len(raw.decode("utf-8", errors="ignore"))

    def from_byte(self, byte_offset: int) -> int:
        """Character offset of a UTF-8 byte offset into the whole text."""
        if self._ascii:
            return byte_offset
        if self._byte_to_char is None:
            table = []
            for index, ch in enumerate(self.text):
                table.extend([index] * len(ch.encode("utf-8")))
            table.append(len(self.text))
            self._byte_to_char = table
        if byte_offset >= len(self._byte_to_char):
            return len(self.text)
        return self._byte_to_char[byte_offset]

    def line_of(self, offset: int) -> int:
        """1-based line containing a character offset."""
        lo, hi = 0, len(self._line_starts) - 1
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if self._line_starts[mid] <= offset:
                lo = mid
            else:
                hi = mid - 1
        return lo + 1

    def span(self, start: int, end: int) -> Span:
        start_line = self.line_of(start)
        end_line = self.line_of(end)
        return Span(
            start=start,
            end=end,
            start_line=start_line,
            end_line=end_line,
            start_col=start - self._line_starts[start_line - 1],
            end_col=end - self._line_starts[end_line - 1],
        )


def finalize_tree(root: SyntaxNode, synthetic: list[SyntaxNode], source: SourceText) -> None:
    """Give synthetic nodes the union span of their children, then sort every
    node's children into document order."""
    pending = set(map(id, synthetic))
    for node in reversed(list(root.walk())):
        if id(node) in pending:
            spans = [c.span for c in node.children]
            if spans:
                start = min(s.start for s in spans)
                end = max(s.end for s in spans)
            elif node.parent is not None:
                start = end = node.parent.span.start
            else:
                start = end = 0
            node.span = source.span(start, end)
        node.children.sort(key=lambda c: (c.span.start, c.span.end))
