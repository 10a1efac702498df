"""Pytest configuration and fixtures.

The C#-shaped scenario tree is built by hand so the engine is exercised
without any native parser; the Python helpers go through the real provider.
"""

import pytest

from codemodeler.syntax.base import SyntaxProvider
from codemodeler.syntax.model import (
    FUNCTION_KINDS,
    MODULE_SCOPE,
    Access,
    Document,
    NodeKind,
    Role,
    SourceText,
    SymbolKind,
    SymbolTable,
    SyntaxNode,
    SyntaxTree,
)
from codemodeler.syntax.python_provider import PythonSyntaxProvider

SCENARIO_CSHARP = "class C { void M() { int x = 1; if (x > 0) { x = 2; } } }"

SCENARIO_PYTHON = (
    "class C:\n"
    "    def M(self):\n"
    "        x = 1\n"
    "        if x > 0:\n"
    "            x = 2\n"
)


class FakeTree:
    """Builds a neutral tree by hand over a piece of text."""

    def __init__(self, text: str, language: str = "csharp"):
        self.text = text
        self.language = language
        self.source = SourceText(text)
        self.table = SymbolTable()
        self.root = SyntaxNode(
            kind=NodeKind.COMPILATION_UNIT,
            type="compilation_unit",
            span=self.source.span(0, len(text)),
        )
        self.root.attrs["scope"] = MODULE_SCOPE

    def node(self, parent, kind, start, end, role=None, type=None, **fields):
        syn = SyntaxNode(kind=kind, type=type or kind, span=self.source.span(start, end), **fields)
        return parent.add(syn, role)

    def ident(self, parent, name, start, symbol, access=None, role=None, declaration=False):
        return self.node(
            parent, NodeKind.IDENTIFIER, start, start + len(name), role=role, type="identifier",
            name=name, symbol=symbol, access=access, is_declaration=declaration,
        )

    def tree(self) -> SyntaxTree:
        return SyntaxTree(root=self.root, text=self.text, language=self.language, model=self.table.model())


def build_csharp_scenario() -> SyntaxTree:
    """`class C { void M() { int x = 1; if (x > 0) { x = 2; } } }` as a C# provider would shape it."""
    fake = FakeTree(SCENARIO_CSHARP)
    text = fake.text

    cls = fake.node(fake.root, NodeKind.TYPE_DECL, 0, len(text), type="class_declaration", name="C")
    cls.attrs["scope"] = "C"
    c_symbol = fake.table.new("C", SymbolKind.TYPE, MODULE_SCOPE)
    fake.ident(cls, "C", text.index("C"), c_symbol, role=Role.NAME, declaration=True)

    method_start = text.index("void")
    method_end = text.rindex("}", 0, len(text) - 1) + 1
    method = fake.node(cls, NodeKind.METHOD_DECL, method_start, method_end, type="method_declaration", name="M")
    method.attrs["scope"] = "C.M"
    m_symbol = fake.table.new("M", SymbolKind.METHOD, "C")
    fake.ident(method, "M", text.index("M"), m_symbol, role=Role.NAME, declaration=True)

    body = fake.node(method, NodeKind.BLOCK, text.index("{", method_start), method_end, role=Role.BODY, type="block")
    x_symbol = fake.table.new("x", SymbolKind.LOCAL, "C.M")

    decl_start = text.index("int")
    decl_end = text.index(";") + 1
    decl = fake.node(body, NodeKind.LOCAL_DECL, decl_start, decl_end, type="local_declaration_statement")
    x_at = text.index("x")
    declarator = fake.node(decl, NodeKind.VARIABLE_DECLARATOR, x_at, decl_end - 1, name="x")
    fake.ident(declarator, "x", x_at, x_symbol, access=Access.WRITE, role=Role.NAME, declaration=True)
    one = text.index("1")
    fake.node(declarator, NodeKind.LITERAL, one, one + 1, role=Role.VALUE, type="integer_literal")

    if_start = text.index("if")
    if_end = text.index("}", if_start) + 1
    if_node = fake.node(body, NodeKind.IF, if_start, if_end, type="if_statement")
    cond_start = text.index("x", if_start)
    cond = fake.node(if_node, NodeKind.BINARY, cond_start, text.index(")", if_start), role=Role.CONDITION,
                     type="binary_expression", operator=">")
    fake.ident(cond, "x", cond_start, x_symbol, access=Access.READ, role=Role.LEFT)
    zero = text.index("0", if_start)
    fake.node(cond, NodeKind.LITERAL, zero, zero + 1, role=Role.RIGHT, type="integer_literal")

    then_start = text.index("{", if_start)
    then = fake.node(if_node, NodeKind.BLOCK, then_start, if_end, role=Role.THEN, type="block")
    stmt_start = text.index("x", then_start)
    stmt_end = text.index(";", then_start) + 1
    stmt = fake.node(then, NodeKind.EXPRESSION_STATEMENT, stmt_start, stmt_end, type="expression_statement")
    assign = fake.node(stmt, NodeKind.ASSIGNMENT, stmt_start, stmt_end - 1, type="assignment_expression",
                       operator="=")
    fake.ident(assign, "x", stmt_start, x_symbol, access=Access.WRITE, role=Role.LEFT)
    two = text.index("2")
    fake.node(assign, NodeKind.LITERAL, two, two + 1, role=Role.RIGHT, type="integer_literal")

    return fake.tree()


class FakeProvider(SyntaxProvider):
    """Serves hand-built trees by document text."""

    language = "fake"
    extensions = (".cs",)

    def __init__(self, trees: dict[str, SyntaxTree] | None = None):
        self.trees = trees or {}

    def parse(self, document: Document) -> SyntaxTree | None:
        if not document.text or not document.text.strip():
            return None
        return self.trees.get(document.text)


@pytest.fixture
def csharp_scenario():
    """Hand-built C#-shaped scenario tree."""
    return build_csharp_scenario()


@pytest.fixture
def fake_provider():
    """Provider that answers the C# scenario text with the hand-built tree."""
    return FakeProvider({SCENARIO_CSHARP: build_csharp_scenario()})


@pytest.fixture
def parse_python():
    """Parse Python text with the real provider; fails the test on unparseable input."""
    provider = PythonSyntaxProvider()

    def _parse(text: str, path: str = "sample.py") -> SyntaxTree:
        tree = provider.parse(Document(path=path, text=text))
        assert tree is not None, f"unparseable test input:\n{text}"
        return tree

    return _parse


@pytest.fixture
def python_scenario(parse_python):
    return parse_python(SCENARIO_PYTHON)


def method_named(root: SyntaxNode, name: str) -> SyntaxNode:
    """First METHOD_DECL with the given name."""
    for node in root.walk():
        if node.kind in FUNCTION_KINDS and node.name == name:
            return node
    raise AssertionError(f"no method {name!r}")


def identifiers(root: SyntaxNode, name: str) -> list[SyntaxNode]:
    return [n for n in root.walk() if n.kind == NodeKind.IDENTIFIER and n.name == name]


def edge_set(cfg) -> set[tuple[int, int, str]]:
    return {(e.source, e.target, e.label) for e in cfg.edges}
