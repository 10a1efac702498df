"""Python syntax provider built on the standard ast module.

Converts an ast.Module into the neutral SyntaxNode tree and binds every
identifier occurrence to a Symbol following Python scoping rules:

- module / class / function / lambda / comprehension scopes
- a name bound anywhere in a function is local to the whole function
- `global` and `nonlocal` redirect bindings to the outer scope
- nested functions do not see class-scope names
- `self.attr` inside a method binds to the class member `attr`

The conversion and the binder are both iterative, so deeply nested input
never exhausts the interpreter stack here (ast.parse itself may still raise
RecursionError, which is reported as "unparseable").
"""

import ast
import re
from dataclasses import dataclass

from codemodeler.utils.logging import logger

from .base import SyntaxProvider
from .model import (
    MODULE_SCOPE,
    Access,
    Document,
    NodeKind,
    Role,
    SemanticModel,
    SourceText,
    Span,
    Symbol,
    SymbolKind,
    SymbolTable,
    SyntaxNode,
    SyntaxTree,
    finalize_tree,
)

_COMPREHENSION_LABELS = {
    ast.ListComp: "<listcomp>",
    ast.SetComp: "<setcomp>",
    ast.DictComp: "<dictcomp>",
    ast.GeneratorExp: "<genexpr>",
}

_OPERATORS = {
    ast.Add: "+", ast.Sub: "-", ast.Mult: "*", ast.MatMult: "@", ast.Div: "/",
    ast.Mod: "%", ast.Pow: "**", ast.LShift: "<<", ast.RShift: ">>",
    ast.BitOr: "|", ast.BitXor: "^", ast.BitAnd: "&", ast.FloorDiv: "//",
    ast.Eq: "==", ast.NotEq: "!=", ast.Lt: "<", ast.LtE: "<=", ast.Gt: ">",
    ast.GtE: ">=", ast.Is: "is", ast.IsNot: "is not", ast.In: "in", ast.NotIn: "not in",
    ast.And: "and", ast.Or: "or", ast.Not: "not", ast.Invert: "~",
    ast.UAdd: "+", ast.USub: "-",
}

_SKIPPED = (ast.expr_context, ast.boolop, ast.operator, ast.unaryop, ast.cmpop)

# Plain mappings for nodes without a dedicated visitor
_KINDS = {
    "Expr": NodeKind.EXPRESSION_STATEMENT,
    "Pass": NodeKind.STATEMENT,
    "Assert": NodeKind.STATEMENT,
    "Delete": NodeKind.STATEMENT,
    "TypeAlias": NodeKind.STATEMENT,
    "Constant": NodeKind.LITERAL,
    "JoinedStr": NodeKind.LITERAL,
    "BinOp": NodeKind.BINARY,
    "Compare": NodeKind.BINARY,
}

# Hints carried on the work stack
_HINT_AUGMENTED = "augmented"
_HINT_DECLARE_ONLY = "declare_only"
_HINT_WALRUS = "walrus"


class _Scope:
    """One Python namespace while binding."""

    def __init__(self, kind: str, qualname: str, parent: "_Scope | None"):
        self.kind = kind
        self.qualname = qualname
        self.parent = parent
        self.bindings: dict[str, list["_Binding"]] = {}
        self.globals: set[str] = set()
        self.nonlocals: set[str] = set()
        self.symbols: dict[str, Symbol] = {}
        self.self_name: str | None = None
        self.class_scope: "_Scope | None" = None

    def binds(self, name: str) -> bool:
        return name in self.bindings and name not in self.globals and name not in self.nonlocals


@dataclass
class _Binding:
    name: str
    binding: str
    position: int
    order: int
    scope: _Scope
    ident: SyntaxNode | None


@dataclass
class _MemberRef:
    ident: SyntaxNode
    scope: _Scope
    receiver: str
    store: bool


@dataclass
class _KeywordRef:
    """`name=` in a call; callee is ("name", id), ("member", receiver, attr) or None."""

    ident: SyntaxNode
    scope: _Scope
    callee: tuple | None


class PythonSyntaxProvider(SyntaxProvider):
    """SyntaxProvider for Python source."""

    language = "python"
    extensions = (".py", ".pyi")

    def parse(self, document: Document) -> SyntaxTree | None:
        text = document.text
        if text is None or not text.strip():
            return None

        try:
            tree = ast.parse(text, filename=document.path or "<unknown>")
        except (SyntaxError, ValueError, RecursionError) as e:
            logger.debug(f"[PYTHON] Unparseable {document.path}: {type(e).__name__}: {e}")
            return None

        builder = _PythonTreeBuilder(text)
        root = builder.convert(tree)
        model = builder.bind()
        return SyntaxTree(root=root, text=text, language=self.language, model=model)


class _PythonTreeBuilder:
    """Converts one ast.Module and binds its identifiers."""

    def __init__(self, text: str):
        self.text = text
        self.source = SourceText(text)
        self.module_scope = _Scope("module", MODULE_SCOPE, None)
        self._bindings: list[_Binding] = []
        self._references: list[tuple[SyntaxNode, _Scope]] = []
        self._members: list[_MemberRef] = []
        self._keywords: list[_KeywordRef] = []
        self._callables: list[tuple[SyntaxNode | None, _Scope]] = []
        self._classes: list[tuple[SyntaxNode | None, _Scope]] = []
        self._qualnames: set[str] = {MODULE_SCOPE}
        self._stack: list[tuple] = []
        self._synthetic: list[SyntaxNode] = []

    # =========================================================================
    # CONVERSION
    # =========================================================================

    def convert(self, tree: ast.Module) -> SyntaxNode:
        root = SyntaxNode(
            kind=NodeKind.COMPILATION_UNIT,
            type="Module",
            span=self.source.span(0, len(self.text)),
        )
        root.attrs["scope"] = MODULE_SCOPE

        self._push_all(tree.body, root, None, self.module_scope)
        while self._stack:
            node, parent, role, scope, hint = self._stack.pop()
            visitor = getattr(self, f"_visit_{type(node).__name__}", self._visit_generic)
            visitor(node, parent, role, scope, hint)

        finalize_tree(root, self._synthetic, self.source)
        return root

    def _push(self, node, parent, role, scope, hint=None):
        if node is not None and not isinstance(node, _SKIPPED):
            self._stack.append((node, parent, role, scope, hint))

    def _push_all(self, nodes, parent, role, scope, hint=None):
        for node in reversed(nodes):
            self._push(node, parent, role, scope, hint)

    def _span_of(self, node: ast.AST) -> Span | None:
        if getattr(node, "end_lineno", None) is None or not hasattr(node, "lineno"):
            return None
        start = self.source.offset(node.lineno, node.col_offset)
        end = self.source.offset(node.end_lineno, node.end_col_offset)
        return self.source.span(start, end)

    def _make(self, node: ast.AST | None, kind: str, parent: SyntaxNode, role: str | None,
              type_name: str | None = None, **fields) -> SyntaxNode:
        span = self._span_of(node) if node is not None else None
        syn = SyntaxNode(
            kind=kind,
            type=type_name or type(node).__name__,
            span=span or Span(0, 0, 0, 0),
            **fields,
        )
        if span is None:
            self._synthetic.append(syn)
        parent.add(syn, role)
        return syn

    def _block(self, stmts: list[ast.stmt], parent: SyntaxNode, role: str, scope: _Scope) -> None:
        if not stmts:
            return
        block = self._make(None, NodeKind.BLOCK, parent, role, type_name="body")
        self._push_all(stmts, block, None, scope)

    def _ident(self, parent: SyntaxNode, name: str, start: int | None, role: str | None = Role.NAME,
               access: str | None = None) -> SyntaxNode | None:
        """Identifier child at a character offset; None when the text does not match."""
        if start is None or self.text[start:start + len(name)] != name:
            return None
        ident = SyntaxNode(
            kind=NodeKind.IDENTIFIER,
            type="identifier",
            span=self.source.span(start, start + len(name)),
            name=name,
            access=access,
        )
        parent.add(ident, role)
        return ident

    def _search(self, pattern: str, start: int, end: int | None = None) -> int | None:
        match = re.compile(pattern).search(self.text, start, len(self.text) if end is None else end)
        return match.start(1) if match else None

    def _start_of(self, node: ast.AST) -> int:
        return self.source.offset(node.lineno, node.col_offset)

    def _end_of(self, node: ast.AST) -> int:
        return self.source.offset(node.end_lineno, node.end_col_offset)

    def _qualname(self, scope: _Scope, label: str) -> str:
        base = label if scope.kind == "module" else f"{scope.qualname}.{label}"
        qualname = base
        suffix = 2
        while qualname in self._qualnames:
            qualname = f"{base}~{suffix}"
            suffix += 1
        self._qualnames.add(qualname)
        return qualname

    def _bind_name(self, scope: _Scope, name: str, binding: str, ident: SyntaxNode | None,
                   position: int) -> None:
        record = _Binding(name, binding, position, len(self._bindings), scope, ident)
        self._bindings.append(record)
        scope.bindings.setdefault(name, []).append(record)

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def _visit_FunctionDef(self, node, parent, role, scope, hint):
        kind = NodeKind.METHOD_DECL
        syn = self._make(node, kind, parent, role, name=node.name)
        inner = _Scope("function", self._qualname(scope, node.name), scope)
        syn.attrs["scope"] = inner.qualname

        start = self._search(rf"\bdef\s+({re.escape(node.name)})\b", self._start_of(node))
        ident = self._ident(syn, node.name, start, access=Access.WRITE)
        self._bind_name(scope, node.name, "def", ident, start if start is not None else self._start_of(node))
        self._callables.append((ident, inner))

        is_static = any(isinstance(d, ast.Name) and d.id == "staticmethod" for d in node.decorator_list)
        if scope.kind == "class" and not is_static:
            inner.class_scope = scope
            positional = node.args.posonlyargs + node.args.args
            if positional:
                inner.self_name = positional[0].arg

        self._push_all(node.decorator_list, syn, None, scope)
        self._push(node.returns, syn, None, scope)
        self._arguments(node.args, syn, scope, inner)
        self._block(node.body, syn, Role.BODY, inner)

    _visit_AsyncFunctionDef = _visit_FunctionDef

    def _visit_Lambda(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.LAMBDA, parent, role)
        inner = _Scope("lambda", self._qualname(scope, f"<lambda>@{node.lineno}:{node.col_offset}"), scope)
        syn.attrs["scope"] = inner.qualname
        self._arguments(node.args, syn, scope, inner)
        self._push(node.body, syn, Role.BODY, inner)

    def _arguments(self, args: ast.arguments, owner: SyntaxNode, outer: _Scope, inner: _Scope) -> None:
        defaults = list(args.defaults) + [d for d in args.kw_defaults if d is not None]
        self._push_all(defaults, owner, None, outer)

        params = list(args.posonlyargs) + list(args.args)
        if args.vararg:
            params.append(args.vararg)
        params.extend(args.kwonlyargs)
        if args.kwarg:
            params.append(args.kwarg)

        for arg in params:
            param = self._make(arg, NodeKind.PARAMETER, owner, Role.PARAMETERS, name=arg.arg)
            start = self._start_of(arg)
            ident = self._ident(param, arg.arg, start, access=Access.WRITE)
            self._bind_name(inner, arg.arg, "param", ident, start)
            self._push(arg.annotation, param, None, outer)

    def _visit_ClassDef(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.TYPE_DECL, parent, role, name=node.name)
        inner = _Scope("class", self._qualname(scope, node.name), scope)
        syn.attrs["scope"] = inner.qualname

        start = self._search(rf"\bclass\s+({re.escape(node.name)})\b", self._start_of(node))
        ident = self._ident(syn, node.name, start, access=Access.WRITE)
        self._bind_name(scope, node.name, "class", ident, start if start is not None else self._start_of(node))
        self._classes.append((ident, inner))

        self._push_all(node.decorator_list, syn, None, scope)
        self._push_all(node.bases, syn, None, scope)
        self._push_all(node.keywords, syn, None, scope)
        self._block(node.body, syn, Role.BODY, inner)

    def _visit_Import(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.IMPORT, parent, role)
        for alias in node.names:
            if alias.name == "*":
                continue
            bound = alias.asname or alias.name.split(".")[0]
            self._bind_name(scope, bound, "import", None, self._start_of(node))
        syn.attrs["module"] = getattr(node, "module", None)

    _visit_ImportFrom = _visit_Import

    def _visit_Global(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.STATEMENT, parent, role)
        target = scope.globals if isinstance(node, ast.Global) else scope.nonlocals
        position = self._start_of(node) + len(type(node).__name__.lower())
        for name in node.names:
            target.add(name)
            start = self._search(rf"\b({re.escape(name)})\b", position, self._end_of(node))
            ident = self._ident(syn, name, start, role=None)
            if ident is not None:
                self._references.append((ident, scope))
                position = start + len(name)

    _visit_Nonlocal = _visit_Global

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def _visit_Assign(self, node, parent, role, scope, hint):
        kind = NodeKind.FIELD_DECL if scope.kind == "class" else NodeKind.EXPRESSION_STATEMENT
        syn = self._make(node, kind, parent, role, operator="=")
        self._push(node.value, syn, Role.RIGHT, scope)
        self._push_all(node.targets, syn, Role.LEFT, scope)

    def _visit_AnnAssign(self, node, parent, role, scope, hint):
        kind = NodeKind.FIELD_DECL if scope.kind == "class" else NodeKind.EXPRESSION_STATEMENT
        syn = self._make(node, kind, parent, role, operator="=")
        self._push(node.value, syn, Role.RIGHT, scope)
        self._push(node.annotation, syn, None, scope)
        self._push(node.target, syn, Role.LEFT, scope, None if node.value is not None else _HINT_DECLARE_ONLY)

    def _visit_AugAssign(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.EXPRESSION_STATEMENT, parent, role,
                         operator=_OPERATORS.get(type(node.op), "") + "=")
        self._push(node.value, syn, Role.RIGHT, scope)
        self._push(node.target, syn, Role.LEFT, scope, _HINT_AUGMENTED)

    def _visit_If(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.IF, parent, role)
        self._block(node.orelse, syn, Role.ELSE, scope)
        self._block(node.body, syn, Role.THEN, scope)
        self._push(node.test, syn, Role.CONDITION, scope)

    def _visit_While(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.WHILE, parent, role)
        self._block(node.orelse, syn, Role.ELSE, scope)
        self._block(node.body, syn, Role.BODY, scope)
        self._push(node.test, syn, Role.CONDITION, scope)

    def _visit_For(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.FOREACH, parent, role)
        self._block(node.orelse, syn, Role.ELSE, scope)
        self._block(node.body, syn, Role.BODY, scope)
        self._push(node.iter, syn, Role.RIGHT, scope)
        self._push(node.target, syn, Role.LEFT, scope)

    _visit_AsyncFor = _visit_For

    def _visit_Try(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.TRY, parent, role)
        if node.finalbody:
            final = self._make(None, NodeKind.FINALLY, syn, Role.FINALLY, type_name="finally")
            self._block(node.finalbody, final, Role.BODY, scope)
        self._block(node.orelse, syn, Role.ELSE, scope)
        self._push_all(node.handlers, syn, Role.HANDLER, scope)
        self._block(node.body, syn, Role.BODY, scope)

    _visit_TryStar = _visit_Try

    def _visit_ExceptHandler(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.CATCH, parent, role)
        if node.name:
            body_start = self._start_of(node.body[0]) if node.body else self._end_of(node)
            start = self._search(rf"\bas\s+({re.escape(node.name)})\b", self._start_of(node), body_start)
            ident = self._ident(syn, node.name, start, access=Access.WRITE)
            self._bind_name(scope, node.name, "except", ident, start if start is not None else self._start_of(node))
        self._block(node.body, syn, Role.BODY, scope)
        self._push(node.type, syn, Role.VALUE, scope)

    def _visit_With(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.WITH, parent, role)
        self._block(node.body, syn, Role.BODY, scope)
        for item in reversed(node.items):
            self._push(item.optional_vars, syn, Role.LEFT, scope)
            self._push(item.context_expr, syn, Role.VALUE, scope)

    _visit_AsyncWith = _visit_With

    def _visit_Match(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.SWITCH, parent, role)
        for case in node.cases:
            section = self._make(None, NodeKind.SWITCH_SECTION, syn, None, type_name="match_case")
            pattern = case.pattern
            is_default = isinstance(pattern, ast.MatchAs) and pattern.pattern is None and case.guard is None
            section.attrs["is_default"] = is_default
            section.attrs["case_labels"] = 0 if is_default else 1
            self._block(case.body, section, Role.BODY, scope)
            self._push(case.guard, section, Role.GUARD, scope)
            self._push(pattern, section, Role.PATTERN, scope)
        self._push(node.subject, syn, Role.VALUE, scope)

    def _visit_Return(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.RETURN, parent, role)
        self._push(node.value, syn, Role.VALUE, scope)

    def _visit_Raise(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.THROW, parent, role)
        self._push(node.cause, syn, None, scope)
        self._push(node.exc, syn, Role.VALUE, scope)

    def _visit_Break(self, node, parent, role, scope, hint):
        self._make(node, NodeKind.BREAK, parent, role)

    def _visit_Continue(self, node, parent, role, scope, hint):
        self._make(node, NodeKind.CONTINUE, parent, role)

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def _visit_Name(self, node, parent, role, scope, hint):
        if isinstance(node.ctx, ast.Load):
            access = Access.READ
        elif hint == _HINT_AUGMENTED:
            access = Access.READ_WRITE
        elif hint == _HINT_DECLARE_ONLY:
            access = None
        else:
            access = Access.WRITE

        ident = SyntaxNode(
            kind=NodeKind.IDENTIFIER,
            type="Name",
            span=self._span_of(node),
            name=node.id,
            access=access,
        )
        parent.add(ident, role)

        if isinstance(node.ctx, ast.Load):
            self._references.append((ident, scope))
            return

        target = scope
        if hint == _HINT_WALRUS:
            while target.kind == "comprehension" and target.parent is not None:
                target = target.parent
        self._bind_name(target, node.id, "store", ident, ident.span.start)

    def _visit_NamedExpr(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.ASSIGNMENT, parent, role, operator=":=")
        self._push(node.value, syn, Role.RIGHT, scope)
        self._push(node.target, syn, Role.LEFT, scope, _HINT_WALRUS)

    def _visit_Attribute(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.MEMBER_ACCESS, parent, role, name=node.attr)
        if isinstance(node.ctx, ast.Load):
            access = Access.READ
        elif hint == _HINT_AUGMENTED:
            access = Access.READ_WRITE
        else:
            access = Access.WRITE

        end = self._end_of(node)
        ident = self._ident(syn, node.attr, end - len(node.attr), access=access)
        if ident is not None and isinstance(node.value, ast.Name):
            self._members.append(_MemberRef(ident, scope, node.value.id, not isinstance(node.ctx, ast.Load)))
        self._push(node.value, syn, Role.VALUE, scope)

    def _visit_Call(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.CALL, parent, role)
        callee = None
        if isinstance(node.func, ast.Name):
            callee = ("name", node.func.id)
        elif isinstance(node.func, ast.Attribute) and isinstance(node.func.value, ast.Name):
            callee = ("member", node.func.value.id, node.func.attr)
        self._push_all(node.keywords, syn, None, scope, callee)
        self._push_all(node.args, syn, None, scope)
        self._push(node.func, syn, None, scope)

    def _visit_keyword(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.OTHER, parent, role)
        if node.arg is not None:
            ident = self._ident(syn, node.arg, self._start_of(node))
            if ident is not None:
                self._keywords.append(_KeywordRef(ident, scope, hint))
        self._push(node.value, syn, Role.VALUE, scope)

    def _visit_BoolOp(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.LOGICAL, parent, role, operator=_OPERATORS[type(node.op)])
        self._push_all(node.values, syn, None, scope)

    def _visit_UnaryOp(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.OTHER, parent, role, operator=_OPERATORS.get(type(node.op)))
        self._push(node.operand, syn, None, scope)

    def _visit_IfExp(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.CONDITIONAL, parent, role)
        self._push(node.orelse, syn, Role.ELSE, scope)
        self._push(node.body, syn, Role.THEN, scope)
        self._push(node.test, syn, Role.CONDITION, scope)

    def _visit_ListComp(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.OTHER, parent, role)
        label = _COMPREHENSION_LABELS[type(node)]
        inner = _Scope("comprehension", self._qualname(scope, f"{label}@{node.lineno}:{node.col_offset}"), scope)
        syn.attrs["scope"] = inner.qualname

        for index, generator in enumerate(node.generators):
            clause = self._make(None, NodeKind.OTHER, syn, None, type_name="comprehension")
            self._push_all(generator.ifs, clause, Role.CONDITION, inner)
            self._push(generator.iter, clause, Role.RIGHT, scope if index == 0 else inner)
            self._push(generator.target, clause, Role.LEFT, inner)

        if isinstance(node, ast.DictComp):
            self._push(node.value, syn, Role.VALUE, inner)
            self._push(node.key, syn, None, inner)
        else:
            self._push(node.elt, syn, None, inner)

    _visit_SetComp = _visit_ListComp
    _visit_DictComp = _visit_ListComp
    _visit_GeneratorExp = _visit_ListComp

    def _visit_BinOp(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.BINARY, parent, role, operator=_OPERATORS.get(type(node.op)))
        self._push(node.right, syn, Role.RIGHT, scope)
        self._push(node.left, syn, Role.LEFT, scope)

    def _visit_Compare(self, node, parent, role, scope, hint):
        operator = _OPERATORS.get(type(node.ops[0])) if len(node.ops) == 1 else "chain"
        syn = self._make(node, NodeKind.BINARY, parent, role, operator=operator)
        self._push_all(node.comparators, syn, Role.RIGHT, scope)
        self._push(node.left, syn, Role.LEFT, scope)

    # -------------------------------------------------------------------------
    # Match patterns
    # -------------------------------------------------------------------------

    def _visit_MatchAs(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.OTHER, parent, role)
        if node.name:
            end = self._end_of(node)
            ident = self._ident(syn, node.name, end - len(node.name), access=Access.WRITE)
            self._bind_name(scope, node.name, "pattern", ident, end - len(node.name))
        self._push(node.pattern, syn, None, scope)

    def _visit_MatchStar(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.OTHER, parent, role)
        if node.name:
            end = self._end_of(node)
            ident = self._ident(syn, node.name, end - len(node.name), access=Access.WRITE)
            self._bind_name(scope, node.name, "pattern", ident, end - len(node.name))

    def _visit_MatchMapping(self, node, parent, role, scope, hint):
        syn = self._make(node, NodeKind.OTHER, parent, role)
        if node.rest:
            start = self._search(rf"\*\*\s*({re.escape(node.rest)})\b", self._start_of(node), self._end_of(node))
            ident = self._ident(syn, node.rest, start, access=Access.WRITE)
            self._bind_name(scope, node.rest, "pattern", ident, start if start is not None else self._start_of(node))
        self._push_all(node.patterns, syn, None, scope)
        self._push_all(node.keys, syn, None, scope)

    # -------------------------------------------------------------------------

    def _visit_generic(self, node, parent, role, scope, hint):
        name = type(node).__name__
        syn = self._make(node, _KINDS.get(name, NodeKind.OTHER), parent, role)
        self._push_all(list(ast.iter_child_nodes(node)), syn, None, scope)

    # =========================================================================
    # BINDING
    # =========================================================================

    def bind(self) -> SemanticModel:
        table = SymbolTable()

        for record in sorted(self._bindings, key=lambda b: (b.position, b.order)):
            target = self._binding_scope(record.scope, record.name)
            if target is None:
                continue
            symbol = target.symbols.get(record.name)
            if symbol is None:
                symbol = table.new(
                    record.name,
                    self._symbol_kind(target, record.binding),
                    target.qualname,
                    owner=target.qualname,
                    external=record.binding == "import",
                )
                target.symbols[record.name] = symbol
                if record.ident is not None:
                    record.ident.is_declaration = True
            if record.ident is None:
                symbol.renamable = False
            else:
                record.ident.symbol = symbol

        for ident, scope in self._references:
            symbol = self._resolve(scope, ident.name)
            if symbol is not None:
                ident.symbol = symbol

        for ref in sorted(self._members, key=lambda m: m.ident.span.start):
            self._bind_member(ref, table)

        self._bind_keywords()
        return table.model()

    def _bind_keywords(self) -> None:
        """Bind `name=` call arguments to the parameters of callees defined in this file.

        Parameters and class fields that share a name with a keyword whose
        callee cannot be resolved are made non-renamable.
        """
        callables: dict[int, _Scope | None] = {}
        for ident, inner in self._callables:
            if ident is not None and ident.symbol is not None:
                key = ident.symbol.symbol_id
                callables[key] = inner if key not in callables else None
        for ident, inner in self._classes:
            init = inner.symbols.get("__init__")
            if ident is not None and ident.symbol is not None and init is not None:
                callables[ident.symbol.symbol_id] = callables.get(init.symbol_id)

        unresolved: set[str] = set()
        for ref in self._keywords:
            target = self._callee(ref)
            callee_scope = callables.get(target.symbol_id) if target is not None else None
            symbol = callee_scope.symbols.get(ref.ident.name) if callee_scope is not None else None
            if symbol is not None and symbol.kind == SymbolKind.PARAMETER:
                ref.ident.symbol = symbol
            else:
                unresolved.add(ref.ident.name)

        if not unresolved:
            return
        for _, inner in self._callables + self._classes:
            for name in unresolved & inner.symbols.keys():
                symbol = inner.symbols[name]
                if symbol.kind in (SymbolKind.PARAMETER, SymbolKind.FIELD):
                    symbol.renamable = False

    def _callee(self, ref: _KeywordRef) -> Symbol | None:
        if ref.callee is None:
            return None
        if ref.callee[0] == "name":
            return self._resolve(ref.scope, ref.callee[1])
        _, receiver, attr = ref.callee
        method = ref.scope
        while method is not None and method.kind == "comprehension":
            method = method.parent
        if method is None or method.class_scope is None or method.self_name != receiver:
            return None
        return method.class_scope.symbols.get(attr)

    def _binding_scope(self, scope: _Scope, name: str) -> _Scope | None:
        if name in scope.globals:
            return self.module_scope
        if name in scope.nonlocals:
            return self._enclosing_function(scope.parent, name)
        return scope

    def _enclosing_function(self, scope: _Scope | None, name: str) -> _Scope | None:
        while scope is not None and scope.kind != "module":
            if scope.kind != "class":
                if name in scope.globals:
                    return self.module_scope
                if scope.binds(name):
                    return scope
            scope = scope.parent
        return None

    def _resolve(self, scope: _Scope, name: str) -> Symbol | None:
        if name in scope.globals:
            return self.module_scope.symbols.get(name)
        if name in scope.nonlocals:
            target = self._enclosing_function(scope.parent, name)
            return target.symbols.get(name) if target is not None else None
        if scope.binds(name):
            return scope.symbols.get(name)

        current = scope.parent
        while current is not None:
            if current.kind == "class":
                current = current.parent
                continue
            if name in current.globals:
                return self.module_scope.symbols.get(name)
            if current.binds(name):
                return current.symbols.get(name)
            current = current.parent
        return None

    @staticmethod
    def _symbol_kind(scope: _Scope, binding: str) -> str:
        if binding == "import":
            return SymbolKind.IMPORT
        if binding == "class":
            return SymbolKind.TYPE
        if binding == "def":
            return SymbolKind.METHOD if scope.kind == "class" else SymbolKind.FUNCTION
        if binding == "param":
            return SymbolKind.PARAMETER
        if scope.kind == "module":
            return SymbolKind.GLOBAL
        if scope.kind == "class":
            return SymbolKind.FIELD
        return SymbolKind.LOCAL

    def _bind_member(self, ref: _MemberRef, table: SymbolTable) -> None:
        """Bind `self.attr` to the class member `attr`."""
        method = ref.scope
        while method is not None and method.kind == "comprehension":
            method = method.parent
        if method is None or method.class_scope is None or method.self_name != ref.receiver:
            return
        if not method.binds(ref.receiver):
            return

        cls = method.class_scope
        symbol = cls.symbols.get(ref.ident.name)
        if symbol is None:
            if not ref.store:
                return
            symbol = table.new(ref.ident.name, SymbolKind.FIELD, cls.qualname, owner=cls.qualname)
            cls.symbols[ref.ident.name] = symbol
            ref.ident.is_declaration = True
        if symbol.kind in (SymbolKind.FIELD, SymbolKind.METHOD) and not symbol.external:
            ref.ident.symbol = symbol
