"""C# syntax provider built on tree-sitter.

Uses the csharp grammar from tree-sitter-language-pack. The native tree is
converted into SyntaxNodes with an explicit stack; tree-sitter field names
become roles directly (the neutral Role values use the same names).

Binding is lexical and block scoped:
- namespaces and types hold their members (fields, properties, methods, nested types)
- methods, local functions and lambdas open a function scope for parameters
- property and event accessors open a function scope; set/init/add/remove
  bind the implicit `value` parameter
- every nested block / for / foreach / catch / using / switch opens a block scope
- `this.X` binds X to a member of the enclosing type
- a constructor name refers to its type

Files that parse with errors are still converted; ERROR nodes become OTHER.
"""

import threading

from tree_sitter_language_pack import get_parser

from codemodeler.utils.logging import logger

from .base import SyntaxProvider
from .model import (
    MODULE_SCOPE,
    Access,
    Document,
    NodeKind,
    Role,
    SourceText,
    Span,
    SymbolKind,
    SymbolTable,
    SyntaxNode,
    SyntaxTree,
    finalize_tree,
)

_TYPE_DECLARATIONS = {
    "class_declaration",
    "struct_declaration",
    "interface_declaration",
    "record_declaration",
    "record_struct_declaration",
    "enum_declaration",
    "delegate_declaration",
}

_METHOD_DECLARATIONS = {
    "method_declaration",
    "constructor_declaration",
    "destructor_declaration",
    "operator_declaration",
    "conversion_operator_declaration",
    "local_function_statement",
}

_KIND_BY_TYPE = {
    "compilation_unit": NodeKind.COMPILATION_UNIT,
    "namespace_declaration": NodeKind.NAMESPACE,
    "file_scoped_namespace_declaration": NodeKind.NAMESPACE,
    "field_declaration": NodeKind.FIELD_DECL,
    "event_field_declaration": NodeKind.FIELD_DECL,
    "enum_member_declaration": NodeKind.FIELD_DECL,
    "property_declaration": NodeKind.PROPERTY_DECL,
    "indexer_declaration": NodeKind.PROPERTY_DECL,
    "event_declaration": NodeKind.PROPERTY_DECL,
    "parameter": NodeKind.PARAMETER,
    "using_directive": NodeKind.IMPORT,
    "block": NodeKind.BLOCK,
    "local_declaration_statement": NodeKind.LOCAL_DECL,
    "expression_statement": NodeKind.EXPRESSION_STATEMENT,
    "arrow_expression_clause": NodeKind.EXPRESSION_STATEMENT,
    "if_statement": NodeKind.IF,
    "while_statement": NodeKind.WHILE,
    "do_statement": NodeKind.DO,
    "for_statement": NodeKind.FOR,
    "foreach_statement": NodeKind.FOREACH,
    "switch_statement": NodeKind.SWITCH,
    "switch_section": NodeKind.SWITCH_SECTION,
    "try_statement": NodeKind.TRY,
    "catch_clause": NodeKind.CATCH,
    "finally_clause": NodeKind.FINALLY,
    "return_statement": NodeKind.RETURN,
    "throw_statement": NodeKind.THROW,
    "break_statement": NodeKind.BREAK,
    "continue_statement": NodeKind.CONTINUE,
    "using_statement": NodeKind.WITH,
    "lock_statement": NodeKind.WITH,
    "fixed_statement": NodeKind.WITH,
    "checked_statement": NodeKind.WITH,
    "unsafe_statement": NodeKind.WITH,
    "yield_statement": NodeKind.STATEMENT,
    "goto_statement": NodeKind.STATEMENT,
    "empty_statement": NodeKind.STATEMENT,
    "labeled_statement": NodeKind.STATEMENT,
    "variable_declarator": NodeKind.VARIABLE_DECLARATOR,
    "assignment_expression": NodeKind.ASSIGNMENT,
    "conditional_expression": NodeKind.CONDITIONAL,
    "invocation_expression": NodeKind.CALL,
    "object_creation_expression": NodeKind.CALL,
    "member_access_expression": NodeKind.MEMBER_ACCESS,
    "lambda_expression": NodeKind.LAMBDA,
    "anonymous_method_expression": NodeKind.LAMBDA,
    "identifier": NodeKind.IDENTIFIER,
}
_KIND_BY_TYPE.update({t: NodeKind.TYPE_DECL for t in _TYPE_DECLARATIONS})
_KIND_BY_TYPE.update({t: NodeKind.METHOD_DECL for t in _METHOD_DECLARATIONS})

# Wrapper nodes whose children are attached to the wrapper's parent
_TRANSPARENT = {
    "declaration_list",
    "switch_body",
    "variable_declaration",
    "parameter_list",
    "equals_value_clause",
    "enum_member_declaration_list",
    "global_statement",
}

_ACCESSOR_KEYWORDS = {"get", "set", "init", "add", "remove"}
# Accessors with an implicit `value` parameter
_VALUE_ACCESSORS = {"set", "init", "add", "remove"}

_THIS = {"this_expression", "this"}
_LOGICAL_OPERATORS = {"&&", "||", "??"}
_SKIPPED = {"comment"}

# Stack hints: (mode, symbol kind, access)
_REFERENCE = ("ref", None, Access.READ)


def _is_statement(ts_node) -> bool:
    return ts_node.type == "block" or ts_node.type.endswith("_statement")


def _children(ts_node):
    """(field name, child) pairs in source order."""
    cursor = ts_node.walk()
    if not cursor.goto_first_child():
        return
    while True:
        yield cursor.field_name, cursor.node
        if not cursor.goto_next_sibling():
            break


def _key(ts_node) -> tuple:
    return ts_node.start_byte, ts_node.end_byte, ts_node.type


class _Scope:
    """One lexical scope while binding."""

    def __init__(self, kind: str, qualname: str, parent: "_Scope | None", owner: str | None = None):
        self.kind = kind
        self.qualname = qualname
        self.parent = parent
        self.owner = owner or qualname
        self.symbols: dict = {}
        self.type_symbol = None
        self.blocks = 0

    def nearest(self, *kinds: str) -> "_Scope | None":
        scope = self
        while scope is not None and scope.kind not in kinds:
            scope = scope.parent
        return scope


class CSharpSyntaxProvider(SyntaxProvider):
    """SyntaxProvider for C# source."""

    language = "csharp"
    extensions = (".cs",)

    def __init__(self):
        self._local = threading.local()

    def _parser(self):
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = get_parser("csharp")
            self._local.parser = parser
        return parser

    def parse(self, document: Document) -> SyntaxTree | None:
        text = document.text
        if text is None or not text.strip():
            return None

        tree = self._parser().parse(text.encode("utf-8"))
        if tree is None or tree.root_node is None:
            return None
        if tree.root_node.has_error:
            logger.debug(f"[CSHARP] {document.path} parsed with errors, continuing")

        builder = _CSharpTreeBuilder(text)
        root = builder.convert(tree.root_node)
        return SyntaxTree(root=root, text=text, language=self.language, model=builder.table.model())


class _CSharpTreeBuilder:
    """Converts one tree-sitter tree and binds its identifiers."""

    def __init__(self, text: str):
        self.text = text
        self.source = SourceText(text)
        self.table = SymbolTable()
        self.module_scope = _Scope("module", MODULE_SCOPE, None)
        self._stack: list[tuple] = []
        self._synthetic: list[SyntaxNode] = []
        self._references: list[tuple[SyntaxNode, _Scope]] = []
        self._members: list[tuple[SyntaxNode, _Scope]] = []
        self._qualnames: set[str] = {MODULE_SCOPE}
        self._named_arguments: set[str] = set()

    def convert(self, ts_root) -> SyntaxNode:
        root = SyntaxNode(
            kind=NodeKind.COMPILATION_UNIT,
            type=ts_root.type,
            span=self.source.span(0, len(self.text)),
        )
        root.attrs["scope"] = MODULE_SCOPE
        self._push_children(ts_root, root, self.module_scope)

        while self._stack:
            ts_node, parent, role, scope, hint = self._stack.pop()
            if ts_node.type in _TRANSPARENT:
                self._push_children(ts_node, parent, scope, role=role, hint=hint)
                continue
            visitor = getattr(self, f"_visit_{ts_node.type}", self._visit_generic)
            visitor(ts_node, parent, role, scope, hint)

        self._resolve()
        finalize_tree(root, self._synthetic, self.source)
        return root

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _span(self, ts_node) -> Span:
        return self.source.span(self.source.from_byte(ts_node.start_byte), self.source.from_byte(ts_node.end_byte))

    def _text(self, ts_node) -> str:
        span = self._span(ts_node)
        return self.text[span.start:span.end]

    def _push_children(self, ts_node, parent, scope, role=None, hint=None, skip=(), overrides=None):
        """Queue named children; role defaults to the child's field name, else `role`."""
        pending = []
        for field_name, child in _children(ts_node):
            if not child.is_named or child.type in _SKIPPED or _key(child) in skip:
                continue
            child_hint = hint
            if overrides and _key(child) in overrides:
                child_hint = overrides[_key(child)]
            pending.append((child, parent, field_name or role, scope, child_hint))
        self._stack.extend(reversed(pending))

    def _make(self, ts_node, kind: str, parent: SyntaxNode, role: str | None, **fields) -> SyntaxNode:
        syn = SyntaxNode(kind=kind, type=ts_node.type, span=self._span(ts_node), **fields)
        parent.add(syn, role)
        return syn

    def _synthetic_block(self, parent: SyntaxNode, role: str) -> SyntaxNode:
        block = SyntaxNode(kind=NodeKind.BLOCK, type="statements", span=Span(0, 0, 0, 0))
        self._synthetic.append(block)
        return parent.add(block, role)

    def _qualname(self, scope: _Scope, label: str) -> str:
        base = label if scope.kind == "module" else f"{scope.qualname}.{label}"
        qualname = base
        suffix = 2
        while qualname in self._qualnames:
            qualname = f"{base}~{suffix}"
            suffix += 1
        self._qualnames.add(qualname)
        return qualname

    def _block_scope(self, scope: _Scope) -> _Scope:
        owner = scope.nearest("function", "lambda", "type", "namespace", "module")
        owner.blocks += 1
        return _Scope("block", f"{owner.qualname}/{owner.blocks}", scope, owner=owner.qualname)

    @staticmethod
    def _name_node(ts_node):
        name = ts_node.child_by_field_name("name")
        if name is not None:
            return name
        for child in ts_node.named_children:
            if child.type == "identifier":
                return child
        return None

    def _declare(self, ts_name, parent: SyntaxNode, scope: _Scope, kind: str,
                 access: str | None = None) -> SyntaxNode | None:
        """Create the name identifier of a declaration and bind it in `scope`."""
        if ts_name is None or ts_name.type not in ("identifier", "implicit_parameter"):
            return None
        ident = self._make(ts_name, NodeKind.IDENTIFIER, parent, Role.NAME, access=access)
        ident.name = self._text(ts_name)
        symbol = scope.symbols.get(ident.name)
        if symbol is None:
            symbol = self.table.new(ident.name, kind, scope.qualname, owner=scope.owner)
            scope.symbols[ident.name] = symbol
            ident.is_declaration = True
        ident.symbol = symbol
        return ident

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def _visit_namespace_declaration(self, ts_node, parent, role, scope, hint):
        ts_name = ts_node.child_by_field_name("name")
        label = self._text(ts_name) if ts_name is not None else "<namespace>"
        syn = self._make(ts_node, NodeKind.NAMESPACE, parent, role, name=label)
        self._declare(ts_name, syn, scope, SymbolKind.NAMESPACE)
        inner = _Scope("namespace", self._qualname(scope, label), scope)
        syn.attrs["scope"] = inner.qualname
        skip = {_key(ts_name)} if ts_name is not None and ts_name.type == "identifier" else ()
        self._push_children(ts_node, syn, inner, skip=skip)

    _visit_file_scoped_namespace_declaration = _visit_namespace_declaration

    def _visit_type_declaration(self, ts_node, parent, role, scope, hint):
        ts_name = self._name_node(ts_node)
        label = self._text(ts_name) if ts_name is not None else ts_node.type
        syn = self._make(ts_node, NodeKind.TYPE_DECL, parent, role, name=label)
        ident = self._declare(ts_name, syn, scope, SymbolKind.TYPE)
        inner = _Scope("type", self._qualname(scope, label), scope)
        inner.type_symbol = ident.symbol if ident is not None else None
        syn.attrs["scope"] = inner.qualname
        self._push_children(ts_node, syn, inner, skip={_key(ts_name)} if ts_name is not None else ())

    def _visit_method_declaration(self, ts_node, parent, role, scope, hint):
        ts_name = self._name_node(ts_node)
        label = self._text(ts_name) if ts_name is not None else ts_node.type.replace("_declaration", "")
        syn = self._make(ts_node, NodeKind.METHOD_DECL, parent, role, name=label)

        if ts_node.type == "constructor_declaration" and ts_name is not None:
            ident = self._make(ts_name, NodeKind.IDENTIFIER, syn, Role.NAME, name=label)
            type_scope = scope.nearest("type")
            if type_scope is not None and type_scope.type_symbol is not None and type_scope.type_symbol.name == label:
                ident.symbol = type_scope.type_symbol
        else:
            kind = SymbolKind.FUNCTION if ts_node.type == "local_function_statement" else SymbolKind.METHOD
            self._declare(ts_name, syn, scope, kind)

        inner = _Scope("function", self._qualname(scope, label), scope)
        syn.attrs["scope"] = inner.qualname
        self._push_children(ts_node, syn, inner, skip={_key(ts_name)} if ts_name is not None else ())

    def _visit_accessor_declaration(self, ts_node, parent, role, scope, hint):
        keyword = next((c.type for c in ts_node.children if not c.is_named and c.type in _ACCESSOR_KEYWORDS), None)
        ts_name = ts_node.child_by_field_name("name")
        if keyword is None and ts_name is not None:
            keyword = self._text(ts_name)
        member = parent.parent if parent.kind == NodeKind.OTHER else parent
        label = f"{keyword or 'accessor'}_{member.name if member is not None and member.name else 'this'}"
        syn = self._make(ts_node, NodeKind.ACCESSOR_DECL, parent, role, name=label)

        inner = _Scope("function", self._qualname(scope, label), scope)
        syn.attrs["scope"] = inner.qualname
        if keyword in _VALUE_ACCESSORS:
            value = self.table.new("value", SymbolKind.PARAMETER, inner.qualname)
            value.renamable = False
            inner.symbols["value"] = value
        skip = {_key(ts_name)} if ts_name is not None and ts_name.type == "identifier" else ()
        self._push_children(ts_node, syn, inner, skip=skip)

    def _visit_lambda_expression(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.LAMBDA, parent, role)
        span = syn.span
        inner = _Scope(
            "lambda",
            self._qualname(scope.nearest("function", "lambda", "type", "namespace", "module"),
                           f"<lambda>@{span.start_line}:{span.start_col}"),
            scope,
        )
        syn.attrs["scope"] = inner.qualname

        overrides = {}
        params = ts_node.child_by_field_name("parameters")
        if params is not None and params.type in ("identifier", "implicit_parameter"):
            overrides[_key(params)] = ("declare", SymbolKind.PARAMETER, Access.WRITE)
        self._push_children(ts_node, syn, inner, overrides=overrides)

    _visit_anonymous_method_expression = _visit_lambda_expression

    def _visit_parameter(self, ts_node, parent, role, scope, hint):
        ts_name = self._name_node(ts_node)
        syn = self._make(ts_node, NodeKind.PARAMETER, parent, role or Role.PARAMETERS,
                         name=self._text(ts_name) if ts_name is not None else None)
        self._declare(ts_name, syn, scope, SymbolKind.PARAMETER, Access.WRITE)
        self._push_children(ts_node, syn, scope, skip={_key(ts_name)} if ts_name is not None else ())

    def _visit_variable_declarator(self, ts_node, parent, role, scope, hint):
        ts_name = self._name_node(ts_node)
        initialized = any(
            (not c.is_named and c.type == "=") or c.type == "equals_value_clause" for c in ts_node.children
        )
        kind = SymbolKind.FIELD if scope.kind == "type" else SymbolKind.LOCAL
        syn = self._make(ts_node, NodeKind.VARIABLE_DECLARATOR, parent, role,
                         name=self._text(ts_name) if ts_name is not None else None)
        self._declare(ts_name, syn, scope, kind, Access.WRITE if initialized else None)
        self._push_children(ts_node, syn, scope, role=Role.VALUE,
                            skip={_key(ts_name)} if ts_name is not None else ())

    def _visit_member_declaration(self, ts_node, parent, role, scope, hint, kind):
        ts_name = self._name_node(ts_node)
        node_kind = _KIND_BY_TYPE[ts_node.type]
        syn = self._make(ts_node, node_kind, parent, role,
                         name=self._text(ts_name) if ts_name is not None else None)
        self._declare(ts_name, syn, scope, kind)
        self._push_children(ts_node, syn, scope, skip={_key(ts_name)} if ts_name is not None else ())

    def _visit_property_declaration(self, ts_node, parent, role, scope, hint):
        self._visit_member_declaration(ts_node, parent, role, scope, hint, SymbolKind.PROPERTY)

    _visit_event_declaration = _visit_property_declaration

    def _visit_enum_member_declaration(self, ts_node, parent, role, scope, hint):
        self._visit_member_declaration(ts_node, parent, role, scope, hint, SymbolKind.FIELD)

    def _visit_using_directive(self, ts_node, parent, role, scope, hint):
        self._make(ts_node, NodeKind.IMPORT, parent, role)

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def _visit_block(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.BLOCK, parent, role)
        inner = scope if scope.kind in ("function", "lambda") and parent.kind in (
            NodeKind.METHOD_DECL, NodeKind.ACCESSOR_DECL, NodeKind.LAMBDA) else self._block_scope(scope)
        self._push_children(ts_node, syn, inner)

    def _visit_scoped_statement(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, _KIND_BY_TYPE[ts_node.type], parent, role)
        self._push_children(ts_node, syn, self._block_scope(scope))

    _visit_for_statement = _visit_scoped_statement
    _visit_switch_statement = _visit_scoped_statement

    def _visit_foreach_statement(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.FOREACH, parent, role)
        inner = self._block_scope(scope)
        overrides = {}
        left = ts_node.child_by_field_name("left")
        if left is not None and ts_node.child_by_field_name("type") is not None:
            overrides[_key(left)] = ("declare", SymbolKind.LOCAL, Access.WRITE)
        elif left is not None:
            overrides[_key(left)] = ("ref", None, Access.WRITE)
        self._push_children(ts_node, syn, inner, overrides=overrides)

    def _visit_catch_clause(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.CATCH, parent, Role.HANDLER)
        inner = self._block_scope(scope)
        overrides = {}
        for child in ts_node.named_children:
            if child.type == "catch_declaration":
                name = child.child_by_field_name("name")
                if name is not None:
                    overrides[_key(name)] = ("declare", SymbolKind.LOCAL, Access.WRITE)
        for field_name, child in _children(ts_node):
            if not child.is_named or child.type in _SKIPPED:
                continue
            if child.type == "catch_declaration":
                self._push_catch_declaration(child, syn, inner, overrides)
            elif child.type == "catch_filter_clause":
                self._stack.append((child, syn, Role.GUARD, inner, None))
            else:
                self._stack.append((child, syn, field_name or Role.BODY, inner, None))

    def _push_catch_declaration(self, ts_node, syn, scope, overrides):
        for field_name, child in _children(ts_node):
            if child.is_named:
                role = Role.NAME if field_name == "name" else Role.VALUE
                self._stack.append((child, syn, role, scope, overrides.get(_key(child))))

    def _visit_finally_clause(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.FINALLY, parent, Role.FINALLY)
        self._push_children(ts_node, syn, scope, role=Role.BODY)

    def _visit_switch_section(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.SWITCH_SECTION, parent, None)
        labels = 0
        is_default = False
        body = None
        pending = []
        for _, child in _children(ts_node):
            if not child.is_named:
                if child.type == "case":
                    labels += 1
                elif child.type == "default":
                    is_default = True
                continue
            if child.type in _SKIPPED:
                continue
            if child.type in ("case_switch_label", "case_pattern_switch_label"):
                labels += 1
                pending.append((child, syn, Role.PATTERN, scope, None))
            elif child.type == "default_switch_label":
                is_default = True
            elif child.type == "when_clause":
                pending.append((child, syn, Role.GUARD, scope, None))
            elif _is_statement(child):
                if body is None:
                    body = self._synthetic_block(syn, Role.BODY)
                pending.append((child, body, None, scope, None))
            else:
                pending.append((child, syn, Role.PATTERN, scope, None))
        syn.attrs["case_labels"] = labels
        syn.attrs["is_default"] = is_default
        self._stack.extend(reversed(pending))

    def _visit_with_statement(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.WITH, parent, role)
        inner = self._block_scope(scope)
        children = [(f, c) for f, c in _children(ts_node) if c.is_named and c.type not in _SKIPPED]
        body = ts_node.child_by_field_name("body")
        if body is None:
            statements = [c for _, c in children if _is_statement(c)]
            body = statements[-1] if statements else None
        pending = []
        for _, child in children:
            child_role = Role.BODY if body is not None and _key(child) == _key(body) else Role.VALUE
            pending.append((child, syn, child_role, inner, None))
        self._stack.extend(reversed(pending))

    _visit_using_statement = _visit_with_statement
    _visit_lock_statement = _visit_with_statement
    _visit_fixed_statement = _visit_with_statement
    _visit_checked_statement = _visit_with_statement
    _visit_unsafe_statement = _visit_with_statement

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def _visit_identifier(self, ts_node, parent, role, scope, hint):
        mode, kind, access = hint or _REFERENCE
        if mode == "declare":
            self._declare(ts_node, parent, scope, kind, access)
            return
        ident = self._make(ts_node, NodeKind.IDENTIFIER, parent, role, name=self._text(ts_node), access=access)
        if mode == "ref":
            self._references.append((ident, scope))
        elif mode == "member":
            self._members.append((ident, scope))

    _visit_implicit_parameter = _visit_identifier

    def _visit_binary_expression(self, ts_node, parent, role, scope, hint):
        op_node = ts_node.child_by_field_name("operator")
        operator = op_node.type if op_node is not None else None
        kind = NodeKind.LOGICAL if operator in _LOGICAL_OPERATORS else NodeKind.BINARY
        syn = self._make(ts_node, kind, parent, role, operator=operator)
        self._push_children(ts_node, syn, scope)

    def _visit_assignment_expression(self, ts_node, parent, role, scope, hint):
        operator = None
        op_node = ts_node.child_by_field_name("operator")
        if op_node is not None:
            operator = self._text(op_node)
        else:
            for child in ts_node.children:
                if child.type == "assignment_operator" or (not child.is_named and child.type.endswith("=")):
                    operator = self._text(child)
                    break
        syn = self._make(ts_node, NodeKind.ASSIGNMENT, parent, role, operator=operator)
        access = Access.WRITE if operator in (None, "=") else Access.READ_WRITE
        overrides = {}
        left = ts_node.child_by_field_name("left")
        if left is not None:
            overrides[_key(left)] = ("ref", None, access)
        self._push_children(ts_node, syn, scope, overrides=overrides)

    def _visit_prefix_unary_expression(self, ts_node, parent, role, scope, hint):
        operators = [c.type for c in ts_node.children if not c.is_named]
        is_increment = "++" in operators or "--" in operators
        kind = NodeKind.INCREMENT if is_increment else NodeKind.OTHER
        syn = self._make(ts_node, kind, parent, role, operator=operators[0] if operators else None)
        child_hint = ("ref", None, Access.READ_WRITE) if is_increment else None
        self._push_children(ts_node, syn, scope, hint=child_hint)

    _visit_postfix_unary_expression = _visit_prefix_unary_expression

    def _visit_member_access_expression(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.MEMBER_ACCESS, parent, role)
        access = (hint or _REFERENCE)[2]
        receiver = ts_node.child_by_field_name("expression")
        name = ts_node.child_by_field_name("name")
        overrides = {}
        if receiver is not None:
            overrides[_key(receiver)] = _REFERENCE
        if name is not None:
            syn.name = self._text(name)
            mode = "member" if receiver is not None and receiver.type in _THIS else "nobind"
            overrides[_key(name)] = (mode, None, access)
        self._push_children(ts_node, syn, scope, overrides=overrides)

    def _visit_argument(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.OTHER, parent, role)
        modifiers = {c.type for c in ts_node.children if not c.is_named}
        child_hint = None
        if "out" in modifiers:
            child_hint = ("ref", None, Access.WRITE)
        elif "ref" in modifiers:
            child_hint = ("ref", None, Access.READ_WRITE)
        self._push_children(ts_node, syn, scope, hint=child_hint)

    def _visit_declaration_expression(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.OTHER, parent, role)
        ts_name = self._name_node(ts_node)
        self._declare(ts_name, syn, scope, SymbolKind.LOCAL, Access.WRITE)
        self._push_children(ts_node, syn, scope, skip={_key(ts_name)} if ts_name is not None else ())

    def _visit_single_variable_designation(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.OTHER, parent, role)
        self._declare(self._name_node(ts_node), syn, scope, SymbolKind.LOCAL, Access.WRITE)

    def _visit_unbound(self, ts_node, parent, role, scope, hint):
        syn = self._make(ts_node, NodeKind.OTHER, parent, role)
        self._push_children(ts_node, syn, scope, hint=("nobind", None, None))

    _visit_qualified_name = _visit_unbound
    def _visit_name_colon(self, ts_node, parent, role, scope, hint):
        for child in ts_node.named_children:
            if child.type == "identifier":
                self._named_arguments.add(self._text(child))
        self._visit_unbound(ts_node, parent, role, scope, hint)
    _visit_alias_qualified_name = _visit_unbound

    def _visit_generic(self, ts_node, parent, role, scope, hint):
        if ts_node.type in _TYPE_DECLARATIONS:
            return self._visit_type_declaration(ts_node, parent, role, scope, hint)
        if ts_node.type in _METHOD_DECLARATIONS:
            return self._visit_method_declaration(ts_node, parent, role, scope, hint)

        kind = _KIND_BY_TYPE.get(ts_node.type)
        if kind is None:
            kind = NodeKind.LITERAL if ts_node.type.endswith("_literal") else NodeKind.OTHER
        syn = self._make(ts_node, kind, parent, role)
        # Hints only flow through wrappers like parenthesized expressions
        child_hint = hint if ts_node.type == "parenthesized_expression" else None
        if hint is not None and hint[0] == "nobind":
            child_hint = hint
        self._push_children(ts_node, syn, scope, hint=child_hint)

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def _resolve(self) -> None:
        for ident, scope in self._references:
            current = scope
            while current is not None:
                symbol = current.symbols.get(ident.name)
                if symbol is not None:
                    ident.symbol = symbol
                    break
                current = current.parent

        for ident, scope in self._members:
            type_scope = scope.nearest("type")
            if type_scope is None:
                continue
            symbol = type_scope.symbols.get(ident.name)
            if symbol is not None and symbol.kind in (SymbolKind.FIELD, SymbolKind.PROPERTY, SymbolKind.METHOD):
                ident.symbol = symbol

        # Named arguments (`F(count: 1)`) spell the parameter name at call sites
        for symbol in self.table.model().symbols:
            if symbol.kind == SymbolKind.PARAMETER and symbol.name in self._named_arguments:
                symbol.renamable = False
