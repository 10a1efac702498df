"""Control flow graph construction over the neutral syntax tree.

One graph per function-like body (method, constructor, local function, def)
plus one for executable top-level code.

Construction walks statements in lexical order and keeps a list of PENDING
edges: (source block, label) pairs waiting for the next block to exist. A
block is only materialized when a statement needs a home or a branch needs a
target, so an empty join at the end of a body simply becomes edges into the
synthetic exit.

Edge labels:
- true / false:    branch outcomes of a condition (if, loop header, switch)
- unconditional:   jumps (return, break, continue, throw to exit)
- exception:       guarded block -> catch entry (or finally entry)
- fallthrough:     sequential flow into a join or header

Return, break, continue and throw leaving a try that has a finally enter the
finally block first and continue from its end. The finally only falls through
to the next statement when some path reached it by completing normally.

Block ids are list indices; the entry is always block 0 and the synthetic exit
is always the last block.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any

from codemodeler.syntax.model import (
    COMPOUND_STATEMENT_KINDS,
    FUNCTION_KINDS,
    MODULE_SCOPE,
    NodeKind,
    Role,
    Span,
    SyntaxNode,
)
from codemodeler.utils.constants import DEFAULT_MAX_DEPTH
from codemodeler.utils.logging import logger


class EdgeLabel:
    UNCONDITIONAL = "unconditional"
    TRUE = "true"
    FALSE = "false"
    EXCEPTION = "exception"
    FALLTHROUGH = "fallthrough"


class BlockType:
    ENTRY = "entry"
    EXIT = "exit"
    BASIC = "basic"
    LOOP_HEADER = "loop_header"
    LOOP_BODY = "loop_body"
    CONDITION = "condition"
    UPDATE = "update"
    CASE = "case"
    TRY = "try"
    CATCH = "catch"
    FINALLY = "finally"


@dataclass
class BasicBlock:
    """Straight-line run of statement items."""

    block_id: int
    block_type: str
    items: list[SyntaxNode] = field(default_factory=list)
    reachable: bool = True

    def to_dict(self) -> dict[str, Any]:
        lines = [item.span.start_line for item in self.items]
        return {
            "id": self.block_id,
            "type": self.block_type,
            "reachable": self.reachable,
            "start_line": min(lines) if lines else None,
            "end_line": max(item.span.end_line for item in self.items) if lines else None,
            "statements": [
                {"kind": item.kind, "type": item.type, "line": item.span.start_line}
                for item in self.items
            ],
        }


@dataclass(frozen=True)
class CFGEdge:
    source: int
    target: int
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "target": self.target, "label": self.label}


@dataclass
class ControlFlowGraph:
    """Finished graph for one body."""

    function_name: str
    scope: str
    blocks: list[BasicBlock]
    edges: list[CFGEdge]
    entry_id: int
    exit_id: int
    span: Span | None = None
    truncated: bool = False

    def block(self, block_id: int) -> BasicBlock:
        return self.blocks[block_id]

    def successors(self, block_id: int) -> list[int]:
        return [e.target for e in self.edges if e.source == block_id]

    def predecessors(self, block_id: int) -> list[int]:
        return [e.source for e in self.edges if e.target == block_id]

    def successor_map(self) -> dict[int, list[int]]:
        succ: dict[int, list[int]] = {b.block_id: [] for b in self.blocks}
        for edge in self.edges:
            if edge.target not in succ[edge.source]:
                succ[edge.source].append(edge.target)
        return succ

    def predecessor_map(self) -> dict[int, list[int]]:
        pred: dict[int, list[int]] = {b.block_id: [] for b in self.blocks}
        for edge in self.edges:
            if edge.source not in pred[edge.target]:
                pred[edge.target].append(edge.source)
        return pred

    def to_dict(self) -> dict[str, Any]:
        return {
            "function": self.function_name,
            "scope": self.scope,
            "span": self.span.to_list() if self.span else None,
            "entry": self.entry_id,
            "exit": self.exit_id,
            "truncated": self.truncated,
            "blocks": [b.to_dict() for b in self.blocks],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass
class _JumpContext:
    """Open loop or switch: collects break / continue edges."""

    kind: str
    breaks: list[tuple[int, str]] = field(default_factory=list)
    continues: list[tuple[int, str]] = field(default_factory=list)


@dataclass
class _TryFrame:
    """Open try statement.

    `entries` are abrupt edges (return, break, continue, throw) that must run
    the finally first; `resume` lists where flow goes once it has.
    """

    jump_depth: int
    has_handlers: bool
    has_finally: bool
    phase: str = "body"
    entries: list[tuple[int, str]] = field(default_factory=list)
    resume: list[tuple[str, int | None]] = field(default_factory=list)

    def mark(self, action: str, target: int | None) -> None:
        if (action, target) not in self.resume:
            self.resume.append((action, target))


class _CFGBuilder:
    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        self.blocks: list[BasicBlock] = []
        self.edges: list[CFGEdge] = []
        self.truncated = False
        self.current: BasicBlock | None = None
        self.pending: list[tuple[int, str]] = []
        self._exit_edges: list[tuple[int, str]] = []
        self._jumps: list[_JumpContext] = []
        self._trys: list[_TryFrame] = []

    # -------------------------------------------------------------------------
    # Block / edge primitives
    # -------------------------------------------------------------------------

    def _new_block(self, block_type: str) -> BasicBlock:
        block = BasicBlock(block_id=len(self.blocks), block_type=block_type)
        self.blocks.append(block)
        return block

    def _connect(self, sources: list[tuple[int, str]], target: int) -> None:
        for source, label in sources:
            self.edges.append(CFGEdge(source, target, label))

    def _open(self, block_type: str, incoming: list[tuple[int, str]] | None = None) -> BasicBlock:
        """Start a new block fed by `incoming` (default: whatever is pending)."""
        if incoming is None:
            incoming = self._take()
        block = self._new_block(block_type)
        self._connect(incoming, block.block_id)
        self.current = block
        self.pending = []
        return block

    def _take(self) -> list[tuple[int, str]]:
        """Close the flow at this point; return the edges leaving it."""
        if self.current is not None:
            out = [(self.current.block_id, EdgeLabel.FALLTHROUGH)]
            self.current = None
        else:
            out = self.pending
        self.pending = []
        return out

    def _append(self, item: SyntaxNode | None) -> None:
        if item is None:
            return
        if self.current is None:
            self._open(BlockType.BASIC)
        self.current.items.append(item)

    def _close_block(self) -> int:
        """Close the current block (opening one if flow is dangling) and return its id."""
        if self.current is None:
            self._open(BlockType.BASIC)
        block_id = self.current.block_id
        self.current = None
        self.pending = []
        return block_id

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def body(self, node: SyntaxNode | None, depth: int) -> None:
        if node is None:
            return
        if node.kind == NodeKind.BLOCK:
            if depth > self.max_depth:
                self.truncated = True
                self._append(node)
                return
            for child in node.children:
                self.statement(child, depth + 1)
        else:
            self.statement(node, depth)

    def statement(self, node: SyntaxNode, depth: int) -> None:
        if node.kind in COMPOUND_STATEMENT_KINDS and depth > self.max_depth:
            self.truncated = True
            self._append(node)
            return

        handler = _HANDLERS.get(node.kind)
        if handler is None:
            self._append(node)
        else:
            handler(self, node, depth)

    def _if(self, node: SyntaxNode, depth: int) -> None:
        self._append(node.child(Role.CONDITION))
        branch = self._close_block()

        self.pending = [(branch, EdgeLabel.TRUE)]
        self.body(node.child(Role.THEN), depth + 1)
        then_out = self._take()

        self.pending = [(branch, EdgeLabel.FALSE)]
        self.body(node.child(Role.ELSE), depth + 1)
        else_out = self._take()

        self.pending = then_out + else_out

    def _while(self, node: SyntaxNode, depth: int) -> None:
        header = self._open(BlockType.LOOP_HEADER)
        self._append(node.child(Role.CONDITION))
        self._loop_body(node, header.block_id, depth)

    def _foreach(self, node: SyntaxNode, depth: int) -> None:
        self._append(node.child(Role.RIGHT))
        header = self._open(BlockType.LOOP_HEADER)
        self._append(node.child(Role.LEFT))
        self._loop_body(node, header.block_id, depth)

    def _loop_body(self, node: SyntaxNode, header: int, depth: int) -> None:
        """Body, back-edge and exits for while/foreach (with Python's loop else)."""
        self.current = None
        self.pending = [(header, EdgeLabel.TRUE)]
        context = _JumpContext("loop")
        self._jumps.append(context)
        self.body(node.child(Role.BODY), depth + 1)
        self._jumps.pop()
        self._connect(self._take() + context.continues, header)

        self.pending = [(header, EdgeLabel.FALSE)]
        else_body = node.child(Role.ELSE)
        if else_body is not None:
            self.body(else_body, depth + 1)
            self.pending = self._take()
        self.pending = self.pending + context.breaks

    def _do(self, node: SyntaxNode, depth: int) -> None:
        entry = self._open(BlockType.LOOP_BODY)
        context = _JumpContext("loop")
        self._jumps.append(context)
        self.body(node.child(Role.BODY), depth + 1)
        self._jumps.pop()

        condition = self._open(BlockType.CONDITION, self._take() + context.continues)
        self._append(node.child(Role.CONDITION))
        self.current = None
        self._connect([(condition.block_id, EdgeLabel.TRUE)], entry.block_id)
        self.pending = [(condition.block_id, EdgeLabel.FALSE)] + context.breaks

    def _for(self, node: SyntaxNode, depth: int) -> None:
        for init in node.children_with(Role.INIT):
            self._append(init)

        header = self._open(BlockType.LOOP_HEADER)
        condition = node.child(Role.CONDITION)
        self._append(condition)
        self.current = None
        self.pending = [(header.block_id, EdgeLabel.TRUE if condition is not None else EdgeLabel.UNCONDITIONAL)]

        context = _JumpContext("loop")
        self._jumps.append(context)
        self.body(node.child(Role.BODY), depth + 1)
        self._jumps.pop()

        tail = self._take() + context.continues
        updates = node.children_with(Role.UPDATE)
        if updates:
            self._open(BlockType.UPDATE, tail)
            for update in updates:
                self._append(update)
            tail = self._take()
        self._connect(tail, header.block_id)

        exits = [(header.block_id, EdgeLabel.FALSE)] if condition is not None else []
        self.pending = exits + context.breaks

    def _switch(self, node: SyntaxNode, depth: int) -> None:
        self._append(node.child(Role.VALUE))
        dispatch = self._close_block()

        context = _JumpContext("switch")
        self._jumps.append(context)
        exits: list[tuple[int, str]] = []
        has_default = False
        for section in node.children_of_kind(NodeKind.SWITCH_SECTION):
            self._open(BlockType.CASE, [(dispatch, EdgeLabel.TRUE)])
            for label in section.children_with(Role.PATTERN):
                self._append(label)
            self._append(section.child(Role.GUARD))
            has_default = has_default or bool(section.attrs.get("is_default"))
            self.body(section.child(Role.BODY), depth + 1)
            exits.extend(self._take())
        self._jumps.pop()

        if not has_default:
            exits.append((dispatch, EdgeLabel.FALSE))
        self.pending = exits + context.breaks

    def _try(self, node: SyntaxNode, depth: int) -> None:
        final = node.child(Role.FINALLY)
        catches = node.children_of_kind(NodeKind.CATCH)
        frame = _TryFrame(jump_depth=len(self._jumps), has_handlers=bool(catches), has_finally=final is not None)
        self._trys.append(frame)

        first_guarded = len(self.blocks)
        self._open(BlockType.TRY)
        self.body(node.child(Role.BODY), depth + 1)
        last_guarded = len(self.blocks)
        normal_out = self._take()

        # else and handler bodies are no longer guarded, but still run the finally
        frame.phase = "handlers"
        else_body = node.child(Role.ELSE)
        if else_body is not None:
            self.pending = normal_out
            self.body(else_body, depth + 1)
            normal_out = self._take()

        handler_entries = []
        for catch in catches:
            entry = self._open(BlockType.CATCH, [])
            handler_entries.append(entry.block_id)
            self._append(catch.child(Role.VALUE))
            self._append(catch.child(Role.NAME))
            self._append(catch.child(Role.GUARD))
            self.body(catch.child(Role.BODY), depth + 1)
            normal_out = normal_out + self._take()
        self._trys.pop()

        targets = handler_entries
        if final is not None:
            completes_normally = bool(normal_out)
            fin = self._open(BlockType.FINALLY, normal_out + frame.entries)
            self.body(final.child(Role.BODY), depth + 1)
            out = self._take()
            for action, target in frame.resume:
                self._leave(out, action, target)
            normal_out = out if completes_normally else []
            if not targets:
                targets = [fin.block_id]

        for block_id in range(first_guarded, last_guarded):
            for target in targets:
                self.edges.append(CFGEdge(block_id, target, EdgeLabel.EXCEPTION))

        self.current = None
        self.pending = normal_out

    def _leave(self, sources: list[tuple[int, str]], action: str, target: int | None = None) -> None:
        """Route an abrupt exit through every finally it crosses.

        `target` is the index of the loop or switch context for break and
        continue. A throw stops at the first try whose body it leaves, since
        the guarded-range edges already deliver it to the handlers or finally.
        """
        label = EdgeLabel.EXCEPTION if action == "throw" else EdgeLabel.UNCONDITIONAL
        sources = [(source, label if old == EdgeLabel.FALLTHROUGH else old) for source, old in sources]
        if not sources:
            return
        for frame in reversed(self._trys):
            if target is not None and frame.jump_depth <= target:
                break
            if action == "throw" and frame.phase == "body":
                if not frame.has_handlers:
                    frame.mark(action, target)
                return
            if frame.has_finally:
                frame.entries.extend(sources)
                frame.mark(action, target)
                return

        if action == "break":
            self._jumps[target].breaks.extend(sources)
        elif action == "continue":
            self._jumps[target].continues.extend(sources)
        else:
            self._exit_edges.extend(sources)

    def _with(self, node: SyntaxNode, depth: int) -> None:
        for child in node.children:
            if child.role in (Role.VALUE, Role.LEFT):
                self._append(child)
        self.body(node.child(Role.BODY), depth + 1)

    def _block(self, node: SyntaxNode, depth: int) -> None:
        self.body(node, depth)

    def _return(self, node: SyntaxNode, depth: int) -> None:
        self._append(node)
        self._leave([(self._close_block(), EdgeLabel.UNCONDITIONAL)], "return")

    def _throw(self, node: SyntaxNode, depth: int) -> None:
        self._append(node)
        self._leave([(self._close_block(), EdgeLabel.EXCEPTION)], "throw")

    def _break(self, node: SyntaxNode, depth: int) -> None:
        self._append(node)
        if not self._jumps:
            return
        self._leave([(self._close_block(), EdgeLabel.UNCONDITIONAL)], "break", len(self._jumps) - 1)

    def _continue(self, node: SyntaxNode, depth: int) -> None:
        loop = next((i for i in reversed(range(len(self._jumps))) if self._jumps[i].kind == "loop"), None)
        self._append(node)
        if loop is None:
            return
        self._leave([(self._close_block(), EdgeLabel.UNCONDITIONAL)], "continue", loop)

    # -------------------------------------------------------------------------

    def finish(self, name: str, scope: str, span: Span | None) -> ControlFlowGraph:
        exit_block = self._new_block(BlockType.EXIT)
        self._connect(self._take() + self._exit_edges, exit_block.block_id)

        reachable = {0}
        queue = deque([0])
        succ: dict[int, list[int]] = {}
        for edge in self.edges:
            succ.setdefault(edge.source, []).append(edge.target)
        while queue:
            block_id = queue.popleft()
            for target in succ.get(block_id, ()):
                if target not in reachable:
                    reachable.add(target)
                    queue.append(target)
        for block in self.blocks:
            block.reachable = block.block_id in reachable

        return ControlFlowGraph(
            function_name=name,
            scope=scope,
            blocks=self.blocks,
            edges=self.edges,
            entry_id=0,
            exit_id=exit_block.block_id,
            span=span,
            truncated=self.truncated,
        )


_HANDLERS = {
    NodeKind.IF: _CFGBuilder._if,
    NodeKind.WHILE: _CFGBuilder._while,
    NodeKind.DO: _CFGBuilder._do,
    NodeKind.FOR: _CFGBuilder._for,
    NodeKind.FOREACH: _CFGBuilder._foreach,
    NodeKind.SWITCH: _CFGBuilder._switch,
    NodeKind.TRY: _CFGBuilder._try,
    NodeKind.WITH: _CFGBuilder._with,
    NodeKind.BLOCK: _CFGBuilder._block,
    NodeKind.RETURN: _CFGBuilder._return,
    NodeKind.THROW: _CFGBuilder._throw,
    NodeKind.BREAK: _CFGBuilder._break,
    NodeKind.CONTINUE: _CFGBuilder._continue,
}


def build_cfg(function_node: SyntaxNode, max_depth: int = DEFAULT_MAX_DEPTH) -> ControlFlowGraph:
    """Build the control flow graph of one function-like node.

    Args:
        function_node: METHOD_DECL / ACCESSOR_DECL / LAMBDA node, or the COMPILATION_UNIT for
            top-level code
        max_depth: statement nesting bound; deeper bodies become one opaque item
            and the graph is flagged truncated

    Returns:
        ControlFlowGraph with entry block 0 and a synthetic exit as the last block
    """
    builder = _CFGBuilder(max_depth)
    builder.current = builder._new_block(BlockType.ENTRY)

    if function_node.kind == NodeKind.COMPILATION_UNIT:
        name = MODULE_SCOPE
        for child in function_node.children:
            builder.statement(child, 1)
    else:
        name = function_node.name or function_node.kind
        builder.body(function_node.child(Role.BODY), 0)

    graph = builder.finish(name, function_node.attrs.get("scope", name), function_node.span)
    if graph.truncated:
        logger.debug(f"[CFG] {name}: nesting deeper than {max_depth}, body truncated")
    return graph


def function_nodes(root: SyntaxNode) -> list[SyntaxNode]:
    """Every method and accessor body in document order."""
    return [node for node in root.walk() if node.kind in FUNCTION_KINDS]


def has_executable_top_level(root: SyntaxNode) -> bool:
    """True when the root holds statements that run at load time (a lone docstring does not count)."""
    for child in root.children:
        if child.kind in COMPOUND_STATEMENT_KINDS or child.kind in (NodeKind.LOCAL_DECL, NodeKind.RETURN, NodeKind.THROW):
            return True
        if child.kind == NodeKind.EXPRESSION_STATEMENT:
            if not (len(child.children) == 1 and child.children[0].kind == NodeKind.LITERAL):
                return True
    return False
