"""Data flow graph: def-use edges from reaching definitions.

Tracked symbols are variables (locals, parameters, module globals) that are
not external. For the body being analyzed each referenced symbol is either:
- own:      declared by this body (symbol.owner == graph scope)
- nested:   declared by a lambda / comprehension / local function inside it (ignored)
- captured: declared further out; gets a synthetic definition at entry

Parameters of the body also get synthetic entry definitions.

Within one CFG item, uses are processed before definitions, so `x = x + 1`
reads the previous x and READ_WRITE occurrences count as both.
"""

from dataclasses import dataclass, field
from typing import Any

from codemodeler.syntax.model import (
    FUNCTION_KINDS,
    MODULE_SCOPE,
    VARIABLE_SYMBOL_KINDS,
    Access,
    NodeKind,
    Role,
    SemanticModel,
    Symbol,
    SymbolKind,
    SyntaxNode,
)
from codemodeler.utils.logging import logger

from .cfg import ControlFlowGraph

_READS = (Access.READ, Access.READ_WRITE)
_WRITES = (Access.WRITE, Access.READ_WRITE)
_NESTED_BODIES = FUNCTION_KINDS | {NodeKind.LAMBDA}


@dataclass(frozen=True)
class Definition:
    def_id: int
    symbol: str
    block_id: int
    line: int
    synthetic: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.def_id,
            "symbol": self.symbol,
            "block": self.block_id,
            "line": self.line,
            "synthetic": self.synthetic,
        }


@dataclass(frozen=True)
class Use:
    use_id: int
    symbol: str
    block_id: int
    line: int
    undefined_at_entry: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.use_id,
            "symbol": self.symbol,
            "block": self.block_id,
            "line": self.line,
            "undefined_at_entry": self.undefined_at_entry,
        }


@dataclass(frozen=True)
class DefUseEdge:
    def_id: int
    use_id: int


@dataclass
class ReachingDefinitions:
    """Fixpoint solution: def ids reaching each block boundary."""

    reach_in: dict[int, frozenset[int]]
    reach_out: dict[int, frozenset[int]]
    iterations: int = 0


@dataclass
class DataFlowGraph:
    function_name: str
    scope: str
    definitions: list[Definition] = field(default_factory=list)
    uses: list[Use] = field(default_factory=list)
    edges: list[DefUseEdge] = field(default_factory=list)
    block_definitions: dict[int, list[str]] = field(default_factory=dict)
    block_uses: dict[int, list[str]] = field(default_factory=dict)
    gen: dict[int, set[int]] = field(default_factory=dict)
    kill: dict[int, set[int]] = field(default_factory=dict)
    reaching: ReachingDefinitions | None = None

    def uses_of(self, def_id: int) -> list[Use]:
        targets = {e.use_id for e in self.edges if e.def_id == def_id}
        return [u for u in self.uses if u.use_id in targets]

    def definitions_of(self, use_id: int) -> list[Definition]:
        sources = {e.def_id for e in self.edges if e.use_id == use_id}
        return [d for d in self.definitions if d.def_id in sources]

    def to_dict(self) -> dict[str, Any]:
        reaching = self.reaching
        return {
            "function": self.function_name,
            "scope": self.scope,
            "iterations": reaching.iterations if reaching else 0,
            "definitions": [d.to_dict() for d in self.definitions],
            "uses": [u.to_dict() for u in self.uses],
            "edges": [{"def": e.def_id, "use": e.use_id} for e in self.edges],
            "blocks": [
                {
                    "id": block_id,
                    "defs": self.block_definitions[block_id],
                    "uses": self.block_uses[block_id],
                    "in": sorted(reaching.reach_in[block_id]) if reaching else [],
                    "out": sorted(reaching.reach_out[block_id]) if reaching else [],
                }
                for block_id in sorted(self.block_definitions)
            ],
        }


def _classify(symbol: Symbol | None, own_scope: str) -> str | None:
    """own / captured / None (untracked or nested)."""
    if symbol is None or symbol.external or symbol.kind not in VARIABLE_SYMBOL_KINDS:
        return None
    if symbol.owner == own_scope:
        return "own"
    if own_scope == MODULE_SCOPE or symbol.owner.startswith(own_scope + "."):
        return None
    return "captured"


def _item_events(item: SyntaxNode, own_scope: str) -> tuple[list[SyntaxNode], list[SyntaxNode]]:
    """Identifier reads and writes of one item in document order.

    Bodies of nested functions and lambdas are skipped; their defaults and
    decorators are walked.
    """
    uses, defs = [], []
    stack = [item]
    while stack:
        node = stack.pop()
        children = node.children
        if node.kind in _NESTED_BODIES:
            children = [c for c in children if c.role != Role.BODY]
        stack.extend(reversed(children))
        if node.kind != NodeKind.IDENTIFIER or _classify(node.symbol, own_scope) is None:
            continue
        if node.access in _READS:
            uses.append(node)
        if node.access in _WRITES:
            defs.append(node)
    return uses, defs


def reverse_postorder(cfg: ControlFlowGraph) -> list[int]:
    """Reverse postorder from entry, then unreachable blocks in id order."""
    succ = cfg.successor_map()
    visited = {cfg.entry_id}
    postorder = []
    stack = [(cfg.entry_id, iter(succ[cfg.entry_id]))]
    while stack:
        block_id, children = stack[-1]
        advanced = False
        for child in children:
            if child not in visited:
                visited.add(child)
                stack.append((child, iter(succ[child])))
                advanced = True
                break
        if not advanced:
            stack.pop()
            postorder.append(block_id)
    order = list(reversed(postorder))
    order.extend(b.block_id for b in cfg.blocks if b.block_id not in visited)
    return order


def solve_reaching_definitions(
    cfg: ControlFlowGraph,
    gen: dict[int, set[int]],
    kill: dict[int, set[int]],
    seed: ReachingDefinitions | None = None,
) -> ReachingDefinitions:
    """Iterate in[b] = U out[p], out[b] = gen[b] U (in[b] - kill[b]) to a fixpoint.

    Args:
        cfg: graph supplying block order and predecessors
        gen: def ids generated per block
        kill: def ids killed per block
        seed: previous solution to start from; re-running on a fixpoint's
            own output finishes after one pass with nothing changed

    Returns:
        ReachingDefinitions with the number of passes taken
    """
    order = reverse_postorder(cfg)
    preds = cfg.predecessor_map()

    if seed is not None:
        reach_in = {b: set(seed.reach_in.get(b, ())) for b in order}
        reach_out = {b: set(seed.reach_out.get(b, ())) for b in order}
    else:
        reach_in = {b: set() for b in order}
        reach_out = {b: set(gen.get(b, ())) for b in order}

    iterations = 0
    changed = True
    while changed:
        changed = False
        iterations += 1
        for block_id in order:
            new_in = set()
            for pred in preds[block_id]:
                new_in |= reach_out[pred]
            new_out = gen.get(block_id, set()) | (new_in - kill.get(block_id, set()))
            if new_in != reach_in[block_id] or new_out != reach_out[block_id]:
                reach_in[block_id] = new_in
                reach_out[block_id] = new_out
                changed = True

    return ReachingDefinitions(
        reach_in={b: frozenset(s) for b, s in reach_in.items()},
        reach_out={b: frozenset(s) for b, s in reach_out.items()},
        iterations=iterations,
    )


def build_dfg(cfg: ControlFlowGraph, bindings: SemanticModel) -> DataFlowGraph:
    """Build def-use edges for one control flow graph.

    Args:
        cfg: graph of the body
        bindings: semantic model of the tree the graph was built from

    Returns:
        DataFlowGraph with definitions, uses, edges and the reaching sets
    """
    own_scope = cfg.scope
    dfg = DataFlowGraph(function_name=cfg.function_name, scope=own_scope)

    # Pass 1: events per block item
    events: dict[int, list[tuple[list[SyntaxNode], list[SyntaxNode]]]] = {}
    captured: dict[int, Symbol] = {}
    for block in cfg.blocks:
        block_events = []
        for item in block.items:
            uses, defs = _item_events(item, own_scope)
            block_events.append((uses, defs))
            for node in uses + defs:
                if _classify(node.symbol, own_scope) == "captured":
                    captured.setdefault(node.symbol.symbol_id, node.symbol)
        events[block.block_id] = block_events

    # Synthetic entry definitions
    entry_symbols = [
        s for s in bindings.symbols if s.kind == SymbolKind.PARAMETER and s.owner == own_scope and not s.external
    ]
    entry_symbols.extend(captured[k] for k in sorted(captured))
    entry_line = cfg.span.start_line if cfg.span else 0
    entry_defs: list[Definition] = []
    for symbol in entry_symbols:
        definition = Definition(len(dfg.definitions), symbol.key, cfg.entry_id, entry_line, synthetic=True)
        dfg.definitions.append(definition)
        entry_defs.append(definition)

    # Pass 2: definitions in block order; gen / kill
    item_defs: dict[tuple[int, int], list[Definition]] = {}
    block_def_ids: dict[int, list[Definition]] = {b.block_id: [] for b in cfg.blocks}
    block_def_ids[cfg.entry_id].extend(entry_defs)
    for block in cfg.blocks:
        for index, (_, defs) in enumerate(events[block.block_id]):
            created = []
            for node in defs:
                definition = Definition(len(dfg.definitions), node.symbol.key, block.block_id, node.span.start_line)
                dfg.definitions.append(definition)
                created.append(definition)
            item_defs[(block.block_id, index)] = created
            block_def_ids[block.block_id].extend(created)

    by_symbol: dict[str, set[int]] = {}
    for definition in dfg.definitions:
        by_symbol.setdefault(definition.symbol, set()).add(definition.def_id)

    gen: dict[int, set[int]] = {}
    kill: dict[int, set[int]] = {}
    for block in cfg.blocks:
        last: dict[str, int] = {}
        for definition in block_def_ids[block.block_id]:
            last[definition.symbol] = definition.def_id
        gen[block.block_id] = set(last.values())
        killed = set()
        for symbol in last:
            killed |= by_symbol[symbol]
        kill[block.block_id] = killed

    dfg.gen, dfg.kill = gen, kill
    reaching = solve_reaching_definitions(cfg, gen, kill)
    dfg.reaching = reaching

    # Pass 3: walk items with the reaching set updated incrementally
    definitions = dfg.definitions
    for block in cfg.blocks:
        block_id = block.block_id
        reaching_now = set(reaching.reach_in[block_id])
        if block_id == cfg.entry_id:
            for definition in entry_defs:
                reaching_now -= by_symbol[definition.symbol]
                reaching_now.add(definition.def_id)

        defined_keys: set[str] = set()
        used_keys: set[str] = set()
        for index, (uses, _) in enumerate(events[block_id]):
            for node in uses:
                key = node.symbol.key
                sources = sorted(d for d in reaching_now if definitions[d].symbol == key)
                use = Use(len(dfg.uses), key, block_id, node.span.start_line, undefined_at_entry=not sources)
                dfg.uses.append(use)
                used_keys.add(key)
                dfg.edges.extend(DefUseEdge(d, use.use_id) for d in sources)
            for definition in item_defs[(block_id, index)]:
                reaching_now -= by_symbol[definition.symbol]
                reaching_now.add(definition.def_id)
                defined_keys.add(definition.symbol)

        dfg.block_definitions[block_id] = sorted(defined_keys)
        dfg.block_uses[block_id] = sorted(used_keys)

    logger.debug(
        f"[DFG] {cfg.function_name}: {len(dfg.definitions)} defs, {len(dfg.uses)} uses, "
        f"{len(dfg.edges)} edges, {reaching.iterations} passes"
    )
    return dfg
