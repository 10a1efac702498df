"""Tests for def-use chains and reaching definitions."""

from codemodeler.analysis.cfg import build_cfg
from codemodeler.analysis.dfg import build_dfg, reverse_postorder, solve_reaching_definitions

from conftest import method_named


def dfg_for(tree, name=None):
    node = tree.root if name is None else method_named(tree.root, name)
    return build_dfg(build_cfg(node), tree.model)


def uses_named(dfg, key, block_id=None):
    return [u for u in dfg.uses if u.symbol == key and (block_id is None or u.block_id == block_id)]


class TestScenario:
    def test_condition_reads_initializer(self, csharp_scenario):
        dfg = dfg_for(csharp_scenario, "M")
        assert [(d.symbol, d.block_id, d.synthetic) for d in dfg.definitions] == [
            ("C.M::x", 0, False),
            ("C.M::x", 1, False),
        ]
        assert [(u.symbol, u.block_id) for u in dfg.uses] == [("C.M::x", 0)]
        assert [(e.def_id, e.use_id) for e in dfg.edges] == [(0, 0)]

    def test_inner_assignment_reaches_nothing(self, csharp_scenario):
        dfg = dfg_for(csharp_scenario, "M")
        assert [u.use_id for u in dfg.uses_of(0)] == [0]
        assert dfg.uses_of(1) == []

    def test_block_summaries(self, csharp_scenario):
        dfg = dfg_for(csharp_scenario, "M")
        assert dfg.block_definitions == {0: ["C.M::x"], 1: ["C.M::x"], 2: []}
        assert dfg.block_uses == {0: ["C.M::x"], 1: [], 2: []}

    def test_both_definitions_reach_exit(self, csharp_scenario):
        dfg = dfg_for(csharp_scenario, "M")
        assert dfg.reaching.reach_in[2] == frozenset({0, 1})
        assert dfg.reaching.reach_out[1] == frozenset({1})

    def test_python_parameter_gets_synthetic_definition(self, python_scenario):
        dfg = dfg_for(python_scenario, "M")
        synthetic = [d for d in dfg.definitions if d.synthetic]
        assert [(d.symbol, d.block_id) for d in synthetic] == [("C.M::self", 0)]
        (use,) = uses_named(dfg, "C.M::x")
        (source,) = dfg.definitions_of(use.use_id)
        assert source.block_id == 0
        assert not source.synthetic

    def test_to_dict_shape(self, csharp_scenario):
        data = dfg_for(csharp_scenario, "M").to_dict()
        assert data["function"] == "M"
        assert data["scope"] == "C.M"
        assert data["edges"] == [{"def": 0, "use": 0}]
        assert [b["id"] for b in data["blocks"]] == [0, 1, 2]
        assert data["blocks"][2]["in"] == [0, 1]
        assert data["iterations"] >= 1


class TestLoops:
    SOURCE = (
        "def f(n):\n"
        "    total = 0\n"
        "    while n > 0:\n"
        "        total += n\n"
        "        n -= 1\n"
        "    return total\n"
    )

    def test_back_edge_carries_definitions(self, parse_python):
        dfg = dfg_for(parse_python(self.SOURCE), "f")
        defs = {(d.symbol, d.block_id, d.synthetic): d.def_id for d in dfg.definitions}
        param_n = defs[("f::n", 0, True)]
        loop_n = defs[("f::n", 2, False)]
        init_total = defs[("f::total", 0, False)]
        loop_total = defs[("f::total", 2, False)]

        (header_use,) = uses_named(dfg, "f::n", 1)
        assert {d.def_id for d in dfg.definitions_of(header_use.use_id)} == {param_n, loop_n}

        (return_use,) = uses_named(dfg, "f::total", 3)
        assert {d.def_id for d in dfg.definitions_of(return_use.use_id)} == {init_total, loop_total}

    def test_augmented_assignment_reads_before_writing(self, parse_python):
        dfg = dfg_for(parse_python(self.SOURCE), "f")
        (use,) = uses_named(dfg, "f::total", 2)
        sources = dfg.definitions_of(use.use_id)
        assert {d.block_id for d in sources} == {0, 2}

    def test_fixpoint_takes_more_than_one_pass(self, parse_python):
        dfg = dfg_for(parse_python(self.SOURCE), "f")
        assert dfg.reaching.iterations >= 2

    def test_seeded_rerun_is_a_no_op(self, parse_python):
        tree = parse_python(self.SOURCE)
        cfg = build_cfg(method_named(tree.root, "f"))
        dfg = build_dfg(cfg, tree.model)
        again = solve_reaching_definitions(cfg, dfg.gen, dfg.kill, seed=dfg.reaching)
        assert again.iterations == 1
        assert again.reach_in == dfg.reaching.reach_in
        assert again.reach_out == dfg.reaching.reach_out

    def test_reverse_postorder_starts_at_entry(self, parse_python):
        cfg = build_cfg(method_named(parse_python(self.SOURCE).root, "f"))
        order = reverse_postorder(cfg)
        assert order[0] == cfg.entry_id
        assert sorted(order) == [b.block_id for b in cfg.blocks]


class TestScoping:
    def test_use_before_assignment_is_undefined_at_entry(self, parse_python):
        dfg = dfg_for(parse_python("def f():\n    print(y)\n    y = 1\n"), "f")
        (use,) = uses_named(dfg, "f::y")
        assert use.undefined_at_entry is True
        assert dfg.definitions_of(use.use_id) == []

    def test_captured_variable_defined_at_entry(self, parse_python):
        tree = parse_python(
            "def outer():\n"
            "    n = 1\n"
            "    def inner():\n"
            "        return n\n"
            "    return inner\n"
        )
        inner = dfg_for(tree, "inner")
        (use,) = uses_named(inner, "outer::n")
        (source,) = inner.definitions_of(use.use_id)
        assert source.synthetic is True
        assert use.undefined_at_entry is False

    def test_nested_function_body_not_attributed_to_outer(self, parse_python):
        tree = parse_python(
            "def outer():\n"
            "    n = 1\n"
            "    def inner():\n"
            "        return n\n"
            "    return inner\n"
        )
        outer = dfg_for(tree, "outer")
        assert uses_named(outer, "outer::n") == []

    def test_lambda_body_skipped(self, parse_python):
        tree = parse_python("def f(a):\n    g = lambda b: a + b\n    return g\n")
        dfg = dfg_for(tree, "f")
        assert uses_named(dfg, "f::a") == []
        assert len(uses_named(dfg, "f::g")) == 1

    def test_module_graph_tracks_globals(self, parse_python):
        tree = parse_python("x = 1\nif x:\n    x = 2\nprint(x)\n")
        dfg = dfg_for(tree)
        assert dfg.scope == "<module>"
        last = uses_named(dfg, "<module>::x")[-1]
        assert len(dfg.definitions_of(last.use_id)) == 2

    def test_untracked_symbols_ignored(self, parse_python):
        tree = parse_python("import os\n\ndef f():\n    return os.getcwd()\n")
        dfg = dfg_for(tree, "f")
        assert dfg.uses == []
        assert dfg.definitions == []
