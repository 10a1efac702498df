"""Tests for the tree-sitter C# provider."""

import json

import pytest

pytest.importorskip("tree_sitter_language_pack")

from codemodeler.analysis.analyzer import CodeAnalyzer  # noqa: E402
from codemodeler.analysis.anonymizer import AnonymizationScope, anonymize  # noqa: E402
from codemodeler.analysis.cfg import EdgeLabel, build_cfg, function_nodes  # noqa: E402
from codemodeler.analysis.dfg import build_dfg  # noqa: E402
from codemodeler.analysis.metrics import compute_metrics  # noqa: E402
from codemodeler.syntax.csharp_provider import CSharpSyntaxProvider  # noqa: E402
from codemodeler.syntax.model import Document, NodeKind, SymbolKind  # noqa: E402
from codemodeler.syntax.registry import ProviderRegistry  # noqa: E402

from conftest import SCENARIO_CSHARP, edge_set, identifiers, method_named  # noqa: E402


@pytest.fixture(scope="module")
def provider():
    return CSharpSyntaxProvider()


def parse(provider, text):
    tree = provider.parse(Document(path="Sample.cs", text=text))
    assert tree is not None
    return tree


class TestParse:
    @pytest.mark.parametrize("text", [None, "", "   \n"])
    def test_blank(self, provider, text):
        assert provider.parse(Document(path="a.cs", text=text)) is None

    def test_scenario_symbols(self, provider):
        tree = parse(provider, SCENARIO_CSHARP)
        kinds = {s.name: s.kind for s in tree.model.symbols}
        assert kinds == {"C": SymbolKind.TYPE, "M": SymbolKind.METHOD, "x": SymbolKind.LOCAL}
        (x,) = [s for s in tree.model.symbols if s.name == "x"]
        assert x.owner == "C.M"

    def test_scenario_occurrences(self, provider):
        tree = parse(provider, SCENARIO_CSHARP)
        nodes = identifiers(tree.root, "x")
        assert len(nodes) == 3
        assert len({id(n.symbol) for n in nodes}) == 1
        assert nodes[0].is_declaration

    def test_scenario_cfg(self, provider):
        tree = parse(provider, SCENARIO_CSHARP)
        cfg = build_cfg(method_named(tree.root, "M"))
        assert edge_set(cfg) == {(0, 1, EdgeLabel.TRUE), (1, 2, EdgeLabel.FALLTHROUGH), (0, 2, EdgeLabel.FALSE)}

    def test_this_member_binds_to_field(self, provider):
        tree = parse(provider, "class K { int total; void Set(int v) { this.total = v; } }")
        nodes = identifiers(tree.root, "total")
        assert len(nodes) == 2
        assert {n.symbol.kind for n in nodes} == {SymbolKind.FIELD}
        assert nodes[0].symbol is nodes[1].symbol

    def test_constructor_name_is_the_type(self, provider):
        tree = parse(provider, "class K { public K() { } }")
        nodes = identifiers(tree.root, "K")
        assert len(nodes) == 2
        assert nodes[0].symbol is nodes[1].symbol
        assert nodes[0].symbol.kind == SymbolKind.TYPE

    def test_using_directive_not_renamable(self, provider):
        tree = parse(provider, "using System;\nclass K { }\n")
        assert tree.root.children[0].kind == NodeKind.IMPORT
        assert all(s.name != "System" or s.external for s in tree.model.symbols)


class TestAccessors:
    SOURCE = (
        "class K {\n"
        "    int total;\n"
        "    public int Total {\n"
        "        get { return total; }\n"
        "        set { if (value > 0) { total = value; } }\n"
        "    }\n"
        "}\n"
    )

    def test_each_accessor_is_a_function_body(self, provider):
        tree = parse(provider, self.SOURCE)
        accessors = function_nodes(tree.root)
        assert [n.name for n in accessors] == ["get_Total", "set_Total"]
        assert {n.kind for n in accessors} == {NodeKind.ACCESSOR_DECL}

    def test_setter_value_is_an_implicit_parameter(self, provider):
        tree = parse(provider, self.SOURCE)
        nodes = identifiers(tree.root, "value")
        assert len(nodes) == 2
        assert nodes[0].symbol is nodes[1].symbol
        assert nodes[0].symbol.kind == SymbolKind.PARAMETER
        assert nodes[0].symbol.owner == method_named(tree.root, "set_Total").attrs["scope"]

    def test_setter_graphs(self, provider):
        tree = parse(provider, self.SOURCE)
        cfg = build_cfg(method_named(tree.root, "set_Total"))
        assert any(e.label == EdgeLabel.TRUE for e in cfg.edges)
        dfg = build_dfg(cfg, tree.model)
        value_uses = [u for u in dfg.uses if u.symbol.endswith("::value")]
        assert len(value_uses) == 2
        for use in value_uses:
            (source,) = dfg.definitions_of(use.use_id)
            assert source.synthetic is True

    def test_accessors_measured_but_not_counted_as_methods(self, provider):
        metrics = compute_metrics(parse(provider, self.SOURCE).root)
        assert metrics.methods == 0
        assert metrics.properties == 1
        assert [(f.name, f.complexity) for f in metrics.functions] == [("get_Total", 1), ("set_Total", 2)]

    def test_value_keeps_its_name(self, provider):
        tree = parse(provider, self.SOURCE)
        outcome = anonymize(tree.root, tree.text, AnonymizationScope.DECLARATIONS)
        assert "value" not in outcome.mapping
        assert "(value > 0)" in outcome.normalized_text


class TestNamedArguments:
    def test_parameter_used_by_name_keeps_its_name(self, provider):
        tree = parse(provider, "class K { int F(int count) { return count; } int G() { return F(count: 1); } }")
        outcome = anonymize(tree.root, tree.text, AnonymizationScope.LOCALS)
        assert "count" not in outcome.mapping
        assert outcome.normalized_text == tree.text


class TestAnalyze:
    def test_scenario_end_to_end(self, provider):
        analyzer = CodeAnalyzer(registry=ProviderRegistry([provider]))
        result = analyzer.analyze(Document(path="C.cs", text=SCENARIO_CSHARP))
        assert result.failures == ()
        assert result.normalized_code == "class C { void M() { int var_1 = 1; if (var_1 > 0) { var_1 = 2; } } }"
        assert json.loads(result.anonymization_map_json) == {"x": "var_1"}
        assert json.loads(result.metrics_json)["cyclomatic_complexity"] == 2
