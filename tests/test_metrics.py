"""Tests for code metrics."""

import pytest

from codemodeler.analysis.metrics import compute_metrics, decision_points


class TestScenario:
    def test_fake_csharp_tree(self, csharp_scenario):
        metrics = compute_metrics(csharp_scenario.root)
        assert metrics.cyclomatic_complexity == 2
        assert metrics.max_nesting == 1
        assert metrics.statements == 3
        assert metrics.types == 1
        assert metrics.methods == 1
        assert metrics.lines == 1
        (function,) = metrics.functions
        assert function.name == "M"
        assert function.complexity == 2
        assert function.parameters == 0
        assert metrics.max_method_complexity == 2

    def test_python_provider(self, python_scenario):
        metrics = compute_metrics(python_scenario.root)
        assert metrics.cyclomatic_complexity == 2
        assert metrics.lines == 5
        (function,) = metrics.functions
        assert function.parameters == 1
        assert function.start_line == 2


class TestComplexity:
    def test_if_while_and(self, parse_python):
        tree = parse_python(
            "def f(a, b):\n"
            "    if a and b:\n"
            "        while a:\n"
            "            a -= 1\n"
            "    return a\n"
        )
        metrics = compute_metrics(tree.root)
        assert metrics.cyclomatic_complexity == 4
        assert metrics.max_nesting == 2
        assert metrics.functions[0].parameters == 2

    def test_elif_does_not_deepen(self, parse_python):
        tree = parse_python(
            "def f(a):\n"
            "    if a == 1:\n"
            "        return 1\n"
            "    elif a == 2:\n"
            "        return 2\n"
            "    else:\n"
            "        return 3\n"
        )
        metrics = compute_metrics(tree.root)
        assert metrics.cyclomatic_complexity == 3
        assert metrics.max_nesting == 1

    def test_nested_if_deepens(self, parse_python):
        tree = parse_python(
            "def f(a):\n"
            "    if a:\n"
            "        if a > 1:\n"
            "            return 2\n"
        )
        assert compute_metrics(tree.root).max_nesting == 2

    def test_nested_function_measured_separately(self, parse_python):
        tree = parse_python(
            "def outer(x):\n"
            "    def inner():\n"
            "        if x:\n"
            "            return 1\n"
            "    return inner\n"
        )
        metrics = compute_metrics(tree.root)
        by_name = {f.name: f for f in metrics.functions}
        assert by_name["outer"].complexity == 1
        assert by_name["inner"].complexity == 2
        assert metrics.cyclomatic_complexity == 2
        assert [f.name for f in metrics.functions] == ["outer", "inner"]

    def test_straight_line_module(self, parse_python):
        metrics = compute_metrics(parse_python("x = 1\ny = x\n").root)
        assert metrics.cyclomatic_complexity == 1
        assert metrics.functions == []
        assert metrics.max_method_complexity == 0

    @pytest.mark.parametrize(
        "source, expected",
        [
            ("x = a if b else c\n", 2),
            ("for i in items:\n    pass\n", 2),
            ("try:\n    pass\nexcept A:\n    pass\nexcept B:\n    pass\n", 3),
            ("x = a or b or c\n", 3),
        ],
    )
    def test_decision_points(self, parse_python, source, expected):
        assert compute_metrics(parse_python(source).root).cyclomatic_complexity == expected

    def test_decision_points_of_plain_node(self, csharp_scenario):
        assert decision_points(csharp_scenario.root) == 0


class TestCounts:
    def test_class_members(self, parse_python):
        tree = parse_python(
            "class K:\n"
            "    limit = 3\n"
            "\n"
            "    def a(self):\n"
            "        pass\n"
            "\n"
            "    def b(self, v):\n"
            "        pass\n"
        )
        metrics = compute_metrics(tree.root)
        assert metrics.types == 1
        assert metrics.methods == 2
        assert metrics.fields == 1

    def test_to_dict_is_plain_data(self, python_scenario):
        data = compute_metrics(python_scenario.root).to_dict()
        assert data["functions"][0]["name"] == "M"
        assert set(data) >= {"lines", "statements", "cyclomatic_complexity", "max_nesting", "functions"}
