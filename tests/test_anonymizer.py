"""Tests for identifier anonymization."""

import ast

import pytest

from codemodeler.analysis.anonymizer import AnonymizationScope, anonymize

from conftest import SCENARIO_CSHARP, SCENARIO_PYTHON


def run(tree, scope=AnonymizationScope.LOCALS):
    return anonymize(tree.root, tree.text, scope)


class TestLocals:
    def test_csharp_scenario(self, csharp_scenario):
        outcome = run(csharp_scenario)
        assert outcome.normalized_text == "class C { void M() { int var_1 = 1; if (var_1 > 0) { var_1 = 2; } } }"
        assert outcome.mapping == {"x": "var_1"}

    def test_python_scenario(self, python_scenario):
        outcome = run(python_scenario)
        assert outcome.normalized_text == (
            "class C:\n"
            "    def M(param_1):\n"
            "        var_1 = 1\n"
            "        if var_1 > 0:\n"
            "            var_1 = 2\n"
        )
        assert outcome.mapping == {"self": "param_1", "x": "var_1"}

    def test_module_globals_untouched(self, parse_python):
        source = "count = 0\n\ndef f():\n    return count\n"
        outcome = run(parse_python(source))
        assert outcome.normalized_text == source
        assert outcome.mapping == {}

    def test_comments_and_strings_preserved(self, parse_python):
        outcome = run(parse_python("def f(x):\n    # x is here\n    return 'x' + x\n"))
        assert outcome.normalized_text == "def f(param_1):\n    # x is here\n    return 'x' + param_1\n"

    def test_existing_token_names_are_reserved(self, parse_python):
        outcome = run(parse_python("def f(var_1):\n    x = var_1\n    return x\n"))
        assert outcome.mapping == {"var_1": "param_1", "x": "var_2"}
        assert outcome.normalized_text == "def f(param_1):\n    var_2 = param_1\n    return var_2\n"

    def test_same_name_in_two_scopes_is_qualified(self, parse_python):
        tree = parse_python(
            "def f():\n"
            "    a = 1\n"
            "    return a\n"
            "\n"
            "def g():\n"
            "    a = 2\n"
            "    return a\n"
        )
        outcome = run(tree)
        assert outcome.mapping == {"f::a": "var_1", "g::a": "var_2"}
        assert "var_1 = 1" in outcome.normalized_text
        assert "var_2 = 2" in outcome.normalized_text


class TestKeywordArguments:
    def test_call_site_keyword_follows_the_parameter(self, parse_python):
        outcome = run(parse_python("def f(a):\n    return a\n\nf(a=1)\n"))
        assert outcome.mapping == {"a": "param_1"}
        assert outcome.normalized_text == "def f(param_1):\n    return param_1\n\nf(param_1=1)\n"

    def test_method_called_through_self(self, parse_python):
        tree = parse_python(
            "class Box:\n"
            "    def put(self, item):\n"
            "        return item\n"
            "\n"
            "    def fill(self):\n"
            "        return self.put(item=1)\n"
        )
        outcome = run(tree)
        token = outcome.mapping["item"]
        assert f".put({token}=1)" in outcome.normalized_text
        ast.parse(outcome.normalized_text)

    def test_constructor_keyword_follows_init_parameter(self, parse_python):
        tree = parse_python(
            "class Pen:\n"
            "    def __init__(self, size):\n"
            "        self.size = size\n"
            "\n"
            "pen = Pen(size=2)\n"
        )
        outcome = run(tree)
        token = outcome.mapping["size"]
        assert f"Pen({token}=2)" in outcome.normalized_text
        assert ".size = " + token in outcome.normalized_text

    def test_unknown_callee_keeps_parameter_name(self, parse_python):
        source = "def f(key):\n    return key\n\nsorted([], key=len)\n"
        outcome = run(parse_python(source))
        assert outcome.mapping == {}
        assert outcome.normalized_text == source

    def test_fields_passed_by_keyword_keep_their_name(self, parse_python):
        tree = parse_python("class Point:\n    x: int = 0\n\nPoint(x=1)\n")
        outcome = run(tree, AnonymizationScope.DECLARATIONS)
        assert "x" not in outcome.mapping
        assert outcome.normalized_text == "class Type_1:\n    x: int = 0\n\nType_1(x=1)\n"


class TestDeclarations:
    def test_csharp_scenario(self, csharp_scenario):
        outcome = run(csharp_scenario, AnonymizationScope.DECLARATIONS)
        assert outcome.normalized_text == (
            "class Type_1 { void method_1() { int var_1 = 1; if (var_1 > 0) { var_1 = 2; } } }"
        )
        assert outcome.mapping == {"C": "Type_1", "M": "method_1", "x": "var_1"}

    def test_globals_and_functions(self, parse_python):
        outcome = run(parse_python("count = 0\n\ndef f():\n    return count\n"), AnonymizationScope.DECLARATIONS)
        assert outcome.normalized_text == "var_1 = 0\n\ndef func_1():\n    return var_1\n"

    def test_dunder_methods_and_fields(self, parse_python):
        tree = parse_python("class K:\n    def __init__(self):\n        self.value = 1\n")
        outcome = run(tree, AnonymizationScope.DECLARATIONS)
        assert outcome.normalized_text == "class Type_1:\n    def __init__(param_1):\n        param_1.field_1 = 1\n"
        assert "__init__" not in outcome.mapping

    def test_imports_and_library_members_untouched(self, parse_python):
        tree = parse_python("import os\n\ndef f(p):\n    return os.path.join(p)\n")
        outcome = run(tree, AnonymizationScope.DECLARATIONS)
        assert outcome.normalized_text == "import os\n\ndef func_1(param_1):\n    return os.path.join(param_1)\n"


class TestGeneral:
    def test_unknown_scope_rejected(self, python_scenario):
        with pytest.raises(ValueError):
            run(python_scenario, "everything")

    def test_deterministic(self, parse_python):
        first = run(parse_python(SCENARIO_PYTHON), AnonymizationScope.DECLARATIONS)
        second = run(parse_python(SCENARIO_PYTHON), AnonymizationScope.DECLARATIONS)
        assert first == second

    def test_input_text_unchanged(self, csharp_scenario):
        run(csharp_scenario)
        assert csharp_scenario.text == SCENARIO_CSHARP

    def test_mapping_is_injective(self, parse_python):
        tree = parse_python(
            "class Box:\n"
            "    def put(self, item, count):\n"
            "        total = item * count\n"
            "        return [total for _ in range(count)]\n"
        )
        mapping = run(tree, AnonymizationScope.DECLARATIONS).mapping
        assert len(set(mapping.values())) == len(mapping)

    def test_normalized_python_still_parses(self, parse_python):
        tree = parse_python(
            "import json\n"
            "\n"
            "def load(path, strict=False):\n"
            "    with open(path) as handle:\n"
            "        data = json.load(handle)\n"
            "    return {k: v for k, v in data.items() if v or not strict}\n"
        )
        outcome = run(tree, AnonymizationScope.DECLARATIONS)
        assert ast.parse(outcome.normalized_text)
        assert "json.load" in outcome.normalized_text
