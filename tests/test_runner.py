"""Tests for the batch runner."""

import json

import pytest

from codemodeler.analysis.analyzer import CodeAnalyzer
from codemodeler.pipeline.runner import analyze_paths, collect_source_files, write_ndjson
from codemodeler.syntax.python_provider import PythonSyntaxProvider
from codemodeler.syntax.registry import ProviderRegistry
from codemodeler.utils.helpers import compute_text_hash

from conftest import SCENARIO_PYTHON


@pytest.fixture
def source_tree(tmp_path):
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "__pycache__").mkdir()
    (tmp_path / "a.py").write_text(SCENARIO_PYTHON, encoding="utf-8")
    (tmp_path / "pkg" / "b.py").write_text("def f(n):\n    return n + 1\n", encoding="utf-8")
    (tmp_path / "pkg" / "empty.py").write_text("", encoding="utf-8")
    (tmp_path / "pkg" / "__pycache__" / "cached.py").write_text("x = 1\n", encoding="utf-8")
    (tmp_path / "Program.cs").write_text("class P { }\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("not code\n", encoding="utf-8")
    (tmp_path / "big.py").write_text("x = 1\n" * 200, encoding="utf-8")
    return tmp_path


@pytest.fixture
def analyzer():
    return CodeAnalyzer(registry=ProviderRegistry([PythonSyntaxProvider()]))


def relative(paths, root):
    return [p.relative_to(root).as_posix() for p in paths]


class TestCollect:
    def test_sorted_and_filtered(self, source_tree):
        files = collect_source_files(source_tree, extensions=(".py", ".cs"))
        assert relative(files, source_tree) == ["Program.cs", "a.py", "big.py", "pkg/b.py", "pkg/empty.py"]

    def test_max_file_size(self, source_tree):
        files = collect_source_files(source_tree, extensions=(".py",), max_file_size=500)
        assert "big.py" not in relative(files, source_tree)

    def test_exclude_patterns(self, source_tree):
        files = collect_source_files(source_tree, extensions=(".py",), exclude=("pkg/*", "big.py"))
        assert relative(files, source_tree) == ["a.py"]

    def test_single_file(self, source_tree):
        assert collect_source_files(source_tree / "a.py") == [source_tree / "a.py"]
        assert collect_source_files(source_tree / "notes.txt") == []


class TestAnalyzePaths:
    def test_records_follow_input_order(self, source_tree, analyzer):
        files = collect_source_files(source_tree, extensions=(".py",), max_file_size=500)
        records = list(analyze_paths(files, analyzer, workers=3))
        assert [r.path for r in records] == [str(p) for p in files]

    def test_record_fields(self, source_tree, analyzer):
        (record,) = analyze_paths([source_tree / "a.py"], analyzer)
        assert record.language == "python"
        assert record.sha256 == compute_text_hash(SCENARIO_PYTHON)
        assert record.ok
        assert json.loads(record.result.anonymization_map_json) == {"self": "param_1", "x": "var_1"}

    def test_empty_file_record(self, source_tree, analyzer):
        (record,) = analyze_paths([source_tree / "pkg" / "empty.py"], analyzer)
        assert record.result.is_empty
        assert record.error is None
        assert not record.ok

    def test_unsupported_language_record(self, source_tree, analyzer):
        (record,) = analyze_paths([source_tree / "Program.cs"], analyzer)
        assert record.language is None
        assert record.result.is_empty

    def test_unreadable_file_record(self, tmp_path, analyzer):
        (record,) = analyze_paths([tmp_path / "missing.py"], analyzer)
        assert record.error
        assert record.sha256 is None

    def test_no_paths(self, analyzer):
        assert list(analyze_paths([], analyzer)) == []


class TestWriteNdjson:
    def test_one_object_per_line(self, source_tree, analyzer, tmp_path):
        files = [source_tree / "a.py", source_tree / "pkg" / "b.py"]
        output = tmp_path / "out" / "analysis.ndjson"
        written = write_ndjson(analyze_paths(files, analyzer), output)
        lines = output.read_text(encoding="utf-8").splitlines()
        assert written == len(lines) == 2
        first = json.loads(lines[0])
        assert first["path"] == str(files[0])
        assert first["language"] == "python"
        assert first["failures"] == []
        assert set(first) >= {"sha256", "ast_json", "cfg_json", "dfg_json", "metrics_json", "normalized_code"}
