"""Tests for the analysis and memory tools used by dispatched actions."""

import textwrap

import pytest

from vibe.tools import (
    ToolResult,
    analyze_complexity,
    list_memories,
    save_memory,
    validate_code_quality,
)
from vibe.tools.analysis import analyze_file
from vibe.tools.memory import NO_MEMORIES, memory_file

BRANCHY = textwrap.dedent(
    """
    def simple(a):
        return a

    def branchy(a, b, c):
        if a and b:
            for x in range(3):
                if x:
                    while c:
                        if b:
                            c -= 1
        return a
    """
)


@pytest.fixture
def project(tmp_path):
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "mod.py").write_text(BRANCHY)
    (tmp_path / "pkg" / "broken.py").write_text("def oops(:\n")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "ignored.py").write_text("def ignored(): pass\n")
    return tmp_path


class TestAnalysis:
    def test_metrics_for_file(self, project):
        report = analyze_file(project / "pkg" / "mod.py", project)
        by_name = {f.name: f for f in report.functions}

        assert report.path == "pkg/mod.py"
        assert by_name["simple"].complexity == 1
        assert by_name["branchy"].complexity > by_name["simple"].complexity
        assert by_name["branchy"].max_depth == 5
        assert by_name["branchy"].params == 3

    def test_unparseable_file_skipped(self, project):
        assert analyze_file(project / "pkg" / "broken.py") is None

    def test_complexity_sorted_most_complex_first(self, project):
        result = analyze_complexity(str(project))
        lines = result.text.split("\n")

        assert isinstance(result, ToolResult)
        assert lines[0].startswith("Analyzed 2 functions in 1 files")
        assert "branchy" in lines[1]
        assert "ignored" not in result.text

    def test_quality_flags_deep_nesting(self, project):
        result = validate_code_quality(str(project))
        assert result.text.startswith("✗ 1 quality issues")
        assert "branchy nests 5 deep" in result.text

    def test_quality_clean_project(self, tmp_path):
        (tmp_path / "ok.py").write_text("def fine():\n    return 1\n")
        assert validate_code_quality(str(tmp_path)).text == "✓ No quality issues in 1 files"

    def test_bare_except_reported(self, tmp_path):
        (tmp_path / "bad.py").write_text("try:\n    pass\nexcept:\n    pass\n")
        assert "bad.py:3 bare except" in validate_code_quality(str(tmp_path)).text

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            analyze_complexity(str(tmp_path / "nope"))


class TestMemory:
    def test_empty_store(self, tmp_path):
        assert list_memories(project_path=str(tmp_path)).text == NO_MEMORIES

    def test_save_then_list(self, tmp_path):
        save_memory("decision-db", "Use Postgres", "decision", str(tmp_path))
        save_memory("solution-1", "Fixed login race", "solution", str(tmp_path))

        text = list_memories(project_path=str(tmp_path)).text
        assert "decision-db [decision]: Use Postgres" in text
        assert "solution-1 [solution]: Fixed login race" in text
        assert memory_file(str(tmp_path)).exists()

    def test_overwrite_same_key(self, tmp_path):
        save_memory("k", "old", project_path=str(tmp_path))
        save_memory("k", "new", project_path=str(tmp_path))
        assert list_memories(project_path=str(tmp_path)).text == "k [general]: new"

    def test_category_filter_and_limit(self, tmp_path):
        for i in range(5):
            save_memory(f"s{i}", "v", "solution", str(tmp_path))
        save_memory("d", "v", "decision", str(tmp_path))

        assert list_memories(category="decision", project_path=str(tmp_path)).text == (
            "d [decision]: v"
        )
        assert len(list_memories(limit=2, project_path=str(tmp_path)).text.split("\n")) == 2

    def test_empty_key_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            save_memory("", "v", project_path=str(tmp_path))

    def test_corrupt_store_treated_as_empty(self, tmp_path):
        path = memory_file(str(tmp_path))
        path.parent.mkdir(parents=True)
        path.write_text("garbage")
        assert list_memories(project_path=str(tmp_path)).text == NO_MEMORIES
