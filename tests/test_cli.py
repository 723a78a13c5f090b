"""Tests for the command line interface"""

import json

import pytest

pytest.importorskip("tree_sitter_language_pack")

from click.testing import CliRunner  # noqa: E402

from codecontext import __version__  # noqa: E402
from codecontext.cli import main  # noqa: E402
from codecontext.config import ANALYSIS_CONFIG  # noqa: E402

GO_MAIN = 'package main\n\nimport "fmt"\n\nfunc main() {\n    fmt.Println("hi")\n}\n'
PY_ADD = "def add(a, b):\n    return a + b\n"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def write(tmp_path):
    def _write(name: str, content: str) -> str:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write


class TestLanguageCommand:
    def test_smoking_gun(self, runner, write):
        result = runner.invoke(main, ["language", write("main.go", GO_MAIN)])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("[OK] go")
        assert "via smoking-gun" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert __version__ in result.output


class TestAnalyzeCommand:
    def test_json_output_is_review_ir(self, runner, write):
        result = runner.invoke(main, ["analyze", write("add.py", PY_ADD), "--json"])
        assert result.exit_code == 0, result.output
        record = json.loads(result.stdout)
        assert record["version"] == "1.0"
        assert record["structure"]["linesOfCode"] == 3

    def test_empty_file_fails(self, runner, write):
        result = runner.invoke(main, ["analyze", write("empty.py", "")])
        assert result.exit_code == 1
        assert "[ERROR] Could not analyze" in result.output


class TestValidateCommand:
    def test_identical_files_are_valid(self, runner, write):
        result = runner.invoke(main, ["validate", write("a.py", PY_ADD), write("b.py", PY_ADD)])
        assert result.exit_code == 0, result.output
        assert "[OK] Translation valid (score 1.00)" in result.output

    def test_invalid_translation_exits_nonzero(self, runner, write):
        result = runner.invoke(main, ["validate", write("a.py", ""), write("b.py", "")])
        assert result.exit_code == 1
        assert "[ERROR] Translation not valid" in result.output
        assert "[CRITICAL] Failed to analyze translated code" in result.output


class TestBatchCommand:
    def test_no_matching_files(self, runner, tmp_path):
        result = runner.invoke(main, ["batch", str(tmp_path)])
        assert result.exit_code == 1
        assert "[ERROR] No files match" in result.output

    def test_summary_file(self, runner, write, tmp_path):
        write("add.py", PY_ADD)
        write("main.go", GO_MAIN)
        output = tmp_path / "out" / "summary.json"
        output.parent.mkdir()
        result = runner.invoke(main, ["batch", str(tmp_path), "--pattern", "*.*", "--output", str(output)])
        assert result.exit_code == 0, result.output
        summary = json.loads(output.read_text(encoding="utf-8"))
        assert summary["files"] == 2
        assert summary["analyzed"] == 2
        assert "go" in [entry["language"] for entry in summary["results"].values()]


class TestConfigOption:
    def test_overrides_are_applied(self, runner, write):
        config = write("config.yaml", "analysis:\n  cache_size: 25\n")
        result = runner.invoke(main, ["--config", config, "language", write("main.go", GO_MAIN)])
        assert result.exit_code == 0, result.output
        assert ANALYSIS_CONFIG["cache_size"] == 25

    def test_unknown_key_is_a_usage_error(self, runner, write):
        config = write("config.yaml", "analysis:\n  cache_sise: 25\n")
        result = runner.invoke(main, ["--config", config, "language", write("main.go", GO_MAIN)])
        assert result.exit_code == 2
        assert "Unknown key 'cache_sise'" in result.output
