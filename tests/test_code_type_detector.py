"""Tests for code type classification and runnability"""

from codecontext.static_analysis.code_type_detector import (
    CodeTypeResult,
    detect_code_type,
    detect_script,
    environment_variables,
)
from codecontext.static_analysis.library_analyzer import analyze_libraries

PYTEST_FILE = '''import pytest


def test_add():
    assert 1 + 1 == 2


def test_sub():
    assert 2 - 1 == 1
'''

SCRIPT = '''def main():
    print("hi")


if __name__ == "__main__":
    main()
'''

LIBRARY = '''def add(a, b):
    return a + b


def sub(a, b):
    return a - b


def mul(a, b):
    return a * b
'''

SETTINGS = '''HOST = "localhost"
PORT = 8080
DEBUG = True
NAME = "app"
'''


def classify(parse, code: str, language: str = "python") -> CodeTypeResult:
    cst = parse(code, language)
    return detect_code_type(cst, language, analyze_libraries(cst, language))


class TestClassification:
    """Each hypothesis wins on its own kind of snippet"""

    def test_pytest_module(self, parse):
        result = classify(parse, PYTEST_FILE)
        assert result.type == "test"
        assert result.confidence > 0.6, "Test code should short-circuit above 0.6"
        assert result.execution_context.test_runner == "pytest"

    def test_main_guard_is_a_script(self, parse):
        result = classify(parse, SCRIPT)
        assert result.type == "script"
        assert result.confidence == 0.65
        assert result.entry_points == ["main"]
        assert result.execution_intent.is_runnable
        assert result.execution_intent.runnability_score == 1.0

    def test_public_functions_are_a_library(self, parse):
        result = classify(parse, LIBRARY)
        assert result.type == "library"
        assert result.confidence == 0.75
        assert result.exports == ["add", "sub", "mul"]
        assert not result.execution_intent.is_runnable
        assert "No entry point" in result.execution_intent.blockers

    def test_literal_assignments_are_configuration(self, parse):
        result = classify(parse, SETTINGS)
        assert result.type == "configuration"
        assert result.confidence == 0.9
        assert "4 literal assignments" in result.indicators


class TestExecutionContext:
    def test_python_runtime(self, parse):
        result = classify(parse, SCRIPT)
        context = result.execution_context
        assert context.runtime == "python3"
        assert context.build_steps == []
        assert not context.needs_package_install
        assert context.test_runner is None

    def test_environment_variables(self):
        code = "key = os.environ['API_KEY']\nconst port = process.env.PORT;\nkey = os.environ['API_KEY']\n"
        assert environment_variables(code) == ["API_KEY", "PORT"], "Names should be unique and in order"


class TestScriptHypothesis:
    def test_entry_point_scoring(self):
        assert detect_script(["main"], 0, False, 10).confidence == 0.75
        assert detect_script([], 0, True, 10).confidence == 0.6
        assert detect_script([], 3, False, 500).confidence == 0.0

    def test_unavailable_result(self):
        result = CodeTypeResult.unavailable()
        assert result.type == "unknown"
        assert result.confidence == 0.0
        assert result.execution_intent.blockers == ["AST not available"]
