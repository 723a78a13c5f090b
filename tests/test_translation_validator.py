"""Tests for Review-IR translation validation"""

import copy

import pytest

pytest.importorskip("tree_sitter_language_pack")

from codecontext.config import VALIDATION_TOLERANCES  # noqa: E402
from codecontext.translation_validator import (  # noqa: E402
    TranslationValidator,
    is_execution_model_acceptable,
    validate_translation,
    validate_translation_code,
)


def make_ir(decisions: int = 2, magic=("GET", "/api/users"), **changes) -> dict:
    """Minimal Review-IR with the fields the validator reads"""
    record = {
        "structure": {"functions": 2, "classes": 0, "linesOfCode": 10},
        "behavior": {"isDeterministic": True, "executionModel": "synchronous", "sideEffects": "none"},
        "state": {"lifetime": "local-ephemeral"},
        "quality": {"testability": 80, "controlFlowComplexity": 3},
        "elements": {
            "decisionRules": [{"condition": f"x > {i}", "outcome": "return", "location": i}
                              for i in range(decisions)],
            "magicValues": [{"value": value, "role": "identifier-token", "location": 0} for value in magic],
            "silentBehaviors": [],
        },
    }
    for path, value in changes.items():
        section, key = path.split("__")
        record[section][key] = value
    return record


class TestIdenticalRecords:
    def test_identical_is_valid(self):
        result = validate_translation(make_ir(), make_ir())
        assert result.is_valid
        assert result.score == 1.0
        assert not result.critical and not result.warnings and not result.info
        assert result.comparison_report["structure"]["functions"]["match"]


class TestCriticalIssues:
    """Any critical issue invalidates the translation"""

    def test_one_extra_decision_is_tolerated(self):
        result = validate_translation(make_ir(decisions=2), make_ir(decisions=3))
        assert result.is_valid
        assert result.comparison_report["elements"]["decisionPoints"]["acceptable"]

    def test_two_extra_decisions_are_critical(self):
        result = validate_translation(make_ir(decisions=2), make_ir(decisions=4))
        assert not result.is_valid
        assert [issue.message for issue in result.critical] == ["Decision points significantly changed"]
        assert result.score == 0.4

    def test_function_count_mismatch(self):
        result = validate_translation(make_ir(), make_ir(structure__functions=3))
        assert not result.is_valid
        issue = result.critical[0]
        assert issue.category == "structure"
        assert (issue.expected, issue.actual) == (2, 3)

    def test_determinism_change(self):
        result = validate_translation(make_ir(), make_ir(behavior__isDeterministic=False))
        assert not result.is_valid
        assert result.critical[0].expected == "true"
        assert result.critical[0].actual == "false"

    def test_tolerance_override(self):
        validator = TranslationValidator({"decision_points": 2})
        assert validator.validate(make_ir(decisions=2), make_ir(decisions=4)).is_valid
        assert VALIDATION_TOLERANCES["decision_points"] == 1, "Overrides must not leak into the shared config"


class TestWarnings:
    """Warnings lower the score without invalidating on their own"""

    def test_execution_model_degradations(self):
        assert is_execution_model_acceptable("asynchronous", "synchronous")
        assert is_execution_model_acceptable("event-driven", "asynchronous")
        assert not is_execution_model_acceptable("synchronous", "asynchronous")
        assert not is_execution_model_acceptable("mixed", "synchronous")

    def test_two_warnings(self):
        translated = make_ir(behavior__executionModel="asynchronous", state__lifetime="global-mutable")
        result = validate_translation(make_ir(), translated)
        assert len(result.warnings) == 2
        assert result.score == 0.91
        assert result.is_valid

    def test_magic_value_preservation(self):
        source = make_ir(magic=("a1", "b2", "c3", "d4", "e5"))
        assert not validate_translation(source, make_ir(magic=("a1", "b2", "c3", "d4"))).warnings
        result = validate_translation(source, make_ir(magic=("a1", "b2", "c3")))
        assert [issue.message for issue in result.warnings] == ["Some magic values not preserved"]
        assert result.comparison_report["elements"]["magicValues"]["preserved"] == 3

    def test_cyclomatic_tolerance(self):
        assert not validate_translation(make_ir(), make_ir(quality__controlFlowComplexity=5)).warnings
        assert validate_translation(make_ir(), make_ir(quality__controlFlowComplexity=6)).warnings


class TestInfo:
    def test_line_count_change(self):
        assert not validate_translation(make_ir(), make_ir(structure__linesOfCode=14)).info
        result = validate_translation(make_ir(), make_ir(structure__linesOfCode=15))
        assert [issue.message for issue in result.info] == ["Code length changed significantly"]
        assert result.score == 0.99

    def test_testability_change(self):
        result = validate_translation(make_ir(), make_ir(quality__testability=50))
        assert [issue.category for issue in result.info] == ["quality"]


class TestSerialization:
    def test_to_dict_uses_camel_case(self):
        result = validate_translation(make_ir(), make_ir(structure__functions=1))
        data = result.to_dict()
        assert set(data) == {"isValid", "score", "critical", "warnings", "info", "comparisonReport"}
        assert data["isValid"] is False
        assert data["critical"][0]["message"] == "Function count mismatch"

    def test_inputs_are_not_modified(self):
        source, translated = make_ir(), make_ir(decisions=5)
        before = copy.deepcopy((source, translated))
        validate_translation(source, translated)
        assert (source, translated) == before


class TestValidateCode:
    def test_unanalyzable_input(self):
        result = validate_translation_code("", "")
        assert not result.is_valid
        assert result.score == 0.0
        assert [issue.message for issue in result.critical] == ["Failed to analyze translated code"]
        assert result.comparison_report["structure"]["functions"]["match"] is False
