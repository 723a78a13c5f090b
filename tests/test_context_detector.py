"""Tests for code context assembly and the Review-IR record"""

import pytest

pytest.importorskip("tree_sitter_language_pack")

from codecontext.config import ANALYSIS_CONFIG  # noqa: E402
from codecontext.context_detector import (  # noqa: E402
    IntentClassification,
    LLMReadinessScore,
    ReadinessBreakdown,
    analyze_code_context,
    calculate_llm_readiness,
    characterize,
    classify_intent,
    determine_llm_role,
    truncate_utf8,
)
from codecontext.review_schema import validate_review_ir  # noqa: E402
from codecontext.static_analysis.code_type_detector import CodeTypeResult  # noqa: E402
from codecontext.static_analysis.language_detector import LanguageDetectionResult  # noqa: E402
from codecontext.static_analysis.library_analyzer import LibraryAnalysisResult  # noqa: E402
from codecontext.static_analysis.paradigm_detector import ParadigmAnalysisResult  # noqa: E402

GRADE = '''def grade(score):
    if score > 90:
        return "A"
    elif score > 80:
        return "B"
    return "C"
'''


class GrammarUnavailable(Exception):
    """Raised by a grammar loader that cannot reach its grammar"""


PYTHON = LanguageDetectionResult(language="python", dialect=None, confidence=0.9)


class TestEmptyInput:
    def test_blank_snippets_have_no_context(self):
        assert analyze_code_context("") is None
        assert analyze_code_context("   \n\t") is None
        assert characterize("") is None


class TestDegradedContext:
    """Without a CST the record keeps its full shape at zero confidence"""

    def test_degraded_record(self):
        context = analyze_code_context("x = 1\n", cst=None, language=PYTHON)
        assert context is not None
        assert context.confidence.overall == 0.0
        assert context.confidence.warnings == ["AST not available"]
        assert context.llm_context.role == "explain"
        assert context.llm_context.readiness.blocking_issues == ["CST not available"]

        record = context.review_ir
        validate_review_ir(record)
        assert record["intent"]["primary"] == "unknown"
        assert record["structure"]["linesOfCode"] == 2
        assert record["complexity"] == {"time": "unknown", "space": "unknown"}
        assert record["quality"] == {"testability": 0, "controlFlowComplexity": 0, "errorHandling": "unknown"}
        assert record["behavior"]["externalInteractions"] == ["none"]
        assert record["behavior"]["sideEffects"] == "none"
        assert record["state"]["lifetime"] == "stateless"
        assert record["elements"] == {"decisionRules": [], "magicValues": [], "silentBehaviors": []}
        assert record["guidance"]["promptHints"] == ["CST not available - limited analysis"]
        assert record["structure"]["paradigm"] == "unknown"
        assert context.paradigm.primary.confidence == 0.0

    def test_grammar_load_failure_gives_degraded_record(self, monkeypatch):
        def offline(grammar):
            raise GrammarUnavailable(f"cannot fetch {grammar}")

        monkeypatch.setattr("codecontext.parsing.get_parser", offline)
        monkeypatch.setattr("codecontext.parsing._PARSERS", {})
        context = characterize("package main\n\nfunc main() {\n}\n")
        assert context is not None, "A grammar that cannot load must not fail the analysis"
        assert context.confidence.warnings == ["AST not available"]
        validate_review_ir(context.review_ir)
        assert context.review_ir["structure"]["paradigm"] == "unknown"


class TestParsedContext:
    """Full analysis of a parsed snippet"""

    def test_review_ir_is_valid(self, parse):
        context = analyze_code_context(GRADE, parse(GRADE, "python"), PYTHON)
        record = context.review_ir
        validate_review_ir(record)
        assert record["version"] == "1.0"
        assert record["language"] == "python"
        assert record["structure"]["functions"] == 1
        assert record["structure"]["linesOfCode"] == 7
        assert [rule["location"] for rule in record["elements"]["decisionRules"]] == [1, 3]
        assert record["quality"]["controlFlowComplexity"] == 3
        assert record["complexity"]["time"] == "O(1)"

    def test_condition_budget(self, parse):
        ANALYSIS_CONFIG["condition_byte_budget"] = 5
        context = analyze_code_context(GRADE, parse(GRADE, "python"), PYTHON)
        conditions = [rule["condition"] for rule in context.review_ir["elements"]["decisionRules"]]
        assert conditions == ["score", "score"]


class TestIntent:
    """Keyword-scored intent categories"""

    def test_validation(self, text_node):
        intent = classify_intent(text_node("def validate(user):\n    return check(user)\n"),
                                 ParadigmAnalysisResult.unavailable(), LibraryAnalysisResult.unavailable())
        assert intent.primary == "validation"
        assert intent.confidence == 0.5
        assert intent.indicators == ["validation checks"]

    def test_no_keywords(self, text_node):
        intent = classify_intent(text_node("x = 1\n"), ParadigmAnalysisResult.unavailable(),
                                 LibraryAnalysisResult.unavailable())
        assert intent.primary == "unknown"
        assert intent.confidence == 0.3

    def test_first_category_wins_ties(self, text_node):
        intent = classify_intent(text_node("validate then parse"), ParadigmAnalysisResult.unavailable(),
                                 LibraryAnalysisResult.unavailable())
        assert intent.primary == "validation"


class TestReadinessAndRole:
    def test_structureless_snippet_is_explained(self):
        readiness = calculate_llm_readiness(PYTHON, LibraryAnalysisResult.unavailable(),
                                            ParadigmAnalysisResult.unavailable(), CodeTypeResult.unavailable())
        assert readiness.review_readiness == pytest.approx(0.4)
        assert "No identifiable structure" in readiness.blocking_issues

        intent = IntentClassification("unknown", 0.3, [], "Intent unclear from available context")
        llm = determine_llm_role(readiness, intent, CodeTypeResult.unavailable())
        assert llm.role == "explain"
        assert llm.prompt_hints[-1] == "Caution: No identifiable structure"
        assert llm.focus_areas == ["understanding", "documentation"]

    def test_ready_test_code_is_refactored(self):
        readiness = LLMReadinessScore(
            review_readiness=0.9,
            refactor_readiness=0.8,
            execution_readiness=0.8,
            breakdown=ReadinessBreakdown(1.0, 1.0, 1.0, 1.0),
        )
        intent = IntentClassification("validation", 0.83, [], "Validates inputs or state against rules")
        code_type = CodeTypeResult(type="test", confidence=0.9, indicators=[])
        llm = determine_llm_role(readiness, intent, code_type)
        assert llm.role == "refactor"
        assert len(llm.prompt_hints) == 4
        assert llm.focus_areas == ["code quality", "maintainability", "validation", "test quality"]

    def test_review_only_between_thresholds(self):
        readiness = LLMReadinessScore(0.7, 0.7, 0.5, ReadinessBreakdown(0.7, 0.7, 0.7, 0.7))
        intent = IntentClassification("unknown", 0.3, [], "Intent unclear from available context")
        llm = determine_llm_role(readiness, intent, CodeTypeResult.unavailable())
        assert llm.role == "review-only"


class TestTruncation:
    def test_multibyte_characters_are_not_split(self):
        assert truncate_utf8("héllo", 2) == "h"
        assert truncate_utf8("héllo", 3) == "hé"
        assert truncate_utf8("abc", 10) == "abc"
