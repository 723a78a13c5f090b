"""
Translation validation

Compares the Review-IR of a source snippet with the Review-IR of its
translation, field by field, with per-field tolerances:
- Critical (must match): determinism, function count, class count,
  decision points within +/-1
- Warning: execution model outside the acceptable degradations, state
  lifetime, cyclomatic complexity beyond +/-2, magic values not preserved
- Info: line count change of 50% or more, testability change beyond 20

Any critical issue makes the translation invalid.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import ACCEPTABLE_EXECUTION_MODELS, VALIDATION_TOLERANCES
from .context_detector import characterize

logger = logging.getLogger(__name__)

CRITICAL_WEIGHT = 0.6
WARNING_WEIGHT = 0.3
INFO_WEIGHT = 0.1
WARNING_PENALTY = 0.15
INFO_PENALTY = 0.1


@dataclass
class ValidationIssue:
    """One finding of a comparison."""
    type: str      # critical | warning | info
    category: str  # structure | behavior | quality | elements
    message: str
    expected: Optional[Any] = None
    actual: Optional[Any] = None


@dataclass
class ValidationResult:
    """Outcome of comparing two Review-IR records."""
    is_valid: bool
    score: float
    critical: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    info: List[ValidationIssue] = field(default_factory=list)
    comparison_report: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        def issues(items: List[ValidationIssue]) -> List[Dict]:
            return [
                {"type": i.type, "category": i.category, "message": i.message,
                 "expected": i.expected, "actual": i.actual}
                for i in items
            ]

        return {
            "isValid": self.is_valid,
            "score": round(self.score, 2),
            "critical": issues(self.critical),
            "warnings": issues(self.warnings),
            "info": issues(self.info),
            "comparisonReport": self.comparison_report,
        }


def is_execution_model_acceptable(source: str, target: str) -> bool:
    return target in ACCEPTABLE_EXECUTION_MODELS.get(source, [])


def count_preserved_magic_values(source: List[Dict], target: List[Dict]) -> int:
    """Source magic values whose value (compared as text) also appears in the target"""
    target_values = {str(v["value"]) for v in target}
    return sum(1 for v in source if str(v["value"]) in target_values)


def empty_report() -> Dict:
    return {
        "structure": {
            "functions": {"expected": 0, "actual": 0, "match": False},
            "classes": {"expected": 0, "actual": 0, "match": False},
            "linesOfCode": {"expected": 0, "actual": 0, "acceptable": False},
        },
        "behavior": {
            "determinism": {"expected": False, "actual": False, "match": False},
            "executionModel": {"expected": "", "actual": "", "acceptable": False},
            "sideEffects": {"expected": "", "actual": "", "match": False},
        },
        "quality": {
            "testability": {"expected": 0, "actual": 0, "delta": 0},
            "complexity": {"expected": 0, "actual": 0, "delta": 0},
        },
        "elements": {
            "decisionPoints": {"expected": 0, "actual": 0, "acceptable": False},
            "magicValues": {"expected": 0, "actual": 0, "preserved": 0},
        },
    }


class TranslationValidator:
    """
    Review-IR comparison with the tolerances from VALIDATION_TOLERANCES
    """

    def __init__(self, tolerances: Optional[Dict] = None):
        self.tolerances = dict(VALIDATION_TOLERANCES)
        if tolerances:
            self.tolerances.update(tolerances)

    def validate(self, source_ir: Dict, translated_ir: Dict) -> ValidationResult:
        """
        Compare two Review-IR records.

        Args:
            source_ir: Review-IR of the original snippet
            translated_ir: Review-IR of the translated snippet

        Returns:
            ValidationResult with issues by severity and a comparison report
        """
        critical: List[ValidationIssue] = []
        warnings: List[ValidationIssue] = []
        info: List[ValidationIssue] = []

        src_structure, dst_structure = source_ir["structure"], translated_ir["structure"]
        src_behavior, dst_behavior = source_ir["behavior"], translated_ir["behavior"]
        src_quality, dst_quality = source_ir["quality"], translated_ir["quality"]
        src_elements, dst_elements = source_ir["elements"], translated_ir["elements"]

        # Critical
        determinism_match = src_behavior["isDeterministic"] == dst_behavior["isDeterministic"]
        if not determinism_match:
            critical.append(ValidationIssue(
                "critical", "behavior", "Determinism not preserved",
                str(src_behavior["isDeterministic"]).lower(), str(dst_behavior["isDeterministic"]).lower(),
            ))

        function_match = src_structure["functions"] == dst_structure["functions"]
        if not function_match:
            critical.append(ValidationIssue(
                "critical", "structure", "Function count mismatch",
                src_structure["functions"], dst_structure["functions"],
            ))

        class_match = src_structure["classes"] == dst_structure["classes"]
        if not class_match:
            critical.append(ValidationIssue(
                "critical", "structure", "Class count mismatch",
                src_structure["classes"], dst_structure["classes"],
            ))

        src_decisions = len(src_elements["decisionRules"])
        dst_decisions = len(dst_elements["decisionRules"])
        decisions_acceptable = abs(src_decisions - dst_decisions) <= self.tolerances["decision_points"]
        if not decisions_acceptable:
            critical.append(ValidationIssue(
                "critical", "elements", "Decision points significantly changed", src_decisions, dst_decisions,
            ))

        # Warnings
        model_acceptable = is_execution_model_acceptable(src_behavior["executionModel"],
                                                         dst_behavior["executionModel"])
        if not model_acceptable:
            warnings.append(ValidationIssue(
                "warning", "behavior", "Execution model changed",
                src_behavior["executionModel"], dst_behavior["executionModel"],
            ))

        if source_ir["state"]["lifetime"] != translated_ir["state"]["lifetime"]:
            warnings.append(ValidationIssue(
                "warning", "behavior", "State lifetime changed",
                source_ir["state"]["lifetime"], translated_ir["state"]["lifetime"],
            ))

        complexity_delta = abs(src_quality["controlFlowComplexity"] - dst_quality["controlFlowComplexity"])
        if complexity_delta > self.tolerances["cyclomatic"]:
            warnings.append(ValidationIssue(
                "warning", "quality", "Control flow complexity changed significantly",
                src_quality["controlFlowComplexity"], dst_quality["controlFlowComplexity"],
            ))

        preserved = count_preserved_magic_values(src_elements["magicValues"], dst_elements["magicValues"])
        src_magic = len(src_elements["magicValues"])
        if preserved < src_magic * self.tolerances["magic_value_preservation"]:
            warnings.append(ValidationIssue(
                "warning", "elements", "Some magic values not preserved", src_magic, preserved,
            ))

        # Info
        src_lines, dst_lines = src_structure["linesOfCode"], dst_structure["linesOfCode"]
        lines_acceptable = abs(src_lines - dst_lines) < src_lines * self.tolerances["line_count_ratio"]
        if not lines_acceptable:
            info.append(ValidationIssue(
                "info", "structure", "Code length changed significantly", src_lines, dst_lines,
            ))

        testability_delta = abs(src_quality["testability"] - dst_quality["testability"])
        if testability_delta > self.tolerances["testability_delta"]:
            info.append(ValidationIssue(
                "info", "quality", "Testability score changed",
                src_quality["testability"], dst_quality["testability"],
            ))

        score = self._score(critical, warnings, info)
        is_valid = not critical and score >= self.tolerances["validity_floor"]

        report = {
            "structure": {
                "functions": {"expected": src_structure["functions"], "actual": dst_structure["functions"],
                              "match": function_match},
                "classes": {"expected": src_structure["classes"], "actual": dst_structure["classes"],
                            "match": class_match},
                "linesOfCode": {"expected": src_lines, "actual": dst_lines, "acceptable": lines_acceptable},
            },
            "behavior": {
                "determinism": {"expected": src_behavior["isDeterministic"],
                                "actual": dst_behavior["isDeterministic"], "match": determinism_match},
                "executionModel": {"expected": src_behavior["executionModel"],
                                   "actual": dst_behavior["executionModel"], "acceptable": model_acceptable},
                "sideEffects": {"expected": src_behavior["sideEffects"], "actual": dst_behavior["sideEffects"],
                                "match": src_behavior["sideEffects"] == dst_behavior["sideEffects"]},
            },
            "quality": {
                "testability": {"expected": src_quality["testability"], "actual": dst_quality["testability"],
                                "delta": testability_delta},
                "complexity": {"expected": src_quality["controlFlowComplexity"],
                               "actual": dst_quality["controlFlowComplexity"], "delta": complexity_delta},
            },
            "elements": {
                "decisionPoints": {"expected": src_decisions, "actual": dst_decisions,
                                   "acceptable": decisions_acceptable},
                "magicValues": {"expected": src_magic, "actual": len(dst_elements["magicValues"]),
                                "preserved": preserved},
            },
        }

        logger.info(
            f"Translation validation: score {score:.2f}, {len(critical)} critical, "
            f"{len(warnings)} warnings, {len(info)} info"
        )
        return ValidationResult(is_valid, score, critical, warnings, info, report)

    @staticmethod
    def _score(critical: List[ValidationIssue], warnings: List[ValidationIssue],
               info: List[ValidationIssue]) -> float:
        critical_score = 0.0 if critical else 1.0
        warning_score = max(0.0, 1.0 - len(warnings) * WARNING_PENALTY)
        info_score = max(0.0, 1.0 - len(info) * INFO_PENALTY)
        return round(critical_score * CRITICAL_WEIGHT + warning_score * WARNING_WEIGHT
                     + info_score * INFO_WEIGHT, 4)


def validate_translation(source_ir: Dict, translated_ir: Dict) -> ValidationResult:
    return TranslationValidator().validate(source_ir, translated_ir)


def validate_translation_code(source_code: str, translated_code: str) -> ValidationResult:
    """Analyze both snippets, then compare their Review-IR records"""
    source = characterize(source_code)
    translated = characterize(translated_code)

    failed = [label for label, context in (("source", source), ("translated", translated)) if context is None]
    if failed:
        logger.warning(f"Could not analyze {' and '.join(failed)} code")
        return ValidationResult(
            is_valid=False,
            score=0.0,
            critical=[ValidationIssue("critical", "structure", f"Failed to analyze {failed[-1]} code")],
            comparison_report=empty_report(),
        )

    return validate_translation(source.review_ir, translated.review_ir)
