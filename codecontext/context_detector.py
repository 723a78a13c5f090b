"""
Code context assembly

Runs every detector over one snippet and merges the results into a single
``CodeContext``:
- Intent classification (8 fixed categories)
- LLM readiness scores and the role a model should take
- Context confidence with warnings
- The versioned Review-IR record consumed by prompt builders, renderers and
  the translation validator

The Review-IR shape never depends on input quality. When no CST is available
every field is still present, set to its zero-confidence default.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import ANALYSIS_CONFIG, READINESS_THRESHOLDS, READINESS_WEIGHTS
from .parsing import parse_source
from .static_analysis.code_type_detector import CodeTypeResult, detect_code_type
from .static_analysis.complexity_analyzer import ComplexityAnalysisResult, analyze_complexity
from .static_analysis.cst import CSTNode, count_lines
from .static_analysis.language_detector import LanguageDetectionResult, detect_language
from .static_analysis.library_analyzer import LibraryAnalysisResult, analyze_libraries
from .static_analysis.paradigm_detector import ParadigmAnalysisResult, analyze_paradigm
from .static_analysis.review_elements import (
    analyze_control_flow_complexity,
    analyze_side_effect_certainty,
    calculate_testability,
    detect_magic_values,
    detect_silent_behaviors,
    extract_decision_rules,
    map_to_domain_tokens,
)

logger = logging.getLogger(__name__)

REVIEW_IR_VERSION = "1.0"

CST_UNAVAILABLE = "CST not available"
AST_UNAVAILABLE = "AST not available"

INTENT_DESCRIPTIONS = {
    "data-transformation": "Transforms or restructures data between formats",
    "validation": "Validates inputs or state against rules",
    "parsing": "Parses and interprets structured input",
    "aggregation": "Aggregates or summarizes data from multiple sources",
    "routing": "Routes requests or messages to handlers",
    "formatting": "Formats data for presentation or output",
    "calculation": "Performs mathematical or algorithmic computations",
    "orchestration": "Coordinates multiple operations or services",
    "unknown": "Intent unclear from available context",
}

ROUTING_FRAMEWORKS = {"Express", "FastAPI"}


# ===========================================
# Result types
# ===========================================

@dataclass(frozen=True)
class IntentClassification:
    primary: str
    confidence: float
    indicators: List[str]
    semantic_description: str


@dataclass(frozen=True)
class ReadinessBreakdown:
    structural_clarity: float
    semantic_completeness: float
    context_sufficiency: float
    risk_factors: float


@dataclass(frozen=True)
class LLMReadinessScore:
    review_readiness: float
    refactor_readiness: float
    execution_readiness: float
    breakdown: ReadinessBreakdown
    blocking_issues: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LLMContext:
    role: str  # refactor | review-only | explain
    readiness: LLMReadinessScore
    intent: IntentClassification
    prompt_hints: List[str]
    focus_areas: List[str]


@dataclass(frozen=True)
class ContextConfidence:
    overall: float
    breakdown: Dict[str, float]
    warnings: List[str]
    is_llm_ready: bool


@dataclass
class CodeContext:
    language: LanguageDetectionResult
    libraries: LibraryAnalysisResult
    paradigm: ParadigmAnalysisResult
    code_type: CodeTypeResult
    complexity: ComplexityAnalysisResult
    analysis_time: float
    confidence: Optional[ContextConfidence] = None
    llm_context: Optional[LLMContext] = None
    review_ir: Dict[str, Any] = field(default_factory=dict)


# ===========================================
# Intent
# ===========================================

def classify_intent(cst: CSTNode, paradigm: ParadigmAnalysisResult,
                    libraries: LibraryAnalysisResult) -> IntentClassification:
    """Keyword scoring over the lowercased text; the first category wins ties"""
    code_text = cst.text.lower()
    indicators = []
    scores = {intent: 0 for intent in INTENT_DESCRIPTIONS if intent != "unknown"}

    if any(marker in code_text for marker in (".map(", ".filter(", ".reduce(")):
        scores["data-transformation"] += 3
        indicators.append("array transformations")
    if "transform" in code_text or "convert" in code_text:
        scores["data-transformation"] += 2

    if any(marker in code_text for marker in ("validate", "check", "assert")):
        scores["validation"] += 3
        indicators.append("validation checks")
    if "isvalid" in code_text or "verify" in code_text:
        scores["validation"] += 2

    if any(marker in code_text for marker in ("parse", "lex", "token")):
        scores["parsing"] += 3
        indicators.append("parsing logic")
    if any("parser" in lib.name.lower() for lib in libraries.libraries):
        scores["parsing"] += 2

    if any(marker in code_text for marker in ("aggregate", "sum", "count", "group")):
        scores["aggregation"] += 3
        indicators.append("data aggregation")

    if any(marker in code_text for marker in ("route", "router", "dispatch")):
        scores["routing"] += 3
        indicators.append("request routing")
    if any(fw.name in ROUTING_FRAMEWORKS for fw in libraries.frameworks):
        scores["routing"] += 2

    if any(marker in code_text for marker in ("format", "render", "template")):
        scores["formatting"] += 3
        indicators.append("output formatting")

    if (paradigm.counts.loops > 2 and "math" in code_text) or "calculate" in code_text:
        scores["calculation"] += 3
        indicators.append("computational logic")

    if paradigm.execution_model.primary == "asynchronous" and paradigm.counts.functions > 5:
        scores["orchestration"] += 2
        indicators.append("async orchestration")
    if "workflow" in code_text or "pipeline" in code_text:
        scores["orchestration"] += 2

    primary = max(scores, key=scores.get)
    max_score = scores[primary]
    if max_score <= 0:
        primary = "unknown"
    confidence = min(max_score / 6, 1.0) if max_score > 0 else 0.3

    return IntentClassification(
        primary=primary,
        confidence=round(confidence, 2),
        indicators=indicators[:3],
        semantic_description=INTENT_DESCRIPTIONS[primary],
    )


# ===========================================
# Readiness and role
# ===========================================

def _weighted(role: str, breakdown: Dict[str, float]) -> float:
    weights = READINESS_WEIGHTS[role]
    return round(sum(breakdown[name] * weight for name, weight in weights.items()), 2)


def calculate_llm_readiness(language: LanguageDetectionResult, libraries: LibraryAnalysisResult,
                            paradigm: ParadigmAnalysisResult, code_type: CodeTypeResult) -> LLMReadinessScore:
    blocking = []
    counts = paradigm.counts
    interactions = libraries.external_interactions

    structural_clarity = 0.8
    if counts.functions == 0 and counts.classes == 0:
        structural_clarity = 0.3
        blocking.append("No identifiable structure")
    if code_type.type == "unknown":
        structural_clarity *= 0.7

    semantic_completeness = 0.7
    if code_type.execution_intent is not None and code_type.execution_intent.blockers:
        semantic_completeness *= 0.6
    if len(interactions.types) > 3:
        semantic_completeness *= 0.8
        blocking.append("Many external dependencies")

    context_sufficiency = language.confidence
    if paradigm.primary.confidence < 0.5:
        context_sufficiency *= 0.7

    # Inverted: 1.0 means no risk found
    risk_factors = 1.0
    if not interactions.is_deterministic:
        risk_factors *= 0.7
    if paradigm.state.lifetime == "shared-mutable":
        risk_factors *= 0.8
        blocking.append("Shared mutable state detected")
    if not libraries.error_handling.has_error_handling:
        risk_factors *= 0.9

    raw = {
        "structural_clarity": structural_clarity,
        "semantic_completeness": semantic_completeness,
        "context_sufficiency": context_sufficiency,
        "risk_factors": risk_factors,
    }

    return LLMReadinessScore(
        review_readiness=_weighted("review", raw),
        refactor_readiness=_weighted("refactor", raw),
        execution_readiness=_weighted("execution", raw),
        breakdown=ReadinessBreakdown(**{name: round(value, 2) for name, value in raw.items()}),
        blocking_issues=blocking,
    )


def determine_llm_role(readiness: LLMReadinessScore, intent: IntentClassification,
                       code_type: CodeTypeResult) -> LLMContext:
    hints = []
    focus = []

    if readiness.refactor_readiness >= READINESS_THRESHOLDS["refactor"] and not readiness.blocking_issues:
        role = "refactor"
        hints.append("Code is well-structured and safe to refactor")
        hints.append("Maintain existing behavior while improving clarity")
        focus.extend(["code quality", "maintainability"])
    elif readiness.review_readiness >= READINESS_THRESHOLDS["review"]:
        role = "review-only"
        hints.append("Focus on correctness and clarity")
        hints.append("Identify potential bugs or unclear logic")
        focus.extend(["correctness", "readability"])
    else:
        role = "explain"
        hints.append("Code structure is unclear - focus on explaining intent")
        focus.extend(["understanding", "documentation"])

    if intent.confidence > 0.6:
        hints.append(f"Primary intent: {intent.semantic_description}")
        focus.append(intent.primary)

    if readiness.blocking_issues:
        hints.append(f"Caution: {readiness.blocking_issues[0]}")

    if code_type.type == "test":
        hints.append("Test code - focus on test coverage and assertions")
        focus.append("test quality")

    return LLMContext(
        role=role,
        readiness=readiness,
        intent=intent,
        prompt_hints=hints[:5],
        focus_areas=focus[:4],
    )


# ===========================================
# Confidence
# ===========================================

def calculate_context_confidence(context: CodeContext) -> ContextConfidence:
    warnings = []
    counts = context.paradigm.counts
    intent = context.code_type.execution_intent

    breakdown = {
        "language": context.language.confidence,
        "libraries": 0.9 if context.libraries.frameworks else 0.7,
        "paradigm": context.paradigm.primary.confidence,
        "codeType": context.code_type.confidence,
        "executionModel": context.paradigm.execution_model.confidence,
    }

    if breakdown["language"] < 0.6:
        warnings.append("Uncertain language detection")

    if counts.functions == 0 and counts.classes == 0:
        warnings.append("Minimal code structure detected")
        breakdown["paradigm"] *= 0.5

    if context.code_type.type == "unknown":
        warnings.append("Unable to determine code type")
        breakdown["codeType"] = 0.3

    if intent is not None and not intent.is_runnable and intent.blockers:
        warnings.append(f"Execution blockers: {intent.blockers[0]}")

    overall = sum(breakdown.values()) / len(breakdown)
    is_ready = overall >= READINESS_THRESHOLDS["llm_ready"] and len(warnings) < READINESS_THRESHOLDS["max_warnings"]

    return ContextConfidence(
        overall=round(overall, 2),
        breakdown={name: round(value, 2) for name, value in breakdown.items()},
        warnings=warnings,
        is_llm_ready=is_ready,
    )


# ===========================================
# Review-IR
# ===========================================

def truncate_utf8(text: str, budget: int) -> str:
    """Cut ``text`` to at most ``budget`` UTF-8 bytes without splitting a character"""
    encoded = text.encode("utf-8")
    if len(encoded) <= budget:
        return text
    return encoded[:budget].decode("utf-8", errors="ignore")


def _review_elements(cst: CSTNode, language: str) -> Dict[str, List[Dict[str, Any]]]:
    condition_budget = ANALYSIS_CONFIG["condition_byte_budget"]
    outcome_budget = ANALYSIS_CONFIG["outcome_byte_budget"]

    magic_values = map_to_domain_tokens(detect_magic_values(cst, language))
    silent = detect_silent_behaviors(cst, language)

    return {
        "decisionRules": [
            {
                "condition": truncate_utf8(rule.condition, condition_budget),
                "outcome": truncate_utf8(rule.outcome, outcome_budget),
                "location": rule.location[0],
            }
            for rule in extract_decision_rules(cst)
        ],
        "magicValues": [
            {"value": magic.value, "role": magic.role, "location": magic.location[0]}
            for magic in magic_values[:ANALYSIS_CONFIG["magic_value_cap"]]
        ],
        "silentBehaviors": [
            {"type": behavior.type, "risk": behavior.risk, "location": behavior.location[0]}
            for behavior in silent[:ANALYSIS_CONFIG["silent_behavior_cap"]]
        ],
    }


def to_review_ir(context: CodeContext, cst: Optional[CSTNode], code: str) -> Dict[str, Any]:
    """Build the versioned Review-IR record.

    Args:
        context: fully assembled context (confidence and llm_context set)
        cst: the snippet's CST, or None in degraded mode
        code: the snippet text, used for the line count

    Returns:
        Plain dict with camelCase keys, ready for ``json.dumps``
    """
    interactions = context.libraries.external_interactions
    external_types = [t for t in interactions.types if t != "none"]

    if cst is not None:
        control_flow = analyze_control_flow_complexity(cst)
        side_effects = analyze_side_effect_certainty(cst, external_types)
        testability = calculate_testability(cst, interactions.is_deterministic, side_effects,
                                            external_types, control_flow).score
        cyclomatic = control_flow.cyclomatic_complexity
        elements = _review_elements(cst, context.language.language)
    else:
        side_effects = "none"
        testability = 0
        cyclomatic = 0
        elements = {"decisionRules": [], "magicValues": [], "silentBehaviors": []}

    llm = context.llm_context
    readiness = llm.readiness
    counts = context.paradigm.counts
    contract = context.libraries.output_contract

    return {
        "version": REVIEW_IR_VERSION,
        "language": context.language.language,
        "codeType": context.code_type.type,
        "intent": {
            "primary": llm.intent.primary,
            "description": llm.intent.semantic_description,
        },
        "structure": {
            "functions": counts.functions,
            "classes": counts.classes,
            "linesOfCode": count_lines(code),
            "paradigm": context.paradigm.primary.paradigm,
        },
        "behavior": {
            "executionModel": context.paradigm.execution_model.primary,
            "isDeterministic": interactions.is_deterministic,
            "determinismReasons": list(interactions.determinism_reasoning.reasoning),
            "sideEffects": side_effects,
            "externalInteractions": list(interactions.types),
        },
        "state": {
            "lifetime": context.paradigm.state.lifetime,
            "mutability": context.paradigm.state.mutability_score,
            "globalVariables": context.paradigm.state.global_vars,
        },
        "quality": {
            "testability": testability,
            "controlFlowComplexity": cyclomatic,
            "errorHandling": context.libraries.error_handling.approach,
        },
        "guidance": {
            "role": llm.role,
            "readinessScores": {
                "review": readiness.review_readiness,
                "refactor": readiness.refactor_readiness,
                "execution": readiness.execution_readiness,
            },
            "focusAreas": list(llm.focus_areas),
            "promptHints": list(llm.prompt_hints),
            "warnings": list(context.confidence.warnings),
        },
        "elements": elements,
        "outputContract": {
            "structure": contract.structure,
            "meaning": contract.semantic_meaning,
            "guarantees": list(contract.guarantees),
        },
        "complexity": {
            "time": context.complexity.time_complexity.worst_case.big_o,
            "space": context.complexity.space_complexity.big_o,
        },
    }


# ===========================================
# Entry point
# ===========================================

def _degraded_context(code: str, language: LanguageDetectionResult, start: float) -> CodeContext:
    context = CodeContext(
        language=language,
        libraries=LibraryAnalysisResult.unavailable(CST_UNAVAILABLE),
        paradigm=ParadigmAnalysisResult.unavailable(),
        code_type=CodeTypeResult.unavailable(AST_UNAVAILABLE),
        complexity=ComplexityAnalysisResult.unknown(CST_UNAVAILABLE),
        analysis_time=round((time.perf_counter() - start) * 1000, 2),
    )
    context.confidence = ContextConfidence(
        overall=0.0,
        breakdown={"language": language.confidence, "libraries": 0.0, "paradigm": 0.0,
                   "codeType": 0.0, "executionModel": 0.0},
        warnings=[AST_UNAVAILABLE],
        is_llm_ready=False,
    )
    context.llm_context = LLMContext(
        role="explain",
        readiness=LLMReadinessScore(
            review_readiness=0.0,
            refactor_readiness=0.0,
            execution_readiness=0.0,
            breakdown=ReadinessBreakdown(0.0, 0.0, 0.0, 0.0),
            blocking_issues=[CST_UNAVAILABLE],
        ),
        intent=IntentClassification("unknown", 0.0, [], INTENT_DESCRIPTIONS["unknown"]),
        prompt_hints=[f"{CST_UNAVAILABLE} - limited analysis"],
        focus_areas=[],
    )
    context.review_ir = to_review_ir(context, None, code)
    return context


def _safe_complexity(cst: CSTNode, language: str) -> ComplexityAnalysisResult:
    try:
        return analyze_complexity(cst, language)
    except (AttributeError, KeyError, IndexError, TypeError, ValueError, RecursionError) as e:
        logger.warning(f"Complexity analysis failed for {language}: {e}")
        return ComplexityAnalysisResult.unknown(f"Complexity analysis failed: {e}")


def analyze_code_context(code: str, cst: Optional[CSTNode] = None,
                         language: Optional[LanguageDetectionResult] = None) -> Optional[CodeContext]:
    """Characterize one snippet.

    Args:
        code: snippet text
        cst: CST of ``code``; without it the degraded context is returned
        language: a detection result already computed for ``code``

    Returns:
        CodeContext, or None for empty input or when analysis fails
    """
    if not code or not code.strip():
        return None

    start = time.perf_counter()

    try:
        if language is None:
            language = detect_language(code)

        if cst is None:
            logger.debug(f"No CST for {language.language} snippet, returning degraded context")
            return _degraded_context(code, language, start)

        libraries = analyze_libraries(cst, language.language)
        paradigm = analyze_paradigm(cst, language.language)
        code_type = detect_code_type(cst, language.language, libraries)
        complexity = _safe_complexity(cst, language.language)

        context = CodeContext(
            language=language,
            libraries=libraries,
            paradigm=paradigm,
            code_type=code_type,
            complexity=complexity,
            analysis_time=round((time.perf_counter() - start) * 1000, 2),
        )

        intent = classify_intent(cst, paradigm, libraries)
        readiness = calculate_llm_readiness(language, libraries, paradigm, code_type)
        context.llm_context = determine_llm_role(readiness, intent, code_type)
        context.confidence = calculate_context_confidence(context)
        context.review_ir = to_review_ir(context, cst, code)

        logger.info(
            f"Analyzed {language.language} snippet: {code_type.type}, "
            f"{paradigm.primary.paradigm}, {complexity.time_complexity.worst_case.big_o} "
            f"in {context.analysis_time}ms"
        )
        return context

    except Exception as e:
        logger.error(f"Code context analysis failed: {e}")
        return None


def characterize(code: str) -> Optional[CodeContext]:
    """Detect the language, parse, and assemble the context of ``code``"""
    if not code or not code.strip():
        return None

    language = detect_language(code)
    cst = parse_source(code, language.language)
    return analyze_code_context(code, cst, language)
