"""
Paradigm detection

Counts structural evidence in the CST (classes, functions, loops, pure and
higher-order functions, array combinators, mutations) and turns it into
object-oriented / functional / procedural scores normalized to 100.

Also reports:
- Execution model (synchronous, asynchronous, event-driven, concurrent, mixed)
- State lifetime and mutability
- Paradigm mixing and how well the primary paradigm fits the language
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .adapters.base import last_identifier
from .cst import CSTNode

logger = logging.getLogger(__name__)

PARADIGMS = ("object-oriented", "functional", "procedural")

# class / function / loop / closure node types per grammar
NODE_TABLES = {
    "typescript": {
        "class": {"class_declaration", "class"},
        "function": {"function_declaration", "method_definition", "arrow_function", "function_expression",
                     "generator_function_declaration"},
        "loop": {"for_statement", "for_in_statement", "while_statement", "do_statement"},
        "closure": {"arrow_function", "function_expression"},
    },
    "python": {
        "class": {"class_definition"},
        "function": {"function_definition"},
        "loop": {"for_statement", "while_statement"},
        "closure": {"lambda", "function_definition"},
    },
    "go": {
        "class": set(),
        "function": {"function_declaration", "method_declaration"},
        "loop": {"for_statement"},
        "closure": {"func_literal"},
    },
    "rust": {
        "class": set(),
        "function": {"function_item"},
        "loop": {"for_expression", "while_expression", "loop_expression"},
        "closure": {"closure_expression"},
    },
    "java": {
        "class": {"class_declaration"},
        "function": {"method_declaration", "constructor_declaration"},
        "loop": {"for_statement", "while_statement", "do_statement", "enhanced_for_statement"},
        "closure": {"lambda_expression"},
    },
    "cpp": {
        "class": {"class_specifier"},
        "function": {"function_definition"},
        "loop": {"for_statement", "while_statement", "do_statement", "for_range_loop"},
        "closure": {"lambda_expression"},
    },
    "c": {
        "class": set(),
        "function": {"function_definition"},
        "loop": {"for_statement", "while_statement", "do_statement"},
        "closure": set(),
    },
    "ruby": {
        "class": {"class"},
        "function": {"method", "singleton_method"},
        "loop": {"for", "while", "until"},
        "closure": {"lambda", "block", "do_block"},
    },
    "php": {
        "class": {"class_declaration"},
        "function": {"method_declaration", "function_definition"},
        "loop": {"for_statement", "while_statement", "do_statement", "foreach_statement"},
        "closure": {"anonymous_function", "arrow_function", "anonymous_function_creation_expression"},
    },
}

LOOP_KIND_NAMES = {
    "for_statement": "for",
    "for_in_statement": "for...in",
    "while_statement": "while",
    "do_statement": "do...while",
    "enhanced_for_statement": "for-each",
    "foreach_statement": "foreach",
    "for_range_loop": "range-for",
    "for_expression": "for",
    "while_expression": "while",
    "loop_expression": "loop",
}

CALL_TYPES = {"call_expression", "call", "method_invocation", "macro_invocation",
              "function_call_expression", "member_call_expression", "scoped_call_expression"}
CALLEE_FIELDS = ("function", "method", "name", "macro")

COMBINATOR_NAMES = {"map", "filter", "reduce", "forEach", "foreach", "flatMap", "flat_map", "fold",
                    "filter_map", "reduceRight", "collect", "select", "reject", "inject", "each"}

SIDE_EFFECT_CALLEE = re.compile(
    r"console\.\w+|^print\w*$|^println!?$|^printf$|^puts$|write\w*|^fetch$|http\w*|"
    r"^fmt\.\w*print\w*|System\.(out|err)\.\w+|^echo$|^log\.\w+|^logger\.\w+|^logging\.\w+",
    re.I,
)

RETURN_TYPES = {"return_statement", "return_expression", "return"}
MUTATION_TYPES = {"update_expression", "augmented_assignment_expression", "inc_statement", "dec_statement"}

# Language weight multipliers for (oop, functional, procedural)
LANGUAGE_WEIGHTS = {
    "typescript": (1.0, 1.2, 0.9),
    "python": (1.1, 1.0, 1.0),
    "go": (0.7, 0.8, 1.3),
    "rust": (0.8, 1.3, 0.9),
    "java": (1.5, 0.7, 0.8),
    "cpp": (1.3, 0.7, 1.1),
    "c": (0.3, 0.5, 1.5),
    "ruby": (1.4, 0.9, 0.8),
    "php": (1.2, 0.7, 1.1),
}

PARADIGM_AFFINITY = {
    "typescript": {"object-oriented": 0.9, "functional": 0.9, "procedural": 0.7},
    "python": {"object-oriented": 0.9, "functional": 0.8, "procedural": 0.9},
    "go": {"object-oriented": 0.6, "functional": 0.6, "procedural": 1.0},
    "rust": {"object-oriented": 0.7, "functional": 1.0, "procedural": 0.8},
    "java": {"object-oriented": 1.0, "functional": 0.7, "procedural": 0.7},
    "cpp": {"object-oriented": 1.0, "functional": 0.6, "procedural": 0.9},
    "c": {"object-oriented": 0.3, "functional": 0.4, "procedural": 1.0},
    "ruby": {"object-oriented": 1.0, "functional": 0.8, "procedural": 0.7},
    "php": {"object-oriented": 0.9, "functional": 0.6, "procedural": 0.8},
}

SECONDARY_MIN_SCORE = 20
SECONDARY_MIN_RATIO = 0.4
MIXING_THRESHOLD = 25

VALID_NAME = re.compile(r"^[A-Za-z_]\w*$")


# ===========================================
# Result types
# ===========================================

@dataclass(frozen=True)
class ParadigmScore:
    paradigm: str
    score: int
    confidence: float
    indicators: List[str] = field(default_factory=list)


@dataclass
class PatternCounts:
    classes: int = 0
    functions: int = 0
    pure_functions: int = 0
    higher_order_functions: int = 0
    mutations: int = 0
    loops: int = 0
    methods_in_classes: int = 0
    arrow_functions: int = 0
    const_declarations: int = 0
    map_filter_reduce: int = 0
    side_effects: int = 0
    class_names: List[str] = field(default_factory=list)
    function_names: List[str] = field(default_factory=list)
    loop_kinds: List[Tuple[str, int]] = field(default_factory=list)
    first_class_position: Tuple[int, int] = (0, 0)

    @property
    def total_evidence(self) -> int:
        return self.classes + self.functions + self.loops + self.map_filter_reduce + self.higher_order_functions


@dataclass(frozen=True)
class ExecutionModelAnalysis:
    primary: str
    confidence: float
    indicators: List[str]
    async_patterns: int
    event_patterns: int
    concurrency_patterns: int


@dataclass(frozen=True)
class StateAnalysis:
    lifetime: str
    confidence: float
    global_vars: int
    mutability_score: int
    indicators: List[str]
    escaping_references: int
    closure_captures: int


@dataclass(frozen=True)
class MixingPattern:
    paradigm_a: str
    paradigm_b: str
    row: int
    column: int
    reason: str     # legacy-code | optimization | framework-required | inconsistent
    severity: str   # low | medium | high


@dataclass(frozen=True)
class ParadigmMixing:
    is_intentional: bool
    patterns: List[MixingPattern]
    recommendation: str  # refactor | accept | document
    score: float


@dataclass(frozen=True)
class ParadigmAnalysisResult:
    primary: ParadigmScore
    secondary: Optional[ParadigmScore]
    counts: PatternCounts
    execution_model: ExecutionModelAnalysis
    state: StateAnalysis
    mixing: Optional[ParadigmMixing] = None
    fitness_score: float = 0.5

    @property
    def pattern_counts(self) -> Dict[str, int]:
        return {
            "classes": self.counts.classes,
            "functions": self.counts.functions,
            "pureFunctions": self.counts.pure_functions,
            "higherOrderFunctions": self.counts.higher_order_functions,
            "mutations": self.counts.mutations,
            "loops": self.counts.loops,
        }

    @classmethod
    def unavailable(cls) -> "ParadigmAnalysisResult":
        return cls(
            primary=ParadigmScore(paradigm="unknown", score=0, confidence=0.0),
            secondary=None,
            counts=PatternCounts(),
            execution_model=ExecutionModelAnalysis("synchronous", 0.0, [], 0, 0, 0),
            state=StateAnalysis("stateless", 0.0, 0, 0, [], 0, 0),
        )


# ===========================================
# Counting
# ===========================================

def _valid_name(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    name = text.strip()
    if VALID_NAME.match(name) and len(name) < 50:
        return name
    return None


def _declared_name(node: CSTNode) -> Optional[str]:
    name_node = node.child_by_field("name")
    if name_node is not None:
        return _valid_name(name_node.text)

    parent = node.parent
    if parent is not None:
        if parent.type == "variable_declarator":
            return _valid_name(getattr(parent.child_by_field("name"), "text", None))
        if parent.type in ("pair", "property_assignment"):
            return _valid_name(getattr(parent.child_by_field("key"), "text", None))

    # C family: int *name(...) nests the name inside declarators
    declarator = node.child_by_field("declarator")
    while declarator is not None and declarator.child_by_field("declarator") is not None:
        declarator = declarator.child_by_field("declarator")
    if declarator is not None:
        return _valid_name(last_identifier(declarator.text))
    return None


def callee_text(node: CSTNode) -> str:
    for field_name in CALLEE_FIELDS:
        callee = node.child_by_field(field_name)
        if callee is not None:
            # Ruby and Java keep the receiver in a separate field
            receiver = node.child_by_field("receiver") or node.child_by_field("object")
            if receiver is not None and field_name in ("method", "name") and node.type != "call_expression":
                return f"{receiver.text}.{callee.text}"
            return callee.text
    named = node.named_children
    return named[0].text if named else ""


def _returns_function(function_node: CSTNode, closure_types: set) -> bool:
    # Arrow functions with an expression body return it implicitly
    body = function_node.child_by_field("body")
    if function_node.type == "arrow_function" and body is not None and body.type in closure_types:
        return True

    nested_names = set()
    returns = []
    for node in function_node.walk():
        if node is function_node:
            continue
        if node.type in closure_types:
            name = _declared_name(node)
            if name:
                nested_names.add(name)
        elif node.type in RETURN_TYPES:
            returns.append(node)

    for ret in returns:
        if any(inner.type in closure_types for inner in ret.walk() if inner is not ret):
            return True
        parts = ret.text.split(None, 1)
        if len(parts) == 2 and parts[1].strip().rstrip(";") in nested_names:
            return True
    return False


def count_patterns(cst: CSTNode, language: str) -> PatternCounts:
    counts = PatternCounts()
    tables = NODE_TABLES.get(language)
    if tables is None:
        return counts

    class_types = tables["class"]
    function_types = tables["function"]
    loop_types = tables["loop"]

    for node in cst.walk():
        if not node.is_named:
            continue
        node_type = node.type

        if node_type in class_types:
            if counts.classes == 0:
                counts.first_class_position = node.start_point
            counts.classes += 1
            name = _declared_name(node)
            if name:
                counts.class_names.append(name)

        elif node_type in function_types:
            counts.functions += 1
            if any(ancestor.type in class_types for ancestor in node.ancestors()):
                counts.methods_in_classes += 1
            if node_type == "arrow_function":
                counts.arrow_functions += 1
            name = _declared_name(node)
            if name:
                counts.function_names.append(name)
            if _returns_function(node, tables["closure"]):
                counts.higher_order_functions += 1

        elif node_type in loop_types:
            counts.loops += 1
            counts.loop_kinds.append((LOOP_KIND_NAMES.get(node_type, node_type), node.row))

        elif node_type in CALL_TYPES:
            callee = callee_text(node)
            if last_identifier(callee) in COMBINATOR_NAMES:
                counts.map_filter_reduce += 1
            if SIDE_EFFECT_CALLEE.search(callee):
                counts.side_effects += 1

        elif language == "typescript" and node_type == "lexical_declaration":
            if node.text.startswith("const"):
                counts.const_declarations += 1

        if "assignment" in node_type or node_type in MUTATION_TYPES:
            counts.mutations += 1

    counts.pure_functions = max(0, counts.functions - counts.side_effects - int(counts.mutations * 0.3))
    logger.debug(
        f"Paradigm evidence ({language}): {counts.classes} classes, {counts.functions} functions, "
        f"{counts.loops} loops, {counts.mutations} mutations"
    )
    return counts


# ===========================================
# Scoring
# ===========================================

def calculate_scores(counts: PatternCounts, language: str) -> Dict[str, int]:
    """Paradigm scores normalized to sum to 100 (all zero when there is no evidence)"""
    oop_weight, functional_weight, procedural_weight = LANGUAGE_WEIGHTS.get(language, (1.0, 1.0, 1.0))

    oop = (counts.classes * 15 + counts.methods_in_classes * 5) * oop_weight
    functional = (
        counts.pure_functions * 8
        + counts.higher_order_functions * 12
        + counts.arrow_functions * 4
        + counts.map_filter_reduce * 6
        + counts.const_declarations * 2
    ) * functional_weight
    procedural = (
        counts.loops * 10
        + counts.mutations * 5
        + (counts.functions - counts.methods_in_classes) * 3
    ) * procedural_weight

    total = oop + functional + procedural
    if total == 0:
        return {paradigm: 0 for paradigm in PARADIGMS}
    return {
        "object-oriented": round(oop / total * 100),
        "functional": round(functional / total * 100),
        "procedural": round(procedural / total * 100),
    }


def _plural(count: int, noun: str, plural: str = "s") -> str:
    return f"{count} {noun}{plural if count > 1 else ''}"


def paradigm_indicators(paradigm: str, counts: PatternCounts) -> List[str]:
    indicators = []
    if paradigm == "object-oriented":
        if counts.classes:
            indicators.append(_plural(counts.classes, "class", "es"))
        if counts.methods_in_classes:
            indicators.append(_plural(counts.methods_in_classes, "method"))
    elif paradigm == "functional":
        if counts.pure_functions:
            indicators.append(_plural(counts.pure_functions, "pure function"))
        if counts.map_filter_reduce:
            indicators.append(_plural(counts.map_filter_reduce, "array method"))
        if counts.arrow_functions:
            indicators.append(_plural(counts.arrow_functions, "arrow function"))
    else:
        if counts.loops:
            indicators.append(_plural(counts.loops, "loop"))
        if counts.mutations:
            indicators.append(_plural(counts.mutations, "mutation"))
    return indicators[:3]


def evidence_confidence(score: float, total_patterns: int) -> float:
    """Normalized score discounted when there is little evidence behind it"""
    if total_patterns == 0:
        return 0.0
    confidence = score / 100
    if total_patterns < 5:
        confidence *= 0.6
    elif total_patterns < 10:
        confidence *= 0.8
    elif total_patterns < 20:
        confidence *= 0.9
    # Truncated to two places: never above the discounted score
    return min(math.floor(confidence * 100 + 1e-9) / 100, 1.0)


# ===========================================
# Execution model and state
# ===========================================

ASYNC_PATTERNS = [re.compile(p) for p in (r"\basync\b", r"\bawait\b", r"\bpromise\b", r"\.then\(", r"\.catch\(")]
EVENT_PATTERNS = [re.compile(p) for p in (r"addeventlistener", r"\.on\(", r"\.once\(", r"emitter",
                                          r"observable", r"\bsubject\b")]
CONCURRENCY_PATTERNS = [re.compile(p) for p in (r"\bthread", r"mutex", r"\block\b|\.lock\(", r"atomic",
                                                r"concurrent", r"parallel")]


def analyze_execution_model(cst: CSTNode, language: str) -> ExecutionModelAnalysis:
    code_text = cst.text.lower()

    async_patterns = sum(1 for p in ASYNC_PATTERNS if p.search(code_text))
    if language == "python" and ("asyncio" in code_text or "async def" in code_text):
        async_patterns += 2
    if language == "go" and (re.search(r"\bgo\s+\w", code_text) or "chan " in code_text):
        async_patterns += 2
    if language == "rust" and ("async fn" in code_text or ".await" in code_text):
        async_patterns += 2

    event_patterns = sum(1 for p in EVENT_PATTERNS if p.search(code_text))

    concurrency_patterns = sum(1 for p in CONCURRENCY_PATTERNS if p.search(code_text))
    if language == "go" and ("sync." in code_text or "goroutine" in code_text):
        concurrency_patterns += 2

    primary = "synchronous"
    max_score = 0
    indicators = []
    for model, count, label in (
        ("asynchronous", async_patterns, "async patterns"),
        ("event-driven", event_patterns, "event handlers"),
        ("concurrent", concurrency_patterns, "concurrency primitives"),
    ):
        if count > max_score:
            primary, max_score = model, count
            indicators.append(f"{count} {label}")

    total = async_patterns + event_patterns + concurrency_patterns
    if total > 3 and max_score < total * 0.7:
        primary = "mixed"
        indicators.append("multiple execution models")

    return ExecutionModelAnalysis(
        primary=primary,
        confidence=round(min(1.0, (max_score + total) / 10), 2),
        indicators=indicators[:3],
        async_patterns=async_patterns,
        event_patterns=event_patterns,
        concurrency_patterns=concurrency_patterns,
    )


def analyze_state(cst: CSTNode, language: str, counts: PatternCounts) -> StateAnalysis:
    code_text = cst.text
    global_vars = 0
    mutability = 0.0
    escaping = 0
    closures = 0

    if language == "typescript":
        global_vars = len(re.findall(r"^(?:let|var)\s+\w+", code_text, re.M))
        const_count = len(re.findall(r"^const\s+\w+", code_text, re.M))
        if global_vars:
            mutability = global_vars / (global_vars + const_count) * 100
        escaping = len(re.findall(r"return\s+\{[^}]*\}", code_text)) + len(re.findall(r"return\s+\[", code_text))
        closures = len(re.findall(r"=>\s*\{[^}]*\w+[^}]*\}", code_text))
    elif language == "python":
        global_vars = len(re.findall(r"^[A-Za-z_]\w*\s*=[^=]", code_text, re.M))
        closures = len(re.findall(r"\b(?:nonlocal|global)\s+", code_text))
    elif language == "go":
        global_vars = len(re.findall(r"^var\s+\w+", code_text, re.M))
        escaping = len(re.findall(r"return\s+&", code_text))
    elif language == "rust":
        global_vars = len(re.findall(r"^\s*static\s+mut\s+\w+", code_text, re.M))
    elif language in ("c", "cpp"):
        global_vars = len(re.findall(r"^(?:static\s+)?(?:int|long|char|double|float|bool|size_t)\s+\w+\s*(?:=|;)",
                                     code_text, re.M))

    mutability += counts.mutations / (counts.functions + 1) * 50
    mutability = min(100.0, mutability)

    lifetime = "stateless"
    indicators = []
    if global_vars > 3 and mutability > 40:
        lifetime = "global-mutable"
        indicators.append(f"{global_vars} mutable globals")
    elif global_vars > 2 and mutability <= 40:
        lifetime = "global-immutable"
        indicators.append(f"{global_vars} immutable globals")
    elif escaping > 2 or closures > 2:
        lifetime = "local-escaping"
        indicators.append("escaping references detected")
    elif counts.mutations > counts.functions and global_vars == 0:
        lifetime = "shared-mutable"
        indicators.append("local mutation patterns")
    elif counts.functions > 0 and escaping == 0:
        lifetime = "local-ephemeral"
        indicators.append("ephemeral local state")

    return StateAnalysis(
        lifetime=lifetime,
        confidence=0.85 if global_vars > 0 or counts.functions > 0 else 0.4,
        global_vars=global_vars,
        mutability_score=round(mutability),
        indicators=indicators[:2],
        escaping_references=escaping,
        closure_captures=closures,
    )


def detect_paradigm_mixing(counts: PatternCounts, scores: Dict[str, int]) -> ParadigmMixing:
    active = [paradigm for paradigm in PARADIGMS if scores[paradigm] > MIXING_THRESHOLD]
    if len(active) < 2:
        return ParadigmMixing(is_intentional=False, patterns=[], recommendation="accept", score=0.0)

    row, column = counts.first_class_position
    patterns = []
    oop, functional, procedural = (scores[p] > MIXING_THRESHOLD for p in PARADIGMS)

    if oop and functional and counts.classes and counts.map_filter_reduce:
        patterns.append(MixingPattern("object-oriented", "functional", row, column, "framework-required", "low"))
    if oop and procedural and counts.classes and counts.loops > counts.map_filter_reduce * 2:
        patterns.append(MixingPattern("object-oriented", "procedural", row, column, "legacy-code", "medium"))
    if functional and procedural and counts.loops and counts.map_filter_reduce:
        patterns.append(MixingPattern("functional", "procedural", 0, 0, "inconsistent", "high"))

    recommendation = "accept"
    if any(p.severity == "high" for p in patterns):
        recommendation = "refactor"
    elif any(p.severity == "medium" for p in patterns):
        recommendation = "document"

    return ParadigmMixing(
        is_intentional=all(p.reason in ("framework-required", "optimization") for p in patterns),
        patterns=patterns,
        recommendation=recommendation,
        score=round(len(active) / 3, 2),
    )


def paradigm_fitness(paradigm: str, language: str) -> float:
    return PARADIGM_AFFINITY.get(language, {}).get(paradigm, 0.5)


def analyze_paradigm(cst: CSTNode, language: str) -> ParadigmAnalysisResult:
    """Classify the dominant programming paradigm of a snippet"""
    counts = count_patterns(cst, language)
    scores = calculate_scores(counts, language)
    total_patterns = counts.total_evidence

    if not any(scores.values()):
        ranked = [("procedural", 0), ("object-oriented", 0), ("functional", 0)]
    else:
        # Stable sort keeps PARADIGMS order on ties
        ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)

    (first, first_score), (second, second_score) = ranked[0], ranked[1]
    primary = ParadigmScore(
        paradigm=first,
        score=first_score,
        confidence=evidence_confidence(first_score, total_patterns),
        indicators=paradigm_indicators(first, counts),
    )

    secondary = None
    if second_score >= SECONDARY_MIN_SCORE and second_score >= first_score * SECONDARY_MIN_RATIO:
        secondary = ParadigmScore(
            paradigm=second,
            score=second_score,
            confidence=evidence_confidence(second_score, total_patterns),
            indicators=paradigm_indicators(second, counts),
        )

    mixing = detect_paradigm_mixing(counts, scores)

    return ParadigmAnalysisResult(
        primary=primary,
        secondary=secondary,
        counts=counts,
        execution_model=analyze_execution_model(cst, language),
        state=analyze_state(cst, language, counts),
        mixing=mixing if mixing.patterns else None,
        fitness_score=paradigm_fitness(primary.paradigm, language),
    )
