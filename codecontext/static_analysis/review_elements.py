"""
Review elements extracted directly from the CST

These are the small, concrete facts a reviewer (human or model) needs next to
the high-level characterization:
- Decision rules: condition -> outcome of every field-shaped conditional
- Control-flow complexity: decision points, nesting, linearity, cyclomatic
- Magic values: literals with a recognisable semantic role
- Silent behaviors: pass statements, empty handlers, fallthrough, ignored inputs
- Side-effect certainty and a testability score

Texts are kept whole here. Byte budgets are applied when the Review-IR is
assembled.
"""

import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from .adapters import get_adapter
from .adapters.base import first_identifier
from .cst import CSTNode
from .paradigm_detector import NODE_TABLES

logger = logging.getLogger(__name__)

Location = Tuple[int, int]


# ===========================================
# Node type tables
# ===========================================

# Nodes that open a branch (and count toward nesting)
BRANCH_TYPES = {
    "if_statement", "if_expression", "if", "unless", "if_modifier", "unless_modifier",
    "switch_statement", "switch_expression", "expression_switch_statement", "type_switch_statement",
    "match_statement", "match_expression", "case",
    "ternary_expression", "conditional_expression", "conditional",
}

# Nodes that add a path without opening a new branch level
ARM_TYPES = {
    "elif_clause", "else_if_clause", "elsif",
    "switch_case", "case_statement", "switch_block_statement_group", "switch_rule",
    "expression_case", "type_case", "communication_case", "match_arm", "case_clause", "when",
}

HANDLER_TYPES = {"catch_clause", "except_clause", "rescue"}

LOOP_TYPES = set().union(*(table["loop"] for table in NODE_TABLES.values())) | {"until_modifier", "while_modifier"}

STRING_TYPES = {"string", "string_literal", "template_string", "interpreted_string_literal",
                "raw_string_literal", "encapsed_string", "character_literal"}
NUMBER_TYPES = {"number", "integer", "float", "int_literal", "float_literal", "integer_literal",
                "decimal_integer_literal", "decimal_floating_point_literal", "number_literal"}

PASS_TYPES = {"pass_statement"}
FALLTHROUGH_TYPES = {"switch_case", "case_statement", "switch_block_statement_group"}
CASE_EXITS = re.compile(r"\b(break|return|throw|continue|exit|goto)\b")

UNUSED_PARAMETER_EXEMPT = {"self", "cls", "this", "_"}


# ===========================================
# Magic value tables
# ===========================================

@dataclass(frozen=True)
class DomainToken:
    literal: str
    semantic_role: str
    domain: str
    weight: Optional[int] = None


DOMAIN_TOKEN_TABLES: Dict[str, List[DomainToken]] = {
    "logging": [
        DomainToken("CRITICAL", "severity-boost", "logging", 5),
        DomainToken("ERROR", "severity-boost", "logging", 4),
        DomainToken("WARNING", "severity-moderate", "logging", 3),
        DomainToken("INFO", "severity-normal", "logging", 2),
        DomainToken("DEBUG", "severity-low", "logging", 1),
    ],
    "http": [
        DomainToken("GET", "read-operation", "http"),
        DomainToken("POST", "create-operation", "http"),
        DomainToken("PUT", "update-operation", "http"),
        DomainToken("DELETE", "delete-operation", "http"),
        DomainToken("PATCH", "partial-update", "http"),
    ],
    "status": [
        DomainToken("200", "success", "http-status"),
        DomainToken("201", "created", "http-status"),
        DomainToken("400", "client-error", "http-status"),
        DomainToken("401", "unauthorized", "http-status"),
        DomainToken("404", "not-found", "http-status"),
        DomainToken("500", "server-error", "http-status"),
    ],
    "validation": [
        DomainToken("required", "mandatory-field", "validation"),
        DomainToken("optional", "optional-field", "validation"),
        DomainToken("invalid", "fails-validation", "validation"),
    ],
}

# Numbers every language uses without naming them
MAGIC_NUMBER_EXCEPTIONS = {
    "typescript": {0, 1, -1, 100, 200, 404, 500},
    "python": {0, 1, -1, 100, 200, 404, 500},
    "go": {0, 1, -1},
    "rust": {0, 1, -1},
    "java": {0, 1, -1, 200, 404, 500},
    "cpp": {0, 1, -1},
    "c": {0, 1, -1},
    "ruby": {0, 1, -1},
    "php": {0, 1, -1},
}

# String tokens that stand for the language's own null/boolean values
MAGIC_TOKEN_EXCEPTIONS = {
    "typescript": {"", "null", "undefined", "true", "false"},
    "python": {"", "None", "True", "False"},
    "go": {"", "nil", "true", "false"},
    "rust": {"", "None", "true", "false"},
    "java": {"", "null", "true", "false"},
    "cpp": {"", "nullptr", "true", "false"},
    "c": {"", "NULL", "true", "false"},
    "ruby": {"", "nil", "true", "false"},
    "php": {"", "null", "true", "false"},
}

WELL_KNOWN_STRINGS = {"utf-8", "utf8", "ascii", "localhost", "127.0.0.1", "true", "false", "null", "undefined"}

LOG_LEVELS = {"error", "warning", "info", "debug", "critical", "trace"}
HTTP_METHODS = {"get", "post", "put", "delete", "patch", "head", "options"}
ENVIRONMENTS = {"development", "production", "staging", "test"}
EVENT_NAMES = {"click", "submit", "change", "load", "error", "ready"}
SQL_KEYWORDS = {"select", "insert", "update", "delete", "create", "drop"}
IDENTIFIER_TOKEN = re.compile(r"^[a-z][a-z0-9_-]*$", re.I)

NUMERIC_PREFIX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
FILE_PERMISSIONS = {644, 755, 777, 400}

IO_MARKERS = ("console.log", "print(", "write", "fetch", "http", "readfile", "writefile", "query", "execute")
LOCAL_MUTATION = re.compile(r"(?<![=!<>])=(?!=)|\+\+|--|\bpush\b|\bpop\b|\bsplice\b")

HIGH_CYCLOMATIC = 10


# ===========================================
# Result types
# ===========================================

@dataclass(frozen=True)
class DecisionRule:
    id: str
    condition: str
    outcome: str
    location: Location
    confidence: float


@dataclass(frozen=True)
class ControlFlowComplexity:
    branch_depth: int
    max_nesting: int
    total_branches: int
    decision_points: int
    linearity: float
    cyclomatic_complexity: int


@dataclass(frozen=True)
class MagicValue:
    value: object
    type: str  # string-token | numeric-constant
    location: Location
    context: str
    semantic_role: Optional[str] = None
    domain_token: Optional[DomainToken] = None

    @property
    def role(self) -> Optional[str]:
        if self.domain_token is not None:
            return self.domain_token.semantic_role
        return self.semantic_role


@dataclass(frozen=True)
class SilentBehavior:
    type: str  # pass | ignored-input | fallthrough | empty-catch
    location: Location
    context: str
    risk: str  # low | medium | high


@dataclass(frozen=True)
class TestabilityIndicators:
    __test__ = False

    is_pure: bool
    is_deterministic: bool
    is_isolated: bool
    score: int
    factors: List[str] = field(default_factory=list)


# ===========================================
# Decision rules and control flow
# ===========================================

def extract_decision_rules(cst: CSTNode) -> List[DecisionRule]:
    """Condition/outcome pairs of every conditional with both fields.

    Location rows are 0-based. Confidence drops to 0.6 for long conditions,
    which are usually compound expressions a reader has to untangle.
    """
    rules = []
    for node in cst.walk():
        condition = node.child_by_field("condition")
        consequence = node.child_by_field("consequence")
        if condition is None or consequence is None:
            continue

        condition_text = condition.text.strip()
        rules.append(DecisionRule(
            id=f"rule-{node.start_point[0]}-{node.start_point[1]}",
            condition=condition_text,
            outcome=consequence.text.strip(),
            location=node.start_point,
            confidence=0.9 if len(condition_text) < 100 else 0.6,
        ))

    logger.debug(f"Extracted {len(rules)} decision rules")
    return rules


def _branch_nesting(node: CSTNode) -> int:
    return 1 + sum(1 for ancestor in node.ancestors() if ancestor.type in BRANCH_TYPES)


def analyze_control_flow_complexity(cst: CSTNode) -> ControlFlowComplexity:
    """Decision points and nesting over the whole tree.

    Decision points are branches, arms, ternaries, handlers and loops;
    cyclomatic complexity is decision points + 1.
    """
    max_nesting = 0
    total_branches = 0
    decision_points = 0
    total_nodes = 0

    for node in cst.walk():
        total_nodes += 1
        if not node.is_named:
            continue
        if node.type in BRANCH_TYPES:
            total_branches += 1
            decision_points += 1
            max_nesting = max(max_nesting, _branch_nesting(node))
        elif node.type in ARM_TYPES or node.type in HANDLER_TYPES:
            total_branches += 1
            decision_points += 1
        elif node.type in LOOP_TYPES:
            decision_points += 1

    linearity = 1 - total_branches / total_nodes if total_nodes else 1.0

    return ControlFlowComplexity(
        branch_depth=max_nesting,
        max_nesting=max_nesting,
        total_branches=total_branches,
        decision_points=decision_points,
        linearity=round(max(0.0, min(1.0, linearity)), 2),
        cyclomatic_complexity=decision_points + 1,
    )


# ===========================================
# Magic values
# ===========================================

@dataclass
class _LiteralContext:
    nearby_text: str
    in_condition: bool
    in_loop: bool


def _literal_context(node: CSTNode) -> _LiteralContext:
    """Preceding siblings on the way up three levels, plus enclosing constructs"""
    nearby = []
    in_condition = False
    in_loop = False

    current = node
    for _ in range(3):
        parent = current.parent
        if parent is None:
            break
        index = next(i for i, child in enumerate(parent.children) if child is current)
        if index > 0:
            nearby.insert(0, parent.children[index - 1].text)
        if parent.type in BRANCH_TYPES or parent.type in ARM_TYPES or parent.field_name == "condition" \
                or current.field_name == "condition":
            in_condition = True
        if parent.type in LOOP_TYPES:
            in_loop = True
        current = parent

    return _LiteralContext(" ".join(nearby).lower(), in_condition, in_loop)


def _string_value(text: str) -> str:
    return text.strip("`'\"").replace('"', "").replace("'", "")


def parse_numeric_literal(text: str) -> Optional[float]:
    """Leading decimal value of a numeric literal, ignoring digit separators"""
    match = NUMERIC_PREFIX.match(text.replace("_", "").replace("'", ""))
    if match is None:
        return None
    if text.lower().startswith(("0x", "0b", "0o")):
        return None
    return float(match.group(0))


def string_semantic_role(value: str) -> Optional[str]:
    lowered = value.lower()

    if lowered in LOG_LEVELS:
        return "log-level"
    if lowered in HTTP_METHODS:
        return "http-method"
    if lowered in ENVIRONMENTS:
        return "environment"
    if lowered in EVENT_NAMES:
        return "event-name"
    if value.startswith("/") or value.startswith("http"):
        return "url-path"
    if lowered in SQL_KEYWORDS:
        return "sql-keyword"
    if IDENTIFIER_TOKEN.match(value) and len(value) > 3:
        return "identifier-token"
    return None


def numeric_semantic_role(value: float, context: _LiteralContext) -> Optional[str]:
    nearby = context.nearby_text

    if 100 <= value <= 599 and ("status" in nearby or "code" in nearby):
        return "http-status"
    if 100 <= value <= 300000 and any(word in nearby for word in ("timeout", "delay", "wait")):
        return "timeout-ms"
    if 0 <= value <= 100 and ("percent" in nearby or "%" in nearby):
        return "percentage"
    if 1 <= value <= 65535 and "port" in nearby:
        return "port-number"
    if value in FILE_PERMISSIONS:
        return "file-permission"
    if abs(value - math.pi) < 0.001 or abs(value - math.e) < 0.001 or value in (0.5, 0.25, 0.75):
        return "math-constant"
    if context.in_loop and 0 < value < 1000:
        return "loop-bound"
    if 0 < value < 1 and any(word in nearby for word in ("weight", "threshold", "confidence")):
        return "weight-threshold"
    return None


def _display_number(value: float):
    return int(value) if value.is_integer() else value


def detect_magic_values(cst: CSTNode, language: Optional[str] = None) -> List[MagicValue]:
    """String and numeric literals that carry a semantic role.

    Each distinct literal is reported once, at its first occurrence. Values
    that the language treats as ordinary (0, 1, its null spelling...) and
    well-known strings such as encodings are skipped.
    """
    number_exceptions = MAGIC_NUMBER_EXCEPTIONS.get(language, set())
    token_exceptions = MAGIC_TOKEN_EXCEPTIONS.get(language, set())
    seen = set()
    found = []

    for node in cst.walk():
        if not node.is_named:
            continue
        if node.type in STRING_TYPES:
            if any(ancestor.type in STRING_TYPES for ancestor in node.ancestors()):
                continue
            value = _string_value(node.text)
            if len(value) <= 2 or value in token_exceptions or value in seen:
                continue
            role = string_semantic_role(value)
            if role is None or value.lower() in WELL_KNOWN_STRINGS:
                continue
            found.append(MagicValue(
                value=value,
                type="string-token",
                location=node.start_point,
                context=_literal_context(node).nearby_text[:50],
                semantic_role=role,
            ))
            seen.add(value)

        elif node.type in NUMBER_TYPES:
            number = parse_numeric_literal(node.text)
            if number is None or number in number_exceptions or node.text in seen:
                continue
            context = _literal_context(node)
            role = numeric_semantic_role(number, context)
            if role is None:
                continue
            found.append(MagicValue(
                value=_display_number(number),
                type="numeric-constant",
                location=node.start_point,
                context=context.nearby_text[:50],
                semantic_role=role,
            ))
            seen.add(node.text)

    logger.debug(f"Detected {len(found)} magic values")
    return found


def map_to_domain_tokens(magic_values: List[MagicValue]) -> List[MagicValue]:
    """Attach the first matching domain token (case-insensitive) to each value"""
    mapped = []
    for magic in magic_values:
        literal = str(magic.value).lower()
        token = next(
            (t for tokens in DOMAIN_TOKEN_TABLES.values() for t in tokens if t.literal.lower() == literal),
            None,
        )
        mapped.append(replace(magic, domain_token=token) if token else magic)
    return mapped


# ===========================================
# Silent behaviors
# ===========================================

def _handler_body(node: CSTNode) -> Optional[CSTNode]:
    body = node.child_by_field("body")
    if body is not None:
        return body
    for child in node.children:
        if "block" in child.type or "body" in child.type or child.type == "then":
            return child
    return None


def _parameter_names(function_node: CSTNode, language: Optional[str]) -> List[str]:
    adapter = get_adapter(language) if language else None
    if adapter is not None:
        return adapter.extract_parameters(function_node)

    params_node = function_node.child_by_field("parameters")
    if params_node is None:
        return []
    names = []
    for param in params_node.named_children:
        name_node = param.child_by_field("name")
        name = name_node.text if name_node is not None else first_identifier(param.text)
        if name:
            names.append(name)
    return names


def _ignored_parameters(function_node: CSTNode, language: Optional[str]) -> List[str]:
    body = function_node.child_by_field("body")
    if body is None:
        return []

    used = {node.text for node in body.walk() if not node.children or node.type == "variable_name"}
    return [
        name for name in _parameter_names(function_node, language)
        if name not in UNUSED_PARAMETER_EXEMPT and not name.startswith("_") and name not in used
    ]


def detect_silent_behaviors(cst: CSTNode, language: Optional[str] = None) -> List[SilentBehavior]:
    function_types = set()
    if language in NODE_TABLES:
        function_types = NODE_TABLES[language]["function"] | NODE_TABLES[language]["closure"]

    behaviors = []
    for node in cst.walk():
        if not node.is_named:
            continue
        if node.type in PASS_TYPES:
            parent = node.parent
            behaviors.append(SilentBehavior(
                type="pass",
                location=node.start_point,
                context=parent.text[:50] if parent is not None else "",
                risk="low",
            ))

        elif node.type in HANDLER_TYPES:
            body = _handler_body(node)
            if body is not None and len(body.text.strip()) < 5:
                behaviors.append(SilentBehavior(
                    type="empty-catch",
                    location=node.start_point,
                    context="Exception handling without action",
                    risk="high",
                ))

        elif node.type in FALLTHROUGH_TYPES:
            if len(node.named_children) > 1 and not CASE_EXITS.search(node.text):
                behaviors.append(SilentBehavior(
                    type="fallthrough",
                    location=node.start_point,
                    context="Switch case without break",
                    risk="medium",
                ))

        elif node.type in function_types:
            for name in _ignored_parameters(node, language):
                behaviors.append(SilentBehavior(
                    type="ignored-input",
                    location=node.start_point,
                    context=f"Unused parameter: {name[:20]}",
                    risk="low",
                ))

    logger.debug(f"Detected {len(behaviors)} silent behaviors")
    return behaviors


# ===========================================
# Side effects and testability
# ===========================================

def analyze_side_effect_certainty(cst: CSTNode, external_interactions: List[str]) -> str:
    """none | local-only | external-likely | external-confirmed

    ``external_interactions`` are the detected interaction types without the
    ``none`` placeholder.
    """
    if external_interactions:
        return "external-confirmed"

    code_text = cst.text.lower()
    if any(marker in code_text for marker in IO_MARKERS):
        return "external-likely"
    if LOCAL_MUTATION.search(code_text):
        return "local-only"
    return "none"


def calculate_testability(cst: CSTNode, is_deterministic: bool, side_effect_certainty: str,
                          external_interactions: List[str],
                          control_flow: Optional[ControlFlowComplexity] = None) -> TestabilityIndicators:
    factors = []
    score = 100

    is_pure = side_effect_certainty == "none"
    if is_pure:
        factors.append("Pure function")
    else:
        score -= 30
        factors.append("Has side effects")

    if is_deterministic:
        factors.append("Deterministic output")
    else:
        score -= 25
        factors.append("Non-deterministic")

    is_isolated = not external_interactions
    if is_isolated:
        factors.append("No external dependencies")
    else:
        score -= 20
        factors.append("External dependencies")

    if control_flow is None:
        control_flow = analyze_control_flow_complexity(cst)
    if control_flow.cyclomatic_complexity > HIGH_CYCLOMATIC:
        score -= 15
        factors.append("High complexity")

    return TestabilityIndicators(
        is_pure=is_pure,
        is_deterministic=is_deterministic,
        is_isolated=is_isolated,
        score=max(0, score),
        factors=factors[:4],
    )
