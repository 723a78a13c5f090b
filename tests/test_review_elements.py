"""Tests for the review elements extracted from the CST"""

from codecontext.static_analysis.review_elements import (
    ControlFlowComplexity,
    analyze_control_flow_complexity,
    analyze_side_effect_certainty,
    calculate_testability,
    detect_magic_values,
    detect_silent_behaviors,
    extract_decision_rules,
    map_to_domain_tokens,
    parse_numeric_literal,
    string_semantic_role,
)

GRADE = '''def grade(score):
    if score > 90:
        return "A"
    elif score > 80:
        return "B"
    return "C"
'''

REQUEST = '''method = "GET"
url = "/api/users"
again = "GET"
encoding = "utf-8"
flag = "True"
os.chmod(path, 755)
'''

SWALLOWED = '''try:
    run()
except:
    pass
'''


class TestDecisionRules:
    """Conditionals with both a condition and a consequence"""

    def test_if_and_elif(self, parse):
        rules = extract_decision_rules(parse(GRADE, "python"))
        assert [rule.condition for rule in rules] == ["score > 90", "score > 80"]
        assert [rule.id for rule in rules] == ["rule-1-4", "rule-3-4"]
        assert rules[0].outcome == 'return "A"'
        assert all(rule.confidence == 0.9 for rule in rules)

    def test_no_conditionals(self, parse):
        assert extract_decision_rules(parse("x = 1\n", "python")) == []


class TestControlFlow:
    def test_elif_adds_a_path(self, parse):
        flow = analyze_control_flow_complexity(parse(GRADE, "python"))
        assert flow.decision_points == 2
        assert flow.cyclomatic_complexity == 3
        assert flow.max_nesting == 1

    def test_straight_line_code(self, parse):
        flow = analyze_control_flow_complexity(parse("x = 1\ny = 2\n", "python"))
        assert flow.cyclomatic_complexity == 1
        assert flow.total_branches == 0
        assert flow.linearity == 1.0


class TestMagicValues:
    """Literals with a recognisable role, reported once each"""

    def test_strings_and_numbers(self, parse):
        values = detect_magic_values(parse(REQUEST, "python"), "python")
        by_value = {magic.value: magic for magic in values}
        assert list(by_value) == ["GET", "/api/users", 755], f"Unexpected magic values {list(by_value)}"
        assert by_value["GET"].semantic_role == "http-method"
        assert by_value["/api/users"].semantic_role == "url-path"
        assert by_value[755].semantic_role == "file-permission"
        assert by_value[755].type == "numeric-constant"

    def test_domain_tokens_refine_the_role(self, parse):
        values = map_to_domain_tokens(detect_magic_values(parse(REQUEST, "python"), "python"))
        get = next(magic for magic in values if magic.value == "GET")
        assert get.domain_token is not None
        assert get.domain_token.domain == "http"
        assert get.role == "read-operation"

    def test_string_roles(self):
        assert string_semantic_role("production") == "environment"
        assert string_semantic_role("click") == "event-name"
        assert string_semantic_role("SELECT") == "sql-keyword"
        assert string_semantic_role("ab!") is None

    def test_numeric_literal_parsing(self):
        assert parse_numeric_literal("1_000") == 1000.0
        assert parse_numeric_literal("2.5f") == 2.5
        assert parse_numeric_literal("0xFF") is None


class TestSilentBehaviors:
    def test_swallowed_exception(self, parse):
        behaviors = detect_silent_behaviors(parse(SWALLOWED, "python"), "python")
        assert {b.type for b in behaviors} == {"pass", "empty-catch"}
        empty_catch = next(b for b in behaviors if b.type == "empty-catch")
        assert empty_catch.risk == "high"

    def test_unused_parameter(self, parse):
        behaviors = detect_silent_behaviors(parse("def f(a, b):\n    return a\n", "python"), "python")
        assert [b.type for b in behaviors] == ["ignored-input"]
        assert behaviors[0].context == "Unused parameter: b"

    def test_self_is_exempt(self, parse):
        code = "class A:\n    def size(self):\n        return 1\n"
        assert detect_silent_behaviors(parse(code, "python"), "python") == []


class TestSideEffectsAndTestability:
    def test_side_effect_certainty(self, text_node):
        assert analyze_side_effect_certainty(text_node("return a + b"), []) == "none"
        assert analyze_side_effect_certainty(text_node("x = 1"), []) == "local-only"
        assert analyze_side_effect_certainty(text_node("print(x)"), []) == "external-likely"
        assert analyze_side_effect_certainty(text_node("x = 1"), ["database"]) == "external-confirmed"

    def test_comparison_is_not_mutation(self, text_node):
        assert analyze_side_effect_certainty(text_node("return a == b"), []) == "none"

    def test_ideal_testability(self, text_node):
        result = calculate_testability(text_node("return a + b"), True, "none", [])
        assert result.score == 100
        assert result.is_pure and result.is_isolated
        assert result.factors == ["Pure function", "Deterministic output", "No external dependencies"]

    def test_worst_testability(self, text_node):
        complex_flow = ControlFlowComplexity(
            branch_depth=4, max_nesting=4, total_branches=8, decision_points=11,
            linearity=0.2, cyclomatic_complexity=12,
        )
        result = calculate_testability(text_node("fetch(url)"), False, "external-confirmed", ["network"],
                                       control_flow=complex_flow)
        assert result.score == 10
        assert len(result.factors) == 4
        assert "High complexity" in result.factors
