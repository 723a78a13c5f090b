"""Tests for paradigm, execution model and state analysis"""

import pytest

from codecontext.static_analysis.paradigm_detector import (
    PatternCounts,
    analyze_execution_model,
    analyze_paradigm,
    analyze_state,
    calculate_scores,
    evidence_confidence,
)

ACCOUNT_CLASS = '''class Account:
    def __init__(self, owner):
        self.owner = owner
        self.balance = 0

    def deposit(self, amount):
        self.balance += amount

    def withdraw(self, amount):
        self.balance -= amount
'''

C_LOOPS = '''int sum(int *xs, int n) {
    int total = 0;
    for (int i = 0; i < n; i++) {
        total += xs[i];
    }
    while (total > 100) {
        total -= 100;
    }
    return total;
}
'''

RUBY_CLASS = '''class Greeter
  def hello
    for i in 1..3
      puts i
    end
  end
end
'''


class TestScoring:
    """Normalized scores and evidence-weighted confidence"""

    def test_scores_sum_to_hundred(self):
        counts = PatternCounts(classes=1, functions=3, methods_in_classes=3, mutations=4, pure_functions=2)
        scores = calculate_scores(counts, "python")
        assert 99 <= sum(scores.values()) <= 101, f"Scores should sum to ~100: {scores}"
        assert max(scores, key=scores.get) == "object-oriented"

    def test_no_evidence_gives_zero_scores(self):
        assert calculate_scores(PatternCounts(), "python") == {
            "object-oriented": 0, "functional": 0, "procedural": 0,
        }

    def test_procedural_only(self):
        scores = calculate_scores(PatternCounts(loops=3, mutations=2), "c")
        assert scores["procedural"] == 100

    def test_confidence_floor_on_little_evidence(self):
        assert evidence_confidence(80, 0) == 0.0
        assert evidence_confidence(80, 3) == pytest.approx(0.48)
        assert evidence_confidence(80, 7) == pytest.approx(0.64)
        assert evidence_confidence(80, 15) == pytest.approx(0.72)
        assert evidence_confidence(80, 25) == pytest.approx(0.8)

    def test_discount_is_never_rounded_back_up(self):
        for score in range(1, 101):
            for patterns, factor in ((3, 0.6), (7, 0.8), (15, 0.9)):
                confidence = evidence_confidence(score, patterns)
                assert confidence <= score / 100 * factor + 1e-9, f"score {score} with {patterns} patterns"
        assert evidence_confidence(81, 3) == pytest.approx(0.48)


class TestAnalyzeParadigm:
    """Full paradigm analysis over parsed snippets"""

    def test_class_with_methods_is_object_oriented(self, parse):
        result = analyze_paradigm(parse(ACCOUNT_CLASS, "python"), "python")
        assert result.primary.paradigm == "object-oriented"
        assert result.counts.classes == 1
        assert result.counts.functions == 3
        assert result.counts.methods_in_classes == 3
        assert result.counts.class_names == ["Account"]
        assert result.counts.first_class_position == (0, 0)

    def test_confidence_is_discounted_below_five_patterns(self, parse):
        result = analyze_paradigm(parse(ACCOUNT_CLASS, "python"), "python")
        assert result.counts.total_evidence < 5
        assert result.primary.confidence <= result.primary.score / 100 * 0.6 + 1e-9

    def test_loops_are_procedural(self, parse):
        result = analyze_paradigm(parse(C_LOOPS, "c"), "c")
        assert result.primary.paradigm == "procedural"
        assert result.counts.loops == 2
        assert [kind for kind, _ in result.counts.loop_kinds] == ["for", "while"]
        assert [row for _, row in result.counts.loop_kinds] == [2, 5]

    def test_keyword_tokens_are_not_structure(self, parse):
        result = analyze_paradigm(parse(RUBY_CLASS, "ruby"), "ruby")
        assert result.counts.classes == 1, "The 'class' keyword token must not count as a class"
        assert result.counts.loops == 1, "The 'for' keyword token must not count as a loop"
        assert result.counts.functions == 1

    def test_no_evidence_defaults_to_procedural(self, text_node):
        result = analyze_paradigm(text_node("42"), "python")
        assert result.primary.paradigm == "procedural"
        assert result.primary.confidence == 0.0
        assert result.secondary is None
        assert result.mixing is None

    def test_fitness_follows_language_affinity(self, parse):
        result = analyze_paradigm(parse(C_LOOPS, "c"), "c")
        assert result.fitness_score == 1.0


class TestExecutionModel:
    def test_python_asyncio(self, text_node):
        code = "import asyncio\n\nasync def main():\n    await asyncio.sleep(1)\n"
        result = analyze_execution_model(text_node(code), "python")
        assert result.primary == "asynchronous"
        assert result.async_patterns >= 2

    def test_plain_code_is_synchronous(self, text_node):
        result = analyze_execution_model(text_node("total = a + b\n"), "python")
        assert result.primary == "synchronous"
        assert result.confidence == 0.0

    def test_event_handlers(self, text_node):
        code = "button.addEventListener('click', onClick);\nemitter.on('data', onData);\n"
        result = analyze_execution_model(text_node(code), "typescript")
        assert result.primary == "event-driven"


class TestState:
    def test_many_mutated_globals(self, text_node):
        code = "A = 1\nB = 2\nC = 3\nD = 4\n"
        result = analyze_state(text_node(code), "python", PatternCounts(mutations=4))
        assert result.global_vars == 4
        assert result.lifetime == "global-mutable"
        assert result.mutability_score == 100

    def test_functions_without_globals_are_ephemeral(self, text_node):
        result = analyze_state(text_node("def f(x):\n    return x\n"), "python", PatternCounts(functions=1))
        assert result.lifetime == "local-ephemeral"

    def test_nothing_is_stateless(self, text_node):
        result = analyze_state(text_node("42"), "python", PatternCounts())
        assert result.lifetime == "stateless"
        assert result.confidence == 0.4
