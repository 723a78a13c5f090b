"""Tests for the IR builder, call graph and complexity analysis"""

from codecontext.static_analysis.adapters import get_adapter
from codecontext.static_analysis.call_graph import build_call_graph, mutual_recursion_cycles, reachable_functions
from codecontext.static_analysis.complexity_analyzer import (
    HASHING_SUGGESTION,
    MEMOIZATION_SUGGESTION,
    ComplexityAnalysisResult,
    ComplexityAnalyzer,
    analyze_complexity,
)
from codecontext.static_analysis.cost_expression import linear, logarithmic
from codecontext.static_analysis.ir_builder import IRBuilder, iter_statements
from codecontext.static_analysis.semantic_ir import (
    BlockIR,
    BoundType,
    FunctionIR,
    LoopBounds,
    ProgramIR,
    StatementIR,
    StatementType,
)

NESTED_LOOPS = '''def pairs(items):
    result = []
    for a in items:
        for b in items:
            result.append((a, b))
    return result
'''

FIBONACCI = '''def fib(n):
    if n < 2:
        return n
    return fib(n - 1) + fib(n - 2)
'''

EVEN_ODD = '''def is_even(n):
    if n == 0:
        return True
    return is_odd(n - 1)


def is_odd(n):
    if n == 0:
        return False
    return is_even(n - 1)
'''

LOOP_KINDS = '''def shapes(items, n):
    for i in range(10):
        pass
    for x in items:
        pass
    while n > 1:
        n //= 2
'''

ENTRY_POINT = '''def helper(x):
    return x + 1


def unused():
    return 0


def main():
    print(helper(2))


if __name__ == "__main__":
    main()
'''

HALF_OF_ARRAY = '''function firstHalf(arr) {
  for (let i = 0; i < arr.length / 2; i++) {
    console.log(arr[i]);
  }
}
'''

DOUBLED_VALUES = '''function doubled(arr) {
  const out = [];
  let i = 0;
  while (i < arr.length) {
    out.push(arr[i] * 2);
    i++;
  }
  return out;
}
'''

POWERS_OF_TWO = '''function powers(n) {
  for (let i = 1; i < n; i *= 2) {
    console.log(i);
  }
}
'''

SCALED_COUNTER = '''def scaled(items):
    i = 0
    total = 0
    while i < len(items):
        total = total * 2
        i += 1
    return total
'''


def build_ir(parse, code: str, language: str = "python") -> ProgramIR:
    return IRBuilder(get_adapter(language)).build(parse(code, language))


class TestIRBuilder:
    """ProgramIR construction through the language adapters"""

    def test_loop_bounds(self, parse):
        program = build_ir(parse, LOOP_KINDS)
        func = program.get_function("shapes")
        assert func.parameters == ["items", "n"]

        loops = [s for s in iter_statements(func.body.statements) if s.type == StatementType.LOOP]
        assert len(loops) == 3

        constant_loop, input_loop, halving_loop = (loop.bounds for loop in loops)
        assert constant_loop.type == BoundType.CONSTANT
        assert constant_loop.value == 10
        assert input_loop.type == BoundType.INPUT
        assert input_loop.variable == "items"
        assert halving_loop.is_logarithmic, "n //= 2 in the body should make the loop logarithmic"

    def test_halved_bound_is_still_linear(self, parse):
        func = build_ir(parse, HALF_OF_ARRAY, "typescript").get_function("firstHalf")
        loop = next(s for s in iter_statements(func.body.statements) if s.type == StatementType.LOOP)
        assert not loop.bounds.is_logarithmic, "Dividing the bound by 2 does not change the growth rate"
        assert loop.bounds.type == BoundType.INPUT
        assert loop.bounds.variable == "arr"

    def test_doubled_values_do_not_make_a_loop_logarithmic(self, parse):
        for code, language, name in ((DOUBLED_VALUES, "typescript", "doubled"), (SCALED_COUNTER, "python", "scaled")):
            func = build_ir(parse, code, language).get_function(name)
            loop = next(s for s in iter_statements(func.body.statements) if s.type == StatementType.LOOP)
            assert not loop.bounds.is_logarithmic, f"{name}: only updates of the loop variable count"
            assert loop.bounds.type == BoundType.INPUT

    def test_doubling_update_is_logarithmic(self, parse):
        func = build_ir(parse, POWERS_OF_TWO, "typescript").get_function("powers")
        loop = next(s for s in iter_statements(func.body.statements) if s.type == StatementType.LOOP)
        assert loop.bounds.is_logarithmic

    def test_recursion_is_marked(self, parse):
        func = build_ir(parse, FIBONACCI).get_function("fib")
        assert func.is_recursive
        assert func.recursive_call_count == 2
        assert func.calls_to == ["fib"]

    def test_entry_points_and_reachability(self, parse):
        program = build_ir(parse, ENTRY_POINT)
        assert [f.name for f in program.entry_points] == ["main"]

        graph = build_call_graph(program)
        assert reachable_functions(graph, ["main"]) == {"main", "helper"}
        assert "print" not in graph, "Calls to functions defined elsewhere are dropped"

    def test_mutual_recursion_cycle(self, parse):
        graph = build_call_graph(build_ir(parse, EVEN_ODD))
        cycles = mutual_recursion_cycles(graph)
        assert len(cycles) == 1
        assert sorted(cycles[0]) == ["is_even", "is_odd"]


class TestComplexity:
    """Time and space estimates over parsed snippets"""

    def test_nested_loops_are_quadratic(self, parse):
        result = analyze_complexity(parse(NESTED_LOOPS, "python"), "python")
        assert result.method == "ir"
        assert result.time_complexity.worst_case.big_o == "O(n^2)"
        assert result.space_complexity.big_o == "O(1)", "An empty list literal does not grow with input"
        assert HASHING_SUGGESTION in result.optimization_suggestions

    def test_double_recursion_is_exponential(self, parse):
        result = analyze_complexity(parse(FIBONACCI, "python"), "python")
        assert result.time_complexity.worst_case.big_o == "O(2^n)"
        assert result.space_complexity.big_o == "O(n)", "Recursion depth should cost stack space"
        assert MEMOIZATION_SUGGESTION in result.optimization_suggestions
        assert [op.type for op in result.dominant_operations] == ["recursion"]

    def test_mutual_recursion(self, parse):
        result = analyze_complexity(parse(EVEN_ODD, "python"), "python")
        assert result.time_complexity.worst_case.big_o == "O(2^n)"
        assert "mutual recursion" in [op.type for op in result.dominant_operations]

    def test_top_level_loop(self, parse):
        result = analyze_complexity(parse("for x in items:\n    print(x)\n", "python"), "python")
        assert result.time_complexity.worst_case.big_o == "O(n)"
        assert [size.name for size in result.input_sizes] == ["n"]

    def test_input_bound_loops_stay_linear(self, parse):
        for code in (HALF_OF_ARRAY, DOUBLED_VALUES):
            result = analyze_complexity(parse(code, "typescript"), "typescript")
            assert result.time_complexity.worst_case.big_o == "O(n)", code

    def test_doubling_loop_is_logarithmic(self, parse):
        result = analyze_complexity(parse(POWERS_OF_TWO, "typescript"), "typescript")
        assert result.time_complexity.worst_case.big_o == "O(log n)"

    def test_only_reachable_functions_count(self, parse):
        result = analyze_complexity(parse(ENTRY_POINT, "python"), "python")
        assert result.time_complexity.worst_case.big_o == "O(1)"

    def test_language_without_adapter_uses_legacy_path(self, parse):
        code = "def total(items)\n  sum = 0\n  items.each do |item|\n    sum += item\n  end\n  sum\nend\n"
        result = analyze_complexity(parse(code, "ruby"), "ruby")
        assert result.method == "legacy"

    def test_unknown_result(self):
        result = ComplexityAnalysisResult.unknown()
        assert result.method == "unavailable"
        assert result.time_complexity.worst_case.big_o == "unknown"


class TestHandBuiltProgram:
    """The analyzer works on any ProgramIR, not only built ones"""

    def test_linear_outer_with_logarithmic_inner(self, text_node):
        node = text_node("search_all(items)")
        inner = StatementIR(
            type=StatementType.LOOP,
            node=node,
            bounds=LoopBounds(type=BoundType.INPUT, cost=logarithmic("n"), variable="n", is_logarithmic=True),
        )
        outer = StatementIR(
            type=StatementType.LOOP,
            node=node,
            children=[inner],
            bounds=LoopBounds(type=BoundType.INPUT, cost=linear("n"), variable="items"),
        )
        func = FunctionIR(name="search_all", node=node, parameters=["items"], body=BlockIR(statements=[outer]))
        program = ProgramIR(language="python", cst=node, functions=[func], global_statements=[])

        result = ComplexityAnalyzer().analyze_program(program)
        assert result.time_complexity.worst_case.big_o == "O(n log n)"
        assert result.space_complexity.big_o == "O(1)"
        assert [size.name for size in result.input_sizes] == ["items"]
        assert len(result.time_complexity.worst_case.breakdown) == 2
