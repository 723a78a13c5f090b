"""
Complexity Analyzer

Estimates time and space complexity of a snippet:
- IR path (authoritative): build the ProgramIR through the language adapter,
  fold loop nesting per depth level with the cost-expression algebra, and
  treat recursion as exponential
- Legacy path: adapter-free textual heuristics over the raw CST, used only
  for languages with no registered adapter

Results are best-effort estimates, never verified bounds.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..config import ANALYSIS_CONFIG
from .adapters import get_adapter
from .call_graph import build_call_graph, mutual_recursion_cycles, reachable_functions
from .cost_expression import (
    Constant,
    CostExpr,
    add,
    constant,
    dominance_rank,
    explain_cost,
    exponential,
    linear,
    logarithmic,
    multiply,
    polynomial,
    reduce_cost,
    to_big_o,
)
from .cst import CSTNode
from .ir_builder import IRBuilder, iter_statements
from .semantic_ir import BoundType, FunctionIR, ProgramIR, StatementIR, StatementType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComplexityBreakdown:
    location: str
    operation: str
    complexity: str
    reasoning: str


@dataclass(frozen=True)
class CaseComplexity:
    big_o: str
    explanation: str
    breakdown: List[ComplexityBreakdown] = field(default_factory=list)


@dataclass(frozen=True)
class TimeComplexity:
    worst_case: CaseComplexity
    average_case: Optional[CaseComplexity] = None
    best_case: Optional[CaseComplexity] = None


@dataclass(frozen=True)
class SpaceComplexity:
    big_o: str
    explanation: str
    breakdown: List[ComplexityBreakdown] = field(default_factory=list)


@dataclass(frozen=True)
class InputSize:
    name: str
    description: str
    growth_impact: str  # 'primary', 'secondary', 'negligible'


@dataclass(frozen=True)
class DominantOperation:
    type: str
    location: str
    complexity: str


@dataclass(frozen=True)
class OptimizationSuggestion:
    current: str
    improved: str
    technique: str


@dataclass(frozen=True)
class ComplexityAnalysisResult:
    time_complexity: TimeComplexity
    space_complexity: SpaceComplexity
    input_sizes: List[InputSize]
    dominant_operations: List[DominantOperation]
    optimization_suggestions: List[OptimizationSuggestion]
    analysis_time: float
    method: str = "ir"  # 'ir', 'legacy', 'unavailable'

    @classmethod
    def unknown(cls, reason: str = "CST not available") -> "ComplexityAnalysisResult":
        return cls(
            time_complexity=TimeComplexity(worst_case=CaseComplexity(big_o="unknown", explanation=reason)),
            space_complexity=SpaceComplexity(big_o="unknown", explanation=reason),
            input_sizes=[],
            dominant_operations=[],
            optimization_suggestions=[],
            analysis_time=0.0,
            method="unavailable",
        )


HASHING_SUGGESTION = OptimizationSuggestion(
    current="O(n^2) nested loops",
    improved="O(n) using hash map",
    technique="Trade space for time - use hash map to eliminate inner loop",
)

MEMOIZATION_SUGGESTION = OptimizationSuggestion(
    current="O(2^n) exponential recursion",
    improved="O(n) with memoization",
    technique="Cache recursive results to avoid recomputation",
)

BINARY_SEARCH_SUGGESTION = OptimizationSuggestion(
    current="O(n) linear search",
    improved="O(log n) binary search",
    technique="Sort array first, then use binary search",
)

RECURSION_REASONING = "Recursive function - actual complexity depends on recurrence relation"

SPACE_ALLOCATION_TYPES = ("array", "map", "buffer")


def _default_input() -> InputSize:
    return InputSize(name="n", description="input size", growth_impact="primary")


# ============================================================================
# IR path
# ============================================================================

@dataclass
class _FunctionCost:
    name: str
    cost: CostExpr
    loop_depth: int
    breakdown: List[ComplexityBreakdown]


class ComplexityAnalyzer:
    """Time / space complexity from a CST.

    Usage:
        result = ComplexityAnalyzer().analyze(cst, "python")
        print(result.time_complexity.worst_case.big_o)
    """

    def analyze(self, cst: CSTNode, language: str) -> ComplexityAnalysisResult:
        start = time.perf_counter()
        adapter = get_adapter(language)
        if adapter is None:
            logger.debug(f"No adapter registered for {language}, using legacy complexity heuristics")
            return LegacyComplexityAnalyzer().analyze(cst, language, start)

        program = IRBuilder(adapter).build(cst)
        return self.analyze_program(program, start)

    def analyze_program(self, program: ProgramIR, start: Optional[float] = None) -> ComplexityAnalysisResult:
        start = time.perf_counter() if start is None else start
        graph = build_call_graph(program)
        cycles = mutual_recursion_cycles(graph)
        in_cycle = {name for cycle in cycles for name in cycle}

        analyzed = self._functions_to_analyze(program, graph)
        costs = [self._function_cost(func, in_cycle) for func in analyzed]

        module_cost = self._module_cost(program)
        if module_cost is not None:
            costs.append(module_cost)

        time_complexity = self._time_complexity(costs)
        space_complexity = self._space_complexity(program, analyzed, in_cycle)
        dominant = self._dominant_operations(costs, analyzed, cycles)
        suggestions = self._suggestions(costs, analyzed, in_cycle, time_complexity)

        result = ComplexityAnalysisResult(
            time_complexity=time_complexity,
            space_complexity=space_complexity,
            input_sizes=self._input_sizes(program),
            dominant_operations=dominant,
            optimization_suggestions=suggestions,
            analysis_time=round((time.perf_counter() - start) * 1000, 2),
            method="ir",
        )
        logger.debug(
            f"IR complexity for {program.language}: time {time_complexity.worst_case.big_o}, "
            f"space {space_complexity.big_o}"
        )
        return result

    # ------------------------------------------------------------------

    def _functions_to_analyze(self, program: ProgramIR, graph) -> List[FunctionIR]:
        if not program.entry_points:
            return list(program.functions)
        reached = reachable_functions(graph, [f.name for f in program.entry_points])
        return [f for f in program.functions if f.name in reached]

    def _function_cost(self, func: FunctionIR, in_cycle: Set[str]) -> _FunctionCost:
        loop_costs, breakdown = self._fold_loops(func.body.statements, f"function {func.name}")
        loop_depth = len(loop_costs)

        if func.is_recursive or func.name in in_cycle:
            reasoning = RECURSION_REASONING
            if not func.is_recursive:
                reasoning = "Mutually recursive call chain - actual complexity depends on recurrence relation"
            recursion = ComplexityBreakdown(
                location=f"function {func.name}",
                operation="recursion",
                complexity=to_big_o(exponential(2, "n")),
                reasoning=reasoning,
            )
            return _FunctionCost(func.name, exponential(2, "n"), loop_depth, [recursion] + breakdown)

        cost = reduce_cost(multiply(*loop_costs)) if loop_costs else constant(1)
        return _FunctionCost(func.name, cost, loop_depth, breakdown)

    def _module_cost(self, program: ProgramIR) -> Optional[_FunctionCost]:
        loop_costs, breakdown = self._fold_loops(program.global_statements, "top-level code")
        if not loop_costs:
            return None
        return _FunctionCost("<module>", reduce_cost(multiply(*loop_costs)), len(loop_costs), breakdown)

    def _fold_loops(self, statements: List[StatementIR],
                    location: str) -> Tuple[List[CostExpr], List[ComplexityBreakdown]]:
        """Per loop-depth level: any linear/unknown loop -> n, only log loops -> log n, else 1"""
        levels: Dict[int, List[StatementIR]] = {}
        breakdown: List[ComplexityBreakdown] = []

        stack = [(stmt, 1) for stmt in reversed(statements)]
        while stack:
            stmt, depth = stack.pop()
            nested_depth = depth
            if stmt.type == StatementType.LOOP:
                levels.setdefault(depth, []).append(stmt)
                breakdown.append(self._loop_breakdown(stmt, depth, location))
                nested_depth = depth + 1
            nested = [(child, nested_depth) for child in stmt.children]
            for branch in stmt.branches:
                nested.extend((child, nested_depth) for child in branch)
            stack.extend(reversed(nested))

        per_level: List[CostExpr] = []
        for depth in sorted(levels):
            loops = levels[depth]
            if any(self._is_linear_loop(loop) for loop in loops):
                per_level.append(linear("n"))
            elif any(loop.bounds is not None and loop.bounds.is_logarithmic for loop in loops):
                per_level.append(logarithmic("n"))
            else:
                per_level.append(constant(1))
        return per_level, breakdown

    def _is_linear_loop(self, loop: StatementIR) -> bool:
        bounds = loop.bounds
        if bounds is None:
            return True
        if bounds.is_logarithmic or bounds.type == BoundType.CONSTANT:
            return False
        return True

    def _loop_breakdown(self, loop: StatementIR, depth: int, location: str) -> ComplexityBreakdown:
        bounds = loop.bounds
        if bounds is None or bounds.type == BoundType.UNKNOWN:
            reasoning = "Unknown iteration count"
            complexity = "O(n)"
        elif bounds.is_logarithmic:
            reasoning = f"Halves or doubles toward the bound each iteration ({bounds.variable})"
            complexity = to_big_o(bounds.cost)
        elif bounds.type == BoundType.CONSTANT:
            reasoning = f"Constant iterations: {bounds.value}"
            complexity = to_big_o(bounds.cost)
        elif bounds.type == BoundType.INPUT:
            reasoning = f"Depends on input size ({bounds.variable})"
            complexity = to_big_o(bounds.cost)
        else:
            reasoning = f"Bounded by {bounds.variable}, treated as input size"
            complexity = "O(n)"
        return ComplexityBreakdown(
            location=f"{location}, loop at line {loop.line} (depth {depth})",
            operation="iteration",
            complexity=complexity,
            reasoning=reasoning,
        )

    def _time_complexity(self, costs: List[_FunctionCost]) -> TimeComplexity:
        breakdown_cap = ANALYSIS_CONFIG["breakdown_cap"]
        if not costs:
            return TimeComplexity(worst_case=CaseComplexity(big_o="O(1)", explanation="Constant time operations"))

        total = reduce_cost(add(*[c.cost for c in costs]))
        breakdown = [entry for c in costs for entry in c.breakdown]
        dominant = max(costs, key=lambda c: dominance_rank(reduce_cost(c.cost)))
        explanation = explain_cost(total)
        if len(costs) > 1 and not isinstance(total, Constant):
            explanation = f"{explanation}; dominated by {dominant.name}"

        return TimeComplexity(worst_case=CaseComplexity(
            big_o=to_big_o(total),
            explanation=explanation,
            breakdown=breakdown[:breakdown_cap],
        ))

    def _space_complexity(self, program: ProgramIR, analyzed: List[FunctionIR],
                          in_cycle: Set[str]) -> SpaceComplexity:
        terms: List[CostExpr] = []
        breakdown: List[ComplexityBreakdown] = []

        for func in analyzed:
            for alloc in func.allocations:
                if alloc.allocation_type not in SPACE_ALLOCATION_TYPES:
                    continue
                if alloc.size_dependent:
                    terms.append(linear("n"))
                breakdown.append(ComplexityBreakdown(
                    location=f"function {func.name}",
                    operation=f"{alloc.allocation_type} allocation",
                    complexity="O(n)" if alloc.size_dependent else "O(1)",
                    reasoning=(f"Allocates {alloc.allocation_type} proportional to input size"
                               if alloc.size_dependent
                               else f"Allocates constant-size {alloc.allocation_type}"),
                ))

            if func.is_recursive or func.name in in_cycle:
                terms.append(linear("n"))
                breakdown.append(ComplexityBreakdown(
                    location=f"function {func.name}",
                    operation="recursion",
                    complexity="O(n)",
                    reasoning="Recursion depth adds to call stack",
                ))

        for stmt in iter_statements(program.global_statements):
            alloc = stmt.allocation
            if alloc is not None and alloc.size_dependent and alloc.allocation_type in SPACE_ALLOCATION_TYPES:
                terms.append(linear("n"))
                breakdown.append(ComplexityBreakdown(
                    location="top-level code",
                    operation=f"{alloc.allocation_type} allocation",
                    complexity="O(n)",
                    reasoning=f"Allocates {alloc.allocation_type} proportional to input size",
                ))

        big_o = to_big_o(add(*terms)) if terms else "O(1)"
        explanation = breakdown[0].reasoning if breakdown else "No additional space allocated"
        return SpaceComplexity(
            big_o=big_o,
            explanation=explanation,
            breakdown=breakdown[:ANALYSIS_CONFIG["breakdown_cap"]],
        )

    def _input_sizes(self, program: ProgramIR) -> List[InputSize]:
        functions = program.entry_points if program.entry_points else program.functions[:1]
        inputs: List[InputSize] = []
        seen = set()
        for func in functions:
            for param in func.parameters:
                if param not in seen:
                    seen.add(param)
                    inputs.append(InputSize(name=param, description="input parameter", growth_impact="primary"))
        if not inputs:
            inputs.append(_default_input())
        return inputs[:ANALYSIS_CONFIG["input_size_cap"]]

    def _dominant_operations(self, costs: List[_FunctionCost], analyzed: List[FunctionIR],
                             cycles: List[List[str]]) -> List[DominantOperation]:
        operations: List[DominantOperation] = []
        recursive = {f.name for f in analyzed if f.is_recursive}

        for cost in costs:
            location = "top-level code" if cost.name == "<module>" else f"function {cost.name}"
            if cost.loop_depth > 1:
                operations.append(DominantOperation(
                    type=f"nested loops (depth {cost.loop_depth})",
                    location=location,
                    complexity=to_big_o(polynomial(cost.loop_depth, "n")),
                ))
            if cost.name in recursive:
                operations.append(DominantOperation(type="recursion", location=location, complexity="O(2^n)"))

        for cycle in cycles:
            operations.append(DominantOperation(
                type="mutual recursion",
                location=" -> ".join(cycle + [cycle[0]]),
                complexity="O(2^n)",
            ))

        return operations[:ANALYSIS_CONFIG["dominant_operation_cap"]]

    def _suggestions(self, costs: List[_FunctionCost], analyzed: List[FunctionIR],
                     in_cycle: Set[str], time_complexity: TimeComplexity) -> List[OptimizationSuggestion]:
        suggestions = []
        if any(c.loop_depth >= 2 for c in costs):
            suggestions.append(HASHING_SUGGESTION)

        has_recursion = any(f.is_recursive or f.name in in_cycle for f in analyzed)
        if has_recursion and "2^n" in time_complexity.worst_case.big_o:
            suggestions.append(MEMOIZATION_SUGGESTION)
        return suggestions


# ============================================================================
# Legacy path
# ============================================================================

BUILT_IN_COMPLEXITY = {
    "sort": "O(n log n)",
    "map": "O(n)",
    "filter": "O(n)",
    "reduce": "O(n)",
    "forEach": "O(n)",
    "find": "O(n)",
    "indexOf": "O(n)",
    "includes": "O(n)",
    "join": "O(n)",
    "split": "O(n)",
    "concat": "O(n)",
    "slice": "O(n)",
    "splice": "O(n)",
}

LEGACY_LOOP_TYPE = re.compile(r"(^|_)(for|foreach|while|until|loop)(_|$)")
LEGACY_LOG_MARKERS = ("*= 2", "* 2", "/= 2", "/ 2")
# Ruby-style block iteration: items.each do |x| ... end
LEGACY_ITERATOR_METHODS = frozenset({"each", "each_with_index", "each_char", "times", "map", "select",
                                     "reject", "collect", "upto", "downto", "step"})
LEGACY_ARRAY_MARKERS = ("new array", "[]", "array(", "array.new", "list()", "vec!")
LEGACY_MAP_MARKERS = ("new map", "{}", "hash.new", "dict()", "hashmap")


@dataclass
class _LegacyLoop:
    node: CSTNode
    depth: int
    iterations: str  # 'n' or 'log n'
    type: str
    dependent: bool


class LegacyComplexityAnalyzer:
    """Adapter-free textual heuristics over the raw CST"""

    def analyze(self, cst: CSTNode, language: str, start: Optional[float] = None) -> ComplexityAnalysisResult:
        start = time.perf_counter() if start is None else start
        loops = self._detect_loops(cst)
        recursion = self._detect_recursion(cst)

        time_complexity = self._time_complexity(cst, loops, recursion)
        space_complexity = self._space_complexity(cst, recursion)

        dominant: List[DominantOperation] = []
        if loops:
            deepest = max(loops, key=lambda loop: loop.depth)
            dominant.append(DominantOperation(
                type=f"nested loops (depth {deepest.depth})",
                location="loop structure",
                complexity=time_complexity.worst_case.big_o,
            ))

        result = ComplexityAnalysisResult(
            time_complexity=time_complexity,
            space_complexity=space_complexity,
            input_sizes=self._input_sizes(cst),
            dominant_operations=dominant,
            optimization_suggestions=self._suggestions(time_complexity, loops),
            analysis_time=round((time.perf_counter() - start) * 1000, 2),
            method="legacy",
        )
        logger.debug(f"Legacy complexity for {language}: {time_complexity.worst_case.big_o}")
        return result

    def _is_loop(self, node: CSTNode) -> bool:
        if not node.is_named:
            return False
        if LEGACY_LOOP_TYPE.search(node.type):
            return True
        if node.type in ("call", "method_call"):
            method = node.child_by_field("method")
            has_block = any(c.type in ("block", "do_block") for c in node.children)
            return method is not None and method.text in LEGACY_ITERATOR_METHODS and has_block
        return False

    def _detect_loops(self, cst: CSTNode) -> List[_LegacyLoop]:
        loops: List[_LegacyLoop] = []
        stack = [(cst, 0)]
        while stack:
            node, loop_depth = stack.pop()
            if self._is_loop(node):
                loop_depth += 1
                text = node.text.lower()
                iterations = "log n" if any(marker in text for marker in LEGACY_LOG_MARKERS) else "n"
                if text.startswith("while") or "while" in node.type:
                    loop_type = "while"
                elif "foreach" in text or " in " in text or "each" in text:
                    loop_type = "foreach"
                else:
                    loop_type = "for"
                size_bound = ".length" in text or "len(" in text or "count(" in text or ".size" in text
                loops.append(_LegacyLoop(
                    node=node,
                    depth=loop_depth,
                    iterations=iterations,
                    type=loop_type,
                    dependent=size_bound and loop_depth > 1,
                ))
            stack.extend((child, loop_depth) for child in reversed(node.children))
        return loops

    def _function_name(self, node: CSTNode) -> Optional[str]:
        if not node.is_named:
            return None
        is_function = ("function" in node.type and ("definition" in node.type or "declaration" in node.type)) \
            or node.type in ("method", "singleton_method", "method_declaration")
        if not is_function:
            return None
        name_node = node.child_by_field("name") or node.first_child_of_type("identifier", "name")
        return name_node.text if name_node is not None else None

    def _callee_name(self, node: CSTNode) -> Optional[str]:
        if not node.is_named or "call" not in node.type:
            return None
        for field_name in ("method", "function", "name"):
            target = node.child_by_field(field_name)
            if target is not None:
                return target.text.split("::")[-1].split(".")[-1].split("->")[-1]
        first = node.first_child_of_type("identifier", "name")
        return first.text if first is not None else None

    def _detect_recursion(self, cst: CSTNode) -> Dict[str, int]:
        """Self-call count per function name"""
        counts: Dict[str, int] = {}
        stack: List[Tuple[CSTNode, Optional[str]]] = [(cst, None)]
        while stack:
            node, current = stack.pop()
            name = self._function_name(node)
            if name:
                current = name
            callee = self._callee_name(node)
            if current and callee == current:
                counts[current] = counts.get(current, 0) + 1
            stack.extend((child, current) for child in reversed(node.children))
        return counts

    def _time_complexity(self, cst: CSTNode, loops: List[_LegacyLoop],
                         recursion: Dict[str, int]) -> TimeComplexity:
        breakdown: List[ComplexityBreakdown] = []
        for loop in loops:
            breakdown.append(ComplexityBreakdown(
                location=f"loop at depth {loop.depth}",
                operation=f"{loop.type} loop",
                complexity="O(log n)" if loop.iterations == "log n" else "O(n)",
                reasoning=f"Iterates {loop.iterations} times"
                          f"{' (dependent on outer loop)' if loop.dependent else ''}",
            ))

        big_o = "O(1)"
        if loops:
            per_level = []
            for depth in range(1, max(loop.depth for loop in loops) + 1):
                at_depth = [loop for loop in loops if loop.depth == depth]
                if not at_depth:
                    continue
                has_linear = any(loop.iterations != "log n" for loop in at_depth)
                per_level.append(linear("n") if has_linear else logarithmic("n"))
            big_o = to_big_o(multiply(*per_level))

        if recursion:
            count = next(iter(recursion.values()))
            if count >= 2:
                big_o = "O(2^n)"
                breakdown.append(ComplexityBreakdown(
                    location="recursive function",
                    operation="recursion",
                    complexity="O(2^n)",
                    reasoning="Two recursive calls per invocation creates exponential growth",
                ))
            else:
                big_o = "O(n log n)"
                breakdown.append(ComplexityBreakdown(
                    location="recursive function",
                    operation="divide and conquer",
                    complexity="O(n log n)",
                    reasoning="Single recursive call with linear work per level",
                ))

        for operation, complexity in BUILT_IN_COMPLEXITY.items():
            if re.search(rf"\b{operation}\b", cst.text):
                breakdown.append(ComplexityBreakdown(
                    location="built-in method",
                    operation=operation,
                    complexity=complexity,
                    reasoning=f"Built-in {operation} operation",
                ))

        explanation = breakdown[0].reasoning if breakdown else "Constant time operations only"
        return TimeComplexity(worst_case=CaseComplexity(
            big_o=big_o,
            explanation=explanation,
            breakdown=breakdown[:ANALYSIS_CONFIG["breakdown_cap"]],
        ))

    def _space_complexity(self, cst: CSTNode, recursion: Dict[str, int]) -> SpaceComplexity:
        breakdown: List[ComplexityBreakdown] = []
        for line in cst.text.lower().split("\n"):
            if any(marker in line for marker in LEGACY_ARRAY_MARKERS):
                breakdown.append(ComplexityBreakdown(
                    location="data structure",
                    operation="array allocation",
                    complexity="O(n)",
                    reasoning="Allocates array proportional to input size",
                ))
            if any(marker in line for marker in LEGACY_MAP_MARKERS):
                breakdown.append(ComplexityBreakdown(
                    location="data structure",
                    operation="hash map allocation",
                    complexity="O(n)",
                    reasoning="Allocates map proportional to input size",
                ))

        if recursion:
            breakdown.append(ComplexityBreakdown(
                location="call stack",
                operation="recursion",
                complexity="O(n)",
                reasoning="Recursion depth adds to call stack",
            ))

        return SpaceComplexity(
            big_o="O(n)" if breakdown else "O(1)",
            explanation=breakdown[0].reasoning if breakdown else "No additional space allocated",
            breakdown=breakdown[:ANALYSIS_CONFIG["breakdown_cap"]],
        )

    def _input_sizes(self, cst: CSTNode) -> List[InputSize]:
        inputs: List[InputSize] = []
        seen = set()
        for node in cst.walk():
            if "parameter" not in node.type:
                continue
            for child in node.children:
                if child.type in ("identifier", "variable_name") or "parameter" in child.type:
                    name = child.text
                    if name and len(name) < 20 and name not in seen:
                        seen.add(name)
                        inputs.append(InputSize(name=name, description="input parameter", growth_impact="primary"))
        if not inputs:
            inputs.append(_default_input())
        return inputs[:ANALYSIS_CONFIG["input_size_cap"]]

    def _suggestions(self, time_complexity: TimeComplexity, loops: List[_LegacyLoop]) -> List[OptimizationSuggestion]:
        big_o = time_complexity.worst_case.big_o
        suggestions = []
        if len(loops) >= 2 and "n^2" in big_o:
            suggestions.append(HASHING_SUGGESTION)
        if big_o == "O(n)" and len(loops) == 1:
            suggestions.append(BINARY_SEARCH_SUGGESTION)
        if "2^n" in big_o:
            suggestions.append(MEMOIZATION_SUGGESTION)
        return suggestions


def analyze_complexity(cst: CSTNode, language: str) -> ComplexityAnalysisResult:
    return ComplexityAnalyzer().analyze(cst, language)
