"""
IR Builder

Walks a CST once with a LanguageAdapter and produces the language-neutral
ProgramIR:
- every function (nested ones included) becomes a FunctionIR
- statements are classified in a fixed order: loop, conditional, call,
  return, break, continue, allocation, then assignment / declaration /
  expression wrappers; anything else is transparent
- loop bounds come from textual heuristics on the loop header
"""

import logging
import re
from typing import Iterator, List, Optional, Set

from .adapters import LanguageAdapter, LoopPattern
from .cost_expression import constant, linear, logarithmic, symbolic
from .cst import CSTNode
from .semantic_ir import (
    AllocationSite,
    BlockIR,
    BoundType,
    FunctionIR,
    LoopBounds,
    ProgramIR,
    StatementIR,
    StatementType,
    unknown_bounds,
)

logger = logging.getLogger(__name__)

# Halving / doubling assignment of a variable: i *= 2, n //= 2, i >>= 1, n = n / 2
HALVING_UPDATE_PATTERN = re.compile(
    r"\b(?P<target>[A-Za-z_]\w*)\s*(?:\*=\s*2|//=\s*2|/=\s*2|>>=\s*1|<<=\s*1)(?!\w)"
    r"|\b(?P<name>[A-Za-z_]\w*)\s*=\s*(?P=name)\s*(?:\*\s*2|//\s*2|/\s*2|>>\s*1|<<\s*1)(?!\w)"
)
INPUT_BOUND_PATTERN = re.compile(r"\.length\b|\blen\s*\(|\.len\s*\(|\.size\b|\bsize\s*\(|\.count\b|\bcount\b|\.Count\b|strlen\s*\(",
                                 re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"\b\d+\b")
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_]\w*")
CONSTANT_COMPARISON_PATTERN = re.compile(r"^\s*\(?\s*[A-Za-z_]\w*\s*(<=?|>=?|!=)\s*\d+\s*\)?\s*$")

# Identifiers that never denote an iteration bound
NON_BOUND_WORDS = frozenset({
    "true", "false", "True", "False", "None", "null", "nil", "nullptr", "NULL",
    "undefined", "let", "var", "const", "int", "auto", "in", "of", "range", "mut",
    "not", "and", "or", "is",
})


def _bound_identifiers(text: str, exclude: Set[str]) -> List[str]:
    return [w for w in IDENTIFIER_PATTERN.findall(text) if w not in NON_BOUND_WORDS and w not in exclude]


def _input_variable(text: str) -> Optional[str]:
    """Name of the collection whose size bounds the loop: `arr` in `i < arr.length`"""
    match = re.search(r"([A-Za-z_]\w*)\s*\.\s*(?:length|size|count|len)", text)
    if match:
        return match.group(1)
    match = re.search(r"(?:len|size|count|strlen)\s*\(\s*([A-Za-z_]\w*)", text)
    if match:
        return match.group(1)
    return None


def _halved_variables(text: str) -> Set[str]:
    return {m.group("target") or m.group("name") for m in HALVING_UPDATE_PATTERN.finditer(text)}


def classify_loop_bounds(loop: LoopPattern) -> LoopBounds:
    """Classify how many times a loop runs.

    Heuristic order:
    1. loop variable halved / doubled by the update clause, or by an
       assignment in the body to a variable of the condition -> O(log n)
    2. size / length / count access -> input-bound O(n)
    3. numeric literal -> constant
    4. bare identifier -> symbolic
    5. otherwise unknown
    For-each loops over a non-literal iterable are input-bound.
    """
    if loop.iterable is not None:
        return _classify_iterable(loop.iterable)

    halved = _halved_variables(loop.update.text) if loop.update is not None else set()
    if loop.condition is not None and loop.body is not None:
        halved |= _halved_variables(loop.body.text) & set(IDENTIFIER_PATTERN.findall(loop.condition.text))

    if halved:
        condition_text = loop.condition.text if loop.condition is not None else ""
        return LoopBounds(
            type=BoundType.INPUT,
            cost=logarithmic("n"),
            variable=_input_variable(condition_text) or "n",
            is_logarithmic=True,
        )

    if loop.condition is None:
        return unknown_bounds()

    condition = loop.condition.text
    if INPUT_BOUND_PATTERN.search(condition):
        return LoopBounds(type=BoundType.INPUT, cost=linear("n"), variable=_input_variable(condition) or "n")

    loop_variables = set(IDENTIFIER_PATTERN.findall(loop.init.text)) if loop.init is not None else set()
    numbers = [int(n) for n in NUMBER_PATTERN.findall(condition)]
    identifiers = _bound_identifiers(condition, loop_variables)

    # `i < 10`: a single counter compared against a literal
    if numbers and (not identifiers or CONSTANT_COMPARISON_PATTERN.match(condition)):
        return LoopBounds(type=BoundType.CONSTANT, cost=constant(1), value=max(numbers))

    if identifiers:
        name = identifiers[-1]
        return LoopBounds(
            type=BoundType.SYMBOLIC,
            cost=symbolic(name, f"Iterations bounded by {name}"),
            variable=name,
        )

    return unknown_bounds()


def _classify_iterable(iterable: CSTNode) -> LoopBounds:
    text = iterable.text
    identifiers = _bound_identifiers(text, set())
    numbers = [int(n) for n in NUMBER_PATTERN.findall(text)]

    if identifiers:
        variable = _input_variable(text) or identifiers[-1]
        return LoopBounds(type=BoundType.INPUT, cost=linear("n"), variable=variable)
    if numbers:
        return LoopBounds(type=BoundType.CONSTANT, cost=constant(1), value=max(numbers))
    return unknown_bounds()


def iter_statements(statements: List[StatementIR]) -> Iterator[StatementIR]:
    """Pre-order over statements, their children and every branch"""
    stack = list(reversed(statements))
    while stack:
        stmt = stack.pop()
        yield stmt
        nested = list(stmt.children)
        for branch in stmt.branches:
            nested.extend(branch)
        stack.extend(reversed(nested))


class IRBuilder:
    """Build a ProgramIR from a CST using one language adapter"""

    def __init__(self, adapter: LanguageAdapter):
        self.adapter = adapter

    def build(self, root: CSTNode) -> ProgramIR:
        functions = [self._build_function(node) for node in root.walk()
                     if self.adapter.is_function_node(node)]
        functions = [f for f in functions if f is not None]

        entry_names = set()
        for entry in self.adapter.detect_entry_points(root):
            entry_names.update(entry.names)

        entry_points = []
        for func in functions:
            if func.name in entry_names:
                func.is_entry_point = True
                entry_points.append(func)

        global_statements = self._build_statements(root.children, current_function=None)

        logger.debug(
            f"Built IR for {self.adapter.language}: {len(functions)} functions, "
            f"{len(entry_points)} entry points, {len(global_statements)} top-level statements"
        )

        return ProgramIR(
            language=self.adapter.language,
            cst=root,
            functions=functions,
            global_statements=global_statements,
            entry_points=entry_points,
        )

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def _build_function(self, node: CSTNode) -> Optional[FunctionIR]:
        pattern = self.adapter.function_pattern(node)
        if pattern is None or pattern.body is None:
            return None

        statements = self._build_statements([pattern.body], current_function=pattern.name)
        body = BlockIR(
            statements=statements,
            max_depth=self._max_depth(statements),
            has_early_exit=self._has_early_exit(statements),
        )

        calls = []
        recursive_calls = 0
        for stmt in iter_statements(statements):
            if stmt.type == StatementType.CALL and stmt.call_name:
                if stmt.call_name not in calls:
                    calls.append(stmt.call_name)
                if stmt.is_recursive_call:
                    recursive_calls += 1

        allocations = [
            AllocationSite(
                allocation_type=alloc.type,
                size_dependent=alloc.is_dynamic,
                node=alloc.node,
                size_expression=alloc.size_expression,
            )
            for alloc in self.adapter.extract_allocations(pattern.body)
            if not self._inside_nested_function(alloc.node, pattern.body)
        ]

        return FunctionIR(
            name=pattern.name,
            node=node,
            parameters=list(pattern.parameters),
            body=body,
            is_recursive=pattern.name in calls,
            recursive_call_count=recursive_calls,
            calls_to=calls,
            allocations=allocations,
            is_async=pattern.is_async,
        )

    def _inside_nested_function(self, node: CSTNode, body: CSTNode) -> bool:
        for ancestor in node.ancestors():
            if ancestor is body:
                return False
            if self.adapter.is_function_node(ancestor):
                return True
        return False

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _build_statements(self, nodes: List[CSTNode], current_function: Optional[str]) -> List[StatementIR]:
        statements: List[StatementIR] = []
        for node in nodes:
            statements.extend(self._build_node(node, current_function))
        return statements

    def _build_node(self, node: CSTNode, current_function: Optional[str]) -> List[StatementIR]:
        adapter = self.adapter

        # Nested functions are extracted on their own
        if adapter.is_function_node(node):
            return []

        if adapter.is_loop_node(node):
            pattern = adapter.loop_pattern(node)
            body = [pattern.body] if pattern.body is not None else []
            # Calls in the loop header still count (e.g. `while (hasNext(it))`)
            header = [part for part in (pattern.init, pattern.condition, pattern.update, pattern.iterable)
                      if part is not None]
            return [StatementIR(
                type=StatementType.LOOP,
                node=node,
                children=self._build_statements(header + body, current_function),
                bounds=classify_loop_bounds(pattern),
            )]

        if adapter.is_conditional_node(node):
            pattern = adapter.conditional_pattern(node)
            branches = []
            if pattern.consequence is not None:
                branches.append(self._build_statements([pattern.consequence], current_function))
            for alternative in pattern.alternatives:
                branches.append(self._build_statements([alternative], current_function))
            condition = []
            if pattern.condition is not None:
                condition = self._build_statements([pattern.condition], current_function)
            return [StatementIR(
                type=StatementType.CONDITIONAL,
                node=node,
                children=condition,
                branches=branches,
            )]

        if adapter.is_call_node(node):
            name = adapter.call_name(node)
            return [StatementIR(
                type=StatementType.CALL,
                node=node,
                children=self._build_statements(list(node.children), current_function),
                call_name=name,
                is_recursive_call=current_function is not None and name == current_function,
            )]

        if adapter.is_return_node(node):
            return [StatementIR(
                type=StatementType.RETURN,
                node=node,
                children=self._build_statements(list(node.children), current_function),
            )]

        if adapter.is_break_node(node):
            return [StatementIR(type=StatementType.BREAK, node=node)]

        if adapter.is_continue_node(node):
            return [StatementIR(type=StatementType.CONTINUE, node=node)]

        allocation = adapter.allocation_pattern(node)
        if allocation is not None:
            return [StatementIR(
                type=StatementType.ALLOCATION,
                node=node,
                children=self._build_statements(list(node.children), current_function),
                allocation=AllocationSite(
                    allocation_type=allocation.type,
                    size_dependent=allocation.is_dynamic,
                    node=node,
                    size_expression=allocation.size_expression,
                ),
            )]

        for kind, matches in (
            (StatementType.ASSIGNMENT, adapter.is_assignment_node),
            (StatementType.DECLARATION, adapter.is_declaration_node),
            (StatementType.EXPRESSION, adapter.is_expression_node),
        ):
            if matches(node):
                return [StatementIR(
                    type=kind,
                    node=node,
                    children=self._build_statements(list(node.children), current_function),
                )]

        # Transparent node: blocks, parenthesized expressions, else clauses...
        return self._build_statements(list(node.children), current_function)

    # ------------------------------------------------------------------
    # Block metrics
    # ------------------------------------------------------------------

    def _max_depth(self, statements: List[StatementIR], depth: int = 0) -> int:
        deepest = depth
        for stmt in statements:
            nested = depth + 1 if stmt.type in (StatementType.LOOP, StatementType.CONDITIONAL) else depth
            deepest = max(deepest, nested, self._max_depth(stmt.children, nested))
            for branch in stmt.branches:
                deepest = max(deepest, self._max_depth(branch, nested))
        return deepest

    def _has_early_exit(self, statements: List[StatementIR]) -> bool:
        exits = (StatementType.RETURN, StatementType.BREAK)
        # A return as the last top-level statement is the normal exit
        for index, stmt in enumerate(statements):
            if stmt.type in exits and index < len(statements) - 1:
                return True
        for stmt in iter_statements(statements):
            if stmt.type == StatementType.LOOP or stmt.type == StatementType.CONDITIONAL:
                nested = list(iter_statements(stmt.children))
                for branch in stmt.branches:
                    nested.extend(iter_statements(branch))
                if any(s.type in exits for s in nested):
                    return True
        return False
