"""Language adapter contract

A LanguageAdapter knows one grammar's production names and field layout and
answers a fixed set of questions about it (is this node a loop? what are
this function's parameters? where are the entry points?). The IR builder
only ever talks to this interface.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from ..cst import CSTNode

IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_$][\w$]*")
GENERIC_ARGS_PATTERN = re.compile(r"<[^<>]*>")
SIZE_HINT_PATTERN = re.compile(r"\.length\b|\blen\s*\(|\.len\s*\(|size|count", re.IGNORECASE)


@dataclass(frozen=True)
class LoopPattern:
    type: str  # 'for', 'while', 'foreach', 'iterator'
    node: CSTNode
    body: Optional[CSTNode] = None
    init: Optional[CSTNode] = None
    condition: Optional[CSTNode] = None
    update: Optional[CSTNode] = None
    iterable: Optional[CSTNode] = None


@dataclass(frozen=True)
class FunctionPattern:
    name: str
    node: CSTNode
    body: Optional[CSTNode]
    parameters: Tuple[str, ...] = ()
    is_async: bool = False
    is_generator: bool = False


@dataclass(frozen=True)
class ConditionalPattern:
    node: CSTNode
    condition: Optional[CSTNode]
    consequence: Optional[CSTNode]
    alternatives: Tuple[CSTNode, ...] = ()


@dataclass(frozen=True)
class AllocationPattern:
    type: str  # 'array', 'map', 'object', 'buffer', 'primitive'
    node: CSTNode
    size_expression: Optional[str] = None
    is_dynamic: bool = False


@dataclass(frozen=True)
class EntryPointPattern:
    type: str  # 'main', 'export', 'global', 'test'
    node: CSTNode
    confidence: float
    names: Tuple[str, ...] = ()


def last_identifier(text: str) -> Optional[str]:
    """Last identifier segment of a dotted / scoped / generic name"""
    stripped = text
    # Peel nested generic arguments: Foo<Bar<Baz>>::new -> Foo::new
    while True:
        reduced = GENERIC_ARGS_PATTERN.sub("", stripped)
        if reduced == stripped:
            break
        stripped = reduced
    names = IDENTIFIER_PATTERN.findall(stripped)
    return names[-1] if names else None


def first_identifier(text: str) -> Optional[str]:
    match = IDENTIFIER_PATTERN.search(text)
    return match.group(0) if match else None


def has_size_hint(text: str) -> bool:
    return bool(SIZE_HINT_PATTERN.search(text))


class LanguageAdapter(ABC):
    """Per-language node classification and pattern extraction"""

    language: str = ""

    function_types: FrozenSet[str] = frozenset()
    loop_types: FrozenSet[str] = frozenset()
    conditional_types: FrozenSet[str] = frozenset()
    call_types: FrozenSet[str] = frozenset()
    return_types: FrozenSet[str] = frozenset()
    break_types: FrozenSet[str] = frozenset()
    continue_types: FrozenSet[str] = frozenset()
    assignment_types: FrozenSet[str] = frozenset()
    declaration_types: FrozenSet[str] = frozenset()
    expression_types: FrozenSet[str] = frozenset()

    # Fields tried, in order, to find the callee of a call node
    callee_fields: Tuple[str, ...] = ("function", "name", "method", "macro")

    # ------------------------------------------------------------------
    # Node classification
    # ------------------------------------------------------------------

    def is_function_node(self, node: CSTNode) -> bool:
        return node.type in self.function_types

    def is_loop_node(self, node: CSTNode) -> bool:
        return node.type in self.loop_types

    def is_conditional_node(self, node: CSTNode) -> bool:
        return node.type in self.conditional_types

    def is_call_node(self, node: CSTNode) -> bool:
        return node.type in self.call_types

    def is_return_node(self, node: CSTNode) -> bool:
        return node.type in self.return_types

    def is_break_node(self, node: CSTNode) -> bool:
        return node.type in self.break_types

    def is_continue_node(self, node: CSTNode) -> bool:
        return node.type in self.continue_types

    def is_assignment_node(self, node: CSTNode) -> bool:
        return node.type in self.assignment_types

    def is_declaration_node(self, node: CSTNode) -> bool:
        return node.type in self.declaration_types

    def is_expression_node(self, node: CSTNode) -> bool:
        return node.type in self.expression_types

    def is_allocation_node(self, node: CSTNode) -> bool:
        return self.allocation_pattern(node) is not None

    # ------------------------------------------------------------------
    # Extraction over a whole subtree
    # ------------------------------------------------------------------

    def extract_loops(self, root: CSTNode) -> List[LoopPattern]:
        return [self.loop_pattern(n) for n in root.walk() if self.is_loop_node(n)]

    def extract_functions(self, root: CSTNode) -> List[FunctionPattern]:
        patterns = []
        for node in root.walk():
            if self.is_function_node(node):
                pattern = self.function_pattern(node)
                if pattern is not None:
                    patterns.append(pattern)
        return patterns

    def extract_conditionals(self, root: CSTNode) -> List[ConditionalPattern]:
        return [self.conditional_pattern(n) for n in root.walk() if self.is_conditional_node(n)]

    def extract_allocations(self, root: CSTNode) -> List[AllocationPattern]:
        allocations = []
        for node in root.walk():
            pattern = self.allocation_pattern(node)
            if pattern is not None:
                allocations.append(pattern)
        return allocations

    def call_name(self, node: CSTNode) -> str:
        """Resolved name of the function a call node invokes"""
        for field_name in self.callee_fields:
            target = node.child_by_field(field_name)
            if target is not None:
                name = last_identifier(target.text)
                if name:
                    return name
        for child in node.named_children:
            if child.type in ("identifier", "member_expression", "attribute",
                              "selector_expression", "field_expression", "scoped_identifier"):
                name = last_identifier(child.text)
                if name:
                    return name
        return "<unknown>"

    # ------------------------------------------------------------------
    # Per-language hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def loop_pattern(self, node: CSTNode) -> LoopPattern:
        """Describe a loop node (the caller guarantees is_loop_node)"""

    @abstractmethod
    def function_pattern(self, node: CSTNode) -> Optional[FunctionPattern]:
        """Describe a function node, or None if it has no body"""

    @abstractmethod
    def conditional_pattern(self, node: CSTNode) -> ConditionalPattern:
        """Describe a conditional node (the caller guarantees is_conditional_node)"""

    @abstractmethod
    def allocation_pattern(self, node: CSTNode) -> Optional[AllocationPattern]:
        """Describe an allocation site, or None if the node allocates nothing"""

    @abstractmethod
    def extract_parameters(self, function_node: CSTNode) -> List[str]:
        """Parameter names of a function node"""

    @abstractmethod
    def detect_entry_points(self, root: CSTNode) -> List[EntryPointPattern]:
        """Entry points of a whole program"""

    # ------------------------------------------------------------------
    # Helpers shared by implementations
    # ------------------------------------------------------------------

    def _field_conditional(self, node: CSTNode) -> ConditionalPattern:
        """Conditional shaped as condition / consequence / alternative fields"""
        return ConditionalPattern(
            node=node,
            condition=node.child_by_field("condition"),
            consequence=node.child_by_field("consequence"),
            alternatives=tuple(node.children_by_field("alternative")),
        )

    def _called_names(self, root: CSTNode) -> Tuple[str, ...]:
        names = []
        for node in root.walk():
            if self.is_call_node(node):
                name = self.call_name(node)
                if name != "<unknown>" and name not in names:
                    names.append(name)
        return tuple(names)

    def _named_functions(self, root: CSTNode, name: str) -> List[CSTNode]:
        found = []
        for node in root.walk():
            if self.is_function_node(node):
                pattern = self.function_pattern(node)
                if pattern is not None and pattern.name == name:
                    found.append(node)
        return found
