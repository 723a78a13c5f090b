"""Python adapter (tree-sitter-python)"""

from typing import List, Optional

from ..cst import CSTNode
from .base import (
    AllocationPattern,
    ConditionalPattern,
    EntryPointPattern,
    FunctionPattern,
    LanguageAdapter,
    LoopPattern,
    first_identifier,
    has_size_hint,
)

COMPREHENSION_TYPES = frozenset({
    "list_comprehension",
    "set_comprehension",
    "dictionary_comprehension",
    "generator_expression",
})

CONSTRUCTOR_ALLOCATIONS = {
    "list": "array",
    "tuple": "array",
    "dict": "map",
    "set": "map",
    "frozenset": "map",
    "defaultdict": "map",
    "OrderedDict": "map",
    "Counter": "map",
    "deque": "array",
    "bytearray": "buffer",
    "bytes": "buffer",
}

IGNORED_PARAMETERS = {"self", "cls"}


class PythonAdapter(LanguageAdapter):
    language = "python"

    function_types = frozenset({"function_definition"})
    loop_types = frozenset({"for_statement", "while_statement"}) | COMPREHENSION_TYPES
    conditional_types = frozenset({"if_statement", "elif_clause"})
    call_types = frozenset({"call"})
    return_types = frozenset({"return_statement"})
    break_types = frozenset({"break_statement"})
    continue_types = frozenset({"continue_statement"})
    assignment_types = frozenset({"assignment", "augmented_assignment"})
    declaration_types = frozenset({"global_statement", "nonlocal_statement"})
    expression_types = frozenset({"expression_statement"})

    def loop_pattern(self, node: CSTNode) -> LoopPattern:
        if node.type == "for_statement":
            return LoopPattern(
                type="foreach",
                node=node,
                body=node.child_by_field("body"),
                init=node.child_by_field("left"),
                iterable=node.child_by_field("right"),
            )
        if node.type == "while_statement":
            return LoopPattern(
                type="while",
                node=node,
                body=node.child_by_field("body"),
                condition=node.child_by_field("condition"),
            )
        # Comprehension: the first for_in_clause drives the iteration count
        clause = node.first_child_of_type("for_in_clause")
        return LoopPattern(
            type="iterator",
            node=node,
            body=node.child_by_field("body"),
            init=clause.child_by_field("left") if clause else None,
            iterable=clause.child_by_field("right") if clause else None,
        )

    def function_pattern(self, node: CSTNode) -> Optional[FunctionPattern]:
        body = node.child_by_field("body")
        if body is None:
            return None
        name_node = node.child_by_field("name")
        return FunctionPattern(
            name=name_node.text if name_node else "<anonymous>",
            node=node,
            body=body,
            parameters=tuple(self.extract_parameters(node)),
            is_async=node.text.lstrip().startswith("async"),
            is_generator=bool(body.find_by_type("yield")),
        )

    def conditional_pattern(self, node: CSTNode) -> ConditionalPattern:
        return ConditionalPattern(
            node=node,
            condition=node.child_by_field("condition"),
            consequence=node.child_by_field("consequence"),
            alternatives=tuple(node.children_by_field("alternative")),
        )

    def allocation_pattern(self, node: CSTNode) -> Optional[AllocationPattern]:
        if node.type in COMPREHENSION_TYPES:
            if node.type == "generator_expression":
                return None
            kind = "map" if node.type in ("dictionary_comprehension", "set_comprehension") else "array"
            clause = node.first_child_of_type("for_in_clause")
            iterable = clause.child_by_field("right") if clause else None
            return AllocationPattern(
                type=kind,
                node=node,
                size_expression=iterable.text if iterable else None,
                is_dynamic=True,
            )

        if node.type in ("list", "dictionary", "set"):
            kind = "array" if node.type == "list" else "map"
            return AllocationPattern(type=kind, node=node, is_dynamic=has_size_hint(node.text))

        if node.type == "binary_operator":
            # [0] * n
            left = node.child_by_field("left")
            operator = node.child_by_field("operator")
            right = node.child_by_field("right")
            if (left is not None and left.type == "list" and operator is not None
                    and operator.text == "*" and right is not None):
                return AllocationPattern(
                    type="array",
                    node=node,
                    size_expression=right.text,
                    is_dynamic=right.type != "integer",
                )
            return None

        if node.type == "call":
            name = self.call_name(node)
            kind = CONSTRUCTOR_ALLOCATIONS.get(name)
            if kind is None:
                return None
            arguments = node.child_by_field("arguments")
            has_args = arguments is not None and bool(arguments.named_children)
            return AllocationPattern(
                type=kind,
                node=node,
                size_expression=arguments.text if has_args else None,
                is_dynamic=has_args,
            )

        return None

    def extract_parameters(self, function_node: CSTNode) -> List[str]:
        params_node = function_node.child_by_field("parameters")
        if params_node is None:
            return []

        names = []
        for param in params_node.named_children:
            if param.type == "identifier":
                name = param.text
            elif param.type in ("default_parameter", "typed_default_parameter"):
                name_node = param.child_by_field("name")
                name = name_node.text if name_node else None
            else:
                # typed_parameter, list_splat_pattern, dictionary_splat_pattern
                name = first_identifier(param.text)
            if name and name not in IGNORED_PARAMETERS:
                names.append(name)
        return names

    def detect_entry_points(self, root: CSTNode) -> List[EntryPointPattern]:
        entry_points = []

        for node in root.children:
            if node.type != "if_statement":
                continue
            condition = node.child_by_field("condition")
            if condition is not None and "__name__" in condition.text and "__main__" in condition.text:
                entry_points.append(EntryPointPattern(
                    type="main",
                    node=node,
                    confidence=0.95,
                    names=self._called_names(node),
                ))

        for func in self._named_functions(root, "main"):
            entry_points.append(EntryPointPattern(type="main", node=func, confidence=0.9, names=("main",)))

        for pattern in self.extract_functions(root):
            if pattern.name.startswith("test_"):
                entry_points.append(EntryPointPattern(
                    type="test", node=pattern.node, confidence=0.7, names=(pattern.name,)
                ))

        # Top-level calls run on import
        for node in root.children:
            if node.type == "expression_statement" and node.find_by_type("call"):
                names = self._called_names(node)
                if names:
                    entry_points.append(EntryPointPattern(type="global", node=node, confidence=0.6, names=names))

        return entry_points
