"""C and C++ adapters (tree-sitter-c, tree-sitter-cpp)"""

import re
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
    last_identifier,
)

HEAP_FUNCTIONS = {"malloc": "buffer", "calloc": "array", "realloc": "buffer", "alloca": "buffer"}
CONTAINER_PATTERN = re.compile(r"\b(vector|deque|list|array|string|map|set|unordered_map|unordered_set)\b")


def _literal_args(arguments: Optional[CSTNode]) -> bool:
    """True when every argument is built from number literals and sizeof"""
    if arguments is None:
        return True
    for node in arguments.walk():
        if node.type == "identifier":
            return False
    return True


class CAdapter(LanguageAdapter):
    language = "c"

    function_types = frozenset({"function_definition"})
    loop_types = frozenset({"for_statement", "while_statement", "do_statement"})
    conditional_types = frozenset({"if_statement"})
    call_types = frozenset({"call_expression"})
    return_types = frozenset({"return_statement"})
    break_types = frozenset({"break_statement"})
    continue_types = frozenset({"continue_statement"})
    assignment_types = frozenset({"assignment_expression", "update_expression"})
    declaration_types = frozenset({"declaration"})
    expression_types = frozenset({"expression_statement"})

    def loop_pattern(self, node: CSTNode) -> LoopPattern:
        body = node.child_by_field("body")
        if node.type == "for_statement":
            return LoopPattern(
                type="for",
                node=node,
                body=body,
                init=node.child_by_field("initializer"),
                condition=node.child_by_field("condition"),
                update=node.child_by_field("update"),
            )
        if node.type == "for_range_loop":
            return LoopPattern(
                type="foreach",
                node=node,
                body=body,
                init=node.child_by_field("declarator"),
                iterable=node.child_by_field("right"),
            )
        return LoopPattern(type="while", node=node, body=body, condition=node.child_by_field("condition"))

    def function_pattern(self, node: CSTNode) -> Optional[FunctionPattern]:
        body = node.child_by_field("body")
        if body is None:
            return None
        declarator = self._function_declarator(node)
        name = "<anonymous>"
        if declarator is not None:
            target = declarator.child_by_field("declarator")
            if target is not None:
                name = last_identifier(target.text) or name
        return FunctionPattern(
            name=name,
            node=node,
            body=body,
            parameters=tuple(self.extract_parameters(node)),
        )

    def _function_declarator(self, node: CSTNode) -> Optional[CSTNode]:
        # Walk through pointer / reference declarators: int *foo(...)
        current = node.child_by_field("declarator")
        while current is not None and current.type != "function_declarator":
            current = current.child_by_field("declarator")
        return current

    def conditional_pattern(self, node: CSTNode) -> ConditionalPattern:
        return self._field_conditional(node)

    def allocation_pattern(self, node: CSTNode) -> Optional[AllocationPattern]:
        if node.type == "call_expression":
            function = node.child_by_field("function")
            kind = HEAP_FUNCTIONS.get(function.text) if function is not None else None
            if kind is None:
                return None
            arguments = node.child_by_field("arguments")
            return AllocationPattern(
                type=kind,
                node=node,
                size_expression=arguments.text if arguments is not None else None,
                is_dynamic=not _literal_args(arguments),
            )

        if node.type == "array_declarator":
            size = node.child_by_field("size")
            if size is None:
                return None
            # Variable length array
            return AllocationPattern(
                type="array",
                node=node,
                size_expression=size.text,
                is_dynamic=size.type == "identifier" or has_size_hint(size.text),
            )

        return None

    def extract_parameters(self, function_node: CSTNode) -> List[str]:
        declarator = self._function_declarator(function_node)
        if declarator is None:
            return []
        params_node = declarator.child_by_field("parameters")
        if params_node is None:
            return []
        names = []
        for param in params_node.named_children:
            target = param.child_by_field("declarator")
            if target is None:
                continue
            name = first_identifier(target.text.lstrip("*& "))
            if name:
                names.append(name)
        return names

    def detect_entry_points(self, root: CSTNode) -> List[EntryPointPattern]:
        entry_points = []
        patterns = [p for p in self.extract_functions(root) if p.node.type == "function_definition"]

        for pattern in patterns:
            if pattern.name == "main":
                entry_points.append(EntryPointPattern(type="main", node=pattern.node,
                                                      confidence=0.95, names=("main",)))

        if not entry_points:
            # Library translation unit: every non-static function is linkable
            for pattern in patterns:
                storage = pattern.node.first_child_of_type("storage_class_specifier")
                if storage is None or storage.text != "static":
                    entry_points.append(EntryPointPattern(type="export", node=pattern.node,
                                                          confidence=0.5, names=(pattern.name,)))
        return entry_points


class CppAdapter(CAdapter):
    language = "cpp"

    function_types = frozenset({"function_definition", "lambda_expression"})
    loop_types = CAdapter.loop_types | {"for_range_loop"}

    def function_pattern(self, node: CSTNode) -> Optional[FunctionPattern]:
        if node.type == "lambda_expression":
            body = node.child_by_field("body")
            if body is None:
                return None
            name = "<anonymous>"
            parent = node.parent
            # auto square = [](int x) { ... };
            if parent is not None and parent.type == "init_declarator":
                target = parent.child_by_field("declarator")
                if target is not None:
                    name = target.text
            declarator = node.child_by_field("declarator")
            params = []
            if declarator is not None:
                params_node = declarator.child_by_field("parameters")
                if params_node is not None:
                    for param in params_node.named_children:
                        target = param.child_by_field("declarator")
                        if target is not None:
                            found = first_identifier(target.text.lstrip("*& "))
                            if found:
                                params.append(found)
            return FunctionPattern(name=name, node=node, body=body, parameters=tuple(params))
        return super().function_pattern(node)

    def allocation_pattern(self, node: CSTNode) -> Optional[AllocationPattern]:
        if node.type == "new_expression":
            declarator = node.child_by_field("declarator")
            if declarator is not None and declarator.type == "new_declarator":
                size = declarator.named_children[0] if declarator.named_children else None
                return AllocationPattern(
                    type="array",
                    node=node,
                    size_expression=size.text if size is not None else None,
                    is_dynamic=size is not None and not _literal_args(declarator),
                )
            return AllocationPattern(type="object", node=node, is_dynamic=False)

        if node.type == "declaration":
            type_node = node.child_by_field("type")
            if type_node is None:
                return None
            match = CONTAINER_PATTERN.search(type_node.text)
            if match is None:
                return None
            kind = "map" if "map" in match.group(1) or "set" in match.group(1) else "array"
            arguments = node.find_by_type("argument_list", "initializer_list")
            size = arguments[0].text if arguments else None
            dynamic = bool(arguments) and not _literal_args(arguments[0])
            return AllocationPattern(type=kind, node=node, size_expression=size, is_dynamic=dynamic)

        return super().allocation_pattern(node)
