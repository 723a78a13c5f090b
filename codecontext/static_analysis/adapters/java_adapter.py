"""Java adapter (tree-sitter-java)"""

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
    last_identifier,
)

COLLECTION_PATTERN = re.compile(r"(List|Deque|Queue|Stack|Vector|StringBuilder)")
MAP_PATTERN = re.compile(r"(Map|Set|Table)")
MAIN_PATTERN = re.compile(r"public\s+static\s+void\s+main\s*\(")


class JavaAdapter(LanguageAdapter):
    language = "java"

    function_types = frozenset({"method_declaration", "constructor_declaration", "lambda_expression"})
    loop_types = frozenset({"for_statement", "enhanced_for_statement", "while_statement", "do_statement"})
    conditional_types = frozenset({"if_statement"})
    call_types = frozenset({"method_invocation"})
    return_types = frozenset({"return_statement"})
    break_types = frozenset({"break_statement"})
    continue_types = frozenset({"continue_statement"})
    assignment_types = frozenset({"assignment_expression", "update_expression"})
    declaration_types = frozenset({"local_variable_declaration"})
    expression_types = frozenset({"expression_statement"})

    callee_fields = ("name",)

    def loop_pattern(self, node: CSTNode) -> LoopPattern:
        body = node.child_by_field("body")
        if node.type == "for_statement":
            return LoopPattern(
                type="for",
                node=node,
                body=body,
                init=node.child_by_field("init"),
                condition=node.child_by_field("condition"),
                update=node.child_by_field("update"),
            )
        if node.type == "enhanced_for_statement":
            return LoopPattern(
                type="foreach",
                node=node,
                body=body,
                init=node.child_by_field("name"),
                iterable=node.child_by_field("value"),
            )
        return LoopPattern(type="while", node=node, body=body, condition=node.child_by_field("condition"))

    def function_pattern(self, node: CSTNode) -> Optional[FunctionPattern]:
        body = node.child_by_field("body")
        if body is None:
            # abstract / interface method
            return None
        name_node = node.child_by_field("name")
        return FunctionPattern(
            name=name_node.text if name_node is not None else "<anonymous>",
            node=node,
            body=body,
            parameters=tuple(self.extract_parameters(node)),
        )

    def conditional_pattern(self, node: CSTNode) -> ConditionalPattern:
        return self._field_conditional(node)

    def allocation_pattern(self, node: CSTNode) -> Optional[AllocationPattern]:
        if node.type == "array_creation_expression":
            dimensions = [d for d in node.named_children if d.type == "dimensions_expr"]
            size = " ".join(d.text for d in dimensions) or None
            dynamic = any(
                child.type not in ("decimal_integer_literal", "hex_integer_literal")
                for d in dimensions for child in d.named_children
            )
            return AllocationPattern(type="array", node=node, size_expression=size, is_dynamic=dynamic)

        if node.type == "array_initializer":
            parent = node.parent
            if parent is not None and parent.type == "array_creation_expression":
                return None
            return AllocationPattern(type="array", node=node, is_dynamic=False)

        if node.type == "object_creation_expression":
            type_node = node.child_by_field("type")
            type_name = last_identifier(type_node.text) if type_node is not None else ""
            arguments = node.child_by_field("arguments")
            size = arguments.text if arguments is not None and arguments.named_children else None
            if type_name and MAP_PATTERN.search(type_name):
                kind = "map"
            elif type_name and COLLECTION_PATTERN.search(type_name):
                kind = "array"
            else:
                return AllocationPattern(type="object", node=node, is_dynamic=False)
            # new ArrayList<>(other) copies its argument
            dynamic = size is not None and any(a.type == "identifier" for a in arguments.named_children)
            return AllocationPattern(type=kind, node=node, size_expression=size, is_dynamic=dynamic)

        return None

    def extract_parameters(self, function_node: CSTNode) -> List[str]:
        params_node = function_node.child_by_field("parameters")
        if params_node is None:
            return []
        if params_node.type == "identifier":
            return [params_node.text]

        names = []
        for param in params_node.named_children:
            name_node = param.child_by_field("name")
            if name_node is not None:
                names.append(name_node.text)
            elif param.type == "identifier":
                names.append(param.text)
            else:
                name = last_identifier(param.text)
                if name:
                    names.append(name)
        return names

    def detect_entry_points(self, root: CSTNode) -> List[EntryPointPattern]:
        entry_points = []
        for node in root.walk():
            if node.type != "method_declaration":
                continue
            name_node = node.child_by_field("name")
            name = name_node.text if name_node is not None else ""
            modifiers = node.first_child_of_type("modifiers")
            modifier_text = modifiers.text if modifiers is not None else ""

            if name == "main" and MAIN_PATTERN.search(node.text):
                entry_points.append(EntryPointPattern(type="main", node=node, confidence=0.95, names=(name,)))
            elif "@Test" in modifier_text:
                entry_points.append(EntryPointPattern(type="test", node=node, confidence=0.7, names=(name,)))
            elif "public" in modifier_text:
                entry_points.append(EntryPointPattern(type="export", node=node, confidence=0.6, names=(name,)))
        return entry_points
