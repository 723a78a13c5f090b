"""Go adapter (tree-sitter-go)"""

from typing import List, Optional

from ..cst import CSTNode
from .base import (
    AllocationPattern,
    ConditionalPattern,
    EntryPointPattern,
    FunctionPattern,
    LanguageAdapter,
    LoopPattern,
)

NUMERIC_LITERALS = frozenset({"int_literal", "float_literal"})


class GoAdapter(LanguageAdapter):
    language = "go"

    function_types = frozenset({"function_declaration", "method_declaration", "func_literal"})
    loop_types = frozenset({"for_statement"})
    conditional_types = frozenset({"if_statement"})
    call_types = frozenset({"call_expression"})
    return_types = frozenset({"return_statement"})
    break_types = frozenset({"break_statement"})
    continue_types = frozenset({"continue_statement"})
    assignment_types = frozenset({"assignment_statement", "inc_statement", "dec_statement"})
    declaration_types = frozenset({"short_var_declaration", "var_declaration", "const_declaration"})
    expression_types = frozenset({"expression_statement"})

    def loop_pattern(self, node: CSTNode) -> LoopPattern:
        body = node.child_by_field("body")
        clause = node.first_child_of_type("for_clause")
        if clause is not None:
            return LoopPattern(
                type="for",
                node=node,
                body=body,
                init=clause.child_by_field("initializer"),
                condition=clause.child_by_field("condition"),
                update=clause.child_by_field("update"),
            )

        range_clause = node.first_child_of_type("range_clause")
        if range_clause is not None:
            return LoopPattern(
                type="foreach",
                node=node,
                body=body,
                init=range_clause.child_by_field("left"),
                iterable=range_clause.child_by_field("right"),
            )

        # for cond { } / for { }
        condition = None
        for child in node.named_children:
            if child is not body and child.type != "comment":
                condition = child
                break
        return LoopPattern(type="while", node=node, body=body, condition=condition)

    def function_pattern(self, node: CSTNode) -> Optional[FunctionPattern]:
        body = node.child_by_field("body")
        if body is None:
            return None
        name_node = node.child_by_field("name")
        name = name_node.text if name_node is not None else self._literal_name(node)
        return FunctionPattern(
            name=name,
            node=node,
            body=body,
            parameters=tuple(self.extract_parameters(node)),
            is_async=bool(body.find_by_type("go_statement")),
        )

    def _literal_name(self, node: CSTNode) -> str:
        # square := func(x int) int { ... }
        parent = node.parent
        if parent is not None and parent.type == "expression_list":
            declaration = parent.parent
            if declaration is not None and declaration.type == "short_var_declaration":
                left = declaration.child_by_field("left")
                if left is not None and left.named_children:
                    return left.named_children[0].text
        return "<anonymous>"

    def conditional_pattern(self, node: CSTNode) -> ConditionalPattern:
        return self._field_conditional(node)

    def allocation_pattern(self, node: CSTNode) -> Optional[AllocationPattern]:
        if node.type == "composite_literal":
            type_node = node.child_by_field("type")
            type_name = type_node.type if type_node is not None else ""
            if type_name == "map_type":
                kind = "map"
            elif type_name in ("slice_type", "array_type", "implicit_length_array_type"):
                kind = "array"
            else:
                kind = "object"
            return AllocationPattern(type=kind, node=node, is_dynamic=False)

        if node.type == "call_expression":
            function = node.child_by_field("function")
            if function is None or function.text not in ("make", "new", "append"):
                return None
            arguments = node.child_by_field("arguments")
            args = arguments.named_children if arguments is not None else []
            if function.text == "new":
                return AllocationPattern(type="object", node=node, is_dynamic=False)
            if function.text == "append":
                return AllocationPattern(type="array", node=node, is_dynamic=True)
            kind = "map" if args and args[0].type == "map_type" else "array"
            sizes = args[1:]
            dynamic = any(arg.type not in NUMERIC_LITERALS for arg in sizes)
            return AllocationPattern(
                type=kind,
                node=node,
                size_expression=", ".join(arg.text for arg in sizes) or None,
                is_dynamic=dynamic,
            )

        return None

    def extract_parameters(self, function_node: CSTNode) -> List[str]:
        params_node = function_node.child_by_field("parameters")
        if params_node is None:
            return []
        names = []
        for declaration in params_node.named_children:
            for name_node in declaration.children_by_field("name"):
                names.append(name_node.text)
        return names

    def detect_entry_points(self, root: CSTNode) -> List[EntryPointPattern]:
        entry_points = []
        package = root.first_child_of_type("package_clause")
        is_main_package = package is not None and package.text.split()[-1] == "main"

        for pattern in self.extract_functions(root):
            if pattern.node.type == "func_literal":
                continue
            name = pattern.name
            if name == "main":
                confidence = 0.95 if is_main_package else 0.8
                entry_points.append(EntryPointPattern(type="main", node=pattern.node,
                                                      confidence=confidence, names=(name,)))
            elif name == "init":
                entry_points.append(EntryPointPattern(type="global", node=pattern.node,
                                                      confidence=0.6, names=(name,)))
            elif name.startswith("Test") or name.startswith("Benchmark"):
                entry_points.append(EntryPointPattern(type="test", node=pattern.node,
                                                      confidence=0.7, names=(name,)))
            elif name[:1].isupper():
                entry_points.append(EntryPointPattern(type="export", node=pattern.node,
                                                      confidence=0.7, names=(name,)))

        return entry_points
