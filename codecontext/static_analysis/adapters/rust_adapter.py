"""Rust adapter (tree-sitter-rust)"""

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

CONSTRUCTOR_ALLOCATIONS = {
    "Vec": "array",
    "VecDeque": "array",
    "String": "array",
    "HashMap": "map",
    "HashSet": "map",
    "BTreeMap": "map",
    "BTreeSet": "map",
    "Box": "object",
}


class RustAdapter(LanguageAdapter):
    language = "rust"

    function_types = frozenset({"function_item", "closure_expression"})
    loop_types = frozenset({"for_expression", "while_expression", "loop_expression"})
    conditional_types = frozenset({"if_expression"})
    call_types = frozenset({"call_expression", "macro_invocation"})
    return_types = frozenset({"return_expression"})
    break_types = frozenset({"break_expression"})
    continue_types = frozenset({"continue_expression"})
    assignment_types = frozenset({"assignment_expression", "compound_assignment_expr"})
    declaration_types = frozenset({"let_declaration"})
    expression_types = frozenset({"expression_statement"})

    def loop_pattern(self, node: CSTNode) -> LoopPattern:
        body = node.child_by_field("body")
        if node.type == "for_expression":
            return LoopPattern(
                type="foreach",
                node=node,
                body=body,
                init=node.child_by_field("pattern"),
                iterable=node.child_by_field("value"),
            )
        # `loop { }` has no condition at all
        return LoopPattern(type="while", node=node, body=body, condition=node.child_by_field("condition"))

    def function_pattern(self, node: CSTNode) -> Optional[FunctionPattern]:
        body = node.child_by_field("body")
        if body is None:
            # trait method signature
            return None
        name_node = node.child_by_field("name")
        name = name_node.text if name_node is not None else "<anonymous>"
        if node.type == "closure_expression":
            parent = node.parent
            if parent is not None and parent.type == "let_declaration":
                pattern = parent.child_by_field("pattern")
                if pattern is not None:
                    name = pattern.text
        modifiers = node.first_child_of_type("function_modifiers")
        return FunctionPattern(
            name=name,
            node=node,
            body=body,
            parameters=tuple(self.extract_parameters(node)),
            is_async=modifiers is not None and "async" in modifiers.text,
        )

    def conditional_pattern(self, node: CSTNode) -> ConditionalPattern:
        return self._field_conditional(node)

    def allocation_pattern(self, node: CSTNode) -> Optional[AllocationPattern]:
        if node.type == "macro_invocation":
            macro = node.child_by_field("macro")
            if macro is None or macro.text != "vec":
                return None
            token_tree = node.first_child_of_type("token_tree")
            size = None
            dynamic = False
            if token_tree is not None and ";" in token_tree.text:
                # vec![0; n]
                size = token_tree.text.strip("[]()").split(";", 1)[1].strip()
                dynamic = not size.isdigit()
            elif token_tree is not None:
                dynamic = has_size_hint(token_tree.text)
            return AllocationPattern(type="array", node=node, size_expression=size, is_dynamic=dynamic)

        if node.type == "call_expression":
            function = node.child_by_field("function")
            if function is None:
                return None
            if function.type == "scoped_identifier":
                path = function.child_by_field("path")
                owner = path.text.split("<")[0].split("::")[-1] if path is not None else ""
                kind = CONSTRUCTOR_ALLOCATIONS.get(owner)
                if kind is None:
                    return None
                method = function.child_by_field("name")
                arguments = node.child_by_field("arguments")
                sized = method is not None and method.text in ("with_capacity", "from")
                return AllocationPattern(
                    type=kind,
                    node=node,
                    size_expression=arguments.text if sized and arguments is not None else None,
                    is_dynamic=sized,
                )
            if function.type == "field_expression":
                method = function.child_by_field("field")
                if method is not None and method.text in ("collect", "to_vec", "clone", "to_owned"):
                    return AllocationPattern(type="array", node=node, is_dynamic=True)

        return None

    def extract_parameters(self, function_node: CSTNode) -> List[str]:
        params_node = function_node.child_by_field("parameters")
        if params_node is None:
            return []
        names = []
        for param in params_node.named_children:
            if param.type == "self_parameter":
                continue
            pattern = param.child_by_field("pattern")
            target = pattern if pattern is not None else param
            name = first_identifier(target.text.replace("mut ", "", 1))
            if name:
                names.append(name)
        return names

    def detect_entry_points(self, root: CSTNode) -> List[EntryPointPattern]:
        entry_points = []
        for node in root.walk():
            if node.type != "function_item":
                continue
            name_node = node.child_by_field("name")
            name = name_node.text if name_node is not None else ""
            visibility = node.first_child_of_type("visibility_modifier")
            previous = self._previous_sibling(node)

            if name == "main":
                entry_points.append(EntryPointPattern(type="main", node=node, confidence=0.95, names=(name,)))
            elif previous is not None and previous.type == "attribute_item" and "test" in previous.text:
                entry_points.append(EntryPointPattern(type="test", node=node, confidence=0.7, names=(name,)))
            elif visibility is not None:
                entry_points.append(EntryPointPattern(type="export", node=node, confidence=0.7, names=(name,)))
        return entry_points

    def _previous_sibling(self, node: CSTNode) -> Optional[CSTNode]:
        parent = node.parent
        if parent is None:
            return None
        named = parent.named_children
        for index, sibling in enumerate(named):
            if sibling is node:
                return named[index - 1] if index > 0 else None
        return None
