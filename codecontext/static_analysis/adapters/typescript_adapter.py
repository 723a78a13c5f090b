"""TypeScript / JavaScript adapter (tree-sitter-typescript)"""

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

NEW_ALLOCATIONS = {
    "Array": "array",
    "Map": "map",
    "Set": "map",
    "WeakMap": "map",
    "WeakSet": "map",
    "Object": "object",
    "ArrayBuffer": "buffer",
    "Uint8Array": "buffer",
    "Int32Array": "buffer",
    "Float64Array": "buffer",
}

# Array methods that return a fresh array sized by the receiver
COPYING_METHODS = frozenset({"map", "filter", "slice", "concat", "flat", "flatMap", "from", "split"})

TEST_CALLS = frozenset({"describe", "it", "test"})


class TypeScriptAdapter(LanguageAdapter):
    language = "typescript"

    function_types = frozenset({
        "function_declaration",
        "function_expression",
        "function",
        "arrow_function",
        "method_definition",
        "generator_function_declaration",
        "generator_function",
    })
    loop_types = frozenset({"for_statement", "for_in_statement", "while_statement", "do_statement"})
    conditional_types = frozenset({"if_statement"})
    call_types = frozenset({"call_expression"})
    return_types = frozenset({"return_statement"})
    break_types = frozenset({"break_statement"})
    continue_types = frozenset({"continue_statement"})
    assignment_types = frozenset({"assignment_expression", "augmented_assignment_expression"})
    declaration_types = frozenset({"lexical_declaration", "variable_declaration"})
    expression_types = frozenset({"expression_statement"})

    def loop_pattern(self, node: CSTNode) -> LoopPattern:
        if node.type == "for_statement":
            return LoopPattern(
                type="for",
                node=node,
                body=node.child_by_field("body"),
                init=node.child_by_field("initializer"),
                condition=node.child_by_field("condition"),
                update=node.child_by_field("increment"),
            )
        if node.type == "for_in_statement":
            return LoopPattern(
                type="foreach",
                node=node,
                body=node.child_by_field("body"),
                init=node.child_by_field("left"),
                iterable=node.child_by_field("right"),
            )
        return LoopPattern(
            type="while",
            node=node,
            body=node.child_by_field("body"),
            condition=node.child_by_field("condition"),
        )

    def function_pattern(self, node: CSTNode) -> Optional[FunctionPattern]:
        body = node.child_by_field("body")
        if body is None:
            return None
        return FunctionPattern(
            name=self._function_name(node),
            node=node,
            body=body,
            parameters=tuple(self.extract_parameters(node)),
            is_async=node.text.lstrip().startswith("async"),
            is_generator="generator" in node.type or any(c.text == "*" for c in node.children),
        )

    def _function_name(self, node: CSTNode) -> str:
        name_node = node.child_by_field("name")
        if name_node is not None:
            return name_node.text
        parent = node.parent
        # const add = (a, b) => a + b
        if parent is not None and parent.type == "variable_declarator":
            declared = parent.child_by_field("name")
            if declared is not None:
                return declared.text
        # { handler: function () {} }
        if parent is not None and parent.type == "pair":
            key = parent.child_by_field("key")
            if key is not None:
                return key.text.strip("'\"")
        return "<anonymous>"

    def conditional_pattern(self, node: CSTNode) -> ConditionalPattern:
        return self._field_conditional(node)

    def allocation_pattern(self, node: CSTNode) -> Optional[AllocationPattern]:
        if node.type == "array":
            return AllocationPattern(type="array", node=node, is_dynamic=has_size_hint(node.text))

        if node.type == "object":
            return AllocationPattern(type="object", node=node, is_dynamic=False)

        if node.type == "new_expression":
            constructor = node.child_by_field("constructor")
            name = last_identifier(constructor.text) if constructor else None
            kind = NEW_ALLOCATIONS.get(name or "")
            if kind is None:
                return AllocationPattern(type="object", node=node, is_dynamic=False)
            arguments = node.child_by_field("arguments")
            size = arguments.text if arguments is not None and arguments.named_children else None
            dynamic = size is not None and (
                has_size_hint(size) or any(a.type == "identifier" for a in arguments.named_children)
            )
            return AllocationPattern(type=kind, node=node, size_expression=size, is_dynamic=dynamic)

        if node.type == "call_expression":
            function = node.child_by_field("function")
            if function is None or function.type != "member_expression":
                return None
            method = function.child_by_field("property")
            if method is not None and method.text in COPYING_METHODS:
                receiver = function.child_by_field("object")
                return AllocationPattern(
                    type="array",
                    node=node,
                    size_expression=receiver.text if receiver else None,
                    is_dynamic=True,
                )

        return None

    def extract_parameters(self, function_node: CSTNode) -> List[str]:
        single = function_node.child_by_field("parameter")
        if single is not None:
            return [single.text]

        params_node = function_node.child_by_field("parameters")
        if params_node is None:
            return []

        names = []
        for param in params_node.named_children:
            if param.type == "identifier":
                names.append(param.text)
                continue
            if param.type in ("required_parameter", "optional_parameter"):
                target = param.child_by_field("pattern")
            elif param.type == "assignment_pattern":
                target = param.child_by_field("left")
            else:
                target = param
            name = first_identifier(target.text) if target is not None else None
            if name and name != "this":
                names.append(name)
        return names

    def detect_entry_points(self, root: CSTNode) -> List[EntryPointPattern]:
        entry_points = []

        for node in root.children:
            if node.type == "export_statement":
                names = self._exported_names(node)
                entry_points.append(EntryPointPattern(type="export", node=node, confidence=0.8, names=names))
            elif node.type == "expression_statement" and node.find_by_type("call_expression"):
                names = self._called_names(node)
                if any(name in TEST_CALLS for name in names):
                    entry_points.append(EntryPointPattern(type="test", node=node, confidence=0.7, names=names))
                elif names:
                    entry_points.append(EntryPointPattern(type="global", node=node, confidence=0.6, names=names))

        for func in self._named_functions(root, "main"):
            entry_points.append(EntryPointPattern(type="main", node=func, confidence=0.9, names=("main",)))

        return entry_points

    def _exported_names(self, node: CSTNode) -> tuple:
        names = []
        declaration = node.child_by_field("declaration")
        if declaration is not None:
            name_node = declaration.child_by_field("name")
            if name_node is not None:
                names.append(name_node.text)
            for declarator in declaration.children_of_type("variable_declarator"):
                declared = declarator.child_by_field("name")
                if declared is not None:
                    names.append(declared.text)
        for specifier in node.find_by_type("export_specifier"):
            name_node = specifier.child_by_field("name")
            if name_node is not None:
                names.append(name_node.text)
        value = node.child_by_field("value")
        if value is not None and value.type == "identifier":
            names.append(value.text)
        return tuple(names)
