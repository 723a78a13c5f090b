"""Lossless Concrete Syntax Tree model

Every node produced here carries:
- the grammar production name and its byte and row/column span
- the verbatim source text for that span (never truncated)
- its field name inside the parent production, when the grammar names one
- owned children and a weak, non-owning reference back to its parent
"""

import weakref
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple

Point = Tuple[int, int]


@dataclass(eq=False)
class CSTNode:
    """One node of a concrete syntax tree"""
    type: str
    start_index: int
    end_index: int
    start_point: Point
    end_point: Point
    is_named: bool
    text: str
    field_name: Optional[str] = None
    children: Tuple["CSTNode", ...] = ()
    _parent_ref: Optional[weakref.ReferenceType] = field(default=None, repr=False)

    @property
    def parent(self) -> Optional["CSTNode"]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def row(self) -> int:
        return self.start_point[0]

    @property
    def named_children(self) -> List["CSTNode"]:
        return [c for c in self.children if c.is_named]

    def walk(self) -> Iterator["CSTNode"]:
        """Pre-order traversal (iterative, so deep trees never hit the recursion limit)"""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_all(self, predicate: Callable[["CSTNode"], bool]) -> List["CSTNode"]:
        return [n for n in self.walk() if predicate(n)]

    def find_by_type(self, *types: str) -> List["CSTNode"]:
        wanted = set(types)
        return [n for n in self.walk() if n.type in wanted]

    def child_by_field(self, name: str) -> Optional["CSTNode"]:
        for child in self.children:
            if child.field_name == name:
                return child
        return None

    def children_by_field(self, name: str) -> List["CSTNode"]:
        return [c for c in self.children if c.field_name == name]

    def children_of_type(self, *types: str) -> List["CSTNode"]:
        wanted = set(types)
        return [c for c in self.children if c.type in wanted]

    def first_child_of_type(self, *types: str) -> Optional["CSTNode"]:
        wanted = set(types)
        for child in self.children:
            if child.type in wanted:
                return child
        return None

    def ancestors(self) -> Iterator["CSTNode"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def contains(self, other: "CSTNode") -> bool:
        return self.start_index <= other.start_index and other.end_index <= self.end_index


def _make_node(ts_node, source: bytes, field_name: Optional[str],
               parent: Optional[CSTNode]) -> CSTNode:
    return CSTNode(
        type=ts_node.type,
        start_index=ts_node.start_byte,
        end_index=ts_node.end_byte,
        start_point=(ts_node.start_point[0], ts_node.start_point[1]),
        end_point=(ts_node.end_point[0], ts_node.end_point[1]),
        is_named=ts_node.is_named,
        text=source[ts_node.start_byte:ts_node.end_byte].decode("utf-8", errors="surrogatepass"),
        field_name=field_name,
        _parent_ref=weakref.ref(parent) if parent is not None else None,
    )


def from_tree_sitter(ts_root, source: bytes) -> CSTNode:
    """Convert a tree-sitter node (and its whole subtree) into CSTNodes.

    Args:
        ts_root: tree_sitter.Node, usually ``tree.root_node``
        source: the exact bytes handed to the parser

    Returns:
        Root CSTNode. Callers must keep it alive: parents are weak references.
    """
    root = _make_node(ts_root, source, None, None)
    pending = [(ts_root, root)]

    while pending:
        ts_node, node = pending.pop()
        children = []
        for index, ts_child in enumerate(ts_node.children):
            child = _make_node(ts_child, source, ts_node.field_name_for_child(index), node)
            children.append(child)
            pending.append((ts_child, child))
        node.children = tuple(children)

    return root


def count_lines(text: str) -> int:
    return len(text.split("\n"))
