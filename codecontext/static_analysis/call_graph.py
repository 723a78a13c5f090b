"""
Call graph over a ProgramIR

Nodes are function names, edges are calls-to relations between functions
defined in the same snippet. Calls to anything not defined locally are
dropped.
"""

import logging
from typing import Iterable, List, Set

import networkx as nx

from .semantic_ir import ProgramIR

logger = logging.getLogger(__name__)


def build_call_graph(program: ProgramIR) -> nx.DiGraph:
    graph = nx.DiGraph()
    defined = {func.name for func in program.functions}

    for func in program.functions:
        graph.add_node(func.name, entry_point=func.is_entry_point)

    for func in program.functions:
        for callee in func.calls_to:
            if callee in defined:
                graph.add_edge(func.name, callee)

    logger.debug(f"Call graph: {graph.number_of_nodes()} functions, {graph.number_of_edges()} calls")
    return graph


def reachable_functions(graph: nx.DiGraph, roots: Iterable[str]) -> Set[str]:
    """Every function reachable from the given roots, roots included"""
    reached: Set[str] = set()
    for root in roots:
        if root in graph:
            reached.add(root)
            reached.update(nx.descendants(graph, root))
    return reached


def mutual_recursion_cycles(graph: nx.DiGraph) -> List[List[str]]:
    """Call cycles through more than one function (self-loops are plain recursion)"""
    cycles = [cycle for cycle in nx.simple_cycles(graph) if len(cycle) > 1]
    return sorted(cycles, key=lambda cycle: (len(cycle), cycle))
