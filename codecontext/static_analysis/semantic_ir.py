"""Semantic Intermediate Representation

Language-neutral Program / Function / Block / Statement tree built from a
CST by the IR builder. Every statement points back at the CST node it came
from; function-to-function references are plain names.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .cost_expression import CostExpr, Symbolic
from .cst import CSTNode


class StatementType(Enum):
    LOOP = "loop"
    CONDITIONAL = "conditional"
    CALL = "call"
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"
    ALLOCATION = "allocation"
    ASSIGNMENT = "assignment"
    EXPRESSION = "expression"
    DECLARATION = "declaration"


class BoundType(Enum):
    CONSTANT = "constant"
    INPUT = "input"
    SYMBOLIC = "symbolic"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class LoopBounds:
    """How many times a loop iterates"""
    type: BoundType
    cost: CostExpr
    value: Optional[int] = None
    variable: Optional[str] = None
    is_logarithmic: bool = False


@dataclass(frozen=True)
class AllocationSite:
    allocation_type: str  # 'array', 'map', 'object', 'buffer', 'primitive'
    size_dependent: bool
    node: CSTNode
    size_expression: Optional[str] = None


@dataclass
class StatementIR:
    type: StatementType
    node: CSTNode
    children: List["StatementIR"] = field(default_factory=list)
    bounds: Optional[LoopBounds] = None
    branches: List[List["StatementIR"]] = field(default_factory=list)
    call_name: Optional[str] = None
    is_recursive_call: bool = False
    allocation: Optional[AllocationSite] = None

    @property
    def line(self) -> int:
        return self.node.row + 1


@dataclass
class BlockIR:
    statements: List[StatementIR]
    max_depth: int = 0
    has_early_exit: bool = False


@dataclass
class FunctionIR:
    name: str
    node: CSTNode
    parameters: List[str]
    body: BlockIR
    is_recursive: bool = False
    recursive_call_count: int = 0
    calls_to: List[str] = field(default_factory=list)
    allocations: List[AllocationSite] = field(default_factory=list)
    is_entry_point: bool = False
    is_async: bool = False


@dataclass
class ProgramIR:
    language: str
    cst: CSTNode
    functions: List[FunctionIR]
    global_statements: List[StatementIR]
    entry_points: List[FunctionIR] = field(default_factory=list)
    analysis_version: str = "1.0.0"

    def get_function(self, name: str) -> Optional[FunctionIR]:
        for func in self.functions:
            if func.name == name:
                return func
        return None


def unknown_bounds() -> LoopBounds:
    return LoopBounds(type=BoundType.UNKNOWN, cost=Symbolic("?", "Unknown iteration count"))
