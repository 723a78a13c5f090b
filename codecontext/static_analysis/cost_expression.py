"""Cost expression algebra

Closed-form growth-rate terms used to derive Big-O strings:
- constructors flatten nested products and sums at build time
- reduce() folds constants, merges same-variable powers, and keeps
  only the dominant term of a sum
- dominance_rank() gives the total order used to pick that term
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Constant:
    value: Number = 1


@dataclass(frozen=True)
class Logarithmic:
    variable: str = "n"
    base: Number = 2


@dataclass(frozen=True)
class Linear:
    variable: str = "n"


@dataclass(frozen=True)
class Polynomial:
    degree: Number
    variable: str = "n"


@dataclass(frozen=True)
class Exponential:
    base: Number = 2
    variable: str = "n"


@dataclass(frozen=True)
class Multiply:
    factors: Tuple["CostExpr", ...]


@dataclass(frozen=True)
class Add:
    terms: Tuple["CostExpr", ...]


@dataclass(frozen=True)
class Symbolic:
    name: str
    description: str = ""


CostExpr = Union[Constant, Logarithmic, Linear, Polynomial, Exponential, Multiply, Add, Symbolic]

# Rank given to unresolved symbolic terms: above any realistic polynomial,
# below every exponential.
SYMBOLIC_RANK = 50


# ============================================================================
# Constructors
# ============================================================================

def constant(value: Number = 1) -> Constant:
    return Constant(value)


def logarithmic(variable: str = "n", base: Number = 2) -> Logarithmic:
    return Logarithmic(variable, base)


def linear(variable: str = "n") -> Linear:
    return Linear(variable)


def polynomial(degree: Number, variable: str = "n") -> CostExpr:
    if degree == 0:
        return Constant(1)
    if degree == 1:
        return Linear(variable)
    return Polynomial(degree, variable)


def exponential(base: Number = 2, variable: str = "n") -> Exponential:
    return Exponential(base, variable)


def symbolic(name: str, description: str = "") -> Symbolic:
    return Symbolic(name, description)


def multiply(*factors: CostExpr) -> CostExpr:
    """Product of factors, flattened so no Multiply ever nests inside another"""
    if not factors:
        return Constant(1)
    if len(factors) == 1:
        return factors[0]

    flat: List[CostExpr] = []
    for factor in factors:
        if isinstance(factor, Multiply):
            flat.extend(factor.factors)
        else:
            flat.append(factor)
    return Multiply(tuple(flat))


def add(*terms: CostExpr) -> CostExpr:
    """Sum of terms, flattened so no Add ever nests inside another"""
    if not terms:
        return Constant(0)
    if len(terms) == 1:
        return terms[0]

    flat: List[CostExpr] = []
    for term in terms:
        if isinstance(term, Add):
            flat.extend(term.terms)
        else:
            flat.append(term)
    return Add(tuple(flat))


# ============================================================================
# Reduction
# ============================================================================

def reduce_cost(expr: CostExpr) -> CostExpr:
    """Simplify an expression. reduce_cost(reduce_cost(x)) == reduce_cost(x)."""
    if isinstance(expr, Multiply):
        return _reduce_multiply(expr)
    if isinstance(expr, Add):
        return _reduce_add(expr)
    return expr


def _reduce_multiply(expr: Multiply) -> CostExpr:
    factors: List[CostExpr] = []
    for factor in expr.factors:
        reduced = reduce_cost(factor)
        if isinstance(reduced, Multiply):
            factors.extend(reduced.factors)
        else:
            factors.append(reduced)

    product: Number = 1
    non_constants: List[CostExpr] = []
    for factor in factors:
        if isinstance(factor, Constant):
            product *= factor.value
        else:
            non_constants.append(factor)

    if product == 0:
        return Constant(0)
    if not non_constants:
        return Constant(product)

    # n^a * n^b -> n^(a+b), per variable, in first-seen order
    exponents: Dict[str, Number] = {}
    others: List[CostExpr] = []
    for factor in non_constants:
        if isinstance(factor, Linear):
            exponents[factor.variable] = exponents.get(factor.variable, 0) + 1
        elif isinstance(factor, Polynomial):
            exponents[factor.variable] = exponents.get(factor.variable, 0) + factor.degree
        else:
            others.append(factor)

    # n^a * n^-a cancels to 1, which is dropped like any unit factor
    result: List[CostExpr] = [polynomial(degree, variable) for variable, degree in exponents.items()
                              if degree != 0]
    if product != 1 or not (result or others):
        result.append(Constant(product))
    result.extend(others)

    if len(result) == 1:
        return result[0]
    return Multiply(tuple(result))


def _reduce_add(expr: Add) -> CostExpr:
    terms: List[CostExpr] = []
    for term in expr.terms:
        reduced = reduce_cost(term)
        if isinstance(reduced, Add):
            terms.extend(reduced.terms)
        else:
            terms.append(reduced)

    if not terms:
        return Constant(0)

    dominant = terms[0]
    for term in terms[1:]:
        if compare_cost(term, dominant) > 0:
            dominant = term
    return dominant


# ============================================================================
# Ordering
# ============================================================================

def dominance_rank(expr: CostExpr) -> float:
    if isinstance(expr, Constant):
        return 0
    if isinstance(expr, Logarithmic):
        return 1
    if isinstance(expr, Linear):
        return 2
    if isinstance(expr, Polynomial):
        return 2 + expr.degree
    if isinstance(expr, Exponential):
        return 100 + expr.base
    if isinstance(expr, Multiply):
        return sum(dominance_rank(f) for f in expr.factors)
    if isinstance(expr, Add):
        return max((dominance_rank(t) for t in expr.terms), default=0)
    if isinstance(expr, Symbolic):
        return SYMBOLIC_RANK
    raise TypeError(f"Not a cost expression: {expr!r}")


def compare_cost(a: CostExpr, b: CostExpr) -> float:
    """Positive if a grows faster than b, negative if slower, 0 if tied"""
    diff = dominance_rank(a) - dominance_rank(b)
    if diff != 0:
        return diff
    if isinstance(a, Polynomial) and isinstance(b, Polynomial):
        return a.degree - b.degree
    if isinstance(a, Exponential) and isinstance(b, Exponential):
        return a.base - b.base
    return 0


# ============================================================================
# Rendering
# ============================================================================

def _format_number(value: Number) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format(expr: CostExpr) -> str:
    if isinstance(expr, Constant):
        return "1"
    if isinstance(expr, Logarithmic):
        if expr.base == 2:
            return f"log {expr.variable}"
        return f"log_{_format_number(expr.base)} {expr.variable}"
    if isinstance(expr, Linear):
        return expr.variable
    if isinstance(expr, Polynomial):
        return f"{expr.variable}^{_format_number(expr.degree)}"
    if isinstance(expr, Exponential):
        return f"{_format_number(expr.base)}^{expr.variable}"
    if isinstance(expr, Multiply):
        # Big-O ignores constant multipliers
        parts = [_format(f) for f in expr.factors if not isinstance(f, Constant)]
        return " ".join(parts) if parts else "1"
    if isinstance(expr, Add):
        return " + ".join(_format(t) for t in expr.terms)
    if isinstance(expr, Symbolic):
        return expr.name
    raise TypeError(f"Not a cost expression: {expr!r}")


def to_big_o(expr: CostExpr) -> str:
    """Big-O string of an expression. Always reduces first."""
    return f"O({_format(reduce_cost(expr))})"


def explain_cost(expr: CostExpr) -> str:
    if isinstance(expr, Constant):
        return "Constant time operation"
    if isinstance(expr, Logarithmic):
        return f"Logarithmic in {expr.variable} (e.g., binary search)"
    if isinstance(expr, Linear):
        return f"Linear in {expr.variable} (e.g., single loop)"
    if isinstance(expr, Polynomial):
        if expr.degree == 2:
            return f"Quadratic in {expr.variable} (e.g., nested loops)"
        return f"Polynomial degree {_format_number(expr.degree)} in {expr.variable}"
    if isinstance(expr, Exponential):
        return f"Exponential in {expr.variable} (e.g., recursive branching)"
    if isinstance(expr, Multiply):
        return "Product of: " + ", ".join(explain_cost(f) for f in expr.factors)
    if isinstance(expr, Add):
        return "Sum of: " + ", ".join(explain_cost(t) for t in expr.terms) + " (dominant term shown)"
    if isinstance(expr, Symbolic):
        return expr.description or f"Unknown complexity: {expr.name}"
    raise TypeError(f"Not a cost expression: {expr!r}")
