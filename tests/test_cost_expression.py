"""Tests for the cost expression algebra"""

from codecontext.static_analysis.cost_expression import (
    Add,
    Constant,
    Linear,
    Multiply,
    Polynomial,
    add,
    compare_cost,
    constant,
    dominance_rank,
    explain_cost,
    exponential,
    linear,
    logarithmic,
    multiply,
    polynomial,
    reduce_cost,
    symbolic,
    to_big_o,
)


class TestConstructors:
    """Build-time normalization"""

    def test_multiply_flattens_nested_products(self):
        expr = multiply(linear(), multiply(linear(), constant(3)))
        assert isinstance(expr, Multiply)
        assert len(expr.factors) == 3, f"Expected 3 flat factors, got {expr.factors}"
        assert not any(isinstance(f, Multiply) for f in expr.factors)

    def test_add_flattens_nested_sums(self):
        expr = add(add(linear(), constant(1)), logarithmic())
        assert isinstance(expr, Add)
        assert len(expr.terms) == 3
        assert not any(isinstance(t, Add) for t in expr.terms)

    def test_degenerate_forms(self):
        assert multiply() == Constant(1)
        assert add() == Constant(0)
        assert multiply(linear()) == Linear("n")
        assert polynomial(0) == Constant(1)
        assert polynomial(1) == Linear("n")
        assert polynomial(3) == Polynomial(3, "n")


class TestReduction:
    """reduce_cost folding rules"""

    def test_same_variable_powers_merge(self):
        reduced = reduce_cost(multiply(linear(), linear()))
        assert reduced == Polynomial(2, "n"), f"n * n should be n^2, got {reduced}"

        reduced = reduce_cost(multiply(polynomial(2), linear()))
        assert reduced == Polynomial(3, "n")

    def test_zero_factor_collapses(self):
        assert reduce_cost(multiply(constant(0), polynomial(4))) == Constant(0)

    def test_sum_keeps_dominant_term(self):
        assert reduce_cost(add(linear(), polynomial(2), constant(7))) == Polynomial(2, "n")
        assert reduce_cost(add(logarithmic(), linear())) == Linear("n")

    def test_reduce_is_idempotent(self):
        expressions = [
            multiply(linear(), multiply(linear(), constant(3))),
            add(linear(), multiply(linear(), logarithmic())),
            add(symbolic("m"), linear(), exponential()),
            multiply(polynomial(2), constant(0.5), linear("m")),
            constant(4),
            multiply(polynomial(2), polynomial(-2), logarithmic()),
            multiply(polynomial(-1), linear(), constant(3)),
        ]
        for expr in expressions:
            once = reduce_cost(expr)
            assert reduce_cost(once) == once, f"reduce_cost not idempotent for {expr}"

    def test_cancelled_powers_leave_no_unit_factor(self):
        assert reduce_cost(multiply(polynomial(2), polynomial(-2), logarithmic())) == logarithmic()
        assert reduce_cost(multiply(polynomial(-1), linear())) == Constant(1)
        assert reduce_cost(multiply(polynomial(-1), linear(), constant(3))) == Constant(3)


class TestOrdering:
    """Dominance order used to pick the leading term"""

    def test_growth_classes_are_ordered(self):
        chain = [constant(), logarithmic(), linear(), polynomial(2), polynomial(3), symbolic("k"), exponential()]
        ranks = [dominance_rank(expr) for expr in chain]
        assert ranks == sorted(ranks), f"Ranks out of order: {ranks}"
        assert len(set(ranks)) == len(ranks), "Every growth class should have its own rank"

    def test_compare_cost_sign(self):
        assert compare_cost(polynomial(2), linear()) > 0
        assert compare_cost(linear(), exponential()) < 0
        assert compare_cost(linear("n"), linear("m")) == 0

    def test_product_rank_is_sum_of_factors(self):
        assert dominance_rank(multiply(linear(), logarithmic())) == dominance_rank(linear()) + dominance_rank(logarithmic())


class TestRendering:
    """Big-O strings and explanations"""

    def test_big_o_strings(self):
        assert to_big_o(constant(12)) == "O(1)"
        assert to_big_o(logarithmic()) == "O(log n)"
        assert to_big_o(linear()) == "O(n)"
        assert to_big_o(multiply(linear(), linear())) == "O(n^2)"
        assert to_big_o(multiply(linear(), logarithmic())) == "O(n log n)"
        assert to_big_o(exponential(2, "n")) == "O(2^n)"

    def test_constant_multipliers_are_dropped(self):
        assert to_big_o(multiply(constant(5), linear())) == "O(n)"

    def test_unresolved_bound_uses_its_name(self):
        assert to_big_o(add(linear(), symbolic("m"))) == "O(m)"

    def test_explanations(self):
        assert explain_cost(Polynomial(2, "n")).startswith("Quadratic")
        assert explain_cost(constant()) == "Constant time operation"
        assert "Exponential" in explain_cost(exponential())
        assert explain_cost(symbolic("k", "Bounded by k")) == "Bounded by k"
