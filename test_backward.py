"""
Backpropagation: worked scenarios, multi-path accumulation, restricted
sweeps over the reachable set, and the unsupported inverse.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from aad_expression.aad import (
    Expression, Node, OpType, UnsupportedDerivativeError, var,
    exp, log, inverse, transpose, sum,
)
from aad_expression.methods import BumpConfig, check_gradients


def _grads(root, *leaves, nonconsts=None):
    expr = Expression(root)
    expr.propagate()
    g = {leaf: None for leaf in leaves}
    expr.backpropagate(g, nonconsts)
    return g


def test_scalar_add():
    a = var([[3.0]])
    b = var([[4.0]])
    g = _grads(a + b, a, b)

    assert_allclose(g[a], [[1.0]])
    assert_allclose(g[b], [[1.0]])


def test_scalar_broadcast_multiply():
    a = var(2.0)
    B = var([[1.0, 2.0], [3.0, 4.0]])
    g = _grads(a * B, a, B)

    assert_allclose(g[a], [[10.0]])
    assert_allclose(g[B], [[2.0, 2.0], [2.0, 2.0]])


def test_vector_divide():
    a = var([1.0, 2.0])
    b = var([2.0, 4.0])
    g = _grads(a / b, a, b)

    assert_allclose(g[a], [0.5, 0.25])
    assert_allclose(g[b], [-0.25, -0.125])


def test_sum_reduction():
    A = var([[1.0, 2.0], [3.0, 4.0]])
    g = _grads(sum(A), A)

    assert_allclose(g[A], np.ones((2, 2)))


def test_inverse_is_not_differentiable():
    A = var([[4.0, 7.0], [2.0, 6.0]])
    expr = Expression(inverse(A))
    assert_allclose(expr.propagate(), np.linalg.inv(A.value))

    sentinel = object()
    leaves = {A: sentinel}
    with pytest.raises(UnsupportedDerivativeError):
        expr.backpropagate(leaves)
    assert leaves[A] is sentinel


def test_inverse_upstream_of_constants_only_is_fine():
    A = var([[4.0, 7.0], [2.0, 6.0]])
    x = var([[1.0], [2.0]])
    root = sum(inverse(A) @ x)
    expr = Expression(root)
    expr.propagate()

    nonconsts = expr.find_non_consts([x])
    g = expr.gradients([x, A], nonconsts)

    assert_allclose(g[x], np.linalg.inv(A.value).T @ np.ones((2, 1)))
    assert_array_equal(g[A], np.zeros((2, 2)))


def test_multi_path_accumulation():
    x = var(1.5)
    p = x * 2.0
    q = x * 3.0
    g = _grads(p + q, x)

    assert_allclose(g[x], [[5.0]])


def test_same_operand_twice():
    x = var([[3.0, -1.0]])
    g = _grads(x * x, x)

    assert_allclose(g[x], [[6.0, -2.0]])


def test_shared_intermediate_node():
    x = var(2.0)
    h = exp(x)
    root = h * h + h          # e^{2x} + e^x
    g = _grads(root, x)

    assert_allclose(g[x], [[2 * np.exp(4.0) + np.exp(2.0)]])


def test_sub_broadcast_gradients():
    s = var(1.0)
    T = var([[1.0, 2.0], [3.0, 4.0]])
    g = _grads(s - T, s, T)
    assert_allclose(g[s], [[4.0]])
    assert_allclose(g[T], -np.ones((2, 2)))

    g = _grads(T - s, s, T)
    assert_allclose(g[s], [[-4.0]])
    assert_allclose(g[T], np.ones((2, 2)))


def test_div_scalar_operands():
    s = var(2.0)
    T = var([[1.0, 4.0]])

    g = _grads(s / T, s, T)
    assert_allclose(g[s], [[1.0 + 0.25]])
    assert_allclose(g[T], [[-2.0, -2.0 / 16.0]])

    g = _grads(T / s, s, T)
    assert_allclose(g[s], [[-(1.0 + 4.0) / 4.0]])
    assert_allclose(g[T], [[0.5, 0.5]])


def test_matmul_and_transpose():
    A = var([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    B = var([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    g = _grads(sum(transpose(A @ B)), A, B)

    ones = np.ones((2, 2))
    assert_allclose(g[A], ones @ B.value.T)
    assert_allclose(g[B], A.value.T @ ones)


def test_power_only_differentiates_base():
    x = var([[2.0, 3.0]])
    p = var(3.0)
    g = _grads(x ** p, x, p)

    assert_allclose(g[x], [[12.0, 27.0]])
    assert_array_equal(g[p], [[0.0]])


def test_log_and_exp():
    x = var([[0.5, 2.0]])
    g = _grads(log(x) + exp(x), x)

    assert_allclose(g[x], 1.0 / x.value + np.exp(x.value))


def test_tensor_root_is_seeded_with_ones():
    A = var([[1.0, 2.0], [3.0, 4.0]])
    g = _grads(A * A, A)

    assert_allclose(g[A], 2.0 * A.value)


def test_root_that_is_a_leaf():
    a = var([[1.0, 2.0]])
    g = _grads(a, a)

    assert_allclose(g[a], [[1.0, 1.0]])


def test_unrelated_leaf_gets_zero():
    a = var(2.0)
    b = var(3.0)
    stranger = var([[1.0, 1.0, 1.0]])
    g = _grads(a * b, a, stranger)

    assert_allclose(g[a], [[3.0]])
    assert_array_equal(g[stranger], np.zeros((1, 3)))


def test_sharing_with_another_expression_does_not_block_gradients():
    x = var(2.0)
    h = x * x
    other = h + 1.0   # consumer outside the expression below
    root = h * 3.0
    g = _grads(root, x)

    assert other.parents == []
    assert_allclose(g[x], [[12.0]])


def test_reachability_closure():
    a = var(1.0)
    b = var(2.0)
    c = var(3.0)
    ab = a * b
    bc = b + c
    root = ab * bc
    expr = Expression(root)

    nonconsts = expr.find_non_consts([a])
    assert a in nonconsts
    assert ab in nonconsts and root in nonconsts
    assert b not in nonconsts and c not in nonconsts and bc not in nonconsts
    for v in nonconsts:
        assert all(p in nonconsts for p in v.parents)

    assert expr.find_non_consts([b]) == {b, ab, bc, root}


def test_restricted_backprop_zeroes_constants():
    a = var(2.0)
    b = var(5.0)
    c = var(7.0)
    root = a * b + c
    expr = Expression(root)
    expr.propagate()

    full = expr.gradients([a, b, c])
    restricted = expr.gradients([a, b, c], expr.find_non_consts([a]))

    assert_allclose(full[a], [[5.0]])
    assert_allclose(full[b], [[2.0]])
    assert_allclose(full[c], [[1.0]])
    assert_allclose(restricted[a], full[a])
    assert_array_equal(restricted[b], [[0.0]])
    assert_array_equal(restricted[c], [[0.0]])


def test_restricted_backprop_with_root_outside_set():
    a = var(2.0)
    b = var(5.0)
    root = b * 2.0
    expr = Expression(root)
    expr.propagate()

    g = expr.gradients([a, b], expr.find_non_consts([a]))
    assert_array_equal(g[a], [[0.0]])
    assert_array_equal(g[b], [[0.0]])


def test_backprop_matches_central_differences():
    rng = np.random.default_rng(0)
    W = var(rng.normal(size=(2, 3)), name="W")
    x = var(rng.normal(size=(3, 1)), name="x")
    y = var(rng.uniform(0.5, 1.5, size=(2, 1)), name="y")
    s = var(0.7, name="s")

    z = exp((W @ x) * 0.3) / (y + 1.0)
    loss = sum((z - s) ** 2) + sum(log(y) * s) + sum(transpose(W) / (s + 2.0))
    expr = Expression(loss)

    report = check_gradients(expr, [W, x, y, s], rtol=1e-5, atol=1e-7,
                             config=BumpConfig(eps=1e-6))
    for leaf, (analytic, numeric, ok) in report.items():
        assert ok, f"{leaf.name}: {analytic} vs {numeric}"


def test_failed_write_back_leaves_mapping_untouched():
    a = var(1.0)
    unset = Node(OpType.LEAF, name="unset")
    expr = Expression(a * 2.0)
    expr.propagate()

    sentinel = object()
    leaves = {a: sentinel, unset: sentinel}
    with pytest.raises(ValueError):
        expr.backpropagate(leaves)
    assert leaves[a] is sentinel
    assert leaves[unset] is sentinel


def test_scalar_gradient_keeps_operand_shape():
    a = var([[2.0]])
    b = var([3.0])

    g = _grads(a + b, a, b)
    assert g[a].shape == (1, 1)
    assert g[b].shape == (1,)
    assert_allclose(g[b], [1.0])

    g = _grads(a * b, a, b)
    assert g[b].shape == (1,)
    assert_allclose(g[a], [[3.0]])
    assert_allclose(g[b], [2.0])
