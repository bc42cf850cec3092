"""
Forward propagation: operator values, both evaluation strategies, and graph
construction errors.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from aad_expression.aad import (
    Expression, InvalidGraphError, Node, OpType, var,
    exp, log, inverse, transpose, sum,
)
from aad_expression.aad.core.evaluator import evaluate


def _composite():
    """A small graph mixing every operator that has a gradient."""
    A = var([[1.0, 2.0], [3.0, 4.0]], name="A")
    x = var([[0.5], [-0.25]], name="x")
    c = var(2.0, name="c")
    z = A @ x                       # 2x1
    e = exp(z * 0.1) / (c + 1.0)    # scalar broadcast on both sides
    p = (e - log(c)) ** 2
    root = sum(p) + sum(transpose(A) * c)
    return Expression(root), (A, x, c)


def test_scalar_add():
    a = var([[3.0]], name="a")
    b = var([[4.0]], name="b")
    expr = Expression(a + b)

    assert_allclose(expr.propagate(), [[7.0]])


def test_scalar_broadcast_multiply():
    a = var(2.0)
    B = var([[1.0, 2.0], [3.0, 4.0]])

    assert_allclose(Expression(a * B).propagate(), [[2.0, 4.0], [6.0, 8.0]])
    assert_allclose(Expression(B * a).propagate(), [[2.0, 4.0], [6.0, 8.0]])


def test_vector_divide():
    a = var([1.0, 2.0])
    b = var([2.0, 4.0])
    out = Expression(a / b).propagate()

    assert out.shape == (2,)
    assert_allclose(out, [0.5, 0.5])


def test_scalar_tensor_sub_and_div_keep_tensor_shape():
    s = var(6.0)
    T = var([[1.0, 2.0, 3.0]])

    assert_allclose(Expression(s - T).propagate(), [[5.0, 4.0, 3.0]])
    assert_allclose(Expression(T - s).propagate(), [[-5.0, -4.0, -3.0]])
    assert_allclose(Expression(s / T).propagate(), [[6.0, 3.0, 2.0]])


def test_sum_reduction_is_scalar():
    A = var([[1.0, 2.0], [3.0, 4.0]])
    out = Expression(sum(A)).propagate()

    assert out.shape == (1, 1)
    assert_allclose(out, [[10.0]])


def test_unary_and_linear_algebra_ops():
    A = var([[4.0, 7.0], [2.0, 6.0]])
    B = var([[1.0, 0.0], [1.0, 1.0]])

    assert_allclose(Expression(exp(A)).propagate(), np.exp(A.value))
    assert_allclose(Expression(log(A)).propagate(), np.log(A.value))
    assert_allclose(Expression(A ** 3).propagate(), A.value ** 3)
    assert_allclose(Expression(A @ B).propagate(), A.value @ B.value)
    assert_allclose(Expression(transpose(A)).propagate(), A.value.T)
    assert_allclose(Expression(inverse(A)).propagate(), np.linalg.inv(A.value))


def test_operator_sugar_with_constants():
    x = var([[1.0, 2.0]])
    root = 2 * x + np.array([[1.0, 1.0]]) - 1 / x

    assert_allclose(Expression(root).propagate(), [[2.0, 4.5]])
    assert_allclose(Expression(-x).propagate(), [[-1.0, -2.0]])


def test_strategies_agree():
    expr, _ = _composite()
    from_root = expr.propagate().copy()

    for v in expr.nodes():
        if not v.is_leaf():
            v.value = None
    from_leaves = expr.propagate(expr.find_leaves())

    assert_allclose(from_leaves, from_root)


def test_shared_node_is_evaluated_once_per_pass():
    x = var(3.0)
    shared = x * x
    root = shared + shared * 2.0
    expr = Expression(root)

    assert_allclose(expr.propagate(), [[27.0]])
    assert_allclose(expr.propagate(expr.find_leaves()), [[27.0]])


def test_leaf_seeded_propagation_with_duplicate_leaves():
    a = var(1.0)
    b = var(2.0)
    expr = Expression(a * b + a)

    assert_allclose(expr.propagate([a, b, a]), [[3.0]])


def test_leaf_seeded_propagation_picks_up_new_leaf_values():
    a = var(1.0)
    b = var(2.0)
    expr = Expression(a * b)
    expr.propagate()

    a.set_value([[5.0]])
    assert_allclose(expr.propagate([a, b]), [[10.0]])


def test_find_leaves():
    expr, (A, x, c) = _composite()
    leaves = expr.find_leaves()

    assert {A, x, c} <= leaves
    assert all(v.is_leaf() for v in leaves)
    # constants wrapped by the operator sugar are leaves too
    assert len(leaves) == 6


def test_leaf_without_value_fails():
    a = Node(OpType.LEAF, name="unset")
    b = var(1.0)

    with pytest.raises(ValueError):
        Expression(a + b).propagate()
    with pytest.raises(ValueError):
        Expression(a + b).propagate([a, b])


def test_unreached_root_warns():
    a = var(1.0)
    b = var(2.0)
    expr = Expression(a + b)

    with pytest.warns(UserWarning):
        expr.propagate([a])


def test_non_leaf_with_leaf_op_is_rejected():
    a = var(1.0)
    with pytest.raises(InvalidGraphError):
        Node(OpType.LEAF, [a])


def test_wrong_operand_count_is_rejected():
    a = var(1.0)
    with pytest.raises(InvalidGraphError):
        Node(OpType.ADD, [a])
    with pytest.raises(InvalidGraphError):
        Node(OpType.EXP, [a, a])


def test_evaluating_leaf_operator_fails():
    with pytest.raises(InvalidGraphError):
        evaluate(OpType.LEAF, [])


def test_shape_errors_come_from_numpy():
    a = var([[1.0, 2.0]])
    b = var([[1.0, 2.0, 3.0]])

    with pytest.raises(ValueError) as info:
        Expression(a + b).propagate()
    assert not isinstance(info.value, InvalidGraphError)


def test_nodes_compare_by_identity():
    a = var(1.0)
    b = var(1.0)

    assert a != b
    assert a == a
    assert len({a, b, a}) == 2


def test_seeded_intermediate_is_not_resolved_twice():
    x = var(2.0)
    y = var(3.0)
    n = x * y
    n.set_value([[6.0]])
    w = exp(exp(y))
    expr = Expression(n + w)

    with pytest.warns(UserWarning):
        out = expr.propagate([n, x, y])

    assert_allclose(out, [[6.0 + np.exp(np.exp(3.0))]])
