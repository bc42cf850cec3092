# aad/core/rules.py
"""
Local gradient rules.

For a node y = op(x_0, ..., x_{k-1}) and an upstream gradient dx = ∂root/∂y,
`local_gradient(op, dx, operands, i)` returns the contribution of this node
to ∂root/∂x_i. When x_i is a scalar broadcast against a tensor, the
contribution is summed back down to one element in that operand's own shape.
"""
from __future__ import annotations
from typing import Sequence

import numpy as np

from .errors import InvalidGraphError, UnsupportedDerivativeError
from .node import Node, OpType
from .values import is_scalar, mval, ones_like, sval, zeros_like


def _scalar_like(total, operand: Node) -> np.ndarray:
    # keep the operand's own shape: (1, 1), (1,) or ()
    return np.full(mval(operand).shape, float(total))


def _reduce_if_scalar(grad: np.ndarray, operand: Node) -> np.ndarray:
    if is_scalar(operand):
        return _scalar_like(np.sum(grad), operand)
    return grad


def local_gradient(op: OpType,
                   dx: np.ndarray,
                   operands: Sequence[Node],
                   op_idx: int) -> np.ndarray:
    # ---------- Linear ops ----------
    if op is OpType.ADD:
        return _reduce_if_scalar(dx, operands[op_idx])

    if op is OpType.SUB:
        res = _reduce_if_scalar(dx, operands[op_idx])
        return res if op_idx == 0 else -res

    # ---------- Product ----------
    if op is OpType.MUL:
        other = operands[1 - op_idx]
        if is_scalar(operands[op_idx]):
            return _scalar_like(np.sum(dx * mval(other)), operands[op_idx])
        elif is_scalar(other):
            return dx * sval(other)
        else:
            return dx * mval(other)

    # ---------- Division ----------
    if op is OpType.DIV:
        num, den = operands
        if op_idx == 0:
            # ∂(a/b)/∂a = 1/b
            if is_scalar(den):
                return _reduce_if_scalar(dx / sval(den), num)
            return _reduce_if_scalar(dx / mval(den), num)
        # ∂(a/b)/∂b = -a/b²
        if is_scalar(num):
            local = -sval(num) / np.square(mval(den))
        elif is_scalar(den):
            local = -mval(num) / sval(den) ** 2
        else:
            local = -mval(num) / np.square(mval(den))
        return _reduce_if_scalar(dx * local, den)

    # ---------- Transcendental ----------
    if op is OpType.EXP:
        # recomputed from the operand; the cached node value may be stale
        return dx * np.exp(mval(operands[0]))

    if op is OpType.LOG:
        return dx * (1.0 / mval(operands[0]))

    # ---------- Power ----------
    if op is OpType.POWER:
        if op_idx == 0:
            p = sval(operands[1])
            return dx * p * np.power(mval(operands[0]), p - 1.0)
        # exponents are treated as constants
        return zeros_like(operands[1])

    # ---------- Linear algebra ----------
    if op is OpType.MATMUL:
        if op_idx == 0:
            return dx @ mval(operands[1]).T
        return mval(operands[0]).T @ dx

    if op is OpType.INVERSE:
        # d(A⁻¹) = -A⁻¹ · dA · A⁻¹ nests the chain rule through A⁻¹ itself,
        # which a per-operand local rule cannot express.
        raise UnsupportedDerivativeError("The derivative of an inverse is not supported.")

    if op is OpType.TRANSPOSE:
        return dx.T

    if op is OpType.SUM:
        return sval(dx) * ones_like(operands[0])

    if op is OpType.LEAF:
        raise InvalidGraphError("A leaf has no local gradient.")

    raise InvalidGraphError(f"Unknown operator {op!r}")
