# aad/core/evaluator.py
from __future__ import annotations
from typing import Sequence

import numpy as np

from .errors import InvalidGraphError
from .node import Node, OpType
from .values import is_scalar, mval, scalar, sval


def _elementwise(f, operands: Sequence[Node]) -> np.ndarray:
    # scalar-tensor broadcasting is decided on element count alone
    a, b = operands
    if is_scalar(a):
        return f(sval(a), mval(b))
    elif is_scalar(b):
        return f(mval(a), sval(b))
    else:
        return f(mval(a), mval(b))


def evaluate(op: OpType, operands: Sequence[Node]) -> np.ndarray:
    """
    Forward value of `op` applied to the values of `operands`.

    Leaves never pass through here: their value comes from outside the graph.
    Shape mismatches are left to NumPy and propagate unchanged.
    """
    if op is OpType.ADD:
        return _elementwise(np.add, operands)
    if op is OpType.SUB:
        return _elementwise(np.subtract, operands)
    if op is OpType.MUL:
        return _elementwise(np.multiply, operands)
    if op is OpType.DIV:
        return _elementwise(np.divide, operands)
    if op is OpType.EXP:
        return np.exp(mval(operands[0]))
    if op is OpType.LOG:
        return np.log(mval(operands[0]))
    if op is OpType.POWER:
        # exponent must be a scalar
        return np.power(mval(operands[0]), sval(operands[1]))
    if op is OpType.MATMUL:
        return mval(operands[0]) @ mval(operands[1])
    if op is OpType.INVERSE:
        return np.linalg.inv(mval(operands[0]))
    if op is OpType.TRANSPOSE:
        return mval(operands[0]).T
    if op is OpType.SUM:
        return scalar(mval(operands[0]).sum())
    if op is OpType.LEAF:
        raise InvalidGraphError("Cannot have a non-leaf contain the leaf op.")
    raise InvalidGraphError(f"Unknown operator {op!r}")
