# aad/core/distributor.py
from __future__ import annotations
from typing import AbstractSet, List, Sequence

import numpy as np

from .node import Node, OpType
from .rules import local_gradient
from .values import zeros_like


def distribute(op: OpType, operands: Sequence[Node], dx: np.ndarray) -> List[np.ndarray]:
    """
    Split the upstream gradient `dx` of one node into one contribution per
    operand, in operand order.
    """
    return [local_gradient(op, dx, operands, i) for i in range(len(operands))]


def distribute_restricted(op: OpType,
                          operands: Sequence[Node],
                          dx: np.ndarray,
                          nonconsts: AbstractSet[Node]) -> List[np.ndarray]:
    """
    Same as `distribute`, but operands outside `nonconsts` are constants:
    they receive a zero tensor and their local rule is never evaluated.
    """
    derivatives = []
    for i, operand in enumerate(operands):
        if operand not in nonconsts:
            derivatives.append(zeros_like(operand))  # no gradient flow
        else:
            derivatives.append(local_gradient(op, dx, operands, i))
    return derivatives
