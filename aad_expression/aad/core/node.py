# aad/core/node.py
from __future__ import annotations
from enum import Enum
from typing import Any, List, Optional, Sequence

import numpy as np

from .errors import InvalidGraphError


class OpType(Enum):
    """Operator tag carried by every node."""
    LEAF = "leaf"
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    EXP = "exp"
    LOG = "log"
    POWER = "pow"
    MATMUL = "matmul"
    INVERSE = "inverse"
    TRANSPOSE = "transpose"
    SUM = "sum"


_ARITY = {
    OpType.LEAF: 0,
    OpType.ADD: 2,
    OpType.SUB: 2,
    OpType.MUL: 2,
    OpType.DIV: 2,
    OpType.EXP: 1,
    OpType.LOG: 1,
    OpType.POWER: 2,
    OpType.MATMUL: 2,
    OpType.INVERSE: 1,
    OpType.TRANSPOSE: 1,
    OpType.SUM: 1,
}


def arity(op: OpType) -> int:
    """Number of operands `op` consumes (0 for leaves)."""
    return _ARITY[op]


class Node:
    """
    One vertex of the expression DAG.

    Attributes
    ----------
    op       : OpType
        Operator tag. Leaves carry OpType.LEAF and have no children.
    value    : np.ndarray | None
        Cached forward value. Scalars are stored as 1x1 arrays. Set from
        outside for leaves, by forward propagation for everything else.
    children : List[Node]
        Ordered operands. Order matters for sub/div/pow/matmul.
    parents  : List[Node]
        Every node that consumes this one, one entry per operand slot, so a
        node used twice by the same parent (x * x) appears twice.
    name     : Optional[str]
        Debug name.
    index    : Optional[int]
        Stable position in the tape (arena) that recorded this node.

    Equality and hashing are by identity: two structurally identical nodes
    are still two different nodes.
    """

    __slots__ = ("op", "value", "children", "parents", "name", "index")

    __array_ufunc__ = None  # make `ndarray + Node` defer to Node.__radd__

    def __init__(self, op: OpType, children: Sequence["Node"] = (), *,
                 value: Any = None, name: Optional[str] = None):
        if not isinstance(op, OpType):
            raise TypeError(f"op must be an OpType, got {type(op)}")
        children = list(children)
        if children and op is OpType.LEAF:
            raise InvalidGraphError("Cannot have a non-leaf contain the leaf op.")
        if op is not OpType.LEAF and len(children) != arity(op):
            raise InvalidGraphError(
                f"Operator {op.value!r} takes {arity(op)} operand(s), "
                f"got {len(children)}"
            )
        for child in children:
            if not isinstance(child, Node):
                raise TypeError(f"children must be Node instances, got {type(child)}")

        self.op = op
        self.value = None if value is None else np.asarray(value, dtype=np.float64)
        self.children: List[Node] = children
        self.parents: List[Node] = []
        self.name = name
        self.index: Optional[int] = None

        for child in children:
            child.parents.append(self)

    def is_leaf(self) -> bool:
        return not self.children

    def set_value(self, value) -> None:
        self.value = np.asarray(value, dtype=np.float64)

    def __repr__(self):
        shape = None if self.value is None else self.value.shape
        return f"Node({self.op.value}, shape={shape}, name={self.name!r})"

    # Identity semantics; operator overloads below would otherwise shadow them.
    __hash__ = object.__hash__

    def __eq__(self, other):
        return self is other

    def __ne__(self, other):
        return self is not other
