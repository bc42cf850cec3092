# aad/core/var.py
from __future__ import annotations
from typing import Any, Optional

from . import tape as tape_mod  # module access so use_tape() is honoured
from .node import Node, OpType
from .values import as_value


def var(val: Any, *, name: Optional[str] = None) -> Node:
    """
    Create a leaf holding `val` and record it on the active tape.

    Numbers become 1x1 scalars; lists, tuples and arrays keep their shape
    as float64.
    """
    node = Node(OpType.LEAF, value=as_value(val), name=name)
    tape_mod.global_tape.push_node(node)
    return node


def as_node(x: Any) -> Node:
    """Pass nodes through; wrap anything else as a new constant leaf."""
    return x if isinstance(x, Node) else var(x)


def record(op: OpType, *operands: Any, name: Optional[str] = None) -> Node:
    """Build an operator node over `operands` and record it on the active tape."""
    node = Node(op, [as_node(x) for x in operands], name=name)
    tape_mod.global_tape.push_node(node)
    return node
