# aad/core/tape.py
from __future__ import annotations
from typing import Iterator, List, Optional
from contextlib import contextmanager
from .node import Node

class Tape:
    """
    Arena of graph nodes in creation order.

    Each recorded node gets a stable integer `index` into `nodes`, so
    bookkeeping and debug output can refer to nodes by position.
    """
    def __init__(self):
        self.nodes: List[Node] = []

    def reset(self):
        self.nodes.clear()

    def push_node(self, node: Node) -> int:
        """
        Append `node` to the tape and return its index.
        """
        node.index = len(self.nodes)
        self.nodes.append(node)
        return node.index

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

# Global singleton tape (simple and practical for a first implementation)
global_tape = Tape()

@contextmanager
def use_tape(tape: Optional[Tape] = None):
    """
    Context manager to temporarily record into a fresh tape:
        with use_tape():
            ... build expression ...
            Expression(y).propagate()
    """
    from . import tape as _tape_mod  # local import to avoid cycles
    prev = _tape_mod.global_tape
    try:
        _tape_mod.global_tape = tape or Tape()
        yield _tape_mod.global_tape
    finally:
        _tape_mod.global_tape = prev
