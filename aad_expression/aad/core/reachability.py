# aad/core/reachability.py
from __future__ import annotations
from collections import deque
from typing import Iterable, Set

from .node import Node


def find_non_consts(leaves: Iterable[Node]) -> Set[Node]:
    """
    Every node whose value depends on at least one of `leaves`.

    Breadth-first walk over parent links starting at the given leaves. A
    node already in the result is not expanded again, so reconvergent paths
    are walked once. The result contains the leaves themselves and is closed
    under "has a parent in the set".
    """
    nonconsts: Set[Node] = set()
    q = deque(leaves)

    while q:
        v = q.popleft()
        if v in nonconsts:
            continue
        nonconsts.add(v)
        q.extend(v.parents)
    return nonconsts
