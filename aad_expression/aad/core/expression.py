# aad/core/expression.py
from __future__ import annotations
import warnings
from collections import defaultdict, deque
from typing import AbstractSet, Dict, Iterable, MutableMapping, Optional, Sequence, Set

import numpy as np

from .distributor import distribute, distribute_restricted
from .evaluator import evaluate
from .node import Node, arity
from .reachability import find_non_consts
from .values import mval, ones_like, zeros_like


def write_back(leaves: MutableMapping[Node, np.ndarray],
               derivatives: Dict[Node, np.ndarray]) -> None:
    """
    Copy accumulated gradients into the caller's mapping, zeros if none arrived.

    The full result is built before anything is written, so a key that
    cannot be filled leaves the mapping as it was.
    """
    result = {}
    for leaf in leaves.keys():
        grad = derivatives.get(leaf)
        result[leaf] = grad if grad is not None else zeros_like(leaf)
    leaves.update(result)


def seed_leaves(leaves: Iterable[Node], stacklevel: int = 4) -> AbstractSet[Node]:
    """
    Validate the starting nodes of a leaf-seeded forward pass.

    Duplicates collapse to one entry. A node without a value raises
    ValueError; a non-leaf is accepted with a warning and its value is used
    as given.
    """
    seeded: Dict[Node, None] = {}
    for v in leaves:
        if v in seeded:
            continue
        if v.value is None:
            raise ValueError(f"{v!r} has no value; leaves must be set before propagate(leaves)")
        if not v.is_leaf():
            warnings.warn(f"{v!r} is not a leaf; its value is used as given", stacklevel=stacklevel)
        seeded[v] = None
    return seeded.keys()


def warn_unreached_root(stacklevel: int = 4) -> None:
    warnings.warn(
        "propagate(leaves) did not reach the root; "
        "its value is left from a previous evaluation",
        stacklevel=stacklevel,
    )


class Expression:
    """
    A DAG of nodes viewed from its root.

    Forward propagation fills `Node.value` bottom-up; backpropagation seeds
    ∂root/∂root = 1 and pushes gradients top-down, summing contributions at
    nodes that feed more than one parent.

    Two forward strategies are offered:
        propagate()        : post-order walk from the root.
        propagate(leaves)  : fan-in walk seeded from already-valued leaves;
                             a node is evaluated once as many of its operands
                             have resolved as its operator takes.
    Both return the root's value and agree on every graph.
    """

    def __init__(self, root: Node):
        if not isinstance(root, Node):
            raise TypeError(f"root must be a Node, got {type(root)}")
        self._root = root

    def root(self) -> Node:
        return self._root

    def __repr__(self):
        return f"Expression(root={self._root!r})"

    # ------------------------------------------------------------------ #
    # Graph queries
    # ------------------------------------------------------------------ #
    def nodes(self) -> Sequence[Node]:
        """Every distinct node under the root, in breadth-first order."""
        seen: Set[Node] = {self._root}
        order = [self._root]
        q = deque([self._root])
        while q:
            v = q.popleft()
            for child in v.children:
                if child not in seen:
                    seen.add(child)
                    order.append(child)
                    q.append(child)
        return order

    def find_leaves(self) -> Set[Node]:
        return {v for v in self.nodes() if v.is_leaf()}

    def find_non_consts(self, leaves: Iterable[Node]) -> Set[Node]:
        return find_non_consts(leaves)

    # ------------------------------------------------------------------ #
    # Forward propagation
    # ------------------------------------------------------------------ #
    def propagate(self, leaves: Optional[Iterable[Node]] = None) -> np.ndarray:
        """
        Evaluate the graph and return the root's value.

        Without `leaves`, every node under the root is evaluated children
        first. With `leaves`, evaluation starts from those nodes, which must
        already hold values.
        """
        if leaves is None:
            return self._propagate_from_root()
        return self._propagate_from_leaves(leaves)

    def _propagate_from_root(self) -> np.ndarray:
        # Iterative post-order: a node is pushed back under its children and
        # evaluated the second time it reaches the top of the stack.
        done: Set[Node] = set()
        stack = [(self._root, False)]
        while stack:
            v, expanded = stack.pop()
            if v in done:
                continue
            if v.is_leaf():
                mval(v)  # leaves must come in with a value
                done.add(v)
                continue
            if expanded:
                v.value = evaluate(v.op, v.children)
                done.add(v)
                continue
            stack.append((v, True))
            for child in reversed(v.children):
                if child not in done:
                    stack.append((child, False))
        return self._root.value

    def _propagate_from_leaves(self, leaves: Iterable[Node]) -> np.ndarray:
        seeded = seed_leaves(leaves)
        q = deque(seeded)

        explored: Dict[Node, int] = defaultdict(int)
        reached_root = self._root in seeded
        while q:
            v = q.popleft()
            for parent in v.parents:
                # a seeded node is already resolved; its parents were counted once
                if parent in seeded:
                    continue
                explored[parent] += 1
                if explored[parent] == arity(parent.op):
                    parent.value = evaluate(parent.op, parent.children)
                    q.append(parent)
                    if parent is self._root:
                        reached_root = True

        if not reached_root:
            warn_unreached_root()
        return self._root.value

    # ------------------------------------------------------------------ #
    # Backpropagation
    # ------------------------------------------------------------------ #
    def pending_parent_counts(self) -> Dict[Node, int]:
        """
        Number of parent edges each node receives from inside this
        expression. A node is ready to pass its gradient on once that many
        contributions have arrived.
        """
        counts: Dict[Node, int] = defaultdict(int)
        for v in self.nodes():
            for child in v.children:
                counts[child] += 1
        return counts

    def backpropagate(self,
                      leaves: MutableMapping[Node, np.ndarray],
                      nonconsts: Optional[AbstractSet[Node]] = None) -> None:
        """
        Reverse sweep from the root; writes ∂root/∂leaf into `leaves`.

        Parameters
        ----------
        leaves    : mutable mapping keyed by the nodes of interest. Every key
                    is overwritten with its accumulated gradient; keys that
                    received no gradient get zeros shaped like the node.
        nonconsts : optional reachable set (see `find_non_consts`). Nodes
                    outside it are constants: they are not expanded and
                    receive zero gradient.

        The root is seeded with ones shaped like its value, so for a tensor
        root this computes the gradient of the sum of its elements. If the
        sweep fails, `leaves` is left untouched.
        """
        derivatives = self._backward_sweep(nonconsts)
        write_back(leaves, derivatives)

    def gradients(self, leaves: Iterable[Node],
                  nonconsts: Optional[AbstractSet[Node]] = None) -> Dict[Node, np.ndarray]:
        """Like `backpropagate`, but returns a fresh {leaf: gradient} dict."""
        result: Dict[Node, np.ndarray] = {leaf: None for leaf in leaves}
        self.backpropagate(result, nonconsts)
        return result

    def _backward_sweep(self, nonconsts: Optional[AbstractSet[Node]]) -> Dict[Node, np.ndarray]:
        # Gradients live in this transient map only; contributions from
        # different parents are summed, never overwritten.
        derivatives: Dict[Node, np.ndarray] = {self._root: ones_like(self._root)}
        explored = self.pending_parent_counts()
        q = deque([self._root])

        while q:
            v = q.popleft()
            if nonconsts is None:
                child_derivs = distribute(v.op, v.children, derivatives[v])
            elif v not in nonconsts:
                continue
            else:
                child_derivs = distribute_restricted(v.op, v.children, derivatives[v], nonconsts)

            for child, d in zip(v.children, child_derivs):
                explored[child] -= 1
                if child not in derivatives:
                    derivatives[child] = zeros_like(child)
                derivatives[child] = derivatives[child] + d
                if not child.is_leaf() and explored[child] == 0:
                    q.append(child)
        return derivatives
