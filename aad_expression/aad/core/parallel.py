"""
Thread-pool versions of the fan-in schedulers.

Both forward (leaf-seeded) and backward propagation only ever hand a node
to a worker once its readiness counter reaches zero, so every node a worker
sees has all of its inputs resolved and no two in-flight nodes share an
unresolved edge.

Workers run the pure pieces (operator evaluation, gradient distribution).
Readiness counters, node values and gradient accumulators are updated by
the calling thread alone as futures complete, which makes decrement-and-check
and add-into-accumulator atomic per node without locks.

NumPy releases the GIL inside its heavier kernels (matmul, inverse, large
elementwise ops), which is where the threads pay off.
"""

from collections import defaultdict
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import AbstractSet, Dict, Iterable, MutableMapping, Optional

import numpy as np

from .distributor import distribute, distribute_restricted
from .evaluator import evaluate
from .expression import Expression, seed_leaves, warn_unreached_root, write_back
from .node import Node, arity
from .values import ones_like, zeros_like


def propagate_parallel(expression: Expression,
                       leaves: Iterable[Node],
                       max_workers: Optional[int] = None) -> np.ndarray:
    """
    Leaf-seeded forward propagation with ready nodes evaluated concurrently.

    Same contract as `Expression.propagate(leaves)`: leaves must already
    hold values, the same warnings are issued, and the root's value is
    returned.
    """
    root = expression.root()
    explored: Dict[Node, int] = defaultdict(int)
    pending: Dict[Future, Node] = {}

    seeded = seed_leaves(leaves, stacklevel=3)
    reached_root = root in seeded

    with ThreadPoolExecutor(max_workers=max_workers) as executor:

        def resolve(v: Node):
            for parent in v.parents:
                if parent in seeded:
                    continue
                explored[parent] += 1
                if explored[parent] == arity(parent.op):
                    fut = executor.submit(evaluate, parent.op, parent.children)
                    pending[fut] = parent

        for v in seeded:
            resolve(v)

        try:
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for fut in done:
                    node = pending.pop(fut)
                    node.value = fut.result()
                    if node is root:
                        reached_root = True
                    resolve(node)
        except BaseException:
            for fut in pending:
                fut.cancel()
            raise

    if not reached_root:
        warn_unreached_root(stacklevel=3)
    return root.value


def backpropagate_parallel(expression: Expression,
                           leaves: MutableMapping[Node, np.ndarray],
                           nonconsts: Optional[AbstractSet[Node]] = None,
                           max_workers: Optional[int] = None) -> None:
    """
    Backpropagation with gradient distribution run on a thread pool.

    Same contract as `Expression.backpropagate(leaves, nonconsts)`; results
    match the sequential sweep up to floating-point summation order.
    """
    root = expression.root()
    derivatives: Dict[Node, np.ndarray] = {root: ones_like(root)}
    explored = expression.pending_parent_counts()
    pending: Dict[Future, Node] = {}

    def _distribute(v: Node, dx: np.ndarray):
        if nonconsts is None:
            return distribute(v.op, v.children, dx)
        return distribute_restricted(v.op, v.children, dx, nonconsts)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:

        def schedule(v: Node):
            if nonconsts is not None and v not in nonconsts:
                return
            pending[executor.submit(_distribute, v, derivatives[v])] = v

        schedule(root)
        try:
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for fut in done:
                    v = pending.pop(fut)
                    for child, d in zip(v.children, fut.result()):
                        explored[child] -= 1
                        if child not in derivatives:
                            derivatives[child] = zeros_like(child)
                        derivatives[child] = derivatives[child] + d
                        if not child.is_leaf() and explored[child] == 0:
                            schedule(child)
        except BaseException:
            for fut in pending:
                fut.cancel()
            raise

    write_back(leaves, derivatives)
