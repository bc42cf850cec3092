"""
Central finite differences ("bumping") for checking backpropagated gradients.

For a leaf x and root y the reference derivative is

    ∂f/∂x_k ≈ [f(x + ε e_k) - f(x - ε e_k)] / (2ε),    f = Σ y

Summing the root's elements matches the all-ones seed that
Expression.backpropagate plants at a tensor root.

Each bump re-propagates the whole expression, so the cost is two forward
passes per leaf element. The leaf value and the graph's cached values are
restored afterwards.
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from ..aad.core.expression import Expression
from ..aad.core.node import Node


@dataclass
class BumpConfig:
    """Finite-difference settings."""
    eps: float = 1e-6
    # Scale the step by max(1, |x_k|) per element
    relative: bool = False


def _objective(expression: Expression) -> float:
    return float(np.sum(expression.propagate()))


def central_difference(expression: Expression,
                       leaf: Node,
                       config: Optional[BumpConfig] = None) -> np.ndarray:
    """
    Numerical ∂(Σ root)/∂leaf, shaped like the leaf's value.

    Args:
        expression: Expression whose root depends on `leaf`
        leaf: node to bump; must already hold a value
        config: step settings (defaults if None)

    Returns:
        ndarray with the same shape as leaf.value
    """
    config = config or BumpConfig()
    if leaf.value is None:
        raise ValueError(f"{leaf!r} has no value to bump")
    if config.eps <= 0:
        raise ValueError(f"eps must be positive, got {config.eps}")

    base = leaf.value.copy()
    grad = np.zeros_like(base)
    try:
        for k in np.ndindex(base.shape):
            h = config.eps * max(1.0, abs(base[k])) if config.relative else config.eps

            bumped = base.copy()
            bumped[k] += h
            leaf.value = bumped
            f_up = _objective(expression)

            bumped = base.copy()
            bumped[k] -= h
            leaf.value = bumped
            f_down = _objective(expression)

            grad[k] = (f_up - f_down) / (2.0 * h)
    finally:
        leaf.value = base
        expression.propagate()
    return grad


def check_gradients(expression: Expression,
                    leaves: Iterable[Node],
                    rtol: float = 1e-5,
                    atol: float = 1e-7,
                    config: Optional[BumpConfig] = None) -> Dict[Node, Tuple[np.ndarray, np.ndarray, bool]]:
    """
    Compare backpropagated gradients against central differences.

    Returns:
        {leaf: (analytic, numeric, ok)} where ok is np.allclose(analytic,
        numeric, rtol, atol).
    """
    leaves = list(leaves)
    expression.propagate()
    analytic = expression.gradients(leaves)

    report = {}
    for leaf in leaves:
        numeric = central_difference(expression, leaf, config)
        ok = bool(np.allclose(analytic[leaf], numeric, rtol=rtol, atol=atol))
        report[leaf] = (analytic[leaf], numeric, ok)
    return report
