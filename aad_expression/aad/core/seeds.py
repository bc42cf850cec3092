# aad/core/seeds.py

#-----------------------------------------------------------------------------
# We "plant" a seed (d root / d root = 1) at the output and let gradients
# grow backwards through the expression.
#-----------------------------------------------------------------------------
from __future__ import annotations
from typing import Any, Callable, Dict, Union
import numpy as np

from .expression import Expression
from .node import Node
from .tape import use_tape
from .var import as_node, var


def value(x: Any) -> Any:
    """Return the numeric value of a Node; pass through plain numbers unchanged."""
    return x.value if isinstance(x, Node) else x


def _check_scalar(y: Node, who: str) -> None:
    if y.value.size != 1:
        raise ValueError(f"{who} expects scalar output, got shape {y.value.shape}.")


# ----------------------------- single-input grad ----------------------------- #
def grad(f: Callable[[Node], Node],
         x0: Union[float, np.ndarray]) -> np.ndarray:
    """
    Gradient of a scalar-output function y=f(x) at x0 (single input).
    Builds the expression in a fresh, isolated tape and runs one sweep.
    """
    with use_tape():
        x = var(x0, name="x")
        y = as_node(f(x))
        expr = Expression(y)
        expr.propagate()
        _check_scalar(y, "grad(f, x0)")
        return expr.gradients([x])[x]


# ----------------------------- multi-input grads ----------------------------- #
def grads(f: Callable[[Dict[str, Node]], Node],
          inputs: Dict[str, Union[float, np.ndarray]]) -> Dict[str, np.ndarray]:
    """
    Gradient of a scalar-output function y=f(vars) w.r.t. ALL inputs (dict form).
    Performs ONE backward sweep to obtain all ∂y/∂var simultaneously.

    Parameters
    ----------
    f       : function taking a dict {name: Node} and returning a scalar Node
    inputs  : dict {name: numeric}

    Returns
    -------
    dict {name: ndarray}  # gradients in the same key order as `inputs`
    """
    with use_tape():
        vars_ad: Dict[str, Node] = {k: var(v, name=k) for k, v in inputs.items()}
        y = as_node(f(vars_ad))
        expr = Expression(y)
        expr.propagate()
        _check_scalar(y, "grads(f, inputs)")
        g = expr.gradients(vars_ad.values())
        return {k: g[vars_ad[k]] for k in inputs.keys()}
