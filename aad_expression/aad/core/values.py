# aad/core/values.py
"""
Helpers over node values.

Values are float64 ndarrays; a scalar is a 1x1 array. An operand counts as
a scalar whenever it holds exactly one element, whatever its shape.
"""
from __future__ import annotations
from typing import Any

import numpy as np

from .node import Node


def as_value(x: Any) -> np.ndarray:
    """Coerce a number, nested sequence or array to a float64 value."""
    if not isinstance(x, (int, float, list, tuple, np.ndarray, np.number)):
        raise TypeError(
            f"values must be numeric (int, float, list, tuple, ndarray), "
            f"but got {type(x)}"
        )
    arr = np.asarray(x, dtype=np.float64)
    if arr.ndim == 0:
        arr = arr.reshape(1, 1)
    return arr


def scalar(x) -> np.ndarray:
    return np.full((1, 1), float(x))


def mval(v: Node) -> np.ndarray:
    if v.value is None:
        raise ValueError(f"{v!r} has no value; propagate before reading it")
    return v.value


def is_scalar(v: Node) -> bool:
    return mval(v).size == 1


def sval(v) -> float:
    """The single element of a scalar node or array."""
    arr = mval(v) if isinstance(v, Node) else np.asarray(v)
    return float(arr.reshape(-1)[0])


def zeros_like(v: Node) -> np.ndarray:
    return np.zeros_like(mval(v), dtype=np.float64)


def ones_like(v: Node) -> np.ndarray:
    return np.ones_like(mval(v), dtype=np.float64)
