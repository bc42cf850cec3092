# aad/ops/__init__.py

# Ensure operator overloading is registered
from . import arithmetic
from . import transcendental
from . import linalg

# Convenience re-exports so users can do: from aad_expression.aad.ops import mul, exp, ...
from .arithmetic import add, sub, mul, div, neg, pow
from .transcendental import exp, log
from .linalg import matmul, inverse, transpose, sum

__all__ = [
    "add", "sub", "mul", "div", "neg", "pow",
    "exp", "log",
    "matmul", "inverse", "transpose", "sum",
]
