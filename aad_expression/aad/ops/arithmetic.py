# aad/ops/arithmetic.py
from ..core.node import Node, OpType
from ..core.var import record

# Nodes are built unevaluated; Expression.propagate fills in their values.

def add(x, y): return record(OpType.ADD, x, y)
def sub(x, y): return record(OpType.SUB, x, y)
def mul(x, y): return record(OpType.MUL, x, y)
def div(x, y): return record(OpType.DIV, x, y)

def neg(x):
    """Unary negation, built as (-1) * x."""
    return mul(-1.0, x)

def pow(x, p):
    """
    Elementwise power x ** p with a scalar exponent p.

    Only the base receives a gradient; p is treated as a constant.
    """
    return record(OpType.POWER, x, p)

# Bind Python operators to Node
Node.__add__      = lambda self, other: add(self, other)
Node.__radd__     = lambda self, other: add(other, self)
Node.__sub__      = lambda self, other: sub(self, other)
Node.__rsub__     = lambda self, other: sub(other, self)
Node.__mul__      = lambda self, other: mul(self, other)
Node.__rmul__     = lambda self, other: mul(other, self)
Node.__truediv__  = lambda self, other: div(self, other)
Node.__rtruediv__ = lambda self, other: div(other, self)
Node.__neg__      = lambda self: neg(self)
Node.__pow__      = lambda self, other: pow(self, other)
Node.__rpow__     = lambda self, other: pow(other, self)
