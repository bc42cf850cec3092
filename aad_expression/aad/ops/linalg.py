# aad/ops/linalg.py
from ..core.node import Node, OpType
from ..core.var import record

def matmul(a, b):
    """True matrix product a @ b."""
    return record(OpType.MATMUL, a, b)

def inverse(a):
    """
    Matrix inverse. Forward evaluation works; backpropagating through it
    raises UnsupportedDerivativeError.
    """
    return record(OpType.INVERSE, a)

def transpose(a):
    return record(OpType.TRANSPOSE, a)

def sum(a):
    """Sum of all elements, as a 1x1 scalar."""
    return record(OpType.SUM, a)

Node.__matmul__  = lambda self, other: matmul(self, other)
Node.__rmatmul__ = lambda self, other: matmul(other, self)
Node.T = property(transpose)
