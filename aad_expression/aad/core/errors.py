# aad/core/errors.py
"""
Exceptions raised by the expression engine.

Both are fatal: they describe a defect in how the graph was built, or a
request the engine does not support. Nothing here is meant to be retried.
"""


class ExpressionError(Exception):
    """Base class for expression engine errors."""


class InvalidGraphError(ExpressionError, ValueError):
    """
    A non-leaf node carries the leaf operator, a node has the wrong number
    of operands for its operator, or a leaf is asked to act as an operator.
    """


class UnsupportedDerivativeError(ExpressionError, NotImplementedError):
    """
    Backpropagation reached an operator whose derivative cannot be written
    as a single local rule (matrix inverse).
    """
