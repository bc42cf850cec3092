# aad/core/__init__.py

"""
Core public API for the expression engine.

Exports:
    Node, OpType, arity  : Graph vertices and operator tags.
    Tape, global_tape    : Arena that records nodes in creation order.
    use_tape             : Context manager to temporarily switch the active tape.
    var                  : Create a valued leaf on the active tape.
    Expression           : Forward propagation and backpropagation from a root.
    evaluate             : Forward value of one operator.
    local_gradient       : Per-operand gradient rule of one operator.
    distribute           : Gradient contributions for every operand of a node.
    distribute_restricted: Same, with constants forced to zero.
    find_non_consts      : Nodes reachable from a set of leaves via parent links.
    propagate_parallel, backpropagate_parallel : Thread-pool fan-in schedulers.
    grad, grads, value   : Convenience wrappers.
"""

from .errors import ExpressionError, InvalidGraphError, UnsupportedDerivativeError
from .node import Node, OpType, arity
from .tape import Tape, global_tape, use_tape
from .var import var
from .evaluator import evaluate
from .rules import local_gradient
from .distributor import distribute, distribute_restricted
from .reachability import find_non_consts
from .expression import Expression
from .parallel import propagate_parallel, backpropagate_parallel
from .seeds import grad, grads, value

__all__ = [
    "ExpressionError", "InvalidGraphError", "UnsupportedDerivativeError",
    "Node", "OpType", "arity",
    "Tape", "global_tape", "use_tape",
    "var",
    "evaluate", "local_gradient",
    "distribute", "distribute_restricted",
    "find_non_consts",
    "Expression",
    "propagate_parallel", "backpropagate_parallel",
    "grad", "grads", "value",
]
