# aad/__init__.py
# Reverse-mode differentiation over expression DAGs

from .core.node import Node, OpType
from .core.tape import Tape, global_tape, use_tape
from .core.var import var
from .core.expression import Expression
from .core.errors import InvalidGraphError, UnsupportedDerivativeError
from .core.parallel import propagate_parallel, backpropagate_parallel
from .core.seeds import grad, grads, value

# Operators (also binds + - * / ** @ onto Node)
from . import ops
from .ops import add, sub, mul, div, neg, pow, exp, log, matmul, inverse, transpose, sum

__all__ = [
    # Graph
    'Node',
    'OpType',
    'Tape',
    'global_tape',
    'use_tape',
    'var',
    # Engine
    'Expression',
    'propagate_parallel',
    'backpropagate_parallel',
    'InvalidGraphError',
    'UnsupportedDerivativeError',
    'grad',
    'grads',
    'value',
    # Operators
    'ops',
    'add', 'sub', 'mul', 'div', 'neg', 'pow',
    'exp', 'log',
    'matmul', 'inverse', 'transpose', 'sum',
]
