# aad/ops/transcendental.py
from ..core.node import OpType
from ..core.var import record

def exp(x):
    return record(OpType.EXP, x)

def log(x):
    return record(OpType.LOG, x)
