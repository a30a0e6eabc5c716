"""Cyclic proximal point solver, evaluation orders and stopping criteria."""

from .cppa import (
    CPPAOptions,
    CyclicProximalPoint,
    SolverState,
    SolverStatus,
    cyclic_proximal_point,
    default_step_size,
)
from .order import (
    EvaluationOrder,
    FixedRandomOrder,
    LinearOrder,
    RandomOrder,
    resolve_order,
)
from .stop import (
    ChangeLess,
    ManualStop,
    MaxIter,
    StoppingCriterion,
    default_stopping_criterion,
)

__all__ = [
    "CPPAOptions",
    "ChangeLess",
    "CyclicProximalPoint",
    "EvaluationOrder",
    "FixedRandomOrder",
    "LinearOrder",
    "ManualStop",
    "MaxIter",
    "RandomOrder",
    "SolverState",
    "SolverStatus",
    "StoppingCriterion",
    "cyclic_proximal_point",
    "default_step_size",
    "default_stopping_criterion",
    "resolve_order",
]
