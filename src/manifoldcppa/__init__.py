"""
manifoldcppa: cyclic proximal point optimisation on Riemannian manifolds.

The package provides geometry wrappers around pymanopt manifolds, closed-form
proximal maps, the cyclic proximal point solver and its total-variation
specialisation for manifold-valued arrays.
"""

from .geometry import Manifold, ManifoldPoint
from .prox import ProximalProblem, prox_distance_squared, prox_tv
from .regularization import TVOptions, TVRegularizer, TVResult, tv_regularization_cppa
from .solvers import (
    CPPAOptions,
    CyclicProximalPoint,
    FixedRandomOrder,
    LinearOrder,
    RandomOrder,
    SolverState,
    cyclic_proximal_point,
)

__all__ = [
    "CPPAOptions",
    "CyclicProximalPoint",
    "FixedRandomOrder",
    "LinearOrder",
    "Manifold",
    "ManifoldPoint",
    "ProximalProblem",
    "RandomOrder",
    "SolverState",
    "TVOptions",
    "TVRegularizer",
    "TVResult",
    "cyclic_proximal_point",
    "prox_distance_squared",
    "prox_tv",
    "tv_regularization_cppa",
]
