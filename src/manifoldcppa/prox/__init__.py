"""Proximal maps and the problems assembled from them."""

from .maps import (
    ProximalMap,
    distance_map,
    distance_squared_map,
    prox_distance,
    prox_distance_squared,
    prox_tv,
)
from .problem import CostFunction, ProximalProblem

__all__ = [
    "CostFunction",
    "ProximalMap",
    "ProximalProblem",
    "distance_map",
    "distance_squared_map",
    "prox_distance",
    "prox_distance_squared",
    "prox_tv",
]
