"""Geometry primitives for manifoldcppa."""

from .manifold import (
    DistanceFn,
    ExpFn,
    GeodesicFn,
    LogFn,
    Manifold,
    PointProjectionFn,
)
from .point import ManifoldPoint, as_point_array, as_value_array, is_point_array

__all__ = [
    "DistanceFn",
    "ExpFn",
    "GeodesicFn",
    "LogFn",
    "Manifold",
    "ManifoldPoint",
    "PointProjectionFn",
    "as_point_array",
    "as_value_array",
    "is_point_array",
]
