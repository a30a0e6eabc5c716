"""
Closed-form proximal maps on manifolds.

Every map here is the resolvent ``argmin_y f(y) + d(x, y)^2 / (2 s)`` of a
distance-based summand ``f``; the minimiser always lies on a geodesic, so the
maps reduce to geodesic interpolation by a step-dependent fraction.
"""

from __future__ import annotations

from typing import Any, Protocol

from ..geometry import Manifold


class ProximalMap(Protocol):
    """Protocol for the resolvent ``(step_size, point) -> point`` of one summand."""

    def __call__(self, step_size: float, point: Any) -> Any: ...


def prox_distance_squared(
    manifold: Manifold, target: Any, step_size: float, point: Any
) -> Any:
    """
    Resolvent of ``d(target, .)^2 / 2``.

    Moves ``point`` towards ``target`` by the geodesic fraction
    ``step_size / (1 + step_size)``.
    """

    t = step_size / (1.0 + step_size)
    return manifold.geodesic(point, target, t)


def prox_distance(manifold: Manifold, target: Any, step_size: float, point: Any) -> Any:
    """
    Resolvent of ``d(target, .)``.

    Moves ``point`` by ``step_size`` along the geodesic towards ``target``
    without overshooting it.
    """

    distance = manifold.distance(point, target)
    if distance <= step_size:
        return target
    return manifold.geodesic(point, target, step_size / distance)


def prox_tv(
    manifold: Manifold, points: tuple[Any, Any], step_size: float
) -> tuple[Any, Any]:
    """
    Joint resolvent of ``d(x, y)`` for the pair ``points = (x, y)``.

    Both points move towards each other by the geodesic fraction
    ``min(1/2, step_size / d(x, y))``; coinciding points are returned as is.
    """

    x, y = points
    distance = manifold.distance(x, y)
    if distance == 0.0:
        return x, y
    t = min(0.5, step_size / distance)
    return manifold.geodesic(x, y, t), manifold.geodesic(y, x, t)


def distance_squared_map(manifold: Manifold, target: Any) -> ProximalMap:
    """Bind :func:`prox_distance_squared` to ``target`` as a :class:`ProximalMap`."""

    def proximal_map(step_size: float, point: Any) -> Any:
        return prox_distance_squared(manifold, target, step_size, point)

    return proximal_map


def distance_map(manifold: Manifold, target: Any) -> ProximalMap:
    """Bind :func:`prox_distance` to ``target`` as a :class:`ProximalMap`."""

    def proximal_map(step_size: float, point: Any) -> Any:
        return prox_distance(manifold, target, step_size, point)

    return proximal_map
