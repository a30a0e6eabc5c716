from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from .manifold import Manifold


def _ensure_same_manifold(lhs: Manifold, rhs: Manifold) -> None:
    if lhs is not rhs:
        raise ValueError("Points belong to different manifolds")


class ManifoldPoint:
    """Immutable point living on a :class:`Manifold`."""

    __slots__ = ("manifold", "_value")

    manifold: Manifold
    _value: Any

    def __init__(self, manifold: Manifold, value: Any):
        object.__setattr__(self, "manifold", manifold)
        object.__setattr__(self, "_value", manifold.project(value))

    @property
    def value(self) -> Any:
        """Ambient representation of the point."""

        return self._value

    def __repr__(self) -> str:  # pragma: no cover - formatting only
        shape = np.asarray(self._value).shape
        return f"ManifoldPoint(name={self.manifold.name!r}, shape={shape})"

    def __setattr__(self, key: str, value: Any) -> None:  # pragma: no cover
        raise AttributeError("ManifoldPoint is immutable")

    def with_value(self, value: Any) -> ManifoldPoint:
        """Return a new point on the same manifold with updated coordinates."""

        return ManifoldPoint(self.manifold, value)

    def copy(self) -> ManifoldPoint:
        """Clone the point."""

        return ManifoldPoint(self.manifold, np.array(self._value, copy=True))

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    def distance(self, other: ManifoldPoint) -> float:
        """Geodesic distance to ``other``."""

        _ensure_same_manifold(self.manifold, other.manifold)
        return self.manifold.distance(self._value, other._value)

    def geodesic(self, other: ManifoldPoint, t: float) -> ManifoldPoint:
        """Point at fraction ``t`` along the geodesic towards ``other``."""

        _ensure_same_manifold(self.manifold, other.manifold)
        return ManifoldPoint(
            self.manifold, self.manifold.geodesic(self._value, other._value, t)
        )

    def log(self, other: ManifoldPoint) -> Any:
        """Tangent vector at this point pointing to ``other``."""

        _ensure_same_manifold(self.manifold, other.manifold)
        return self.manifold.log(self._value, other._value)

    def exp(self, tangent_vector: Any, *, step: float = 1.0) -> ManifoldPoint:
        """Exponential map along ``tangent_vector``."""

        scaled = np.asarray(tangent_vector) * step
        return ManifoldPoint(self.manifold, self.manifold.exp(self._value, scaled))

    def is_finite(self) -> bool:
        """Whether every coordinate of the ambient value is finite."""

        return bool(np.all(np.isfinite(np.asarray(self._value))))

    def __eq__(self, other: object) -> bool:  # pragma: no cover - convenience
        if not isinstance(other, ManifoldPoint):
            return NotImplemented
        try:
            _ensure_same_manifold(self.manifold, other.manifold)
        except ValueError:
            return False
        return np.allclose(np.asarray(self._value), np.asarray(other._value))

    __hash__ = None  # type: ignore[assignment]

    def __getstate__(self) -> dict[str, Any]:
        """Return state for pickling."""

        return {"manifold": self.manifold, "value": self._value}

    def __setstate__(self, state: dict[str, Any]) -> None:
        """Restore pickled state while preserving manifold constraints."""

        manifold = state["manifold"]
        object.__setattr__(self, "manifold", manifold)
        object.__setattr__(self, "_value", manifold.project(state["value"]))


def _object_shape(points: Any) -> tuple[int, ...]:
    shape: list[int] = []
    element = points
    while isinstance(element, Sequence) and not isinstance(element, str | bytes):
        shape.append(len(element))
        if not element:
            break
        element = element[0]
    return tuple(shape)


def _as_object_array(points: Any) -> np.ndarray:
    if isinstance(points, np.ndarray):
        if points.dtype != object:
            raise TypeError("Expected an object array of ManifoldPoint entries")
        return points
    array = np.empty(_object_shape(points), dtype=object)
    for index in np.ndindex(array.shape):
        element = points
        for axis in index:
            element = element[axis]
        array[index] = element
    return array


def is_point_array(points: Any) -> bool:
    """Whether ``points`` is a (nested) array of :class:`ManifoldPoint` objects."""

    if isinstance(points, np.ndarray):
        if points.dtype != object or points.size == 0:
            return False
        return isinstance(points.flat[0], ManifoldPoint)
    if isinstance(points, Sequence) and not isinstance(points, str | bytes):
        element: Any = points
        while isinstance(element, Sequence) and element:
            element = element[0]
        return isinstance(element, ManifoldPoint)
    return False


def as_value_array(points: Any) -> tuple[np.ndarray, Manifold]:
    """
    Stack an array of :class:`ManifoldPoint` objects into one value array.

    Parameters
    ----------
    points:
        Object array (or nested sequence) of points sharing one manifold.

    Returns
    -------
    tuple
        ``(values, manifold)`` where ``values`` has shape
        ``points.shape + manifold.point_shape``.
    """

    objects = _as_object_array(points)
    if objects.size == 0 or not isinstance(objects.flat[0], ManifoldPoint):
        raise TypeError("Expected an array of ManifoldPoint objects")
    manifold = objects.flat[0].manifold
    values = []
    for element in objects.flat:
        if not isinstance(element, ManifoldPoint):
            raise TypeError(f"Expected ManifoldPoint entries; got {type(element)!r}")
        _ensure_same_manifold(manifold, element.manifold)
        values.append(np.asarray(element.value))
    stacked = np.stack(values).reshape(objects.shape + values[0].shape)
    return stacked, manifold


def as_point_array(manifold: Manifold, values: Any) -> np.ndarray:
    """
    Split a stacked value array into an object array of points.

    The trailing ``manifold.point_shape`` axes of ``values`` hold the ambient
    coordinates of each point.
    """

    array = np.asarray(values)
    point_ndim = len(manifold.point_shape)
    shape = array.shape[: array.ndim - point_ndim]
    flat = array.reshape((-1,) + array.shape[array.ndim - point_ndim :])
    points = np.empty(len(flat), dtype=object)
    for index, value in enumerate(flat):
        points[index] = ManifoldPoint(manifold, np.array(value, copy=True))
    return points.reshape(shape)
