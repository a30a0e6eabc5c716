"""Manifold capability wrappers building on top of pymanopt manifolds."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, cast

import numpy as np

if TYPE_CHECKING:  # pragma: no cover - used only for type checking
    from pymanopt.manifolds.manifold import Manifold as PymanoptManifold
else:  # pragma: no cover - runtime fallback when type hints are unavailable
    PymanoptManifold = object

try:  # pragma: no cover - optional dependency already declared in pyproject
    from pymanopt.manifolds.manifold import Manifold as _PymanoptManifoldRuntime
except ImportError:  # pragma: no cover
    _PymanoptManifoldRuntime = None


class DistanceFn(Protocol):
    """Protocol for the geodesic distance between two ambient points."""

    def __call__(self, point_a: Any, point_b: Any) -> float: ...


class ExpFn(Protocol):
    """Protocol for the exponential map at ``point``."""

    def __call__(self, point: Any, tangent_vector: Any) -> Any: ...


class LogFn(Protocol):
    """Protocol for the logarithmic map from ``point_a`` to ``point_b``."""

    def __call__(self, point_a: Any, point_b: Any) -> Any: ...


class GeodesicFn(Protocol):
    """Protocol for a closed-form point on the geodesic between two points."""

    def __call__(self, point_a: Any, point_b: Any, t: float) -> Any: ...


class PointProjectionFn(Protocol):
    """Protocol for projecting an ambient point back onto the manifold."""

    def __call__(self, ambient_point: Any) -> Any: ...


def _identity_point_projection(value: Any) -> Any:
    """Return the supplied point unchanged (Euclidean manifold default)."""
    return value


def _cells(values: Any, point_shape: tuple[int, ...]) -> np.ndarray:
    array = np.asarray(values)
    return array.reshape((-1,) + point_shape)


@dataclass(frozen=True)
class Manifold:
    """
    Geometry capability consumed by the proximal solvers.

    Parameters
    ----------
    name:
        Human-readable identifier (e.g., ``"Sphere(3)"``).
    distance_fn:
        Callable returning the geodesic distance between two points.
    typical_distance:
        Characteristic length scale of the manifold. The cyclic proximal
        point solver derives its default step sizes from it.
    exp_fn, log_fn:
        Exponential and logarithmic maps. Together they provide the default
        geodesic interpolation ``exp(p, t log(p, q))``.
    geodesic_fn:
        Optional closed-form geodesic interpolation overriding the exp/log
        construction.
    point_shape:
        Shape of the ambient representation of a single point. Arrays of
        points carry this shape as their trailing axes.
    project_point:
        Callable that projects an ambient point back onto the manifold. When
        omitted the identity map is used.
    data:
        Arbitrary metadata (e.g., the underlying pymanopt manifold instance).
    """

    name: str
    distance_fn: DistanceFn
    typical_distance: float
    exp_fn: ExpFn | None = None
    log_fn: LogFn | None = None
    geodesic_fn: GeodesicFn | None = None
    point_shape: tuple[int, ...] = field(default=())
    project_point: PointProjectionFn | None = None
    data: Any | None = None

    def distance(self, point_a: Any, point_b: Any) -> float:
        """Geodesic distance between ``point_a`` and ``point_b``."""
        return float(self.distance_fn(point_a, point_b))

    def exp(self, point: Any, tangent_vector: Any) -> Any:
        """Exponential map of ``tangent_vector`` at ``point``."""

        if self.exp_fn is None:
            raise AttributeError(f"Manifold {self.name!r} does not expose exp()")
        return self.exp_fn(point, tangent_vector)

    def log(self, point_a: Any, point_b: Any) -> Any:
        """Tangent vector at ``point_a`` pointing to ``point_b``."""

        if self.log_fn is None:
            raise AttributeError(f"Manifold {self.name!r} does not expose log()")
        return self.log_fn(point_a, point_b)

    def geodesic(self, point_a: Any, point_b: Any, t: float) -> Any:
        """
        Point at fraction ``t`` along the geodesic from ``point_a`` to ``point_b``.

        ``t = 0`` returns ``point_a`` and ``t = 1`` returns ``point_b``.
        """

        if self.geodesic_fn is not None:
            return self.geodesic_fn(point_a, point_b, t)
        if t == 0.0:
            return point_a
        tangent = self.log(point_a, point_b)
        return self.exp(point_a, t * np.asarray(tangent))

    def project(self, ambient_point: Any) -> Any:
        """Project an ambient point back onto the manifold."""
        projector = self.project_point or _identity_point_projection
        return projector(ambient_point)

    def power(self, shape: tuple[int, ...]) -> Manifold:
        """
        Return the power manifold of ``shape`` copies of this manifold.

        Points are stacked value arrays of shape ``shape + point_shape``; the
        distance is the root of the summed squared cell distances.
        """

        shape = tuple(int(n) for n in shape)
        point_shape = self.point_shape
        base = self

        def distance(values_a: Any, values_b: Any) -> float:
            total = 0.0
            for a, b in zip(
                _cells(values_a, point_shape), _cells(values_b, point_shape)
            ):
                total += base.distance(a, b) ** 2
            return math.sqrt(total)

        def exp(values: Any, tangent: Any) -> Any:
            cells = [
                base.exp(p, v)
                for p, v in zip(
                    _cells(values, point_shape), _cells(tangent, point_shape)
                )
            ]
            return np.reshape(np.stack(cells), shape + point_shape)

        def log(values_a: Any, values_b: Any) -> Any:
            cells = [
                base.log(a, b)
                for a, b in zip(
                    _cells(values_a, point_shape), _cells(values_b, point_shape)
                )
            ]
            return np.reshape(np.stack(cells), shape + point_shape)

        def geodesic(values_a: Any, values_b: Any, t: float) -> Any:
            cells = [
                base.geodesic(a, b, t)
                for a, b in zip(
                    _cells(values_a, point_shape), _cells(values_b, point_shape)
                )
            ]
            return np.reshape(np.stack(cells), shape + point_shape)

        count = int(np.prod(shape, dtype=int))
        return Manifold(
            name=f"Power({self.name}, {shape})",
            distance_fn=distance,
            typical_distance=self.typical_distance * math.sqrt(count),
            exp_fn=exp if self.exp_fn is not None else None,
            log_fn=log if self.log_fn is not None else None,
            geodesic_fn=geodesic,
            point_shape=shape + point_shape,
            data=self,
        )

    @classmethod
    def from_pymanopt(
        cls,
        manifold: PymanoptManifold,
        *,
        project_point: PointProjectionFn | None = None,
        geodesic: GeodesicFn | None = None,
    ) -> Manifold:
        """
        Wrap a ``pymanopt`` manifold so the proximal solvers can consume it.

        Parameters
        ----------
        manifold:
            Instance of :class:`pymanopt.manifolds.manifold.Manifold`.
        project_point:
            Optional callable that projects ambient points onto ``manifold``.
            If omitted, points are assumed to already satisfy the manifold
            constraints.
        geodesic:
            Optional closed-form geodesic interpolation. By default geodesics
            are built from the manifold's ``exp`` and ``log``.
        """

        if _PymanoptManifoldRuntime is None:  # pragma: no cover
            raise RuntimeError(
                "pymanopt is required to construct a Manifold from a pymanopt manifold"
            )
        if not isinstance(manifold, _PymanoptManifoldRuntime):
            raise TypeError(
                "Expected a pymanopt.manifolds.manifold.Manifold instance; "
                f"got {type(manifold)!r}"
            )
        for attribute in ("dist", "exp", "log"):
            if not callable(getattr(manifold, attribute, None)):
                raise AttributeError(
                    f"pymanopt manifold does not expose a '{attribute}' method "
                    "required for proximal maps."
                )
        try:
            typical = float(manifold.typical_dist)
        except NotImplementedError as exc:
            raise AttributeError(
                f"pymanopt manifold {manifold!s} does not define typical_dist"
            ) from exc
        point_shape = tuple(np.shape(manifold.random_point()))
        return cls(
            name=str(manifold),
            distance_fn=cast(DistanceFn, manifold.dist),
            typical_distance=typical,
            exp_fn=cast(ExpFn, manifold.exp),
            log_fn=cast(LogFn, manifold.log),
            geodesic_fn=geodesic,
            point_shape=point_shape,
            project_point=project_point,
            data=manifold,
        )
