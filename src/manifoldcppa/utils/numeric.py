"""Numerical utilities shared by the solvers."""

from __future__ import annotations

import copy
from typing import Any

import numpy as np

from ..geometry import ManifoldPoint


def is_finite(value: Any) -> bool:
    """Whether every coordinate of ``value`` (array or point) is finite."""

    if isinstance(value, ManifoldPoint):
        return value.is_finite()
    if isinstance(value, np.ndarray) and value.dtype == object:
        return all(is_finite(element) for element in value.flat)
    try:
        return bool(np.all(np.isfinite(np.asarray(value))))
    except (TypeError, ValueError):
        # Non-numeric representations cannot be checked.
        return True


def ensure_finite(value: Any, *, iteration: int, where: str = "iterate") -> None:
    """
    Raise :class:`FloatingPointError` when ``value`` has non-finite coordinates.

    ``iteration`` and ``where`` are reported in the error message.
    """

    if not is_finite(value):
        raise FloatingPointError(
            f"Non-finite {where} produced at iteration {iteration}"
        )


def snapshot(value: Any) -> Any:
    """
    Copy ``value`` so later in-place updates do not alias it.

    NumPy arrays are copied, immutable points are returned as is and anything
    else is deep-copied.
    """

    if isinstance(value, np.ndarray):
        return value.copy()
    if isinstance(value, ManifoldPoint):
        return value
    return copy.deepcopy(value)
