"""
Linear-index helpers for arrays of manifold points.

Arrays are traversed in row-major (C) order; a cell is addressed either by
its coordinate tuple or by its linear offset into the flattened array.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


def cell_count(shape: Sequence[int]) -> int:
    """Number of cells in an array of ``shape``."""

    return int(np.prod(tuple(shape), dtype=np.int64))


def to_linear(coordinates: Sequence[int], shape: Sequence[int]) -> int:
    """Row-major linear offset of ``coordinates`` in an array of ``shape``."""

    return int(np.ravel_multi_index(tuple(coordinates), tuple(shape)))


def to_coordinates(index: int, shape: Sequence[int]) -> tuple[int, ...]:
    """Coordinate tuple of the row-major linear ``index``."""

    return tuple(int(c) for c in np.unravel_index(index, tuple(shape)))


def forward_neighbor(index: int, shape: Sequence[int], axis: int) -> int | None:
    """Linear index of the next cell along ``axis``; ``None`` at the border."""

    coordinates = list(to_coordinates(index, shape))
    coordinates[axis] += 1
    if coordinates[axis] >= shape[axis]:
        return None
    return to_linear(coordinates, shape)


def forward_neighbors(shape: Sequence[int], axis: int) -> list[tuple[int, int]]:
    """
    Pairs ``(i, i2)`` of linear indices where ``i2`` follows ``i`` along ``axis``.

    Pairs are listed in row-major order of ``i``; cells on the last slice of
    ``axis`` have no forward neighbour and are skipped.
    """

    shape = tuple(int(n) for n in shape)
    if not 0 <= axis < len(shape):
        raise ValueError(f"axis {axis} out of range for {len(shape)}-d array")
    pairs = []
    for index in range(cell_count(shape)):
        neighbor = forward_neighbor(index, shape, axis)
        if neighbor is not None:
            pairs.append((index, neighbor))
    return pairs
