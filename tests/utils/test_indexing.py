from __future__ import annotations

import numpy as np
import pytest
from manifoldcppa.utils.indexing import (
    cell_count,
    forward_neighbor,
    forward_neighbors,
    to_coordinates,
    to_linear,
)


def test_linear_index_is_row_major():
    shape = (2, 3, 4)
    reference = np.arange(24).reshape(shape)
    for coordinates in np.ndindex(shape):
        index = to_linear(coordinates, shape)
        assert index == reference[coordinates]
        assert to_coordinates(index, shape) == coordinates
    assert cell_count(shape) == 24


def test_forward_neighbor_steps_along_axis():
    shape = (2, 3)
    assert forward_neighbor(0, shape, 0) == 3
    assert forward_neighbor(0, shape, 1) == 1
    assert forward_neighbor(2, shape, 1) is None
    assert forward_neighbor(4, shape, 0) is None


def test_forward_neighbors_skip_border():
    assert forward_neighbors((2, 3), 0) == [(0, 3), (1, 4), (2, 5)]
    assert forward_neighbors((2, 3), 1) == [(0, 1), (1, 2), (3, 4), (4, 5)]
    assert forward_neighbors((1,), 0) == []


def test_forward_neighbors_rejects_bad_axis():
    with pytest.raises(ValueError, match="out of range"):
        forward_neighbors((2, 3), 2)
