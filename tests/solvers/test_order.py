"""Tests for the evaluation order strategies."""

from __future__ import annotations

import numpy as np
import pytest
from manifoldcppa.solvers import (
    FixedRandomOrder,
    LinearOrder,
    RandomOrder,
    resolve_order,
)
from manifoldcppa.solvers.order import initial_order, is_permutation


def _orders(strategy, count: int, iterations: int, seed: int = 0) -> list[list[int]]:
    rng = np.random.default_rng(seed)
    order = initial_order(strategy, count, rng)
    orders = [order]
    for iteration in range(1, iterations + 1):
        order = strategy.next_order(order, iteration, rng)
        orders.append(order)
    return orders


@pytest.mark.parametrize("strategy", [LinearOrder(), RandomOrder(), FixedRandomOrder()])
def test_every_order_is_a_permutation(strategy) -> None:
    for order in _orders(strategy, count=7, iterations=25):
        assert is_permutation(order, 7)


def test_linear_order_is_identity() -> None:
    for order in _orders(LinearOrder(), count=5, iterations=3):
        assert order == [0, 1, 2, 3, 4]


def test_fixed_random_keeps_initial_shuffle() -> None:
    orders = _orders(FixedRandomOrder(), count=12, iterations=10, seed=3)
    assert all(order == orders[0] for order in orders)
    assert orders[0] != list(range(12))


def test_random_order_changes_between_iterations() -> None:
    orders = _orders(RandomOrder(), count=12, iterations=10, seed=3)
    assert len({tuple(order) for order in orders}) > 1


def test_random_orders_reproducible_with_seed() -> None:
    assert _orders(RandomOrder(), 9, 5, seed=11) == _orders(RandomOrder(), 9, 5, seed=11)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("linear", LinearOrder),
        ("Random", RandomOrder),
        ("fixed_random", FixedRandomOrder),
        ("fixed-random", FixedRandomOrder),
    ],
)
def test_resolve_order_by_name(name: str, expected: type) -> None:
    assert isinstance(resolve_order(name), expected)


def test_resolve_order_defaults_and_passthrough() -> None:
    assert isinstance(resolve_order(None), LinearOrder)
    strategy = RandomOrder()
    assert resolve_order(strategy) is strategy


def test_resolve_order_rejects_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown evaluation order"):
        resolve_order("zigzag")
    with pytest.raises(TypeError):
        resolve_order(42)  # type: ignore[arg-type]
