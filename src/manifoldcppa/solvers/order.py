"""Evaluation order strategies for cyclic proximal point sweeps."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import numpy as np


class EvaluationOrder(Protocol):
    """
    Policy deciding which permutation of the proximal maps to sweep next.

    Strategies are stateless: the next order depends only on the previous
    order, the iteration number and the random source supplied by the caller.
    """

    def next_order(
        self,
        previous_order: Sequence[int],
        iteration: int,
        rng: np.random.Generator,
    ) -> list[int]:
        """Return the permutation of ``range(len(previous_order))`` to use next."""


class LinearOrder:
    """Always sweep the maps in their given order."""

    name = "linear"

    def next_order(
        self,
        previous_order: Sequence[int],
        iteration: int,
        rng: np.random.Generator,
    ) -> list[int]:
        return list(range(len(previous_order)))

    def __repr__(self) -> str:  # pragma: no cover - formatting only
        return "LinearOrder()"


class RandomOrder:
    """Draw a fresh uniformly random permutation at every iteration."""

    name = "random"

    def next_order(
        self,
        previous_order: Sequence[int],
        iteration: int,
        rng: np.random.Generator,
    ) -> list[int]:
        return [int(k) for k in rng.permutation(len(previous_order))]

    def __repr__(self) -> str:  # pragma: no cover - formatting only
        return "RandomOrder()"


class FixedRandomOrder:
    """Shuffle once at iteration 0 and keep that permutation afterwards."""

    name = "fixed_random"

    def next_order(
        self,
        previous_order: Sequence[int],
        iteration: int,
        rng: np.random.Generator,
    ) -> list[int]:
        if iteration == 0:
            return [int(k) for k in rng.permutation(len(previous_order))]
        return list(previous_order)

    def __repr__(self) -> str:  # pragma: no cover - formatting only
        return "FixedRandomOrder()"


_ORDERS: dict[str, type] = {
    "linear": LinearOrder,
    "random": RandomOrder,
    "fixed_random": FixedRandomOrder,
}


def resolve_order(order: EvaluationOrder | str | None) -> EvaluationOrder:
    """
    Coerce ``order`` into an :class:`EvaluationOrder` instance.

    ``None`` selects :class:`LinearOrder`. Strings are matched
    case-insensitively against ``"linear"``, ``"random"`` and
    ``"fixed_random"``.
    """

    if order is None:
        return LinearOrder()
    if isinstance(order, str):
        key = order.lower().replace("-", "_")
        try:
            return _ORDERS[key]()
        except KeyError:
            raise ValueError(
                f"Unknown evaluation order {order!r}; expected one of "
                f"{sorted(_ORDERS)}"
            ) from None
    if not callable(getattr(order, "next_order", None)):
        raise TypeError(
            f"Evaluation order must define next_order(); got {type(order)!r}"
        )
    return order


def initial_order(
    order: EvaluationOrder, count: int, rng: np.random.Generator
) -> list[int]:
    """Apply the iteration-0 rule of ``order`` to the identity permutation."""

    return order.next_order(list(range(count)), 0, rng)


def is_permutation(order: Sequence[int], count: int) -> bool:
    """Whether ``order`` lists every index of ``range(count)`` exactly once."""

    return len(order) == count and sorted(order) == list(range(count))
