"""Problem container binding a manifold, a cost and its proximal maps."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from ..geometry import Manifold
from .maps import ProximalMap

CostFunction = Callable[[Any], float]


@dataclass(frozen=True)
class ProximalProblem:
    """
    Sum-of-functions problem ``F = f_1 + ... + f_m`` on a manifold.

    Parameters
    ----------
    manifold:
        Manifold the iterates live on.
    cost:
        Optional callable evaluating ``F``. Only used for reporting.
    proximal_maps:
        Resolvents of the summands ``f_k``, each a callable
        ``(step_size, point) -> point``. No mathematical validation is
        performed on them.
    """

    manifold: Manifold
    cost: CostFunction | None
    proximal_maps: tuple[ProximalMap, ...]

    def __post_init__(self) -> None:
        maps = self.proximal_maps
        if not isinstance(maps, tuple):
            if not isinstance(maps, Sequence):
                raise TypeError(
                    f"proximal_maps must be a sequence of callables; got {type(maps)!r}"
                )
            maps = tuple(maps)
            object.__setattr__(self, "proximal_maps", maps)
        if not maps:
            raise ValueError("ProximalProblem requires at least one proximal map")
        for index, proximal_map in enumerate(maps):
            if not callable(proximal_map):
                raise TypeError(f"proximal map {index} is not callable")

    def __len__(self) -> int:
        return len(self.proximal_maps)

    def proximal_map(self, index: int, step_size: float, point: Any) -> Any:
        """Apply the ``index``-th proximal map with ``step_size`` to ``point``."""

        return self.proximal_maps[index](step_size, point)

    def cost_value(self, point: Any) -> float | None:
        """Evaluate the reporting cost, or ``None`` when no cost was supplied."""

        if self.cost is None:
            return None
        return float(self.cost(point))
