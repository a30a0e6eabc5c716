"""
Stopping criteria for the proximal solvers.

Criteria are small state machines that inspect the solver state after every
step. Each decision is accompanied by statistics exposed through
:meth:`StoppingCriterion.info`, which the solver logs. Criteria compose with
``|`` (stop when either fires) and ``&`` (stop when both fire).
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Mapping
from typing import Any


class StoppingCriterion:
    """Decide when an iterative solver should stop by examining its state."""

    def stop(self, state: Mapping[str, Any]) -> bool:
        """
        Compute a stop signal based on the current solver state.

        Parameters
        ----------
        state:
            Mapping with at least the keys ``"iteration"``, ``"x"``,
            ``"x_prev"`` and ``"change"``.

        Returns
        -------
        bool
            True if no further iterations should be performed.
        """
        raise NotImplementedError

    def info(self) -> Mapping[str, float]:
        """Statistics associated with the last call to :meth:`stop`."""
        raise NotImplementedError

    def clear(self) -> None:
        """Reset internal state so the criterion can drive another solve."""

    def __or__(self, other: StoppingCriterion) -> StoppingCriterion:
        return _Composition(self, other, operator.or_)

    def __and__(self, other: StoppingCriterion) -> StoppingCriterion:
        return _Composition(self, other, operator.and_)


class _Composition(StoppingCriterion):
    def __init__(
        self,
        lhs: StoppingCriterion,
        rhs: StoppingCriterion,
        op: Callable[[bool, bool], bool],
    ) -> None:
        self._lhs = lhs
        self._rhs = rhs
        self._op = op

    def stop(self, state: Mapping[str, Any]) -> bool:
        # Both sides are evaluated so their statistics stay current.
        return self._op(self._lhs.stop(state), self._rhs.stop(state))

    def info(self) -> Mapping[str, float]:
        return {**self._lhs.info(), **self._rhs.info()}

    def clear(self) -> None:
        self._lhs.clear()
        self._rhs.clear()

    def __repr__(self) -> str:  # pragma: no cover - formatting only
        symbol = "|" if self._op is operator.or_ else "&"
        return f"({self._lhs!r} {symbol} {self._rhs!r})"


class MaxIter(StoppingCriterion):
    """Stop once the solver has completed ``n`` iterations."""

    def __init__(self, n: int) -> None:
        if int(n) != n or int(n) <= 0:
            raise ValueError(f"n: expected positive integer, got {n!r}")
        self._n = int(n)
        self._iteration = 0

    def stop(self, state: Mapping[str, Any]) -> bool:
        self._iteration = int(state["iteration"])
        return self._iteration >= self._n

    def info(self) -> Mapping[str, float]:
        return {"iteration": self._iteration}

    def clear(self) -> None:
        self._iteration = 0

    def __repr__(self) -> str:  # pragma: no cover - formatting only
        return f"MaxIter({self._n})"


class ChangeLess(StoppingCriterion):
    """Stop once the iterate-to-iterate distance drops below ``tol``."""

    def __init__(self, tol: float) -> None:
        if not tol > 0:
            raise ValueError(f"tol: expected positive tolerance, got {tol!r}")
        self._tol = float(tol)
        self._change = float("inf")

    def stop(self, state: Mapping[str, Any]) -> bool:
        self._change = float(state["change"])
        return self._change < self._tol

    def info(self) -> Mapping[str, float]:
        return {"change": self._change}

    def clear(self) -> None:
        self._change = float("inf")

    def __repr__(self) -> str:  # pragma: no cover - formatting only
        return f"ChangeLess({self._tol!r})"


class ManualStop(StoppingCriterion):
    """Never stop; iteration is bounded by the caller."""

    def stop(self, state: Mapping[str, Any]) -> bool:
        return False

    def info(self) -> Mapping[str, float]:
        return {}


def default_stopping_criterion(
    max_iterations: int = 5000, tol: float = 1e-12
) -> StoppingCriterion:
    """``MaxIter(max_iterations) | ChangeLess(tol)``."""

    return MaxIter(max_iterations) | ChangeLess(tol)
