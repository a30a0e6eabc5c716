"""Cyclic proximal point algorithm on manifolds."""

from __future__ import annotations

import dataclasses
import enum
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from ..geometry import Manifold, ManifoldPoint
from ..prox import CostFunction, ProximalMap, ProximalProblem
from ..utils.numeric import ensure_finite, snapshot
from .order import EvaluationOrder, initial_order, resolve_order
from .stop import StoppingCriterion, default_stopping_criterion

logger = logging.getLogger(__name__)

StepSchedule = Callable[[int], float]
RandomSource = np.random.Generator | int | None

RECORDABLE = ("iteration", "x", "change", "step_size", "order", "cost")


@enum.unique
class SolverStatus(enum.Enum):
    """Lifecycle of a :class:`SolverState`."""

    INITIALIZED = enum.auto()
    RUNNING = enum.auto()
    STOPPED = enum.auto()


@dataclass(frozen=True)
class CPPAOptions:
    """
    Configuration of :class:`CyclicProximalPoint`.

    Attributes
    ----------
    evaluation_order:
        Strategy (or its name) choosing the sweep order; ``"linear"`` keeps
        the maps in their given order.
    stopping_criterion:
        Criterion consulted after every step. ``None`` selects
        ``MaxIter(5000) | ChangeLess(1e-12)``.
    step_size:
        Schedule ``iteration -> step size``. ``None`` selects
        ``typical_distance / (2 * iteration)`` of the problem's manifold.
    record:
        State entries copied into :attr:`SolverState.trace` after every step;
        any of ``"iteration"``, ``"x"``, ``"change"``, ``"step_size"``,
        ``"order"`` and ``"cost"``.
    check_finite:
        Raise :class:`FloatingPointError` when an iterate becomes non-finite.
    """

    evaluation_order: EvaluationOrder | str = "linear"
    stopping_criterion: StoppingCriterion | None = None
    step_size: StepSchedule | None = None
    record: tuple[str, ...] = ()
    check_finite: bool = True

    def __post_init__(self) -> None:
        record = self.record
        if isinstance(record, str):
            record = (record,)
        record = tuple(record)
        unknown = sorted(set(record) - set(RECORDABLE))
        if unknown:
            raise ValueError(
                f"Cannot record {unknown}; choose from {list(RECORDABLE)}"
            )
        object.__setattr__(self, "record", record)


def default_step_size(manifold: Manifold) -> StepSchedule:
    """Schedule ``iteration -> typical_distance / (2 * iteration)``."""

    scale = float(manifold.typical_distance)

    def schedule(iteration: int) -> float:
        return scale / 2.0 / iteration

    return schedule


@dataclass
class SolverState:
    """Mutable state of one cyclic proximal point solve."""

    x: Any
    order: list[int]
    step_size: StepSchedule
    stopping_criterion: StoppingCriterion
    rng: np.random.Generator
    iteration: int = 0
    x_prev: Any | None = None
    change: float = float("inf")
    last_step_size: float | None = None
    status: SolverStatus = SolverStatus.INITIALIZED
    trace: dict[str, list[Any]] = field(default_factory=dict)

    def as_mapping(self) -> Mapping[str, Any]:
        """View handed to stopping criteria."""

        return {
            "iteration": self.iteration,
            "x": self.x,
            "x_prev": self.x_prev,
            "change": self.change,
            "order": tuple(self.order),
            "step_size": self.last_step_size,
        }

    @property
    def solution(self) -> Any:
        """Current iterate."""

        return self.x


class CyclicProximalPoint:
    """
    Cyclic proximal point solver for a :class:`ProximalProblem`.

    Each step applies every proximal map once, in the order chosen by the
    evaluation-order strategy, feeding the output of one map into the next
    (a Gauss-Seidel sweep). Proximal maps may update array iterates in place;
    the solver keeps its own snapshot of the previous iterate.

    Parameters
    ----------
    problem:
        Problem whose proximal maps are swept.
    options:
        Solver configuration; defaults to :class:`CPPAOptions()`.
    rng:
        Random source for the random evaluation orders (a seed or a
        :class:`numpy.random.Generator`).
    """

    def __init__(
        self,
        problem: ProximalProblem,
        options: CPPAOptions | None = None,
        *,
        rng: RandomSource = None,
    ) -> None:
        self.problem = problem
        self.options = options or CPPAOptions()
        self._order = resolve_order(self.options.evaluation_order)
        self._rng = np.random.default_rng(rng)

    def initialize(self, initial_point: Any) -> SolverState:
        """Create the solver state for a solve started at ``initial_point``."""

        options = self.options
        criterion = options.stopping_criterion or default_stopping_criterion()
        criterion.clear()
        schedule = options.step_size or default_step_size(self.problem.manifold)
        order = initial_order(self._order, len(self.problem), self._rng)
        return SolverState(
            x=snapshot(initial_point),
            order=order,
            step_size=schedule,
            stopping_criterion=criterion,
            rng=self._rng,
            trace={key: [] for key in options.record},
        )

    def step(self, state: SolverState) -> None:
        """Run one sweep over all proximal maps and update the order."""

        state.status = SolverStatus.RUNNING
        iteration = state.iteration + 1
        step_size = float(state.step_size(iteration))
        state.x_prev = snapshot(state.x)
        x = state.x
        for index in state.order:
            x = self.problem.proximal_map(index, step_size, x)
        state.x = x
        state.iteration = iteration
        state.last_step_size = step_size
        if self.options.check_finite:
            ensure_finite(x, iteration=iteration)
        state.change = self.problem.manifold.distance(
            _raw(state.x_prev), _raw(state.x)
        )
        state.order = self._order.next_order(state.order, iteration, state.rng)
        self._record(state)

    def should_stop(self, state: SolverState) -> bool:
        """Consult the stopping criterion and log its statistics."""

        stop = state.stopping_criterion.stop(state.as_mapping())
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "iteration %d: step_size=%.6g change=%.6g %s",
                state.iteration,
                state.last_step_size,
                state.change,
                dict(state.stopping_criterion.info()),
            )
        return stop

    def solve(self, initial_point: Any) -> SolverState:
        """Iterate from ``initial_point`` until the stopping criterion fires."""

        state = self.initialize(initial_point)
        while True:
            self.step(state)
            if self.should_stop(state):
                break
        state.status = SolverStatus.STOPPED
        logger.info(
            "CPPA stopped after %d iterations (change=%.6g, %s)",
            state.iteration,
            state.change,
            dict(state.stopping_criterion.info()),
        )
        return state

    def _record(self, state: SolverState) -> None:
        for key, values in state.trace.items():
            if key == "cost":
                values.append(self.problem.cost_value(state.x))
            elif key == "x":
                values.append(snapshot(state.x))
            elif key == "step_size":
                values.append(state.last_step_size)
            elif key == "order":
                values.append(tuple(state.order))
            else:
                values.append(getattr(state, key))


def _raw(point: Any) -> Any:
    if isinstance(point, ManifoldPoint):
        return point.value
    return point


def cyclic_proximal_point(
    manifold: Manifold,
    cost: CostFunction | None,
    proximal_maps: Sequence[ProximalMap],
    initial_point: Any,
    *,
    evaluation_order: EvaluationOrder | str | None = None,
    stopping_criterion: StoppingCriterion | None = None,
    step_size: StepSchedule | None = None,
    return_state: bool = False,
    record: Sequence[str] | None = None,
    rng: RandomSource = None,
    options: CPPAOptions | None = None,
) -> Any:
    """
    Minimise ``f_1 + ... + f_m`` on ``manifold`` by cyclic proximal point sweeps.

    Parameters
    ----------
    manifold:
        Manifold the iterates live on.
    cost:
        Optional cost function, used for reporting (``record=("cost",)``).
    proximal_maps:
        Resolvents ``(step_size, point) -> point`` of the summands.
    initial_point:
        Starting iterate.
    evaluation_order:
        ``"linear"`` (default), ``"random"``, ``"fixed_random"`` or an
        :class:`~manifoldcppa.solvers.order.EvaluationOrder` instance.
    stopping_criterion:
        Defaults to ``MaxIter(5000) | ChangeLess(1e-12)``.
    step_size:
        Schedule ``iteration -> step size``; defaults to
        ``manifold.typical_distance / (2 * iteration)``.
    return_state:
        Return the whole :class:`SolverState` instead of the final iterate.
    record:
        State entries to keep per iteration in ``SolverState.trace``.
    rng:
        Seed or generator for the random evaluation orders.
    options:
        Base configuration; the keyword arguments above override its fields.

    Returns
    -------
    Any
        The final iterate, or the :class:`SolverState` when ``return_state``.
    """

    overrides: dict[str, Any] = {}
    if evaluation_order is not None:
        overrides["evaluation_order"] = evaluation_order
    if stopping_criterion is not None:
        overrides["stopping_criterion"] = stopping_criterion
    if step_size is not None:
        overrides["step_size"] = step_size
    if record is not None:
        overrides["record"] = tuple(record)
    config = dataclasses.replace(options or CPPAOptions(), **overrides)

    problem = ProximalProblem(manifold, cost, tuple(proximal_maps))
    state = CyclicProximalPoint(problem, config, rng=rng).solve(initial_point)
    if return_state:
        return state
    return state.solution
