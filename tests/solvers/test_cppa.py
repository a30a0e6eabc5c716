"""Tests for the cyclic proximal point solver."""

from __future__ import annotations

import logging

import numpy as np
import pytest
from manifoldcppa import ManifoldPoint, cyclic_proximal_point
from manifoldcppa.geometry import Manifold
from manifoldcppa.prox import ProximalProblem, distance_squared_map
from manifoldcppa.solvers import (
    ChangeLess,
    CPPAOptions,
    CyclicProximalPoint,
    ManualStop,
    MaxIter,
    SolverState,
    SolverStatus,
)
from manifoldcppa.solvers.order import is_permutation
from pymanopt.manifolds import Euclidean, Sphere


@pytest.fixture
def plane() -> Manifold:
    return Manifold.from_pymanopt(Euclidean(2))


def _mean_problem(manifold: Manifold, targets: list[np.ndarray]):
    maps = [distance_squared_map(manifold, target) for target in targets]

    def cost(x):
        return 0.5 * sum(manifold.distance(t, x) ** 2 for t in targets)

    return cost, maps


# -----------------------------------------------------------------------
# Convergence
# -----------------------------------------------------------------------

def test_euclidean_mean(plane: Manifold) -> None:
    targets = [np.array([0.0, 0.0]), np.array([4.0, 0.0]), np.array([2.0, 6.0])]
    cost, maps = _mean_problem(plane, targets)
    result = cyclic_proximal_point(
        plane,
        cost,
        maps,
        np.array([10.0, -10.0]),
        stopping_criterion=MaxIter(2000),
    )
    np.testing.assert_allclose(result, np.mean(targets, axis=0), atol=1e-2)


def test_sphere_karcher_mean() -> None:
    sphere = Manifold.from_pymanopt(Sphere(3))
    theta = 0.4
    s, c = np.sin(theta), np.cos(theta)
    targets = [
        np.array([s, 0.0, c]),
        np.array([-s, 0.0, c]),
        np.array([0.0, s, c]),
        np.array([0.0, -s, c]),
    ]
    cost, maps = _mean_problem(sphere, targets)
    start = np.array([1.0, 1.0, 1.0]) / np.sqrt(3.0)
    result = cyclic_proximal_point(
        sphere,
        cost,
        maps,
        start,
        evaluation_order="random",
        stopping_criterion=MaxIter(1000),
        rng=7,
    )
    assert np.linalg.norm(result) == pytest.approx(1.0)
    assert sphere.distance(result, np.array([0.0, 0.0, 1.0])) < 1e-2


def test_accepts_manifold_point_iterates(plane: Manifold) -> None:
    target = ManifoldPoint(plane, np.array([2.0, 2.0]))

    def towards_target(step_size, point):
        return point.geodesic(target, step_size / (1.0 + step_size))

    result = cyclic_proximal_point(
        plane,
        None,
        [towards_target],
        ManifoldPoint(plane, np.zeros(2)),
        step_size=lambda i: 1.0,
        stopping_criterion=MaxIter(40),
    )
    assert isinstance(result, ManifoldPoint)
    np.testing.assert_allclose(result.value, [2.0, 2.0], atol=1e-6)


# -----------------------------------------------------------------------
# Sweep semantics
# -----------------------------------------------------------------------

def test_sweep_is_gauss_seidel(plane: Manifold) -> None:
    seen = []

    def shift(step_size, x):
        return x + 1.0

    def double(step_size, x):
        seen.append(np.array(x, copy=True))
        return 2.0 * x

    result = cyclic_proximal_point(
        plane, None, [shift, double], np.zeros(2), stopping_criterion=MaxIter(1)
    )
    np.testing.assert_allclose(seen[0], [1.0, 1.0])
    np.testing.assert_allclose(result, [2.0, 2.0])


def test_linear_order_is_deterministic(plane: Manifold) -> None:
    targets = [np.array([1.0, 0.0]), np.array([0.0, 3.0]), np.array([-2.0, 1.0])]
    cost, maps = _mean_problem(plane, targets)
    runs = [
        cyclic_proximal_point(
            plane,
            cost,
            maps,
            np.array([5.0, 5.0]),
            stopping_criterion=MaxIter(50),
            return_state=True,
            record=("x",),
        )
        for _ in range(2)
    ]
    first, second = (run.trace["x"] for run in runs)
    assert len(first) == len(second) == 50
    for a, b in zip(first, second):
        assert np.array_equal(a, b)


@pytest.mark.parametrize("order", ["linear", "random", "fixed_random"])
def test_orders_stay_permutations(plane: Manifold, order: str) -> None:
    _, maps = _mean_problem(plane, [np.full(2, float(k)) for k in range(6)])
    state = cyclic_proximal_point(
        plane,
        None,
        maps,
        np.zeros(2),
        evaluation_order=order,
        stopping_criterion=MaxIter(20),
        return_state=True,
        record=("order",),
        rng=5,
    )
    assert all(is_permutation(o, 6) for o in state.trace["order"])


def test_initialize_applies_iteration_zero_rule(plane: Manifold) -> None:
    maps = [lambda s, x: x] * 16
    problem = ProximalProblem(plane, None, maps)
    linear = CyclicProximalPoint(problem).initialize(np.zeros(2))
    assert linear.order == list(range(16))
    assert linear.status is SolverStatus.INITIALIZED

    shuffled = CyclicProximalPoint(
        problem, CPPAOptions(evaluation_order="fixed_random"), rng=1
    ).initialize(np.zeros(2))
    assert is_permutation(shuffled.order, 16)
    assert shuffled.order != list(range(16))


def test_initial_point_is_not_mutated(plane: Manifold) -> None:
    def in_place(step_size, x):
        x += 1.0
        return x

    start = np.zeros(2)
    cyclic_proximal_point(plane, None, [in_place], start, stopping_criterion=MaxIter(3))
    np.testing.assert_allclose(start, [0.0, 0.0])


# -----------------------------------------------------------------------
# Configuration and state
# -----------------------------------------------------------------------

def test_default_step_size_uses_typical_distance(plane: Manifold) -> None:
    state = cyclic_proximal_point(
        plane,
        None,
        [lambda s, x: x + s],
        np.zeros(2),
        stopping_criterion=MaxIter(3),
        return_state=True,
        record=("step_size",),
    )
    typical = plane.typical_distance
    assert state.trace["step_size"] == pytest.approx(
        [typical / 2, typical / 4, typical / 6]
    )


def test_default_stopping_on_small_change(plane: Manifold) -> None:
    state = cyclic_proximal_point(
        plane, None, [lambda s, x: x], np.ones(2), return_state=True
    )
    assert isinstance(state, SolverState)
    assert state.iteration == 1
    assert state.change == 0.0
    assert state.status is SolverStatus.STOPPED


def test_change_is_distance_between_iterates(plane: Manifold) -> None:
    state = cyclic_proximal_point(
        plane,
        None,
        [lambda s, x: x + np.array([3.0, 4.0])],
        np.zeros(2),
        stopping_criterion=MaxIter(2),
        return_state=True,
        record=("change", "iteration"),
    )
    assert state.trace["change"] == pytest.approx([5.0, 5.0])
    assert state.trace["iteration"] == [1, 2]
    np.testing.assert_allclose(state.solution, [6.0, 8.0])


def test_records_cost(plane: Manifold) -> None:
    targets = [np.array([1.0, 1.0])]
    cost, maps = _mean_problem(plane, targets)
    state = cyclic_proximal_point(
        plane,
        cost,
        maps,
        np.zeros(2),
        stopping_criterion=MaxIter(5),
        return_state=True,
        record=("cost",),
    )
    costs = state.trace["cost"]
    assert len(costs) == 5
    assert all(b <= a for a, b in zip(costs, costs[1:]))


def test_keyword_overrides_options(plane: Manifold) -> None:
    options = CPPAOptions(stopping_criterion=MaxIter(2), record=("iteration",))
    state = cyclic_proximal_point(
        plane,
        None,
        [lambda s, x: x + 1.0],
        np.zeros(2),
        stopping_criterion=MaxIter(4),
        options=options,
        return_state=True,
    )
    assert state.trace["iteration"] == [1, 2, 3, 4]


def test_unknown_record_key_rejected() -> None:
    with pytest.raises(ValueError, match="Cannot record"):
        CPPAOptions(record=("gradient",))


def test_criterion_reused_across_solves(plane: Manifold) -> None:
    criterion = MaxIter(3) | ChangeLess(1e-12)
    problem = ProximalProblem(plane, None, (lambda s, x: x + 1.0,))
    solver = CyclicProximalPoint(problem, CPPAOptions(stopping_criterion=criterion))
    assert solver.solve(np.zeros(2)).iteration == 3
    assert solver.solve(np.zeros(2)).iteration == 3


# -----------------------------------------------------------------------
# Failures
# -----------------------------------------------------------------------

def test_proximal_map_errors_propagate(plane: Manifold) -> None:
    def broken(step_size, x):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        cyclic_proximal_point(plane, None, [broken], np.zeros(2))


def test_non_finite_iterate_raises(plane: Manifold) -> None:
    def blow_up(step_size, x):
        return np.full(2, np.nan)

    with pytest.raises(FloatingPointError, match="iteration 1"):
        cyclic_proximal_point(plane, None, [blow_up], np.zeros(2))


def test_non_finite_check_can_be_disabled(plane: Manifold) -> None:
    result = cyclic_proximal_point(
        plane,
        None,
        [lambda s, x: np.full(2, np.nan)],
        np.zeros(2),
        stopping_criterion=MaxIter(2) | ManualStop(),
        options=CPPAOptions(check_finite=False),
    )
    assert np.all(np.isnan(result))


def test_logs_progress(plane: Manifold, caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="manifoldcppa.solvers.cppa"):
        cyclic_proximal_point(
            plane, None, [lambda s, x: x + 1.0], np.zeros(2), stopping_criterion=MaxIter(2)
        )
    messages = [record.getMessage() for record in caplog.records]
    assert any(message.startswith("iteration 2:") for message in messages)
    assert any("stopped after 2 iterations" in message for message in messages)
