# tests/test_minimizer.py
"""Unit tests for the Nelder-Mead minimizer.

This module contains tests that verify:
- The reference problems (quadratic bowl, Olsson & Nelson examples 3.3 and 3.5)
  reach the expected minima with the expected evaluation counts.
- propose_replacement picks the extend / reflect / contract moves and rejects
  when no move improves on the worst vertex.
- Shrinking moves every non-best vertex halfway toward the best one.
- Running out of evaluations is reported, not raised.
- The executor path gives identical results for P=1 and converges for P>1.
- Configuration is validated up front.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

import numpy as np
import pytest

from nm_engine.errors import DegenerateSimplexError, InvalidConfigurationError
from nm_engine.minimizer import (
    Minimizer,
    MinimizerConfig,
    Proposal,
    minimize,
    propose_replacement,
)
from nm_engine.simplex import Simplex, Vertex
from nm_engine.vector_ops import Vector

if TYPE_CHECKING:
    from collections.abc import Callable

    from numpy.typing import NDArray

    FloatArray = NDArray[np.floating]
    Objective = Callable[[FloatArray], float]


def _table_objective(
    table: dict[tuple[float, ...], float], default: float = 5.0
) -> Objective:
    """Objective that looks points up in a table, `default` elsewhere."""

    def func(x: FloatArray) -> float:
        return table.get(tuple(float(v) for v in x), default)

    return func


def _simplex_1d(
    func: Objective, points: tuple[float, ...]
) -> Simplex:
    return Simplex([Vertex.from_point([p], func(np.array([p]))) for p in points])


def _propose(
    func: Objective, simplex: Simplex, config: MinimizerConfig
) -> Proposal:
    x_mid = simplex.centroid(config.p).x
    worst = simplex.worst
    return propose_replacement(
        func, config, x_mid, worst.x, worst.f, simplex.values()
    )


# -------------------------------------------------------------------
# Reference problems
# -------------------------------------------------------------------


def test_quadratic_bowl_reference_run(quadratic_bowl: Objective) -> None:
    """Default settings on the 3-D bowl: 106 evaluations, no restarts."""
    result = minimize(quadratic_bowl, [0.0, 0.0, 0.0], [0.1, 0.1, 0.1])

    assert result.evaluations == 106
    assert result.restarts == 0
    assert result.converged
    assert result.simplex.best.approx_equals(
        Vertex.from_point([1.0, 1.0, 1.0], 0.0), 1.0e-3
    )


def test_olsson_nelson_example_3_3(olsson_nelson_3_3: Objective) -> None:
    """Penalized response surface converges to (0.811, -0.585), f = -67.1."""
    config = MinimizerConfig(tol=1.0e-4)
    result = minimize(olsson_nelson_3_3, [0.0, 0.0], [0.5, 0.5], config)

    assert result.evaluations == 82
    assert result.restarts == 0
    assert result.simplex.best.approx_equals(
        Vertex.from_point([0.811, -0.585], -67.1), 1.0e-3
    )


def test_olsson_nelson_example_3_5_two_vertices_per_step(
    olsson_nelson_3_5: Objective,
) -> None:
    """Exponential least-squares fit replacing P=2 vertices per iteration."""
    config = MinimizerConfig(p=2, max_evaluations=800, tol=1.0e-9)
    result = minimize(
        olsson_nelson_3_5,
        [1.0, 1.0, -0.5, -2.5],
        [0.1, 0.1, 0.1, 0.1],
        config,
    )

    assert result.evaluations == 495
    assert result.restarts == 0
    assert result.simplex.best.approx_equals(
        Vertex.from_point([1.801, -1.842, -0.463, -1.205], 0.0009), 1.0e-3
    )


def test_evaluation_count_matches_objective_calls(
    counting_bowl: Any,
) -> None:
    """The reported count equals the number of objective calls."""
    result = minimize(counting_bowl, [0.0, 0.0, 0.0], [0.1, 0.1, 0.1])
    assert result.evaluations == counting_bowl.calls


def test_default_dx_is_used_when_omitted(quadratic_bowl: Objective) -> None:
    """Omitting dx uses a step of 0.1 on every axis."""
    explicit = minimize(quadratic_bowl, [0.0, 0.0, 0.0], [0.1, 0.1, 0.1])
    implicit = minimize(quadratic_bowl, [0.0, 0.0, 0.0])
    assert implicit.evaluations == explicit.evaluations
    assert np.array_equal(implicit.x, explicit.x)


def test_result_x_is_a_copy(quadratic_bowl: Objective) -> None:
    """Mutating result.x does not touch the final simplex."""
    result = minimize(quadratic_bowl, [0.0, 0.0], [0.1, 0.1])
    x = result.x
    x[:] = 42.0
    assert result.simplex.best.x[0] != 42.0
    assert result.f == result.simplex.best.f


# -------------------------------------------------------------------
# Single replacement proposals
# -------------------------------------------------------------------


def test_propose_extends_when_extension_beats_reflection() -> None:
    """Reflection is a new best and the extension is better still."""

    def func(x: FloatArray) -> float:
        return float((x[0] - 10.0) ** 2)

    simplex = _simplex_1d(func, (0.0, 1.0))
    proposal = _propose(func, simplex, MinimizerConfig())

    assert proposal.accepted
    assert proposal.move == "extend"
    assert proposal.x is not None
    assert proposal.x[0] == pytest.approx(3.0)
    assert proposal.f == pytest.approx(49.0)
    assert proposal.evaluations == 2


def test_propose_keeps_reflection_when_extension_is_worse() -> None:
    """Reflection is a new best but the extension overshoots."""

    def func(x: FloatArray) -> float:
        return float((x[0] - 2.0) ** 2)

    simplex = _simplex_1d(func, (0.0, 1.0))
    proposal = _propose(func, simplex, MinimizerConfig())

    assert proposal.accepted
    assert proposal.move == "reflect"
    assert proposal.x is not None
    assert proposal.x[0] == pytest.approx(2.0)
    assert proposal.evaluations == 2


def test_propose_contracts_when_reflection_fails() -> None:
    """A poor reflection leads to a contraction between centroid and worst."""

    def func(x: FloatArray) -> float:
        return float((x[0] - 0.4) ** 2)

    simplex = _simplex_1d(func, (0.0, 1.0))
    proposal = _propose(func, simplex, MinimizerConfig())

    assert proposal.accepted
    assert proposal.move == "contract"
    assert proposal.x is not None
    assert proposal.x[0] == pytest.approx(0.5)
    assert proposal.evaluations == 2


def test_propose_rejects_when_nothing_improves() -> None:
    """Neither reflection nor contraction beats the worst vertex."""
    func = _table_objective({(0.0,): 0.0, (1.0,): 1.0})
    simplex = _simplex_1d(func, (0.0, 1.0))
    proposal = _propose(func, simplex, MinimizerConfig())

    assert not proposal.accepted
    assert proposal.move == "none"
    assert proposal.x is None
    assert np.isnan(proposal.f)
    assert proposal.evaluations == 2


def test_propose_accepts_reflection_when_several_vertices_are_worse() -> None:
    """A reflection better than two vertices is kept without contracting."""
    func = _table_objective(
        {
            (0.0, 0.0): 0.0,
            (1.0, 0.0): 3.0,
            (0.0, 1.0): 4.0,
            (1.0, -1.0): 2.0,
        }
    )
    simplex = Simplex(
        [
            Vertex.from_point(p, func(np.array(p)))
            for p in ((0.0, 0.0), (1.0, 0.0), (0.0, 1.0))
        ]
    )
    proposal = _propose(func, simplex, MinimizerConfig())

    assert proposal.accepted
    assert proposal.move == "reflect"
    assert proposal.x is not None
    assert proposal.x.approx_equals(Vector([1.0, -1.0]), 1.0e-12)
    assert proposal.f == 2.0
    assert proposal.evaluations == 1


# -------------------------------------------------------------------
# Minimizer stepping
# -------------------------------------------------------------------


def test_contract_about_best_point_halves_distances(
    quadratic_bowl: Objective,
) -> None:
    """Every vertex but the best moves halfway toward the best."""
    m = Minimizer(quadratic_bowl)
    simplex = m.build_simplex([0.0, 0.0], [1.0, 1.0])
    assert m.n_evaluations == 3

    best_before = simplex.best.x.data.copy()
    others_before = [v.x.data.copy() for v in simplex.vertices[1:]]
    m.contract_about_best_point()

    assert np.array_equal(simplex.best.x.data, best_before)
    for v, old in zip(simplex.vertices[1:], others_before, strict=True):
        assert np.allclose(v.x.data, 0.5 * (best_before + old))
        assert v.f == pytest.approx(quadratic_bowl(v.x.data))
    assert m.n_restarts == 1
    assert m.n_evaluations == 5


def test_take_steps_shrinks_when_no_vertex_is_replaced() -> None:
    """A rejected proposal triggers a shrink and the simplex is re-sorted."""
    func = _table_objective({(0.0,): 0.0, (1.0,): 1.0})
    m = Minimizer(func)
    m.build_simplex([0.0], [1.0])
    m.take_steps(1)

    # 2 to build, 2 for the failed proposal, 1 for the shrink.
    assert m.n_evaluations == 5
    assert m.n_restarts == 1
    assert m.simplex.best.x[0] == 0.0
    assert m.simplex.worst.x[0] == pytest.approx(0.5)
    assert m.simplex.worst.f == 5.0


def test_take_steps_keeps_simplex_sorted(quadratic_bowl: Objective) -> None:
    """After every batch the best vertex sits at index 0."""
    m = Minimizer(quadratic_bowl)
    m.build_simplex([3.0, -2.0, 0.5], [0.2, 0.2, 0.2])
    for _ in range(5):
        m.take_steps(3)
        values = m.simplex.values()
        assert np.all(np.diff(values) >= 0.0)


def test_budget_exhaustion_is_reported_not_raised(
    quadratic_bowl: Objective,
) -> None:
    """With tol=0 the run stops on the evaluation budget."""
    config = MinimizerConfig(tol=0.0, max_evaluations=10, steps=1)
    result = minimize(quadratic_bowl, [0.0, 0.0, 0.0], [0.1, 0.1, 0.1], config)

    assert not result.converged
    assert result.evaluations >= 10
    assert result.f < quadratic_bowl(np.zeros(3))


def test_p_too_large_for_dimension_raises(quadratic_bowl: Objective) -> None:
    """P = N+1 leaves no vertices for the centroid."""
    config = MinimizerConfig(p=3)
    with pytest.raises(DegenerateSimplexError):
        minimize(quadratic_bowl, [0.0, 0.0], [0.1, 0.1], config)


def test_simplex_property_before_build_raises(
    quadratic_bowl: Objective,
) -> None:
    """The simplex is only available once it has been built."""
    m = Minimizer(quadratic_bowl)
    with pytest.raises(RuntimeError, match="No simplex yet"):
        _ = m.simplex


def test_describe_reports_config_and_counters(
    quadratic_bowl: Objective,
) -> None:
    """describe() is a JSON-compatible snapshot of the minimizer."""
    m = Minimizer(quadratic_bowl, MinimizerConfig(p=2))
    before = m.describe()
    assert before["simplex"] is None
    assert before["config"]["p"] == 2

    m.minimize_from_point([0.0, 0.0, 0.0])
    after = m.describe()
    assert after["nfe"] == m.n_evaluations
    assert after["nrestarts"] == m.n_restarts
    assert len(after["simplex"]["vertices"]) == 4


# -------------------------------------------------------------------
# Executor path
# -------------------------------------------------------------------


def test_executor_single_replacement_matches_sequential(
    quadratic_bowl: Objective,
) -> None:
    """With P=1 the executor path reproduces the sequential run exactly."""
    sequential = minimize(quadratic_bowl, [0.0, 0.0, 0.0], [0.1, 0.1, 0.1])
    with ThreadPoolExecutor(max_workers=4) as pool:
        concurrent = minimize(
            quadratic_bowl, [0.0, 0.0, 0.0], [0.1, 0.1, 0.1], executor=pool
        )

    assert concurrent.evaluations == sequential.evaluations == 106
    assert concurrent.restarts == sequential.restarts
    assert np.array_equal(concurrent.x, sequential.x)


def test_executor_multiple_replacements_converge(
    quadratic_bowl: Objective,
) -> None:
    """Concurrent proposals for P=2 still find the bowl minimum."""
    config = MinimizerConfig(p=2, max_evaluations=2000, tol=1.0e-10)
    with ThreadPoolExecutor(max_workers=2) as pool:
        result = minimize(
            quadratic_bowl,
            [0.0, 0.0, 0.0, 0.0],
            [0.1, 0.1, 0.1, 0.1],
            config,
            executor=pool,
        )

    assert result.converged
    assert np.allclose(result.x, 1.0, atol=1.0e-3)


# -------------------------------------------------------------------
# Configuration
# -------------------------------------------------------------------


@pytest.mark.parametrize(
    "kwargs",
    [
        {"p": 0},
        {"steps": 0},
        {"max_evaluations": 0},
        {"tol": -1.0},
        {"reflect": 0.0},
        {"extend": 1.0},
        {"contract": 0.0},
        {"contract": 1.0},
    ],
)
def test_invalid_config_is_rejected(
    quadratic_bowl: Objective, kwargs: dict[str, float]
) -> None:
    """Out-of-range settings fail when the minimizer is created."""
    with pytest.raises(InvalidConfigurationError):
        Minimizer(quadratic_bowl, MinimizerConfig(**kwargs))


def test_executor_proposals_read_a_snapshot_of_the_simplex() -> None:
    """Concurrent proposals do not see each other's replacements.

    Vertices (0,0)=0, (1,0)=3, (0,1)=4 with P=2 share the centroid (0,0).
    The worst vertex reflects to (0,-1)=-1, a new best. The second-worst
    reflects to (-1,0)=2: against the snapshot two values (3, 4) are worse,
    so the reflection is kept outright; had the first replacement been
    visible only one value (3) would be worse and a failed contraction
    would follow instead.
    """
    func = _table_objective(
        {
            (0.0, 0.0): 0.0,
            (1.0, 0.0): 3.0,
            (0.0, 1.0): 4.0,
            (0.0, -1.0): -1.0,
            (-1.0, 0.0): 2.0,
        }
    )
    config = MinimizerConfig(p=2)

    sequential = Minimizer(func, config)
    sequential.build_simplex([0.0, 0.0], [1.0, 1.0])
    sequential.take_steps(1)
    # 3 to build, 2 (reflect + extend) for the worst, 2 (reflect + contract)
    # for the second worst, which is rejected.
    assert sequential.n_evaluations == 7
    assert sequential.simplex.points().tolist() == [
        [0.0, -1.0],
        [0.0, 0.0],
        [1.0, 0.0],
    ]

    with ThreadPoolExecutor(max_workers=2) as pool:
        concurrent = Minimizer(func, config, executor=pool)
        concurrent.build_simplex([0.0, 0.0], [1.0, 1.0])
        accepted, nfe = concurrent._replace_concurrently(  # noqa: SLF001
            pool, [2, 1], concurrent.simplex.centroid(2).x
        )
        assert accepted
        assert nfe == 3
        # Counters are the caller's job; committing alone does not count.
        assert concurrent.n_evaluations == 3
        # Both replacements committed in place, not yet sorted.
        assert concurrent.simplex.values().tolist() == [0.0, 2.0, -1.0]

        stepped = Minimizer(func, config, executor=pool)
        stepped.build_simplex([0.0, 0.0], [1.0, 1.0])
        stepped.take_steps(1)

    assert stepped.n_evaluations == 3 + 3
    assert stepped.n_restarts == 0
    assert stepped.simplex.points().tolist() == [
        [0.0, -1.0],
        [0.0, 0.0],
        [-1.0, 0.0],
    ]
    assert stepped.simplex.values().tolist() == [-1.0, 0.0, 2.0]


def test_minimize_from_point_restarts_counters(quadratic_bowl: Objective) -> None:
    """A second run on the same minimizer gets the full evaluation budget."""
    m = Minimizer(quadratic_bowl)
    first = m.minimize_from_point([0.0, 0.0, 0.0], [0.1, 0.1, 0.1])
    second = m.minimize_from_point([0.0, 0.0, 0.0], [0.1, 0.1, 0.1])

    assert first.evaluations == second.evaluations == 106
    assert second.restarts == 0
    assert np.array_equal(first.x, second.x)
