# nm_engine/src/nm_engine/minimizer.py
"""Nelder-Mead simplex minimization of a nonlinear multivariate function.

The method follows Nelder & Mead (1965) and O'Neill (1971, Algorithm AS47),
with the stepping arranged as in Lee & Wiswall (2007) so that the P worst
vertices can be replaced in one iteration, each about the same centroid.
Worked examples used by the test suite are from Olsson & Nelson (1975).

Iteration structure:
    1. Compute the centroid of the best N+1-P vertices.
    2. For each of the P worst vertices (worst first), try to replace it by a
       reflected, extended or contracted point about that centroid.
    3. If no vertex was replaced, shrink every vertex halfway toward the best.
    4. Re-sort the simplex ascending by objective value.

The outer loop runs batches of ``steps`` iterations and stops once the
standard deviation of the vertex values falls below ``tol`` or the number of
objective evaluations reaches ``max_evaluations``. Running out of evaluations
is not an error: :class:`MinimizeResult` reports whether convergence was
reached.

Concurrency:
    An optional :class:`concurrent.futures.Executor` may be supplied. The
    initial simplex and shrink evaluations are mapped over it, and the P
    replacement proposals of an iteration run as independent tasks against a
    frozen snapshot of the simplex values. All proposals are joined, then
    committed, then the simplex is sorted once. Without an executor, proposals
    run one after another and each accepted replacement is committed before
    the next proposal is made.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Final, Literal

import numpy as np

from .errors import raise_invalid_configuration
from .simplex import Simplex, evaluate, evaluate_many, make_simplex_about_point
from .vector_ops import Vector

if TYPE_CHECKING:
    from concurrent.futures import Executor

    import numpy.typing as npt

    from .simplex import ObjectiveFunction
    from .vector_ops import FloatArray

logger = logging.getLogger(__name__)

# A failed reflection is only contracted when at most this many vertices are
# worse than the reflected point; otherwise the reflection is kept as is.
CONTRACTION_COUNT_THRESHOLD: Final[int] = 1

# Step size used on every axis when dx is not given.
DEFAULT_STEP: Final[float] = 0.1

Move = Literal["extend", "reflect", "contract", "none"]

_SIMPLEX_NOT_BUILT_MSG = "No simplex yet; call build_simplex or minimize_from_point"


# =============================================================================
# Configuration / results
# =============================================================================


@dataclass(slots=True, frozen=True)
class MinimizerConfig:
    """Configuration for the Nelder-Mead minimizer.

    Attributes:
        reflect: Reflection coefficient.
        extend: Extension (expansion) coefficient.
        contract: Contraction coefficient, in (0, 1).
        p: Number of worst vertices replaced per iteration.
        steps: Iterations per batch between convergence checks.
        max_evaluations: Objective evaluation budget.
        tol: Convergence limit on the standard deviation of vertex values.
    """

    reflect: float = 1.0
    extend: float = 2.0
    contract: float = 0.5
    p: int = 1
    steps: int = 20
    max_evaluations: int = 300
    tol: float = 1.0e-6

    def validate(self) -> None:
        """
        Check that all settings are usable.

        Raises:
            InvalidConfigurationError: If any setting is out of range.
        """
        if self.p < 1:
            raise_invalid_configuration(f"p must be >= 1, got {self.p}")
        if self.steps < 1:
            raise_invalid_configuration(f"steps must be >= 1, got {self.steps}")
        if self.max_evaluations < 1:
            raise_invalid_configuration(
                f"max_evaluations must be >= 1, got {self.max_evaluations}"
            )
        if not self.tol >= 0.0:
            raise_invalid_configuration(f"tol must be >= 0, got {self.tol}")
        if not self.reflect > 0.0:
            raise_invalid_configuration(f"reflect must be > 0, got {self.reflect}")
        if not self.extend > 1.0:
            raise_invalid_configuration(f"extend must be > 1, got {self.extend}")
        if not 0.0 < self.contract < 1.0:
            raise_invalid_configuration(
                f"contract must be in (0, 1), got {self.contract}"
            )


@dataclass(slots=True, frozen=True)
class Proposal:
    """Outcome of one vertex-replacement attempt.

    Attributes:
        accepted: Whether a replacement point was found.
        x: Replacement point, or None when not accepted.
        f: Objective value at ``x`` (NaN when not accepted).
        evaluations: Objective evaluations consumed by the attempt.
        move: Which move produced ``x``.
    """

    accepted: bool
    x: Vector | None
    f: float
    evaluations: int
    move: Move


@dataclass(slots=True, frozen=True)
class MinimizeResult:
    """Final state of a minimization.

    Attributes:
        simplex: Final simplex; index 0 is the best vertex.
        evaluations: Objective evaluations used, including construction.
        restarts: Number of shrink steps taken.
        converged: True if the value spread fell below ``tol``.
        f_std: Standard deviation of the final vertex values.
    """

    simplex: Simplex
    evaluations: int
    restarts: int
    converged: bool
    f_std: float

    @property
    def x(self) -> FloatArray:
        """Best point found (a copy)."""
        return self.simplex.best.x.data.copy()

    @property
    def f(self) -> float:
        """Objective value at the best point."""
        return self.simplex.best.f


# =============================================================================
# Vertex replacement
# =============================================================================


def propose_replacement(
    objective: ObjectiveFunction,
    config: MinimizerConfig,
    x_mid: Vector,
    x_high: Vector,
    f_high: float,
    f_values: FloatArray,
) -> Proposal:
    """
    Try to find a better point to take the place of ``x_high``.

    Reads only its arguments, so several proposals may run concurrently.

    Args:
        objective: Objective function.
        config: Minimizer coefficients.
        x_mid: Centroid of the retained vertices.
        x_high: Point being replaced.
        f_high: Objective value at ``x_high``.
        f_values: Objective values of all simplex vertices in simplex order;
            ``f_values[0]`` is the best value at the start of the iteration.

    Returns:
        The proposal; ``accepted`` is False when no move improved on x_high.
    """
    f_min = float(f_values[0])
    n = len(x_high)

    # Move away from the worst point by reflection through the centroid.
    x_refl = Vector.zeros(n).blend(
        x_mid, x_high, 1.0 + config.reflect, -config.reflect
    )
    f_refl = evaluate(objective, x_refl)
    nfe = 1

    if f_refl < f_min:
        # Reflection is a new best, try going further in the same direction.
        x_ext = Vector.zeros(n).blend(
            x_mid, x_refl, 1.0 - config.extend, config.extend
        )
        f_ext = evaluate(objective, x_ext)
        nfe += 1
        if f_ext < f_refl:
            return Proposal(True, x_ext, f_ext, nfe, "extend")
        return Proposal(True, x_refl, f_refl, nfe, "reflect")

    count = int(np.count_nonzero(f_values > f_refl))
    if count > CONTRACTION_COUNT_THRESHOLD:
        # Several vertices are worse than the reflection; keep it so that the
        # simplex keeps changing shape.
        return Proposal(True, x_refl, f_refl, nfe, "reflect")

    # Contract on the reflection side of the centroid.
    x_con = Vector.zeros(n).blend(
        x_mid, x_high, 1.0 - config.contract, config.contract
    )
    f_con = evaluate(objective, x_con)
    nfe += 1
    if f_con < f_high:
        return Proposal(True, x_con, f_con, nfe, "contract")
    return Proposal(False, None, float("nan"), nfe, "none")


# =============================================================================
# Minimizer
# =============================================================================


class Minimizer:
    """Nelder-Mead minimizer owning the objective, simplex and counters."""

    def __init__(
        self,
        objective: ObjectiveFunction,
        config: MinimizerConfig | None = None,
        *,
        executor: Executor | None = None,
    ) -> None:
        """
        Initialize a Minimizer.

        Args:
            objective: Pure function mapping a 1-D float array to a float.
            config: Minimizer settings; defaults to MinimizerConfig().
            executor: Optional executor for concurrent objective evaluation.

        Raises:
            InvalidConfigurationError: If config is invalid.
        """
        self.objective = objective
        self.config = config or MinimizerConfig()
        self.config.validate()
        self.executor = executor

        self._simplex: Simplex | None = None
        self.n_evaluations = 0
        self.n_restarts = 0

    @property
    def simplex(self) -> Simplex:
        """The live simplex.

        Raises:
            RuntimeError: If no simplex has been built yet.
        """
        if self._simplex is None:
            raise RuntimeError(_SIMPLEX_NOT_BUILT_MSG)
        return self._simplex

    def describe(self) -> dict[str, Any]:
        """JSON-compatible summary of settings, counters and simplex."""
        return {
            "config": asdict(self.config),
            "nfe": self.n_evaluations,
            "nrestarts": self.n_restarts,
            "simplex": None if self._simplex is None else self._simplex.to_dict(),
        }

    # ------------------------------------------------------------------
    # Single moves
    # ------------------------------------------------------------------

    def replace_vertex(self, i: int, x_mid: Vector) -> tuple[bool, int]:
        """
        Try to replace vertex i with a better point and commit it if found.

        The evaluation counter is not updated here; the caller aggregates.

        Args:
            i: Index of the vertex to replace (one of the P worst).
            x_mid: Centroid of the retained vertices.

        Returns:
            Tuple of (accepted, evaluations consumed).
        """
        vertex = self.simplex[i]
        proposal = propose_replacement(
            self.objective,
            self.config,
            x_mid,
            vertex.x,
            vertex.f,
            self.simplex.values(),
        )
        self._commit(i, proposal)
        return proposal.accepted, proposal.evaluations

    def contract_about_best_point(self) -> None:
        """Move every vertex except the best halfway toward the best one."""
        simplex = self.simplex
        x_min = simplex.best.x
        others = simplex.vertices[1:]
        for v in others:
            v.x.blend(x_min, v.x, 0.5, 0.5)
        f_values = evaluate_many(
            self.objective, [v.x for v in others], self.executor
        )
        for v, f in zip(others, f_values, strict=True):
            v.f = f
        self.n_evaluations += len(others)
        self.n_restarts += 1
        logger.debug(
            "Shrank simplex toward best point (restart %d)", self.n_restarts
        )

    def _commit(self, i: int, proposal: Proposal) -> None:
        if not proposal.accepted or proposal.x is None:
            return
        vertex = self.simplex[i]
        vertex.x.set_vector(proposal.x)
        vertex.f = proposal.f

    def _replace_concurrently(
        self,
        executor: Executor,
        targets: list[int],
        x_mid: Vector,
    ) -> tuple[bool, int]:
        """Run the proposals for all targets on the executor, then commit."""
        simplex = self.simplex
        f_values = simplex.values()
        futures = [
            executor.submit(
                propose_replacement,
                self.objective,
                self.config,
                x_mid,
                simplex[i].x.clone(),
                simplex[i].f,
                f_values,
            )
            for i in targets
        ]
        proposals = [fut.result() for fut in futures]
        for i, proposal in zip(targets, proposals, strict=True):
            self._commit(i, proposal)
        return (
            any(p.accepted for p in proposals),
            sum(p.evaluations for p in proposals),
        )

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def take_steps(self, n_steps: int) -> None:
        """
        Take n_steps iterations, updating the simplex in place.

        On return the simplex is sorted and its best point is at index 0.

        Args:
            n_steps: Number of iterations.

        Raises:
            DegenerateSimplexError: If P leaves no vertices for the centroid.
        """
        simplex = self.simplex
        nv = len(simplex)
        p = self.config.p
        for _ in range(n_steps):
            v_mid = simplex.centroid(p)
            targets = [nv - 1 - j for j in range(p)]
            if self.executor is None:
                any_success = False
                for i in targets:
                    success, nfe = self.replace_vertex(i, v_mid.x)
                    any_success = any_success or success
                    self.n_evaluations += nfe
            else:
                any_success, nfe = self._replace_concurrently(
                    self.executor, targets, v_mid.x
                )
                self.n_evaluations += nfe
            if not any_success:
                self.contract_about_best_point()
            simplex.sort()

    def build_simplex(
        self,
        x0: npt.ArrayLike,
        dx: npt.ArrayLike | None = None,
    ) -> Simplex:
        """
        Build the initial simplex about x0 and restart the counters.

        Any previous simplex is discarded, so each run starts with the whole
        evaluation budget; the counters then hold the construction cost.

        Args:
            x0: Start point.
            dx: Per-axis step sizes; DEFAULT_STEP on every axis when None.

        Raises:
            InvalidConfigurationError: If x0/dx cannot define a simplex.

        Returns:
            The new, sorted simplex now owned by this minimizer.
        """
        x0_arr = np.asarray(x0, dtype=np.float64)
        if dx is None:
            dx = np.full(x0_arr.shape, DEFAULT_STEP)
        self._simplex, nfe = make_simplex_about_point(
            self.objective, x0_arr, dx, executor=self.executor
        )
        self.n_evaluations = nfe
        self.n_restarts = 0
        return self._simplex

    def minimize_from_point(
        self,
        x0: npt.ArrayLike,
        dx: npt.ArrayLike | None = None,
    ) -> MinimizeResult:
        """
        Build a simplex about x0 and step until converged or out of budget.

        Args:
            x0: Start point.
            dx: Per-axis step sizes for the initial simplex; DEFAULT_STEP on
                every axis when None.

        Raises:
            InvalidConfigurationError: If x0/dx cannot define a simplex.
            DegenerateSimplexError: If P is too large for the dimension.

        Returns:
            MinimizeResult describing the final simplex and counters.
        """
        self.build_simplex(x0, dx)

        cfg = self.config
        while self.n_evaluations < cfg.max_evaluations:
            self.take_steps(cfg.steps)
            _, f_std = self.simplex.f_statistics()
            logger.debug(
                "nfe=%d best f=%g std=%g",
                self.n_evaluations,
                self.simplex.best.f,
                f_std,
            )
            if f_std < cfg.tol:
                break

        _, f_std = self.simplex.f_statistics()
        converged = f_std < cfg.tol
        if converged:
            logger.info(
                "Converged after %d evaluations (%d restarts), f=%g",
                self.n_evaluations,
                self.n_restarts,
                self.simplex.best.f,
            )
        else:
            logger.info(
                "Evaluation budget %d exhausted (nfe=%d), std=%g above tol=%g",
                cfg.max_evaluations,
                self.n_evaluations,
                f_std,
                cfg.tol,
            )
        return MinimizeResult(
            simplex=self.simplex,
            evaluations=self.n_evaluations,
            restarts=self.n_restarts,
            converged=converged,
            f_std=f_std,
        )


def minimize(
    objective: ObjectiveFunction,
    x0: npt.ArrayLike,
    dx: npt.ArrayLike | None = None,
    config: MinimizerConfig | None = None,
    *,
    executor: Executor | None = None,
) -> MinimizeResult:
    """
    Locate a minimum of ``objective`` starting from ``x0``.

    Args:
        objective: Pure function mapping a 1-D float array to a float.
        x0: Start point.
        dx: Per-axis step sizes for the initial simplex.
        config: Minimizer settings; defaults to MinimizerConfig().
        executor: Optional executor for concurrent objective evaluation.

    Returns:
        MinimizeResult; ``result.x`` and ``result.f`` give the best point.
    """
    return Minimizer(objective, config, executor=executor).minimize_from_point(x0, dx)
