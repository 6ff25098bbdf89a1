# nm_engine/src/nm_engine/simplex.py
"""Vertices and the sorted simplex used by the Nelder-Mead minimizer.

A :class:`Vertex` pairs a point with its cached objective value. A
:class:`Simplex` holds N+1 vertices in N dimensions, sorted ascending by
objective value, so that index 0 is the best point and index N the worst.

The simplex is built once by :func:`make_simplex_about_point` and afterwards
mutated in place: vertex coordinates and values are overwritten and the list
is re-sorted, but neither the list nor the coordinate arrays are reallocated.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

import numpy as np
import numpy.typing as npt

from .errors import (
    raise_degenerate_simplex,
    raise_dimension_mismatch,
    raise_invalid_configuration,
)
from .vector_ops import FloatArray, Vector, approx_equals, as_float_array

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from concurrent.futures import Executor

logger = logging.getLogger(__name__)

ObjectiveFunction: TypeAlias = "Callable[[FloatArray], float]"

_EMPTY_VERTICES_MSG = "no vertices in simplex"
_NOT_ENOUGH_VERTICES_MSG = (
    "not enough vertices remaining for centroid (have {nv}, excluding {p})"
)
_VERTEX_COUNT_MSG = "expected N+1={expected} vertices for dimension N={n}, got {nv}"
_EXCLUDE_COUNT_MSG = "centroid exclusion count must be positive, got {p}"
_ZERO_PARAMS_MSG = "zero number of parameters"
_DX_LENGTH_MSG = "len(dx)={ndx} did not match len(x0)={nx}"
_DX_ZERO_MSG = "one or more zero values in dx: {dx}"
_NOT_1D_MSG = "{name} must be one-dimensional, got shape {shape}"


def evaluate(objective: ObjectiveFunction, x: Vector) -> float:
    """
    Evaluate the objective at a copy of ``x``.

    The objective never sees the live coordinate buffer of a vertex.

    Args:
        objective: Objective function.
        x: Point at which to evaluate.

    Returns:
        Objective value as a Python float.
    """
    return float(objective(x.data.copy()))


def evaluate_many(
    objective: ObjectiveFunction,
    points: Sequence[Vector],
    executor: Executor | None = None,
) -> list[float]:
    """
    Evaluate the objective at several independent points.

    Args:
        objective: Objective function.
        points: Points to evaluate.
        executor: Optional executor used to run the evaluations concurrently.

    Returns:
        Objective values in the order of ``points``.
    """
    if executor is None:
        return [evaluate(objective, x) for x in points]
    copies = [x.data.copy() for x in points]
    return [float(f) for f in executor.map(objective, copies)]


def json_float(value: float) -> float | str:
    """
    Map a float onto a value strict JSON can carry.

    Finite values pass through; infinities and NaN become the strings
    ``"inf"``, ``"-inf"`` and ``"nan"``.

    Args:
        value: Number to encode.

    Returns:
        The float itself, or its string spelling when not finite.
    """
    value = float(value)
    if math.isfinite(value):
        return value
    return repr(value)


# =============================================================================
# Vertex
# =============================================================================


@dataclass(slots=True)
class Vertex:
    """A point together with its cached objective value.

    Attributes:
        x: Coordinates of the point.
        f: Objective value at ``x``; must be recomputed after ``x`` changes.
    """

    x: Vector
    f: float = 0.0

    @classmethod
    def zeros(cls, n: int) -> Vertex:
        """Vertex at the origin of n-space with f = 0."""
        return cls(Vector.zeros(n), 0.0)

    @classmethod
    def from_point(
        cls,
        x: npt.ArrayLike,
        f: float,
    ) -> Vertex:
        """Build a vertex from any array-like point (the data are copied)."""
        return cls(Vector(x), float(f))

    @property
    def n(self) -> int:
        """Dimension of the point."""
        return len(self.x)

    def approx_equals(self, other: Vertex, tol: float) -> bool:
        """Tolerant comparison of both coordinates and value."""
        return self.x.approx_equals(other.x, tol) and approx_equals(
            self.f, other.f, tol
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible mapping ``{"x": [...], "f": ...}``."""
        return {"x": [json_float(d) for d in self.x], "f": json_float(self.f)}

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), allow_nan=False)


def centroid(vertices: Sequence[Vertex], p: int) -> Vertex:
    """
    Centroid of the vertices, leaving out the last ``p`` of them.

    With a sorted sequence the excluded vertices are the p worst.

    Args:
        vertices: Vertices, typically sorted ascending by f.
        p: Number of trailing vertices to exclude.

    Raises:
        DegenerateSimplexError: If there are no vertices or none remain.
        InvalidConfigurationError: If p is not positive.

    Returns:
        A new Vertex holding the mean point and the mean objective value.
    """
    nv = len(vertices)
    if nv == 0:
        raise_degenerate_simplex(_EMPTY_VERTICES_MSG)
    if p <= 0:
        raise_invalid_configuration(_EXCLUDE_COUNT_MSG.format(p=p))
    k = nv - p
    if k <= 0:
        raise_degenerate_simplex(_NOT_ENOUGH_VERTICES_MSG.format(nv=nv, p=p))

    c = Vertex.zeros(vertices[0].n)
    for v in vertices[:k]:
        c.x.add(c.x, v.x)
        c.f += v.f
    s = 1.0 / k
    c.x.scale(s)
    c.f *= s
    return c


# =============================================================================
# Simplex
# =============================================================================


class Simplex:
    """Ordered collection of N+1 vertices, sorted ascending by f."""

    __slots__ = ("vertices",)

    def __init__(self, vertices: Sequence[Vertex]) -> None:
        """
        Initialize a Simplex and sort it.

        Args:
            vertices: Exactly N+1 vertices of dimension N.

        Raises:
            DegenerateSimplexError: If the vertex count is not N+1.
            DimensionMismatchError: If the vertices differ in dimension.
        """
        if len(vertices) == 0:
            raise_degenerate_simplex(_EMPTY_VERTICES_MSG)
        n = vertices[0].n
        for v in vertices:
            if v.n != n:
                raise_dimension_mismatch(first=n, other=v.n)
        if len(vertices) != n + 1:
            raise_degenerate_simplex(
                _VERTEX_COUNT_MSG.format(expected=n + 1, n=n, nv=len(vertices))
            )
        self.vertices: list[Vertex] = list(vertices)
        self.sort()

    # ------------------------------------------------------------------
    # Container helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.vertices)

    def __getitem__(self, i: int) -> Vertex:
        return self.vertices[i]

    def __iter__(self) -> Iterator[Vertex]:
        return iter(self.vertices)

    def __str__(self) -> str:
        return self.to_json()

    @property
    def n(self) -> int:
        """Dimension N of the parameter space."""
        return len(self.vertices) - 1

    @property
    def best(self) -> Vertex:
        """Vertex with the lowest objective value."""
        return self.vertices[0]

    @property
    def worst(self) -> Vertex:
        """Vertex with the highest objective value."""
        return self.vertices[-1]

    def values(self) -> FloatArray:
        """Objective values of all vertices, in simplex order."""
        return np.fromiter((v.f for v in self.vertices), dtype=np.float64)

    def points(self) -> FloatArray:
        """Vertex coordinates stacked as an (N+1, N) array (a copy)."""
        return np.stack([v.x.data for v in self.vertices])

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def sort(self) -> None:
        """Sort in place ascending by f.

        Ties keep their current relative order (stable sort), so the sort is
        deterministic and re-sorting a sorted simplex changes nothing.
        """
        self.vertices.sort(key=lambda v: v.f)

    def centroid(self, p: int) -> Vertex:
        """Centroid of the best N+1-p vertices; see :func:`centroid`."""
        return centroid(self.vertices, p)

    def f_statistics(self) -> tuple[float, float]:
        """
        Mean and (population) standard deviation of the vertex values.

        Returns:
            Tuple of (mean, standard deviation).
        """
        nv = len(self.vertices)
        mean = 0.0
        for v in self.vertices:
            mean += v.f
        mean /= nv
        variance = 0.0
        for v in self.vertices:
            d = v.f - mean
            variance += d * d
        variance /= nv
        return mean, math.sqrt(variance)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible mapping ``{"n": N, "vertices": [...]}``."""
        return {"n": self.n, "vertices": [v.to_dict() for v in self.vertices]}

    def to_json(self, **kwargs: Any) -> str:
        """
        Human-readable JSON serialization for inspection and checkpointing.

        Coordinates and values round-trip exactly; non-finite values are
        written as the strings "inf", "-inf" and "nan" (see :func:`json_float`).

        Args:
            **kwargs: Forwarded to :func:`json.dumps` (e.g. ``indent``).

        Returns:
            JSON text of :meth:`to_dict`.
        """
        kwargs.setdefault("allow_nan", False)
        return json.dumps(self.to_dict(), **kwargs)


def simplex_to_json(simplex: Simplex) -> str:
    """Serialize a simplex as JSON; see :meth:`Simplex.to_json`."""
    return simplex.to_json()


def make_simplex_about_point(
    objective: ObjectiveFunction,
    x0: npt.ArrayLike,
    dx: npt.ArrayLike,
    *,
    executor: Executor | None = None,
) -> tuple[Simplex, int]:
    """
    Build the initial simplex around a start point.

    Vertex 0 is x0; vertex i+1 is x0 with component i perturbed by dx[i].

    Args:
        objective: Objective function.
        x0: Start point of length N >= 1.
        dx: Per-axis step sizes; same length as x0, no zero entries.
        executor: Optional executor for the N+1 independent evaluations.

    Raises:
        InvalidConfigurationError: If x0 or dx is not one-dimensional, x0 is
            empty, len(dx) != len(x0), or any dx component is zero.

    Returns:
        Tuple of (sorted Simplex, number of objective evaluations used).
    """
    for name, values in (("x0", x0), ("dx", dx)):
        shape = np.shape(values)
        if len(shape) > 1:
            raise_invalid_configuration(_NOT_1D_MSG.format(name=name, shape=shape))
    x0_arr = as_float_array(x0)
    dx_arr = as_float_array(dx)
    n = int(x0_arr.shape[0])
    if n == 0:
        raise_invalid_configuration(_ZERO_PARAMS_MSG)
    if n != dx_arr.shape[0]:
        raise_invalid_configuration(_DX_LENGTH_MSG.format(ndx=dx_arr.shape[0], nx=n))
    if np.any(dx_arr == 0.0):
        raise_invalid_configuration(_DX_ZERO_MSG.format(dx=dx_arr.tolist()))

    points = [Vector(x0_arr)]
    for i in range(n):
        x1 = Vector(x0_arr)
        x1[i] += dx_arr[i]
        points.append(x1)

    f_values = evaluate_many(objective, points, executor)
    simplex = Simplex(
        [Vertex(x, f) for x, f in zip(points, f_values, strict=True)],
    )
    logger.debug("Built simplex with N=%d, best f=%g", n, simplex.best.f)
    return simplex, n + 1
