# nm_engine/src/nm_engine/vector_ops.py
"""Fixed-length real vectors for the simplex arithmetic.

The :class:`Vector` type wraps a 1-D float64 NumPy array and provides the small
set of operations the minimizer needs: allocation, add, sub, scaled blend,
scale, dot product, magnitude, sum/mean and tolerant approximate equality.

Design notes:
    * Results are written into a preallocated output vector (``z.add(a, b)``
      writes ``a + b`` into ``z`` and returns ``z``). This keeps allocation out
      of the inner loops, in the manner of big-number libraries.
    * The output may alias an input for the elementwise operations (add, sub,
      blend, scale), e.g. ``z.add(z, a)`` is ``z += a``. Operations with
      cross-index dependence (normalize) reduce first and then write.
    * Length mismatches always raise :class:`DimensionMismatchError`.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import numpy as np
import numpy.typing as npt

from .errors import raise_dimension_mismatch

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

FloatArray = npt.NDArray[np.float64]


def approx_equals(a: float, b: float, tol: float) -> bool:
    """
    Combined relative/absolute comparison of two scalars.

    Relative for large magnitudes, absolute for magnitudes well below one.

    Args:
        a: First value.
        b: Second value.
        tol: Comparison tolerance.

    Returns:
        True if ``|a-b| / (0.5*(|a|+|b|) + 1) <= tol``.
    """
    return abs(a - b) / (0.5 * (abs(a) + abs(b)) + 1.0) <= tol


def as_float_array(values: Iterable[float] | npt.ArrayLike) -> FloatArray:
    """
    Copy values into a fresh, contiguous 1-D float64 array.

    Args:
        values: Sequence of numbers.

    Returns:
        New 1-D float64 array.
    """
    return np.array(values, dtype=np.float64).reshape(-1)


class Vector:
    """Fixed-length real vector backed by a 1-D float64 array."""

    __slots__ = ("data",)

    def __init__(self, data: Iterable[float] | npt.ArrayLike = ()) -> None:
        """
        Initialize a Vector holding a copy of ``data``.

        Args:
            data: Initial components; empty by default.
        """
        self.data: FloatArray = as_float_array(data)

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    @classmethod
    def zeros(cls, n: int) -> Vector:
        """Allocate a vector of n zeros."""
        return cls(np.zeros(n, dtype=np.float64))

    @classmethod
    def ones(cls, n: int) -> Vector:
        """Allocate a vector of n ones."""
        return cls(np.ones(n, dtype=np.float64))

    def clone(self) -> Vector:
        """Return an independent copy."""
        return Vector(self.data)

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return int(self.data.shape[0])

    def __iter__(self) -> Iterator[float]:
        return (float(d) for d in self.data)

    def __getitem__(self, i: int) -> float:
        return float(self.data[i])

    def __setitem__(self, i: int, value: float) -> None:
        self.data[i] = value

    def __str__(self) -> str:
        # Shortest round-tripping form of each component.
        return "[" + ", ".join(repr(float(d)) for d in self.data) + "]"

    def __repr__(self) -> str:
        return f"Vector({self.data.tolist()!r})"

    def is_empty(self) -> bool:
        """Return True if the vector has no components."""
        return len(self) == 0

    def tolist(self) -> list[float]:
        """Return the components as a list of Python floats."""
        return [float(d) for d in self.data]

    # ------------------------------------------------------------------
    # In-place setters
    # ------------------------------------------------------------------

    def set_scalar(self, a: float) -> Vector:
        """Set every component to ``a``."""
        self.data.fill(a)
        return self

    def set_vector(self, a: Vector | npt.ArrayLike) -> Vector:
        """
        Copy the components of ``a`` into this vector.

        Args:
            a: Source vector or array of the same length.

        Returns:
            This vector.
        """
        src = _data_of(a)
        if src.shape[0] != len(self):
            raise_dimension_mismatch(z=len(self), a=int(src.shape[0]))
        np.copyto(self.data, src)
        return self

    # ------------------------------------------------------------------
    # Reductions
    # ------------------------------------------------------------------

    def sum(self) -> float:
        """Sum of components (0.0 for an empty vector)."""
        return float(self.data.sum())

    def mean(self) -> float:
        """Mean of components (0.0 for an empty vector)."""
        if self.is_empty():
            return 0.0
        return float(self.data.sum()) / len(self)

    def mag(self) -> float:
        """Euclidean (L2) norm."""
        if self.is_empty():
            return 0.0
        return math.sqrt(float(np.dot(self.data, self.data)))

    def normalize(self) -> Vector:
        """Scale to unit magnitude in place; a zero vector is left unchanged."""
        mag = self.mag()
        if mag == 0.0:
            return self
        self.data /= mag
        return self

    def approx_equals(self, other: Vector | npt.ArrayLike, tol: float) -> bool:
        """
        Componentwise tolerant comparison; vectors of different length differ.

        Args:
            other: Vector to compare against.
            tol: Tolerance passed to :func:`approx_equals` per component.

        Returns:
            True if every component pair is approximately equal.
        """
        b = _data_of(other)
        if b.shape[0] != len(self):
            return False
        a = self.data
        scale = 0.5 * (np.abs(a) + np.abs(b)) + 1.0
        return bool(np.all(np.abs(a - b) / scale <= tol))

    # ------------------------------------------------------------------
    # Elementwise arithmetic (alias-safe)
    # ------------------------------------------------------------------

    def scale(self, s: float) -> Vector:
        """Multiply every component by ``s`` in place."""
        self.data *= s
        return self

    def add(self, a: Vector, b: Vector) -> Vector:
        """Set ``self = a + b``."""
        self._check_lengths(a, b)
        np.add(a.data, b.data, out=self.data)
        return self

    def sub(self, a: Vector, b: Vector) -> Vector:
        """Set ``self = a - b``."""
        self._check_lengths(a, b)
        np.subtract(a.data, b.data, out=self.data)
        return self

    def blend(self, a: Vector, b: Vector, sa: float, sb: float) -> Vector:
        """
        Set ``self = sa*a + sb*b`` elementwise.

        Args:
            a: First operand.
            b: Second operand.
            sa: Scale applied to ``a``.
            sb: Scale applied to ``b``.

        Returns:
            This vector.
        """
        self._check_lengths(a, b)
        # Both products are formed before the write, so self may alias a or b.
        np.add(sa * a.data, sb * b.data, out=self.data)
        return self

    def _check_lengths(self, a: Vector, b: Vector) -> None:
        n = len(self)
        if n != len(a) or n != len(b):
            raise_dimension_mismatch(z=n, a=len(a), b=len(b))


def dot(a: Vector, b: Vector) -> float:
    """
    Dot product of two vectors of equal length.

    Args:
        a: First vector.
        b: Second vector.

    Raises:
        DimensionMismatchError: If the lengths differ.

    Returns:
        Sum of componentwise products.
    """
    if len(a) != len(b):
        raise_dimension_mismatch(a=len(a), b=len(b))
    return float(np.dot(a.data, b.data))


def _data_of(a: Vector | Any) -> FloatArray:
    if isinstance(a, Vector):
        return a.data
    return np.asarray(a, dtype=np.float64).reshape(-1)
