# nm_engine/src/nm_engine/linalg.py
"""
Small dense matrices and Gauss-Jordan elimination.

This module provides a row-major :class:`Matrix` container and the textbook
Gauss-Jordan elimination of an augmented matrix ``[A|b] -> [I|x]`` with
partial pivoting. It is intended for small systems; for anything large,
prefer scipy.linalg.

Design notes:
    * The singular-pivot threshold is a keyword argument of every elimination
      call (``singular_threshold``), defaulting to
      :data:`DEFAULT_SINGULAR_THRESHOLD`. There is no module-level setting to
      mutate.
    * Shape problems raise :class:`DimensionMismatchError`; a pivot below the
      threshold raises :class:`SingularMatrixError`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import numpy as np

from .errors import (
    raise_dimension_mismatch,
    raise_invalid_configuration,
    raise_singular_matrix,
)
from .vector_ops import FloatArray, approx_equals

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy.typing as npt

DEFAULT_SINGULAR_THRESHOLD: Final[float] = 1.0e-16

# =============================================================================
# Error message constants
# =============================================================================

_NROWS_ERROR = "invalid value for nrows={nrows}"
_NCOLS_ERROR = "invalid value for ncols={ncols}"


class Matrix:
    """Dense row-major matrix backed by a 2-D float64 array."""

    __slots__ = ("data",)

    def __init__(self, data: npt.ArrayLike | None = None) -> None:
        """
        Initialize a Matrix holding a copy of ``data``.

        Args:
            data: 2-D array-like; an empty (0, 0) matrix when None.
        """
        if data is None:
            self.data: FloatArray = np.zeros((0, 0), dtype=np.float64)
        else:
            self.data = np.array(data, dtype=np.float64, ndmin=2)

    @classmethod
    def zeros(cls, nrows: int, ncols: int) -> Matrix:
        """
        Allocate an nrows x ncols matrix of zeros.

        Raises:
            InvalidConfigurationError: If either size is not positive.
        """
        if nrows <= 0:
            raise_invalid_configuration(_NROWS_ERROR.format(nrows=nrows))
        if ncols <= 0:
            raise_invalid_configuration(_NCOLS_ERROR.format(ncols=ncols))
        return cls(np.zeros((nrows, ncols), dtype=np.float64))

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> Matrix:
        """
        Build a matrix from a list of equal-length rows (the data are copied).

        Raises:
            DimensionMismatchError: If there are no rows, no columns, or the
                rows are ragged.
        """
        nrows = len(rows)
        if nrows == 0:
            raise_dimension_mismatch(nrows=0)
        ncols0 = len(rows[0])
        if ncols0 == 0:
            raise_dimension_mismatch(ncols=0)
        for i, row in enumerate(rows):
            if len(row) != ncols0:
                raise_dimension_mismatch(ncols0=ncols0, **{f"ncols[{i}]": len(row)})
        return cls([list(row) for row in rows])

    @property
    def shape(self) -> tuple[int, int]:
        """(nrows, ncols)."""
        return int(self.data.shape[0]), int(self.data.shape[1])

    def is_empty(self) -> bool:
        """Return True if the matrix holds no rows."""
        return self.data.shape[0] == 0

    def __str__(self) -> str:
        rows = (", ".join(f"{d:g}" for d in row) for row in self.data)
        return "[" + ", ".join(f"[{r}]" for r in rows) + "]"

    def __repr__(self) -> str:
        return f"Matrix({self.data.tolist()!r})"

    def norm_inf(self) -> float:
        """Infinity norm: largest absolute row sum (0.0 when empty)."""
        if self.data.size == 0:
            return 0.0
        return float(np.abs(self.data).sum(axis=1).max())

    def approx_equals(self, other: Matrix, tol: float) -> bool:
        """Elementwise tolerant comparison; differently shaped matrices differ."""
        if self.data.shape != other.data.shape:
            return False
        return all(
            approx_equals(float(a), float(b), tol)
            for a, b in zip(self.data.flat, other.data.flat, strict=True)
        )


def gauss_jordan_elimination(
    c: Matrix,
    *,
    singular_threshold: float = DEFAULT_SINGULAR_THRESHOLD,
) -> Matrix:
    """
    Reduce an augmented matrix ``[A|b]`` to ``[I|x]`` in place.

    When computing an inverse, the incoming data are ``[A|I]``.

    Args:
        c: Augmented matrix with at least as many columns as rows.
        singular_threshold: Pivots with smaller magnitude are treated as zero.

    Raises:
        DimensionMismatchError: If the matrix is empty or has fewer columns
            than rows.
        SingularMatrixError: If a pivot magnitude is below the threshold.

    Returns:
        The same matrix object, now holding ``[I|x]``.
    """
    a = c.data
    if a.size == 0:
        raise_dimension_mismatch(nrows=int(a.shape[0]), ncols=int(a.shape[-1]))
    nrows, ncols = a.shape
    if ncols < nrows:
        raise_dimension_mismatch(nrows=nrows, ncols=ncols)

    for j in range(nrows):
        # Pivot on the largest magnitude in column j at or below the diagonal.
        p = j + int(np.argmax(np.abs(a[j:, j])))
        if abs(a[p, j]) < singular_threshold:
            raise_singular_matrix(pivot=float(a[p, j]), threshold=singular_threshold)
        if p != j:
            a[[j, p]] = a[[p, j]]
        a[j] /= a[j, j]
        for i in range(nrows):
            if i == j:
                continue
            a[i] -= a[i, j] * a[j]
    return c


def solve(
    a: npt.ArrayLike,
    b: npt.ArrayLike,
    *,
    singular_threshold: float = DEFAULT_SINGULAR_THRESHOLD,
) -> FloatArray:
    """
    Solve ``A x = b`` by Gauss-Jordan elimination.

    Args:
        a: Square coefficient matrix (n, n).
        b: Right-hand side, shape (n,) or (n, k).
        singular_threshold: Pivot threshold for this call.

    Raises:
        DimensionMismatchError: If the shapes are incompatible.
        SingularMatrixError: If A is numerically singular.

    Returns:
        Solution with the same shape as ``b``.
    """
    a_arr = np.asarray(a, dtype=np.float64)
    b_arr = np.asarray(b, dtype=np.float64)
    if a_arr.ndim != 2 or a_arr.shape[0] != a_arr.shape[1]:
        raise_dimension_mismatch(ndim=a_arr.ndim, size=int(a_arr.size))
    n = int(a_arr.shape[0])
    if b_arr.ndim not in (1, 2):
        raise_dimension_mismatch(b_ndim=b_arr.ndim)
    if b_arr.shape[0] != n:
        raise_dimension_mismatch(a=n, b=int(b_arr.shape[0]))
    rhs = b_arr.reshape(n, -1)
    c = Matrix(np.hstack([a_arr, rhs]))
    gauss_jordan_elimination(c, singular_threshold=singular_threshold)
    x = c.data[:, n:]
    return x.reshape(b_arr.shape).copy()


def inverse(
    a: npt.ArrayLike,
    *,
    singular_threshold: float = DEFAULT_SINGULAR_THRESHOLD,
) -> FloatArray:
    """Inverse of a square matrix via elimination of ``[A|I]``."""
    a_arr = np.asarray(a, dtype=np.float64)
    if a_arr.ndim != 2:
        raise_dimension_mismatch(ndim=a_arr.ndim, size=int(a_arr.size))
    n = int(a_arr.shape[0])
    return solve(a_arr, np.eye(n), singular_threshold=singular_threshold)
