"""Global pytest configuration and shared fixtures for nm_engine."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np
    from numpy.typing import NDArray

    FloatArray = NDArray[np.floating]


# -----------------------------------------------------------------------------
# Global markers registration safety (for local pytest runs)
# -----------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used by the test suite."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as taking many thousands of small steps",
    )


# -----------------------------------------------------------------------------
# Reference objectives (Olsson & Nelson, Technometrics 17(1), 1975)
# -----------------------------------------------------------------------------


def _quadratic_bowl(x: FloatArray) -> float:
    """Sum of (x_i - 1)^2; minimum 0 at (1, 1, ..., 1)."""
    s = 0.0
    for xi in x:
        s += (xi - 1.0) * (xi - 1.0)
    return float(s)


def _olsson_nelson_3_3(x: FloatArray) -> float:
    """Example 3.3: penalized two-variable response, minimum near (0.811, -0.585)."""
    x1, x2 = float(x[0]), float(x[1])
    if (x1 * x1 + x2 * x2) > 1.0:
        return 1.0e38
    yp = (
        53.69
        + 7.26 * x1
        - 10.33 * x2
        + 7.22 * x1 * x1
        + 6.43 * x2 * x2
        + 11.36 * x1 * x2
    )
    ys = (
        82.17
        - 1.01 * x1
        - 8.61 * x2
        + 1.40 * x1 * x1
        - 8.76 * x2 * x2
        - 7.20 * x1 * x2
    )
    return -yp + abs(ys - 87.8)


_T_DATA = (0.25, 0.50, 1.00, 1.70, 2.00, 4.00)
_Y_DATA = (0.25, 0.40, 0.60, 0.58, 0.54, 0.27)


def _olsson_nelson_3_5(z: FloatArray) -> float:
    """Example 3.5: least-squares fit of a sum of two exponentials."""
    a1, a2, alpha1, alpha2 = (float(v) for v in z)
    s = 0.0
    for t, y in zip(_T_DATA, _Y_DATA, strict=True):
        eta = a1 * math.exp(alpha1 * t) + a2 * math.exp(alpha2 * t)
        r = y - eta
        s += r * r
    return s


class CountingObjective:
    """Wrap an objective and count how many times it is called."""

    def __init__(self, func: Callable[[FloatArray], float]) -> None:
        """Initialize with the wrapped objective."""
        self.func = func
        self.calls = 0

    def __call__(self, x: FloatArray) -> float:
        """Evaluate the wrapped objective and bump the call count."""
        self.calls += 1
        return self.func(x)


@pytest.fixture
def counting_bowl() -> CountingObjective:
    """Quadratic bowl objective that records its call count."""
    return CountingObjective(_quadratic_bowl)


@pytest.fixture
def quadratic_bowl() -> Callable[[FloatArray], float]:
    """Sum of (x_i - 1)^2."""
    return _quadratic_bowl


@pytest.fixture
def olsson_nelson_3_3() -> Callable[[FloatArray], float]:
    """Olsson & Nelson example 3.3 objective."""
    return _olsson_nelson_3_3


@pytest.fixture
def olsson_nelson_3_5() -> Callable[[FloatArray], float]:
    """Olsson & Nelson example 3.5 objective."""
    return _olsson_nelson_3_5
