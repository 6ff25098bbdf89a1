# nm_engine/src/nm_engine/rkf45.py
"""Fixed-step Runge-Kutta-Fehlberg (RKF45) ODE stepper.

One call to :func:`rkf45_step` advances a system ``y' = f(t, y)`` by a single
step of the requested size, writing the fifth-order solution and an absolute
per-component error estimate (difference to the embedded fourth-order
solution). There is no step-size control; :func:`integrate` simply repeats
fixed steps.

Performance hygiene:
    - Stage derivatives and the intermediate state live in a preallocated
      :class:`WorkSpace`, reused across steps.
    - The derivative callback writes into a provided array,
      ``f(t, y, dydt) -> None``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeAlias

import numpy as np

from .errors import raise_dimension_mismatch, raise_invalid_configuration
from .vector_ops import FloatArray

DerivativeFunction: TypeAlias = Callable[[float, FloatArray, FloatArray], None]

_N_STEPS_ERROR = "n_steps must be >= 1, got {n_steps}"


@dataclass(slots=True)
class WorkSpace:
    """Scratch arrays for one RKF45 step of an n-component system.

    Attributes:
        n: Number of dependent variables.
        ytmp: Intermediate state passed to the derivative function.
        k: Stage derivatives k1..k6, shape (6, n).
    """

    n: int
    ytmp: FloatArray = field(init=False)
    k: FloatArray = field(init=False)

    def __post_init__(self) -> None:
        self.ytmp = np.zeros(self.n, dtype=np.float64)
        self.k = np.zeros((6, self.n), dtype=np.float64)


def rkf45_step(
    f: DerivativeFunction,
    t0: float,
    h: float,
    y0: FloatArray,
    y1: FloatArray,
    err: FloatArray,
    ws: WorkSpace,
) -> float:
    """
    Step the set of ODEs by the Runge-Kutta-Fehlberg method.

    Args:
        f: Derivative function ``f(t, y, dydt)`` writing dy/dt into dydt.
        t0: Starting value of the independent variable.
        h: Step size.
        y0: Starting values of the dependent variables, shape (n,).
        y1: Output array for the final values, shape (n,).
        err: Output array for absolute error estimates, shape (n,).
        ws: Workspace sized for n.

    Raises:
        DimensionMismatchError: If any array length differs from ws.n.

    Returns:
        The final value of the independent variable, t0 + h.
    """
    n = ws.n
    if len(y0) != n or len(y1) != n or len(err) != n:
        raise_dimension_mismatch(ws=n, y0=len(y0), y1=len(y1), err=len(err))

    k1, k2, k3, k4, k5, k6 = ws.k
    ytmp = ws.ytmp

    f(t0, y0, k1)
    np.copyto(ytmp, y0 + 0.25 * h * k1)
    f(t0 + h / 4.0, ytmp, k2)
    np.copyto(ytmp, y0 + 3.0 * h * k1 / 32.0 + 9.0 * h * k2 / 32.0)
    f(t0 + 3.0 * h / 8.0, ytmp, k3)
    np.copyto(
        ytmp,
        y0
        + 1932.0 * h * k1 / 2197.0
        - 7200.0 * h * k2 / 2197.0
        + 7296.0 * h * k3 / 2197.0,
    )
    f(t0 + 12.0 * h / 13.0, ytmp, k4)
    np.copyto(
        ytmp,
        y0
        + 439.0 * h * k1 / 216.0
        - 8.0 * h * k2
        + 3680.0 * h * k3 / 513.0
        - 845.0 * h * k4 / 4104.0,
    )
    f(t0 + h, ytmp, k5)
    np.copyto(
        ytmp,
        y0
        - 8.0 * h * k1 / 27.0
        + 2.0 * h * k2
        - 3544.0 * h * k3 / 2565.0
        + 1859.0 * h * k4 / 4104.0
        - 11.0 * h * k5 / 40.0,
    )
    f(t0 + h / 2.0, ytmp, k6)

    # Weighted combination of the stage samples.
    np.copyto(
        y1,
        y0
        + 16.0 * h * k1 / 135.0
        + 6656.0 * h * k3 / 12825.0
        + 28561.0 * h * k4 / 56430.0
        - 9.0 * h * k5 / 50.0
        + 2.0 * h * k6 / 55.0,
    )
    np.abs(
        h * k1 / 360.0
        - 128.0 * h * k3 / 4275.0
        - 2197.0 * h * k4 / 75240.0
        + h * k5 / 50.0
        + 2.0 * h * k6 / 55.0,
        out=err,
    )
    return t0 + h


def integrate(
    f: DerivativeFunction,
    t0: float,
    t1: float,
    y0: FloatArray,
    n_steps: int,
) -> tuple[FloatArray, FloatArray]:
    """
    Integrate from t0 to t1 with n_steps equal RKF45 steps.

    Args:
        f: Derivative function ``f(t, y, dydt)``.
        t0: Start time.
        t1: End time.
        y0: Initial state, shape (n,).
        n_steps: Number of steps.

    Raises:
        InvalidConfigurationError: If n_steps < 1.

    Returns:
        Tuple of (state at t1, elementwise maximum of the per-step error
        estimates).
    """
    if n_steps < 1:
        raise_invalid_configuration(_N_STEPS_ERROR.format(n_steps=n_steps))
    y = np.array(y0, dtype=np.float64).reshape(-1)
    n = int(y.shape[0])
    ws = WorkSpace(n)
    y_next = np.zeros_like(y)
    err = np.zeros_like(y)
    err_max = np.zeros_like(y)

    h = (t1 - t0) / n_steps
    t = t0
    for _ in range(n_steps):
        t = rkf45_step(f, t, h, y, y_next, err, ws)
        np.copyto(y, y_next)
        np.maximum(err_max, err, out=err_max)
    return y, err_max
