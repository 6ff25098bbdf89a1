# nm_engine/examples/parallel_fit.py
"""Fit the rate constants of a decay chain A -> B -> C with a thread pool.

Each objective evaluation integrates the ODE system with the fixed-step RKF45
stepper and compares the B concentration with synthetic observations. The
evaluations are independent, so the initial simplex and the P proposals of
each iteration run concurrently on a ThreadPoolExecutor.

This script saves plots to disk (no interactive windows).
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from nm_engine.minimizer import MinimizerConfig, minimize
from nm_engine.rkf45 import integrate

_OUTPUT_DIR = Path(__file__).resolve().parent / "output" / "parallel_fit"

TRUE_RATES = (1.3, 0.4)
T_OBS = np.linspace(0.5, 6.0, 12)


def chain_rhs(rates: tuple[float, float]):  # noqa: ANN201
    """Derivative function for A -> B -> C with rates (k1, k2)."""
    k1, k2 = rates

    def rhs(t: float, y: np.ndarray, dydt: np.ndarray) -> None:  # noqa: ARG001
        dydt[0] = -k1 * y[0]
        dydt[1] = k1 * y[0] - k2 * y[1]
        dydt[2] = k2 * y[1]

    return rhs


def simulate_b(rates: tuple[float, float], times: np.ndarray) -> np.ndarray:
    """B concentration at each time, starting from pure A."""
    rhs = chain_rhs(rates)
    y = np.array([1.0, 0.0, 0.0])
    t = 0.0
    out = np.empty_like(times)
    for i, t_next in enumerate(times):
        y, _ = integrate(rhs, t, float(t_next), y, n_steps=20)
        out[i] = y[1]
        t = float(t_next)
    return out


B_OBS = simulate_b(TRUE_RATES, T_OBS)


def misfit(z: np.ndarray) -> float:
    """Sum of squared differences; negative rates are penalized."""
    if np.any(z <= 0.0):
        return 1.0e10
    resid = simulate_b((float(z[0]), float(z[1])), T_OBS) - B_OBS
    return float(np.dot(resid, resid))


def save_fit_plot(rates: np.ndarray, *, out_path: Path) -> None:
    """Save observations and the fitted B curve to an image file.

    Args:
        rates: Fitted (k1, k2).
        out_path: Output path for the saved figure.
    """
    t_fine = np.linspace(0.1, 6.0, 120)
    plt.figure(figsize=(8, 5))
    plt.plot(T_OBS, B_OBS, "o", label="observed B")
    plt.plot(t_fine, simulate_b((rates[0], rates[1]), t_fine), label="fitted B")
    plt.grid(visible=True)
    plt.legend()
    plt.title(f"k1={rates[0]:.4f}, k2={rates[1]:.4f}")
    plt.xlabel("Time")
    plt.ylabel("Concentration")
    plt.tight_layout()

    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out_path, dpi=150)
    plt.close()


def main() -> None:
    """Fit (k1, k2) from a poor start using two worker threads."""
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    config = MinimizerConfig(p=2, max_evaluations=1500, tol=1.0e-12)

    with ThreadPoolExecutor(max_workers=2) as pool:
        result = minimize(
            misfit, x0=[0.5, 0.9], dx=[0.2, 0.2], config=config, executor=pool
        )

    print(  # noqa: T201
        f"true={TRUE_RATES} fitted={tuple(result.x)} f={result.f:.3e} "
        f"nfe={result.evaluations} converged={result.converged}"
    )
    out_path = _OUTPUT_DIR / "decay_chain_fit.png"
    save_fit_plot(result.x, out_path=out_path)
    print(f"Saved plot to {out_path}")  # noqa: T201


if __name__ == "__main__":
    main()
