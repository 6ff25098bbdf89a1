"""nm_engine: Nelder-Mead simplex minimization and small numeric helpers."""

from __future__ import annotations

from .errors import (
    DegenerateSimplexError,
    DimensionMismatchError,
    ErrorCode,
    InvalidConfigurationError,
    NmEngineError,
    SingularMatrixError,
)
from .geom import Vector3
from .linalg import Matrix, gauss_jordan_elimination, inverse, solve
from .minimizer import (
    CONTRACTION_COUNT_THRESHOLD,
    MinimizeResult,
    Minimizer,
    MinimizerConfig,
    Proposal,
    minimize,
    propose_replacement,
)
from .rkf45 import WorkSpace, integrate, rkf45_step
from .simplex import (
    Simplex,
    Vertex,
    centroid,
    make_simplex_about_point,
    simplex_to_json,
)
from .vector_ops import Vector, approx_equals, dot

__all__ = [
    "CONTRACTION_COUNT_THRESHOLD",
    "DegenerateSimplexError",
    "DimensionMismatchError",
    "ErrorCode",
    "InvalidConfigurationError",
    "Matrix",
    "MinimizeResult",
    "Minimizer",
    "MinimizerConfig",
    "NmEngineError",
    "Proposal",
    "Simplex",
    "SingularMatrixError",
    "Vector",
    "Vector3",
    "Vertex",
    "WorkSpace",
    "approx_equals",
    "centroid",
    "dot",
    "gauss_jordan_elimination",
    "integrate",
    "inverse",
    "make_simplex_about_point",
    "minimize",
    "propose_replacement",
    "rkf45_step",
    "simplex_to_json",
    "solve",
]

__version__ = "0.1.0"
