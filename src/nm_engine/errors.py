# nm_engine/src/nm_engine/errors.py
"""Error types and raise helpers for nm_engine.

This module centralizes:
- a small exception taxonomy with machine-readable error codes, and
- helpers that raise those exceptions with standardized messages.

Every exception also derives from a matching builtin (ValueError,
ArithmeticError) so callers that do not know about nm_engine can still catch
failures in the usual way. None of these conditions abort the process; they
are always recoverable by the caller.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Machine-readable classification for nm_engine failures."""

    INVALID_CONFIGURATION = "invalid_configuration"
    DEGENERATE_SIMPLEX = "degenerate_simplex"
    DIMENSION_MISMATCH = "dimension_mismatch"
    SINGULAR_MATRIX = "singular_matrix"


class NmEngineError(Exception):
    """Base exception for nm_engine errors."""

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        """
        Initialize an NmEngineError.

        Args:
            message: Human-readable error message.
            code: Optional machine-readable error code classifying the error.
        """
        super().__init__(message)
        self.code: ErrorCode | None = code


class InvalidConfigurationError(NmEngineError, ValueError):
    """Raised when inputs or settings cannot define a valid minimization."""


class DegenerateSimplexError(NmEngineError, ValueError):
    """Raised when a simplex has too few vertices for the requested operation."""


class DimensionMismatchError(NmEngineError, ValueError):
    """Raised when array lengths in an arithmetic operation are inconsistent."""


class SingularMatrixError(NmEngineError, ArithmeticError):
    """Raised when elimination meets a pivot below the singular threshold."""


def raise_invalid_configuration(detail: str) -> None:
    """
    Raise a standardized InvalidConfigurationError.

    Args:
        detail: Description of the offending input.

    Raises:
        InvalidConfigurationError: Always.
    """
    msg = f"Invalid configuration: {detail}"
    raise InvalidConfigurationError(msg, code=ErrorCode.INVALID_CONFIGURATION)


def raise_degenerate_simplex(detail: str) -> None:
    """
    Raise a standardized DegenerateSimplexError.

    Args:
        detail: Description of why the simplex cannot be used.

    Raises:
        DegenerateSimplexError: Always.
    """
    msg = f"Degenerate simplex: {detail}"
    raise DegenerateSimplexError(msg, code=ErrorCode.DEGENERATE_SIMPLEX)


def raise_dimension_mismatch(**lengths: int) -> None:
    """
    Raise a standardized DimensionMismatchError listing the observed lengths.

    Args:
        **lengths: Observed lengths keyed by operand name.

    Raises:
        DimensionMismatchError: Always.
    """
    detail = " ".join(f"{name}:{n}" for name, n in lengths.items())
    msg = f"Inconsistent array lengths {detail}"
    raise DimensionMismatchError(msg, code=ErrorCode.DIMENSION_MISMATCH)


def raise_singular_matrix(*, pivot: float, threshold: float) -> None:
    """
    Raise a standardized SingularMatrixError.

    Args:
        pivot: The rejected pivot value.
        threshold: The singular threshold in force for the call.

    Raises:
        SingularMatrixError: Always.
    """
    msg = f"Singular matrix: pivot={pivot!r} is below threshold={threshold!r}"
    raise SingularMatrixError(msg, code=ErrorCode.SINGULAR_MATRIX)
