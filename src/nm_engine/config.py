# nm_engine/src/nm_engine/config.py
"""Configuration models for running the minimizer from YAML files.

This module defines the pydantic-facing settings object and translates it into
the native :class:`nm_engine.minimizer.MinimizerConfig`.

Notes:
    - Unknown fields are allowed and ignored (`extra="allow"`) so a settings
      block may sit inside a larger configuration document.
    - A YAML document may hold the settings at its top level or nested under a
      ``nelder_mead`` key.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from ruamel.yaml import YAML

from .errors import (
    ErrorCode,
    InvalidConfigurationError,
    raise_invalid_configuration,
)
from .minimizer import MinimizerConfig

SETTINGS_KEY = "nelder_mead"


class NelderMeadSettings(BaseModel):
    """Settings schema for the Nelder-Mead minimizer."""

    model_config = ConfigDict(extra="allow")

    # move coefficients
    reflect: float = Field(default=1.0, gt=0.0, description="Reflection coefficient")
    extend: float = Field(default=2.0, gt=1.0, description="Extension coefficient")
    contract: float = Field(
        default=0.5, gt=0.0, lt=1.0, description="Contraction coefficient"
    )

    # stepping
    p: int = Field(default=1, ge=1, description="Vertices replaced per iteration")
    steps: int = Field(default=20, ge=1, description="Iterations per batch")

    # termination
    max_evaluations: int = Field(default=300, ge=1)
    tol: float = Field(default=1.0e-6, ge=0.0)

    def to_minimizer_config(self) -> MinimizerConfig:
        """
        Convert to a native MinimizerConfig.

        Returns:
            MinimizerConfig instance reflecting these settings.
        """
        return MinimizerConfig(
            reflect=self.reflect,
            extend=self.extend,
            contract=self.contract,
            p=self.p,
            steps=self.steps,
            max_evaluations=self.max_evaluations,
            tol=self.tol,
        )


def settings_from_mapping(data: dict[str, Any] | None) -> NelderMeadSettings:
    """
    Validate a mapping of settings.

    Args:
        data: Settings mapping, optionally nested under ``nelder_mead``.

    Raises:
        InvalidConfigurationError: If the mapping fails validation.

    Returns:
        Validated settings.
    """
    payload = data or {}
    if isinstance(payload.get(SETTINGS_KEY), dict):
        payload = payload[SETTINGS_KEY]
    try:
        return NelderMeadSettings.model_validate(payload)
    except ValidationError as exc:
        msg = f"Invalid configuration: {exc}"
        raise InvalidConfigurationError(
            msg, code=ErrorCode.INVALID_CONFIGURATION
        ) from exc


def load_settings(path: str | Path) -> NelderMeadSettings:
    """
    Read settings from a YAML file.

    Args:
        path: Path to the YAML document.

    Raises:
        InvalidConfigurationError: If the document is not a mapping or fails
            validation.

    Returns:
        Validated settings.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        data = YAML(typ="safe").load(f)
    if data is not None and not isinstance(data, dict):
        raise_invalid_configuration(
            f"expected a mapping at the top of {path}, got {type(data).__name__}"
        )
    return settings_from_mapping(data)
