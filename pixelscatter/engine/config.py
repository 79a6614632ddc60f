"""Render configuration — controls partitioning depth and pixel allocation."""

from __future__ import annotations

import numbers
from dataclasses import dataclass, replace
from typing import Any

from pixelscatter.errors import ConfigError
from pixelscatter.utils.math_helpers import clamp

INIT_LEVEL_MODES = ("auto", "manual")

# Non-outlier mass target is clamped into this band before use.
NON_OUTLIER_MASS_MIN = 0.5
NON_OUTLIER_MASS_MAX = 1.0


@dataclass
class RenderConfig:
    """Options recognised by a render call."""

    # Output resolution in cells
    canvas_width: int = 900
    canvas_height: int = 900

    # Refinement: stop splitting when excess kurtosis <= this bound
    max_kurtosis: float = 10.0
    # Hard depth cap for refinement
    max_level: int = 4

    # Max multiplicative boost for rare classes
    outlier_emphasis: float = 10.0
    # Desired mass fraction claimed by non-outliers, in [0.5, 1]
    non_outlier_mass: float = 0.5

    # Initial grid level
    init_level_mode: str = "auto"
    init_level_manual: int = 0

    # Simulated transparency for sparse clusters
    density_culling: bool = True

    @property
    def non_outlier_mass_clamped(self) -> float:
        return clamp(NON_OUTLIER_MASS_MIN, NON_OUTLIER_MASS_MAX, self.non_outlier_mass)

    def with_overrides(self, **overrides: Any) -> RenderConfig:
        unknown = set(overrides) - set(self.__dataclass_fields__)
        if unknown:
            raise ConfigError(f"Unknown render option(s): {sorted(unknown)}")
        return replace(self, **overrides)

    def validate(self) -> RenderConfig:
        """Reject out-of-range options before any computation starts."""
        for name in ("canvas_width", "canvas_height"):
            value = getattr(self, name)
            if not _is_int(value) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        for name in ("max_level", "init_level_manual"):
            value = getattr(self, name)
            if not _is_int(value):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        if not _is_number(self.max_kurtosis) or self.max_kurtosis < 0:
            raise ConfigError(f"max_kurtosis must be >= 0, got {self.max_kurtosis!r}")
        if not _is_number(self.outlier_emphasis) or self.outlier_emphasis < 1:
            raise ConfigError(f"outlier_emphasis must be >= 1, got {self.outlier_emphasis!r}")
        if not _is_number(self.non_outlier_mass):
            raise ConfigError(f"non_outlier_mass must be a number, got {self.non_outlier_mass!r}")
        if self.init_level_mode not in INIT_LEVEL_MODES:
            raise ConfigError(
                f"init_level_mode must be one of {INIT_LEVEL_MODES}, got {self.init_level_mode!r}"
            )
        return self


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and value == value
