"""Error taxonomy for a render call.

InputError and ConfigError are raised before any partitioning starts.
InvariantViolation marks an internal defect and is never expected at runtime.
"""

from __future__ import annotations


class PixelScatterError(Exception):
    """Base class for every error raised by a render call."""


class InputError(PixelScatterError, ValueError):
    """Empty or malformed dataset."""


class ConfigError(PixelScatterError, ValueError):
    """Out-of-range render configuration."""


class InvariantViolation(PixelScatterError, RuntimeError):
    """An allocation or matching assumption did not hold."""
