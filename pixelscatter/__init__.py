"""PixelScatter — render large labeled scatterplots as a bounded set of pixels."""

from pixelscatter.engine.config import RenderConfig
from pixelscatter.engine.context import Pixel
from pixelscatter.errors import ConfigError, InputError, InvariantViolation, PixelScatterError
from pixelscatter.main import configure_logging, render_scatter, render_scatter_streaming

__all__ = [
    "RenderConfig",
    "Pixel",
    "render_scatter",
    "render_scatter_streaming",
    "configure_logging",
    "PixelScatterError",
    "InputError",
    "ConfigError",
    "InvariantViolation",
]
