"""PixelScatter aggregation and layout engine."""

from pixelscatter.engine.registry import stage, Layer, get_registry
from pixelscatter.engine.context import Pixel, PointSet, RenderContext
from pixelscatter.engine.config import RenderConfig
from pixelscatter.engine.pipeline import Pipeline

__all__ = [
    "stage",
    "Layer",
    "get_registry",
    "Pixel",
    "PointSet",
    "RenderContext",
    "RenderConfig",
    "Pipeline",
]
