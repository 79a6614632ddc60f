"""Render result models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from pixelscatter.engine.context import Pixel
from pixelscatter.models.dataset import DatasetSummary


class RenderResult(BaseModel):
    pixels: list[Pixel] = Field(default_factory=list)
    summary: DatasetSummary = Field(default_factory=DatasetSummary)
    init_level: int = 0
    cluster_count: int = 0
    refinement_rounds: int = 0
    processing_time_ms: float = 0.0
    stage_timings: dict[str, float] = Field(default_factory=dict)
