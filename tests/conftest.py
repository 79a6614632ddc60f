"""Shared test fixtures."""

from __future__ import annotations

import numpy as np
import pytest

from pixelscatter.engine.config import RenderConfig
from pixelscatter.engine.context import PointSet, RenderContext


# Two labels on the corners of a 100x100 data square.
CORNER_RECORDS = [
    {"x": 0.0, "y": 0.0, "label": 0},
    {"x": 100.0, "y": 100.0, "label": 0},
    {"x": 0.0, "y": 100.0, "label": 1},
    {"x": 100.0, "y": 0.0, "label": 1},
]


def make_point_set(coords: list[tuple[float, float]], labels: list[int]) -> PointSet:
    """PointSet already in canvas units; local offsets start at the raw coordinates."""
    xs = np.array([c[0] for c in coords], dtype=np.float64)
    ys = np.array([c[1] for c in coords], dtype=np.float64)
    return PointSet(
        x=xs,
        y=ys,
        labels=np.array(labels, dtype=np.int64),
        local_x=xs.copy(),
        local_y=ys.copy(),
    )


def make_context(
    coords: list[tuple[float, float]],
    labels: list[int],
    **config: object,
) -> RenderContext:
    return RenderContext(points=make_point_set(coords, labels), config=RenderConfig(**config))


@pytest.fixture
def corner_records() -> list[dict]:
    return [dict(r) for r in CORNER_RECORDS]


@pytest.fixture
def scattered_single_label() -> list[dict]:
    rng = np.random.default_rng(42)
    xs = rng.random(1000)
    ys = rng.random(1000)
    return [{"x": float(x), "y": float(y), "label": 7} for x, y in zip(xs, ys)]


@pytest.fixture
def mixed_blobs() -> list[dict]:
    """Three labels: two dense blobs plus a thin sprinkle of a rare class."""
    rng = np.random.default_rng(3)
    records = []
    for label, center, n in ((0, (0.3, 0.3), 3000), (1, (0.7, 0.6), 2000), (2, (0.5, 0.5), 60)):
        pts = rng.normal(loc=center, scale=0.08, size=(n, 2))
        records.extend({"x": float(x), "y": float(y), "label": label} for x, y in pts)
    return records
