"""S0.01 — Rescale Points.

Map the raw data extent onto ``[0, canvas - epsilon)`` on each axis so no
point lands exactly on the far canvas edge. A degenerate axis (all values
equal) maps to the middle of the canvas.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pixelscatter.engine.context import RenderContext
from pixelscatter.engine.registry import Layer, stage

# Margin kept off the far canvas edge to avoid boundary aliasing.
SCALE_EPSILON = 1e-6


def scale_axis(values: NDArray[np.float64], extent: float) -> NDArray[np.float64]:
    """Linear map from [min, max] of ``values`` onto [0, extent - epsilon].

    Works on halved values so a span wider than the float range (e.g.
    -1e308 .. 1e308) stays finite.
    """
    half = values / 2
    low, high = float(half.min()), float(half.max())
    upper = extent - SCALE_EPSILON
    if high == low:
        return np.full_like(values, upper / 2)
    return np.clip((half - low) / (high - low) * upper, 0.0, upper)


@stage(
    id="S0.01",
    layer=Layer.PREPARATION,
    description="Rescale point coordinates into the canvas extent",
)
def scale_points(ctx: RenderContext) -> None:
    ps = ctx.points
    ps.x = scale_axis(ps.x, ctx.canvas_width)
    ps.y = scale_axis(ps.y, ctx.canvas_height)
