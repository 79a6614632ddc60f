"""S2.03 — Density Normalization.

Histogram-equalize cluster densities (points per area cell, weighted by
area) into a grey level in [0, 1], then drop the lowest-density cells of
each cluster so that sparse clusters occupy proportionally less of their
area. Coarse (negative-level) clusters are never culled below their point
footprint.
"""

from __future__ import annotations

import logging

from pixelscatter.engine.cluster import Cluster
from pixelscatter.engine.context import RenderContext
from pixelscatter.engine.registry import Layer, stage
from pixelscatter.utils.math_helpers import equalize_hist, round_half_up

logger = logging.getLogger(__name__)


def cull_count(cluster: Cluster, grey: float) -> int:
    pixels = len(cluster.area)
    if cluster.level < 0:
        floor_size = len(cluster.point_area)
        return max(floor_size - max(round_half_up(pixels * grey), floor_size), 0)
    return round_half_up(pixels * (1 - grey))


@stage(
    id="S2.03",
    layer=Layer.RESOLUTION,
    dependencies=["S2.02"],
    tags={"density"},
    description="Cull low-density cells via histogram-equalized cluster density",
)
def density_culling(ctx: RenderContext) -> None:
    observations = [c.density_estimate() for c in ctx.clusters]
    ctx.density_greys = equalize_hist(observations)

    culled = 0
    for cluster in ctx.clusters:
        grey = ctx.density_greys.get(cluster.density, 1.0)
        ranked = cluster.density_map()
        for key, _ in ranked[: cull_count(cluster, grey)]:
            cluster.exclude(key)
            culled += 1
    logger.info("Density culling removed %d cells", culled)
