"""S3.01 — Cluster Layout.

Lay out each cluster and flatten the results into one pixel list. The
list is published on the context only after every cluster succeeded.
"""

from __future__ import annotations

import logging

from pixelscatter.engine.context import Pixel, RenderContext
from pixelscatter.engine.registry import Layer, stage

logger = logging.getLogger(__name__)


@stage(
    id="S3.01",
    layer=Layer.LAYOUT,
    dependencies=["S2.02"],
    description="Allocate, resolve and match labels to pixels per cluster",
)
def cluster_layout(ctx: RenderContext) -> None:
    pixels: list[Pixel] = []
    n = len(ctx.clusters)
    for i, cluster in enumerate(ctx.clusters):
        pixels.extend(cluster.mini_layout())
        if n:
            ctx.report_progress((i + 1) / n)

    ctx.pixels = pixels
    logger.info("Layout produced %d pixels from %d clusters", len(pixels), n)
