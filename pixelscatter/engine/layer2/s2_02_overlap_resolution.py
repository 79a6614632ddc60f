"""S2.02 — Overlap Resolution.

A canvas cell claimed by several clusters stays with the one carrying the
most area per class (area size / class count, measured at construction);
every other claimant excludes it for good.
"""

from __future__ import annotations

import logging

from pixelscatter.engine.context import RenderContext
from pixelscatter.engine.registry import Layer, stage

logger = logging.getLogger(__name__)


def rank_claimants(claimants: list[int], stats: list[tuple[int, int, int]]) -> list[int]:
    """Claimants ordered by area-per-class, best first (stable on ties)."""
    return sorted(claimants, key=lambda i: -stats[i][2] / stats[i][1])


@stage(
    id="S2.02",
    layer=Layer.RESOLUTION,
    dependencies=["S2.01"],
    description="Resolve canvas cells claimed by more than one cluster",
)
def overlap_resolution(ctx: RenderContext) -> None:
    removed = 0
    for key, claimants in ctx.contested.items():
        for i in rank_claimants(claimants, ctx.cluster_stats)[1:]:
            ctx.clusters[i].exclude(key)
            removed += 1
    logger.debug("Overlap resolution removed %d claims", removed)
