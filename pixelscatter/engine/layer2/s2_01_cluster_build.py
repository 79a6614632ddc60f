"""S2.01 — Cluster Construction.

Turn every finalized component into a Cluster: its usable canvas cells,
the canvas cells its points touch, per-class counts and a per-cell label
histogram (preference weights) relative to the cluster's bounding box.

At level >= 0 a grid cell is at most one canvas cell, so two components
finalized at different depths can claim the same canvas cell. Those
contested cells are recorded for the overlap resolver.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from pixelscatter.engine.cluster import Cluster
from pixelscatter.engine.context import CellKey, RenderContext
from pixelscatter.engine.mesh import Cell
from pixelscatter.engine.registry import Layer, stage

logger = logging.getLogger(__name__)


def _coarse_area(cell: Cell, rows: int, cols: int) -> set[CellKey]:
    """Every canvas cell covered by a coarse cell, clipped to the canvas."""
    y0, x0 = int(cell.y), int(cell.x)
    y1 = min(int(math.ceil(cell.y + cell.h)), rows)
    x1 = min(int(math.ceil(cell.x + cell.w)), cols)
    return {(gy, gx) for gy in range(y0, y1) for gx in range(x0, x1)}


def build_cluster(ctx: RenderContext, cells: list[Cell]) -> Cluster:
    ps = ctx.points
    level = cells[0].level
    idx = np.concatenate([c.points for c in cells])
    rows = np.floor(ps.y[idx]).astype(np.int64)
    cols = np.floor(ps.x[idx]).astype(np.int64)
    labels = ps.labels[idx]

    area: set[CellKey] = set()
    if level < 0:
        for cell in cells:
            area |= _coarse_area(cell, ctx.canvas_height, ctx.canvas_width)
        point_area = set(zip(rows.tolist(), cols.tolist()))
    else:
        area = {(int(math.floor(c.y)), int(math.floor(c.x))) for c in cells}
        point_area = set()

    origin_row = min(int(math.floor(c.y)) for c in cells)
    origin_col = min(int(math.floor(c.x)) for c in cells)

    triples, counts = np.unique(
        np.stack([rows - origin_row, cols - origin_col, labels], axis=1),
        axis=0,
        return_counts=True,
    )
    preference: dict[CellKey, dict[int, int]] = {}
    class_counts: dict[int, int] = {}
    for (dy, dx, label), n in zip(triples.tolist(), counts.tolist()):
        preference.setdefault((dy, dx), {})[label] = n
        class_counts[label] = class_counts.get(label, 0) + n

    return Cluster(
        origin_row=origin_row,
        origin_col=origin_col,
        class_counts=class_counts,
        preference=preference,
        level=level,
        area=area,
        point_area=point_area,
        non_outlier_mass=ctx.config.non_outlier_mass_clamped,
        outlier_emphasis=ctx.config.outlier_emphasis,
    )


@stage(
    id="S2.01",
    layer=Layer.RESOLUTION,
    dependencies=["S1.01"],
    description="Build finalized clusters and record contested canvas cells",
)
def cluster_build(ctx: RenderContext) -> None:
    owners: dict[CellKey, list[int]] = {}
    contested: dict[CellKey, list[int]] = {}
    clusters: list[Cluster] = []
    stats: list[tuple[int, int, int]] = []

    for i, cells in enumerate(ctx.components):
        cluster = build_cluster(ctx, cells)
        if cluster.level >= 0:
            for key in cluster.area:
                claimants = owners.setdefault(key, [])
                if claimants and claimants[-1] != i:
                    contested[key] = claimants
                claimants.append(i)
        clusters.append(cluster)
        stats.append((cluster.total_points, len(cluster.class_counts), len(cluster.area)))

    ctx.clusters = clusters
    ctx.cluster_stats = stats
    ctx.contested = contested
    logger.info(
        "Built %d clusters, %d contested canvas cells",
        len(clusters),
        len(contested),
    )
