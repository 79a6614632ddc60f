"""S0.02 — Initial Mesh.

Resolve the starting level (auto or manual) and drop every point into the
cell of size ``2**-level`` that contains it. Negative levels give cells
coarser than one canvas cell, used as the starting resolution for dense data.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from pixelscatter.engine.context import RenderContext
from pixelscatter.engine.mesh import Cell, Mesh
from pixelscatter.engine.registry import Layer, stage
from pixelscatter.utils.math_helpers import determine_init_level

logger = logging.getLogger(__name__)


def resolve_init_level(ctx: RenderContext) -> int:
    config = ctx.config
    if config.init_level_mode == "auto":
        return determine_init_level(config.canvas_width, config.canvas_height)
    return int(config.init_level_manual)


@stage(
    id="S0.02",
    layer=Layer.PREPARATION,
    dependencies=["S0.01"],
    description="Bucket points into the initial grid mesh",
)
def initial_mesh(ctx: RenderContext) -> None:
    level = resolve_init_level(ctx)
    size = 2.0 ** -level
    cols = math.ceil(ctx.canvas_width / size)
    rows = math.ceil(ctx.canvas_height / size)

    ps = ctx.points
    col_idx = np.floor(ps.x / size).astype(np.int64)
    row_idx = np.floor(ps.y / size).astype(np.int64)
    ps.local_x = ps.x - col_idx * size
    ps.local_y = ps.y - row_idx * size

    # Group point indices by cell, keeping dataset order inside each cell
    flat = row_idx * cols + col_idx
    order = np.argsort(flat, kind="stable")
    keys, starts = np.unique(flat[order], return_index=True)
    groups = np.split(order, starts[1:])

    cells: dict[tuple[int, int], Cell] = {}
    for key, members in zip(keys.tolist(), groups):
        r, c = divmod(key, cols)
        cells[(r, c)] = Cell(
            quadrant=(0, 0),
            x=c * size,
            y=r * size,
            w=size,
            h=size,
            level=level,
            points=members.astype(np.int64),
        )

    ctx.init_level = level
    ctx.mesh = Mesh(cells, rows, cols, ps)
    logger.info(
        "Initial mesh: level %d, %dx%d grid, %d populated cells",
        level,
        rows,
        cols,
        len(cells),
    )
