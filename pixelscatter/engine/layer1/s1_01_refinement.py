"""S1.01 — Refinement Driver.

cluster → filter → partition until every connected component is finalized.
A component is finalized when it has a single cell, has reached the
configured max level, or its per-cell point counts are flat enough
(excess kurtosis <= threshold). Everything else is split one level deeper
and clustered again.
"""

from __future__ import annotations

import logging
from collections import Counter

from pixelscatter.engine.config import RenderConfig
from pixelscatter.engine.context import RenderContext
from pixelscatter.engine.mesh import Component, Mesh
from pixelscatter.engine.registry import Layer, stage
from pixelscatter.utils.math_helpers import calculate_kurtosis

logger = logging.getLogger(__name__)


def is_final(component: Component, config: RenderConfig) -> bool:
    counts = component.counts
    return (
        len(counts) == 1
        or component.level >= config.max_level
        or calculate_kurtosis(counts) <= config.max_kurtosis
    )


def refine(mesh: Mesh, config: RenderConfig) -> tuple[list[Component], int]:
    """Run the refinement loop from ``mesh``; returns (finalized, rounds)."""
    finalized: list[Component] = []
    pending = [mesh]
    rounds = 0
    while pending:
        rounds += 1
        to_split: list[Mesh] = []
        for m in pending:
            for component in m.cluster():
                if is_final(component, config):
                    finalized.append(component)
                else:
                    to_split.append(component.mesh)
        logger.debug(
            "Refinement round %d: %d finalized so far, %d to split",
            rounds,
            len(finalized),
            len(to_split),
        )
        pending = [m.partition() for m in to_split]
    return finalized, rounds


@stage(
    id="S1.01",
    layer=Layer.REFINEMENT,
    dependencies=["S0.02"],
    description="Refine the mesh until every component is finalized",
)
def refinement(ctx: RenderContext) -> None:
    if ctx.mesh is None:
        raise ValueError("Initial mesh missing")

    finalized, rounds = refine(ctx.mesh, ctx.config)
    ctx.components = [c.cells for c in finalized]
    ctx.refinement_rounds = rounds

    levels = Counter(c.level for c in finalized)
    logger.info(
        "Refinement finished after %d rounds: %d components, levels %s",
        rounds,
        len(finalized),
        dict(sorted(levels.items())),
    )
