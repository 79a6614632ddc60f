"""Pipeline orchestrator — runs stages in dependency order with adaptive gating."""

from __future__ import annotations

import logging
import time
from collections.abc import Generator
from typing import Any

from pixelscatter.engine.context import RenderContext
from pixelscatter.engine.registry import StageRegistry, StageSpec, get_registry

logger = logging.getLogger(__name__)


class Pipeline:
    """Orchestrates the render stages.

    A failing stage aborts the render: its error is recorded on the context
    and re-raised, and ``ctx.pixels`` is left unset.
    """

    def __init__(self, registry: StageRegistry | None = None) -> None:
        self.registry = registry or get_registry()

    def run(self, ctx: RenderContext) -> RenderContext:
        """Run the full pipeline on the given context."""
        start = time.perf_counter()
        ordered = self._ordered(ctx)

        logger.info("Pipeline: %d stages queued for %d points", len(ordered), ctx.num_points)

        for spec in ordered:
            t0 = time.perf_counter()
            try:
                spec.fn(ctx)
            except Exception as e:
                ctx.errors[spec.id] = str(e)
                logger.warning("  %s FAILED: %s", spec.id, e)
                raise
            ctx.completed_stages.add(spec.id)
            elapsed = (time.perf_counter() - t0) * 1000
            ctx.stage_timings[spec.id] = round(elapsed, 1)
            logger.debug("  %s completed in %.1fms", spec.id, elapsed)

        total = (time.perf_counter() - start) * 1000
        logger.info(
            "Pipeline complete: %d/%d stages in %.0fms",
            len(ctx.completed_stages),
            len(ordered),
            total,
        )
        return ctx

    def run_streaming(self, ctx: RenderContext) -> Generator[dict[str, Any], None, None]:
        """Run the pipeline, yielding a progress dict before and after each stage.

        The caller's ``ctx`` is mutated in-place, so after the generator is
        exhausted the context contains all results (same as ``run()``). A
        failing stage yields an ``error`` event and then re-raises.
        """
        ordered = self._ordered(ctx)
        total = len(ordered)
        sub_events: list[dict[str, Any]] = []

        for i, spec in enumerate(ordered):
            base = {
                "stage_id": spec.id,
                "description": spec.description,
                "layer": spec.layer.name,
                "index": i,
                "total": total,
            }
            yield {**base, "elapsed_ms": 0.0, "status": "running", "error": ""}

            def _on_sub_progress(pct: float, _base=base) -> None:
                sub_events.append(
                    {**_base, "elapsed_ms": 0.0, "status": "running", "error": "",
                     "sub_progress": round(pct, 2)}
                )

            ctx.progress_callback = _on_sub_progress
            t0 = time.perf_counter()
            try:
                spec.fn(ctx)
            except Exception as e:
                ctx.errors[spec.id] = str(e)
                elapsed_ms = round((time.perf_counter() - t0) * 1000, 1)
                yield {**base, "elapsed_ms": elapsed_ms, "status": "error", "error": str(e)}
                raise
            finally:
                ctx.progress_callback = None

            ctx.completed_stages.add(spec.id)
            yield from sub_events
            sub_events.clear()

            elapsed_ms = round((time.perf_counter() - t0) * 1000, 1)
            ctx.stage_timings[spec.id] = elapsed_ms
            yield {**base, "elapsed_ms": elapsed_ms, "status": "ok", "error": ""}

    def _ordered(self, ctx: RenderContext) -> list[StageSpec]:
        return self.registry.resolve_order(skip=self._adaptive_gate(ctx))

    def _adaptive_gate(self, ctx: RenderContext) -> set[str]:
        """Stages to skip for this render.

        - Density culling off: skip every stage tagged ``density``.
        """
        skip: set[str] = set()
        if not ctx.config.density_culling:
            skip |= self.registry.tagged("density")
        return skip


def create_pipeline() -> Pipeline:
    """Pipeline over the global stage registry."""
    return Pipeline()
