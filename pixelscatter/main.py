"""Render entry point: stage registration, logging setup, render_scatter()."""

from __future__ import annotations

import logging
import time
from collections.abc import Generator, Iterable
from typing import Any

from dotenv import load_dotenv

from pixelscatter.config import settings
from pixelscatter.engine.config import RenderConfig
from pixelscatter.engine.context import RenderContext
from pixelscatter.engine.pipeline import create_pipeline
from pixelscatter.models.dataset import DatasetSummary, load_points, summarize
from pixelscatter.models.responses import RenderResult

load_dotenv()

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Attach a stderr handler and set the package log level.

    Call this from an application entry point; importing the package leaves
    the host's logging untouched. ``level`` defaults to PIXELSCATTER_LOG_LEVEL.
    """
    name = (level or settings.pixelscatter_log_level).upper()
    logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
    logging.getLogger("pixelscatter").setLevel(getattr(logging, name, logging.INFO))


def _register_stages() -> None:
    """Import all stage modules so @stage decorators fire."""
    import importlib
    import pkgutil

    for layer_name in ["layer0", "layer1", "layer2", "layer3"]:
        package_name = f"pixelscatter.engine.{layer_name}"
        package = importlib.import_module(package_name)
        for _, module_name, _ in pkgutil.iter_modules(package.__path__):
            importlib.import_module(f"{package_name}.{module_name}")


def default_config() -> RenderConfig:
    """RenderConfig seeded from the process settings."""
    return RenderConfig(
        canvas_width=settings.default_canvas_width,
        canvas_height=settings.default_canvas_height,
        max_kurtosis=settings.default_max_kurtosis,
        max_level=settings.default_max_level,
        outlier_emphasis=settings.default_outlier_emphasis,
        non_outlier_mass=settings.default_non_outlier_mass,
        init_level_mode=settings.default_init_level_mode,
        init_level_manual=settings.default_init_level_manual,
        density_culling=settings.default_density_culling,
    )


def prepare_context(
    records: Iterable[Any],
    config: RenderConfig | None = None,
    **overrides: Any,
) -> RenderContext:
    """Validate config and dataset; raises ConfigError / InputError before any work."""
    config = (config or default_config()).with_overrides(**overrides).validate()
    points = load_points(records)
    return RenderContext(points=points, config=config)


def render_scatter(
    records: Iterable[Any],
    config: RenderConfig | None = None,
    **overrides: Any,
) -> RenderResult:
    """Render a labeled point dataset into at most canvas_width x canvas_height pixels.

    ``overrides`` are RenderConfig field names, applied on top of ``config``
    (or the settings defaults).
    """
    start = time.perf_counter()
    ctx = prepare_context(records, config, **overrides)
    summary = summarize(ctx.points)
    logger.info("Rendering %d points with %d labels", summary.point_count, summary.label_count)

    create_pipeline().run(ctx)
    return _result(ctx, summary, start)


def render_scatter_streaming(
    records: Iterable[Any],
    config: RenderConfig | None = None,
    **overrides: Any,
) -> Generator[dict[str, Any], None, RenderResult]:
    """Like ``render_scatter``, but yield a progress event around every stage.

    The RenderResult is the generator's return value (``StopIteration.value``,
    or the value of ``yield from``).
    """
    start = time.perf_counter()
    ctx = prepare_context(records, config, **overrides)
    summary = summarize(ctx.points)
    yield from create_pipeline().run_streaming(ctx)
    return _result(ctx, summary, start)


def _result(ctx: RenderContext, summary: DatasetSummary, start: float) -> RenderResult:
    elapsed = (time.perf_counter() - start) * 1000
    return RenderResult(
        pixels=ctx.pixels or [],
        summary=summary,
        init_level=ctx.init_level or 0,
        cluster_count=len(ctx.clusters),
        refinement_rounds=ctx.refinement_rounds,
        processing_time_ms=round(elapsed, 1),
        stage_timings=ctx.stage_timings,
    )


_register_stages()
