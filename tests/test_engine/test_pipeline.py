"""Tests for the pipeline orchestrator."""

import pytest

from pixelscatter.engine.context import Pixel, RenderContext
from pixelscatter.engine.pipeline import Pipeline
from pixelscatter.engine.registry import Layer, StageRegistry, StageSpec
from tests.conftest import make_context


def _ctx(**config) -> RenderContext:
    return make_context([(0.0, 0.0)], [0], **config)


def test_pipeline_runs_stages():
    reg = StageRegistry()
    results = []

    def s1(ctx: RenderContext) -> None:
        results.append("s1")

    def s2(ctx: RenderContext) -> None:
        results.append("s2")

    reg.register(StageSpec(id="S0.01", layer=Layer.PREPARATION, fn=s1))
    reg.register(StageSpec(id="S0.02", layer=Layer.PREPARATION, fn=s2, dependencies=["S0.01"]))

    ctx = Pipeline(registry=reg).run(_ctx())

    assert results == ["s1", "s2"]
    assert ctx.completed_stages == {"S0.01", "S0.02"}
    assert set(ctx.stage_timings) == {"S0.01", "S0.02"}


def test_pipeline_aborts_on_error():
    reg = StageRegistry()
    ran = []

    def fail(ctx: RenderContext) -> None:
        raise ValueError("test error")

    def layout(ctx: RenderContext) -> None:
        ran.append("layout")
        ctx.pixels = [Pixel(0, 0, 0)]

    reg.register(StageSpec(id="S0.01", layer=Layer.PREPARATION, fn=fail))
    reg.register(StageSpec(id="S3.01", layer=Layer.LAYOUT, fn=layout, dependencies=["S0.01"]))

    ctx = _ctx()
    with pytest.raises(ValueError, match="test error"):
        Pipeline(registry=reg).run(ctx)

    assert "test error" in ctx.errors["S0.01"]
    assert ran == []
    assert ctx.pixels is None


def test_density_stages_gated_by_config():
    reg = StageRegistry()
    ran = []
    reg.register(StageSpec(id="S2.01", layer=Layer.RESOLUTION, fn=lambda c: ran.append("build")))
    reg.register(
        StageSpec(
            id="S2.03",
            layer=Layer.RESOLUTION,
            fn=lambda c: ran.append("cull"),
            dependencies=["S2.01"],
            tags={"density"},
        )
    )

    Pipeline(registry=reg).run(_ctx(density_culling=False))
    assert ran == ["build"]

    ran.clear()
    Pipeline(registry=reg).run(_ctx(density_culling=True))
    assert ran == ["build", "cull"]


def test_run_streaming_events():
    reg = StageRegistry()

    def with_progress(ctx: RenderContext) -> None:
        ctx.report_progress(0.5)
        ctx.report_progress(1.0)

    reg.register(StageSpec(id="S0.01", layer=Layer.PREPARATION, fn=with_progress))
    reg.register(StageSpec(id="S0.02", layer=Layer.PREPARATION, fn=lambda c: None, dependencies=["S0.01"]))

    ctx = _ctx()
    events = list(Pipeline(registry=reg).run_streaming(ctx))

    assert [(e["stage_id"], e["status"]) for e in events] == [
        ("S0.01", "running"),
        ("S0.01", "running"),
        ("S0.01", "running"),
        ("S0.01", "ok"),
        ("S0.02", "running"),
        ("S0.02", "ok"),
    ]
    assert [e["sub_progress"] for e in events if "sub_progress" in e] == [0.5, 1.0]
    assert events[-1]["index"] == 1 and events[-1]["total"] == 2
    assert ctx.completed_stages == {"S0.01", "S0.02"}
    assert ctx.progress_callback is None


def test_run_streaming_reports_error_then_raises():
    reg = StageRegistry()

    def fail(ctx: RenderContext) -> None:
        raise RuntimeError("boom")

    reg.register(StageSpec(id="S0.01", layer=Layer.PREPARATION, fn=fail))

    ctx = _ctx()
    stream = Pipeline(registry=reg).run_streaming(ctx)
    assert next(stream)["status"] == "running"
    error = next(stream)
    assert error["status"] == "error"
    assert error["error"] == "boom"
    with pytest.raises(RuntimeError):
        next(stream)
    assert ctx.errors == {"S0.01": "boom"}

