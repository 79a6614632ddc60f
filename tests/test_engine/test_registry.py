"""Tests for the stage registry."""

import pytest

from pixelscatter.engine.context import RenderContext
from pixelscatter.engine.registry import Layer, StageRegistry, StageSpec, get_registry


def _noop(ctx: RenderContext) -> None:
    pass


def _spec(sid, layer=Layer.PREPARATION, deps=(), tags=()):
    return StageSpec(id=sid, layer=layer, fn=_noop, dependencies=list(deps), tags=set(tags))


def test_duplicate_id_rejected():
    reg = StageRegistry()
    reg.register(_spec("S0.01"))
    with pytest.raises(ValueError, match="Duplicate"):
        reg.register(_spec("S0.01"))


def test_all_sorted_by_layer_then_id():
    reg = StageRegistry()
    reg.register(_spec("S1.01", Layer.REFINEMENT))
    reg.register(_spec("S0.02"))
    reg.register(_spec("S0.01"))
    assert [s.id for s in reg.all()] == ["S0.01", "S0.02", "S1.01"]


def test_resolve_order_follows_dependencies():
    reg = StageRegistry()
    reg.register(_spec("S0.01", deps=["S0.02"]))
    reg.register(_spec("S0.02"))
    assert [s.id for s in reg.resolve_order()] == ["S0.02", "S0.01"]


def test_resolve_order_lowest_ready_id_first():
    reg = StageRegistry()
    reg.register(_spec("S2.02", Layer.RESOLUTION))
    reg.register(_spec("S3.01", Layer.LAYOUT, deps=["S2.02"]))
    reg.register(_spec("S2.03", Layer.RESOLUTION, deps=["S2.02"]))
    assert [s.id for s in reg.resolve_order()] == ["S2.02", "S2.03", "S3.01"]


def test_resolve_order_skip_satisfies_dependency():
    reg = StageRegistry()
    reg.register(_spec("S2.02", Layer.RESOLUTION))
    reg.register(_spec("S2.03", Layer.RESOLUTION, deps=["S2.02"], tags=["density"]))
    reg.register(_spec("S3.01", Layer.LAYOUT, deps=["S2.03"]))

    skip = reg.tagged("density")
    assert skip == {"S2.03"}
    assert [s.id for s in reg.resolve_order(skip)] == ["S2.02", "S3.01"]


def test_resolve_order_detects_cycle():
    reg = StageRegistry()
    reg.register(_spec("S0.01", deps=["S0.02"]))
    reg.register(_spec("S0.02", deps=["S0.01"]))
    with pytest.raises(ValueError, match="Circular"):
        reg.resolve_order()


def test_render_chain_order():
    order = [s.id for s in get_registry().resolve_order()]
    assert order == ["S0.01", "S0.02", "S1.01", "S2.01", "S2.02", "S2.03", "S3.01"]
