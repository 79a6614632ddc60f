"""Tests for Layer 0 stages — rescaling and the initial mesh."""

import numpy as np
import pytest

from pixelscatter.engine.layer0.s0_01_scale_points import SCALE_EPSILON, scale_axis, scale_points
from pixelscatter.engine.layer0.s0_02_initial_mesh import initial_mesh, resolve_init_level
from pixelscatter.engine.registry import Layer, get_registry
from tests.conftest import make_context


def test_layer0_registers_2_stages():
    reg = get_registry()
    assert [s.id for s in reg.all() if s.layer == Layer.PREPARATION] == ["S0.01", "S0.02"]


def test_scale_axis_maps_extent_with_margin():
    scaled = scale_axis(np.array([-5.0, 0.0, 5.0]), 100)
    assert scaled[0] == 0.0
    assert scaled[2] == 100 - SCALE_EPSILON
    assert scaled[1] == (100 - SCALE_EPSILON) / 2


def test_scale_axis_degenerate_goes_to_middle():
    scaled = scale_axis(np.array([3.0, 3.0]), 10)
    assert np.all(scaled == (10 - SCALE_EPSILON) / 2)


def test_scale_axis_survives_full_float_span():
    scaled = scale_axis(np.array([-1e308, 1e308, 0.0]), 10)
    assert np.all(np.isfinite(scaled))
    assert scaled.tolist() == [0.0, 10 - SCALE_EPSILON, (10 - SCALE_EPSILON) / 2]


def test_scale_points_stays_inside_canvas():
    ctx = make_context([(1e6, -3.0), (2e6, 9.0), (1.5e6, 4.0)], [0, 1, 0],
                       canvas_width=64, canvas_height=32)
    scale_points(ctx)
    assert ctx.points.x.min() == 0.0
    assert ctx.points.x.max() < 64
    assert ctx.points.y.max() < 32


def test_resolve_init_level_modes():
    ctx = make_context([(0, 0)], [0], canvas_width=1000, canvas_height=1000)
    assert resolve_init_level(ctx) == -1
    ctx = make_context([(0, 0)], [0], init_level_mode="manual", init_level_manual=3)
    assert resolve_init_level(ctx) == 3


def test_initial_mesh_coarse_cells():
    ctx = make_context(
        [(0.5, 0.5), (1.5, 1.2), (5.0, 2.5), (7.9, 7.9)],
        [0, 1, 0, 1],
        canvas_width=8,
        canvas_height=8,
        init_level_mode="manual",
        init_level_manual=-1,
    )
    initial_mesh(ctx)

    mesh = ctx.mesh
    assert ctx.init_level == -1
    assert (mesh.rows, mesh.cols) == (4, 4)
    assert sorted(mesh.cells) == [(0, 0), (1, 2), (3, 3)]
    assert mesh[(0, 0)].points.tolist() == [0, 1]
    assert mesh[(1, 2)].w == 2.0
    assert (mesh[(1, 2)].x, mesh[(1, 2)].y) == (4.0, 2.0)
    assert ctx.points.local_x.tolist() == pytest.approx([0.5, 1.5, 1.0, 1.9])
    assert ctx.points.local_y[2] == 0.5


def test_initial_mesh_fine_cells_round_up_grid():
    ctx = make_context(
        [(0.1, 0.1), (2.9, 0.6)],
        [0, 0],
        canvas_width=3,
        canvas_height=1,
        init_level_mode="manual",
        init_level_manual=1,
    )
    initial_mesh(ctx)
    assert (ctx.mesh.rows, ctx.mesh.cols) == (2, 6)
    assert sorted(ctx.mesh.cells) == [(0, 0), (1, 5)]
    assert ctx.mesh.level == 1
