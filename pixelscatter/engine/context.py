"""RenderContext — the single mutable state object flowing through all stages.

Per-point data → PointSet (numpy columns)
Per-render results → RenderContext.* (mesh, components, clusters, pixels, etc.)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple

import numpy as np
from numpy.typing import NDArray

from pixelscatter.engine.config import RenderConfig

if TYPE_CHECKING:
    from pixelscatter.engine.cluster import Cluster
    from pixelscatter.engine.mesh import Cell, Mesh

# Physical grid-cell identity: (row, col) on the canvas.
CellKey = tuple[int, int]


class Pixel(NamedTuple):
    """One physical output pixel and the label drawn there."""

    x: int
    y: int
    label: int


@dataclass
class PointSet:
    """Column store for the dataset.

    ``local_x``/``local_y`` hold each point's offset inside the cell that
    currently owns it; only ``Cell.split`` rewrites them.
    """

    x: NDArray[np.float64]
    y: NDArray[np.float64]
    labels: NDArray[np.int64]
    local_x: NDArray[np.float64] = field(default_factory=lambda: np.empty(0))
    local_y: NDArray[np.float64] = field(default_factory=lambda: np.empty(0))

    def __post_init__(self) -> None:
        if self.local_x.shape != self.x.shape:
            self.local_x = np.zeros_like(self.x)
        if self.local_y.shape != self.y.shape:
            self.local_y = np.zeros_like(self.y)

    def __len__(self) -> int:
        return int(self.x.shape[0])

    @property
    def label_count(self) -> int:
        return int(np.unique(self.labels).size)


@dataclass
class RenderContext:
    """Shared state flowing through the entire render."""

    points: PointSet
    config: RenderConfig = field(default_factory=RenderConfig)

    # --- Preparation (Layer 0) ---
    init_level: int | None = None
    mesh: Mesh | None = None

    # --- Refinement (Layer 1) ---
    # Finalized components, each the flat list of its cells
    components: list[list[Cell]] = field(default_factory=list)
    refinement_rounds: int = 0

    # --- Resolution (Layer 2) ---
    clusters: list[Cluster] = field(default_factory=list)
    # Canvas cell -> indices of every cluster claiming it (only contested cells)
    contested: dict[CellKey, list[int]] = field(default_factory=dict)
    # Per cluster, at construction: (point_count, class_count, area_size)
    cluster_stats: list[tuple[int, int, int]] = field(default_factory=list)
    # Cluster density -> equalized grey in [0, 1]
    density_greys: dict[float, float] = field(default_factory=dict)

    # --- Layout (Layer 3) ---
    # Stays None until layout finishes so a failed render exposes no partial output
    pixels: list[Pixel] | None = None

    # --- Pipeline metadata ---
    completed_stages: set[str] = field(default_factory=set)
    errors: dict[str, str] = field(default_factory=dict)
    stage_timings: dict[str, float] = field(default_factory=dict)
    progress_callback: Callable[[float], None] | None = None

    @property
    def num_points(self) -> int:
        return len(self.points)

    @property
    def canvas_width(self) -> int:
        return self.config.canvas_width

    @property
    def canvas_height(self) -> int:
        return self.config.canvas_height

    def report_progress(self, fraction: float) -> None:
        if self.progress_callback is not None:
            self.progress_callback(fraction)
