"""Cluster — the unit of pixel-budget allocation and final layout.

A finalized component becomes one Cluster. Its layout runs in three steps:

1. ``allocate_budget`` splits the usable cells among the classes, boosting
   rare (outlier) classes so they stay visible.
2. ``resolve_contention`` turns the budget into a list of virtual,
   label-tagged cells: most-constrained label first, each taking its
   highest-preference cells.
3. ``mini_layout`` matches virtual labels to real cells by recursive
   median bisection, so every usable cell receives exactly one label.

Both 2 and 3 are greedy heuristics; they conserve budget and cover the
usable area but make no optimality claim.

Coordinates: ``area``, ``point_area`` and ``excluded`` hold canvas-absolute
``(row, col)`` keys. ``preference`` and ``layout`` are relative to
``(origin_row, origin_col)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pixelscatter.engine.context import CellKey, Pixel
from pixelscatter.errors import InvariantViolation
from pixelscatter.utils.math_helpers import clamp, round_half_up

logger = logging.getLogger(__name__)

# A virtual label placement: (dy, dx, label) in cluster-local coordinates.
Placement = tuple[int, int, int]


def outlier_tolerance(class_count: int, non_outlier_mass: float) -> float:
    """Share of the per-class average below which a class counts as an outlier."""
    if class_count <= 1:
        return 0.0
    return (1 - non_outlier_mass) * class_count / (class_count - 1)


@dataclass
class Cluster:
    origin_row: int
    origin_col: int
    # label -> point count, ascending label order
    class_counts: dict[int, int]
    # local (dy, dx) -> {label: point count}
    preference: dict[CellKey, dict[int, int]]
    level: int
    area: set[CellKey]
    point_area: set[CellKey]
    non_outlier_mass: float = 0.5
    outlier_emphasis: float = 10.0

    tolerance: float = field(init=False)
    # Exclusion log, in the order cells were removed from the usable area
    excluded: list[CellKey] = field(default_factory=list, init=False)
    pixel_budget: dict[int, int] = field(default_factory=dict, init=False)
    layout: list[Placement] = field(default_factory=list, init=False)
    outliers: list[tuple[int, int]] = field(default_factory=list, init=False)
    non_outliers: list[tuple[int, int]] = field(default_factory=list, init=False)
    density: float = field(default=0.0, init=False)

    def __post_init__(self) -> None:
        self.class_counts = dict(sorted(self.class_counts.items()))
        self.tolerance = outlier_tolerance(len(self.class_counts), self.non_outlier_mass)

    @property
    def total_points(self) -> int:
        return sum(self.class_counts.values())

    @property
    def usable_area(self) -> set[CellKey]:
        """True occupied footprint: coarse (negative-level) cells use the point footprint."""
        return self.area if self.level >= 0 else self.point_area

    # ── Area bookkeeping ──

    def exclude(self, key: CellKey) -> None:
        """Permanently remove a canvas cell from the usable area."""
        self.excluded.append(key)
        self.area.discard(key)
        self.point_area.discard(key)

    def to_local(self, key: CellKey) -> CellKey:
        return (key[0] - self.origin_row, key[1] - self.origin_col)

    def local_weight(self, key: CellKey) -> int:
        """Sum of preference weights at a canvas-absolute cell."""
        return sum(self.preference.get(self.to_local(key), {}).values())

    # ── Density ──

    def density_estimate(self) -> tuple[float, int]:
        """(points per area cell, area size); (0, 0) once the area is empty."""
        if not self.area:
            return (0.0, 0)
        self.density = self.total_points / len(self.area)
        return (self.density, len(self.area))

    def density_map(self) -> list[tuple[CellKey, int]]:
        """Usable cells ranked ascending by local preference density."""
        ranked = [(key, self.local_weight(key)) for key in self.usable_area]
        ranked.sort(key=lambda item: (item[1], item[0]))
        return ranked

    # ── Allocation ──

    def outlier_separation(self) -> None:
        total = self.total_points
        threshold = self.tolerance * total / len(self.class_counts)
        self.outliers = []
        self.non_outliers = []
        for label, count in self.class_counts.items():
            if count < threshold:
                self.outliers.append((label, count))
            else:
                self.non_outliers.append((label, count))
        self.outliers.sort(key=lambda item: item[1])
        self.non_outliers.sort(key=lambda item: item[1])

    def emphasis(self) -> float:
        """Outlier boost, capped so outliers cannot starve the smallest non-outlier."""
        if not self.outliers:
            return 1.0
        total = self.total_points
        non_outlier_total = sum(c for _, c in self.non_outliers)
        outlier_max = self.outliers[-1][1]
        outlier_sum = sum(c for _, c in self.outliers)
        smallest_share = self.non_outliers[0][1] / non_outlier_total
        cap = total / (outlier_sum + outlier_max / smallest_share)
        return min(self.outlier_emphasis, cap)

    def allocate_budget(self) -> dict[int, int]:
        """Split the usable cells among classes, outliers first.

        Each class claims at least one pixel. A claim that would reach the
        remaining budget takes all of it and stops the walk. Rounding residue
        left after the last non-outlier goes to the largest non-outlier.
        """
        self.outlier_separation()
        self.pixel_budget = {}

        total = self.total_points
        total_pixels = len(self.usable_area)
        remaining = total_pixels
        if remaining <= 0:
            return self.pixel_budget

        boost = self.emphasis()
        for label, count in self.outliers:
            claim = max(round_half_up(boost * count / total * total_pixels), 1)
            if claim >= remaining:
                self.pixel_budget[label] = remaining
                return self.pixel_budget
            remaining -= claim
            self.pixel_budget[label] = claim

        non_outlier_total = sum(c for _, c in self.non_outliers)
        non_outlier_pixels = remaining
        for label, count in self.non_outliers:
            claim = max(round_half_up(count / non_outlier_total * non_outlier_pixels), 1)
            if claim >= remaining:
                self.pixel_budget[label] = remaining
                return self.pixel_budget
            remaining -= claim
            self.pixel_budget[label] = claim

        if remaining and self.non_outliers:
            self.pixel_budget[self.non_outliers[-1][0]] += remaining
        return self.pixel_budget

    # ── Contention ──

    def _candidate_pools(self) -> dict[int, tuple[dict[CellKey, int], dict[CellKey, int]]]:
        """Per label: (primary pool over usable cells, secondary pool over excluded cells)."""
        pools: dict[int, tuple[dict[CellKey, int], dict[CellKey, int]]] = {}
        for key in sorted(self.usable_area):
            local = self.to_local(key)
            for label, weight in self.preference.get(local, {}).items():
                pools.setdefault(label, ({}, {}))[0][local] = weight
        for key in self.excluded:
            local = self.to_local(key)
            for label, weight in self.preference.get(local, {}).items():
                pools.setdefault(label, ({}, {}))[1][local] = weight
        return pools

    def resolve_contention(self) -> list[Placement]:
        """Place every label's budget on virtual cells, most constrained label first.

        The constraint ratio is primary-pool size over budget (ties: lower
        label). A label takes its best primary cells, then its best secondary
        cells. When even both pools are smaller than the budget, the whole
        candidate set is tiled as often as it fits and the best cells fill the
        remainder, so the same cell may be claimed more than once.
        """
        self.allocate_budget()
        self.layout = []

        pools = self._candidate_pools()
        pending = {label: pools[label] for label in sorted(pools) if label in self.pixel_budget}

        while pending:
            label = min(pending, key=lambda lb: len(pending[lb][0]) / self.pixel_budget[lb])
            primary, secondary = pending.pop(label)
            budget = self.pixel_budget[label]
            available = len(primary) + len(secondary)

            if available == 0:
                raise InvariantViolation(
                    f"Label {label} has budget {budget} but no candidate cells"
                )

            if budget <= available:
                if budget <= len(primary):
                    claimed = _best(primary, budget)
                else:
                    claimed = list(primary.items()) + _best(secondary, budget - len(primary))
                self.layout.extend((dy, dx, label) for (dy, dx), _ in claimed)
                claimed_keys = {key for key, _ in claimed}
            else:
                entries = list(primary.items()) + list(secondary.items())
                multiple = budget // available
                for _ in range(multiple):
                    self.layout.extend((dy, dx, label) for (dy, dx), _ in entries)
                rest = _best(dict(entries), budget - multiple * available)
                self.layout.extend((dy, dx, label) for (dy, dx), _ in rest)
                claimed_keys = {key for key, _ in entries}

            for other_primary, other_secondary in pending.values():
                for key in claimed_keys & other_primary.keys():
                    other_secondary[key] = other_primary.pop(key)

        return self.layout

    # ── Matching ──

    def mini_layout(self) -> list[Pixel]:
        """Assign exactly one label to every usable cell, in canvas coordinates."""
        area = self.usable_area
        if not area:
            return []

        if len(self.class_counts) == 1:
            label = next(iter(self.class_counts))
            return [Pixel(x=col, y=row, label=label) for row, col in sorted(area)]

        virtual = self.resolve_contention()
        cells = [self.to_local(key) for key in sorted(area)]
        if len(virtual) > len(cells):
            raise InvariantViolation(
                f"Budget {len(virtual)} exceeds usable area {len(cells)}"
            )
        self.layout = bisect_match(virtual, cells)
        return [
            Pixel(x=self.origin_col + dx, y=self.origin_row + dy, label=label)
            for dy, dx, label in self.layout
        ]


def _best(pool: dict[CellKey, int], n: int) -> list[tuple[CellKey, int]]:
    """The ``n`` highest-weight entries of a pool (stable for equal weights)."""
    if n <= 0:
        return []
    return sorted(pool.items(), key=lambda item: -item[1])[:n]


def bisect_match(virtual: list[Placement], cells: list[CellKey]) -> list[Placement]:
    """Match virtual placements to real cells by recursive median bisection.

    Each region is split on the axis with the larger cell span, at the
    median of the virtual placements along that axis (clamped to the cell
    extent). Both lists are cut at the same rank, so a region always holds
    no more placements than cells. A region with one placement gives its
    label to its first cell.
    """
    out: list[Placement] = []
    regions = [(list(virtual), list(cells))]
    while regions:
        placements, region = regions.pop()
        if not placements:
            continue
        if not region:
            raise InvariantViolation(f"{len(placements)} labels left without a cell")
        if len(placements) == 1:
            dy, dx = region[0]
            out.append((dy, dx, placements[0][2]))
            continue

        ys = [r for r, _ in region]
        xs = [c for _, c in region]
        y_low, y_high = min(ys), max(ys)
        x_low, x_high = min(xs), max(xs)
        middle = len(placements) // 2

        if y_high - y_low >= x_high - x_low:
            placements.sort(key=lambda p: p[0])
            line = clamp(y_low, y_high, placements[middle][0])
            first = [g for g in region if g[0] <= line]
            second = [g for g in region if g[0] > line]
            if not first or not second:
                first = [g for g in region if g[0] < line]
                second = [g for g in region if g[0] >= line]
        else:
            placements.sort(key=lambda p: p[1])
            line = clamp(x_low, x_high, placements[middle][1])
            first = [g for g in region if g[1] < line]
            second = [g for g in region if g[1] >= line]
            if not first or not second:
                first = [g for g in region if g[1] <= line]
                second = [g for g in region if g[1] > line]

        cut = len(first)
        regions.append((placements[:cut], first))
        regions.append((placements[cut:], second))
    return out
