"""Math helpers — kurtosis, histogram equalization, rounding. No engine imports."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

import numpy as np

# Canvas edge (in cells) that the auto init level treats as level -1.
_BASE_DIMENSION = 1000
_BASE_LEVEL = -1


def round_half_up(value: float) -> int:
    """Round .5 towards +inf, so 2.5 -> 3 and -2.5 -> -2."""
    return int(math.floor(value + 0.5))


def clamp(low: float, high: float, value: float) -> float:
    return max(min(value, high), low)


def calculate_kurtosis(values: Sequence[float]) -> float:
    """Excess kurtosis of ``values`` centered on the median rather than the mean.

    A list with zero spread has no fourth-moment contribution, so it returns
    ``-3.0`` (0 - 3), the limit of the general formula.
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return -3.0
    median = float(np.median(arr))
    std_dev = float(np.sqrt(np.mean((arr - median) ** 2)))
    if std_dev == 0:
        return -3.0
    z_scores = (arr - median) / std_dev
    return float(np.mean(z_scores**4)) - 3.0


def equalize_hist(observations: Iterable[tuple[float, float]]) -> dict[float, float]:
    """Map each value to its cumulative weight share (histogram equalization).

    ``observations`` are ``(value, weight)`` pairs. Equal values are grouped,
    so the returned grey for a value is the total weight of every value
    <= it divided by the total weight. Output range is ``[0, 1]``.
    """
    weights: dict[float, float] = {}
    for value, weight in observations:
        weights[value] = weights.get(value, 0.0) + weight

    if not weights:
        return {}

    ordered = sorted(weights)
    cumulative = np.cumsum([weights[v] for v in ordered])
    total = float(cumulative[-1])
    if total <= 0:
        # Every observation carries zero weight: nothing to equalize against.
        return {v: 1.0 for v in ordered}
    return {v: float(c) / total for v, c in zip(ordered, cumulative)}


def determine_init_level(canvas_width: int, canvas_height: int) -> int:
    """Pick the starting grid level so the initial mesh stays near 1000 columns.

    A 1000-cell canvas starts at level -1 (2x2 canvas cells per grid cell);
    every doubling of the canvas lowers the level by one.
    """
    max_dimension = max(canvas_width, canvas_height)
    power_of_two = math.log2(max_dimension / _BASE_DIMENSION)
    return round_half_up(_BASE_LEVEL - power_of_two)
