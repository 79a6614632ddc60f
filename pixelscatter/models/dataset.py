"""Dataset input models."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from pixelscatter.engine.context import PointSet
from pixelscatter.errors import InputError


class PointRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    x: float = Field(..., allow_inf_nan=False, description="Data-space x coordinate")
    y: float = Field(..., allow_inf_nan=False, description="Data-space y coordinate")
    label: int = Field(..., ge=-(2**63), le=2**63 - 1, description="Integer class label (int64)")


class DatasetSummary(BaseModel):
    point_count: int = 0
    label_count: int = 0
    labels: list[int] = Field(default_factory=list)


_RECORDS = TypeAdapter(list[PointRecord])


def load_points(records: Iterable[Any]) -> PointSet:
    """Validate raw ``{x, y, label}`` records into a PointSet.

    Records may be mappings or objects with ``x``/``y``/``label`` attributes.
    Raises InputError for an empty dataset or any malformed record.
    """
    raw = list(records)
    if not raw:
        raise InputError("Dataset is empty")
    try:
        parsed = _RECORDS.validate_python(raw, from_attributes=True)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first["loc"])
        raise InputError(
            f"Malformed point record at {where}: {first['msg']} ({e.error_count()} error(s))"
        ) from e

    return PointSet(
        x=np.fromiter((p.x for p in parsed), dtype=np.float64, count=len(parsed)),
        y=np.fromiter((p.y for p in parsed), dtype=np.float64, count=len(parsed)),
        labels=np.fromiter((p.label for p in parsed), dtype=np.int64, count=len(parsed)),
    )


def summarize(points: PointSet) -> DatasetSummary:
    labels = np.unique(points.labels).tolist()
    return DatasetSummary(point_count=len(points), label_count=len(labels), labels=labels)
