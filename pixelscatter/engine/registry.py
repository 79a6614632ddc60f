"""Stage registry — every render stage is a standalone function registered via decorator.

Usage:
    @stage(id="S2.02", layer=Layer.RESOLUTION, dependencies=["S2.01"])
    def overlap_resolution(ctx: RenderContext) -> None:
        ...

Stage ids sort in run order within a layer ("S<layer>.<nn>"); dependencies
only have to name the stages whose output a stage reads.
"""

from __future__ import annotations

import enum
import heapq
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from pixelscatter.engine.context import RenderContext

logger = logging.getLogger(__name__)

StageFn = Callable[["RenderContext"], None]


class Layer(enum.IntEnum):
    PREPARATION = 0
    REFINEMENT = 1
    RESOLUTION = 2
    LAYOUT = 3


@dataclass
class StageSpec:
    id: str
    layer: Layer
    fn: StageFn
    dependencies: list[str] = field(default_factory=list)
    tags: set[str] = field(default_factory=set)
    description: str = ""


class StageRegistry:
    def __init__(self) -> None:
        self._stages: dict[str, StageSpec] = {}

    def register(self, spec: StageSpec) -> None:
        if spec.id in self._stages:
            raise ValueError(f"Duplicate stage ID: {spec.id}")
        self._stages[spec.id] = spec
        logger.debug("Registered stage %s (%s)", spec.id, spec.layer.name)

    def all(self) -> list[StageSpec]:
        return sorted(self._stages.values(), key=lambda s: (s.layer, s.id))

    def tagged(self, tag: str) -> set[str]:
        return {sid for sid, spec in self._stages.items() if tag in spec.tags}

    def resolve_order(self, skip: set[str] | frozenset[str] = frozenset()) -> list[StageSpec]:
        """Dependency order of every stage not in ``skip``, lowest id first among ready stages.

        A dependency on a skipped stage counts as satisfied.
        """
        active = {sid: spec for sid, spec in self._stages.items() if sid not in skip}
        waiting = {
            sid: {dep for dep in spec.dependencies if dep in active}
            for sid, spec in active.items()
        }
        ready = [sid for sid, deps in waiting.items() if not deps]
        heapq.heapify(ready)

        ordered: list[StageSpec] = []
        while ready:
            sid = heapq.heappop(ready)
            ordered.append(active[sid])
            for other, deps in waiting.items():
                if sid in deps:
                    deps.discard(sid)
                    if not deps:
                        heapq.heappush(ready, other)

        if len(ordered) != len(active):
            stuck = sorted(set(active) - {s.id for s in ordered})
            raise ValueError(f"Circular dependency detected among: {stuck}")
        return ordered


_registry = StageRegistry()


def get_registry() -> StageRegistry:
    return _registry


def stage(
    *,
    id: str,
    layer: Layer,
    dependencies: list[str] | None = None,
    tags: set[str] | None = None,
    description: str = "",
):
    """Register the decorated function as a render stage."""

    def decorator(fn: StageFn) -> StageFn:
        _registry.register(
            StageSpec(
                id=id,
                layer=layer,
                fn=fn,
                dependencies=dependencies or [],
                tags=tags or set(),
                description=description,
            )
        )
        return fn

    return decorator
