"""Quadtree cells and uniform-level meshes.

A Cell at level L is a square of edge ``2**-L`` canvas units. A Mesh is a
sparse ``rows x cols`` matrix of cells sharing one level; the key of every
entry is its (row, col) position in the matrix.

Quadrant order inside a split::

    0 | 1
    --+--
    2 | 3
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from pixelscatter.engine.context import PointSet

logger = logging.getLogger(__name__)

# Neighbours linked during the row-major scan, in scan order:
# down-left, down, right, down-right. Up and left were already visited.
_FORWARD_NEIGHBOURS = ((1, -1), (1, 0), (0, 1), (1, 1))


@dataclass
class Cell:
    """Axis-aligned square holding the indices of the points inside it."""

    # (row, col) within the parent cell's 2x2 split
    quadrant: tuple[int, int]
    x: float
    y: float
    w: float
    h: float
    level: int
    points: NDArray[np.int64] = field(default_factory=lambda: np.empty(0, dtype=np.int64))

    @property
    def count(self) -> int:
        return int(self.points.size)

    def split(self, point_set: PointSet) -> list[Cell]:
        """Quarter the cell and hand every point to the child that contains it.

        Children come back in quadrant order, empty ones included. The parent
        is emptied; each point's local offset is rewritten relative to its child.
        """
        half_w = self.w / 2
        half_h = self.h / 2
        level = self.level + 1

        idx = self.points
        local_x = point_set.local_x[idx]
        local_y = point_set.local_y[idx]
        quadrant = (local_x >= half_w).astype(np.int64) + 2 * (local_y >= half_h).astype(np.int64)
        point_set.local_x[idx] = np.mod(local_x, half_w)
        point_set.local_y[idx] = np.mod(local_y, half_h)

        children = [
            Cell(
                quadrant=(e // 2, e % 2),
                x=self.x + half_w * (e % 2),
                y=self.y + half_h * (e // 2),
                w=half_w,
                h=half_h,
                level=level,
                points=idx[quadrant == e],
            )
            for e in range(4)
        ]
        self.points = np.empty(0, dtype=np.int64)
        return children


class DisjointSet:
    """Disjoint sets by size over flat cell indices, with explicit member lists.

    ``owner[i]`` is the set id of flat index ``i`` (absent when unassigned). A set
    id is the flat index of the cell that founded it. Merging relabels the
    smaller member list and appends it to the larger one; no path compression
    is needed because ownership is always direct.
    """

    def __init__(self) -> None:
        self.owner: dict[int, int] = {}
        # Insertion order == creation order of the surviving sets
        self.members: dict[int, list[int]] = {}

    def find(self, index: int) -> int:
        return self.owner.get(index, -1)

    def make_set(self, index: int) -> int:
        self.owner[index] = index
        self.members[index] = [index]
        return index

    def add(self, set_id: int, index: int) -> None:
        self.owner[index] = set_id
        self.members[set_id].append(index)

    def union(self, keep: int, other: int) -> int:
        """Merge two sets and return the surviving id.

        ``keep`` survives unless ``other`` is strictly larger.
        """
        if len(self.members[other]) > len(self.members[keep]):
            keep, other = other, keep
        moved = self.members.pop(other)
        for index in moved:
            self.owner[index] = keep
        self.members[keep].extend(moved)
        return keep


@dataclass
class Component:
    """A connected group of populated cells from one mesh."""

    # Minimal bounding sub-mesh (local coordinates)
    mesh: Mesh
    # Flat list of the component's cells, in merge order
    cells: list[Cell]

    @property
    def level(self) -> int:
        return self.cells[0].level

    @property
    def counts(self) -> list[int]:
        return [c.count for c in self.cells]


class Mesh:
    """Sparse matrix of cells at one uniform level."""

    def __init__(
        self,
        cells: dict[tuple[int, int], Cell],
        rows: int,
        cols: int,
        point_set: PointSet,
    ) -> None:
        self.cells = cells
        self.rows = rows
        self.cols = cols
        self.point_set = point_set

    def __len__(self) -> int:
        return len(self.cells)

    def __getitem__(self, coord: tuple[int, int]) -> Cell | None:
        return self.cells.get(coord)

    @property
    def level(self) -> int | None:
        for cell in self.cells.values():
            return cell.level
        return None

    def partition(self) -> Mesh:
        """Split every populated cell; children land at double the resolution."""
        children: dict[tuple[int, int], Cell] = {}
        for (i, j), cell in sorted(self.cells.items()):
            for child in cell.split(self.point_set):
                if not child.count:
                    continue
                qr, qc = child.quadrant
                children[(i * 2 + qr, j * 2 + qc)] = child
        return Mesh(children, self.rows * 2, self.cols * 2, self.point_set)

    def cluster(self) -> list[Component]:
        """Connected components of populated cells (8-neighbourhood).

        Cells are scanned row-major; each one links its forward neighbours.
        Output order and member order are fully determined by the mesh.
        """
        rows, cols = self.rows, self.cols
        dsu = DisjointSet()

        for i, j in sorted(self.cells):
            flat = i * cols + j
            current = dsu.find(flat)
            if current < 0:
                current = dsu.make_set(flat)

            for di, dj in _FORWARD_NEIGHBOURS:
                ni, nj = i + di, j + dj
                if nj < 0 or nj >= cols or ni >= rows:
                    continue
                if (ni, nj) not in self.cells:
                    continue
                neighbour = ni * cols + nj
                owner = dsu.find(neighbour)
                if owner < 0:
                    dsu.add(current, neighbour)
                elif owner != current:
                    current = dsu.union(current, owner)

        components: list[Component] = []
        for flat_members in dsu.members.values():
            coords = [divmod(f, cols) for f in flat_members]
            row_low = min(r for r, _ in coords)
            row_high = max(r for r, _ in coords)
            col_low = min(c for _, c in coords)
            col_high = max(c for _, c in coords)
            sub_cells = {(r - row_low, c - col_low): self.cells[(r, c)] for r, c in coords}
            sub_mesh = Mesh(
                sub_cells,
                row_high - row_low + 1,
                col_high - col_low + 1,
                self.point_set,
            )
            components.append(Component(mesh=sub_mesh, cells=[self.cells[rc] for rc in coords]))

        logger.debug(
            "Clustered %d cells at level %s into %d components",
            len(self.cells),
            self.level,
            len(components),
        )
        return components
