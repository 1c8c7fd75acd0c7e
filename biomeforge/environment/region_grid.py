"""Region grid: one small region identifier per world cell.

The grid is a numpy uint8 array of shape (height, width) in row-major
order, so `data[y]` is a contiguous row. This is the layout the row-parallel
rasterizer relies on: each worker owns a disjoint band of rows.

Cell value UNASSIGNED (0) means no stage has claimed the cell yet.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from biomeforge import config
from biomeforge.types import RegionId, TileCoord

UNASSIGNED: RegionId = config.UNASSIGNED_REGION_ID


@dataclass(frozen=True)
class RowRun:
    """A maximal run of equal region ids on one row.

    Attributes:
        start: First column of the run.
        end: One past the last column of the run.
        region_id: Region id shared by every cell of the run.
    """

    start: TileCoord
    end: TileCoord
    region_id: RegionId

    @property
    def width(self) -> int:
        return self.end - self.start

    @property
    def mid(self) -> TileCoord:
        return (self.start + self.end) // 2


class RegionGrid:
    """Width x height grid of region identifiers.

    Reads outside the grid return UNASSIGNED; writes outside the grid are
    ignored. Placement code relies on this to probe neighbours without
    bounds checks.
    """

    def __init__(self, width: int, height: int, fill: RegionId = UNASSIGNED) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.data = np.full((height, width), fill, dtype=np.uint8)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> RegionId:
        """Return the region id at (x, y), or UNASSIGNED outside the grid."""
        if not self.in_bounds(x, y):
            return UNASSIGNED
        return int(self.data[y, x])

    def set(self, x: int, y: int, region_id: RegionId) -> None:
        """Write a region id at (x, y). No-op outside the grid."""
        if self.in_bounds(x, y):
            self.data[y, x] = region_id

    def row(self, y: int) -> np.ndarray:
        """View of row y. Writes through the view modify the grid."""
        return self.data[y]

    def fill_all(self, region_id: RegionId) -> None:
        self.data.fill(region_id)

    def clear(self) -> None:
        """Reset every cell to UNASSIGNED."""
        self.data.fill(UNASSIGNED)

    def count(self, region_id: RegionId) -> int:
        return int(np.count_nonzero(self.data == region_id))

    def unassigned_count(self) -> int:
        return self.count(UNASSIGNED)

    def runs_in_row(self, y: int) -> list[RowRun]:
        """Split row y into maximal runs of equal region ids.

        Returns:
            Runs ordered left to right. Empty if y is outside the grid.
        """
        if not 0 <= y < self.height:
            return []
        row = self.data[y]
        # Columns where the value differs from the previous column
        breaks = np.flatnonzero(row[1:] != row[:-1]) + 1
        starts = np.concatenate(([0], breaks))
        ends = np.concatenate((breaks, [self.width]))
        return [
            RowRun(int(s), int(e), int(row[s]))
            for s, e in zip(starts, ends, strict=True)
        ]

    def empty_intervals(self, y: int) -> list[tuple[TileCoord, TileCoord]]:
        """Half-open column intervals [start, end) of UNASSIGNED cells on row y."""
        return [
            (run.start, run.end)
            for run in self.runs_in_row(y)
            if run.region_id == UNASSIGNED
        ]

    def copy(self) -> RegionGrid:
        clone = RegionGrid.__new__(RegionGrid)
        clone.width = self.width
        clone.height = self.height
        clone.data = self.data.copy()
        return clone

    def __repr__(self) -> str:
        return f"RegionGrid({self.width}x{self.height})"
