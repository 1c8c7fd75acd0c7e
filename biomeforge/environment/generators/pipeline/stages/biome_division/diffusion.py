"""Diffusion of deserts and crimson into narrow gaps, then the forest fill.

The sample row halfway through the surface and underground band is split
into runs. A surface desert or crimson run whose neighbouring unassigned
gap is narrower than the merge threshold grows into that gap on every row
of the band. Deserts that carry a true desert never grow. Whatever is still
unassigned in the band afterwards becomes forest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from biomeforge.environment.geometry import Rect
from biomeforge.environment.rasterize import unassigned_only
from biomeforge.environment.region_grid import UNASSIGNED

if TYPE_CHECKING:
    from biomeforge.environment.generators.pipeline.context import GenerationContext
    from biomeforge.environment.region_grid import RegionGrid, RowRun
    from biomeforge.types import RegionId, Slot

    from .params import BiomeDivisionParams

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GrowTask:
    """Grow fill_id from a run edge into the gap on one side.

    Attributes:
        edge_x: Start column on the sample row (the run's start when growing
            left, its end when growing right).
        direction: -1 to grow left, +1 to grow right.
        fill_id: Region id of the growing run.
    """

    edge_x: int
    direction: int
    fill_id: RegionId


def _in_true_desert(run: RowRun, true_slots: list[Slot]) -> bool:
    mid = run.mid
    return any(
        cx - width // 2 <= mid <= cx + width // 2 for cx, width in true_slots
    )


def plan_growth(
    runs: list[RowRun],
    desert_id: RegionId,
    crimson_id: RegionId,
    true_slots: list[Slot],
    threshold: int,
) -> list[GrowTask]:
    """Find the run edges that should grow into a narrow unassigned gap."""
    tasks: list[GrowTask] = []
    for i, run in enumerate(runs):
        if run.region_id not in (desert_id, crimson_id):
            continue
        if run.region_id == desert_id and _in_true_desert(run, true_slots):
            continue

        if i > 0:
            gap = runs[i - 1]
            if gap.region_id == UNASSIGNED and gap.width < threshold:
                tasks.append(GrowTask(run.start, -1, run.region_id))
        if i + 1 < len(runs):
            gap = runs[i + 1]
            if gap.region_id == UNASSIGNED and gap.width < threshold:
                tasks.append(GrowTask(run.end, 1, run.region_id))
    return tasks


def grow_row(row: np.ndarray, task: GrowTask) -> None:
    """Apply one grow task to a single row, in place.

    The region's actual edge on this row is found by searching inward from
    the sample-row edge for the nearest cell of fill_id (or the world border
    if there is none). Cells are then claimed outward from that edge until
    the first assigned cell.
    """
    width = row.shape[0]
    if task.direction > 0:
        hits = np.flatnonzero(row[: task.edge_x + 1] == task.fill_id)
        begin = int(hits[-1]) + 1 if hits.size else 0
        blocked = np.flatnonzero(row[begin:] != UNASSIGNED)
        end = begin + int(blocked[0]) if blocked.size else width
    else:
        hits = np.flatnonzero(row[task.edge_x :] == task.fill_id)
        end = task.edge_x + int(hits[0]) if hits.size else width
        blocked = np.flatnonzero(row[:end] != UNASSIGNED)
        begin = int(blocked[-1]) + 1 if blocked.size else 0
    if begin < end:
        row[begin:end] = task.fill_id


def apply_growth(
    grid: RegionGrid, tasks: list[GrowTask], top: int, bottom: int
) -> None:
    """Run every task on rows [top, bottom), in order."""
    for task in tasks:
        for y in range(max(top, 0), min(bottom, grid.height)):
            grow_row(grid.data[y], task)


def diffuse_and_fill_forest(
    ctx: GenerationContext, params: BiomeDivisionParams
) -> None:
    forest_id = ctx.region_id("forest")
    desert_id = ctx.region_id("desert")
    crimson_id = ctx.region_id("crimson")
    top, _ = ctx.layer_bounds("surface")
    _, bottom = ctx.layer_bounds("underground")
    grid = ctx.require_grid()

    scan_y = (top + bottom) // 2
    tasks = plan_growth(
        grid.runs_in_row(scan_y),
        desert_id,
        crimson_id,
        ctx.facts.true_desert_slots,
        params.forest_fill_merge_threshold,
    )
    apply_growth(grid, tasks, top, bottom)
    logger.debug(f"Diffusion grew {len(tasks)} edges on rows {top}..{bottom}")

    ctx.fill(
        Rect(0, top, ctx.width, bottom),
        forest_id,
        "forest fill",
        admit=unassigned_only(),
    )
