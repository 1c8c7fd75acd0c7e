"""Spacing-constrained slot placement shared by the desert and crimson steps.

Regions are placed as horizontal slots (center column, width) inside a
vertical band. Candidate centers come from the unassigned intervals of a
sample row; a candidate is accepted only if it keeps its distance from
every accepted slot and its whole rectangular footprint (sampled at a
stride) is still unassigned.

Random scattering draws, per attempt and in this order: a width ratio, an
interval index, a center column. The retry budget is proportional to the
number of regions requested, so scattering always terminates. Running out
of space or attempts simply yields fewer regions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from biomeforge import config
from biomeforge.environment.geometry import Rect, Shape
from biomeforge.environment.rasterize import shape_all_match, unassigned_only

if TYPE_CHECKING:
    from biomeforge.environment.region_grid import RegionGrid
    from biomeforge.types import Slot, TileCoord
    from biomeforge.util.rng import RNG

logger = logging.getLogger(__name__)


@dataclass
class PlacementSlot:
    """An accepted placement.

    Attributes:
        center_x: Center column.
        width: Width in cells.
        true_rx: Horizontal radius of the attached true desert ellipse, or
            None for plain slots.
    """

    center_x: TileCoord
    width: int
    true_rx: float | None = None

    @property
    def has_true_desert(self) -> bool:
        return self.true_rx is not None

    def as_slot(self) -> Slot:
        return (self.center_x, self.width)


@dataclass(frozen=True)
class PlacementBand:
    """Vertical extent of the slots and the world width they are clipped to."""

    top: int
    bottom: int
    world_width: int

    @property
    def scan_y(self) -> int:
        """Sample row used to find free intervals: the band's middle row."""
        return (self.top + self.bottom) // 2

    def slot_rect(self, center_x: TileCoord, width: int) -> Rect:
        """Footprint of a slot, clipped to the world's columns."""
        half = width // 2
        return Rect(
            max(center_x - half, 0),
            self.top,
            min(center_x + half, self.world_width),
            self.bottom,
        )


def spacing_ok(
    slots: list[PlacementSlot], center_x: TileCoord, width: int, min_spacing: int
) -> bool:
    """Check a candidate against every accepted slot.

    Centers must be at least the sum of both half widths (rounded up) plus
    min_spacing apart.
    """
    for slot in slots:
        required = (width + slot.width + 1) // 2 + min_spacing
        if abs(center_x - slot.center_x) < required:
            return False
    return True


def footprint_clear(grid: RegionGrid, shape: Shape) -> bool:
    """True if every sampled cell of shape inside the grid is unassigned."""
    return shape_all_match(
        shape, grid, unassigned_only(), step=config.FOOTPRINT_SAMPLE_STRIDE
    )


def scatter_slots(
    rng: RNG,
    grid: RegionGrid,
    intervals: list[tuple[TileCoord, TileCoord]],
    band: PlacementBand,
    slots: list[PlacementSlot],
    *,
    count: int,
    width_min: float,
    width_max: float,
    min_spacing: int,
    label: str,
) -> int:
    """Randomly place up to count new slots, appending them to slots.

    Existing entries of slots take part in the spacing check.

    Args:
        rng: Random source of the running sub-step.
        grid: Grid the footprints are checked against.
        intervals: Unassigned [start, end) intervals of the band's sample row.
        band: Vertical extent of the footprints.
        slots: Accepted slots; new slots are appended.
        count: Number of new slots requested.
        width_min: Minimum width as a fraction of world width.
        width_max: Maximum width as a fraction of world width.
        min_spacing: Extra distance required between neighbouring slots.
        label: Name used in log messages.

    Returns:
        Number of slots actually placed.
    """
    placed = 0
    attempts = 0
    max_attempts = (count + 1) * config.PLACEMENT_ATTEMPTS_PER_REGION

    while placed < count and attempts < max_attempts:
        attempts += 1

        width = int(band.world_width * rng.uniform(width_min, width_max))
        half_width = width // 2

        candidates = [(s, e) for s, e in intervals if e - s >= width]
        if not candidates:
            break
        start, end = candidates[rng.randrange(len(candidates))]

        min_cx = start + half_width
        max_cx = end - half_width
        if min_cx >= max_cx:
            continue
        center_x = rng.randrange(min_cx, max_cx)

        if not spacing_ok(slots, center_x, width, min_spacing):
            continue
        if not footprint_clear(grid, band.slot_rect(center_x, width)):
            continue

        slots.append(PlacementSlot(center_x, width))
        placed += 1

    if placed < count:
        logger.debug(
            f"Placed {placed}/{count} {label} regions after {attempts} attempts"
        )
    return placed


def fan_out_positions(
    center: TileCoord, low: TileCoord, high: TileCoord, step: int
) -> list[int]:
    """Candidate centers ordered by distance from center within [low, high].

    Starts at center clamped into the range, then alternates left/right in
    increments of step.
    """
    origin = min(max(center, low), high)
    positions = [origin]
    offset = step
    while origin - offset >= low or origin + offset <= high:
        if origin - offset >= low:
            positions.append(origin - offset)
        if origin + offset <= high:
            positions.append(origin + offset)
        offset += step
    return positions


def true_desert_candidates(
    intervals: list[tuple[TileCoord, TileCoord]], world_width: int, width: int
) -> Iterator[TileCoord]:
    """Yield deterministic candidate centers for true deserts.

    Intervals are visited by distance of their midpoint from the world
    center; within an interval, positions fan out from the column closest
    to the world center in steps of max(width // 2, TRUE_DESERT_MIN_SEARCH_STEP).
    Intervals too narrow for a slot of the given width are skipped.
    """
    center = world_width // 2
    half_width = width // 2
    step = max(half_width, config.TRUE_DESERT_MIN_SEARCH_STEP)
    ordered = sorted(intervals, key=lambda se: abs((se[0] + se[1]) // 2 - center))
    for start, end in ordered:
        if end - start < width:
            continue
        min_cx = start + half_width
        max_cx = end - half_width
        if min_cx >= max_cx:
            continue
        yield from fan_out_positions(center, min_cx, max_cx, step)
