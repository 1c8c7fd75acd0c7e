"""Desert placement: surface deserts, some extended into deep true deserts.

True deserts are placed first, deterministically, as close to the world
center as the free space allows. Each is a surface rectangle plus an
ellipse spanning the true desert rows whose horizontal radius is chosen so
the ellipse is exactly as wide as the surface rectangle at the junction row
(the bottom of the surface band). Plain surface deserts are then scattered
randomly into the remaining space.

Nothing is drawn until every slot is chosen, so all footprint checks see
the grid as it was before this step.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from biomeforge.environment.geometry import Ellipse
from biomeforge.environment.rasterize import unassigned_only, unassigned_or

from .placement import (
    PlacementBand,
    PlacementSlot,
    footprint_clear,
    scatter_slots,
    spacing_ok,
    true_desert_candidates,
)

if TYPE_CHECKING:
    from biomeforge.environment.generators.pipeline.context import GenerationContext

    from .params import BiomeDivisionParams

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrueDesertGeometry:
    """Vertical geometry shared by every true desert ellipse.

    Attributes:
        center_y: Ellipse center row (may be fractional).
        radius_y: Vertical radius.
        junction_y: Row where the ellipse must match the surface width.
    """

    center_y: float
    radius_y: float
    junction_y: float

    @classmethod
    def from_params(
        cls, height: int, params: BiomeDivisionParams
    ) -> TrueDesertGeometry:
        top = height * params.desert_true_top_limit
        bottom = (
            height * params.desert_true_bottom_limit * params.desert_true_depth_factor
        )
        return cls(
            center_y=(top + bottom) / 2.0,
            radius_y=(bottom - top) / 2.0,
            junction_y=height * params.desert_surface_bottom_limit,
        )

    @property
    def usable(self) -> bool:
        return self.radius_y > 0.0

    def radius_x(self, surface_half_width: float) -> float | None:
        """Horizontal radius giving the surface width at the junction row.

        Returns:
            The radius, or None if the junction row is outside the ellipse.
        """
        if not self.usable:
            return None
        dy = (self.junction_y - self.center_y) / self.radius_y
        dy_sq = dy * dy
        if dy_sq >= 1.0:
            return None
        return surface_half_width / math.sqrt(1.0 - dy_sq)

    def ellipse(self, center_x: float, radius_x: float) -> Ellipse:
        return Ellipse(center_x, self.center_y, radius_x, self.radius_y)


def _place_true_deserts(
    ctx: GenerationContext,
    params: BiomeDivisionParams,
    band: PlacementBand,
    intervals: list[tuple[int, int]],
    geometry: TrueDesertGeometry,
    slots: list[PlacementSlot],
    min_spacing: int,
) -> int:
    grid = ctx.require_grid()
    width = int(
        ctx.width
        * (params.desert_surface_width_min + params.desert_surface_width_max)
        / 2.0
    )
    rx = geometry.radius_x(width / 2.0)
    if rx is None:
        return 0

    placed = 0
    for center_x in true_desert_candidates(intervals, ctx.width, width):
        if placed >= params.desert_true_count:
            break
        if not spacing_ok(slots, center_x, width, min_spacing):
            continue
        if not footprint_clear(grid, band.slot_rect(center_x, width)):
            continue
        if not footprint_clear(grid, geometry.ellipse(center_x, rx)):
            continue
        slots.append(PlacementSlot(center_x, width, true_rx=rx))
        placed += 1
    return placed


def place_deserts(ctx: GenerationContext, params: BiomeDivisionParams) -> None:
    """Choose desert slots, draw them, and publish them in the run facts."""
    desert_id = ctx.region_id("desert")
    true_desert_id = ctx.region_id("desert_true")
    grid = ctx.require_grid()
    w, h = ctx.width, ctx.height

    band = PlacementBand(
        top=int(h * params.desert_surface_top_limit),
        bottom=min(int(h * params.desert_surface_bottom_limit), h),
        world_width=w,
    )
    geometry = TrueDesertGeometry.from_params(h, params)
    intervals = grid.empty_intervals(band.scan_y)
    min_spacing = int(w * params.desert_surface_min_spacing)

    slots: list[PlacementSlot] = []
    if params.desert_true_count > 0 and geometry.usable:
        _place_true_deserts(
            ctx, params, band, intervals, geometry, slots, min_spacing
        )

    scatter_slots(
        ctx.rng,
        grid,
        intervals,
        band,
        slots,
        count=max(params.desert_surface_count - len(slots), 0),
        width_min=params.desert_surface_width_min,
        width_max=params.desert_surface_width_max,
        min_spacing=min_spacing,
        label="surface desert",
    )

    facts = ctx.facts
    facts.desert_slots.clear()
    facts.true_desert_slots.clear()
    for number, slot in enumerate(slots, start=1):
        ctx.fill(
            band.slot_rect(slot.center_x, slot.width),
            desert_id,
            f"surface desert #{number}",
            admit=unassigned_only(),
        )
        if slot.has_true_desert:
            ctx.fill(
                geometry.ellipse(slot.center_x, slot.true_rx),
                true_desert_id,
                "true desert ellipse",
                admit=unassigned_or(desert_id),
            )
            facts.true_desert_slots.append(slot.as_slot())
        facts.desert_slots.append(slot.as_slot())

    logger.debug(
        f"Placed {len(slots)} deserts ({len(facts.true_desert_slots)} true) "
        f"on row {band.scan_y}"
    )
