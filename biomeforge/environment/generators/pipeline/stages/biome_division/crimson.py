"""Crimson placement: randomly scattered rectangles in the surface band."""

from __future__ import annotations

from typing import TYPE_CHECKING

from biomeforge.environment.rasterize import unassigned_only

from .placement import PlacementBand, PlacementSlot, scatter_slots

if TYPE_CHECKING:
    from biomeforge.environment.generators.pipeline.context import GenerationContext

    from .params import BiomeDivisionParams


def place_crimson(ctx: GenerationContext, params: BiomeDivisionParams) -> None:
    crimson_id = ctx.region_id("crimson")
    grid = ctx.require_grid()
    ctx.facts.crimson_slots.clear()
    if params.crimson_count == 0:
        return

    w, h = ctx.width, ctx.height
    band = PlacementBand(
        top=int(h * params.crimson_top_limit),
        bottom=min(int(h * params.crimson_bottom_limit), h),
        world_width=w,
    )
    slots: list[PlacementSlot] = []
    scatter_slots(
        ctx.rng,
        grid,
        grid.empty_intervals(band.scan_y),
        band,
        slots,
        count=params.crimson_count,
        width_min=params.crimson_width_min,
        width_max=params.crimson_width_max,
        min_spacing=int(w * params.crimson_min_spacing),
        label="crimson",
    )

    for number, slot in enumerate(slots, start=1):
        ctx.fill(
            band.slot_rect(slot.center_x, slot.width),
            crimson_id,
            f"crimson #{number}",
            admit=unassigned_only(),
        )
        ctx.facts.crimson_slots.append(slot.as_slot())
