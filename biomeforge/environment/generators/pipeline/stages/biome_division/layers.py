"""Sub-steps that work on whole layer bands: the first and the last."""

from __future__ import annotations

from typing import TYPE_CHECKING

from biomeforge.environment.geometry import Rect
from biomeforge.environment.rasterize import unassigned_only

if TYPE_CHECKING:
    from biomeforge.environment.generators.pipeline.context import GenerationContext


def fill_layer_bands(ctx: GenerationContext) -> None:
    """Create a fresh grid and paint the space and hell bands.

    The rows come from the "space" and "hell" layers of the world profile,
    so layer overrides move the bands. Both fills overwrite unconditionally.
    """
    space_id = ctx.region_id("space")
    hell_id = ctx.region_id("hell")
    _, space_end = ctx.layer_bounds("space")
    hell_start, _ = ctx.layer_bounds("hell")

    ctx.create_grid()
    ctx.fill(Rect(0, 0, ctx.width, space_end), space_id, "space band")
    ctx.fill(Rect(0, hell_start, ctx.width, ctx.height), hell_id, "hell band")


def fill_residual_stone(ctx: GenerationContext) -> None:
    """Assign stone to every cell no earlier sub-step claimed."""
    stone_id = ctx.region_id("stone")
    ctx.require_grid()
    ctx.fill(
        Rect(0, 0, ctx.width, ctx.height),
        stone_id,
        "residual stone",
        admit=unassigned_only(),
    )
