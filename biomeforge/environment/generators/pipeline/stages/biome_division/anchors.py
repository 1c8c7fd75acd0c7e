"""Fixed-layout anchor regions: oceans, the spawn forest, jungle and snow.

Jungle and snow sit on opposite sides of the forest. The available span on
a side runs from the inner edge of that side's ocean to the forest edge;
each region is centered on the span's midpoint plus a random jitter.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from biomeforge.environment.geometry import Ellipse, Rect, Trapezoid
from biomeforge.environment.rasterize import unassigned_only

if TYPE_CHECKING:
    from biomeforge.environment.generators.pipeline.context import GenerationContext

    from .params import BiomeDivisionParams

logger = logging.getLogger(__name__)


def _side_span(
    ctx: GenerationContext, params: BiomeDivisionParams, on_left: bool
) -> tuple[int, int]:
    """Return (midpoint, width) of the free span on one side of the forest."""
    w = ctx.width
    forest_center = w // 2
    forest_half = int(w * params.forest_width_ratio)
    if on_left:
        left = int(w * params.ocean_left_width)
        right = forest_center - forest_half
    else:
        left = forest_center + forest_half
        right = w - int(w * params.ocean_right_width)
    span = right - left
    # Truncates toward zero for degenerate (negative) spans.
    return left + int(span / 2), span


def _jittered_center(
    ctx: GenerationContext, base: int, span: int, offset_range: float
) -> int:
    max_offset = max(int(span * offset_range), 0)
    return base + ctx.rng.randint(-max_offset, max_offset)


def place_oceans(ctx: GenerationContext, params: BiomeDivisionParams) -> None:
    ocean_id = ctx.region_id("ocean")
    ctx.require_grid()
    w, h = ctx.width, ctx.height

    y_top = int(h * params.ocean_top_limit)
    y_bottom = int(h * params.ocean_bottom_limit)
    left_width = int(w * params.ocean_left_width)
    right_width = int(w * params.ocean_right_width)

    ctx.fill(Rect(0, y_top, left_width, y_bottom), ocean_id, "left ocean")
    ctx.fill(Rect(w - right_width, y_top, w, y_bottom), ocean_id, "right ocean")


def place_forest_seed(ctx: GenerationContext, params: BiomeDivisionParams) -> None:
    """Seed the spawn forest in the middle of the surface and underground."""
    forest_id = ctx.region_id("forest")
    y_top, _ = ctx.layer_bounds("surface")
    _, y_bottom = ctx.layer_bounds("underground")
    ctx.require_grid()

    center = ctx.width // 2
    half = int(ctx.width * params.forest_width_ratio)
    ctx.fill(
        Rect(center - half, y_top, center + half, y_bottom),
        forest_id,
        "spawn forest",
        admit=unassigned_only(),
    )


def place_jungle(ctx: GenerationContext, params: BiomeDivisionParams) -> None:
    """Place the jungle on a random side and publish which side it took.

    The jungle is a full-height ellipse centered on the world's middle row,
    clipped to the jungle row band.
    """
    jungle_id = ctx.region_id("jungle")
    ctx.require_grid()
    w, h = ctx.width, ctx.height

    on_left = ctx.rng.random() < 0.5
    ctx.facts.jungle_on_left = on_left

    base, span = _side_span(ctx, params, on_left)
    cx = _jittered_center(ctx, base, span, params.jungle_center_offset_range)

    ellipse = Ellipse(cx, h // 2, int(w * params.jungle_width_ratio / 2.0), h // 2)
    band = Rect(
        0, int(h * params.jungle_top_limit), w, int(h * params.jungle_bottom_limit)
    )
    ctx.fill(
        ellipse & band,
        jungle_id,
        "jungle",
        admit=unassigned_only(),
        params=ellipse.params(),
    )
    logger.debug(f"Jungle placed on the {'left' if on_left else 'right'} at x={cx}")


def place_snow(ctx: GenerationContext, params: BiomeDivisionParams) -> None:
    """Place the snow trapezoid on the side opposite the jungle.

    Without a recorded jungle side the jungle is assumed to be on the right.
    """
    snow_id = ctx.region_id("snow")
    ctx.require_grid()
    w, h = ctx.width, ctx.height

    on_left = not bool(ctx.facts.jungle_on_left)
    base, span = _side_span(ctx, params, on_left)
    cx = _jittered_center(ctx, base, span, params.snow_center_offset_range)

    top_half = int(w * params.snow_top_width_ratio / 2.0)
    bottom_half = int(w * params.snow_bottom_width_ratio / 2.0)
    y_top = int(h * params.snow_top_limit)
    y_bottom = int(h * params.snow_bottom_limit * params.snow_bottom_depth_factor)

    ctx.fill(
        Trapezoid.from_center(cx, y_top, min(y_bottom, h), top_half, bottom_half),
        snow_id,
        "snow",
        admit=unassigned_only(),
    )
