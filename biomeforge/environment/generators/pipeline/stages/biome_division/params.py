"""Tunable parameters of the biome division stage.

Ratios are fractions of world width; limits are fractions of world height
(0.0 = top row). Defaults live on the dataclass and the schema reads them
from there, so the two cannot drift apart.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any

from biomeforge.environment.generators.pipeline.params import (
    FloatParam,
    IntParam,
    ParamDef,
)

# Group names match the sub-step names the parameters affect.
GROUP_OCEAN = "Oceans"
GROUP_FOREST = "Forest seed"
GROUP_JUNGLE = "Jungle"
GROUP_SNOW = "Snow"
GROUP_DESERT = "Deserts"
GROUP_CRIMSON = "Crimson"
GROUP_DIFFUSION = "Diffusion + forest fill"


@dataclass(frozen=True)
class BiomeDivisionParams:
    # Oceans
    ocean_left_width: float = 0.05
    ocean_right_width: float = 0.05
    ocean_top_limit: float = 0.10
    ocean_bottom_limit: float = 0.40

    # Forest seed (half width, measured from the world center)
    forest_width_ratio: float = 0.05

    # Jungle
    jungle_width_ratio: float = 0.12
    jungle_top_limit: float = 0.10
    jungle_bottom_limit: float = 0.85
    jungle_center_offset_range: float = 0.20

    # Snow
    snow_top_width_ratio: float = 0.08
    snow_bottom_width_ratio: float = 0.20
    snow_top_limit: float = 0.10
    snow_bottom_limit: float = 0.85
    snow_bottom_depth_factor: float = 0.8
    snow_center_offset_range: float = 0.12

    # Deserts
    desert_surface_count: int = 3
    desert_surface_width_min: float = 0.03
    desert_surface_width_max: float = 0.05
    desert_surface_top_limit: float = 0.10
    desert_surface_bottom_limit: float = 0.40
    desert_surface_min_spacing: float = 0.15
    desert_true_count: int = 1
    desert_true_top_limit: float = 0.30
    desert_true_bottom_limit: float = 0.85
    desert_true_depth_factor: float = 0.90

    # Crimson
    crimson_count: int = 3
    crimson_width_min: float = 0.025
    crimson_width_max: float = 0.1
    crimson_top_limit: float = 0.10
    crimson_bottom_limit: float = 0.40
    crimson_min_spacing: float = 0.15

    # Diffusion (cells)
    forest_fill_merge_threshold: int = 100

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> BiomeDivisionParams:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known})


_DEFAULTS = BiomeDivisionParams()


def _ratio(
    key: str,
    name: str,
    description: str,
    group: str,
    max_value: float = 1.0,
) -> ParamDef:
    return ParamDef(
        key=key,
        name=name,
        description=description,
        param_type=FloatParam(0.0, max_value),
        default=getattr(_DEFAULTS, key),
        group=group,
    )


def _count(
    key: str,
    name: str,
    description: str,
    group: str,
    max_value: int,
) -> ParamDef:
    return ParamDef(
        key=key,
        name=name,
        description=description,
        param_type=IntParam(0, max_value),
        default=getattr(_DEFAULTS, key),
        group=group,
    )


PARAM_DEFS: tuple[ParamDef, ...] = (
    _ratio(
        "ocean_left_width",
        "Left ocean width",
        "Left ocean width as a fraction of world width",
        GROUP_OCEAN,
    ),
    _ratio(
        "ocean_right_width",
        "Right ocean width",
        "Right ocean width as a fraction of world width",
        GROUP_OCEAN,
    ),
    _ratio(
        "ocean_top_limit",
        "Ocean top",
        "Top row of the oceans (fraction of height)",
        GROUP_OCEAN,
    ),
    _ratio(
        "ocean_bottom_limit",
        "Ocean bottom",
        "Bottom row of the oceans (fraction of height)",
        GROUP_OCEAN,
    ),
    _ratio(
        "forest_width_ratio",
        "Forest half width",
        "Half width of the spawn forest around the world center",
        GROUP_FOREST,
    ),
    _ratio(
        "jungle_width_ratio",
        "Jungle width",
        "Width of the jungle ellipse",
        GROUP_JUNGLE,
    ),
    _ratio(
        "jungle_top_limit",
        "Jungle top",
        "Jungle is clipped above this row (fraction of height)",
        GROUP_JUNGLE,
    ),
    _ratio(
        "jungle_bottom_limit",
        "Jungle bottom",
        "Jungle is clipped below this row (fraction of height)",
        GROUP_JUNGLE,
    ),
    _ratio(
        "jungle_center_offset_range",
        "Jungle center jitter",
        "Random center offset as a fraction of the available span",
        GROUP_JUNGLE,
        0.5,
    ),
    _ratio(
        "snow_top_width_ratio",
        "Snow top width",
        "Width of the snow trapezoid's top edge",
        GROUP_SNOW,
    ),
    _ratio(
        "snow_bottom_width_ratio",
        "Snow bottom width",
        "Width of the snow trapezoid's bottom edge",
        GROUP_SNOW,
    ),
    _ratio(
        "snow_top_limit",
        "Snow top",
        "Top row of the snow trapezoid (fraction of height)",
        GROUP_SNOW,
    ),
    _ratio(
        "snow_bottom_limit",
        "Snow bottom",
        "Nominal bottom row of the snow trapezoid (fraction of height)",
        GROUP_SNOW,
    ),
    _ratio(
        "snow_bottom_depth_factor",
        "Snow depth factor",
        "Scales the snow bottom row",
        GROUP_SNOW,
    ),
    _ratio(
        "snow_center_offset_range",
        "Snow center jitter",
        "Random center offset as a fraction of the available span",
        GROUP_SNOW,
        0.5,
    ),
    _count(
        "desert_surface_count",
        "Desert count",
        "Number of surface deserts, true deserts included",
        GROUP_DESERT,
        10,
    ),
    _ratio(
        "desert_surface_width_min",
        "Desert min width",
        "Minimum surface desert width",
        GROUP_DESERT,
    ),
    _ratio(
        "desert_surface_width_max",
        "Desert max width",
        "Maximum surface desert width",
        GROUP_DESERT,
    ),
    _ratio(
        "desert_surface_top_limit",
        "Desert top",
        "Top row of surface deserts (fraction of height)",
        GROUP_DESERT,
    ),
    _ratio(
        "desert_surface_bottom_limit",
        "Desert bottom",
        "Bottom row of surface deserts, also the true desert junction row",
        GROUP_DESERT,
    ),
    _ratio(
        "desert_surface_min_spacing",
        "Desert spacing",
        "Minimum gap between neighbouring deserts",
        GROUP_DESERT,
    ),
    _count(
        "desert_true_count",
        "True desert count",
        "Deserts that extend into a deep elliptical true desert",
        GROUP_DESERT,
        5,
    ),
    _ratio(
        "desert_true_top_limit",
        "True desert top",
        "Top row of the true desert ellipse (fraction of height)",
        GROUP_DESERT,
    ),
    _ratio(
        "desert_true_bottom_limit",
        "True desert bottom",
        "Nominal bottom row of the true desert ellipse",
        GROUP_DESERT,
    ),
    _ratio(
        "desert_true_depth_factor",
        "True desert depth factor",
        "Scales the true desert bottom row",
        GROUP_DESERT,
    ),
    _count(
        "crimson_count",
        "Crimson count",
        "Number of crimson regions",
        GROUP_CRIMSON,
        10,
    ),
    _ratio(
        "crimson_width_min",
        "Crimson min width",
        "Minimum crimson width",
        GROUP_CRIMSON,
    ),
    _ratio(
        "crimson_width_max",
        "Crimson max width",
        "Maximum crimson width",
        GROUP_CRIMSON,
    ),
    _ratio(
        "crimson_top_limit",
        "Crimson top",
        "Top row of crimson regions (fraction of height)",
        GROUP_CRIMSON,
    ),
    _ratio(
        "crimson_bottom_limit",
        "Crimson bottom",
        "Bottom row of crimson regions (fraction of height)",
        GROUP_CRIMSON,
    ),
    _ratio(
        "crimson_min_spacing",
        "Crimson spacing",
        "Minimum gap between neighbouring crimson regions",
        GROUP_CRIMSON,
    ),
    _count(
        "forest_fill_merge_threshold",
        "Diffusion threshold",
        "Gaps narrower than this many cells are absorbed by the neighbouring "
        "desert or crimson instead of becoming forest",
        GROUP_DIFFUSION,
        500,
    ),
)
