"""Biome division stage.

Partitions the world into broad regions in nine sub-steps: the space and
hell bands, oceans on both edges, the spawn forest, jungle and snow on
opposite sides, deserts (some with deep true deserts), crimson, diffusion
of deserts and crimson into narrow gaps followed by the forest fill, and
finally stone for everything left over.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from biomeforge.environment.generators.pipeline.params import StageMeta, StepMeta
from biomeforge.environment.generators.pipeline.stage import (
    GenerationStage,
    StagePreconditionError,
    merge_params,
)

from .anchors import place_forest_seed, place_jungle, place_oceans, place_snow
from .crimson import place_crimson
from .desert import place_deserts
from .diffusion import diffuse_and_fill_forest
from .layers import fill_layer_bands, fill_residual_stone
from .params import (
    GROUP_CRIMSON,
    GROUP_DESERT,
    GROUP_DIFFUSION,
    GROUP_FOREST,
    GROUP_JUNGLE,
    GROUP_OCEAN,
    GROUP_SNOW,
    PARAM_DEFS,
    BiomeDivisionParams,
)

if TYPE_CHECKING:
    from biomeforge.environment.generators.pipeline.context import GenerationContext

type StepFn = Callable[[GenerationContext, BiomeDivisionParams], None]

STAGE_ID = "biome_division"

STEPS: tuple[StepMeta, ...] = (
    StepMeta("Layer bands", "Create the grid and fill the space and hell bands"),
    StepMeta(GROUP_OCEAN, "Rectangular oceans on both world edges"),
    StepMeta(GROUP_FOREST, "Spawn forest around the world center"),
    StepMeta(GROUP_JUNGLE, "Jungle ellipse on a randomly chosen side"),
    StepMeta(GROUP_SNOW, "Snow trapezoid on the side opposite the jungle"),
    StepMeta(GROUP_DESERT, "Surface deserts, the central ones with true deserts"),
    StepMeta(GROUP_CRIMSON, "Randomly scattered crimson regions"),
    StepMeta(
        GROUP_DIFFUSION,
        "Grow deserts and crimson into narrow gaps, fill the rest with forest",
    ),
    StepMeta("Residual fill", "Every unassigned cell becomes stone"),
)

_META = StageMeta(
    id=STAGE_ID,
    name="Biome Division",
    description="Divide the world into broad biome regions",
    steps=STEPS,
    params=PARAM_DEFS,
)


def _layer_bands(ctx: GenerationContext, params: BiomeDivisionParams) -> None:
    fill_layer_bands(ctx)


def _residual_fill(ctx: GenerationContext, params: BiomeDivisionParams) -> None:
    fill_residual_stone(ctx)


_STEP_FUNCTIONS: tuple[StepFn, ...] = (
    _layer_bands,
    place_oceans,
    place_forest_seed,
    place_jungle,
    place_snow,
    place_deserts,
    place_crimson,
    diffuse_and_fill_forest,
    _residual_fill,
)


class BiomeDivisionStage(GenerationStage):
    """Stage that divides the world into biome regions.

    Args:
        params: Initial parameters; defaults if omitted.
    """

    def __init__(self, params: BiomeDivisionParams | None = None) -> None:
        self.params = params if params is not None else BiomeDivisionParams()

    def meta(self) -> StageMeta:
        return _META

    def execute(self, step_index: int, ctx: GenerationContext) -> None:
        if not 0 <= step_index < len(_STEP_FUNCTIONS):
            raise StagePreconditionError(f"invalid step index: {step_index}")
        _STEP_FUNCTIONS[step_index](ctx, self.params)

    def get_params(self) -> dict[str, Any]:
        return self.params.to_dict()

    def set_params(self, blob: Mapping[str, Any]) -> None:
        merged = merge_params(_META, self.params.to_dict(), blob)
        self.params = replace(self.params, **merged)
