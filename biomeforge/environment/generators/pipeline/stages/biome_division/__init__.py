"""Biome division stage: broad region layout of the world."""

from .params import PARAM_DEFS, BiomeDivisionParams
from .stage import STAGE_ID, BiomeDivisionStage

__all__ = [
    "PARAM_DEFS",
    "STAGE_ID",
    "BiomeDivisionParams",
    "BiomeDivisionStage",
]
