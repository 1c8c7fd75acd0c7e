"""Generation stages for the pipeline scheduler.

Each stage divides its work into ordered sub-steps:
- Biome division: broad region layout (oceans, forest, jungle, snow,
  deserts, crimson, stone)
"""

from .biome_division import BiomeDivisionParams, BiomeDivisionStage

__all__ = [
    "BiomeDivisionParams",
    "BiomeDivisionStage",
]
