"""Factory functions for creating pre-configured pipelines.

These functions provide convenient ways to create common pipeline
configurations without needing to manually assemble stages.

Currently implemented:
- "biome_division": Broad region layout of a world
"""

from __future__ import annotations

from collections.abc import Mapping

from biomeforge import config
from biomeforge.environment.regions import RegionCatalog, default_catalog
from biomeforge.environment.world import WorldProfile
from biomeforge.types import RandomSeed

from .pipeline import GenerationPipeline
from .stages import BiomeDivisionParams, BiomeDivisionStage


def create_pipeline(
    name: str,
    size_key: str = config.DEFAULT_WORLD_SIZE_KEY,
    seed: RandomSeed = config.RANDOM_SEED,
    custom_size: tuple[int, int] | None = None,
    layer_overrides: Mapping[str, tuple[int, int]] | None = None,
) -> GenerationPipeline:
    """Create a pre-configured pipeline by name.

    Available pipelines:
    - "biome_division": The biome division stage on the default catalog

    Args:
        name: Name of the pipeline configuration to use.
        size_key: World size key from config.WORLD_SIZES, or "custom".
        seed: Master seed for deterministic generation.
        custom_size: (width, height) when size_key is "custom".
        layer_overrides: Layer key -> (start_percent, end_percent).

    Returns:
        A configured GenerationPipeline, reset and ready to step.

    Raises:
        ValueError: If the pipeline name is not recognized.
        WorldConfigError: If the size or layers are invalid.
    """
    if name == "biome_division":
        profile = WorldProfile.from_config(
            size_key, custom_size=custom_size, layer_overrides=layer_overrides
        )
        return create_biome_division_pipeline(profile, seed)
    raise ValueError(f"Unknown pipeline name: {name!r}")


def create_biome_division_pipeline(
    profile: WorldProfile,
    seed: RandomSeed = config.RANDOM_SEED,
    params: BiomeDivisionParams | None = None,
    catalog: RegionCatalog | None = None,
) -> GenerationPipeline:
    """Create the biome division pipeline.

    Args:
        profile: World size and layer layout.
        seed: Master seed.
        params: Stage parameters; defaults if omitted.
        catalog: Region catalog; the default catalog if omitted.

    Returns:
        A configured GenerationPipeline.
    """
    return GenerationPipeline(
        profile=profile,
        catalog=catalog if catalog is not None else default_catalog(),
        seed=seed,
        stages=[BiomeDivisionStage(params)],
    )
