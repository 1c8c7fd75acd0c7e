from __future__ import annotations

import random
from collections.abc import Mapping
from typing import Any

from biomeforge.environment.generators.pipeline import (
    BiomeDivisionParams,
    GenerationContext,
    GenerationPipeline,
    RunState,
    create_biome_division_pipeline,
)
from biomeforge.environment.regions import RegionCatalog, default_catalog
from biomeforge.environment.world import WorldProfile

# Small enough to run the whole stage quickly, wide enough for every region.
TEST_WIDTH = 420
TEST_HEIGHT = 120


def small_profile(
    width: int = TEST_WIDTH,
    height: int = TEST_HEIGHT,
    layer_overrides: Mapping[str, tuple[int, int]] | None = None,
) -> WorldProfile:
    """Custom-size profile with the default layer layout."""
    return WorldProfile.from_config(
        "custom", custom_size=(width, height), layer_overrides=layer_overrides
    )


def make_pipeline(
    seed: int = 42,
    width: int = TEST_WIDTH,
    height: int = TEST_HEIGHT,
    params: BiomeDivisionParams | None = None,
    catalog: RegionCatalog | None = None,
) -> GenerationPipeline:
    """Biome division pipeline on a small custom world."""
    return create_biome_division_pipeline(
        small_profile(width, height), seed=seed, params=params, catalog=catalog
    )


def make_context(
    profile: WorldProfile | None = None,
    seed: int = 7,
    catalog: RegionCatalog | None = None,
) -> GenerationContext:
    """Standalone sub-step context with a seeded RNG and no grid yet."""
    return GenerationContext(
        run=RunState(),
        profile=profile if profile is not None else small_profile(),
        catalog=catalog if catalog is not None else default_catalog(),
        rng=random.Random(seed),
    )


def catalog_without(key: str) -> RegionCatalog:
    """Default catalog minus one region."""
    return RegionCatalog(d for d in default_catalog() if d.key != key)


def with_params(**overrides: Any) -> BiomeDivisionParams:
    """Default stage parameters with some fields replaced."""
    return BiomeDivisionParams.from_dict(
        {**BiomeDivisionParams().to_dict(), **overrides}
    )


def region_id(key: str) -> int:
    return default_catalog().id_for(key)
