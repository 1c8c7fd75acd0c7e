"""Stage-based world generation.

A GenerationPipeline runs registered GenerationStages one sub-step at a
time against a shared region grid. Every sub-step gets its own RNG derived
from the master seed, so any prefix of the schedule can be replayed
exactly, which is how stepping backward works.

Example usage:
    from biomeforge.environment.generators.pipeline import create_pipeline

    pipeline = create_pipeline("biome_division", size_key="small", seed=42)
    pipeline.run_all()
    grid = pipeline.region_grid

The pipeline can also be assembled manually:
    from biomeforge.environment.generators.pipeline import (
        BiomeDivisionStage,
        GenerationPipeline,
    )

    pipeline = GenerationPipeline(
        profile=WorldProfile.from_config("medium"),
        catalog=default_catalog(),
        seed=42,
        stages=[BiomeDivisionStage()],
    )
"""

from .context import GenerationContext, GenerationFacts, RunState
from .factory import create_biome_division_pipeline, create_pipeline
from .params import ParamDef, ParamValidationError, StageMeta, StepMeta
from .pipeline import GenerationPipeline, PipelineError, StageInfo, StepStatus
from .snapshot import SnapshotError, WorldSnapshot
from .stage import (
    GenerationStage,
    StageConfigError,
    StageError,
    StagePreconditionError,
)
from .stages import BiomeDivisionParams, BiomeDivisionStage

__all__ = [
    "BiomeDivisionParams",
    "BiomeDivisionStage",
    "GenerationContext",
    "GenerationFacts",
    "GenerationPipeline",
    "GenerationStage",
    "ParamDef",
    "ParamValidationError",
    "PipelineError",
    "RunState",
    "SnapshotError",
    "StageConfigError",
    "StageError",
    "StageInfo",
    "StageMeta",
    "StagePreconditionError",
    "StepMeta",
    "StepStatus",
    "WorldSnapshot",
    "create_biome_division_pipeline",
    "create_pipeline",
]
