"""Command line entry point: generate a world and report region coverage."""

from __future__ import annotations

import argparse
import logging
import sys

from . import config
from .environment import rasterize
from .environment.generators.pipeline import (
    GenerationPipeline,
    ParamValidationError,
    PipelineError,
    SnapshotError,
    WorldSnapshot,
    create_pipeline,
)
from .environment.world import WorldConfigError

logger = logging.getLogger("biomeforge")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="biomeforge", description="Generate a biome region layout"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=config.RANDOM_SEED,
        help=f"Master seed (default: {config.RANDOM_SEED})",
    )
    parser.add_argument(
        "--size",
        choices=[*config.WORLD_SIZES, config.CUSTOM_WORLD_SIZE_KEY],
        default=config.DEFAULT_WORLD_SIZE_KEY,
        help=f"World size preset (default: {config.DEFAULT_WORLD_SIZE_KEY})",
    )
    parser.add_argument("--width", type=int, help="Width for --size custom")
    parser.add_argument("--height", type=int, help="Height for --size custom")
    parser.add_argument("--load", type=str, help="Restore a saved world snapshot")
    parser.add_argument(
        "--snapshot", type=str, help="Save a world snapshot after generating"
    )
    parser.add_argument(
        "--steps",
        type=int,
        help="Execute only this many sub-steps instead of the whole schedule",
    )
    parser.add_argument(
        "--calibrate",
        action="store_true",
        help="Measure the parallel rasterization threshold before generating",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def _build_pipeline(args: argparse.Namespace) -> GenerationPipeline:
    custom_size = None
    if args.size == config.CUSTOM_WORLD_SIZE_KEY:
        if args.width is None or args.height is None:
            raise WorldConfigError("--size custom requires --width and --height")
        custom_size = (args.width, args.height)

    pipeline = create_pipeline(
        "biome_division", size_key=args.size, seed=args.seed, custom_size=custom_size
    )
    if args.load:
        pipeline.restore_snapshot(WorldSnapshot.load(args.load))
    return pipeline


def _log_coverage(pipeline: GenerationPipeline) -> None:
    grid = pipeline.region_grid
    if grid is None:
        logger.info("No region grid produced")
        return
    total = grid.width * grid.height
    logger.info(f"Region coverage for {grid.width}x{grid.height} world:")
    for region in pipeline.catalog:
        cells = grid.count(region.id)
        if cells:
            logger.info(f"  {region.name:<14} {cells:>10} cells {cells / total:7.2%}")
    unassigned = grid.unassigned_count()
    if unassigned:
        logger.info(f"  {'Unassigned':<14} {unassigned:>10} cells")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        pipeline = _build_pipeline(args)
        if args.calibrate:
            with pipeline.profiler.measure_block("calibration"):
                rasterize.calibrate_parallel_threshold()
        if args.steps is None:
            pipeline.run_all()
        else:
            pipeline.run_steps(args.steps)
    except (WorldConfigError, SnapshotError, ParamValidationError, OSError) as e:
        logger.error(f"Could not set up generation: {e}")
        return 2
    except PipelineError as e:
        logger.error(f"Generation failed: {e}")
        return 1

    _log_coverage(pipeline)
    logger.info(pipeline.performance_report())

    if args.snapshot:
        pipeline.collect_snapshot().save(args.snapshot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
