#!/usr/bin/env python3
"""Benchmark serial vs parallel rasterization and full biome division runs."""

from __future__ import annotations

import argparse
import json
import time
from pathlib import Path

from biomeforge.environment.generators.pipeline import create_pipeline
from biomeforge.environment.geometry import Ellipse, Rect, Shape
from biomeforge.environment.rasterize import (
    fill_region,
    fill_region_if,
    unassigned_only,
)
from biomeforge.environment.region_grid import RegionGrid

GRID_SIZES: tuple[tuple[int, int], ...] = (
    (200, 100),
    (600, 300),
    (1200, 600),
    (4200, 1200),
    (8400, 2400),
)

WORLD_SIZE_KEYS: tuple[str, ...] = ("small", "medium", "large")


class RasterBenchmark:
    """Benchmark runner for the rasterizer and the biome division pipeline."""

    def __init__(self, iterations: int) -> None:
        self.iterations = iterations
        self.results: dict[str, dict[str, float]] = {}

    def _time_shape(self, grid: RegionGrid, shape: Shape, parallel: bool) -> float:
        """Average milliseconds for one unconditional plus one admitted fill."""
        elapsed_total = 0.0
        for i in range(self.iterations):
            grid.clear()
            start = time.perf_counter()
            fill_region_if(shape, grid, 2, unassigned_only(), parallel=parallel)
            fill_region(shape, grid, (i % 200) + 3, parallel=parallel)
            elapsed_total += time.perf_counter() - start
        return (elapsed_total / self.iterations) * 1000.0

    def run_raster(self) -> None:
        """Run all configured grid-size benchmarks."""
        print("Rasterizer Benchmark")
        print("=" * 58)
        print(f"Iterations per size: {self.iterations}")
        print()
        print(f"{'Size':>12} {'Serial (ms)':>14} {'Parallel (ms)':>14} {'Ratio':>8}")
        print("-" * 58)

        for width, height in GRID_SIZES:
            grid = RegionGrid(width, height)
            shape = Rect(0, 0, width, height) - Ellipse(
                width / 2, height / 2, width / 4, height / 4
            )
            serial_ms = self._time_shape(grid, shape, parallel=False)
            parallel_ms = self._time_shape(grid, shape, parallel=True)
            ratio = serial_ms / parallel_ms if parallel_ms > 0 else 0.0

            size_key = f"{width}x{height}"
            self.results[size_key] = {
                "serial_ms": serial_ms,
                "parallel_ms": parallel_ms,
            }
            print(f"{size_key:>12} {serial_ms:14.2f} {parallel_ms:14.2f} {ratio:8.2f}")

    def run_pipeline(self, seed: int) -> None:
        """Time a full biome division run for each preset world size."""
        print()
        print("Biome Division Benchmark")
        print("=" * 58)
        print(f"{'World':>12} {'Total (ms)':>14}  Slowest sub-step")
        print("-" * 58)

        for size_key in WORLD_SIZE_KEYS:
            elapsed_total = 0.0
            pipeline = create_pipeline("biome_division", size_key=size_key, seed=seed)
            for _ in range(self.iterations):
                pipeline.reset()
                start = time.perf_counter()
                pipeline.run_all()
                elapsed_total += time.perf_counter() - start
            total_ms = (elapsed_total / self.iterations) * 1000.0

            slowest = pipeline.profiler.slowest(1)
            slowest_name = slowest[0].name if slowest else "-"
            self.results[f"pipeline_{size_key}"] = {"total_ms": total_ms}
            print(f"{size_key:>12} {total_ms:14.2f}  {slowest_name}")

    def save_results(self, filename: str) -> None:
        """Save benchmark output to a JSON file."""
        with Path(filename).open("w") as f:
            json.dump(self.results, f, indent=2)
        print(f"\nSaved benchmark results to {filename}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Benchmark region rasterization")
    parser.add_argument(
        "--iterations",
        type=int,
        default=5,
        help="Number of runs per case (default: 5)",
    )
    parser.add_argument(
        "--seed", type=int, default=42, help="Seed for pipeline runs (default: 42)"
    )
    parser.add_argument(
        "--skip-pipeline",
        action="store_true",
        help="Only benchmark the rasterizer",
    )
    parser.add_argument("--save", type=str, help="Save current results to JSON")
    args = parser.parse_args(argv)

    benchmark = RasterBenchmark(iterations=args.iterations)
    benchmark.run_raster()
    if not args.skip_pipeline:
        benchmark.run_pipeline(args.seed)

    if args.save:
        benchmark.save_results(args.save)


if __name__ == "__main__":
    main()
