"""
Per-step timing for generation runs.

The scheduler records the duration of every sub-step it executes. Replays
execute earlier sub-steps again, so each sub-step keeps aggregate timings
across executions as well as the most recent one, which is what reports
and "slowest step" queries use.

Usage:
    profiler = StepProfiler()
    profiler.record("biome_division.Deserts", elapsed)

    with profiler.measure_block("calibration"):
        rasterize.calibrate_parallel_threshold()

    print(profiler.get_report())
"""

import math
import time
from contextlib import contextmanager
from dataclasses import dataclass

_REPORT_WIDTH = 74


@dataclass
class PerformanceStats:
    """Timings of one sub-step since the profiler was last reset.

    Attributes:
        name: "<stage id>.<sub-step name>".
        call_count: Executions, replays included.
        last_time: Duration of the most recent execution, in seconds.
    """

    name: str
    call_count: int = 0
    total_time: float = 0.0
    min_time: float = math.inf
    max_time: float = 0.0
    last_time: float = 0.0

    def add_measurement(self, duration: float) -> None:
        self.call_count += 1
        self.total_time += duration
        self.last_time = duration
        if duration < self.min_time:
            self.min_time = duration
        if duration > self.max_time:
            self.max_time = duration

    @property
    def avg_time(self) -> float:
        if self.call_count == 0:
            return 0.0
        return self.total_time / self.call_count


class StepProfiler:
    """Timing collector keyed by sub-step name.

    Reports list sub-steps in the order they first ran.

    Args:
        enabled: Start collecting immediately. A disabled profiler ignores
            record() and measure_block().
    """

    def __init__(self, enabled: bool = True) -> None:
        self.stats: dict[str, PerformanceStats] = {}
        self.enabled = enabled

    def reset(self) -> None:
        self.stats.clear()

    def record(self, name: str, duration: float) -> None:
        """Add one measured duration (seconds) under name."""
        if not self.enabled:
            return
        stats = self.stats.get(name)
        if stats is None:
            stats = self.stats[name] = PerformanceStats(name)
        stats.add_measurement(duration)

    @contextmanager
    def measure_block(self, name: str):
        """Time the body of a with-block, even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, time.perf_counter() - start)

    def get_stats(self, name: str) -> PerformanceStats | None:
        return self.stats.get(name)

    def total_time(self) -> float:
        """Sum of the most recent duration of every sub-step."""
        return sum(stats.last_time for stats in self.stats.values())

    def slowest(self, count: int) -> list[PerformanceStats]:
        """Up to count sub-steps, slowest most-recent execution first."""
        ranked = sorted(self.stats.values(), key=lambda s: s.last_time, reverse=True)
        return ranked[: max(count, 0)]

    def get_report(self) -> str:
        """Table of the most recent execution of each sub-step.

        Columns are the last duration, its share of the total, the number of
        executions and the average duration.
        """
        if not self.stats:
            return "No performance data collected."

        total = self.total_time()
        title = "Generation Step Timings"
        rule = "-" * _REPORT_WIDTH
        lines = [
            title,
            "=" * len(title),
            f"{'Step':<36} {'Last(ms)':<10} {'Share':<8} {'Runs':<6} {'Avg(ms)':<10}",
            rule,
        ]
        for stat in self.stats.values():
            share = stat.last_time / total if total > 0 else 0.0
            lines.append(
                f"{stat.name:<36} {stat.last_time * 1000:<10.2f} {share:<8.1%} "
                f"{stat.call_count:<6} {stat.avg_time * 1000:<10.2f}"
            )
        lines += [rule, f"{'Total':<36} {total * 1000:<10.2f}"]
        return "\n".join(lines)
