"""Tests for the per-step profiler."""

from __future__ import annotations

import pytest

from biomeforge.util.performance import PerformanceStats, StepProfiler


class TestPerformanceStats:
    """Tests for PerformanceStats aggregation."""

    def test_add_measurement_updates_aggregates(self) -> None:
        stats = PerformanceStats("step")
        stats.add_measurement(0.2)
        stats.add_measurement(0.4)

        assert stats.call_count == 2
        assert stats.min_time == pytest.approx(0.2)
        assert stats.max_time == pytest.approx(0.4)
        assert stats.last_time == pytest.approx(0.4)
        assert stats.avg_time == pytest.approx(0.3)

    def test_empty_stats_average_zero(self) -> None:
        stats = PerformanceStats("step")
        assert stats.avg_time == 0.0


class TestStepProfiler:
    """Tests for StepProfiler collection and reporting."""

    def test_record_creates_stats(self) -> None:
        """record() aggregates by name."""
        profiler = StepProfiler()
        profiler.record("biome_division.Oceans", 0.01)
        profiler.record("biome_division.Oceans", 0.03)

        stats = profiler.get_stats("biome_division.Oceans")
        assert stats is not None
        assert stats.call_count == 2
        assert stats.last_time == pytest.approx(0.03)

    def test_disabled_profiler_records_nothing(self) -> None:
        profiler = StepProfiler(enabled=False)
        profiler.record("a", 1.0)
        with profiler.measure_block("b"):
            pass

        assert profiler.stats == {}

        profiler.enabled = True
        profiler.record("a", 1.0)
        assert profiler.get_stats("a") is not None

    def test_measure_block_records_duration(self) -> None:
        profiler = StepProfiler()
        with profiler.measure_block("block"):
            sum(range(1000))

        stats = profiler.get_stats("block")
        assert stats is not None
        assert stats.call_count == 1
        assert stats.last_time >= 0.0

    def test_measure_block_records_on_exception(self) -> None:
        profiler = StepProfiler()
        with pytest.raises(RuntimeError), profiler.measure_block("failing"):
            raise RuntimeError("boom")

        assert profiler.get_stats("failing") is not None

    def test_total_time_sums_latest_durations(self) -> None:
        profiler = StepProfiler()
        profiler.record("a", 5.0)
        profiler.record("a", 1.0)
        profiler.record("b", 2.0)

        assert profiler.total_time() == pytest.approx(3.0)

    def test_slowest_orders_by_latest_duration(self) -> None:
        profiler = StepProfiler()
        profiler.record("fast", 0.1)
        profiler.record("slow", 0.9)
        profiler.record("medium", 0.5)

        assert [s.name for s in profiler.slowest(2)] == ["slow", "medium"]
        assert profiler.slowest(0) == []

    def test_report(self) -> None:
        profiler = StepProfiler()
        assert profiler.get_report() == "No performance data collected."

        profiler.record("biome_division.Snow", 0.002)
        report = profiler.get_report()
        assert "Generation Step Timings" in report
        assert "biome_division.Snow" in report
        assert "Total" in report

    def test_reset_clears_stats(self) -> None:
        profiler = StepProfiler()
        profiler.record("a", 1.0)
        profiler.reset()
        assert profiler.get_stats("a") is None
