"""Tests for the step scheduler.

Uses small purpose-built stages so cursor, replay and failure handling can
be checked independently of biome placement.
"""

from __future__ import annotations

import numpy as np
import pytest

from biomeforge.environment.generators.pipeline import (
    GenerationContext,
    GenerationPipeline,
    GenerationStage,
    PipelineError,
    StageConfigError,
    StageMeta,
    StepMeta,
    StepStatus,
)
from biomeforge.environment.geometry import Rect
from biomeforge.environment.regions import default_catalog
from tests.helpers import small_profile


class StripeStage(GenerationStage):
    """Fills one random-colored row per sub-step; step 0 creates the grid."""

    def __init__(self, stage_id: str = "stripes", steps: int = 3) -> None:
        self._meta = StageMeta(
            id=stage_id,
            name=stage_id.title(),
            description="Random stripes",
            steps=tuple(StepMeta(f"stripe {i}", "") for i in range(steps)),
        )
        self.resets = 0

    def meta(self) -> StageMeta:
        return self._meta

    def execute(self, step_index: int, ctx: GenerationContext) -> None:
        if ctx.run.region_grid is None:
            ctx.create_grid()
        row = ctx.flat_index
        ctx.fill(
            Rect(0, row, ctx.width, row + 1),
            ctx.rng.randint(1, 10),
            f"stripe {row}",
        )

    def on_reset(self) -> None:
        self.resets += 1


class FailingStage(GenerationStage):
    """Single sub-step that always raises a configuration error."""

    def meta(self) -> StageMeta:
        return StageMeta(
            id="failing", name="Failing", description="", steps=(StepMeta("x", ""),)
        )

    def execute(self, step_index: int, ctx: GenerationContext) -> None:
        raise StageConfigError("boom")


def make(*stages: GenerationStage, seed: int = 1) -> GenerationPipeline:
    return GenerationPipeline(
        profile=small_profile(40, 20),
        catalog=default_catalog(),
        seed=seed,
        stages=stages,
    )


# =============================================================================
# Cursor and stepping
# =============================================================================


class TestStepping:
    """Tests for forward stepping and position mapping."""

    def test_counts_and_position(self) -> None:
        pipeline = make(StripeStage("a", 3), StripeStage("b", 2))
        assert pipeline.total_sub_steps == 5
        assert pipeline.position(0) == (0, 0)
        assert pipeline.position(2) == (0, 2)
        assert pipeline.position(3) == (1, 0)
        assert pipeline.position(5) == (2, 0)
        assert pipeline.stage_start(1) == 3

    def test_step_forward_advances_until_complete(self) -> None:
        pipeline = make(StripeStage(steps=2))
        assert pipeline.region_grid is None
        assert pipeline.step_forward()
        assert pipeline.executed_sub_steps == 1
        assert pipeline.step_forward()
        assert pipeline.is_complete
        assert not pipeline.step_forward()
        assert pipeline.executed_sub_steps == 2

    def test_run_steps_stops_at_end(self) -> None:
        pipeline = make(StripeStage(steps=3))
        assert pipeline.run_steps(2) == 2
        assert pipeline.run_steps(5) == 1
        assert pipeline.is_complete

    def test_step_names_and_display_ids(self) -> None:
        pipeline = make(StripeStage("a", 2), StripeStage("b", 2))
        assert pipeline.current_step_display_id() == "1.0"
        assert pipeline.last_executed_name() is None
        pipeline.run_steps(3)
        assert pipeline.current_step_display_id() == "2.1"
        assert pipeline.last_executed_name() == "B - stripe 0"
        pipeline.run_all()
        assert pipeline.current_step_display_id() is None

    def test_shape_log_recorded_per_step(self) -> None:
        pipeline = make(StripeStage(steps=2))
        assert pipeline.last_shape_log() is None
        pipeline.run_all()
        log = pipeline.shape_log(1)
        assert log is not None
        assert [record.label for record in log] == ["stripe 1"]
        assert pipeline.shape_log(5) is None

    def test_phase_stepping(self) -> None:
        pipeline = make(StripeStage("a", 3), StripeStage("b", 2))
        pipeline.step_forward()
        assert pipeline.step_forward_phase()
        assert pipeline.executed_sub_steps == 3
        assert pipeline.step_forward_phase()
        assert pipeline.is_complete
        assert not pipeline.step_forward_phase()


# =============================================================================
# Determinism and replay
# =============================================================================


class TestReplay:
    """Tests that backward stepping reproduces forward state exactly."""

    def test_same_seed_same_grid(self) -> None:
        first = make(StripeStage(steps=5), seed=99)
        second = make(StripeStage(steps=5), seed=99)
        first.run_all()
        second.run_all()
        np.testing.assert_array_equal(
            first.region_grid.data, second.region_grid.data
        )

    def test_step_backward_matches_forward_state(self) -> None:
        pipeline = make(StripeStage(steps=5), seed=3)
        pipeline.run_steps(3)
        expected = pipeline.region_grid.data.copy()
        pipeline.step_forward()
        assert pipeline.step_backward()
        assert pipeline.executed_sub_steps == 3
        np.testing.assert_array_equal(pipeline.region_grid.data, expected)

    def test_step_backward_at_start_is_noop(self) -> None:
        pipeline = make(StripeStage())
        assert not pipeline.step_backward()
        assert not pipeline.step_backward_phase()

    def test_step_backward_to_zero_clears_grid(self) -> None:
        pipeline = make(StripeStage())
        pipeline.step_forward()
        pipeline.step_backward()
        assert pipeline.region_grid is None

    def test_backward_phase_targets(self) -> None:
        pipeline = make(StripeStage("a", 3), StripeStage("b", 2))
        pipeline.run_steps(4)
        assert pipeline.step_backward_phase()
        assert pipeline.executed_sub_steps == 3
        assert pipeline.step_backward_phase()
        assert pipeline.executed_sub_steps == 0

    def test_replay_to_bounds(self) -> None:
        pipeline = make(StripeStage(steps=3))
        pipeline.replay_to(3)
        assert pipeline.is_complete
        with pytest.raises(ValueError, match="outside"):
            pipeline.replay_to(4)
        with pytest.raises(ValueError, match="outside"):
            pipeline.replay_to(-1)

    def test_set_seed_resets_and_changes_output(self) -> None:
        pipeline = make(StripeStage(steps=8), seed=1)
        pipeline.run_all()
        before = pipeline.region_grid.data.copy()
        pipeline.set_seed(2)
        assert pipeline.executed_sub_steps == 0
        assert pipeline.region_grid is None
        pipeline.run_all()
        assert not np.array_equal(pipeline.region_grid.data, before)

    def test_reset_notifies_stages(self) -> None:
        stage = StripeStage()
        pipeline = make(stage)
        pipeline.run_all()
        pipeline.reset()
        assert stage.resets == 1
        assert pipeline.executed_sub_steps == 0
        assert pipeline.profiler.get_stats("stripes.stripe 0") is None

    def test_rerun_current_stage(self) -> None:
        pipeline = make(StripeStage("a", 2), StripeStage("b", 2))
        pipeline.run_steps(3)
        pipeline.rerun_current_stage()
        assert pipeline.executed_sub_steps == 4


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    """Tests for sub-step failure reporting."""

    def test_failure_prefixed_with_stage_name(self) -> None:
        pipeline = make(StripeStage(steps=1), FailingStage())
        pipeline.step_forward()
        with pytest.raises(PipelineError, match="^Failing: boom$") as exc_info:
            pipeline.step_forward()
        assert exc_info.value.stage_id == "failing"
        assert exc_info.value.flat_index == 1

    def test_failure_keeps_cursor_and_grid(self) -> None:
        pipeline = make(StripeStage(steps=1), FailingStage())
        with pytest.raises(PipelineError):
            pipeline.run_all()
        assert pipeline.executed_sub_steps == 1
        assert pipeline.region_grid is not None
        assert pipeline.shape_log(1) is None


# =============================================================================
# Introspection
# =============================================================================


class TestStageInfos:
    """Tests for stage and sub-step status reporting."""

    def test_statuses_follow_cursor(self) -> None:
        pipeline = make(StripeStage("a", 2), StripeStage("b", 2))
        pipeline.run_steps(1)
        first, second = pipeline.stage_infos()

        assert first.status is StepStatus.CURRENT
        assert [s.status for s in first.sub_steps] == [
            StepStatus.COMPLETED,
            StepStatus.CURRENT,
        ]
        assert second.status is StepStatus.PENDING
        assert second.sub_steps[0].display_id == "2.0"
        assert second.sub_steps[0].flat_index == 2

    def test_completed_stage(self) -> None:
        pipeline = make(StripeStage("a", 2), StripeStage("b", 2))
        pipeline.run_steps(2)
        first, second = pipeline.stage_infos()
        assert first.status is StepStatus.COMPLETED
        assert second.status is StepStatus.PENDING
        assert second.sub_steps[0].status is StepStatus.CURRENT

    def test_stage_lookup(self) -> None:
        stage = StripeStage("a")
        pipeline = make(stage)
        assert pipeline.stage("a") is stage
        assert pipeline.stage("missing") is None
        assert not pipeline.stage_infos()[0].has_params
