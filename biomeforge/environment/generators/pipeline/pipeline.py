"""Deterministic step scheduler for stage-based world generation.

The GenerationPipeline runs a sequence of GenerationStages, one sub-step at
a time. Its cursor points at the next sub-step to execute. Every sub-step
gets a fresh RNG derived from the master seed, the sub-step's flat index
and the world size, so:

- stepping forward from a reset always produces the same grid
- stepping backward is a reset followed by a replay of the earlier steps,
  and lands on exactly the state that stepping forward had produced

Sub-step failures abort the current operation. The grid keeps whatever
was written before the failure and the cursor stays on the failed step.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from biomeforge import config
from biomeforge.util import rng
from biomeforge.util.performance import StepProfiler

from .context import GenerationContext, GenerationFacts, RunState
from .snapshot import LayerOverride, StageState, WorldSnapshot
from .stage import StageError, merge_params

if TYPE_CHECKING:
    from collections.abc import Iterable

    from biomeforge.environment.geometry import ShapeRecord
    from biomeforge.environment.region_grid import RegionGrid
    from biomeforge.environment.regions import RegionCatalog
    from biomeforge.environment.world import WorldProfile
    from biomeforge.types import FlatStepIndex, RandomSeed

    from .stage import GenerationStage

logger = logging.getLogger(__name__)


class PipelineError(RuntimeError):
    """A sub-step failed. The message is "<stage name>: <reason>".

    Attributes:
        stage_id: Id of the failing stage.
        stage_name: Display name of the failing stage.
        flat_index: Flat index of the failing sub-step.
    """

    def __init__(
        self, stage_id: str, stage_name: str, flat_index: int, reason: str
    ) -> None:
        super().__init__(f"{stage_name}: {reason}")
        self.stage_id = stage_id
        self.stage_name = stage_name
        self.flat_index = flat_index
        self.reason = reason


# =============================================================================
# INTROSPECTION RECORDS
# =============================================================================


class StepStatus(Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"


@dataclass(frozen=True)
class SubStepInfo:
    """Read-only view of one sub-step for step lists.

    Attributes:
        display_id: "<stage number>.<sub-step index>", stage numbers from 1.
    """

    display_id: str
    flat_index: FlatStepIndex
    name: str
    description: str
    doc_url: str | None
    status: StepStatus


@dataclass(frozen=True)
class StageInfo:
    """Read-only view of one stage and its sub-steps."""

    display_index: int
    stage_id: str
    name: str
    description: str
    has_params: bool
    sub_steps: tuple[SubStepInfo, ...]
    status: StepStatus


# =============================================================================
# PIPELINE
# =============================================================================


class GenerationPipeline:
    """Scheduler that runs registered stages sub-step by sub-step.

    Example:
        pipeline = GenerationPipeline(
            profile=WorldProfile.from_config("small"),
            catalog=default_catalog(),
            seed=12345,
            stages=[BiomeDivisionStage()],
        )
        pipeline.run_all()
        grid = pipeline.region_grid

    Attributes:
        profiler: Per-sub-step timings of the most recent executions.
    """

    def __init__(
        self,
        profile: WorldProfile,
        catalog: RegionCatalog,
        seed: RandomSeed,
        stages: Iterable[GenerationStage] = (),
    ) -> None:
        """Initialize the pipeline.

        Args:
            profile: World size and layer layout.
            catalog: Region key/id/color lookup passed to every sub-step.
            seed: Master seed for deterministic generation.
            stages: Stages to register, in execution order.
        """
        self._profile = profile
        self._catalog = catalog
        self._seed = seed
        self._stages: list[GenerationStage] = []
        self._step_counts: list[int] = []
        self._run = RunState()
        self._cursor: FlatStepIndex = 0
        self._shape_logs: dict[FlatStepIndex, list[ShapeRecord]] = {}
        self.profiler = StepProfiler()
        for stage in stages:
            self.register(stage)

    def register(self, stage: GenerationStage) -> None:
        """Append a stage to the schedule."""
        self._stages.append(stage)
        self._step_counts.append(len(stage.meta().steps))

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def stages(self) -> tuple[GenerationStage, ...]:
        return tuple(self._stages)

    @property
    def total_sub_steps(self) -> int:
        return sum(self._step_counts)

    @property
    def executed_sub_steps(self) -> FlatStepIndex:
        """Number of sub-steps executed since the last reset (the cursor)."""
        return self._cursor

    @property
    def is_complete(self) -> bool:
        return self._cursor >= self.total_sub_steps

    @property
    def seed(self) -> RandomSeed:
        return self._seed

    def set_seed(self, seed: RandomSeed) -> None:
        """Change the master seed. Resets the run."""
        self._seed = seed
        self.reset()

    @property
    def profile(self) -> WorldProfile:
        return self._profile

    def set_profile(self, profile: WorldProfile) -> None:
        """Change world size or layers. Resets the run."""
        self._profile = profile
        self.reset()

    @property
    def catalog(self) -> RegionCatalog:
        return self._catalog

    @property
    def region_grid(self) -> RegionGrid | None:
        return self._run.region_grid

    @property
    def facts(self) -> GenerationFacts:
        return self._run.facts

    def stage(self, stage_id: str) -> GenerationStage | None:
        for stage in self._stages:
            if stage.meta().id == stage_id:
                return stage
        return None

    def position(self, flat_index: FlatStepIndex) -> tuple[int, int]:
        """Map a flat index to (stage index, sub-step index).

        Indices past the end map to (number of stages, 0).
        """
        remaining = flat_index
        for stage_index, count in enumerate(self._step_counts):
            if remaining < count:
                return stage_index, remaining
            remaining -= count
        return len(self._stages), 0

    def stage_start(self, stage_index: int) -> FlatStepIndex:
        """Flat index of a stage's first sub-step."""
        return sum(self._step_counts[:stage_index])

    def shape_log(self, flat_index: FlatStepIndex) -> list[ShapeRecord] | None:
        """Shape records produced by an executed sub-step."""
        return self._shape_logs.get(flat_index)

    def last_shape_log(self) -> list[ShapeRecord] | None:
        if self._cursor == 0:
            return None
        return self.shape_log(self._cursor - 1)

    def step_name(self, flat_index: FlatStepIndex) -> str:
        """'<stage name> - <sub-step name>' for a flat index."""
        stage_index, sub_index = self.position(flat_index)
        meta = self._stages[stage_index].meta()
        return f"{meta.name} - {meta.steps[sub_index].name}"

    def last_executed_name(self) -> str | None:
        if self._cursor == 0:
            return None
        return self.step_name(self._cursor - 1)

    def current_step_display_id(self) -> str | None:
        """Display id of the next sub-step to run, or None when complete."""
        if self.is_complete:
            return None
        stage_index, sub_index = self.position(self._cursor)
        return f"{stage_index + 1}.{sub_index}"

    # -------------------------------------------------------------------------
    # Stepping
    # -------------------------------------------------------------------------

    def step_forward(self) -> bool:
        """Execute the sub-step at the cursor and advance.

        Returns:
            True if a sub-step ran, False if the pipeline was already complete.

        Raises:
            PipelineError: If the sub-step fails. The cursor does not move.
        """
        if self.is_complete:
            return False

        flat_index = self._cursor
        stage_index, sub_index = self.position(flat_index)
        stage = self._stages[stage_index]
        meta = stage.meta()

        ctx = GenerationContext(
            run=self._run,
            profile=self._profile,
            catalog=self._catalog,
            rng=rng.step_rng(
                self._seed, flat_index, self._profile.width, self._profile.height
            ),
            flat_index=flat_index,
        )

        step_label = f"{meta.id}.{meta.steps[sub_index].name}"
        start = time.perf_counter()
        try:
            stage.execute(sub_index, ctx)
        except StageError as e:
            logger.warning(
                f"Step {flat_index} ({meta.name} - {meta.steps[sub_index].name}) "
                f"failed: {e}"
            )
            raise PipelineError(meta.id, meta.name, flat_index, str(e)) from e
        elapsed = time.perf_counter() - start

        self.profiler.record(step_label, elapsed)
        self._shape_logs[flat_index] = ctx.shape_log
        self._cursor += 1
        logger.debug(
            f"Step {flat_index} {step_label} done in {elapsed * 1000:.2f}ms "
            f"({len(ctx.shape_log)} shapes)"
        )
        return True

    def step_forward_phase(self) -> bool:
        """Run the remaining sub-steps of the current stage.

        Returns:
            True if any sub-step ran.
        """
        if self.is_complete:
            return False
        target_stage, _ = self.position(self._cursor)
        ran = False
        while not self.is_complete and self.position(self._cursor)[0] == target_stage:
            self.step_forward()
            ran = True
        return ran

    def step_backward(self) -> bool:
        """Undo the last sub-step by resetting and replaying the ones before it.

        Returns:
            True if the cursor moved, False if nothing had been executed.
        """
        if self._cursor == 0:
            return False
        self.replay_to(self._cursor - 1)
        return True

    def step_backward_phase(self) -> bool:
        """Return to the start of the current stage.

        If the cursor already sits at a stage start, return to the start of
        the previous stage instead.

        Returns:
            True if the cursor moved.
        """
        if self._cursor == 0:
            return False
        stage_index, _ = self.position(self._cursor)
        current_start = self.stage_start(stage_index)
        if self._cursor > current_start:
            target = current_start
        elif stage_index > 0:
            target = self.stage_start(stage_index - 1)
        else:
            target = 0
        self.replay_to(target)
        return True

    def run_all(self) -> None:
        """Execute every remaining sub-step."""
        start = time.perf_counter()
        while not self.is_complete:
            self.step_forward()
        logger.info(
            f"Generation complete: {self.total_sub_steps} steps, seed {self._seed}, "
            f"{self._profile.width}x{self._profile.height} "
            f"in {(time.perf_counter() - start) * 1000:.1f}ms"
        )

    def run_steps(self, count: int) -> int:
        """Execute up to count sub-steps.

        Lets interactive callers run a long generation in chunks and stay
        responsive between calls.

        Returns:
            Number of sub-steps actually executed.
        """
        executed = 0
        while executed < count and self.step_forward():
            executed += 1
        return executed

    def replay_to(self, flat_index: FlatStepIndex) -> None:
        """Reset, then execute sub-steps 0..flat_index-1.

        Raises:
            ValueError: If flat_index is outside 0..total_sub_steps.
            PipelineError: If a replayed sub-step fails.
        """
        if not 0 <= flat_index <= self.total_sub_steps:
            raise ValueError(
                f"Replay target {flat_index} outside 0..{self.total_sub_steps}"
            )
        logger.debug(f"Replaying to step {flat_index}")
        self.reset()
        for _ in range(flat_index):
            self.step_forward()

    def rerun_current_stage(self) -> None:
        """Re-execute the most recently touched stage with current parameters.

        Replays up to that stage's start, then runs the whole stage. Used
        after parameter edits so the grid reflects the new values.
        """
        if not self._stages:
            return
        if self._cursor == 0:
            stage_index = 0
        else:
            stage_index, _ = self.position(self._cursor - 1)
        self.replay_to(self.stage_start(stage_index))
        self.step_forward_phase()

    def reset(self) -> None:
        """Clear the grid, facts and shape logs, and rewind the cursor to 0."""
        self._run.clear()
        self._cursor = 0
        self._shape_logs.clear()
        for stage in self._stages:
            stage.on_reset()
        self.profiler.reset()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def stage_infos(self) -> list[StageInfo]:
        """Status of every stage and sub-step relative to the cursor."""
        infos: list[StageInfo] = []
        flat = 0
        for stage_index, stage in enumerate(self._stages):
            meta = stage.meta()
            stage_start = flat
            sub_steps = []
            for sub_index, step in enumerate(meta.steps):
                if flat < self._cursor:
                    status = StepStatus.COMPLETED
                elif flat == self._cursor:
                    status = StepStatus.CURRENT
                else:
                    status = StepStatus.PENDING
                sub_steps.append(
                    SubStepInfo(
                        display_id=f"{stage_index + 1}.{sub_index}",
                        flat_index=flat,
                        name=step.name,
                        description=step.description,
                        doc_url=step.doc_url,
                        status=status,
                    )
                )
                flat += 1

            if flat <= self._cursor:
                stage_status = StepStatus.COMPLETED
            elif stage_start >= self._cursor:
                stage_status = StepStatus.PENDING
            else:
                stage_status = StepStatus.CURRENT
            infos.append(
                StageInfo(
                    display_index=stage_index + 1,
                    stage_id=meta.id,
                    name=meta.name,
                    description=meta.description,
                    has_params=bool(meta.params),
                    sub_steps=tuple(sub_steps),
                    status=stage_status,
                )
            )
        return infos

    def performance_report(self) -> str:
        return self.profiler.get_report()

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def collect_snapshot(self) -> WorldSnapshot:
        """Capture seed, world configuration and every stage's parameters."""
        size = self._profile.size
        custom_size = None
        if size.key == config.CUSTOM_WORLD_SIZE_KEY:
            custom_size = (size.width, size.height)
        return WorldSnapshot(
            seed=self._seed,
            world_size=size.key,
            custom_size=custom_size,
            layers={
                key: LayerOverride(start, end)
                for key, (start, end) in self._profile.layer_overrides().items()
            },
            stages=[
                StageState(stage.meta().id, stage.get_params())
                for stage in self._stages
            ],
        )

    def restore_snapshot(self, snapshot: WorldSnapshot) -> None:
        """Apply a snapshot's seed, world profile and stage parameters.

        Stage parameters are matched by stage id; states for stages that are
        not registered are ignored. The run is reset.

        Every parameter blob is validated before anything is applied, so an
        invalid snapshot leaves the pipeline unchanged.
        """
        profile = snapshot.profile()
        matched: list[tuple[GenerationStage, dict[str, Any]]] = []
        for state in snapshot.stages:
            stage = self.stage(state.stage_id)
            if stage is None:
                logger.debug(f"Snapshot state for unknown stage {state.stage_id!r}")
                continue
            merged = merge_params(stage.meta(), stage.get_params(), state.params)
            matched.append((stage, merged))

        self._seed = snapshot.seed
        self._profile = profile
        for stage, params in matched:
            stage.set_params(params)
        self.reset()
