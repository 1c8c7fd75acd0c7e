"""Abstract base class for generation stages.

Each stage in the pipeline implements the GenerationStage interface. A stage
is a self-describing module made of ordered sub-steps; the scheduler runs
one sub-step at a time, giving each a fresh deterministic RNG.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .params import ParamValidationError

if TYPE_CHECKING:
    from .context import GenerationContext
    from .params import StageMeta


class StageError(Exception):
    """A sub-step could not complete.

    The scheduler catches this, aborts the current run and reports the
    message prefixed with the stage name.
    """


class StageConfigError(StageError):
    """Required configuration is missing, e.g. an unknown region or layer key."""


class StagePreconditionError(StageError):
    """An earlier sub-step's output is missing, or the step index is invalid."""


class GenerationStage(ABC):
    """Abstract base class for generation stages.

    Subclasses must implement meta() and execute(). Stages with tunable
    parameters override get_params() and set_params(); stages that keep
    state between sub-steps clear it in on_reset().
    """

    @abstractmethod
    def meta(self) -> StageMeta:
        """Return the stage's id, name, sub-steps and parameter schema."""
        raise NotImplementedError

    @abstractmethod
    def execute(self, step_index: int, ctx: GenerationContext) -> None:
        """Run one sub-step against the context.

        Args:
            step_index: Index into meta().steps.
            ctx: The execution context for this sub-step.

        Raises:
            StageError: If the sub-step cannot complete.
        """
        raise NotImplementedError

    @property
    def step_count(self) -> int:
        return len(self.meta().steps)

    def get_params(self) -> dict[str, Any]:
        """Current parameter values as a JSON-compatible mapping."""
        return {}

    def set_params(self, blob: Mapping[str, Any]) -> None:  # noqa: B027
        """Restore parameter values from a mapping produced by get_params()."""

    def on_reset(self) -> None:  # noqa: B027
        """Clear any state the stage keeps between sub-steps."""

    def __repr__(self) -> str:
        meta = self.meta()
        return f"{type(self).__name__}(id={meta.id!r}, steps={len(meta.steps)})"


def merge_params(
    meta: StageMeta, current: Mapping[str, Any], blob: Any
) -> dict[str, Any]:
    """Validate a parameter blob against a stage's schema.

    Keys missing from the blob keep their current value and unknown keys
    are ignored, so blobs saved by older versions of a stage still load.
    Nothing is applied unless every known value validates.

    Args:
        meta: The stage's metadata, providing the schema.
        current: Current parameter values.
        blob: Mapping of new values.

    Returns:
        The merged parameter mapping.

    Raises:
        ParamValidationError: If blob is not a mapping or a value is invalid.
    """
    if not isinstance(blob, Mapping):
        raise ParamValidationError(
            f"{meta.id}: parameters must be a mapping, got {type(blob).__name__}"
        )
    merged = dict(current)
    for param in meta.params:
        if param.key in blob:
            merged[param.key] = param.validate(blob[param.key])
    return merged
