"""Parameter schema and metadata types for generation stages.

A stage describes itself with StageMeta: its id, display name, ordered
sub-steps and tunable parameters. Tools read this metadata to build
parameter editors and step lists without knowing anything about the stage.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any


class ParamValidationError(ValueError):
    """Raised when a parameter value violates its declared type."""


# =============================================================================
# PARAMETER TYPES
# =============================================================================


@dataclass(frozen=True)
class FloatParam:
    """Float in the closed range [min, max]."""

    min: float
    max: float

    def validate(self, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ParamValidationError(f"expected a number, got {value!r}")
        value = float(value)
        if not self.min <= value <= self.max:
            raise ParamValidationError(
                f"{value} outside range [{self.min}, {self.max}]"
            )
        return value


@dataclass(frozen=True)
class IntParam:
    """Integer in the closed range [min, max]."""

    min: int
    max: int

    def validate(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ParamValidationError(f"expected an integer, got {value!r}")
        if isinstance(value, float):
            if not value.is_integer():
                raise ParamValidationError(f"expected an integer, got {value!r}")
            value = int(value)
        if not isinstance(value, int):
            raise ParamValidationError(f"expected an integer, got {value!r}")
        if not self.min <= value <= self.max:
            raise ParamValidationError(
                f"{value} outside range [{self.min}, {self.max}]"
            )
        return value


@dataclass(frozen=True)
class BoolParam:
    def validate(self, value: Any) -> bool:
        if not isinstance(value, bool):
            raise ParamValidationError(f"expected a boolean, got {value!r}")
        return value


@dataclass(frozen=True)
class TextParam:
    def validate(self, value: Any) -> str:
        if not isinstance(value, str):
            raise ParamValidationError(f"expected text, got {value!r}")
        return value


@dataclass(frozen=True)
class EnumParam:
    """One of a fixed list of string options."""

    options: tuple[str, ...]

    def validate(self, value: Any) -> str:
        if value not in self.options:
            raise ParamValidationError(
                f"{value!r} is not one of {', '.join(self.options)}"
            )
        return value


type ParamType = FloatParam | IntParam | BoolParam | TextParam | EnumParam


# =============================================================================
# METADATA
# =============================================================================


@dataclass(frozen=True)
class ParamDef:
    """Definition of one tunable parameter.

    Attributes:
        key: Unique snake_case key within the stage.
        name: Display name.
        description: What the parameter controls.
        param_type: Type constraint the value must satisfy.
        default: Default value.
        group: Sub-step name the parameter belongs to, for grouping in editors.
    """

    key: str
    name: str
    description: str
    param_type: ParamType
    default: Any
    group: str = ""

    def validate(self, value: Any) -> Any:
        """Return value coerced to the parameter's type.

        Raises:
            ParamValidationError: If the value violates the type constraint.
        """
        try:
            return self.param_type.validate(value)
        except ParamValidationError as e:
            raise ParamValidationError(f"{self.key}: {e}") from e


@dataclass(frozen=True)
class StepMeta:
    """Metadata for one sub-step of a stage."""

    name: str
    description: str
    doc_url: str | None = None


@dataclass(frozen=True)
class StageMeta:
    """Complete self-description of a generation stage.

    Attributes:
        id: Stable identifier, used to match saved parameters to stages.
        name: Display name, also used to prefix error messages.
        description: What the stage produces.
        steps: Ordered sub-steps, addressed by index.
        params: Tunable parameter definitions.
    """

    id: str
    name: str
    description: str
    steps: Sequence[StepMeta] = field(default_factory=tuple)
    params: Sequence[ParamDef] = field(default_factory=tuple)

    def defaults(self) -> dict[str, Any]:
        return {param.key: param.default for param in self.params}

    def param(self, key: str) -> ParamDef | None:
        for param in self.params:
            if param.key == key:
                return param
        return None

    def groups(self) -> dict[str, list[ParamDef]]:
        """Parameters grouped by their group name, in declaration order."""
        grouped: dict[str, list[ParamDef]] = {}
        for param in self.params:
            grouped.setdefault(param.group, []).append(param)
        return grouped
