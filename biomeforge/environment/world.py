"""World dimensions and vertical layer layout.

A WorldProfile fixes the grid size and the horizontal layer bands (space,
surface, underground, cavern, hell) as percentages of world height. Stages
read layer bounds from the profile instead of hard-coding rows.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace

from biomeforge import config


class WorldConfigError(ValueError):
    """Raised for unknown world sizes, bad custom sizes or bad layer percentages."""


@dataclass(frozen=True)
class WorldSize:
    """Named world dimensions in cells."""

    key: str
    width: int
    height: int
    description: str = ""


@dataclass(frozen=True)
class LayerDefinition:
    """A horizontal band of the world.

    Attributes:
        key: Stable layer key, e.g. "surface".
        start_percent: Top of the band as a percentage of world height.
        end_percent: Bottom of the band (exclusive), percent of height.
        short_name: Compact label for display.
        description: Longer description.
    """

    key: str
    start_percent: int
    end_percent: int
    short_name: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if not 0 <= self.start_percent < self.end_percent <= 100:
            raise WorldConfigError(
                f"Layer {self.key!r} has invalid percentages "
                f"{self.start_percent}..{self.end_percent}"
            )

    def bounds_for_height(self, height: int) -> tuple[int, int]:
        """Row range [start, end) of this layer for a world of the given height."""
        return (
            height * self.start_percent // 100,
            height * self.end_percent // 100,
        )


@dataclass(frozen=True)
class WorldProfile:
    """World size plus ordered layer definitions."""

    size: WorldSize
    layers: tuple[LayerDefinition, ...]

    @property
    def width(self) -> int:
        return self.size.width

    @property
    def height(self) -> int:
        return self.size.height

    @classmethod
    def from_config(
        cls,
        size_key: str = config.DEFAULT_WORLD_SIZE_KEY,
        custom_size: tuple[int, int] | None = None,
        layer_overrides: Mapping[str, tuple[int, int]] | None = None,
    ) -> WorldProfile:
        """Build a profile from the configured sizes and layers.

        Args:
            size_key: One of config.WORLD_SIZES, or "custom".
            custom_size: (width, height) for the "custom" size key.
            layer_overrides: key -> (start_percent, end_percent) replacing the
                configured percentages of existing layers.

        Returns:
            A validated WorldProfile.

        Raises:
            WorldConfigError: If the size key is unknown, the custom size is
                missing or non-positive, an override names an unknown layer,
                or any layer's percentages are invalid.
        """
        size = resolve_world_size(size_key, custom_size)
        layers = {
            key: LayerDefinition(key, start, end, short_name, description)
            for key, (start, end, short_name, description) in (
                config.DEFAULT_LAYERS.items()
            )
        }
        for key, (start, end) in (layer_overrides or {}).items():
            if key not in layers:
                raise WorldConfigError(f"Unknown layer in overrides: {key!r}")
            layers[key] = replace(layers[key], start_percent=start, end_percent=end)
        return cls(size=size, layers=tuple(layers.values()))

    def layer(self, key: str) -> LayerDefinition | None:
        for layer in self.layers:
            if layer.key == key:
                return layer
        return None

    def layer_bounds(self, key: str) -> tuple[int, int] | None:
        """Row range of a layer, or None if the profile has no such layer."""
        layer = self.layer(key)
        return layer.bounds_for_height(self.height) if layer else None

    def layer_at(self, y: int) -> LayerDefinition | None:
        """The first layer whose row range contains row y."""
        for layer in self.layers:
            start, end = layer.bounds_for_height(self.height)
            if start <= y < end:
                return layer
        return None

    def layer_overrides(self) -> dict[str, tuple[int, int]]:
        """Percentages of every layer, suitable for from_config(layer_overrides=...)."""
        return {
            layer.key: (layer.start_percent, layer.end_percent)
            for layer in self.layers
        }


def resolve_world_size(
    size_key: str, custom_size: tuple[int, int] | None = None
) -> WorldSize:
    """Resolve a size key to concrete dimensions.

    Raises:
        WorldConfigError: For unknown keys or an invalid custom size.
    """
    if size_key == config.CUSTOM_WORLD_SIZE_KEY:
        if custom_size is None or custom_size[0] <= 0 or custom_size[1] <= 0:
            raise WorldConfigError(
                "Custom world size requires positive width and height, "
                f"got {custom_size}"
            )
        width, height = custom_size
        return WorldSize(size_key, width, height, "Custom world")

    if size_key not in config.WORLD_SIZES:
        raise WorldConfigError(f"Unknown world size: {size_key!r}")
    width, height, description = config.WORLD_SIZES[size_key]
    return WorldSize(size_key, width, height, description)
