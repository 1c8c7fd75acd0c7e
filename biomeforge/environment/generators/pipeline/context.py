"""Execution context for generation sub-steps.

The scheduler owns a RunState (the region grid plus the facts sub-steps
publish for later sub-steps) and hands each sub-step a fresh
GenerationContext wrapping it. The context also carries the sub-step's
private RNG and collects a ShapeRecord for every fill so tools can show
which shapes produced the grid.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from biomeforge.environment import rasterize
from biomeforge.environment.geometry import ShapeRecord
from biomeforge.environment.region_grid import RegionGrid
from biomeforge.environment.regions import UnknownRegionError

from .stage import StageConfigError, StagePreconditionError

if TYPE_CHECKING:
    from biomeforge.environment.geometry import Shape, ShapeParams
    from biomeforge.environment.rasterize import CellPredicate
    from biomeforge.environment.regions import RegionCatalog
    from biomeforge.environment.world import WorldProfile
    from biomeforge.types import FlatStepIndex, RegionId, Slot


@dataclass
class GenerationFacts:
    """Facts published by earlier sub-steps for later ones.

    Attributes:
        jungle_on_left: Side the jungle was placed on. None until decided.
        desert_slots: (center, width) of every surface desert.
        true_desert_slots: Subset of desert_slots that carry a true desert.
        crimson_slots: (center, width) of every crimson region.
    """

    jungle_on_left: bool | None = None
    desert_slots: list[Slot] = field(default_factory=list)
    true_desert_slots: list[Slot] = field(default_factory=list)
    crimson_slots: list[Slot] = field(default_factory=list)

    def clear(self) -> None:
        self.jungle_on_left = None
        self.desert_slots.clear()
        self.true_desert_slots.clear()
        self.crimson_slots.clear()


@dataclass
class RunState:
    """State shared by every sub-step of one generation run.

    Attributes:
        region_grid: The region grid, created by the first sub-step.
        facts: Cross-step facts.
    """

    region_grid: RegionGrid | None = None
    facts: GenerationFacts = field(default_factory=GenerationFacts)

    def clear(self) -> None:
        self.region_grid = None
        self.facts.clear()


@dataclass
class GenerationContext:
    """Everything one sub-step may read or modify.

    Attributes:
        run: Shared run state (grid and facts), modified in place.
        profile: World size and layer layout.
        catalog: Region key/id/color lookup.
        rng: Random source private to this sub-step.
        flat_index: Position of this sub-step in the flattened schedule.
        shape_log: Records of every fill performed by this sub-step.
    """

    run: RunState
    profile: WorldProfile
    catalog: RegionCatalog
    rng: random.Random = field(default_factory=random.Random)
    flat_index: FlatStepIndex = 0
    shape_log: list[ShapeRecord] = field(default_factory=list)

    @property
    def width(self) -> int:
        return self.profile.width

    @property
    def height(self) -> int:
        return self.profile.height

    @property
    def facts(self) -> GenerationFacts:
        return self.run.facts

    def create_grid(self) -> RegionGrid:
        """Replace the run's grid with a fresh, fully unassigned one."""
        self.run.region_grid = RegionGrid(self.width, self.height)
        return self.run.region_grid

    def require_grid(self) -> RegionGrid:
        """Return the region grid.

        Raises:
            StagePreconditionError: If no earlier sub-step created it.
        """
        if self.run.region_grid is None:
            raise StagePreconditionError(
                "region grid not initialized, run the layer band step first"
            )
        return self.run.region_grid

    def region_id(self, key: str) -> RegionId:
        """Resolve a region key.

        Raises:
            StageConfigError: If the key is missing from the catalog.
        """
        try:
            return self.catalog.id_for(key)
        except UnknownRegionError:
            raise StageConfigError(f"region '{key}' not defined in catalog") from None

    def layer_bounds(self, key: str) -> tuple[int, int]:
        """Row range [start, end) of a layer.

        Raises:
            StageConfigError: If the profile has no such layer.
        """
        bounds = self.profile.layer_bounds(key)
        if bounds is None:
            raise StageConfigError(f"layer '{key}' not defined in world profile")
        return bounds

    def fill(
        self,
        shape: Shape,
        region_id: RegionId,
        label: str,
        admit: CellPredicate | None = None,
        params: ShapeParams | None = None,
    ) -> None:
        """Rasterize a shape into the grid and record it.

        Args:
            shape: Shape to fill.
            region_id: Region id to write.
            label: Human-readable label for the shape record.
            admit: Optional admission predicate; None overwrites every cell.
            params: Parameters to record instead of shape.params(), used when
                a composite shape is best described by one of its operands.
        """
        grid = self.require_grid()
        if admit is None:
            rasterize.fill_region(shape, grid, region_id)
        else:
            rasterize.fill_region_if(shape, grid, region_id, admit)
        self.shape_log.append(
            ShapeRecord(
                label=label,
                bbox=shape.bounding_box(),
                color=self.catalog.color_for(region_id),
                params=params if params is not None else shape.params(),
            )
        )
