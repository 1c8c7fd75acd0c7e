"""Region identifier catalog.

Stages refer to regions by string key ("ocean", "desert_true", ...). The
catalog resolves keys to the small integer ids stored in the RegionGrid and
carries the overlay color presentation layers use for each id.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from biomeforge import config
from biomeforge.types import ColorRGBA, RegionId


class UnknownRegionError(KeyError):
    """Raised when a region key is not present in the catalog."""


@dataclass(frozen=True)
class RegionDefinition:
    """One entry of the region catalog.

    Attributes:
        id: Value written into the grid. Never UNASSIGNED.
        key: Stable string key used by stages.
        name: Display name.
        color: Overlay color.
        description: Optional longer description.
    """

    id: RegionId
    key: str
    name: str
    color: ColorRGBA
    description: str = ""


class RegionCatalog:
    """Lookup table between region keys, ids and colors."""

    def __init__(self, definitions: Iterable[RegionDefinition]) -> None:
        self._by_key: dict[str, RegionDefinition] = {}
        self._by_id: dict[RegionId, RegionDefinition] = {}
        for definition in definitions:
            if definition.id == config.UNASSIGNED_REGION_ID:
                raise ValueError(
                    f"Region {definition.key!r} uses the reserved unassigned id"
                )
            if not 0 < definition.id < 256:
                raise ValueError(
                    f"Region {definition.key!r} id {definition.id} does not fit a cell"
                )
            if definition.key in self._by_key:
                raise ValueError(f"Duplicate region key: {definition.key!r}")
            if definition.id in self._by_id:
                raise ValueError(f"Duplicate region id: {definition.id}")
            self._by_key[definition.key] = definition
            self._by_id[definition.id] = definition

    def id_for(self, key: str) -> RegionId:
        """Resolve a region key to its id.

        Raises:
            UnknownRegionError: If the key is not in the catalog.
        """
        definition = self._by_key.get(key)
        if definition is None:
            raise UnknownRegionError(key)
        return definition.id

    def find(self, key: str) -> RegionDefinition | None:
        return self._by_key.get(key)

    def by_id(self, region_id: RegionId) -> RegionDefinition | None:
        return self._by_id.get(region_id)

    def color_for(self, region_id: RegionId) -> ColorRGBA:
        """Overlay color for an id; grey for ids outside the catalog."""
        definition = self._by_id.get(region_id)
        return definition.color if definition else config.UNKNOWN_REGION_COLOR

    def keys(self) -> list[str]:
        return list(self._by_key)

    def __iter__(self):
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key


def default_catalog() -> RegionCatalog:
    """Catalog built from config.DEFAULT_REGIONS."""
    return RegionCatalog(
        RegionDefinition(id=region_id, key=key, name=name, color=color)
        for region_id, key, name, color in config.DEFAULT_REGIONS
    )
