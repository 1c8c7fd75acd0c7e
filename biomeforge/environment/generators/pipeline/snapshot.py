"""Persisted world snapshots.

A snapshot is the smallest record that reproduces a world: master seed,
world size, layer percentages and every stage's parameters. Cell data is
not stored; loading a snapshot and replaying the pipeline regenerates the
grid exactly, because every sub-step's RNG derives from the seed.

Snapshots are saved as pretty-printed JSON with the ".lwd" suffix.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from biomeforge import config
from biomeforge.environment.world import WorldProfile

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """Raised for unreadable snapshots or unsupported snapshot versions."""


@dataclass(frozen=True)
class LayerOverride:
    start_percent: int
    end_percent: int


@dataclass(frozen=True)
class StageState:
    """Saved parameters of one stage, matched back by stage id on restore."""

    stage_id: str
    params: dict[str, Any]


@dataclass
class WorldSnapshot:
    """Everything needed to regenerate a world.

    Attributes:
        seed: Master seed.
        world_size: World size key ("small", "medium", "large" or "custom").
        layers: Layer key -> percentages.
        stages: Stage parameters in registration order.
        custom_size: (width, height) when world_size is "custom".
        version: Snapshot format version.
        timestamp: Unix time (seconds) the snapshot was taken.
    """

    seed: int
    world_size: str
    layers: dict[str, LayerOverride] = field(default_factory=dict)
    stages: list[StageState] = field(default_factory=list)
    custom_size: tuple[int, int] | None = None
    version: int = config.SNAPSHOT_VERSION
    timestamp: int = field(default_factory=lambda: int(time.time()))

    def profile(self) -> WorldProfile:
        """Rebuild the world profile this snapshot was taken with.

        Raises:
            WorldConfigError: If the size or layers are no longer valid.
        """
        return WorldProfile.from_config(
            self.world_size,
            custom_size=self.custom_size,
            layer_overrides={
                key: (layer.start_percent, layer.end_percent)
                for key, layer in self.layers.items()
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "seed": self.seed,
            "world_size": self.world_size,
            "custom_size": list(self.custom_size) if self.custom_size else None,
            "layers": {
                key: {
                    "start_percent": layer.start_percent,
                    "end_percent": layer.end_percent,
                }
                for key, layer in self.layers.items()
            },
            "stages": [
                {"stage_id": state.stage_id, "params": state.params}
                for state in self.stages
            ],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Any) -> WorldSnapshot:
        """Parse a snapshot mapping.

        Raises:
            SnapshotError: If fields are missing or malformed, or the version
                is newer than this build supports.
        """
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot must be a JSON object")
        try:
            version = int(data["version"])
            if version > config.SNAPSHOT_VERSION:
                raise SnapshotError(
                    f"Snapshot version {version} is newer than supported "
                    f"version {config.SNAPSHOT_VERSION}"
                )
            custom = data.get("custom_size")
            return cls(
                version=version,
                seed=int(data["seed"]),
                world_size=str(data["world_size"]),
                custom_size=(int(custom[0]), int(custom[1])) if custom else None,
                layers={
                    str(key): LayerOverride(
                        int(layer["start_percent"]), int(layer["end_percent"])
                    )
                    for key, layer in data.get("layers", {}).items()
                },
                stages=[
                    StageState(str(state["stage_id"]), dict(state.get("params", {})))
                    for state in data.get("stages", [])
                ],
                timestamp=int(data.get("timestamp", 0)),
            )
        except (KeyError, TypeError, ValueError, IndexError, AttributeError) as e:
            if isinstance(e, SnapshotError):
                raise
            raise SnapshotError(f"Malformed snapshot: {e}") from e

    def save(self, path: str | Path) -> Path:
        """Write the snapshot as JSON. Adds the .lwd suffix if missing.

        Returns:
            The path written.
        """
        path = Path(path)
        if not path.suffix:
            path = path.with_suffix(config.SNAPSHOT_SUFFIX)
        with path.open("w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved world snapshot to {path}")
        return path

    @classmethod
    def load(cls, path: str | Path) -> WorldSnapshot:
        """Read a snapshot written by save().

        Raises:
            SnapshotError: If the file is not valid snapshot JSON.
            OSError: If the file cannot be read.
        """
        path = Path(path)
        with path.open() as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise SnapshotError(f"Snapshot {path} is not valid JSON: {e}") from e
        snapshot = cls.from_dict(data)
        logger.info(f"Loaded world snapshot from {path} (seed {snapshot.seed})")
        return snapshot
