"""Tests for saving, loading and restoring world snapshots."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest

from biomeforge import config
from biomeforge.environment.generators.pipeline import (
    ParamValidationError,
    SnapshotError,
    WorldSnapshot,
)
from biomeforge.environment.generators.pipeline.snapshot import (
    LayerOverride,
    StageState,
)
from biomeforge.environment.world import WorldConfigError
from tests.helpers import make_pipeline


def _snapshot() -> WorldSnapshot:
    return WorldSnapshot(
        seed=1234,
        world_size="custom",
        custom_size=(420, 120),
        layers={"space": LayerOverride(0, 8)},
        stages=[StageState("biome_division", {"crimson_count": 1})],
        timestamp=1_700_000_000,
    )


class TestSnapshotFile:
    """Tests for the JSON file format."""

    def test_save_adds_suffix(self, tmp_path: Path) -> None:
        written = _snapshot().save(tmp_path / "world")
        assert written.suffix == config.SNAPSHOT_SUFFIX
        assert written.exists()

    def test_save_keeps_explicit_suffix(self, tmp_path: Path) -> None:
        written = _snapshot().save(tmp_path / "world.json")
        assert written.name == "world.json"

    def test_load_returns_equal_snapshot(self, tmp_path: Path) -> None:
        snapshot = _snapshot()
        loaded = WorldSnapshot.load(snapshot.save(tmp_path / "world"))
        assert loaded == snapshot

    def test_saved_document_fields(self, tmp_path: Path) -> None:
        path = _snapshot().save(tmp_path / "world")
        data = json.loads(path.read_text())
        assert data["version"] == config.SNAPSHOT_VERSION
        assert data["seed"] == 1234
        assert data["custom_size"] == [420, 120]
        assert data["layers"] == {"space": {"start_percent": 0, "end_percent": 8}}
        assert data["stages"][0]["stage_id"] == "biome_division"

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.lwd"
        path.write_text("{not json")
        with pytest.raises(SnapshotError, match="not valid JSON"):
            WorldSnapshot.load(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            WorldSnapshot.load(tmp_path / "absent.lwd")


class TestSnapshotParsing:
    """Tests for from_dict validation."""

    def test_newer_version_rejected(self) -> None:
        data = _snapshot().to_dict()
        data["version"] = config.SNAPSHOT_VERSION + 1
        with pytest.raises(SnapshotError, match="newer than supported"):
            WorldSnapshot.from_dict(data)

    def test_missing_seed_rejected(self) -> None:
        data = _snapshot().to_dict()
        del data["seed"]
        with pytest.raises(SnapshotError, match="Malformed"):
            WorldSnapshot.from_dict(data)

    def test_non_object_rejected(self) -> None:
        with pytest.raises(SnapshotError, match="JSON object"):
            WorldSnapshot.from_dict([1, 2, 3])

    def test_optional_fields_default(self) -> None:
        snapshot = WorldSnapshot.from_dict(
            {"version": 1, "seed": 5, "world_size": "small"}
        )
        assert snapshot.layers == {}
        assert snapshot.stages == []
        assert snapshot.custom_size is None
        assert snapshot.timestamp == 0

    def test_profile_rebuilds_layers(self) -> None:
        profile = _snapshot().profile()
        assert (profile.width, profile.height) == (420, 120)
        assert profile.layer_bounds("space") == (0, 9)

    def test_profile_invalid_size(self) -> None:
        snapshot = WorldSnapshot(seed=1, world_size="enormous")
        with pytest.raises(WorldConfigError):
            snapshot.profile()


class TestPipelineSnapshots:
    """Tests for collecting and restoring pipeline state."""

    def test_collect_captures_seed_size_and_params(self) -> None:
        pipeline = make_pipeline(seed=77)
        snapshot = pipeline.collect_snapshot()
        assert snapshot.seed == 77
        assert snapshot.world_size == config.CUSTOM_WORLD_SIZE_KEY
        assert snapshot.custom_size == (420, 120)
        assert [s.stage_id for s in snapshot.stages] == ["biome_division"]
        assert snapshot.stages[0].params["crimson_count"] == 3

    def test_restore_reproduces_grid(self, tmp_path: Path) -> None:
        original = make_pipeline(seed=2024)
        original.stage("biome_division").set_params({"desert_surface_count": 2})
        original.run_all()
        path = original.collect_snapshot().save(tmp_path / "world")

        restored = make_pipeline(seed=1)
        restored.restore_snapshot(WorldSnapshot.load(path))
        assert restored.seed == 2024
        assert restored.stage("biome_division").get_params()[
            "desert_surface_count"
        ] == 2
        restored.run_all()
        np.testing.assert_array_equal(
            restored.region_grid.data, original.region_grid.data
        )

    def test_restore_resets_run(self) -> None:
        pipeline = make_pipeline()
        pipeline.run_steps(3)
        pipeline.restore_snapshot(pipeline.collect_snapshot())
        assert pipeline.executed_sub_steps == 0
        assert pipeline.region_grid is None

    def test_unknown_stage_ignored(self) -> None:
        pipeline = make_pipeline()
        snapshot = pipeline.collect_snapshot()
        snapshot.stages.append(StageState("erosion", {"strength": 3}))
        pipeline.restore_snapshot(snapshot)
        assert pipeline.stage("erosion") is None

    def test_invalid_profile_leaves_pipeline_untouched(self) -> None:
        pipeline = make_pipeline(seed=9)
        snapshot = WorldSnapshot(seed=10, world_size="enormous")
        with pytest.raises(WorldConfigError):
            pipeline.restore_snapshot(snapshot)
        assert pipeline.seed == 9
        assert pipeline.profile.width == 420

    def test_invalid_stage_params_leave_pipeline_untouched(self) -> None:
        pipeline = make_pipeline(seed=42)
        pipeline.run_steps(3)
        grid_before = pipeline.region_grid.data.copy()
        snapshot = WorldSnapshot(
            seed=999,
            world_size="medium",
            stages=[StageState("biome_division", {"crimson_count": 99})],
        )

        with pytest.raises(ParamValidationError, match="crimson_count"):
            pipeline.restore_snapshot(snapshot)

        assert pipeline.seed == 42
        assert pipeline.profile.width == 420
        assert pipeline.executed_sub_steps == 3
        assert pipeline.stage("biome_division").params.crimson_count == 3
        np.testing.assert_array_equal(pipeline.region_grid.data, grid_before)
