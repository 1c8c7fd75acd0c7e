"""Tests for the command line entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from biomeforge.__main__ import main
from tests.helpers import catalog_without, make_pipeline

SMALL_ARGS = ["--size", "custom", "--width", "420", "--height", "120"]


class TestMain:
    """Tests for main() exit codes and snapshot handling."""

    def test_full_run(self) -> None:
        assert main([*SMALL_ARGS, "--seed", "5"]) == 0

    def test_partial_run(self) -> None:
        assert main([*SMALL_ARGS, "--steps", "3"]) == 0

    def test_custom_size_requires_dimensions(self) -> None:
        assert main(["--size", "custom", "--width", "420"]) == 2

    def test_snapshot_save_and_load(self, tmp_path: Path) -> None:
        target = tmp_path / "world"
        assert main([*SMALL_ARGS, "--seed", "8", "--snapshot", str(target)]) == 0

        saved = tmp_path / "world.lwd"
        assert json.loads(saved.read_text())["seed"] == 8
        assert main(["--load", str(saved)]) == 0

    def test_missing_snapshot_file(self, tmp_path: Path) -> None:
        assert main(["--load", str(tmp_path / "absent.lwd")]) == 2

    def test_calibrate_flag(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO)
        with patch(
            "biomeforge.environment.rasterize.calibrate_parallel_threshold"
        ) as calibrate:
            assert main([*SMALL_ARGS, "--steps", "1", "--calibrate"]) == 0
        calibrate.assert_called_once_with()
        # Calibration is timed alongside the generation steps
        assert "calibration" in caplog.text

    def test_pipeline_failure_exit_code(self) -> None:
        broken = make_pipeline(catalog=catalog_without("ocean"))
        with patch("biomeforge.__main__.create_pipeline", return_value=broken):
            assert main(SMALL_ARGS) == 1
        assert broken.executed_sub_steps == 1

    def test_unknown_size_is_usage_error(self) -> None:
        with pytest.raises(SystemExit):
            main(["--size", "gigantic"])
