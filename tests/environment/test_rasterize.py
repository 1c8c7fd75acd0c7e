"""Tests for shape rasterization into a RegionGrid."""

from __future__ import annotations

import time
from unittest.mock import patch

import numpy as np
import pytest

from biomeforge import config
from biomeforge.environment import rasterize
from biomeforge.environment.geometry import Ellipse, Rect, Trapezoid
from biomeforge.environment.rasterize import (
    fill_region,
    fill_region_if,
    matches,
    shape_all_match,
    unassigned_only,
    unassigned_or,
)
from biomeforge.environment.region_grid import UNASSIGNED, RegionGrid

# =============================================================================
# PREDICATES
# =============================================================================


class TestPredicates:
    def test_unassigned_only(self) -> None:
        cells = np.array([0, 1, 0, 5], dtype=np.uint8)
        np.testing.assert_array_equal(
            unassigned_only()(cells), [True, False, True, False]
        )

    def test_unassigned_or(self) -> None:
        cells = np.array([0, 1, 6, 5], dtype=np.uint8)
        np.testing.assert_array_equal(
            unassigned_or(6)(cells), [True, False, True, False]
        )

    def test_matches(self) -> None:
        cells = np.array([0, 5, 5, 6], dtype=np.uint8)
        np.testing.assert_array_equal(matches(5)(cells), [False, True, True, False])


# =============================================================================
# FILLING
# =============================================================================


class TestFillRegion:
    """Tests for fill_region and fill_region_if."""

    def test_fill_rect(self) -> None:
        grid = RegionGrid(20, 20)
        fill_region(Rect(0, 0, 20, 20), grid, 5)
        assert grid.count(5) == 400

    def test_fill_writes_only_members(self) -> None:
        grid = RegionGrid(10, 10)
        fill_region(Rect(2, 3, 7, 9), grid, 4)
        assert grid.count(4) == 30
        assert grid.get(2, 3) == 4
        assert grid.get(6, 8) == 4
        assert grid.get(7, 8) == UNASSIGNED
        assert grid.get(2, 9) == UNASSIGNED

    def test_fill_clipped_to_grid(self) -> None:
        grid = RegionGrid(10, 10)
        fill_region(Rect(-5, -5, 5, 5), grid, 2)
        assert grid.count(2) == 25

    def test_fill_outside_grid_is_noop(self) -> None:
        grid = RegionGrid(10, 10)
        fill_region(Rect(20, 20, 30, 30), grid, 2)
        assert grid.unassigned_count() == 100

    def test_fill_overwrites(self) -> None:
        grid = RegionGrid(10, 10, fill=3)
        fill_region(Rect(0, 0, 10, 5), grid, 8)
        assert grid.count(8) == 50
        assert grid.count(3) == 50

    def test_fill_if_respects_predicate(self) -> None:
        grid = RegionGrid(10, 10)
        fill_region(Rect(0, 0, 5, 10), grid, 1)
        fill_region_if(Rect(0, 0, 10, 10), grid, 2, unassigned_only())
        assert grid.count(1) == 50
        assert grid.count(2) == 50

    def test_fill_if_admits_listed_ids(self) -> None:
        grid = RegionGrid(10, 10)
        fill_region(Rect(0, 0, 5, 10), grid, 6)
        fill_region(Rect(5, 0, 10, 10), grid, 9)
        fill_region_if(Rect(0, 0, 10, 10), grid, 7, unassigned_or(6))
        assert grid.count(7) == 50
        assert grid.count(9) == 50

    def test_fill_if_square_leaves_rest_unassigned(self) -> None:
        grid = RegionGrid(100, 100)
        fill_region_if(Rect(10, 10, 30, 30), grid, 5, unassigned_only())
        assert grid.count(5) == 400
        assert grid.count(UNASSIGNED) == 100 * 100 - 400
        assert np.all(grid.data[10:30, 10:30] == 5)

    def test_fill_if_unassigned_only_is_idempotent(self) -> None:
        shape = Ellipse(40.0, 30.0, 25.0, 12.0) - Rect(35, 0, 45, 60)
        grid = RegionGrid(80, 60)
        fill_region(Rect(0, 0, 40, 60), grid, 9)
        fill_region_if(shape, grid, 3, unassigned_only())
        once = grid.data.copy()
        assert grid.count(3) > 0

        fill_region_if(shape, grid, 3, unassigned_only())
        np.testing.assert_array_equal(grid.data, once)

    def test_fill_is_idempotent(self) -> None:
        shape = Ellipse(40.0, 30.0, 25.0, 12.0) - Rect(35, 0, 45, 60)
        grid = RegionGrid(80, 60)
        fill_region(shape, grid, 3)
        once = grid.data.copy()
        fill_region(shape, grid, 3)
        np.testing.assert_array_equal(grid.data, once)

    def test_fill_matches_shape_membership(self) -> None:
        shape = Trapezoid.from_center(30, 5, 40, 6, 20)
        grid = RegionGrid(60, 50)
        fill_region(shape, grid, 1)
        for y in range(0, 50, 3):
            for x in range(0, 60, 3):
                assert (grid.get(x, y) == 1) == shape.contains(x, y)


class TestParallelEquivalence:
    """Serial and parallel paths must produce identical grids."""

    def test_forced_paths_match(self) -> None:
        shape = Ellipse(150.0, 100.0, 120.0, 90.0) - Rect(100, 50, 200, 150)
        serial = RegionGrid(300, 200)
        parallel = RegionGrid(300, 200)
        fill_region(Rect(0, 0, 300, 60), serial, 4)
        fill_region(Rect(0, 0, 300, 60), parallel, 4)

        fill_region_if(shape, serial, 2, unassigned_only(), parallel=False)
        fill_region_if(shape, parallel, 2, unassigned_only(), parallel=True)

        np.testing.assert_array_equal(serial.data, parallel.data)

    def test_threshold_zero_forces_parallel(self) -> None:
        rasterize.set_parallel_threshold(0)
        shape = Trapezoid.from_center(64, 0, 64, 4, 60)
        auto = RegionGrid(128, 64)
        serial = RegionGrid(128, 64)
        fill_region(shape, auto, 5)
        fill_region(shape, serial, 5, parallel=False)
        np.testing.assert_array_equal(auto.data, serial.data)

    def test_all_match_paths_agree(self) -> None:
        grid = RegionGrid(300, 200)
        grid.set(250, 180, 3)
        shape = Rect(0, 0, 300, 200)
        for parallel in (False, True):
            assert not shape_all_match(
                shape, grid, unassigned_only(), parallel=parallel
            )
            assert shape_all_match(
                Rect(0, 0, 200, 200), grid, unassigned_only(), parallel=parallel
            )

    def test_failed_band_waits_for_other_bands(self) -> None:
        finished: list[int] = []

        def fill_band(shape, grid, value, admit, box, rows) -> None:
            if rows[0] == 0:
                raise RuntimeError("band failed")
            time.sleep(0.05)
            finished.append(int(rows[0]))

        grid = RegionGrid(10, 40)
        with (
            patch.object(config, "RASTER_MAX_WORKERS", 4),
            patch.object(config, "RASTER_MIN_ROWS_PER_BAND", 1),
            patch.object(rasterize, "_fill_band", side_effect=fill_band),
            pytest.raises(RuntimeError, match="band failed"),
        ):
            fill_region(Rect(0, 0, 10, 40), grid, 1, parallel=True)

        assert sorted(finished) == [10, 20, 30]


# =============================================================================
# MATCHING
# =============================================================================


class TestShapeAllMatch:
    """Tests for shape_all_match."""

    def test_detects_single_blocked_cell(self) -> None:
        grid = RegionGrid(20, 20)
        grid.set(10, 10, 5)
        assert not shape_all_match(Rect(0, 0, 20, 20), grid, unassigned_only())
        assert shape_all_match(Rect(0, 0, 10, 20), grid, unassigned_only())

    def test_filled_rect_matches(self) -> None:
        grid = RegionGrid(20, 20)
        fill_region(Rect(0, 0, 20, 20), grid, 5)
        assert shape_all_match(Rect(0, 0, 20, 20), grid, matches(5))

    def test_only_members_are_checked(self) -> None:
        """Cells inside the bounding box but outside the shape are ignored."""
        grid = RegionGrid(40, 40)
        grid.set(6, 6, 1)
        assert shape_all_match(Ellipse(20.0, 20.0, 15.0, 15.0), grid, unassigned_only())

    def test_stride_samples_from_box_corner(self) -> None:
        grid = RegionGrid(20, 20)
        grid.set(3, 3, 1)
        assert shape_all_match(Rect(0, 0, 20, 20), grid, unassigned_only(), step=2)
        grid.set(4, 4, 1)
        assert not shape_all_match(
            Rect(0, 0, 20, 20), grid, unassigned_only(), step=2
        )

    def test_empty_shape_matches_trivially(self) -> None:
        grid = RegionGrid(10, 10, fill=1)
        assert shape_all_match(Rect(20, 20, 30, 30), grid, unassigned_only())
        assert shape_all_match(Rect(5, 5, 5, 9), grid, unassigned_only())


# =============================================================================
# THRESHOLD AND CALIBRATION
# =============================================================================


class TestParallelThreshold:
    def test_set_and_get(self) -> None:
        rasterize.set_parallel_threshold(1234)
        assert rasterize.parallel_threshold() == 1234

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            rasterize.set_parallel_threshold(-1)

    def test_calibration_installs_positive_threshold(self) -> None:
        threshold = rasterize.calibrate_parallel_threshold()
        assert threshold > 0
        assert rasterize.parallel_threshold() == threshold
