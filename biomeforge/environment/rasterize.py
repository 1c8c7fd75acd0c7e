"""Rasterization of shapes into a RegionGrid.

Three operations write or query the grid through a shape:

- fill_region: write a region id into every member cell
- fill_region_if: write only where an admission predicate accepts the
  current cell value
- shape_all_match: check that every (sampled) member cell satisfies a
  predicate, returning at the first failure

Each operation clips the shape's bounding box to the grid and measures the
clipped area. Areas at or above the parallel threshold are split into
contiguous row bands evaluated on a shared thread pool; smaller areas run
on the calling thread. Both paths visit the same cells with the same
vectorized kernel, so results are bit-identical. Every row is written by
exactly one band, and the pool is joined before the call returns.

Predicates are vectorized: they receive a numpy array of current region ids
and return a boolean array of the same shape.
"""

from __future__ import annotations

import logging
import math
import os
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed, wait

import numpy as np

from biomeforge import config
from biomeforge.environment.geometry import BoundingBox, Rect, Shape
from biomeforge.environment.region_grid import UNASSIGNED, RegionGrid
from biomeforge.types import RegionId

logger = logging.getLogger(__name__)

type CellPredicate = Callable[[np.ndarray], np.ndarray]

# Rows per band on the serial path. Bounds temporary mask memory on huge fills.
_SERIAL_BAND_ROWS = 256

_parallel_threshold: int = config.PARALLEL_PIXEL_THRESHOLD
_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


# =============================================================================
# PREDICATES
# =============================================================================


def unassigned_only() -> CellPredicate:
    """Admit only cells no stage has claimed yet."""
    return lambda cells: cells == UNASSIGNED


def unassigned_or(*region_ids: RegionId) -> CellPredicate:
    """Admit unassigned cells and cells holding any of the given ids."""
    allowed = np.array((UNASSIGNED, *region_ids), dtype=np.uint8)
    return lambda cells: np.isin(cells, allowed)


def matches(region_id: RegionId) -> CellPredicate:
    """Accept cells holding exactly this id."""
    return lambda cells: cells == region_id


# =============================================================================
# PARALLEL THRESHOLD
# =============================================================================


def parallel_threshold() -> int:
    """Current clipped-area size (cells) at which the parallel path is used."""
    return _parallel_threshold


def set_parallel_threshold(value: int) -> None:
    """Set the parallel threshold for subsequent rasterization calls.

    Args:
        value: Area in cells. 0 forces the parallel path for every non-empty
            fill; a very large value forces the serial path.

    Raises:
        ValueError: If value is negative.
    """
    global _parallel_threshold
    if value < 0:
        raise ValueError(f"Parallel threshold must be non-negative, got {value}")
    logger.debug(f"Parallel pixel threshold {_parallel_threshold} -> {value}")
    _parallel_threshold = value


def _worker_count() -> int:
    if config.RASTER_MAX_WORKERS is not None:
        return max(1, config.RASTER_MAX_WORKERS)
    return max(1, min(32, os.cpu_count() or 1))


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=_worker_count(), thread_name_prefix="raster"
            )
        return _executor


def _use_parallel(area: int, parallel: bool | None) -> bool:
    if parallel is not None:
        return parallel
    return area >= _parallel_threshold


# =============================================================================
# BANDING
# =============================================================================


def _split_rows(rows: np.ndarray, band_rows: int) -> list[np.ndarray]:
    """Split a row index array into contiguous bands of at most band_rows."""
    return [rows[i : i + band_rows] for i in range(0, len(rows), band_rows)]


def _parallel_band_rows(row_count: int) -> int:
    workers = _worker_count()
    return max(math.ceil(row_count / workers), config.RASTER_MIN_ROWS_PER_BAND, 1)


def _band_mask(shape: Shape, rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
    xs = cols[np.newaxis, :]
    ys = rows[:, np.newaxis]
    return np.broadcast_to(shape.mask(xs, ys), (len(rows), len(cols)))


def _fill_band(
    shape: Shape,
    grid: RegionGrid,
    value: RegionId,
    admit: CellPredicate | None,
    box: BoundingBox,
    rows: np.ndarray,
) -> None:
    """Fill one contiguous band of rows. The band owns those rows exclusively."""
    cols = np.arange(box.x_min, box.x_max)
    window = grid.data[rows[0] : rows[-1] + 1, box.x_min : box.x_max]
    selected = _band_mask(shape, rows, cols)
    if admit is not None:
        selected = selected & admit(window)
    window[selected] = value


def _band_all_match(
    shape: Shape,
    grid: RegionGrid,
    predicate: CellPredicate,
    box: BoundingBox,
    rows: np.ndarray,
    step: int,
    stop: threading.Event | None = None,
) -> bool:
    if stop is not None and stop.is_set():
        # Another band already failed; the overall answer is known.
        return True
    cols = np.arange(box.x_min, box.x_max, step)
    window = grid.data[np.ix_(rows, cols)]
    inside = _band_mask(shape, rows, cols)
    ok = bool(np.all(predicate(window[inside])))
    if not ok and stop is not None:
        stop.set()
    return ok


# =============================================================================
# FILL OPERATIONS
# =============================================================================


def _run_fill(
    shape: Shape,
    grid: RegionGrid,
    value: RegionId,
    admit: CellPredicate | None,
    parallel: bool | None,
) -> None:
    box = shape.bounding_box().clip(grid.width, grid.height)
    if box.is_empty():
        return

    rows = np.arange(box.y_min, box.y_max)
    if _use_parallel(box.area, parallel):
        bands = _split_rows(rows, _parallel_band_rows(len(rows)))
        executor = _get_executor()
        futures = [
            executor.submit(_fill_band, shape, grid, value, admit, box, band)
            for band in bands
        ]
        # Every band finishes before a worker exception is re-raised.
        wait(futures)
        for future in futures:
            future.result()
    else:
        for band in _split_rows(rows, _SERIAL_BAND_ROWS):
            _fill_band(shape, grid, value, admit, box, band)


def fill_region(
    shape: Shape,
    grid: RegionGrid,
    value: RegionId,
    parallel: bool | None = None,
) -> None:
    """Unconditionally write value into every member cell of shape.

    Args:
        shape: Shape to rasterize.
        grid: Target grid. Cells outside the grid are skipped.
        value: Region id to write.
        parallel: Force the parallel (True) or serial (False) path. None
            chooses by clipped area against the parallel threshold.
    """
    _run_fill(shape, grid, value, None, parallel)


def fill_region_if(
    shape: Shape,
    grid: RegionGrid,
    value: RegionId,
    admit: CellPredicate,
    parallel: bool | None = None,
) -> None:
    """Write value into member cells whose current id passes admit.

    Args:
        shape: Shape to rasterize.
        grid: Target grid.
        value: Region id to write.
        admit: Vectorized predicate over current cell values.
        parallel: Path override, see fill_region.
    """
    _run_fill(shape, grid, value, admit, parallel)


def shape_all_match(
    shape: Shape,
    grid: RegionGrid,
    predicate: CellPredicate,
    step: int = 1,
    parallel: bool | None = None,
) -> bool:
    """Check that every sampled member cell satisfies predicate.

    Sampling visits rows y_min, y_min + step, ... and the same column
    stride, starting from the clipped bounding box's corner. A shape with
    no cells inside the grid matches trivially.

    Args:
        shape: Shape whose cells are checked.
        grid: Grid to read.
        predicate: Vectorized predicate over cell values.
        step: Sampling stride, clamped to at least 1.
        parallel: Path override, see fill_region.

    Returns:
        True if no sampled member cell fails the predicate.
    """
    step = max(step, 1)
    box = shape.bounding_box().clip(grid.width, grid.height)
    if box.is_empty():
        return True

    rows = np.arange(box.y_min, box.y_max, step)
    area = (box.width // step) * (box.height // step)

    if _use_parallel(area, parallel):
        stop = threading.Event()
        bands = _split_rows(rows, _parallel_band_rows(len(rows)))
        executor = _get_executor()
        futures: list[Future[bool]] = [
            executor.submit(
                _band_all_match, shape, grid, predicate, box, band, step, stop
            )
            for band in bands
        ]
        result = True
        for future in as_completed(futures):
            if not future.result():
                result = False
                stop.set()
        return result

    return all(
        _band_all_match(shape, grid, predicate, box, band, step)
        for band in _split_rows(rows, _SERIAL_BAND_ROWS)
    )


# =============================================================================
# CALIBRATION
# =============================================================================


def _time_fill(
    grid: RegionGrid, shape: Shape, parallel: bool, iterations: int
) -> float:
    start = time.perf_counter()
    for i in range(iterations):
        fill_region(shape, grid, (i % 250) + 1, parallel=parallel)
    return (time.perf_counter() - start) / max(iterations, 1)


def calibrate_parallel_threshold() -> int:
    """Measure the serial/parallel crossover and install it as the threshold.

    For each calibration size a square-ish grid of that many cells is
    filled repeatedly on both paths. The first size where the parallel path
    is faster becomes the crossover (falling back to the configured default
    when it never wins); the installed threshold is the crossover scaled by
    the safety margin.

    Returns:
        The installed threshold.
    """
    crossover = config.PARALLEL_PIXEL_THRESHOLD
    for size in config.CALIBRATION_SIZES:
        side = max(1, math.isqrt(size))
        grid = RegionGrid(side, max(1, size // side))
        shape = Rect(0, 0, grid.width, grid.height)

        _time_fill(grid, shape, False, config.CALIBRATION_WARMUP_ITERS)
        _time_fill(grid, shape, True, config.CALIBRATION_WARMUP_ITERS)
        serial = _time_fill(grid, shape, False, config.CALIBRATION_BENCH_ITERS)
        parallel = _time_fill(grid, shape, True, config.CALIBRATION_BENCH_ITERS)
        logger.debug(
            f"Calibration {size} cells: serial {serial * 1e6:.1f}us, "
            f"parallel {parallel * 1e6:.1f}us"
        )
        if parallel < serial:
            crossover = size
            break

    threshold = int(crossover * config.CALIBRATION_SAFETY_MARGIN)
    logger.info(f"Calibrated parallel pixel threshold: {threshold} cells")
    set_parallel_threshold(threshold)
    return threshold
