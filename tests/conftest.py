from __future__ import annotations

from collections.abc import Iterator

import pytest

from biomeforge.environment import rasterize


@pytest.fixture(autouse=True)
def restore_parallel_threshold() -> Iterator[None]:
    """Restore the process-wide parallel threshold after each test."""
    saved = rasterize.parallel_threshold()
    yield
    rasterize.set_parallel_threshold(saved)
