"""Deterministic per-step random number generation.

Every sub-step of a generation run gets its own Random instance seeded from
the master seed, the sub-step's flat index in the schedule and the world
dimensions. This ensures that:

1. The same (seed, world size, parameters) always yields the same grid
2. Replaying steps 0..N reproduces exactly the state reached by stepping forward
3. The same seed on a different world size yields a different world

Usage:
    from biomeforge.util import rng

    step_rng = rng.step_rng(master_seed, flat_index, width, height)
    if step_rng.random() < 0.5:
        ...

The mixing function is part of the persisted snapshot contract: changing it
changes every saved world. Do not alter the constants.
"""

from __future__ import annotations

from random import Random
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from biomeforge.types import FlatStepIndex, RandomSeed

# 64-bit linear congruential multiplier/increment (Knuth MMIX)
_STEP_MULTIPLIER = 6364136223846793005
_STEP_INCREMENT = 1442695040888963407
# Odd 64-bit constant used to spread the packed world size
_SIZE_MULTIPLIER = 2862933555777941757

_MASK_64 = (1 << 64) - 1

# Type alias for functions that accept a random source.
# Use this in type hints: `def foo(rng: RNG) -> int:`
type RNG = Random


def derive_step_seed(
    master_seed: RandomSeed,
    flat_index: FlatStepIndex,
    width: int,
    height: int,
) -> int:
    """Derive the 64-bit seed for one sub-step.

    seed = ((master + index) * M + C + ((width << 32) | height) * S) mod 2**64

    All arithmetic wraps at 64 bits, so negative or oversized master seeds
    are accepted and reduced.

    Args:
        master_seed: The run's master seed.
        flat_index: Position of the sub-step in the flattened schedule.
        width: World width in cells.
        height: World height in cells.

    Returns:
        An unsigned 64-bit integer seed.
    """
    size_mix = ((width & _MASK_64) << 32 | (height & _MASK_64)) & _MASK_64
    mixed = (master_seed + flat_index) & _MASK_64
    mixed = (mixed * _STEP_MULTIPLIER) & _MASK_64
    mixed = (mixed + _STEP_INCREMENT) & _MASK_64
    return (mixed + size_mix * _SIZE_MULTIPLIER) & _MASK_64


def step_rng(
    master_seed: RandomSeed,
    flat_index: FlatStepIndex,
    width: int,
    height: int,
) -> Random:
    """Create a fresh Random seeded for one sub-step.

    Args:
        master_seed: The run's master seed.
        flat_index: Position of the sub-step in the flattened schedule.
        width: World width in cells.
        height: World height in cells.

    Returns:
        A new Random instance owned by the caller.
    """
    return Random(derive_step_seed(master_seed, flat_index, width, height))
