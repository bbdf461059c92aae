"""
Deterministic random stream for clustered placement.

Every draw made while placing objects comes from one PlacementRandom
instance.  Components receive it as an argument and never build their own
generator, so a fixed seed reproduces a layout exactly.

Usage:
    from cluster_scatter.rng import initialize, SEED_FIXED

    rng = initialize(SEED_FIXED, 1234)
    u = rng.uniform()
    n = rng.randint(3, 8)
    dx, dz = rng.unit_disk()
"""

import logging
import math
import random
import time

log = logging.getLogger(__name__)

SEED_FIXED = 'fixed'
SEED_TIME_BASED = 'time_based'

SEED_MODES = (SEED_FIXED, SEED_TIME_BASED)


class PlacementRandom:
    """
    Single uniform stream backed by random.Random.

    Only three kinds of draws exist: floats in [0, 1), integers in an
    inclusive range and points inside the unit disk.
    """

    def __init__(self, seed):
        self.seed = seed
        self._rng = random.Random(seed)

    def uniform(self):
        """Return a float in [0, 1)."""
        return self._rng.random()

    def randint(self, low, high):
        """Return an integer in [low, high], swapping reversed bounds."""
        if low > high:
            low, high = high, low
        return self._rng.randint(low, high)

    def unit_disk(self):
        """
        Return an (x, z) offset uniformly distributed inside the unit disk.

        Polar sampling with a square-root radius keeps the density uniform
        over the disk area.  Always consumes exactly two draws.
        """
        angle = self.uniform() * 2.0 * math.pi
        radius = math.sqrt(self.uniform())
        return radius * math.cos(angle), radius * math.sin(angle)

    def getstate(self):
        return self._rng.getstate()

    def setstate(self, state):
        self._rng.setstate(state)

    def __repr__(self):
        return "PlacementRandom(seed={!r})".format(self.seed)


def time_seed():
    """Derive a 32-bit seed from the wall clock."""
    return time.time_ns() & 0xFFFFFFFF


def initialize(seed_mode, seed_value=0):
    """
    Create the stream for a placement session.

    Args:
        seed_mode: SEED_FIXED or SEED_TIME_BASED.
        seed_value: Seed used in fixed mode, ignored otherwise.

    Returns:
        PlacementRandom

    Raises:
        ValueError: If seed_mode is not a known mode.
    """
    if seed_mode == SEED_FIXED:
        return PlacementRandom(int(seed_value))
    if seed_mode == SEED_TIME_BASED:
        seed = time_seed()
        log.debug("Time-based placement seed: %d", seed)
        return PlacementRandom(seed)
    raise ValueError("Unknown seed mode: {!r}".format(seed_mode))
