"""
Ground adjustment: turns a horizontal (x, z) candidate into a 3D point by
probing the surface below it.

The three outcomes are the only way surface information reaches the
cluster generators:

    ADJUSTED  - accepted surface hit; y jittered between min and max
                height above it
    EXCLUDED  - hit on an excluded surface; the caller decides whether to
                retry
    FALLBACK  - nothing hit; y set to the configured fallback height
"""

import logging
from enum import Enum

from .surfaces import DOWN

log = logging.getLogger(__name__)


class AdjustKind(Enum):
    ADJUSTED = "ADJUSTED"
    EXCLUDED = "EXCLUDED"
    FALLBACK = "FALLBACK"


class GroundAdjustResult:
    """
    Outcome of one ground adjustment.

    position is None for EXCLUDED results.  surface_y is the hit height for
    ADJUSTED and EXCLUDED results and None for FALLBACK.
    """

    __slots__ = ('kind', 'position', 'surface_y', 'tag')

    def __init__(self, kind, position=None, surface_y=None, tag=None):
        self.kind = kind
        self.position = position
        self.surface_y = surface_y
        self.tag = tag

    @property
    def excluded(self):
        return self.kind is AdjustKind.EXCLUDED

    def __repr__(self):
        return "GroundAdjustResult({}, {}, surface_y={})".format(
            self.kind.value, self.position, self.surface_y)


class GroundAdjuster:
    """Probes straight down through the placement volume."""

    def __init__(self, config, surface):
        self.config = config
        self.surface = surface

    def probe_origin(self, x, z):
        return (x, self.config.placement_center[1] + self.config.probe_height, z)

    def adjust(self, xz, rng):
        """
        Args:
            xz:  (x, z) candidate.
            rng: PlacementRandom; one draw is made for ADJUSTED results only.

        Returns:
            GroundAdjustResult
        """
        x, z = float(xz[0]), float(xz[1])
        cfg = self.config
        hit = self.surface.probe(self.probe_origin(x, z), DOWN, cfg.probe_distance)

        if hit is None:
            log.warning("No surface detected at (%.2f, %.2f). Using fallback height %.2f.",
                        x, z, cfg.fallback_height)
            return GroundAdjustResult(AdjustKind.FALLBACK, (x, cfg.fallback_height, z))

        surface_y = hit.point[1]
        if cfg.surface_rule.is_excluded(hit.tag):
            return GroundAdjustResult(AdjustKind.EXCLUDED, surface_y=surface_y, tag=hit.tag)

        t = rng.uniform()
        y = surface_y + cfg.min_height + t * (cfg.max_height - cfg.min_height)
        # x/z come from the query, not the hit point
        return GroundAdjustResult(AdjustKind.ADJUSTED, (x, y, z),
                                  surface_y=surface_y, tag=hit.tag)
