"""
Placement orchestration: sequences cluster count, centers, distribution
and per-cluster positions into one deterministic run.

Usage:
    from cluster_scatter import PlacementConfig, PlaneSurface
    from cluster_scatter.placement import PlacementOrchestrator

    orchestrator = PlacementOrchestrator(PlacementConfig(seed=7), PlaneSurface())
    result = orchestrator.run()
    if result.violation:
        print(result.violation_message)
    for center, points in result.layout:
        ...

Each run replaces the previous layout; the replaced layout is returned on
the new result so the caller can dispose of whatever it spawned from it.
"""

import logging
from enum import Enum

from .clusters import (ClusterCenterGenerator, ClusterPositionGenerator,
                       distribute_objects, violation_message)
from .ground import GroundAdjuster
from .rng import SEED_FIXED, initialize
from .spawning import sample_transforms

log = logging.getLogger(__name__)


class PlacementState(Enum):
    IDLE = "IDLE"
    COMPUTING_CLUSTER_COUNT = "COMPUTING_CLUSTER_COUNT"
    GENERATING_CENTERS = "GENERATING_CENTERS"
    DISTRIBUTING = "DISTRIBUTING"
    GENERATING_POSITIONS = "GENERATING_POSITIONS"
    DONE = "DONE"


class ClusterLayout:
    """Ordered (ClusterCenter, [positions]) pairs from one run."""

    def __init__(self, clusters=()):
        self.clusters = tuple((center, tuple(points)) for center, points in clusters)

    @property
    def centers(self):
        return tuple(center for center, _ in self.clusters)

    def points(self):
        """All positions in cluster order."""
        return [p for _, points in self.clusters for p in points]

    def __iter__(self):
        return iter(self.clusters)

    def __len__(self):
        return len(self.clusters)

    def __eq__(self, other):
        if not isinstance(other, ClusterLayout):
            return NotImplemented
        return self.clusters == other.clusters

    def __repr__(self):
        return "ClusterLayout({} clusters, {} points)".format(
            len(self.clusters), len(self.points()))


class PlacementResult:
    """Layout plus diagnostics for one run."""

    def __init__(self, layout, distribution, violation, violation_message,
                 requested, previous_layout=None, seed=None, transforms=None):
        self.layout = layout
        self.distribution = distribution
        self.violation = violation
        self.violation_message = violation_message
        self.requested = requested
        self.realized = len(layout.points())
        self.previous_layout = previous_layout
        self.seed = seed
        self.transforms = transforms or []

    @property
    def dropped(self):
        return self.requested - self.realized

    def __repr__(self):
        return "PlacementResult({}/{} points, violation={})".format(
            self.realized, self.requested, self.violation)


class PlacementOrchestrator:
    """
    Runs the clustered placement pipeline for one config.

    In fixed seed mode every run starts a fresh stream from the seed, so
    repeated runs are identical.  In time-based mode the stream is seeded
    once when the orchestrator is created and continues across runs.
    """

    def __init__(self, config, surface, zones=None):
        """
        Args:
            config:  PlacementConfig.
            surface: SurfaceQuery used for every probe.
            zones:   Optional list of ExclusionZone.
        """
        self.config = config
        self.surface = surface
        self.zones = list(zones or ())
        self.state = PlacementState.IDLE
        self.layout = None
        self._session_rng = None
        if config.seed_mode != SEED_FIXED:
            self._session_rng = initialize(config.seed_mode, config.seed)

    def _rng_for_run(self):
        if self._session_rng is not None:
            return self._session_rng
        return initialize(SEED_FIXED, self.config.seed)

    def _resolve_cluster_count(self, rng):
        cfg = self.config
        if cfg.has_fixed_cluster_count:
            count = cfg.fixed_cluster_count
        else:
            count = rng.randint(*cfg.cluster_count_range)
        if not cfg.has_fixed_quota and count > cfg.total_objects:
            log.warning("%s: %d clusters requested for %d objects, using %d clusters",
                        cfg.name, count, cfg.total_objects, cfg.total_objects)
            count = cfg.total_objects
        return count

    def run(self):
        """
        Execute one full placement run.

        Returns:
            PlacementResult
        """
        cfg = self.config
        previous = self.layout
        self.state = PlacementState.IDLE
        self.layout = None

        rng = self._rng_for_run()
        adjuster = GroundAdjuster(cfg, self.surface)

        self.state = PlacementState.COMPUTING_CLUSTER_COUNT
        base_count = self._resolve_cluster_count(rng)
        cluster_count = base_count
        total = cfg.total_objects
        if cfg.has_fixed_quota and total > base_count * cfg.objects_per_cluster:
            # Remainder gets a cluster of its own
            cluster_count += 1

        self.state = PlacementState.GENERATING_CENTERS
        center_gen = ClusterCenterGenerator(cfg, adjuster, self.zones)
        centers, violation = center_gen.generate(cluster_count, rng)
        message = None
        if violation:
            message = violation_message(cluster_count, cfg)
            log.warning("%s: %s", cfg.name, message)

        self.state = PlacementState.DISTRIBUTING
        if cfg.has_fixed_quota:
            distribution = distribute_objects(total, base_count,
                                              quota=cfg.objects_per_cluster)
        else:
            distribution = distribute_objects(total, cluster_count,
                                              count_range=cfg.objects_per_cluster_range,
                                              rng=rng)

        self.state = PlacementState.GENERATING_POSITIONS
        position_gen = ClusterPositionGenerator(cfg, adjuster, self.zones)
        clusters = []
        for center, count in zip(centers, distribution):
            radius = position_gen.cluster_radius(rng)
            clusters.append((center, position_gen.generate(center, count, radius, rng)))

        layout = ClusterLayout(clusters)
        transforms = sample_transforms(layout, cfg, rng)
        self.layout = layout
        self.state = PlacementState.DONE

        result = PlacementResult(layout, distribution, violation, message,
                                 requested=sum(distribution),
                                 previous_layout=previous, seed=rng.seed,
                                 transforms=transforms)
        log.info("%s: placed %d of %d objects in %d clusters",
                 cfg.name, result.realized, result.requested, len(layout))
        return result


# ===================================================================
# High-Level API
# ===================================================================

def run_placement(config, zones, surface):
    """
    Run one placement for *config* against *surface*.

    Args:
        config:  PlacementConfig.
        zones:   List of ExclusionZone (may be empty or None).
        surface: SurfaceQuery.

    Returns:
        PlacementResult
    """
    return PlacementOrchestrator(config, surface, zones).run()


def adjust_single(xz, config, surface, rng=None):
    """
    Ground-adjust a single (x, z) location.

    Args:
        xz:      (x, z) location.
        config:  PlacementConfig supplying heights and the surface rule.
        surface: SurfaceQuery.
        rng:     Optional PlacementRandom; a stream seeded from the config
                 is created when omitted.

    Returns:
        GroundAdjustResult
    """
    if rng is None:
        rng = initialize(config.seed_mode, config.seed)
    return GroundAdjuster(config, surface).adjust(xz, rng)


def run_spawners(configs, surface, zones=None):
    """
    Run several placement configs in spawn order.

    Disabled configs are skipped.  Configs with equal spawn_order run in
    the order given.

    Returns:
        Dict {config.name: PlacementResult} in execution order.
    """
    results = {}
    for config in sorted(configs, key=lambda c: c.spawn_order):
        if not config.enabled:
            log.debug("Skipping disabled spawner %s", config.name)
            continue
        if config.name in results:
            log.warning("Duplicate spawner name %r, later result replaces earlier",
                        config.name)
        results[config.name] = PlacementOrchestrator(config, surface, zones).run()
    return results
