"""
Cluster generation: center rejection sampling, object distribution across
clusters, and per-cluster position sampling.

All three consume the shared PlacementRandom passed in by the caller and
validate 3D positions through a GroundAdjuster.
"""

import logging
import math

from .config import active_zones, in_any_zone
from .ground import AdjustKind

log = logging.getLogger(__name__)

# Spacing/zone attempts per cluster center before placing it anyway
MAX_CENTER_ATTEMPTS = 100

# Excluded-surface rejections tolerated per cluster center
MAX_CENTER_SURFACE_RETRIES = 100

# Attempts per object slot before the slot is dropped
MAX_POSITION_ATTEMPTS = 20


class ClusterCenter:
    """Ground-adjusted cluster center."""

    __slots__ = ('index', 'position', 'kind')

    def __init__(self, index, position, kind=AdjustKind.ADJUSTED):
        self.index = index
        self.position = position
        self.kind = kind

    @property
    def x(self):
        return self.position[0]

    @property
    def z(self):
        return self.position[2]

    def horizontal_distance(self, x, z):
        return math.hypot(self.position[0] - x, self.position[2] - z)

    def __eq__(self, other):
        if not isinstance(other, ClusterCenter):
            return NotImplemented
        return self.index == other.index and self.position == other.position

    def __hash__(self):
        return hash((self.index, self.position))

    def __repr__(self):
        return "ClusterCenter({}, {})".format(self.index, self.position)


def violation_message(count, config):
    """Diagnostic shown when centers could not be spaced out."""
    sx, _, sz = config.placement_size
    return (
        "Placement area {:.1f} x {:.1f} is too small for {} clusters spaced "
        "{:.1f} apart. Options: enlarge placement_size, lower "
        "min_cluster_distance, reduce the cluster count, or remove exclusion "
        "zones/excluded surfaces covering the area."
    ).format(sx, sz, count, config.min_cluster_distance)


# ===================================================================
# Cluster centers
# ===================================================================

class ClusterCenterGenerator:
    """
    Rejection-samples cluster centers inside the placement footprint.

    Checks run cheapest first: exclusion zones, spacing to earlier centers,
    then the surface probe.
    """

    def __init__(self, config, adjuster, zones=None):
        self.config = config
        self.adjuster = adjuster
        self.zones = active_zones(zones)

    def generate(self, count, rng):
        """
        Args:
            count: Number of centers to produce.
            rng:   PlacementRandom.

        Returns:
            (tuple of ClusterCenter, violation flag)
        """
        centers = []
        violation = False
        for index in range(count):
            center, degraded = self._generate_one(index, centers, rng)
            centers.append(center)
            violation = violation or degraded
        return tuple(centers), violation

    def _sample_candidate(self, rng):
        min_x, max_x, min_z, max_z = self.config.footprint_bounds()
        x = min_x + rng.uniform() * (max_x - min_x)
        z = min_z + rng.uniform() * (max_z - min_z)
        return x, z

    def _is_valid(self, x, z, centers):
        # Candidates sit on the placement plane until the probe runs
        if in_any_zone(self.zones, x, z, y=self.config.placement_center[1]):
            return False
        min_dist = self.config.min_cluster_distance
        for other in centers:
            if other.horizontal_distance(x, z) < min_dist:
                return False
        return True

    def _generate_one(self, index, centers, rng):
        degraded = False
        surface_retries = 0
        while True:
            attempts = 0
            while True:
                attempts += 1
                x, z = self._sample_candidate(rng)
                if self._is_valid(x, z, centers):
                    break
                if attempts >= MAX_CENTER_ATTEMPTS:
                    log.warning("Could not find valid position for cluster %d, placing anyway",
                                index)
                    degraded = True
                    break

            result = self.adjuster.adjust((x, z), rng)
            if not result.excluded:
                return ClusterCenter(index, result.position, result.kind), degraded

            surface_retries += 1
            if surface_retries >= MAX_CENTER_SURFACE_RETRIES:
                log.warning("Cluster %d only found excluded surfaces after %d retries, "
                            "using fallback height", index, surface_retries)
                position = (x, self.config.fallback_height, z)
                return ClusterCenter(index, position, AdjustKind.FALLBACK), True


# ===================================================================
# Object distribution
# ===================================================================

def distribute_objects(total_objects, cluster_count, quota=None,
                       count_range=None, rng=None):
    """
    Split *total_objects* across clusters.

    With a fixed *quota* every cluster receives it, and one extra entry
    holds any remainder, so the result can be one longer than
    *cluster_count*.  With *count_range* (lo, hi) each cluster but the last
    draws from [max(1, lo), min(hi, remaining - clusters_after)], keeping at
    least one object for every later cluster; the last cluster takes the
    rest.

    Returns:
        List of per-cluster object counts.
    """
    if cluster_count <= 0:
        return []

    if quota is not None:
        distribution = [quota] * cluster_count
        remainder = total_objects - quota * cluster_count
        if remainder > 0:
            distribution.append(remainder)
        return distribution

    if count_range is None or rng is None:
        raise ValueError("count_range and rng are required without a fixed quota")

    low, high = count_range
    distribution = []
    remaining = total_objects
    for i in range(cluster_count):
        if i == cluster_count - 1:
            distribution.append(remaining)
            break
        clusters_after = cluster_count - i - 1
        upper = min(high, remaining - clusters_after)
        lower = min(max(1, low), upper)
        count = rng.randint(lower, upper)
        distribution.append(count)
        remaining -= count
    return distribution


# ===================================================================
# Cluster positions
# ===================================================================

class ClusterPositionGenerator:
    """Samples object positions in a disk around one cluster center."""

    def __init__(self, config, adjuster, zones=None):
        self.config = config
        self.adjuster = adjuster
        self.zones = active_zones(zones)

    def cluster_radius(self, rng):
        """One spread factor per cluster, shared by all its points."""
        cfg = self.config
        return cfg.cluster_base_radius * (1.0 + rng.uniform() * cfg.cluster_radius_variability)

    def generate(self, center, count, radius, rng):
        """
        Args:
            center: ClusterCenter.
            count:  Requested number of positions.
            radius: Disk radius for this cluster.
            rng:    PlacementRandom.

        Returns:
            List of (x, y, z) positions, at most *count* long.
        """
        positions = []
        for slot in range(count):
            position = self._sample_slot(center, radius, rng)
            if position is None:
                log.debug("Dropped slot %d of cluster %d after %d attempts",
                          slot, center.index, MAX_POSITION_ATTEMPTS)
                continue
            positions.append(position)
        return positions

    def _sample_slot(self, center, radius, rng):
        for _ in range(MAX_POSITION_ATTEMPTS):
            dx, dz = rng.unit_disk()
            x, z = self.config.clamp_to_footprint(center.x + dx * radius,
                                                  center.z + dz * radius)
            if in_any_zone(self.zones, x, z):
                continue
            result = self.adjuster.adjust((x, z), rng)
            if not result.excluded:
                return result.position
        return None
