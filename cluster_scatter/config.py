"""
Placement configuration: placement volume, cluster policies, surface rules
and exclusion zones.

Configs can be built directly or from a plain definition dict::

    {
        'name': str,
        'enabled': bool,
        'spawn_order': int,
        'template': str,
        'total_objects': int,
        'fixed_cluster_count': int,          # 0 = draw from cluster_count_range
        'cluster_count_range': (min, max),
        'objects_per_cluster': int,          # fixed clusters only; 0 = use the range
        'objects_per_cluster_range': (min, max),
        'placement_center': (x, y, z),
        'placement_size': (x, y, z),
        'min_cluster_distance': float,
        'cluster_base_radius': float,
        'cluster_radius_variability': float, # 0-1
        'min_height': float,
        'max_height': float,
        'fallback_height': float,
        'surface': {'accepted': [tag, ...] or None, 'excluded': [tag, ...]},
        'seed': int,
        'seed_mode': 'fixed' | 'time_based',
        'randomize_rotation': bool,
        'rotation_range': (x, y, z),         # degrees
        'scale_min': (x, y, z),
        'scale_max': (x, y, z),
    }

Inconsistent values are corrected by PlacementConfig.normalize() rather
than rejected.
"""

import logging

from .rng import SEED_FIXED, SEED_MODES

log = logging.getLogger(__name__)

# Probe starts this far above the placement center and travels this far down
DEFAULT_PROBE_HEIGHT = 100.0
DEFAULT_PROBE_DISTANCE = 200.0


def _vec3(value, name):
    """Coerce a 3-sequence to a float tuple."""
    try:
        x, y, z = value
    except (TypeError, ValueError):
        raise ValueError("{} must be an (x, y, z) triple, got {!r}".format(name, value))
    return float(x), float(y), float(z)


def _int_range(value, name):
    """Coerce a 2-sequence to an ordered integer pair."""
    try:
        low, high = value
    except (TypeError, ValueError):
        raise ValueError("{} must be a (min, max) pair, got {!r}".format(name, value))
    low, high = int(low), int(high)
    if low > high:
        log.debug("Swapping reversed %s (%d, %d)", name, low, high)
        low, high = high, low
    return low, high


# ===================================================================
# Surface rule
# ===================================================================

class SurfaceRule:
    """
    Partition of surface tags into accepted and excluded sets.

    A tag in the excluded set is always excluded.  With accepted=None every
    other tag is accepted; otherwise only listed tags are, and anything in
    neither set counts as excluded.
    """

    def __init__(self, accepted=None, excluded=()):
        self.accepted = frozenset(accepted) if accepted is not None else None
        self.excluded = frozenset(excluded)

    def is_excluded(self, tag):
        if tag in self.excluded:
            return True
        if self.accepted is None:
            return False
        return tag not in self.accepted

    def is_accepted(self, tag):
        return not self.is_excluded(tag)

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        accepted = data.get('accepted')
        return cls(accepted=accepted, excluded=data.get('excluded', ()))

    def to_dict(self):
        return {
            'accepted': sorted(self.accepted) if self.accepted is not None else None,
            'excluded': sorted(self.excluded),
        }

    def __repr__(self):
        return "SurfaceRule(accepted={!r}, excluded={!r})".format(
            self.accepted, self.excluded)


# ===================================================================
# Exclusion zones
# ===================================================================

class ExclusionZone:
    """Axis-aligned box no cluster center or object position may land in."""

    def __init__(self, center, size, name="Exclusion Zone", active=True):
        self.center = _vec3(center, 'center')
        self.size = _vec3(size, 'size')
        self.name = name
        self.active = bool(active)

    def contains(self, x, y, z):
        """Full box test."""
        return (self.contains_xz(x, z) and
                abs(y - self.center[1]) <= self.size[1] / 2.0)

    def contains_xz(self, x, z):
        """Footprint test; the vertical extent is ignored."""
        return (abs(x - self.center[0]) <= self.size[0] / 2.0 and
                abs(z - self.center[2]) <= self.size[2] / 2.0)

    @classmethod
    def from_dict(cls, data):
        return cls(
            center=data.get('center', (0.0, 0.0, 0.0)),
            size=data.get('size', (10.0, 10.0, 10.0)),
            name=data.get('name', "Exclusion Zone"),
            active=data.get('active', True),
        )

    def to_dict(self):
        return {
            'name': self.name,
            'center': self.center,
            'size': self.size,
            'active': self.active,
        }

    def __repr__(self):
        return "ExclusionZone({!r}, center={}, size={})".format(
            self.name, self.center, self.size)


def active_zones(zones):
    """Return the active zones from *zones* (None allowed)."""
    return tuple(zone for zone in (zones or ()) if zone.active)


def in_any_zone(zones, x, z, y=None):
    """
    True if (x, z) falls in any of *zones*.

    With *y* given the full box is tested, otherwise only the footprint.
    """
    for zone in zones:
        if y is None:
            if zone.contains_xz(x, z):
                return True
        elif zone.contains(x, y, z):
            return True
    return False


# ===================================================================
# Placement config
# ===================================================================

class PlacementConfig:
    """Parameters for one placement run."""

    def __init__(self, total_objects=20,
                 fixed_cluster_count=0, cluster_count_range=(3, 6),
                 objects_per_cluster=5, objects_per_cluster_range=(3, 8),
                 placement_center=(0.0, 0.0, 0.0),
                 placement_size=(50.0, 10.0, 50.0),
                 min_cluster_distance=10.0,
                 cluster_base_radius=5.0, cluster_radius_variability=0.3,
                 min_height=1.0, max_height=5.0, fallback_height=10.0,
                 surface_rule=None, seed=0, seed_mode=SEED_FIXED,
                 name="Spawner", enabled=True, spawn_order=0, template=None,
                 randomize_rotation=False, rotation_range=(0.0, 0.0, 0.0),
                 scale_min=(1.0, 1.0, 1.0), scale_max=(1.0, 1.0, 1.0),
                 probe_height=DEFAULT_PROBE_HEIGHT,
                 probe_distance=DEFAULT_PROBE_DISTANCE):
        self.total_objects = int(total_objects)
        self.fixed_cluster_count = int(fixed_cluster_count)
        self.cluster_count_range = _int_range(cluster_count_range, 'cluster_count_range')
        self.objects_per_cluster = int(objects_per_cluster)
        self.objects_per_cluster_range = _int_range(
            objects_per_cluster_range, 'objects_per_cluster_range')
        self.placement_center = _vec3(placement_center, 'placement_center')
        self.placement_size = _vec3(placement_size, 'placement_size')
        self.min_cluster_distance = float(min_cluster_distance)
        self.cluster_base_radius = float(cluster_base_radius)
        self.cluster_radius_variability = float(cluster_radius_variability)
        self.min_height = float(min_height)
        self.max_height = float(max_height)
        self.fallback_height = float(fallback_height)
        self.surface_rule = surface_rule if surface_rule is not None else SurfaceRule()
        if seed_mode not in SEED_MODES:
            raise ValueError("Unknown seed mode: {!r}".format(seed_mode))
        self.seed = int(seed)
        self.seed_mode = seed_mode

        self.name = name
        self.enabled = bool(enabled)
        self.spawn_order = int(spawn_order)
        self.template = template
        self.randomize_rotation = bool(randomize_rotation)
        self.rotation_range = _vec3(rotation_range, 'rotation_range')
        self.scale_min = _vec3(scale_min, 'scale_min')
        self.scale_max = _vec3(scale_max, 'scale_max')
        self.probe_height = float(probe_height)
        self.probe_distance = float(probe_distance)

        self.normalize()

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    @property
    def has_fixed_cluster_count(self):
        return self.fixed_cluster_count > 0

    @property
    def has_fixed_quota(self):
        """Per-cluster quota only applies with a fixed cluster count."""
        return self.has_fixed_cluster_count and self.objects_per_cluster > 0

    # ------------------------------------------------------------------
    # Footprint
    # ------------------------------------------------------------------

    def footprint_bounds(self):
        """
        Returns:
            (min_x, max_x, min_z, max_z) of the placement footprint.
        """
        cx, _, cz = self.placement_center
        sx, _, sz = self.placement_size
        return cx - sx / 2.0, cx + sx / 2.0, cz - sz / 2.0, cz + sz / 2.0

    def clamp_to_footprint(self, x, z):
        min_x, max_x, min_z, max_z = self.footprint_bounds()
        return min(max(x, min_x), max_x), min(max(z, min_z), max_z)

    def contains_xz(self, x, z):
        min_x, max_x, min_z, max_z = self.footprint_bounds()
        return min_x <= x <= max_x and min_z <= z <= max_z

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def normalize(self):
        """Correct inconsistent values in place."""
        if self.min_height > self.max_height:
            log.debug("%s: max_height %.2f below min_height %.2f, clamping",
                      self.name, self.max_height, self.min_height)
            self.max_height = self.min_height

        if self.has_fixed_cluster_count and self.has_fixed_quota:
            product = self.fixed_cluster_count * self.objects_per_cluster
            if self.total_objects < product:
                log.debug("%s: raising total_objects %d to %d (%d clusters x %d)",
                          self.name, self.total_objects, product,
                          self.fixed_cluster_count, self.objects_per_cluster)
                self.total_objects = product

        self.total_objects = max(0, self.total_objects)
        self.cluster_radius_variability = min(max(self.cluster_radius_variability, 0.0), 1.0)
        self.min_cluster_distance = max(0.0, self.min_cluster_distance)
        self.cluster_base_radius = max(0.0, self.cluster_base_radius)

        low, high = self.cluster_count_range
        self.cluster_count_range = (max(1, low), max(1, high))
        low, high = self.objects_per_cluster_range
        self.objects_per_cluster_range = (max(1, low), max(1, high))

        self.scale_min, self.scale_max = (
            tuple(min(a, b) for a, b in zip(self.scale_min, self.scale_max)),
            tuple(max(a, b) for a, b in zip(self.scale_min, self.scale_max)),
        )

    # ------------------------------------------------------------------
    # Dict conversion
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data):
        """
        Build a config from a definition dict (see module docstring).

        Missing keys take the constructor defaults.
        """
        kwargs = {}
        for key in ('total_objects', 'fixed_cluster_count', 'cluster_count_range',
                    'objects_per_cluster', 'objects_per_cluster_range',
                    'placement_center', 'placement_size', 'min_cluster_distance',
                    'cluster_base_radius', 'cluster_radius_variability',
                    'min_height', 'max_height', 'fallback_height', 'seed',
                    'seed_mode', 'name', 'enabled', 'spawn_order', 'template',
                    'randomize_rotation', 'rotation_range', 'scale_min',
                    'scale_max', 'probe_height', 'probe_distance'):
            if key in data:
                kwargs[key] = data[key]
        if 'surface' in data:
            kwargs['surface_rule'] = SurfaceRule.from_dict(data['surface'])
        return cls(**kwargs)

    def to_dict(self):
        return {
            'name': self.name,
            'enabled': self.enabled,
            'spawn_order': self.spawn_order,
            'template': self.template,
            'total_objects': self.total_objects,
            'fixed_cluster_count': self.fixed_cluster_count,
            'cluster_count_range': self.cluster_count_range,
            'objects_per_cluster': self.objects_per_cluster,
            'objects_per_cluster_range': self.objects_per_cluster_range,
            'placement_center': self.placement_center,
            'placement_size': self.placement_size,
            'min_cluster_distance': self.min_cluster_distance,
            'cluster_base_radius': self.cluster_base_radius,
            'cluster_radius_variability': self.cluster_radius_variability,
            'min_height': self.min_height,
            'max_height': self.max_height,
            'fallback_height': self.fallback_height,
            'surface': self.surface_rule.to_dict(),
            'seed': self.seed,
            'seed_mode': self.seed_mode,
            'randomize_rotation': self.randomize_rotation,
            'rotation_range': self.rotation_range,
            'scale_min': self.scale_min,
            'scale_max': self.scale_max,
            'probe_height': self.probe_height,
            'probe_distance': self.probe_distance,
        }

    def __repr__(self):
        return "PlacementConfig({!r}, total_objects={}, seed={})".format(
            self.name, self.total_objects, self.seed)
