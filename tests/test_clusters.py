"""
Tests for the placement building blocks: RNG, config normalisation,
surfaces, ground adjustment, center generation, object distribution and
cluster positions.

Runs standalone (python tests/test_clusters.py) or under pytest.
"""

import itertools
import math
import os
import sys
import traceback

# Ensure the project root is on the path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from cluster_scatter.clusters import (MAX_POSITION_ATTEMPTS, ClusterCenter,
                                      ClusterCenterGenerator,
                                      ClusterPositionGenerator,
                                      distribute_objects)
from cluster_scatter.config import ExclusionZone, PlacementConfig, SurfaceRule
from cluster_scatter.ground import AdjustKind, GroundAdjuster
from cluster_scatter.rng import SEED_FIXED, initialize
from cluster_scatter.surfaces import (DOWN, BoxSurface, CompositeSurface,
                                      FunctionSurface, HeightfieldSurface,
                                      PlaneSurface)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_PASSED = 0
_FAILED = 0
_ERRORS = []


def _test(name, fn):
    """Run a test function, track pass/fail."""
    global _PASSED, _FAILED
    try:
        fn()
        _PASSED += 1
        print("  PASS  {}".format(name))
    except Exception as e:
        _FAILED += 1
        _ERRORS.append((name, e))
        print("  FAIL  {} -- {}".format(name, e))
        traceback.print_exc()


def _config(**overrides):
    params = dict(total_objects=20, placement_size=(100.0, 10.0, 100.0),
                  min_cluster_distance=10.0, seed=42)
    params.update(overrides)
    return PlacementConfig(**params)


class _CountingSurface(PlaneSurface):
    """Plane that records every probe origin."""

    def __init__(self, *args, **kwargs):
        PlaneSurface.__init__(self, *args, **kwargs)
        self.probes = []

    def probe(self, origin, direction, max_distance):
        self.probes.append(origin)
        return PlaneSurface.probe(self, origin, direction, max_distance)


# ---------------------------------------------------------------------------
# RNG
# ---------------------------------------------------------------------------

def test_fixed_seed_repeats():
    """Two streams from the same seed produce the same draws."""
    a = initialize(SEED_FIXED, 99)
    b = initialize(SEED_FIXED, 99)
    draws_a = [a.uniform() for _ in range(5)] + [a.randint(1, 6)] + list(a.unit_disk())
    draws_b = [b.uniform() for _ in range(5)] + [b.randint(1, 6)] + list(b.unit_disk())
    assert draws_a == draws_b


def test_rng_ranges():
    rng = initialize(SEED_FIXED, 5)
    for _ in range(500):
        u = rng.uniform()
        assert 0.0 <= u < 1.0
        n = rng.randint(8, 3)
        assert 3 <= n <= 8, "randint out of range: {}".format(n)
        x, z = rng.unit_disk()
        assert x * x + z * z <= 1.0 + 1e-12


def test_unknown_seed_mode():
    try:
        initialize('sometimes', 1)
    except ValueError:
        return
    raise AssertionError("Expected ValueError for unknown seed mode")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def test_height_order_corrected():
    cfg = _config(min_height=5.0, max_height=2.0)
    assert cfg.min_height == 5.0
    assert cfg.max_height == 5.0, "max_height not clamped: {}".format(cfg.max_height)


def test_total_raised_to_fixed_product():
    cfg = _config(total_objects=10, fixed_cluster_count=4, objects_per_cluster=5)
    assert cfg.total_objects == 20, "Expected 20, got {}".format(cfg.total_objects)

    cfg = _config(total_objects=21, fixed_cluster_count=4, objects_per_cluster=5)
    assert cfg.total_objects == 21

    # Quota is only used with a fixed cluster count
    cfg = _config(total_objects=10, fixed_cluster_count=0, objects_per_cluster=5)
    assert not cfg.has_fixed_quota
    assert cfg.total_objects == 10


def test_reversed_ranges_swapped():
    cfg = _config(cluster_count_range=(6, 3), objects_per_cluster_range=(8, 3),
                  cluster_radius_variability=1.7)
    assert cfg.cluster_count_range == (3, 6)
    assert cfg.objects_per_cluster_range == (3, 8)
    assert cfg.cluster_radius_variability == 1.0


def test_config_dict_roundtrip():
    cfg = _config(name="Ferns", template="fern_01", fixed_cluster_count=3,
                  surface_rule=SurfaceRule(accepted=['grass'], excluded=['water']))
    copy = PlacementConfig.from_dict(cfg.to_dict())
    assert copy.to_dict() == cfg.to_dict()
    assert copy.surface_rule.is_excluded('rock')
    assert copy.surface_rule.is_accepted('grass')


def test_config_from_partial_dict():
    cfg = PlacementConfig.from_dict({'total_objects': 7, 'placement_size': [20, 5, 30]})
    assert cfg.total_objects == 7
    assert cfg.placement_size == (20.0, 5.0, 30.0)
    assert cfg.fallback_height == 10.0
    assert cfg.footprint_bounds() == (-10.0, 10.0, -15.0, 15.0)


def test_bad_vector_rejected():
    try:
        _config(placement_center=(1.0, 2.0))
    except ValueError:
        return
    raise AssertionError("Expected ValueError for a 2-component center")


def test_surface_rule_partition():
    rule = SurfaceRule(accepted=['ground', 'grass'], excluded=['water'])
    assert rule.is_accepted('ground')
    assert rule.is_excluded('water')
    # Neither accepted nor excluded counts as excluded
    assert rule.is_excluded('lava')

    open_rule = SurfaceRule(excluded=['water'])
    assert open_rule.is_accepted('lava')
    assert open_rule.is_excluded('water')


# ---------------------------------------------------------------------------
# Surfaces
# ---------------------------------------------------------------------------

def test_plane_probe():
    plane = PlaneSurface(height=3.0, tag='ground')
    hit = plane.probe((1.0, 100.0, 2.0), DOWN, 200.0)
    assert hit.point == (1.0, 3.0, 2.0)
    assert hit.tag == 'ground'
    assert abs(hit.distance - 97.0) < 1e-9
    assert plane.probe((1.0, 100.0, 2.0), DOWN, 50.0) is None


def test_bounded_plane_misses_outside():
    plane = PlaneSurface(height=0.0, bounds=(-5.0, 5.0, -5.0, 5.0))
    assert plane.probe((6.0, 10.0, 0.0), DOWN, 100.0) is None
    assert plane.probe((4.0, 10.0, 0.0), DOWN, 100.0) is not None


def test_composite_returns_nearest():
    surface = CompositeSurface([
        PlaneSurface(height=0.0, tag='ground'),
        BoxSurface(center=(0.0, 1.0, 0.0), size=(2.0, 2.0, 2.0), tag='rock'),
    ])
    hit = surface.probe((0.0, 100.0, 0.0), DOWN, 200.0)
    assert hit.tag == 'rock', "Expected rock, got {}".format(hit.tag)
    assert abs(hit.point[1] - 2.0) < 1e-9

    hit = surface.probe((5.0, 100.0, 5.0), DOWN, 200.0)
    assert hit.tag == 'ground'


def test_heightfield_bilinear():
    field = HeightfieldSurface([[0.0, 0.0], [2.0, 2.0]], origin=(0.0, 0.0), cell_size=1.0,
                               tags=[[1]], tag_names=['ground', 'rock'])
    assert abs(field.sample_height(0.5, 0.5) - 1.0) < 1e-9
    assert abs(field.sample_height(1.0, 1.0) - 2.0) < 1e-9
    assert field.sample_height(1.5, 0.5) is None

    hit = field.probe((0.5, 100.0, 0.25), DOWN, 200.0)
    assert abs(hit.point[1] - 0.5) < 1e-9
    assert hit.point[0] == 0.5 and hit.point[2] == 0.25
    assert hit.tag == 'rock'
    assert field.probe((3.0, 100.0, 0.0), DOWN, 200.0) is None


def test_heightfield_rejects_slanted_probe():
    field = HeightfieldSurface([[0.0, 0.0], [0.0, 0.0]])
    try:
        field.probe((0.5, 10.0, 0.5), (0.6, -0.8, 0.0), 100.0)
    except ValueError:
        return
    raise AssertionError("Expected ValueError for a non-vertical probe")


def test_function_surface_accepts_pairs():
    surface = FunctionSurface(lambda origin, direction, dist: ((origin[0], 4.0, origin[2]), 'ground'))
    hit = surface.probe((1.0, 10.0, 1.0), DOWN, 100.0)
    assert hit.point == (1.0, 4.0, 1.0)
    assert abs(hit.distance - 6.0) < 1e-9


# ---------------------------------------------------------------------------
# Ground adjustment
# ---------------------------------------------------------------------------

def test_adjusted_height_within_bounds():
    cfg = _config(min_height=1.0, max_height=5.0)
    adjuster = GroundAdjuster(cfg, PlaneSurface(height=3.0))
    rng = initialize(SEED_FIXED, 11)
    for i in range(200):
        result = adjuster.adjust((i * 0.1, -i * 0.2), rng)
        assert result.kind is AdjustKind.ADJUSTED
        offset = result.position[1] - result.surface_y
        assert 1.0 <= offset <= 5.0, "Height above surface out of range: {}".format(offset)


def test_fallback_height_exact():
    cfg = _config(fallback_height=12.5)
    adjuster = GroundAdjuster(cfg, FunctionSurface(lambda *args: None))
    rng = initialize(SEED_FIXED, 1)
    state = rng.getstate()
    result = adjuster.adjust((3.0, -4.0), rng)
    assert result.kind is AdjustKind.FALLBACK
    assert result.position == (3.0, 12.5, -4.0)
    # No draw is consumed without a hit
    assert rng.getstate() == state


def test_excluded_surface_signalled():
    cfg = _config(surface_rule=SurfaceRule(excluded=['water']))
    adjuster = GroundAdjuster(cfg, PlaneSurface(height=0.0, tag='water'))
    result = adjuster.adjust((0.0, 0.0), initialize(SEED_FIXED, 1))
    assert result.excluded
    assert result.position is None


def test_query_xz_kept_on_slope():
    """Horizontal placement follows the query even if the hit drifts."""
    def sloped(origin, direction, dist):
        return (origin[0] + 0.75, 2.0, origin[2] - 0.5), 'ground'

    cfg = _config(min_height=0.0, max_height=0.0)
    result = GroundAdjuster(cfg, FunctionSurface(sloped)).adjust(
        (10.0, 20.0), initialize(SEED_FIXED, 3))
    assert result.position == (10.0, 2.0, 20.0)


def test_probe_spans_volume():
    cfg = _config(placement_center=(0.0, 5.0, 0.0))
    surface = _CountingSurface(height=-80.0)
    result = GroundAdjuster(cfg, surface).adjust((1.0, 1.0), initialize(SEED_FIXED, 3))
    assert surface.probes[0] == (1.0, 105.0, 1.0)
    assert result.kind is AdjustKind.ADJUSTED


# ---------------------------------------------------------------------------
# Object distribution
# ---------------------------------------------------------------------------

def test_fixed_quota_exact():
    assert distribute_objects(20, 4, quota=5) == [5, 5, 5, 5]


def test_fixed_quota_remainder_cluster():
    assert distribute_objects(21, 4, quota=5) == [5, 5, 5, 5, 1]


def test_range_distribution():
    for seed in range(50):
        rng = initialize(SEED_FIXED, seed)
        dist = distribute_objects(30, 4, count_range=(3, 8), rng=rng)
        assert len(dist) == 4
        remaining = 30
        for i, count in enumerate(dist[:3]):
            assert 3 <= count <= 8, "Entry {} out of range: {}".format(i, count)
            remaining -= count
            assert remaining >= 4 - i - 1
        assert dist[3] == 30 - sum(dist[:3])


def test_range_distribution_conserves():
    for seed, (total, clusters) in enumerate([(5, 5), (6, 5), (40, 3), (1, 1), (100, 7)]):
        rng = initialize(SEED_FIXED, seed)
        dist = distribute_objects(total, clusters, count_range=(3, 8), rng=rng)
        assert sum(dist) == total, "Sum {} != {}".format(sum(dist), total)
        assert all(c >= 1 for c in dist), "Empty cluster in {}".format(dist)


def test_distribution_without_clusters():
    assert distribute_objects(10, 0, quota=5) == []


# ---------------------------------------------------------------------------
# Cluster centers
# ---------------------------------------------------------------------------

def test_centers_spaced():
    cfg = _config(placement_size=(200.0, 10.0, 200.0), min_cluster_distance=10.0)
    gen = ClusterCenterGenerator(cfg, GroundAdjuster(cfg, PlaneSurface()))
    centers, violation = gen.generate(6, initialize(SEED_FIXED, 8))
    assert len(centers) == 6
    assert [c.index for c in centers] == list(range(6))
    if not violation:
        for a, b in itertools.combinations(centers, 2):
            assert a.horizontal_distance(b.x, b.z) >= 10.0


def test_crowded_area_flags_violation():
    cfg = _config(placement_size=(5.0, 10.0, 5.0), min_cluster_distance=50.0)
    gen = ClusterCenterGenerator(cfg, GroundAdjuster(cfg, PlaneSurface()))
    centers, violation = gen.generate(4, initialize(SEED_FIXED, 8))
    assert len(centers) == 4
    assert violation


def test_centers_avoid_exclusion_zones():
    cfg = _config(min_cluster_distance=5.0)
    zones = [ExclusionZone(center=(-25.0, 0.0, 0.0), size=(50.0, 100.0, 100.0)),
             ExclusionZone(center=(25.0, 0.0, 0.0), size=(50.0, 100.0, 100.0), active=False)]
    gen = ClusterCenterGenerator(cfg, GroundAdjuster(cfg, PlaneSurface()), zones)
    centers, violation = gen.generate(4, initialize(SEED_FIXED, 21))
    assert not violation
    for center in centers:
        assert center.x > 0.0, "Center in exclusion zone: {}".format(center)


def test_zone_above_placement_plane_ignored():
    cfg = _config(placement_size=(10.0, 10.0, 10.0))
    zones = [ExclusionZone(center=(0.0, 100.0, 0.0), size=(20.0, 2.0, 20.0))]
    gen = ClusterCenterGenerator(cfg, GroundAdjuster(cfg, PlaneSurface()), zones)
    centers, violation = gen.generate(1, initialize(SEED_FIXED, 3))
    assert not violation
    assert len(centers) == 1


def test_zone_box_test():
    zone = ExclusionZone(center=(0.0, 100.0, 0.0), size=(20.0, 2.0, 20.0))
    assert zone.contains_xz(5.0, -5.0)
    assert zone.contains(5.0, 100.5, -5.0)
    assert not zone.contains(5.0, 0.0, -5.0)
    assert not zone.contains(11.0, 100.0, 0.0)


def test_center_on_excluded_surface_retried():
    """Centers skip excluded surfaces and land on accepted ones."""
    cfg = _config(surface_rule=SurfaceRule(excluded=['water']), min_cluster_distance=1.0)
    surface = CompositeSurface([
        PlaneSurface(height=0.0, tag='ground'),
        BoxSurface(center=(-25.0, 0.5, 0.0), size=(50.0, 1.0, 100.0), tag='water'),
    ])
    gen = ClusterCenterGenerator(cfg, GroundAdjuster(cfg, surface))
    centers, violation = gen.generate(5, initialize(SEED_FIXED, 4))
    assert not violation
    for center in centers:
        assert center.x >= 0.0
        assert center.kind is AdjustKind.ADJUSTED


def test_center_fully_excluded_falls_back():
    cfg = _config(surface_rule=SurfaceRule(excluded=['water']), fallback_height=7.0)
    gen = ClusterCenterGenerator(cfg, GroundAdjuster(cfg, PlaneSurface(tag='water')))
    centers, violation = gen.generate(1, initialize(SEED_FIXED, 4))
    assert violation
    assert centers[0].kind is AdjustKind.FALLBACK
    assert centers[0].position[1] == 7.0


# ---------------------------------------------------------------------------
# Cluster positions
# ---------------------------------------------------------------------------

def test_positions_clamped_to_footprint():
    cfg = _config(placement_size=(10.0, 10.0, 10.0))
    gen = ClusterPositionGenerator(cfg, GroundAdjuster(cfg, PlaneSurface()))
    center = ClusterCenter(0, (4.5, 2.0, -4.5))
    positions = gen.generate(center, 50, 8.0, initialize(SEED_FIXED, 6))
    assert len(positions) == 50
    for x, _, z in positions:
        assert -5.0 <= x <= 5.0 and -5.0 <= z <= 5.0


def test_positions_within_radius():
    cfg = _config()
    gen = ClusterPositionGenerator(cfg, GroundAdjuster(cfg, PlaneSurface()))
    center = ClusterCenter(0, (0.0, 2.0, 0.0))
    for x, _, z in gen.generate(center, 100, 3.0, initialize(SEED_FIXED, 6)):
        assert math.hypot(x, z) <= 3.0 + 1e-9


def test_excluded_positions_dropped():
    cfg = _config(surface_rule=SurfaceRule(excluded=['water']))
    surface = _CountingSurface(tag='water')
    gen = ClusterPositionGenerator(cfg, GroundAdjuster(cfg, surface))
    center = ClusterCenter(0, (0.0, 10.0, 0.0))
    positions = gen.generate(center, 5, 5.0, initialize(SEED_FIXED, 6))
    assert positions == []
    assert len(surface.probes) == 5 * MAX_POSITION_ATTEMPTS


def test_positions_skip_exclusion_zones():
    cfg = _config()
    zones = [ExclusionZone(center=(0.0, 0.0, -5.0), size=(20.0, 10.0, 10.0))]
    gen = ClusterPositionGenerator(cfg, GroundAdjuster(cfg, PlaneSurface()), zones)
    center = ClusterCenter(0, (0.0, 2.0, 0.0))
    positions = gen.generate(center, 30, 4.0, initialize(SEED_FIXED, 2))
    assert positions
    for x, _, z in positions:
        assert z > 0.0, "Position inside exclusion zone: {}".format((x, z))


def test_cluster_radius_range():
    cfg = _config(cluster_base_radius=4.0, cluster_radius_variability=0.5)
    gen = ClusterPositionGenerator(cfg, GroundAdjuster(cfg, PlaneSurface()))
    rng = initialize(SEED_FIXED, 9)
    for _ in range(100):
        radius = gen.cluster_radius(rng)
        assert 4.0 <= radius < 6.0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    print("=" * 70)
    print("Cluster placement building blocks")
    print("=" * 70)

    tests = sorted((name, fn) for name, fn in globals().items()
                   if name.startswith('test_') and callable(fn))
    for name, fn in tests:
        _test(name[len('test_'):], fn)

    print("\n" + "=" * 70)
    print("Results: {} passed, {} failed".format(_PASSED, _FAILED))
    if _ERRORS:
        print("\nFailures:")
        for name, err in _ERRORS:
            print("  {} -- {}".format(name, err))
    print("=" * 70)
    return 0 if _FAILED == 0 else 1


if __name__ == '__main__':
    sys.exit(main())
