"""
Cluster Scatter - Clustered procedural placement on probed surfaces.

Partitions a bounded 3D area into clusters, fills each cluster with
candidate points and projects every point onto the surface below it,
within height limits and away from exclusion zones and excluded surfaces.
Results are reproducible for a fixed seed.

The library only computes layouts.  Hosts supply a SurfaceQuery for ray
probes and, optionally, a SpawnService that instantiates the results.
"""

from .rng import PlacementRandom, initialize, SEED_FIXED, SEED_TIME_BASED
from .config import PlacementConfig, ExclusionZone, SurfaceRule
from .surfaces import (SurfaceHit, SurfaceQuery, FunctionSurface, PlaneSurface,
                       BoxSurface, CompositeSurface, HeightfieldSurface)
from .ground import AdjustKind, GroundAdjustResult, GroundAdjuster
from .clusters import (ClusterCenter, ClusterCenterGenerator,
                       ClusterPositionGenerator, distribute_objects)
from .placement import (PlacementOrchestrator, PlacementResult, PlacementState,
                        ClusterLayout, run_placement, adjust_single, run_spawners)
from .spawning import (MissingTemplateError, SpawnService, SpawnSession,
                       build_entries)
from .layout_validator import (ValidationSeverity, ValidationResult,
                               validate_layout)


def place_and_spawn(config, surface, service, zones=None, session=None):
    """
    High-level API: run one placement and hand the result to a host.

    Args:
        config:  PlacementConfig.
        surface: SurfaceQuery for ground probes.
        service: SpawnService that instantiates entries.
        zones:   Optional list of ExclusionZone.
        session: Optional SpawnSession to reuse; its previous spawns are
                 cleared first.

    Returns:
        dict: {
            'result': PlacementResult,
            'entries': list of placement entry dicts,
            'handles': list of spawned handles,
            'session': SpawnSession,
        }
    """
    if session is None:
        session = SpawnSession(service)

    result = run_placement(config, zones, surface)
    entries = build_entries(result, config)
    handles = session.respawn(entries)

    return {
        'result': result,
        'entries': entries,
        'handles': handles,
        'session': session,
    }
