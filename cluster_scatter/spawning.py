"""
Placement entries and the bridge to a host spawn service.

The placement core never instantiates anything.  It produces entry dicts
with keys:
    template, position, rotation, scale, cluster

and SpawnSession hands them to a host SpawnService, disposing of the
previous run's objects first.

Usage:
    from cluster_scatter.spawning import SpawnSession, build_entries

    session = SpawnSession(my_service)
    handles = session.respawn(build_entries(result, config))
"""

import logging

log = logging.getLogger(__name__)


class MissingTemplateError(LookupError):
    """Raised by a SpawnService when the requested template is unknown."""


# ===================================================================
# Per-object transforms
# ===================================================================

def _jitter(low, high, rng):
    if low == high:
        return low
    return low + rng.uniform() * (high - low)


def sample_transform(config, rng):
    """
    Draw one (rotation, scale) pair.

    Rotation is uniform in [-range, range] degrees per axis when
    randomize_rotation is set, otherwise zero.  Axes with equal scale bounds
    consume no draws.
    """
    if config.randomize_rotation:
        rotation = tuple(_jitter(-r, r, rng) for r in config.rotation_range)
    else:
        rotation = (0.0, 0.0, 0.0)
    scale = tuple(_jitter(lo, hi, rng) for lo, hi in zip(config.scale_min, config.scale_max))
    return rotation, scale


def sample_transforms(layout, config, rng):
    """
    Transforms for every point of *layout*, in layout order.

    Drawn after all positions so they never shift the layout itself.
    """
    return [sample_transform(config, rng) for _ in layout.points()]


def build_entries(result, config):
    """
    Flatten a PlacementResult into placement entry dicts.

    Returns:
        List of dicts with keys template, position, rotation, scale, cluster.
    """
    transforms = result.transforms
    entries = []
    i = 0
    for center, points in result.layout:
        for position in points:
            rotation, scale = transforms[i] if transforms else ((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
            entries.append({
                'template': config.template,
                'position': position,
                'rotation': rotation,
                'scale': scale,
                'cluster': center.index,
            })
            i += 1
    return entries


# ===================================================================
# Host bridge
# ===================================================================

class SpawnService:
    """Interface a host implements to instantiate placed objects."""

    def spawn(self, template, position, rotation, scale):
        """
        Returns:
            Host handle for the spawned object.

        Raises:
            MissingTemplateError: If *template* cannot be instantiated.
        """
        raise NotImplementedError

    def despawn(self, handle):
        raise NotImplementedError


class SpawnSession:
    """
    Tracks what was spawned for one spawner so the next run can replace it.
    """

    def __init__(self, service, destroy_previous=True):
        self.service = service
        self.destroy_previous = destroy_previous
        self.handles = []

    def clear(self):
        """Despawn everything from the previous run."""
        if not self.destroy_previous:
            return
        for handle in self.handles:
            if handle is not None:
                self.service.despawn(handle)
        self.handles = []

    def spawn_entries(self, entries):
        """
        Spawn every entry.  A missing template fails that entry only.

        Returns:
            List of handles for the entries that spawned.
        """
        spawned = []
        for entry in entries:
            try:
                handle = self.service.spawn(entry['template'], entry['position'],
                                            entry['rotation'], entry['scale'])
            except MissingTemplateError as e:
                log.error("No spawn template %r for position %s: %s",
                          entry['template'], entry['position'], e)
                continue
            spawned.append(handle)
        self.handles.extend(spawned)
        return spawned

    def respawn(self, entries):
        self.clear()
        return self.spawn_entries(entries)
