"""
Surface queries: the single ray/surface abstraction the placement core
consumes.

A surface query answers probe(origin, direction, max_distance) with the
nearest SurfaceHit along the ray, or None.  Queries must not mutate the
scene and must answer identically for identical rays.

Hosts with their own physics wrap a callable in FunctionSurface.  The
reference surfaces here (plane, box, heightfield and a composite that picks
the nearest hit) cover tooling and tests.

Dependencies:
    numpy  - required for HeightfieldSurface
"""

import math

import numpy as np

DOWN = (0.0, -1.0, 0.0)

_EPSILON = 1e-9


class SurfaceHit:
    """Intersection point and the tag of the surface that was hit."""

    __slots__ = ('point', 'tag', 'distance')

    def __init__(self, point, tag, distance=0.0):
        self.point = tuple(float(v) for v in point)
        self.tag = tag
        self.distance = float(distance)

    def __repr__(self):
        return "SurfaceHit({}, {!r}, distance={:.3f})".format(
            self.point, self.tag, self.distance)


class SurfaceQuery:
    """Base class for anything that can be probed with a ray."""

    def probe(self, origin, direction, max_distance):
        """
        Args:
            origin:       (x, y, z) ray start.
            direction:    Unit (x, y, z) ray direction.
            max_distance: Ray length.

        Returns:
            Nearest SurfaceHit within max_distance, or None.
        """
        raise NotImplementedError


class FunctionSurface(SurfaceQuery):
    """
    Adapts a host callable ``fn(origin, direction, max_distance)``.

    The callable may return None, a SurfaceHit, or a ``(point, tag)`` pair.
    """

    def __init__(self, fn):
        self._fn = fn

    def probe(self, origin, direction, max_distance):
        result = self._fn(origin, direction, max_distance)
        if result is None or isinstance(result, SurfaceHit):
            return result
        point, tag = result
        return SurfaceHit(point, tag, _distance(origin, point))


def _distance(a, b):
    return math.sqrt(sum((a[i] - b[i]) ** 2 for i in range(3)))


def _point_along(origin, direction, t):
    return tuple(origin[i] + direction[i] * t for i in range(3))


# ===================================================================
# Analytic surfaces
# ===================================================================

class PlaneSurface(SurfaceQuery):
    """
    Horizontal plane at *height*, optionally limited to an (x, z) rectangle
    given as (min_x, max_x, min_z, max_z).
    """

    def __init__(self, height=0.0, tag='ground', bounds=None):
        self.height = float(height)
        self.tag = tag
        self.bounds = bounds

    def probe(self, origin, direction, max_distance):
        dy = direction[1]
        if abs(dy) < _EPSILON:
            return None
        t = (self.height - origin[1]) / dy
        if t < 0.0 or t > max_distance:
            return None
        point = _point_along(origin, direction, t)
        if self.bounds is not None:
            min_x, max_x, min_z, max_z = self.bounds
            if not (min_x <= point[0] <= max_x and min_z <= point[2] <= max_z):
                return None
        return SurfaceHit(point, self.tag, t)


class BoxSurface(SurfaceQuery):
    """Solid axis-aligned box (rock, building, water volume)."""

    def __init__(self, center, size, tag):
        self.center = tuple(float(v) for v in center)
        self.size = tuple(float(v) for v in size)
        self.tag = tag

    def probe(self, origin, direction, max_distance):
        # Slab test
        t_near = 0.0
        t_far = max_distance
        for axis in range(3):
            lo = self.center[axis] - self.size[axis] / 2.0
            hi = self.center[axis] + self.size[axis] / 2.0
            d = direction[axis]
            o = origin[axis]
            if abs(d) < _EPSILON:
                if o < lo or o > hi:
                    return None
                continue
            t1 = (lo - o) / d
            t2 = (hi - o) / d
            if t1 > t2:
                t1, t2 = t2, t1
            t_near = max(t_near, t1)
            t_far = min(t_far, t2)
            if t_near > t_far:
                return None
        return SurfaceHit(_point_along(origin, direction, t_near), self.tag, t_near)


class CompositeSurface(SurfaceQuery):
    """Probes every member and keeps the nearest hit (first wins ties)."""

    def __init__(self, surfaces):
        self.surfaces = list(surfaces)

    def probe(self, origin, direction, max_distance):
        best = None
        for surface in self.surfaces:
            hit = surface.probe(origin, direction, max_distance)
            if hit is not None and (best is None or hit.distance < best.distance):
                best = hit
        return best


# ===================================================================
# Heightfield
# ===================================================================

class HeightfieldSurface(SurfaceQuery):
    """
    Regular height grid sampled with bilinear interpolation.

    Row index runs along z, column index along x.  Grid vertex (row, col)
    sits at (origin_x + col * cell_size, origin_z + row * cell_size).

    Only straight-down probes are supported.
    """

    def __init__(self, heights, origin=(0.0, 0.0), cell_size=1.0,
                 tags=None, tag_names=None, default_tag='ground'):
        """
        Args:
            heights:     2D array-like of vertex heights.
            origin:      World (x, z) of vertex (0, 0).
            cell_size:   Spacing between vertices.
            tags:        Optional 2D integer array, one entry per cell,
                         indexing into tag_names.
            tag_names:   Tag for each integer in *tags*.
            default_tag: Tag used when *tags* is None.
        """
        self.heights = np.asarray(heights, dtype=np.float64)
        if self.heights.ndim != 2 or min(self.heights.shape) < 2:
            raise ValueError(
                "heights must be a 2D grid of at least 2x2, got shape {}".format(
                    self.heights.shape))
        self.origin = (float(origin[0]), float(origin[1]))
        self.cell_size = float(cell_size)
        if self.cell_size <= 0:
            raise ValueError("cell_size must be positive")
        self.tags = np.asarray(tags, dtype=np.int64) if tags is not None else None
        self.tag_names = list(tag_names) if tag_names is not None else None
        if self.tags is not None and self.tag_names is None:
            raise ValueError("tag_names is required when tags is given")
        self.default_tag = default_tag

    @property
    def bounds(self):
        rows, cols = self.heights.shape
        min_x, min_z = self.origin
        return (min_x, min_x + (cols - 1) * self.cell_size,
                min_z, min_z + (rows - 1) * self.cell_size)

    def sample_height(self, x, z):
        """
        Bilinear height at world (x, z), or None outside the grid.
        """
        rows, cols = self.heights.shape
        col_f = (x - self.origin[0]) / self.cell_size
        row_f = (z - self.origin[1]) / self.cell_size
        if col_f < 0 or row_f < 0 or col_f > cols - 1 or row_f > rows - 1:
            return None

        c0 = min(int(col_f), cols - 2)
        r0 = min(int(row_f), rows - 2)
        fc = col_f - c0
        fr = row_f - r0

        v00 = float(self.heights[r0, c0])
        v01 = float(self.heights[r0, c0 + 1])
        v10 = float(self.heights[r0 + 1, c0])
        v11 = float(self.heights[r0 + 1, c0 + 1])

        return (v00 * (1 - fr) * (1 - fc) +
                v01 * (1 - fr) * fc +
                v10 * fr * (1 - fc) +
                v11 * fr * fc)

    def sample_tag(self, x, z):
        if self.tags is None:
            return self.default_tag
        rows, cols = self.tags.shape
        col = int((x - self.origin[0]) / self.cell_size)
        row = int((z - self.origin[1]) / self.cell_size)
        col = min(max(col, 0), cols - 1)
        row = min(max(row, 0), rows - 1)
        return self.tag_names[int(self.tags[row, col])]

    def probe(self, origin, direction, max_distance):
        if abs(direction[0]) > _EPSILON or abs(direction[2]) > _EPSILON or direction[1] >= 0:
            raise ValueError(
                "HeightfieldSurface only supports downward probes, got {}".format(direction))
        x, oy, z = origin
        height = self.sample_height(x, z)
        if height is None:
            return None
        distance = (oy - height) / -direction[1]
        if distance < 0.0 or distance > max_distance:
            return None
        return SurfaceHit((x, height, z), self.sample_tag(x, z), distance)
