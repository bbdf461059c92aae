"""
QA checks for a finished placement.

Re-verifies the guarantees a layout is supposed to carry:
- Containment: every point inside the placement footprint
- Spacing: cluster centers at least min_cluster_distance apart, unless the
  run reported a constraint violation
- Exclusion: no cluster center inside an active exclusion zone, unless the
  run reported a constraint violation
- Realization: how many requested objects were actually placed

Usage:
    from cluster_scatter.layout_validator import validate_layout, failed

    results = validate_layout(result, config, zones)
    for r in failed(results):
        print(r.check_id, r.message, r.clusters)
"""

import itertools
from enum import Enum

from .config import active_zones

# Float slack for boundary comparisons
_TOLERANCE = 1e-9


class ValidationSeverity(Enum):
    """How much a failed layout check matters."""
    ERROR = "ERROR"       # Layout guarantee broken
    WARNING = "WARNING"   # Soft degradation the run already reported
    INFO = "INFO"         # Statistics only


class ValidationResult:
    """Outcome of one layout check."""

    def __init__(self, check_id, severity, passed, message,
                 clusters=(), points=(), hint=None):
        """
        Args:
            check_id: 'LAYOUT-NNN' identifier.
            severity: ValidationSeverity enum value.
            passed: True if the layout satisfies the check.
            message: One-line summary.
            clusters: Indices of the clusters involved in a failure.
            points: Offending (x, y, z) positions, if any.
            hint: Config change that usually clears the failure.
        """
        self.check_id = check_id
        self.severity = severity
        self.passed = passed
        self.message = message
        self.clusters = tuple(clusters)
        self.points = tuple(points)
        self.hint = hint

    def __repr__(self):
        status = "PASS" if self.passed else "FAIL"
        return "ValidationResult({}, {}, {}, {!r}, clusters={})".format(
            self.check_id, self.severity.value, status, self.message,
            list(self.clusters))


def check_containment(result, config):
    outside = []
    clusters = set()
    for center, points in result.layout:
        for p in points:
            if not _in_footprint(config, p[0], p[2]):
                outside.append(p)
                clusters.add(center.index)
    if outside:
        return ValidationResult(
            'LAYOUT-001', ValidationSeverity.ERROR, False,
            "{} point(s) outside the placement footprint".format(len(outside)),
            clusters=sorted(clusters), points=outside,
        )
    return ValidationResult('LAYOUT-001', ValidationSeverity.ERROR, True,
                            "All points inside the placement footprint")


def _in_footprint(config, x, z):
    min_x, max_x, min_z, max_z = config.footprint_bounds()
    return (min_x - _TOLERANCE <= x <= max_x + _TOLERANCE and
            min_z - _TOLERANCE <= z <= max_z + _TOLERANCE)


def check_spacing(result, config):
    min_dist = config.min_cluster_distance
    too_close = set()
    pairs = 0
    for a, b in itertools.combinations(result.layout.centers, 2):
        if a.horizontal_distance(b.x, b.z) < min_dist - _TOLERANCE:
            too_close.update((a.index, b.index))
            pairs += 1

    if not pairs:
        return ValidationResult('LAYOUT-002', ValidationSeverity.ERROR, True,
                                "Cluster centers respect min_cluster_distance")
    if result.violation:
        return ValidationResult(
            'LAYOUT-002', ValidationSeverity.WARNING, False,
            "{} cluster pair(s) closer than {:.2f} (reported violation)".format(
                pairs, min_dist),
            clusters=sorted(too_close),
            hint="Enlarge placement_size or lower min_cluster_distance.",
        )
    return ValidationResult(
        'LAYOUT-002', ValidationSeverity.ERROR, False,
        "{} cluster pair(s) closer than {:.2f} without a reported violation".format(
            pairs, min_dist),
        clusters=sorted(too_close),
    )


def check_exclusion(result, config, zones):
    """Centers are tested against zones at the placement plane height."""
    zones = active_zones(zones)
    plane_y = config.placement_center[1]
    inside = []
    names = set()
    for center in result.layout.centers:
        for zone in zones:
            if zone.contains(center.x, plane_y, center.z):
                inside.append(center.index)
                names.add(zone.name)
                break

    if not inside:
        return ValidationResult('LAYOUT-003', ValidationSeverity.ERROR, True,
                                "No cluster center inside an exclusion zone")
    severity = ValidationSeverity.WARNING if result.violation else ValidationSeverity.ERROR
    suffix = " (reported violation)" if result.violation else ""
    return ValidationResult(
        'LAYOUT-003', severity, False,
        "{} cluster center(s) inside {}{}".format(
            len(inside), ", ".join(sorted(names)), suffix),
        clusters=inside,
        hint="Shrink the exclusion zones or move placement_center away from them.",
    )


def check_realized(result):
    if result.realized < result.requested:
        short = [center.index for (center, points), wanted
                 in zip(result.layout, result.distribution) if len(points) < wanted]
        return ValidationResult(
            'LAYOUT-004', ValidationSeverity.WARNING, False,
            "Placed {} of {} requested objects".format(result.realized, result.requested),
            clusters=short,
            hint="Check surface exclusion rules and exclusion zones "
                 "around the cluster centers.",
        )
    return ValidationResult('LAYOUT-004', ValidationSeverity.INFO, True,
                            "All {} requested objects placed".format(result.requested))


def validate_layout(result, config, zones=None):
    """
    Run every layout check.

    Returns:
        List of ValidationResult.
    """
    return [
        check_containment(result, config),
        check_spacing(result, config),
        check_exclusion(result, config, zones),
        check_realized(result),
    ]


def failed(results, severity=None):
    """Failed results, optionally limited to one severity."""
    return [r for r in results
            if not r.passed and (severity is None or r.severity is severity)]
