#!/usr/bin/env python
"""
Run clustered placements from a JSON definition and dump the entries.

The definition file describes the spawners, exclusion zones and a
stand-in surface so layouts can be inspected without a host engine:

    {
        "spawners": [ {placement config dict}, ... ],
        "exclusion_zones": [ {"name", "center", "size", "active"}, ... ],
        "surface": {"type": "plane", "height": 0.0, "tag": "ground"}
                 | {"type": "heightfield", "heights": [[...]], "origin": [x, z],
                    "cell_size": 1.0, "tags": [[...]], "tag_names": [...]},
        "obstacles": [ {"center", "size", "tag"}, ... ]
    }

Usage:
  python layout_tool.py run <definition.json> [-o output.json]
  python layout_tool.py validate <definition.json>
"""

import argparse
import json
import logging
import os
import sys

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from cluster_scatter.config import ExclusionZone, PlacementConfig
from cluster_scatter.layout_validator import validate_layout
from cluster_scatter.placement import run_spawners
from cluster_scatter.spawning import build_entries
from cluster_scatter.surfaces import (BoxSurface, CompositeSurface,
                                      HeightfieldSurface, PlaneSurface)


# ===================================================================
# Definition loading
# ===================================================================

def build_surface(definition):
    """Build the stand-in surface (plus obstacles) from a definition dict."""
    surface_def = definition.get('surface', {'type': 'plane'})
    kind = surface_def.get('type', 'plane')

    if kind == 'plane':
        base = PlaneSurface(height=surface_def.get('height', 0.0),
                            tag=surface_def.get('tag', 'ground'),
                            bounds=surface_def.get('bounds'))
    elif kind == 'heightfield':
        base = HeightfieldSurface(
            surface_def['heights'],
            origin=surface_def.get('origin', (0.0, 0.0)),
            cell_size=surface_def.get('cell_size', 1.0),
            tags=surface_def.get('tags'),
            tag_names=surface_def.get('tag_names'),
            default_tag=surface_def.get('tag', 'ground'),
        )
    else:
        raise ValueError("Unknown surface type: {!r}".format(kind))

    obstacles = [BoxSurface(o['center'], o['size'], o.get('tag', 'obstacle'))
                 for o in definition.get('obstacles', [])]
    if not obstacles:
        return base
    return CompositeSurface([base] + obstacles)


def run_definition(definition):
    """
    Run every spawner in *definition*.

    Returns:
        Dict {spawner name: {'result': PlacementResult, 'entries': list,
                             'config': PlacementConfig}}.
    """
    configs = [PlacementConfig.from_dict(d) for d in definition.get('spawners', [])]
    zones = [ExclusionZone.from_dict(d) for d in definition.get('exclusion_zones', [])]
    surface = build_surface(definition)

    by_name = {c.name: c for c in configs}
    output = {}
    for name, result in run_spawners(configs, surface, zones).items():
        output[name] = {
            'result': result,
            'entries': build_entries(result, by_name[name]),
            'config': by_name[name],
        }
    return output


def results_to_json(runs):
    """Convert run_definition() output to a JSON-serialisable dict."""
    data = {}
    for name, run in runs.items():
        result = run['result']
        data[name] = {
            '_meta': {
                'seed': result.seed,
                'requested': result.requested,
                'realized': result.realized,
                'violation': result.violation,
                'violation_message': result.violation_message,
                'distribution': result.distribution,
            },
            'centers': [list(c.position) for c in result.layout.centers],
            'entries': [
                {
                    'template': e['template'],
                    'position': list(e['position']),
                    'rotation': list(e['rotation']),
                    'scale': list(e['scale']),
                    'cluster': e['cluster'],
                }
                for e in run['entries']
            ],
        }
    return data


# ===================================================================
# CLI
# ===================================================================

def main():
    parser = argparse.ArgumentParser(
        description='Run clustered placements from a JSON definition')
    subparsers = parser.add_subparsers(dest='command')

    p_run = subparsers.add_parser('run', help='Run placements and dump entries')
    p_run.add_argument('input', help='Input definition .json file')
    p_run.add_argument('-o', '--output', help='Output .json file')

    p_val = subparsers.add_parser('validate', help='Run placements and print QA checks')
    p_val.add_argument('input', help='Input definition .json file')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Show placement warnings and debug output')

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    if args.command is None:
        parser.print_help()
        return 1

    with open(args.input, 'r', encoding='utf-8') as f:
        definition = json.load(f)
    runs = run_definition(definition)

    if args.command == 'run':
        output = args.output or os.path.splitext(args.input)[0] + '.layout.json'
        with open(output, 'w', encoding='utf-8') as f:
            json.dump(results_to_json(runs), f, indent=2)
        for name, run in runs.items():
            result = run['result']
            print("{} -> {} ({}/{} objects, {} clusters{})".format(
                name, output, result.realized, result.requested,
                len(result.layout), ", VIOLATION" if result.violation else ""))

    elif args.command == 'validate':
        failures = 0
        for name, run in runs.items():
            print("\n{}".format(name))
            for r in validate_layout(run['result'], run['config'],
                                     [ExclusionZone.from_dict(d)
                                      for d in definition.get('exclusion_zones', [])]):
                status = "PASS" if r.passed else "FAIL"
                print("  {:4s}  {:10s} {:8s} {}".format(
                    status, r.check_id, r.severity.value, r.message))
                if r.passed:
                    continue
                if r.clusters:
                    print("        clusters: {}".format(list(r.clusters)))
                if r.hint:
                    print("        hint: {}".format(r.hint))
                if r.severity.value == 'ERROR':
                    failures += 1
        return 1 if failures else 0

    return 0


if __name__ == '__main__':
    sys.exit(main())
