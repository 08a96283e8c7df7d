#!/usr/bin/env python3
"""ODB++ geometry to JSON.

Parses an ODB++ archive and writes its layer geometry and board profile
as JSON on stdout. Optionally renders all layers to SVG and/or a
matplotlib image.

Usage:
    odb-geometry input.tgz [-v] [--list-layers] [--svg out.svg] [--png out.png]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .errors import NotFound
from .geometry_model import LayerType, Side
from .odb_parser import parse_odb
from .projector import Canvas, project
from .utils import fmt

log = logging.getLogger(__name__)


def _point(p):
    """Format a Point as [x, y] list."""
    return [float(fmt(p.x)), float(fmt(p.y))]


def _layer_type_str(lt):
    return {
        LayerType.COPPER: "copper",
        LayerType.SOLDER_MASK: "solder_mask",
        LayerType.SILKSCREEN: "silkscreen",
        LayerType.OUTLINE: "outline",
        LayerType.DRILL: "drill",
        LayerType.PASTE: "paste",
        LayerType.KEEPOUT: "keepout",
        LayerType.ROUTE: "route",
        LayerType.OTHER: "other",
    }.get(lt, "other")


def _side_str(side):
    return {
        Side.TOP: "TOP",
        Side.BOTTOM: "BOT",
        Side.INTERNAL: "INTERNAL",
        Side.BOTH: "BOTH",
    }.get(side, "BOTH")


def _diagnostic(d):
    return {"kind": d.kind.name, "message": d.message, "source": d.source, "line": d.line}


def layer_to_json(layer):
    return {
        "name": layer.name,
        "type": _layer_type_str(layer.kind),
        "side": _side_str(layer.side),
        "color": layer.color,
        "visible": layer.visible,
        "source_files": list(layer.source_files),
        "lines": [
            {"start": _point(l.start), "end": _point(l.end), "width": float(fmt(l.width))}
            for l in layer.lines
        ],
        "circles": [
            {"center": _point(c.center), "radius": float(fmt(c.radius))}
            for c in layer.circles
        ],
        "polygons": [
            {"points": [_point(p) for p in poly.points]}
            for poly in layer.polygons
        ],
        "texts": [
            {"position": _point(t.position), "content": t.content, "size": float(fmt(t.size))}
            for t in layer.texts
        ],
        "diagnostics": [_diagnostic(d) for d in layer.diagnostics],
    }


def profile_to_json(profile):
    if profile is None:
        return None
    return {
        "outline": [[_point(p) for p in poly.points] for poly in profile.outline],
        "min": _point(profile.min),
        "max": _point(profile.max),
        "width": float(fmt(profile.width)),
        "height": float(fmt(profile.height)),
        "default": profile.is_default,
    }


def result_to_json(result):
    """Convert a ParseResult to a JSON-serializable dict."""
    return {
        "units": result.units,
        "job_name": result.job_name,
        "profile": profile_to_json(result.profile),
        "layers": [layer_to_json(layer) for layer in result.layers],
        "diagnostics": [_diagnostic(d) for d in result.diagnostics],
    }


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Extract layer geometry from an ODB++ archive as JSON"
    )
    parser.add_argument("input", help="ODB++ archive (.tgz/.zip) or directory")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose logging")
    parser.add_argument("--list-layers", action="store_true",
                        help="List layers with type and side and exit")
    parser.add_argument("--svg", default=None, metavar="PATH",
                        help="Also render all layers to an SVG file")
    parser.add_argument("--png", default=None, metavar="PATH",
                        help="Also render all layers with matplotlib (format from extension)")
    parser.add_argument("--width", type=float, default=800.0, help="Canvas width (default: 800)")
    parser.add_argument("--height", type=float, default=600.0, help="Canvas height (default: 600)")
    parser.add_argument("--padding", type=float, default=20.0, help="Canvas padding (default: 20)")
    parser.add_argument("--no-profile", action="store_true",
                        help="Fit rendering to the geometry instead of the board profile")
    parser.add_argument("--symbol-scale", type=float, default=1.0,
                        help="Scale applied to symbol dimensions (default: 1)")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: {input_path} not found", file=sys.stderr)
        sys.exit(1)

    try:
        result = parse_odb(input_path, symbol_scale=args.symbol_scale)
    except (NotFound, ValueError, OSError) as e:
        print(f"Error reading ODB++: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc(file=sys.stderr)
        sys.exit(1)

    if args.list_layers:
        if result.layers:
            print(f"Layers in {input_path}:")
            for layer in result.layers:
                print(f"  {layer.name:<24} {_layer_type_str(layer.kind):<12} "
                      f"{_side_str(layer.side):<9} {layer.primitive_count()} primitives")
        else:
            print(f"No layers found in {input_path}")
        sys.exit(0)

    # Log stats to stderr
    log.info("Layers: %d", len(result.layers))
    for layer in result.layers:
        log.info("  %s: %d lines, %d circles, %d polygons, %d texts",
                 layer.name, len(layer.lines), len(layer.circles),
                 len(layer.polygons), len(layer.texts))
    for d in result.all_diagnostics():
        log.debug("%s", d)

    if args.svg or args.png:
        profile = result.profile
        if args.no_profile or (profile is not None and profile.is_default):
            profile = None
        canvas = Canvas(args.width, args.height, args.padding)
        projection = project(result.layers, profile, canvas)
        if args.svg:
            from .svg_writer import write_svg
            write_svg(projection, args.svg)
        if args.png:
            from .mpl_render import save_figure
            save_figure(projection, args.png)

    # Convert to JSON and write to stdout
    json.dump(result_to_json(result), sys.stdout, separators=(",", ":"))
    print()  # trailing newline


if __name__ == "__main__":
    main()
