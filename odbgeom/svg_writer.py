"""SVG output for projected layers."""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

from lxml import etree as ET

from .geometry_model import BoardProfile, Layer
from .projector import (
    Canvas, DrawCircle, DrawLine, DrawPolygon, DrawText, Projection, project,
)
from .utils import fmt

log = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
DEFAULT_BACKGROUND = "#2b2b2b"


def _svg(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def _points_attr(points) -> str:
    return " ".join(f"{fmt(x)},{fmt(y)}" for x, y in points)


def _command_element(parent, cmd):
    if isinstance(cmd, DrawLine):
        ET.SubElement(parent, _svg("line"), {
            "x1": fmt(cmd.x1), "y1": fmt(cmd.y1), "x2": fmt(cmd.x2), "y2": fmt(cmd.y2),
            "stroke": cmd.color, "stroke-width": fmt(cmd.width), "stroke-linecap": "round",
        })
    elif isinstance(cmd, DrawCircle):
        ET.SubElement(parent, _svg("circle"), {
            "cx": fmt(cmd.cx), "cy": fmt(cmd.cy), "r": fmt(cmd.r), "fill": cmd.color,
        })
    elif isinstance(cmd, DrawPolygon):
        ET.SubElement(parent, _svg("polygon"), {"points": _points_attr(cmd.points), "fill": cmd.color})
    elif isinstance(cmd, DrawText):
        elem = ET.SubElement(parent, _svg("text"), {
            "x": fmt(cmd.x), "y": fmt(cmd.y), "font-size": fmt(cmd.size),
            "font-family": "monospace", "fill": cmd.color,
        })
        elem.text = cmd.content


def render_svg(projection: Projection, background: Optional[str] = DEFAULT_BACKGROUND) -> str:
    """SVG document for a projection: outline, then one <g> per layer."""
    canvas = projection.canvas
    root = ET.Element(_svg("svg"), nsmap={None: SVG_NS}, attrib={
        "width": fmt(canvas.width),
        "height": fmt(canvas.height),
        "viewBox": f"0 0 {fmt(canvas.width)} {fmt(canvas.height)}",
    })
    if background:
        ET.SubElement(root, _svg("rect"), {
            "x": "0", "y": "0", "width": fmt(canvas.width), "height": fmt(canvas.height),
            "fill": background,
        })

    for poly in projection.outline:
        ET.SubElement(root, _svg("polygon"), {
            "points": _points_attr(poly.points),
            "fill": "none",
            "stroke": poly.color,
            "stroke-width": "1",
            "data-type": "board-outline",
        })

    for drawing in projection.layers:
        group = ET.SubElement(root, _svg("g"), {
            "id": f"layer-{drawing.name}",
            "data-layer-type": drawing.kind.name.lower(),
            "data-layer-side": drawing.side.name.lower(),
        })
        for cmd in drawing.commands:
            _command_element(group, cmd)

    return ET.tostring(root, encoding="unicode")


def render_layer_svgs(layers: Iterable[Layer], profile: Optional[BoardProfile] = None,
                      canvas: Optional[Canvas] = None,
                      background: Optional[str] = DEFAULT_BACKGROUND) -> Dict[str, str]:
    """One SVG per visible layer, all sharing the profile's scale."""
    out = {}
    for layer in layers:
        if not layer.visible:
            continue
        out[layer.name] = render_svg(project([layer], profile, canvas), background)
    return out


def write_svg(projection: Projection, path, background: Optional[str] = DEFAULT_BACKGROUND):
    Path(path).write_text(render_svg(projection, background), encoding="utf-8")
    log.info("Wrote SVG: %s", path)
