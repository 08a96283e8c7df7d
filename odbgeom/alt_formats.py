"""Layer files exported as XML (SVG-like elements) or JSON instead of ODB++ text.

XML elements read: <line x1 y1 x2 y2 width>, <circle cx cy r>,
<rect x y width height> (x, y is the centre), <polygon points>,
<path d> (M/L/H/V/Z, absolute and relative) and <text x y>content</text>.

JSON layout:

    {"lines":    [{"x1": 0, "y1": 0, "x2": 1, "y2": 0, "width": 0.2}],
     "circles":  [{"cx": 0, "cy": 0, "r": 1}],
     "polygons": [{"points": [{"x": 0, "y": 0}, ...]}],
     "texts":    [{"x": 0, "y": 0, "content": "U1", "size": 2}],
     "arcs":     [{"start": {...}, "mid": {...}, "end": {...}, "width": 0.1}]}
"""

import json
import logging
import re
import xml.etree.ElementTree as ET

from .arcs import tessellate_three_point
from .errors import Diagnostic, DiagnosticKind, MalformedRecord
from .features import rect_points
from .geometry_model import Circle, Layer, Line, Point, Polygon, TextLabel
from .utils import close_ring, to_float

log = logging.getLogger(__name__)

DEFAULT_XML_TEXT_SIZE = 10.0
DEFAULT_JSON_TEXT_SIZE = 10.0
DEFAULT_JSON_LINE_WIDTH = 1.0

_PATH_CMD_RE = re.compile(r"([MLHVZmlhvz])([^MLHVZmlhvz]*)")


def _tag(elem) -> str:
    """Element tag without any '{namespace}' prefix."""
    return elem.tag.rsplit("}", 1)[-1].lower()


def _attr(elem, name: str) -> float:
    value = elem.get(name)
    if value is None:
        raise MalformedRecord(f"<{_tag(elem)}> missing {name}", ET.tostring(elem, "unicode"))
    return to_float(value, name)


def _ring(points):
    ring = close_ring(points)
    return Polygon(points=ring) if ring else None


def parse_svg_path(d: str) -> list:
    """Vertices of an SVG path using only straight-segment commands."""
    points = []
    x = y = 0.0
    for cmd, params in _PATH_CMD_RE.findall(d):
        args = [to_float(a, d) for a in params.replace(",", " ").split()]
        if cmd in "Mm" or cmd in "Ll":
            for i in range(0, len(args) - 1, 2):
                if cmd.islower():
                    x += args[i]
                    y += args[i + 1]
                else:
                    x, y = args[i], args[i + 1]
                points.append(Point(x, y))
        elif cmd in "Hh":
            for a in args:
                x = x + a if cmd == "h" else a
                points.append(Point(x, y))
        elif cmd in "Vv":
            for a in args:
                y = y + a if cmd == "v" else a
                points.append(Point(x, y))
        # Z closes the ring; close_ring does that later
    return points


def _xml_element(elem, layer: Layer):
    tag = _tag(elem)
    if tag == "line":
        layer.lines.append(Line(
            start=Point(_attr(elem, "x1"), _attr(elem, "y1")),
            end=Point(_attr(elem, "x2"), _attr(elem, "y2")),
            width=_attr(elem, "width"),
        ))
    elif tag == "circle":
        layer.circles.append(Circle(Point(_attr(elem, "cx"), _attr(elem, "cy")), _attr(elem, "r")))
    elif tag == "rect":
        layer.polygons.append(Polygon(rect_points(
            _attr(elem, "x"), _attr(elem, "y"), _attr(elem, "width"), _attr(elem, "height"))))
    elif tag == "polygon":
        raw = elem.get("points", "")
        points = []
        for pair in raw.split():
            xy = pair.split(",")
            if len(xy) != 2:
                raise MalformedRecord(f"bad polygon point {pair!r}", raw)
            points.append(Point(to_float(xy[0], raw), to_float(xy[1], raw)))
        polygon = _ring(points)
        if polygon:
            layer.polygons.append(polygon)
    elif tag == "path":
        polygon = _ring(parse_svg_path(elem.get("d", "")))
        if polygon:
            layer.polygons.append(polygon)
    elif tag == "text":
        size = to_float(elem.get("size"), "size") if elem.get("size") else DEFAULT_XML_TEXT_SIZE
        layer.texts.append(TextLabel(
            Point(_attr(elem, "x"), _attr(elem, "y")),
            "".join(elem.itertext()).strip(),
            size,
        ))


def parse_xml_features(text: str, layer: Layer, source: str = "") -> list:
    """Parse an XML layer file into `layer`; returns the diagnostics."""
    diagnostics = []
    source = source or layer.name
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        log.warning("%s: not well-formed XML: %s", source, e)
        diagnostics.append(Diagnostic(DiagnosticKind.PARSE_FAILURE, f"XML: {e}", source))
        layer.diagnostics.extend(diagnostics)
        return diagnostics

    for elem in root.iter():
        try:
            _xml_element(elem, layer)
        except MalformedRecord as e:
            log.debug("%s: skipping <%s>: %s", source, _tag(elem), e)
            diagnostics.append(Diagnostic(DiagnosticKind.MALFORMED_RECORD, str(e), source))

    layer.diagnostics.extend(diagnostics)
    return diagnostics


def _json_point(obj, what: str) -> Point:
    if not isinstance(obj, dict):
        raise MalformedRecord(f"{what} is not an object", repr(obj))
    return Point(to_float(obj.get("x"), what), to_float(obj.get("y"), what))


def _json_line(item) -> Line:
    return Line(
        start=Point(to_float(item.get("x1"), "x1"), to_float(item.get("y1"), "y1")),
        end=Point(to_float(item.get("x2"), "x2"), to_float(item.get("y2"), "y2")),
        width=to_float(item.get("width") or DEFAULT_JSON_LINE_WIDTH, "width"),
    )


def _json_circle(item) -> Circle:
    return Circle(Point(to_float(item.get("cx"), "cx"), to_float(item.get("cy"), "cy")),
                  to_float(item.get("r"), "r"))


def _json_text(item) -> TextLabel:
    return TextLabel(
        Point(to_float(item.get("x"), "x"), to_float(item.get("y"), "y")),
        str(item.get("content", "")),
        to_float(item.get("size") or DEFAULT_JSON_TEXT_SIZE, "size"),
    )


def parse_json_features(text: str, layer: Layer, source: str = "") -> list:
    """Parse a JSON layer file into `layer`; returns the diagnostics."""
    diagnostics = []
    source = source or layer.name
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        log.warning("%s: invalid JSON: %s", source, e)
        diagnostics.append(Diagnostic(DiagnosticKind.PARSE_FAILURE, f"JSON: {e}", source))
        layer.diagnostics.extend(diagnostics)
        return diagnostics
    if not isinstance(data, dict):
        diagnostics.append(Diagnostic(DiagnosticKind.PARSE_FAILURE,
                                      "JSON layer file is not an object", source))
        layer.diagnostics.extend(diagnostics)
        return diagnostics

    def each(key, build):
        for item in data.get(key) or []:
            try:
                if not isinstance(item, dict):
                    raise MalformedRecord(f"{key} entry is not an object", repr(item))
                build(item)
            except MalformedRecord as e:
                log.debug("%s: skipping %s entry: %s", source, key, e)
                diagnostics.append(Diagnostic(DiagnosticKind.MALFORMED_RECORD, f"{key}: {e}", source))

    def add_polygon(item):
        polygon = _ring([_json_point(p, "point") for p in item.get("points") or []])
        if polygon:
            layer.polygons.append(polygon)

    def add_arc(item):
        layer.lines.extend(tessellate_three_point(
            _json_point(item.get("start"), "start"),
            _json_point(item.get("mid"), "mid"),
            _json_point(item.get("end"), "end"),
            to_float(item.get("width") or DEFAULT_JSON_LINE_WIDTH, "width"),
        ))

    each("lines", lambda item: layer.lines.append(_json_line(item)))
    each("circles", lambda item: layer.circles.append(_json_circle(item)))
    each("polygons", add_polygon)
    each("texts", lambda item: layer.texts.append(_json_text(item)))
    each("arcs", add_arc)

    layer.diagnostics.extend(diagnostics)
    return diagnostics
