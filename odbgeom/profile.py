"""Board profile (outline) extraction.

Outlines turn up in three shapes:
  - coordinate-pair polygons, `P x1 y1 x2 y2 ...` (or `OB ...` outside a
    surface) continuing over following lines until one ends with ';';
    one never terminated is dropped
  - ODB++ surface contours (S / OB / OS / OC / OE / SE)
  - loose `L` edges (and `A` arcs), which are stitched into one loop
When none of them yields a polygon the 300 x 200 default board is used.
"""

import logging
from typing import List, Optional, Tuple

from .errors import Diagnostic, DiagnosticKind
from .features import FeatureParser, ParserState, PolygonAssembler
from .geometry_model import (
    DEFAULT_PROFILE_SIZE, EPSILON, BoardProfile, Layer, Line, Point, Polygon, default_profile,
)
from .utils import is_number, points_close

log = logging.getLogger(__name__)

# Records that end a coordinate-pair polygon still waiting for its ';'
_DIRECT_BREAKS = {"L", "A", "C", "P", "S", "SE", "T", "OB"}


def _stitch(edges: List[Line], tolerance: float) -> Tuple[List[Point], List[Line]]:
    remaining = list(edges)
    first = remaining.pop(0)
    points = [first.start, first.end]

    found = True
    while found and remaining:
        found = False
        last = points[-1]
        for i, edge in enumerate(remaining):
            if points_close(edge.start, last, tolerance):
                points.append(edge.end)
            elif points_close(edge.end, last, tolerance):
                points.append(edge.start)
            else:
                continue
            del remaining[i]
            found = True
            break

    if len(points) > 1 and points_close(points[0], points[-1], tolerance):
        points.pop()
    return points, remaining


def stitch_segments(edges: List[Line], tolerance: float = EPSILON) -> Optional[Polygon]:
    """Chain undirected edges into one loop, starting from the first edge.

    Greedy: each step takes the first remaining edge touching the current
    end point. Disjoint loops or branching edge sets are not separated;
    edges left over are ignored. The closing point is not repeated.
    """
    if not edges:
        return None
    points, _ = _stitch(edges, tolerance)
    if len(points) < 3:
        return None
    return Polygon(points=points)


class ProfileExtractor:
    def __init__(self, tolerance: float = EPSILON, source: str = "profile"):
        self.tolerance = tolerance
        self.source = source
        self.diagnostics = []  # list of Diagnostic
        self._min = None
        self._max = None

    def _observe(self, p: Point):
        if self._min is None:
            self._min = Point(p.x, p.y)
            self._max = Point(p.x, p.y)
            return
        self._min.x = min(self._min.x, p.x)
        self._min.y = min(self._min.y, p.y)
        self._max.x = max(self._max.x, p.x)
        self._max.y = max(self._max.y, p.y)

    def _read_pairs(self, tokens: List[str], assembler: PolygonAssembler):
        if tokens and not is_number(tokens[0]):
            tokens = tokens[1:]
        numbers = []
        for t in tokens:
            if not is_number(t):
                break
            numbers.append(float(t))
        for i in range(0, len(numbers) - 1, 2):
            assembler.add(Point(numbers[i], numbers[i + 1]))

    def parse(self, text: str) -> BoardProfile:
        outline = []
        scratch = Layer(name=self.source)
        parser = FeatureParser(scratch, source=self.source, on_point=self._observe)
        direct = PolygonAssembler()

        def finish_direct():
            polygon = direct.close()
            if polygon is not None:
                for p in polygon.points:
                    self._observe(p)
                outline.append(polygon)

        def drop_direct(reason):
            count = direct.discard()
            log.warning("%s: dropping %d-point outline polygon, %s", self.source, count, reason)
            self.diagnostics.append(Diagnostic(
                DiagnosticKind.MALFORMED_RECORD, f"outline polygon {reason}", self.source))

        for raw in text.splitlines():
            line = raw.strip()
            if not line or line.startswith(("#", "//")):
                parser.feed(raw)
                continue
            tokens = line.rstrip(";").split()
            head = tokens[0].upper() if tokens else ""

            if direct.is_open:
                if head == "OE":
                    finish_direct()
                    continue
                if head not in _DIRECT_BREAKS:
                    self._read_pairs(tokens, direct)
                    if line.endswith(";"):
                        finish_direct()
                    continue
                drop_direct(f"interrupted by {head} record")

            if head == "P" or (head == "OB" and parser.state == ParserState.IDLE):
                direct.open()
                self._read_pairs(tokens[1:], direct)
                if line.endswith(";"):
                    finish_direct()
                continue

            parser.feed(raw)

        if direct.is_open:
            drop_direct("not terminated by ';'")
        self.diagnostics.extend(parser.finish())

        for polygon in scratch.polygons:
            for p in polygon.points:
                self._observe(p)
        outline.extend(scratch.polygons)

        edges = scratch.lines
        if edges:
            for edge in edges:
                self._observe(edge.start)
                self._observe(edge.end)
            points, leftover = _stitch(edges, self.tolerance)
            if len(points) >= 3:
                outline.append(Polygon(points=points))
            else:
                log.warning("%s: %d edges did not form a loop", self.source, len(edges))
            if leftover:
                log.warning("%s: %d outline edges left unconnected", self.source, len(leftover))
                self.diagnostics.append(Diagnostic(
                    DiagnosticKind.MALFORMED_RECORD,
                    f"{len(leftover)} outline edges not connected to the main loop",
                    self.source,
                ))

        if not outline:
            log.warning("%s: no outline recovered, using default %gx%g board",
                        self.source, *DEFAULT_PROFILE_SIZE)
            self.diagnostics.append(Diagnostic(
                DiagnosticKind.EMPTY_RESULT, "no outline polygon recovered", self.source))
            return default_profile()

        profile = BoardProfile(outline=outline, min=self._min, max=self._max)
        log.info("Board profile: %d polygons, %s x %s", len(outline), profile.width, profile.height)
        return profile


def parse_profile(text: str, tolerance: float = EPSILON, source: str = "profile") -> BoardProfile:
    """Parse a profile stream into a BoardProfile (never None)."""
    return ProfileExtractor(tolerance, source).parse(text)
