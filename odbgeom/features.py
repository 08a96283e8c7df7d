"""Feature stream parser.

One features file is a line-oriented command stream:

    $1 r2.5                         symbol definition
    P 5 5 $1 0                      pad at (5,5) using symbol 1, rotation 0
    L 0 0 10 0 1                    line, width 1
    C 10 20 5                       circle
    A 0 0 10 0 5 0 0.2              arc start/end/centre, width 0.2
    T 1 1 2 REF1                    text, size 2
    SE                              complex structure begin/end
    S P 0                           surface (polygon) begin
    OB 0 0 / OS 10 0 / OE           contour begin / segment / end

plus an older text dialect (POLYGON ... END blocks, PAD/VIA/RECT records,
multi-point P polygons). The parser is an explicit state machine; the
polygon point accumulator only exists while a contour is open.
"""

import logging
import re
from enum import Enum, auto
from typing import Callable, Dict, List, Optional

from .arcs import contour_arc, tessellate_endpoints
from .errors import Diagnostic, DiagnosticKind, MalformedRecord
from .geometry_model import (
    Circle, Layer, Line, Point, Polygon, SymbolDefinition, SymbolKind, TextLabel,
)
from .symbols import parse_symbol_line, parse_symbols, symbol_ref
from .utils import close_ring, is_number, rotate_point, strip_attributes, to_float

log = logging.getLogger(__name__)

FALLBACK_PAD_RADIUS = 0.5
DEFAULT_LINE_WIDTH = 0.1
DEFAULT_TEXT_SIZE = 8.0

LEGACY_BLOCK_OPENERS = ("POLYGON", "SHAPE", "AREA")
LEGACY_BLOCK_CLOSERS = ("END", ".")

_TEXT_RE = re.compile(r"^T\s+(\S+)\s+(\S+)\s+(.*)$", re.I)


class ParserState(Enum):
    IDLE = auto()
    IN_STRUCTURE = auto()
    IN_POLYGON = auto()


class PolygonAssembler:
    """Point accumulator for the contour being read.

    `on_point` is called with every point added, which lets the profile
    extractor grow its bounding box as contours are read.
    """

    def __init__(self, on_point: Optional[Callable[[Point], None]] = None):
        self._points = None
        self.on_point = on_point

    @property
    def is_open(self) -> bool:
        return self._points is not None

    @property
    def points(self) -> List[Point]:
        return list(self._points or [])

    def open(self):
        self._points = []

    def add(self, point: Point):
        if self._points is None:
            self.open()
        self._points.append(point)
        if self.on_point is not None:
            self.on_point(point)

    def last(self) -> Optional[Point]:
        return self._points[-1] if self._points else None

    def discard(self) -> int:
        """Abandon the open contour, returning how many points it had."""
        points, self._points = self._points, None
        return len(points or [])

    def close(self) -> Optional[Polygon]:
        """Finish the contour; None when it has fewer than 3 distinct points."""
        points, self._points = self._points, None
        if not points:
            return None
        ring = close_ring(points)
        if ring is None:
            log.debug("Dropping contour with %d points", len(points))
            return None
        return Polygon(points=ring)


def rect_points(x: float, y: float, width: float, height: float,
                rotation: float = 0.0, corner_radius: Optional[float] = None) -> List[Point]:
    """Closed outline of a (possibly rounded, possibly rotated) rectangle pad.

    Rounded corners are cut at 45 degrees, giving an octagon.
    """
    hw = width / 2
    hh = height / 2
    r = corner_radius or 0.0
    if r > 0:
        r = min(r, hw, hh)
        offsets = [
            (-hw + r, -hh), (hw - r, -hh), (hw, -hh + r), (hw, hh - r),
            (hw - r, hh), (-hw + r, hh), (-hw, hh - r), (-hw, -hh + r),
        ]
    else:
        offsets = [(-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh)]

    points = []
    previous = None
    for dx, dy in offsets:
        # A radius clamped to a half side makes neighbouring cuts meet
        if (dx, dy) == previous:
            continue
        previous = (dx, dy)
        rx, ry = rotate_point(dx, dy, rotation)
        points.append(Point(x + rx, y + ry))
    points.append(Point(points[0].x, points[0].y))
    return points


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
        return text[1:-1]
    return text


class FeatureParser:
    """Line-at-a-time parser that appends primitives to `layer`.

    Call feed() for every line and finish() at end of input. Bad records
    are skipped and recorded in `diagnostics`.
    """

    def __init__(self, layer: Layer, symbols: Optional[Dict[str, SymbolDefinition]] = None,
                 symbol_scale: float = 1.0, source: str = "",
                 on_point: Optional[Callable[[Point], None]] = None):
        self.layer = layer
        self.symbols = dict(symbols or {})
        self.symbol_scale = symbol_scale
        self.source = source or layer.name
        self.state = ParserState.IDLE
        self.assembler = PolygonAssembler(on_point)
        self.diagnostics = []  # list of Diagnostic
        self.line_no = 0
        self._legacy_block = False

        self._handlers = {
            "SE": self._structure_toggle,
            "S": self._surface_begin,
            "OB": self._contour_begin,
            "OS": self._contour_segment,
            "OC": self._contour_arc,
            "OE": self._contour_end,
            "P": self._pad,
            "L": self._line,
            "C": self._circle,
            "A": self._arc,
            "T": self._text,
            "PAD": self._legacy_pad,
            "VIA": self._legacy_via,
            "RECT": self._legacy_rect,
        }
        # Commands still meaningful while a contour is open
        self._contour_commands = {"SE", "S", "OB", "OS", "OC", "OE"}

    # ── Diagnostics ───────────────────────────────────────────────────

    def _record(self, kind: DiagnosticKind, message: str):
        self.diagnostics.append(Diagnostic(kind, message, self.source, self.line_no))

    # ── Input ─────────────────────────────────────────────────────────

    def feed(self, raw_line: str):
        self.line_no += 1
        line = raw_line.strip()
        if not line or line[0] in "#@&":
            return

        try:
            if line.startswith("$"):
                self._symbol(line)
                return

            record = strip_attributes(line)
            if not record:
                return
            tokens = record.split()
            head = tokens[0].upper()

            if self._legacy_block:
                self._legacy_block_line(head, tokens)
                return

            if head in LEGACY_BLOCK_OPENERS:
                self._legacy_block_begin()
                return

            handler = self._handlers.get(head)
            if handler is None:
                log.debug("Ignoring unknown record: %s", record)
                return
            if self.state == ParserState.IN_POLYGON and head not in self._contour_commands:
                log.debug("Ignoring %s inside an open contour", head)
                return
            handler(tokens, record)
        except MalformedRecord as e:
            log.debug("%s:%d: skipping malformed record %r: %s",
                      self.source, self.line_no, line, e)
            self._record(DiagnosticKind.MALFORMED_RECORD, f"{e}: {line}")

    def finish(self) -> list:
        """Flush anything still open and return the diagnostics."""
        if self.state == ParserState.IN_POLYGON:
            self._flush()
        self.state = ParserState.IDLE
        self._legacy_block = False
        return self.diagnostics

    # ── Symbols ───────────────────────────────────────────────────────

    def _symbol(self, line: str):
        sym = parse_symbol_line(line, self.symbol_scale)
        if sym is not None:
            self.symbols[sym.id] = sym

    def _lookup(self, token: str) -> Optional[SymbolDefinition]:
        sym_id = symbol_ref(token)
        sym = self.symbols.get(sym_id)
        if sym is None:
            log.debug("Undefined symbol %s", token)
            self._record(DiagnosticKind.UNRESOLVED_SYMBOL, f"undefined symbol {token}")
        return sym

    # ── Polygon state machine ─────────────────────────────────────────

    def _flush(self):
        polygon = self.assembler.close()
        if polygon is not None:
            self.layer.polygons.append(polygon)

    def _structure_toggle(self, tokens, record):
        if self.state == ParserState.IDLE:
            self.state = ParserState.IN_STRUCTURE
            return
        if self.state == ParserState.IN_POLYGON:
            self._flush()
        self.state = ParserState.IDLE

    def _surface_begin(self, tokens, record):
        # A bare surface record (S P 0 ... SE) opens the structure implicitly
        if self.state == ParserState.IN_POLYGON:
            self._flush()
        self.assembler.open()
        self.state = ParserState.IN_POLYGON

    def _point(self, tokens, record, first=1) -> Point:
        if len(tokens) < first + 2:
            raise MalformedRecord(f"{tokens[0]} needs x and y", record)
        return Point(to_float(tokens[first], record), to_float(tokens[first + 1], record))

    def _contour_begin(self, tokens, record):
        if self.state == ParserState.IDLE:
            log.debug("Ignoring OB outside a structure")
            return
        point = self._point(tokens, record)
        if self.state == ParserState.IN_POLYGON and self.assembler.last() is not None:
            self._flush()
        if not self.assembler.is_open:
            self.assembler.open()
        self.state = ParserState.IN_POLYGON
        self.assembler.add(point)

    def _contour_segment(self, tokens, record):
        if self.state != ParserState.IN_POLYGON:
            log.debug("Ignoring OS outside a contour")
            return
        self.assembler.add(self._point(tokens, record))

    def _contour_arc(self, tokens, record):
        if self.state != ParserState.IN_POLYGON:
            log.debug("Ignoring OC outside a contour")
            return
        if len(tokens) < 5:
            raise MalformedRecord("OC needs end point and centre", record)
        end = Point(to_float(tokens[1], record), to_float(tokens[2], record))
        center = Point(to_float(tokens[3], record), to_float(tokens[4], record))
        clockwise = len(tokens) > 5 and tokens[5].upper() in ("Y", "CW")
        start = self.assembler.last()
        if start is None:
            self.assembler.add(end)
            return
        for p in contour_arc(start, end, center, clockwise):
            self.assembler.add(p)

    def _contour_end(self, tokens, record):
        if self.state != ParserState.IN_POLYGON:
            return
        self._flush()
        self.state = ParserState.IN_STRUCTURE

    # ── Single-line primitives ────────────────────────────────────────

    def _pad(self, tokens, record):
        if self.state != ParserState.IDLE:
            log.debug("Ignoring P inside a structure")
            return
        if len(tokens) < 4:
            raise MalformedRecord("P needs x, y and a symbol", record)

        if not tokens[3].startswith("$"):
            numeric = 0
            for t in tokens[1:]:
                if not is_number(t):
                    break
                numeric += 1
            if numeric >= 6:
                self._point_list_polygon(tokens[1:1 + numeric - numeric % 2], record)
                return

        x = to_float(tokens[1], record)
        y = to_float(tokens[2], record)
        rotation = to_float(tokens[4], record) if len(tokens) > 4 and is_number(tokens[4]) else 0.0
        center = Point(x, y)

        sym = self._lookup(tokens[3])
        if sym is None:
            self.layer.circles.append(Circle(center, FALLBACK_PAD_RADIUS))
        elif sym.kind == SymbolKind.CIRCLE:
            self.layer.circles.append(Circle(center, sym.primary))
        elif sym.kind == SymbolKind.SQUARE:
            self.layer.polygons.append(Polygon(rect_points(x, y, sym.primary, sym.primary, rotation)))
        elif sym.kind == SymbolKind.RECT:
            self.layer.polygons.append(Polygon(rect_points(
                x, y, sym.primary, sym.secondary, rotation, sym.corner_radius)))
        elif sym.kind == SymbolKind.OVAL:
            self.layer.circles.append(Circle(center, max(sym.primary, sym.secondary) / 2))
        else:
            log.debug("Symbol %s has unsupported shape %r, using fallback circle", sym.id, sym.raw)
            self.layer.circles.append(Circle(center, FALLBACK_PAD_RADIUS))

    def _point_list_polygon(self, numbers, record):
        points = [Point(to_float(numbers[i], record), to_float(numbers[i + 1], record))
                  for i in range(0, len(numbers), 2)]
        ring = close_ring(points)
        if ring is not None:
            self.layer.polygons.append(Polygon(ring))

    def _width(self, token: Optional[str], record: str) -> float:
        """Stroke width from a literal number or a `$sym` reference."""
        if token is None or token.upper() in ("P", "N"):
            return DEFAULT_LINE_WIDTH
        if token.startswith("$"):
            sym = self._lookup(token)
            if sym is None or sym.kind == SymbolKind.UNKNOWN:
                return DEFAULT_LINE_WIDTH
            if sym.kind == SymbolKind.CIRCLE:
                return sym.primary * 2
            return sym.primary
        return to_float(token, record)

    def _line(self, tokens, record):
        if len(tokens) < 5:
            raise MalformedRecord("L needs two end points", record)
        start = self._point(tokens, record, 1)
        end = self._point(tokens, record, 3)
        width = self._width(tokens[5] if len(tokens) > 5 else None, record)
        self.layer.lines.append(Line(start, end, width))

    def _circle(self, tokens, record):
        if len(tokens) < 4:
            raise MalformedRecord("C needs x, y and radius", record)
        center = self._point(tokens, record)
        self.layer.circles.append(Circle(center, to_float(tokens[3], record)))

    def _arc(self, tokens, record):
        if len(tokens) < 7:
            raise MalformedRecord("A needs start, end and centre", record)
        start = self._point(tokens, record, 1)
        end = self._point(tokens, record, 3)
        center = self._point(tokens, record, 5)
        width = self._width(tokens[7] if len(tokens) > 7 else None, record)
        self.layer.lines.extend(tessellate_endpoints(start, end, center, width))

    def _text(self, tokens, record):
        m = _TEXT_RE.match(record)
        if not m:
            raise MalformedRecord("T needs x, y and text", record)
        x = to_float(m.group(1), record)
        y = to_float(m.group(2), record)
        rest = m.group(3).strip()

        parts = rest.split(None, 1)
        if parts and is_number(parts[0]):
            size = to_float(parts[0], record)
            content = parts[1] if len(parts) == 2 else ""
        else:
            size = DEFAULT_TEXT_SIZE
            content = rest
        self.layer.texts.append(TextLabel(Point(x, y), _unquote(content), size))

    # ── Older text dialect ────────────────────────────────────────────

    def _legacy_block_begin(self):
        if self.state == ParserState.IN_POLYGON:
            self._flush()
        self._legacy_block = True
        self.assembler.open()
        self.state = ParserState.IN_POLYGON

    def _legacy_block_line(self, head, tokens):
        if head in LEGACY_BLOCK_CLOSERS:
            self._flush()
            self._legacy_block = False
            self.state = ParserState.IDLE
            return
        if len(tokens) >= 2 and is_number(tokens[0]) and is_number(tokens[1]):
            self.assembler.add(Point(float(tokens[0]), float(tokens[1])))
        else:
            log.debug("Ignoring non-coordinate line in polygon block: %s", " ".join(tokens))

    def _legacy_pad(self, tokens, record):
        if len(tokens) < 4:
            raise MalformedRecord("PAD needs x, y and size", record)
        x, y = to_float(tokens[1], record), to_float(tokens[2], record)
        size = to_float(tokens[3], record)
        if len(tokens) > 4 and is_number(tokens[4]):
            height = to_float(tokens[4], record)
            if abs(size - height) > 1e-3:
                self.layer.polygons.append(Polygon(rect_points(x, y, size, height)))
                return
            self.layer.circles.append(Circle(Point(x, y), size / 2))
            return
        self.layer.circles.append(Circle(Point(x, y), size))

    def _legacy_via(self, tokens, record):
        if len(tokens) < 4:
            raise MalformedRecord("VIA needs x, y and radius", record)
        center = self._point(tokens, record)
        self.layer.circles.append(Circle(center, to_float(tokens[3], record)))

    def _legacy_rect(self, tokens, record):
        if len(tokens) < 5:
            raise MalformedRecord("RECT needs x, y, width and height", record)
        x, y = to_float(tokens[1], record), to_float(tokens[2], record)
        w, h = to_float(tokens[3], record), to_float(tokens[4], record)
        rotation = to_float(tokens[5], record) if len(tokens) > 5 else 0.0
        self.layer.polygons.append(Polygon(rect_points(x, y, w, h, rotation)))


def parse_features(text: str, layer: Layer,
                   symbols: Optional[Dict[str, SymbolDefinition]] = None,
                   symbol_scale: float = 1.0, source: str = "") -> list:
    """Parse a whole features file into `layer`.

    Symbol definitions anywhere in the file are known before the first
    record is read. Returns this file's diagnostics, which are also
    appended to `layer.diagnostics`.
    """
    table = dict(symbols or {})
    table.update(parse_symbols(text, symbol_scale))
    parser = FeatureParser(layer, table, symbol_scale, source)

    before = (len(layer.lines), len(layer.circles), len(layer.polygons), len(layer.texts))
    for line in text.splitlines():
        parser.feed(line)
    diagnostics = parser.finish()

    log.info("%s: %d lines, %d circles, %d polygons, %d texts",
             parser.source,
             len(layer.lines) - before[0], len(layer.circles) - before[1],
             len(layer.polygons) - before[2], len(layer.texts) - before[3])
    layer.diagnostics.extend(diagnostics)
    return diagnostics
