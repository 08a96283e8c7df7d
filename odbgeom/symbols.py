"""Symbol table: `$<id> <shape>` definitions at the top of a features file.

Shapes understood:
  r<radius>                        circle
  s<side>                          square
  rect<w>x<h>[xr<corner>]          rectangle, optionally rounded
  oval<w>x<h>, o<w>x<h>            oval
The second dimension may also be written `=<h>` (e.g. `oval2=1`). Anything
else is kept as an UNKNOWN definition with its raw text, so pads that use
it still render as a small fallback circle.
"""

import logging
import re
from typing import Dict, Optional

from .geometry_model import SymbolDefinition, SymbolKind
from .errors import MalformedRecord
from .utils import to_float

log = logging.getLogger(__name__)

_NUM = r"([\d.]+(?:[eE][+-]?\d+)?)"

_DEF_RE = re.compile(r"^\$([^\s=]+)(?:\s+|=)(\S+)")

# (pattern, kind); patterns are tried in order and must match the whole shape
SHAPE_RULES = [
    (re.compile(rf"^rect{_NUM}(?:[x=]{_NUM})?(?:xr{_NUM})?$", re.I), SymbolKind.RECT),
    (re.compile(rf"^oval{_NUM}(?:[x=]{_NUM})?$", re.I), SymbolKind.OVAL),
    (re.compile(rf"^o{_NUM}(?:[x=]{_NUM})?$", re.I), SymbolKind.OVAL),
    (re.compile(rf"^r{_NUM}$", re.I), SymbolKind.CIRCLE),
    (re.compile(rf"^s{_NUM}$", re.I), SymbolKind.SQUARE),
]


def parse_shape(symbol_id: str, shape: str, scale: float = 1.0) -> SymbolDefinition:
    """Build a SymbolDefinition from one shape token like `rect2x1xr0.2`."""
    for pattern, kind in SHAPE_RULES:
        m = pattern.match(shape)
        if not m:
            continue
        groups = m.groups()
        primary = to_float(groups[0], shape) * scale
        if kind in (SymbolKind.CIRCLE, SymbolKind.SQUARE):
            return SymbolDefinition(symbol_id, kind, primary, raw=shape)

        if groups[1] is None:
            # Oval and rect need both dimensions
            return SymbolDefinition(symbol_id, SymbolKind.UNKNOWN, raw=shape)
        secondary = to_float(groups[1], shape) * scale
        corner = None
        if kind == SymbolKind.RECT and len(groups) > 2 and groups[2] is not None:
            corner = to_float(groups[2], shape) * scale
        return SymbolDefinition(symbol_id, kind, primary, secondary, corner, raw=shape)

    return SymbolDefinition(symbol_id, SymbolKind.UNKNOWN, raw=shape)


def parse_symbol_line(line: str, scale: float = 1.0) -> Optional[SymbolDefinition]:
    """Parse one `$<id> <shape>` line; None when the line is not a definition.

    Raises MalformedRecord when a known shape carries a bad number.
    """
    m = _DEF_RE.match(line.strip())
    if not m:
        return None
    return parse_shape(m.group(1), m.group(2), scale)


def parse_symbols(header_text: str, scale: float = 1.0) -> Dict[str, SymbolDefinition]:
    """Collect every symbol definition in `header_text`, keyed by id."""
    table = {}
    for line in header_text.splitlines():
        line = line.strip()
        if not line.startswith("$"):
            continue
        try:
            sym = parse_symbol_line(line, scale)
        except MalformedRecord as e:
            log.debug("Skipping symbol line %r: %s", line, e)
            continue
        if sym is not None:
            table[sym.id] = sym
    log.info("Parsed %d symbol definitions", len(table))
    return table


def symbol_ref(token: str) -> str:
    """Symbol id from a pad/line reference; both `$3` and bare `3` are accepted."""
    return token[1:] if token.startswith("$") else token
