"""Geometry data model for ODB++ layer extraction.

Plain dataclasses for the primitives produced by the feature and profile
parsers. All coordinates are design units exactly as read from the archive;
nothing here converts units.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

# Tolerance (design units) for "same point" comparisons
EPSILON = 1e-3

# Synthetic board used when no outline can be recovered
DEFAULT_PROFILE_SIZE = (300.0, 200.0)


class SymbolKind(Enum):
    CIRCLE = auto()
    SQUARE = auto()
    OVAL = auto()
    RECT = auto()
    UNKNOWN = auto()


class LayerType(Enum):
    COPPER = auto()
    SOLDER_MASK = auto()
    SILKSCREEN = auto()
    OUTLINE = auto()
    DRILL = auto()
    PASTE = auto()
    KEEPOUT = auto()
    ROUTE = auto()
    OTHER = auto()


class Side(Enum):
    TOP = auto()
    BOTTOM = auto()
    INTERNAL = auto()
    BOTH = auto()


@dataclass
class Point:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class SymbolDefinition:
    """A reusable pad/aperture shape referenced from pad records.

    For circles `primary` is the radius, for squares the side length, for
    ovals and rectangles the width (`secondary` is the height). Unknown
    shapes keep the original text in `raw`.
    """
    id: str
    kind: SymbolKind
    primary: float = 0.0
    secondary: Optional[float] = None
    corner_radius: Optional[float] = None
    raw: str = ""


@dataclass
class Line:
    start: Point = field(default_factory=Point)
    end: Point = field(default_factory=Point)
    width: float = 0.0


@dataclass
class Circle:
    center: Point = field(default_factory=Point)
    radius: float = 0.0


@dataclass
class Polygon:
    points: list = field(default_factory=list)  # list of Point


@dataclass
class TextLabel:
    position: Point = field(default_factory=Point)
    content: str = ""
    size: float = 0.0


@dataclass
class Layer:
    name: str = ""
    kind: LayerType = LayerType.OTHER
    side: Side = Side.BOTH
    lines: list = field(default_factory=list)  # list of Line
    circles: list = field(default_factory=list)  # list of Circle
    polygons: list = field(default_factory=list)  # list of Polygon
    texts: list = field(default_factory=list)  # list of TextLabel
    color: str = "#888888"
    visible: bool = True
    # Archive paths parsed into this layer, in parse order
    source_files: list = field(default_factory=list)
    diagnostics: list = field(default_factory=list)  # list of Diagnostic

    def primitive_count(self) -> int:
        return len(self.lines) + len(self.circles) + len(self.polygons) + len(self.texts)

    def is_empty(self) -> bool:
        return self.primitive_count() == 0


@dataclass
class BoardProfile:
    """Board outline plus its bounding box.

    width and height are derived from the box so they can never disagree
    with it.
    """
    outline: list = field(default_factory=list)  # list of Polygon
    min: Point = field(default_factory=Point)
    max: Point = field(default_factory=Point)
    is_default: bool = False

    @property
    def width(self) -> float:
        return self.max.x - self.min.x

    @property
    def height(self) -> float:
        return self.max.y - self.min.y


def default_profile() -> BoardProfile:
    """Rectangular stand-in board so downstream scaling stays well-defined."""
    w, h = DEFAULT_PROFILE_SIZE
    return BoardProfile(
        outline=[Polygon(points=[Point(0.0, 0.0), Point(w, 0.0), Point(w, h), Point(0.0, h)])],
        min=Point(0.0, 0.0),
        max=Point(w, h),
        is_default=True,
    )


@dataclass
class ParseResult:
    layers: list = field(default_factory=list)  # list of Layer
    profile: Optional[BoardProfile] = None
    # Pipeline-level diagnostics; per-layer ones live on each Layer
    diagnostics: list = field(default_factory=list)
    units: str = ""  # as declared in misc/info; coordinates are not converted
    job_name: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.layers

    def all_diagnostics(self) -> list:
        out = list(self.diagnostics)
        for layer in self.layers:
            out.extend(layer.diagnostics)
        return out
