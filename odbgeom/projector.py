"""Project layer geometry onto a drawing canvas.

The projector turns Layers (design units) into backend-neutral draw
commands in canvas units. One uniform scale is used for coordinates,
stroke widths, radii and font sizes. With a board profile the profile is
fitted and centred inside the padded canvas; without one the bounding box
of everything drawn is fitted instead.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .classify import layer_color
from .geometry_model import BoardProfile, Layer, LayerType, Point, Side

log = logging.getLogger(__name__)

# Lower draws first (underneath)
LAYER_PRIORITY = {
    LayerType.OUTLINE: 0,
    LayerType.COPPER: 1,
    LayerType.SOLDER_MASK: 2,
    LayerType.SILKSCREEN: 3,
    LayerType.PASTE: 4,
    LayerType.DRILL: 5,
}
OTHER_PRIORITY = 6

# Estimated glyph advance as a fraction of the font size
TEXT_WIDTH_FACTOR = 0.6

EMPTY_BBOX = (Point(0.0, 0.0), Point(100.0, 100.0))


@dataclass
class Canvas:
    width: float = 800.0
    height: float = 600.0
    padding: float = 20.0


@dataclass
class Transform:
    """canvas = design * scale + offset, per axis."""
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def apply(self, p: Point) -> Tuple[float, float]:
        return p.x * self.scale + self.offset_x, p.y * self.scale + self.offset_y

    def length(self, value: float) -> float:
        return value * self.scale


@dataclass
class DrawLine:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float
    color: str


@dataclass
class DrawCircle:
    cx: float
    cy: float
    r: float
    color: str


@dataclass
class DrawPolygon:
    points: list  # list of (x, y)
    color: str


@dataclass
class DrawText:
    x: float
    y: float
    size: float
    content: str
    color: str


@dataclass
class LayerDrawing:
    name: str
    kind: LayerType
    side: Side
    color: str
    commands: list = field(default_factory=list)  # Draw* in layer file order


@dataclass
class Projection:
    layers: list = field(default_factory=list)  # list of LayerDrawing, bottom first
    outline: list = field(default_factory=list)  # list of DrawPolygon
    transform: Transform = field(default_factory=Transform)
    canvas: Canvas = field(default_factory=Canvas)

    def commands(self):
        """All draw commands in paint order, outline first."""
        yield from self.outline
        for drawing in self.layers:
            yield from drawing.commands


def layer_priority(kind: LayerType) -> int:
    return LAYER_PRIORITY.get(kind, OTHER_PRIORITY)


def order_layers(layers: Iterable[Layer]) -> List[Layer]:
    """Visible layers in paint order; ties keep their input order."""
    return sorted((l for l in layers if l.visible), key=lambda l: layer_priority(l.kind))


def _layer_points(layer: Layer):
    for line in layer.lines:
        yield line.start
        yield line.end
    for c in layer.circles:
        yield Point(c.center.x - c.radius, c.center.y - c.radius)
        yield Point(c.center.x + c.radius, c.center.y + c.radius)
    for poly in layer.polygons:
        yield from poly.points
    for t in layer.texts:
        yield Point(t.position.x, t.position.y - t.size)
        yield Point(t.position.x + TEXT_WIDTH_FACTOR * t.size * len(t.content), t.position.y)


def compute_bbox(layers: Iterable[Layer]) -> Tuple[Point, Point]:
    """(min, max) over every primitive; the 0..100 square when there are none."""
    lo = hi = None
    for layer in layers:
        for p in _layer_points(layer):
            if lo is None:
                lo, hi = Point(p.x, p.y), Point(p.x, p.y)
                continue
            lo.x = min(lo.x, p.x)
            lo.y = min(lo.y, p.y)
            hi.x = max(hi.x, p.x)
            hi.y = max(hi.y, p.y)
    if lo is None:
        return Point(EMPTY_BBOX[0].x, EMPTY_BBOX[0].y), Point(EMPTY_BBOX[1].x, EMPTY_BBOX[1].y)
    return lo, hi


def fit_transform(lo: Point, hi: Point, canvas: Canvas, center: bool = False) -> Transform:
    """Uniform scale that fits [lo, hi] inside the padded canvas.

    A zero-size dimension takes the other dimension's scale; a single
    point gets scale 1.
    """
    avail_w = canvas.width - 2 * canvas.padding
    avail_h = canvas.height - 2 * canvas.padding
    w = hi.x - lo.x
    h = hi.y - lo.y

    if w > 0 and h > 0:
        scale = min(avail_w / w, avail_h / h)
    elif w > 0:
        scale = avail_w / w
    elif h > 0:
        scale = avail_h / h
    else:
        scale = 1.0

    offset_x = canvas.padding - lo.x * scale
    offset_y = canvas.padding - lo.y * scale
    if center:
        offset_x += (avail_w - w * scale) / 2
        offset_y += (avail_h - h * scale) / 2
    return Transform(scale, offset_x, offset_y)


def _layer_commands(layer: Layer, t: Transform) -> list:
    color = layer.color
    commands = []
    for line in layer.lines:
        x1, y1 = t.apply(line.start)
        x2, y2 = t.apply(line.end)
        commands.append(DrawLine(x1, y1, x2, y2, t.length(line.width), color))
    for c in layer.circles:
        cx, cy = t.apply(c.center)
        commands.append(DrawCircle(cx, cy, t.length(c.radius), color))
    for poly in layer.polygons:
        commands.append(DrawPolygon([t.apply(p) for p in poly.points], color))
    for text in layer.texts:
        x, y = t.apply(text.position)
        commands.append(DrawText(x, y, t.length(text.size), text.content, color))
    return commands


def project(layers: Iterable[Layer], profile: Optional[BoardProfile] = None,
            canvas: Optional[Canvas] = None) -> Projection:
    """Scale and order layers for drawing.

    A profile with zero width or height cannot define a scale; the
    primitive bounding box is used instead.
    """
    canvas = canvas or Canvas()
    ordered = order_layers(layers)

    if profile is not None and profile.width > 0 and profile.height > 0:
        transform = fit_transform(profile.min, profile.max, canvas, center=True)
    else:
        if profile is not None:
            log.warning("Board profile has zero size, fitting to layer geometry")
        lo, hi = compute_bbox(ordered)
        transform = fit_transform(lo, hi, canvas)

    projection = Projection(transform=transform, canvas=canvas)
    if profile is not None:
        outline_color = layer_color(LayerType.OUTLINE, Side.BOTH)
        for poly in profile.outline:
            projection.outline.append(
                DrawPolygon([transform.apply(p) for p in poly.points], outline_color))

    for layer in ordered:
        projection.layers.append(LayerDrawing(
            name=layer.name, kind=layer.kind, side=layer.side, color=layer.color,
            commands=_layer_commands(layer, transform),
        ))

    log.info("Projected %d layers at scale %.4f", len(projection.layers), transform.scale)
    return projection
