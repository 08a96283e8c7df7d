"""Arc tessellation.

Arcs are approximated by a fixed number of straight segments, whatever
their radius or sweep.
"""

import math
from typing import List, Optional, Tuple

from .geometry_model import Line, Point

ARC_SEGMENTS = 16


def shortest_sweep(start_angle: float, end_angle: float) -> float:
    """Signed sweep from start to end, normalised to (-pi, pi]."""
    sweep = end_angle - start_angle
    while sweep > math.pi:
        sweep -= 2 * math.pi
    while sweep <= -math.pi:
        sweep += 2 * math.pi
    return sweep


def directed_sweep(start_angle: float, end_angle: float, clockwise: bool) -> float:
    """Sweep in a fixed direction; equal angles give a full turn."""
    if clockwise:
        if end_angle >= start_angle:
            end_angle -= 2 * math.pi
    else:
        if end_angle <= start_angle:
            end_angle += 2 * math.pi
    return end_angle - start_angle


def arc_points(center: Point, radius: float, start_angle: float, sweep: float,
               segments: int = ARC_SEGMENTS) -> List[Point]:
    """segments + 1 points along the arc, start and end included."""
    points = []
    for i in range(segments + 1):
        a = start_angle + sweep * i / segments
        points.append(Point(center.x + radius * math.cos(a),
                            center.y + radius * math.sin(a)))
    return points


def _connect(points: List[Point], width: float) -> List[Line]:
    return [Line(start=a, end=b, width=width) for a, b in zip(points, points[1:])]


def tessellate(center: Point, radius: float, start_angle: float, end_angle: float,
               width: float, segments: int = ARC_SEGMENTS) -> List[Line]:
    """Approximate the shortest arc between two angles by connected Lines."""
    sweep = shortest_sweep(start_angle, end_angle)
    return _connect(arc_points(center, radius, start_angle, sweep, segments), width)


def tessellate_endpoints(start: Point, end: Point, center: Point, width: float,
                         segments: int = ARC_SEGMENTS) -> List[Line]:
    """Arc record form: start point, end point and centre."""
    radius = math.hypot(start.x - center.x, start.y - center.y)
    a_start = math.atan2(start.y - center.y, start.x - center.x)
    a_end = math.atan2(end.y - center.y, end.x - center.x)
    return tessellate(center, radius, a_start, a_end, width, segments)


def contour_arc(start: Point, end: Point, center: Point, clockwise: bool,
                segments: int = ARC_SEGMENTS) -> List[Point]:
    """Points after `start` along a directed contour arc, ending at `end`."""
    radius = math.hypot(start.x - center.x, start.y - center.y)
    a_start = math.atan2(start.y - center.y, start.x - center.x)
    a_end = math.atan2(end.y - center.y, end.x - center.x)
    sweep = directed_sweep(a_start, a_end, clockwise)
    points = arc_points(center, radius, a_start, sweep, segments)[1:]
    # Land exactly on the recorded end point
    points[-1] = Point(end.x, end.y)
    return points


def circle_through(start: Point, mid: Point, end: Point) -> Optional[Tuple[Point, float]]:
    """Centre and radius of the circle through three points; None if collinear."""
    ax, ay = start.x, start.y
    bx, by = mid.x, mid.y
    cx, cy = end.x, end.y

    D = 2.0 * (ax * (by - cy) + bx * (cy - ay) + cx * (ay - by))
    if abs(D) < 1e-12:
        return None

    ux = ((ax * ax + ay * ay) * (by - cy) +
          (bx * bx + by * by) * (cy - ay) +
          (cx * cx + cy * cy) * (ay - by)) / D
    uy = ((ax * ax + ay * ay) * (cx - bx) +
          (bx * bx + by * by) * (ax - cx) +
          (cx * cx + cy * cy) * (bx - ax)) / D
    return Point(ux, uy), math.hypot(ax - ux, ay - uy)


def tessellate_three_point(start: Point, mid: Point, end: Point, width: float,
                           segments: int = ARC_SEGMENTS) -> List[Line]:
    """Arc through start, mid and end. Collinear input gives two straight Lines."""
    circle = circle_through(start, mid, end)
    if circle is None:
        return _connect([start, mid, end], width)
    center, radius = circle

    a_start = math.atan2(start.y - center.y, start.x - center.x)
    a_mid = math.atan2(mid.y - center.y, mid.x - center.x)
    a_end = math.atan2(end.y - center.y, end.x - center.x)

    # Pick the direction whose sweep passes through the middle point
    ccw = directed_sweep(a_start, a_end, clockwise=False)
    to_mid = directed_sweep(a_start, a_mid, clockwise=False)
    sweep = ccw if to_mid <= ccw else directed_sweep(a_start, a_end, clockwise=True)
    return _connect(arc_points(center, radius, a_start, sweep, segments), width)
