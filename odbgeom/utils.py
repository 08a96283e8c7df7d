"""Utility functions for ODB++ geometry extraction.

Number parsing, point tolerance checks, rotation and output formatting.
"""

import math

from .errors import MalformedRecord
from .geometry_model import EPSILON, Point


def fmt(value: float) -> str:
    """Format a float for output: 6 decimal places, strip trailing zeros."""
    s = f"{value:.6f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    if s == "-0":
        s = "0"
    return s


def to_float(token: str, line: str = "") -> float:
    """Strict float parse used by record parsers.

    Raises MalformedRecord so the caller can skip the whole record.
    """
    try:
        value = float(token)
    except (ValueError, TypeError):
        raise MalformedRecord(f"not a number: {token!r}", line) from None
    if math.isnan(value) or math.isinf(value):
        raise MalformedRecord(f"not a finite number: {token!r}", line)
    return value


def is_number(token: str) -> bool:
    try:
        value = float(token)
    except (ValueError, TypeError):
        return False
    return not (math.isnan(value) or math.isinf(value))


def points_close(a: Point, b: Point, tolerance: float = EPSILON) -> bool:
    return abs(a.x - b.x) <= tolerance and abs(a.y - b.y) <= tolerance


def rotate_point(x: float, y: float, angle_deg: float):
    """Rotate point (x,y) around origin by angle_deg (counter-clockwise)."""
    if abs(angle_deg) < 0.001:
        return x, y
    rad = math.radians(angle_deg)
    cos_a = math.cos(rad)
    sin_a = math.sin(rad)
    return x * cos_a - y * sin_a, x * sin_a + y * cos_a


def close_ring(points: list, tolerance: float = EPSILON):
    """Return a closed copy of `points`, or None if it cannot form a polygon.

    Consecutive repeats are dropped first. A ring needs at least three
    distinct points; the first point is appended when the ring is open.
    """
    ring = []
    for p in points:
        if not ring or not points_close(ring[-1], p, tolerance):
            ring.append(p)
    if len(ring) >= 2 and points_close(ring[0], ring[-1], tolerance):
        ring.pop()

    distinct = []
    for p in ring:
        if not any(points_close(p, q, tolerance) for q in distinct):
            distinct.append(p)
            if len(distinct) == 3:
                break
    if len(distinct) < 3:
        return None
    ring.append(Point(ring[0].x, ring[0].y))
    return ring


def strip_attributes(line: str) -> str:
    """Drop a trailing `;attr=...` section from a feature record."""
    return line.split(";", 1)[0].strip()
