"""Geometry helpers for hit-testing and path reduction.

Every function here is pure and total over finite numeric input.
"""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from .types import Point


def distance(p: Point, q: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(p.x - q.x, p.y - q.y)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def hit_circle(p: Point, center: Point, radius: float) -> bool:
    return distance(p, center) <= radius


def hit_axis_aligned_box(p: Point, top_left: Point, width: float, height: float) -> bool:
    """Inclusive containment test for an axis-aligned box."""
    return (
        top_left.x <= p.x <= top_left.x + width
        and top_left.y <= p.y <= top_left.y + height
    )


def _cross(p: Point, a: Point, b: Point) -> float:
    return (p.x - b.x) * (a.y - b.y) - (a.x - b.x) * (p.y - b.y)


def hit_triangle(p: Point, a: Point, b: Point, c: Point) -> bool:
    """Return True if ``p`` lies inside or on the edges of triangle ``abc``.

    The point is inside when the three edge cross products do not have mixed
    signs, which works for either vertex winding.
    """
    d1 = _cross(p, a, b)
    d2 = _cross(p, b, c)
    d3 = _cross(p, c, a)
    has_negative = d1 < 0 or d2 < 0 or d3 < 0
    has_positive = d1 > 0 or d2 > 0 or d3 > 0
    return not (has_negative and has_positive)


def distance_to_segment(p: Point, a: Point, b: Point) -> float:
    """Distance from ``p`` to the closest point of segment ``[a, b]``."""
    dx = b.x - a.x
    dy = b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return distance(p, a)

    t = ((p.x - a.x) * dx + (p.y - a.y) * dy) / length_sq
    t = clamp(t, 0.0, 1.0)
    return distance(p, Point(a.x + t * dx, a.y + t * dy))


def distance_to_polyline(p: Point, points: Sequence[Point]) -> float:
    """Smallest distance from ``p`` to any segment of ``points``.

    A single point is treated as a degenerate segment; an empty sequence is
    infinitely far away.
    """
    if not points:
        return math.inf
    if len(points) == 1:
        return distance(p, points[0])
    return min(
        distance_to_segment(p, points[i], points[i + 1])
        for i in range(len(points) - 1)
    )


def simplified_indices(points: Sequence[Point], tolerance: float) -> List[int]:
    """Indices of the points kept by :func:`simplify_path`."""
    count = len(points)
    if count <= 2:
        return list(range(count))

    kept = [0]
    for i in range(1, count - 1):
        if distance_to_segment(points[i], points[i - 1], points[i + 1]) > tolerance:
            kept.append(i)
    kept.append(count - 1)
    return kept


def simplify_path(points: Sequence[Point], tolerance: float) -> List[Point]:
    """Reduce a captured trail in one pass.

    The first and last points always survive. Each interior point is kept only
    if it deviates more than ``tolerance`` from the segment joining its
    immediate neighbours in the input. Survivors are not re-tested against
    further-apart neighbours, so this approximates Douglas-Peucker and may keep
    more points than the recursive algorithm would.
    """
    return [points[i] for i in simplified_indices(points, tolerance)]


def path_bounds(points: Sequence[Point]) -> Tuple[float, float, float, float]:
    """Return ``(left, top, width, height)`` of the points, zeros when empty."""
    if not points:
        return (0.0, 0.0, 0.0, 0.0)
    xs = [pt.x for pt in points]
    ys = [pt.y for pt in points]
    left, top = min(xs), min(ys)
    return (left, top, max(xs) - left, max(ys) - top)


def midpoint(p: Point, q: Point) -> Point:
    return Point((p.x + q.x) / 2, (p.y + q.y) / 2)


def device_to_logical(
    point: Point,
    displayed_size: Tuple[float, float],
    backing_size: Tuple[float, float],
) -> Point:
    """Map a pointer position on the displayed surface to logical coordinates.

    ``displayed_size`` is the on-screen size of the surface, ``backing_size``
    its logical resolution. A collapsed display maps every point to the origin.
    """
    shown_w, shown_h = displayed_size
    backing_w, backing_h = backing_size
    if shown_w <= 0 or shown_h <= 0:
        return Point(0.0, 0.0)
    return Point(point.x * backing_w / shown_w, point.y * backing_h / shown_h)
