"""
routing/geometry.py

Small pure geometry helpers used by the edge router.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Optional, Sequence, Tuple


class Point(NamedTuple):
    x: float
    y: float


class Rect(NamedTuple):
    """Axis-aligned rectangle given by its top-left corner and size."""
    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def expanded(self, margin: float) -> "Rect":
        """Grow the rectangle by *margin* on every side."""
        return Rect(self.x - margin, self.y - margin,
                    self.width + 2 * margin, self.height + 2 * margin)

    def sides(self) -> Tuple[Tuple[Point, Point], ...]:
        """The four sides as (start, end) pairs: top, right, bottom, left."""
        tl = Point(self.left, self.top)
        tr = Point(self.right, self.top)
        br = Point(self.right, self.bottom)
        bl = Point(self.left, self.bottom)
        return ((tl, tr), (tr, br), (br, bl), (bl, tl))


def segments_intersect(p1: Point, p2: Point, p3: Point, p4: Point, eps: float = 1e-9) -> bool:
    """Return True if segment p1-p2 crosses segment p3-p4.

    Uses the parametric line intersection formula; both interpolation
    parameters must lie in [0, 1].  Parallel (and collinear) segments
    report no intersection.
    """
    denom = (p1.x - p2.x) * (p3.y - p4.y) - (p1.y - p2.y) * (p3.x - p4.x)
    if abs(denom) < eps:
        return False

    t = ((p1.x - p3.x) * (p3.y - p4.y) - (p1.y - p3.y) * (p3.x - p4.x)) / denom
    u = -((p1.x - p2.x) * (p1.y - p3.y) - (p1.y - p2.y) * (p1.x - p3.x)) / denom
    return 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0


def segment_intersects_rect(a: Point, b: Point, rect: Rect) -> bool:
    """Return True if segment a-b crosses any side of *rect*."""
    return any(segments_intersect(a, b, s, e) for s, e in rect.sides())


def vector_length(dx: float, dy: float) -> float:
    return math.hypot(dx, dy)


def normalize(dx: float, dy: float, eps: float = 1e-6) -> Optional[Tuple[float, float]]:
    """Return the unit vector of (dx, dy), or None if it is shorter than *eps*."""
    length = vector_length(dx, dy)
    if not math.isfinite(length) or length < eps:
        return None
    return dx / length, dy / length


def is_finite_point(p: Sequence[float]) -> bool:
    return all(math.isfinite(v) for v in p)


def sanitize_point(p: Sequence[float], default: Sequence[float] = (0.0, 0.0)) -> Point:
    """Replace any non-finite component of *p* with the one from *default*.

    A non-finite *default* component falls back to 0.0.
    """
    dx = default[0] if math.isfinite(default[0]) else 0.0
    dy = default[1] if math.isfinite(default[1]) else 0.0
    x = p[0] if math.isfinite(p[0]) else dx
    y = p[1] if math.isfinite(p[1]) else dy
    return Point(float(x), float(y))


def midpoint(a: Point, b: Point) -> Point:
    return Point((a.x + b.x) / 2, (a.y + b.y) / 2)
