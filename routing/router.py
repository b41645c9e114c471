"""
routing/router.py

Orthogonal edge routing between card rectangles.

A route always has the shape::

    start -> (leave card vertically) -> horizontal midpoint -> above/below
    target -> (enter card vertically) -> end

so the first and last segments are vertical and the arrowhead points
straight into the top or bottom of the target card.  Other cards are
treated as obstacles and the route is nudged around them in a single
best-effort pass.  Degenerate geometry never raises and never produces
non-finite coordinates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from models import CARD_HEIGHT, CARD_WIDTH, Card, Edge
from routing.geometry import (
    Point,
    Rect,
    midpoint,
    normalize,
    sanitize_point,
    segment_intersects_rect,
)
from settings import get_settings

log = logging.getLogger(__name__)

# Distance kept between a nudged segment and the padded obstacle edge
NUDGE_CLEARANCE = 1.0


@dataclass
class RouterConfig:
    """Geometry constants for routing.  See ``settings.RoutingSettings``."""
    padding: float = 20.0
    vertical_offset: float = 30.0
    arrow_length: float = 20.0
    arrow_width: float = 10.0
    label_offset: float = 10.0
    epsilon: float = 1e-6
    card_width: float = CARD_WIDTH
    card_height: float = CARD_HEIGHT

    @classmethod
    def from_settings(cls) -> "RouterConfig":
        s = get_settings().settings
        r = s.routing
        return cls(
            padding=r.padding,
            vertical_offset=r.vertical_offset,
            arrow_length=r.arrow_length,
            arrow_width=r.arrow_width,
            label_offset=r.label_offset,
            epsilon=r.epsilon,
            card_width=s.canvas.card.width,
            card_height=s.canvas.card.height,
        )


@dataclass
class RouteResult:
    """Drawable output for one edge.

    An empty ``points`` list means there is nothing to draw (an endpoint
    card is missing).
    """
    points: List[Point] = field(default_factory=list)
    arrow: List[Point] = field(default_factory=list)
    label_anchor: Point = Point(0.0, 0.0)

    @classmethod
    def empty(cls) -> "RouteResult":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.points


# ---------------------------------------------------------------------------
# Route construction
# ---------------------------------------------------------------------------

def baseline_route(source: Rect, target: Rect, vertical_offset: float) -> List[Point]:
    """Build the six-point orthogonal route from *source* to *target*.

    The route leaves the bottom-center of the source and enters the
    top-center of the target when the target sits at or below the
    source; otherwise it leaves the top and enters the bottom.
    """
    sc = source.center
    tc = target.center
    downward = tc.y >= sc.y

    if downward:
        start = Point(sc.x, source.bottom)
        end = Point(tc.x, target.top)
        leave_y = start.y + vertical_offset
        enter_y = end.y - vertical_offset
    else:
        start = Point(sc.x, source.top)
        end = Point(tc.x, target.bottom)
        leave_y = start.y - vertical_offset
        enter_y = end.y + vertical_offset

    mid_x = (start.x + end.x) / 2
    return [
        start,
        Point(start.x, leave_y),
        Point(mid_x, leave_y),
        Point(end.x, leave_y),
        Point(end.x, enter_y),
        end,
    ]


def _shift_run(points: List[Point], i: int, axis: str, value: float) -> None:
    """Move segment i..i+1 and its collinear neighbours to *value* on *axis*.

    The first and last points are card attachment points and never move.
    """
    last = len(points) - 1
    coord = 0 if axis == "x" else 1
    ref = points[i][coord]

    lo = i
    while lo > 0 and points[lo - 1][coord] == ref:
        lo -= 1
    hi = i + 1
    while hi < last and points[hi + 1][coord] == ref:
        hi += 1

    for k in range(max(lo, 1), min(hi, last - 1) + 1):
        if axis == "x":
            points[k] = Point(value, points[k].y)
        else:
            points[k] = Point(points[k].x, value)


def _pin_terminal_legs(points: List[Point]) -> None:
    """Keep the first and last segments vertical."""
    if len(points) < 3:
        return
    points[1] = Point(points[0].x, points[1].y)
    points[-2] = Point(points[-1].x, points[-2].y)


def _add_elbows(points: List[Point]) -> List[Point]:
    """Insert a corner between consecutive points that differ in both x and y.

    Next to the pre-last point the corner keeps the earlier point's
    column so the detour runs down the nudged side; elsewhere it keeps
    the earlier point's row.
    """
    last = len(points) - 1
    out = points[:1]
    for i in range(1, last + 1):
        a, b = out[-1], points[i]
        if a.x != b.x and a.y != b.y:
            out.append(Point(a.x, b.y) if i == last - 1 else Point(b.x, a.y))
        out.append(b)
    return out


def avoid_obstacles(points: Sequence[Point], obstacles: Iterable[Rect]) -> List[Point]:
    """Nudge route segments out of the (already padded) obstacle rectangles.

    Each segment is checked once against every obstacle; this is a
    declutter pass, not a guaranteed collision-free router.  Segments
    attached to the cards themselves are left alone.

    Where re-pinning the terminal legs leaves two points off-axis, a
    corner point is inserted so the result stays orthogonal.
    """
    route = list(points)
    obstacles = list(obstacles)
    last = len(route) - 1

    for i in range(1, last - 1):
        for rect in obstacles:
            a, b = route[i], route[i + 1]
            if not segment_intersects_rect(a, b, rect):
                continue
            center = rect.center
            if a.x == b.x:
                new_x = rect.left - NUDGE_CLEARANCE if a.x < center.x else rect.right + NUDGE_CLEARANCE
                _shift_run(route, i, "x", new_x)
            elif a.y == b.y:
                new_y = rect.top - NUDGE_CLEARANCE if a.y < center.y else rect.bottom + NUDGE_CLEARANCE
                _shift_run(route, i, "y", new_y)
            else:
                continue
            _pin_terminal_legs(route)

    return _add_elbows(route)


# ---------------------------------------------------------------------------
# Arrowhead and label
# ---------------------------------------------------------------------------

def _fallback_arrow(tip: Point, length: float, width: float) -> List[Point]:
    """Small upward-pointing triangle with its tip at *tip*."""
    return [
        tip,
        Point(tip.x - width, tip.y + length),
        Point(tip.x + width, tip.y + length),
    ]


def compute_arrow(points: Sequence[Point], length: float = 20.0, width: float = 10.0,
                  eps: float = 1e-6) -> List[Point]:
    """Return the arrowhead triangle ``[tip, base1, base2]`` for a route.

    The direction runs from the second-to-last point to the last.  Routes
    that are too short or collapse to a point get a fixed upward triangle.
    """
    tip = sanitize_point(points[-1]) if points else Point(0.0, 0.0)
    fallback = _fallback_arrow(tip, length, width)
    if len(points) < 2:
        return fallback

    prev = points[-2]
    direction = normalize(points[-1][0] - prev[0], points[-1][1] - prev[1], eps)
    if direction is None:
        return fallback

    ux, uy = direction
    px, py = -uy, ux
    base1 = Point(tip.x - ux * length + px * width, tip.y - uy * length + py * width)
    base2 = Point(tip.x - ux * length - px * width, tip.y - uy * length - py * width)
    return [tip, sanitize_point(base1, fallback[1]), sanitize_point(base2, fallback[2])]


def compute_label_anchor(points: Sequence[Point], start: Point, end: Point,
                         offset: float = 10.0) -> Point:
    """Midpoint of the route's middle segment, lifted by *offset*.

    Falls back to the middle of the straight start-end line for routes
    with fewer than three points.
    """
    if len(points) < 3:
        m = midpoint(start, end)
    else:
        i = (len(points) - 1) // 2
        m = midpoint(points[i], points[i + 1])
    return Point(m.x, m.y - offset)


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------

class EdgeRouter:
    """Computes drawable routes for edges between cards.

    Args:
        config: Geometry constants.  Read from settings when omitted.
    """

    def __init__(self, config: Optional[RouterConfig] = None):
        self.config = config or RouterConfig.from_settings()

    def card_rect(self, card: Card) -> Rect:
        return Rect(card.position.x, card.position.y,
                    self.config.card_width, self.config.card_height)

    def route(self, source_id: int, target_id: int, cards: Iterable[Card]) -> RouteResult:
        """Route an edge from card *source_id* to card *target_id*.

        Every card other than the two endpoints is an obstacle.  If either
        endpoint is missing (a stale edge mid-delete) an empty result is
        returned instead of raising.
        """
        cards = list(cards)
        by_id: Dict[int, Card] = {c.id: c for c in cards}
        source = by_id.get(source_id)
        target = by_id.get(target_id)
        if source is None or target is None:
            log.debug("Route %s -> %s skipped: endpoint card missing", source_id, target_id)
            return RouteResult.empty()

        cfg = self.config
        src_rect = self.card_rect(source)
        tgt_rect = self.card_rect(target)
        obstacles = [
            self.card_rect(c).expanded(cfg.padding)
            for c in cards
            if c.id != source_id and c.id != target_id
        ]

        points = baseline_route(src_rect, tgt_rect, cfg.vertical_offset)
        points = avoid_obstacles(points, obstacles)

        points = [sanitize_point(p) for p in points]
        arrow = compute_arrow(points, cfg.arrow_length, cfg.arrow_width, cfg.epsilon)
        label = compute_label_anchor(points, points[0], points[-1], cfg.label_offset)
        return RouteResult(points=points, arrow=arrow, label_anchor=sanitize_point(label))

    def route_edge(self, edge: Edge, cards: Iterable[Card]) -> RouteResult:
        return self.route(edge.source, edge.target, cards)

    def route_all(self, edges: Iterable[Edge], cards: Iterable[Card]) -> Dict[str, RouteResult]:
        """Route every edge; returns ``{edge.id: RouteResult}``."""
        cards = list(cards)
        return {edge.id: self.route_edge(edge, cards) for edge in edges}
