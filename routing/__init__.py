"""
routing package

Orthogonal edge routing, arrowhead and label geometry.
"""

from routing.geometry import Point, Rect, sanitize_point, segment_intersects_rect, segments_intersect
from routing.router import EdgeRouter, RouteResult, RouterConfig, compute_arrow, compute_label_anchor

__all__ = [
    "Point",
    "Rect",
    "sanitize_point",
    "segment_intersects_rect",
    "segments_intersect",
    "EdgeRouter",
    "RouteResult",
    "RouterConfig",
    "compute_arrow",
    "compute_label_anchor",
]
