"""Tests for the geometry helpers used by the router."""
from __future__ import annotations

import math

import pytest

from routing.geometry import (
    Point,
    Rect,
    is_finite_point,
    midpoint,
    normalize,
    sanitize_point,
    segment_intersects_rect,
    segments_intersect,
)


class TestRect:
    def test_edges_and_center(self):
        r = Rect(10, 20, 100, 50)
        assert (r.left, r.right, r.top, r.bottom) == (10, 110, 20, 70)
        assert r.center == Point(60, 45)

    def test_expanded(self):
        assert Rect(10, 20, 100, 50).expanded(5) == Rect(5, 15, 110, 60)

    def test_sides_form_closed_loop(self):
        sides = Rect(0, 0, 4, 2).sides()
        assert len(sides) == 4
        for (_, end), (start, _) in zip(sides, sides[1:] + sides[:1]):
            assert end == start


class TestSegmentsIntersect:
    def test_crossing(self):
        assert segments_intersect(Point(0, 0), Point(10, 10), Point(0, 10), Point(10, 0))

    def test_disjoint(self):
        assert not segments_intersect(Point(0, 0), Point(1, 1), Point(5, 0), Point(6, 1))

    def test_parallel(self):
        assert not segments_intersect(Point(0, 0), Point(10, 0), Point(0, 1), Point(10, 1))

    def test_collinear_overlap_reports_false(self):
        assert not segments_intersect(Point(0, 0), Point(10, 0), Point(5, 0), Point(15, 0))

    def test_touching_endpoint(self):
        assert segments_intersect(Point(0, 0), Point(5, 0), Point(5, -5), Point(5, 5))

    def test_beyond_segment_end(self):
        assert not segments_intersect(Point(0, 0), Point(4, 0), Point(5, -5), Point(5, 5))


class TestSegmentIntersectsRect:
    def test_crosses_through(self):
        assert segment_intersects_rect(Point(-10, 5), Point(20, 5), Rect(0, 0, 10, 10))

    def test_outside(self):
        assert not segment_intersects_rect(Point(-10, 20), Point(20, 20), Rect(0, 0, 10, 10))

    def test_fully_inside_not_reported(self):
        assert not segment_intersects_rect(Point(2, 5), Point(8, 5), Rect(0, 0, 10, 10))


class TestNormalize:
    def test_unit(self):
        ux, uy = normalize(3, 4)
        assert ux == pytest.approx(0.6)
        assert uy == pytest.approx(0.8)

    def test_zero_vector(self):
        assert normalize(0, 0) is None

    def test_below_epsilon(self):
        assert normalize(1e-9, 0, eps=1e-6) is None

    def test_non_finite(self):
        assert normalize(math.inf, 0) is None
        assert normalize(math.nan, 1) is None


class TestSanitizePoint:
    def test_finite_passthrough(self):
        assert sanitize_point((1.5, -2)) == Point(1.5, -2.0)

    def test_replaces_nan_and_inf(self):
        assert sanitize_point((math.nan, math.inf), (3, 4)) == Point(3, 4)

    def test_non_finite_default_becomes_zero(self):
        assert sanitize_point((math.nan, 1), (math.nan, 0)) == Point(0.0, 1.0)

    def test_is_finite_point(self):
        assert is_finite_point(Point(1, 2))
        assert not is_finite_point(Point(math.nan, 2))


def test_midpoint():
    assert midpoint(Point(0, 0), Point(10, -4)) == Point(5, -2)
