"""Tests for the layered auto-layout."""
from __future__ import annotations

from conftest import make_card, make_edge
from graph.layout import assign_layers, build_digraph, layered_layout, remove_cycles
from models import Position

W, H = 500.0, 150.0


def _layout(card_ids, pairs, **kw):
    cards = [make_card(i) for i in card_ids]
    edges = [make_edge(s, t) for s, t in pairs]
    return layered_layout(cards, edges, W, H, **kw)


def _assert_no_overlap(positions):
    items = list(positions.values())
    for i, a in enumerate(items):
        for b in items[i + 1:]:
            apart_x = a.x + W <= b.x or b.x + W <= a.x
            apart_y = a.y + H <= b.y or b.y + H <= a.y
            assert apart_x or apart_y, f"{a} overlaps {b}"


# ─────────────────────────────────────────────────────────
# Graph preparation
# ─────────────────────────────────────────────────────────


class TestGraphPrep:
    def test_self_loops_and_dangling_edges_dropped(self):
        g = build_digraph([make_card(1), make_card(2)],
                          [make_edge(1, 1), make_edge(1, 9), make_edge(1, 2)])
        assert sorted(g.edges) == [(1, 2)]

    def test_cycle_removed(self):
        g = build_digraph([make_card(i) for i in (1, 2, 3)],
                          [make_edge(1, 2), make_edge(2, 3), make_edge(3, 1)])
        dag = remove_cycles(g)
        layers = assign_layers(dag)
        assert len(dag.edges) == 3
        assert layers[1] == 0

    def test_longest_path_layers(self):
        g = build_digraph([make_card(i) for i in (1, 2, 3)],
                          [make_edge(1, 2), make_edge(2, 3), make_edge(1, 3)])
        assert assign_layers(remove_cycles(g)) == {1: 0, 2: 1, 3: 2}


# ─────────────────────────────────────────────────────────
# Positions
# ─────────────────────────────────────────────────────────


class TestLayeredLayout:
    def test_empty(self):
        assert layered_layout([], []) == {}

    def test_chain_goes_down_one_column(self):
        pos = _layout([1, 2, 3], [(1, 2), (2, 3)])
        assert pos[1] == Position(0, 0)
        assert pos[2] == Position(0, H + 100)
        assert pos[3] == Position(0, 2 * (H + 100))

    def test_siblings_share_a_layer(self):
        pos = _layout([1, 2, 3], [(1, 2), (1, 3)])
        assert pos[2].y == pos[3].y == H + 100
        assert abs(pos[2].x - pos[3].x) == W + 50
        # Parent centered over its children
        assert pos[1].x == (W + 50) / 2
        _assert_no_overlap(pos)

    def test_custom_spacing(self):
        pos = _layout([1, 2], [(1, 2)], node_sep=10, rank_sep=20)
        assert pos[2].y == H + 20

    def test_every_card_placed_without_overlap(self):
        pairs = [(1, 2), (2, 3), (3, 1), (1, 4), (4, 5), (2, 5), (6, 6)]
        pos = _layout(range(1, 8), pairs)
        assert set(pos) == set(range(1, 8))
        _assert_no_overlap(pos)

    def test_deterministic(self):
        pairs = [(1, 3), (2, 3), (3, 4), (3, 5), (5, 1)]
        assert _layout([1, 2, 3, 4, 5], pairs) == _layout([1, 2, 3, 4, 5], pairs)
