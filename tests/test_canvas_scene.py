"""Tests for the graphics scene that mirrors the graph model.

Runs headless via the offscreen Qt platform (see conftest.py).
"""
from __future__ import annotations

import pytest
from PyQt6.QtCore import QPointF

from canvas.edge_creation import EdgeCreationState
from canvas.items import CardItem, EdgeItem
from canvas.scene import DialogGraphScene
from canvas.view import GraphView
from conftest import make_card, make_edge
from graph import GraphService
from models import DialogScene, Position
from routing import EdgeRouter, RouterConfig


@pytest.fixture()
def service():
    return GraphService(DialogScene(
        id="s",
        cards=[make_card(1, 0, 0), make_card(2, 0, 400)],
        edges=[make_edge(1, 2, "e")],
    ))


@pytest.fixture()
def scene(qapp, service):
    return DialogGraphScene(service, EdgeRouter(RouterConfig()))


class TestRebuild:
    def test_items_mirror_model(self, scene):
        assert set(scene.card_items) == {1, 2}
        assert set(scene.edge_items) == {"e"}
        assert isinstance(scene.card_items[1], CardItem)
        assert isinstance(scene.edge_items["e"], EdgeItem)

    def test_model_change_rebuilds(self, scene, service):
        service.add_card(position=Position(600, 0))
        assert set(scene.card_items) == {1, 2, 3}

    def test_delete_cascade_removes_edge_item(self, scene, service):
        service.delete_card(2)
        assert scene.edge_items == {}

    def test_model_changed_callback(self, scene, service):
        calls = []
        scene.set_model_changed_callback(lambda: calls.append(1))
        service.move_card(1, 10, 10)
        assert calls == [1]

    def test_rebuild_reports_selection_once(self, scene, service):
        scene.card_items[2].setSelected(True)
        seen = []
        scene.selectionChanged.connect(lambda: seen.append(scene.selected_card_ids()))
        service.add_card()
        assert seen == [[2]]

    def test_selection_survives_rebuild(self, scene, service):
        scene.card_items[2].setSelected(True)
        service.add_card()
        assert scene.selected_card_ids() == [2]

    def test_edge_path_follows_route(self, scene):
        path = scene.edge_items["e"].path()
        assert path.elementAt(0).x == pytest.approx(250)
        assert path.elementAt(0).y == pytest.approx(150)
        last = path.elementAt(path.elementCount() - 1)
        assert (last.x, last.y) == pytest.approx((250, 400))

    def test_stale_edge_hidden(self, qapp):
        svc = GraphService(DialogScene(id="s", cards=[make_card(1)], edges=[make_edge(1, 9, "stale")]))
        scene = DialogGraphScene(svc, EdgeRouter(RouterConfig()))
        assert not scene.edge_items["stale"].isVisible()


class TestDragging:
    def test_dragging_reroutes_live(self, scene, service):
        scene.card_items[2].setPos(QPointF(800, 400))
        path = scene.edge_items["e"].path()
        last = path.elementAt(path.elementCount() - 1)
        assert last.x == pytest.approx(1050)
        # The model is untouched until the drag is committed
        assert service.get_card(2).position == Position(0, 400)

    def test_live_cards_use_item_positions(self, scene):
        scene.card_items[1].setPos(QPointF(30, 40))
        by_id = {c.id: c for c in scene.live_cards()}
        assert by_id[1].position == Position(30, 40)


class TestEdgeCreation:
    def test_start_requires_single_selection(self, scene):
        assert not scene.start_edge_from_selection()
        scene.card_items[1].setSelected(True)
        assert scene.start_edge_from_selection()
        assert scene.edge_creation.state == EdgeCreationState.SOURCE_SELECTED
        assert scene.edge_creation.source_id == 1

    def test_state_callback_forwarded(self, scene):
        seen = []
        scene.set_edge_state_callback(lambda state, src: seen.append(state))
        scene.edge_creation.start_from(1)
        scene.edge_creation.cancel()
        assert seen == [EdgeCreationState.SOURCE_SELECTED, EdgeCreationState.IDLE]

    def test_select_card_replaces_selection(self, scene):
        scene.card_items[1].setSelected(True)
        scene.select_card(2)
        assert scene.selected_card_ids() == [2]
        scene.select_edge("e")
        assert scene.selected_card_ids() == []
        assert scene.selected_edge_ids() == ["e"]

    def test_card_at(self, scene):
        assert scene.card_at(QPointF(100, 450)) == 2
        assert scene.card_at(QPointF(-500, -500)) is None


class TestGraphView:
    def test_fit_and_reset(self, scene):
        view = GraphView(scene)
        view.fit_all()
        view.reset_zoom()
        assert view.transform().m11() == pytest.approx(1.0)
