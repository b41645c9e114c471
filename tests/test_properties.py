"""Tests for the card/edge property panel.

Runs headless via the offscreen Qt platform (see conftest.py).
"""
from __future__ import annotations

import pytest
from PyQt6.QtGui import QUndoStack

from canvas.scene import DialogGraphScene
from conftest import make_card, make_edge
from graph import GraphService, ValidationError
from models import DialogScene
from properties import PropertyPanel
from properties.dock import PAGE_CARD, PAGE_EDGE, PAGE_EMPTY
from routing import EdgeRouter, RouterConfig


@pytest.fixture()
def service():
    return GraphService(DialogScene(
        id="s",
        cards=[make_card(1, 0, 0, title="Hello"), make_card(2, 0, 400), make_card(3, 0, 800)],
        edges=[make_edge(1, 2, "a"), make_edge(2, 3, "b")],
    ))


@pytest.fixture()
def stack(qapp):
    return QUndoStack()


@pytest.fixture()
def panel(qapp, service, stack):
    p = PropertyPanel(service)
    p.undo_stack = stack
    return p


# ─────────────────────────────────────────────────────────
# Showing items
# ─────────────────────────────────────────────────────────


class TestShowing:
    def test_starts_empty(self, panel):
        assert panel.pages.currentIndex() == PAGE_EMPTY
        assert panel.current_card_id is None

    def test_card_fields_loaded(self, panel):
        panel.set_card(1)
        assert panel.pages.currentIndex() == PAGE_CARD
        assert panel.id_spin.value() == 1
        assert panel.title_edit.text() == "Hello"

    def test_edge_fields_loaded(self, panel):
        panel.set_edge("a")
        assert panel.pages.currentIndex() == PAGE_EDGE
        assert panel.type_combo.currentText() == "default"
        assert panel.current_edge_id == "a"

    def test_set_item_from_scene_items(self, panel, service):
        scene = DialogGraphScene(service, EdgeRouter(RouterConfig()))
        panel.set_item(scene.card_items[2])
        assert panel.current_card_id == 2
        panel.set_item(scene.edge_items["b"])
        assert panel.current_edge_id == "b"
        panel.set_item(None)
        assert panel.pages.currentIndex() == PAGE_EMPTY

    def test_refresh_clears_deleted_card(self, panel, service):
        panel.set_card(3)
        service.delete_card(3)
        panel.refresh()
        assert panel.current_card_id is None

    def test_unknown_edge_type_shown(self, panel, service):
        service.update_edge("a", type="legacy")
        panel.set_edge("a")
        assert panel.type_combo.currentText() == "legacy"


# ─────────────────────────────────────────────────────────
# Card edits
# ─────────────────────────────────────────────────────────


class TestCardEdits:
    def test_edit_fields_is_one_undo_step(self, panel, service, stack):
        panel.set_card(1)
        panel.title_edit.setText("Greeting")
        panel.character_edit.setText("Anna")
        panel.apply_card_changes()

        card = service.get_card(1)
        assert (card.title, card.character_name) == ("Greeting", "Anna")
        assert stack.count() == 1
        stack.undo()
        assert service.get_card(1).title == "Hello"

    def test_flags_apply_on_toggle(self, panel, service):
        panel.set_card(2)
        panel.narrator_check.setChecked(True)
        assert service.get_card(2).is_narrator is True

    def test_text_edit(self, panel, service):
        panel.set_card(2)
        panel.text_edit.setPlainText("Line one\nLine two")
        panel.text_edit.editingFinished.emit()
        assert service.get_card(2).text == "Line one\nLine two"

    def test_unchanged_form_pushes_nothing(self, panel, stack):
        panel.set_card(1)
        panel.apply_card_changes()
        assert stack.count() == 0

    def test_rename_to_taken_id_shifts_and_reselects(self, panel, service):
        selected = []
        panel.set_select_callback(lambda kind, ident: selected.append((kind, ident)))
        panel.set_card(3)
        panel.id_spin.setValue(1)
        panel.apply_card_changes()

        # Old 1 -> 2, old 2 -> 3, the renamed card takes 1
        assert sorted(c.id for c in service.cards) == [1, 2, 3]
        assert {(e.id, e.source, e.target) for e in service.edges} == {("a", 2, 3), ("b", 3, 1)}
        assert panel.current_card_id == 1
        assert selected == [("card", 1)]

    def test_card_removed_behind_panel(self, panel, service, stack):
        panel.set_card(3)
        service.delete_card(3)
        panel.title_edit.setText("gone")
        panel.apply_card_changes()
        assert stack.count() == 0
        assert panel.current_card_id is None


# ─────────────────────────────────────────────────────────
# Edge edits
# ─────────────────────────────────────────────────────────


class TestEdgeEdits:
    def test_label_and_type(self, panel, service, stack):
        panel.set_edge("a")
        panel.label_edit.setText("Yes")
        panel.apply_edge_changes()
        panel.type_combo.setCurrentText("conditional")

        edge = service.get_edge("a")
        assert (edge.label, edge.type) == ("Yes", "conditional")
        assert stack.count() == 2

    def test_color_and_reset(self, panel, service):
        panel.set_edge("b")
        panel.set_edge_color("#123456")
        assert service.get_edge("b").color == "#123456"
        panel.set_edge_color(None)
        assert service.get_edge("b").color is None

    def test_rejected_edit_reported(self, panel, service, stack, monkeypatch):
        errors = []
        panel.set_error_callback(lambda title, e: errors.append((title, type(e).__name__)))
        panel.set_edge("a")

        def reject(*args, **kwargs):
            raise ValidationError("rejected")

        monkeypatch.setattr(service, "update_edge", reject)
        panel.label_edit.setText("No")
        panel.apply_edge_changes()

        assert errors == [("Edit edge a", "ValidationError")]
        assert stack.count() == 0
        # Form shows the model value again
        assert panel.label_edit.text() == ""
