"""Tests for undo/redo commands over GraphService."""
from __future__ import annotations

import pytest
from PyQt6.QtGui import QUndoStack

from conftest import make_card
from graph import GraphService, NotFoundError
from models import DialogScene, Position
from undo_commands import apply_change, push_move


@pytest.fixture()
def stack(qapp):
    return QUndoStack()


@pytest.fixture()
def service():
    return GraphService(DialogScene(id="s", cards=[make_card(1), make_card(2, 0, 400)]))


class TestApplyChange:
    def test_applies_immediately_once(self, stack, service):
        card = apply_change(stack, service, "Add card", lambda: service.add_card(title="new"))
        assert card.id == 3
        assert stack.count() == 1
        assert stack.undoText() == "Add card"
        # push() must not apply the change a second time
        assert len(service.cards) == 3

    def test_undo_redo(self, stack, service):
        apply_change(stack, service, "Connect", lambda: service.add_edge(1, 2))
        stack.undo()
        assert service.edges == []
        stack.redo()
        assert [(e.source, e.target) for e in service.edges] == [(1, 2)]

    def test_undo_restores_shifted_ids(self, stack, service):
        service.add_edge(1, 2, id="e")
        apply_change(stack, service, "Insert", lambda: service.add_card(id=1))
        assert sorted(c.id for c in service.cards) == [1, 2, 3]
        stack.undo()
        assert sorted(c.id for c in service.cards) == [1, 2]
        assert service.get_edge("e").target == 2

    def test_delete_cascade_undone(self, stack, service):
        service.add_edge(1, 2, id="e")
        apply_change(stack, service, "Delete", lambda: service.delete_card(2))
        stack.undo()
        assert service.get_edge("e").source == 1

    def test_failure_pushes_nothing(self, stack, service):
        with pytest.raises(NotFoundError):
            apply_change(stack, service, "Bad", lambda: service.add_edge(1, 99))
        assert stack.count() == 0

    def test_failure_midway_rolls_back_earlier_steps(self, stack, service):
        service.add_edge(1, 2, id="e")

        def delete_then_fail():
            service.delete_edge("e")
            service.delete_card(1)
            service.delete_card(99)

        with pytest.raises(NotFoundError):
            apply_change(stack, service, "Delete", delete_then_fail)
        assert stack.count() == 0
        assert sorted(c.id for c in service.cards) == [1, 2]
        assert service.get_edge("e").source == 1


class TestMoveCard:
    def test_undo_redo_move(self, stack, service):
        service.update_card(1, position=Position(50, 60))
        push_move(stack, service, 1, Position(0, 0), Position(50, 60))
        assert service.get_card(1).position == Position(50, 60)

        stack.undo()
        assert service.get_card(1).position == Position(0, 0)
        stack.redo()
        assert service.get_card(1).position == Position(50, 60)

    def test_accepts_plain_pairs(self, stack, service):
        service.move_card(2, 10, 20)
        push_move(stack, service, 2, (0, 400), (10, 20))
        stack.undo()
        assert service.get_card(2).position == Position(0, 400)

    def test_macro_of_moves(self, stack, service):
        stack.beginMacro("Move 2 cards")
        for card_id, old, new in ((1, (0, 0), (5, 5)), (2, (0, 400), (5, 405))):
            service.update_card(card_id, position=Position(*new))
            push_move(stack, service, card_id, old, new)
        stack.endMacro()

        assert stack.count() == 1
        stack.undo()
        assert service.get_card(1).position == Position(0, 0)
        assert service.get_card(2).position == Position(0, 400)
