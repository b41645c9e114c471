"""
undo_commands.py

QUndoCommand implementations for undo/redo of graph model changes.

Changes are applied first and pushed afterwards, so each command skips
its first ``redo()`` (which ``QUndoStack.push`` calls immediately).
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from PyQt6.QtGui import QUndoCommand, QUndoStack

from graph.service import GraphService
from models import DialogScene, Position

T = TypeVar("T")


class GraphChangeCommand(QUndoCommand):
    """Snapshot-based command: undo restores *before*, redo restores *after*."""

    def __init__(self, service: GraphService, text: str,
                 before: DialogScene, after: DialogScene, parent=None):
        super().__init__(parent)
        self.service = service
        self.before = before
        self.after = after
        self.setText(text)
        self._first_redo = True

    def undo(self):
        self.service.set_scene(self.before)

    def redo(self):
        if self._first_redo:
            self._first_redo = False
            return
        self.service.set_scene(self.after)


class MoveCardCommand(QUndoCommand):
    """Command for dragging a card to a new position."""

    def __init__(self, service: GraphService, card_id: int,
                 old_pos: Position, new_pos: Position, parent=None):
        super().__init__(parent)
        self.service = service
        self.card_id = card_id
        self.old_pos = Position(old_pos.x, old_pos.y)
        self.new_pos = Position(new_pos.x, new_pos.y)
        self.setText(f"Move card {card_id}")
        self._first_redo = True

    def undo(self):
        self.service.update_card(self.card_id, position=self.old_pos)

    def redo(self):
        if self._first_redo:
            self._first_redo = False
            return
        self.service.update_card(self.card_id, position=self.new_pos)


def apply_change(stack: QUndoStack, service: GraphService, text: str,
                 fn: Callable[[], T]) -> T:
    """Run a model mutation and record it on *stack*.

    If *fn* raises, the scene is restored to its state before the call
    (undoing any steps *fn* already committed), nothing is pushed and the
    exception propagates.

    Returns:
        Whatever *fn* returned.
    """
    before = service.get_scene()
    try:
        result = fn()
    except Exception:
        service.set_scene(before)
        raise
    stack.push(GraphChangeCommand(service, text, before, service.get_scene()))
    return result


def push_move(stack: QUndoStack, service: GraphService, card_id: int,
              old_pos: Any, new_pos: Any) -> None:
    """Record an already-applied card move."""
    stack.push(MoveCardCommand(service, card_id,
                               Position.from_value(old_pos), Position.from_value(new_pos)))
