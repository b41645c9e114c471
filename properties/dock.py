"""
properties/dock.py

Property panel widget for editing the selected card or edge.

Card page: id, title, text, character name, narrator/thought flags.
Edge page: label, type and color (endpoints shown read-only).

Changes are auto-applied when fields lose focus or change, each one as a
single undoable step.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtGui import QColor, QUndoStack
from PyQt6.QtWidgets import (
    QCheckBox,
    QColorDialog,
    QComboBox,
    QFormLayout,
    QGraphicsItem,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QPushButton,
    QSpinBox,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from canvas.items import CardItem, EdgeItem
from graph.errors import GraphError
from graph.service import GraphService
from models import Card, Edge, EdgeType, edge_color
from undo_commands import apply_change

EDGE_TYPES = [
    EdgeType.DEFAULT,
    EdgeType.CONDITIONAL,
    EdgeType.ALTERNATIVE,
    EdgeType.SUCCESS,
    EdgeType.FAILURE,
    EdgeType.SPECIAL,
]

PAGE_EMPTY, PAGE_CARD, PAGE_EDGE = range(3)

MAX_CARD_ID = 999999


class _TextEdit(QPlainTextEdit):
    """Multi-line editor with an ``editingFinished`` signal on focus loss."""

    editingFinished = pyqtSignal()

    def focusOutEvent(self, event):
        super().focusOutEvent(event)
        self.editingFinished.emit()


class PropertyPanel(QWidget):
    """
    Property panel for the selected card or edge.

    The panel keeps only the id of what it shows and re-reads the model
    on ``refresh()``.  Edits go through ``apply_change`` on ``undo_stack``
    when one is set.
    """

    def __init__(self, service: GraphService, parent=None):
        super().__init__(parent)
        self.service = service
        self.undo_stack: Optional[QUndoStack] = None
        self._card_id: Optional[int] = None
        self._edge_id: Optional[str] = None
        self._applying = False

        self._on_error: Optional[Callable[[str, Exception], None]] = None
        self._on_select: Optional[Callable[[str, Any], None]] = None

        self._init_ui()
        self._connect_signals()
        self.set_item(None)

    def _init_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        self.kind_label = QLabel("-")
        font = self.kind_label.font()
        font.setBold(True)
        self.kind_label.setFont(font)
        layout.addWidget(self.kind_label)

        self.pages = QStackedWidget()
        layout.addWidget(self.pages, 1)

        # === Empty page ===
        self.pages.addWidget(QLabel("Select a card or an edge."))

        # === Card page ===
        card_page = QWidget()
        form = QFormLayout(card_page)
        self.id_spin = QSpinBox()
        self.id_spin.setRange(1, MAX_CARD_ID)
        self.id_spin.setKeyboardTracking(False)
        form.addRow("Id:", self.id_spin)
        self.title_edit = QLineEdit()
        form.addRow("Title:", self.title_edit)
        self.character_edit = QLineEdit()
        self.character_edit.setPlaceholderText("(none)")
        form.addRow("Character:", self.character_edit)
        self.narrator_check = QCheckBox("Narrator")
        self.thought_check = QCheckBox("Thought")
        flags = QWidget()
        flags_l = QHBoxLayout(flags)
        flags_l.setContentsMargins(0, 0, 0, 0)
        flags_l.addWidget(self.narrator_check)
        flags_l.addWidget(self.thought_check)
        flags_l.addStretch(1)
        form.addRow("", flags)
        self.text_edit = _TextEdit()
        form.addRow("Text:", self.text_edit)
        self.pages.addWidget(card_page)

        # === Edge page ===
        edge_page = QWidget()
        form = QFormLayout(edge_page)
        self.endpoints_label = QLabel("-")
        form.addRow("Connects:", self.endpoints_label)
        self.label_edit = QLineEdit()
        form.addRow("Label:", self.label_edit)
        self.type_combo = QComboBox()
        self.type_combo.addItems(EDGE_TYPES)
        form.addRow("Type:", self.type_combo)
        color_row = QWidget()
        color_l = QHBoxLayout(color_row)
        color_l.setContentsMargins(0, 0, 0, 0)
        self.color_preview = QLabel()
        self.color_preview.setFixedSize(24, 16)
        self.color_btn = QPushButton("Pick...")
        self.color_reset_btn = QPushButton("Default")
        color_l.addWidget(self.color_preview)
        color_l.addWidget(self.color_btn)
        color_l.addWidget(self.color_reset_btn)
        color_l.addStretch(1)
        form.addRow("Color:", color_row)
        self.pages.addWidget(edge_page)

    def _connect_signals(self):
        """Connect all widget signals to handlers."""
        self.id_spin.editingFinished.connect(self.apply_card_changes)
        self.title_edit.editingFinished.connect(self.apply_card_changes)
        self.character_edit.editingFinished.connect(self.apply_card_changes)
        self.text_edit.editingFinished.connect(self.apply_card_changes)
        self.narrator_check.toggled.connect(lambda _checked: self.apply_card_changes())
        self.thought_check.toggled.connect(lambda _checked: self.apply_card_changes())

        self.label_edit.editingFinished.connect(self.apply_edge_changes)
        self.type_combo.currentIndexChanged.connect(lambda _idx: self.apply_edge_changes())
        self.color_btn.clicked.connect(self.pick_edge_color)
        self.color_reset_btn.clicked.connect(lambda: self.set_edge_color(None))

    # ---- Callbacks ----

    def set_error_callback(self, callback: Optional[Callable[[str, Exception], None]]):
        """Set callback ``(title, error)`` for rejected edits."""
        self._on_error = callback

    def set_select_callback(self, callback: Optional[Callable[[str, Any], None]]):
        """Set callback ``(kind, id)`` asking the canvas to select an item.

        Used after a card is renamed, since selection is kept by id.
        """
        self._on_select = callback

    # ---- Showing items ----

    @property
    def current_card_id(self) -> Optional[int]:
        return self._card_id

    @property
    def current_edge_id(self) -> Optional[str]:
        return self._edge_id

    def set_item(self, item: Optional[QGraphicsItem]):
        """Set the canvas item to display/edit in the property panel."""
        if self._applying:
            return
        if isinstance(item, CardItem):
            self.set_card(item.card_id)
        elif isinstance(item, EdgeItem):
            self.set_edge(item.edge_id)
        else:
            self._clear()

    def _clear(self):
        self._card_id = None
        self._edge_id = None
        self.kind_label.setText("-")
        self.pages.setCurrentIndex(PAGE_EMPTY)

    def set_card(self, card_id: int):
        try:
            card = self.service.get_card(card_id)
        except GraphError:
            self._clear()
            return
        self._card_id, self._edge_id = card.id, None
        self._load_card(card)

    def set_edge(self, edge_id: str):
        try:
            edge = self.service.get_edge(edge_id)
        except GraphError:
            self._clear()
            return
        self._card_id, self._edge_id = None, edge.id
        self._load_edge(edge)

    def refresh(self):
        """Re-read the shown card or edge from the model (after any change)."""
        if self._applying:
            return
        if self._card_id is not None:
            self.set_card(self._card_id)
        elif self._edge_id is not None:
            self.set_edge(self._edge_id)

    def _block_signals(self, block: bool):
        for w in (self.id_spin, self.title_edit, self.character_edit, self.text_edit,
                  self.narrator_check, self.thought_check, self.label_edit, self.type_combo):
            w.blockSignals(block)

    def _load_card(self, card: Card):
        self._block_signals(True)
        self.kind_label.setText(f"Card #{card.id}")
        self.id_spin.setValue(card.id)
        self.title_edit.setText(card.title)
        self.character_edit.setText(card.character_name or "")
        self.narrator_check.setChecked(card.is_narrator)
        self.thought_check.setChecked(card.is_thought)
        if self.text_edit.toPlainText() != card.text:
            self.text_edit.setPlainText(card.text)
        self._block_signals(False)
        self.pages.setCurrentIndex(PAGE_CARD)

    def _load_edge(self, edge: Edge):
        self._block_signals(True)
        self.kind_label.setText(f"Edge {edge.id}")
        self.endpoints_label.setText(f"{edge.source} → {edge.target}")
        self.label_edit.setText(edge.label or "")
        if self.type_combo.findText(edge.type) < 0:
            self.type_combo.addItem(edge.type)
        self.type_combo.setCurrentText(edge.type)
        self._block_signals(False)
        self._set_preview(QColor(edge_color(edge)))
        self.pages.setCurrentIndex(PAGE_EDGE)

    def _set_preview(self, color: QColor):
        self.color_preview.setStyleSheet(f"background-color: {color.name()}; border: 1px solid #888;")

    # ---- Applying edits ----

    def _commit(self, text: str, fn: Callable[[], Any]) -> Optional[Any]:
        self._applying = True
        try:
            if self.undo_stack is not None:
                return apply_change(self.undo_stack, self.service, text, fn)
            return fn()
        except GraphError as e:
            if self._on_error:
                self._on_error(text, e)
            return None
        finally:
            self._applying = False

    def _card_updates(self, card: Card) -> Dict[str, Any]:
        updates: Dict[str, Any] = {}
        if self.id_spin.value() != card.id:
            updates["id"] = self.id_spin.value()
        title = self.title_edit.text().strip()
        if title != card.title:
            updates["title"] = title
        text = self.text_edit.toPlainText()
        if text != card.text:
            updates["text"] = text
        character = self.character_edit.text().strip() or None
        if character != card.character_name:
            updates["character_name"] = character
        if self.narrator_check.isChecked() != card.is_narrator:
            updates["is_narrator"] = self.narrator_check.isChecked()
        if self.thought_check.isChecked() != card.is_thought:
            updates["is_thought"] = self.thought_check.isChecked()
        return updates

    def apply_card_changes(self):
        """Apply changes from the card form to the shown card."""
        if self._applying or self._card_id is None:
            return
        try:
            card = self.service.get_card(self._card_id)
        except GraphError:
            self._clear()
            return
        updates = self._card_updates(card)
        if not updates:
            return

        updated = self._commit(f"Edit card {card.id}",
                               lambda: self.service.update_card(card.id, **updates))
        if updated is None:
            self.refresh()
            return
        self.set_card(updated.id)
        if "id" in updates and self._on_select:
            self._on_select("card", updated.id)

    def apply_edge_changes(self):
        """Apply label and type from the edge form to the shown edge."""
        if self._applying or self._edge_id is None:
            return
        try:
            edge = self.service.get_edge(self._edge_id)
        except GraphError:
            self._clear()
            return
        updates: Dict[str, Any] = {}
        label = self.label_edit.text().strip() or None
        if label != edge.label:
            updates["label"] = label
        edge_type = self.type_combo.currentText()
        if edge_type != edge.type:
            updates["type"] = edge_type
        if updates:
            self._update_edge(edge, updates)

    def set_edge_color(self, color: Optional[str]):
        """Set the shown edge's explicit color; ``None`` restores the type default."""
        if self._applying or self._edge_id is None:
            return
        try:
            edge = self.service.get_edge(self._edge_id)
        except GraphError:
            self._clear()
            return
        if color != edge.color:
            self._update_edge(edge, {"color": color})

    def _update_edge(self, edge: Edge, updates: Dict[str, Any]):
        self._commit(f"Edit edge {edge.id}",
                     lambda: self.service.update_edge(edge.id, **updates))
        self.refresh()

    def pick_edge_color(self):
        """Pick the edge color with a dialog."""
        if self._edge_id is None:
            return
        try:
            edge = self.service.get_edge(self._edge_id)
        except GraphError:
            self._clear()
            return
        c = QColorDialog.getColor(QColor(edge_color(edge)), self, "Edge Color")
        if c.isValid():
            self.set_edge_color(c.name())
