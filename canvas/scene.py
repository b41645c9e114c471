"""
canvas/scene.py

QGraphicsScene that renders a GraphService and feeds clicks into the
edge-creation controller.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from PyQt6.QtCore import Qt, QPointF
from PyQt6.QtGui import QColor, QPainterPath, QPen
from PyQt6.QtWidgets import QGraphicsPathItem, QGraphicsScene

from canvas.edge_creation import EdgeCreationController, EdgeCreationState
from canvas.items import CardItem, EdgeItem
from debug_trace import trace
from graph.errors import NotFoundError
from graph.service import GraphService
from models import Card, DialogScene, Edge, Position
from routing.router import EdgeRouter

SCENE_MARGIN = 400.0

MoveMap = Dict[int, Tuple[Position, Position]]


class DialogGraphScene(QGraphicsScene):
    """
    Graphics scene mirroring the graph model.

    Every model change rebuilds the card and edge items and reroutes all
    edges.  Card drags reroute live and are reported on release through
    the cards-moved callback.
    """

    def __init__(self, service: GraphService, router: Optional[EdgeRouter] = None, parent=None):
        super().__init__(parent)
        self.service = service
        self.router = router or EdgeRouter()
        self.edge_creation = EdgeCreationController(service)
        self.edge_creation.set_state_changed_callback(self._on_edge_creation_state)

        self.card_items: Dict[int, CardItem] = {}
        self.edge_items: Dict[str, EdgeItem] = {}
        self._preview: Optional[QGraphicsPathItem] = None
        self._move_start_positions: Dict[int, Position] = {}

        self._on_model_changed: Optional[Callable[[], None]] = None
        self._on_cards_moved: Optional[Callable[[MoveMap], None]] = None
        self._on_card_activated: Optional[Callable[[int], None]] = None
        self._on_edge_created: Optional[Callable[[DialogScene, Edge], None]] = None
        self._on_error: Optional[Callable[[Exception], None]] = None
        self._on_edge_state: Optional[Callable[[str, Optional[int]], None]] = None

        service.set_change_callback(self._service_changed)
        self.rebuild()

    # ---- Callbacks ----

    def set_model_changed_callback(self, callback: Optional[Callable[[], None]]):
        """Set callback for after the scene rebuilt from a model change."""
        self._on_model_changed = callback

    def set_cards_moved_callback(self, callback: Optional[Callable[[MoveMap], None]]):
        """Set callback receiving ``{card_id: (old_pos, new_pos)}`` after a drag.

        The callback is responsible for committing the move to the model.
        Without one, the scene commits it directly.
        """
        self._on_cards_moved = callback

    def set_card_activated_callback(self, callback: Optional[Callable[[int], None]]):
        """Set callback for double-click on a card."""
        self._on_card_activated = callback

    def set_edge_created_callback(self, callback: Optional[Callable[[DialogScene, Edge], None]]):
        """Set callback receiving the pre-change scene and the new edge."""
        self._on_edge_created = callback

    def set_edge_state_callback(self, callback: Optional[Callable[[str, Optional[int]], None]]):
        """Set callback for edge-creation state changes ``(state, source_id)``."""
        self._on_edge_state = callback

    def set_error_callback(self, callback: Optional[Callable[[Exception], None]]):
        """Set callback for model errors raised by canvas interactions."""
        self._on_error = callback

    # ---- Model sync ----

    def _service_changed(self):
        self.rebuild()
        if self._on_model_changed:
            self._on_model_changed()

    def rebuild(self) -> None:
        """Recreate all items from the model, keeping the selection."""
        trace("rebuild called", "REBUILD")
        selected_cards = {i.card_id for i in self.card_items.values() if i.isSelected()}
        selected_edges = {i.edge_id for i in self.edge_items.values() if i.isSelected()}

        # Item swaps would report every transient selection change
        self.blockSignals(True)
        for item in list(self.card_items.values()) + list(self.edge_items.values()):
            self.removeItem(item)
        self.card_items.clear()
        self.edge_items.clear()

        cfg = self.router.config
        for card in self.service.cards:
            item = CardItem(card, cfg.card_width, cfg.card_height)
            item.on_position_changed = self._card_dragged
            self.addItem(item)
            item.setSelected(card.id in selected_cards)
            self.card_items[card.id] = item

        for edge in self.service.edges:
            item = EdgeItem(edge)
            self.addItem(item)
            item.setSelected(edge.id in selected_edges)
            self.edge_items[edge.id] = item

        self.blockSignals(False)
        self.selectionChanged.emit()

        self.reroute()
        bounds = self.itemsBoundingRect()
        self.setSceneRect(bounds.adjusted(-SCENE_MARGIN, -SCENE_MARGIN, SCENE_MARGIN, SCENE_MARGIN))
        trace(f"rebuild complete: {len(self.card_items)} cards, {len(self.edge_items)} edges", "REBUILD")

    def live_cards(self) -> List[Card]:
        """Model cards with positions taken from their (possibly dragged) items."""
        cards = self.service.cards
        for card in cards:
            item = self.card_items.get(card.id)
            if item is not None:
                card.position = Position(item.pos().x(), item.pos().y())
        return cards

    def reroute(self) -> None:
        """Recompute every edge route from the current item positions."""
        cards = self.live_cards()
        routes = self.router.route_all(self.service.edges, cards)
        for edge_id, route in routes.items():
            item = self.edge_items.get(edge_id)
            if item is not None:
                item.set_route(route)

    def _card_dragged(self, item: CardItem):
        self.reroute()

    # ---- Selection helpers ----

    def selected_card_ids(self) -> List[int]:
        return [i.card_id for i in self.selectedItems() if isinstance(i, CardItem)]

    def selected_edge_ids(self) -> List[str]:
        return [i.edge_id for i in self.selectedItems() if isinstance(i, EdgeItem)]

    def select_card(self, card_id: int) -> None:
        """Make *card_id* the only selected item."""
        self.clearSelection()
        item = self.card_items.get(card_id)
        if item is not None:
            item.setSelected(True)

    def select_edge(self, edge_id: str) -> None:
        self.clearSelection()
        item = self.edge_items.get(edge_id)
        if item is not None:
            item.setSelected(True)

    def card_at(self, pos: QPointF) -> Optional[int]:
        """Id of the top-most card under *pos*, or None."""
        for item in self.items(pos):
            while item is not None and not isinstance(item, CardItem):
                item = item.parentItem()
            if isinstance(item, CardItem):
                return item.card_id
        return None

    # ---- Edge creation ----

    def start_edge_from_selection(self) -> bool:
        """Begin an edge from the single selected card.  Returns False if none."""
        ids = self.selected_card_ids()
        if len(ids) != 1:
            return False
        self.edge_creation.start_from(ids[0])
        return True

    def _on_edge_creation_state(self, state: str, source_id: Optional[int]):
        if state == EdgeCreationState.IDLE:
            self._clear_preview()
        if self._on_edge_state:
            self._on_edge_state(state, source_id)

    def _update_preview(self, cursor: QPointF):
        source = self.card_items.get(self.edge_creation.source_id)
        if source is None:
            self._clear_preview()
            return
        rect = source.scene_rect()
        start = QPointF(rect.center().x(), rect.bottom())
        path = QPainterPath(start)
        path.lineTo(QPointF(start.x(), cursor.y()))
        path.lineTo(cursor)

        if self._preview is None:
            self._preview = QGraphicsPathItem()
            self._preview.setPen(QPen(QColor(80, 80, 255, 180), 1.5, Qt.PenStyle.DashLine))
            self._preview.setZValue(999999)  # On top of everything
            self.addItem(self._preview)
        self._preview.setPath(path)

    def _clear_preview(self):
        if self._preview is not None:
            self.removeItem(self._preview)
            self._preview = None

    # ---- Events ----

    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Escape and self.edge_creation.is_active:
            self.edge_creation.cancel()
            event.accept()
            return
        super().keyPressEvent(event)

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton and self.edge_creation.is_active:
            card_id = self.card_at(event.scenePos())
            if card_id is None:
                self.edge_creation.click_canvas()
            else:
                before = self.service.get_scene()
                try:
                    edge = self.edge_creation.click_card(card_id)
                except NotFoundError as e:
                    if self._on_error:
                        self._on_error(e)
                else:
                    if edge is not None and self._on_edge_created:
                        self._on_edge_created(before, edge)
            event.accept()
            return

        if event.button() == Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            self._move_start_positions = {
                i.card_id: Position(i.pos().x(), i.pos().y())
                for i in self.selectedItems() if isinstance(i, CardItem)
            }
            return

        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self.edge_creation.is_active:
            self._update_preview(event.scenePos())
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        super().mouseReleaseEvent(event)

        if not self._move_start_positions:
            return
        moved: MoveMap = {}
        for card_id, old_pos in self._move_start_positions.items():
            item = self.card_items.get(card_id)
            if item is None:
                continue
            new_pos = Position(item.pos().x(), item.pos().y())
            if new_pos != old_pos:
                moved[card_id] = (old_pos, new_pos)
        self._move_start_positions = {}

        if not moved:
            return
        trace(f"cards moved: {sorted(moved)}", "MOVE")
        if self._on_cards_moved:
            self._on_cards_moved(moved)
        else:
            for card_id, (_, new_pos) in moved.items():
                self.service.update_card(card_id, position=new_pos)

    def mouseDoubleClickEvent(self, event):
        card_id = self.card_at(event.scenePos())
        if card_id is not None and self._on_card_activated:
            self._on_card_activated(card_id)
            event.accept()
            return
        super().mouseDoubleClickEvent(event)
