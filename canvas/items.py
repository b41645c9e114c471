"""
canvas/items.py

Graphics items for the dialog graph: cards and routed edges.
"""

from __future__ import annotations

from typing import Optional

from PyQt6.QtCore import Qt, QPointF, QRectF
from PyQt6.QtGui import QBrush, QColor, QPainterPath, QPen, QPolygonF
from PyQt6.QtWidgets import (
    QGraphicsItem,
    QGraphicsPathItem,
    QGraphicsPolygonItem,
    QGraphicsRectItem,
    QGraphicsSimpleTextItem,
)

from models import Card, Edge, EdgeType, edge_color
from routing.router import RouteResult

CARD_ID_KEY = 1    # QGraphicsItem.data key for card id
EDGE_ID_KEY = 2    # QGraphicsItem.data key for edge id

CARD_FILL = QColor("#FFFFFF")
NARRATOR_FILL = QColor("#F5F5DC")   # beige
THOUGHT_FILL = QColor("#E6F7FF")    # light blue
CARD_BORDER = QColor("#CCCCCC")
SELECTED_BORDER = QColor("#4B7BEC")
SELECTED_EDGE = QColor("#3498DB")

TEXT_PADDING = 10.0
TEXT_EXCERPT_CHARS = 120


def _excerpt(text: str, limit: int = TEXT_EXCERPT_CHARS) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= limit else text[:limit - 1] + "…"


class CardItem(QGraphicsRectItem):
    """Movable card rectangle showing id, title and a text excerpt."""

    # Scene-level hook for live rerouting while dragging
    on_position_changed = None

    def __init__(self, card: Card, width: float, height: float, parent=None):
        super().__init__(0, 0, width, height, parent)
        self.card_id = card.id
        self.setData(CARD_ID_KEY, card.id)
        self.setPos(QPointF(card.position.x, card.position.y))
        self.setFlags(
            QGraphicsItem.GraphicsItemFlag.ItemIsMovable
            | QGraphicsItem.GraphicsItemFlag.ItemIsSelectable
            | QGraphicsItem.GraphicsItemFlag.ItemSendsGeometryChanges
        )

        if card.is_narrator:
            fill = NARRATOR_FILL
        elif card.is_thought:
            fill = THOUGHT_FILL
        else:
            fill = CARD_FILL
        self.setBrush(QBrush(fill))
        self.setPen(QPen(CARD_BORDER, 1))

        header = f"#{card.id}  {card.title}"
        if card.character_name:
            header += f"  ({card.character_name})"
        self._title = QGraphicsSimpleTextItem(header, self)
        self._title.setPos(TEXT_PADDING, TEXT_PADDING)
        font = self._title.font()
        font.setBold(True)
        self._title.setFont(font)

        self._text = QGraphicsSimpleTextItem(_excerpt(card.text), self)
        self._text.setPos(TEXT_PADDING, TEXT_PADDING + 24)

    def scene_rect(self) -> QRectF:
        return self.mapRectToScene(self.rect())

    def itemChange(self, change, value):
        if change == QGraphicsItem.GraphicsItemChange.ItemPositionHasChanged and self.on_position_changed:
            self.on_position_changed(self)
        elif change == QGraphicsItem.GraphicsItemChange.ItemSelectedHasChanged:
            self.setPen(QPen(SELECTED_BORDER, 2) if value else QPen(CARD_BORDER, 1))
        return super().itemChange(change, value)


class EdgeItem(QGraphicsPathItem):
    """Routed edge: orthogonal path, arrowhead polygon and optional label."""

    def __init__(self, edge: Edge, parent=None):
        super().__init__(parent)
        self.edge_id = edge.id
        self.setData(EDGE_ID_KEY, edge.id)
        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIsSelectable, True)
        self.setZValue(-1)  # under cards

        self._color = QColor(edge_color(edge))
        self._dashed = edge.type == EdgeType.CONDITIONAL

        self._arrow = QGraphicsPolygonItem(self)
        self._arrow.setPen(QPen(Qt.PenStyle.NoPen))

        self._label: Optional[QGraphicsSimpleTextItem] = None
        if edge.label:
            self._label = QGraphicsSimpleTextItem(edge.label, self)

        self._apply_pen()

    def _apply_pen(self):
        color = SELECTED_EDGE if self.isSelected() else self._color
        pen = QPen(color, 3 if self.isSelected() else 2)
        if self._dashed:
            pen.setStyle(Qt.PenStyle.DashLine)
        self.setPen(pen)
        self._arrow.setBrush(QBrush(color))
        if self._label is not None:
            self._label.setBrush(QBrush(color))

    def set_route(self, route: RouteResult) -> None:
        """Show *route*; an empty route hides the item."""
        if route.is_empty:
            self.setPath(QPainterPath())
            self._arrow.setPolygon(QPolygonF())
            self.setVisible(False)
            return

        self.setVisible(True)
        path = QPainterPath(QPointF(*route.points[0]))
        for p in route.points[1:]:
            path.lineTo(QPointF(*p))
        self.setPath(path)
        self._arrow.setPolygon(QPolygonF([QPointF(*p) for p in route.arrow]))

        if self._label is not None:
            br = self._label.boundingRect()
            ax, ay = route.label_anchor
            self._label.setPos(ax - br.width() / 2, ay - br.height())

    def itemChange(self, change, value):
        if change == QGraphicsItem.GraphicsItemChange.ItemSelectedHasChanged:
            self._apply_pen()
        return super().itemChange(change, value)
