"""
canvas/view.py

QGraphicsView with wheel zoom, middle-button panning and enclosed
rubber-band selection.
"""

from __future__ import annotations

from typing import List, Optional

from PyQt6.QtCore import Qt, QPoint
from PyQt6.QtGui import QPainter
from PyQt6.QtWidgets import QGraphicsItem, QGraphicsView

from canvas.scene import DialogGraphScene
from settings import get_settings


class GraphView(QGraphicsView):
    """
    Graphics view for the dialog graph.

    Selection behavior:
    - Rubber-band selection selects ONLY items fully enclosed by the rubber band
    - Ctrl + Left-click toggles selection membership without clearing others

    Navigation:
    - Mouse wheel zooms around the cursor
    - Middle button drag pans
    """

    def __init__(self, scene: DialogGraphScene, parent=None):
        super().__init__(scene, parent)
        self.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        self.setDragMode(QGraphicsView.DragMode.RubberBandDrag)
        self.setTransformationAnchor(QGraphicsView.ViewportAnchor.AnchorUnderMouse)

        self._rb_active = False
        self._pan_origin: Optional[QPoint] = None

    def wheelEvent(self, event):
        """Zoom with mouse wheel."""
        delta = event.angleDelta().y()
        if delta == 0:
            return
        zoom_factor = get_settings().settings.canvas.zoom.wheel_factor
        factor = zoom_factor if delta > 0 else 1 / zoom_factor
        self.scale(factor, factor)

    def reset_zoom(self):
        self.resetTransform()

    def fit_all(self):
        """Zoom to show every item."""
        rect = self.scene().itemsBoundingRect()
        if not rect.isNull():
            self.fitInView(rect, Qt.AspectRatioMode.KeepAspectRatio)

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.MiddleButton:
            self._pan_origin = event.position().toPoint()
            self.viewport().setCursor(Qt.CursorShape.ClosedHandCursor)
            event.accept()
            return

        # Ctrl + left click toggles selection membership without clearing others
        if event.button() == Qt.MouseButton.LeftButton and (event.modifiers() & Qt.KeyboardModifier.ControlModifier):
            item = self.itemAt(event.position().toPoint())
            while item is not None and not (item.flags() & QGraphicsItem.GraphicsItemFlag.ItemIsSelectable):
                item = item.parentItem()
            if item is not None:
                item.setSelected(not item.isSelected())
                event.accept()
                return

        if event.button() == Qt.MouseButton.LeftButton and self.dragMode() == QGraphicsView.DragMode.RubberBandDrag:
            self._rb_active = True

        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self._pan_origin is not None:
            pos = event.position().toPoint()
            delta = pos - self._pan_origin
            self._pan_origin = pos
            self.horizontalScrollBar().setValue(self.horizontalScrollBar().value() - delta.x())
            self.verticalScrollBar().setValue(self.verticalScrollBar().value() - delta.y())
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.MiddleButton and self._pan_origin is not None:
            self._pan_origin = None
            self.viewport().unsetCursor()
            event.accept()
            return

        rb = self.rubberBandRect()
        super().mouseReleaseEvent(event)

        # If rubber-band was used, enforce "fully enclosed" selection
        if self._rb_active:
            self._rb_active = False
            if rb.isNull() or rb.width() < 2 or rb.height() < 2:
                return

            scene_rect = self.mapToScene(rb).boundingRect()
            candidates = self.scene().items(scene_rect, Qt.ItemSelectionMode.IntersectsItemBoundingRect)
            fully_contained: List[QGraphicsItem] = []
            for it in candidates:
                if not (it.flags() & QGraphicsItem.GraphicsItemFlag.ItemIsSelectable):
                    continue
                if scene_rect.contains(it.sceneBoundingRect()):
                    fully_contained.append(it)

            ctrl = bool(event.modifiers() & Qt.KeyboardModifier.ControlModifier)
            if not ctrl:
                for it in self.scene().selectedItems():
                    it.setSelected(False)
            for it in fully_contained:
                it.setSelected(True)
