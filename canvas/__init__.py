"""
canvas package

PyQt6 graphics items, scene, and view for the dialog graph, plus the
edge-creation state machine they drive.
"""

from canvas.edge_creation import EdgeCreationController, EdgeCreationState
from canvas.items import CardItem, EdgeItem
from canvas.scene import DialogGraphScene
from canvas.view import GraphView

__all__ = [
    "EdgeCreationController",
    "EdgeCreationState",
    "CardItem",
    "EdgeItem",
    "DialogGraphScene",
    "GraphView",
]
