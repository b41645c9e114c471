"""
graph package

Scene graph model: cards, edges, and the id bookkeeping that keeps them
consistent.
"""

from graph.errors import GraphError, NotFoundError, ValidationError
from graph.ids import shift_ids_from, next_id_for
from graph.layout import layered_layout
from graph.service import GraphService

__all__ = [
    "GraphError",
    "NotFoundError",
    "ValidationError",
    "GraphService",
    "shift_ids_from",
    "next_id_for",
    "layered_layout",
]
