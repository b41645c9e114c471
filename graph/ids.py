"""
graph/ids.py

Pure helpers for card id bookkeeping.

These never mutate their inputs: they return fresh card and edge lists so
the graph service can commit a whole change in one assignment.
"""

from __future__ import annotations

import copy
from typing import Iterable, List, Tuple

from models import Card, Edge


def max_card_id(cards: Iterable[Card]) -> int:
    """Return the largest card id, or 0 for an empty list."""
    return max((c.id for c in cards), default=0)


def next_id_for(cards: Iterable[Card]) -> int:
    """Return ``max(card ids) + 1`` (1 for an empty list)."""
    return max_card_id(cards) + 1


def rewrite_edge_endpoints(edges: List[Edge], old_id: int, new_id: int) -> None:
    """Point every edge endpoint equal to *old_id* at *new_id* (in place)."""
    for edge in edges:
        if edge.source == old_id:
            edge.source = new_id
        if edge.target == old_id:
            edge.target = new_id


def shift_ids_from(
    cards: List[Card], edges: List[Edge], from_id: int
) -> Tuple[List[Card], List[Edge]]:
    """Free up *from_id* by bumping every card id >= *from_id* by one.

    Cards are processed from the highest id down so no two cards ever
    share an id during the pass.  Each bump rewrites the edges that point
    at the old id immediately, so edges keep following their cards.

    Args:
        cards: Current cards (not modified).
        edges: Current edges (not modified).
        from_id: The id that must be free afterwards.

    Returns:
        ``(cards, edges)`` copies with ids shifted, in the original order.
    """
    new_cards = copy.deepcopy(cards)
    new_edges = copy.deepcopy(edges)

    to_shift = sorted((c for c in new_cards if c.id >= from_id), key=lambda c: c.id, reverse=True)
    for card in to_shift:
        old_id = card.id
        card.id = old_id + 1
        rewrite_edge_endpoints(new_edges, old_id, card.id)

    return new_cards, new_edges
