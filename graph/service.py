"""
graph/service.py

The scene graph model: sole owner of a scene's cards and edges.

Invariants kept after every mutation:
  - card ids are pairwise distinct
  - every edge source/target names an existing card
  - ``next_id`` is greater than every card id in use
  - deleting a card deletes every edge touching it

All reads return deep copies and every mutation is built on copies and
committed in a single assignment, so a failed call leaves nothing behind.
"""

from __future__ import annotations

import copy
import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from models import Card, DialogScene, Edge, Position, DEFAULT_SCENE_NAME
from graph.errors import NotFoundError, ValidationError
from graph.ids import next_id_for, rewrite_edge_endpoints, shift_ids_from

log = logging.getLogger(__name__)


class GraphService:
    """CRUD over a dialog scene with id uniqueness and referential integrity.

    Args:
        scene: Initial scene.  Copied, never aliased.  A fresh empty scene
            with a random id is created when omitted.
    """

    def __init__(self, scene: Optional[DialogScene] = None):
        if scene is None:
            scene = DialogScene(id=str(uuid.uuid4()), name=DEFAULT_SCENE_NAME)
        self._scene = copy.deepcopy(scene)
        self._next_id = next_id_for(self._scene.cards)
        self._on_changed: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def set_change_callback(self, callback: Optional[Callable[[], None]]) -> None:
        """Set callback invoked after every successful mutation."""
        self._on_changed = callback

    def _commit(self, cards: List[Card], edges: List[Edge]) -> None:
        self._scene.cards = cards
        self._scene.edges = edges
        self._next_id = max(self._next_id, next_id_for(cards))
        if self._on_changed:
            self._on_changed()

    # ------------------------------------------------------------------
    # Scene
    # ------------------------------------------------------------------

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def cards(self) -> List[Card]:
        return copy.deepcopy(self._scene.cards)

    @property
    def edges(self) -> List[Edge]:
        return copy.deepcopy(self._scene.edges)

    def get_scene(self) -> DialogScene:
        """Return a snapshot of the whole scene."""
        return copy.deepcopy(self._scene)

    def set_scene(self, scene: DialogScene) -> None:
        """Replace the scene wholesale.

        No validation happens here: callers loading external data must run
        ``scene_io.validate_scene`` first.
        """
        self._scene = copy.deepcopy(scene)
        self._next_id = next_id_for(self._scene.cards)
        log.debug("Scene %r loaded: %d cards, %d edges",
                  self._scene.name, len(self._scene.cards), len(self._scene.edges))
        if self._on_changed:
            self._on_changed()

    def get_layout(self) -> Dict[str, list]:
        """Return ``{"cards": [...], "edges": [...]}`` snapshots."""
        return {"cards": self.cards, "edges": self.edges}

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def has_card(self, card_id: int) -> bool:
        return any(c.id == card_id for c in self._scene.cards)

    def _card_index(self, card_id: int) -> int:
        for idx, card in enumerate(self._scene.cards):
            if card.id == card_id:
                return idx
        raise NotFoundError("card", card_id)

    def get_card(self, card_id: int) -> Card:
        return copy.deepcopy(self._scene.cards[self._card_index(card_id)])

    def add_card(self, **fields: Any) -> Card:
        """Insert a card, filling defaults for omitted fields.

        An explicit ``id`` that collides with an existing card shifts that
        card and every higher id up by one (edges follow).  Without an
        ``id`` the card takes ``next_id``.

        Returns:
            A copy of the stored card.
        """
        explicit_id = fields.pop("id", None)
        card = Card().merged(fields)

        cards = copy.deepcopy(self._scene.cards)
        edges = copy.deepcopy(self._scene.edges)
        if explicit_id is None:
            card.id = self._next_id
        else:
            card.id = int(explicit_id)
            if any(c.id == card.id for c in cards):
                log.debug("Card id %d taken, shifting ids >= %d", card.id, card.id)
                cards, edges = shift_ids_from(cards, edges, card.id)

        cards.append(card)
        self._commit(cards, edges)
        log.debug("Added card %d", card.id)
        return copy.deepcopy(card)

    def update_card(self, card_id: int, **updates: Any) -> Card:
        """Merge *updates* into card *card_id*.

        Changing ``id`` to one held by another card shifts that id range
        first, then renames the card and rewrites its edges.

        Raises:
            NotFoundError: no card has *card_id*.
        """
        idx = self._card_index(card_id)
        new_id = updates.pop("id", None)
        new_id = None if new_id is None else int(new_id)

        cards = copy.deepcopy(self._scene.cards)
        edges = copy.deepcopy(self._scene.edges)

        if new_id is not None and new_id != card_id:
            if any(c.id == new_id for c in cards):
                cards, edges = shift_ids_from(cards, edges, new_id)
            # The shift may have moved this card; follow it by index.
            current_id = cards[idx].id
            cards[idx].id = new_id
            rewrite_edge_endpoints(edges, current_id, new_id)

        cards[idx] = cards[idx].merged(updates)
        self._commit(cards, edges)
        return copy.deepcopy(cards[idx])

    def move_card(self, card_id: int, x: float, y: float) -> Card:
        """Shorthand for ``update_card(card_id, position=Position(x, y))``."""
        return self.update_card(card_id, position=Position(x, y))

    def move_cards(self, positions: Dict[int, Any]) -> None:
        """Reposition several cards in one commit.

        Raises:
            NotFoundError: any id is missing (nothing moves).
        """
        cards = copy.deepcopy(self._scene.cards)
        for card_id, pos in positions.items():
            cards[self._card_index(card_id)].position = Position.from_value(pos)
        self._commit(cards, copy.deepcopy(self._scene.edges))

    def delete_card(self, card_id: int) -> None:
        """Remove a card and every edge that touches it.

        Raises:
            NotFoundError: no card has *card_id*.
        """
        idx = self._card_index(card_id)
        cards = [c for i, c in enumerate(self._scene.cards) if i != idx]
        edges = [e for e in self._scene.edges if e.source != card_id and e.target != card_id]
        removed = len(self._scene.edges) - len(edges)
        self._commit(copy.deepcopy(cards), copy.deepcopy(edges))
        log.debug("Deleted card %d and %d incident edges", card_id, removed)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def _edge_index(self, edge_id: str) -> int:
        edge_id = str(edge_id)
        for idx, edge in enumerate(self._scene.edges):
            if edge.id == edge_id:
                return idx
        raise NotFoundError("edge", edge_id)

    def _check_endpoints(self, source: int, target: int) -> None:
        if not self.has_card(source):
            raise NotFoundError("card", source, role="source")
        if not self.has_card(target):
            raise NotFoundError("card", target, role="target")

    def _generate_edge_id(self, source: int, target: int) -> str:
        base = f"edge_{source}_{target}_{int(time.time() * 1000)}"
        taken = {e.id for e in self._scene.edges}
        edge_id = base
        suffix = 1
        while edge_id in taken:
            edge_id = f"{base}_{suffix}"
            suffix += 1
        return edge_id

    def get_edge(self, edge_id: str) -> Edge:
        return copy.deepcopy(self._scene.edges[self._edge_index(edge_id)])

    def edges_for_card(self, card_id: int) -> List[Edge]:
        """Edges with *card_id* as source or target."""
        return [copy.deepcopy(e) for e in self._scene.edges
                if e.source == card_id or e.target == card_id]

    def add_edge(self, source: int, target: int, **options: Any) -> Edge:
        """Connect two existing cards.

        Raises:
            NotFoundError: either endpoint is missing (checked before any change).
            ValidationError: an explicit ``id`` is already used by another edge.
        """
        self._check_endpoints(source, target)

        edge_id = options.pop("id", None)
        if edge_id is None:
            edge_id = self._generate_edge_id(source, target)
        else:
            # Stored ids are strings; compare in that form
            edge_id = str(edge_id)
            if any(e.id == edge_id for e in self._scene.edges):
                raise ValidationError(f"Edge id {edge_id!r} already exists")

        edge = Edge(id=edge_id, source=source, target=target).merged(options)
        edges = copy.deepcopy(self._scene.edges)
        edges.append(edge)
        self._commit(copy.deepcopy(self._scene.cards), edges)
        log.debug("Added edge %s (%d -> %d)", edge.id, source, target)
        return copy.deepcopy(edge)

    def update_edge(self, edge_id: str, **updates: Any) -> Edge:
        """Merge *updates* into edge *edge_id*.

        Raises:
            NotFoundError: the edge, or a new source/target card, is missing.
            ValidationError: a new ``id`` collides with another edge.
        """
        idx = self._edge_index(edge_id)
        current = self._scene.edges[idx]

        if "source" in updates or "target" in updates:
            self._check_endpoints(int(updates.get("source", current.source)),
                                  int(updates.get("target", current.target)))
        new_id = updates.get("id")
        if new_id is not None:
            new_id = updates["id"] = str(new_id)
            if new_id != current.id and any(e.id == new_id for e in self._scene.edges):
                raise ValidationError(f"Edge id {new_id!r} already exists")

        edges = copy.deepcopy(self._scene.edges)
        edges[idx] = edges[idx].merged(updates)
        self._commit(copy.deepcopy(self._scene.cards), edges)
        return copy.deepcopy(edges[idx])

    def delete_edge(self, edge_id: str) -> None:
        """Remove an edge.

        Raises:
            NotFoundError: no edge has *edge_id*.
        """
        idx = self._edge_index(edge_id)
        edges = [e for i, e in enumerate(self._scene.edges) if i != idx]
        self._commit(copy.deepcopy(self._scene.cards), copy.deepcopy(edges))
