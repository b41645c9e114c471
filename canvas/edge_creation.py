"""
canvas/edge_creation.py

Click-driven controller that turns "connect from card S" followed by a
click on card T into a single ``GraphService.add_edge(S, T)`` call.

The controller holds no Qt state so it can be driven directly in tests;
the canvas scene forwards mouse and key events into it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from graph.service import GraphService
from models import Edge

log = logging.getLogger(__name__)


class EdgeCreationState:
    """Controller states."""
    IDLE = "idle"
    SOURCE_SELECTED = "source_selected"


class EdgeCreationController:
    """Two-state edge creation: Idle <-> SourceSelected(source_id).

    The only model mutation happens on the completing click.

    Args:
        service: Graph model receiving the ``add_edge`` call.
        edge_options: Default keyword options passed to ``add_edge``.
    """

    def __init__(self, service: GraphService, edge_options: Optional[Dict[str, Any]] = None):
        self.service = service
        self.edge_options: Dict[str, Any] = dict(edge_options or {})
        self.state = EdgeCreationState.IDLE
        self.source_id: Optional[int] = None
        self._on_state_changed: Optional[Callable[[str, Optional[int]], None]] = None

    def set_state_changed_callback(self, callback: Optional[Callable[[str, Optional[int]], None]]):
        """Set callback called with ``(state, source_id)`` on every transition."""
        self._on_state_changed = callback

    @property
    def is_active(self) -> bool:
        return self.state == EdgeCreationState.SOURCE_SELECTED

    def _set_state(self, state: str, source_id: Optional[int]) -> None:
        self.state = state
        self.source_id = source_id
        if self._on_state_changed:
            self._on_state_changed(state, source_id)

    def start_from(self, card_id: int) -> None:
        """Begin (or restart) an edge from *card_id*."""
        log.debug("Edge creation started from card %s", card_id)
        self._set_state(EdgeCreationState.SOURCE_SELECTED, card_id)

    def click_card(self, card_id: int) -> Optional[Edge]:
        """Handle a click on a card.

        Returns:
            The created edge when this click completed one, else None.

        Raises:
            NotFoundError: an endpoint vanished before completion.  The
                controller is back in Idle either way.
        """
        if not self.is_active:
            return None

        source_id = self.source_id
        if card_id == source_id:
            self.cancel()
            return None

        try:
            edge = self.service.add_edge(source_id, card_id, **self.edge_options)
        finally:
            self._set_state(EdgeCreationState.IDLE, None)
        log.debug("Edge %s created (%s -> %s)", edge.id, source_id, card_id)
        return edge

    def click_canvas(self) -> None:
        """A click on empty canvas cancels a pending edge."""
        if self.is_active:
            self.cancel()

    def cancel(self) -> None:
        """Return to Idle without touching the model."""
        if self.is_active:
            log.debug("Edge creation cancelled")
        self._set_state(EdgeCreationState.IDLE, None)
