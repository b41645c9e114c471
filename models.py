"""
models.py

Data models and constants for the dialog graph editor.

Cards, edges and scenes are plain dataclasses.  Known fields are typed
attributes; any additional keys found in loaded data are preserved in an
``extras`` dict so they survive the file -> model -> file round-trip.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional


# ----------------------------
# Card / edge type constants
# ----------------------------

class CardType:
    """Card type discriminator values."""
    REPLICA = "replica"


class EdgeType:
    """Edge type values used by the editor."""
    DEFAULT = "default"
    CONDITIONAL = "conditional"
    ALTERNATIVE = "alternative"
    # Color categories carried over from older scene files
    SUCCESS = "success"
    FAILURE = "failure"
    SPECIAL = "special"


# Fixed card rectangle size in scene units
CARD_WIDTH = 500.0
CARD_HEIGHT = 150.0

DEFAULT_CARD_TITLE = "untitled"
DEFAULT_SCENE_NAME = "New scene"

EDGE_TYPE_COLORS: Dict[str, str] = {
    EdgeType.SUCCESS: "#4CAF50",   # green
    EdgeType.FAILURE: "#F44336",   # red
    EdgeType.SPECIAL: "#FF9800",   # orange
}
DEFAULT_EDGE_COLOR = "#607D8B"     # blue grey


def _split_known(cls, d: Dict[str, Any]):
    """Split a dict into (known field values, extras) for dataclass *cls*."""
    known_names = {f.name for f in fields(cls) if f.name != "extras"}
    known: Dict[str, Any] = {}
    extras: Dict[str, Any] = {}
    for k, v in d.items():
        if k in known_names:
            known[k] = v
        else:
            extras[k] = v
    return known, extras


def _to_dict(obj, skip_none: bool = True) -> Dict[str, Any]:
    d: Dict[str, Any] = {}
    for f in fields(obj):
        if f.name == "extras":
            continue
        value = getattr(obj, f.name)
        if skip_none and value is None:
            continue
        if hasattr(value, "to_dict"):
            value = value.to_dict()
        d[f.name] = copy.deepcopy(value)
    d.update(copy.deepcopy(obj.extras))
    return d


# ----------------------------
# Geometry records
# ----------------------------

@dataclass
class Position:
    """Top-left corner of a card in scene coordinates."""
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def from_value(cls, value: Any) -> "Position":
        """Accept a Position, a ``{"x", "y"}`` dict or an ``(x, y)`` pair."""
        if isinstance(value, Position):
            return cls(value.x, value.y)
        if isinstance(value, dict):
            return cls(float(value.get("x", 0.0)), float(value.get("y", 0.0)))
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return cls(float(value[0]), float(value[1]))
        return cls()

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


# ----------------------------
# Card / Edge / Scene
# ----------------------------

@dataclass
class Card:
    """A single dialog beat.

    ``character_name``, ``background``, ``portrait``,
    ``introduce_character`` and ``pause`` are presentation payload the
    graph model never interprets.
    """
    id: int = 0
    title: str = DEFAULT_CARD_TITLE
    text: str = ""
    type: str = CardType.REPLICA
    is_narrator: bool = False
    is_thought: bool = False
    position: Position = field(default_factory=Position)
    character_name: Optional[str] = None
    background: Optional[str] = None
    portrait: Optional[str] = None
    introduce_character: Optional[bool] = None
    pause: Optional[float] = None
    # Arbitrary extra keys preserved through round-trips
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Card":
        """Create a Card from a dict, preserving unknown keys in ``extras``."""
        if not isinstance(d, dict):
            return cls()
        known, extras = _split_known(cls, d)
        if "position" in known:
            known["position"] = Position.from_value(known["position"])
        if "id" in known:
            known["id"] = int(known["id"])
        return cls(**known, extras=extras)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict, merging extras back in."""
        return _to_dict(self)

    def merged(self, updates: Dict[str, Any]) -> "Card":
        """Return a copy of this card with *updates* applied field by field."""
        d = self.to_dict()
        for key, value in updates.items():
            if key == "extras":
                d.update(copy.deepcopy(value))
            elif isinstance(value, Position):
                d[key] = value.to_dict()
            else:
                d[key] = copy.deepcopy(value)
        return Card.from_dict(d)


@dataclass
class Edge:
    """A directed transition between two cards."""
    id: str = ""
    source: int = 0
    target: int = 0
    label: Optional[str] = None
    type: str = EdgeType.DEFAULT
    color: Optional[str] = None
    priority: Optional[int] = None
    condition: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Edge":
        if not isinstance(d, dict):
            return cls()
        known, extras = _split_known(cls, d)
        for key in ("source", "target"):
            if key in known:
                known[key] = int(known[key])
        if "id" in known:
            known["id"] = str(known["id"])
        if known.get("type") is None:
            known.pop("type", None)
        return cls(**known, extras=extras)

    def to_dict(self) -> Dict[str, Any]:
        return _to_dict(self)

    def merged(self, updates: Dict[str, Any]) -> "Edge":
        d = self.to_dict()
        for key, value in updates.items():
            if key == "extras":
                d.update(copy.deepcopy(value))
            else:
                d[key] = copy.deepcopy(value)
        return Edge.from_dict(d)


@dataclass
class DialogScene:
    """The complete graph being edited."""
    id: str = ""
    name: str = DEFAULT_SCENE_NAME
    cards: List[Card] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DialogScene":
        if not isinstance(d, dict):
            return cls()
        known, extras = _split_known(cls, d)
        known["cards"] = [Card.from_dict(c) for c in known.get("cards") or []]
        known["edges"] = [Edge.from_dict(e) for e in known.get("edges") or []]
        if "id" in known:
            known["id"] = str(known["id"])
        return cls(**known, extras=extras)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "cards": [c.to_dict() for c in self.cards],
            "edges": [e.to_dict() for e in self.edges],
        }
        d.update(copy.deepcopy(self.extras))
        return d

    def card_ids(self) -> List[int]:
        return [c.id for c in self.cards]


def edge_color(edge: Edge) -> str:
    """Return the edge's explicit color or the default for its type."""
    if edge.color:
        return edge.color
    return EDGE_TYPE_COLORS.get(edge.type, DEFAULT_EDGE_COLOR)
