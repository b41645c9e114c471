"""
graph/errors.py

Exceptions raised by the scene graph model and the scene load boundary.
"""

from __future__ import annotations

from typing import Iterable, List, Union


class GraphError(Exception):
    """Base class for dialog graph errors."""


class NotFoundError(GraphError, KeyError):
    """A card or edge id does not exist in the scene.

    Attributes:
        kind: ``"card"`` or ``"edge"``.
        ident: The id that was looked up.
    """

    def __init__(self, kind: str, ident: Union[int, str], role: str = ""):
        self.kind = kind
        self.ident = ident
        self.role = role
        prefix = f"{role} {kind}" if role else kind
        super().__init__(f"{prefix.capitalize()} with id {ident!r} not found")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class ValidationError(GraphError, ValueError):
    """A scene (or edge id) failed validation.

    Attributes:
        problems: Human-readable list of every problem found.
    """

    def __init__(self, problems: Union[str, Iterable[str]]):
        if isinstance(problems, str):
            problems = [problems]
        self.problems: List[str] = list(problems)
        if len(self.problems) == 1:
            message = self.problems[0]
        else:
            message = "Invalid scene:\n" + "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(message)
