"""Shared fixtures: isolated settings and a headless QApplication."""
from __future__ import annotations

import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from models import Card, Edge, Position
from settings import SettingsManager, set_settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path):
    """Point the global settings at a throwaway directory for every test."""
    manager = SettingsManager(config_dir=tmp_path / "config")
    set_settings(manager)
    yield manager
    set_settings(None)


@pytest.fixture(scope="session")
def qapp():
    """Provide a single QApplication for the entire test session."""
    from PyQt6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


def make_card(card_id: int, x: float = 0.0, y: float = 0.0, **kw) -> Card:
    return Card(id=card_id, position=Position(x, y), **kw)


def make_edge(source: int, target: int, edge_id: str = None, **kw) -> Edge:
    return Edge(id=edge_id or f"e{source}_{target}", source=source, target=target, **kw)
