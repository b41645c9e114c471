"""
schemas/__init__.py

JSON Schema definition and structural validation for dialog scene files.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator

# Schema file paths
SCHEMA_DIR = os.path.dirname(os.path.abspath(__file__))
SCENE_SCHEMA_PATH = os.path.join(SCHEMA_DIR, "scene_schema.json")

# Cached schema / validator
_scene_schema: Optional[Dict] = None
_scene_validator: Optional[Draft202012Validator] = None


def get_scene_schema() -> Dict:
    """Load and return the scene schema."""
    global _scene_schema
    if _scene_schema is None:
        with open(SCENE_SCHEMA_PATH, "r", encoding="utf-8") as f:
            _scene_schema = json.load(f)
    return _scene_schema


def _get_validator() -> Draft202012Validator:
    global _scene_validator
    if _scene_validator is None:
        _scene_validator = Draft202012Validator(get_scene_schema())
    return _scene_validator


def schema_errors(data: Any) -> List[str]:
    """Validate *data* against the scene schema.

    Args:
        data: Parsed scene document (usually a dict).

    Returns:
        One ``"path: message"`` string per violation, sorted by path;
        empty when the document is structurally valid.
    """
    errors = sorted(_get_validator().iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])

    messages = []
    for error in errors:
        path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        messages.append(f"{path}: {error.message}")
    return messages
