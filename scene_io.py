"""
scene_io.py

Scene import/export (YAML and JSON), file save/load, and autosave files.

This module is the load boundary: everything read from disk or pasted in
goes through ``validate_scene`` before it reaches
``GraphService.set_scene``, which does not validate on its own.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from graph.errors import ValidationError
from models import DialogScene
from schemas import schema_errors
from settings import get_settings

log = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")
AUTOSAVE_PREFIX = "autosave_"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_scene(data: Any) -> None:
    """Check a parsed scene document before it is loaded.

    Checks required fields and value types (JSON Schema), then that card
    ids are unique, edge ids are unique, and every edge endpoint names an
    existing card.

    Raises:
        ValidationError: listing every problem found.
    """
    problems = schema_errors(data)
    if problems:
        raise ValidationError(problems)

    card_ids = [c["id"] for c in data["cards"]]
    for card_id, count in sorted(Counter(card_ids).items()):
        if count > 1:
            problems.append(f"Duplicate card id {card_id} ({count} cards)")

    edge_ids = [e["id"] for e in data["edges"]]
    for edge_id, count in sorted(Counter(edge_ids).items()):
        if count > 1:
            problems.append(f"Duplicate edge id {edge_id!r} ({count} edges)")

    known = set(card_ids)
    for edge in data["edges"]:
        if edge["source"] not in known:
            problems.append(
                f"Edge {edge['id']!r} refers to a non-existent source card with id {edge['source']}")
        if edge["target"] not in known:
            problems.append(
                f"Edge {edge['id']!r} refers to a non-existent target card with id {edge['target']}")

    if problems:
        raise ValidationError(problems)


def scene_from_data(data: Any) -> DialogScene:
    """Validate a parsed document and build a ``DialogScene`` from it."""
    validate_scene(data)
    return DialogScene.from_dict(data)


def _export_data(scene: DialogScene) -> Dict[str, Any]:
    data = scene.to_dict()
    data["cards"].sort(key=lambda c: c["id"])
    return data


# ---------------------------------------------------------------------------
# YAML / JSON text
# ---------------------------------------------------------------------------

def export_yaml(scene: DialogScene) -> str:
    """Serialize a scene to YAML with cards sorted by id."""
    return yaml.safe_dump(
        _export_data(scene),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )


def import_yaml(text: str) -> DialogScene:
    """Parse and validate a YAML scene.

    Raises:
        ValidationError: malformed YAML or an invalid scene.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValidationError(f"Failed to parse YAML: {e}") from e
    return scene_from_data(data)


def export_json(scene: DialogScene) -> str:
    return json.dumps(_export_data(scene), indent=2, ensure_ascii=False)


def import_json(text: str) -> DialogScene:
    """Parse and validate a JSON scene.

    Raises:
        ValidationError: malformed JSON or an invalid scene.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Failed to parse JSON: {e}") from e
    return scene_from_data(data)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in YAML_SUFFIXES


def save_scene(scene: DialogScene, path: Union[str, Path]) -> Path:
    """Write *scene* to *path*; YAML for ``.yaml``/``.yml``, JSON otherwise."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = export_yaml(scene) if _is_yaml(path) else export_json(scene)
    path.write_text(text, encoding="utf-8")
    log.info("Saved scene %r to %s", scene.name, path)
    return path


def load_scene(path: Union[str, Path]) -> DialogScene:
    """Read and validate a scene file.

    Raises:
        OSError: the file cannot be read.
        ValidationError: the content is not a valid scene.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    scene = import_yaml(text) if _is_yaml(path) else import_json(text)
    log.info("Loaded scene %r from %s", scene.name, path)
    return scene


# ---------------------------------------------------------------------------
# Autosave files
# ---------------------------------------------------------------------------

def autosave_dir() -> Path:
    """Directory holding autosave files."""
    return get_settings().get_data_dir() / "autosaves"


def list_autosaves(directory: Optional[Union[str, Path]] = None) -> List[Path]:
    """Autosave files, newest first."""
    directory = Path(directory) if directory is not None else autosave_dir()
    if not directory.exists():
        return []
    files = [p for p in directory.iterdir()
             if p.name.startswith(AUTOSAVE_PREFIX) and _is_yaml(p)]
    return sorted(files, key=lambda p: p.name, reverse=True)


def write_autosave(scene: DialogScene, directory: Optional[Union[str, Path]] = None,
                   max_files: Optional[int] = None) -> Path:
    """Write an autosave snapshot and prune old ones.

    Args:
        scene: Scene to save.
        directory: Target directory (default: ``autosave_dir()``).
        max_files: Number of autosaves to keep (default from settings).

    Returns:
        Path of the new autosave file.
    """
    directory = Path(directory) if directory is not None else autosave_dir()
    if max_files is None:
        max_files = get_settings().settings.autosave.max_files

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    path = save_scene(scene, directory / f"{AUTOSAVE_PREFIX}{stamp}.yaml")

    for old in list_autosaves(directory)[max(max_files, 1):]:
        old.unlink()
        log.debug("Pruned autosave %s", old.name)
    return path
