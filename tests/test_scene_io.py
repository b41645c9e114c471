"""Tests for scene import/export, load-boundary validation and autosave files."""
from __future__ import annotations

import json

import pytest
import yaml

from conftest import make_card, make_edge
from graph import ValidationError
from models import DialogScene, Position
from scene_io import (
    export_json,
    export_yaml,
    import_json,
    import_yaml,
    list_autosaves,
    load_scene,
    save_scene,
    validate_scene,
    write_autosave,
)
from schemas import schema_errors


def _scene():
    return DialogScene(
        id="scene-1",
        name="Tavern",
        cards=[
            make_card(2, 0, 400, title="Reply", text="Sure.", character_name="Bob"),
            make_card(1, 0, 0, title="Greeting", text="Hello there", is_narrator=True,
                      extras={"mood": "calm"}),
        ],
        edges=[make_edge(1, 2, "e1", label="answer", priority=1)],
        extras={"version": 3},
    )


def _valid_data():
    return {
        "id": "s",
        "name": "Scene",
        "cards": [
            {"id": 1, "type": "replica", "title": "a", "text": "", "position": {"x": 0, "y": 0}},
            {"id": 2, "type": "replica", "title": "b", "text": "", "position": {"x": 0, "y": 300}},
        ],
        "edges": [{"id": "e1", "source": 1, "target": 2}],
    }


# ─────────────────────────────────────────────────────────
# Round trips
# ─────────────────────────────────────────────────────────


class TestYaml:
    def test_round_trip(self):
        scene = _scene()
        loaded = import_yaml(export_yaml(scene))
        assert loaded.id == "scene-1"
        assert loaded.name == "Tavern"
        assert loaded.extras == {"version": 3}
        by_id = {c.id: c for c in loaded.cards}
        assert by_id[1].extras == {"mood": "calm"}
        assert by_id[1].is_narrator is True
        assert by_id[2].character_name == "Bob"
        assert by_id[2].position == Position(0, 400)
        assert loaded.edges[0].label == "answer"
        assert loaded.edges[0].priority == 1

    def test_cards_sorted_by_id(self):
        data = yaml.safe_load(export_yaml(_scene()))
        assert [c["id"] for c in data["cards"]] == [1, 2]

    def test_none_fields_omitted(self):
        data = yaml.safe_load(export_yaml(_scene()))
        assert "portrait" not in data["cards"][0]
        assert "color" not in data["edges"][0]

    def test_unicode_kept_readable(self):
        scene = _scene()
        scene.cards[0].text = "Привет"
        assert "Привет" in export_yaml(scene)

    def test_malformed_yaml(self):
        with pytest.raises(ValidationError) as exc:
            import_yaml("cards: [unclosed")
        assert "YAML" in str(exc.value)

    def test_empty_document(self):
        with pytest.raises(ValidationError):
            import_yaml("")


class TestJson:
    def test_round_trip(self):
        loaded = import_json(export_json(_scene()))
        assert {c.id for c in loaded.cards} == {1, 2}
        assert loaded.edges[0].id == "e1"

    def test_malformed_json(self):
        with pytest.raises(ValidationError) as exc:
            import_json("{not json")
        assert "JSON" in str(exc.value)


# ─────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────


class TestValidateScene:
    def test_valid(self):
        validate_scene(_valid_data())
        assert schema_errors(_valid_data()) == []

    def test_missing_required_field(self):
        data = _valid_data()
        del data["name"]
        with pytest.raises(ValidationError) as exc:
            validate_scene(data)
        assert any("name" in p for p in exc.value.problems)

    def test_wrong_card_type(self):
        data = _valid_data()
        data["cards"][0]["type"] = "choice"
        with pytest.raises(ValidationError) as exc:
            validate_scene(data)
        assert exc.value.problems[0].startswith("cards -> 0 -> type:")

    def test_string_card_id_rejected(self):
        data = _valid_data()
        data["cards"][0]["id"] = "1"
        with pytest.raises(ValidationError):
            validate_scene(data)

    def test_duplicate_card_ids(self):
        data = _valid_data()
        data["cards"][1]["id"] = 1
        data["edges"] = []
        with pytest.raises(ValidationError) as exc:
            validate_scene(data)
        assert exc.value.problems == ["Duplicate card id 1 (2 cards)"]

    def test_duplicate_edge_ids(self):
        data = _valid_data()
        data["edges"].append({"id": "e1", "source": 2, "target": 1})
        with pytest.raises(ValidationError) as exc:
            validate_scene(data)
        assert "Duplicate edge id 'e1'" in exc.value.problems[0]

    def test_dangling_edges_all_reported(self):
        data = _valid_data()
        data["edges"] = [{"id": "x", "source": 7, "target": 8}]
        with pytest.raises(ValidationError) as exc:
            validate_scene(data)
        assert len(exc.value.problems) == 2
        assert "source card with id 7" in exc.value.problems[0]
        assert "target card with id 8" in exc.value.problems[1]

    def test_not_a_mapping(self):
        with pytest.raises(ValidationError):
            validate_scene(["cards"])


# ─────────────────────────────────────────────────────────
# Files
# ─────────────────────────────────────────────────────────


class TestFiles:
    def test_save_and_load_yaml(self, tmp_path):
        path = save_scene(_scene(), tmp_path / "nested" / "scene.yaml")
        assert path.exists()
        assert load_scene(path).name == "Tavern"

    def test_save_and_load_json(self, tmp_path):
        path = save_scene(_scene(), tmp_path / "scene.json")
        assert json.loads(path.read_text(encoding="utf-8"))["name"] == "Tavern"
        assert load_scene(path).name == "Tavern"

    def test_load_invalid_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("id: s\nname: x\ncards: []\nedges:\n  - {id: e, source: 1, target: 2}\n",
                        encoding="utf-8")
        with pytest.raises(ValidationError):
            load_scene(path)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_scene(tmp_path / "missing.yaml")


class TestAutosaveFiles:
    def test_write_and_list(self, tmp_path):
        path = write_autosave(_scene(), tmp_path, max_files=5)
        assert path.name.startswith("autosave_")
        assert list_autosaves(tmp_path) == [path]
        assert load_scene(path).id == "scene-1"

    def test_prunes_oldest(self, tmp_path):
        paths = [write_autosave(_scene(), tmp_path, max_files=2) for _ in range(4)]
        remaining = list_autosaves(tmp_path)
        assert remaining == sorted(paths[-2:], key=lambda p: p.name, reverse=True)

    def test_default_directory_under_data_dir(self, isolated_settings):
        path = write_autosave(_scene())
        assert path.parent == isolated_settings.get_data_dir() / "autosaves"

    def test_list_missing_directory(self, tmp_path):
        assert list_autosaves(tmp_path / "nope") == []

    def test_ignores_other_files(self, tmp_path):
        (tmp_path / "notes.yaml").write_text("x: 1", encoding="utf-8")
        write_autosave(_scene(), tmp_path)
        assert [p.name.startswith("autosave_") for p in list_autosaves(tmp_path)] == [True]
