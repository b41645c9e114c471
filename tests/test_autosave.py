"""Tests for the timer-driven autosave service."""
from __future__ import annotations

from autosave import AutosaveService
from conftest import make_card
from error_log import ErrorLog
from models import DialogScene
from scene_io import list_autosaves, load_scene


def _scene():
    return DialogScene(id="auto", name="Autosaved", cards=[make_card(1)])


class TestAutosaveService:
    def test_interval_from_settings(self, qapp, isolated_settings):
        isolated_settings.settings.autosave.interval_minutes = 0.5
        svc = AutosaveService(_scene)
        assert svc.interval_ms == 30_000
        assert not svc.is_running

    def test_start_stop(self, qapp, tmp_path):
        svc = AutosaveService(_scene, interval_minutes=1, directory=tmp_path)
        svc.start()
        assert svc.is_running
        svc.stop()
        assert not svc.is_running

    def test_trigger_writes_snapshot(self, qapp, tmp_path):
        svc = AutosaveService(_scene, interval_minutes=1, directory=tmp_path)
        path = svc.trigger()
        assert path == svc.last_path
        assert list_autosaves(tmp_path) == [path]
        assert load_scene(path).name == "Autosaved"

    def test_failure_is_recorded_not_raised(self, qapp, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory", encoding="utf-8")
        errors = ErrorLog(tmp_path / "errors")
        svc = AutosaveService(_scene, interval_minutes=1, directory=blocker / "sub", error_log=errors)
        assert svc.trigger() is None
        assert [e.details for e in errors.get_logs()] == ["Autosave"]
