"""
autosave.py

Periodic autosave of the current scene driven by a QTimer.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Union

import yaml
from PyQt6.QtCore import QObject, QTimer

from error_log import ErrorLog
from models import DialogScene
from scene_io import write_autosave
from settings import get_settings

log = logging.getLogger(__name__)


class AutosaveService(QObject):
    """Writes ``get_scene()`` to the autosave directory every interval.

    Failures are logged and recorded in *error_log*; they never propagate
    into the Qt event loop.

    Args:
        get_scene: Callable returning the scene snapshot to save.
        interval_minutes: Period (default from settings).
        directory: Autosave directory (default ``scene_io.autosave_dir()``).
        error_log: Where failures are recorded.
    """

    def __init__(self, get_scene: Callable[[], DialogScene],
                 interval_minutes: Optional[float] = None,
                 directory: Optional[Union[str, Path]] = None,
                 error_log: Optional[ErrorLog] = None, parent=None):
        super().__init__(parent)
        if interval_minutes is None:
            interval_minutes = get_settings().settings.autosave.interval_minutes
        self._get_scene = get_scene
        self._directory = directory
        self._error_log = error_log
        self.last_path: Optional[Path] = None
        self._timer = QTimer(self)
        self._timer.setInterval(max(1, int(interval_minutes * 60 * 1000)))
        self._timer.timeout.connect(self.trigger)

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    @property
    def is_running(self) -> bool:
        return self._timer.isActive()

    def start(self) -> None:
        """(Re)start the timer."""
        self._timer.stop()
        self._timer.start()
        log.info("Autosave every %.1f min", self._timer.interval() / 60000)

    def stop(self) -> None:
        self._timer.stop()

    def trigger(self) -> Optional[Path]:
        """Save now.  Returns the written path, or None on failure."""
        try:
            self.last_path = write_autosave(self._get_scene(), self._directory)
        except (OSError, ValueError, yaml.YAMLError) as e:
            log.warning("Autosave failed: %s", e)
            if self._error_log is not None:
                self._error_log.log_error(e, "Autosave")
            return None
        log.debug("Autosaved to %s", self.last_path)
        return self.last_path
