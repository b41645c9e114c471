"""
error_log.py

Per-error report files for problems shown to the user.

Each ``log_error`` call writes ``err_<millis>.log`` (timestamp, message,
details, traceback) into the log directory and keeps a bounded list of
entries, newest first; reports pushed out of that list are deleted.
"""

from __future__ import annotations

import logging
import time
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from settings import get_settings

log = logging.getLogger(__name__)


@dataclass
class LogEntry:
    id: str
    timestamp: str
    message: str
    details: str
    stack: Optional[str] = None
    file_path: Optional[Path] = None


class ErrorLog:
    """Collects error reports on disk and in memory.

    Args:
        log_dir: Directory for report files (default: settings log dir).
        max_logs: Entries kept, in memory and as report files (default from
            settings). Older reports are deleted as new ones arrive.
    """

    def __init__(self, log_dir: Optional[Union[str, Path]] = None, max_logs: Optional[int] = None):
        manager = get_settings()
        self.log_dir = Path(log_dir) if log_dir is not None else manager.get_log_dir() / "errors"
        self.max_logs = max_logs if max_logs is not None else manager.settings.logging.max_error_logs
        self._logs: List[LogEntry] = []

    def log_error(self, error: BaseException, details: str = "") -> LogEntry:
        """Record *error* and return its entry."""
        timestamp = datetime.now(timezone.utc).isoformat()
        entry_id = self._new_id()
        message = str(error) or type(error).__name__
        details = details or "No additional details"
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))

        file_path: Optional[Path] = self.log_dir / f"{entry_id}.log"
        content = (
            f"Timestamp: {timestamp}\n"
            f"Error: {message}\n"
            f"Details: {details}\n"
            f"Stack: {stack or 'Stack trace unavailable'}"
        ).strip()
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
        except OSError as e:
            log.warning("Could not write error report %s: %s", file_path, e)
            file_path = None

        log.error("%s (%s)", message, details)
        entry = LogEntry(entry_id, timestamp, message, details, stack, file_path)
        self._logs.insert(0, entry)
        for dropped in self._logs[self.max_logs:]:
            self._remove_file(dropped)
        del self._logs[self.max_logs:]
        return entry

    def _remove_file(self, entry: LogEntry) -> None:
        if entry.file_path is None:
            return
        try:
            entry.file_path.unlink(missing_ok=True)
        except OSError as e:
            log.warning("Could not remove error report %s: %s", entry.file_path, e)

    def _new_id(self) -> str:
        base = f"err_{int(time.time() * 1000)}"
        taken = {e.id for e in self._logs}
        entry_id, n = base, 1
        while entry_id in taken or (self.log_dir / f"{entry_id}.log").exists():
            entry_id = f"{base}_{n}"
            n += 1
        return entry_id

    def get_logs(self) -> List[LogEntry]:
        return list(self._logs)

    def clear_logs(self) -> None:
        self._logs = []

    def delete_log(self, entry_id: str) -> None:
        """Forget an entry and remove its report file.  Unknown ids are ignored."""
        for idx, entry in enumerate(self._logs):
            if entry.id == entry_id:
                self._remove_file(entry)
                del self._logs[idx]
                return

    def get_log_file_content(self, entry_id: str) -> Optional[str]:
        for entry in self._logs:
            if entry.id == entry_id and entry.file_path is not None and entry.file_path.exists():
                return entry.file_path.read_text(encoding="utf-8")
        return None
