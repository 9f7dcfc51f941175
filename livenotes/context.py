"""Application context: single source of truth for all runtime paths.

Every service receives this object instead of individual path strings.
Properties always return the *current* value, so updating ``data_dir`` at
runtime propagates to every consumer (the notes file moves with it on the
next session).
"""

from __future__ import annotations

import os
import threading


class AppContext:
    """Holds all runtime directory paths for the application."""

    def __init__(
        self,
        *,
        cwd: str,
        data_dir: str,
        config_path: str,
        notes_filename: str = "show_notes.md",
    ) -> None:
        self._lock = threading.Lock()
        self._cwd = cwd
        self._data_dir = data_dir
        self._config_path = config_path
        self._notes_filename = notes_filename

    # ── data_dir (hot-swappable) ───────────────────────────────────────

    @property
    def data_dir(self) -> str:
        with self._lock:
            return self._data_dir

    @data_dir.setter
    def data_dir(self, value: str) -> None:
        with self._lock:
            self._data_dir = value

    @property
    def notes_filename(self) -> str:
        with self._lock:
            return self._notes_filename

    @notes_filename.setter
    def notes_filename(self, value: str) -> None:
        with self._lock:
            self._notes_filename = value

    # ── Derived data paths ─────────────────────────────────────────────

    @property
    def notes_path(self) -> str:
        return os.path.join(self.data_dir, self.notes_filename)

    @property
    def config_path(self) -> str:
        return self._config_path

    # ── Logs (stay in cwd, not in data_dir) ────────────────────────────

    @property
    def logs_dir(self) -> str:
        return os.path.join(self._cwd, "logs")

    @property
    def crash_log_path(self) -> str:
        return os.path.join(self.logs_dir, "crash.log")

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        for d in (self.data_dir, self.logs_dir):
            os.makedirs(d, exist_ok=True)

    @classmethod
    def from_cwd(cls, cwd: str | None = None) -> "AppContext":
        cwd = cwd or os.getcwd()
        data_dir = os.path.join(cwd, "data")
        return cls(
            cwd=cwd,
            data_dir=data_dir,
            config_path=os.path.join(data_dir, "config.json"),
        )
