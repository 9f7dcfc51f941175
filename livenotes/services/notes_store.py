from __future__ import annotations

import logging
import os
import threading
from typing import Optional


class NotesStore:
    """Append-only show notes, mirrored to a single file.

    All appends go through one lock, so entries from the summarizer and the
    answer chain are totally ordered. Entries are separated by a blank line.
    """

    SEPARATOR = "\n\n"

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._entries: list[str] = []
        self._logger = logging.getLogger("livenotes.notes")
        if path:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)

    @property
    def path(self) -> Optional[str]:
        return self._path

    def append(self, entry: str) -> str:
        """Append ``entry`` and return the full notes text after the append."""
        entry = entry.strip()
        with self._lock:
            if not entry:
                return self.SEPARATOR.join(self._entries)
            prefix = self.SEPARATOR if self._needs_separator() else ""
            if self._path:
                with open(self._path, "a", encoding="utf-8") as notes_file:
                    notes_file.write(prefix + entry)
                    notes_file.flush()
                    os.fsync(notes_file.fileno())
            self._entries.append(entry)
            notes = self.SEPARATOR.join(self._entries)
        self._logger.info("Notes appended: %d chars (total entries=%d)", len(entry), len(self._entries))
        return notes

    def text(self) -> str:
        with self._lock:
            return self.SEPARATOR.join(self._entries)

    def entry_count(self) -> int:
        with self._lock:
            return len(self._entries)

    def _needs_separator(self) -> bool:
        if self._entries:
            return True
        # An earlier session may already have written to the same file.
        return bool(self._path and os.path.exists(self._path) and os.path.getsize(self._path) > 0)
