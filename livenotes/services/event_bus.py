from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable


@dataclass(frozen=True)
class NotesUpdated:
    """Published after an entry is appended to the show notes."""
    notes: str
    entry: str
    source: str = "summary"  # "summary" or "answer"
    created_at: float = field(default_factory=time.time)


class EventBus:
    """Ordered fan-out of events to subscriber callbacks.

    Observers run synchronously on the publishing thread, in registration
    order. A failing observer is logged and skipped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observers: list[Callable[[NotesUpdated], None]] = []
        self._logger = logging.getLogger("livenotes.events")

    def subscribe(self, observer: Callable[[NotesUpdated], None]) -> None:
        with self._lock:
            self._observers.append(observer)

    def unsubscribe(self, observer: Callable[[NotesUpdated], None]) -> bool:
        with self._lock:
            try:
                self._observers.remove(observer)
            except ValueError:
                return False
            return True

    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def publish(self, event: NotesUpdated) -> int:
        """Deliver ``event`` to every observer; returns how many succeeded."""
        with self._lock:
            observers = list(self._observers)

        delivered = 0
        for observer in observers:
            try:
                observer(event)
                delivered += 1
            except Exception as exc:
                self._logger.exception(
                    "Observer %s failed: %s", getattr(observer, "__name__", observer), exc
                )
        return delivered
