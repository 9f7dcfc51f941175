"""
Background summarizer that turns the discussion buffer into show notes.

Runs as a daemon thread. Every ``interval`` seconds, if no question is
active and the discussion buffer has text, the buffer is drained first and
the drained text is sent to the summarization collaborator. A failed call
costs that window of discussion but never stops the loop.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from livenotes.services.event_bus import NotesUpdated

if TYPE_CHECKING:
    from livenotes.services.event_bus import EventBus
    from livenotes.services.mode_coordinator import ModeCoordinator
    from livenotes.services.notes_store import NotesStore

_logger = logging.getLogger(__name__)


class TopicSummarizer(Protocol):
    def extract_topics_and_summarize(self, text: str) -> str:
        ...


class PeriodicSummarizer:
    def __init__(
        self,
        coordinator: "ModeCoordinator",
        summarizer: TopicSummarizer,
        notes: "NotesStore",
        event_bus: "EventBus",
        *,
        interval: float = 60.0,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        """Initialize the periodic summarizer.

        Args:
            coordinator: Owner of the discussion buffer
            summarizer: Collaborator turning transcript text into notes
            notes: Append-only notes store
            event_bus: Receives a NotesUpdated event per appended summary
            interval: Seconds between cycles
            stop_event: Shared shutdown flag; a private one is created if omitted
        """
        self._coordinator = coordinator
        self._summarizer = summarizer
        self._notes = notes
        self._event_bus = event_bus
        self._interval = interval
        self._stop_event = stop_event or threading.Event()

        self._cycle_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._cycles = 0
        self._summaries = 0
        self._failures = 0
        self._last_error: Optional[str] = None
        self._on_tick: Optional[Callable[[bool], None]] = None

    def start(self) -> None:
        """Start the timer thread."""
        if self._thread is not None and self._thread.is_alive():
            _logger.warning("PeriodicSummarizer already running")
            return

        self._thread = threading.Thread(
            target=self._timer_loop,
            name="PeriodicSummarizer",
            daemon=True,
        )
        self._thread.start()
        _logger.info("PeriodicSummarizer started (interval=%.1fs)", self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the timer thread; waits at most ``timeout`` seconds."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                _logger.warning("PeriodicSummarizer did not stop within %.1fs", timeout)
        self._thread = None
        _logger.info("PeriodicSummarizer stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def set_tick_listener(self, listener: Optional[Callable[[bool], None]]) -> None:
        """Called after every timer tick with whether a summary was appended."""
        self._on_tick = listener

    def run_cycle(self, *, force: bool = False) -> bool:
        """Run one summarization cycle now.

        Returns True if a summary was appended to the notes.
        """
        with self._cycle_lock:
            self._cycles += 1
            text = self._coordinator.snapshot_and_clear_discussion(force=force)
            if not text.strip():
                _logger.debug("PeriodicSummarizer: nothing to summarize")
                return False

            try:
                summary = self._summarizer.extract_topics_and_summarize(text)
            except Exception as exc:
                self._failures += 1
                self._last_error = str(exc)
                _logger.error(
                    "PeriodicSummarizer: unable to summarize %d chars: %s", len(text), exc
                )
                return False

            summary = (summary or "").strip()
            if not summary:
                _logger.warning("PeriodicSummarizer: empty summary for %d chars", len(text))
                return False

            notes = self._notes.append(summary)
            self._summaries += 1
            self._last_error = None

        self._event_bus.publish(NotesUpdated(notes=notes, entry=summary, source="summary"))
        _logger.info("PeriodicSummarizer: appended summary (%d chars)", len(summary))
        return True

    def flush(self) -> bool:
        """Summarize whatever is left, regardless of mode. Used at shutdown."""
        return self.run_cycle(force=True)

    def status(self) -> dict:
        return {
            "running": self.is_running(),
            "interval": self._interval,
            "cycles": self._cycles,
            "summaries": self._summaries,
            "failures": self._failures,
            "last_error": self._last_error,
        }

    def _timer_loop(self) -> None:
        _logger.info("PeriodicSummarizer timer loop started")
        while not self._stop_event.wait(self._interval):
            appended = False
            try:
                appended = self.run_cycle()
            except Exception as exc:
                self._failures += 1
                self._last_error = str(exc)
                _logger.exception("PeriodicSummarizer cycle error: %s", exc)
            if self._on_tick is not None:
                try:
                    self._on_tick(appended)
                except Exception as exc:
                    _logger.warning("PeriodicSummarizer tick listener failed: %s", exc)
        _logger.info("PeriodicSummarizer timer loop ended")
