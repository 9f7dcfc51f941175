"""
A listening session: one speech source, one coordinator, one notes file.

The session is the single object passed to the operator surfaces (terminal
loop, HTTP router). Operator requests are queued as ControlCommands and
executed in order by the control loop, so a Ctrl-C handler only has to put
a SHUTDOWN command on the queue. Interrupts skip the queue, since the
control thread is busy for as long as an answer is being produced.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from enum import Enum
from typing import Any, Optional

from livenotes.context import AppContext
from livenotes.services.answer_chain import AnswerChain, AnswerOutcome
from livenotes.services.event_bus import EventBus, NotesUpdated
from livenotes.services.mode_coordinator import ModeCoordinator
from livenotes.services.notes_store import NotesStore
from livenotes.services.periodic_summarizer import PeriodicSummarizer
from livenotes.services.settings import (
    parse_session_config,
    parse_speech_config,
    parse_stream_config,
)
from livenotes.services.speech import (
    AudioPlayer,
    NullSynthesizer,
    SpeechSynthesisError,
    create_synthesizer,
)
from livenotes.services.summarization import SummarizationService
from livenotes.services.transcript_stream import StreamEnded, TranscriptionStream


class ControlCommand(str, Enum):
    BEGIN_QUESTION = "begin_question"
    END_QUESTION = "end_question"
    INTERRUPT_ANSWER = "interrupt_answer"
    SUMMARIZE = "summarize"
    SHUTDOWN = "shutdown"


class ListeningSession:
    def __init__(
        self,
        coordinator: ModeCoordinator,
        stream: Optional[TranscriptionStream],
        summarizer: PeriodicSummarizer,
        notes: NotesStore,
        event_bus: EventBus,
        *,
        shutdown_event: Optional[threading.Event] = None,
    ) -> None:
        self._coordinator = coordinator
        self._stream = stream
        self._summarizer = summarizer
        self._notes = notes
        self._event_bus = event_bus
        self._shutdown_event = shutdown_event or threading.Event()
        self._logger = logging.getLogger("livenotes.session")

        self._lock = threading.Lock()
        self._commands: "queue.Queue[ControlCommand]" = queue.Queue()
        self._control_thread: Optional[threading.Thread] = None
        self._started = False
        self._stopped = False
        self._stream_error: Optional[StreamEnded] = None
        self._last_outcome: Optional[AnswerOutcome] = None

    @property
    def coordinator(self) -> ModeCoordinator:
        return self._coordinator

    @property
    def stream(self) -> Optional[TranscriptionStream]:
        return self._stream

    @property
    def notes(self) -> NotesStore:
        return self._notes

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def shutdown_event(self) -> threading.Event:
        return self._shutdown_event

    @property
    def last_outcome(self) -> Optional[AnswerOutcome]:
        return self._last_outcome

    def start(self) -> None:
        """Launch the speech source and the summarization timer.

        Raises:
            LaunchError: the speech source could not be started
        """
        with self._lock:
            if self._started:
                self._logger.warning("Session already started")
                return
            if self._stopped:
                raise RuntimeError("Session already shut down")
            if self._stream is not None:
                self._stream.start(
                    on_line=self._coordinator.update,
                    on_stream_ended=self._handle_stream_ended,
                )
            self._summarizer.start()
            self._started = True
        self._logger.info("Session started")

    def submit(self, command: ControlCommand) -> bool:
        """Queue an operator command; returns False once the session is stopped."""
        command = ControlCommand(command)
        if self._stopped:
            self._logger.warning("Command %s ignored: session stopped", command.value)
            return False
        self._commands.put(command)
        self._logger.debug("Command queued: %s", command.value)
        return True

    def request_shutdown(self) -> None:
        """Ask the control loop to shut down, cutting any answer short.

        Safe to call from a signal handler.
        """
        if self._coordinator.answer_in_flight():
            self._coordinator.interrupt_answer()
        self.submit(ControlCommand.SHUTDOWN)

    def request_interrupt(self) -> bool:
        """Cut the current question or answer short, bypassing the command queue.

        END_QUESTION runs the answer chain on the control thread, so a queued
        INTERRUPT_ANSWER would only be seen after the answer finished.
        Returns False once the session is stopped.
        """
        if self._stopped:
            self._logger.warning("Interrupt ignored: session stopped")
            return False
        return self._coordinator.interrupt_answer()

    def pending_commands(self) -> int:
        return self._commands.qsize()

    def run_control_loop(self, poll_interval: float = 0.5) -> None:
        """Execute queued commands until SHUTDOWN is processed."""
        self._logger.info("Control loop started")
        while not self._stopped:
            try:
                command = self._commands.get(timeout=poll_interval)
            except queue.Empty:
                continue
            try:
                self.execute(command)
            except Exception as exc:
                self._logger.exception("Command %s failed: %s", command.value, exc)
        self._logger.info("Control loop ended")

    def start_control_thread(self) -> None:
        if self._control_thread is not None and self._control_thread.is_alive():
            return
        self._control_thread = threading.Thread(
            target=self.run_control_loop,
            name="session-control",
            daemon=True,
        )
        self._control_thread.start()

    def execute(self, command: ControlCommand) -> Any:
        """Run one command on the calling thread."""
        command = ControlCommand(command)
        self._logger.info("Executing command: %s", command.value)
        if command is ControlCommand.BEGIN_QUESTION:
            return self._coordinator.begin_question()
        if command is ControlCommand.END_QUESTION:
            outcome = self._coordinator.end_question()
            if outcome is not None:
                self._last_outcome = outcome
            return outcome
        if command is ControlCommand.INTERRUPT_ANSWER:
            return self._coordinator.interrupt_answer()
        if command is ControlCommand.SUMMARIZE:
            return self._summarizer.run_cycle()
        return self.shutdown()

    def shutdown(self) -> str:
        """Stop ingestion, flush pending discussion into the notes, return the notes.

        Idempotent; later calls just return the notes.
        """
        with self._lock:
            if self._stopped:
                return self._notes.text()
            self._stopped = True

        self._logger.info("Session shutting down")
        self._shutdown_event.set()
        if self._stream is not None:
            try:
                self._stream.stop()
            except Exception as exc:
                self._logger.error("Speech source stop failed: %s", exc)
        self._summarizer.stop()
        try:
            self._summarizer.flush()
        except Exception as exc:
            self._logger.error("Final notes flush failed: %s", exc)
        self._coordinator.shutdown()

        control = self._control_thread
        if control is not None and control is not threading.current_thread():
            control.join(timeout=5.0)

        self._logger.info(
            "Session stopped: %d notes entries at %s", self._notes.entry_count(), self._notes.path
        )
        return self._notes.text()

    def is_stopped(self) -> bool:
        return self._stopped

    def status(self) -> dict:
        outcome = self._last_outcome
        return {
            "started": self._started,
            "stopped": self._stopped,
            "coordinator": self._coordinator.status(),
            "stream": self._stream.status() if self._stream is not None else None,
            "stream_error": str(self._stream_error) if self._stream_error else None,
            "summarizer": self._summarizer.status(),
            "notes_entries": self._notes.entry_count(),
            "notes_path": self._notes.path,
            "pending_commands": self._commands.qsize(),
            "last_answer": outcome.to_dict() if outcome is not None else None,
        }

    def _handle_stream_ended(self, error: StreamEnded) -> None:
        self._stream_error = error
        self._logger.error("Ingestion halted: %s", error)


def _log_notes_updated(event: NotesUpdated) -> None:
    logging.getLogger("livenotes.notes").info("Notes updated (%s): %s", event.source, event.entry)


def create_session(
    ctx: AppContext,
    config: dict,
    *,
    stream_command: Optional[list[str]] = None,
) -> ListeningSession:
    """Wire a session from ``config.json`` contents."""
    logger = logging.getLogger("livenotes.boot")

    session_config = parse_session_config(config.get("session", {}))
    stream_config = parse_stream_config(config.get("speech_source", {}), root_dir=os.getcwd())
    speech_config = parse_speech_config(config.get("speech_synthesis", {}))
    ctx.notes_filename = session_config.notes_filename
    ctx.ensure_dirs()

    summarization = SummarizationService(ctx.config_path)
    try:
        synthesizer = create_synthesizer(speech_config)
    except SpeechSynthesisError as exc:
        logger.warning("Speech synthesis disabled: %s", exc)
        synthesizer = NullSynthesizer()
    player = AudioPlayer(save_path=os.path.join(ctx.data_dir, "response.wav"))

    notes = NotesStore(ctx.notes_path)
    event_bus = EventBus()
    event_bus.subscribe(_log_notes_updated)

    answer_chain = AnswerChain(
        summarization,
        synthesizer,
        player,
        notes=notes,
        event_bus=event_bus,
        log_answers=session_config.log_answers,
    )
    coordinator = ModeCoordinator(answer_chain)
    shutdown_event = threading.Event()
    stream = TranscriptionStream(stream_config, command=stream_command)
    summarizer = PeriodicSummarizer(
        coordinator,
        summarization,
        notes,
        event_bus,
        interval=session_config.summarization_interval,
        stop_event=shutdown_event,
    )
    logger.info(
        "Session wired: notes=%s interval=%.0fs speech=%s",
        ctx.notes_path,
        session_config.summarization_interval,
        speech_config.provider,
    )
    return ListeningSession(
        coordinator,
        stream,
        summarizer,
        notes,
        event_bus,
        shutdown_event=shutdown_event,
    )
