"""
Routing of transcript lines between the discussion and question buffers.

ModeCoordinator is the only owner of the current mode and both buffers.
Every mutation happens under one lock, so the reader thread, the
summarizer timer and operator transitions never interleave at a finer grain
than one logical operation. The answer chain runs with the lock released,
so lines keep flowing while an answer is generated.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from livenotes.services.answer_chain import FALLBACK_ANSWER, AnswerOutcome
from livenotes.services.transcript_stream import TranscriptLine

if TYPE_CHECKING:
    from livenotes.services.answer_chain import AnswerChain


class Mode(str, Enum):
    LISTENING = "listening"
    ANSWERING_QUESTION = "answering_question"
    STOPPED = "stopped"


class ModeCoordinator:
    """Owns mode, discussion buffer and question buffer.

    State machine:
    - LISTENING --begin_question--> ANSWERING_QUESTION
    - ANSWERING_QUESTION --end_question (runs answer chain)--> LISTENING
    - ANSWERING_QUESTION --interrupt_answer (no chain)--> LISTENING
    - any --shutdown--> STOPPED (terminal)

    Each begin_question starts a new question cycle. An answer chain only
    returns the coordinator to LISTENING if its cycle is still current, so an
    interrupt or a newer question always wins over a slow answer.
    """

    def __init__(self, answer_chain: Optional["AnswerChain"] = None) -> None:
        self._answer_chain = answer_chain
        self._logger = logging.getLogger("livenotes.coordinator")

        self._lock = threading.Lock()
        self._mode = Mode.LISTENING
        self._discussion: list[str] = []
        self._question: list[str] = []
        self._cycle = 0
        self._answering_cycle: Optional[int] = None
        self._answers_started = 0
        self._lines_routed = {"discussion": 0, "question": 0, "dropped": 0}

    @property
    def mode(self) -> Mode:
        with self._lock:
            return self._mode

    def update(self, line: Union[TranscriptLine, str]) -> None:
        text = line.text if isinstance(line, TranscriptLine) else str(line)
        with self._lock:
            if self._mode is Mode.LISTENING:
                self._discussion.append(text)
                self._lines_routed["discussion"] += 1
            elif self._mode is Mode.ANSWERING_QUESTION:
                self._question.append(text)
                self._lines_routed["question"] += 1
            else:
                self._lines_routed["dropped"] += 1
                self._logger.debug("Line dropped after shutdown: %s", text)

    def begin_question(self) -> bool:
        with self._lock:
            if self._mode is Mode.STOPPED:
                self._logger.warning("begin_question ignored: coordinator stopped")
                return False
            restarted = self._mode is Mode.ANSWERING_QUESTION
            self._mode = Mode.ANSWERING_QUESTION
            self._question.clear()
            self._cycle += 1
            cycle = self._cycle
        self._logger.info("Question %s (cycle=%d)", "restarted" if restarted else "started", cycle)
        return True

    def end_question(self) -> Optional[AnswerOutcome]:
        with self._lock:
            if self._mode is not Mode.ANSWERING_QUESTION:
                self._logger.warning("end_question ignored: mode=%s", self._mode.value)
                return None
            if self._answering_cycle == self._cycle:
                self._logger.warning("end_question ignored: cycle %d already answering", self._cycle)
                return None
            cycle = self._cycle
            question = "\n".join(self._question)
            self._question.clear()
            self._answering_cycle = cycle
            self._answers_started += 1

        self._logger.info("Question ended (cycle=%d, %d chars), answering", cycle, len(question))
        try:
            outcome = self._run_answer_chain(question, cycle)
        finally:
            with self._lock:
                if self._answering_cycle == cycle:
                    self._answering_cycle = None
                if self._cycle == cycle and self._mode is Mode.ANSWERING_QUESTION:
                    self._mode = Mode.LISTENING
                    # Lines captured while answering are the answer being spoken.
                    self._question.clear()
        self._logger.info("Answer finished (cycle=%d): %s", cycle, outcome.answer)
        return outcome

    def interrupt_answer(self) -> bool:
        with self._lock:
            if self._mode is Mode.STOPPED:
                self._logger.warning("interrupt_answer ignored: coordinator stopped")
                return False
            was_answering = self._mode is Mode.ANSWERING_QUESTION
            self._mode = Mode.LISTENING
            self._question.clear()
            self._cycle += 1
            in_flight = self._answering_cycle is not None
        if in_flight and self._answer_chain is not None:
            self._answer_chain.cancel()
        self._logger.info("Answer interrupted (was_answering=%s, in_flight=%s)", was_answering, in_flight)
        return was_answering

    def snapshot_and_clear_discussion(self, *, force: bool = False) -> str:
        """Atomically take the discussion buffer and reset it.

        Returns an empty string while a question is active, unless ``force``
        is set (used for the final flush at shutdown).
        """
        with self._lock:
            if self._mode is not Mode.LISTENING and not force:
                return ""
            text = "\n".join(self._discussion)
            self._discussion.clear()
        return text

    def shutdown(self) -> None:
        with self._lock:
            if self._mode is Mode.STOPPED:
                return
            self._mode = Mode.STOPPED
            self._cycle += 1
        self._logger.info("Coordinator stopped")

    def discussion_lines(self) -> list[str]:
        with self._lock:
            return list(self._discussion)

    def discussion_text(self) -> str:
        with self._lock:
            return "\n".join(self._discussion)

    def discussion_line_count(self) -> int:
        with self._lock:
            return len(self._discussion)

    def question_line_count(self) -> int:
        with self._lock:
            return len(self._question)

    def answer_in_flight(self) -> bool:
        with self._lock:
            return self._answering_cycle is not None

    @property
    def answers_started(self) -> int:
        with self._lock:
            return self._answers_started

    def status(self) -> dict:
        with self._lock:
            return {
                "mode": self._mode.value,
                "discussion_lines": len(self._discussion),
                "question_lines": len(self._question),
                "question_cycle": self._cycle,
                "answer_in_flight": self._answering_cycle is not None,
                "answers_started": self._answers_started,
                "lines_routed": dict(self._lines_routed),
            }

    def _is_current(self, cycle: int) -> bool:
        with self._lock:
            return self._cycle == cycle and self._mode is Mode.ANSWERING_QUESTION

    def _run_answer_chain(self, question: str, cycle: int) -> AnswerOutcome:
        if self._answer_chain is None:
            self._logger.warning("No answer chain configured")
            return AnswerOutcome(question=question, answer=FALLBACK_ANSWER, used_fallback=True)
        try:
            return self._answer_chain.run(question, should_continue=lambda: self._is_current(cycle))
        except Exception as exc:
            self._logger.exception("Answer chain failed: %s", exc)
            return AnswerOutcome(
                question=question,
                answer=FALLBACK_ANSWER,
                used_fallback=True,
                errors=[str(exc)],
            )
