"""
Question answering flow run when the host ends a question.

summarize topics -> generate answer -> synthesize speech -> play audio

Every step is a network or device call that may fail; failures are logged
and replaced by a fallback so the caller never sees an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from livenotes.services.event_bus import NotesUpdated

if TYPE_CHECKING:
    from livenotes.services.event_bus import EventBus
    from livenotes.services.notes_store import NotesStore
    from livenotes.services.speech import AudioPlayer, SpeechSynthesizer

FALLBACK_ANSWER = "I'm sorry, I'm unable to answer at this time."


class AnswerCollaborator(Protocol):
    def extract_topics_and_summarize(self, text: str) -> str:
        ...

    def generate_answer(self, question_context: str) -> str:
        ...


@dataclass
class AnswerOutcome:
    question: str
    answer: str
    topics: Optional[str] = None
    used_fallback: bool = False
    spoken: bool = False
    interrupted: bool = False
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "answer": self.answer,
            "topics": self.topics,
            "used_fallback": self.used_fallback,
            "spoken": self.spoken,
            "interrupted": self.interrupted,
            "errors": list(self.errors),
        }


class AnswerChain:
    def __init__(
        self,
        collaborator: AnswerCollaborator,
        synthesizer: Optional["SpeechSynthesizer"] = None,
        player: Optional["AudioPlayer"] = None,
        *,
        notes: Optional["NotesStore"] = None,
        event_bus: Optional["EventBus"] = None,
        log_answers: bool = False,
    ) -> None:
        self._collaborator = collaborator
        self._synthesizer = synthesizer
        self._player = player
        self._notes = notes
        self._event_bus = event_bus
        self._log_answers = log_answers
        self._logger = logging.getLogger("livenotes.answer")

    def run(
        self,
        question: str,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> AnswerOutcome:
        keep_going = should_continue or (lambda: True)
        outcome = AnswerOutcome(question=question, answer=FALLBACK_ANSWER)

        try:
            outcome.topics = self._collaborator.extract_topics_and_summarize(question)
        except Exception as exc:
            self._logger.warning("Unable to extract and summarize topics: %s", exc)
            outcome.errors.append(f"summarize: {exc}")

        try:
            outcome.answer = self._collaborator.generate_answer(question)
        except Exception as exc:
            self._logger.error("Unable to answer question: %s", exc)
            outcome.errors.append(f"answer: {exc}")
            outcome.answer = FALLBACK_ANSWER
            outcome.used_fallback = True

        if not keep_going():
            outcome.interrupted = True
            self._logger.info("Answer interrupted before speech")
            return outcome

        if self._log_answers and self._notes is not None:
            self._record(outcome)

        audio = self._synthesize(outcome)
        if audio is None:
            return outcome

        if not keep_going():
            outcome.interrupted = True
            self._logger.info("Answer interrupted before playback")
            return outcome

        self._play(outcome, audio)
        return outcome

    def cancel(self) -> None:
        if self._player is not None:
            self._player.stop()

    def _synthesize(self, outcome: AnswerOutcome) -> Optional[bytes]:
        if self._synthesizer is None or not self._synthesizer.is_enabled():
            self._logger.info("Speech synthesis disabled, answer: %s", outcome.answer)
            return None
        try:
            return self._synthesizer.synthesize(outcome.answer)
        except Exception as exc:
            self._logger.error("Speech synthesis failed, skipping playback: %s", exc)
            outcome.errors.append(f"synthesize: {exc}")
            return None

    def _play(self, outcome: AnswerOutcome, audio: bytes) -> None:
        if self._player is None:
            self._logger.info("No audio player configured, skipping playback")
            return
        try:
            self._player.play(audio)
            outcome.spoken = True
        except Exception as exc:
            self._logger.error("Playback failed: %s", exc)
            outcome.errors.append(f"play: {exc}")

    def _record(self, outcome: AnswerOutcome) -> None:
        lines = ["### Listener question"]
        if outcome.topics:
            lines.append(outcome.topics)
        lines.append(f"**Answer:** {outcome.answer}")
        entry = "\n\n".join(lines)
        try:
            notes = self._notes.append(entry)
        except OSError as exc:
            self._logger.error("Unable to record answer in notes: %s", exc)
            outcome.errors.append(f"notes: {exc}")
            return
        if self._event_bus is not None:
            self._event_bus.publish(NotesUpdated(notes=notes, entry=entry, source="answer"))
