from __future__ import annotations

import threading
import time
from types import SimpleNamespace
from typing import Callable, Optional

import pytest

from livenotes.services.answer_chain import AnswerChain, AnswerOutcome
from livenotes.services.event_bus import EventBus
from livenotes.services.llm.base import LLMProviderError
from livenotes.services.mode_coordinator import ModeCoordinator
from livenotes.services.notes_store import NotesStore
from livenotes.services.speech.base import SpeechSynthesisError, SpeechSynthesizer


class StubCollaborator:
    """Summarization + answer collaborator with canned responses."""

    def __init__(
        self,
        summary: str = "Topic: X",
        answer: str = "X is Y",
        fail_summary: bool = False,
        fail_answer: bool = False,
    ) -> None:
        self.summary = summary
        self.answer = answer
        self.fail_summary = fail_summary
        self.fail_answer = fail_answer
        self.summarize_calls: list[str] = []
        self.answer_calls: list[str] = []
        self.on_summarize: Optional[Callable[[str], None]] = None

    def extract_topics_and_summarize(self, text: str) -> str:
        self.summarize_calls.append(text)
        if self.on_summarize is not None:
            self.on_summarize(text)
        if self.fail_summary:
            raise LLMProviderError("quota exceeded")
        return self.summary

    def generate_answer(self, question_context: str) -> str:
        self.answer_calls.append(question_context)
        if self.fail_answer:
            raise LLMProviderError("timeout")
        return self.answer


class StubSynthesizer(SpeechSynthesizer):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    def synthesize(self, text: str) -> bytes:
        self.calls.append(text)
        if self.fail:
            raise SpeechSynthesisError("tts down")
        return b"RIFF-fake-audio"


class StubPlayer:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.played: list[bytes] = []
        self.stopped = 0

    def play(self, audio: bytes) -> float:
        if self.fail:
            raise OSError("no output device")
        self.played.append(audio)
        return 1.0

    def stop(self) -> None:
        self.stopped += 1


class BlockingChain:
    """Answer chain that parks inside run() until released."""

    def __init__(self, answer: str = "X is Y") -> None:
        self.answer = answer
        self.entered = threading.Event()
        self.release = threading.Event()
        self.questions: list[str] = []
        self.continue_result: Optional[bool] = None
        self.cancelled = 0

    def run(self, question: str, should_continue=None) -> AnswerOutcome:
        self.questions.append(question)
        self.entered.set()
        self.release.wait(5.0)
        self.continue_result = should_continue() if should_continue else True
        return AnswerOutcome(question=question, answer=self.answer, interrupted=not self.continue_result)

    def cancel(self) -> None:
        self.cancelled += 1


class CountingChain:
    def __init__(self, answer: str = "X is Y") -> None:
        self.answer = answer
        self.questions: list[str] = []
        self.cancelled = 0

    def run(self, question: str, should_continue=None) -> AnswerOutcome:
        self.questions.append(question)
        return AnswerOutcome(question=question, answer=self.answer)

    def cancel(self) -> None:
        self.cancelled += 1


def _wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_for():
    return _wait_for


@pytest.fixture
def collaborator() -> StubCollaborator:
    return StubCollaborator()


@pytest.fixture
def notes(tmp_path) -> NotesStore:
    return NotesStore(str(tmp_path / "show_notes.md"))


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def synthesizer() -> StubSynthesizer:
    return StubSynthesizer()


@pytest.fixture
def player() -> StubPlayer:
    return StubPlayer()


@pytest.fixture
def answer_chain(collaborator, synthesizer, player, notes, event_bus) -> AnswerChain:
    return AnswerChain(collaborator, synthesizer, player, notes=notes, event_bus=event_bus)


@pytest.fixture
def coordinator(answer_chain) -> ModeCoordinator:
    return ModeCoordinator(answer_chain)


@pytest.fixture
def stubs():
    """Stub classes for tests that need custom-configured collaborators."""
    return SimpleNamespace(
        Collaborator=StubCollaborator,
        Synthesizer=StubSynthesizer,
        Player=StubPlayer,
        BlockingChain=BlockingChain,
        CountingChain=CountingChain,
    )
