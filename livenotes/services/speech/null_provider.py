from __future__ import annotations

from livenotes.services.speech.base import SpeechSynthesisError, SpeechSynthesizer


class NullSynthesizer(SpeechSynthesizer):
    def synthesize(self, text: str) -> bytes:
        raise SpeechSynthesisError("Speech synthesis is disabled")

    def is_enabled(self) -> bool:
        return False
