from __future__ import annotations

import io
from abc import ABC, abstractmethod

import numpy as np
import soundfile as sf

from livenotes.services.errors import CollaboratorError


class SpeechSynthesisError(CollaboratorError):
    pass


class SpeechSynthesizer(ABC):
    """Turns answer text into playable audio (WAV bytes)."""

    @abstractmethod
    def synthesize(self, text: str) -> bytes:
        raise NotImplementedError

    def is_enabled(self) -> bool:
        return True


def pcm16_to_wav(pcm: bytes, samplerate: int, channels: int = 1) -> bytes:
    """Wrap raw little-endian int16 PCM in a WAV container."""
    if len(pcm) % 2:
        pcm = pcm[:-1]
    audio = np.frombuffer(pcm, dtype="<i2")
    if channels > 1:
        audio = audio[: len(audio) - len(audio) % channels].reshape(-1, channels)
    buffer = io.BytesIO()
    sf.write(buffer, audio, samplerate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()
