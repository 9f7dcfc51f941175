from __future__ import annotations

import io
import logging
import os
import threading
from typing import Optional

import soundfile as sf

from livenotes.services.errors import CollaboratorError


class PlaybackError(CollaboratorError):
    pass


def _load_sounddevice():
    # PortAudio is loaded on import; keep it out of module import so the
    # rest of the app works on machines without an audio stack.
    import sounddevice as sd

    return sd


class AudioPlayer:
    """Plays synthesized WAV bytes on the default (or configured) output device.

    ``play()`` blocks until playback finishes or ``stop()`` is called from
    another thread.
    """

    def __init__(self, device: Optional[int] = None, save_path: Optional[str] = None) -> None:
        self._device = device
        self._save_path = save_path
        self._lock = threading.Lock()
        self._playing = False
        self._logger = logging.getLogger("livenotes.playback")

    def is_playing(self) -> bool:
        with self._lock:
            return self._playing

    def play(self, audio: bytes) -> float:
        """Play ``audio`` and return its duration in seconds."""
        if not audio:
            raise PlaybackError("No audio to play")

        if self._save_path:
            self._save(audio)

        try:
            data, samplerate = sf.read(io.BytesIO(audio), dtype="float32")
        except RuntimeError as exc:
            raise PlaybackError(f"Unable to decode audio: {exc}") from exc

        duration = len(data) / float(samplerate) if samplerate else 0.0
        try:
            sd = _load_sounddevice()
            with self._lock:
                self._playing = True
            sd.play(data, samplerate, device=self._device)
            sd.wait()
        except (OSError, ImportError) as exc:
            raise PlaybackError(f"Audio output unavailable: {exc}") from exc
        except Exception as exc:
            # sounddevice.PortAudioError derives from Exception only
            raise PlaybackError(f"Playback failed: {exc}") from exc
        finally:
            with self._lock:
                self._playing = False

        self._logger.info("Played %.2fs of audio", duration)
        return duration

    def stop(self) -> None:
        with self._lock:
            if not self._playing:
                return
        try:
            _load_sounddevice().stop()
            self._logger.info("Playback stopped")
        except (OSError, ImportError) as exc:
            self._logger.warning("Unable to stop playback: %s", exc)

    def _save(self, audio: bytes) -> None:
        try:
            directory = os.path.dirname(self._save_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self._save_path, "wb") as audio_file:
                audio_file.write(audio)
        except OSError as exc:
            self._logger.warning("Unable to save response audio to %s: %s", self._save_path, exc)
