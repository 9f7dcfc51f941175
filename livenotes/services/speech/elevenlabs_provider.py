from __future__ import annotations

import logging

import requests

from livenotes.services.speech.base import SpeechSynthesisError, SpeechSynthesizer, pcm16_to_wav

_SAMPLERATE = 22050


class ElevenLabsSynthesizer(SpeechSynthesizer):
    """Text-to-speech through the ElevenLabs HTTP API.

    Requests raw 22.05 kHz PCM and wraps it as WAV so playback needs no MP3
    decoder.
    """

    def __init__(
        self,
        api_key: str,
        voice: str,
        model: str = "",
        base_url: str = "https://api.elevenlabs.io",
        timeout: int = 60,
    ) -> None:
        self._api_key = api_key
        self._voice = voice
        self._model = model or "eleven_multilingual_v2"
        self._base_url = (base_url or "https://api.elevenlabs.io").rstrip("/")
        self._timeout = timeout
        self._logger = logging.getLogger("livenotes.speech.elevenlabs")

    def synthesize(self, text: str) -> bytes:
        if not text.strip():
            raise SpeechSynthesisError("Nothing to synthesize")
        try:
            response = requests.post(
                f"{self._base_url}/v1/text-to-speech/{self._voice}",
                params={"output_format": f"pcm_{_SAMPLERATE}"},
                headers={
                    "xi-api-key": self._api_key,
                    "Content-Type": "application/json",
                },
                json={"text": text, "model_id": self._model},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise SpeechSynthesisError("Failed to reach ElevenLabs") from exc

        if response.status_code != 200:
            raise SpeechSynthesisError(f"ElevenLabs error: {response.status_code}")
        if not response.content:
            raise SpeechSynthesisError("ElevenLabs returned no audio")

        self._logger.debug("Synthesized %d PCM bytes for %d chars", len(response.content), len(text))
        return pcm16_to_wav(response.content, _SAMPLERATE)
