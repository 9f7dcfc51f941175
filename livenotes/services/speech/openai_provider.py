from __future__ import annotations

import requests

from livenotes.services.speech.base import SpeechSynthesisError, SpeechSynthesizer


class OpenAISpeechSynthesizer(SpeechSynthesizer):
    """Text-to-speech through the OpenAI ``/v1/audio/speech`` endpoint."""

    def __init__(
        self,
        api_key: str,
        voice: str = "alloy",
        model: str = "",
        base_url: str = "https://api.openai.com",
        timeout: int = 60,
    ) -> None:
        self._api_key = api_key
        self._voice = "alloy" if voice in ("", "default") else voice
        self._model = model or "tts-1"
        self._base_url = (base_url or "https://api.openai.com").rstrip("/")
        self._timeout = timeout

    def synthesize(self, text: str) -> bytes:
        if not text.strip():
            raise SpeechSynthesisError("Nothing to synthesize")
        try:
            response = requests.post(
                f"{self._base_url}/v1/audio/speech",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self._model,
                    "voice": self._voice,
                    "input": text,
                    "response_format": "wav",
                },
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise SpeechSynthesisError("Failed to reach OpenAI speech") from exc

        if response.status_code != 200:
            raise SpeechSynthesisError(f"OpenAI speech error: {response.status_code}")
        if not response.content:
            raise SpeechSynthesisError("OpenAI speech returned no audio")
        return response.content
