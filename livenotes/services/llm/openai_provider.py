from __future__ import annotations

import requests

from livenotes.services.llm.base import BaseLLMProvider, LLMProviderError


class OpenAIProvider(BaseLLMProvider):
    """LLM provider for OpenAI and OpenAI-compatible APIs (LM Studio, etc.)."""

    def __init__(
        self, api_key: str, model: str, base_url: str | None = "https://api.openai.com"
    ) -> None:
        super().__init__(logger_name="livenotes.llm.openai")
        self._api_key = api_key
        self._model = model
        self._base_url = (base_url or "https://api.openai.com").rstrip("/")

    def _call_api(
        self,
        prompt: str,
        temperature: float = 0.2,
        timeout: int = 120,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Make a call to the chat completions API and return the response text."""
        messages = [
            {"role": "system", "content": system_prompt or "You are a helpful assistant."},
            {"role": "user", "content": prompt},
        ]

        request_body = {
            "model": self._model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            request_body["max_tokens"] = max_tokens

        try:
            response = requests.post(
                f"{self._base_url}/v1/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=request_body,
                timeout=timeout,
            )
        except requests.RequestException as exc:
            raise LLMProviderError("Failed to reach OpenAI") from exc

        if response.status_code != 200:
            raise LLMProviderError(f"OpenAI error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMProviderError("OpenAI returned malformed JSON") from exc
        choices = data.get("choices", [])
        if not choices:
            raise LLMProviderError("OpenAI response missing choices")

        content = choices[0].get("message", {}).get("content", "")
        return str(content or "").strip()
