from __future__ import annotations

import logging
import platform
import shutil
import subprocess
import time
from urllib.parse import urlparse

import requests

from livenotes.services.llm.base import BaseLLMProvider, LLMProviderError

_logger = logging.getLogger("livenotes.llm.ollama")

_LAUNCH_WAIT_MAX = 30  # seconds
_LAUNCH_POLL_INTERVAL = 1  # seconds


def _is_local_url(url: str) -> bool:
    host = urlparse(url).hostname or ""
    return host in ("127.0.0.1", "localhost", "::1", "0.0.0.0")


def _is_reachable(base_url: str) -> bool:
    try:
        return requests.get(f"{base_url}/api/tags", timeout=3).status_code == 200
    except requests.RequestException:
        return False


def ensure_ollama_running(base_url: str = "http://127.0.0.1:11434") -> bool:
    """Launch ``ollama serve`` if a local Ollama isn't reachable. Blocks until ready.

    Remote URLs are only checked, never launched. Returns True when reachable.
    """
    base_url = base_url.rstrip("/")
    if _is_reachable(base_url):
        _logger.info("Ollama is already running at %s", base_url)
        return True

    if not _is_local_url(base_url):
        _logger.warning("Ollama not reachable at %s (remote host), not launching", base_url)
        return False

    if not shutil.which("ollama"):
        _logger.warning("Ollama not reachable and not installed, cannot auto-launch")
        return False

    _logger.info("Ollama not reachable, launching: ollama serve")
    kwargs = {"stdout": subprocess.DEVNULL, "stderr": subprocess.DEVNULL}
    if platform.system() == "Windows":
        kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW
    try:
        subprocess.Popen(["ollama", "serve"], **kwargs)
    except OSError as exc:
        _logger.warning("Failed to launch Ollama: %s", exc)
        return False

    deadline = time.monotonic() + _LAUNCH_WAIT_MAX
    while time.monotonic() < deadline:
        time.sleep(_LAUNCH_POLL_INTERVAL)
        if _is_reachable(base_url):
            _logger.info("Ollama is now reachable")
            return True

    _logger.warning("Launched Ollama but it didn't become reachable within %ds", _LAUNCH_WAIT_MAX)
    return False


class OllamaProvider(BaseLLMProvider):
    """LLM provider for local Ollama models."""

    def __init__(self, base_url: str, model: str) -> None:
        super().__init__(logger_name="livenotes.llm.ollama")
        self._base_url = base_url.rstrip("/")
        self._model = model

    def _call_api(
        self,
        prompt: str,
        temperature: float = 0.2,
        timeout: int = 120,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Make a call to the Ollama API and return the response text."""
        request_body = {
            "model": self._model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature},
        }
        if system_prompt:
            request_body["system"] = system_prompt
        if max_tokens:
            request_body["options"]["num_predict"] = max_tokens

        try:
            response = requests.post(
                f"{self._base_url}/api/generate",
                json=request_body,
                timeout=timeout,
            )
        except requests.RequestException as exc:
            raise LLMProviderError("Failed to reach Ollama") from exc

        if response.status_code != 200:
            raise LLMProviderError(f"Ollama error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMProviderError("Ollama returned malformed JSON") from exc
        return str(data.get("response", "")).strip()
