"""Typed views over ``config.json``.

The config file is a plain JSON document; each section is parsed into a
frozen dataclass so services never touch raw dicts:

    {
        "speech_source": {"binary": "...", "model_path": "...", "device_id": 1},
        "session": {"summarization_interval": 60, "notes_filename": "show_notes.md"},
        "speech_synthesis": {"provider": "elevenlabs", "api_key": "...", "voice": "..."},
        "models": {"selected_model": "openai:gpt-4o"},
        "providers": {"openai": {"api_key": "..."}}
    }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from livenotes.services.errors import ConfigError

_logger = logging.getLogger("livenotes.settings")


@dataclass(frozen=True)
class WhisperStreamConfig:
    """Launch parameters for the whisper.cpp ``stream`` binary."""
    model_path: str
    binary: str = "whisper.cpp/build/bin/stream"
    device_id: int = 1
    threads: int = 4
    step_ms: int = 2000
    length_ms: int = 5000
    keep_ms: int = 500
    vad_threshold: float = 0.60
    audio_ctx: int = 0  # 0 = model default
    keep_context: bool = True
    stop_timeout: float = 5.0
    queue_size: int = 256

    def build_command(self) -> list[str]:
        cmd = [
            self.binary,
            "-m", self.model_path,
            "-t", str(self.threads),
            "--step", str(self.step_ms),
            "--length", str(self.length_ms),
            "--keep", str(self.keep_ms),
            "--vad-thold", f"{self.vad_threshold:.2f}",
            "--audio-ctx", str(self.audio_ctx),
        ]
        if self.keep_context:
            cmd.append("--keep-context")
        cmd.extend(["-c", str(self.device_id)])
        return cmd


@dataclass(frozen=True)
class SessionConfig:
    summarization_interval: float = 60.0
    notes_filename: str = "show_notes.md"
    log_answers: bool = True


@dataclass(frozen=True)
class SpeechSynthesisConfig:
    provider: str = "none"  # "elevenlabs", "openai" or "none"
    api_key: Optional[str] = None
    voice: str = "default"
    model: str = ""
    base_url: str = ""


def load_config(config_path: str) -> dict:
    """Read config from file, returning empty dict if not found."""
    if not os.path.exists(config_path):
        _logger.info("Config missing, using defaults: %s", config_path)
        return {}
    with open(config_path, "r", encoding="utf-8") as config_file:
        config = json.load(config_file)
    if not isinstance(config, dict):
        raise ConfigError(f"Config root must be an object: {config_path}")
    _logger.info("Config loaded: %s keys=%s", config_path, sorted(config.keys()))
    return config


def parse_stream_config(config_dict: dict, root_dir: str = "") -> WhisperStreamConfig:
    """Parse the ``speech_source`` section.

    Relative ``binary`` and ``model_path`` values resolve against ``root_dir``.
    """
    def _resolve(path: str) -> str:
        if root_dir and path and not os.path.isabs(path):
            return os.path.join(root_dir, path)
        return path

    defaults = WhisperStreamConfig(model_path="whisper.cpp/models/ggml-small.en.bin")
    vad_threshold = float(config_dict.get("vad_threshold", defaults.vad_threshold))
    if not 0.0 <= vad_threshold <= 1.0:
        raise ConfigError(f"vad_threshold must be between 0.0 and 1.0, got {vad_threshold}")
    audio_ctx = int(config_dict.get("audio_ctx", defaults.audio_ctx))
    if audio_ctx < 0:
        raise ConfigError(f"audio_ctx must be >= 0, got {audio_ctx}")
    threads = int(config_dict.get("threads", defaults.threads))
    if threads < 1:
        raise ConfigError(f"threads must be >= 1, got {threads}")

    return WhisperStreamConfig(
        model_path=_resolve(config_dict.get("model_path", defaults.model_path)),
        binary=_resolve(config_dict.get("binary", defaults.binary)),
        device_id=int(config_dict.get("device_id", defaults.device_id)),
        threads=threads,
        step_ms=int(config_dict.get("step_ms", defaults.step_ms)),
        length_ms=int(config_dict.get("length_ms", defaults.length_ms)),
        keep_ms=int(config_dict.get("keep_ms", defaults.keep_ms)),
        vad_threshold=vad_threshold,
        audio_ctx=audio_ctx,
        keep_context=bool(config_dict.get("keep_context", defaults.keep_context)),
        stop_timeout=float(config_dict.get("stop_timeout", defaults.stop_timeout)),
        queue_size=int(config_dict.get("queue_size", defaults.queue_size)),
    )


def parse_session_config(config_dict: dict) -> SessionConfig:
    interval = float(config_dict.get("summarization_interval", 60.0))
    if interval <= 0:
        raise ConfigError(f"summarization_interval must be positive, got {interval}")
    return SessionConfig(
        summarization_interval=interval,
        notes_filename=config_dict.get("notes_filename", "show_notes.md") or "show_notes.md",
        log_answers=bool(config_dict.get("log_answers", True)),
    )


def parse_speech_config(config_dict: dict) -> SpeechSynthesisConfig:
    return SpeechSynthesisConfig(
        provider=(config_dict.get("provider") or "none").lower(),
        api_key=config_dict.get("api_key"),
        voice=config_dict.get("voice", "default") or "default",
        model=config_dict.get("model", ""),
        base_url=config_dict.get("base_url", ""),
    )
