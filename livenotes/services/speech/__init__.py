from livenotes.services.settings import SpeechSynthesisConfig
from livenotes.services.speech.base import SpeechSynthesisError, SpeechSynthesizer
from livenotes.services.speech.elevenlabs_provider import ElevenLabsSynthesizer
from livenotes.services.speech.null_provider import NullSynthesizer
from livenotes.services.speech.openai_provider import OpenAISpeechSynthesizer
from livenotes.services.speech.playback import AudioPlayer, PlaybackError


def create_synthesizer(config: SpeechSynthesisConfig) -> SpeechSynthesizer:
    provider = config.provider
    if provider in ("", "none"):
        return NullSynthesizer()
    if not config.api_key:
        raise SpeechSynthesisError(f"Missing API key for speech provider '{provider}'")
    if provider == "elevenlabs":
        return ElevenLabsSynthesizer(
            api_key=config.api_key,
            voice=config.voice,
            model=config.model,
            base_url=config.base_url,
        )
    if provider == "openai":
        return OpenAISpeechSynthesizer(
            api_key=config.api_key,
            voice=config.voice,
            model=config.model,
            base_url=config.base_url,
        )
    raise SpeechSynthesisError(f"Unsupported speech provider: {provider}")


__all__ = [
    "AudioPlayer",
    "ElevenLabsSynthesizer",
    "NullSynthesizer",
    "OpenAISpeechSynthesizer",
    "PlaybackError",
    "SpeechSynthesisError",
    "SpeechSynthesizer",
    "create_synthesizer",
]
