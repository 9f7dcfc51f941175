import io

import numpy as np
import pytest
import requests
import soundfile as sf

from livenotes.services.settings import SpeechSynthesisConfig
from livenotes.services.speech import (
    AudioPlayer,
    ElevenLabsSynthesizer,
    NullSynthesizer,
    OpenAISpeechSynthesizer,
    PlaybackError,
    SpeechSynthesisError,
    create_synthesizer,
)
from livenotes.services.speech import playback
from livenotes.services.speech.base import pcm16_to_wav


class FakeResponse:
    def __init__(self, status_code=200, content=b""):
        self.status_code = status_code
        self.content = content


def _tone_wav(seconds: float = 0.1, samplerate: int = 8000) -> bytes:
    samples = (np.sin(np.linspace(0, 40, int(seconds * samplerate))) * 8000).astype("<i2")
    return pcm16_to_wav(samples.tobytes(), samplerate)


def test_pcm16_to_wav_round_trips_samples():
    samples = np.array([0, 1000, -1000, 32767, -32768], dtype="<i2")

    wav = pcm16_to_wav(samples.tobytes(), 22050)
    data, samplerate = sf.read(io.BytesIO(wav), dtype="int16")

    assert wav[:4] == b"RIFF"
    assert samplerate == 22050
    assert data.tolist() == samples.tolist()


def test_pcm16_to_wav_drops_odd_trailing_byte():
    wav = pcm16_to_wav(b"\x01\x00\x02", 16000)
    data, _ = sf.read(io.BytesIO(wav), dtype="int16")
    assert data.tolist() == [1]


def test_elevenlabs_request_and_wav_output(monkeypatch):
    calls = []
    pcm = np.zeros(100, dtype="<i2").tobytes()

    def fake_post(url, **kwargs):
        calls.append((url, kwargs))
        return FakeResponse(content=pcm)

    monkeypatch.setattr(requests, "post", fake_post)
    synth = ElevenLabsSynthesizer(api_key="xi-key", voice="rachel")

    audio = synth.synthesize("X is Y")

    url, kwargs = calls[0]
    assert url == "https://api.elevenlabs.io/v1/text-to-speech/rachel"
    assert kwargs["headers"]["xi-api-key"] == "xi-key"
    assert kwargs["params"] == {"output_format": "pcm_22050"}
    assert kwargs["json"]["text"] == "X is Y"
    data, samplerate = sf.read(io.BytesIO(audio))
    assert samplerate == 22050
    assert len(data) == 100


@pytest.mark.parametrize(
    "response, exc",
    [
        (FakeResponse(status_code=401), None),
        (FakeResponse(content=b""), None),
        (None, requests.Timeout("slow")),
    ],
)
def test_elevenlabs_failures(monkeypatch, response, exc):
    def fake_post(url, **kwargs):
        if exc is not None:
            raise exc
        return response

    monkeypatch.setattr(requests, "post", fake_post)
    synth = ElevenLabsSynthesizer(api_key="k", voice="v")

    with pytest.raises(SpeechSynthesisError):
        synth.synthesize("hello")


def test_openai_speech_request(monkeypatch):
    calls = []

    def fake_post(url, **kwargs):
        calls.append((url, kwargs))
        return FakeResponse(content=b"RIFFdata")

    monkeypatch.setattr(requests, "post", fake_post)
    synth = OpenAISpeechSynthesizer(api_key="sk", voice="default")

    assert synth.synthesize("X is Y") == b"RIFFdata"
    url, kwargs = calls[0]
    assert url == "https://api.openai.com/v1/audio/speech"
    assert kwargs["json"]["voice"] == "alloy"
    assert kwargs["json"]["model"] == "tts-1"
    assert kwargs["json"]["response_format"] == "wav"


def test_create_synthesizer():
    assert isinstance(create_synthesizer(SpeechSynthesisConfig()), NullSynthesizer)
    assert isinstance(
        create_synthesizer(SpeechSynthesisConfig(provider="elevenlabs", api_key="k", voice="v")),
        ElevenLabsSynthesizer,
    )
    assert isinstance(
        create_synthesizer(SpeechSynthesisConfig(provider="openai", api_key="k")),
        OpenAISpeechSynthesizer,
    )
    with pytest.raises(SpeechSynthesisError):
        create_synthesizer(SpeechSynthesisConfig(provider="elevenlabs"))
    with pytest.raises(SpeechSynthesisError):
        create_synthesizer(SpeechSynthesisConfig(provider="festival", api_key="k"))


def test_null_synthesizer_is_disabled():
    synth = NullSynthesizer()
    assert synth.is_enabled() is False
    with pytest.raises(SpeechSynthesisError):
        synth.synthesize("hello")


class FakeSoundDevice:
    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.played = []
        self.stopped = 0

    def play(self, data, samplerate, device=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.played.append((len(data), samplerate, device))

    def wait(self):
        pass

    def stop(self):
        self.stopped += 1


def test_audio_player_plays_and_saves(monkeypatch, tmp_path):
    device = FakeSoundDevice()
    monkeypatch.setattr(playback, "_load_sounddevice", lambda: device)
    save_path = tmp_path / "data" / "response.wav"
    player = AudioPlayer(save_path=str(save_path))
    audio = _tone_wav(seconds=0.5, samplerate=8000)

    duration = player.play(audio)

    assert duration == pytest.approx(0.5)
    assert device.played == [(4000, 8000, None)]
    assert save_path.read_bytes() == audio
    assert not player.is_playing()


def test_audio_player_device_failure(monkeypatch):
    monkeypatch.setattr(playback, "_load_sounddevice", lambda: FakeSoundDevice(OSError("no device")))
    player = AudioPlayer()

    with pytest.raises(PlaybackError):
        player.play(_tone_wav())
    assert not player.is_playing()


def test_audio_player_rejects_undecodable_audio(monkeypatch):
    monkeypatch.setattr(playback, "_load_sounddevice", lambda: FakeSoundDevice())
    player = AudioPlayer()

    with pytest.raises(PlaybackError):
        player.play(b"not audio at all")
    with pytest.raises(PlaybackError):
        player.play(b"")


def test_audio_player_stop_is_noop_when_idle(monkeypatch):
    device = FakeSoundDevice()
    monkeypatch.setattr(playback, "_load_sounddevice", lambda: device)

    AudioPlayer().stop()

    assert device.stopped == 0
