"""Polly speech synthesis to audio files."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from weathercaster.config.settings import PollyConfig
from weathercaster.services.speech import SpeechSynthesisError, SpeechSynthesizer


class FakePolly:
    def __init__(self, audio: bytes = b"ID3\x03fake-mp3", error: Exception | None = None) -> None:
        self.audio = audio
        self.error = error
        self.calls: list[dict] = []

    def synthesize_speech(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return {"AudioStream": io.BytesIO(self.audio), "ContentType": "audio/mpeg"}


async def test_writes_mp3_to_requested_path(tmp_path: Path) -> None:
    polly = FakePolly()
    synthesizer = SpeechSynthesizer(PollyConfig(default_voice_id="Joanna"), client=polly)
    target = tmp_path / "nested" / "forecast.mp3"

    result = await synthesizer.synthesize_to_file("Sunny & warm <today>", target)

    assert target.read_bytes() == polly.audio
    assert result.size_bytes == len(polly.audio)
    assert result.voice_id == "Joanna"
    call = polly.calls[0]
    assert call["OutputFormat"] == "mp3"
    assert call["Engine"] == "neural"
    assert call["TextType"] == "ssml"
    assert call["Text"] == "<speak>Sunny &amp; warm &lt;today&gt;</speak>"


async def test_voice_override(tmp_path: Path) -> None:
    polly = FakePolly()
    synthesizer = SpeechSynthesizer(PollyConfig(), client=polly)

    result = await synthesizer.synthesize_to_file("Hello", tmp_path / "a.mp3", voice_id="Matthew")

    assert result.voice_id == "Matthew"
    assert polly.calls[0]["VoiceId"] == "Matthew"


async def test_client_error_is_wrapped(tmp_path: Path) -> None:
    error = ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "SynthesizeSpeech")
    synthesizer = SpeechSynthesizer(PollyConfig(), client=FakePolly(error=error))

    with pytest.raises(SpeechSynthesisError, match="Failed to synthesize"):
        await synthesizer.synthesize_to_file("Hello", tmp_path / "a.mp3")


async def test_empty_audio_is_an_error(tmp_path: Path) -> None:
    synthesizer = SpeechSynthesizer(PollyConfig(), client=FakePolly(audio=b""))

    with pytest.raises(SpeechSynthesisError, match="empty audio"):
        await synthesizer.synthesize_to_file("Hello", tmp_path / "a.mp3")


async def test_blank_text_rejected_without_calling_polly(tmp_path: Path) -> None:
    polly = FakePolly()
    synthesizer = SpeechSynthesizer(PollyConfig(), client=polly)

    with pytest.raises(SpeechSynthesisError):
        await synthesizer.synthesize_to_file("   ", tmp_path / "a.mp3")

    assert polly.calls == []
