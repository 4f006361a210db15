"""Amazon Polly speech synthesis for broadcast narration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from html import escape as html_escape
from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from weathercaster.config.settings import PollyConfig
from weathercaster.services.aws import create_boto3_client

logger = logging.getLogger(__name__)

# Polly rejects plain-text input longer than this.
MAX_TEXT_CHARS = 3000


@dataclass(frozen=True)
class SpeechResult:
    """Audio written to disk for one narration."""

    path: Path
    size_bytes: int
    voice_id: str
    media_type: str = "audio/mpeg"


class SpeechSynthesisError(RuntimeError):
    """Raised when Polly cannot produce audio for a narration."""


class SpeechSynthesizer:
    """Render narration text to an MP3 file with Amazon Polly."""

    def __init__(self, config: PollyConfig, *, client: Any | None = None) -> None:
        self._config = config
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_boto3_client(
                "polly",
                region_name=self._config.region,
                aws_access_key_id=self._config.access_key,
                aws_secret_access_key=self._config.secret_key,
            )
        return self._client

    async def synthesize_to_file(
        self,
        text: str,
        output_path: str | Path,
        *,
        voice_id: str | None = None,
    ) -> SpeechResult:
        cleaned = (text or "").strip()
        if not cleaned:
            raise SpeechSynthesisError("Cannot synthesize empty narration text.")
        if len(cleaned) > MAX_TEXT_CHARS:
            logger.warning("Narration truncated from %s to %s characters", len(cleaned), MAX_TEXT_CHARS)
            cleaned = cleaned[:MAX_TEXT_CHARS]

        voice = voice_id or self._config.default_voice_id
        audio = await self._synthesize(f"<speak>{html_escape(cleaned)}</speak>", voice)

        path = Path(output_path)
        try:
            await run_in_threadpool(path.parent.mkdir, parents=True, exist_ok=True)
            await run_in_threadpool(path.write_bytes, audio)
        except OSError as exc:
            raise SpeechSynthesisError(f"Failed to write audio file {path}: {exc}") from exc

        logger.info("Speech synthesized voice=%s bytes=%s path=%s", voice, len(audio), path)
        return SpeechResult(path=path, size_bytes=len(audio), voice_id=voice)

    async def _synthesize(self, ssml: str, voice_id: str) -> bytes:
        try:
            response: dict[str, Any] = await run_in_threadpool(
                self.client.synthesize_speech,
                TextType="ssml",
                Text=ssml,
                VoiceId=voice_id,
                Engine=self._config.engine,
                OutputFormat="mp3",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Polly synth failed for voice '%s'", voice_id)
            raise SpeechSynthesisError(f"Failed to synthesize speech: {exc}") from exc

        audio_stream = response.get("AudioStream")
        if audio_stream is None:
            raise SpeechSynthesisError("Polly returned no audio stream.")
        try:
            audio = await run_in_threadpool(audio_stream.read)
        finally:
            close = getattr(audio_stream, "close", None)
            if callable(close):
                close()
        if not audio:
            raise SpeechSynthesisError("Polly returned an empty audio stream.")
        return audio


__all__ = ["SpeechResult", "SpeechSynthesisError", "SpeechSynthesizer"]
