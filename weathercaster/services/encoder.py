"""Still-image plus audio to MP4 rendering with ffmpeg."""

from __future__ import annotations

import asyncio
import base64
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from fastapi.concurrency import run_in_threadpool

from weathercaster.config.settings import MediaConfig

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = frozenset({".png", ".jpg", ".jpeg"})
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
FALLBACK_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
STDERR_TAIL_LINES = 12


@dataclass(frozen=True)
class EncodeResult:
    path: Path
    size_bytes: int


class EncodingError(RuntimeError):
    """Raised when ffmpeg is missing or exits unsuccessfully."""


def _list_images(images_dir: Path) -> list[Path]:
    if not images_dir.is_dir():
        return []
    return sorted(
        path
        for path in images_dir.iterdir()
        if path.is_file() and path.suffix.lower() in IMAGE_SUFFIXES
    )


def _write_fallback_png(work_dir: Path) -> Path:
    target = work_dir / "fallback-bg.png"
    if target.is_file():
        with target.open("rb") as handle:
            if handle.read(len(PNG_SIGNATURE)) == PNG_SIGNATURE:
                return target
    work_dir.mkdir(parents=True, exist_ok=True)
    target.write_bytes(FALLBACK_PNG)
    return target


def pick_background_image(images_dir: str | Path, work_dir: str | Path) -> Path:
    """Random PNG/JPEG from ``images_dir``, or a generated 1x1 PNG when there is none."""

    images = _list_images(Path(images_dir))
    if images:
        return random.choice(images)
    logger.warning("No background images in %s, using generated fallback", images_dir)
    return _write_fallback_png(Path(work_dir))


class MediaEncoder:
    """Wrap ffmpeg to loop a still image over a narration track."""

    def __init__(self, config: MediaConfig) -> None:
        self._config = config

    def build_command(self, audio_path: Path, image_path: Path, output_path: Path) -> list[str]:
        cfg = self._config
        scale = (
            f"scale='min({cfg.max_width},iw)':'min({cfg.max_height},ih)'"
            ":force_original_aspect_ratio=decrease,"
            "pad=ceil(iw/2)*2:ceil(ih/2)*2"
        )
        return [
            cfg.ffmpeg_path,
            "-hide_banner",
            "-nostdin",
            "-y",
            "-loop", "1",
            "-i", str(image_path),
            "-i", str(audio_path),
            "-vf", scale,
            "-c:v", "libx264",
            "-preset", cfg.preset,
            "-crf", str(cfg.crf),
            "-threads", str(cfg.threads),
            "-c:a", "aac",
            "-b:a", "128k",
            "-pix_fmt", "yuv420p",
            "-shortest",
            "-movflags", "+faststart",
            "-max_muxing_queue_size", "1024",
            "-avoid_negative_ts", "make_zero",
            str(output_path),
        ]

    async def render(
        self,
        audio_path: str | Path,
        image_path: str | Path,
        output_path: str | Path,
    ) -> EncodeResult:
        audio = Path(audio_path)
        image = Path(image_path)
        output = Path(output_path)
        for source in (audio, image):
            if not source.is_file():
                raise EncodingError(f"Input file not found: {source}")
        await run_in_threadpool(output.parent.mkdir, parents=True, exist_ok=True)

        command = self.build_command(audio, image, output)
        logger.debug("Running ffmpeg: %s", " ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise EncodingError(f"ffmpeg binary not found: {self._config.ffmpeg_path}") from exc

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        if process.returncode != 0:
            tail = _stderr_tail(stderr.decode("utf-8", errors="replace").splitlines())
            logger.error("ffmpeg exited with %s: %s", process.returncode, tail)
            raise EncodingError(f"ffmpeg exited with code {process.returncode}: {tail}")

        size = output.stat().st_size if output.is_file() else 0
        if size <= 0:
            raise EncodingError(f"ffmpeg produced no output at {output}")
        logger.info("Rendered %s (%s bytes)", output.name, size)
        return EncodeResult(path=output, size_bytes=size)


def _stderr_tail(lines: Sequence[str]) -> str:
    kept = [line.strip() for line in lines if line.strip()]
    return " | ".join(kept[-STDERR_TAIL_LINES:])


__all__ = ["EncodeResult", "EncodingError", "MediaEncoder", "pick_background_image"]
