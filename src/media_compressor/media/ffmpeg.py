"""
Аргументы ffmpeg для четырёх преобразований и запуск с прогрессом.

Каждый запуск идёт с "-y -progress pipe:1 -nostats": машиночитаемый
прогресс в stdout, stderr только для диагностики.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from media_compressor.domain.enums import Operation

from .invoker import ProcessInvoker
from .progress import decode_transcode_progress

PROGRESS_FLAGS = ["-y", "-progress", "pipe:1", "-nostats"]


def _scale_min_width(width: int, height_expr: str) -> str:
    return f"scale='min({width},iw)':{height_expr}"


def compress_args(input_path: str, output_path: str, *, crf: int, width: int, fps: int) -> list[str]:
    args = ["-i", input_path]
    if width > 0:
        args += ["-vf", _scale_min_width(width, "-2")]
    if fps > 0:
        args += ["-r", str(fps)]

    codec, audio_codec = "libx265", "aac"
    is_webm = Path(output_path).suffix.lower() == ".webm"
    if is_webm:
        codec, audio_codec = "libvpx-vp9", "libopus"

    args += ["-c:v", codec, "-preset", "slow", "-crf", str(crf)]
    if not is_webm:
        args += ["-pix_fmt", "yuv420p"]
    args += ["-c:a", audio_codec, "-b:a", "96k", output_path]
    return args


def gif_args(input_path: str, output_path: str, *, width: int, fps: int) -> list[str]:
    scale = "scale=iw:-1:flags=lanczos"
    if width > 0:
        scale = _scale_min_width(width, "-1:flags=lanczos")
    vf = f"fps={fps},{scale}" if fps > 0 else scale
    return ["-i", input_path, "-vf", vf, output_path]


def audio_args(input_path: str, output_path: str, *, bitrate: str) -> list[str]:
    return ["-i", input_path, "-vn", "-c:a", "libmp3lame", "-b:a", bitrate, output_path]


def jpeg_qscale(quality: int) -> int:
    """Качество 1..100 → -q:v 31..2 (у mjpeg меньше = лучше)."""
    q = 31 - round(max(0, min(100, quality)) * 29 / 100)
    return max(2, min(31, q))


def png_compression_level(quality: int) -> int:
    return max(0, min(9, 9 - quality // 12))


def image_args(input_path: str, output_path: str, *, quality: int, width: int) -> list[str]:
    args = ["-i", input_path]
    if width > 0:
        args += ["-vf", _scale_min_width(width, "-2")]
    ext = Path(output_path).suffix.lower()
    if ext in (".jpg", ".jpeg") and quality > 0:
        args += ["-q:v", str(jpeg_qscale(quality))]
    elif ext == ".png":
        args += ["-compression_level", str(png_compression_level(quality))]
    elif ext == ".webp" and quality > 0:
        args += ["-quality", str(min(100, quality))]
    args.append(output_path)
    return args


def build_transform_args(
    operation: Operation,
    input_path: str,
    output_path: str,
    *,
    crf: int,
    width: int,
    fps: int,
    quality: int,
    audio_bitrate: str,
) -> list[str]:
    if operation == Operation.video_compress:
        return compress_args(input_path, output_path, crf=crf, width=width, fps=fps)
    if operation == Operation.video_to_gif:
        return gif_args(input_path, output_path, width=width, fps=fps)
    if operation == Operation.video_to_audio:
        return audio_args(input_path, output_path, bitrate=audio_bitrate)
    if operation == Operation.image_compress:
        return image_args(input_path, output_path, quality=quality, width=width)
    raise ValueError(f"unsupported operation: {operation}")


class FfmpegRunner:
    def __init__(self, invoker: ProcessInvoker, *, ffmpeg_bin: str = "ffmpeg") -> None:
        self._invoker = invoker
        self._bin = ffmpeg_bin

    def run_with_progress(
        self,
        args: list[str],
        *,
        duration_sec: float | None,
        on_percent: Callable[[int], None],
        label: str = "",
    ) -> None:
        """
        Один вызов on_percent на каждую строку out_time_ms=.
        Ненулевой код выхода поднимается как ExternalToolError.
        """
        for line in self._invoker.stream(self._bin, [*PROGRESS_FLAGS, *args], label=label):
            pct = decode_transcode_progress(line, duration_sec)
            if pct is not None:
                on_percent(pct)
