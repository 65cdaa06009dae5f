"""
Имена итоговых файлов.

- video_compress  → compressed_<name>
- video_to_gif    → <stem>.gif
- video_to_audio  → <stem>.mp3
- image_compress  → compressed_<name> или compressed_<stem><.jpg|.png> по подсказке формата
"""

from __future__ import annotations

from pathlib import PurePath

from media_compressor.domain.enums import Operation

_IMAGE_FORMAT_EXT = {
    "jpg": ".jpg",
    "jpeg": ".jpg",
    "png": ".png",
}


def image_target_ext(hint: str | None) -> str | None:
    """Нераспознанная подсказка → None (расширение исходника сохраняется)."""
    return _IMAGE_FORMAT_EXT.get((hint or "").strip().lower())


def _stem(name: str) -> str:
    suffix = PurePath(name).suffix
    return name[: -len(suffix)] if suffix else name


def output_name(operation: Operation, source_name: str, image_format: str | None = None) -> str:
    op = Operation(operation)
    if op == Operation.video_compress:
        return f"compressed_{source_name}"
    if op == Operation.video_to_gif:
        return f"{_stem(source_name)}.gif"
    if op == Operation.video_to_audio:
        return f"{_stem(source_name)}.mp3"
    target_ext = image_target_ext(image_format)
    if target_ext is None:
        return f"compressed_{source_name}"
    return f"compressed_{_stem(source_name)}{target_ext}"
