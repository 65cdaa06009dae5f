"""
Параметры задачи и их подгонка под свойства источника.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from media_compressor.common.errors import ValidationError
from media_compressor.domain.enums import Operation
from media_compressor.media.probe import VideoProperties

DEFAULT_CRF = 28

# параметры, которые имеет смысл подгонять под источник
_CLAMPS_WIDTH = {Operation.video_compress, Operation.video_to_gif, Operation.image_compress}
_CLAMPS_FPS = {Operation.video_compress, Operation.video_to_gif}


@dataclass
class JobRequest:
    """
    Заявка на конвертацию. Ровно одно из source_path / source_url.
    source_name - исходное имя файла для итогового имени (для загрузки через форму).
    """

    operation: Operation
    source_path: Path | None = None
    source_url: str | None = None
    source_name: str | None = None
    crf: int = DEFAULT_CRF
    width: int = 0
    fps: int = 0
    quality: int = 0
    image_format: str | None = None

    def __post_init__(self) -> None:
        try:
            self.operation = Operation(self.operation)
        except ValueError as e:
            raise ValidationError(f"unknown operation: {self.operation}") from e

        url = (self.source_url or "").strip() or None
        self.source_url = url
        if (self.source_path is None) == (url is None):
            raise ValidationError("exactly one of file or url is required")

        if self.source_path is not None:
            self.source_path = Path(self.source_path)
            if not self.source_name:
                self.source_name = self.source_path.name
        if self.source_name:
            # только базовое имя: путь от клиента в имя не попадает
            self.source_name = Path(self.source_name).name

        if self.width < 0 or self.fps < 0 or self.quality < 0 or self.crf < 0:
            raise ValidationError("numeric parameters must be non-negative")

    @property
    def wants_clamping(self) -> bool:
        return (self.width > 0 and self.operation in _CLAMPS_WIDTH) or (
            self.fps > 0 and self.operation in _CLAMPS_FPS
        )


def clamp_to_source(width: int, fps: int, props: VideoProperties) -> tuple[int, int]:
    """
    width: не больше ширины источника (без апскейла).
    fps: не больше частоты источника, округление вниз, минимум 1.
    """
    if width > 0 and props.width > 0:
        width = min(width, props.width)
    if fps > 0 and props.fps > 0:
        # 29.97 -> 29; допуск гасит 29.999999 от деления 30000/1001-подобных дробей
        source_fps = int(props.fps + 0.0001)
        fps = max(1, min(fps, source_fps))
    return width, fps
