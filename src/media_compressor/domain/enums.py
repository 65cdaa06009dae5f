"""
Доменные перечисления (enum).

Используются во всей системе:
- статус задачи и её стадия
- тип операции конвертации
- состояние машины состояний задачи
"""

from __future__ import annotations

import enum


class TaskStatus(str, enum.Enum):
    """
    Статус задачи, видимый клиенту.
    """

    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.completed, TaskStatus.failed)


class TaskStage(str, enum.Enum):
    """
    Грубая фаза задачи (имеет смысл только пока задача в processing).
    """

    init = "init"
    download = "download"
    transcode = "transcode"
    finalize = "finalize"


class Operation(str, enum.Enum):
    """
    Тип конвертации.
    """

    video_compress = "video_compress"
    video_to_gif = "video_to_gif"
    video_to_audio = "video_to_audio"
    image_compress = "image_compress"


class JobState(str, enum.Enum):
    """
    Внутреннее состояние фоновой работы по задаче.
    """

    created = "created"
    fetching = "fetching"
    acquired = "acquired"
    transforming = "transforming"
    finalized = "finalized"
    failed = "failed"
