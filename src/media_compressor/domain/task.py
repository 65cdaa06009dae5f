"""
Запись статуса задачи.

Правила:
- ровно одно из: completed + output_file, failed + error, pending/processing
- отсутствующие необязательные поля не сериализуются (не null)
- completed всегда означает percent=100
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .enums import TaskStage, TaskStatus


@dataclass(frozen=True)
class TaskRecord:
    id: str
    status: TaskStatus
    stage: TaskStage | None = None
    percent: int | None = None
    output_file: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        status = TaskStatus(self.status)
        object.__setattr__(self, "status", status)
        if self.stage is not None:
            object.__setattr__(self, "stage", TaskStage(self.stage))

        if status == TaskStatus.completed:
            if not self.output_file or self.error:
                raise ValueError("completed task requires output_file and no error")
            object.__setattr__(self, "percent", 100)
        elif status == TaskStatus.failed:
            if not self.error or self.output_file:
                raise ValueError("failed task requires error and no output_file")
        elif self.output_file or self.error:
            raise ValueError(f"{status.value} task cannot carry output_file or error")

        if self.percent is not None:
            object.__setattr__(self, "percent", max(0, min(100, int(self.percent))))

    # ------------------------------------------------------------------
    # Конструкторы для типовых переходов
    # ------------------------------------------------------------------
    @classmethod
    def pending(cls, task_id: str) -> TaskRecord:
        return cls(id=task_id, status=TaskStatus.pending, stage=TaskStage.init, percent=0)

    @classmethod
    def processing(cls, task_id: str, stage: TaskStage, percent: int = 0) -> TaskRecord:
        return cls(id=task_id, status=TaskStatus.processing, stage=stage, percent=percent)

    @classmethod
    def completed(cls, task_id: str, output_file: str) -> TaskRecord:
        return cls(
            id=task_id,
            status=TaskStatus.completed,
            stage=TaskStage.finalize,
            percent=100,
            output_file=output_file,
        )

    @classmethod
    def failed(cls, task_id: str, error: str) -> TaskRecord:
        return cls(id=task_id, status=TaskStatus.failed, error=error)

    # ------------------------------------------------------------------
    # Сериализация
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "status": self.status.value}
        if self.error is not None:
            out["error"] = self.error
        if self.output_file is not None:
            out["output_file"] = self.output_file
        if self.stage is not None:
            out["stage"] = self.stage.value
        if self.percent is not None:
            out["percent"] = self.percent
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskRecord:
        percent = data.get("percent")
        return cls(
            id=str(data["id"]),
            status=TaskStatus(data["status"]),
            stage=TaskStage(data["stage"]) if data.get("stage") else None,
            percent=int(percent) if percent is not None else None,
            output_file=data.get("output_file") or None,
            error=data.get("error") or None,
        )
