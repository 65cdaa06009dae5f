"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для HTTP и статусов задач
- единый стиль исключений по проекту
- фазовые ошибки задачи (download / processing) с человекочитаемым текстом
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    VALIDATION = "validation"

    # Внешние утилиты
    EXTERNAL_TOOL = "external_tool"
    PROBE_UNAVAILABLE = "probe_unavailable"

    # Фазы задачи
    FETCH_FAILED = "fetch_failed"
    TRANSFORM_FAILED = "transform_failed"

    # Хранилище статусов
    STORE_WRITE_FAILED = "store_write_failed"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение
    - details: доп. данные
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


class ValidationError(AppError):
    def __init__(self, message: str = "Ошибка валидации", details: dict | None = None) -> None:
        super().__init__(ErrCode.VALIDATION, message, details)


class ExternalToolError(AppError):
    """
    Внешняя утилита завершилась с ошибкой, не уложилась в дедлайн
    или не найдена в PATH.
    """

    def __init__(
        self,
        *,
        tool: str,
        args: list[str],
        returncode: int | None,
        stderr_tail: str = "",
        timed_out: bool = False,
    ) -> None:
        if timed_out:
            message = f"{tool} timed out"
        elif returncode is None:
            message = f"{tool} could not be started"
        else:
            message = f"{tool} exited with status {returncode}"
        if stderr_tail:
            message = f"{message}: {stderr_tail}"
        super().__init__(
            ErrCode.EXTERNAL_TOOL,
            message,
            {"tool": tool, "args": list(args), "returncode": returncode, "timed_out": timed_out},
        )
        self.tool = tool
        self.tool_args = list(args)
        self.returncode = returncode
        self.timed_out = timed_out


class ProbeUnavailable(AppError):
    """Метаданные источника недоступны. Не фатально для задачи."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.PROBE_UNAVAILABLE, message, details)


class TaskPhaseError(AppError):
    """
    Ошибка, завершающая задачу. В статус пишется как "<phase>: <message>".
    """

    phase = "failed"

    def error_text(self) -> str:
        return f"{self.phase}: {self.message}"


class FetchFailed(TaskPhaseError):
    phase = "download failed"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.FETCH_FAILED, message, details)


class TransformFailed(TaskPhaseError):
    phase = "processing failed"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(ErrCode.TRANSFORM_FAILED, message, details)
