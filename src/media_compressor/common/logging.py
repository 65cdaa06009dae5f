"""
Логирование media-compressor.

События сервиса идут в логгер "media-compressor" (snake_case сообщения,
поля в extra={"payload": {...}}). Вывод внешних утилит идёт в дочерние
логгеры "media-compressor.tools.<утилита>": stderr ffmpeg/ffprobe/yt-dlp
видно только при TOOL_DIAGNOSTICS=true.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import PurePath
from typing import Any

from media_compressor.common.config import get_settings


TOOLS_LOGGER = "media-compressor.tools"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        extra_payload = getattr(record, "payload", None)
        if isinstance(extra_payload, dict):
            payload["payload"] = extra_payload
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _build_formatter() -> logging.Formatter:
    s = get_settings()
    if (s.log_format or "").lower() == "text":
        return logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return JsonFormatter()


def setup_logging() -> None:
    s = get_settings()
    root = logging.getLogger()
    level = getattr(logging, (s.log_level or "INFO").upper(), logging.INFO)
    root.setLevel(level)

    # Не плодим хэндлеры при повторном вызове
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter())
    root.addHandler(handler)

    tools_level = logging.DEBUG if s.tool_diagnostics else logging.WARNING
    logging.getLogger(TOOLS_LOGGER).setLevel(tools_level)

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)


def get_project_logger(name: str = "media-compressor") -> logging.Logger:
    return logging.getLogger(name)


def get_tools_logger(tool: str) -> logging.Logger:
    """
    Логгер вывода конкретной утилиты: "/usr/bin/ffmpeg" -> "media-compressor.tools.ffmpeg".
    """
    name = PurePath(tool).name or "unknown"
    return logging.getLogger(f"{TOOLS_LOGGER}.{name}")
