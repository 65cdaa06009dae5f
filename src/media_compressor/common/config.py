"""
Централизованная конфигурация сервиса (ENV / .env).

Важно:
- настройки читаются из .env и переменных окружения
- типизированные значения через pydantic-settings
- любое поле можно передать файлом: <ENV_KEY>_FILE=/run/secrets/...
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_work_dir() -> str:
    return str(Path(tempfile.gettempdir()) / "app")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    # -------------------------------------------------------------------------
    # Runtime
    # -------------------------------------------------------------------------
    app_env: str = Field(default="dev", alias="APP_ENV")
    service_name: str = Field(default="api-gateway", alias="SERVICE_NAME")
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=3000, alias="API_PORT")

    # -------------------------------------------------------------------------
    # Status store
    # -------------------------------------------------------------------------
    redis_url: str | None = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    task_ttl_sec: int = Field(default=30 * 60, alias="TASK_TTL_SEC")

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------
    uploads_dir: str = Field(default="./uploads", alias="UPLOADS_DIR")
    work_dir: str = Field(default_factory=_default_work_dir, alias="WORK_DIR")
    max_workers: int = Field(default=4, alias="MAX_WORKERS")
    audio_bitrate: str = Field(default="128k", alias="AUDIO_BITRATE")

    # -------------------------------------------------------------------------
    # External tools
    # -------------------------------------------------------------------------
    ffmpeg_bin: str = Field(default="ffmpeg", alias="FFMPEG_BIN")
    ffprobe_bin: str = Field(default="ffprobe", alias="FFPROBE_BIN")
    ytdlp_bin: str = Field(default="yt-dlp", alias="YT_DLP")
    proxy: str = Field(default="", alias="PROXY")
    probe_timeout_sec: float = Field(default=10.0, alias="PROBE_TIMEOUT_SEC")
    fetch_resolve_timeout_sec: float = Field(default=60.0, alias="FETCH_RESOLVE_TIMEOUT_SEC")
    info_timeout_sec: float = Field(default=15.0, alias="INFO_TIMEOUT_SEC")
    tool_diagnostics: bool = Field(default=False, alias="TOOL_DIAGNOSTICS")

    # -------------------------------------------------------------------------
    # Cleanup (reaper)
    # -------------------------------------------------------------------------
    cleanup_minutes: int = Field(default=5, alias="CLEANUP_MINUTES")  # <=0 отключает
    cleanup_interval_sec: int = Field(default=60, alias="CLEANUP_INTERVAL_SEC")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")  # json|text

    @field_validator("proxy", mode="before")
    @classmethod
    def _strip_proxy(cls, value: object) -> str:
        return str(value or "").strip()

    def model_post_init(self, __context) -> None:
        _apply_file_overrides(self)


def _apply_file_overrides(settings: Settings) -> None:
    alias_to_field = {}
    for name, field in type(settings).model_fields.items():
        alias = field.alias or name
        alias_to_field[str(alias)] = name
        alias_to_field[str(name)] = name

    for key, path in os.environ.items():
        if not key.endswith("_FILE"):
            continue
        base = key[: -len("_FILE")]
        target = alias_to_field.get(base)
        if not target:
            continue
        file_path = (path or "").strip()
        if not file_path:
            continue
        try:
            raw = Path(file_path).read_text(encoding="utf-8")
        except Exception as e:
            logging.getLogger("media-compressor").error(
                "config_file_read_failed",
                extra={"payload": {"env_key": key, "path": file_path, "error": str(e)[:200]}},
            )
            raise RuntimeError(f"Failed to read {key} from {file_path}") from e
        setattr(settings, target, (raw or "").strip())


_SETTINGS = Settings()


def get_settings() -> Settings:
    return _SETTINGS
