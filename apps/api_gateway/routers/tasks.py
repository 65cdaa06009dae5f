"""
Задачи конвертации: приём заявки и опрос статуса.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel

from apps.api_gateway.deps import get_orchestrator
from media_compressor.common.errors import ValidationError
from media_compressor.common.logging import get_project_logger
from media_compressor.services.params import DEFAULT_CRF, JobRequest

log = get_project_logger()
router = APIRouter()


class UploadResponse(BaseModel):
    task_id: str


def _as_int(raw: str | None, default: int = 0) -> int:
    # форма отдаёт строки; пустое или мусор → значение по умолчанию
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return default


@router.post("/upload", response_model=UploadResponse)
def upload(
    operation: str = Form(..., alias="type"),
    crf: str | None = Form(default=None),
    width: str | None = Form(default=None),
    fps: str | None = Form(default=None),
    quality: str | None = Form(default=None),
    img_format: str | None = Form(default=None),
    url: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
) -> UploadResponse:
    orchestrator = get_orchestrator()
    source_url = (url or "").strip() or None
    source_path: Path | None = None
    source_name: str | None = None
    task_id: str | None = None

    if source_url is None:
        source_name = Path((file.filename if file is not None else "") or "").name
        if file is None or not source_name:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="file or url is required",
            )
        try:
            # файл сразу в рабочую директорию задачи: reaper её не видит, /uploads не раздаёт
            task_id, source_path = orchestrator.stage_upload(file.file, source_name)
        except OSError as e:
            log.error("upload_save_failed", extra={"payload": {"error": str(e)[:200]}})
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="failed to save file",
            ) from e

    try:
        request = JobRequest(
            operation=operation.strip(),
            source_path=source_path,
            source_url=source_url,
            source_name=source_name,
            crf=_as_int(crf, DEFAULT_CRF) or DEFAULT_CRF,
            width=max(0, _as_int(width)),
            fps=max(0, _as_int(fps)),
            quality=max(0, _as_int(quality)),
            image_format=(img_format or "").strip().lower() or None,
        )
    except ValidationError as e:
        if task_id is not None:
            orchestrator.discard(task_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e

    task_id = orchestrator.submit(request, task_id=task_id)
    return UploadResponse(task_id=task_id)


@router.get("/status/{task_id}")
def get_status(task_id: str) -> dict:
    record = get_orchestrator().get_status(task_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    return record.to_dict()
