from __future__ import annotations

import json

from fastapi import APIRouter, HTTPException, status

from apps.api_gateway.deps import get_fetcher
from media_compressor.common.errors import ExternalToolError
from media_compressor.common.logging import get_project_logger

log = get_project_logger()
router = APIRouter()


@router.get("/info")
def media_info(url: str | None = None) -> dict:
    """Метаданные по URL без загрузки (title, ext, format, размеры, fps, битрейт)."""
    target = (url or "").strip()
    if not target:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="url is required")

    try:
        info = get_fetcher().fetch_info(target)
    except ExternalToolError as e:
        log.warning("info_fetch_failed", extra={"payload": {"url": target, "error": e.message}})
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="failed to fetch info"
        ) from e
    except (json.JSONDecodeError, ValueError) as e:
        log.warning("info_parse_failed", extra={"payload": {"url": target, "error": str(e)[:200]}})
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="invalid info format"
        ) from e
    return info.to_dict()
