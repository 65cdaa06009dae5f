"""
Загрузка по URL через yt-dlp.

- resolve_filename: "--get-filename" с дедлайном (метаданные)
- download: загрузка с прогрессом ("--newline", одна строка на тик)
- fetch_info: нормализованные метаданные без загрузки (для /info)
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from media_compressor.common.logging import get_project_logger

from .invoker import ProcessInvoker
from .progress import decode_fetch_progress

log = get_project_logger()

OUTPUT_TEMPLATE = "%(title)s.%(ext)s"


@dataclass
class MediaInfo:
    title: str
    ext: str
    format: str
    filesize: float
    duration: float
    width: float
    height: float
    fps: float
    bitrate: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _pick_num(data: dict[str, Any], *keys: str) -> float:
    for key in keys:
        value = data.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, int | float):
            return float(value)
    return 0.0


def parse_info(raw: dict[str, Any]) -> MediaInfo:
    # --dump-single-json для плейлиста отдаёт обёртку с entries: берём первый элемент
    entries = raw.get("entries")
    if isinstance(entries, list) and entries and isinstance(entries[0], dict):
        raw = entries[0]

    fmt = raw.get("format") or raw.get("format_id") or ""
    return MediaInfo(
        title=str(raw.get("title") or ""),
        ext=str(raw.get("ext") or ""),
        format=str(fmt),
        filesize=_pick_num(raw, "filesize", "filesize_approx"),
        duration=_pick_num(raw, "duration"),
        width=_pick_num(raw, "width"),
        height=_pick_num(raw, "height"),
        fps=_pick_num(raw, "fps"),
        bitrate=_pick_num(raw, "tbr"),
    )


def _largest_file(directory: Path) -> Path | None:
    candidates = [
        p for p in directory.iterdir() if p.is_file() and not p.name.endswith((".part", ".ytdl"))
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_size)


class YtDlpClient:
    def __init__(
        self,
        invoker: ProcessInvoker,
        *,
        ytdlp_bin: str = "yt-dlp",
        proxy: str = "",
        resolve_timeout_sec: float = 60.0,
        info_timeout_sec: float = 15.0,
    ) -> None:
        self._invoker = invoker
        self._bin = ytdlp_bin
        self._proxy = (proxy or "").strip()
        self._resolve_timeout = resolve_timeout_sec
        self._info_timeout = info_timeout_sec

    def _with_proxy(self, args: list[str]) -> list[str]:
        if self._proxy:
            return ["--proxy", self._proxy, *args]
        return args

    def resolve_filename(self, url: str, job_dir: Path) -> Path:
        pattern = str(job_dir / OUTPUT_TEMPLATE)
        args = self._with_proxy(
            ["--get-filename", "--no-playlist", "-o", pattern, "--restrict-filenames", url]
        )
        result = self._invoker.run(self._bin, args, timeout=self._resolve_timeout)
        lines = [ln.strip() for ln in result.stdout.splitlines() if ln.strip()]
        if not lines:
            raise FileNotFoundError(f"yt-dlp returned no filename for {url}")
        return Path(lines[0])

    def download(self, url: str, job_dir: Path, *, on_percent: Callable[[int], None]) -> Path:
        """
        Скачивает URL в job_dir и возвращает путь к файлу.
        on_percent вызывается на каждую строку с процентом.
        """
        expected = self.resolve_filename(url, job_dir)
        pattern = str(job_dir / OUTPUT_TEMPLATE)
        args = self._with_proxy(
            ["--no-playlist", "-o", pattern, "--restrict-filenames", "--newline", url]
        )
        for line in self._invoker.stream(self._bin, args, label=url):
            pct = decode_fetch_progress(line)
            if pct is not None:
                on_percent(pct)

        if expected.is_file():
            return expected
        # после merge форматов расширение может отличаться от предсказанного
        actual = _largest_file(job_dir)
        if actual is None:
            raise FileNotFoundError(f"downloaded file not found: {expected.name}")
        log.info(
            "ytdlp_filename_mismatch",
            extra={"payload": {"expected": expected.name, "actual": actual.name}},
        )
        return actual

    def fetch_info(self, url: str) -> MediaInfo:
        args = self._with_proxy(["--dump-single-json", "--no-playlist", "--skip-download", url])
        result = self._invoker.run(self._bin, args, timeout=self._info_timeout)
        raw = json.loads(result.stdout)
        if not isinstance(raw, dict):
            raise ValueError("invalid info format")
        return parse_info(raw)
