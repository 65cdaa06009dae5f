"""
Метаданные источника через ffprobe.

Длительность ищется цепочкой стратегий:
1) format.duration
2) максимум duration по всем потокам
3) duration первого видеопотока
Первое положительное значение выигрывает.

Результаты носят рекомендательный характер: ProbeUnavailable не валит задачу.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from media_compressor.common.errors import ExternalToolError, ProbeUnavailable
from media_compressor.common.logging import get_project_logger

from .invoker import ProcessInvoker

log = get_project_logger()


@dataclass(frozen=True)
class VideoProperties:
    width: int
    height: int
    fps: float  # 0, если неизвестно


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def parse_frame_rate(value: Any) -> float:
    """
    "30000/1001" -> 29.97; "25/0" -> 25; "0/0" -> 0; "N/A" -> 0.
    """
    text = str(value or "").strip()
    if not text or text == "N/A":
        return 0.0
    if "/" not in text:
        return _to_float(text)
    num_raw, den_raw = text.split("/", 1)
    num = _to_float(num_raw)
    den = _to_float(den_raw)
    if den != 0:
        return num / den
    if num > 0:
        return num
    return 0.0


class MediaProbe:
    def __init__(
        self,
        invoker: ProcessInvoker,
        *,
        ffprobe_bin: str = "ffprobe",
        timeout_sec: float = 10.0,
    ) -> None:
        self._invoker = invoker
        self._bin = ffprobe_bin
        self._timeout = timeout_sec

    def _probe(self, path: str, *entries: str) -> dict[str, Any]:
        args = ["-v", "error", *entries, "-of", "json", path]
        result = self._invoker.run(self._bin, args, timeout=self._timeout)
        try:
            data = json.loads(result.stdout or "{}")
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------
    # Длительность
    # ------------------------------------------------------------------
    def _format_duration(self, path: str) -> float:
        data = self._probe(path, "-show_entries", "format=duration")
        return _to_float((data.get("format") or {}).get("duration"))

    def _max_stream_duration(self, path: str) -> float:
        data = self._probe(path, "-show_entries", "stream=duration")
        streams = data.get("streams") or []
        return max((_to_float(s.get("duration")) for s in streams), default=0.0)

    def _first_video_duration(self, path: str) -> float:
        data = self._probe(path, "-select_streams", "v:0", "-show_entries", "stream=duration")
        streams = data.get("streams") or []
        return _to_float(streams[0].get("duration")) if streams else 0.0

    def duration(self, path: str) -> float:
        strategies: list[tuple[str, Callable[[str], float]]] = [
            ("format", self._format_duration),
            ("streams", self._max_stream_duration),
            ("video", self._first_video_duration),
        ]
        for name, strategy in strategies:
            try:
                value = strategy(path)
            except ExternalToolError as e:
                log.debug(
                    "probe_duration_strategy_failed",
                    extra={"payload": {"strategy": name, "path": path, "error": e.message}},
                )
                continue
            if value > 0:
                log.debug(
                    "probe_duration",
                    extra={"payload": {"strategy": name, "path": path, "seconds": value}},
                )
                return value
        raise ProbeUnavailable("cannot determine duration", {"path": path})

    # ------------------------------------------------------------------
    # Размеры и частота кадров
    # ------------------------------------------------------------------
    def video_properties(self, path: str) -> VideoProperties:
        try:
            data = self._probe(
                path,
                "-select_streams",
                "v:0",
                "-show_entries",
                "stream=width,height,avg_frame_rate,r_frame_rate",
            )
        except ExternalToolError as e:
            raise ProbeUnavailable(e.message, {"path": path}) from e

        streams = data.get("streams") or []
        stream = streams[0] if streams else {}
        width = _to_int(stream.get("width"))
        height = _to_int(stream.get("height"))
        fps = parse_frame_rate(stream.get("avg_frame_rate"))
        if fps == 0:
            fps = parse_frame_rate(stream.get("r_frame_rate"))

        log.debug(
            "probe_video_properties",
            extra={"payload": {"path": path, "width": width, "height": height, "fps": fps}},
        )
        if width <= 0 or height <= 0:
            raise ProbeUnavailable("no dimensions", {"path": path, "fps": fps})
        return VideoProperties(width=width, height=height, fps=fps)
