"""
Декодеры прогресса внешних утилит.

Чистые функции над одной строкой вывода: вернуть процент или None,
если строка не несёт маркера прогресса.

- ffmpeg (-progress pipe:1): строки key=value, используем только out_time_ms
- yt-dlp (--newline): человекочитаемые строки вида "[download]  37.5% of 10.00MiB"
"""

from __future__ import annotations

import re

TRANSCODE_MARKER = "out_time_ms="

# Пока процесс работает, 100 не показываем: его пишем только после успешного выхода.
TRANSCODE_RUNNING_CAP = 99

# Длительность неизвестна: консервативная оценка "90% за две минуты".
HEURISTIC_WINDOW_SEC = 120.0
HEURISTIC_CAP = 90

_FETCH_PERCENT_RE = re.compile(r"(\d{1,3}\.\d+)%", re.IGNORECASE)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def decode_transcode_progress(line: str, duration_sec: float | None) -> int | None:
    text = line.strip()
    if not text.startswith(TRANSCODE_MARKER):
        return None
    raw = text[len(TRANSCODE_MARKER):].strip()
    try:
        micros = float(raw)
    except ValueError:
        # ffmpeg пишет out_time_ms=N/A до первого кадра
        return None

    seconds = micros / 1_000_000
    if duration_sec and duration_sec > 0:
        pct = int(seconds / duration_sec * 100 + 0.5)
        return _clamp(pct, 0, TRANSCODE_RUNNING_CAP)

    pct = int(seconds / HEURISTIC_WINDOW_SEC * HEURISTIC_CAP)
    return _clamp(pct, 0, HEURISTIC_CAP)


def decode_fetch_progress(line: str) -> int | None:
    m = _FETCH_PERCENT_RE.search(line)
    if not m:
        return None
    try:
        value = float(m.group(1))
    except ValueError:
        return None
    return _clamp(int(value + 0.5), 0, 100)


class MonotonicPercent:
    """
    Держит процент неубывающим в пределах одной стадии.

    Декодеры stateless, а утилиты иногда откатываются
    (например, yt-dlp качает видео и аудио дорожки по очереди).
    """

    def __init__(self, start: int = 0) -> None:
        self.value = start

    def update(self, pct: int) -> int:
        if pct > self.value:
            self.value = pct
        return self.value
