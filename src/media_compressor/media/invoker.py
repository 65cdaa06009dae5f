"""
Запуск внешних утилит (ffmpeg / ffprobe / yt-dlp).

Два режима:
- run(): короткие метаданные-вызовы с дедлайном, вывод целиком
- stream(): длинные операции, stdout построчно; stderr вычитывается
  в отдельном потоке, чтобы процесс не блокировался на полном пайпе

Ненулевой код выхода, таймаут или отсутствие бинарника → ExternalToolError.
"""

from __future__ import annotations

import subprocess
import threading
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass

from media_compressor.common.errors import ExternalToolError
from media_compressor.common.logging import get_project_logger, get_tools_logger

log = get_project_logger()

_STDERR_TAIL_LINES = 20


@dataclass
class ToolResult:
    stdout: str
    stderr: str
    returncode: int


def _last_line(lines) -> str:
    for line in reversed(list(lines)):
        text = line.strip()
        if text:
            return text[:300]
    return ""


class ProcessInvoker:
    def __init__(self, *, diagnostics: bool = False) -> None:
        self.diagnostics = diagnostics

    def run(self, tool: str, args: list[str], *, timeout: float | None = None) -> ToolResult:
        cmd = [tool, *args]
        log.debug("tool_run", extra={"payload": {"cmd": cmd, "timeout": timeout}})
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(tool=tool, args=args, returncode=None, timed_out=True) from e
        except OSError as e:
            raise ExternalToolError(
                tool=tool, args=args, returncode=None, stderr_tail=str(e)[:200]
            ) from e

        if self.diagnostics and proc.stderr:
            tools_log = get_tools_logger(tool)
            for line in proc.stderr.splitlines():
                tools_log.info(line, extra={"payload": {"tool": tool}})

        if proc.returncode != 0:
            raise ExternalToolError(
                tool=tool,
                args=args,
                returncode=proc.returncode,
                stderr_tail=_last_line(proc.stderr.splitlines()),
            )
        return ToolResult(stdout=proc.stdout, stderr=proc.stderr, returncode=proc.returncode)

    def stream(self, tool: str, args: list[str], *, label: str = "") -> Iterator[str]:
        """
        Построчный stdout процесса. Последовательность конечна: заканчивается,
        когда процесс закрывает stdout. После этого ждём выхода и поднимаем
        ExternalToolError при ненулевом коде. Если потребитель закрыл генератор
        раньше времени, процесс убивается.
        """
        cmd = [tool, *args]
        log.info("tool_stream_started", extra={"payload": {"tool": tool, "input": label}})
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            raise ExternalToolError(
                tool=tool, args=args, returncode=None, stderr_tail=str(e)[:200]
            ) from e

        tail: deque[str] = deque(maxlen=_STDERR_TAIL_LINES)
        drainer = threading.Thread(
            target=self._drain_stderr,
            args=(proc, tail, tool, label),
            name=f"{tool}-stderr",
            daemon=True,
        )
        drainer.start()

        returncode: int | None = None
        try:
            for line in proc.stdout or ():
                yield line.rstrip("\r\n")
            returncode = proc.wait()
        finally:
            if returncode is None and proc.poll() is None:
                proc.kill()
            proc.wait()
            drainer.join(timeout=2)
            if proc.stdout is not None:
                proc.stdout.close()

        if returncode != 0:
            raise ExternalToolError(
                tool=tool, args=args, returncode=returncode, stderr_tail=_last_line(tail)
            )
        log.info("tool_stream_finished", extra={"payload": {"tool": tool, "input": label}})

    def _drain_stderr(self, proc: subprocess.Popen, tail: deque[str], tool: str, label: str) -> None:
        if proc.stderr is None:
            return
        tools_log = get_tools_logger(tool)
        try:
            for line in proc.stderr:
                text = line.rstrip("\r\n")
                tail.append(text)
                if self.diagnostics:
                    tools_log.info(text, extra={"payload": {"tool": tool, "input": label}})
        except ValueError:
            # пайп закрыт при kill
            return
        finally:
            proc.stderr.close()
