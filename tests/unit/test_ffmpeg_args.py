from __future__ import annotations

from media_compressor.domain.enums import Operation
from media_compressor.media.ffmpeg import (
    FfmpegRunner,
    build_transform_args,
    jpeg_qscale,
    png_compression_level,
)


def _args(op: Operation, out: str, **kw) -> list[str]:
    params = {"crf": 28, "width": 0, "fps": 0, "quality": 0, "audio_bitrate": "128k"}
    params.update(kw)
    return build_transform_args(op, "in.mp4", out, **params)


def test_compress_mp4() -> None:
    args = _args(Operation.video_compress, "out.mp4", width=1280, fps=24)
    assert args[:2] == ["-i", "in.mp4"]
    assert "scale='min(1280,iw)':-2" in args
    assert args[args.index("-r") + 1] == "24"
    assert args[args.index("-c:v") + 1] == "libx265"
    assert args[args.index("-crf") + 1] == "28"
    assert "-pix_fmt" in args
    assert args[-1] == "out.mp4"


def test_compress_webm_uses_vp9_opus() -> None:
    args = _args(Operation.video_compress, "out.webm")
    assert args[args.index("-c:v") + 1] == "libvpx-vp9"
    assert args[args.index("-c:a") + 1] == "libopus"
    assert "-pix_fmt" not in args
    assert "-vf" not in args


def test_gif_filters() -> None:
    assert _args(Operation.video_to_gif, "o.gif", fps=10, width=320)[3] == (
        "fps=10,scale='min(320,iw)':-1:flags=lanczos"
    )
    assert _args(Operation.video_to_gif, "o.gif")[3] == "scale=iw:-1:flags=lanczos"


def test_audio_args() -> None:
    args = _args(Operation.video_to_audio, "o.mp3", audio_bitrate="192k")
    assert args == ["-i", "in.mp4", "-vn", "-c:a", "libmp3lame", "-b:a", "192k", "o.mp3"]


def test_image_quality_mapping() -> None:
    assert jpeg_qscale(100) == 2
    assert jpeg_qscale(1) == 31
    assert 2 <= jpeg_qscale(80) <= 10
    assert png_compression_level(0) == 9
    assert png_compression_level(100) == 1

    jpg = _args(Operation.image_compress, "o.jpg", quality=80)
    assert jpg[jpg.index("-q:v") + 1] == str(jpeg_qscale(80))
    assert "-q:v" not in _args(Operation.image_compress, "o.jpg", quality=0)
    png = _args(Operation.image_compress, "o.png", quality=60)
    assert png[png.index("-compression_level") + 1] == "4"


class _FakeInvoker:
    def __init__(self, lines: list[str]) -> None:
        self.lines = lines
        self.calls: list[tuple[str, list[str]]] = []

    def stream(self, tool, args, *, label=""):
        self.calls.append((tool, args))
        yield from self.lines


def test_runner_reports_each_progress_line() -> None:
    inv = _FakeInvoker(
        ["frame=1", "out_time_ms=N/A", "out_time_ms=2000000", "progress=continue", "out_time_ms=5000000"]
    )
    seen: list[int] = []
    FfmpegRunner(inv, ffmpeg_bin="ff").run_with_progress(
        ["-i", "a", "b"], duration_sec=10.0, on_percent=seen.append
    )
    assert seen == [20, 50]
    tool, args = inv.calls[0]
    assert tool == "ff"
    assert args[:4] == ["-y", "-progress", "pipe:1", "-nostats"]
