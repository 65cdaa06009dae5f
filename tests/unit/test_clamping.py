from __future__ import annotations

from pathlib import Path

import pytest

from media_compressor.common.errors import ValidationError
from media_compressor.domain.enums import Operation
from media_compressor.media.probe import VideoProperties
from media_compressor.services.params import JobRequest, clamp_to_source


def test_width_capped_to_source() -> None:
    props = VideoProperties(width=1920, height=1080, fps=30.0)
    assert clamp_to_source(4000, 0, props) == (1920, 0)
    assert clamp_to_source(640, 0, props) == (640, 0)


def test_fps_capped_and_rounded_down() -> None:
    props = VideoProperties(width=1920, height=1080, fps=30000 / 1001)
    assert clamp_to_source(0, 60, props) == (0, 29)
    assert clamp_to_source(0, 24, props) == (0, 24)


def test_fps_floor_is_one() -> None:
    props = VideoProperties(width=320, height=240, fps=0.5)
    assert clamp_to_source(0, 10, props) == (0, 1)


def test_unknown_source_fps_keeps_request() -> None:
    props = VideoProperties(width=320, height=240, fps=0.0)
    assert clamp_to_source(0, 60, props) == (0, 60)


def test_nothing_requested_nothing_changed() -> None:
    props = VideoProperties(width=320, height=240, fps=25.0)
    assert clamp_to_source(0, 0, props) == (0, 0)


def test_request_requires_exactly_one_source(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        JobRequest(operation=Operation.video_compress)
    with pytest.raises(ValidationError):
        JobRequest(
            operation=Operation.video_compress,
            source_path=tmp_path / "a.mp4",
            source_url="https://example.com/v",
        )


def test_request_rejects_unknown_operation() -> None:
    with pytest.raises(ValidationError):
        JobRequest(operation="video_to_png", source_url="https://example.com/v")


def test_request_normalizes_source_name(tmp_path: Path) -> None:
    req = JobRequest(
        operation="image_compress",
        source_path=tmp_path / ".upload-1-x.jpg",
        source_name="../../etc/x.jpg",
    )
    assert req.operation == Operation.image_compress
    assert req.source_name == "x.jpg"


def test_wants_clamping_depends_on_operation() -> None:
    url = "https://example.com/v"
    assert JobRequest(operation="video_compress", source_url=url, width=100).wants_clamping
    assert JobRequest(operation="video_to_gif", source_url=url, fps=10).wants_clamping
    assert not JobRequest(operation="video_to_audio", source_url=url, width=100).wants_clamping
    assert not JobRequest(operation="image_compress", source_url=url, fps=10).wants_clamping
    assert not JobRequest(operation="video_compress", source_url=url).wants_clamping
