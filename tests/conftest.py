"""Shared pytest fixtures for termreel tests."""
import io
import logging
from pathlib import Path
from typing import Callable, Optional

import pytest

from termreel.config import PlaybackConfig
from termreel.playback.terminal import TerminalRenderer

from tests.fixtures.conftest import (
    check_ffmpeg_available,
    fake_renderer_command,
    generate_test_video_ffmpeg,
)


# ============================================================================
# Session-scoped fixtures for integration tests
# ============================================================================

@pytest.fixture(scope="session")
def has_ffmpeg() -> bool:
    return check_ffmpeg_available()


@pytest.fixture(scope="session")
def test_video_3s(tmp_path_factory, has_ffmpeg) -> Optional[Path]:
    """Generate a 3-second test video with sound.

    Returns None if ffmpeg is not available.
    """
    if not has_ffmpeg:
        return None
    path = tmp_path_factory.mktemp("videos") / "test_video_3s.mp4"
    if not generate_test_video_ffmpeg(path, duration_seconds=3.0):
        return None
    return path


# ============================================================================
# Function-scoped fixtures
# ============================================================================

@pytest.fixture
def video_file(tmp_path) -> Path:
    """A file that passes input validation; its content is never decoded."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path


@pytest.fixture
def make_config(video_file) -> Callable[..., PlaybackConfig]:
    """Factory for silent configs driven by the fake renderer.

    Keyword arguments override config fields; ``frames``, ``delay`` and
    ``exit_code`` configure the fake renderer.
    """
    def factory(frames: int = 5, delay: float = 0.0, exit_code: int = 0, **overrides) -> PlaybackConfig:
        kwargs = {
            "input_path": video_file,
            "fps": 200,
            "sound": False,
            "grace_period": 1.0,
            "renderer_command": fake_renderer_command(frames, delay, exit_code),
        }
        kwargs.update(overrides)
        return PlaybackConfig(**kwargs)

    return factory


@pytest.fixture
def terminal_stream() -> io.BytesIO:
    return io.BytesIO()


@pytest.fixture
def terminal(terminal_stream) -> TerminalRenderer:
    return TerminalRenderer(terminal_stream, alt_screen=True)


@pytest.fixture(autouse=True)
def reset_termreel_logging():
    """Drop handlers installed by a test so they don't outlive captured streams."""
    yield
    root = logging.getLogger("termreel")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    root.setLevel(logging.NOTSET)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("termreel."):
            logging.getLogger(name).setLevel(logging.NOTSET)
