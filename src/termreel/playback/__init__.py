"""Dual-process playback: renderer and audio subprocesses, frame pipeline."""

from .launcher import launch, launch_audio, resolve_geometry, build_custom_command
from .painter import FrameGeometry, FramePainter
from .process import SubprocessHandle
from .reader import (
    DelimiterSegmenter,
    FixedSizeSegmenter,
    FrameSegmenter,
    FrameStreamReader,
    FrameUnit,
)
from .scheduler import FrameScheduler
from .session import PlaybackSession, SessionState
from .supervisor import PlaybackResult, PlaybackSupervisor
from .terminal import TerminalRenderer

__all__ = [
    "launch",
    "launch_audio",
    "resolve_geometry",
    "build_custom_command",
    "FrameGeometry",
    "FramePainter",
    "SubprocessHandle",
    "DelimiterSegmenter",
    "FixedSizeSegmenter",
    "FrameSegmenter",
    "FrameStreamReader",
    "FrameUnit",
    "FrameScheduler",
    "PlaybackSession",
    "SessionState",
    "PlaybackResult",
    "PlaybackSupervisor",
    "TerminalRenderer",
]
