"""termreel - play videos in the terminal as ASCII/ANSI art with optional sound."""
__version__ = "0.4.0"

from .config import PlaybackConfig

from .exceptions import (
    TermreelError,
    ConfigurationError,
    ConfigError,
    LaunchError,
    AudioLaunchError,
    StreamError,
)

from .playback import (
    FrameUnit,
    FrameStreamReader,
    FrameScheduler,
    TerminalRenderer,
    SubprocessHandle,
    PlaybackSession,
    PlaybackSupervisor,
    PlaybackResult,
    SessionState,
    launch,
)

from .utils.logging import (
    LogConfig,
    configure_logging,
    get_logger,
)

__all__ = [
    "__version__",
    "PlaybackConfig",
    "TermreelError",
    "ConfigurationError",
    "ConfigError",
    "LaunchError",
    "AudioLaunchError",
    "StreamError",
    "FrameUnit",
    "FrameStreamReader",
    "FrameScheduler",
    "TerminalRenderer",
    "SubprocessHandle",
    "PlaybackSession",
    "PlaybackSupervisor",
    "PlaybackResult",
    "SessionState",
    "launch",
    "LogConfig",
    "configure_logging",
    "get_logger",
]
