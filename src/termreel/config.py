"""Playback configuration for termreel."""
import codecs
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .exceptions import ConfigurationError

DEFAULT_FPS = 24
DEFAULT_WIDTH = 80
DEFAULT_GRACE_PERIOD = 2.0
DEFAULT_BUFFER_FRAMES = 8
DEFAULT_FRAME_DELIMITER = b"\x1b[2J"
DEFAULT_AUDIO_BACKENDS: Tuple[str, ...] = ("ffplay", "mpv", "afplay")


@dataclass(frozen=True)
class PlaybackConfig:
    """Validated, read-only options for one playback run.

    Attributes:
        input_path: Video file to play
        fps: Target frames per second
        width: Terminal columns used by a frame
        height: Terminal rows used by a frame (None = derive from aspect ratio)
        sound: Start an audio player next to the video renderer
        color: Truecolor cells instead of a luminance character ramp
        grace_period: Seconds a terminated subprocess gets before it is killed
        buffer_frames: Frames the reader may hold before it blocks
        alt_screen: Draw on the terminal's alternate screen
        renderer_command: Custom ANSI renderer argv template; placeholders
            {input}, {fps}, {width} and {height} are substituted
        frame_delimiter: Byte sequence separating frames of a custom renderer
        audio_backends: Audio players to try, in order of preference
    """

    input_path: Path
    fps: int = DEFAULT_FPS
    width: int = DEFAULT_WIDTH
    height: Optional[int] = None
    sound: bool = True
    color: bool = True
    grace_period: float = DEFAULT_GRACE_PERIOD
    buffer_frames: int = DEFAULT_BUFFER_FRAMES
    alt_screen: bool = True
    renderer_command: Optional[Tuple[str, ...]] = None
    frame_delimiter: bytes = DEFAULT_FRAME_DELIMITER
    audio_backends: Tuple[str, ...] = field(default=DEFAULT_AUDIO_BACKENDS)

    def __post_init__(self) -> None:
        """Normalize types and validate every option."""
        if not isinstance(self.input_path, Path):
            object.__setattr__(self, "input_path", Path(self.input_path))
        if self.renderer_command is not None:
            object.__setattr__(self, "renderer_command", tuple(self.renderer_command))
        object.__setattr__(self, "audio_backends", tuple(self.audio_backends))

        if not self.input_path.exists():
            raise ConfigurationError(
                f"Input file not found: {self.input_path}",
                config_key="input_path",
                config_value=str(self.input_path),
            )
        if not self.input_path.is_file():
            raise ConfigurationError(
                f"Input path is not a file: {self.input_path}",
                config_key="input_path",
                config_value=str(self.input_path),
            )

        for key in ("fps", "width"):
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(
                    f"{key} must be a positive integer",
                    config_key=key,
                    config_value=value,
                )

        if self.height is not None and (
            isinstance(self.height, bool) or not isinstance(self.height, int) or self.height <= 0
        ):
            raise ConfigurationError(
                "height must be a positive integer or omitted",
                config_key="height",
                config_value=self.height,
            )

        if self.grace_period <= 0:
            raise ConfigurationError(
                "grace_period must be positive",
                config_key="grace_period",
                config_value=self.grace_period,
            )

        if self.buffer_frames < 1:
            raise ConfigurationError(
                "buffer_frames must be at least 1",
                config_key="buffer_frames",
                config_value=self.buffer_frames,
            )

        if self.renderer_command is not None and not self.renderer_command:
            raise ConfigurationError(
                "renderer_command must not be empty",
                config_key="renderer_command",
            )

        if not self.frame_delimiter:
            raise ConfigurationError(
                "frame_delimiter must not be empty",
                config_key="frame_delimiter",
            )

    @property
    def frame_interval(self) -> float:
        """Seconds between two frame displays."""
        return 1.0 / self.fps

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "input_path": str(self.input_path),
            "fps": self.fps,
            "width": self.width,
            "height": self.height,
            "sound": self.sound,
            "color": self.color,
            "grace_period": self.grace_period,
            "buffer_frames": self.buffer_frames,
            "alt_screen": self.alt_screen,
            "renderer_command": list(self.renderer_command) if self.renderer_command else None,
            "frame_delimiter": self.frame_delimiter.decode("latin-1"),
            "audio_backends": list(self.audio_backends),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlaybackConfig":
        """Create configuration from dictionary."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        delimiter = kwargs.get("frame_delimiter")
        if isinstance(delimiter, str):
            kwargs["frame_delimiter"] = delimiter.encode("latin-1")
        return cls(**kwargs)

    @classmethod
    def from_args(cls, args: Any) -> "PlaybackConfig":
        """Build the configuration from parsed command line arguments."""
        kwargs: Dict[str, Any] = {
            "input_path": Path(args.input),
            "fps": args.fps,
            "width": args.width,
            "height": args.height,
            "sound": not args.no_sound,
            "color": not args.no_color,
            "grace_period": args.grace_period,
            "buffer_frames": args.buffer_frames,
            "alt_screen": not args.no_alt_screen,
        }
        if args.renderer_cmd:
            kwargs["renderer_command"] = tuple(args.renderer_cmd)
        if args.frame_delimiter is not None:
            kwargs["frame_delimiter"] = parse_delimiter(args.frame_delimiter)
        if args.audio_backend:
            kwargs["audio_backends"] = tuple(args.audio_backend)
        return cls(**kwargs)


def parse_delimiter(text: str) -> bytes:
    """Turn a backslash-escaped command line value into raw bytes.

    >>> parse_delimiter("\\\\x1b[H")
    b'\\x1b[H'
    """
    try:
        return codecs.decode(text, "unicode_escape").encode("latin-1")
    except (UnicodeDecodeError, UnicodeEncodeError) as e:
        raise ConfigurationError(
            f"Invalid frame delimiter: {text!r}",
            config_key="frame_delimiter",
            config_value=text,
            cause=e,
        ) from e
