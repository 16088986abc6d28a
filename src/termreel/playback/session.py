"""State shared by the launcher, the supervisor and the signal path."""
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from ..config import PlaybackConfig
from .painter import FrameGeometry
from .process import SubprocessHandle
from .reader import FrameSegmenter


class SessionState(Enum):
    """Lifecycle of one playback run."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class PlaybackSession:
    """Everything owned by one run of the player.

    Attributes:
        config: Options the session was launched with
        video: Handle of the frame renderer
        segmenter: Splits the renderer's stdout into frames
        transform: Converts a frame payload into display bytes, if needed
        geometry: Raw frame size for the built-in renderer, None otherwise
        audio: Handle of the audio player, None for silent playback
        stop_event: Set when playback must stop (interrupt or shutdown)
        interrupted: True once a user interrupt was received
        last_error: Fatal error that ended playback, if any
        warnings: Non-fatal problems, e.g. no audio player available
    """

    config: PlaybackConfig
    video: SubprocessHandle
    segmenter: FrameSegmenter
    transform: Optional[Callable[[bytes], bytes]] = None
    geometry: Optional[FrameGeometry] = None
    audio: Optional[SubprocessHandle] = None
    stop_event: threading.Event = field(default_factory=threading.Event)
    interrupted: bool = False
    last_error: Optional[BaseException] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def handles(self) -> List[SubprocessHandle]:
        return [h for h in (self.video, self.audio) if h is not None]

    @property
    def stop_requested(self) -> bool:
        return self.stop_event.is_set()

    def request_stop(self, interrupted: bool = False) -> None:
        if interrupted:
            self.interrupted = True
        self.stop_event.set()
