"""Frame pacing."""
import logging
import threading
import time
from typing import Callable, Iterable, Optional

from .reader import FrameUnit

logger = logging.getLogger(__name__)


class FrameScheduler:
    """Emits frames no faster than the configured frame rate.

    Every available frame is shown once and in order. When the renderer
    falls behind, frames go out as soon as they arrive and the lost time is
    not made up by skipping; playback simply runs long.

    Args:
        fps: Target frames per second
        stop_event: Interrupts a pacing wait as soon as it is set
        clock: Monotonic time source in seconds
    """

    def __init__(
        self,
        fps: int,
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.fps = fps
        self.interval = 1.0 / fps
        self.stop_event = stop_event or threading.Event()
        self.clock = clock
        self.frames_emitted = 0
        self.late_frames = 0
        self._last_emit: Optional[float] = None

    def reset(self) -> None:
        """Forget the previous emission so the next frame goes out at once."""
        self._last_emit = None
        self.frames_emitted = 0
        self.late_frames = 0

    def wait_for_slot(self) -> bool:
        """Sleep until the next frame may be shown.

        Returns:
            False if stop was requested while waiting
        """
        if self.stop_event.is_set():
            return False
        if self._last_emit is None:
            return True
        deadline = self._last_emit + self.interval
        remaining = deadline - self.clock()
        if remaining < 0:
            self.late_frames += 1
        # timed waits may wake marginally early
        while remaining > 0:
            if self.stop_event.wait(remaining):
                return False
            remaining = deadline - self.clock()
        return not self.stop_event.is_set()

    def emit(self, frame: FrameUnit, render: Callable[[FrameUnit], None]) -> bool:
        """Pace, then hand one frame to ``render``."""
        if not self.wait_for_slot():
            return False
        self._last_emit = self.clock()
        render(frame)
        self.frames_emitted += 1
        return True

    def run(self, frames: Iterable[FrameUnit], render: Callable[[FrameUnit], None]) -> int:
        """Display every frame from ``frames`` until it ends or stop is set.

        Returns:
            Number of frames rendered by this call
        """
        start_count = self.frames_emitted
        for frame in frames:
            if not self.emit(frame, render):
                break
        shown = self.frames_emitted - start_count
        if self.late_frames:
            logger.debug(f"{self.late_frames} of {shown} frames arrived after their slot")
        return shown
