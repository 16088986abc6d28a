"""Terminal output for frames."""
import logging
import re
import sys
import threading
from typing import BinaryIO, Optional

from .reader import FrameUnit

logger = logging.getLogger(__name__)

CLEAR_SCREEN = b"\x1b[2J"
CURSOR_HOME = b"\x1b[H"
HIDE_CURSOR = b"\x1b[?25l"
SHOW_CURSOR = b"\x1b[?25h"
RESET_ATTRIBUTES = b"\x1b[0m"
ENTER_ALT_SCREEN = b"\x1b[?1049h"
LEAVE_ALT_SCREEN = b"\x1b[?1049l"
ERASE_LINE = b"\x1b[K"
ERASE_BELOW = b"\x1b[J"

_LINE_END = re.compile(rb"\r?\n")


class TerminalRenderer:
    """Draws frames in place and puts the terminal back afterwards.

    Every frame is preceded by cursor-home so it overwrites the previous one
    instead of scrolling. Each line is cleared to its end and the screen
    below the frame is erased, so a narrower or shorter frame leaves
    nothing of the previous one behind. ``restore`` may be called from
    several exit paths; only the first call touches the terminal.

    Args:
        stream: Binary stream connected to the terminal (stdout by default)
        alt_screen: Draw on the alternate screen, leaving scrollback alone
    """

    def __init__(self, stream: Optional[BinaryIO] = None, alt_screen: bool = True) -> None:
        self.stream = stream if stream is not None else sys.stdout.buffer
        self.alt_screen = alt_screen
        self._lock = threading.Lock()
        self._begun = False
        self._restored = False
        self.frames_written = 0

    @property
    def active(self) -> bool:
        return self._begun and not self._restored

    def begin(self) -> None:
        """Prepare the display: alternate screen, clear, home, hide cursor."""
        with self._lock:
            if self._begun or self._restored:
                return
            prefix = ENTER_ALT_SCREEN if self.alt_screen else b""
            self._write(prefix + CLEAR_SCREEN + CURSOR_HOME + HIDE_CURSOR)
            self._begun = True

    def render(self, frame: FrameUnit) -> None:
        """Write one frame over the previous one and flush."""
        data = _LINE_END.sub(lambda m: ERASE_LINE + m.group(0), frame.data)
        with self._lock:
            if self._restored:
                return
            self._write(CURSOR_HOME + data + ERASE_BELOW)
            self.frames_written += 1

    def restore(self) -> bool:
        """Show the cursor and leave the alternate screen.

        Returns:
            True for the call that performed the restore, False afterwards
        """
        with self._lock:
            if self._restored:
                return False
            self._restored = True
            if not self._begun:
                return True
            suffix = LEAVE_ALT_SCREEN if self.alt_screen else b"\n"
            try:
                self._write(RESET_ATTRIBUTES + SHOW_CURSOR + suffix)
            except (OSError, ValueError) as e:
                logger.warning(f"Could not restore terminal state: {e}")
            return True

    def _write(self, data: bytes) -> None:
        self.stream.write(data)
        self.stream.flush()
