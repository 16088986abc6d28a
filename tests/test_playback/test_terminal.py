"""Tests for terminal output and restore."""
import io
import threading

from termreel.playback.reader import FrameUnit
from termreel.playback.terminal import (
    CLEAR_SCREEN,
    CURSOR_HOME,
    ENTER_ALT_SCREEN,
    ERASE_BELOW,
    ERASE_LINE,
    HIDE_CURSOR,
    LEAVE_ALT_SCREEN,
    RESET_ATTRIBUTES,
    SHOW_CURSOR,
    TerminalRenderer,
)


class BrokenStream(io.BytesIO):
    def write(self, data):
        raise BrokenPipeError("terminal went away")


class TestTerminalRenderer:
    """Tests for TerminalRenderer."""

    def test_begin_sequence(self, terminal, terminal_stream):
        terminal.begin()
        assert terminal_stream.getvalue() == ENTER_ALT_SCREEN + CLEAR_SCREEN + CURSOR_HOME + HIDE_CURSOR
        assert terminal.active

    def test_begin_without_alt_screen(self, terminal_stream):
        terminal = TerminalRenderer(terminal_stream, alt_screen=False)
        terminal.begin()
        assert terminal_stream.getvalue() == CLEAR_SCREEN + CURSOR_HOME + HIDE_CURSOR

    def test_begin_twice(self, terminal, terminal_stream):
        terminal.begin()
        terminal.begin()
        assert terminal_stream.getvalue().count(CLEAR_SCREEN) == 1

    def test_render_homes_cursor(self, terminal, terminal_stream):
        terminal.begin()
        terminal_stream.seek(0)
        terminal_stream.truncate()
        terminal.render(FrameUnit(0, b"one"))
        terminal.render(FrameUnit(1, b"two"))
        assert terminal_stream.getvalue() == (
            CURSOR_HOME + b"one" + ERASE_BELOW + CURSOR_HOME + b"two" + ERASE_BELOW
        )
        assert terminal.frames_written == 2

    def test_short_frame_clears_longer_one(self, terminal, terminal_stream):
        terminal.begin()
        terminal.render(FrameUnit(0, b"AAAAAAAA\r\nAAAAAAAA"))
        terminal_stream.seek(0)
        terminal_stream.truncate()
        terminal.render(FrameUnit(1, b"BB"))
        # rest of the first row and the whole second row are erased
        assert terminal_stream.getvalue() == CURSOR_HOME + b"BB" + ERASE_BELOW

    def test_lines_cleared_to_end(self, terminal, terminal_stream):
        terminal.begin()
        terminal_stream.seek(0)
        terminal_stream.truncate()
        terminal.render(FrameUnit(0, b"ab\ncd\r\nef"))
        assert terminal_stream.getvalue() == (
            CURSOR_HOME + b"ab" + ERASE_LINE + b"\ncd" + ERASE_LINE + b"\r\nef" + ERASE_BELOW
        )

    def test_restore_sequence(self, terminal, terminal_stream):
        terminal.begin()
        assert terminal.restore()
        assert terminal_stream.getvalue().endswith(RESET_ATTRIBUTES + SHOW_CURSOR + LEAVE_ALT_SCREEN)
        assert not terminal.active

    def test_restore_without_alt_screen_ends_line(self, terminal_stream):
        terminal = TerminalRenderer(terminal_stream, alt_screen=False)
        terminal.begin()
        terminal.restore()
        assert terminal_stream.getvalue().endswith(SHOW_CURSOR + b"\n")

    def test_restore_once(self, terminal, terminal_stream):
        terminal.begin()
        assert terminal.restore()
        assert not terminal.restore()
        assert terminal_stream.getvalue().count(SHOW_CURSOR) == 1

    def test_restore_without_begin_writes_nothing(self, terminal, terminal_stream):
        assert terminal.restore()
        assert terminal_stream.getvalue() == b""

    def test_render_after_restore_ignored(self, terminal, terminal_stream):
        terminal.begin()
        terminal.restore()
        size = len(terminal_stream.getvalue())
        terminal.render(FrameUnit(0, b"late"))
        assert len(terminal_stream.getvalue()) == size
        assert terminal.frames_written == 0

    def test_concurrent_restore(self, terminal, terminal_stream):
        terminal.begin()
        results = []
        threads = [threading.Thread(target=lambda: results.append(terminal.restore())) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert results.count(True) == 1
        assert terminal_stream.getvalue().count(SHOW_CURSOR) == 1

    def test_restore_survives_broken_stream(self):
        terminal = TerminalRenderer(io.BytesIO())
        terminal.begin()
        terminal.stream = BrokenStream()
        assert terminal.restore()
