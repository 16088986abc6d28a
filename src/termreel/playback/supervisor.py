"""Playback supervisor: owns both subprocesses and the render loop.

State machine::

    STARTING --launch ok--> RUNNING --end / interrupt / error--> STOPPING --> STOPPED
        |
        +--launch failed--> FAILED (cleanup still runs)

Signal handlers never do cleanup themselves; they set the session's stop
event, which wakes the render loop at its next wait. Cleanup (``stop``)
runs exactly once no matter how many paths ask for it.
"""
import atexit
import signal
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import psutil

from ..config import PlaybackConfig
from ..exceptions import EXIT_OK, StreamError, TermreelError, exit_code_for
from ..utils.logging import get_logger
from .launcher import launch
from .reader import FrameStreamReader
from .scheduler import FrameScheduler
from .session import PlaybackSession, SessionState
from .terminal import TerminalRenderer

logger = get_logger("supervisor")

Launcher = Callable[[PlaybackConfig], PlaybackSession]


@dataclass
class PlaybackResult:
    """Outcome of one playback run."""
    state: SessionState
    frames_displayed: int = 0
    interrupted: bool = False
    warnings: List[str] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def exit_code(self) -> int:
        if self.error is None:
            return EXIT_OK
        return exit_code_for(self.error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "frames_displayed": self.frames_displayed,
            "interrupted": self.interrupted,
            "warnings": list(self.warnings),
            "error": str(self.error) if self.error else None,
            "exit_code": self.exit_code,
        }


class PlaybackSupervisor:
    """Runs one playback session from launch to teardown.

    Args:
        config: Validated playback options
        launcher: Starts the subprocesses and returns the session
        renderer: Terminal output; defaults to stdout
        handle_signals: Install SIGINT/SIGTERM handlers while running
            (only possible from the main thread)
    """

    def __init__(
        self,
        config: PlaybackConfig,
        launcher: Launcher = launch,
        renderer: Optional[TerminalRenderer] = None,
        handle_signals: bool = True,
    ) -> None:
        self.config = config
        self.launcher = launcher
        self.renderer = renderer or TerminalRenderer(alt_screen=config.alt_screen)
        self.handle_signals = handle_signals

        self.session: Optional[PlaybackSession] = None
        self.reader: Optional[FrameStreamReader] = None
        self.scheduler: Optional[FrameScheduler] = None
        self.result: Optional[PlaybackResult] = None

        self._state = SessionState.STARTING
        self._state_lock = threading.Lock()
        self._cleanup_lock = threading.Lock()
        self._cleaned_up = False
        self._started = False
        self._pending_interrupt = False
        self._original_handlers: Dict[int, Any] = {}

    @property
    def state(self) -> SessionState:
        return self._state

    def _set_state(self, state: SessionState) -> None:
        with self._state_lock:
            if self._state is SessionState.FAILED:
                return
            logger.debug(f"State {self._state.value} -> {state.value}")
            self._state = state

    def run(self) -> PlaybackResult:
        """Play the configured file to the end or until interrupted.

        Returns:
            PlaybackResult for a normal or user-stopped run

        Raises:
            LaunchError: The renderer could not be started (state FAILED)
            StreamError: The renderer's output failed mid-playback
        """
        if self._started:
            raise RuntimeError("PlaybackSupervisor.run() may only be called once")
        self._started = True

        logger.info("Starting playback", input=str(self.config.input_path), fps=self.config.fps)
        self._install_signal_handlers()
        atexit.register(self.stop)
        try:
            try:
                self.session = self.launcher(self.config)
            except TermreelError as e:
                self._set_state(SessionState.FAILED)
                logger.error(f"Launch failed: {e}")
                self.result = PlaybackResult(state=self._state, error=e)
                raise

            session = self.session
            if self._pending_interrupt:
                session.request_stop(interrupted=True)
            self._set_state(SessionState.RUNNING)
            try:
                self._play(session)
            except StreamError as e:
                session.last_error = e
                logger.error(f"Playback failed: {e}")
            except KeyboardInterrupt:
                session.request_stop(interrupted=True)
        finally:
            self.stop()
            self._restore_signal_handlers()
            atexit.unregister(self.stop)

        self.result = PlaybackResult(
            state=self._state,
            frames_displayed=self.scheduler.frames_emitted if self.scheduler else 0,
            interrupted=session.interrupted,
            warnings=list(session.warnings),
            error=session.last_error,
        )
        logger.info("Playback finished", **self.result.to_dict())

        if session.last_error is not None:
            raise session.last_error
        return self.result

    def _play(self, session: PlaybackSession) -> None:
        if session.video.stdout is None:
            raise StreamError("Renderer has no output stream")

        self.reader = FrameStreamReader(
            session.video.stdout,
            session.segmenter,
            transform=session.transform,
            max_buffered=self.config.buffer_frames,
            stop_event=session.stop_event,
        )
        self.scheduler = FrameScheduler(self.config.fps, stop_event=session.stop_event)

        self.renderer.begin()
        self.scheduler.run(self.reader.frames(), self.renderer.render)

        if not self.reader.exhausted or session.stop_requested:
            return

        returncode = session.video.wait(timeout=self.config.grace_period)
        if returncode is None:
            logger.warning("Renderer closed its output but is still running")
        elif returncode != 0:
            raise StreamError(
                f"Renderer exited with status {returncode}",
                returncode=returncode,
                frames_read=self.reader.frames_produced,
                stderr_tail=session.video.stderr_tail(),
            )

    def request_stop(self, interrupted: bool = True) -> None:
        """Ask the render loop to stop; safe from signal handlers."""
        if self.session is None:
            self._pending_interrupt = self._pending_interrupt or interrupted
            return
        self.session.request_stop(interrupted=interrupted)

    def stop(self) -> None:
        """Terminate both subprocesses and restore the terminal.

        Idempotent and thread-safe: the first caller does the work, every
        other caller waits for it to finish and returns.
        """
        with self._cleanup_lock:
            if self._cleaned_up:
                return
            self._cleaned_up = True
            self._set_state(SessionState.STOPPING)

            session = self.session
            try:
                if session is not None:
                    session.stop_event.set()
                    self._terminate_handles(session)
                    if self.reader is not None and not self.reader.join(timeout=self.config.grace_period):
                        logger.warning("Frame reader did not finish after the renderer stopped")
                    for handle in session.handles:
                        handle.release()
                    if session.audio is not None:
                        logger.debug(f"Audio player exit status {session.audio.returncode}")
            finally:
                self.renderer.restore()
                self._set_state(SessionState.STOPPED)

    def _terminate_handles(self, session: PlaybackSession) -> None:
        # Signal both processes before waiting on either; they share one grace period
        signalled = []
        for handle in session.handles:
            try:
                if handle.send_terminate():
                    signalled.append(handle)
            except (OSError, psutil.Error) as e:
                logger.error(f"Failed to stop {handle.role} process: {e}")

        deadline = time.monotonic() + self.config.grace_period
        for handle in signalled:
            try:
                handle.finish_terminate(max(0.0, deadline - time.monotonic()))
            except (OSError, psutil.Error) as e:
                logger.error(f"Failed to stop {handle.role} process: {e}")

    def _handle_signal(self, signum: int, frame: Any) -> None:
        signal_name = signal.Signals(signum).name
        logger.info(f"Received {signal_name}, stopping playback")
        self.request_stop(interrupted=True)

    def _install_signal_handlers(self) -> None:
        if not self.handle_signals or threading.current_thread() is not threading.main_thread():
            return
        signums = [signal.SIGINT]
        if sys.platform != "win32":
            signums.append(signal.SIGTERM)
        for signum in signums:
            self._original_handlers[signum] = signal.signal(signum, self._handle_signal)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._original_handlers.items():
            try:
                signal.signal(signum, handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Failed to restore handler for signal {signum}: {e}")
        self._original_handlers.clear()
