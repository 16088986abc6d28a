"""Owned handles to the renderer and audio subprocesses."""
import logging
import os
import subprocess
import threading
import time
from typing import IO, Dict, List, Optional

import psutil

logger = logging.getLogger(__name__)

STDERR_TAIL_BYTES = 2000
KILL_WAIT = 1.0


class SubprocessHandle:
    """Wraps one spawned process and tears it down exactly once.

    ``terminate`` sends a graceful terminate signal to the process and its
    descendants, waits up to the grace period, then kills whatever is still
    alive. The two halves are also available separately
    (``send_terminate`` and ``finish_terminate``) so several handles can be
    signalled together and then share one grace period. Only the first
    call does any work; later or concurrent calls return False immediately.

    Args:
        role: Short label used in logs ("video" or "audio")
        process: The spawned process
        command: argv the process was started with
        stderr_file: Temporary file receiving the process's stderr, if any
        own_process_group: The process leads its own process group (POSIX
            sessions), so members left behind by an exited parent are
            found through the group id
    """

    def __init__(
        self,
        role: str,
        process: subprocess.Popen,
        command: List[str],
        stderr_file: Optional[IO[bytes]] = None,
        own_process_group: bool = False,
    ) -> None:
        self.role = role
        self.process = process
        self.command = command
        self._stderr_file = stderr_file
        self.own_process_group = own_process_group
        self._tree: List[psutil.Process] = []
        self._lock = threading.Lock()
        self._terminate_requested = False
        self._released = False

    def __repr__(self) -> str:
        return f"SubprocessHandle(role={self.role!r}, pid={self.pid}, returncode={self.returncode})"

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def stdout(self) -> Optional[IO[bytes]]:
        return self.process.stdout

    @property
    def returncode(self) -> Optional[int]:
        return self.process.poll()

    @property
    def terminate_requested(self) -> bool:
        return self._terminate_requested

    def is_running(self) -> bool:
        return self.process.poll() is None

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Wait for exit; returns the exit status, or None on timeout."""
        try:
            return self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def terminate(self, grace_period: float) -> bool:
        """Stop the process, escalating to kill after ``grace_period``.

        Returns:
            True if this call performed the teardown, False if another call
            already did.
        """
        if not self.send_terminate():
            return False
        self.finish_terminate(grace_period)
        return True

    def send_terminate(self) -> bool:
        """Ask the process and its descendants to exit, without waiting.

        Returns:
            True for the first call, False for every later one
        """
        with self._lock:
            if self._terminate_requested:
                return False
            self._terminate_requested = True

        self._tree = self._process_tree()
        if self.is_running():
            logger.debug(f"Terminating {self.role} process {self.pid} ({len(self._tree)} descendants)")
            try:
                self.process.terminate()
            except ProcessLookupError:
                pass
        else:
            logger.debug(
                f"{self.role} process {self.pid} already exited with {self.returncode}, "
                f"{len(self._tree)} descendants left"
            )
        for proc in self._tree:
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                pass
        return True

    def finish_terminate(self, timeout: float) -> None:
        """Wait up to ``timeout`` for everything signalled by ``send_terminate``, then kill it."""
        deadline = time.monotonic() + timeout
        if self.wait(timeout=timeout) is None:
            logger.warning(f"{self.role} process {self.pid} ignored terminate for {timeout:.1f}s, killing it")
            try:
                self.process.kill()
            except ProcessLookupError:
                pass
            self.process.wait()

        if self._tree:
            _, alive = psutil.wait_procs(self._tree, timeout=max(0.0, deadline - time.monotonic()))
            for proc in alive:
                try:
                    proc.kill()
                except psutil.NoSuchProcess:
                    pass
            psutil.wait_procs(alive, timeout=KILL_WAIT)

        logger.debug(f"{self.role} process {self.pid} stopped with {self.returncode}")

    def stderr_tail(self, limit: int = STDERR_TAIL_BYTES) -> str:
        """Last ``limit`` bytes the process wrote to stderr, decoded."""
        if self._stderr_file is None or self._stderr_file.closed:
            return ""
        self._stderr_file.flush()
        self._stderr_file.seek(0, 2)
        size = self._stderr_file.tell()
        self._stderr_file.seek(max(0, size - limit))
        return self._stderr_file.read().decode("utf-8", errors="replace").strip()

    def release(self) -> None:
        """Close the pipes and the stderr capture file."""
        if self._released:
            return
        self._released = True
        for stream in (self.process.stdout, self.process.stdin, self._stderr_file):
            if stream is not None:
                try:
                    stream.close()
                except OSError as e:
                    logger.debug(f"Closing {self.role} stream failed: {e}")

    def _process_tree(self) -> List[psutil.Process]:
        """Descendants of the process, plus whatever is left in its process group."""
        tree: Dict[int, psutil.Process] = {}
        try:
            for child in psutil.Process(self.pid).children(recursive=True):
                tree[child.pid] = child
        except psutil.Error:
            pass
        if self.own_process_group:
            # Grandchildren orphaned by an exited wrapper keep the group id
            for proc in psutil.process_iter():
                if proc.pid == self.pid or proc.pid in tree:
                    continue
                try:
                    if os.getpgid(proc.pid) == self.pid:
                        tree[proc.pid] = proc
                except OSError:
                    continue
        return list(tree.values())
