"""Segment the renderer's byte stream into frames.

A producer thread reads the renderer's stdout in chunks, cuts it into
frames with a segmenter and puts them on a bounded queue. When the queue is
full the producer blocks, which in turn stops it from reading the pipe and
lets the renderer block on its own writes: a slow terminal slows the
renderer down instead of growing memory.
"""
import logging
import queue
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import IO, Callable, Iterator, List, Optional

from ..exceptions import StreamError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_POLL_INTERVAL = 0.05
DEFAULT_MAX_FRAME_SIZE = 16 * 1024 * 1024


@dataclass(frozen=True)
class FrameUnit:
    """One displayable frame and its position in the stream."""
    index: int
    data: bytes


class FrameSegmenter(ABC):
    """Incrementally splits a byte stream into frame payloads."""

    @abstractmethod
    def feed(self, chunk: bytes) -> List[bytes]:
        """Add bytes and return every frame they complete, in order."""

    @property
    @abstractmethod
    def pending(self) -> int:
        """Bytes buffered that do not form a complete frame yet."""


class DelimiterSegmenter(FrameSegmenter):
    """Frames are the bytes between two occurrences of ``delimiter``.

    The delimiter is stripped and empty segments are skipped, so a stream
    that starts every frame with a clear-screen sequence and one that ends
    every frame with it segment the same way. Bytes after the last delimiter
    are held until more data arrives, up to ``max_frame_size``; a stream that
    goes longer without a delimiter raises StreamError instead of buffering
    without bound.
    """

    def __init__(self, delimiter: bytes, max_frame_size: int = DEFAULT_MAX_FRAME_SIZE) -> None:
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        if max_frame_size <= 0:
            raise ValueError("max_frame_size must be positive")
        self.delimiter = delimiter
        self.max_frame_size = max_frame_size
        self._buffer = bytearray()
        self._scan_from = 0

    def feed(self, chunk: bytes) -> List[bytes]:
        self._buffer.extend(chunk)
        frames = []
        start = 0
        search = self._scan_from
        while True:
            pos = self._buffer.find(self.delimiter, search)
            if pos < 0:
                break
            segment = bytes(self._buffer[start:pos])
            if segment:
                frames.append(segment)
            start = pos + len(self.delimiter)
            search = start
        if start:
            del self._buffer[:start]
        if len(self._buffer) > self.max_frame_size:
            raise StreamError(
                f"No frame delimiter {self.delimiter!r} within {self.max_frame_size} bytes; "
                "check --frame-delimiter",
            )
        # a delimiter may straddle two chunks
        self._scan_from = max(0, len(self._buffer) - len(self.delimiter) + 1)
        return frames

    @property
    def pending(self) -> int:
        return len(self._buffer)


class FixedSizeSegmenter(FrameSegmenter):
    """Every ``frame_size`` bytes is one frame (ffmpeg rawvideo output)."""

    def __init__(self, frame_size: int) -> None:
        if frame_size <= 0:
            raise ValueError("frame_size must be positive")
        self.frame_size = frame_size
        self._buffer = bytearray()

    def feed(self, chunk: bytes) -> List[bytes]:
        self._buffer.extend(chunk)
        count = len(self._buffer) // self.frame_size
        if not count:
            return []
        frames = [
            bytes(self._buffer[i * self.frame_size:(i + 1) * self.frame_size])
            for i in range(count)
        ]
        del self._buffer[:count * self.frame_size]
        return frames

    @property
    def pending(self) -> int:
        return len(self._buffer)


class _EndOfStream:
    pass


@dataclass
class _ReadFailure:
    error: BaseException


_END = _EndOfStream()


class FrameStreamReader:
    """Lazy, finite, single-use producer of FrameUnits.

    Args:
        stream: Binary stream to read (the renderer's stdout)
        segmenter: Splits the stream into frame payloads
        transform: Optional conversion applied to each payload before it
            is queued (e.g. painting raw pixels into ANSI text)
        max_buffered: Frames held before the producer blocks
        stop_event: Set to make both producer and consumer give up
        chunk_size: Maximum bytes per read
        poll_interval: How often blocked waits re-check ``stop_event``
    """

    def __init__(
        self,
        stream: IO[bytes],
        segmenter: FrameSegmenter,
        transform: Optional[Callable[[bytes], bytes]] = None,
        max_buffered: int = 8,
        stop_event: Optional[threading.Event] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if max_buffered < 1:
            raise ValueError("max_buffered must be at least 1")
        self.stream = stream
        self.segmenter = segmenter
        self.transform = transform
        self.chunk_size = chunk_size
        self.poll_interval = poll_interval
        self.stop_event = stop_event or threading.Event()

        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=max_buffered)
        self._thread: Optional[threading.Thread] = None
        self._consumed = False
        self._exhausted = False
        self.frames_produced = 0
        self.bytes_read = 0
        self.bytes_discarded = 0

    @property
    def exhausted(self) -> bool:
        """True once the consumer has seen the natural end of the stream."""
        return self._exhausted

    @property
    def max_buffered(self) -> int:
        return self._queue.maxsize

    def start(self) -> None:
        """Start the producer thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._read_loop,
            daemon=True,
            name="FrameStreamReader",
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the producer thread; returns True if it has finished."""
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def frames(self) -> Iterator[FrameUnit]:
        """Yield frames in index order until the stream ends or stop is set.

        Raises:
            StreamError: If reading the stream failed
            RuntimeError: If called a second time
        """
        if self._consumed:
            raise RuntimeError("FrameStreamReader is not restartable")
        self._consumed = True
        self.start()

        while not self.stop_event.is_set():
            try:
                item = self._queue.get(timeout=self.poll_interval)
            except queue.Empty:
                continue
            if item is _END:
                self._exhausted = True
                return
            if isinstance(item, _ReadFailure):
                raise item.error
            yield item

    def _read_chunk(self) -> bytes:
        read1 = getattr(self.stream, "read1", None)
        if read1 is not None:
            return read1(self.chunk_size)
        return self.stream.read(self.chunk_size)

    def _read_loop(self) -> None:
        try:
            while not self.stop_event.is_set():
                chunk = self._read_chunk()
                if not chunk:
                    break
                self.bytes_read += len(chunk)
                for payload in self.segmenter.feed(chunk):
                    data = self.transform(payload) if self.transform else payload
                    if not self._put(FrameUnit(self.frames_produced, data)):
                        return
                    self.frames_produced += 1
        except (OSError, ValueError) as e:
            if self.stop_event.is_set():
                logger.debug(f"Read ended during shutdown: {e}")
                return
            self._put(_ReadFailure(StreamError(
                f"Reading renderer output failed: {e}",
                frames_read=self.frames_produced,
                cause=e,
            )))
            return
        except Exception as e:
            self._put(_ReadFailure(e))
            return

        if self.stop_event.is_set():
            return

        self.bytes_discarded = self.segmenter.pending
        if self.bytes_discarded:
            logger.debug(f"Discarding {self.bytes_discarded} trailing bytes of an incomplete frame")
        logger.debug(f"Renderer stream ended after {self.frames_produced} frames")
        self._put(_END)

    def _put(self, item: object) -> bool:
        """Block until ``item`` is queued; False if stop was requested first."""
        while not self.stop_event.is_set():
            try:
                self._queue.put(item, timeout=self.poll_interval)
                return True
            except queue.Full:
                continue
        return False
