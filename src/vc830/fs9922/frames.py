from __future__ import annotations

import logging
from typing import Any, BinaryIO, Dict, Iterator, Optional, Protocol

from .decoder import FRAME_LENGTH, TERMINATOR

DEFAULT_IDLE_TIMEOUT = 0.1


class SourceIoError(IOError):
    """Byte-level failure of the source; fatal to the read loop."""


class ByteSource(Protocol):
    def read(self, timeout: float) -> bytes:
        """
        Wait at most *timeout* seconds for data.

        Returns the bytes received (empty when nothing arrived), raises
        `EOFError` once a finite source is exhausted and `OSError` on failure.
        """


class SerialByteSource:
    """Single-byte bounded reads from an open pyserial port."""

    def __init__(self, handle: Any):
        self._handle = handle

    def read(self, timeout: float) -> bytes:
        if self._handle.timeout != timeout:
            self._handle.timeout = timeout
        return self._handle.read(1)

    def close(self) -> None:
        self._handle.close()


class StreamByteSource:
    """Replays a captured byte stream (file or stdin); never times out."""

    def __init__(self, handle: BinaryIO, chunk_size: int = 256, close_handle: bool = True):
        self._handle = handle
        self._chunk_size = max(chunk_size, 1)
        self._close_handle = close_handle

    def read(self, timeout: float) -> bytes:
        chunk = self._handle.read(self._chunk_size)
        if not chunk:
            raise EOFError("end of captured stream")
        return chunk

    def close(self) -> None:
        if self._close_handle:
            self._handle.close()


class FrameReader:
    """
    Assembles 14-byte FS9922 frames from a byte source.

    The meter sends a packet about twice a second without any start marker.
    Bytes are collected until 14 are buffered and those 14 are handed out as
    they are; checking the separator and CR LF is left to the decoder. A pause
    of `idle_timeout` with a partial frame buffered drops the partial frame,
    which is how the reader falls back into step with the meter.

    With `align_on_terminator` a window that does not end in CR LF is shifted
    byte by byte until it does, and every shift is logged as a warning.
    """

    def __init__(self, idle_timeout: float = DEFAULT_IDLE_TIMEOUT, align_on_terminator: bool = False):
        self.idle_timeout = idle_timeout
        self.align_on_terminator = align_on_terminator
        self._buffer = bytearray()
        self._stats: Dict[str, int] = {"frames": 0, "resyncs": 0, "skipped_bytes": 0}
        self._log = logging.getLogger(__name__)

    def next_frame(self, source: ByteSource) -> Optional[bytes]:
        """Return the next frame, or None once the source is exhausted."""

        while True:
            frame = self._take_frame()
            if frame is not None:
                return frame
            try:
                chunk = source.read(self.idle_timeout)
            except EOFError:
                if self._buffer:
                    self._log.debug("Source exhausted with %d partial bytes", len(self._buffer))
                self._buffer.clear()
                return None
            except OSError as exc:
                raise SourceIoError(f"read failed: {exc}") from exc
            if not chunk:
                if self._buffer:
                    self._stats["resyncs"] += 1
                    self._log.debug("Idle gap, dropping %d partial bytes", len(self._buffer))
                    self._buffer.clear()
                continue
            self._buffer.extend(chunk)

    def iter_frames(self, source: ByteSource) -> Iterator[bytes]:
        while True:
            frame = self.next_frame(source)
            if frame is None:
                return
            yield frame

    def _take_frame(self) -> Optional[bytes]:
        if self.align_on_terminator:
            self._align()
        if len(self._buffer) < FRAME_LENGTH:
            return None
        frame = bytes(self._buffer[:FRAME_LENGTH])
        del self._buffer[:FRAME_LENGTH]
        self._stats["frames"] += 1
        return frame

    def _align(self) -> None:
        dropped = 0
        while len(self._buffer) >= FRAME_LENGTH and self._buffer[FRAME_LENGTH - 2 : FRAME_LENGTH] != TERMINATOR:
            del self._buffer[0]
            dropped += 1
        if dropped:
            self._stats["skipped_bytes"] += dropped
            self._log.warning("Dropped %d bytes to realign on CR LF", dropped)

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def reset(self) -> None:
        """Forget any partially received frame; counters are kept."""

        self._buffer.clear()
