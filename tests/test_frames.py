from __future__ import annotations

import io
import logging

import pytest

from vc830.fs9922.decoder import FramingError, PacketDecoder
from vc830.fs9922.frames import FrameReader, SerialByteSource, SourceIoError, StreamByteSource


def build_frame(digits: bytes = b"0826") -> bytes:
    return b"+" + digits + b" " + bytes([0x32, 0x10, 0x00, 0x00, 0x80, 0x08]) + b"\r\n"


class FakeSource:
    """Plays back a script of chunks; exceptions in the script are raised."""

    def __init__(self, script):
        self._script = list(script)
        self.timeouts = []

    def read(self, timeout: float) -> bytes:
        self.timeouts.append(timeout)
        if not self._script:
            raise EOFError("script exhausted")
        item = self._script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def test_reads_consecutive_frames():
    first, second = build_frame(b"0826"), build_frame(b"1234")
    reader = FrameReader(idle_timeout=0.05)
    source = FakeSource([first[:5], first[5:] + second[:3], second[3:]])
    assert list(reader.iter_frames(source)) == [first, second]
    assert reader.stats() == {"frames": 2, "resyncs": 0, "skipped_bytes": 0}
    assert set(source.timeouts) == {0.05}


def test_burst_stall_then_clean_frame():
    frame = build_frame()
    reader = FrameReader()
    source = FakeSource([frame[:10] * 2, b"", frame])
    window = reader.next_frame(source)
    assert window == (frame[:10] * 2)[:14]
    with pytest.raises(FramingError):
        PacketDecoder().decode(window)
    assert reader.next_frame(source) == frame
    assert reader.stats() == {"frames": 2, "resyncs": 1, "skipped_bytes": 0}


def test_stale_frame_inside_burst_is_not_emitted_after_stall():
    stale, fresh = build_frame(b"1111"), build_frame(b"2222")
    reader = FrameReader()
    source = FakeSource([b"\x00" * 6 + stale, b"", fresh])
    assert reader.next_frame(source) == b"\x00" * 6 + stale[:8]
    assert reader.next_frame(source) == fresh


def test_window_without_terminator_is_passed_to_decoder():
    window = b"+0826 2\x10\x00\x00\x80\x08XY"
    reader = FrameReader()
    assert reader.next_frame(FakeSource([window])) == window
    with pytest.raises(FramingError):
        PacketDecoder().decode(window)


def test_short_burst_before_pause_is_discarded():
    frame = build_frame()
    reader = FrameReader()
    source = FakeSource([frame[:6], b"", b"", frame])
    assert reader.next_frame(source) == frame
    assert reader.stats()["resyncs"] == 1


def test_trailing_bytes_wait_for_the_rest_of_the_frame():
    first, second = build_frame(b"0001"), build_frame(b"0002")
    reader = FrameReader()
    source = FakeSource([first + second[:6], second[6:]])
    assert reader.next_frame(source) == first
    assert reader.next_frame(source) == second
    assert reader.stats()["resyncs"] == 0


def test_alignment_is_opt_in_and_logged(caplog):
    frame = build_frame()
    reader = FrameReader(align_on_terminator=True)
    with caplog.at_level(logging.WARNING, logger="vc830.fs9922.frames"):
        assert reader.next_frame(FakeSource([b"\r\n" + frame])) == frame
    assert reader.stats()["skipped_bytes"] == 2
    assert "Dropped 2 bytes to realign on CR LF" in caplog.text


def test_reset_drops_partial_frame():
    first, second = build_frame(b"0001"), build_frame(b"0002")
    reader = FrameReader()
    with pytest.raises(SourceIoError):
        reader.next_frame(FakeSource([first[:9], OSError("unplugged")]))
    reader.reset()
    assert reader.next_frame(FakeSource([second])) == second
    assert reader.stats()["resyncs"] == 0


def test_exhausted_source_returns_none():
    reader = FrameReader()
    assert reader.next_frame(FakeSource([build_frame()[:9]])) is None
    assert reader.stats()["frames"] == 0


def test_read_failure_raises_source_io_error():
    reader = FrameReader()
    with pytest.raises(SourceIoError):
        reader.next_frame(FakeSource([OSError("device unplugged")]))


def test_stream_source_replays_capture():
    frames = [build_frame(b"0100"), build_frame(b"0200"), build_frame(b"0300")]
    source = StreamByteSource(io.BytesIO(b"".join(frames)), chunk_size=5)
    assert list(FrameReader().iter_frames(source)) == frames


def test_stream_source_leaves_borrowed_handle_open():
    handle = io.BytesIO(build_frame())
    StreamByteSource(handle, close_handle=False).close()
    assert not handle.closed
    StreamByteSource(handle).close()
    assert handle.closed


class FakeSerialHandle:
    def __init__(self, data: bytes):
        self._data = bytearray(data)
        self.timeout = None
        self.closed = False

    def read(self, size: int = 1) -> bytes:
        chunk = bytes(self._data[:size])
        del self._data[:size]
        return chunk

    def close(self) -> None:
        self.closed = True


def test_serial_source_applies_idle_timeout():
    frame = build_frame()
    handle = FakeSerialHandle(frame)
    source = SerialByteSource(handle)
    reader = FrameReader(idle_timeout=0.2)
    assert reader.next_frame(source) == frame
    assert handle.timeout == 0.2
    assert source.read(0.2) == b""
    source.close()
    assert handle.closed
