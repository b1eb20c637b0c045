from __future__ import annotations

import csv
from datetime import datetime, timezone

from vc830.fs9922.decoder import PacketDecoder
from vc830.fs9922.processing import LOG_FIELDS, MeasurementLog

CAPTURED = datetime(2021, 5, 1, 12, 30, 45, tzinfo=timezone.utc)


def build_frame(digits: bytes = b"0826") -> bytes:
    return b"+" + digits + b" " + bytes([0x32, 0x10, 0x00, 0x00, 0x80, 0x08]) + b"\r\n"


def test_log_is_created_lazily(tmp_path):
    path = tmp_path / "logs" / "session.csv"
    log = MeasurementLog(path)
    log.set_metadata({"port": "/dev/ttyUSB0"})
    log.close()
    assert not path.exists()


def test_log_writes_metadata_header_and_rows(tmp_path):
    path = tmp_path / "logs" / "session.csv"
    decoder = PacketDecoder()
    log = MeasurementLog(path)
    log.set_metadata({"port": "/dev/ttyUSB0", "strict": "false"})
    log(decoder.decode(build_frame(), CAPTURED))
    log(decoder.decode(build_frame(b"?0:?"), CAPTURED))
    log.close()

    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "# port=/dev/ttyUSB0 strict=false"
    rows = list(csv.DictReader(lines[1:]))
    assert list(rows[0]) == LOG_FIELDS
    assert log.rows == 2
    assert rows[0]["si_value"] == "8.26 V"
    assert rows[0]["si_magnitude"] == "8.26"
    assert rows[1]["overflow"] == "True"
    assert rows[1]["si_magnitude"] == ""
    assert rows[0]["captured_at"] == CAPTURED.isoformat()
