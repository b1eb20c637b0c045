from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, List, Optional, TextIO

from .measurement import Measurement

LOG_FIELDS = [
    "captured_at",
    "sign",
    "raw_digits",
    "overflow",
    "mode",
    "info",
    "unit",
    "prefix",
    "full_unit",
    "bar_graph",
    "bar_graph_shown",
    "battery_warning",
    "auto_range_active",
    "hold_active",
    "delta_active",
    "display_value",
    "si_value",
    "si_magnitude",
]


class MeasurementLog:
    """
    CSV log of decoded measurements, one row per sample.

    The file is only created once the first measurement arrives; metadata set
    before that is written as `#` comment lines ahead of the header.
    """

    def __init__(self, path: Path):
        self.path = path
        self.rows = 0
        self._fh: Optional[TextIO] = None
        self._writer: Optional[csv.DictWriter] = None
        self._comments: List[str] = []

    def append(self, measurement: Measurement) -> None:
        writer = self._writer or self._open()
        row = measurement.as_dict()
        if row["si_magnitude"] is None:
            row["si_magnitude"] = ""
        writer.writerow(row)
        self.rows += 1
        self._fh.flush()

    __call__ = append

    def set_metadata(self, metadata: Dict[str, str]) -> None:
        if not metadata:
            return
        comment = "# " + " ".join(f"{key}={value}" for key, value in metadata.items())
        if self._fh is None:
            self._comments.append(comment)
        else:
            self._fh.write(comment + "\n")
            self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
        self._fh = None
        self._writer = None

    def _open(self) -> csv.DictWriter:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open("w", newline="", encoding="utf-8")
        self._fh.writelines(comment + "\n" for comment in self._comments)
        self._comments.clear()
        self._writer = csv.DictWriter(self._fh, fieldnames=LOG_FIELDS, extrasaction="ignore")
        self._writer.writeheader()
        return self._writer
