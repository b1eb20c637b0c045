from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .formatting import (
    OVERFLOW_TEXT,
    format_display,
    insert_decimal_point,
    to_si,
    with_unit,
)
from .measurement import Measurement, Sign

logger = logging.getLogger(__name__)

FRAME_LENGTH = 14
TERMINATOR = b"\r\n"
SEPARATOR = 0x20
OVERFLOW_MARKER = b"?0:?"
STATUS_OFFSET = 7
BAR_GRAPH_OFFSET = 11

# Byte 6 -> index of the decimal point inside the four digits.
DECIMAL_POINT_INDEX: Dict[int, int] = {
    0x31: 1,
    0x32: 2,
    0x33: 3,
    0x34: 3,
}


class DecodeError(ValueError):
    """Frame rejected; no measurement is produced."""

    code = 0
    kind = "decode"


class FramingError(DecodeError):
    code = 1
    kind = "framing"


class SignError(DecodeError):
    code = 2
    kind = "sign"


class DigitParseError(DecodeError):
    code = 3
    kind = "digits"


class AmbiguousLabelError(DecodeError):
    code = 4
    kind = "ambiguous-labels"


class LabelGroup(str, enum.Enum):
    MODE = "mode"
    INFO = "info"
    PREFIX = "prefix"
    UNIT = "unit"


@dataclass(frozen=True)
class StatusBit:
    byte: int  # SB1..SB4
    bit: int
    label: str
    group: Optional[LabelGroup] = None
    flag: Optional[str] = None

    @property
    def offset(self) -> int:
        return STATUS_OFFSET + self.byte - 1

    def is_set(self, frame: bytes) -> bool:
        return bool(frame[self.offset] & (1 << self.bit))


MODE = LabelGroup.MODE
INFO = LabelGroup.INFO
PREFIX = LabelGroup.PREFIX
UNIT = LabelGroup.UNIT

# FS9922-DMM4 status bytes, in scan order (SB1..SB4, bit 7..0).
STATUS_BITS: Tuple[StatusBit, ...] = (
    StatusBit(1, 7, ""),  # unused
    StatusBit(1, 6, ""),  # unused
    StatusBit(1, 5, "AUTO", INFO, flag="auto_range_active"),
    StatusBit(1, 4, "DC", MODE),
    StatusBit(1, 3, "AC", MODE),
    StatusBit(1, 2, "REL", MODE, flag="delta_active"),
    StatusBit(1, 1, "HOLD", MODE, flag="hold_active"),
    StatusBit(1, 0, "BPN", flag="bar_graph_shown"),
    StatusBit(2, 7, "Diode", INFO),  # Z1 on the datasheet
    StatusBit(2, 6, "Z2", INFO),
    StatusBit(2, 5, "MAX", INFO),
    StatusBit(2, 4, "MIN", INFO),
    StatusBit(2, 3, "APO", INFO),
    StatusBit(2, 2, "Bat", INFO, flag="battery_warning"),
    StatusBit(2, 1, "n", PREFIX),
    StatusBit(2, 0, "Z3", INFO),
    StatusBit(3, 7, "µ", PREFIX),
    StatusBit(3, 6, "m", PREFIX),
    StatusBit(3, 5, "k", PREFIX),
    StatusBit(3, 4, "M", PREFIX),
    StatusBit(3, 3, "Beep", INFO),
    StatusBit(3, 2, "Diode", INFO),
    StatusBit(3, 1, "%", PREFIX),  # duty cycle in Hz mode
    StatusBit(3, 0, "Z4", INFO),
    StatusBit(4, 7, "V", UNIT),
    StatusBit(4, 6, "A", UNIT),
    StatusBit(4, 5, "Ω", UNIT),
    StatusBit(4, 4, "hFE", UNIT),
    StatusBit(4, 3, "Hz", UNIT),
    StatusBit(4, 2, "F", UNIT),
    StatusBit(4, 1, "°C", UNIT),
    StatusBit(4, 0, "°F", UNIT),
)

FLAG_NAMES = ("auto_range_active", "delta_active", "hold_active", "bar_graph_shown", "battery_warning")


@dataclass
class StatusFlags:
    labels: Dict[LabelGroup, List[str]]
    flags: Dict[str, bool]

    def joined(self, group: LabelGroup) -> str:
        return " ".join(self.labels[group])


def scan_status(frame: bytes) -> StatusFlags:
    labels: Dict[LabelGroup, List[str]] = {group: [] for group in LabelGroup}
    flags = {name: False for name in FLAG_NAMES}
    for entry in STATUS_BITS:
        if not entry.is_set(frame):
            continue
        if entry.flag:
            flags[entry.flag] = True
        if entry.group is not None and entry.label not in labels[entry.group]:
            labels[entry.group].append(entry.label)
    return StatusFlags(labels=labels, flags=flags)


def check_structure(frame: bytes) -> Sign:
    if len(frame) != FRAME_LENGTH:
        raise FramingError(f"frame must be {FRAME_LENGTH} bytes, got {len(frame)}")
    if frame[5] != SEPARATOR:
        raise FramingError(f"expected space at offset 5, got 0x{frame[5]:02X}")
    if frame[12:14] != TERMINATOR:
        raise FramingError(f"expected CR LF at offset 12, got {frame[12:14].hex()}")
    if frame[0:1] == b"+":
        return Sign.POSITIVE
    if frame[0:1] == b"-":
        return Sign.NEGATIVE
    raise SignError(f"invalid sign byte 0x{frame[0]:02X}")


def read_digits(frame: bytes) -> Tuple[str, bool]:
    """Return the digit text (point inserted) and the overflow flag."""

    field_bytes = frame[1:5]
    if field_bytes == OVERFLOW_MARKER:
        return OVERFLOW_TEXT, True
    if not all(0x30 <= value <= 0x39 for value in field_bytes):
        raise DigitParseError(f"non-digit in value field: {field_bytes!r}")
    digits = field_bytes.decode("ascii")
    index = DECIMAL_POINT_INDEX.get(frame[6])
    if index is None:
        logger.debug("Unknown decimal point byte 0x%02X, keeping %s as is", frame[6], digits)
    return insert_decimal_point(digits, index), False


class PacketDecoder:
    """
    Decode 14-byte FS9922-DMM4 packets into `Measurement` records.

    In strict mode a frame asserting more than one unit or prefix bit is
    rejected; otherwise the labels are concatenated in scan order.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def decode(self, frame: bytes, captured_at: Optional[datetime] = None) -> Measurement:
        if captured_at is None:
            captured_at = datetime.now().astimezone()
        frame = bytes(frame)
        sign = check_structure(frame)
        digits, overflow = read_digits(frame)
        status = scan_status(frame)
        if self.strict:
            for group in (LabelGroup.UNIT, LabelGroup.PREFIX):
                if len(status.labels[group]) > 1:
                    raise AmbiguousLabelError(
                        f"multiple {group.value} bits set: {status.joined(group)}"
                    )

        unit = status.joined(LabelGroup.UNIT)
        prefix = status.joined(LabelGroup.PREFIX)
        full_unit = prefix + unit
        negative = sign is Sign.NEGATIVE

        display_value = with_unit(format_display(digits, negative), full_unit)
        if overflow:
            si_text = format_display(digits, negative)
            si_magnitude = None
        else:
            si_text, si_magnitude = to_si(digits, prefix, negative)

        return Measurement(
            captured_at=captured_at,
            sign=sign,
            raw_digits=digits,
            overflow=overflow,
            mode=status.joined(LabelGroup.MODE),
            info=status.joined(LabelGroup.INFO),
            unit=unit,
            prefix=prefix,
            full_unit=full_unit,
            bar_graph=frame[BAR_GRAPH_OFFSET] & 0x7F,
            bar_graph_shown=status.flags["bar_graph_shown"],
            battery_warning=status.flags["battery_warning"],
            auto_range_active=status.flags["auto_range_active"],
            hold_active=status.flags["hold_active"],
            delta_active=status.flags["delta_active"],
            display_value=display_value,
            si_value=with_unit(si_text, unit),
            si_magnitude=si_magnitude,
            raw=frame,
        )


def decode_frame(frame: bytes, captured_at: Optional[datetime] = None, *, strict: bool = False) -> Measurement:
    return PacketDecoder(strict=strict).decode(frame, captured_at)


def format_frame_dump(frame: bytes) -> str:
    """Index, binary, hex and printable rows for a raw frame."""

    rows = [
        "".join(f"   {idx:<2d}    " for idx in range(len(frame))),
        " ".join(f"{value:08b}" for value in frame),
        "".join(f"  {value:02x}     " for value in frame),
        "".join(f" {_printable(value):>3}     " for value in frame),
    ]
    return "\n".join(row.rstrip() for row in rows)


def _printable(value: int) -> str:
    char = chr(value)
    return char if value < 0x80 and char.isalnum() else "?"


__all__ = [
    "AmbiguousLabelError",
    "DecodeError",
    "DigitParseError",
    "FRAME_LENGTH",
    "FramingError",
    "LabelGroup",
    "PacketDecoder",
    "STATUS_BITS",
    "SignError",
    "StatusBit",
    "decode_frame",
    "format_frame_dump",
    "scan_status",
]
