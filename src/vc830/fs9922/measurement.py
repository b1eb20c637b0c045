from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


class Sign(str, enum.Enum):
    POSITIVE = "+"
    NEGATIVE = "-"


@dataclass(frozen=True)
class Measurement:
    """One decoded FS9922 packet."""

    captured_at: datetime
    sign: Sign
    raw_digits: str
    overflow: bool
    mode: str
    info: str
    unit: str
    prefix: str
    full_unit: str
    bar_graph: int
    bar_graph_shown: bool
    battery_warning: bool
    auto_range_active: bool
    hold_active: bool
    delta_active: bool
    display_value: str
    si_value: str
    si_magnitude: Optional[float] = None
    raw: bytes = field(default=b"", repr=False)

    @property
    def negative(self) -> bool:
        return self.sign is Sign.NEGATIVE

    def as_dict(self) -> Dict[str, Any]:
        return {
            "captured_at": self.captured_at.isoformat(),
            "sign": self.sign.value,
            "mode": self.mode,
            "unit": self.unit,
            "prefix": self.prefix,
            "full_unit": self.full_unit,
            "info": self.info,
            "bar_graph": self.bar_graph,
            "bar_graph_shown": self.bar_graph_shown,
            "battery_warning": self.battery_warning,
            "auto_range_active": self.auto_range_active,
            "hold_active": self.hold_active,
            "delta_active": self.delta_active,
            "overflow": self.overflow,
            "raw_digits": self.raw_digits,
            "display_value": self.display_value,
            "si_value": self.si_value,
            "si_magnitude": self.si_magnitude,
        }
