"""Text renderers for decoded measurements."""
from __future__ import annotations

import enum
import json
from datetime import datetime
from typing import Any, Dict

from .measurement import Measurement


class OutputFormat(str, enum.Enum):
    KEYVALUE = "keyvalue"
    JSON = "json"
    HUMAN = "human"
    SI = "si"


class TimeFormat(str, enum.Enum):
    ISO = "iso"
    LOCAL = "local"
    EPOCHSECMS = "epochsecms"
    HUMAN = "human"
    NONE = "none"


def format_time(captured_at: datetime, time_format: TimeFormat | str) -> str:
    fmt = TimeFormat(time_format)
    local = captured_at.astimezone()
    if fmt is TimeFormat.ISO:
        return local.strftime("%Y-%m-%dT%H:%M:%S.%f%z")
    if fmt is TimeFormat.LOCAL:
        return local.strftime("%Y-%m-%d %H:%M:%S")
    if fmt is TimeFormat.HUMAN:
        return f"{local.strftime('%H:%M:%S')}.{local.microsecond // 1000:03d}"
    if fmt is TimeFormat.EPOCHSECMS:
        timestamp = captured_at.timestamp()
        seconds = int(timestamp)
        return f"{seconds}.{captured_at.microsecond:06d}"
    return ""


# Key names of the keyvalue and json output. They follow the established vc830
# record layout, misspellings included.
OUTPUT_KEYS: Dict[str, str] = {
    "captured_at": "receivedAt",
    "sign": "sign",
    "mode": "mode",
    "unit": "unit",
    "prefix": "prefix",
    "full_unit": "fullUnit",
    "info": "info",
    "bar_graph": "barGraph",
    "bar_graph_shown": "barGraphIsShown",
    "battery_warning": "batteryWarning",
    "auto_range_active": "autoRangeActive",
    "hold_active": "holdActive",
    "delta_active": "deltaActive",
    "overflow": "overflow",
    "raw_digits": "rawRisplay",
    "display_value": "formatedValue",
    "si_value": "formatedSiValue",
    "si_magnitude": "siMagnitude",
}
FORMATTED_TIME_KEY = "receivedAtFormated"


def _fields(measurement: Measurement, time_text: str) -> Dict[str, Any]:
    data = measurement.as_dict()
    data["captured_at"] = format_time(measurement.captured_at, TimeFormat.ISO)
    fields: Dict[str, Any] = {}
    for name, key in OUTPUT_KEYS.items():
        fields[key] = data[name]
        if name == "captured_at" and time_text:
            fields[FORMATTED_TIME_KEY] = time_text
    return fields


def render_keyvalue(measurement: Measurement, time_text: str = "") -> str:
    lines = []
    for key, value in _fields(measurement, time_text).items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif value is None:
            value = ""
        lines.append(f"{key}={value}")
    return "\n".join(lines)


def render_json(measurement: Measurement, time_text: str = "") -> str:
    return json.dumps(_fields(measurement, time_text), indent=2, ensure_ascii=False)


def render_human(measurement: Measurement, time_text: str = "") -> str:
    return _line(measurement.display_value, measurement, time_text)


def render_si(measurement: Measurement, time_text: str = "") -> str:
    return _line(measurement.si_value, measurement, time_text)


def _line(value: str, measurement: Measurement, time_text: str) -> str:
    head = f"{time_text}\t\t" if time_text else ""
    return f"{head}{value}\t\t{measurement.mode}\t{measurement.info}"


RENDERERS = {
    OutputFormat.KEYVALUE: render_keyvalue,
    OutputFormat.JSON: render_json,
    OutputFormat.HUMAN: render_human,
    OutputFormat.SI: render_si,
}


def render(
    measurement: Measurement,
    output_format: OutputFormat | str = OutputFormat.HUMAN,
    time_format: TimeFormat | str = TimeFormat.NONE,
) -> str:
    try:
        renderer = RENDERERS[OutputFormat(output_format)]
    except ValueError as exc:
        raise ValueError(f"Unknown output format '{output_format}'") from exc
    try:
        time_text = format_time(measurement.captured_at, time_format)
    except ValueError as exc:
        raise ValueError(f"Unknown time format '{time_format}'") from exc
    return renderer(measurement, time_text)
