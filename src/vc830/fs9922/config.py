from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from .frames import DEFAULT_IDLE_TIMEOUT

OUTPUT_FORMATS = ("keyvalue", "json", "human", "si")
TIME_FORMATS = ("iso", "local", "epochsecms", "human", "none")


@dataclass
class SerialSettings:
    port: str = "/dev/ttyUSB0"
    baudrate: int = 2400  # fixed by the FS9922-DMM4 chipset, 8N1
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT
    exclusive: bool = True
    power_lines: bool = True  # DTR on / RTS off feeds the optical adapter
    chunk_size: int = 256
    align_frames: bool = False  # realign on CR LF instead of waiting for an idle gap


@dataclass
class OutputSettings:
    format: str = "human"
    time_format: str = "none"
    log_csv: Path | None = None


@dataclass
class DecoderSettings:
    strict_labels: bool = False


@dataclass
class MeterConfig:
    serial: SerialSettings = field(default_factory=SerialSettings)
    output: OutputSettings = field(default_factory=OutputSettings)
    decoder: DecoderSettings = field(default_factory=DecoderSettings)
    count: Optional[int] = None

    def validate(self) -> "MeterConfig":
        if self.output.format not in OUTPUT_FORMATS:
            raise ValueError(f"Unsupported output format '{self.output.format}'")
        if self.output.time_format not in TIME_FORMATS:
            raise ValueError(f"Unsupported time format '{self.output.time_format}'")
        if self.serial.idle_timeout <= 0:
            raise ValueError("serial.idle_timeout must be positive")
        if self.count is not None and self.count < 0:
            raise ValueError("count may not be negative")
        return self


SECTIONS = {
    "serial": SerialSettings,
    "output": OutputSettings,
    "decoder": DecoderSettings,
}
TOP_LEVEL_KEYS = {"count"}


def load_config(path: Path | str | None = None, overrides: Sequence[str] | None = None) -> MeterConfig:
    """
    Load the meter configuration from optional JSON and apply CLI-style overrides.

    Overrides are dotted `section.key=value` pairs, e.g.
    ``["serial.idle_timeout=0.2", "output.format=json", "count=10"]``.
    Values are read as JSON literals where possible, otherwise as plain text.
    """
    data: Dict[str, Any] = {}
    if path is not None:
        with Path(path).open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    for item in overrides or []:
        key, value = _split_override(item)
        _apply_override(data, key, value)

    serial_data = data.get("serial") or {}
    output_data = data.get("output") or {}
    decoder_data = data.get("decoder") or {}
    count = data.get("count")
    return MeterConfig(
        serial=SerialSettings(
            port=str(serial_data.get("port", "/dev/ttyUSB0")),
            baudrate=int(serial_data.get("baudrate", 2400)),
            idle_timeout=float(serial_data.get("idle_timeout", DEFAULT_IDLE_TIMEOUT)),
            exclusive=bool(serial_data.get("exclusive", True)),
            power_lines=bool(serial_data.get("power_lines", True)),
            chunk_size=int(serial_data.get("chunk_size", 256)),
            align_frames=bool(serial_data.get("align_frames", False)),
        ),
        output=OutputSettings(
            format=str(output_data.get("format", "human")).lower(),
            time_format=str(output_data.get("time_format", "none")).lower(),
            log_csv=Path(output_data["log_csv"]) if output_data.get("log_csv") else None,
        ),
        decoder=DecoderSettings(
            strict_labels=bool(decoder_data.get("strict_labels", False)),
        ),
        count=int(count) if count is not None else None,
    ).validate()


def _split_override(item: str) -> Tuple[str, Any]:
    key, sep, raw = item.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Override '{item}' must use key=value syntax")
    raw = raw.strip()
    if raw.lower() == "none":
        return key, None
    try:
        return key, json.loads(raw.lower() if raw.lower() in ("true", "false", "null") else raw)
    except json.JSONDecodeError:
        return key, raw


def _apply_override(data: Dict[str, Any], key: str, value: Any) -> None:
    if key in TOP_LEVEL_KEYS:
        data[key] = value
        return
    section, _, name = key.partition(".")
    settings = SECTIONS.get(section)
    if settings is None or name not in {f.name for f in fields(settings)}:
        raise ValueError(f"Unknown configuration key '{key}'")
    data.setdefault(section, {})[name] = value
