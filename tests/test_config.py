from __future__ import annotations

import json
from pathlib import Path

import pytest

from vc830.fs9922.config import load_config

EXAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "config" / "vc830.example.json"


def test_defaults_match_meter_line():
    cfg = load_config()
    assert cfg.serial.port == "/dev/ttyUSB0"
    assert cfg.serial.baudrate == 2400
    assert cfg.serial.idle_timeout == pytest.approx(0.1)
    assert cfg.serial.power_lines is True
    assert cfg.output.format == "human"
    assert cfg.output.time_format == "none"
    assert cfg.output.log_csv is None
    assert cfg.decoder.strict_labels is False
    assert cfg.count is None


def test_overrides_are_coerced():
    cfg = load_config(
        overrides=[
            "serial.idle_timeout=0.25",
            "serial.power_lines=false",
            "output.format=JSON",
            "count=10",
            "decoder.strict_labels=true",
        ]
    )
    assert cfg.serial.idle_timeout == pytest.approx(0.25)
    assert cfg.serial.power_lines is False
    assert cfg.output.format == "json"
    assert cfg.count == 10
    assert cfg.decoder.strict_labels is True


def test_example_file_loads():
    cfg = load_config(EXAMPLE_CONFIG)
    assert cfg.output.time_format == "human"
    assert cfg.serial.exclusive is True


def test_overrides_win_over_file(tmp_path):
    path = tmp_path / "meter.json"
    path.write_text(json.dumps({"serial": {"port": "/dev/ttyS1"}, "output": {"log_csv": "out/log.csv"}}))
    cfg = load_config(path, ["serial.port=/dev/ttyUSB3"])
    assert cfg.serial.port == "/dev/ttyUSB3"
    assert cfg.output.log_csv == Path("out/log.csv")


@pytest.mark.parametrize(
    "override",
    ["output.format=xml", "output.time_format=utc", "serial.idle_timeout=0", "count=-1"],
)
def test_invalid_values_are_rejected(override):
    with pytest.raises(ValueError):
        load_config(overrides=[override])


def test_override_requires_assignment():
    with pytest.raises(ValueError):
        load_config(overrides=["serial.port"])


def test_unknown_override_key_is_rejected():
    with pytest.raises(ValueError):
        load_config(overrides=["serial.speed=9600"])
    with pytest.raises(ValueError):
        load_config(overrides=["display.format=json"])


def test_null_override_clears_value():
    cfg = load_config(overrides=["output.log_csv=out.csv", "output.log_csv=none"])
    assert cfg.output.log_csv is None
