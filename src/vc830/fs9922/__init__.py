"""
FS9922-DMM4 protocol support for the Voltcraft VC-830.

The subpackage holds the frame reader, the packet decoder and the sampling
loop used by the `vc830` command; offline log analysis lives one level up.
"""

from .config import DecoderSettings, MeterConfig, OutputSettings, SerialSettings, load_config
from .decoder import (
    AmbiguousLabelError,
    DecodeError,
    DigitParseError,
    FramingError,
    PacketDecoder,
    SignError,
    decode_frame,
)
from .frames import FrameReader, SerialByteSource, SourceIoError, StreamByteSource
from .measurement import Measurement, Sign
from .output import OutputFormat, TimeFormat, render
from .processing import MeasurementLog
from .runner import MeterHost

__all__ = [
    "DecoderSettings",
    "MeterConfig",
    "OutputSettings",
    "SerialSettings",
    "load_config",
    "AmbiguousLabelError",
    "DecodeError",
    "DigitParseError",
    "FramingError",
    "PacketDecoder",
    "SignError",
    "decode_frame",
    "FrameReader",
    "SerialByteSource",
    "SourceIoError",
    "StreamByteSource",
    "Measurement",
    "Sign",
    "OutputFormat",
    "TimeFormat",
    "render",
    "MeasurementLog",
    "MeterHost",
]
