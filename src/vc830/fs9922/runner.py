from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import serial
import typer

from .config import MeterConfig, SerialSettings, load_config
from .decoder import DecodeError, PacketDecoder, format_frame_dump
from .frames import ByteSource, FrameReader, SerialByteSource, SourceIoError, StreamByteSource
from .measurement import Measurement
from .output import render
from .processing import MeasurementLog

logger = logging.getLogger(__name__)

Sink = Callable[[Measurement], None]


def open_serial(settings: SerialSettings):
    handle = serial.Serial(
        port=settings.port,
        baudrate=settings.baudrate,
        bytesize=serial.EIGHTBITS,
        parity=serial.PARITY_NONE,
        stopbits=serial.STOPBITS_ONE,
        timeout=settings.idle_timeout,
        exclusive=settings.exclusive,
    )
    if settings.power_lines:
        handle.dtr = True
        handle.rts = False
    handle.reset_input_buffer()
    return handle


def open_source(settings: SerialSettings):
    """Stdin for '-', replay for a regular file, otherwise the serial line."""

    if settings.port == "-":
        return StreamByteSource(sys.stdin.buffer, settings.chunk_size, close_handle=False)
    path = Path(settings.port)
    if path.is_file():
        logger.info("Replaying captured data from %s", path)
        return StreamByteSource(path.open("rb"), settings.chunk_size)
    try:
        handle = open_serial(settings)
    except serial.SerialException as exc:
        raise SourceIoError(f"cannot open {settings.port}: {exc}") from exc
    logger.info("Connected to %s at %d baud", settings.port, settings.baudrate)
    return SerialByteSource(handle)


class MeterHost:
    """Single-threaded sampling loop: frame, decode, hand off to sinks."""

    def __init__(self, config: MeterConfig, sinks: Sequence[Sink] = ()):
        self.config = config
        self.reader = FrameReader(config.serial.idle_timeout, config.serial.align_frames)
        self.decoder = PacketDecoder(strict=config.decoder.strict_labels)
        self._sinks: List[Sink] = list(sinks)
        self._decoded = 0
        self._decode_errors = 0

    def register_sink(self, sink: Sink) -> None:
        self._sinks.append(sink)

    def run(self, source: ByteSource) -> Dict[str, int]:
        budget = self.config.count
        self.reader.reset()  # partial bytes from an earlier source
        try:
            while budget is None or self._decoded < budget:
                frame = self.reader.next_frame(source)
                if frame is None:
                    logger.info("Source exhausted")
                    break
                measurement = self._decode(frame, datetime.now().astimezone())
                if measurement is None:
                    continue
                for sink in self._sinks:
                    sink(measurement)
                self._decoded += 1
        finally:
            stats = self.stats()
            logger.info(
                "Final stats: frames=%d decoded=%d decode_errors=%d resyncs=%d skipped_bytes=%d",
                stats["frames"],
                stats["decoded"],
                stats["decode_errors"],
                stats["resyncs"],
                stats["skipped_bytes"],
            )
        return stats

    def _decode(self, frame: bytes, captured_at: datetime) -> Optional[Measurement]:
        try:
            return self.decoder.decode(frame, captured_at)
        except DecodeError as exc:
            self._decode_errors += 1
            logger.warning("Packet decoding failed (%s, code %d): %s", exc.kind, exc.code, exc)
            logger.debug("Rejected frame:\n%s", format_frame_dump(frame))
            return None

    def stats(self) -> Dict[str, int]:
        stats = self.reader.stats()
        stats["decoded"] = self._decoded
        stats["decode_errors"] = self._decode_errors
        return stats


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def stdout_sink(output_format: str, time_format: str) -> Sink:
    def emit(measurement: Measurement) -> None:
        typer.echo(render(measurement, output_format, time_format))

    return emit


app = typer.Typer(add_completion=False, help="Voltcraft VC-830 (FS9922-DMM4) serial readout.")


@app.command()
def run(
    port: str = typer.Argument(..., help="Serial device, a captured data file, or '-' for stdin."),
    output_format: Optional[str] = typer.Option(
        None, "--format", "-f", help="Output format: keyvalue|json|human|si (default human)."
    ),
    time_format: Optional[str] = typer.Option(
        None, "--time", "-t", help="Time format: iso|local|epochsecms|human|none (default none)."
    ),
    count: Optional[int] = typer.Option(None, "--count", "-c", help="Number of samples (default endless)."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Optional JSON configuration."),
    override: Optional[List[str]] = typer.Option(
        None,
        "--set",
        help="Override config keys, e.g. --set serial.idle_timeout=0.2",
    ),
    log_csv: Optional[Path] = typer.Option(None, "--log-csv", help="Write decoded samples to this CSV file."),
    strict: bool = typer.Option(False, "--strict", help="Reject frames with several unit or prefix bits."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging (frame dumps, resyncs)."),
):
    """Read frames from the meter and print decoded measurements."""

    configure_logging(verbose)
    overrides = list(override or [])
    if output_format is not None:
        overrides.append(f"output.format={output_format}")
    if time_format is not None:
        overrides.append(f"output.time_format={time_format}")
    if count is not None:
        overrides.append(f"count={count}")
    if strict:
        overrides.append("decoder.strict_labels=true")
    try:
        cfg = load_config(config_path, overrides)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    cfg.serial.port = port
    if log_csv is not None:
        cfg.output.log_csv = log_csv

    host = MeterHost(cfg, [stdout_sink(cfg.output.format, cfg.output.time_format)])
    csv_log = None
    if cfg.output.log_csv is not None:
        csv_log = MeasurementLog(cfg.output.log_csv)
        csv_log.set_metadata({"port": cfg.serial.port, "strict": str(cfg.decoder.strict_labels).lower()})
        host.register_sink(csv_log)

    source = None
    try:
        source = open_source(cfg.serial)
        host.run(source)
    except SourceIoError as exc:
        logger.error("Read failed: %s", exc)
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        logger.info("Stopping (Ctrl+C)")
    finally:
        if source is not None:
            source.close()
        if csv_log is not None:
            csv_log.close()


@app.command()
def decode(
    frame_hex: str = typer.Argument(..., help="One 14-byte frame as hex, e.g. 2b303832362032...0d0a"),
    output_format: str = typer.Option("keyvalue", "--format", "-f", help="Output format: keyvalue|json|human|si."),
    strict: bool = typer.Option(False, "--strict", help="Reject frames with several unit or prefix bits."),
):
    """Decode a single frame given on the command line."""

    try:
        frame = bytes.fromhex(frame_hex.replace(" ", ""))
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid hex: {exc}") from exc
    try:
        measurement = PacketDecoder(strict=strict).decode(frame)
    except DecodeError as exc:
        typer.echo(f"Packet decoding failed ({exc.kind}, code {exc.code}): {exc}", err=True)
        raise typer.Exit(code=1) from exc
    try:
        typer.echo(render(measurement, output_format))
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--format") from exc


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
