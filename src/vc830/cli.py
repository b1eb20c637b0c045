"""Command line interface for offline analysis of measurement logs."""
from __future__ import annotations

from pathlib import Path

import typer

from .data import load_measurement_log
from .metrics import summarize
from .plotting import generate_plot
from .reporting import export_summary

app = typer.Typer(context_settings={"help_option_names": ["-h", "--help"]})


@app.command()
def summary(
    input_path: Path = typer.Option(..., "--in", help="Measurement log CSV written by 'vc830 run --log-csv'."),
    report_dir: Path = typer.Option(..., "--report", help="Output directory for reports."),
    plot: bool = typer.Option(True, "--plot/--no-plot", help="Render a time series PNG."),
) -> None:
    """Summarise a recorded session per measuring range."""

    try:
        data = load_measurement_log(input_path)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--in") from exc

    figure_path = None
    if plot:
        try:
            figure_path = generate_plot(data, report_dir)
        except RuntimeError as exc:
            typer.echo(f"[warning] plotting skipped: {exc}")

    result = summarize(data)
    export_summary(result, report_dir, figure_path=figure_path, input_path=input_path)
    typer.echo(f"Report written to {report_dir}")


@app.command()
def plot(
    input_path: Path = typer.Option(..., "--in", help="Measurement log CSV."),
    out_dir: Path = typer.Option(Path("."), "--out", help="Directory for measurements.png."),
) -> None:
    """Plot SI-normalised readings over time."""

    data = load_measurement_log(input_path)
    try:
        figure_path = generate_plot(data, out_dir)
    except RuntimeError as exc:
        typer.echo(f"Plotting failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Plot written to {figure_path}")


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
