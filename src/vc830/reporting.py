"""Report writers for measurement session summaries."""
from __future__ import annotations

from pathlib import Path

import pandas as pd

from .metrics import SessionSummary


def export_summary(
    summary: SessionSummary,
    output_dir: Path,
    *,
    figure_path: Path | None = None,
    input_path: Path | None = None,
) -> None:
    """Persist the per-range table and a markdown report to *output_dir*."""

    output_dir.mkdir(parents=True, exist_ok=True)
    summary_table(summary).to_csv(output_dir / "summary.csv", index=False)
    _write_report_md(summary, output_dir, figure_path=figure_path, input_path=input_path)


def summary_table(summary: SessionSummary) -> pd.DataFrame:
    rows: list[dict[str, object]] = []
    for (mode, unit), stats in summary.groups.items():
        rows.append(
            {
                "mode": mode,
                "unit": unit,
                "samples": stats.samples,
                "overflows": stats.overflows,
                "min": stats.minimum,
                "max": stats.maximum,
                "mean": stats.mean,
                "std": stats.std,
                "duration_s": stats.duration_s,
            }
        )
    columns = ["mode", "unit", "samples", "overflows", "min", "max", "mean", "std", "duration_s"]
    return pd.DataFrame(rows, columns=columns)


def _write_report_md(
    summary: SessionSummary,
    output_dir: Path,
    *,
    figure_path: Path | None,
    input_path: Path | None,
) -> None:
    lines: list[str] = []
    lines.append("# VC-830 Measurement Report")
    if input_path is not None:
        lines.append(f"*Input file:* `{input_path}`  ")
    lines.append(f"*Samples:* {summary.samples}  ")
    lines.append(f"*Overflow readings:* {summary.overflows}  ")
    lines.append(f"*Duration:* {summary.duration_s:.3f} s  ")
    lines.append("")

    lines.append("## Readings per range")
    lines.append("| Mode | Unit | Samples | OVF | Min | Max | Mean | Std |")
    lines.append("| --- | --- | ---: | ---: | ---: | ---: | ---: | ---: |")
    for (mode, unit), stats in summary.groups.items():
        lines.append(
            f"| {mode or '-'} | {unit or '-'} | {stats.samples} | {stats.overflows} | "
            f"{stats.minimum:.6g} | {stats.maximum:.6g} | {stats.mean:.6g} | {stats.std:.3g} |"
        )
    lines.append("")

    if figure_path is not None:
        lines.append(f"![Measurement plot]({figure_path.name})")
        lines.append("")

    lines.append("### Notes")
    lines.append("- Values are normalised to the SI base unit (prefix applied).")
    lines.append("- Overflow readings are counted but excluded from the statistics.")

    (output_dir / "report.md").write_text("\n".join(lines), encoding="utf-8")
