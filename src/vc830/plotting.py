"""Plotting helpers for measurement logs."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np

from .data import LogData


def generate_plot(data: LogData, output_dir: Path) -> Path:
    plt = _require_matplotlib()
    output_dir.mkdir(parents=True, exist_ok=True)
    df = data.dataframe
    units = [unit for unit in df["unit"].unique()]
    fig, axes = plt.subplots(len(units), 1, figsize=(10, 3.5 * len(units)), squeeze=False)

    for ax, unit in zip(axes[:, 0], units):
        group = df[df["unit"] == unit]
        _plot_unit(ax, group, unit)

    axes[-1, 0].set_xlabel("Time [s]")
    fig.tight_layout()
    out_path = output_dir / "measurements.png"
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
    return out_path


def _plot_unit(ax, group, unit: str) -> None:
    elapsed = group["elapsed_s"].to_numpy(dtype=float)
    values = group["si_magnitude"].to_numpy(dtype=float)
    ax.plot(elapsed, values, marker=".", linestyle="-", label=unit or "(no unit)")
    overflow = group["overflow"].to_numpy(dtype=bool)
    if overflow.any():
        finite = values[np.isfinite(values)]
        top = float(np.max(finite)) if finite.size else 0.0
        ax.scatter(elapsed[overflow], np.full(int(overflow.sum()), top), marker="x", color="red", label="OVF")
    ax.set_ylabel(f"[{unit}]" if unit else "value")
    ax.legend(loc="best")


def _require_matplotlib() -> Any:
    """Import pyplot on the headless Agg backend or raise RuntimeError."""

    try:
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("matplotlib is required for plotting; install vc830[plot]") from exc
    return plt
