"""Summary statistics for measurement sessions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from .data import LogData


@dataclass(frozen=True)
class GroupStats:
    samples: int
    overflows: int
    minimum: float
    maximum: float
    mean: float
    std: float
    duration_s: float


@dataclass(frozen=True)
class SessionSummary:
    samples: int
    overflows: int
    duration_s: float
    groups: Dict[Tuple[str, str], GroupStats]


def summarize(data: LogData) -> SessionSummary:
    """Aggregate SI magnitudes per (mode, unit) range the meter was in."""

    df = data.dataframe
    groups: Dict[Tuple[str, str], GroupStats] = {}
    for (mode, unit), group in df.groupby(["mode", "unit"], sort=True):
        values = group["si_magnitude"].to_numpy(dtype=float)
        overflows = int(group["overflow"].sum())
        groups[(str(mode), str(unit))] = GroupStats(
            samples=int(len(group)),
            overflows=overflows,
            **_value_stats(values),
            duration_s=_span(group["elapsed_s"].to_numpy(dtype=float)),
        )

    return SessionSummary(
        samples=int(len(df)),
        overflows=int(np.count_nonzero(data.overflow)),
        duration_s=_span(data.elapsed_s),
        groups=groups,
    )


def _value_stats(values: np.ndarray) -> Dict[str, float]:
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        nan = float("nan")
        return {"minimum": nan, "maximum": nan, "mean": nan, "std": nan}
    return {
        "minimum": float(np.min(finite)),
        "maximum": float(np.max(finite)),
        "mean": float(np.mean(finite)),
        "std": float(np.std(finite, ddof=1)) if finite.size > 1 else 0.0,
    }


def _span(elapsed: np.ndarray) -> float:
    if elapsed.size == 0:
        return 0.0
    return float(np.max(elapsed) - np.min(elapsed))
