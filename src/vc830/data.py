"""Loading of measurement logs written by `vc830 run --log-csv`."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

REQUIRED_COLUMNS = {"captured_at", "mode", "unit", "overflow", "si_magnitude"}


@dataclass(frozen=True)
class LogData:
    """Container for a parsed measurement session."""

    dataframe: pd.DataFrame
    elapsed_s: np.ndarray
    si_magnitude: np.ndarray
    overflow: np.ndarray


def load_measurement_log(path: str | Path) -> LogData:
    """Load a measurement log from *path*.

    Parameters
    ----------
    path:
        CSV produced by `MeasurementLog`; `#` metadata lines are skipped.

    Returns
    -------
    LogData
        Rows sorted by capture time with seconds elapsed since the first one.
        Overflow rows keep `NaN` as their SI magnitude.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    df = pd.read_csv(path, comment="#", keep_default_na=False, na_values={"si_magnitude": [""]})
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")
    if df.empty:
        raise ValueError("Measurement log contains no samples")

    df = df.copy()
    df["captured_at"] = pd.to_datetime(df["captured_at"], utc=True)
    df["overflow"] = df["overflow"].astype(str).str.lower() == "true"
    df["si_magnitude"] = pd.to_numeric(df["si_magnitude"], errors="coerce")
    for column in ("mode", "unit"):
        df[column] = df[column].astype(str)
    df = df.sort_values("captured_at", kind="mergesort")
    df.reset_index(drop=True, inplace=True)

    start = df["captured_at"].iloc[0]
    df["elapsed_s"] = (df["captured_at"] - start).dt.total_seconds()

    return LogData(
        dataframe=df,
        elapsed_s=df["elapsed_s"].to_numpy(dtype=float),
        si_magnitude=df["si_magnitude"].to_numpy(dtype=float),
        overflow=df["overflow"].to_numpy(dtype=bool),
    )
