# nitrite_growth/core/model.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator
import math
import pandas as pd

# canonical columns produced by every loader
CANONICAL_COLUMNS: tuple[str, ...] = (
    "time_h", "replicate", "generation", "nitrite_uM", "mean_uM", "stdev_uM", "cv_pct",
)


@dataclass(frozen=True)
class Observation:
    time_h: float
    generation: str
    nitrite_uM: float
    replicate: str | None = None
    mean_uM: float | None = None      # only on generation-aggregate summary rows
    stdev_uM: float | None = None
    cv_pct: float | None = None


def _opt_float(v) -> float | None:
    if v is None or pd.isna(v):
        return None
    return float(v)


@dataclass(frozen=True)
class Dataset:
    name: str                 # e.g. workbook stem, used as output folder name
    df: pd.DataFrame          # canonical columns, see CANONICAL_COLUMNS
    source_path: Path
    sheet: str | None         # sheet name for workbooks, None for CSV
    loader: str               # "xlsx" or "csv"

    def observations(self) -> Iterator[Observation]:
        for row in self.df.itertuples(index=False):
            rep = getattr(row, "replicate", None)
            yield Observation(
                time_h=float(row.time_h),
                generation=str(row.generation),
                nitrite_uM=float(row.nitrite_uM),
                replicate=None if rep is None or pd.isna(rep) else str(rep),
                mean_uM=_opt_float(getattr(row, "mean_uM", None)),
                stdev_uM=_opt_float(getattr(row, "stdev_uM", None)),
                cv_pct=_opt_float(getattr(row, "cv_pct", None)),
            )


@dataclass(frozen=True)
class ExponentialWindow:
    start_h: float
    end_h: float

    def __post_init__(self):
        if not (math.isfinite(self.start_h) and math.isfinite(self.end_h)):
            raise ValueError("exponential window bounds must be finite")
        if self.start_h > self.end_h:
            raise ValueError(f"exponential window start ({self.start_h}) is after end ({self.end_h})")


@dataclass(frozen=True)
class RegressionResult:
    slope: float              # = mu_max [1/h]
    slope_stderr: float
    intercept: float
    intercept_stderr: float
    r_squared: float
    n_points: int
    window: ExponentialWindow

    @property
    def mu_max(self) -> float:
        return self.slope

    @property
    def doubling_time_h(self) -> float:
        if self.slope <= 0:
            return math.nan
        return math.log(2.0) / self.slope
