# nitrite_growth/core/reports.py
from __future__ import annotations
from pathlib import Path
from typing import Literal, TYPE_CHECKING
import numpy as np
import pandas as pd
from scipy.io import savemat

from .normalize import summarize_generations

if TYPE_CHECKING:
    from .pipeline import PipelineResult

ReportFormat = Literal["csv", "mat", "both"]

_COLUMNS = ["parameter", "value", "unit"]


def _build_dataframe(result: "PipelineResult") -> pd.DataFrame:
    """One row per reported quantity; fit parameters only when the fit is sigmoidal."""
    fit, reg = result.fit, result.regression
    rows: list[dict] = [
        {"parameter": "n_observations", "value": float(len(result.dataset.df)), "unit": ""},
        {"parameter": "generation", "value": "all" if result.generation is None else str(result.generation),
         "unit": ""},
        {"parameter": "fit_category", "value": fit.category.value, "unit": ""},
        {"parameter": "fit_reason", "value": fit.reason, "unit": ""},
    ]
    if fit.is_sigmoidal:
        rows += [
            {"parameter": "imax", "value": fit.imax, "unit": "uM"},
            {"parameter": "slope_a", "value": fit.slope, "unit": "1/h"},
            {"parameter": "midpoint", "value": fit.midpoint, "unit": "h"},
            {"parameter": "start_point", "value": fit.start_point, "unit": "h"},
            {"parameter": "reach_maximum", "value": fit.reach_maximum, "unit": "h"},
            {"parameter": "max_rate", "value": fit.max_rate, "unit": "uM/h"},
            {"parameter": "fit_r_squared", "value": fit.r_squared, "unit": ""},
            {"parameter": "fit_aic", "value": fit.aic, "unit": ""},
        ]
    if reg is not None:
        rows += [
            {"parameter": "window_start", "value": reg.window.start_h, "unit": "h"},
            {"parameter": "window_end", "value": reg.window.end_h, "unit": "h"},
            {"parameter": "mu_max", "value": reg.mu_max, "unit": "1/h"},
            {"parameter": "mu_max_stderr", "value": reg.slope_stderr, "unit": "1/h"},
            {"parameter": "intercept", "value": reg.intercept, "unit": "ln(uM)"},
            {"parameter": "regression_r_squared", "value": reg.r_squared, "unit": ""},
            {"parameter": "regression_n_points", "value": float(reg.n_points), "unit": ""},
            {"parameter": "doubling_time", "value": reg.doubling_time_h, "unit": "h"},
        ]
    return pd.DataFrame(rows, columns=_COLUMNS)


def _write_csv(df_out: pd.DataFrame, out_csv: Path, title: str) -> None:
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df_out.to_csv(out_csv, index=False, encoding="utf-8")
    print(f"[OK] wrote report: {title} → {out_csv}")


def _to_mat_cellstr(seq: list[str]) -> np.ndarray:
    """Make a MATLAB column cell array from a list of strings."""
    seq2 = [("" if s is None else str(s)) for s in seq]
    arr = np.empty((len(seq2), 1), dtype=object)
    arr[:, 0] = seq2
    return arr


def _write_mat(df_out: pd.DataFrame, out_mat: Path, varname: str, title: str) -> None:
    """
    Save a MATLAB struct with one field per parameter.
    Numeric values become doubles, text values (category, reason) become char arrays.
    """
    out_mat.parent.mkdir(parents=True, exist_ok=True)
    mat_struct: dict[str, object] = {}
    for rec in df_out.to_dict("records"):
        value = rec["value"]
        mat_struct[rec["parameter"]] = value if isinstance(value, str) else float(value)
    mat_struct["units"] = _to_mat_cellstr(df_out["unit"].tolist())
    savemat(out_mat, {varname: mat_struct})
    print(f"[OK] wrote report: {title} → {out_mat}")


def write_summary(result: "PipelineResult",
                  out_base: Path,
                  title: str,
                  fmt: ReportFormat = "csv",
                  mat_variable: str = "report") -> pd.DataFrame:
    """
    Write the fit/regression summary in the requested format.
    - out_base is a *base path without extension* (e.g., .../summary)
    - fmt: "csv" | "mat" | "both"
    """
    df_out = _build_dataframe(result)
    if fmt in ("csv", "both"):
        _write_csv(df_out, out_base.with_suffix(".csv"), title)
    if fmt in ("mat", "both"):
        _write_mat(df_out, out_base.with_suffix(".mat"), mat_variable, title)
    return df_out


def write_observations(df: pd.DataFrame, out_dir: Path, title: str) -> None:
    """Cleaned observations and the per-generation summary as CSV."""
    _write_csv(df, out_dir / "observations.csv", f"{title} observations")
    _write_csv(summarize_generations(df), out_dir / "generation_summary.csv", f"{title} generation summary")
