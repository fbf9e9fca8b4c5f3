# nitrite_growth/core/normalize.py
from __future__ import annotations
import logging
import re
import numpy as np
import pandas as pd

from .model import CANONICAL_COLUMNS

_LOG = logging.getLogger(__name__)

# normalized header -> canonical column
_ALIASES: dict[str, str] = {
    "time": "time_h", "zeit": "time_h", "time_h": "time_h", "hours": "time_h",
    "replicate": "replicate", "rep": "replicate",
    "generation": "generation", "gen": "generation",
    "nitrite": "nitrite_uM", "no2": "nitrite_uM", "nitrite_um": "nitrite_uM",
    "mean": "mean_uM", "average": "mean_uM",
    "stdev": "stdev_uM", "std": "stdev_uM", "sd": "stdev_uM", "stddev": "stdev_uM",
    "cv%": "cv_pct", "cv": "cv_pct", "cv_pct": "cv_pct",
}


def _norm_header(name) -> str:
    s = str(name).strip().lower()
    s = re.sub(r"\(.*?\)|\[.*?\]", "", s)     # drop units: "Time (h)", "Nitrite [uM]"
    s = re.sub(r"[\s\-]+", "", s)
    return s.replace(".", "")


def parse_columns(df: pd.DataFrame) -> dict[str, object]:
    """Map canonical column names to the source headers present in ``df``."""
    found: dict[str, object] = {}
    for c in df.columns:
        canon = _ALIASES.get(_norm_header(c))
        if canon is not None and canon not in found:
            found[canon] = c
    return found


def to_float(s) -> pd.Series:
    if pd.api.types.is_numeric_dtype(s):
        return s.astype(float)
    return pd.to_numeric(s.astype(str).str.strip().str.replace(",", ".", regex=False), errors="coerce")


def to_label(s: pd.Series) -> pd.Series:
    """Categorical labels; integral floats read from Excel (1.0) become '1'."""
    def one(v):
        if v is None or (isinstance(v, float) and np.isnan(v)):
            return pd.NA
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        text = str(v).strip()
        return text if text and text.lower() != "nan" else pd.NA
    return s.map(one).astype("object")


def canonicalize(raw: pd.DataFrame, source: str) -> pd.DataFrame:
    """
    Normalize a raw Time/Replicate/Generation/Nitrite/Mean/StDev/CV% table.
    Rows without a time or nitrite value are dropped.
    """
    cols = parse_columns(raw)
    if "time_h" not in cols or "nitrite_uM" not in cols:
        raise ValueError(f"{source}: missing required columns (Time/Nitrite).")

    out = pd.DataFrame(index=raw.index)
    out["time_h"] = to_float(raw[cols["time_h"]])
    out["replicate"] = to_label(raw[cols["replicate"]]) if "replicate" in cols else pd.NA
    out["generation"] = to_label(raw[cols["generation"]]) if "generation" in cols else "all"
    # merged generation cells arrive only on the first row of a block
    out["generation"] = out["generation"].ffill().fillna("all")
    out["nitrite_uM"] = to_float(raw[cols["nitrite_uM"]])
    for name in ("mean_uM", "stdev_uM", "cv_pct"):
        out[name] = to_float(raw[cols[name]]) if name in cols else np.nan

    n_before = len(out)
    out = out.dropna(subset=["time_h", "nitrite_uM"])
    dropped = n_before - len(out)
    if dropped:
        _LOG.debug("%s: dropped %d row(s) without time/nitrite value", source, dropped)
    out = out.sort_values("time_h", kind="stable").reset_index(drop=True)
    return out[list(CANONICAL_COLUMNS)]


def select_generation(df: pd.DataFrame, generation: str | None) -> pd.DataFrame:
    """Rows of one generation label; the whole frame when ``generation`` is None."""
    if generation is None:
        return df
    out = df[df["generation"].astype(str) == str(generation)]
    if out.empty:
        raise ValueError(f"generation {generation!r} not present in data")
    return out.reset_index(drop=True)


def summarize_generations(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per (generation, time) mean, standard deviation and CV%.
    Uses the sheet's own summary rows where present, otherwise aggregates replicates.
    """
    cols = ["generation", "time_h", "mean_uM", "stdev_uM", "cv_pct", "n"]
    if df.empty:
        return pd.DataFrame(columns=cols)

    summary_rows = df.dropna(subset=["mean_uM"])
    if not summary_rows.empty:
        out = summary_rows[["generation", "time_h", "mean_uM", "stdev_uM", "cv_pct"]].copy()
        counts = df.groupby(["generation", "time_h"], sort=False).size().rename("n")
        out = out.join(counts, on=["generation", "time_h"])
        missing_cv = out["cv_pct"].isna() & (out["mean_uM"] != 0)
        out.loc[missing_cv, "cv_pct"] = 100.0 * out.loc[missing_cv, "stdev_uM"] / out.loc[missing_cv, "mean_uM"]
        return out.sort_values(["generation", "time_h"], kind="stable").reset_index(drop=True)[cols]

    g = df.groupby(["generation", "time_h"], sort=False)["nitrite_uM"]
    out = g.agg(mean_uM="mean", stdev_uM="std", n="size").reset_index()
    out["stdev_uM"] = out["stdev_uM"].fillna(0.0)
    with np.errstate(divide="ignore", invalid="ignore"):
        out["cv_pct"] = np.where(out["mean_uM"] != 0, 100.0 * out["stdev_uM"] / out["mean_uM"], np.nan)
    return out.sort_values(["generation", "time_h"], kind="stable").reset_index(drop=True)[cols]
