# nitrite_growth/core/regression.py
from __future__ import annotations
import logging
import numpy as np
import pandas as pd
from scipy import stats

from .errors import DegenerateRegressionError, NonPositiveIntensityError
from .model import ExponentialWindow, RegressionResult

_LOG = logging.getLogger(__name__)


def extract_exponential_phase(df: pd.DataFrame, window: ExponentialWindow,
                              column: str = "nitrite_uM") -> pd.DataFrame:
    """
    Rows with window.start_h <= time_h <= window.end_h, plus ``ln_nitrite``.
    Empty when the window holds no observation.
    """
    mask = (df["time_h"] >= window.start_h) & (df["time_h"] <= window.end_h)
    phase = df.loc[mask].copy()
    if phase.empty:
        _LOG.info("window [%g, %g] h contains no observations", window.start_h, window.end_h)
        phase["ln_nitrite"] = pd.Series(dtype=float)
        return phase.reset_index(drop=True)

    values = phase[column].to_numpy(float)
    bad = ~(values > 0)
    if bad.any():
        times = ", ".join(f"{t:g}" for t in phase.loc[bad, "time_h"])
        raise NonPositiveIntensityError(
            f"{int(bad.sum())} value(s) of '{column}' <= 0 in window "
            f"[{window.start_h:g}, {window.end_h:g}] h (time: {times}); cannot log-transform"
        )
    phase["ln_nitrite"] = np.log(values)
    return phase.reset_index(drop=True)


def fit_log_linear(phase: pd.DataFrame, window: ExponentialWindow) -> RegressionResult:
    """OLS of ln_nitrite on time_h; the slope is the specific growth rate mu_max [1/h]."""
    n = len(phase)
    if n < 2:
        raise DegenerateRegressionError(
            f"{n} point(s) in window [{window.start_h:g}, {window.end_h:g}] h; need at least 2"
        )
    x = phase["time_h"].to_numpy(float)
    y = phase["ln_nitrite"].to_numpy(float)
    if np.unique(x).size < 2:
        raise DegenerateRegressionError(
            f"all {n} point(s) in window share time {x[0]:g} h; slope undefined"
        )

    res = stats.linregress(x, y)
    result = RegressionResult(
        slope=float(res.slope),
        slope_stderr=float(res.stderr),
        intercept=float(res.intercept),
        intercept_stderr=float(res.intercept_stderr),
        r_squared=float(res.rvalue ** 2),
        n_points=n,
        window=window,
    )
    _LOG.info("mu_max=%.5f ± %.5f 1/h (R2=%.4f, n=%d)",
              result.slope, result.slope_stderr, result.r_squared, n)
    return result


def estimate_growth_rate(df: pd.DataFrame, window: ExponentialWindow,
                         column: str = "nitrite_uM") -> tuple[pd.DataFrame, RegressionResult]:
    phase = extract_exponential_phase(df, window, column=column)
    return phase, fit_log_linear(phase, window)
