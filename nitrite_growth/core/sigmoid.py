# nitrite_growth/core/sigmoid.py
"""
Logistic growth-curve fit and categorization.

    I(t) = imax / (1 + exp(-slope * (t - midpoint)))

The fit runs on data scaled by the maximum time and maximum intensity so that the
starting heuristics and parameter bounds are independent of units. Parameters are
scaled back before they are returned.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import logging
import math
import warnings

import numpy as np
import pandas as pd
from scipy.optimize import curve_fit, OptimizeWarning
from scipy.special import expit

from .errors import InsufficientSignalError
from .normalize import select_generation, summarize_generations
from .settings import SigmoidalFitSettings

_LOG = logging.getLogger(__name__)

_N_PARAMS = 3
# bounds in scaled units: (imax, slope, midpoint)
_LOWER = (0.0, -1000.0, -2.0)
_UPPER = (10.0, 1000.0, 3.0)


class FitCategory(str, Enum):
    SIGMOIDAL = "sigmoidal"
    AMBIGUOUS = "ambiguous"
    NO_SIGNAL = "no_signal"


def model_curve(t, imax: float, slope: float, midpoint: float):
    """Evaluate the logistic curve for a scalar or an array of times."""
    y = imax * expit(slope * (np.asarray(t, dtype=float) - midpoint))
    return float(y) if np.ndim(y) == 0 else y


def model_curve_reverse(n, imax: float, slope: float, midpoint: float):
    """Time at which the curve reaches intensity ``n``; defined only for 0 < n < imax."""
    if slope == 0 or not math.isfinite(slope):
        raise ValueError(f"curve inverse undefined for slope={slope}")
    n_arr = np.asarray(n, dtype=float)
    if not (imax > 0) or not np.all((n_arr > 0) & (n_arr < imax)):
        raise ValueError(f"curve inverse requires 0 < N < imax (imax={imax}), got {n}")
    t = midpoint - np.log(imax / n_arr - 1.0) / slope
    return float(t) if np.ndim(t) == 0 else t


@dataclass(frozen=True)
class SigmoidalFit:
    imax: float
    slope: float
    midpoint: float
    category: FitCategory
    reason: str               # why the category was chosen
    n_obs: int
    rss: float = math.nan
    aic: float = math.nan
    r_squared: float = math.nan

    @property
    def is_sigmoidal(self) -> bool:
        return self.category is FitCategory.SIGMOIDAL

    def require_sigmoidal(self) -> "SigmoidalFit":
        if not self.is_sigmoidal:
            raise InsufficientSignalError(
                f"fit categorized as {self.category.value} ({self.reason}); parameters are not usable"
            )
        return self

    def model_curve(self, t):
        self.require_sigmoidal()
        return model_curve(t, self.imax, self.slope, self.midpoint)

    def model_curve_reverse(self, n):
        self.require_sigmoidal()
        return model_curve_reverse(n, self.imax, self.slope, self.midpoint)

    # tangent at the midpoint crosses 0 and imax at midpoint -/+ 2/slope
    @property
    def start_point(self) -> float:
        return self.midpoint - 2.0 / self.slope if self.slope else math.nan

    @property
    def reach_maximum(self) -> float:
        return self.midpoint + 2.0 / self.slope if self.slope else math.nan

    @property
    def max_rate(self) -> float:
        """Steepest production rate [uM/h], reached at the midpoint."""
        return self.imax * self.slope / 4.0


def _logistic(t, imax, slope, midpoint):
    return imax * expit(slope * (t - midpoint))


def _first_crossing(t: np.ndarray, y: np.ndarray, level: float) -> float:
    idx = np.nonzero(y >= level)[0]
    return float(t[idx[0]]) if idx.size else float(t[-1])


def _heuristic_start(t: np.ndarray, y: np.ndarray) -> list[float]:
    top = float(np.max(y))
    falling = y[-1] < y[0]
    # a falling series crosses its levels first when read from the end
    tt, yy = (t[::-1], y[::-1]) if falling else (t, y)
    mid = _first_crossing(tt, yy, 0.5 * top)
    width = abs(_first_crossing(tt, yy, 0.9 * top) - _first_crossing(tt, yy, 0.1 * top))
    span = float(t[-1] - t[0])
    slope = 4.39 / width if width > 0 else 10.0 / max(span, 1e-9)   # 10-90 % rise = 4.39/|slope|
    if falling:
        slope = -slope
    return [top, float(np.clip(slope, _LOWER[1], _UPPER[1])), float(np.clip(mid, _LOWER[2], _UPPER[2]))]


def _candidate_starts(t: np.ndarray, y: np.ndarray, n_random: int, seed: int) -> list[list[float]]:
    starts = [_heuristic_start(t, y)]
    rng = np.random.default_rng(seed)
    for _ in range(n_random):
        starts.append([
            float(rng.uniform(0.5, 2.0)),
            float(10 ** rng.uniform(-1.0, 2.0)),
            float(rng.uniform(t[0], t[-1])),
        ])
    return starts


def _best_fit(t: np.ndarray, y: np.ndarray, settings: SigmoidalFitSettings) -> tuple[np.ndarray, float] | None:
    best, best_sse = None, np.inf
    for k, p0 in enumerate(_candidate_starts(t, y, settings.n_starts, settings.seed)):
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", OptimizeWarning)
                popt, _ = curve_fit(_logistic, t, y, p0=p0, bounds=(_LOWER, _UPPER),
                                    maxfev=settings.maxfev)
        except (RuntimeError, ValueError) as e:
            _LOG.debug("start %d did not converge: %s", k, e)
            continue
        sse = float(np.sum((y - _logistic(t, *popt)) ** 2))
        if np.isfinite(sse) and sse < best_sse:
            best, best_sse = popt, sse
    if best is None:
        return None
    return best, best_sse


def _no_signal(reason: str, n: int) -> SigmoidalFit:
    _LOG.info("no_signal: %s", reason)
    return SigmoidalFit(math.nan, math.nan, math.nan, FitCategory.NO_SIGNAL, reason, n)


def fit_and_categorize(time, intensity, settings: SigmoidalFitSettings | None = None) -> SigmoidalFit:
    """
    Fit the logistic curve by nonlinear least squares and categorize the result.

    no_signal:  too few points, observed maximum or range below threshold.
    ambiguous:  no converged fit, non-increasing curve, rise already under way at the
                first time point, or plateau not reached by the last time point.
    sigmoidal:  everything else.
    """
    settings = settings or SigmoidalFitSettings()
    t = np.asarray(time, dtype=float).ravel()
    y = np.asarray(intensity, dtype=float).ravel()
    if t.shape != y.shape:
        raise ValueError(f"time and intensity must have the same length (got {t.shape} vs {y.shape})")
    keep = np.isfinite(t) & np.isfinite(y)
    t, y = t[keep], y[keep]
    order = np.argsort(t, kind="stable")
    t, y = t[order], y[order]
    n = int(t.size)

    if n < _N_PARAMS or np.unique(t).size < 2:
        return _no_signal(f"{n} point(s), {np.unique(t).size} distinct time(s)", n)
    y_max, y_min = float(np.max(y)), float(np.min(y))
    if y_max < settings.min_intensity_maximum or y_max <= 0:
        return _no_signal(f"maximum {y_max:.4g} below {settings.min_intensity_maximum:g}", n)
    if y_max - y_min < settings.min_intensity_range:
        return _no_signal(f"range {y_max - y_min:.4g} below {settings.min_intensity_range:g}", n)

    t_scale = float(np.max(np.abs(t)))
    found = _best_fit(t / t_scale, y / y_max, settings)
    if found is None:
        reason = "no start converged"
        _LOG.info("ambiguous: %s", reason)
        return SigmoidalFit(math.nan, math.nan, math.nan, FitCategory.AMBIGUOUS, reason, n)

    popt, _ = found
    imax = float(popt[0] * y_max)
    slope = float(popt[1] / t_scale)
    midpoint = float(popt[2] * t_scale)

    rss = float(np.sum((y - _logistic(t, imax, slope, midpoint)) ** 2))
    sst = float(np.sum((y - np.mean(y)) ** 2))
    r2 = 1.0 - rss / sst if sst > 0 else math.nan
    aic = n * math.log(max(rss, 1e-300) / n) + 2 * _N_PARAMS

    if imax <= 0 or slope <= 0:
        category, reason = FitCategory.AMBIGUOUS, f"non-increasing curve (imax={imax:.4g}, slope={slope:.4g})"
    else:
        at_t0 = _logistic(t[0], imax, slope, midpoint) / imax
        at_tmax = _logistic(t[-1], imax, slope, midpoint) / imax
        if at_t0 > settings.t0_max_intensity_ratio:
            category = FitCategory.AMBIGUOUS
            reason = f"curve at t0 is {at_t0:.3f} of imax (> {settings.t0_max_intensity_ratio:g})"
        elif at_tmax < settings.tmax_intensity_ratio:
            category = FitCategory.AMBIGUOUS
            reason = f"curve at last time is {at_tmax:.3f} of imax (< {settings.tmax_intensity_ratio:g})"
        else:
            category, reason = FitCategory.SIGMOIDAL, "sigmoidal"

    _LOG.info("%s: imax=%.4g slope=%.4g midpoint=%.4g (R2=%.4f)", category.value, imax, slope, midpoint, r2)
    return SigmoidalFit(imax, slope, midpoint, category, reason, n, rss=rss, aic=aic, r_squared=r2)


def select_fit_series(df: pd.DataFrame, settings: SigmoidalFitSettings) -> tuple[np.ndarray, np.ndarray]:
    """Pick the (time, intensity) pairs the fit runs on: replicate rows or generation means."""
    df = select_generation(df, settings.generation)
    if settings.source == "mean":
        data = summarize_generations(df).rename(columns={"mean_uM": "value"})
    else:
        data = df.rename(columns={"nitrite_uM": "value"})
    return data["time_h"].to_numpy(float), data["value"].to_numpy(float)
