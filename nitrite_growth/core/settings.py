# nitrite_growth/core/settings.py
from __future__ import annotations
from dataclasses import dataclass, field

from .model import ExponentialWindow

_FIT_SOURCES = ("nitrite", "mean")
_PLOT_FORMATS = ("svg", "pdf", "eps", "png")
_REPORT_FORMATS = ("csv", "mat", "both")


@dataclass(frozen=True)
class SigmoidalFitSettings:
    """
    Thresholds deciding whether a logistic fit counts as sigmoidal.

    min_intensity_maximum:  observed maximum [uM] below which the series is no_signal
                            ("has a meaningful maximum").
    min_intensity_range:    observed max - min [uM] below which the series is no_signal.
    t0_max_intensity_ratio: fitted curve at the first time point, relative to imax, above
                            which the rise started before sampling ("has a meaningful t0")
                            and the fit is ambiguous.
    tmax_intensity_ratio:   fitted curve at the last time point, relative to imax, below
                            which the plateau is not reached and the fit is ambiguous.
    """
    min_intensity_maximum: float = 0.3
    min_intensity_range: float = 0.1
    t0_max_intensity_ratio: float = 0.05
    tmax_intensity_ratio: float = 0.75
    n_starts: int = 20            # random starts after the heuristic start
    seed: int = 0
    maxfev: int = 5000
    source: str = "nitrite"       # fit replicate rows ("nitrite") or summary means ("mean")
    generation: str | None = None # restrict the fit to one generation label


@dataclass(frozen=True)
class PlotSettings:
    fmt: str = "svg"
    dpi: int = 160


@dataclass(frozen=True)
class ReportSettings:
    fmt: str = "csv"
    mat_variable: str = "report"


@dataclass(frozen=True)
class PreparedSettings:
    fit: SigmoidalFitSettings
    window: ExponentialWindow
    plots: PlotSettings = field(default_factory=PlotSettings)
    reports: ReportSettings = field(default_factory=ReportSettings)


def _to_float(val, key: str) -> float:
    try:
        return float(val)
    except (TypeError, ValueError):
        raise ValueError(f"config: '{key}' must be a number, got {val!r}") from None


def _ratio(val, key: str) -> float:
    x = _to_float(val, key)
    if not 0.0 <= x <= 1.0:
        raise ValueError(f"config: '{key}' must lie in [0, 1], got {x}")
    return x


def prepare_fit(cfg: dict) -> SigmoidalFitSettings:
    fit = (cfg or {}).get("sigmoidal_fit", {}) or {}
    d = SigmoidalFitSettings()
    source = str(fit.get("source", d.source)).lower().strip()
    if source not in _FIT_SOURCES:
        raise ValueError(f"config: sigmoidal_fit.source must be one of {_FIT_SOURCES}, got {source!r}")
    generation = fit.get("generation", None)
    n_starts = int(fit.get("n_starts", d.n_starts))
    if n_starts < 0:
        raise ValueError("config: sigmoidal_fit.n_starts must be >= 0")
    return SigmoidalFitSettings(
        min_intensity_maximum=_to_float(fit.get("min_intensity_maximum", d.min_intensity_maximum),
                                        "sigmoidal_fit.min_intensity_maximum"),
        min_intensity_range=_to_float(fit.get("min_intensity_range", d.min_intensity_range),
                                      "sigmoidal_fit.min_intensity_range"),
        t0_max_intensity_ratio=_ratio(fit.get("t0_max_intensity_ratio", d.t0_max_intensity_ratio),
                                      "sigmoidal_fit.t0_max_intensity_ratio"),
        tmax_intensity_ratio=_ratio(fit.get("tmax_intensity_ratio", d.tmax_intensity_ratio),
                                    "sigmoidal_fit.tmax_intensity_ratio"),
        n_starts=n_starts,
        seed=int(fit.get("seed", d.seed)),
        maxfev=int(fit.get("maxfev", d.maxfev)),
        source=source,
        generation=None if generation is None else str(generation),
    )


def prepare_window(cfg: dict) -> ExponentialWindow:
    """The exponential window is chosen by inspection; both bounds are required."""
    win = (cfg or {}).get("exponential_window", {}) or {}
    if "start_h" not in win or "end_h" not in win:
        raise ValueError("config: exponential_window needs both 'start_h' and 'end_h'")
    return ExponentialWindow(
        start_h=_to_float(win["start_h"], "exponential_window.start_h"),
        end_h=_to_float(win["end_h"], "exponential_window.end_h"),
    )


def prepare_settings(cfg: dict) -> PreparedSettings:
    """
    Read the sigmoidal_fit / exponential_window / plots / reports sections from config
    and return typed settings. Missing keys fall back to the dataclass defaults.
    """
    plots = (cfg or {}).get("plots", {}) or {}
    fmt = str(plots.get("format", "svg")).lower().lstrip(".")
    if fmt not in _PLOT_FORMATS:
        raise ValueError(f"config: plots.format must be one of {_PLOT_FORMATS}, got {fmt!r}")

    reports = (cfg or {}).get("reports", {}) or {}
    rfmt = str(reports.get("format", "csv")).lower()
    if rfmt not in _REPORT_FORMATS:
        raise ValueError(f"config: reports.format must be one of {_REPORT_FORMATS}, got {rfmt!r}")

    return PreparedSettings(
        fit=prepare_fit(cfg),
        window=prepare_window(cfg),
        plots=PlotSettings(fmt=fmt, dpi=int(plots.get("dpi", 160))),
        reports=ReportSettings(fmt=rfmt, mat_variable=str(reports.get("mat_variable", "report"))),
    )
