# nitrite_growth/core/pipeline.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import logging
import pandas as pd

from .model import Dataset, RegressionResult
from .normalize import select_generation
from .plotting import (save_activity_plot, save_log_overview_plot,
                       save_regression_plot, save_sigmoidal_plot)
from .regression import estimate_growth_rate
from .reports import write_observations, write_summary
from .settings import prepare_settings
from .sigmoid import SigmoidalFit, fit_and_categorize, select_fit_series

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    dataset: Dataset
    fit: SigmoidalFit
    phase: pd.DataFrame | None
    regression: RegressionResult | None
    out_dir: Path
    generation: str | None = None     # label both analyses were restricted to, None = all


def run_pipeline(dataset: Dataset, cfg: dict, out_root: Path) -> PipelineResult:
    """
    load → sigmoidal fit → exponential phase → log-linear regression → plots/reports,
    written to out_root/<dataset name>/. Fit and regression use the same generation subset.
    Extraction and regression errors propagate after the fit-only summary is written.
    """
    settings = prepare_settings(cfg)
    name = dataset.name
    out_dir = out_root / name
    out_dir.mkdir(parents=True, exist_ok=True)
    plot_kw = {"fmt": settings.plots.fmt, "dpi": settings.plots.dpi}
    report_kw = {"fmt": settings.reports.fmt, "mat_variable": settings.reports.mat_variable}

    df = dataset.df
    write_observations(df, out_dir, name)
    save_activity_plot(name, df, out_dir, **plot_kw)

    generation = settings.fit.generation
    subset = select_generation(df, generation)
    if generation is not None:
        print(f"[INFO] {name}: fit and regression restricted to generation {generation} "
              f"({len(subset)} of {len(df)} rows)")

    # sigmoidal model
    t_fit, y_fit = select_fit_series(subset, settings.fit)
    fit = fit_and_categorize(t_fit, y_fit, settings.fit)
    if fit.is_sigmoidal:
        print(f"[fit] {name}: sigmoidal  Imax={fit.imax:.2f} µM  a={fit.slope:.4f} 1/h  "
              f"t_mid={fit.midpoint:.2f} h")
    else:
        print(f"[WARN] {name}: fit is {fit.category.value} ({fit.reason}); "
              "model parameters are not reported.")
    save_sigmoidal_plot(name, t_fit, y_fit, fit, out_dir, **plot_kw)

    # exponential phase + mu_max
    save_log_overview_plot(name, subset, settings.window, out_dir, **plot_kw)
    try:
        phase, regression = estimate_growth_rate(subset, settings.window)
    except ValueError:
        partial = PipelineResult(dataset=dataset, fit=fit, phase=None, regression=None,
                                 out_dir=out_dir, generation=generation)
        write_summary(partial, out_dir / "summary", f"{name} summary (fit only)", **report_kw)
        raise
    print(f"[fit] {name}: μmax={regression.mu_max:.5f} ± {regression.slope_stderr:.5f} 1/h  "
          f"R²={regression.r_squared:.4f}  (window {settings.window.start_h:g}–{settings.window.end_h:g} h)")
    save_regression_plot(name, phase, regression, out_dir, **plot_kw)

    result = PipelineResult(dataset=dataset, fit=fit, phase=phase, regression=regression,
                            out_dir=out_dir, generation=generation)
    write_summary(result, out_dir / "summary", f"{name} summary", **report_kw)
    _LOG.debug("pipeline finished for %s", name)
    return result
