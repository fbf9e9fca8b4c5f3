# nitrite_growth/core/plotting.py
from __future__ import annotations
from pathlib import Path
import numpy as np
import matplotlib.pyplot as plt
import pandas as pd

from .model import ExponentialWindow, RegressionResult
from .normalize import summarize_generations
from .sigmoid import SigmoidalFit, model_curve


def _save(out_path: Path, dpi: int, name: str, what: str) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out_path, dpi=dpi)
    plt.close()
    print(f"[OK] {name}: {what} → {out_path}")
    return out_path


def save_activity_plot(name: str, df: pd.DataFrame, out_dir: Path,
                       fmt: str = "svg", dpi: int = 160) -> Path | None:
    """Nitrite vs time per generation: replicate points plus mean ± SD error bars."""
    if df.empty:
        print(f"[INFO] {name}: no observations; skipping activity plot.")
        return None
    summary = summarize_generations(df)

    plt.figure(figsize=(9, 5.5))
    colors = plt.rcParams["axes.prop_cycle"].by_key()["color"]
    for k, (gen, g_sum) in enumerate(summary.groupby("generation", sort=False)):
        color = colors[k % len(colors)]
        g_raw = df[df["generation"] == gen]
        plt.scatter(g_raw["time_h"], g_raw["nitrite_uM"], s=12, alpha=0.35, color=color)
        plt.errorbar(g_sum["time_h"], g_sum["mean_uM"], yerr=g_sum["stdev_uM"].fillna(0.0),
                     fmt="o-", ms=4, capsize=3, color=color, label=f"Generation {gen}")
    plt.xlabel("Time [h]")
    plt.ylabel("Nitrite [µM]")
    plt.title(f"{name} — nitrite production per generation")
    plt.grid(True, alpha=0.3)
    plt.legend(fontsize=8, frameon=False)
    plt.tight_layout()
    return _save(out_dir / f"nitrite_activity.{fmt}", dpi, name, "activity plot")


def save_sigmoidal_plot(name: str, time, intensity, fit: SigmoidalFit, out_dir: Path,
                        fmt: str = "svg", dpi: int = 160) -> Path | None:
    """Observed points with the logistic model overlay and annotated parameters."""
    if not fit.is_sigmoidal:
        print(f"[SKIP] {name}: fit is {fit.category.value} ({fit.reason}); no model overlay.")
        return None

    t = np.asarray(time, dtype=float)
    y = np.asarray(intensity, dtype=float)
    t_lo = min(float(np.nanmin(t)), fit.start_point)
    t_hi = max(float(np.nanmax(t)), fit.reach_maximum)
    grid = np.linspace(t_lo, t_hi, 400)

    plt.figure(figsize=(9, 5.5))
    plt.scatter(t, y, s=14, alpha=0.6, label="observed")
    plt.plot(grid, fit.model_curve(grid), lw=2, label="logistic fit")
    plt.axhline(fit.imax, ls=":", lw=1, color="grey")
    plt.axvline(fit.midpoint, ls="--", lw=1, color="grey")
    # tangent at the midpoint
    plt.plot([fit.start_point, fit.reach_maximum], [0.0, fit.imax], ls="--", lw=1, color="tab:red",
             label="tangent at midpoint")
    text = (
        f"Imax = {fit.imax:.1f} µM\n"
        f"a = {fit.slope:.4f} 1/h\n"
        f"t_mid = {fit.midpoint:.1f} h\n"
        f"start = {fit.start_point:.1f} h, reach max = {fit.reach_maximum:.1f} h\n"
        f"R² = {fit.r_squared:.4f}"
    )
    plt.annotate(text, xy=(0.02, 0.97), xycoords="axes fraction", va="top", fontsize=9,
                 bbox=dict(boxstyle="round", fc="white", alpha=0.8))
    plt.xlabel("Time [h]")
    plt.ylabel("Nitrite [µM]")
    plt.title(f"{name} — sigmoidal model")
    plt.grid(True, alpha=0.3)
    plt.legend(fontsize=8, loc="lower right", frameon=False)
    plt.tight_layout()
    return _save(out_dir / f"sigmoidal_fit.{fmt}", dpi, name, "sigmoidal plot")


def save_regression_plot(name: str, phase: pd.DataFrame, result: RegressionResult, out_dir: Path,
                         fmt: str = "svg", dpi: int = 160) -> Path:
    """ln(nitrite) vs time inside the exponential window with the OLS line."""
    x = phase["time_h"].to_numpy(float)
    grid = np.linspace(result.window.start_h, result.window.end_h, 50)

    plt.figure(figsize=(8, 5))
    plt.scatter(x, phase["ln_nitrite"], s=16, label="ln(nitrite)")
    plt.plot(grid, result.intercept + result.slope * grid, lw=2, color="tab:red", label="OLS fit")
    text = (
        f"μmax = {result.mu_max:.4f} ± {result.slope_stderr:.4f} 1/h\n"
        f"R² = {result.r_squared:.4f}  (n = {result.n_points})"
    )
    plt.annotate(text, xy=(0.02, 0.97), xycoords="axes fraction", va="top", fontsize=9,
                 bbox=dict(boxstyle="round", fc="white", alpha=0.8))
    plt.xlabel("Time [h]")
    plt.ylabel("ln(nitrite [µM])")
    plt.title(f"{name} — exponential phase {result.window.start_h:g}–{result.window.end_h:g} h")
    plt.grid(True, alpha=0.3)
    plt.legend(fontsize=8, loc="lower right", frameon=False)
    plt.tight_layout()
    return _save(out_dir / f"ln_nitrite_regression.{fmt}", dpi, name, "regression plot")


def save_log_overview_plot(name: str, df: pd.DataFrame, window: ExponentialWindow, out_dir: Path,
                           fmt: str = "svg", dpi: int = 160) -> Path | None:
    """ln(nitrite) over the whole run with the chosen exponential window shaded."""
    pos = df[df["nitrite_uM"] > 0]
    if pos.empty:
        print(f"[INFO] {name}: no positive nitrite values; skipping log overview plot.")
        return None

    plt.figure(figsize=(9, 5))
    plt.axvspan(window.start_h, window.end_h, color="tab:orange", alpha=0.15, label="exponential window")
    for gen, g in pos.groupby("generation", sort=False):
        plt.plot(g["time_h"], np.log(g["nitrite_uM"].to_numpy(float)), "o", ms=4, alpha=0.7,
                 label=f"Generation {gen}")
    plt.xlabel("Time [h]")
    plt.ylabel("ln(nitrite [µM])")
    plt.title(f"{name} — ln(nitrite) overview")
    plt.grid(True, alpha=0.3)
    plt.legend(fontsize=8, frameon=False)
    plt.tight_layout()
    return _save(out_dir / f"ln_nitrite_overview.{fmt}", dpi, name, "log overview plot")
