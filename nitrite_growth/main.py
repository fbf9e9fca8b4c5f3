# nitrite_growth/main.py
from __future__ import annotations
from pathlib import Path
import logging
import sys
import yaml

from nitrite_growth.loaders import csv_loader, xlsx_loader
from nitrite_growth.utils.detect import DetectedItem, discover_inputs
from nitrite_growth.core.pipeline import run_pipeline


def load_config(cfg_path: Path) -> dict:
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def process_inputs(detected: list[DetectedItem], cfg: dict, out_root: Path, verbose: bool = True) -> int:
    """Load every detected input and run the pipeline per dataset; returns how many succeeded."""
    # ---------- loader registry ----------
    registry = {
        "xlsx": xlsx_loader.load,
        "csv":  csv_loader.load,
    }

    n_ok = 0
    for item in detected:
        loader = registry.get(item.kind)
        if loader is None:
            if verbose:
                print(f"[skip] no loader for {item.kind}: {item.path.name}")
            continue
        if verbose:
            print(f"  [load] {item.kind:5} {item.path.name}")
        try:
            datasets = loader(item.path, cfg)
        except Exception as e:
            print(f"[WARN] loader failed for {item.path.name}: {e}")
            continue

        for ds in datasets:
            if ds.df.empty:
                print(f"[INFO] {ds.name}: no observations with a nitrite value; skipping.")
                continue
            try:
                run_pipeline(ds, cfg, out_root)
                n_ok += 1
            except Exception as e:
                print(f"[WARN] {ds.name}: {e}")
    return n_ok


def main():
    # ---------- config ----------
    here = Path(__file__).resolve().parent
    cfg = load_config(here / "config.yaml")

    in_path = Path(cfg["input"]["path"]).resolve()
    recurse = bool(cfg["input"].get("recurse", True))
    out_root = Path(cfg["output"]["root"]).resolve()
    out_root.mkdir(parents=True, exist_ok=True)

    log_cfg = cfg.get("logging", {}) or {}
    verbose = bool(log_cfg.get("verbose", True))
    logging.basicConfig(level=str(log_cfg.get("level", "WARNING")).upper(),
                        format="%(levelname)s %(name)s: %(message)s")
    if verbose:
        print(f"[cfg] input={in_path} (recurse={recurse})")
        print(f"[cfg] output={out_root}")

    # ---------- discover ----------
    detected = discover_inputs(in_path, recurse=recurse)
    if not detected:
        print(f"[INFO] No workbook/CSV inputs found under: {in_path}")
        sys.exit(0)
    if verbose:
        kinds = {}
        for d in detected:
            kinds.setdefault(d.kind, 0)
            kinds[d.kind] += 1
        print(f"[detector] found {sum(kinds.values())} inputs → {kinds}")

    n_ok = process_inputs(detected, cfg, out_root, verbose=verbose)
    if verbose:
        print(f"[summary] processed {n_ok} dataset(s) from {len(detected)} input(s)")


if __name__ == "__main__":
    main()
