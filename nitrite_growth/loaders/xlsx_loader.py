# nitrite_growth/loaders/xlsx_loader.py
from __future__ import annotations
from pathlib import Path
import logging
import pandas as pd
from openpyxl.utils.cell import range_boundaries

from ..core.model import Dataset
from ..core.normalize import canonicalize

_LOG = logging.getLogger(__name__)


def _read_range(path: Path, sheet, cell_range: str | None) -> pd.DataFrame:
    """Read ``cell_range`` (e.g. 'A1:G61') from ``sheet``; the first row of the range holds the headers."""
    if not cell_range:
        return pd.read_excel(path, sheet_name=sheet, header=0)
    try:
        min_col, min_row, max_col, max_row = range_boundaries(str(cell_range).replace("$", ""))
    except ValueError:
        raise ValueError(f"invalid cell range {cell_range!r}") from None
    if None in (min_col, min_row, max_col, max_row):
        raise ValueError(f"cell range {cell_range!r} must be bounded (e.g. 'A1:G61')")
    return pd.read_excel(
        path,
        sheet_name=sheet,
        header=0,
        skiprows=min_row - 1,
        nrows=max_row - min_row,          # data rows below the header row
        usecols=list(range(min_col - 1, max_col)),
    )


def dataset_name(path: Path, sheet) -> str:
    return path.stem if sheet in (None, 0) else f"{path.stem}_{sheet}"


def load(path: Path, cfg: dict) -> list[Dataset]:
    """
    Accepts: an Excel workbook (.xlsx/.xlsm).
    Reads input.sheet / input.cell_range from config; returns one Dataset.
    """
    inp = (cfg or {}).get("input", {}) or {}
    sheet = inp.get("sheet", None)
    sheet = 0 if sheet is None else sheet
    raw = _read_range(path, sheet, inp.get("cell_range"))
    df = canonicalize(raw, f"{path.name}[{sheet}]")
    _LOG.info("loaded %d observation(s) from %s sheet %s", len(df), path.name, sheet)
    return [Dataset(
        name=dataset_name(path, sheet),
        df=df,
        source_path=path,
        sheet=None if sheet == 0 else str(sheet),
        loader="xlsx",
    )]
