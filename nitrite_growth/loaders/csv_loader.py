# nitrite_growth/loaders/csv_loader.py
from __future__ import annotations
from pathlib import Path
import io
import pandas as pd

from ..core.model import Dataset
from ..core.normalize import canonicalize


def _sniff_sep(head: str) -> str:
    # European exports use ';' with decimal commas
    return ";" if head.count(";") > head.count(",") else ","


def _df_from_csv_bytes(buff: bytes, source: str) -> pd.DataFrame:
    text = buff.decode("utf-8-sig", errors="replace")
    sep = _sniff_sep(text.splitlines()[0] if text else "")
    raw = pd.read_csv(io.StringIO(text), sep=sep, dtype=str, keep_default_na=True)
    return canonicalize(raw, source)


def load(path: Path, cfg: dict) -> list[Dataset]:
    """Loose CSV export with the workbook's Time/Replicate/Generation/Nitrite/... schema."""
    df = _df_from_csv_bytes(path.read_bytes(), path.name)
    return [Dataset(name=path.stem, df=df, source_path=path, sheet=None, loader="csv")]
