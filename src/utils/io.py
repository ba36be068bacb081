from __future__ import annotations

import io as _io
from pathlib import Path

import pandas as pd


def dataframe_to_excel_bytes(df: pd.DataFrame, sheet_name: str = "Findings") -> bytes:
    buf = _io.BytesIO()
    df.to_excel(buf, index=False, sheet_name=sheet_name)
    return buf.getvalue()


def write_table(df: pd.DataFrame, out: str | Path) -> Path:
    """Write to .xlsx when asked for, CSV otherwise."""
    out = Path(out)
    out.parent.mkdir(parents=True, exist_ok=True)
    if out.suffix.lower() == ".xlsx":
        df.to_excel(out, index=False)
    else:
        df.to_csv(out, index=False)
    return out
