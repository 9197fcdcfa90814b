"""
Spreadsheet loading for the payment validator.

Reads the first worksheet of an uploaded hours/payments file into row records
(column header -> cell value), the same shape a browser-side sheet_to_json
would hand back: blank cells are left out of the row, blank rows are skipped.
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pandas as pd


EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xls")


class DecodeError(Exception):
    """The spreadsheet exists but could not be parsed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not decode {path}: {reason}")


def load_table(path: Path) -> pd.DataFrame:
    """Load CSV or the first sheet of an Excel workbook into a DataFrame."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    # Only truly empty cells are NA; "N/A", "null" etc. stay text for validation
    try:
        if path.suffix.lower() in EXCEL_SUFFIXES:
            df = pd.read_excel(path, sheet_name=0, keep_default_na=False, na_values=[""])
        else:
            df = pd.read_csv(path, keep_default_na=False, na_values=[""])
    except Exception as e:
        raise DecodeError(path, str(e)) from e

    df.columns = [str(c).strip() for c in df.columns]
    return df


def is_blank(value: Any) -> bool:
    """True for None/NaN/NaT cells and whitespace-only strings."""
    if isinstance(value, str):
        return not value.strip()
    return pd.api.types.is_scalar(value) and bool(pd.isna(value))


def frame_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """
    Convert a DataFrame into row records, dropping blank cells per row.

    A column only appears in a row's key set when that row has a value for it,
    so header checks against the first row see what a user actually filled in.
    """
    df = df.dropna(how="all")
    rows: List[Dict[str, Any]] = []
    for record in df.to_dict(orient="records"):
        rows.append({k: v for k, v in record.items() if not is_blank(v)})
    return rows


def load_rows(path: Path) -> List[Dict[str, Any]]:
    return frame_to_rows(load_table(path))


def load_datasets(
    hours_path: Path,
    payments_path: Path,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Decode both uploads concurrently and wait for both.

    Any failure (missing file or DecodeError) propagates from here; there is no
    retry and no partial result.
    """
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="sheet-decode") as pool:
        hours_future = pool.submit(load_table, Path(hours_path))
        payments_future = pool.submit(load_table, Path(payments_path))
        return hours_future.result(), payments_future.result()
