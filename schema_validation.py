"""
Column and numeric-cell checks for uploaded hours/payments data.

validate_schema() never raises; everything wrong with a file comes back in a
SchemaValidationOutcome so the caller can show it and ask for a re-upload.
"""

from dataclasses import dataclass, field
import math
import numbers
from typing import Any, Iterable, List, Mapping, Sequence

import numpy as np

from file_loader import is_blank


# Spreadsheet row numbers start at 1 and row 1 is the header.
HEADER_ROW_OFFSET = 2


@dataclass
class InvalidCell:
    row_index: int
    column_name: str
    raw_value: Any


@dataclass
class SchemaValidationOutcome:
    is_valid: bool
    missing_columns: List[str] = field(default_factory=list)
    invalid_cells: List[InvalidCell] = field(default_factory=list)


def coerce_numeric(value: Any) -> float:
    """
    Convert a raw cell to float; NaN when it is blank or not a finite number.

    Strings may carry thousands separators and a leading currency sign
    ("$1,200.50"), the same cleanup applied to amount columns elsewhere.
    """
    if value is None:
        return np.nan

    if isinstance(value, numbers.Number):
        try:
            result = float(value)
        except (TypeError, ValueError):
            return np.nan
    elif isinstance(value, str):
        cleaned = value.replace(",", "").replace("$", "").strip()
        # float() accepts "1_000"; spreadsheets don't
        if not cleaned or "_" in cleaned:
            return np.nan
        try:
            result = float(cleaned)
        except ValueError:
            return np.nan
    else:
        return np.nan

    return result if math.isfinite(result) else np.nan


def validate_schema(
    required_columns: Sequence[str],
    rows: Sequence[Mapping[str, Any]],
    numeric_columns: Iterable[str],
) -> SchemaValidationOutcome:
    """
    Check required headers, then numeric columns row by row.

    - Empty data: every required column is reported missing.
    - Headers come from the first row's keys only; if any required column is
      absent the numeric scan is skipped.
    - Every row is scanned; a present value in a numeric column that doesn't
      coerce to a finite number is recorded with its raw value untouched.
    """
    if not rows:
        return SchemaValidationOutcome(
            is_valid=False,
            missing_columns=list(required_columns),
        )

    header = set(rows[0].keys())
    missing = [col for col in required_columns if col not in header]
    if missing:
        return SchemaValidationOutcome(is_valid=False, missing_columns=missing)

    numeric_columns = list(numeric_columns)
    invalid: List[InvalidCell] = []
    for index, row in enumerate(rows):
        for column in numeric_columns:
            value = row.get(column)
            if is_blank(value):
                continue
            if np.isnan(coerce_numeric(value)):
                invalid.append(
                    InvalidCell(
                        row_index=index + HEADER_ROW_OFFSET,
                        column_name=column,
                        raw_value=value,
                    )
                )

    return SchemaValidationOutcome(is_valid=not invalid, invalid_cells=invalid)


def format_validation_errors(label: str, outcome: SchemaValidationOutcome) -> List[str]:
    """Render one message per problem category, e.g. 'Hours file is missing columns: EmpId, Rate'."""
    errors: List[str] = []
    if outcome.is_valid:
        return errors

    if outcome.missing_columns:
        errors.append(
            f"{label} file is missing columns: {', '.join(outcome.missing_columns)}"
        )

    if outcome.invalid_cells:
        details = "\n".join(
            f'Row {cell.row_index}, Field: {cell.column_name}, Value: "{cell.raw_value}"'
            for cell in outcome.invalid_cells
        )
        errors.append(f"{label} file has non-numeric data:\n{details}")

    return errors
