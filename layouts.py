"""
Dataset layouts and header normalization.

A layout pins down, for both uploads, which columns are required, which must be
numeric, how columns map onto record fields, and which column joins the two
files. Header variants seen in real exports ("Emp ID", "Hours Worked",
"Amount Paid") are renamed to the canonical names before validation.
"""

from dataclasses import dataclass, field
import re
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd


# =========================
# CANONICAL COLUMNS
# =========================

EMP_ID = "EmpId"
EMPLOYEE = "Employee"
HOURS = "Hours"
RATE = "Rate"
PAID = "Paid"

# canonical column -> header variants (matched after normalize_header)
COLUMN_ALIASES: Dict[str, List[str]] = {
    EMP_ID: ["empid", "emp id", "emp_id", "employee id", "employee_id", "employee number", "id"],
    EMPLOYEE: ["employee", "employee name", "employee_name", "name", "full name"],
    HOURS: ["hours", "hours worked", "hours_worked", "total hours", "hrs"],
    RATE: ["rate", "hourly rate", "hourly_rate", "rate per hour", "pay rate"],
    PAID: ["paid", "amount paid", "paid amount", "paid_amount", "payment", "net paid"],
}


@dataclass(frozen=True)
class DatasetSchema:
    """Required/numeric columns for one upload plus its column -> field map."""

    label: str
    required_columns: Tuple[str, ...]
    numeric_columns: Tuple[str, ...]
    field_map: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DatasetLayout:
    name: str
    join_column: str
    hours: DatasetSchema
    payments: DatasetSchema
    # used when the hours file has no usable Rate value
    flat_hourly_rate: Optional[float] = None


ID_LAYOUT = DatasetLayout(
    name=EMP_ID,
    join_column=EMP_ID,
    hours=DatasetSchema(
        label="Hours",
        required_columns=(EMP_ID, EMPLOYEE, HOURS, RATE),
        numeric_columns=(HOURS, RATE),
        field_map={
            "identifier": EMP_ID,
            "employee_name": EMPLOYEE,
            "hours_worked": HOURS,
            "hourly_rate": RATE,
        },
    ),
    payments=DatasetSchema(
        label="Payments",
        required_columns=(EMP_ID, PAID),
        numeric_columns=(PAID,),
        field_map={
            "identifier": EMP_ID,
            "employee_name": EMPLOYEE,
            "paid_amount": PAID,
        },
    ),
)

NAME_LAYOUT = DatasetLayout(
    name=EMPLOYEE,
    join_column=EMPLOYEE,
    hours=DatasetSchema(
        label="Hours",
        required_columns=(EMPLOYEE, HOURS),
        numeric_columns=(HOURS, RATE),
        field_map={
            "identifier": EMPLOYEE,
            "employee_name": EMPLOYEE,
            "hours_worked": HOURS,
            "hourly_rate": RATE,
        },
    ),
    payments=DatasetSchema(
        label="Payments",
        required_columns=(EMPLOYEE, PAID),
        numeric_columns=(PAID,),
        field_map={
            "identifier": EMPLOYEE,
            "employee_name": EMPLOYEE,
            "paid_amount": PAID,
        },
    ),
    flat_hourly_rate=20.0,
)

LAYOUTS: Dict[str, DatasetLayout] = {
    ID_LAYOUT.name: ID_LAYOUT,
    NAME_LAYOUT.name: NAME_LAYOUT,
}


def normalize_header(name: str) -> str:
    """Lowercase, strip, collapse whitespace/underscores to one space."""
    return re.sub(r"[\s_]+", " ", str(name).strip().lower())


# =========================
# COLUMN MAPPING
# =========================

def infer_column_mapping(
    columns: Sequence[str],
    aliases: Dict[str, List[str]] = COLUMN_ALIASES,
) -> Dict[str, str]:
    """
    Return {actual column -> canonical column} for headers that match an alias.

    Exact match on the normalized header only. A header that already is the
    canonical name is left alone, and no two headers map to the same canonical
    column (first one in file order wins).
    """
    present = set(columns)
    normalized_to_actual: Dict[str, str] = {}
    for col in columns:
        normalized_to_actual.setdefault(normalize_header(col), col)

    rename_map: Dict[str, str] = {}
    for canonical, variants in aliases.items():
        if canonical in present:
            continue
        for variant in variants:
            actual = normalized_to_actual.get(normalize_header(variant))
            if actual is None or actual in rename_map or actual in aliases:
                continue
            rename_map[actual] = canonical
            break

    return rename_map


def apply_layout_column_mapping(df: pd.DataFrame) -> pd.DataFrame:
    rename_map = infer_column_mapping(list(df.columns))
    if rename_map:
        df = df.rename(columns=rename_map)
    return df


# =========================
# LAYOUT DETECTION
# =========================

def calculate_layout_confidence(
    hours_columns: Sequence[str],
    payments_columns: Sequence[str],
    layout: DatasetLayout,
) -> float:
    """Share of the layout's required columns present across both files (0.0 to 1.0)."""
    required = list(layout.hours.required_columns) + list(layout.payments.required_columns)
    if not required:
        return 0.0

    hours_cols = set(hours_columns)
    payments_cols = set(payments_columns)
    matched = sum(1 for c in layout.hours.required_columns if c in hours_cols)
    matched += sum(1 for c in layout.payments.required_columns if c in payments_cols)
    return matched / len(required)


def detect_layout_with_confidence(
    hours_columns: Sequence[str],
    payments_columns: Sequence[str],
    layout_hint: Optional[str] = None,
) -> Tuple[DatasetLayout, float]:
    """
    Pick the layout for a pair of uploads.

    A known hint wins outright (confidence still reported). Otherwise the
    identifier layout is used whenever both files carry an EmpId column, since
    names are a poor join key; failing that, the best-scoring layout.
    """
    if layout_hint and layout_hint in LAYOUTS:
        layout = LAYOUTS[layout_hint]
        return layout, calculate_layout_confidence(hours_columns, payments_columns, layout)

    if EMP_ID in hours_columns and EMP_ID in payments_columns:
        return ID_LAYOUT, calculate_layout_confidence(hours_columns, payments_columns, ID_LAYOUT)

    best_layout = ID_LAYOUT
    best_confidence = -1.0
    for layout in LAYOUTS.values():
        confidence = calculate_layout_confidence(hours_columns, payments_columns, layout)
        if confidence > best_confidence:
            best_layout, best_confidence = layout, confidence

    return best_layout, best_confidence
