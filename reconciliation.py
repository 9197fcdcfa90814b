"""
Hours vs payments reconciliation.

Rows are turned into typed records once (build_hours_records /
build_payment_records); reconcile() then works only on those records and is a
pure function of its inputs.
"""

from dataclasses import dataclass, fields
from decimal import Decimal, ROUND_HALF_UP
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from file_loader import is_blank
from layouts import DatasetLayout
from schema_validation import coerce_numeric


MISSING = "missing"

STATUS_OVERPAID = "overpaid"
STATUS_UNDERPAID = "underpaid"
STATUS_MISSING = "missing"

# Discrepancy field -> exported column header, in export order
EXPORT_COLUMNS = {
    "identifier": "EmpId",
    "employee_name": "Employee",
    "hours_worked": "Hours",
    "hourly_rate": "Rate",
    "expected_pay": "Expected",
    "actual_pay": "Paid",
    "status": "Status",
    "issue": "Issue",
}


@dataclass(frozen=True)
class HoursRecord:
    identifier: str
    employee_name: str
    hours_worked: float
    hourly_rate: float


@dataclass(frozen=True)
class PaymentRecord:
    identifier: str
    employee_name: str
    paid_amount: float


@dataclass(frozen=True)
class Discrepancy:
    identifier: str
    employee_name: str
    hours_worked: float
    hourly_rate: float
    expected_pay: float
    actual_pay: Union[float, str]
    status: str
    issue: str


# =========================
# ROUNDING / KEYS
# =========================

def round_half_up(value: float, places: int = 0) -> float:
    """Round to `places` decimals, halves away from zero; NaN passes through."""
    if math.isnan(value):
        return np.nan
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def normalize_identifier(value: Any) -> str:
    """
    Join keys compare as stripped strings; whole floats lose the ".0" that
    Excel numeric ids pick up (1001.0 -> "1001").
    """
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


# =========================
# BOUNDARY CONVERSION
# =========================

def build_hours_records(
    rows: Sequence[Mapping[str, Any]],
    layout: DatasetLayout,
) -> List[HoursRecord]:
    field_map = layout.hours.field_map
    records: List[HoursRecord] = []
    for row in rows:
        rate = coerce_numeric(row.get(field_map["hourly_rate"]))
        if np.isnan(rate) and layout.flat_hourly_rate is not None:
            rate = float(layout.flat_hourly_rate)

        name = row.get(field_map["employee_name"])
        records.append(
            HoursRecord(
                identifier=normalize_identifier(row.get(field_map["identifier"])),
                employee_name="" if is_blank(name) else str(name).strip(),
                hours_worked=coerce_numeric(row.get(field_map["hours_worked"])),
                hourly_rate=rate,
            )
        )
    return records


def build_payment_records(
    rows: Sequence[Mapping[str, Any]],
    layout: DatasetLayout,
) -> List[PaymentRecord]:
    field_map = layout.payments.field_map
    records: List[PaymentRecord] = []
    for row in rows:
        name = row.get(field_map["employee_name"])
        records.append(
            PaymentRecord(
                identifier=normalize_identifier(row.get(field_map["identifier"])),
                employee_name="" if is_blank(name) else str(name).strip(),
                paid_amount=coerce_numeric(row.get(field_map["paid_amount"])),
            )
        )
    return records


# =========================
# RECONCILIATION
# =========================

def describe_discrepancy(
    expected: float,
    actual: float,
    matched: bool,
) -> Tuple[str, str]:
    """Return (status, issue) for a flagged employee."""
    if not matched:
        return STATUS_MISSING, "No payment record found"
    if np.isnan(actual):
        return STATUS_MISSING, "Payment amount is missing or not a number"
    if np.isnan(expected):
        return STATUS_MISSING, f"Hours or rate missing, got ${actual:,.2f}"

    status = STATUS_OVERPAID if actual > expected else STATUS_UNDERPAID
    return status, f"Expected ~${expected:,.2f}, got ${actual:,.2f}"


def reconcile(
    hours_records: Sequence[HoursRecord],
    payment_records: Sequence[PaymentRecord],
    tolerance: float = 0.0,
) -> List[Discrepancy]:
    """
    Compare each employee's expected pay (hours x whole-unit rate, to the cent)
    with what the payments file says they got.

    tolerance=0.0 is the exact-match policy; a positive tolerance only flags
    differences strictly larger than it. Anyone with no matching payment, or
    with a pay figure that isn't a number, is always flagged. Employees that
    only appear in the payments file are not reported. Output follows the
    hours order.
    """
    # first match wins on duplicate identifiers; blank ids never match
    payments_by_id: Dict[str, PaymentRecord] = {}
    for payment in payment_records:
        if not payment.identifier:
            continue
        payments_by_id.setdefault(payment.identifier, payment)

    flagged: List[Discrepancy] = []
    for record in hours_records:
        payment: Optional[PaymentRecord] = None
        if record.identifier:
            payment = payments_by_id.get(record.identifier)

        hours_worked = record.hours_worked
        hourly_rate = round_half_up(record.hourly_rate)
        expected = round_half_up(hours_worked * hourly_rate, 2)
        actual = payment.paid_amount if payment is not None else np.nan

        if not (np.isnan(expected) or np.isnan(actual)):
            if abs(expected - actual) <= tolerance:
                continue

        status, issue = describe_discrepancy(expected, actual, payment is not None)
        flagged.append(
            Discrepancy(
                identifier=record.identifier,
                employee_name=record.employee_name,
                hours_worked=hours_worked,
                hourly_rate=hourly_rate,
                expected_pay=expected,
                actual_pay=MISSING if np.isnan(actual) else actual,
                status=status,
                issue=issue,
            )
        )

    return flagged


def discrepancies_to_frame(discrepancies: Sequence[Discrepancy]) -> pd.DataFrame:
    """One row per discrepancy, columns in Discrepancy field order."""
    columns = [EXPORT_COLUMNS[f.name] for f in fields(Discrepancy)]
    rows = [
        {EXPORT_COLUMNS[f.name]: getattr(d, f.name) for f in fields(Discrepancy)}
        for d in discrepancies
    ]
    return pd.DataFrame(rows, columns=columns)
