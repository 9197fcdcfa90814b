from pathlib import Path
import math
import sys

# Ensure project root is on PYTHONPATH
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from layouts import ID_LAYOUT, NAME_LAYOUT  # noqa: E402
from reconciliation import (  # noqa: E402
    MISSING,
    HoursRecord,
    PaymentRecord,
    build_hours_records,
    build_payment_records,
    discrepancies_to_frame,
    normalize_identifier,
    reconcile,
    round_half_up,
)


def hours(identifier, name, hours_worked, rate):
    return HoursRecord(identifier, name, float(hours_worked), float(rate))


def paid(identifier, amount, name=""):
    return PaymentRecord(identifier, name, float(amount))


def test_exact_payment_is_not_flagged():
    result = reconcile([hours("E1", "Alice", 10, 20)], [paid("E1", 200)])
    assert result == []


def test_underpayment_is_flagged():
    result = reconcile([hours("E1", "Alice", 10, 20)], [paid("E1", 150)])

    assert len(result) == 1
    d = result[0]
    assert d.identifier == "E1"
    assert d.employee_name == "Alice"
    assert d.hours_worked == 10
    assert d.hourly_rate == 20
    assert d.expected_pay == 200
    assert d.actual_pay == 150
    assert d.status == "underpaid"
    assert d.issue == "Expected ~$200.00, got $150.00"


def test_flat_rate_and_tolerance_on_name_layout():
    """
    Name-joined files with no Rate column fall back to the flat rate (20/hr).
    8h -> $160 expected, $300 paid: 140 off, well past a $10 tolerance.
    """
    hours_rows = [{"Employee": "Bob", "Hours": 8}]
    payment_rows = [{"Employee": "Bob", "Paid": 300}]

    result = reconcile(
        build_hours_records(hours_rows, NAME_LAYOUT),
        build_payment_records(payment_rows, NAME_LAYOUT),
        tolerance=10,
    )

    assert len(result) == 1
    assert result[0].expected_pay == 160
    assert result[0].actual_pay == 300
    assert result[0].status == "overpaid"
    assert result[0].issue == "Expected ~$160.00, got $300.00"


def test_within_tolerance_is_not_flagged():
    record = [hours("E1", "Alice", 10, 20)]

    assert reconcile(record, [paid("E1", 205)], tolerance=5) == []
    assert len(reconcile(record, [paid("E1", 205.01)], tolerance=5)) == 1
    # exact-match policy by default
    assert len(reconcile(record, [paid("E1", 200.01)])) == 1


def test_employee_without_payment_is_always_flagged():
    result = reconcile(
        [hours("E1", "Alice", 10, 20), hours("E2", "Bob", 5, 30)],
        [paid("E1", 200)],
        tolerance=1_000_000,
    )

    assert len(result) == 1
    assert result[0].identifier == "E2"
    assert result[0].expected_pay == 150
    assert result[0].actual_pay == MISSING
    assert result[0].status == "missing"


def test_non_numeric_payment_is_flagged_as_missing():
    result = reconcile(
        [hours("E1", "Alice", 10, 20)],
        [PaymentRecord("E1", "Alice", float("nan"))],
    )

    assert result[0].actual_pay == MISSING
    assert result[0].status == "missing"


def test_missing_hours_produce_a_flag():
    result = reconcile(
        [HoursRecord("E1", "Alice", float("nan"), 20.0)],
        [paid("E1", 200)],
    )

    assert len(result) == 1
    assert math.isnan(result[0].expected_pay)
    assert result[0].actual_pay == 200


def test_payments_only_employees_are_ignored():
    result = reconcile(
        [hours("E1", "Alice", 10, 20)],
        [paid("E9", 999), paid("E1", 200)],
    )
    assert result == []


def test_output_follows_hours_order():
    hours_records = [
        hours("E3", "Cara", 1, 10),
        hours("E1", "Alice", 1, 10),
        hours("E2", "Bob", 1, 10),
    ]
    payments = [paid("E1", 1), paid("E2", 2), paid("E3", 3)]

    result = reconcile(hours_records, list(reversed(payments)))

    assert [d.identifier for d in result] == ["E3", "E1", "E2"]


def test_reconcile_is_repeatable():
    hours_records = [hours("E1", "Alice", 10, 20), hours("E2", "Bob", 3, 15)]
    payments = [paid("E1", 150)]

    assert reconcile(hours_records, payments) == reconcile(hours_records, payments)


def test_first_payment_wins_on_duplicate_ids():
    result = reconcile(
        [hours("E1", "Alice", 10, 20)],
        [paid("E1", 200), paid("E1", 50)],
    )
    assert result == []


def test_rate_is_rounded_before_use():
    # 19.5 rounds to 20 -> 10h expected $200
    result = reconcile([hours("E1", "Alice", 10, 19.5)], [paid("E1", 195)])

    assert result[0].hourly_rate == 20
    assert result[0].expected_pay == 200


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.675, 2) == 2.68
    assert math.isnan(round_half_up(float("nan")))


def test_numeric_ids_join_with_text_ids():
    hours_rows = [{"EmpId": 1001.0, "Employee": "Alice", "Hours": 10, "Rate": 20}]
    payment_rows = [{"EmpId": " 1001 ", "Paid": 200}]

    result = reconcile(
        build_hours_records(hours_rows, ID_LAYOUT),
        build_payment_records(payment_rows, ID_LAYOUT),
    )

    assert normalize_identifier(1001.0) == "1001"
    assert result == []


def test_discrepancies_to_frame_column_order():
    result = reconcile([hours("E1", "Alice", 10, 20)], [])
    df = discrepancies_to_frame(result)

    assert list(df.columns) == [
        "EmpId", "Employee", "Hours", "Rate", "Expected", "Paid", "Status", "Issue",
    ]
    assert df.iloc[0]["Paid"] == MISSING
    assert discrepancies_to_frame([]).empty


def test_blank_ids_never_join():
    """
    An hours row with no EmpId must not pick up a payments row that also
    has no EmpId; it is reported as unpaid.
    """
    hours_rows = [{"Employee": "Bob", "Hours": 5, "Rate": 20}]
    payment_rows = [{"Employee": "Zed", "Paid": 100}]

    result = reconcile(
        build_hours_records(hours_rows, ID_LAYOUT),
        build_payment_records(payment_rows, ID_LAYOUT),
    )

    assert len(result) == 1
    assert result[0].identifier == ""
    assert result[0].employee_name == "Bob"
    assert result[0].actual_pay == MISSING
    assert result[0].status == "missing"
