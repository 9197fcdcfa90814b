from pathlib import Path
import sys

import pandas as pd

# Ensure project root is on PYTHONPATH
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from layouts import (  # noqa: E402
    ID_LAYOUT,
    NAME_LAYOUT,
    apply_layout_column_mapping,
    detect_layout_with_confidence,
    infer_column_mapping,
)


def test_header_variants_are_renamed():
    df = pd.DataFrame(
        [{"Emp ID": "E1", "Employee Name": "Alice", "Hours Worked": 10, "Hourly_Rate": 20}]
    )
    mapped = apply_layout_column_mapping(df)

    assert list(mapped.columns) == ["EmpId", "Employee", "Hours", "Rate"]


def test_canonical_headers_are_left_alone():
    rename_map = infer_column_mapping(["EmpId", "Employee", "Name", "Paid"])

    # Employee already present, so "Name" is not renamed onto it
    assert rename_map == {}


def test_unknown_headers_are_kept():
    df = pd.DataFrame([{"Department": "Ops", "Amount Paid": 10}])
    mapped = apply_layout_column_mapping(df)

    assert list(mapped.columns) == ["Department", "Paid"]


def test_id_layout_when_both_files_have_ids():
    layout, confidence = detect_layout_with_confidence(
        ["EmpId", "Employee", "Hours", "Rate"],
        ["EmpId", "Paid"],
    )
    assert layout is ID_LAYOUT
    assert confidence == 1.0


def test_name_layout_when_ids_are_absent():
    layout, confidence = detect_layout_with_confidence(
        ["Employee", "Hours"],
        ["Employee", "Paid"],
    )
    assert layout is NAME_LAYOUT
    assert confidence == 1.0


def test_hint_wins_and_reports_confidence():
    layout, confidence = detect_layout_with_confidence(
        ["Employee", "Hours"],
        ["Employee", "Paid"],
        layout_hint="EmpId",
    )
    assert layout is ID_LAYOUT
    assert confidence == 0.5
