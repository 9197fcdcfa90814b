# payment_validator.py

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Dict, Any, List

from datetime import datetime
import argparse
import json
import math
import sys
import traceback

import pandas as pd

from file_loader import DecodeError, frame_to_rows, load_datasets
from layouts import (
    ID_LAYOUT,
    DatasetLayout,
    apply_layout_column_mapping,
    detect_layout_with_confidence,
)
from reconciliation import (
    STATUS_MISSING,
    STATUS_OVERPAID,
    STATUS_UNDERPAID,
    Discrepancy,
    build_hours_records,
    build_payment_records,
    discrepancies_to_frame,
    reconcile,
)
from schema_validation import (
    SchemaValidationOutcome,
    format_validation_errors,
    validate_schema,
)


# =========================
# CONFIGURATION SECTION
# =========================

CONFIG_DIR = Path(__file__).resolve().parent / "config"
CONFIG_NAME = "payment_validator.json"

# 0.0 = exact match to the cent
DEFAULT_TOLERANCE = 0.0
# "EmpId", "Employee" or "auto"
DEFAULT_JOIN_BY = "EmpId"
DEFAULT_FLAT_HOURLY_RATE = 20.0

FLAGGED_RESULTS_FILENAME = "Flagged_Results.xlsx"
FLAGGED_SHEET_NAME = "Flagged"

SUCCESS_MESSAGE = "✅ All checks passed. Data is correct!"

# Below this, the layout guess is printed with a warning
MIN_LAYOUT_CONFIDENCE = 1.0


def load_config(config_name: str = CONFIG_NAME) -> dict:
    path = CONFIG_DIR / config_name
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


# =========================
# REQUEST / RESPONSE
# =========================

@dataclass
class ValidationRequest:
    hours_rows: List[Dict[str, Any]]
    payment_rows: List[Dict[str, Any]]
    tolerance: float = DEFAULT_TOLERANCE
    layout: DatasetLayout = ID_LAYOUT


@dataclass
class ValidationResponse:
    hours_outcome: SchemaValidationOutcome
    payments_outcome: SchemaValidationOutcome
    discrepancies: List[Discrepancy] = field(default_factory=list)
    # user-facing messages, one per problem category per file
    errors: List[str] = field(default_factory=list)
    # uploads the caller should reset ("hours" / "payments")
    files_to_clear: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.hours_outcome.is_valid and self.payments_outcome.is_valid

    @property
    def success_message(self) -> Optional[str]:
        if self.is_valid and not self.discrepancies:
            return SUCCESS_MESSAGE
        return None


def validate_payments(request: ValidationRequest) -> ValidationResponse:
    """
    Validate both datasets against the layout, then reconcile if both pass.

    Pure: no file access, no printing. A file that fails validation is listed
    in files_to_clear; after a completed reconciliation both files are, so the
    next run starts from fresh uploads.
    """
    layout = request.layout

    hours_outcome = validate_schema(
        layout.hours.required_columns,
        request.hours_rows,
        layout.hours.numeric_columns,
    )
    payments_outcome = validate_schema(
        layout.payments.required_columns,
        request.payment_rows,
        layout.payments.numeric_columns,
    )

    errors = format_validation_errors(layout.hours.label, hours_outcome)
    errors += format_validation_errors(layout.payments.label, payments_outcome)

    if errors:
        files_to_clear = []
        if not hours_outcome.is_valid:
            files_to_clear.append("hours")
        if not payments_outcome.is_valid:
            files_to_clear.append("payments")
        return ValidationResponse(
            hours_outcome=hours_outcome,
            payments_outcome=payments_outcome,
            errors=errors,
            files_to_clear=files_to_clear,
        )

    discrepancies = reconcile(
        build_hours_records(request.hours_rows, layout),
        build_payment_records(request.payment_rows, layout),
        tolerance=request.tolerance,
    )

    return ValidationResponse(
        hours_outcome=hours_outcome,
        payments_outcome=payments_outcome,
        discrepancies=discrepancies,
        files_to_clear=["hours", "payments"],
    )


# =========================
# RUN SUMMARY / EXPORT
# =========================

@dataclass
class RunSummary:
    layout: str
    layout_confidence: float
    hours_rows: int
    payment_rows: int
    tolerance: float
    discrepancy_count: int
    overpaid_count: int
    underpaid_count: int
    missing_payment_count: int
    flagged_results_path: Optional[Path]
    run_id: str  # timestamp of the run


def summarize_discrepancies(discrepancies: List[Discrepancy]) -> Dict[str, int]:
    counts = {STATUS_OVERPAID: 0, STATUS_UNDERPAID: 0, STATUS_MISSING: 0}
    for d in discrepancies:
        counts[d.status] = counts.get(d.status, 0) + 1
    return counts


def export_flagged_results(
    discrepancies: List[Discrepancy],
    output_dir: Path,
    filename: str = FLAGGED_RESULTS_FILENAME,
    sheet_name: str = FLAGGED_SHEET_NAME,
) -> Path:
    """Write the discrepancies to the first sheet of a new workbook."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    report_path = output_dir / filename

    df = discrepancies_to_frame(discrepancies)
    with pd.ExcelWriter(report_path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name[:31], index=False)

    print(f"Flagged results written to: {report_path}")
    return report_path


def print_report(discrepancies: List[Discrepancy], counts: Dict[str, int]) -> None:
    print("\n=== Payment Validation Summary ===")
    print(f"Flagged employees:           {len(discrepancies):>4}")
    print(f"  Overpaid:                  {counts[STATUS_OVERPAID]:>4}")
    print(f"  Underpaid:                 {counts[STATUS_UNDERPAID]:>4}")
    print(f"  Missing payment:           {counts[STATUS_MISSING]:>4}")

    if not discrepancies:
        return

    print("\n=== Flagged Results ===")
    print(discrepancies_to_frame(discrepancies).to_string(index=False))


# =========================
# MAIN ORCHESTRATION
# =========================

def run_payment_validation(
    hours_file: Optional[Path],
    payments_file: Optional[Path],
    output_dir: Optional[Path] = None,
    tolerance: Optional[float] = None,
    join_by: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Load both uploads, validate them and report underpaid/overpaid employees.

    This function ALWAYS returns a dict:

    {
        "summary": RunSummary or None,        # None unless reconciliation ran
        "response": ValidationResponse or None,
        "errors": List[str],                  # user-facing messages, [] on success
        "success_message": str or None,       # set only when nothing was flagged
        "files_to_clear": List[str],          # "hours" / "payments"
        "error": str or None,                 # read failure or traceback text
    }

    Missing files are reported per file before anything is parsed. A file that
    cannot be read stops the run with a generic read error. Column and
    numeric-cell problems come back in "errors" and reconciliation is skipped.
    When output_dir is given and something was flagged, the flagged rows are
    written to an Excel workbook there.

    Explicit arguments win over config/payment_validator.json, which wins over
    the module defaults.
    """
    results: Dict[str, Any] = {
        "summary": None,
        "response": None,
        "errors": [],
        "success_message": None,
        "files_to_clear": [],
        "error": None,
    }

    try:
        try:
            cfg = load_config()
        except FileNotFoundError:
            cfg = {}
            print("[INFO] No config file found; using defaults.")

        if tolerance is None:
            tolerance = float(cfg.get("tolerance", DEFAULT_TOLERANCE))
        if join_by is None:
            join_by = cfg.get("join_by", DEFAULT_JOIN_BY)
        flat_rate = cfg.get("flat_hourly_rate", DEFAULT_FLAT_HOURLY_RATE)
        filename = cfg.get("flagged_results_filename", FLAGGED_RESULTS_FILENAME)
        sheet_name = cfg.get("flagged_sheet_name", FLAGGED_SHEET_NAME)

        if not math.isfinite(tolerance) or tolerance < 0:
            raise ValueError(f"tolerance must be >= 0, got {tolerance}")

        # Both uploads are required before anything is parsed
        hours_path = Path(hours_file) if hours_file else None
        payments_path = Path(payments_file) if payments_file else None
        if hours_path is None or not hours_path.exists():
            results["errors"].append("Hours file is required.")
        if payments_path is None or not payments_path.exists():
            results["errors"].append("Payments file is required.")
        if results["errors"]:
            for message in results["errors"]:
                print(f"[WARN] {message}")
            return results

        try:
            hours_df, payments_df = load_datasets(hours_path, payments_path)
        except DecodeError as e:
            label = "Hours" if e.path == hours_path else "Payments"
            message = (
                f"Could not read the {label} file. "
                "Make sure it is a valid Excel or CSV file."
            )
            print(f"[WARN] {message} ({e.reason})")
            results["errors"].append(message)
            results["error"] = str(e)
            return results

        hours_df = apply_layout_column_mapping(hours_df)
        payments_df = apply_layout_column_mapping(payments_df)

        layout_hint = None if join_by == "auto" else join_by
        layout, confidence = detect_layout_with_confidence(
            list(hours_df.columns), list(payments_df.columns), layout_hint
        )
        if layout.flat_hourly_rate is not None and flat_rate is not None:
            layout = replace(layout, flat_hourly_rate=float(flat_rate))

        print("\n=== Layout Detection ===")
        print(f"Join column:                 {layout.join_column} (confidence: {confidence:.2f})")
        print(f"Hours columns:               {list(hours_df.columns)}")
        print(f"Payments columns:            {list(payments_df.columns)}")
        if confidence < MIN_LAYOUT_CONFIDENCE:
            print(
                f"[WARN] Not every column required by the {layout.name} layout was found "
                f"(confidence {confidence:.2f}). Expect missing-column errors."
            )

        request = ValidationRequest(
            hours_rows=frame_to_rows(hours_df),
            payment_rows=frame_to_rows(payments_df),
            tolerance=tolerance,
            layout=layout,
        )
        response = validate_payments(request)
        results["response"] = response
        results["files_to_clear"] = list(response.files_to_clear)

        if response.errors:
            results["errors"] = list(response.errors)
            print("\n=== Validation Errors ===")
            for message in response.errors:
                print(f"[WARN] {message}")
            return results

        counts = summarize_discrepancies(response.discrepancies)
        print_report(response.discrepancies, counts)

        flagged_path = None
        if output_dir is not None and response.discrepancies:
            flagged_path = export_flagged_results(
                response.discrepancies,
                Path(output_dir),
                filename=filename,
                sheet_name=sheet_name,
            )

        results["success_message"] = response.success_message
        if response.success_message:
            print(f"\n{response.success_message}")

        results["summary"] = RunSummary(
            layout=layout.name,
            layout_confidence=confidence,
            hours_rows=len(request.hours_rows),
            payment_rows=len(request.payment_rows),
            tolerance=tolerance,
            discrepancy_count=len(response.discrepancies),
            overpaid_count=counts[STATUS_OVERPAID],
            underpaid_count=counts[STATUS_UNDERPAID],
            missing_payment_count=counts[STATUS_MISSING],
            flagged_results_path=flagged_path,
            run_id=datetime.now().strftime("%Y%m%d_%H%M%S"),
        )
        return results

    except Exception:
        results["error"] = traceback.format_exc()
        return results


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check that each employee was paid hours x rate."
    )
    parser.add_argument("--hours", required=True, help="Hours file (Excel or CSV).")
    parser.add_argument("--payments", required=True, help="Payments file (Excel or CSV).")
    parser.add_argument(
        "--tolerance",
        type=float,
        default=None,
        help="Allowed absolute difference before a payment is flagged (default: config, else 0).",
    )
    parser.add_argument(
        "--join-by",
        choices=["EmpId", "Employee", "auto"],
        default=None,
        help="Column used to match the two files (default: config, else EmpId).",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help=f"Where to write {FLAGGED_RESULTS_FILENAME} when anything is flagged.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    results = run_payment_validation(
        hours_file=Path(args.hours),
        payments_file=Path(args.payments),
        output_dir=Path(args.output_dir) if args.output_dir else None,
        tolerance=args.tolerance,
        join_by=args.join_by,
    )

    if results.get("error") and not results.get("errors"):
        print(results["error"], file=sys.stderr)
    return 1 if (results.get("error") or results.get("errors")) else 0


if __name__ == "__main__":
    sys.exit(main())
