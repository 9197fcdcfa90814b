from pathlib import Path
import random

import pandas as pd

# Project paths
PROJECT_ROOT = Path(__file__).resolve().parent
SAMPLE_DIR = PROJECT_ROOT / "sample-files"

FIRST_NAMES = ["Alice", "Bob", "Carmen", "Dev", "Elena", "Farid", "Grace", "Hiro", "Ines", "Jon"]
LAST_NAMES = ["Nguyen", "Smith", "Okafor", "Patel", "Rossi", "Kim", "Garcia", "Novak"]


def generate_sample_files(
    num_emps: int = 25,
    output_dir: Path = SAMPLE_DIR,
    hours_filename: str = "sample_hours.xlsx",
    payments_filename: str = "sample_payments.xlsx",
    seed: int | None = None,
) -> tuple[Path, Path]:
    """
    Generate a matching pair of hours/payments workbooks.

    - One row per employee, EmpId E1001, E1002, ...
    - Hours in quarter-hour steps, whole-unit hourly rates
    - ~85% of employees paid exactly hours x rate
    - ~10% over- or underpaid by a few dollars
    - The last employee has no payment row at all
    """
    rng = random.Random(seed)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    print("Starting sample file generation...")

    hours_rows = []
    payment_rows = []

    for emp_idx in range(num_emps):
        emp_id = f"E{1001 + emp_idx}"
        name = f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"

        hours = rng.randint(20, 180) / 4
        rate = rng.choice([15, 18, 20, 22, 25, 30, 35])
        expected = round(hours * rate, 2)

        hours_rows.append(
            {
                "EmpId": emp_id,
                "Employee": name,
                "Hours": hours,
                "Rate": rate,
            }
        )

        # Leave the last employee out of the payments file
        if emp_idx == num_emps - 1:
            continue

        if rng.random() < 0.10:
            paid = round(expected + rng.choice([-25, -5, 5, 40]), 2)
        else:
            paid = expected

        payment_rows.append(
            {
                "EmpId": emp_id,
                "Employee": name,
                "Paid": paid,
            }
        )

    hours_df = pd.DataFrame(hours_rows)
    payments_df = pd.DataFrame(payment_rows)

    hours_path = output_dir / hours_filename
    payments_path = output_dir / payments_filename

    hours_df.to_excel(hours_path, index=False, engine="openpyxl")
    payments_df.to_excel(payments_path, index=False, engine="openpyxl")

    print(f"Generated hours file:        {hours_path}  ({len(hours_df)} rows)")
    print(f"Generated payments file:     {payments_path}  ({len(payments_df)} rows)")
    return hours_path, payments_path


if __name__ == "__main__":
    # python generate_sample_files.py  -> writes sample-files/sample_*.xlsx
    generate_sample_files()
