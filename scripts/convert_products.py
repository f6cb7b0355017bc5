"""
Convert a product export workbook to JSON.

Reads the "Xuất file sản phẩm" sheet (or the first sheet) and writes a
JSON array of header-keyed row objects. Empty cells become null.
A one-line summary of each conversion is appended to a log file.

Usage:
    python scripts/convert_products.py export.xlsx
    python scripts/convert_products.py export.xlsx -o products.json --log log.txt
"""

import argparse
import json
import os
import sys
from datetime import datetime

# Allow imports from the project root when running as a script
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from parsers.product_sheet import EXPORT_SHEET_NAME

DEFAULT_OUTPUT = "products.json"
DEFAULT_LOG = "log.txt"


def pick_sheet(path: str) -> str:
    """The export sheet if the workbook has one, else its first sheet."""
    with pd.ExcelFile(path) as workbook:
        sheets = workbook.sheet_names
    if EXPORT_SHEET_NAME in sheets:
        return EXPORT_SHEET_NAME
    return sheets[0]


def workbook_to_records(path: str, sheet_name: str) -> tuple[list[str], list[dict]]:
    """Read a sheet into (headers, row objects) with empty cells as None."""
    df = pd.read_excel(path, sheet_name=sheet_name, dtype=object)
    df = df.dropna(how="all")
    df = df.astype(object).where(pd.notna(df), None)

    headers = [str(c) for c in df.columns]
    records = [
        {header: value for header, value in zip(headers, row)}
        for row in df.itertuples(index=False, name=None)
    ]
    return headers, records


def append_summary(log_path: str, source: str, output: str, headers: list[str], row_count: int) -> None:
    stamp = datetime.now().isoformat(timespec="seconds")
    with open(log_path, "a", encoding="utf-8") as fh:
        fh.write(
            f"[{stamp}] {source} -> {output}: {row_count} rows, "
            f"headers: {', '.join(headers)}\n"
        )


def main():
    parser = argparse.ArgumentParser(
        description="Convert a product export workbook to a JSON array of row objects."
    )
    parser.add_argument("workbook", help="Path to the .xlsx export")
    parser.add_argument(
        "-o", "--output",
        default=DEFAULT_OUTPUT,
        help=f"JSON file to write (default: {DEFAULT_OUTPUT})",
    )
    parser.add_argument(
        "--log",
        default=DEFAULT_LOG,
        help=f"File the conversion summary is appended to (default: {DEFAULT_LOG})",
    )
    args = parser.parse_args()

    if not os.path.exists(args.workbook):
        print(f"ERROR: File not found: {args.workbook}")
        sys.exit(1)

    sheet = pick_sheet(args.workbook)
    headers, records = workbook_to_records(args.workbook, sheet)

    with open(args.output, "w", encoding="utf-8") as fh:
        json.dump(records, fh, ensure_ascii=False, indent=2, default=str)

    append_summary(args.log, args.workbook, args.output, headers, len(records))

    print("=" * 60)
    print("PRODUCT EXPORT CONVERTED")
    print("=" * 60)
    print(f"Sheet:   {sheet}")
    print(f"Rows:    {len(records)}")
    print(f"Headers: {len(headers)}")
    print(f"Output:  {args.output}")
    print(f"Log:     {args.log}")


if __name__ == "__main__":
    main()
