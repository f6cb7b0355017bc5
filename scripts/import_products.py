"""
Import a product sheet into the catalog from the command line.

Usage:
    # Full reload (deletes the catalog first)
    python scripts/import_products.py products.json

    # Add new products and SKUs, keep the rest
    python scripts/import_products.py export.xlsx --mode merge

    # Continue a failed run with the same file
    python scripts/import_products.py products.json --resume <run_id>
"""

import argparse
import os
import sys
from pathlib import Path

# Allow imports from the project root when running as a script
_project_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _project_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_project_dir, ".env"))

from config import settings, configure_logging, create_supabase_client, DatabaseConnectionError
from parsers.product_sheet import parse_product_json, parse_product_sheet
from services.catalog_import_service import CatalogImportService
from models.catalog_import import ImportMode
from exceptions import AppError, DuplicateSKUError


def load_rows(path: str):
    if Path(path).suffix.lower() == ".json":
        return parse_product_json(path)
    return parse_product_sheet(path)


def main():
    parser = argparse.ArgumentParser(
        description="Import a product sheet (.json, .xlsx, .xls, .csv) into the catalog."
    )
    parser.add_argument("path", help="Product file to import")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in ImportMode],
        default=ImportMode.REPLACE.value,
        help="replace deletes the catalog first; merge keeps existing rows (default: replace)",
    )
    parser.add_argument(
        "--resume",
        metavar="RUN_ID",
        default=None,
        help="Resume a failed run after its last committed product group",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.import_batch_size,
        help=f"Products inserted per batch (default: {settings.import_batch_size})",
    )
    args = parser.parse_args()

    configure_logging(settings)

    if not os.path.exists(args.path):
        print(f"ERROR: File not found: {args.path}")
        sys.exit(1)

    print("=" * 60)
    print("CATALOG IMPORT")
    print("=" * 60)

    try:
        parsed = load_rows(args.path)
    except AppError as e:
        print(f"ERROR: {e.message}")
        sys.exit(1)

    print(f"Rows:           {len(parsed.rows)}")
    print(f"Issues:         {len(parsed.issues)}")
    if parsed.unknown_headers:
        print(f"Unknown headers: {', '.join(parsed.unknown_headers)}")
    if parsed.duplicate_headers:
        print(f"Ignored repeated headers: {', '.join(parsed.duplicate_headers)}")

    try:
        db = create_supabase_client(settings, admin=bool(settings.supabase_service_key))
    except DatabaseConnectionError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    try:
        service = CatalogImportService(db, batch_size=args.batch_size)
        result = service.run_import(
            parsed.rows,
            mode=ImportMode(args.mode),
            resume_run_id=args.resume,
        )
    except DuplicateSKUError as e:
        print(f"ERROR: {e.message}")
        for sku in e.details["skus"]:
            print(f"  - {sku}")
        sys.exit(1)
    except AppError as e:
        print(f"ERROR: {e.message}")
        sys.exit(1)

    print("-" * 60)
    print(f"Run:            {result.run_id}")
    print(f"Status:         {result.status.value}")
    print(f"Groups:         {result.groups_committed}/{result.groups_total}")
    print(f"Products:       {result.products_created}")
    print(f"Variants:       {result.variants_created} created, {result.variants_skipped} skipped")
    print(f"Inventory:      {result.inventory_updated} updated")
    print(f"Conversions:    {result.conversions_created}")

    if not result.success:
        print(f"FAILED: {result.error}")
        print(f"Resume with: --resume {result.run_id}")
        sys.exit(1)


if __name__ == "__main__":
    main()
