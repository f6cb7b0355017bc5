"""
Product sheet parsers.
"""

from parsers.product_sheet import (
    ProductRow,
    RowIssue,
    SheetParseResult,
    normalize_row,
    parse_product_json,
    parse_product_sheet,
    rows_fingerprint,
    validate_rows,
)

__all__ = [
    "ProductRow",
    "RowIssue",
    "SheetParseResult",
    "normalize_row",
    "parse_product_json",
    "parse_product_sheet",
    "rows_fingerprint",
    "validate_rows",
]
