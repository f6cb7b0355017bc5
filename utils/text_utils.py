"""
Text utilities for handling Vietnamese spreadsheet text.

Used for header matching and cell cleanup during catalog imports.
"""

import math
import unicodedata
from typing import Any, Optional


def normalize_header(header: Any) -> str:
    """
    Normalize a spreadsheet header for schema lookup.

    Keeps Vietnamese diacritics (they distinguish columns) but unifies
    Unicode composition, case, spacing and the "required" asterisk:
    - "Mã SKU*" → "mã sku"
    - "  PL_Giá bán lẻ " → "pl_giá bán lẻ"
    - "Thuế đầu vào (%)" → "thuế đầu vào (%)"

    Args:
        header: Raw header cell (may be None or a number)

    Returns:
        Normalized header, empty string for blank input
    """
    if header is None:
        return ""

    text = unicodedata.normalize("NFC", str(header)).strip()
    text = text.rstrip("*").strip()

    # Collapse internal whitespace runs
    text = " ".join(text.split())

    return text.casefold()


def clean_text(value: Any, max_length: Optional[int] = 255) -> Optional[str]:
    """
    Clean a text cell for storage (preserves accents).

    - Treats None and NaN (pandas empty cells) as missing
    - Converts numbers to text without a trailing ".0"
    - Strips whitespace and truncates to max length
    - Returns None for empty/whitespace-only strings

    Args:
        value: Raw cell value from the spreadsheet
        max_length: Maximum characters to store (None keeps the full text)

    Returns:
        Cleaned text or None
    """
    if value is None:
        return None

    if isinstance(value, float):
        if math.isnan(value):
            return None
        # Barcodes and SKUs often arrive as floats from Excel
        if value.is_integer():
            value = int(value)

    text = unicodedata.normalize("NFC", str(value)).strip()

    if not text:
        return None

    if max_length is not None and len(text) > max_length:
        text = text[:max_length]

    return text
