"""
Infers unit conversions between variants of one product.

Exports encode "a case holds 24 bottles" only through prices: the case
costs exactly 24 times the bottle. Every pair of variants whose retail
prices form an exact integer ratio is proposed as a conversion.
Non-integer ratios (bulk discounts) are never proposed.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from parsers.product_sheet import ProductRow


@dataclass(frozen=True)
class ConversionCandidate:
    """Proposed edge: 1 `to_sku` equals `rate` × `from_sku`."""
    from_sku: str
    to_sku: str
    rate: int


def _price(value: float) -> Optional[Decimal]:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return price if price.is_finite() and price > 0 else None


def infer_conversions(rows: Sequence[ProductRow]) -> list[ConversionCandidate]:
    """
    Propose conversions for every pair (i, j), i < j, in row order.

    A pair qualifies when both retail prices are positive, the first is
    strictly lower, and the ratio is an exact integer. Pairs sharing a
    SKU are never proposed.
    """
    candidates: list[ConversionCandidate] = []

    for i, first in enumerate(rows):
        low = _price(first.retail_price)
        if low is None:
            continue

        for second in rows[i + 1:]:
            high = _price(second.retail_price)
            if high is None or not low < high:
                continue
            if first.sku == second.sku:
                continue

            ratio = high / low
            if ratio != ratio.to_integral_value():
                continue

            candidates.append(ConversionCandidate(
                from_sku=first.sku,
                to_sku=second.sku,
                rate=int(ratio),
            ))

    return candidates
