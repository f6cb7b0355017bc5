"""
Groups normalized sheet rows into products.

A product is identified by its name. Rows that leave the name column
empty inherit it from the variant name, minus a trailing unit-of-sale
suffix ("Sữa tươi - thùng" → "Sữa tươi").
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence
import re

import structlog

from parsers.product_sheet import ProductRow

logger = structlog.get_logger(__name__)


DEFAULT_PRODUCT_TYPE = "NORMAL"

# Closed vocabulary of unit-of-sale suffixes used in variant names
UNIT_SUFFIXES = ("lốc", "thùng", "bịch", "hộp", "vỉ", "cây", "bao")

_SUFFIX_PATTERN = re.compile(
    r" - (?:" + "|".join(UNIT_SUFFIXES) + r")$",
    re.IGNORECASE,
)


@dataclass
class ProductGroup:
    """One product and the rows that become its variants."""
    name: str
    product_type: str
    description: Optional[str] = None
    brand: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    rows: list[ProductRow] = field(default_factory=list)

    @property
    def skus(self) -> list[str]:
        return [row.sku for row in self.rows if row.sku]


def derive_product_name(variant_name: Optional[str]) -> str:
    """
    Strip trailing " - <suffix>" tokens from a variant name.

    Repeats until no suffix is left, so applying it to its own output
    changes nothing.

    Returns:
        Derived name, empty string if nothing remains
    """
    if not variant_name:
        return ""

    name = variant_name.strip()
    while True:
        stripped = _SUFFIX_PATTERN.sub("", name).strip()
        if stripped == name:
            return name
        name = stripped


def resolve_product_name(row: ProductRow) -> str:
    """Explicit product name if present, otherwise derived from the variant name."""
    if row.name and row.name.strip():
        return row.name.strip()
    return derive_product_name(row.variant_name)


def group_rows(
    rows: Sequence[ProductRow],
    default_product_type: str = DEFAULT_PRODUCT_TYPE,
) -> list[ProductGroup]:
    """
    Partition rows into product groups.

    Groups keep first-seen order; rows keep input order within a group.
    The first row of a group fixes its product type, description, brand
    and tags. Rows without a derivable name are skipped.

    Names are compared exactly as written (no case or accent folding).
    """
    groups: dict[str, ProductGroup] = {}
    skipped = 0

    for row in rows:
        name = resolve_product_name(row)
        if not name:
            logger.warning(
                "row_skipped_no_product_name",
                row=row.row_number,
                sku=row.sku
            )
            skipped += 1
            continue

        group = groups.get(name)
        if group is None:
            group = ProductGroup(
                name=name,
                product_type=row.product_type or default_product_type,
                description=row.description,
                brand=row.brand,
                tags=list(row.tags),
            )
            groups[name] = group

        group.rows.append(row)

    logger.info(
        "rows_grouped",
        rows=len(rows),
        groups=len(groups),
        skipped=skipped
    )

    return list(groups.values())
