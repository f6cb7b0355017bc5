"""
Builds the operator preview shown before an import is confirmed.
"""

from collections import Counter
from typing import Optional

from parsers.product_sheet import SheetParseResult, validate_rows
from services.product_grouping import group_rows
from services.unit_conversion import infer_conversions
from models.catalog_import import (
    ConversionPreview,
    ImportPreviewResponse,
    ProductGroupPreview,
    RowIssueResponse,
)


def build_preview(
    parsed: SheetParseResult,
    preview_id: str,
    filename: Optional[str] = None,
    expires_in_minutes: int = 30,
) -> ImportPreviewResponse:
    """Group, infer and validate a parsed sheet without writing anything."""
    groups = group_rows(parsed.rows)

    products = [
        ProductGroupPreview(
            name=group.name,
            product_type=group.product_type,
            variant_count=len(group.rows),
            skus=group.skus,
            conversions=[
                ConversionPreview(from_sku=c.from_sku, to_sku=c.to_sku, rate=c.rate)
                for c in infer_conversions(group.rows)
                if c.from_sku and c.to_sku
            ],
        )
        for group in groups
    ]

    sku_counts = Counter(row.sku for row in parsed.rows if row.sku)
    issues = parsed.issues + validate_rows(parsed.rows)

    return ImportPreviewResponse(
        preview_id=preview_id,
        filename=filename,
        layout=parsed.layout,
        row_count=len(parsed.rows),
        product_count=len(groups),
        variant_count=sum(len(g.rows) for g in groups),
        duplicate_skus=sorted(sku for sku, n in sku_counts.items() if n > 1),
        unknown_headers=parsed.unknown_headers,
        duplicate_headers=parsed.duplicate_headers,
        issues=[RowIssueResponse(row=i.row, field=i.field, error=i.error) for i in issues],
        products=products,
        expires_in_minutes=expires_in_minutes,
    )
