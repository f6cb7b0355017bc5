"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
)
from models.catalog import (
    ProductCreate,
    VariantCreate,
    InventoryCreate,
    WarrantyCreate,
    UnitConversionCreate,
    CatalogCountsResponse,
)
from models.catalog_import import (
    ImportMode,
    ImportStatus,
    ImportCounters,
    ImportRunResult,
    ImportRunResponse,
    RowIssueResponse,
    ConversionPreview,
    ProductGroupPreview,
    ImportPreviewResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",

    # Catalog
    "ProductCreate",
    "VariantCreate",
    "InventoryCreate",
    "WarrantyCreate",
    "UnitConversionCreate",
    "CatalogCountsResponse",

    # Import
    "ImportMode",
    "ImportStatus",
    "ImportCounters",
    "ImportRunResult",
    "ImportRunResponse",
    "RowIssueResponse",
    "ConversionPreview",
    "ProductGroupPreview",
    "ImportPreviewResponse",
]
