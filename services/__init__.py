"""
Business logic services.

Each service handles one domain area.
"""

from services.catalog_import_service import CatalogImportService, GroupUnitOfWork
from services.catalog_service import CatalogService
from services.import_run_service import ImportRunService
from services.preview_cache_service import PreviewCache
from services.product_grouping import ProductGroup, derive_product_name, group_rows
from services.unit_conversion import ConversionCandidate, infer_conversions

__all__ = [
    "CatalogImportService",
    "GroupUnitOfWork",
    "CatalogService",
    "ImportRunService",
    "PreviewCache",
    "ProductGroup",
    "derive_product_name",
    "group_rows",
    "ConversionCandidate",
    "infer_conversions",
]
