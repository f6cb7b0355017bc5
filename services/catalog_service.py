"""
Catalog read operations.

Lookups used by the import executor and the API.
"""

from typing import Optional, Sequence
import structlog

from supabase import Client

from config.database import CATALOG_TABLES
from models.catalog import CatalogCountsResponse
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class CatalogService:
    """
    Read access to products, variants and their satellite tables.
    """

    def __init__(self, db: Client):
        self.db = db

    def counts(self) -> CatalogCountsResponse:
        """Row count of every catalog table."""
        counts = {}
        try:
            for table in CATALOG_TABLES:
                result = self.db.table(table).select("id", count="exact").execute()
                counts[table] = result.count or 0
        except Exception as e:
            logger.error("count_catalog_failed", error=str(e))
            raise DatabaseError("count", str(e))

        return CatalogCountsResponse(**counts)

    def get_product_ids_by_names(self, names: Sequence[str]) -> dict[str, str]:
        """Map product name → id for the names that exist."""
        if not names:
            return {}

        try:
            result = (
                self.db.table("products")
                .select("id, name")
                .in_("name", list(names))
                .execute()
            )
        except Exception as e:
            logger.error("get_products_by_names_failed", count=len(names), error=str(e))
            raise DatabaseError("select", str(e))

        return {row["name"]: row["id"] for row in result.data}

    def get_variant_ids_by_skus(self, skus: Sequence[str]) -> dict[str, str]:
        """Map SKU → variant id for the SKUs that exist."""
        skus = [s for s in skus if s]
        if not skus:
            return {}

        try:
            result = (
                self.db.table("product_variants")
                .select("id, sku")
                .in_("sku", skus)
                .execute()
            )
        except Exception as e:
            logger.error("get_variants_by_skus_failed", count=len(skus), error=str(e))
            raise DatabaseError("select", str(e))

        return {row["sku"]: row["id"] for row in result.data}

    def get_inventory(self, variant_id: str) -> Optional[dict]:
        """Inventory row of a variant, or None."""
        try:
            result = (
                self.db.table("inventory")
                .select("*")
                .eq("variant_id", variant_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_inventory_failed", variant_id=variant_id, error=str(e))
            raise DatabaseError("select", str(e))

        return result.data[0] if result.data else None

    def conversion_exists(self, from_variant_id: str, to_variant_id: str) -> bool:
        """True if the from → to edge is already stored."""
        try:
            result = (
                self.db.table("unit_conversions")
                .select("id")
                .eq("from_variant_id", from_variant_id)
                .eq("to_variant_id", to_variant_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("conversion_exists_failed", error=str(e))
            raise DatabaseError("select", str(e))

        return bool(result.data)
