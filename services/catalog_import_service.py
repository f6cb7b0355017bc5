"""
Catalog import executor.

Loads grouped product rows into products, product_variants, inventory,
warranties and unit_conversions.

Run lifecycle:
    1. Pre-flight: duplicate SKUs, and product groups the products table
       would reject, abort the run before any write.
    2. REPLACE mode deletes every catalog row, children first. The five
       deletes are separate REST calls, not one transaction; a failure
       part way leaves variants without some of their satellite rows
       until the run is resumed, which deletes everything again.
    3. Products are created in batches, then re-fetched by name.
    4. Each product group is applied as one unit of work: variant,
       inventory and warranty per row, then inferred conversions.
       If anything in the group fails, the rows it wrote are removed
       again, so no half-imported product family stays behind.
    5. After each group the run checkpoint moves forward. A failed run
       can be resumed from the next group with the same rows.

Failures inside the run are logged and returned as a failed
ImportRunResult; they are never raised to the caller.
"""

from collections import Counter
from typing import Optional, Sequence
import structlog

from pydantic import ValidationError as SchemaValidationError
from supabase import Client

from parsers.product_sheet import ProductRow, rows_fingerprint
from services.catalog_service import CatalogService
from services.import_run_service import ImportRunService
from services.product_grouping import ProductGroup, group_rows
from services.unit_conversion import infer_conversions
from models.catalog import (
    InventoryCreate,
    ProductCreate,
    UnitConversionCreate,
    VariantCreate,
    WarrantyCreate,
)
from models.catalog_import import (
    ImportCounters,
    ImportMode,
    ImportRunResult,
    ImportStatus,
)
from exceptions import DatabaseError, DuplicateSKUError, InvalidProductError, ResumeMismatchError

logger = structlog.get_logger(__name__)


DEFAULT_BATCH_SIZE = 100
NIL_UUID = "00000000-0000-0000-0000-000000000000"

# Children before parents
RESET_ORDER = (
    "unit_conversions",
    "warranties",
    "inventory",
    "product_variants",
    "products",
)


class GroupUnitOfWork:
    """
    Journal of the writes made for one product group.

    rollback() undoes them newest first: inserted rows are deleted,
    updated rows get their previous values back.
    """

    def __init__(self, db: Client):
        self.db = db
        self._journal: list[tuple[str, str, Optional[dict]]] = []

    def insert(self, table: str, record: dict) -> dict:
        result = self.db.table(table).insert(record).execute()
        row = result.data[0]
        self._journal.append((table, row["id"], None))
        return row

    def update(self, table: str, row_id: str, data: dict, previous: dict) -> None:
        self.db.table(table).update(data).eq("id", row_id).execute()
        self._journal.append((table, row_id, previous))

    def rollback(self) -> bool:
        """Undo journaled writes. Returns False if any undo step failed."""
        clean = True
        while self._journal:
            table, row_id, previous = self._journal.pop()
            try:
                if previous is None:
                    self.db.table(table).delete().eq("id", row_id).execute()
                else:
                    self.db.table(table).update(previous).eq("id", row_id).execute()
            except Exception as e:
                clean = False
                logger.error(
                    "group_rollback_step_failed",
                    table=table,
                    row_id=row_id,
                    error=str(e)
                )
        return clean


class CatalogImportService:
    """
    Bulk catalog import.

    The Supabase client is injected; the service holds no global state.
    """

    def __init__(self, db: Client, batch_size: int = DEFAULT_BATCH_SIZE):
        self.db = db
        self.batch_size = batch_size
        self.catalog = CatalogService(db)
        self.runs = ImportRunService(db)

    # ===================
    # PRE-FLIGHT
    # ===================

    @staticmethod
    def check_unique_skus(rows: Sequence[ProductRow]) -> None:
        """
        Refuse an import set that repeats a SKU.

        Raises:
            DuplicateSKUError: Listing every repeated SKU
        """
        counts = Counter(row.sku for row in rows if row.sku)
        duplicates = sorted(sku for sku, n in counts.items() if n > 1)
        if duplicates:
            logger.error("duplicate_skus_in_import", skus=duplicates)
            raise DuplicateSKUError(duplicates)

    @staticmethod
    def build_product_records(groups: Sequence[ProductGroup]) -> dict[str, dict]:
        """
        Validate the product row of every group.

        Returns:
            Product name → insert payload

        Raises:
            InvalidProductError: For the first group the schema rejects
        """
        records = {}
        for group in groups:
            try:
                records[group.name] = ProductCreate(
                    name=group.name,
                    product_type=group.product_type,
                    description=group.description,
                    brand=group.brand,
                    tags=group.tags,
                ).model_dump()
            except SchemaValidationError as e:
                errors = [f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()]
                logger.error("invalid_product_in_import", product=group.name, errors=errors)
                raise InvalidProductError(group.name, errors)
        return records

    # ===================
    # RESET
    # ===================

    def reset_catalog(self) -> dict[str, int]:
        """
        Delete every catalog row, children before parents.

        Returns:
            Rows deleted per table
        """
        deleted = {}
        for table in RESET_ORDER:
            try:
                result = self.db.table(table).delete().neq("id", NIL_UUID).execute()
            except Exception as e:
                logger.error("catalog_reset_failed", table=table, error=str(e))
                raise DatabaseError("delete", str(e), {"table": table})
            deleted[table] = len(result.data) if result.data else 0

        logger.info("catalog_reset", **deleted)
        return deleted

    # ===================
    # RUN
    # ===================

    def run_import(
        self,
        rows: Sequence[ProductRow],
        mode: ImportMode = ImportMode.REPLACE,
        file_hash: Optional[str] = None,
        resume_run_id: Optional[str] = None,
    ) -> ImportRunResult:
        """
        Import normalized rows into the catalog.

        Args:
            rows: Normalized sheet rows
            mode: REPLACE (delete all first) or MERGE (keep existing rows)
            file_hash: Fingerprint stored on the run (computed from rows if omitted)
            resume_run_id: Continue a failed run after its last committed group

        Returns:
            ImportRunResult; success is False when the run failed part way

        Raises:
            DuplicateSKUError: Before any write, if a SKU repeats
            InvalidProductError: Before any write, if a product group fails validation
            ResumeMismatchError: If the run to resume is not failed or the rows differ
            ImportRunNotFoundError: If resume_run_id is unknown
        """
        self.check_unique_skus(rows)

        groups = group_rows(rows)
        product_records = self.build_product_records(groups)
        file_hash = file_hash or rows_fingerprint(rows)

        if resume_run_id:
            run = self.runs.get(resume_run_id)
            if run.status != ImportStatus.FAILED:
                raise ResumeMismatchError(run.id, f"run is {run.status.value}")
            if run.file_hash != file_hash:
                raise ResumeMismatchError(run.id, "rows differ from the original run")
            mode = run.mode
            start_index = run.last_committed_group + 1
            counters = ImportCounters(**run.model_dump(include=set(ImportCounters.model_fields)))
            self.runs.reopen(run.id)
            logger.info("import_run_resuming", run_id=run.id, from_group=start_index)
        else:
            run = self.runs.start(mode, len(rows), len(groups), file_hash)
            start_index = 0
            counters = ImportCounters()

        logger.info(
            "import_run_begin",
            run_id=run.id,
            mode=mode.value,
            rows=len(rows),
            groups=len(groups),
            start_group=start_index
        )

        committed = start_index
        created_products: dict[str, str] = {}

        fresh = mode == ImportMode.REPLACE and start_index == 0

        try:
            if fresh:
                self.reset_catalog()

            pending = groups[start_index:]
            product_ids = self._ensure_products(pending, product_records, created_products, lookup=not fresh)

            for index, group in enumerate(pending, start=start_index):
                group_counters = self._apply_group(
                    group,
                    product_ids[group.name],
                    created=group.name in created_products,
                    mode=mode,
                )
                counters = counters.plus(group_counters)
                self.runs.checkpoint(run.id, index, counters)
                committed = index + 1

                logger.info(
                    "import_group_committed",
                    run_id=run.id,
                    group=index,
                    product=group.name,
                    variants=group_counters.variants_created
                )

            self.runs.finish(run.id, ImportStatus.COMPLETED, counters)

        except Exception as e:
            logger.error(
                "import_run_failed",
                run_id=run.id,
                groups_committed=committed,
                error=str(e),
                error_type=type(e).__name__
            )
            self._discard_uncommitted_products(groups[committed:], created_products)
            self._mark_failed(run.id, counters, str(e))
            return self._result(run.id, mode, ImportStatus.FAILED, counters,
                                len(rows), len(groups), committed, error=str(e))

        logger.info(
            "import_run_complete",
            run_id=run.id,
            **counters.model_dump()
        )
        return self._result(run.id, mode, ImportStatus.COMPLETED, counters,
                            len(rows), len(groups), committed)

    # ===================
    # PRODUCTS
    # ===================

    def _ensure_products(
        self,
        groups: Sequence[ProductGroup],
        records: dict[str, dict],
        created: dict[str, str],
        lookup: bool = True,
    ) -> dict[str, str]:
        """
        Make sure every group has a product row.

        Existing products (MERGE mode, or groups committed before a resume)
        are reused. Missing ones are inserted in batches and re-fetched by
        name. Names created here are recorded in `created`. Without
        `lookup` (right after a reset) every group counts as missing.

        Returns:
            Product name → id for all groups
        """
        product_ids: dict[str, str] = {}
        if lookup:
            names = [g.name for g in groups]
            for start in range(0, len(names), self.batch_size):
                product_ids.update(self.catalog.get_product_ids_by_names(names[start:start + self.batch_size]))
        missing = [g for g in groups if g.name not in product_ids]

        for start in range(0, len(missing), self.batch_size):
            batch = missing[start:start + self.batch_size]
            self.db.table("products").insert([records[g.name] for g in batch]).execute()

            fetched = self.catalog.get_product_ids_by_names([g.name for g in batch])
            for g in batch:
                if g.name not in fetched:
                    raise DatabaseError("insert", f"Product '{g.name}' not found after insert")
                created[g.name] = fetched[g.name]
            product_ids.update(fetched)

            logger.info(
                "product_batch_created",
                batch=start // self.batch_size + 1,
                count=len(batch)
            )

        return product_ids

    def _discard_uncommitted_products(
        self,
        groups: Sequence[ProductGroup],
        created: dict[str, str],
    ) -> None:
        """Delete products this run created for groups that never committed."""
        for group in groups:
            product_id = created.get(group.name)
            if product_id is None:
                continue
            try:
                self.db.table("products").delete().eq("id", product_id).execute()
            except Exception as e:
                logger.error(
                    "discard_product_failed",
                    product=group.name,
                    error=str(e)
                )

    # ===================
    # GROUPS
    # ===================

    def _apply_group(
        self,
        group: ProductGroup,
        product_id: str,
        created: bool,
        mode: ImportMode,
    ) -> ImportCounters:
        """
        Apply one product group as a unit of work.

        Returns:
            Counters for this group only
        """
        uow = GroupUnitOfWork(self.db)
        counters = ImportCounters(products_created=1 if created else 0)

        existing = self.catalog.get_variant_ids_by_skus(group.skus) if mode == ImportMode.MERGE else {}

        try:
            for row in group.rows:
                if not row.sku or not row.variant_name:
                    logger.warning(
                        "variant_skipped_missing_sku_or_name",
                        row=row.row_number,
                        product=group.name,
                        sku=row.sku
                    )
                    counters.variants_skipped += 1
                    continue

                if row.sku in existing:
                    self._merge_existing_variant(uow, row, existing[row.sku], counters)
                    continue

                self._create_variant(uow, product_id, row)
                counters.variants_created += 1

            counters.conversions_created = self._create_conversions(uow, group, mode)

        except Exception:
            rolled_back = uow.rollback()
            logger.error(
                "import_group_rolled_back",
                product=group.name,
                clean=rolled_back
            )
            raise

        return counters

    def _create_variant(self, uow: GroupUnitOfWork, product_id: str, row: ProductRow) -> None:
        """Variant, then its inventory, then its warranty."""
        variant = uow.insert("product_variants", VariantCreate(
            product_id=product_id,
            sku=row.sku,
            barcode=row.barcode,
            variant_name=row.variant_name,
            weight=row.weight,
            weight_unit=row.weight_unit,
            unit=row.unit,
            image_url=row.image_url,
            retail_price=row.retail_price,
            wholesale_price=row.wholesale_price,
            import_price=row.import_price,
            tax_applied=row.tax_applied,
            input_tax=row.input_tax,
            output_tax=row.output_tax,
        ).model_dump())

        uow.insert("inventory", InventoryCreate(
            variant_id=variant["id"],
            initial_stock=row.initial_stock,
            min_stock=row.min_stock,
            max_stock=row.max_stock,
            warehouse_location=row.warehouse_location,
        ).to_record())

        uow.insert("warranties", WarrantyCreate(
            variant_id=variant["id"],
            expiration_warning_days=row.expiry_warning_days,
            warranty_policy=row.warranty_policy,
        ).model_dump())

        logger.info(
            "variant_created",
            sku=row.sku,
            variant_name=row.variant_name,
            row=row.row_number
        )

    def _merge_existing_variant(
        self,
        uow: GroupUnitOfWork,
        row: ProductRow,
        variant_id: str,
        counters: ImportCounters,
    ) -> None:
        """Keep an existing SKU; add the sheet's opening stock to it."""
        counters.variants_skipped += 1
        logger.info("variant_exists_skipped", sku=row.sku, row=row.row_number)

        if row.initial_stock <= 0:
            return

        inventory = self.catalog.get_inventory(variant_id)
        if inventory is None:
            return

        current = inventory.get("current_stock") or 0
        uow.update(
            "inventory",
            inventory["id"],
            {"current_stock": current + row.initial_stock},
            previous={"current_stock": current},
        )
        counters.inventory_updated += 1
        logger.info(
            "inventory_incremented",
            sku=row.sku,
            added=row.initial_stock
        )

    def _create_conversions(self, uow: GroupUnitOfWork, group: ProductGroup, mode: ImportMode) -> int:
        """Create edges for inferred conversions whose two SKUs exist."""
        candidates = infer_conversions(group.rows)
        if not candidates:
            return 0

        variant_ids = self.catalog.get_variant_ids_by_skus(group.skus)
        created = 0

        for candidate in candidates:
            from_id = variant_ids.get(candidate.from_sku)
            to_id = variant_ids.get(candidate.to_sku)
            if from_id is None or to_id is None:
                logger.debug(
                    "conversion_skipped_unknown_variant",
                    from_sku=candidate.from_sku,
                    to_sku=candidate.to_sku
                )
                continue

            if mode == ImportMode.MERGE and self.catalog.conversion_exists(from_id, to_id):
                continue

            uow.insert("unit_conversions", UnitConversionCreate(
                from_variant_id=from_id,
                to_variant_id=to_id,
                conversion_rate=candidate.rate,
            ).model_dump())
            created += 1

            logger.info(
                "unit_conversion_created",
                from_sku=candidate.from_sku,
                to_sku=candidate.to_sku,
                rate=candidate.rate
            )

        return created

    # ===================
    # HELPERS
    # ===================

    def _mark_failed(self, run_id: str, counters: ImportCounters, error: str) -> None:
        try:
            self.runs.finish(run_id, ImportStatus.FAILED, counters, error_message=error)
        except Exception as e:
            logger.error("import_run_mark_failed_failed", run_id=run_id, error=str(e))

    @staticmethod
    def _result(
        run_id: str,
        mode: ImportMode,
        status: ImportStatus,
        counters: ImportCounters,
        row_count: int,
        groups_total: int,
        groups_committed: int,
        error: Optional[str] = None,
    ) -> ImportRunResult:
        return ImportRunResult(
            run_id=run_id,
            mode=mode,
            status=status,
            success=status == ImportStatus.COMPLETED,
            row_count=row_count,
            groups_total=groups_total,
            groups_committed=groups_committed,
            error=error,
            **counters.model_dump(),
        )
