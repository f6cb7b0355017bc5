"""
Catalog import API routes.

Two-step flow:
    1. POST /preview uploads a product sheet; nothing is written.
       The parsed rows are cached under a preview_id.
    2. POST /{preview_id}/confirm runs the import on the cached rows.

A failed run keeps its preview so it can be resumed with
POST /runs/{run_id}/resume?preview_id=...
"""

from io import BytesIO

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import JSONResponse
import structlog

from supabase import Client

from config import Settings
from parsers.product_sheet import SheetParseResult, parse_product_sheet, rows_fingerprint
from services.catalog_import_service import CatalogImportService
from services.catalog_service import CatalogService
from services.import_preview import build_preview
from services.import_run_service import ImportRunService
from services.preview_cache_service import PreviewCache
from routes.dependencies import get_app_settings, get_db, get_preview_cache
from models.catalog import CatalogCountsResponse
from models.catalog_import import (
    ImportMode,
    ImportPreviewResponse,
    ImportRunResponse,
    ImportRunResult,
)
from exceptions import (
    AppError,
    PreviewNotFoundError,
    SpreadsheetParseError,
    UploadTooLargeError,
)

logger = structlog.get_logger(__name__)

router = APIRouter()

ALLOWED_EXTENSIONS = (".xlsx", ".xls", ".csv")


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _cached_sheet(cache: PreviewCache, preview_id: str) -> dict:
    cached = cache.retrieve(preview_id)
    if cached is None:
        raise PreviewNotFoundError(preview_id)
    return cached


# ===================
# IMPORT
# ===================

@router.post("/import/preview", response_model=ImportPreviewResponse)
async def preview_import(
    file: UploadFile = File(..., description="Product sheet (.xlsx, .xls or .csv)"),
    cache: PreviewCache = Depends(get_preview_cache),
    settings: Settings = Depends(get_app_settings),
):
    """
    Parse a product sheet and show what an import would create.

    Nothing is written to the database.

    Raises:
        422: Unreadable file, unsupported type, or file too large
    """
    logger.info(
        "catalog_preview_started",
        filename=file.filename,
        content_type=file.content_type
    )

    try:
        filename = file.filename or ""
        if not filename.lower().endswith(ALLOWED_EXTENSIONS):
            raise SpreadsheetParseError(
                message="File must be .xlsx, .xls or .csv",
                details={"filename": filename}
            )

        content = await file.read()
        if len(content) > settings.import_max_file_size_bytes:
            raise UploadTooLargeError("file size", len(content), settings.import_max_file_size_bytes)

        parsed: SheetParseResult = parse_product_sheet(BytesIO(content), filename=filename)

        if not parsed.rows:
            raise SpreadsheetParseError(message="File has no product rows")
        if len(parsed.rows) > settings.import_max_rows:
            raise UploadTooLargeError("row count", len(parsed.rows), settings.import_max_rows)

        preview_id = cache.store({
            "rows": parsed.rows,
            "filename": filename,
            "file_hash": rows_fingerprint(parsed.rows),
        })

        preview = build_preview(
            parsed,
            preview_id=preview_id,
            filename=filename,
            expires_in_minutes=cache.ttl_minutes,
        )

        logger.info(
            "catalog_preview_cached",
            preview_id=preview_id,
            rows=preview.row_count,
            products=preview.product_count,
            duplicate_skus=len(preview.duplicate_skus)
        )

        return preview

    except Exception as e:
        return handle_error(e)


@router.post("/import/{preview_id}/confirm", response_model=ImportRunResult)
async def confirm_import(
    preview_id: str,
    mode: ImportMode = Query(ImportMode.REPLACE, description="replace deletes the catalog first"),
    db: Client = Depends(get_db),
    cache: PreviewCache = Depends(get_preview_cache),
    settings: Settings = Depends(get_app_settings),
):
    """
    Run an import on a previewed sheet.

    A failed run is reported with success=false and can be resumed.

    Raises:
        404: Preview not found or expired
        422: Duplicate SKUs or a product the catalog would reject
    """
    logger.info("catalog_import_confirm", preview_id=preview_id, mode=mode.value)

    try:
        cached = _cached_sheet(cache, preview_id)
        service = CatalogImportService(db, batch_size=settings.import_batch_size)

        result = service.run_import(
            cached["rows"],
            mode=mode,
            file_hash=cached["file_hash"],
        )

        if result.success:
            cache.delete(preview_id)

        return result

    except Exception as e:
        return handle_error(e)


@router.post("/import/runs/{run_id}/resume", response_model=ImportRunResult)
async def resume_import(
    run_id: str,
    preview_id: str = Query(..., description="Preview holding the same rows as the failed run"),
    db: Client = Depends(get_db),
    cache: PreviewCache = Depends(get_preview_cache),
    settings: Settings = Depends(get_app_settings),
):
    """
    Resume a failed run after its last committed product group.

    Raises:
        404: Run or preview not found
        409: Run is not failed, or the preview holds different rows
    """
    logger.info("catalog_import_resume", run_id=run_id, preview_id=preview_id)

    try:
        cached = _cached_sheet(cache, preview_id)
        service = CatalogImportService(db, batch_size=settings.import_batch_size)

        result = service.run_import(
            cached["rows"],
            file_hash=cached["file_hash"],
            resume_run_id=run_id,
        )

        if result.success:
            cache.delete(preview_id)

        return result

    except Exception as e:
        return handle_error(e)


@router.get("/import/runs", response_model=list[ImportRunResponse])
async def list_import_runs(
    limit: int = Query(20, ge=1, le=100, description="Number of runs"),
    db: Client = Depends(get_db),
):
    """List recent import runs, newest first."""
    try:
        return ImportRunService(db).list_recent(limit=limit)
    except Exception as e:
        return handle_error(e)


@router.get("/import/runs/{run_id}", response_model=ImportRunResponse)
async def get_import_run(run_id: str, db: Client = Depends(get_db)):
    """
    Get one import run with its checkpoint.

    Raises:
        404: Run not found
    """
    try:
        return ImportRunService(db).get(run_id)
    except Exception as e:
        return handle_error(e)


# ===================
# CATALOG
# ===================

@router.get("/counts", response_model=CatalogCountsResponse)
async def catalog_counts(db: Client = Depends(get_db)):
    """Row count of every catalog table."""
    try:
        return CatalogService(db).counts()
    except Exception as e:
        return handle_error(e)
