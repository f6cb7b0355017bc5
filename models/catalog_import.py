"""
Catalog import schemas: run modes, run records and upload previews.
"""

from pydantic import Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema, TimestampMixin


class ImportMode(str, Enum):
    """How an import run treats existing catalog rows."""
    REPLACE = "replace"  # Delete everything, then load
    MERGE = "merge"      # Keep existing products and SKUs, add the rest


class ImportStatus(str, Enum):
    """Lifecycle of an import run."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportCounters(BaseSchema):
    """Rows written (or skipped) by an import run."""

    products_created: int = 0
    variants_created: int = 0
    variants_skipped: int = 0
    inventory_updated: int = 0
    conversions_created: int = 0

    def plus(self, other: "ImportCounters") -> "ImportCounters":
        """Field-wise sum of two counter sets."""
        return ImportCounters(**{
            name: getattr(self, name) + getattr(other, name)
            for name in ImportCounters.model_fields
        })


class ImportRunResult(ImportCounters):
    """
    Outcome of run_import.

    A failed run never raises: success is False and error explains why.
    groups_committed tells how far a resume has to go.
    """

    run_id: Optional[str] = None
    mode: ImportMode
    status: ImportStatus
    success: bool
    row_count: int = 0
    groups_total: int = 0
    groups_committed: int = 0
    error: Optional[str] = None


class ImportRunResponse(BaseSchema, TimestampMixin):
    """Stored import run (import_runs table)."""

    id: str = Field(..., description="Run ID")
    mode: ImportMode
    status: ImportStatus
    file_hash: Optional[str] = Field(None, description="Fingerprint of the imported rows")
    row_count: int = 0
    total_groups: int = 0
    last_committed_group: int = Field(-1, description="Index of the last fully applied group")
    products_created: int = 0
    variants_created: int = 0
    variants_skipped: int = 0
    inventory_updated: int = 0
    conversions_created: int = 0
    error_message: Optional[str] = None


class RowIssueResponse(BaseSchema):
    """Problem found in one spreadsheet row."""
    row: int
    field: str
    error: str


class ConversionPreview(BaseSchema):
    """Inferred conversion shown before import."""
    from_sku: str
    to_sku: str
    rate: int


class ProductGroupPreview(BaseSchema):
    """One product as it will be created."""
    name: str
    product_type: str
    variant_count: int
    skus: list[str] = Field(default_factory=list)
    conversions: list[ConversionPreview] = Field(default_factory=list)


class ImportPreviewResponse(BaseSchema):
    """Preview response for a product sheet upload."""
    preview_id: str
    filename: Optional[str] = None
    layout: str
    row_count: int
    product_count: int
    variant_count: int
    duplicate_skus: list[str] = Field(default_factory=list, description="Import will be refused while non-empty")
    unknown_headers: list[str] = Field(default_factory=list)
    duplicate_headers: list[str] = Field(default_factory=list, description="Repeated headers for an already mapped column, ignored")
    issues: list[RowIssueResponse] = Field(default_factory=list)
    products: list[ProductGroupPreview] = Field(default_factory=list)
    expires_in_minutes: int = 30
