"""
Custom exception classes for the application.

Every error carries a machine-readable code, a message and an HTTP status
so routes can turn it into a response without extra mapping.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "DUPLICATE_SKU")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# SPREADSHEET ERRORS
# ===================

class SpreadsheetParseError(ValidationError):
    """Spreadsheet file could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="SPREADSHEET_PARSE_ERROR",
            message=message,
            details=details
        )


class UploadTooLargeError(ValidationError):
    """Upload exceeds the configured size or row limit."""

    def __init__(self, limit: str, actual: int, maximum: int):
        super().__init__(
            code="UPLOAD_TOO_LARGE",
            message=f"Upload exceeds the {limit} limit ({actual} > {maximum})",
            details={"limit": limit, "actual": actual, "maximum": maximum}
        )


# ===================
# IMPORT ERRORS
# ===================

class DuplicateSKUError(ValidationError):
    """The same SKU appears more than once in the import set."""

    def __init__(self, skus: list[str]):
        super().__init__(
            code="DUPLICATE_SKU",
            message=f"Duplicate SKUs in import: {', '.join(skus)}",
            details={"skus": skus}
        )


class InvalidProductError(ValidationError):
    """A product group would be rejected by the products table schema."""

    def __init__(self, product: str, errors: list[str]):
        super().__init__(
            code="INVALID_PRODUCT",
            message=f"Invalid product '{product}': {'; '.join(errors)}",
            details={"product": product, "errors": errors}
        )


class ImportRunNotFoundError(NotFoundError):
    """Import run not found."""

    def __init__(self, run_id: str):
        super().__init__(
            resource="Import run",
            identifier=run_id,
            code="IMPORT_RUN_NOT_FOUND"
        )


class PreviewNotFoundError(NotFoundError):
    """Upload preview expired or never existed."""

    def __init__(self, preview_id: str):
        super().__init__(
            resource="Preview",
            identifier=preview_id,
            code="PREVIEW_NOT_FOUND"
        )


class ResumeMismatchError(ConflictError):
    """Resume requested with rows that differ from the original run, or for a run that cannot resume."""

    def __init__(self, run_id: str, reason: str):
        super().__init__(
            code="IMPORT_RESUME_REJECTED",
            message=f"Cannot resume import run: {reason}",
            details={"run_id": run_id, "reason": reason}
        )
