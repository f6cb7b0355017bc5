"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # Spreadsheet
    SpreadsheetParseError,
    UploadTooLargeError,

    # Import
    DuplicateSKUError,
    InvalidProductError,
    ImportRunNotFoundError,
    PreviewNotFoundError,
    ResumeMismatchError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # Spreadsheet
    "SpreadsheetParseError",
    "UploadTooLargeError",

    # Import
    "DuplicateSKUError",
    "InvalidProductError",
    "ImportRunNotFoundError",
    "PreviewNotFoundError",
    "ResumeMismatchError",
]
