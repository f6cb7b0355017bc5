"""
Test suite for the catalog import backend.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_catalog_import_service.py -v
"""
