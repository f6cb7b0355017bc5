"""
Shared test fixtures.

The Supabase fake keeps rows in memory per table and understands the
query chains the services use, so import runs can be checked against
real table contents instead of canned responses.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Settings are loaded at import time and require these
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import copy
import pytest
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Generator, Optional
from uuid import uuid4

# ===================
# FAKE SUPABASE CLIENT
# ===================

BASE_TIME = datetime(2026, 1, 1)


class FakeDatabaseError(Exception):
    """Raised by the fake when a failure was injected."""
    pass


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: Any = None, count: Optional[int] = None):
        self.data = data if data is not None else []
        self.count = count


class MockSupabaseQuery:
    """Chainable query over one in-memory table."""

    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: list = []
        self._order: Optional[tuple[str, bool]] = None
        self._limit: Optional[int] = None
        self._count = False
        self._is_single = False

    # Operations

    def select(self, *args, count: Optional[str] = None, **kwargs):
        self._op = "select"
        self._count = count is not None
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = data
        return self

    def update(self, data):
        self._op = "update"
        self._payload = data
        return self

    def delete(self):
        self._op = "delete"
        return self

    # Filters

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._client.in_filters.append((self._table, column, len(values)))
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._is_single = True
        return self

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> MockSupabaseResponse:
        self._client._record(self._table, self._op)
        rows = self._client.tables[self._table]

        if self._op == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = [self._client._new_row(item) for item in items]
            rows.extend(inserted)
            return MockSupabaseResponse(data=copy.deepcopy(inserted))

        matched = [row for row in rows if self._matches(row)]

        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
                row["updated_at"] = self._client._timestamp()
            return MockSupabaseResponse(data=copy.deepcopy(matched))

        if self._op == "delete":
            self._client.tables[self._table] = [row for row in rows if not self._matches(row)]
            return MockSupabaseResponse(data=copy.deepcopy(matched))

        total = len(matched)
        if self._order is not None:
            column, desc = self._order
            matched = sorted(matched, key=lambda row: row.get(column) or "", reverse=desc)
        if self._limit is not None:
            matched = matched[:self._limit]

        data = copy.deepcopy(matched)
        if self._is_single:
            data = data[0] if data else None
        return MockSupabaseResponse(data=data, count=total if self._count else None)


class MockSupabaseClient:
    """
    In-memory Supabase client.

    Usage:
        mock_supabase.set_table_data("products", [{"id": "p1", "name": "Milk"}])
        mock_supabase.fail_on("inventory", "insert", call=3)
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = defaultdict(list)
        self.calls: list[tuple[str, str]] = []
        self.in_filters: list[tuple[str, str, int]] = []  # (table, column, number of values)
        self._call_counts: dict[tuple[str, str], int] = defaultdict(int)
        self._failures: dict[tuple[str, str], int] = {}
        self._clock = 0

    def set_table_data(self, table_name: str, data: list):
        """Seed a table. Rows without an id get one."""
        self.tables[table_name] = [self._new_row(row) for row in data]

    def fail_on(self, table: str, op: str, call: int = 1):
        """Make the nth `op` on `table` (counted from now) raise."""
        self._failures[(table, op)] = self._call_counts[(table, op)] + call

    def clear_failures(self):
        self._failures.clear()

    def rows(self, table: str) -> list[dict]:
        return self.tables[table]

    def count(self, table: str) -> int:
        return len(self.tables[table])

    def calls_to(self, table: str, op: str) -> int:
        return sum(1 for call in self.calls if call == (table, op))

    def in_sizes(self, table: str) -> list[int]:
        return [size for name, _, size in self.in_filters if name == table]

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)

    def _record(self, table: str, op: str):
        key = (table, op)
        self._call_counts[key] += 1
        self.calls.append(key)
        if self._failures.get(key) == self._call_counts[key]:
            raise FakeDatabaseError(f"injected {op} failure on {table}")

    def _timestamp(self) -> str:
        self._clock += 1
        return (BASE_TIME + timedelta(seconds=self._clock)).isoformat() + "Z"

    def _new_row(self, item: dict) -> dict:
        row = copy.deepcopy(item)
        row.setdefault("id", str(uuid4()))
        now = self._timestamp()
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        return row


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create an in-memory Supabase client.

    Usage:
        def test_something(mock_supabase):
            service = CatalogImportService(mock_supabase)
    """
    return MockSupabaseClient()


@pytest.fixture
def preview_cache():
    from services.preview_cache_service import PreviewCache

    return PreviewCache(ttl_minutes=30)


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_supabase, preview_cache) -> Generator:
    """
    Create FastAPI test client with the in-memory database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            response = test_client_with_mock_db.get("/api/catalog/counts")
    """
    from fastapi.testclient import TestClient
    from main import app
    from routes.dependencies import get_db, get_preview_cache

    app.dependency_overrides[get_db] = lambda: mock_supabase
    app.dependency_overrides[get_preview_cache] = lambda: preview_cache

    yield TestClient(app)

    app.dependency_overrides.clear()
