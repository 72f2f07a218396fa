"""
Shared test fixtures.

Settings require Supabase credentials at import time; dummy values are set
before any application module is imported.
"""

import os
import sys
from pathlib import Path

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

import pytest
from unittest.mock import patch
from datetime import datetime, timezone
from typing import Generator

from tests.factories import EmployeeFactory, ProjectFactory, make_catalog


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    eq() and order() really filter/sort so services' query shape matters.
    """

    def __init__(self, table: "MockSupabaseTable"):
        self._table = table
        self._data = [dict(row) for row in table.rows]
        self._inserted = None

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        if isinstance(data, dict):
            data = [data]
        inserted = []
        for item in data:
            row = dict(item)
            self._table.next_id += 1
            row.setdefault("id", str(self._table.next_id))
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            inserted.append(row)
        self._inserted = inserted
        return self

    def eq(self, column, value):
        self._data = [row for row in self._data if row.get(column) == value]
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._data.sort(key=lambda row: row.get(column) or "", reverse=desc)
        return self

    def limit(self, count):
        self._data = self._data[:count]
        return self

    def execute(self) -> MockSupabaseResponse:
        if self._table.error is not None:
            raise self._table.error
        if self._inserted is not None:
            self._table.rows.extend(self._inserted)
            self._table.insert_calls.append(self._inserted)
            return MockSupabaseResponse(data=self._inserted)
        return MockSupabaseResponse(data=self._data)


class MockSupabaseTable:
    """Mock Supabase table backed by a list of rows."""

    def __init__(self, rows: list = None):
        self.rows = list(rows or [])
        self.insert_calls: list[list[dict]] = []
        self.error = None
        self.next_id = 0

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self).select(*args, **kwargs)

    def insert(self, data):
        return MockSupabaseQuery(self).insert(data)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list):
        """Configure rows for a table."""
        self._tables[table_name] = MockSupabaseTable(data)

    def fail_table(self, table_name: str, error: Exception):
        """Make every query on a table raise."""
        self.table(table_name).error = error

    def table(self, name: str) -> MockSupabaseTable:
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable()
        return self._tables[name]


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("projects", [ProjectFactory.create()])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock and reset service singletons.
    """
    import services.catalog_service as catalog_module
    import services.factor_service as factor_module
    import services.transaction_service as transaction_module
    import services.upload_service as upload_module
    from services.upload_session_store import clear_sessions

    for module, attr in [
        (catalog_module, "_catalog_service"),
        (factor_module, "_factor_service"),
        (transaction_module, "_transaction_service"),
        (upload_module, "_upload_service"),
    ]:
        setattr(module, attr, None)
    clear_sessions()

    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.catalog_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.factor_service.get_supabase_client", return_value=mock_supabase):
                with patch("services.transaction_service.get_supabase_client", return_value=mock_supabase):
                    yield mock_supabase

    for module, attr in [
        (catalog_module, "_catalog_service"),
        (factor_module, "_factor_service"),
        (transaction_module, "_transaction_service"),
        (upload_module, "_upload_service"),
    ]:
        setattr(module, attr, None)
    clear_sessions()


@pytest.fixture
def seeded_db(mock_db):
    """Mock store with a small catalog: two open projects, one finished, two employees."""
    mock_db.set_table_data("projects", [
        ProjectFactory.create(proyecto_id="1", nueva_sae="PR100", clave_interna="INT-1", nombre_proyecto="Tienda Centro"),
        ProjectFactory.create(proyecto_id="2", nueva_sae="25-046-00", clave_interna="INT-2", nombre_proyecto="Góndola Norte"),
        ProjectFactory.create(proyecto_id="3", nueva_sae="PR300", nombre_proyecto="Bodega Sur", estatus="Terminado"),
        ProjectFactory.create(proyecto_id="4", nueva_sae="PR400", nombre_proyecto="Borrado", is_deleted=True),
    ])
    mock_db.set_table_data("employees", [
        EmployeeFactory.create(empleado_id="E1", nombre_completo="Juan Pérez", costo_hora=100),
        EmployeeFactory.create(empleado_id="E2", nombre_completo="Ana López", costo_hora=80),
        EmployeeFactory.create(empleado_id="E9", nombre_completo="Baja", activo=False),
    ])
    return mock_db


@pytest.fixture
def catalog():
    """
    Standard catalog snapshot.

    Projects: PR100 (id 1, open), 25-046-00 (id 2, open, internal INT-2),
    PR300 (id 3, finished). Employees: E1 (100/h), E2 (80/h).
    """
    return make_catalog()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(seeded_db):
    """
    FastAPI test client with mocked database and seeded catalog.

    Usage:
        def test_endpoint(test_client_with_mock_db, seeded_db):
            response = test_client_with_mock_db.get("/api/factors/FACTOR_GASTOS_OP")
    """
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as client:
        yield client
