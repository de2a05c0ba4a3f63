"""Pytest configuration and shared fixtures."""

import threading
import uuid
from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from src.trustgate.config import settings
from src.trustgate.main import app
from src.trustgate.services.auth import AuthGate, TokenService, set_auth_gate
from src.trustgate.services.database import SupabaseQueryBuilder, get_db
from src.trustgate.services.rate_limiter import limiter

UNIQUE_COLUMNS = {"users": ("email",)}


class FakeResponse:
    def __init__(self, data: list[dict[str, Any]], count: int | None = None):
        self.data = data
        self.count = count


class FakeQuery:
    """Chainable stand-in for a postgrest request builder."""

    def __init__(self, client: "FakeSupabaseClient", table: str, action: str, payload=None):
        self._client = client
        self._table = table
        self._action = action
        self._payload = payload
        self._count = False
        self._filters: list[tuple[str, str, Any]] = []
        self._order: tuple[str, bool] | None = None
        self._range: tuple[int, int] | None = None

    def _filter(self, op: str, field: str, value: Any) -> "FakeQuery":
        self._filters.append((op, field, value))
        return self

    def eq(self, field, value):
        return self._filter("eq", field, value)

    def neq(self, field, value):
        return self._filter("neq", field, value)

    def gt(self, field, value):
        return self._filter("gt", field, value)

    def gte(self, field, value):
        return self._filter("gte", field, value)

    def lt(self, field, value):
        return self._filter("lt", field, value)

    def lte(self, field, value):
        return self._filter("lte", field, value)

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._range = (start, end)
        return self

    def limit(self, size: int) -> "FakeQuery":
        self._range = (0, size - 1)
        return self

    def _matches(self, row: dict[str, Any]) -> bool:
        for op, field, value in self._filters:
            current = row.get(field)
            if op == "eq" and current != value:
                return False
            if op == "neq" and current == value:
                return False
            if op in ("gt", "gte", "lt", "lte"):
                if current is None:
                    return False
                if op == "gt" and not current > value:
                    return False
                if op == "gte" and not current >= value:
                    return False
                if op == "lt" and not current < value:
                    return False
                if op == "lte" and not current <= value:
                    return False
        return True

    def execute(self) -> FakeResponse:
        client = self._client
        if client.failure is not None:
            raise client.failure

        # One lock per statement, like a single SQL statement in Postgres
        with client.lock:
            rows = client.tables.setdefault(self._table, [])

            if self._action == "insert":
                row = dict(self._payload)
                row.setdefault("id", str(uuid.uuid4()))
                row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                for column in UNIQUE_COLUMNS.get(self._table, ()):
                    if any(existing.get(column) == row.get(column) for existing in rows):
                        raise APIError(
                            {
                                "code": "23505",
                                "message": f"duplicate key violates unique constraint on {column}",
                            }
                        )
                rows.append(row)
                return FakeResponse([dict(row)])

            matched = [row for row in rows if self._matches(row)]

            if self._action == "update":
                for row in matched:
                    row.update(self._payload)
                return FakeResponse([dict(row) for row in matched])

            if self._order:
                column, desc = self._order
                matched.sort(
                    key=lambda row: (row.get(column) is None, row.get(column)), reverse=desc
                )
            total = len(matched)
            if self._range:
                start, end = self._range
                matched = matched[start : end + 1]
            return FakeResponse([dict(row) for row in matched], total if self._count else None)


class FakeTable:
    def __init__(self, client: "FakeSupabaseClient", name: str):
        self._client = client
        self._name = name

    def select(self, columns: str = "*", count: str | None = None) -> FakeQuery:
        query = FakeQuery(self._client, self._name, "select")
        query._count = count is not None
        return query

    def insert(self, data: dict[str, Any]) -> FakeQuery:
        return FakeQuery(self._client, self._name, "insert", data)

    def update(self, data: dict[str, Any]) -> FakeQuery:
        return FakeQuery(self._client, self._name, "update", data)


class FakeSupabaseClient:
    """
    In-memory PostgREST table store.

    Each ``execute`` runs under one lock, so a filtered UPDATE is atomic the
    way a single statement is in Postgres. Set ``failure`` to make every
    statement raise.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.lock = threading.Lock()
        self.failure: Exception | None = None

    def table(self, name: str) -> FakeTable:
        return FakeTable(self, name)

    def rows(self, name: str) -> list[dict[str, Any]]:
        return self.tables.get(name, [])


@pytest.fixture
def fake_supabase() -> FakeSupabaseClient:
    """Provide an empty in-memory store."""
    return FakeSupabaseClient()


@pytest.fixture
def db(fake_supabase: FakeSupabaseClient) -> SupabaseQueryBuilder:
    """Provide a query builder bound to the in-memory store."""
    return SupabaseQueryBuilder(fake_supabase)


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(settings.jwt_secret, ttl_seconds=settings.jwt_ttl_seconds)


@pytest.fixture
def auth_gate(token_service: TokenService):
    """Install the global auth gate for the duration of a test."""
    gate = AuthGate(token_service)
    set_auth_gate(gate)
    yield gate
    set_auth_gate(None)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Start every test with empty rate-limit counters."""
    limiter.reset()
    yield


@pytest.fixture
def client(db: SupabaseQueryBuilder, auth_gate: AuthGate) -> TestClient:
    """
    Provide FastAPI test client backed by the in-memory store.

    Returns:
        TestClient instance for making API requests

    Example:
        >>> def test_health(client):
        >>>     response = client.get("/health")
        >>>     assert response.status_code == 200
    """
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)
