"""
Shared fixtures: an in-memory stand-in for the Supabase query builder.

FakeSupabase understands the subset of the PostgREST builder the services
use and raises real postgrest APIErrors with the same codes the server sends
(PGRST116 for .single() on zero rows, 23505 duplicate key, 23503 foreign key).
"""

import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import copy
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from lockadmin.config import Settings, get_settings
from lockadmin.core.dependencies import get_db

UNIQUE_KEYS = {"devices": "device_id"}


def api_error(code: str, message: str) -> APIError:
    return APIError({"code": code, "message": message, "details": None, "hint": None})


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self.orders = []
        self.row_limit = None
        self.want_single = False
        self._negate = False

    # ── builder ──────────────────────────────────────────
    def select(self, columns: str = "*"):
        self.columns = columns
        return self

    def insert(self, data: dict):
        self.op = "insert"
        self.payload = data
        return self

    def update(self, data: dict):
        self.op = "update"
        self.payload = data
        return self

    def eq(self, column: str, value):
        self.filters.append(lambda row: str(row.get(column)) == str(value))
        return self

    @property
    def not_(self):
        self._negate = True
        return self

    def is_(self, column: str, value: str):
        negate, self._negate = self._negate, False
        assert value == "null"
        if negate:
            self.filters.append(lambda row: row.get(column) is not None)
        else:
            self.filters.append(lambda row: row.get(column) is None)
        return self

    def order(self, column: str, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def limit(self, n: int):
        self.row_limit = n
        return self

    def single(self):
        self.want_single = True
        return self

    # ── execution ────────────────────────────────────────
    def _project(self, row: dict) -> dict:
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        cols = [c.strip() for c in self.columns.split(",")]
        return {c: copy.deepcopy(row.get(c)) for c in cols}

    def _matching(self) -> list[dict]:
        rows = [r for r in self.db.tables.setdefault(self.table, []) if all(f(r) for f in self.filters)]
        # Postgres default: NULLs sort first on DESC, last on ASC
        for column, desc in reversed(self.orders):
            nulls = [r for r in rows if r.get(column) is None]
            present = sorted((r for r in rows if r.get(column) is not None), key=lambda r: r[column], reverse=desc)
            rows = nulls + present if desc else present + nulls
        if self.row_limit is not None:
            rows = rows[: self.row_limit]
        return rows

    def execute(self):
        self.db.calls.append((self.table, self.op))
        if self.table in self.db.failures:
            raise self.db.failures[self.table]

        if self.op == "insert":
            data = self._insert()
        elif self.op == "update":
            data = self._update()
        else:
            data = [self._project(r) for r in self._matching()]

        if self.want_single:
            if len(data) != 1:
                raise api_error(
                    "PGRST116",
                    "JSON object requested, multiple (or no) rows returned",
                )
            return SimpleNamespace(data=data[0])
        return SimpleNamespace(data=data)

    def _insert(self) -> list[dict]:
        rows = self.db.tables.setdefault(self.table, [])
        key = UNIQUE_KEYS.get(self.table)
        if key and any(r.get(key) == self.payload.get(key) for r in rows):
            raise api_error("23505", f'duplicate key value violates unique constraint "{self.table}_pkey"')

        row = dict(self.payload)
        if self.table == "device_commands":
            if not any(d["device_id"] == row["device_id"] for d in self.db.tables.get("devices", [])):
                raise api_error("23503", "insert or update on table \"device_commands\" violates foreign key constraint")
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("uid", None)
            row.setdefault("payload", None)
            row.setdefault("result", None)
            row.setdefault("acked_at", None)
            row.setdefault("created_at", self.db.next_timestamp())
        rows.append(row)
        return [copy.deepcopy(row)]

    def _update(self) -> list[dict]:
        updated = []
        for row in self._matching():
            row.update(self.payload)
            updated.append(copy.deepcopy(row))
        return updated


class FakeSupabase:
    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []
        self._clock = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def next_timestamp(self) -> str:
        # Strictly increasing so "newest first" ordering is deterministic.
        self._clock += 1
        return f"2025-01-01T00:00:{self._clock:02d}+00:00"

    def fail(self, table: str, code: str = "XX000", message: str = "boom") -> None:
        self.failures[table] = api_error(code, message)

    def ack(self, command_id: str, status: str = "DONE", result: str | None = None) -> None:
        """Play the firmware: move a command to a terminal status."""
        for row in self.tables["device_commands"]:
            if row["id"] == command_id:
                row.update({"status": status, "result": result, "acked_at": now_iso()})
                return
        raise KeyError(command_id)


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def settings() -> Settings:
    return Settings(SUPABASE_URL="http://localhost:54321", SUPABASE_KEY="test-anon-key")


@pytest.fixture
def app(fake_db, settings):
    from lockadmin.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_db] = lambda: fake_db
    fastapi_app.dependency_overrides[get_settings] = lambda: settings
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as c:
        yield c
