"""
Pytest configuration for intake tests.

This file adds the parent directory to the Python path so that tests
can import from the domain, repositories, services and api modules, and
provides an in-memory stand-in for the Supabase client.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

# Add the project root directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from repositories.client import set_supabase  # noqa: E402


@dataclass
class FakeResponse:
    data: List[Dict[str, Any]]
    error: Optional[str] = None


class FakeQuery:
    """Chainable subset of the postgrest query builder used by the repositories."""

    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Optional[Dict[str, Any]] = None
        self._filters: List[Tuple[str, Any]] = []
        self._orders: List[Tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._columns = "*"

    def select(self, columns: str = "*") -> "FakeQuery":
        self._op = "select"
        self._columns = columns
        return self

    def insert(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._op = "insert"
        self._payload = dict(payload)
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = dict(payload)
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def _matches(self, row: Dict[str, Any]) -> bool:
        return all(row.get(column) == value for column, value in self._filters)

    def execute(self) -> FakeResponse:
        self._db.calls.append((self._table, self._op))
        if (self._table, self._op) in self._db.failures:
            return FakeResponse(data=[], error=f"simulated {self._op} failure on {self._table}")

        rows = self._db.tables.setdefault(self._table, [])

        if self._op == "insert":
            assert self._payload is not None
            rows.append(dict(self._payload))
            return FakeResponse(data=[dict(self._payload)])

        if self._op == "update":
            assert self._payload is not None
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(dict(row))
            return FakeResponse(data=updated)

        selected = [dict(row) for row in rows if self._matches(row)]
        # Apply the last key first so earlier order() calls take precedence.
        for column, desc in reversed(self._orders):
            selected.sort(key=lambda row: row.get(column), reverse=desc)
        if self._limit is not None:
            selected = selected[: self._limit]
        if self._columns != "*":
            keep = [c.strip() for c in self._columns.split(",")]
            selected = [{c: row.get(c) for c in keep} for row in selected]
        return FakeResponse(data=selected)


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self._storage = storage
        self._name = name

    def upload(self, path: str, file: bytes, file_options: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        if self._storage.fail_uploads:
            raise RuntimeError("simulated storage outage")
        key = (self._name, path)
        if key in self._storage.objects:
            raise RuntimeError("The resource already exists")
        self._storage.objects[key] = bytes(file)
        self._storage.options[key] = dict(file_options or {})
        return {"Key": f"{self._name}/{path}"}

    def create_signed_url(self, path: str, expires_in: int) -> Dict[str, str]:
        if self._storage.fail_signing:
            raise RuntimeError("simulated signing failure")
        return {"signedURL": f"https://storage.test/{self._name}/{path}?token=t&expires={expires_in}"}

    def list(self, prefix: str) -> List[Dict[str, str]]:
        return [
            {"name": path.rsplit("/", 1)[-1]}
            for (bucket, path) in self._storage.objects
            if bucket == self._name and path.startswith(prefix)
        ]


class FakeStorage:
    def __init__(self) -> None:
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.options: Dict[Tuple[str, str], Dict[str, str]] = {}
        self.fail_uploads = False
        self.fail_signing = False

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeSupabase:
    """
    In-memory tables plus storage.

    `fail(table, op)` makes every later `op` ("insert", "select", "update") on
    `table` return an error response.
    """

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Set[Tuple[str, str]] = set()
        self.calls: List[Tuple[str, str]] = []
        self.storage = FakeStorage()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail(self, table: str, op: str) -> None:
        self.failures.add((table, op))

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])


@pytest.fixture
def fake_supabase():
    fake = FakeSupabase()
    set_supabase(fake)  # type: ignore[arg-type]
    yield fake
    set_supabase(None)


def valid_intake_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "lang": "FR",
        "pest_category": "insects",
        "pest_detail": "punaises de lit",
        "urgency": "IMMEDIATE",
        "postal_code": "1000",
        "city": "Bruxelles",
        "description": "Piqures la nuit depuis une semaine, chambre principale.",
        "contact_method": "WHATSAPP",
        "phone": "+32470123456",
        "hp": "",
    }
    payload.update(overrides)
    return payload
