import copy
import os
import sys
import uuid
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["SYNC_ENABLED"] = "false"
for _name in ("AIRTABLE_API_KEY", "AIRTABLE_SUBSCRIBERS_BASE_ID", "SUPABASE_URL", "SUPABASE_SERVICE_KEY", "SUPABASE_KEY"):
    os.environ.pop(_name, None)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _Response:
    def __init__(self, data):
        self.data = data


class _Query:
    """Minimal stand-in for the postgrest query builder"""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.columns = "*"
        self.filters = []
        self.order_by = None
        self.desc = False
        self.limit_n = None
        self.bounds = None

    def select(self, columns="*"):
        self.op, self.columns = "select", columns
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = set(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by, self.desc = column, desc
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def range(self, start, end):
        self.bounds = (start, end)
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.op))
        rows = self.db.tables.setdefault(self.table, [])
        matched = [row for row in rows if self._matches(row)]

        for table, op, predicate in self.db.failures:
            if table == self.table and op == self.op:
                if predicate is None or any(predicate(row) for row in matched):
                    raise RuntimeError(f"{op} on {table} failed")

        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in payload:
                row = {"id": str(uuid.uuid4()), **copy.deepcopy(item)}
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return _Response(inserted)

        if self.op == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return _Response(copy.deepcopy(matched))

        if self.op == "delete":
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return _Response(copy.deepcopy(matched))

        if self.order_by:
            matched = sorted(matched, key=lambda r: r.get(self.order_by) or "", reverse=self.desc)
        if self.bounds:
            matched = matched[self.bounds[0]:self.bounds[1] + 1]
        if self.limit_n is not None:
            matched = matched[:self.limit_n]
        if self.columns != "*":
            keep = [c.strip() for c in self.columns.split(",")]
            matched = [{k: row.get(k) for k in keep} for row in matched]
        return _Response(copy.deepcopy(matched))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.failures = []

    def table(self, name):
        return _Query(self, name)

    def fail_when(self, table, op, predicate=None):
        self.failures.append((table, op, predicate))

    def writes(self):
        return [call for call in self.calls if call[1] in ("insert", "update", "delete")]


@pytest.fixture
def fake_supabase():
    return FakeSupabase()
