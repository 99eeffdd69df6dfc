"""
Pytest configuration and shared fixtures.

The Supabase client is swapped for an in-memory fake through
app.dependency_overrides, so no test touches the network.
"""

import os
import time
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

# must be set before app.config is imported
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

from app.auth import issue_token
from app.deps import get_optional_supabase, get_supabase
from app.main import app
from app.models import SessionUser


class FakeAuthError(Exception):
    def __init__(self, message, status=400):
        super().__init__(message)
        self.status = status


class FakeQuery:
    """Just enough of the postgrest query builder for the app."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.count = None
        self.order_by = None
        self.max_rows = None

    def select(self, *columns, count=None):
        self.count = count
        return self

    def insert(self, rows):
        self.op, self.payload = "insert", rows
        return self

    def upsert(self, rows):
        self.op, self.payload = "upsert", rows
        return self

    def update(self, changes):
        self.op, self.payload = "update", changes
        return self

    def eq(self, field, value):
        self.filters.append(lambda r: r.get(field) == value)
        return self

    def ilike(self, field, pattern):
        needle = pattern.strip("%").lower()
        self.filters.append(lambda r: needle in (r.get(field) or "").lower())
        return self

    def gte(self, field, value):
        self.filters.append(lambda r: r.get(field) is not None and r.get(field) >= value)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def _matching(self):
        return [r for r in self.db.tables.setdefault(self.table, []) if all(f(r) for f in self.filters)]

    def execute(self):
        self.db.calls.append((self.table, self.op))
        if self.op in self.db.fail_ops or self.table in self.db.fail_tables:
            raise Exception("permission denied")

        rows = self.db.tables.setdefault(self.table, [])
        if self.op in ("insert", "upsert"):
            new = self.payload if isinstance(self.payload, list) else [self.payload]
            out = []
            for row in new:
                row = dict(row)
                row.setdefault("id", f"{self.table}-{len(rows) + 1}")
                rows[:] = [r for r in rows if r.get("id") != row["id"]]
                rows.append(row)
                out.append(dict(row))
            return SimpleNamespace(data=out, count=None)

        if self.op == "update":
            out = []
            for r in self._matching():
                r.update(self.payload)
                out.append(dict(r))
            return SimpleNamespace(data=out, count=None)

        data = [dict(r) for r in self._matching()]
        if self.order_by:
            column, desc = self.order_by
            data.sort(key=lambda r: r.get(column) or "", reverse=desc)
        if self.max_rows is not None:
            data = data[: self.max_rows]
        return SimpleNamespace(data=data, count=len(data) if self.count else None)


class FakeAuth:
    def __init__(self):
        self.users = {}
        self.delay = 0
        self.error = None
        self.admin = SimpleNamespace(sign_out=self._admin_sign_out)
        self.signed_out = []
        self.sign_out_error = None

    def add_user(self, email, password, user_id, app_metadata=None):
        self.users[email] = (password, user_id, app_metadata or {})

    def sign_in_with_password(self, credentials):
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        email, password = credentials["email"], credentials["password"]
        entry = self.users.get(email)
        if not entry or entry[0] != password:
            raise FakeAuthError("Invalid login credentials", status=400)
        user = SimpleNamespace(id=entry[1], email=email, app_metadata=entry[2])
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=f"provider-{entry[1]}"))

    def _admin_sign_out(self, jwt, scope="global"):
        if self.sign_out_error:
            raise self.sign_out_error
        self.signed_out.append(jwt)


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def upload(self, path, content, file_options=None):
        if self.storage.fail:
            raise Exception("storage unavailable")
        self.storage.files[f"{self.name}/{path}"] = content

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.files = {}
        self.fail = False

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.fail_ops = set()
        self.fail_tables = set()
        self.auth = FakeAuth()
        self.storage = FakeStorage()

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def fake_sb():
    return FakeSupabase()


@pytest.fixture
def client(fake_sb):
    app.dependency_overrides[get_supabase] = lambda: fake_sb
    app.dependency_overrides[get_optional_supabase] = lambda: fake_sb
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user():
    return SessionUser(user_id="admin-1", email="admin@example.com", role="admin", mode="remote")


@pytest.fixture
def plain_user():
    return SessionUser(user_id="user-1", email="user@example.com", role="user", mode="remote")


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {issue_token(admin_user)}"}


@pytest.fixture
def user_headers(plain_user):
    return {"Authorization": f"Bearer {issue_token(plain_user)}"}


@pytest.fixture
def service_payload():
    return {
        "client_name": "Maria Souza",
        "phone": "(11)98765-4321",
        "address": "Rua das Flores, 12",
        "service_type": "repair",
        "due_date": "2026-11-03",
        "budget": 350.0,
    }
