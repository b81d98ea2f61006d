"""
Shared fixtures: an in-memory stand-in for the Supabase backend, a dict
backed Redis, and a TestClient wired to both through dependency overrides.
"""
import itertools
import time
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from homevault.core import redis as redis_module
from homevault.core.backend import AuthSession, AuthUser, BackendClient, BackendError, get_backend
from homevault.core.events import EventBus, get_event_bus
from homevault.core.ratelimit import limiter
from homevault.main import app
from homevault.services import documents as document_service
from homevault.services.dashboard import DashboardStore, get_dashboard_store

_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeBackend:
    """Same async surface as BackendClient, state kept in dicts.

    ``calls`` records every method invoked; ``fail_on`` maps a method name
    to the message it should raise as BackendError.
    ``max_rows`` caps one select the way PostgREST does.
    """

    def __init__(self):
        self.accounts: dict[str, tuple[str, AuthUser]] = {}
        self.sessions: dict[str, str] = {}      # access token -> user id
        self.refresh_tokens: dict[str, str] = {}
        self.tables: dict[str, list[dict]] = {
            "house_owners": [],
            "properties": [],
            "documents": [],
        }
        self.blobs: dict[str, bytes] = {}
        self.calls: list[str] = []
        self.fail_on: dict[str, str] = {}
        self.require_confirmation = False
        self.max_rows: int | None = None
        self._clock = itertools.count(1)

    # ── helpers ──────────────────────────────────────────────────────────────

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise BackendError(self.fail_on[name])

    def _timestamp(self) -> str:
        return (_EPOCH + timedelta(seconds=next(self._clock))).isoformat()

    def _issue(self, user: AuthUser) -> AuthSession:
        access, refresh = f"at-{uuid.uuid4()}", f"rt-{uuid.uuid4()}"
        self.sessions[access] = user.id
        self.refresh_tokens[refresh] = user.id
        return AuthSession(access_token=access, refresh_token=refresh, expires_in=3600, user=user)

    def _user(self, user_id: str) -> AuthUser:
        return next(u for _, u in self.accounts.values() if u.id == user_id)

    def add_account(self, email: str, password: str, full_name: str = "Test Owner",
                    verification_status: str = "pending") -> AuthUser:
        user = AuthUser(id=str(uuid.uuid4()), email=email)
        self.accounts[email] = (password, user)
        now = self._timestamp()
        self.tables["house_owners"].append({
            "id": user.id,
            "full_name": full_name,
            "phone": None,
            "verification_status": verification_status,
            "created_at": now,
            "updated_at": now,
        })
        return user

    def token_for(self, user: AuthUser) -> str:
        return self._issue(user).access_token

    def rows(self, table: str, **eq) -> list[dict]:
        return [r for r in self.tables[table] if all(str(r.get(k)) == str(v) for k, v in eq.items())]

    # ── auth ─────────────────────────────────────────────────────────────────

    async def sign_in(self, email, password):
        self._call("sign_in")
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise BackendError("Invalid login credentials")
        return self._issue(account[1])

    async def sign_up(self, email, password, full_name, phone=None):
        self._call("sign_up")
        if email in self.accounts:
            raise BackendError("User already registered")
        user = self.add_account(email, password, full_name)
        if self.require_confirmation:
            return user, None
        return user, self._issue(user)

    async def sign_out(self, access_token):
        self._call("sign_out")
        user_id = self.sessions.get(access_token)
        # Like the real service: refresh tokens die, the access JWT lives on
        self.refresh_tokens = {t: u for t, u in self.refresh_tokens.items() if u != user_id}

    async def refresh(self, refresh_token):
        self._call("refresh")
        user_id = self.refresh_tokens.pop(refresh_token, None)
        if user_id is None:
            raise BackendError("Invalid Refresh Token")
        return self._issue(self._user(user_id))

    async def get_user(self, access_token):
        self._call("get_user")
        user_id = self.sessions.get(access_token)
        if user_id is None:
            raise BackendError("invalid JWT")
        return self._user(user_id)

    # ── tables ───────────────────────────────────────────────────────────────

    async def select(self, table, access_token, *, eq=None, gt=None, order_by=None,
                     descending=False, columns="*", limit=None):
        self._call(f"select:{table}")
        rows = self.rows(table, **(eq or {}))
        for k, v in (gt or {}).items():
            rows = [r for r in rows if str(r[k]) > str(v)]
        if order_by:
            rows = sorted(rows, key=lambda r: r[order_by], reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        if self.max_rows is not None:
            rows = rows[:self.max_rows]
        if columns != "*":
            keys = [c.strip() for c in columns.split(",")]
            rows = [{k: r.get(k) for k in keys} for r in rows]
        return [dict(r) for r in rows]

    select_all = BackendClient.select_all

    async def insert(self, table, access_token, row):
        self._call(f"insert:{table}")
        now = self._timestamp()
        stored = {"id": str(uuid.uuid4()), **row}
        if table == "documents":
            stored.setdefault("uploaded_at", now)
        else:
            stored.setdefault("created_at", now)
            stored.setdefault("updated_at", now)
        self.tables[table].append(stored)
        return dict(stored)

    async def delete(self, table, access_token, *, eq):
        self._call(f"delete:{table}")
        doomed = self.rows(table, **eq)
        self.tables[table] = [r for r in self.tables[table] if r not in doomed]

    # ── storage ──────────────────────────────────────────────────────────────

    async def upload(self, access_token, path, data, content_type):
        self._call("upload")
        if path in self.blobs:
            raise BackendError("The resource already exists")
        self.blobs[path] = data

    async def download(self, access_token, path):
        self._call("download")
        if path not in self.blobs:
            raise BackendError("Object not found")
        return self.blobs[path]

    async def remove(self, access_token, paths):
        self._call("remove")
        for p in paths:
            self.blobs.pop(p, None)

    async def list_objects(self, access_token, prefix):
        self._call("list_objects")
        prefix = prefix.rstrip("/") + "/"
        return [p for p in self.blobs if p.startswith(prefix) and "/" not in p[len(prefix):]]

    async def ping(self):
        self._call("ping")


class FakeRedis:
    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def setex(self, key, ttl, value):
        self.ttls[key] = ttl
        self.data[key] = str(value)

    async def exists(self, key):
        return 1 if key in self.data else 0

    async def incr(self, key):
        self.data[key] = str(int(self.data.get(key, "0")) + 1)
        return int(self.data[key])

    async def expire(self, key, ttl):
        return key in self.data

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, key):
        self.data.pop(key, None)


# ── fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store(bus):
    s = DashboardStore(bus)
    yield s
    s.close()


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    r = FakeRedis()
    monkeypatch.setattr(redis_module, "_redis", r)
    return r


@pytest.fixture(autouse=True)
def ticking_clock(monkeypatch):
    """Distinct millisecond timestamps for storage paths within one test."""
    ticks = itertools.count(int(time.time() * 1000))
    monkeypatch.setattr(document_service, "_now_ms", lambda: next(ticks))


@pytest.fixture
def client(backend, bus, store):
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_event_bus] = lambda: bus
    app.dependency_overrides[get_dashboard_store] = lambda: store
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def owner(backend):
    return backend.add_account("olivia@example.com", "hunter22", full_name="Olivia Owner")


@pytest.fixture
def signed_in(client, owner):
    resp = client.post(
        "/api/v1/auth/sign-in",
        json={"email": "olivia@example.com", "password": "hunter22"},
    )
    assert resp.status_code == 200
    return owner


def add_property(client, name="Sunset Villa", address="1 Ocean Drive", property_type="house"):
    resp = client.post(
        "/api/v1/properties/",
        json={"property_name": name, "address": address, "property_type": property_type},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["property"]


def upload(client, name="lease.pdf", content=b"%PDF-1.7 lease", **form):
    return client.post(
        "/api/v1/documents/",
        files={"file": (name, content, "application/pdf")},
        data=form,
    )


@pytest.fixture
def api():
    """Request helpers shared by the router tests."""
    class _Api:
        add_property = staticmethod(add_property)
        upload = staticmethod(upload)
    return _Api
