from types import SimpleNamespace

import pytest

from homevault.core import backend as backend_module
from homevault.core.backend import BackendClient

pytestmark = pytest.mark.anyio


class FakePart:
    def __init__(self):
        self.closed = False

    async def aclose(self):
        self.closed = True


class FakeAuth:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True

    async def sign_in_with_password(self, credentials):
        user = SimpleNamespace(id="u1", email=credentials["email"])
        session = SimpleNamespace(access_token="at", refresh_token="rt", expires_in=3600, user=user)
        return SimpleNamespace(session=session, user=user)


class FakeSdkClient:
    def __init__(self, headers):
        self.headers = headers
        self.auth = FakeAuth()
        self._postgrest = FakePart()
        self._storage = None

    @property
    def closed(self):
        return self.auth.closed and self._postgrest.closed


@pytest.fixture
def opened(monkeypatch):
    clients = []

    async def fake_create(url, key, options=None):
        client = FakeSdkClient(dict(options.headers))
        clients.append(client)
        return client

    monkeypatch.setattr(backend_module, "acreate_client", fake_create)
    return clients


@pytest.fixture
def backend_client():
    return BackendClient("https://example.supabase.co", "anon-key", "documents")


class TestClientReuse:
    async def test_same_token_reuses_one_client(self, backend_client, opened):
        first = await backend_client._client("t1")
        second = await backend_client._client("t1")
        assert first is second
        assert len(opened) == 1
        assert first.headers["Authorization"] == "Bearer t1"

    async def test_each_token_gets_its_own_client(self, backend_client, opened):
        a = await backend_client._client("t1")
        b = await backend_client._client("t2")
        assert a is not b
        assert b.headers["Authorization"] == "Bearer t2"

    async def test_anonymous_client_is_shared(self, backend_client, opened):
        a = await backend_client._client()
        b = await backend_client._client()
        assert a is b
        assert "Authorization" not in a.headers


class TestClientClosing:
    async def test_eviction_closes_least_recently_used(self, backend_client, opened, monkeypatch):
        monkeypatch.setattr(backend_module, "_CLIENT_CACHE_SIZE", 2)
        await backend_client._client("t1")
        await backend_client._client("t2")
        await backend_client._client("t1")
        await backend_client._client("t3")
        t1, t2, t3 = opened
        assert t2.closed
        assert not t1.closed and not t3.closed

    async def test_forget_closes_and_reopens_later(self, backend_client, opened):
        first = await backend_client._client("t1")
        await backend_client.forget("t1")
        assert first.closed
        assert await backend_client._client("t1") is not first

    async def test_sign_in_client_closed_after_call(self, backend_client, opened):
        session = await backend_client.sign_in("olivia@example.com", "hunter22")
        assert session.access_token == "at"
        assert len(opened) == 1
        assert opened[0].closed

    async def test_aclose_closes_everything(self, backend_client, opened):
        await backend_client._client()
        await backend_client._client("t1")
        await backend_client.aclose()
        assert all(c.closed for c in opened)
