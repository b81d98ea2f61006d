"""
Backend client — the only module that talks to Supabase.

Auth, tables and object storage all go through the Supabase Python SDK.
The process holds one BackendClient, which owns every SDK client it opens:

  * one anonymous client for stateless calls (token lookup, admin sign-out,
    the health ping);
  * one client per access token for table and storage calls, so the
    backend's row-level policies apply to the real user.  These are kept in
    a bounded LRU cache and closed on eviction, at sign-out and at shutdown;
  * a throwaway client for sign-in, sign-up and refresh, closed as soon as
    the call returns.  Those calls store a session inside the SDK client, so
    they never run on a shared one.

Every SDK or transport failure is re-raised as BackendError carrying the
backend's message string.
"""
import asyncio
import logging
from collections import OrderedDict
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Iterator

import httpx
from supabase import (
    AsyncClient,
    AuthError,
    PostgrestAPIError,
    StorageException,
    acreate_client,
)
from supabase.lib.client_options import AsyncClientOptions

from homevault.core.config import settings

logger = logging.getLogger(__name__)

_SDK_ERRORS = (AuthError, PostgrestAPIError, StorageException, httpx.HTTPError)

_LIST_PAGE_SIZE = 100
_SELECT_PAGE_SIZE = 1000   # PostgREST default max-rows
_CLIENT_CACHE_SIZE = 256   # live per-token SDK clients


class BackendError(Exception):
    """A backend call failed. ``message`` is shown to the user as-is."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str | None = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str
    expires_in: int
    user: AuthUser


def _error_message(exc: Exception) -> str | None:
    # Auth and PostgREST errors carry .message; storage errors carry the
    # response body as their first argument
    if hasattr(exc, "message"):
        return exc.message or None
    if not exc.args:
        return None
    first = exc.args[0]
    if isinstance(first, dict):
        return first.get("message") or first.get("error")
    return str(first) or None


@contextmanager
def backend_errors(fallback: str) -> Iterator[None]:
    try:
        yield
    except _SDK_ERRORS as exc:
        raise BackendError(_error_message(exc) or fallback) from exc


def _to_user(user: Any) -> AuthUser:
    return AuthUser(id=str(user.id), email=getattr(user, "email", None))


def _to_session(session: Any, user: Any = None) -> AuthSession:
    return AuthSession(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=int(session.expires_in or 0),
        user=_to_user(user or session.user),
    )


async def _close_client(client: AsyncClient) -> None:
    """Release the HTTP connections held by one SDK client."""
    # The table and storage sub-clients are created on first use
    parts = [getattr(client, "_postgrest", None), getattr(client, "_storage", None)]
    try:
        await client.auth.close()
        for part in parts:
            if part is not None:
                await part.aclose()
    except httpx.HTTPError as exc:
        logger.warning("Closing backend client failed: %s", exc)


class BackendClient:
    def __init__(self, url: str, anon_key: str, bucket: str):
        self.url = url
        self.anon_key = anon_key
        self.bucket = bucket
        self._anon: AsyncClient | None = None
        self._clients: OrderedDict[str, AsyncClient] = OrderedDict()

    async def _create(self, access_token: str | None = None) -> AsyncClient:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        options = AsyncClientOptions(
            headers=headers,
            persist_session=False,
            auto_refresh_token=False,
        )
        return await acreate_client(self.url, self.anon_key, options=options)

    async def _client(self, access_token: str | None = None) -> AsyncClient:
        """The long-lived SDK client for ``access_token`` (anonymous if None)."""
        if access_token is None:
            if self._anon is None:
                self._anon = await self._create()
            return self._anon

        client = self._clients.get(access_token)
        if client is not None:
            self._clients.move_to_end(access_token)
            return client

        client = await self._create(access_token)
        # Another request for the same token may have won the race
        if access_token in self._clients:
            await _close_client(client)
            return self._clients[access_token]
        self._clients[access_token] = client
        while len(self._clients) > _CLIENT_CACHE_SIZE:
            _, evicted = self._clients.popitem(last=False)
            await _close_client(evicted)
        return client

    @asynccontextmanager
    async def _throwaway(self) -> AsyncIterator[AsyncClient]:
        client = await self._create()
        try:
            yield client
        finally:
            await _close_client(client)

    async def forget(self, access_token: str) -> None:
        """Close the client held for ``access_token``, if any."""
        client = self._clients.pop(access_token, None)
        if client is not None:
            await _close_client(client)

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        if self._anon is not None:
            clients.append(self._anon)
            self._anon = None
        await asyncio.gather(*(_close_client(c) for c in clients))

    # ─── Auth ──────────────────────────────────────────────

    async def sign_in(self, email: str, password: str) -> AuthSession:
        async with self._throwaway() as client:
            with backend_errors("Failed to sign in"):
                res = await client.auth.sign_in_with_password(
                    {"email": email, "password": password}
                )
        if res.session is None:
            raise BackendError("Failed to sign in")
        return _to_session(res.session, res.user)

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        phone: str | None = None,
    ) -> tuple[AuthUser, AuthSession | None]:
        """Create the account.  The session is None when the backend holds
        it back until the email address is confirmed.

        ``full_name`` and ``phone`` travel as user metadata; the backend
        creates the ``house_owners`` row from them.
        """
        profile = {"full_name": full_name}
        if phone:
            profile["phone"] = phone
        async with self._throwaway() as client:
            with backend_errors("Failed to sign up"):
                res = await client.auth.sign_up(
                    {"email": email, "password": password, "options": {"data": profile}}
                )
        if res.user is None:
            raise BackendError("Failed to sign up")
        user = _to_user(res.user)
        if res.session is None:
            return user, None
        return user, _to_session(res.session, res.user)

    async def sign_out(self, access_token: str) -> None:
        client = await self._client()
        try:
            with backend_errors("Failed to sign out"):
                await client.auth.admin.sign_out(access_token)
        finally:
            await self.forget(access_token)

    async def refresh(self, refresh_token: str) -> AuthSession:
        async with self._throwaway() as client:
            with backend_errors("Session expired"):
                res = await client.auth.refresh_session(refresh_token)
        if res.session is None:
            raise BackendError("Session expired")
        return _to_session(res.session, res.user)

    async def get_user(self, access_token: str) -> AuthUser:
        client = await self._client()
        with backend_errors("Not authenticated"):
            res = await client.auth.get_user(access_token)
        if res is None or res.user is None:
            raise BackendError("Not authenticated")
        return _to_user(res.user)

    # ─── Tables ────────────────────────────────────────────

    async def select(
        self,
        table: str,
        access_token: str | None,
        *,
        eq: dict[str, Any] | None = None,
        gt: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        columns: str = "*",
        limit: int | None = None,
    ) -> list[dict]:
        """One page of rows; the server may cap it below ``limit``."""
        client = await self._client(access_token)
        query = client.table(table).select(columns)
        for column, value in (eq or {}).items():
            query = query.eq(column, value)
        for column, value in (gt or {}).items():
            query = query.gt(column, value)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.limit(limit)
        with backend_errors(f"Failed to load {table}"):
            res = await query.execute()
        return res.data or []

    async def select_all(
        self,
        table: str,
        access_token: str | None,
        *,
        eq: dict[str, Any] | None = None,
        columns: str = "*",
        key: str = "id",
    ) -> list[dict]:
        """Every matching row, walked in ``key`` order one page at a time.

        ``columns`` must include ``key``.  Paging continues until an empty
        page, so a server row cap smaller than the page size is harmless.
        """
        rows: list[dict] = []
        while True:
            page = await self.select(
                table,
                access_token,
                eq=eq,
                gt={key: rows[-1][key]} if rows else None,
                order_by=key,
                columns=columns,
                limit=_SELECT_PAGE_SIZE,
            )
            if not page:
                return rows
            rows.extend(page)

    async def insert(self, table: str, access_token: str, row: dict) -> dict:
        client = await self._client(access_token)
        with backend_errors(f"Failed to insert into {table}"):
            res = await client.table(table).insert(row).execute()
        if not res.data:
            raise BackendError(f"Failed to insert into {table}")
        return res.data[0]

    async def delete(self, table: str, access_token: str, *, eq: dict[str, Any]) -> None:
        if not eq:
            raise ValueError("delete requires at least one equality filter")
        client = await self._client(access_token)
        query = client.table(table).delete()
        for column, value in eq.items():
            query = query.eq(column, value)
        with backend_errors(f"Failed to delete from {table}"):
            await query.execute()

    # ─── Object storage ────────────────────────────────────

    async def upload(self, access_token: str, path: str, data: bytes, content_type: str) -> None:
        client = await self._client(access_token)
        with backend_errors("Failed to upload file"):
            await client.storage.from_(self.bucket).upload(
                path, data, {"content-type": content_type}
            )

    async def download(self, access_token: str, path: str) -> bytes:
        client = await self._client(access_token)
        with backend_errors("Failed to download file"):
            return await client.storage.from_(self.bucket).download(path)

    async def remove(self, access_token: str, paths: list[str]) -> None:
        client = await self._client(access_token)
        with backend_errors("Failed to remove file"):
            await client.storage.from_(self.bucket).remove(paths)

    async def list_objects(self, access_token: str, prefix: str) -> list[str]:
        """Full paths of every object directly under ``prefix``."""
        client = await self._client(access_token)
        bucket = client.storage.from_(self.bucket)
        prefix = prefix.rstrip("/")
        paths: list[str] = []
        offset = 0
        while True:
            with backend_errors("Failed to list files"):
                page = await bucket.list(prefix, {"limit": _LIST_PAGE_SIZE, "offset": offset})
            # Folders come back with a null id
            paths.extend(f"{prefix}/{obj['name']}" for obj in page if obj.get("id"))
            if len(page) < _LIST_PAGE_SIZE:
                return paths
            offset += _LIST_PAGE_SIZE

    async def ping(self) -> None:
        await self.select("house_owners", None, columns="id", limit=1)


# Shared client (created once, reused across requests, closed at shutdown)
_backend: BackendClient | None = None


def get_backend() -> BackendClient:
    global _backend
    if _backend is None:
        _backend = BackendClient(
            settings.supabase_url,
            settings.supabase_anon_key,
            settings.storage_bucket,
        )
        logger.info("Backend client configured for %s (bucket=%s)", settings.supabase_url, settings.storage_bucket)
    return _backend


async def close_backend() -> None:
    global _backend
    if _backend is not None:
        await _backend.aclose()
        _backend = None
