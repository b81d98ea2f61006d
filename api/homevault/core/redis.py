import hashlib

import redis.asyncio as aioredis

from homevault.core.config import settings

# Shared async Redis client (created once at import time, reused across requests)
_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.redis_url, decode_responses=True)
    return _redis


# ─── Signed-out sessions ───────────────────────────────────────────────────────
# Backend access tokens stay valid until they expire, so a signed-out token is
# remembered here for the rest of its lifetime.

_REVOKED_PREFIX = "at_revoked:"


def _token_key(token: str) -> str:
    return _REVOKED_PREFIX + hashlib.sha256(token.encode()).hexdigest()


async def revoke_token(token: str, ttl_seconds: int) -> None:
    """Reject this access token for its remaining lifetime."""
    if ttl_seconds > 0:
        await get_redis().setex(_token_key(token), ttl_seconds, "1")


async def is_revoked(token: str) -> bool:
    return await get_redis().exists(_token_key(token)) == 1


# ─── Sign-in lockout ───────────────────────────────────────────────────────────

_FAIL_PREFIX = "signin_fails:"
_LOCKOUT_SECONDS = 15 * 60   # 15-minute lockout window
_MAX_ATTEMPTS = 5            # failures before lockout triggers


async def record_signin_failure(email: str) -> int:
    """Increment failure counter; set TTL on first failure. Returns new count."""
    r = get_redis()
    key = f"{_FAIL_PREFIX}{email.lower()}"
    count = await r.incr(key)
    if count == 1:
        await r.expire(key, _LOCKOUT_SECONDS)
    return count


async def is_locked_out(email: str) -> bool:
    count = await get_redis().get(f"{_FAIL_PREFIX}{email.lower()}")
    return int(count) >= _MAX_ATTEMPTS if count else False


async def clear_signin_failures(email: str) -> None:
    await get_redis().delete(f"{_FAIL_PREFIX}{email.lower()}")
