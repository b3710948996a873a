"""Process-wide Redis client and the small key-value stores kept in it.

The client is created in the application lifespan. Refresh-token helpers
raise when it is missing; identity-cache helpers silently do nothing, since
the cache is only an optimisation over the database.
"""

import json
from typing import Any

from redis.asyncio import Redis

from app.core.datetime_utils import utc_now

redis_client: Redis | None = None

REFRESH_TOKEN_PREFIX = "refresh_token"
IDENTITY_PREFIX = "identity"


async def get_redis() -> Redis:
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized")
    return redis_client


def refresh_token_key(token_hash: str) -> str:
    return f"{REFRESH_TOKEN_PREFIX}:{token_hash}"


def identity_cache_key(user_id: str) -> str:
    return f"{IDENTITY_PREFIX}:{user_id}"


async def store_refresh_token(token_hash: str, user_id: str, ttl_seconds: int) -> None:
    client = await get_redis()
    record = {"user_id": user_id, "created_at": utc_now().isoformat()}
    await client.setex(refresh_token_key(token_hash), ttl_seconds, json.dumps(record))


async def get_refresh_token(token_hash: str) -> dict[str, Any] | None:
    """The stored record (``user_id``, ``created_at``) or None once revoked or expired."""
    client = await get_redis()
    raw = await client.get(refresh_token_key(token_hash))
    if not raw:
        return None
    record: dict[str, Any] = json.loads(raw)
    return record


async def revoke_refresh_token(token_hash: str) -> None:
    client = await get_redis()
    await client.delete(refresh_token_key(token_hash))


async def get_cached_identity(user_id: str) -> str | None:
    if redis_client is None:
        return None
    cached: str | None = await redis_client.get(identity_cache_key(user_id))
    return cached


async def cache_identity(user_id: str, payload: str, ttl_seconds: int) -> None:
    if redis_client is not None:
        await redis_client.setex(identity_cache_key(user_id), ttl_seconds, payload)


async def invalidate_identity(user_id: str) -> None:
    """Forget the cached identity so the next request re-reads profile and role."""
    if redis_client is not None:
        await redis_client.delete(identity_cache_key(user_id))
