import logging
from uuid import UUID

from app.core import redis as redis_module
from app.core import security
from app.core.config import settings

logger = logging.getLogger(__name__)


class RefreshTokenStore:
    """Single-use refresh tokens.

    Only the SHA-256 of a token is kept in Redis, keyed to the user it was
    issued for. Consuming a token deletes it, so every refresh rotates.
    """

    @property
    def ttl_seconds(self) -> int:
        return settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60

    async def issue(self, user_id: UUID, email: str) -> str:
        """Create a refresh token for the user.

        If Redis is unreachable the token is still returned but will not be
        accepted by ``consume``, so the next refresh fails and the user signs in again.
        """
        token = security.create_refresh_token({"sub": str(user_id), "email": email})
        try:
            await redis_module.store_refresh_token(
                security.hash_token(token), str(user_id), self.ttl_seconds
            )
        except Exception:
            logger.warning("redis_unavailable_during_login", extra={"user_id": str(user_id)})
        return token

    async def consume(self, token: str) -> UUID | None:
        """Return the user id of a live token and revoke it, or None."""
        payload = security.decode_token(token)
        if payload is None or payload.get("type") != "refresh":
            return None

        token_hash = security.hash_token(token)
        stored = await redis_module.get_refresh_token(token_hash)
        if stored is None or stored.get("user_id") != payload.get("sub"):
            return None

        await redis_module.revoke_refresh_token(token_hash)
        try:
            return UUID(str(payload.get("sub")))
        except ValueError:
            logger.warning("Refresh token with malformed subject was presented")
            return None

    async def revoke(self, token: str) -> None:
        await redis_module.revoke_refresh_token(security.hash_token(token))


refresh_tokens = RefreshTokenStore()
