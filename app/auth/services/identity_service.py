import logging
from uuid import UUID

import pydantic
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.auth.models.user import Profile, UserRole
from app.auth.schemas.identity import Identity
from app.core import redis as redis_module
from app.core import security
from app.core.config import settings
from app.core.exceptions import ProfileMissingError, UnauthorizedError

logger = logging.getLogger(__name__)


class IdentityService:
    """Maps a session token to the acting user's identity.

    Storage is the source of truth; Redis only shortens the path between two
    requests of the same user. Entries are dropped on sign-out and whenever the
    user's role grant changes.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    async def resolve(self, session_token: str | None) -> Identity:
        user_id = self._user_id_from_token(session_token)

        cached = await self._read_cache(user_id)
        if cached is not None:
            return cached

        identity = await run_in_threadpool(self.load_identity, user_id)
        await self._write_cache(identity)
        return identity

    def load_identity(self, user_id: UUID) -> Identity:
        row = (
            self.db.query(Profile, UserRole)
            .outerjoin(UserRole, UserRole.user_id == Profile.id)
            .filter(Profile.id == user_id)
            .first()
        )
        if row is None:
            raise ProfileMissingError()

        profile, grant = row
        if grant is None:
            raise ProfileMissingError("No role is granted to this account")

        try:
            return Identity(
                user_id=profile.id,
                role=grant.role,
                university=profile.university,
                is_verified=grant.is_verified,
            )
        except pydantic.ValidationError as exc:
            logger.error("Unusable role grant for user %s: %s", user_id, exc)
            raise ProfileMissingError("The role granted to this account is invalid") from exc

    @staticmethod
    async def invalidate(user_id: UUID) -> None:
        try:
            await redis_module.invalidate_identity(str(user_id))
        except Exception:
            logger.warning("Failed to invalidate cached identity for user %s", user_id)

    @staticmethod
    def _user_id_from_token(session_token: str | None) -> UUID:
        if not session_token:
            raise UnauthorizedError()

        payload = security.decode_token(session_token)
        if payload is None or payload.get("type") != "access":
            raise UnauthorizedError("Session is invalid or has expired")

        try:
            return UUID(str(payload.get("sub")))
        except ValueError as exc:
            raise UnauthorizedError("Session is invalid or has expired") from exc

    @staticmethod
    async def _read_cache(user_id: UUID) -> Identity | None:
        try:
            cached = await redis_module.get_cached_identity(str(user_id))
            if cached is not None:
                return Identity.model_validate_json(cached)
        except Exception:
            logger.warning("Identity cache read failed for user %s", user_id)
        return None

    @staticmethod
    async def _write_cache(identity: Identity) -> None:
        try:
            await redis_module.cache_identity(
                str(identity.user_id),
                identity.model_dump_json(),
                settings.IDENTITY_CACHE_TTL_SECONDS,
            )
        except Exception:
            logger.warning("Identity cache write failed for user %s", identity.user_id)
