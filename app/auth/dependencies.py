from typing import Annotated

from fastapi import Cookie, Depends
from sqlalchemy.orm import Session

from app.auth.models.user import Profile
from app.auth.schemas.identity import Identity
from app.auth.services.identity_service import IdentityService
from app.core.exceptions import ProfileMissingError, UnauthorizedError
from app.core.log_config import bind_actor
from app.db.session import get_db


async def get_access_token_from_cookie(
    access_token: Annotated[str | None, Cookie()] = None,
) -> str | None:
    """Read the access token cookie; absence is decided by the resolver."""
    return access_token


async def get_refresh_token_from_cookie(
    refresh_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """Extract and validate refresh token from cookie"""
    if not refresh_token:
        raise UnauthorizedError("Missing refresh token")
    return refresh_token


async def get_identity(
    access_token: str | None = Depends(get_access_token_from_cookie),
    db: Session = Depends(get_db),
) -> Identity:
    """Resolve who is acting on this request."""
    identity = await IdentityService(db).resolve(access_token)
    bind_actor(str(identity.user_id), identity.role.value)
    return identity


async def get_current_profile(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> Profile:
    profile = db.query(Profile).filter(Profile.id == identity.user_id).first()
    if profile is None:
        raise ProfileMissingError()
    return profile
