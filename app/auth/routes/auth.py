import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.auth.dependencies import get_current_profile, get_identity, get_refresh_token_from_cookie
from app.auth.models.user import Profile
from app.auth.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RefreshResponse,
    SignupRequest,
)
from app.auth.schemas.identity import Identity
from app.auth.schemas.user import MeResponse
from app.auth.services.account_service import AccountService
from app.auth.services.identity_service import IdentityService
from app.auth.services.token_service import refresh_tokens
from app.core import security
from app.core.events import USER_ROLES_TOPIC, publish_change
from app.core.exceptions import UnauthorizedError
from app.core.rate_limit import limiter
from app.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


async def _start_session(response: Response, profile: Profile) -> None:
    access_token = security.create_access_token({"sub": str(profile.id), "email": profile.email})
    refresh_token = await refresh_tokens.issue(profile.id, profile.email)
    security.set_auth_cookies(response, access_token, refresh_token)


@router.post("/signup", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    data: SignupRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> LoginResponse:
    service = AccountService(db)
    profile = await run_in_threadpool(service.register, data)
    identity = await run_in_threadpool(IdentityService(db).load_identity, profile.id)

    await _start_session(response, profile)
    await publish_change(USER_ROLES_TOPIC, kind="insert", record_id=profile.id)

    return LoginResponse(user=service.build_me_response(profile, identity))


@router.post("/login", response_model=LoginResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    credentials: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> LoginResponse:
    service = AccountService(db)
    profile = await run_in_threadpool(
        service.authenticate, credentials.email, credentials.password
    )
    # a rejected admin has a profile but no role grant and cannot sign in
    identity = await run_in_threadpool(IdentityService(db).load_identity, profile.id)

    await _start_session(response, profile)

    return LoginResponse(user=service.build_me_response(profile, identity))


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_token(
    response: Response,
    refresh_token: str = Depends(get_refresh_token_from_cookie),
    db: Session = Depends(get_db),
) -> RefreshResponse:
    try:
        user_id = await refresh_tokens.consume(refresh_token)
    except Exception:
        logger.warning("redis_unavailable_during_token_validation")
        user_id = None
    if user_id is None:
        raise UnauthorizedError("Refresh token was revoked or has expired")

    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile is None:
        raise UnauthorizedError("User not found")

    await _start_session(response, profile)
    return RefreshResponse()


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    response: Response,
    identity: Identity = Depends(get_identity),
) -> LogoutResponse:
    refresh_token = request.cookies.get(security.REFRESH_COOKIE)
    if refresh_token:
        try:
            await refresh_tokens.revoke(refresh_token)
        except Exception:
            logger.warning("redis_unavailable_during_logout")

    await IdentityService.invalidate(identity.user_id)
    security.clear_auth_cookies(response)

    return LogoutResponse()


@router.get("/me", response_model=MeResponse)
async def get_current_user_info(
    identity: Identity = Depends(get_identity),
    profile: Profile = Depends(get_current_profile),
) -> MeResponse:
    return AccountService.build_me_response(profile, identity)
