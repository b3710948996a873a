from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_profile, get_identity
from app.auth.models.user import Profile
from app.auth.schemas.identity import Identity
from app.auth.schemas.user import MeResponse, ProfileUpdate
from app.auth.services.account_service import AccountService
from app.db.session import get_db

router = APIRouter()


@router.get("/me", response_model=MeResponse)
def get_my_profile(
    identity: Identity = Depends(get_identity),
    profile: Profile = Depends(get_current_profile),
) -> MeResponse:
    return AccountService.build_me_response(profile, identity)


@router.patch("/me", response_model=MeResponse)
def update_my_profile(
    data: ProfileUpdate,
    identity: Identity = Depends(get_identity),
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> MeResponse:
    service = AccountService(db)
    updated = service.update_profile(profile, data)
    return service.build_me_response(updated, identity)
