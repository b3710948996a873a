import logging

from sqlalchemy.orm import Session

from app.auth.models.user import Profile, Role, UserRole
from app.auth.schemas.auth import SignupRequest
from app.auth.schemas.identity import Identity
from app.auth.schemas.user import MeResponse, ProfileUpdate
from app.core import security
from app.core.exceptions import ConflictError, UnauthorizedError
from app.db.errors import storage_errors

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def register(self, data: SignupRequest) -> Profile:
        """Create a profile and its role grant.

        Admin grants start unverified. An email whose grant was removed by a
        rejection may register again: the grantless profile is deleted and a
        new one with a new id is created, so an id never changes university
        or role. Any other existing email is a conflict.
        """
        existing = self.db.query(Profile).filter(Profile.email == data.email).first()
        if existing is not None:
            if existing.role_grant is not None:
                raise ConflictError("Email is already registered", resource="profile")
            logger.info("Retiring grantless profile %s before re-registration", existing.id)
            self.db.delete(existing)
            with storage_errors(self.db, "register"):
                self.db.flush()

        profile = Profile(
            email=data.email,
            hashed_password=security.get_password_hash(data.password),
            full_name=data.full_name,
            university=data.university.strip(),
        )
        self.db.add(profile)
        self.db.flush()

        self.db.add(UserRole(user_id=profile.id, role=data.role.value, is_verified=False))

        with storage_errors(self.db, "register"):
            self.db.commit()
        self.db.refresh(profile)

        logger.info(
            "Registered %s account %s at %s", data.role.value, profile.id, profile.university
        )
        return profile

    def authenticate(self, email: str, password: str) -> Profile:
        profile = self.db.query(Profile).filter(Profile.email == email).first()
        if profile is None or not security.verify_password(password, profile.hashed_password):
            raise UnauthorizedError("Invalid email or password")
        return profile

    def update_profile(self, profile: Profile, data: ProfileUpdate) -> Profile:
        if data.full_name is not None:
            profile.full_name = data.full_name
        if data.photo_url is not None:
            profile.photo_url = data.photo_url or None

        with storage_errors(self.db, "update_profile"):
            self.db.commit()
        self.db.refresh(profile)
        return profile

    @staticmethod
    def build_me_response(profile: Profile, identity: Identity) -> MeResponse:
        return MeResponse(
            id=profile.id,
            email=profile.email,
            full_name=profile.full_name,
            university=profile.university,
            photo_url=profile.photo_url,
            role=identity.role.value,
            is_verified=identity.is_verified,
            created_at=profile.created_at,
            awaiting_verification=identity.role == Role.ADMIN and not identity.is_verified,
        )
