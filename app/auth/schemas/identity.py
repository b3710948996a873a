from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.auth.models.user import Role


class Identity(BaseModel):
    """Who is acting. Resolved once per request and passed explicitly into the core."""

    model_config = ConfigDict(frozen=True)

    user_id: UUID
    role: Role
    university: str
    is_verified: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_verified_admin(self) -> bool:
        return self.role == Role.ADMIN and self.is_verified
