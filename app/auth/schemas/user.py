from uuid import UUID

from pydantic import BaseModel, Field

from app.core.datetime_utils import UTCDatetime


class ProfileResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    university: str
    photo_url: str | None = None
    role: str
    is_verified: bool
    created_at: UTCDatetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(None, min_length=1, max_length=255)
    photo_url: str | None = Field(None, max_length=500)


class UserSummary(BaseModel):
    id: UUID
    full_name: str
    photo_url: str | None = None

    class Config:
        from_attributes = True


class MeResponse(ProfileResponse):
    """Profile plus a flag telling the client to show the pending-approval screen."""

    awaiting_verification: bool = False

