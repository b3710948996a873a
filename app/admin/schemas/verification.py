from uuid import UUID

from pydantic import BaseModel

from app.core.datetime_utils import UTCDatetime


class PendingAdminResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    university: str
    photo_url: str | None = None
    created_at: UTCDatetime


class VerificationResponse(BaseModel):
    user_id: UUID
    role: str
    is_verified: bool


class RejectionResponse(BaseModel):
    user_id: UUID
    rejected: bool = True
