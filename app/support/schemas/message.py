from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.auth.schemas.user import UserSummary
from app.core.constants import MESSAGE_MAX_LENGTH
from app.core.datetime_utils import UTCDatetime


class MessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)

    @field_validator("message")
    @classmethod
    def strip_message(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Message cannot be empty")
        return stripped


class ChatMessageResponse(BaseModel):
    id: int
    ticket_id: UUID
    sender: UserSummary
    message: str
    created_at: UTCDatetime

    class Config:
        from_attributes = True
