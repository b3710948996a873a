from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.core.constants import ANNOUNCEMENT_MESSAGE_MAX_LENGTH, ANNOUNCEMENT_TITLE_MAX_LENGTH
from app.core.datetime_utils import UTCDatetime


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=ANNOUNCEMENT_TITLE_MAX_LENGTH)
    message: str = Field(..., min_length=1, max_length=ANNOUNCEMENT_MESSAGE_MAX_LENGTH)

    @field_validator("title", "message")
    @classmethod
    def not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Field cannot be blank")
        return stripped


class AnnouncementResponse(BaseModel):
    id: UUID
    title: str
    message: str
    posted_by: UUID | None = None
    poster_name: str | None = None
    created_at: UTCDatetime
