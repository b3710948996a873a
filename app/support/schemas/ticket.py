from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.auth.schemas.user import UserSummary
from app.core.constants import TICKET_DESCRIPTION_MAX_LENGTH, TICKET_DESCRIPTION_MIN_LENGTH
from app.core.datetime_utils import UTCDatetime
from app.support.models.ticket import TicketCategory, TicketStatus


class TicketCreate(BaseModel):
    category: TicketCategory
    description: str = Field(
        ...,
        min_length=TICKET_DESCRIPTION_MIN_LENGTH,
        max_length=TICKET_DESCRIPTION_MAX_LENGTH,
    )

    @field_validator("description")
    @classmethod
    def strip_description(cls, value: str) -> str:
        stripped = value.strip()
        if len(stripped) < TICKET_DESCRIPTION_MIN_LENGTH:
            raise ValueError(
                f"Description must be at least {TICKET_DESCRIPTION_MIN_LENGTH} characters"
            )
        return stripped


class TicketStatusUpdate(BaseModel):
    status: TicketStatus


class TicketResponse(BaseModel):
    id: UUID
    student: UserSummary
    category: str
    description: str
    status: str
    created_at: UTCDatetime
    updated_at: UTCDatetime

    class Config:
        from_attributes = True


class TicketStats(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    resolved: int = 0


class TicketListResponse(BaseModel):
    tickets: list[TicketResponse]
    total: int
