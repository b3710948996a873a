from uuid import UUID

from pydantic import BaseModel, Field

from app.core.datetime_utils import UTCDatetime


class FaqCreate(BaseModel):
    question: str = Field(..., min_length=5, max_length=500)
    answer: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=50)


class FaqResponse(BaseModel):
    id: UUID
    question: str
    answer: str
    category: str
    created_at: UTCDatetime

    class Config:
        from_attributes = True
