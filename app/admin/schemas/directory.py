from uuid import UUID

from pydantic import BaseModel


class StudentTicketSummary(BaseModel):
    """A student of the admin's university with at least one ticket."""

    id: UUID
    full_name: str
    email: str
    photo_url: str | None = None
    total_tickets: int
    pending: int
    in_progress: int
    resolved: int
