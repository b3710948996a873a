import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.datetime_utils import utc_now
from app.db.session import Base


class ChatMessage(Base):
    """One append-only entry of a ticket conversation.

    The integer id grows with every insert and breaks ties between messages
    stored with the same ``created_at``.
    """

    __tablename__ = "chats"
    __table_args__ = (Index("ix_chats_ticket_created", "ticket_id", "created_at", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tickets.id", ondelete="CASCADE"))
    sender_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"))
    message: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    sender = relationship("Profile", lazy="joined")
