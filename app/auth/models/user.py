import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.datetime_utils import utc_now
from app.db.session import Base


class Role(str, enum.Enum):
    STUDENT = "student"
    ADMIN = "admin"


class Profile(Base):
    """
    Account record created at sign-up.

    Attributes:
        id: Stable UUID identifying the user everywhere
        email: Unique login email
        hashed_password: Argon2 hashed password
        full_name: Display name
        university: Scoping key; admins only see users and tickets sharing it
        photo_url: Optional avatar URL
        created_at: Account creation timestamp
        updated_at: Last profile edit timestamp
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(255))
    university: Mapped[str] = mapped_column(String(255), index=True)
    photo_url: Mapped[str | None] = mapped_column(String(500), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now
    )

    role_grant = relationship("UserRole", back_populates="profile", uselist=False)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email={self.email}, university={self.university})>"


class UserRole(Base):
    """Role grant of a profile.

    Admin grants start unverified. Approval flips ``is_verified``; rejection
    deletes the row, so a rejected admin has to register again.
    """

    __tablename__ = "user_roles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    role: Mapped[str] = mapped_column(String(20), default=Role.STUDENT.value)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    profile = relationship("Profile", back_populates="role_grant")
