"""
Database base module - imports all models for Alembic migration detection.

This module imports all SQLAlchemy models to ensure they are registered
with Alembic for automatic migration generation. While the imports appear
unused, they are essential for the migration system to work properly.
"""

from app.announcements.models.announcement import Announcement
from app.auth.models.user import Profile, UserRole
from app.help.models.faq import Faq
from app.support.models.message import ChatMessage
from app.support.models.ticket import Ticket
from app.db.session import Base

# Export all models for Alembic
__all__ = [
    "Announcement",
    "Base",
    "ChatMessage",
    "Faq",
    "Profile",
    "Ticket",
    "UserRole",
]
