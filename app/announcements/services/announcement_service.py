import logging

from sqlalchemy.orm import Session

from app.access.policy import Action, require
from app.announcements.models.announcement import Announcement
from app.announcements.schemas.announcement import AnnouncementCreate, AnnouncementResponse
from app.auth.schemas.identity import Identity
from app.db.errors import storage_errors

logger = logging.getLogger(__name__)


class AnnouncementService:
    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def build_response(announcement: Announcement) -> AnnouncementResponse:
        return AnnouncementResponse(
            id=announcement.id,
            title=announcement.title,
            message=announcement.message,
            posted_by=announcement.posted_by,
            poster_name=announcement.author.full_name if announcement.author else None,
            created_at=announcement.created_at,
        )

    def list_announcements(self) -> list[AnnouncementResponse]:
        announcements = (
            self.db.query(Announcement)
            .order_by(Announcement.created_at.desc(), Announcement.id.desc())
            .all()
        )
        return [self.build_response(a) for a in announcements]

    def create_announcement(
        self, actor: Identity, data: AnnouncementCreate
    ) -> AnnouncementResponse:
        require(
            actor,
            Action.POST_ANNOUNCEMENT,
            message="Only verified administrators can post announcements",
        )

        announcement = Announcement(title=data.title, message=data.message, posted_by=actor.user_id)
        self.db.add(announcement)
        with storage_errors(self.db, "create_announcement"):
            self.db.commit()
        self.db.refresh(announcement)

        logger.info("Announcement %s posted by %s", announcement.id, actor.user_id)
        return self.build_response(announcement)
