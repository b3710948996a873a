import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.access.policy import Action, require
from app.auth.schemas.identity import Identity
from app.db.errors import storage_errors
from app.help.models.faq import Faq
from app.help.schemas.faq import FaqCreate

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class FaqService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def list_faqs(self, category: str | None = None, search: str | None = None) -> list[Faq]:
        query = self.db.query(Faq)
        if category:
            query = query.filter(Faq.category == category)
        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            query = query.filter(
                or_(
                    Faq.question.ilike(pattern, escape="\\"),
                    Faq.answer.ilike(pattern, escape="\\"),
                )
            )
        return query.order_by(Faq.created_at.desc()).all()

    def list_categories(self) -> list[str]:
        rows = self.db.query(Faq.category).distinct().order_by(Faq.category.asc()).all()
        return [row[0] for row in rows]

    def create_faq(self, actor: Identity, data: FaqCreate) -> Faq:
        require(actor, Action.MANAGE_FAQ, message="Only verified administrators can edit the FAQ")

        faq = Faq(
            question=data.question.strip(),
            answer=data.answer.strip(),
            category=data.category.strip(),
        )
        self.db.add(faq)
        with storage_errors(self.db, "create_faq"):
            self.db.commit()
        self.db.refresh(faq)

        logger.info("FAQ %s added by %s", faq.id, actor.user_id)
        return faq
