"""Background delivery of ticket reply emails."""

import asyncio
import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.auth.services.email_service import EmailMessage, get_email_service
from app.core.celery_app import celery_app
from app.db.session import SessionLocal
from app.support.models.ticket import Ticket
from app.support.services.notification_service import build_admin_reply_email

logger = logging.getLogger(__name__)


def _compose_reply_email(db: Session, ticket_id: UUID, reply_preview: str) -> EmailMessage | None:
    ticket = db.get(Ticket, ticket_id)
    if ticket is None or ticket.student is None:
        return None
    return build_admin_reply_email(
        student_name=ticket.student.full_name,
        student_email=ticket.student.email,
        ticket_category=ticket.category,
        reply_preview=reply_preview,
    )


@celery_app.task(bind=True, max_retries=2, default_retry_delay=30)
def send_ticket_reply_notification(
    self: Any,
    ticket_id: str,
    reply_preview: str,
) -> dict[str, str]:
    """Email the student that an administrator answered on their ticket.

    A ticket or student that vanished before the worker ran is skipped
    rather than retried.
    """
    try:
        with SessionLocal() as db:
            email_msg = _compose_reply_email(db, UUID(ticket_id), reply_preview)
        if email_msg is None:
            logger.warning("Ticket %s or its student is gone, reply email skipped", ticket_id)
            return {"status": "skipped", "reason": "ticket_not_found"}

        if not asyncio.run(get_email_service().send_email(email_msg)):
            logger.warning("Reply email for ticket %s was not accepted", ticket_id)
            return {"status": "failed", "reason": "email_service_returned_false"}

        logger.info("Reply email for ticket %s sent to %s", ticket_id, email_msg.to)
        return {"status": "sent"}
    except Exception as exc:
        logger.exception("Reply email for ticket %s failed", ticket_id)
        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc) from exc
        raise
