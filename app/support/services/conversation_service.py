import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.access.policy import Action, require
from app.auth.schemas.identity import Identity
from app.core.constants import REPLY_PREVIEW_LENGTH
from app.core.exceptions import NotFoundError
from app.db.errors import storage_errors
from app.support.models.message import ChatMessage
from app.support.models.ticket import Ticket
from app.support.schemas.message import ChatMessageResponse
from app.support.services.ticket_service import TicketService

logger = logging.getLogger(__name__)


class ConversationService:
    """Append-only message thread attached to each ticket."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def list_messages(self, actor: Identity, ticket_id: UUID) -> list[ChatMessageResponse]:
        TicketService(self.db).get_ticket(actor, ticket_id)
        return self.load_messages(ticket_id)

    def load_messages(self, ticket_id: UUID) -> list[ChatMessageResponse]:
        """Every message of a ticket ordered by (created_at, id). No access check."""
        messages = (
            self.db.query(ChatMessage)
            .filter(ChatMessage.ticket_id == ticket_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            .all()
        )
        return [ChatMessageResponse.model_validate(m) for m in messages]

    def post_message(self, actor: Identity, ticket_id: UUID, body: str) -> ChatMessageResponse:
        ticket = self.db.query(Ticket).filter(Ticket.id == ticket_id).first()
        if ticket is None:
            raise NotFoundError("Ticket not found", resource="ticket")
        require(
            actor,
            Action.POST_MESSAGE,
            TicketService.resource_for(ticket),
            "You cannot post in this conversation",
        )

        message = ChatMessage(ticket_id=ticket.id, sender_id=actor.user_id, message=body)
        self.db.add(message)
        with storage_errors(self.db, "post_message"):
            self.db.commit()
        self.db.refresh(message)

        if actor.is_admin and ticket.student_id != actor.user_id:
            self._send_reply_notification(ticket.id, body)

        return ChatMessageResponse.model_validate(message)

    @staticmethod
    def _send_reply_notification(ticket_id: UUID, body: str) -> None:
        try:
            from app.support.tasks import send_ticket_reply_notification

            send_ticket_reply_notification.delay(
                ticket_id=str(ticket_id),
                reply_preview=body[:REPLY_PREVIEW_LENGTH],
            )
        except (ImportError, AttributeError) as exc:
            logger.error("Celery task import failed: %s", exc, exc_info=True)
        except Exception as exc:
            logger.warning("Failed to enqueue reply notification for ticket %s: %s", ticket_id, exc)
