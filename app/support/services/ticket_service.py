import logging
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from app.access.policy import Action, TicketResource, can_perform, require
from app.auth.models.user import Profile, Role
from app.auth.schemas.identity import Identity
from app.core.datetime_utils import utc_now
from app.core.exceptions import NotFoundError
from app.db.errors import storage_errors
from app.support.models.ticket import Ticket, TicketStatus
from app.support.schemas.ticket import TicketCreate, TicketResponse, TicketStats
from app.support.state_machine import (
    INITIAL_STATUS,
    auto_transition_on_open,
    is_forward,
    manual_transition,
    parse_status,
)

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class TicketService:
    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def resource_for(ticket: Ticket) -> TicketResource:
        return TicketResource(student_id=ticket.student_id, university=ticket.student.university)

    @staticmethod
    def build_response(ticket: Ticket) -> TicketResponse:
        return TicketResponse.model_validate(ticket)

    def create_ticket(self, actor: Identity, data: TicketCreate) -> Ticket:
        require(
            actor,
            Action.CREATE_TICKET,
            TicketResource(student_id=actor.user_id, university=actor.university),
            "Only students can file support requests",
        )

        ticket = Ticket(
            student_id=actor.user_id,
            category=data.category.value,
            description=data.description,
            status=INITIAL_STATUS.value,
        )
        self.db.add(ticket)
        with storage_errors(self.db, "create_ticket"):
            self.db.commit()
        self.db.refresh(ticket)

        logger.info("Ticket %s filed by %s (%s)", ticket.id, actor.user_id, ticket.category)
        return ticket

    def get_ticket(self, actor: Identity, ticket_id: UUID) -> Ticket:
        """Load a ticket the actor may read. Never changes its status."""
        ticket = self.db.query(Ticket).filter(Ticket.id == ticket_id).first()
        if ticket is None:
            raise NotFoundError("Ticket not found", resource="ticket")
        require(actor, Action.READ_TICKET, self.resource_for(ticket))
        return ticket

    def open_ticket(self, actor: Identity, ticket_id: UUID) -> tuple[TicketResponse, bool]:
        """Read a ticket, moving it from Pending to In Progress if a verified
        admin of its university is the reader.

        The transition is a single conditional update on ``status = Pending``,
        so concurrent openers change the row at most once. If the update fails
        the read still succeeds with the last known status and the next open
        tries again. Returns the ticket and whether this call moved it.
        """
        ticket = self.get_ticket(actor, ticket_id)
        response = self.build_response(ticket)

        target = auto_transition_on_open(ticket.status)
        if target is None or not can_perform(
            actor, Action.CHANGE_TICKET_STATUS, self.resource_for(ticket)
        ):
            return response, False

        now = utc_now()
        try:
            result = self.db.execute(
                update(Ticket)
                .where(Ticket.id == ticket.id, Ticket.status == TicketStatus.PENDING.value)
                .values(status=target.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning("Auto-transition of ticket %s failed", ticket.id, exc_info=True)
            return response, False

        if result.rowcount != 1:
            # another reader got there first
            return response, False

        logger.info("Ticket %s moved to %s on open by %s", ticket.id, target.value, actor.user_id)
        response.status = target.value
        response.updated_at = now
        return response, True

    def change_status(
        self, actor: Identity, ticket_id: UUID, status: TicketStatus
    ) -> tuple[Ticket, bool]:
        """Manual override to any status. Returns the ticket and whether it changed."""
        ticket = self.db.query(Ticket).filter(Ticket.id == ticket_id).first()
        if ticket is None:
            raise NotFoundError("Ticket not found", resource="ticket")
        require(
            actor,
            Action.CHANGE_TICKET_STATUS,
            self.resource_for(ticket),
            "Only verified administrators of this university can change ticket status",
        )

        target = manual_transition(ticket.status, status)
        if target is None:
            return ticket, False

        previous = parse_status(ticket.status)
        ticket.status = target.value
        with storage_errors(self.db, "change_ticket_status"):
            self.db.commit()
        self.db.refresh(ticket)

        logger.info(
            "Ticket %s: %s -> %s by %s%s",
            ticket.id,
            previous.value if previous else "?",
            target.value,
            actor.user_id,
            "" if previous is None or is_forward(previous, target) else " (override)",
        )
        return ticket, True

    def _scoped_query(self, actor: Identity) -> Query:
        query = self.db.query(Ticket).join(Profile, Profile.id == Ticket.student_id)
        if actor.role == Role.STUDENT:
            return query.filter(Ticket.student_id == actor.user_id)
        return query.filter(Profile.university == actor.university)

    def list_tickets(
        self,
        actor: Identity,
        status: TicketStatus | None = None,
        category: str | None = None,
        search: str | None = None,
    ) -> list[Ticket]:
        """Tickets visible to the actor, newest first.

        Students see their own tickets, admins see the tickets of their
        university. ``search`` matches category, description or student name.
        """
        query = self._scoped_query(actor)

        if status:
            query = query.filter(Ticket.status == status.value)
        if category:
            query = query.filter(Ticket.category == category)
        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            query = query.filter(
                or_(
                    Ticket.category.ilike(pattern, escape="\\"),
                    Ticket.description.ilike(pattern, escape="\\"),
                    Profile.full_name.ilike(pattern, escape="\\"),
                )
            )

        tickets = query.order_by(Ticket.created_at.desc(), Ticket.id.desc()).all()
        return [t for t in tickets if can_perform(actor, Action.READ_TICKET, self.resource_for(t))]

    def get_stats(self, actor: Identity) -> TicketStats:
        rows = (
            self._scoped_query(actor)
            .with_entities(Ticket.status, func.count(Ticket.id))
            .group_by(Ticket.status)
            .all()
        )
        counts = dict(rows)
        return TicketStats(
            total=sum(counts.values()),
            pending=counts.get(TicketStatus.PENDING.value, 0),
            in_progress=counts.get(TicketStatus.IN_PROGRESS.value, 0),
            resolved=counts.get(TicketStatus.RESOLVED.value, 0),
        )
