from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.access.policy import Action, ProfileResource, UniversityScope, require
from app.admin.schemas.directory import StudentTicketSummary
from app.admin.schemas.verification import PendingAdminResponse
from app.auth.models.user import Profile, Role, UserRole
from app.auth.schemas.identity import Identity
from app.core.exceptions import NotFoundError
from app.support.models.ticket import Ticket, TicketStatus


def _count_status(status: TicketStatus):  # type: ignore[no-untyped-def]
    return func.coalesce(func.sum(case((Ticket.status == status.value, 1), else_=0)), 0)


class DirectoryService:
    """Read-only views over the people of the actor's university."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _require_directory(self, actor: Identity) -> None:
        require(actor, Action.VIEW_DIRECTORY, UniversityScope(university=actor.university))

    def list_students_with_tickets(self, actor: Identity) -> list[StudentTicketSummary]:
        self._require_directory(actor)

        rows = (
            self.db.query(
                Profile.id,
                Profile.full_name,
                Profile.email,
                Profile.photo_url,
                func.count(Ticket.id).label("total_tickets"),
                _count_status(TicketStatus.PENDING).label("pending"),
                _count_status(TicketStatus.IN_PROGRESS).label("in_progress"),
                _count_status(TicketStatus.RESOLVED).label("resolved"),
            )
            .join(UserRole, UserRole.user_id == Profile.id)
            .join(Ticket, Ticket.student_id == Profile.id)
            .filter(
                UserRole.role == Role.STUDENT.value,
                Profile.university == actor.university,
            )
            .group_by(Profile.id, Profile.full_name, Profile.email, Profile.photo_url)
            .order_by(Profile.full_name.asc())
            .all()
        )

        return [
            StudentTicketSummary(
                id=row.id,
                full_name=row.full_name,
                email=row.email,
                photo_url=row.photo_url,
                total_tickets=row.total_tickets,
                pending=row.pending,
                in_progress=row.in_progress,
                resolved=row.resolved,
            )
            for row in rows
        ]

    def list_pending_admins(self, actor: Identity) -> list[PendingAdminResponse]:
        self._require_directory(actor)

        profiles = (
            self.db.query(Profile)
            .join(UserRole, UserRole.user_id == Profile.id)
            .filter(
                UserRole.role == Role.ADMIN.value,
                UserRole.is_verified.is_(False),
                Profile.university == actor.university,
            )
            .order_by(UserRole.created_at.asc())
            .all()
        )
        return [
            PendingAdminResponse(
                id=p.id,
                email=p.email,
                full_name=p.full_name,
                university=p.university,
                photo_url=p.photo_url,
                created_at=p.created_at,
            )
            for p in profiles
        ]

    def list_student_tickets(self, actor: Identity, student_id: UUID) -> list[Ticket]:
        self._require_directory(actor)

        student = (
            self.db.query(Profile)
            .join(UserRole, UserRole.user_id == Profile.id)
            .filter(Profile.id == student_id, UserRole.role == Role.STUDENT.value)
            .first()
        )
        # a student of another university is reported as missing, not forbidden
        if student is None or student.university != actor.university:
            raise NotFoundError("Student not found", resource="student")
        require(
            actor,
            Action.VIEW_DIRECTORY,
            ProfileResource(user_id=student.id, university=student.university),
        )

        return (
            self.db.query(Ticket)
            .filter(Ticket.student_id == student.id)
            .order_by(Ticket.created_at.desc(), Ticket.id.desc())
            .all()
        )
