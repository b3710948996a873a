from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.admin.schemas.directory import StudentTicketSummary
from app.admin.schemas.verification import (
    PendingAdminResponse,
    RejectionResponse,
    VerificationResponse,
)
from app.admin.services.directory_service import DirectoryService
from app.admin.services.verification_service import VerificationService
from app.auth.dependencies import get_identity
from app.auth.schemas.identity import Identity
from app.db.session import get_db
from app.support.schemas.ticket import TicketResponse
from app.support.services.ticket_service import TicketService

router = APIRouter()


@router.get("/pending-admins", response_model=list[PendingAdminResponse])
def list_pending_admins(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> list[PendingAdminResponse]:
    return DirectoryService(db).list_pending_admins(identity)


@router.post("/admins/{user_id}/approve", response_model=VerificationResponse)
async def approve_admin(
    user_id: UUID,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> VerificationResponse:
    grant = await VerificationService(db).approve(identity, user_id)
    return VerificationResponse(
        user_id=grant.user_id, role=grant.role, is_verified=grant.is_verified
    )


@router.post("/admins/{user_id}/reject", response_model=RejectionResponse)
async def reject_admin(
    user_id: UUID,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> RejectionResponse:
    await VerificationService(db).reject(identity, user_id)
    return RejectionResponse(user_id=user_id)


@router.get("/students", response_model=list[StudentTicketSummary])
def list_students(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> list[StudentTicketSummary]:
    return DirectoryService(db).list_students_with_tickets(identity)


@router.get("/students/{student_id}/tickets", response_model=list[TicketResponse])
def list_student_tickets(
    student_id: UUID,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> list[TicketResponse]:
    tickets = DirectoryService(db).list_student_tickets(identity, student_id)
    return [TicketService.build_response(t) for t in tickets]
