from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.auth.dependencies import get_identity
from app.auth.schemas.identity import Identity
from app.core.events import TICKETS_TOPIC, publish_change, ticket_messages_topic
from app.db.session import get_db
from app.support.models.ticket import TicketCategory, TicketStatus
from app.support.schemas.message import ChatMessageResponse, MessageCreate
from app.support.schemas.ticket import (
    TicketCreate,
    TicketListResponse,
    TicketResponse,
    TicketStats,
    TicketStatusUpdate,
)
from app.support.services.conversation_service import ConversationService
from app.support.services.ticket_service import TicketService

router = APIRouter()


@router.post("/tickets", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    data: TicketCreate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> TicketResponse:
    service = TicketService(db)

    def create() -> TicketResponse:
        return service.build_response(service.create_ticket(identity, data))

    ticket = await run_in_threadpool(create)
    await publish_change(TICKETS_TOPIC, kind="insert", record_id=ticket.id)
    return ticket


@router.get("/tickets", response_model=TicketListResponse)
def list_tickets(
    status_filter: TicketStatus | None = Query(None, alias="status"),
    category: TicketCategory | None = None,
    search: str | None = Query(None, max_length=200),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> TicketListResponse:
    service = TicketService(db)
    tickets = service.list_tickets(
        identity,
        status=status_filter,
        category=category.value if category else None,
        search=search,
    )
    return TicketListResponse(
        tickets=[service.build_response(t) for t in tickets], total=len(tickets)
    )


@router.get("/tickets/stats", response_model=TicketStats)
def get_ticket_stats(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> TicketStats:
    return TicketService(db).get_stats(identity)


@router.get("/tickets/{ticket_id}", response_model=TicketResponse)
async def open_ticket(
    ticket_id: UUID,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> TicketResponse:
    ticket, transitioned = await run_in_threadpool(
        TicketService(db).open_ticket, identity, ticket_id
    )
    if transitioned:
        await publish_change(TICKETS_TOPIC, kind="update", record_id=ticket.id)
    return ticket


@router.patch("/tickets/{ticket_id}/status", response_model=TicketResponse)
async def change_ticket_status(
    ticket_id: UUID,
    data: TicketStatusUpdate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> TicketResponse:
    service = TicketService(db)

    def change() -> tuple[TicketResponse, bool]:
        ticket, changed = service.change_status(identity, ticket_id, data.status)
        return service.build_response(ticket), changed

    ticket, changed = await run_in_threadpool(change)
    if changed:
        await publish_change(TICKETS_TOPIC, kind="update", record_id=ticket.id)
    return ticket


@router.get("/tickets/{ticket_id}/messages", response_model=list[ChatMessageResponse])
def list_ticket_messages(
    ticket_id: UUID,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> list[ChatMessageResponse]:
    return ConversationService(db).list_messages(identity, ticket_id)


@router.post(
    "/tickets/{ticket_id}/messages",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_ticket_message(
    ticket_id: UUID,
    data: MessageCreate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> ChatMessageResponse:
    message = await run_in_threadpool(
        ConversationService(db).post_message, identity, ticket_id, data.message
    )
    await publish_change(ticket_messages_topic(ticket_id), kind="insert", record_id=message.id)
    return message
