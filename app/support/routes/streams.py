from uuid import UUID

from fastapi import APIRouter, Depends, WebSocket
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool

from app.auth.schemas.identity import Identity
from app.core.events import TICKETS_TOPIC, get_change_feed
from app.core.exceptions import AppError
from app.core.live import authenticate_websocket, reject, serve_live_view
from app.core.sync import ReloadingView
from app.db.session import get_session_factory
from app.support.schemas.message import ChatMessageResponse
from app.support.schemas.ticket import TicketResponse
from app.support.services.conversation_service import ConversationService
from app.support.services.synchronizer import ConversationSynchronizer
from app.support.services.ticket_service import TicketService

router = APIRouter()


def _ticket_order_key(ticket: TicketResponse) -> tuple:
    return (ticket.created_at, str(ticket.id))


def _load_tickets(session_factory: sessionmaker, identity: Identity) -> list[TicketResponse]:
    db = session_factory()
    try:
        service = TicketService(db)
        return [service.build_response(t) for t in service.list_tickets(identity)]
    finally:
        db.close()


def _load_messages(
    session_factory: sessionmaker, identity: Identity, ticket_id: UUID
) -> list[ChatMessageResponse]:
    db = session_factory()
    try:
        return ConversationService(db).list_messages(identity, ticket_id)
    finally:
        db.close()


@router.websocket("/ws/tickets")
async def ticket_stream(
    websocket: WebSocket,
    session_factory: sessionmaker = Depends(get_session_factory),
) -> None:
    identity = await authenticate_websocket(websocket, session_factory)
    if identity is None:
        await reject(websocket)
        return

    async def loader() -> list[TicketResponse]:
        return await run_in_threadpool(_load_tickets, session_factory, identity)

    view: ReloadingView[TicketResponse] = ReloadingView(
        get_change_feed(), order_key=_ticket_order_key, identity_key=lambda t: t.id, reverse=True
    )
    await serve_live_view(
        websocket,
        lambda push: view.subscribe(TICKETS_TOPIC, loader, push),
        lambda t: t.model_dump(mode="json"),
    )


@router.websocket("/ws/tickets/{ticket_id}/messages")
async def message_stream(
    websocket: WebSocket,
    ticket_id: UUID,
    session_factory: sessionmaker = Depends(get_session_factory),
) -> None:
    identity = await authenticate_websocket(websocket, session_factory)
    if identity is None:
        await reject(websocket)
        return
    try:
        await run_in_threadpool(_load_messages, session_factory, identity, ticket_id)
    except AppError:
        await reject(websocket)
        return

    async def load(requested: UUID) -> list[ChatMessageResponse]:
        return await run_in_threadpool(_load_messages, session_factory, identity, requested)

    synchronizer = ConversationSynchronizer(get_change_feed(), load)
    await serve_live_view(
        websocket,
        lambda push: synchronizer.subscribe(ticket_id, push),
        lambda m: m.model_dump(mode="json"),
    )
