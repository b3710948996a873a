from fastapi import APIRouter, Depends, WebSocket, status
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from app.announcements.schemas.announcement import AnnouncementCreate, AnnouncementResponse
from app.announcements.services.announcement_service import AnnouncementService
from app.auth.dependencies import get_identity
from app.auth.schemas.identity import Identity
from app.core.events import ANNOUNCEMENTS_TOPIC, get_change_feed, publish_change
from app.core.live import authenticate_websocket, reject, serve_live_view
from app.core.sync import ReloadingView
from app.db.session import get_db, get_session_factory

router = APIRouter()


@router.get("/announcements", response_model=list[AnnouncementResponse])
def list_announcements(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> list[AnnouncementResponse]:
    return AnnouncementService(db).list_announcements()


@router.post(
    "/announcements", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED
)
async def create_announcement(
    data: AnnouncementCreate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> AnnouncementResponse:
    announcement = await run_in_threadpool(
        AnnouncementService(db).create_announcement, identity, data
    )
    await publish_change(ANNOUNCEMENTS_TOPIC, kind="insert", record_id=announcement.id)
    return announcement


def _load_announcements(session_factory: sessionmaker) -> list[AnnouncementResponse]:
    db = session_factory()
    try:
        return AnnouncementService(db).list_announcements()
    finally:
        db.close()


@router.websocket("/ws/announcements")
async def announcement_stream(
    websocket: WebSocket,
    session_factory: sessionmaker = Depends(get_session_factory),
) -> None:
    if await authenticate_websocket(websocket, session_factory) is None:
        await reject(websocket)
        return

    async def loader() -> list[AnnouncementResponse]:
        return await run_in_threadpool(_load_announcements, session_factory)

    view: ReloadingView[AnnouncementResponse] = ReloadingView(
        get_change_feed(),
        order_key=lambda a: (a.created_at, str(a.id)),
        identity_key=lambda a: a.id,
        reverse=True,
    )
    await serve_live_view(
        websocket,
        lambda push: view.subscribe(ANNOUNCEMENTS_TOPIC, loader, push),
        lambda a: a.model_dump(mode="json"),
    )
