"""WebSocket plumbing shared by the live views."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from fastapi import WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import sessionmaker

from app.auth.schemas.identity import Identity
from app.auth.services.identity_service import IdentityService
from app.core.exceptions import AppError
from app.core.security import ACCESS_COOKIE
from app.core.sync import LiveSubscription, OnChange

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def authenticate_websocket(
    websocket: WebSocket, session_factory: sessionmaker
) -> Identity | None:
    """Resolve the caller from the access token cookie or a ``token`` query parameter."""
    token = websocket.cookies.get(ACCESS_COOKIE) or websocket.query_params.get("token")
    db = session_factory()
    try:
        return await IdentityService(db).resolve(token)
    except AppError as exc:
        logger.info("Rejected websocket %s: %s", websocket.url.path, exc.error_code)
        return None
    finally:
        db.close()


async def reject(websocket: WebSocket) -> None:
    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)


async def serve_live_view(
    websocket: WebSocket,
    subscribe: Callable[[OnChange[T]], Awaitable[LiveSubscription[T]]],
    dump: Callable[[T], dict[str, Any]],
) -> None:
    """Push the full reloaded list to the client after every change signal.

    Messages sent by the client are ignored; the socket stays open until the
    client disconnects, after which the subscription is cancelled so no
    reload result is delivered to a closed connection.
    """
    await websocket.accept()

    async def push(records: list[T]) -> None:
        await websocket.send_json({"type": "snapshot", "items": [dump(r) for r in records]})

    try:
        subscription = await subscribe(push)
    except Exception:
        logger.exception("Live view %s could not subscribe", websocket.url.path)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await subscription.cancel()
