"""structlog setup shared by the API process and Celery workers.

Both ``structlog.get_logger`` and plain ``logging.getLogger`` output goes
through one renderer: JSON lines in production, coloured console in debug.
"""

import logging
import sys
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "websockets", "celery.app.trace")

SKIP_REQUEST_LOG = frozenset({"/health"})


def _pre_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def setup_logging(level: str | None = None) -> None:
    pre_chain = _pre_chain()
    renderer: Any = (
        structlog.dev.ConsoleRenderer() if settings.DEBUG else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel((level or settings.LOG_LEVEL).upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_actor(user_id: str, role: str | None) -> None:
    """Tag the remaining log lines of this request with who is acting."""
    structlog.contextvars.bind_contextvars(user_id=user_id, role=role)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One access line per HTTP request, carrying a request id.

    The id comes from ``X-Request-ID`` when the client sends one and is echoed
    back on the response. Websocket traffic does not pass through here.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        response = await call_next(request)
        response.headers["x-request-id"] = request_id

        if request.url.path not in SKIP_REQUEST_LOG:
            log = structlog.get_logger("http")
            await log.ainfo(
                "request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                client=request.client.host if request.client else None,
            )
        return response
