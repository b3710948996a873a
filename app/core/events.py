"""Change notification feed.

Writers publish a ``ChangeEvent`` on a topic after committing; readers
subscribe to topics and treat every event as "something changed, reload".
Delivery is at-least-once at best: events may arrive duplicated, late or out
of order relative to the data they announce, so handlers must never apply the
event itself as a delta.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import asdict, dataclass
from typing import Any

from app.core import redis as redis_module
from app.core.config import settings

logger = logging.getLogger(__name__)

TICKETS_TOPIC = "tickets"
ANNOUNCEMENTS_TOPIC = "announcements"
USER_ROLES_TOPIC = "user_roles"


def ticket_messages_topic(ticket_id: Any) -> str:
    return f"chats:ticket_id={ticket_id}"


@dataclass(frozen=True)
class ChangeEvent:
    topic: str
    kind: str = "changed"
    record_id: str | None = None


Handler = Callable[[ChangeEvent], Awaitable[None]]


class FeedSubscription(ABC):
    """Transport handle of one subscription."""

    @abstractmethod
    async def close(self) -> None:
        pass


class ChangeFeed(ABC):
    @abstractmethod
    async def publish(self, event: ChangeEvent) -> None:
        pass

    @abstractmethod
    async def subscribe(self, topic: str, handler: Handler) -> FeedSubscription:
        pass


class _MemorySubscription(FeedSubscription):
    def __init__(self, feed: "InMemoryChangeFeed", topic: str, handler: Handler) -> None:
        self._feed = feed
        self._topic = topic
        self._handler = handler

    async def close(self) -> None:
        self._feed._remove(self._topic, self._handler)


class InMemoryChangeFeed(ChangeFeed):
    """Single-process feed. Used in tests and when running one worker.

    ``publish`` schedules one task per handler and returns without waiting
    for them; ``drain`` waits.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._pending: set[asyncio.Task[None]] = set()

    async def publish(self, event: ChangeEvent) -> None:
        for handler in list(self._handlers.get(event.topic, [])):
            task = asyncio.create_task(self._deliver(handler, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _deliver(handler: Handler, event: ChangeEvent) -> None:
        try:
            await handler(event)
        except Exception:
            logger.warning("Change handler failed for topic %s", event.topic, exc_info=True)

    async def drain(self) -> None:
        """Wait until every delivery scheduled so far has finished."""
        while self._pending:
            await asyncio.gather(*self._pending)

    async def subscribe(self, topic: str, handler: Handler) -> FeedSubscription:
        self._handlers.setdefault(topic, []).append(handler)
        return _MemorySubscription(self, topic, handler)

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, []))

    def _remove(self, topic: str, handler: Handler) -> None:
        handlers = self._handlers.get(topic, [])
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            self._handlers.pop(topic, None)


class _RedisSubscription(FeedSubscription):
    def __init__(self, pubsub: Any, task: "asyncio.Task[None]") -> None:
        self._pubsub = pubsub
        self._task = task

    async def close(self) -> None:
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        try:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
        except Exception:
            logger.warning("Failed to release Redis pub/sub handle", exc_info=True)


class RedisChangeFeed(ChangeFeed):
    """Feed over Redis pub/sub, shared by every API worker."""

    def __init__(self, channel_prefix: str) -> None:
        self.channel_prefix = channel_prefix

    def channel(self, topic: str) -> str:
        return f"{self.channel_prefix}:{topic}"

    async def publish(self, event: ChangeEvent) -> None:
        client = await redis_module.get_redis()
        await client.publish(self.channel(event.topic), json.dumps(asdict(event)))

    async def subscribe(self, topic: str, handler: Handler) -> FeedSubscription:
        client = await redis_module.get_redis()
        pubsub = client.pubsub()
        await pubsub.subscribe(self.channel(topic))
        task = asyncio.create_task(self._pump(pubsub, handler))
        return _RedisSubscription(pubsub, task)

    async def _pump(self, pubsub: Any, handler: Handler) -> None:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                event = ChangeEvent(**json.loads(message["data"]))
            except (TypeError, ValueError):
                logger.warning("Dropping malformed change event: %r", message.get("data"))
                continue
            try:
                await handler(event)
            except Exception:
                logger.warning("Change handler failed for topic %s", event.topic, exc_info=True)


change_feed: ChangeFeed | None = None


def get_change_feed() -> ChangeFeed:
    global change_feed
    if change_feed is None:
        if settings.CHANGE_FEED_BACKEND == "redis":
            change_feed = RedisChangeFeed(settings.CHANGE_CHANNEL_PREFIX)
        else:
            change_feed = InMemoryChangeFeed()
    return change_feed


async def publish_change(topic: str, kind: str = "changed", record_id: Any = None) -> None:
    """Announce a committed change. Failures are logged only.

    The write has already been stored; subscribers that miss this event pick
    the change up on their next reload.
    """
    event = ChangeEvent(
        topic=topic, kind=kind, record_id=str(record_id) if record_id is not None else None
    )
    try:
        await get_change_feed().publish(event)
    except Exception:
        logger.warning("Failed to publish change on %s", topic, exc_info=True)
