from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any
from uuid import UUID

from app.core.events import ChangeFeed, ticket_messages_topic
from app.core.sync import LiveSubscription, OnChange, ReloadingView
from app.support.schemas.message import ChatMessageResponse

MessageLoader = Callable[[UUID], Awaitable[list[ChatMessageResponse]]]


def message_order_key(message: ChatMessageResponse) -> tuple[datetime, int]:
    return (message.created_at, message.id)


def message_identity(message: ChatMessageResponse) -> Any:
    return message.id


class ConversationSynchronizer:
    """Keeps a local copy of one ticket's messages in step with storage.

    Every change signal on the ticket's topic triggers a full reload; the
    reloaded list replaces the local one after duplicates are dropped and
    messages are sorted by (created_at, id).
    """

    def __init__(self, feed: ChangeFeed, load_messages: MessageLoader) -> None:
        self._view: ReloadingView[ChatMessageResponse] = ReloadingView(
            feed, order_key=message_order_key, identity_key=message_identity
        )
        self._load_messages = load_messages

    async def subscribe(
        self, ticket_id: UUID, on_change: OnChange[ChatMessageResponse]
    ) -> LiveSubscription[ChatMessageResponse]:
        async def loader() -> list[ChatMessageResponse]:
            return await self._load_messages(ticket_id)

        return await self._view.subscribe(ticket_messages_topic(ticket_id), loader, on_change)
