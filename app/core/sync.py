"""Full-reload views kept in step with storage through the change feed.

A ``LiveSubscription`` never patches its view from an event. Every signal,
including the one caused by the subscriber's own write, triggers a reload of
the whole record set, which then replaces the view. Reads are idempotent, so
bursts of duplicate or reordered signals only cost extra reads.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable
from typing import Any, Generic, TypeVar

from app.core.events import ChangeEvent, ChangeFeed, FeedSubscription

logger = logging.getLogger(__name__)

T = TypeVar("T")

Loader = Callable[[], Awaitable[list[T]]]
OnChange = Callable[[list[T]], Awaitable[None] | None]


def reconcile(
    records: Iterable[T],
    order_key: Callable[[T], Any],
    identity_key: Callable[[T], Hashable],
    reverse: bool = False,
) -> list[T]:
    """Drop repeated records (first occurrence wins) and sort into a total order."""
    seen: set[Hashable] = set()
    unique: list[T] = []
    for record in records:
        key = identity_key(record)
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return sorted(unique, key=order_key, reverse=reverse)


class LiveSubscription(Generic[T]):
    def __init__(
        self,
        topic: str,
        loader: Loader[T],
        on_change: OnChange[T],
        order_key: Callable[[T], Any],
        identity_key: Callable[[T], Hashable],
        reverse: bool = False,
    ) -> None:
        self.topic = topic
        self.view: list[T] = []
        self._loader = loader
        self._on_change = on_change
        self._order_key = order_key
        self._identity_key = identity_key
        self._reverse = reverse
        self._handle: FeedSubscription | None = None
        self._active = True
        self._issued = 0
        self._applied = 0

    @property
    def active(self) -> bool:
        return self._active

    def attach(self, handle: FeedSubscription) -> None:
        self._handle = handle

    async def handle_event(self, event: ChangeEvent) -> None:
        await self.reload()

    async def reload(self) -> bool:
        """Re-read everything and replace the view.

        Returns False when the result was discarded: the subscription was
        cancelled meanwhile, a newer reload already landed, or the read failed.
        """
        if not self._active:
            return False

        self._issued += 1
        generation = self._issued

        try:
            records = await self._loader()
        except Exception:
            logger.warning(
                "Reload of %s failed; waiting for next change", self.topic, exc_info=True
            )
            return False

        if not self._active or generation < self._applied:
            return False

        self._applied = generation
        self.view = reconcile(
            records, self._order_key, self._identity_key, reverse=self._reverse
        )

        try:
            result = self._on_change(list(self.view))
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.warning("Change callback for %s failed", self.topic, exc_info=True)
        return True

    async def cancel(self) -> None:
        """Stop reloading and release the transport handle. Safe to call twice."""
        if not self._active:
            return
        self._active = False
        handle, self._handle = self._handle, None
        if handle is not None:
            await handle.close()


class ReloadingView(Generic[T]):
    """Factory of live subscriptions over one kind of record."""

    def __init__(
        self,
        feed: ChangeFeed,
        order_key: Callable[[T], Any],
        identity_key: Callable[[T], Hashable],
        reverse: bool = False,
    ) -> None:
        self.feed = feed
        self.order_key = order_key
        self.identity_key = identity_key
        self.reverse = reverse

    async def subscribe(
        self, topic: str, loader: Loader[T], on_change: OnChange[T]
    ) -> LiveSubscription[T]:
        subscription: LiveSubscription[T] = LiveSubscription(
            topic, loader, on_change, self.order_key, self.identity_key, self.reverse
        )
        subscription.attach(await self.feed.subscribe(topic, subscription.handle_event))
        await subscription.reload()
        return subscription
