"""
Notification events service.

Graph mutations publish events here; handlers run as background tasks on the
event loop so the publisher never waits on notification side effects.

Event kinds:
    FollowEvent: persist a follow notification, then append it to the
                 recipient's cache list (notification:<to>)
    ClearEvent:  delete every notification addressed to a user
    ReadEvent:   mark every notification addressed to a user as read

Delivery is at-most-once: a failing handler is logged and counted, and the
mutation that published the event is not rolled back.
"""
import asyncio
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Awaitable, Callable, Optional, Set, Union

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.cache import RedisListCache
from app.core.config import settings
from app.core.exceptions import DependencyUnavailableError, ValidationFailureError
from app.modules.notifications.services.notification import (
    delete_all_notifications,
    insert_notification,
    mark_all_as_read,
)

# Set up logger
logger = logging.getLogger(__name__)

NOTIFICATION_CACHE_KEY = "notification:{user_id}"


@dataclass(frozen=True)
class FollowEvent:
    from_id: str
    to_id: str


@dataclass(frozen=True)
class ClearEvent:
    user_id: str


@dataclass(frozen=True)
class ReadEvent:
    user_id: str


NotificationEvent = Union[FollowEvent, ClearEvent, ReadEvent]
Handler = Callable[[NotificationEvent], Awaitable[None]]


class NotificationDispatcher:
    """
    Typed publish API over a fixed handler table.

    Created once at application startup and handed to whatever performs graph
    mutations; the handler table is read-only after construction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        cache: Optional[RedisListCache] = None,
        cache_ttl_seconds: int = settings.NOTIFICATION_CACHE_TTL_SECONDS,
    ):
        self._session_factory = session_factory
        self._cache = cache
        self._cache_ttl_seconds = cache_ttl_seconds
        self._handlers = MappingProxyType({
            FollowEvent: self._handle_follow,
            ClearEvent: self._handle_clear,
            ReadEvent: self._handle_read,
        })
        self._pending: Set[asyncio.Task] = set()
        self.failed_events = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def publish(self, event: NotificationEvent) -> asyncio.Task:
        """Schedule the handler for event and return without waiting for it"""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise ValidationFailureError(f"Unsupported notification event: {type(event).__name__}")

        task = asyncio.get_running_loop().create_task(self._run(handler, event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, handler: Handler, event: NotificationEvent) -> None:
        try:
            await handler(event)
        except asyncio.CancelledError:
            logger.warning(f"Notification handler cancelled for {event}")
            raise
        except Exception:
            self.failed_events += 1
            logger.exception(f"Notification handler failed for {event}")

    async def drain(self) -> None:
        """Wait until every published event has been handled"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self, timeout: float = 5.0) -> None:
        """Drain on shutdown; cancel handlers still running after timeout"""
        if not self._pending:
            return
        _, still_running = await asyncio.wait(list(self._pending), timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(f"Cancelled {len(still_running)} notification handlers at shutdown")
            await asyncio.gather(*still_running, return_exceptions=True)

    async def _handle_follow(self, event: FollowEvent) -> None:
        # Durable write first; the cache append only runs once the row is committed
        async with self._session_factory() as db:
            notification = await insert_notification(db, event.from_id, event.to_id, "follow")
        logger.info(f"Created follow notification for user {event.to_id} from user {event.from_id}")

        if self._cache is None:
            return
        key = NOTIFICATION_CACHE_KEY.format(user_id=event.to_id)
        try:
            await self._cache.append_to_list_with_expiry(
                key, notification.model_dump(mode="json", by_alias=True), self._cache_ttl_seconds
            )
        except DependencyUnavailableError as e:
            # The notifications table is authoritative; the cached copy is optional
            logger.warning(f"Notification {notification.id} not cached under {key}: {e}")

    async def _handle_clear(self, event: ClearEvent) -> None:
        async with self._session_factory() as db:
            count = await delete_all_notifications(db, event.user_id)
        logger.info(f"Deleted {count} notifications for user {event.user_id}")

    async def _handle_read(self, event: ReadEvent) -> None:
        async with self._session_factory() as db:
            count = await mark_all_as_read(db, event.user_id)
        logger.info(f"Marked {count} notifications as read for user {event.user_id}")
