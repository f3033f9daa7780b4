# studymate/services/notification_feed.py
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Set

from pydantic import TypeAdapter, ValidationError

from .base_service import BaseStoreService
from .credentials import TokenStore
from .remote_api import RemoteChatAPI
from ..core.config import settings
from ..core.store import DeviceStore
from ..schemas.api import ApiResult
from ..schemas.chat import ensure_aware
from ..schemas.notification import (
    FriendRequestNotification,
    JoinRequestNotification,
    NotificationBase,
    NotificationSnapshot,
    parse_notification,
)
from ..utils.clock import Clock, utc_now
from ..utils.poll_scheduler import PollScheduler, PollTick

logger = logging.getLogger(__name__)

_timestamp = TypeAdapter(datetime)


class NotificationFeed(BaseStoreService[NotificationBase]):
    """
    Notification list and unread badge shared by every screen.

    The server is authoritative: a successful refresh replaces the whole
    list. Only one refresh is in flight at a time; concurrent callers wait
    for that one instead of issuing their own request. Marking read is
    optimistic and never rolled back. Ids marked read on this device stay
    read across later refreshes until the server reports them read too.
    """

    def __init__(
        self,
        api: RemoteChatAPI,
        store: DeviceStore,
        tokens: TokenStore,
        key: Optional[str] = None,
        freshness_seconds: Optional[int] = None,
        clock: Clock = utc_now,
    ):
        super().__init__(NotificationBase, store, key or settings.notifications_key)
        self.api = api
        self.tokens = tokens
        self.freshness = timedelta(
            seconds=freshness_seconds if freshness_seconds is not None else settings.notification_freshness_seconds
        )
        self._clock = clock
        self._notifications: List[NotificationBase] = []
        self._locally_read: Set[str] = set()
        self._fetched_at: Optional[datetime] = None
        self._loaded = False
        self._inflight: Optional[asyncio.Task] = None

    def _validate_item(self, item: Any) -> NotificationBase:
        return parse_notification(item)

    def _now(self) -> datetime:
        return ensure_aware(self._clock())

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    def snapshot(self, stale: bool = False, error: Optional[str] = None) -> NotificationSnapshot:
        return NotificationSnapshot(
            notifications=[n.model_copy(deep=True) for n in self._notifications],
            stale=stale,
            error=error,
        )

    async def load(self) -> NotificationSnapshot:
        """Cold read. Entries older than the freshness window read as empty."""
        while not self._loaded:
            generation = self._generation
            raw = await self._read_json()
            # a refresh may have completed, or the feed been reset, while we were reading
            if not self._loaded and generation == self._generation:
                self._apply_cached(raw)
        return self.snapshot()

    def _apply_cached(self, raw: Any):
        notifications, locally_read, fetched_at = [], set(), None
        if isinstance(raw, dict):
            fetched_at = self._parse_fetched_at(raw.get("fetchedAt"))
            if fetched_at is None or self._now() - fetched_at > self.freshness:
                logger.info(f"Cached notifications under '{self.key}' are stale, ignoring them")
                fetched_at = None
            else:
                notifications = self._parse_many(raw.get("notifications"))
                locally_read = {str(i) for i in raw.get("locallyRead") or []}
        elif raw is not None:
            logger.warning(f"Unexpected notification cache format under '{self.key}', ignoring it")

        self._notifications = notifications
        self._locally_read = locally_read
        self._fetched_at = fetched_at
        self._loaded = True

    @staticmethod
    def _parse_fetched_at(value: Any) -> Optional[datetime]:
        if not value:
            return None
        try:
            return ensure_aware(_timestamp.validate_python(value))
        except ValidationError:
            return None

    def _dump(self) -> dict:
        return {
            "fetchedAt": self._fetched_at.isoformat() if self._fetched_at else None,
            "notifications": self._dump_many(self._notifications),
            "locallyRead": sorted(self._locally_read),
        }

    async def _persist(self) -> bool:
        return await self._write_json(self._dump)

    async def refresh(self) -> NotificationSnapshot:
        """Fetch from the backend, or join the fetch already in flight."""
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._refresh())
        return await asyncio.shield(self._inflight)

    async def _refresh(self) -> NotificationSnapshot:
        generation = self._generation
        if not await self.tokens.is_authenticated():
            logger.debug("No auth token, skipping notification refresh")
            return NotificationSnapshot()

        await self.load()
        result = await self.api.get_notifications()
        if generation != self._generation:
            logger.debug("Notification feed was cleared during refresh, response dropped")
            return self.snapshot()
        if not result.success:
            if result.unauthenticated:
                return NotificationSnapshot()
            logger.warning(f"Error getting notifications, serving cached list: {result.error}")
            return self.snapshot(stale=True, error=result.error)

        payload = result.data
        items = payload.get("notifications") if isinstance(payload, dict) else payload
        self._apply_server_list(self._parse_many(items))
        self._fetched_at = self._now()
        await self._persist()
        return self.snapshot()

    def _apply_server_list(self, fetched: List[NotificationBase]):
        server_ids = {n.id for n in fetched}
        confirmed = {n.id for n in fetched if n.read}
        self._locally_read = (self._locally_read & server_ids) - confirmed
        for notification in fetched:
            if notification.id in self._locally_read:
                notification.read = True
        self._notifications = fetched

    async def mark_read(self, notification_id: str) -> ApiResult:
        await self.load()
        for notification in self._notifications:
            if notification.id == notification_id:
                notification.read = True
        self._locally_read.add(notification_id)
        await self._persist()

        result = await self.api.mark_notification_read(notification_id)
        if not result.success:
            logger.warning(f"Error marking notification {notification_id} as read, keeping local state: {result.error}")
        return result

    async def respond(self, notification: NotificationBase, accept: bool) -> ApiResult:
        """Accept/approve or reject the request a notification carries."""
        if isinstance(notification, FriendRequestNotification):
            call = self.api.accept_friend_request if accept else self.api.reject_friend_request
            result = await call(notification.request_id)
        elif isinstance(notification, JoinRequestNotification):
            call = self.api.approve_join_request if accept else self.api.reject_join_request
            result = await call(notification.data.group_id, notification.data.requester_id)
        else:
            return ApiResult.failure(f"Notification type '{notification.type}' has no actions")

        if not result.success:
            logger.warning(f"Could not respond to notification {notification.id}: {result.error}")
            return result

        await self.mark_read(notification.id)
        await self.refresh()
        return result

    def poller(
        self,
        on_result: Optional[Callable[[NotificationSnapshot], Any]] = None,
        interval: Optional[float] = None,
    ) -> PollScheduler:
        async def poll(tick: PollTick) -> NotificationSnapshot:
            return await self.refresh()

        return PollScheduler(
            poll,
            interval or settings.notification_poll_interval,
            on_result=on_result,
            name="notifications",
        )

    def reset(self):
        self._bump_generation()
        self._inflight = None
        self._notifications = []
        self._locally_read = set()
        self._fetched_at = None
        self._loaded = False

    async def clear(self):
        self.reset()
        self._loaded = True
        await self._remove()
