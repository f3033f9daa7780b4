from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Optional
import logging

from .core.config import Settings, settings as default_settings
from .core.logging import setup_logging
from .core.store import DeviceStore, RedisDeviceStore
from .schemas.chat import ChatMessage, MessageKind
from .schemas.notification import NotificationSnapshot
from .schemas.session import StudySession
from .services.chat import ChatCache, ChatSyncService
from .services.credentials import TokenStore
from .services.notification_feed import NotificationFeed
from .services.remote_api import HttpChatAPI, RemoteChatAPI
from .services.session_registry import SessionRegistry
from .utils.clock import Clock, utc_now
from .utils.poll_scheduler import PollScheduler

logger = logging.getLogger(__name__)


class StudyMateClient:
    """
    The on-device state of one signed-in user: chats, sessions and
    notifications. Build it once at startup and hand it to whatever needs it.
    """

    def __init__(
        self,
        store: DeviceStore,
        api: Optional[RemoteChatAPI] = None,
        settings: Settings = default_settings,
        current_user_id: Optional[str] = None,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.settings = settings
        self.tokens = TokenStore(store, settings.token_key)
        self.api = api if api is not None else HttpChatAPI(
            self.tokens, base_url=settings.api_base_url, timeout=settings.request_timeout
        )
        self.chats = ChatCache(store, settings.chats_key, current_user_id=current_user_id, clock=clock)
        self.chat_sync = ChatSyncService(self.chats, self.api, clock=clock)
        self.sessions = SessionRegistry(store, settings.sessions_key)
        self.notifications = NotificationFeed(
            self.api,
            store,
            self.tokens,
            key=settings.notifications_key,
            freshness_seconds=settings.notification_freshness_seconds,
            clock=clock,
        )
        self._pollers: List[PollScheduler] = []

    @property
    def current_user_id(self) -> Optional[str]:
        return self.chats.current_user_id

    @current_user_id.setter
    def current_user_id(self, user_id: Optional[str]):
        self.chats.current_user_id = user_id

    async def init(self):
        """Warm every cache from the device store."""
        await self.chats.load()
        await self.sessions.load()
        await self.notifications.load()
        logger.info("StudyMate caches loaded")

    async def schedule_session(self, session: StudySession, creator_name: str) -> Optional[ChatMessage]:
        """Register a study session and announce it in the group chat."""
        if not await self.sessions.create_session(session):
            return None

        announcement, _ = await self.chat_sync.send_message(
            session.group_id,
            sender_id=session.created_by,
            sender_name=creator_name,
            body=f"New study session: {session.title} at {session.scheduled_time}"
                 + (f" ({session.location})" if session.location else ""),
            kind=MessageKind.ANNOUNCEMENT,
        )
        return announcement

    def chat_poller(
        self, group_id: str, on_result: Optional[Callable[[Any], Any]] = None
    ) -> PollScheduler:
        poller = self.chat_sync.poller(group_id, on_result, interval=self.settings.chat_poll_interval)
        self._pollers.append(poller)
        return poller

    def notification_poller(
        self, on_result: Optional[Callable[[NotificationSnapshot], Any]] = None
    ) -> PollScheduler:
        poller = self.notifications.poller(on_result, interval=self.settings.notification_poll_interval)
        self._pollers.append(poller)
        return poller

    def stop_polling(self):
        for poller in self._pollers:
            poller.stop()
        self._pollers.clear()

    async def clear_all(self):
        """Logout: stop polling, drop every owned key and all in-memory state."""
        self.stop_polling()
        # each clear drops work still in flight for its key before removing it
        await self.chats.clear()
        await self.sessions.clear()
        await self.notifications.clear()
        await self.tokens.clear_token()
        logger.info("StudyMate caches cleared")

    async def close(self):
        self.stop_polling()
        close_api = getattr(self.api, "close", None)
        if close_api is not None:
            await close_api()
        disconnect = getattr(self.store, "disconnect", None)
        if disconnect is not None:
            await disconnect()


@asynccontextmanager
async def lifespan(
    settings: Settings = default_settings, current_user_id: Optional[str] = None
) -> AsyncIterator[StudyMateClient]:
    setup_logging(settings.log_level)
    logger.info(f"Starting StudyMate client {settings.app_version} ({settings.environment})")

    store = RedisDeviceStore(settings.redis_url)
    await store.connect()
    client = StudyMateClient(store, settings=settings, current_user_id=current_user_id)
    await client.init()

    try:
        yield client
    finally:
        logger.info("Shutting down StudyMate client")
        await client.close()
        logger.info("Shutdown complete")
