# studymate/services/chat/chat_sync.py
import logging
from typing import Any, Callable, Optional, Tuple
from uuid import uuid4

from .chat_cache import ChatCache, parse_messages
from ..remote_api import RemoteChatAPI
from ...core.config import settings
from ...schemas.api import ApiResult
from ...schemas.chat import ChatMessage, GroupChat, MessageKind, ensure_aware
from ...utils.clock import Clock, utc_now
from ...utils.poll_scheduler import PollScheduler, PollTick

logger = logging.getLogger(__name__)


def new_message_id() -> str:
    return f"msg_{uuid4().hex}"


class ChatSyncService:
    """Keeps a group's cached chat in step with the backend."""

    def __init__(self, cache: ChatCache, api: RemoteChatAPI, clock: Clock = utc_now):
        self.cache = cache
        self.api = api
        self._clock = clock

    async def send_message(
        self,
        group_id: str,
        sender_id: str,
        sender_name: str,
        body: str,
        kind: MessageKind = MessageKind.TEXT,
        media_ref: Optional[str] = None,
        file_name: Optional[str] = None,
    ) -> Tuple[ChatMessage, ApiResult]:
        """Append the message locally first, then send it. A failed send keeps the local copy."""
        message = ChatMessage(
            id=new_message_id(),
            group_id=group_id,
            sender_id=sender_id,
            sender_name=sender_name,
            body=body,
            kind=kind,
            created_at=ensure_aware(self._clock()),
            media_ref=media_ref,
            file_name=file_name,
        )
        await self.cache.append_message(group_id, message)

        result = await self.api.send_message(group_id, body, MessageKind(kind).value, client_id=message.id)
        if not result.success:
            logger.warning(f"Message {message.id} kept locally, send to group {group_id} failed: {result.error}")
        return message, result

    async def toggle_reaction(
        self, group_id: str, message_id: str, user_id: str, user_name: str, emoji: str
    ) -> Optional[bool]:
        present = await self.cache.toggle_reaction(group_id, message_id, user_id, user_name, emoji)
        if present is None:
            return None

        result = await self.api.toggle_reaction(group_id, message_id, emoji)
        if not result.success:
            logger.warning(f"Reaction {emoji} on {message_id} applied locally only: {result.error}")
        return present

    async def refresh_group(self, group_id: str, tick: Optional[PollTick] = None) -> GroupChat:
        """
        Fetch the group's messages and merge them into the cache.

        A failed fetch leaves the cache untouched. A response that arrives
        after the polling consumer went away, or after the cache was
        cleared, is dropped.
        """
        generation = self.cache.generation
        result = await self.api.list_messages(group_id)
        if not result.success:
            logger.warning(f"Refresh of group {group_id} failed: {result.error}")
            return await self.cache.get_chat(group_id)

        if tick is not None and tick.is_stale:
            logger.debug(f"Refresh of group {group_id} finished after its poller stopped, discarded")
            return await self.cache.get_chat(group_id)

        remote = parse_messages(group_id, result.data, source=f"group {group_id}")
        return await self.cache.replace_messages(group_id, remote, generation=generation)

    def poller(
        self,
        group_id: str,
        on_result: Optional[Callable[[GroupChat], Any]] = None,
        interval: Optional[float] = None,
    ) -> PollScheduler:
        async def poll(tick: PollTick) -> GroupChat:
            return await self.refresh_group(group_id, tick)

        return PollScheduler(
            poll,
            interval or settings.chat_poll_interval,
            on_result=on_result,
            name=f"chat-{group_id}",
        )
