# studymate/services/chat/chat_cache.py
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..base_service import BaseStoreService
from ...core.config import settings
from ...core.store import DeviceStore
from ...schemas.chat import ChatMessage, GroupChat, ensure_aware
from ...utils.clock import Clock, utc_now
from ...utils.merge import insert_message, merge_messages, sort_messages

logger = logging.getLogger(__name__)


def parse_messages(group_id: str, items: Any, source: str = "") -> List[ChatMessage]:
    """Validate raw message records one by one, skipping the malformed ones."""
    if items is None:
        return []
    if not isinstance(items, list):
        logger.warning(f"Expected a message list for {source or group_id}, got {type(items).__name__}")
        return []

    messages = []
    for item in items:
        if isinstance(item, dict):
            item = {"groupId": group_id, **item}
        try:
            messages.append(ChatMessage.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed message from {source or group_id}: {e.error_count()} error(s)")
    return messages


class ChatCache(BaseStoreService[GroupChat]):
    """
    On-device ledger of every group chat, persisted as one JSON map under a
    single key.

    The collection is read lazily on first use and kept in memory for the
    life of the process. Every mutation changes the in-memory state without
    suspending and then rewrites the whole map, so two mutations never
    interleave inside a read-modify-write.
    """

    def __init__(
        self,
        store: DeviceStore,
        key: Optional[str] = None,
        current_user_id: Optional[str] = None,
        clock: Clock = utc_now,
    ):
        super().__init__(GroupChat, store, key or settings.chats_key)
        self.current_user_id = current_user_id
        self._clock = clock
        self._chats: Optional[Dict[str, GroupChat]] = None

    async def load(self) -> Dict[str, GroupChat]:
        while self._chats is None:
            generation = self._generation
            raw = await self._read_json()
            # another caller may have finished loading, or the cache was reset, while we were reading
            if self._chats is None and generation == self._generation:
                self._chats = self._parse_chats(raw)
        return self._chats

    def _parse_chats(self, raw) -> Dict[str, GroupChat]:
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            logger.warning(f"Expected a map under '{self.key}', got {type(raw).__name__}")
            return {}

        chats = {}
        for group_id, item in raw.items():
            if isinstance(item, dict):
                item = {"groupId": group_id, **item}
            raw_messages = item.pop("messages", None) if isinstance(item, dict) else None
            try:
                chat = GroupChat.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Dropping unreadable chat for group {group_id}: {e.error_count()} error(s)")
                continue
            messages = parse_messages(chat.group_id, raw_messages, source=f"cached group {group_id}")
            chat.messages = sort_messages(m for m in messages if m.group_id == chat.group_id)
            chats[group_id] = chat
        return chats

    def _dump(self) -> dict:
        return {group_id: chat.to_store() for group_id, chat in (self._chats or {}).items()}

    async def _persist(self) -> bool:
        return await self._write_json(self._dump)

    async def _chat_for_update(self, group_id: str) -> GroupChat:
        chats = await self.load()
        if group_id not in chats:
            chats[group_id] = GroupChat(group_id=group_id)
        return chats[group_id]

    async def get_chat(self, group_id: str) -> GroupChat:
        """Cached chat for the group, or an empty one. Never fails."""
        chats = await self.load()
        chat = chats.get(group_id)
        if chat is None:
            return GroupChat(group_id=group_id)
        return chat.model_copy(deep=True)

    async def get_messages(self, group_id: str) -> List[ChatMessage]:
        return (await self.get_chat(group_id)).messages

    async def group_ids(self) -> List[str]:
        return list((await self.load()).keys())

    async def append_message(self, group_id: str, message: ChatMessage):
        """
        Optimistic local write of a fully populated message.

        Raises ValueError when ``message.group_id`` is not ``group_id``; that
        is a bug in the caller, not a runtime condition to recover from.
        """
        if message.group_id != group_id:
            raise ValueError(f"Message {message.id} belongs to group {message.group_id}, not {group_id}")

        chat = await self._chat_for_update(group_id)
        if not insert_message(chat.messages, message.model_copy(deep=True)):
            logger.debug(f"Message {message.id} already cached for group {group_id}")
            return
        await self._persist()

    async def replace_messages(
        self, group_id: str, remote: Sequence[ChatMessage], generation: Optional[int] = None
    ) -> GroupChat:
        """
        Bulk replace from a fetched server list, keeping sends the server has not seen yet.

        ``generation`` is the cache generation the fetch started under; if the
        cache was cleared since, the fetched list is dropped.
        """
        if generation is None:
            generation = self._generation
        foreign = [m.id for m in remote if m.group_id != group_id]
        if foreign:
            logger.warning(f"Ignoring {len(foreign)} fetched message(s) not belonging to group {group_id}")
        remote = [m.model_copy(deep=True) for m in remote if m.group_id == group_id]

        chat = await self._chat_for_update(group_id)
        if generation != self._generation:
            logger.debug(f"Chat cache cleared while refreshing group {group_id}, fetched messages dropped")
            return await self.get_chat(group_id)
        chat.messages = merge_messages(chat.messages, remote)
        await self._persist()
        return chat.model_copy(deep=True)

    async def toggle_reaction(
        self, group_id: str, message_id: str, user_id: str, user_name: str, emoji: str
    ) -> Optional[bool]:
        """
        Add the reaction, or remove it if this user already reacted with this
        emoji. Returns whether the reaction is now present, or None when the
        message is not cached.
        """
        chats = await self.load()
        chat = chats.get(group_id)
        message = chat.find_message(message_id) if chat else None
        if message is None:
            return None

        present = message.toggle_reaction(user_id, user_name, emoji)
        await self._persist()
        return present

    async def mark_read(self, group_id: str):
        """Everything currently in the chat becomes read; lastReadAt never moves backward."""
        chat = await self._chat_for_update(group_id)
        candidates = [ensure_aware(self._clock()), chat.last_read_at]
        if chat.latest_created_at is not None:
            candidates.append(chat.latest_created_at)
        chat.last_read_at = max(candidates)
        await self._persist()

    async def unread_count(self, group_id: str) -> int:
        chats = await self.load()
        chat = chats.get(group_id)
        return chat.unread_count(self.current_user_id) if chat else 0

    async def total_unread(self) -> int:
        chats = await self.load()
        return sum(chat.unread_count(self.current_user_id) for chat in chats.values())

    def reset(self):
        """Forget the in-memory copy; the next read goes back to the store."""
        self._bump_generation()
        self._chats = None

    async def clear(self):
        self._bump_generation()
        self._chats = {}
        await self._remove()
