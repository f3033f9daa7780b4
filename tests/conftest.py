import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from studymate.core.store import MemoryDeviceStore
from studymate.schemas.api import ApiResult
from studymate.schemas.chat import ChatMessage, MessageKind
from studymate.services.credentials import TokenStore

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: float) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


def make_message(
    message_id: str,
    minutes: float,
    group_id: str = "g1",
    sender_id: str = "u2",
    body: Optional[str] = None,
    kind: MessageKind = MessageKind.TEXT,
) -> ChatMessage:
    return ChatMessage(
        id=message_id,
        group_id=group_id,
        sender_id=sender_id,
        sender_name=f"User {sender_id}",
        body=body if body is not None else f"message {message_id}",
        kind=kind,
        created_at=at(minutes),
    )


class FakeClock:
    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeChatAPI:
    """RemoteChatAPI double that records calls and serves canned data."""

    def __init__(self):
        self.calls = []
        self.messages = {}
        self.notifications = []
        self.failing = set()
        self.gate: Optional[asyncio.Event] = None

    async def _respond(self, operation: str, data=None, *args) -> ApiResult:
        self.calls.append((operation, *args))
        if self.gate is not None:
            await self.gate.wait()
        if operation in self.failing:
            return ApiResult.failure(f"{operation} failed", status_code=500)
        return ApiResult.ok(data)

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    async def send_message(self, group_id, content, kind="text", client_id=None):
        return await self._respond("send_message", {"success": True}, group_id, content, kind, client_id)

    async def list_messages(self, group_id):
        return await self._respond("list_messages", list(self.messages.get(group_id, [])), group_id)

    async def toggle_reaction(self, group_id, message_id, emoji):
        return await self._respond("toggle_reaction", None, group_id, message_id, emoji)

    async def get_notifications(self):
        payload = {"notifications": [dict(n) for n in self.notifications]}
        return await self._respond("get_notifications", payload)

    async def mark_notification_read(self, notification_id):
        return await self._respond("mark_notification_read", None, notification_id)

    async def accept_friend_request(self, request_id):
        return await self._respond("accept_friend_request", None, request_id)

    async def reject_friend_request(self, request_id):
        return await self._respond("reject_friend_request", None, request_id)

    async def approve_join_request(self, group_id, user_id):
        return await self._respond("approve_join_request", None, group_id, user_id)

    async def reject_join_request(self, group_id, user_id):
        return await self._respond("reject_join_request", None, group_id, user_id)


@pytest.fixture
def store():
    return MemoryDeviceStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api():
    return FakeChatAPI()


@pytest.fixture
async def tokens(store):
    token_store = TokenStore(store)
    await token_store.set_token("test-token")
    return token_store
