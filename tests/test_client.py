import asyncio

import pytest
from conftest import make_message

from studymate import StudyMateClient
from studymate.schemas.chat import MessageKind
from studymate.schemas.session import StudySession


@pytest.fixture
async def client(store, api, clock):
    client = StudyMateClient(store, api=api, current_user_id="me", clock=clock)
    await client.tokens.set_token("test-token")
    await client.init()
    return client


def make_session(session_id="s1", location="Library"):
    return StudySession(
        id=session_id,
        group_id="g1",
        title="Exam prep",
        scheduled_time="2024-03-02 18:00",
        location=location,
        created_by="me",
    )


async def test_scheduling_a_session_announces_it_in_the_group(client, api):
    announcement = await client.schedule_session(make_session(), "Me")

    assert announcement.kind == MessageKind.ANNOUNCEMENT
    assert announcement.body == "New study session: Exam prep at 2024-03-02 18:00 (Library)"
    assert [m.id for m in await client.chats.get_messages("g1")] == [announcement.id]
    assert [s.id for s in await client.sessions.get_sessions_for_group("g1")] == ["s1"]
    assert api.calls[-1][0] == "send_message"
    assert api.calls[-1][3] == "announcement"


async def test_announcement_omits_empty_location(client):
    announcement = await client.schedule_session(make_session(location=""), "Me")
    assert announcement.body == "New study session: Exam prep at 2024-03-02 18:00"


async def test_duplicate_session_is_not_announced_twice(client, api):
    await client.schedule_session(make_session(), "Me")
    assert await client.schedule_session(make_session(), "Me") is None
    assert api.count("send_message") == 1


async def test_own_announcement_is_not_unread(client):
    await client.schedule_session(make_session(), "Me")
    assert await client.chats.unread_count("g1") == 0


async def test_clear_all_removes_every_owned_key(client, store, api):
    await client.chats.append_message("g1", make_message("m1", 1))
    await client.schedule_session(make_session(), "Me")
    api.notifications = [{"id": "n1", "type": "friend_request"}]
    await client.notifications.refresh()
    poller = client.notification_poller()
    poller.start()

    await client.clear_all()

    assert not poller.is_running
    assert store.data == {}
    assert not await client.tokens.is_authenticated()
    assert (await client.chats.get_chat("g1")).messages == []
    assert await client.sessions.get_session("s1") is None
    assert (await client.notifications.load()).notifications == []


async def test_clear_all_leaves_foreign_keys(client, store):
    store.data["unrelated"] = "keep"
    await client.clear_all()
    assert store.data == {"unrelated": "keep"}


async def test_current_user_id_drives_unread_counts(client):
    await client.chats.append_message("g1", make_message("m1", 1, sender_id="u2"))
    assert await client.chats.unread_count("g1") == 1

    client.current_user_id = "u2"
    assert await client.chats.unread_count("g1") == 0


async def wait_for_call(api, operation):
    while not api.count(operation):
        await asyncio.sleep(0)


async def test_logout_during_notification_refresh_keeps_store_clean(client, store, api):
    api.notifications = [{"id": "n1", "type": "direct_message", "data": {"senderId": "u2"}}]
    api.gate = asyncio.Event()
    pending = asyncio.create_task(client.notifications.refresh())
    await wait_for_call(api, "get_notifications")

    await client.clear_all()
    api.gate.set()
    snapshot = await pending

    assert snapshot.notifications == []
    assert "notifications_cache" not in store.data
    assert (await client.notifications.load()).notifications == []


async def test_logout_during_chat_refresh_keeps_store_clean(client, store, api):
    api.messages["g1"] = [make_message("r1", 1).to_store()]
    api.gate = asyncio.Event()
    pending = asyncio.create_task(client.chat_sync.refresh_group("g1"))
    await wait_for_call(api, "list_messages")

    await client.clear_all()
    api.gate.set()
    chat = await pending

    assert chat.messages == []
    assert "group_chats" not in store.data
    assert (await client.chats.get_chat("g1")).messages == []
