import pytest
from conftest import at, make_message

from studymate.schemas.chat import MessageKind
from studymate.services.chat import ChatCache, ChatSyncService
from studymate.utils.poll_scheduler import PollScheduler, PollTick


@pytest.fixture
def cache(store, clock):
    return ChatCache(store, current_user_id="me", clock=clock)


@pytest.fixture
def sync(cache, api, clock):
    return ChatSyncService(cache, api, clock=clock)


async def test_send_appends_before_calling_api(sync, cache, api):
    message, result = await sync.send_message("g1", "me", "Me", "hello")

    assert result.success
    assert message.id.startswith("msg_")
    assert message.created_at == at(0)
    assert [m.id for m in await cache.get_messages("g1")] == [message.id]
    assert api.calls == [("send_message", "g1", "hello", "text", message.id)]


async def test_failed_send_keeps_optimistic_message(sync, cache, api):
    api.failing.add("send_message")

    message, result = await sync.send_message("g1", "me", "Me", "offline hello")

    assert not result.success
    assert result.error == "send_message failed"
    assert [m.body for m in await cache.get_messages("g1")] == ["offline hello"]


async def test_send_carries_kind_and_media(sync, cache, api):
    message, _ = await sync.send_message(
        "g1", "me", "Me", "", kind=MessageKind.IMAGE, media_ref="file:///photo.jpg"
    )
    stored = (await cache.get_messages("g1"))[0]
    assert stored.kind == MessageKind.IMAGE
    assert stored.media_ref == "file:///photo.jpg"
    assert api.calls[0][3] == "image"


async def test_refresh_merges_remote_and_keeps_pending_send(sync, cache, api, clock):
    clock.now = at(10)
    mine, _ = await sync.send_message("g1", "me", "Me", "pending")
    api.messages["g1"] = [
        make_message("r1", 1).to_store(),
        {"id": 7, "senderId": 3, "senderName": "Cara", "message": "legacy", "timestamp": "2024-03-01T12:05:00Z"},
    ]

    chat = await sync.refresh_group("g1")

    assert [m.id for m in chat.messages] == ["r1", "7", mine.id]
    assert chat.messages[1].group_id == "g1"
    assert chat.messages[1].sender_id == "3"


async def test_refresh_skips_malformed_remote_messages(sync, api):
    api.messages["g1"] = [make_message("r1", 1).to_store(), {"id": "broken"}, "garbage"]
    chat = await sync.refresh_group("g1")
    assert [m.id for m in chat.messages] == ["r1"]


async def test_failed_refresh_leaves_cache_untouched(sync, cache, api, store):
    await cache.append_message("g1", make_message("m1", 1))
    before = store.data["group_chats"]
    api.failing.add("list_messages")

    chat = await sync.refresh_group("g1")

    assert [m.id for m in chat.messages] == ["m1"]
    assert store.data["group_chats"] == before


async def test_refresh_result_after_stop_is_discarded(sync, cache, api):
    await cache.append_message("g1", make_message("m1", 1))
    api.messages["g1"] = [make_message("r1", 5).to_store()]

    async def noop(tick):
        return None

    scheduler = PollScheduler(noop, 1.0)
    tick = PollTick(scheduler, scheduler.generation)

    chat = await sync.refresh_group("g1", tick)

    assert tick.is_stale
    assert [m.id for m in chat.messages] == ["m1"]
    assert api.count("list_messages") == 1


async def test_toggle_reaction_applies_locally_and_mirrors_remotely(sync, cache, api):
    await cache.append_message("g1", make_message("m1", 1))

    assert await sync.toggle_reaction("g1", "m1", "me", "Me", "👍") is True

    message = (await cache.get_messages("g1"))[0]
    assert message.has_reaction("me", "👍")
    assert api.calls == [("toggle_reaction", "g1", "m1", "👍")]


async def test_toggle_reaction_kept_when_remote_fails(sync, cache, api):
    await cache.append_message("g1", make_message("m1", 1))
    api.failing.add("toggle_reaction")

    assert await sync.toggle_reaction("g1", "m1", "me", "Me", "👍") is True
    assert (await cache.get_messages("g1"))[0].has_reaction("me", "👍")


async def test_toggle_reaction_on_unknown_message_skips_api(sync, api):
    assert await sync.toggle_reaction("g1", "missing", "me", "Me", "👍") is None
    assert api.calls == []


async def test_poller_uses_group_name_and_interval(sync):
    poller = sync.poller("g1", interval=0.5)
    assert poller.name == "chat-g1"
    assert poller.interval == 0.5
    assert not poller.is_running
