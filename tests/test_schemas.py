from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from studymate.schemas import (
    ChatMessage,
    DirectMessageNotification,
    FriendAcceptedNotification,
    GenericNotification,
    GroupChat,
    MessageKind,
    NotificationSnapshot,
    parse_notification,
)
from studymate.schemas.chat import EPOCH


def test_message_accepts_legacy_field_names():
    message = ChatMessage.model_validate({
        "id": 12,
        "groupId": "g1",
        "senderId": 5,
        "senderName": "Bo",
        "message": "see you there",
        "timestamp": "2024-03-01T12:00:00",
        "type": "image",
        "imageUri": "file:///a.jpg",
        "reactions": None,
    })

    assert message.id == "12"
    assert message.sender_id == "5"
    assert message.body == "see you there"
    assert message.kind == MessageKind.IMAGE
    assert message.media_ref == "file:///a.jpg"
    assert message.created_at == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert message.reactions == []


def test_message_serializes_with_camel_case_keys():
    message = ChatMessage(
        id="m1", group_id="g1", sender_id="u1", body="hi",
        created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )
    stored = message.to_store()
    assert stored["groupId"] == "g1"
    assert stored["kind"] == "text"
    assert stored["mediaRef"] is None
    assert ChatMessage.model_validate(stored) == message


def test_duplicate_reactions_collapse_in_canonical_order():
    message = ChatMessage.model_validate({
        "id": "m1", "groupId": "g1", "senderId": "u1", "createdAt": "2024-03-01T12:00:00Z",
        "reactions": [
            {"userId": "u2", "emoji": "🔥"},
            {"userId": "u1", "emoji": "👍"},
            {"userId": "u2", "emoji": "🔥"},
        ],
    })
    assert [(r.emoji, r.user_id) for r in message.reactions] == sorted({("🔥", "u2"), ("👍", "u1")})


def test_message_without_timestamp_is_rejected():
    with pytest.raises(ValidationError):
        ChatMessage.model_validate({"id": "m1", "groupId": "g1", "senderId": "u1"})


def test_group_chat_defaults_last_read_to_epoch():
    chat = GroupChat.model_validate({"groupId": "g1", "lastReadAt": None})
    assert chat.last_read_at == EPOCH
    assert chat.latest_created_at is None


def test_unread_excludes_own_messages():
    chat = GroupChat.model_validate({
        "groupId": "g1",
        "lastReadAt": "2024-03-01T12:00:00Z",
        "messages": [
            {"id": "a", "groupId": "g1", "senderId": "me", "createdAt": "2024-03-01T12:01:00Z"},
            {"id": "b", "groupId": "g1", "senderId": "u2", "createdAt": "2024-03-01T12:02:00Z"},
            {"id": "c", "groupId": "g1", "senderId": "u2", "createdAt": "2024-03-01T11:00:00Z"},
        ],
    })
    assert chat.unread_count("me") == 1
    assert chat.unread_count(None) == 2


def test_known_notification_types_get_typed_payloads():
    accepted = parse_notification({
        "id": 9, "type": "friend_request_accepted", "is_read": True,
        "data": {"friendId": 4, "friendName": "Dee"},
    })
    direct = parse_notification({
        "id": "d1", "type": "direct_message", "data": {"senderId": "u2"},
    })

    assert isinstance(accepted, FriendAcceptedNotification)
    assert accepted.id == "9"
    assert accepted.read is True
    assert accepted.data.user_id == "4"
    assert accepted.data.user_name == "Dee"
    assert isinstance(direct, DirectMessageNotification)
    assert direct.data.sender_id == "u2"


def test_friend_request_falls_back_to_notification_id():
    notification = parse_notification({"id": "n1", "type": "friend_request"})
    assert notification.request_id == "n1"


def test_unknown_type_is_kept_generically():
    notification = parse_notification({"id": "x", "type": "study_reminder", "data": {"sessionId": "s1"}})
    assert isinstance(notification, GenericNotification)
    assert notification.data == {"sessionId": "s1"}


def test_known_type_with_bad_payload_is_rejected():
    with pytest.raises(ValidationError):
        parse_notification({"id": "x", "type": "join_request", "data": {}})


def test_snapshot_counts_unread():
    snapshot = NotificationSnapshot(notifications=[
        parse_notification({"id": "a", "type": "other", "read": True}),
        parse_notification({"id": "b", "type": "other"}),
    ])
    assert snapshot.unread_count == 1
