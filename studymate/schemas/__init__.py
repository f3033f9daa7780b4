from .api import ApiResult
from .chat import EPOCH, ChatMessage, GroupChat, MessageKind, Reaction
from .notification import (
    DirectMessageNotification,
    FriendAcceptedNotification,
    FriendRequestNotification,
    GenericNotification,
    JoinRequestNotification,
    Notification,
    NotificationSnapshot,
    NotificationType,
    RequestApprovedNotification,
    parse_notification,
)
from .session import StudySession

__all__ = [
    "ApiResult",
    "EPOCH",
    "ChatMessage",
    "GroupChat",
    "MessageKind",
    "Reaction",
    "DirectMessageNotification",
    "FriendAcceptedNotification",
    "FriendRequestNotification",
    "GenericNotification",
    "JoinRequestNotification",
    "Notification",
    "NotificationSnapshot",
    "NotificationType",
    "RequestApprovedNotification",
    "parse_notification",
    "StudySession",
]
