from .chat import ChatCache, ChatSyncService
from .credentials import TokenStore
from .notification_feed import NotificationFeed
from .remote_api import HttpChatAPI, RemoteChatAPI
from .session_registry import SessionRegistry

__all__ = [
    "ChatCache",
    "ChatSyncService",
    "TokenStore",
    "NotificationFeed",
    "HttpChatAPI",
    "RemoteChatAPI",
    "SessionRegistry",
]
