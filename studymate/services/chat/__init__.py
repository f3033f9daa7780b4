from .chat_cache import ChatCache
from .chat_sync import ChatSyncService

__all__ = ["ChatCache", "ChatSyncService"]
