from .merge import dedupe_messages, insert_message, merge_messages, sort_messages
from .poll_scheduler import PollScheduler, PollTick
from .sync_metrics import SyncMetrics

__all__ = [
    "dedupe_messages",
    "insert_message",
    "merge_messages",
    "sort_messages",
    "PollScheduler",
    "PollTick",
    "SyncMetrics",
]
