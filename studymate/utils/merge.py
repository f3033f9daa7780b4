# studymate/utils/merge.py
"""Ordering and reconciliation helpers for group chat messages."""
import bisect
from typing import Iterable, List, Sequence

from ..schemas.chat import ChatMessage


def message_order_key(message: ChatMessage):
    """createdAt ascending, id as the deterministic tiebreak."""
    return message.sort_key


def dedupe_messages(messages: Iterable[ChatMessage]) -> List[ChatMessage]:
    """Drop repeated identifiers, keeping the first occurrence."""
    seen = set()
    unique = []
    for message in messages:
        if message.id in seen:
            continue
        seen.add(message.id)
        unique.append(message)
    return unique


def sort_messages(messages: Iterable[ChatMessage]) -> List[ChatMessage]:
    return sorted(dedupe_messages(messages), key=message_order_key)


def insert_message(messages: List[ChatMessage], message: ChatMessage) -> bool:
    """Insert into an already ordered list in place. False if the id is present."""
    if any(m.id == message.id for m in messages):
        return False
    keys = [m.sort_key for m in messages]
    messages.insert(bisect.bisect_right(keys, message.sort_key), message)
    return True


def merge_messages(local: Sequence[ChatMessage], remote: Sequence[ChatMessage]) -> List[ChatMessage]:
    """
    Reconcile the cached messages of one group with a freshly fetched list.

    The remote list is authoritative. Local messages survive only when the
    server has not seen them yet: id absent from ``remote`` and created
    strictly after the newest remote message. An empty ``remote`` keeps
    ``local`` as is. Applying the merge twice with the same ``remote`` gives
    the same result.
    """
    if not remote:
        return sort_messages(local)

    ordered_remote = sort_messages(remote)
    remote_ids = {m.id for m in ordered_remote}
    newest_remote = ordered_remote[-1].created_at

    tail = [
        m for m in local
        if m.id not in remote_ids and m.created_at > newest_remote
    ]
    return ordered_remote + sort_messages(tail)
