"""Pure reducer merging change events into an ordered message snapshot.

A snapshot is a tuple of ``MessageRead`` kept non-decreasing by
``created_at`` with exactly one entry per ``id``. Every function here returns
a new tuple (or the same tuple object when nothing changed) and never touches
the network, so the merge rules can be tested in isolation.
"""

from __future__ import annotations

import logging
from bisect import bisect_right

from medbridge.schemas.events import ChangeEvent
from medbridge.schemas.message import MessageRead

logger = logging.getLogger(__name__)

Snapshot = tuple[MessageRead, ...]

MUTABLE_FIELDS: tuple[str, ...] = ("translated_content", "audio_url", "metadata")


def sort_messages(messages: list[MessageRead] | Snapshot) -> Snapshot:
    """Return messages ordered by ``created_at``, keeping the last entry per id."""

    by_id: dict[str, MessageRead] = {}
    for message in messages:
        by_id[message.id] = message
    # sorted() is stable, so equal timestamps keep their first-seen order.
    return tuple(sorted(by_id.values(), key=lambda message: message.created_at))


def index_of(snapshot: Snapshot, message_id: str) -> int | None:
    for idx, message in enumerate(snapshot):
        if message.id == message_id:
            return idx
    return None


def insert_message(snapshot: Snapshot, message: MessageRead) -> Snapshot:
    """Insert ``message`` at its sorted position; no-op when its id is present."""

    if index_of(snapshot, message.id) is not None:
        return snapshot
    position = bisect_right(snapshot, message.created_at, key=lambda item: item.created_at)
    return snapshot[:position] + (message,) + snapshot[position:]


def update_message(snapshot: Snapshot, message: MessageRead) -> Snapshot:
    """Apply the mutable fields of ``message`` to the existing entry.

    Updates for an id that is not in the snapshot are dropped: without
    sequence numbers there is no way to tell a late update from one whose
    insert was missed, and a reload on reconnect heals the latter.
    """

    idx = index_of(snapshot, message.id)
    if idx is None:
        logger.warning("store.update_for_absent_id message_id=%s dropped=true", message.id)
        return snapshot
    current = snapshot[idx]
    changes = {
        field: getattr(message, field)
        for field in MUTABLE_FIELDS
        if getattr(message, field) != getattr(current, field)
    }
    if not changes:
        return snapshot
    return snapshot[:idx] + (current.model_copy(update=changes),) + snapshot[idx + 1 :]


def remove_message(snapshot: Snapshot, message_id: str) -> Snapshot:
    idx = index_of(snapshot, message_id)
    if idx is None:
        return snapshot
    return snapshot[:idx] + snapshot[idx + 1 :]


def apply_event(snapshot: Snapshot, event: ChangeEvent) -> Snapshot:
    """Return the snapshot after ``event``; applying the same event twice is a no-op."""

    if event.kind == "insert":
        return insert_message(snapshot, event.message)
    if event.kind == "update":
        return update_message(snapshot, event.message)
    return remove_message(snapshot, event.message_id)
