"""Client-side message store reconciling optimistic writes with remote events."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterator
from datetime import datetime, timezone

from medbridge.exceptions import FetchError, PersistenceError
from medbridge.schemas.events import ChangeEvent
from medbridge.schemas.message import MessageCreate, MessageMetadata, MessageRead
from medbridge.sync import reducer
from medbridge.sync.backend import MessageBackend
from medbridge.sync.reducer import Snapshot

logger = logging.getLogger(__name__)

Listener = Callable[[Snapshot], None]


class MessageStore:
    """Canonical ordered set of messages for one conversation.

    The store is the only mutator of message state. It is meant to be driven
    from a single event loop: local operations and remote events interleave
    at ``await`` points, and convergence relies solely on ``id``-keyed merging.
    Consumers read ``snapshot`` or register a listener with ``subscribe``.
    """

    def __init__(self, backend: MessageBackend, conversation_id: str) -> None:
        self.backend = backend
        self.conversation_id = conversation_id
        self._snapshot: Snapshot = ()
        self._listeners: list[Listener] = []
        self._unsent: set[str] = set()
        # Provisional entries whose backend insert has not returned yet.
        self._pending: dict[str, MessageRead] = {}
        self.loaded = False

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def unsent_ids(self) -> frozenset[str]:
        """Ids of optimistic entries whose persistence failed."""

        return frozenset(self._unsent)

    def __len__(self) -> int:
        return len(self._snapshot)

    def __iter__(self) -> Iterator[MessageRead]:
        return iter(self._snapshot)

    def get(self, message_id: str) -> MessageRead | None:
        idx = reducer.index_of(self._snapshot, message_id)
        return None if idx is None else self._snapshot[idx]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for snapshot changes; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def initial_load(self) -> Snapshot:
        """Replace the store contents with the backend's current rows.

        Local entries the backend has not confirmed (unsent or still being
        inserted) are merged back in, so a reload never hides them.
        """

        try:
            rows = await self.backend.fetch_all()
        except Exception as exc:
            logger.exception("store.initial_load_failed conversation_id=%s", self.conversation_id)
            raise FetchError(f"Failed to fetch messages: {exc}") from exc
        self._commit(self._merge_unconfirmed(reducer.sort_messages(rows)))
        self.loaded = True
        logger.info(
            "store.initial_load conversation_id=%s messages=%d",
            self.conversation_id,
            len(self._snapshot),
        )
        return self._snapshot

    async def add(
        self,
        sender_role: str,
        original_content: str,
        translated_content: str | None,
        language: str,
        audio_url: str | None = None,
        *,
        metadata: MessageMetadata | None = None,
    ) -> MessageRead:
        """Insert a message optimistically, then persist it.

        The entry is visible to listeners before the backend round-trip
        starts. Raises ``PersistenceError`` if persisting fails; the entry is
        then kept and reported through ``unsent_ids``.
        """

        draft = MessageCreate(
            id=str(uuid.uuid4()),
            sender_role=sender_role,
            original_content=original_content,
            translated_content=translated_content,
            audio_url=audio_url or None,
            language=language,
            metadata=metadata or MessageMetadata(),
            created_at=datetime.now(timezone.utc),
        )
        provisional = MessageRead(conversation_id=self.conversation_id, **draft.model_dump())
        self._pending[provisional.id] = provisional
        self._commit(reducer.insert_message(self._snapshot, provisional))

        try:
            stored = await self.backend.insert(draft)
        except Exception as exc:
            if self._pending.pop(provisional.id, None) is not None and self.get(provisional.id) is not None:
                self._unsent.add(provisional.id)
            logger.exception(
                "store.add_persist_failed conversation_id=%s message_id=%s",
                self.conversation_id,
                provisional.id,
            )
            raise PersistenceError(f"Failed to persist message: {exc}") from exc

        self._reconcile_persisted(provisional, stored)
        return stored

    def retract(self, message_id: str) -> bool:
        """Drop an unsent optimistic entry locally; returns whether one was removed."""

        if message_id not in self._unsent:
            return False
        self._unsent.discard(message_id)
        self._commit(reducer.remove_message(self._snapshot, message_id))
        return True

    async def delete(self, message_id: str) -> None:
        """Remove a message locally and on the backend.

        The local removal stands even if the backend delete fails.
        """

        self._unsent.discard(message_id)
        self._pending.pop(message_id, None)
        self._commit(reducer.remove_message(self._snapshot, message_id))
        try:
            await self.backend.delete(message_id)
        except Exception as exc:
            logger.exception(
                "store.delete_failed conversation_id=%s message_id=%s",
                self.conversation_id,
                message_id,
            )
            raise PersistenceError(f"Failed to delete message: {exc}") from exc

    async def clear(self) -> None:
        """Empty the store and request a bulk delete.

        The store stays cleared when the backend fails; the failure is raised.
        """

        self._unsent.clear()
        self._pending.clear()
        self._commit(())
        try:
            removed = await self.backend.delete_all()
        except Exception as exc:
            logger.exception("store.clear_failed conversation_id=%s", self.conversation_id)
            raise PersistenceError(f"Failed to clear messages: {exc}") from exc
        logger.info("store.cleared conversation_id=%s removed=%d", self.conversation_id, removed)

    def apply_remote_event(self, event: ChangeEvent) -> None:
        """Merge one pushed event; duplicates and reordering are tolerated."""

        if event.message is not None and event.message.conversation_id != self.conversation_id:
            logger.debug(
                "store.foreign_event_ignored conversation_id=%s event_conversation_id=%s",
                self.conversation_id,
                event.message.conversation_id,
            )
            return
        if event.kind == "delete":
            self._unsent.discard(event.message_id)
            self._pending.pop(event.message_id, None)
        elif event.kind == "insert":
            # The server echo proves the row was persisted.
            self._unsent.discard(event.message_id)
        self._commit(reducer.apply_event(self._snapshot, event))

    def _merge_unconfirmed(self, fetched: Snapshot) -> Snapshot:
        snapshot = fetched
        for message_id in list(self._unsent) + list(self._pending):
            if reducer.index_of(fetched, message_id) is not None:
                self._unsent.discard(message_id)
                continue
            local = self.get(message_id)
            if local is not None:
                snapshot = reducer.insert_message(snapshot, local)
        return snapshot

    def _reconcile_persisted(self, provisional: MessageRead, stored: MessageRead) -> None:
        if self._pending.pop(provisional.id, None) is None:
            # Deleted (remotely or locally) or cleared while the insert was in flight.
            return
        if stored.id == provisional.id:
            # An entry already present is the provisional row, its echo or a
            # later update, all at least as new as the insert result.
            self._commit(reducer.insert_message(self._snapshot, stored))
            return
        # Backend assigned its own id: swap the provisional entry for the row,
        # unless the insert echo already delivered it.
        if reducer.index_of(self._snapshot, provisional.id) is None:
            return
        logger.debug(
            "store.id_reconciled provisional_id=%s stored_id=%s",
            provisional.id,
            stored.id,
        )
        snapshot = reducer.remove_message(self._snapshot, provisional.id)
        self._commit(reducer.insert_message(snapshot, stored))

    def _commit(self, snapshot: Snapshot) -> None:
        if snapshot is self._snapshot:
            return
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("store.listener_failed conversation_id=%s", self.conversation_id)
