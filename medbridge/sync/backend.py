"""Persistence seam used by the client-side message store."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol

from sqlalchemy.orm import Session

from medbridge.schemas.message import MessageCreate, MessageRead
from medbridge.services import messages as message_service
from medbridge.services.realtime import ChangeFeed


class MessageBackend(Protocol):
    """Asynchronous CRUD over the message rows of one conversation."""

    async def fetch_all(self) -> list[MessageRead]:
        """Return every message ordered by ``created_at``."""

    async def fetch_recent(self, limit: int) -> list[MessageRead]:
        """Return the ``limit`` most recent messages, oldest first."""

    async def insert(self, message: MessageCreate) -> MessageRead:
        """Persist a message and return the stored row."""

    async def delete(self, message_id: str) -> None:
        """Delete one message; deleting an absent id is not an error."""

    async def delete_all(self) -> int:
        """Delete every message and return the number removed."""


class SqlMessageBackend:
    """``MessageBackend`` over the SQLAlchemy services, run in worker threads."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        conversation_id: str,
        *,
        feed: ChangeFeed | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.conversation_id = conversation_id
        self.feed = feed

    async def fetch_all(self) -> list[MessageRead]:
        return await asyncio.to_thread(self._fetch_all)

    async def fetch_recent(self, limit: int) -> list[MessageRead]:
        return await asyncio.to_thread(self._fetch_recent, limit)

    async def insert(self, message: MessageCreate) -> MessageRead:
        return await asyncio.to_thread(self._insert, message)

    async def delete(self, message_id: str) -> None:
        await asyncio.to_thread(self._delete, message_id)

    async def delete_all(self) -> int:
        return await asyncio.to_thread(self._delete_all)

    def _fetch_all(self) -> list[MessageRead]:
        with self.session_factory() as db:
            rows = message_service.list_messages(db, self.conversation_id)
            return [MessageRead.model_validate(row) for row in rows]

    def _fetch_recent(self, limit: int) -> list[MessageRead]:
        with self.session_factory() as db:
            rows = message_service.list_recent_messages(db, self.conversation_id, limit=limit)
            return [MessageRead.model_validate(row) for row in rows]

    def _insert(self, message: MessageCreate) -> MessageRead:
        with self.session_factory() as db:
            row = message_service.create_message(db, self.conversation_id, message, feed=self.feed)
            return MessageRead.model_validate(row)

    def _delete(self, message_id: str) -> None:
        with self.session_factory() as db:
            message_service.delete_message(db, self.conversation_id, message_id, feed=self.feed)

    def _delete_all(self) -> int:
        with self.session_factory() as db:
            return message_service.delete_all_messages(db, self.conversation_id, feed=self.feed)
