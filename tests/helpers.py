"""Shared builders for message fixtures."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from medbridge.models.base import Base
from medbridge.schemas.message import MessageCreate, MessageRead

CONVERSATION_ID = "consult-test-001"
BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


def make_message(
    *,
    minutes: float = 0,
    sender_role: str = "patient",
    original_content: str = "Tengo fiebre.",
    translated_content: str | None = "I have a fever.",
    language: str = "es",
    audio_url: str | None = None,
    message_id: str | None = None,
    created_at: datetime | None = None,
    conversation_id: str = CONVERSATION_ID,
) -> MessageRead:
    return MessageRead(
        id=message_id or f"msg-{next(_ids)}",
        conversation_id=conversation_id,
        created_at=created_at or BASE_TIME + timedelta(minutes=minutes),
        sender_role=sender_role,
        original_content=original_content,
        translated_content=translated_content,
        audio_url=audio_url,
        language=language,
    )


def make_sqlite_session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine, sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


class FakeBackend:
    """In-memory ``MessageBackend`` with switches for failures and gating."""

    def __init__(self, *, assign_ids: bool = False, conversation_id: str = CONVERSATION_ID) -> None:
        self.assign_ids = assign_ids
        self.conversation_id = conversation_id
        self.rows: dict[str, MessageRead] = {}
        self.fail_fetch = False
        self.fail_insert = False
        self.fail_delete = False
        self.insert_gate: asyncio.Event | None = None
        self.inserted: list[MessageRead] = []
        self.deleted: list[str] = []
        self.delete_all_calls = 0

    def next_server_id(self) -> str:
        """Peek the id the next insert will be assigned when ``assign_ids`` is set."""

        return f"srv-{len(self.inserted) + 1}"

    def seed(self, *messages: MessageRead) -> None:
        for message in messages:
            self.rows[message.id] = message

    async def fetch_all(self) -> list[MessageRead]:
        if self.fail_fetch:
            raise RuntimeError("database unavailable")
        return sorted(self.rows.values(), key=lambda message: message.created_at)

    async def fetch_recent(self, limit: int) -> list[MessageRead]:
        rows = await self.fetch_all()
        return rows[-limit:]

    async def insert(self, message: MessageCreate) -> MessageRead:
        if self.insert_gate is not None:
            await self.insert_gate.wait()
        if self.fail_insert:
            raise RuntimeError("insert rejected")
        message_id = self.next_server_id() if self.assign_ids else message.id
        stored = MessageRead(
            conversation_id=self.conversation_id,
            **message.model_dump(exclude={"id"}),
            id=message_id,
        )
        self.rows[stored.id] = stored
        self.inserted.append(stored)
        return stored

    async def delete(self, message_id: str) -> None:
        if self.fail_delete:
            raise RuntimeError("delete rejected")
        self.rows.pop(message_id, None)
        self.deleted.append(message_id)

    async def delete_all(self) -> int:
        self.delete_all_calls += 1
        if self.fail_delete:
            raise RuntimeError("delete rejected")
        removed = len(self.rows)
        self.rows.clear()
        return removed


async def wait_for(predicate: Callable[[], bool], *, timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the running loop until it holds or ``timeout`` elapses."""

    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.01)
