"""Adapter from a realtime push channel to ``MessageStore`` merges."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Protocol

from medbridge.exceptions import FetchError
from medbridge.schemas.events import ChangeEvent, ChannelStatus
from medbridge.sync.store import MessageStore

logger = logging.getLogger(__name__)


class PushChannel(Protocol):
    """Best-effort stream of change events and connection status transitions."""

    def events(self) -> AsyncIterator[ChangeEvent | ChannelStatus]:
        """Yield events in arrival order until the channel ends."""

    def close(self) -> None:
        """Stop delivering events."""


class RealtimeReconciler:
    """Feeds every inbound event into the store; holds no message state.

    Events carry no sequence numbers, so a gap after a disconnect cannot be
    detected. When the channel reports ``SUBSCRIBED`` again after a
    ``DISCONNECTED``, the store is reloaded from the backend instead.
    """

    def __init__(self, store: MessageStore, channel: PushChannel) -> None:
        self.store = store
        self.channel = channel
        self.events_applied = 0
        self.reloads = 0
        self._disconnected = False
        self._task: asyncio.Task[None] | None = None

    async def run(self) -> None:
        """Process the channel until it ends."""

        async for item in self.channel.events():
            if isinstance(item, ChannelStatus):
                await self._on_status(item)
                continue
            self.store.apply_remote_event(item)
            self.events_applied += 1

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name=f"reconciler:{self.store.conversation_id}")
        return self._task

    async def stop(self) -> None:
        self.channel.close()
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _on_status(self, status: ChannelStatus) -> None:
        logger.info(
            "realtime.status conversation_id=%s status=%s",
            self.store.conversation_id,
            status.value,
        )
        if status is ChannelStatus.DISCONNECTED:
            self._disconnected = True
            logger.warning("realtime.disconnected conversation_id=%s", self.store.conversation_id)
            return
        if status is ChannelStatus.SUBSCRIBED and self._disconnected:
            self._disconnected = False
            await self._heal()

    async def _heal(self) -> None:
        try:
            await self.store.initial_load()
        except FetchError:
            logger.warning(
                "realtime.reload_failed conversation_id=%s keeping_previous_snapshot=true",
                self.store.conversation_id,
            )
            return
        self.reloads += 1
