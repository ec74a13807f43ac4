"""Realtime change event schemas."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, model_validator

from medbridge.schemas.message import MessageRead

EventKind = Literal["insert", "update", "delete"]


class ChannelStatus(str, Enum):
    """Connection state transitions reported by a push channel."""

    SUBSCRIBED = "subscribed"
    DISCONNECTED = "disconnected"
    CLOSED = "closed"


class ChangeEvent(BaseModel):
    """One insert/update/delete event for a message row.

    Insert and update events carry the full row. Delete events may carry only
    the id, since a deleted row is not always replicated in full.
    """

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    message_id: str
    message: MessageRead | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> ChangeEvent:
        if self.kind in ("insert", "update") and self.message is None:
            raise ValueError(f"{self.kind} events require a message payload")
        if self.message is not None and self.message.id != self.message_id:
            raise ValueError("message_id does not match payload id")
        return self

    @classmethod
    def insert(cls, message: MessageRead) -> ChangeEvent:
        return cls(kind="insert", message_id=message.id, message=message)

    @classmethod
    def update(cls, message: MessageRead) -> ChangeEvent:
        return cls(kind="update", message_id=message.id, message=message)

    @classmethod
    def delete(cls, message_id: str, message: MessageRead | None = None) -> ChangeEvent:
        return cls(kind="delete", message_id=message_id, message=message)

    def to_envelope(self) -> dict[str, Any]:
        """Return the ``{"type", "data"}`` wire envelope used by the WebSocket feed."""

        data: dict[str, Any] = {"id": self.message_id}
        if self.message is not None:
            data = self.message.model_dump(mode="json")
        return {"type": self.kind, "data": data}

    @classmethod
    def from_envelope(cls, envelope: dict[str, Any]) -> ChangeEvent:
        kind = envelope.get("type")
        data = envelope.get("data") or {}
        if kind == "delete" and set(data) == {"id"}:
            return cls.delete(str(data["id"]))
        message = MessageRead.model_validate(data)
        return cls(kind=kind, message_id=message.id, message=message)
