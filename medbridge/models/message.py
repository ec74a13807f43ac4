"""Message ORM model."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from medbridge.models.base import Base, CreatedAtMixin


def _new_message_id() -> str:
    return str(uuid.uuid4())


class Message(Base, CreatedAtMixin):
    """Stored bilingual chat message."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_message_id)
    conversation_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    sender_role: Mapped[str] = mapped_column(String(16), nullable=False)
    original_content: Mapped[str] = mapped_column(Text, nullable=False)
    translated_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    language: Mapped[str] = mapped_column(String(8), nullable=False)
    # "metadata" is reserved on declarative classes.
    metadata_json: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)
