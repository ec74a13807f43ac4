"""Message persistence services.

Every write commits first and then publishes the matching change event, so
subscribers never see an event for a row that was rolled back.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from medbridge.models.message import Message
from medbridge.schemas.events import ChangeEvent
from medbridge.schemas.message import MessageCreate, MessageRead, MessageUpdate
from medbridge.services.realtime import ChangeFeed


def create_message(
    db: Session,
    conversation_id: str,
    message_input: MessageCreate,
    *,
    feed: ChangeFeed | None = None,
) -> Message:
    """Persist one message, keeping a client-supplied id and timestamp when given."""

    message = _build_message(conversation_id, message_input)
    db.add(message)
    db.commit()
    db.refresh(message)
    if feed is not None:
        feed.publish(conversation_id, ChangeEvent.insert(MessageRead.model_validate(message)))
    return message


def create_messages_batch(
    db: Session,
    conversation_id: str,
    message_inputs: list[MessageCreate],
    *,
    feed: ChangeFeed | None = None,
) -> list[Message]:
    """Persist a batch of messages in one transaction."""

    created: list[Message] = []
    for message_input in message_inputs:
        message = _build_message(conversation_id, message_input)
        db.add(message)
        created.append(message)
    db.commit()
    for message in created:
        db.refresh(message)
        if feed is not None:
            feed.publish(conversation_id, ChangeEvent.insert(MessageRead.model_validate(message)))
    return created


def list_messages(db: Session, conversation_id: str) -> list[Message]:
    """Return messages for a conversation ordered deterministically."""

    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return list(db.scalars(stmt).all())


def list_recent_messages(db: Session, conversation_id: str, *, limit: int = 20) -> list[Message]:
    """Return the ``limit`` most recent messages, oldest first."""

    stmt = (
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(max(1, limit))
    )
    return list(reversed(db.scalars(stmt).all()))


def get_message(db: Session, conversation_id: str, message_id: str) -> Message | None:
    stmt = select(Message).where(Message.conversation_id == conversation_id, Message.id == message_id)
    return db.scalars(stmt).first()


def update_message(
    db: Session,
    conversation_id: str,
    message_id: str,
    changes: MessageUpdate,
    *,
    feed: ChangeFeed | None = None,
) -> Message | None:
    """Apply the explicitly set mutable fields; returns None when the row is absent."""

    message = get_message(db, conversation_id, message_id)
    if message is None:
        return None
    if "translated_content" in changes.model_fields_set:
        message.translated_content = changes.translated_content
    if "audio_url" in changes.model_fields_set:
        message.audio_url = changes.audio_url
    if "metadata" in changes.model_fields_set:
        metadata = changes.metadata.model_dump(exclude_none=True) if changes.metadata else {}
        message.metadata_json = metadata
    db.commit()
    db.refresh(message)
    if feed is not None:
        feed.publish(conversation_id, ChangeEvent.update(MessageRead.model_validate(message)))
    return message


def delete_message(
    db: Session,
    conversation_id: str,
    message_id: str,
    *,
    feed: ChangeFeed | None = None,
) -> bool:
    """Delete one message; returns whether a row was removed."""

    message = get_message(db, conversation_id, message_id)
    if message is None:
        return False
    snapshot = MessageRead.model_validate(message)
    db.delete(message)
    db.commit()
    if feed is not None:
        feed.publish(conversation_id, ChangeEvent.delete(message_id, snapshot))
    return True


def delete_all_messages(db: Session, conversation_id: str, *, feed: ChangeFeed | None = None) -> int:
    """Delete every message of a conversation and return the number removed."""

    removed_ids = list(db.scalars(select(Message.id).where(Message.conversation_id == conversation_id)))
    if not removed_ids:
        return 0
    db.execute(delete(Message).where(Message.conversation_id == conversation_id))
    db.commit()
    if feed is not None:
        for message_id in removed_ids:
            feed.publish(conversation_id, ChangeEvent.delete(message_id))
    return len(removed_ids)


def _build_message(conversation_id: str, message_input: MessageCreate) -> Message:
    message = Message(
        conversation_id=conversation_id,
        sender_role=message_input.sender_role,
        original_content=message_input.original_content,
        translated_content=message_input.translated_content,
        audio_url=message_input.audio_url,
        language=message_input.language,
        metadata_json=message_input.metadata.model_dump(exclude_none=True),
        created_at=message_input.created_at or datetime.now(timezone.utc),
    )
    if message_input.id:
        message.id = message_input.id
    return message
