"""Message request/response schemas."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

SenderRole = Literal["doctor", "patient"]
LanguageCode = Literal["en", "es", "hi", "fr", "de", "pt", "zh", "ar"]


class MessageMetadata(BaseModel):
    """Known metadata fields; unknown keys are kept as extras."""

    model_config = ConfigDict(extra="allow", frozen=True)

    transcription_confidence: float | None = None
    translation_model: str | None = None
    error: str | None = None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MessageCreate(BaseModel):
    """Single message payload for persistence.

    ``id`` and ``created_at`` are optional so that an optimistic client entry
    can be persisted under the identity it was shown with.
    """

    id: str | None = Field(default=None, min_length=1, max_length=36)
    sender_role: SenderRole
    original_content: str = Field(min_length=1)
    translated_content: str | None = None
    audio_url: str | None = None
    language: LanguageCode
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)
    created_at: datetime | None = None

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value) if value is not None else None


class MessageUpdate(BaseModel):
    """Mutable message fields. Only fields explicitly set are applied."""

    translated_content: str | None = None
    audio_url: str | None = None
    metadata: MessageMetadata | None = None


class MessageRead(BaseModel):
    """Serialized message; snapshots hand these out read-only."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    conversation_id: str
    created_at: datetime
    sender_role: SenderRole
    original_content: str
    translated_content: str | None = None
    audio_url: str | None = None
    language: str
    metadata: MessageMetadata = Field(
        default_factory=MessageMetadata,
        validation_alias=AliasChoices("metadata_json", "metadata"),
    )

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def _default_metadata(cls, value: object) -> object:
        return {} if value is None else value
