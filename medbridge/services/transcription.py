"""Speech-to-text for recorded audio messages."""

from __future__ import annotations

import logging

from medbridge.config import get_settings
from medbridge.constants import is_supported_language
from medbridge.exceptions import InvalidInputError
from medbridge.services.ai_client import AIClientError, TranscriptionClient, get_default_ai_client

logger = logging.getLogger(__name__)


class TranscriptionError(AIClientError):
    """Raised when transcription fails upstream."""


class AudioTooLargeError(InvalidInputError):
    """Audio payload exceeds the provider's upload limit."""


def validate_audio(audio: bytes) -> None:
    """Reject empty or oversized audio before anything is sent out."""

    max_bytes = get_settings().max_audio_bytes
    if not audio:
        raise InvalidInputError("Audio file is required.")
    if len(audio) > max_bytes:
        raise AudioTooLargeError(f"Audio file too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")


def transcribe_audio(
    audio: bytes,
    language: str = "en",
    *,
    client: TranscriptionClient | None = None,
) -> str:
    """Transcribe audio; English is passed as a hint, other languages are auto-detected."""

    validate_audio(audio)
    if not is_supported_language(language):
        raise InvalidInputError(f"Invalid language code: {language!r}")

    settings = get_settings()
    try:
        text = (client or get_default_ai_client()).transcribe(
            audio,
            filename="audio.webm",
            model=settings.transcription_model,
            language="en" if language == "en" else None,
        )
    except AIClientError as exc:
        logger.warning("transcription.failed language=%s bytes=%d error=%s", language, len(audio), exc.message)
        raise TranscriptionError(f"Transcription failed: {exc.message}") from exc
    if not text:
        raise TranscriptionError("Transcription returned no text.")
    return text
