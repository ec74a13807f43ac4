"""Chat session orchestration for one viewer of a conversation."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from medbridge.config import get_settings
from medbridge.constants import SENDER_ROLES, is_supported_language
from medbridge.exceptions import FetchError, InvalidInputError, ServiceError
from medbridge.schemas.history import HistoryGroup, HistoryStats
from medbridge.schemas.message import MessageMetadata, MessageRead
from medbridge.schemas.search import SearchResult
from medbridge.schemas.summary import MedicalSummary
from medbridge.services.ai_client import ChatCompletionClient, TranscriptionClient
from medbridge.services.storage import ObjectStore, get_default_object_store
from medbridge.services.summary import generate_medical_summary, summary_output_language
from medbridge.services.transcription import transcribe_audio, validate_audio
from medbridge.services.translation import translate_text
from medbridge.sync.requests import RequestLine, RequestToken
from medbridge.sync.store import MessageStore
from medbridge.views.content import DisplayContent, select_content
from medbridge.views.history import group_history, history_stats
from medbridge.views.search import search_messages

logger = logging.getLogger(__name__)

TRANSLATION_CONTEXT = "medical"
UNTRANSLATED_NOTICE = "Translation failed. Message sent without translation."


@dataclass(frozen=True, slots=True)
class SendOutcome:
    """Result of a send; ``superseded`` means a newer send replaced this one."""

    message: MessageRead | None = None
    notice: str | None = None
    superseded: bool = False


class ChatSession:
    """Sends, summaries and derived views for one viewer role.

    Text and audio sends share one request line: starting a send supersedes
    any send still in flight, whose result is then discarded instead of
    reaching the store.
    """

    def __init__(
        self,
        store: MessageStore,
        *,
        viewer_role: str = "doctor",
        patient_language: str | None = None,
        chat_client: ChatCompletionClient | None = None,
        transcription_client: TranscriptionClient | None = None,
        object_store: ObjectStore | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.viewer_role = viewer_role
        self.patient_language = patient_language or settings.default_patient_language
        self.chat_client = chat_client
        self.transcription_client = transcription_client
        self.object_store = object_store
        self.send_line = RequestLine("send")
        self.summary_line = RequestLine("summary")

    @property
    def source_language(self) -> str:
        return get_settings().doctor_language if self.viewer_role == "doctor" else self.patient_language

    @property
    def target_language(self) -> str:
        return self.patient_language if self.viewer_role == "doctor" else get_settings().doctor_language

    @property
    def is_sending(self) -> bool:
        return self.send_line.busy

    async def send_message(self, text: str) -> SendOutcome:
        """Translate and add a typed message.

        A translation failure degrades to a message whose
        translation equals the original, reported through ``notice``.
        ``PersistenceError`` from the store propagates.
        """

        content = self._validate_text(text)
        token = self.send_line.begin()
        try:
            translated, notice, metadata = await self._translate(content)
            if not self.send_line.is_current(token):
                return self._superseded(token)
            message = await self.store.add(
                self.viewer_role,
                content,
                translated,
                self.source_language,
                metadata=metadata,
            )
            return SendOutcome(message=message, notice=notice)
        finally:
            self.send_line.finish(token)

    async def send_audio(self, audio: bytes) -> SendOutcome:
        """Upload, transcribe, translate and add a recorded message."""

        validate_audio(audio)
        self._validate_languages()
        token = self.send_line.begin()
        try:
            object_store = self.object_store or get_default_object_store()
            name = f"{self.viewer_role}-{int(time.time() * 1000)}.webm"
            audio_url = await asyncio.to_thread(object_store.put, audio, name)
            if not self.send_line.is_current(token):
                return self._superseded(token)

            transcript = await asyncio.to_thread(
                transcribe_audio,
                audio,
                self.source_language,
                client=self.transcription_client,
            )
            if not self.send_line.is_current(token):
                return self._superseded(token)

            translated, notice, metadata = await self._translate(transcript)
            if not self.send_line.is_current(token):
                return self._superseded(token)
            message = await self.store.add(
                self.viewer_role,
                transcript,
                translated,
                self.source_language,
                audio_url,
                metadata=metadata,
            )
            return SendOutcome(message=message, notice=notice)
        finally:
            self.send_line.finish(token)

    async def generate_summary(self) -> MedicalSummary | None:
        """Summarize recent messages; returns None when a newer request superseded this one.

        There is no degraded summary: ``ServiceError`` propagates so the
        caller can retry.
        """

        token = self.summary_line.begin()
        try:
            limit = get_settings().summary_message_limit
            try:
                recent = await self.store.backend.fetch_recent(limit)
            except Exception as exc:
                logger.exception("session.summary_fetch_failed conversation_id=%s", self.store.conversation_id)
                raise FetchError(f"Failed to get recent messages: {exc}") from exc
            summary = await asyncio.to_thread(
                generate_medical_summary,
                recent,
                summary_output_language(self.viewer_role, self.patient_language),
                client=self.chat_client,
            )
            if not self.summary_line.is_current(token):
                logger.info("session.summary_superseded conversation_id=%s", self.store.conversation_id)
                return None
            return summary
        finally:
            self.summary_line.finish(token)

    def close(self) -> None:
        """Supersede in-flight sends and summaries; their results are discarded."""

        self.send_line.cancel()
        self.summary_line.cancel()
        logger.info("session.closed conversation_id=%s role=%s", self.store.conversation_id, self.viewer_role)

    def display(self, message: MessageRead) -> DisplayContent:
        return select_content(message, self.viewer_role)

    def search(self, query: str) -> list[SearchResult]:
        return search_messages(self.store.snapshot, query)

    def history(self) -> tuple[list[HistoryGroup], HistoryStats]:
        snapshot = self.store.snapshot
        return group_history(snapshot), history_stats(snapshot)

    async def _translate(self, content: str) -> tuple[str, str | None, MessageMetadata]:
        settings = get_settings()
        try:
            translated = await asyncio.to_thread(
                translate_text,
                content,
                self.source_language,
                self.target_language,
                context=TRANSLATION_CONTEXT,
                client=self.chat_client,
            )
        except ServiceError as exc:
            logger.warning(
                "session.send_untranslated conversation_id=%s role=%s error=%s",
                self.store.conversation_id,
                self.viewer_role,
                exc.message,
            )
            return content, UNTRANSLATED_NOTICE, MessageMetadata(error=exc.message)
        return translated, None, MessageMetadata(translation_model=settings.translation_model)

    def _validate_text(self, text: str) -> str:
        content = (text or "").strip()
        if not content:
            raise InvalidInputError("Message content cannot be empty.")
        max_length = get_settings().max_message_length
        if len(content) > max_length:
            raise InvalidInputError(f"Message exceeds {max_length} characters.")
        self._validate_languages()
        return content

    def _validate_languages(self) -> None:
        if self.viewer_role not in SENDER_ROLES:
            raise InvalidInputError(f"Unsupported role: {self.viewer_role!r}")
        if not is_supported_language(self.patient_language):
            raise InvalidInputError(f"Unsupported language code: {self.patient_language!r}")

    def _superseded(self, token: RequestToken) -> SendOutcome:
        logger.info(
            "session.send_superseded conversation_id=%s sequence=%d",
            self.store.conversation_id,
            token.sequence,
        )
        return SendOutcome(superseded=True)
