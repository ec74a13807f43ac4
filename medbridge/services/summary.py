"""Medical summary generation for a conversation."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from pydantic import ValidationError

from medbridge.config import get_settings
from medbridge.constants import is_supported_language, language_name
from medbridge.exceptions import InvalidInputError
from medbridge.schemas.message import MessageRead
from medbridge.schemas.summary import MedicalSummary, MedicalSummaryPayload
from medbridge.services.ai_client import AIClientError, ChatCompletionClient, get_default_ai_client

logger = logging.getLogger(__name__)


class SummaryError(AIClientError):
    """Raised when a summary cannot be produced or parsed."""


def summary_output_language(viewer_role: str, patient_language: str) -> str:
    """Doctors read summaries in their own language, patients in theirs."""

    return get_settings().doctor_language if viewer_role == "doctor" else patient_language


def generate_medical_summary(
    messages: Sequence[MessageRead],
    output_language: str = "en",
    *,
    client: ChatCompletionClient | None = None,
) -> MedicalSummary:
    """Extract symptoms, medications and follow-up actions from recent messages."""

    settings = get_settings()
    if not messages:
        raise InvalidInputError("No messages to summarize.")
    if not is_supported_language(output_language):
        raise InvalidInputError(f"Invalid language code: {output_language!r}")
    recent = list(messages)[-settings.summary_message_limit :]

    target_name = language_name(output_language)
    chat_messages = [
        {"role": "system", "content": _build_system_prompt(target_name)},
        {"role": "user", "content": f"Conversation:\n{format_conversation(recent)}"},
    ]
    try:
        raw = (client or get_default_ai_client()).complete(
            chat_messages,
            model=settings.summary_model,
            temperature=0.2,
            max_tokens=1024,
            json_mode=True,
        )
    except AIClientError as exc:
        logger.warning("summary.failed messages=%d error=%s", len(recent), exc.message)
        raise SummaryError(f"Summary generation failed: {exc.message}") from exc

    payload = _parse_summary(raw)
    return MedicalSummary(
        symptoms=payload.symptoms,
        medications=payload.medications,
        follow_up_actions=payload.follow_up_actions,
        timestamp=datetime.now(timezone.utc),
        message_count=len(recent),
    )


def format_conversation(messages: Sequence[MessageRead]) -> str:
    """Render ``role: content`` lines, using the English side of patient messages."""

    lines: list[str] = []
    for message in messages:
        if message.sender_role == "patient":
            content = message.translated_content or message.original_content
        else:
            content = message.original_content
        lines.append(f"{message.sender_role}: {content}")
    return "\n".join(lines)


def _parse_summary(raw: str) -> MedicalSummaryPayload:
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SummaryError("Summary response was not valid JSON.") from exc
    if not isinstance(decoded, dict):
        raise SummaryError("Summary response was not a JSON object.")
    try:
        return MedicalSummaryPayload.model_validate(decoded)
    except ValidationError as exc:
        raise SummaryError(f"Summary response had an invalid shape: {exc.error_count()} errors") from exc


def _build_system_prompt(language: str) -> str:
    return (
        "You are a medical AI assistant. Analyze this doctor-patient conversation and extract:\n\n"
        "1. Symptoms: all symptoms mentioned by the patient\n"
        "2. Medications: any medications discussed (prescribed, current, or allergies)\n"
        "3. Follow-up Actions: recommended tests, appointments, or instructions\n\n"
        f"IMPORTANT: Your response MUST be in {language}.\n\n"
        "Return your response in this EXACT JSON format:\n"
        "{\n"
        f'  "symptoms": ["symptom in {language}"],\n'
        f'  "medications": ["medication in {language}"],\n'
        f'  "followUpActions": ["action in {language}"]\n'
        "}\n\n"
        "Only include information explicitly mentioned in the conversation. "
        "If a category has no information, use an empty array."
    )
