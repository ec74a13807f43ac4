"""Medical translation service."""

from __future__ import annotations

import logging

from medbridge.config import get_settings
from medbridge.constants import is_supported_language, language_name
from medbridge.exceptions import InvalidInputError
from medbridge.services.ai_client import AIClientError, ChatCompletionClient, get_default_ai_client

logger = logging.getLogger(__name__)


class TranslationError(AIClientError):
    """Raised when translation fails upstream."""


def translate_text(
    text: str,
    source_language: str,
    target_language: str,
    *,
    context: str | None = None,
    client: ChatCompletionClient | None = None,
) -> str:
    """Translate ``text`` between two supported language codes.

    Identical source and target languages return the text unchanged without
    calling out.
    """

    clean_text = text.strip()
    if not clean_text:
        raise InvalidInputError("Text is required for translation.")
    if not is_supported_language(source_language) or not is_supported_language(target_language):
        raise InvalidInputError(f"Invalid language code: {source_language!r} -> {target_language!r}")
    if source_language == target_language:
        return clean_text

    settings = get_settings()
    messages = [
        {
            "role": "system",
            "content": _build_system_prompt(language_name(source_language), language_name(target_language), context),
        },
        {"role": "user", "content": clean_text},
    ]
    try:
        translated = (client or get_default_ai_client()).complete(
            messages,
            model=settings.translation_model,
            temperature=0.3,
            max_tokens=1024,
        )
    except AIClientError as exc:
        logger.warning(
            "translation.failed source=%s target=%s error=%s",
            source_language,
            target_language,
            exc.message,
        )
        raise TranslationError(f"Translation failed: {exc.message}") from exc
    if not translated.strip():
        raise TranslationError("No translation received from the AI provider.")
    return translated.strip()


def _build_system_prompt(source_name: str, target_name: str, context: str | None) -> str:
    prompt = (
        f"You are a professional medical translator. Translate the following text from "
        f"{source_name} to {target_name}.\n\n"
        "IMPORTANT RULES:\n"
        "1. Preserve all medical terminology accurately\n"
        "2. Maintain the original meaning and tone\n"
        "3. Return ONLY the translated text, no explanations\n"
        "4. If translating medical symptoms or conditions, be precise"
    )
    if context and context.strip():
        prompt += f"\n\nContext: {context.strip()}"
    return prompt
