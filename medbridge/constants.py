"""Supported languages and sender roles."""

from __future__ import annotations

from typing import NamedTuple


class LanguageOption(NamedTuple):
    code: str
    label: str
    native_name: str


SUPPORTED_LANGUAGES: tuple[LanguageOption, ...] = (
    LanguageOption("en", "English", "English"),
    LanguageOption("es", "Spanish", "Español"),
    LanguageOption("hi", "Hindi", "हिन्दी"),
    LanguageOption("fr", "French", "Français"),
    LanguageOption("de", "German", "Deutsch"),
    LanguageOption("pt", "Portuguese", "Português"),
    LanguageOption("zh", "Chinese", "中文"),
    LanguageOption("ar", "Arabic", "العربية"),
)
SUPPORTED_LANGUAGE_CODES = frozenset(option.code for option in SUPPORTED_LANGUAGES)
LANGUAGE_NAMES: dict[str, str] = {option.code: option.label for option in SUPPORTED_LANGUAGES}

SENDER_ROLES: tuple[str, ...] = ("doctor", "patient")


def is_supported_language(code: str | None) -> bool:
    """Return whether a language code is one of the supported chat languages."""

    return bool(code) and code in SUPPORTED_LANGUAGE_CODES


def language_name(code: str) -> str:
    """Return the English display name for a language code, or the code itself."""

    return LANGUAGE_NAMES.get(code, code)
