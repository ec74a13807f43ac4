"""Viewer-relative bilingual rendering of a message."""

from __future__ import annotations

from typing import NamedTuple

from medbridge.schemas.message import MessageRead


class DisplayContent(NamedTuple):
    primary: str
    secondary: str | None
    is_own_message: bool


def select_content(message: MessageRead, viewer_role: str) -> DisplayContent:
    """Return the text a viewer sees first and the optional subtitle.

    A viewer's own messages show the original with the translation below.
    The other party's messages show the translation when one exists, with the
    untranslated original as subtitle; without a translation there is nothing
    to subtitle.
    """

    is_own = message.sender_role == viewer_role
    if is_own:
        primary = message.original_content
        secondary = message.translated_content
    else:
        primary = message.translated_content or message.original_content
        secondary = message.original_content if message.translated_content else None

    if not secondary or secondary == primary:
        secondary = None
    return DisplayContent(primary=primary, secondary=secondary, is_own_message=is_own)
