"""Full-text search over the message snapshot with context snippets."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from medbridge.schemas.message import MessageRead
from medbridge.schemas.search import MatchType, SearchResult

SEARCH_MIN_QUERY_LENGTH = 2
SEARCH_CONTEXT_CHARS = 50
ELLIPSIS = "..."


def search_messages(messages: Iterable[MessageRead], query: str) -> list[SearchResult]:
    """Return case-insensitive substring matches, most recent first.

    Queries that are blank or shorter than ``SEARCH_MIN_QUERY_LENGTH`` match
    nothing. Context is taken from the original text when it matched,
    otherwise from the translation.
    """

    if not query.strip() or len(query) < SEARCH_MIN_QUERY_LENGTH:
        return []
    pattern = re.compile(re.escape(query), re.IGNORECASE)

    results: list[SearchResult] = []
    for message in messages:
        original = message.original_content
        translated = message.translated_content or ""
        original_match = pattern.search(original)
        translated_match = pattern.search(translated)
        if original_match is None and translated_match is None:
            continue

        match_type: MatchType
        if original_match and translated_match:
            match_type = "both"
        elif original_match:
            match_type = "original"
        else:
            match_type = "translated"

        content, match = (original, original_match) if original_match else (translated, translated_match)
        before, matched, after = _context_window(content, match.start(), match.end())
        results.append(
            SearchResult(
                message=message,
                match_type=match_type,
                context_before=before,
                matched_text=matched,
                context_after=after,
            )
        )

    results.sort(key=lambda result: result.message.created_at, reverse=True)
    return results


def _context_window(content: str, start: int, end: int) -> tuple[str, str, str]:
    window_start = max(0, start - SEARCH_CONTEXT_CHARS)
    window_end = min(len(content), end + SEARCH_CONTEXT_CHARS)
    before = content[window_start:start]
    after = content[end:window_end]
    if window_start > 0:
        before = ELLIPSIS + before
    if window_end < len(content):
        after = after + ELLIPSIS
    return before, content[start:end], after


class SearchCursor:
    """Keyboard-style selection over a result list.

    The index is clamped to ``[0, len(results) - 1]`` (0 for no results).
    """

    def __init__(
        self,
        results: list[SearchResult] | None = None,
        *,
        on_jump: Callable[[str], None] | None = None,
    ) -> None:
        self.results: list[SearchResult] = list(results or [])
        self.index = 0
        self.on_jump = on_jump

    def reset(self, results: list[SearchResult]) -> None:
        """Replace the results after a new query; selection returns to the top."""

        self.results = list(results)
        self.index = 0

    def move_next(self) -> int:
        self.index = self._clamp(self.index + 1)
        return self.index

    def move_previous(self) -> int:
        self.index = self._clamp(self.index - 1)
        return self.index

    @property
    def selected(self) -> SearchResult | None:
        if not self.results:
            return None
        return self.results[self._clamp(self.index)]

    def jump(self) -> str | None:
        """Return the selected message id, notifying ``on_jump`` if set."""

        result = self.selected
        if result is None:
            return None
        if self.on_jump is not None:
            self.on_jump(result.message.id)
        return result.message.id

    def _clamp(self, index: int) -> int:
        if not self.results:
            return 0
        return max(0, min(index, len(self.results) - 1))
