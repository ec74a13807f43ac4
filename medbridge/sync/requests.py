"""Explicit current-request tokens for superseding in-flight operations."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import count


@dataclass(frozen=True, slots=True)
class RequestToken:
    line: str
    sequence: int


class RequestLine:
    """One logical request line, e.g. "send" or "summary".

    Starting a request supersedes every earlier one on the same line; a result
    is applied only if the token it was started with is still current.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._sequence = count(1)
        self._current: RequestToken | None = None

    def begin(self) -> RequestToken:
        token = RequestToken(self.name, next(self._sequence))
        self._current = token
        return token

    def is_current(self, token: RequestToken) -> bool:
        return self._current is not None and token == self._current

    def finish(self, token: RequestToken) -> None:
        """Mark the line idle if ``token`` is still the active request."""

        if self.is_current(token):
            self._current = None

    def cancel(self) -> None:
        """Supersede whatever is in flight without starting a new request."""

        self._current = None

    @property
    def busy(self) -> bool:
        return self._current is not None
