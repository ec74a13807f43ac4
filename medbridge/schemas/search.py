"""Message search response schemas."""

from typing import Literal

from pydantic import BaseModel

from medbridge.schemas.message import MessageRead

MatchType = Literal["original", "translated", "both"]


class SearchResult(BaseModel):
    """One matching message with a highlighted context window."""

    message: MessageRead
    match_type: MatchType
    context_before: str
    matched_text: str
    context_after: str


class SearchData(BaseModel):
    """Search response payload."""

    query: str
    conversation_id: str
    total: int
    results: list[SearchResult]
