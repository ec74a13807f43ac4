"""Conversation history response schemas."""

from datetime import date

from pydantic import BaseModel

from medbridge.schemas.message import MessageRead


class HistoryGroup(BaseModel):
    """Messages sharing one UTC calendar date."""

    day: date
    label: str
    messages: list[MessageRead]


class HistoryStats(BaseModel):
    """Aggregate counts over a message list."""

    total: int
    doctor: int
    patient: int
    audio: int


class HistoryData(BaseModel):
    conversation_id: str
    stats: HistoryStats
    groups: list[HistoryGroup]
