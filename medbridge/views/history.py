"""Date-bucketed conversation history."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone

from medbridge.schemas.history import HistoryGroup, HistoryStats
from medbridge.schemas.message import MessageRead


def utc_date(value: datetime) -> date:
    """Return the UTC calendar date of a timestamp (naive values are UTC)."""

    if value.tzinfo is None:
        return value.date()
    return value.astimezone(timezone.utc).date()


def format_bucket_label(bucket: date, today: date) -> str:
    if bucket == today:
        return "Today"
    if bucket == today - timedelta(days=1):
        return "Yesterday"
    label = f"{bucket:%a}, {bucket:%b} {bucket.day}"
    if bucket.year != today.year:
        label = f"{label}, {bucket.year}"
    return label


def group_history(messages: Iterable[MessageRead], *, now: datetime | None = None) -> list[HistoryGroup]:
    """Bucket messages by UTC date: newest day first, each day oldest first."""

    today = utc_date(now or datetime.now(timezone.utc))
    buckets: dict[date, list[MessageRead]] = {}
    for message in messages:
        buckets.setdefault(utc_date(message.created_at), []).append(message)

    return [
        HistoryGroup(
            day=bucket,
            label=format_bucket_label(bucket, today),
            messages=sorted(buckets[bucket], key=lambda message: message.created_at),
        )
        for bucket in sorted(buckets, reverse=True)
    ]


def history_stats(messages: Iterable[MessageRead]) -> HistoryStats:
    total = doctor = patient = audio = 0
    for message in messages:
        total += 1
        if message.sender_role == "doctor":
            doctor += 1
        elif message.sender_role == "patient":
            patient += 1
        if message.audio_url:
            audio += 1
    return HistoryStats(total=total, doctor=doctor, patient=patient, audio=audio)
