"""Client-side message synchronization package."""

from medbridge.sync.reconciler import PushChannel, RealtimeReconciler
from medbridge.sync.requests import RequestLine, RequestToken
from medbridge.sync.store import MessageStore

__all__ = [
    "MessageStore",
    "PushChannel",
    "RealtimeReconciler",
    "RequestLine",
    "RequestToken",
]
