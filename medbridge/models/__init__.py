"""ORM models package exports."""

from medbridge.models.message import Message

__all__ = ["Message"]
