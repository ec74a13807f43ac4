"""SQLAlchemy metadata registry import for schema creation."""

from medbridge.models import Message
from medbridge.models.base import Base

__all__ = ["Base", "Message"]
