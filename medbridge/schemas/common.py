"""Response envelope and small shared payloads."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """``{"data": ...}`` envelope wrapping every JSON route response."""

    data: T


class DeleteResult(BaseModel):
    deleted: int


class DisplayData(BaseModel):
    """Viewer-relative rendering of one message."""

    primary: str
    secondary: str | None = None
    is_own_message: bool
