"""Message CRUD routes."""

from fastapi import APIRouter, Depends, HTTPException, Path, Response
from sqlalchemy.orm import Session

from medbridge.db.dependencies import get_db
from medbridge.schemas.common import ApiResponse, DeleteResult
from medbridge.schemas.message import MessageCreate, MessageRead, MessageUpdate
from medbridge.services.messages import (
    create_message,
    delete_all_messages,
    delete_message,
    list_messages,
    update_message,
)
from medbridge.services.realtime import ChangeFeed, get_change_feed


router = APIRouter(prefix="/conversations/{conversation_id}")


@router.get("/messages", response_model=ApiResponse[list[MessageRead]])
def get_messages(
    conversation_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[list[MessageRead]]:
    """List messages for a conversation, oldest first."""

    records = list_messages(db, conversation_id)
    return ApiResponse(data=[MessageRead.model_validate(message) for message in records])


@router.post("/messages", response_model=ApiResponse[MessageRead], status_code=201)
def post_message(
    payload: MessageCreate,
    conversation_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
) -> ApiResponse[MessageRead]:
    """Store one message and broadcast its insert event."""

    created = create_message(db, conversation_id, payload, feed=feed)
    return ApiResponse(data=MessageRead.model_validate(created))


@router.patch("/messages/{message_id}", response_model=ApiResponse[MessageRead])
def patch_message(
    payload: MessageUpdate,
    conversation_id: str = Path(..., min_length=1),
    message_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
) -> ApiResponse[MessageRead]:
    """Update the translation, audio reference or metadata of a message."""

    updated = update_message(db, conversation_id, message_id, payload, feed=feed)
    if updated is None:
        raise HTTPException(status_code=404, detail="Message not found")
    return ApiResponse(data=MessageRead.model_validate(updated))


@router.delete("/messages/{message_id}", status_code=204)
def remove_message(
    conversation_id: str = Path(..., min_length=1),
    message_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
) -> Response:
    """Delete one message; deleting an absent message succeeds."""

    delete_message(db, conversation_id, message_id, feed=feed)
    return Response(status_code=204)


@router.delete("/messages", response_model=ApiResponse[DeleteResult])
def clear_messages(
    conversation_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
) -> ApiResponse[DeleteResult]:
    """Delete every message of the conversation."""

    removed = delete_all_messages(db, conversation_id, feed=feed)
    return ApiResponse(data=DeleteResult(deleted=removed))
