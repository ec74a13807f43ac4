"""Search, history and viewer-relative display routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from medbridge.db.dependencies import get_db
from medbridge.schemas.common import ApiResponse, DisplayData
from medbridge.schemas.history import HistoryData
from medbridge.schemas.message import MessageRead, SenderRole
from medbridge.schemas.search import SearchData
from medbridge.services.messages import get_message, list_messages
from medbridge.views.content import select_content
from medbridge.views.history import group_history, history_stats
from medbridge.views.search import search_messages

router = APIRouter(prefix="/conversations/{conversation_id}")


@router.get("/search", response_model=ApiResponse[SearchData])
def search(
    q: str = Query(..., min_length=1),
    conversation_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[SearchData]:
    """Search message text; queries under two characters return no results."""

    messages = [MessageRead.model_validate(row) for row in list_messages(db, conversation_id)]
    results = search_messages(messages, q)
    return ApiResponse(
        data=SearchData(query=q, conversation_id=conversation_id, total=len(results), results=results)
    )


@router.get("/history", response_model=ApiResponse[HistoryData])
def history(
    conversation_id: str = Path(..., min_length=1),
    now: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
) -> ApiResponse[HistoryData]:
    """Return date-bucketed messages with aggregate counts."""

    messages = [MessageRead.model_validate(row) for row in list_messages(db, conversation_id)]
    return ApiResponse(
        data=HistoryData(
            conversation_id=conversation_id,
            stats=history_stats(messages),
            groups=group_history(messages, now=now),
        )
    )


@router.get("/messages/{message_id}/display", response_model=ApiResponse[DisplayData])
def display(
    viewer: SenderRole = Query(...),
    conversation_id: str = Path(..., min_length=1),
    message_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[DisplayData]:
    """Return the primary text and subtitle a viewer sees for a message."""

    row = get_message(db, conversation_id, message_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Message not found")
    content = select_content(MessageRead.model_validate(row), viewer)
    return ApiResponse(data=DisplayData(**content._asdict()))
