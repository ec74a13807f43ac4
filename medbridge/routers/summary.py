"""Medical summary routes."""

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session

from medbridge.config import get_settings
from medbridge.db.dependencies import get_db
from medbridge.exceptions import InvalidInputError, ServiceError
from medbridge.schemas.common import ApiResponse
from medbridge.schemas.message import MessageRead
from medbridge.schemas.summary import MedicalSummary, SummaryRequest
from medbridge.services.messages import list_recent_messages
from medbridge.services.summary import generate_medical_summary, summary_output_language

router = APIRouter(prefix="/conversations/{conversation_id}")


@router.post("/summary", response_model=ApiResponse[MedicalSummary])
def create_summary(
    payload: SummaryRequest,
    conversation_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[MedicalSummary]:
    """Summarize the most recent messages of a conversation."""

    rows = list_recent_messages(db, conversation_id, limit=get_settings().summary_message_limit)
    messages = [MessageRead.model_validate(row) for row in rows]
    try:
        summary = generate_medical_summary(
            messages,
            summary_output_language(payload.viewer_role, payload.patient_language),
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    except ServiceError as exc:
        raise HTTPException(status_code=503, detail=exc.message) from exc
    return ApiResponse(data=summary)
