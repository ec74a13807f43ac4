"""Translation and transcription routes."""

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from medbridge.config import get_settings
from medbridge.exceptions import InvalidInputError, ServiceError
from medbridge.schemas.common import ApiResponse
from medbridge.services.transcription import AudioTooLargeError, transcribe_audio
from medbridge.services.translation import translate_text

router = APIRouter()


class TranslateRequest(BaseModel):
    text: str = Field(min_length=1)
    source_language: str
    target_language: str
    context: str | None = None


class TranslateResult(BaseModel):
    original_text: str
    translated_text: str
    source_language: str
    target_language: str


class TranscribeResult(BaseModel):
    text: str
    language: str


@router.post("/translate", response_model=ApiResponse[TranslateResult])
def translate(payload: TranslateRequest) -> ApiResponse[TranslateResult]:
    """Translate text between two supported languages."""

    try:
        translated = translate_text(
            payload.text,
            payload.source_language,
            payload.target_language,
            context=payload.context,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    except ServiceError as exc:
        raise HTTPException(status_code=503, detail=exc.message) from exc
    return ApiResponse(
        data=TranslateResult(
            original_text=payload.text,
            translated_text=translated,
            source_language=payload.source_language,
            target_language=payload.target_language,
        )
    )


@router.post("/transcribe", response_model=ApiResponse[TranscribeResult])
async def transcribe(request: Request, language: str = Query(default="en")) -> ApiResponse[TranscribeResult]:
    """Transcribe a raw audio request body.

    A declared ``Content-Length`` over the upload limit is rejected before the
    body is read.
    """

    max_bytes = get_settings().max_audio_bytes
    declared = request.headers.get("content-length")
    if declared is not None:
        if not declared.isdigit():
            raise HTTPException(status_code=400, detail="Invalid Content-Length header.")
        if int(declared) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"Audio file too large. Maximum size is {max_bytes // (1024 * 1024)}MB.",
            )
    audio = await request.body()
    try:
        text = await run_in_threadpool(transcribe_audio, audio, language)
    except AudioTooLargeError as exc:
        raise HTTPException(status_code=413, detail=exc.message) from exc
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    except ServiceError as exc:
        raise HTTPException(status_code=503, detail=exc.message) from exc
    return ApiResponse(data=TranscribeResult(text=text, language=language))
