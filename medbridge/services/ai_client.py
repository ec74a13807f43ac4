"""OpenAI-compatible HTTP client used for translation, transcription and summaries."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from medbridge.config import get_settings
from medbridge.exceptions import ServiceError


class AIClientError(ServiceError):
    """Raised when the AI provider fails or returns an unusable response."""


class ChatCompletionClient(Protocol):
    """Protocol for chat completion providers."""

    def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        """Return assistant text for the provided conversation."""


class TranscriptionClient(Protocol):
    """Protocol for speech-to-text providers."""

    def transcribe(self, audio: bytes, *, filename: str, model: str, language: str | None = None) -> str:
        """Return the transcribed text of an audio payload."""


@dataclass(slots=True)
class OpenAICompatibleClient:
    """Minimal chat completions and transcription client over stdlib HTTP."""

    api_key: str
    base_url: str = "https://api.groq.com/openai/v1"
    timeout_seconds: int = 60

    def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        payload: dict[str, Any] = {
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        raw = self._post(
            "chat/completions",
            json.dumps(payload).encode("utf-8"),
            content_type="application/json",
        )
        try:
            decoded = json.loads(raw)
            content = decoded["choices"][0]["message"]["content"]
            if not isinstance(content, str) or not content.strip():
                raise TypeError("assistant message content missing")
            return content.strip()
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as exc:
            raise AIClientError("AI provider returned an unexpected chat response") from exc

    def transcribe(self, audio: bytes, *, filename: str, model: str, language: str | None = None) -> str:
        fields = {"model": model, "response_format": "json", "temperature": "0"}
        if language:
            fields["language"] = language
        body, content_type = _encode_multipart(fields, file_field="file", filename=filename, payload=audio)
        raw = self._post("audio/transcriptions", body, content_type=content_type)
        try:
            text = json.loads(raw)["text"]
            if not isinstance(text, str):
                raise TypeError("transcription text missing")
            return text.strip()
        except (KeyError, TypeError, json.JSONDecodeError) as exc:
            raise AIClientError("AI provider returned an unexpected transcription response") from exc

    def _post(self, path: str, data: bytes, *, content_type: str) -> str:
        url = f"{self.base_url.rstrip('/')}/{path}"
        req = urllib_request.Request(
            url=url,
            data=data,
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": content_type,
            },
        )
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                return resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise AIClientError(f"AI provider HTTP {exc.code}: {detail}") from exc
        except urllib_error.URLError as exc:
            raise AIClientError(f"AI provider request failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise AIClientError("AI provider request timed out") from exc


def _encode_multipart(
    fields: dict[str, str],
    *,
    file_field: str,
    filename: str,
    payload: bytes,
    file_content_type: str = "audio/webm",
) -> tuple[bytes, str]:
    boundary = f"----medbridge{uuid.uuid4().hex}"
    chunks: list[bytes] = []
    for name, value in fields.items():
        chunks.append(
            (
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
                f"{value}\r\n"
            ).encode("utf-8")
        )
    chunks.append(
        (
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{file_field}"; filename="{filename}"\r\n'
            f"Content-Type: {file_content_type}\r\n\r\n"
        ).encode("utf-8")
    )
    chunks.append(payload)
    chunks.append(f"\r\n--{boundary}--\r\n".encode("utf-8"))
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


def get_default_ai_client() -> OpenAICompatibleClient:
    """Return the configured AI client."""

    settings = get_settings()
    if not settings.ai_api_key:
        raise AIClientError("AI_API_KEY is not configured. Set it in .env before using AI features.")
    return OpenAICompatibleClient(
        api_key=settings.ai_api_key,
        base_url=settings.ai_base_url,
        timeout_seconds=settings.ai_timeout_seconds,
    )
