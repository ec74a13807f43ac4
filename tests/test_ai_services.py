"""Tests for translation, transcription, summary and audio storage services."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from medbridge.config import Settings
from medbridge.exceptions import InvalidInputError, PersistenceError, ServiceError
from medbridge.services.ai_client import AIClientError, _encode_multipart, get_default_ai_client
from medbridge.services.storage import LocalObjectStore
from medbridge.services.summary import (
    SummaryError,
    format_conversation,
    generate_medical_summary,
    summary_output_language,
)
from medbridge.services.transcription import AudioTooLargeError, TranscriptionError, transcribe_audio
from medbridge.services.translation import TranslationError, translate_text
from tests.helpers import make_message


class _StubChatClient:
    def __init__(self, reply: str = "", *, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    def complete(self, messages, *, model, temperature=0.3, max_tokens=1024, json_mode=False) -> str:
        self.calls.append(
            {"messages": messages, "model": model, "temperature": temperature, "json_mode": json_mode}
        )
        if self.error is not None:
            raise self.error
        return self.reply


class _StubTranscriber:
    def __init__(self, text: str = "I have a fever") -> None:
        self.text = text
        self.calls: list[dict] = []

    def transcribe(self, audio, *, filename, model, language=None) -> str:
        self.calls.append({"bytes": len(audio), "filename": filename, "language": language})
        return self.text


class TranslationTests(unittest.TestCase):
    def test_translates_with_medical_prompt(self) -> None:
        client = _StubChatClient("  Tengo fiebre  ")

        translated = translate_text("I have a fever", "en", "es", context="medical", client=client)

        self.assertEqual(translated, "Tengo fiebre")
        [call] = client.calls
        system_prompt = call["messages"][0]["content"]
        self.assertIn("from English to Spanish", system_prompt)
        self.assertIn("Context: medical", system_prompt)
        self.assertEqual(call["messages"][1]["content"], "I have a fever")
        self.assertEqual(call["temperature"], 0.3)

    def test_same_language_returns_text_without_calling_out(self) -> None:
        client = _StubChatClient("unused")

        self.assertEqual(translate_text(" Hello ", "en", "en", client=client), "Hello")
        self.assertEqual(client.calls, [])

    def test_invalid_input_is_rejected_before_calling_out(self) -> None:
        client = _StubChatClient("unused")

        with self.assertRaises(InvalidInputError):
            translate_text("   ", "en", "es", client=client)
        with self.assertRaises(InvalidInputError):
            translate_text("Hello", "en", "xx", client=client)
        self.assertEqual(client.calls, [])

    def test_upstream_failure_becomes_service_error(self) -> None:
        client = _StubChatClient(error=AIClientError("HTTP 503"))

        with self.assertRaises(TranslationError) as ctx:
            translate_text("Hello", "en", "es", client=client)

        self.assertIsInstance(ctx.exception, ServiceError)
        self.assertIn("HTTP 503", ctx.exception.message)

    def test_missing_api_key_is_a_service_error(self) -> None:
        with mock.patch("medbridge.services.ai_client.get_settings", return_value=Settings(ai_api_key=None)):
            with self.assertRaises(ServiceError):
                get_default_ai_client()


class TranscriptionTests(unittest.TestCase):
    def test_english_passes_language_hint(self) -> None:
        client = _StubTranscriber()

        self.assertEqual(transcribe_audio(b"webm-bytes", "en", client=client), "I have a fever")
        self.assertEqual(client.calls[0]["language"], "en")

    def test_other_languages_are_auto_detected(self) -> None:
        client = _StubTranscriber("Tengo fiebre")

        transcribe_audio(b"webm-bytes", "es", client=client)

        self.assertIsNone(client.calls[0]["language"])

    def test_oversized_audio_is_rejected_without_calling_out(self) -> None:
        client = _StubTranscriber()
        oversized = b"\0" * (25 * 1024 * 1024 + 1)

        with self.assertRaises(AudioTooLargeError):
            transcribe_audio(oversized, "en", client=client)
        with self.assertRaises(InvalidInputError):
            transcribe_audio(b"", "en", client=client)
        self.assertEqual(client.calls, [])

    def test_empty_transcript_fails(self) -> None:
        with self.assertRaises(TranscriptionError):
            transcribe_audio(b"webm-bytes", "en", client=_StubTranscriber(""))

    def test_multipart_body_carries_fields_and_payload(self) -> None:
        body, content_type = _encode_multipart(
            {"model": "whisper-large-v3", "language": "en"},
            file_field="file",
            filename="audio.webm",
            payload=b"\x1a\x45\xdf\xa3",
        )

        boundary = content_type.split("boundary=", 1)[1]
        self.assertTrue(content_type.startswith("multipart/form-data; "))
        self.assertIn(b'name="model"\r\n\r\nwhisper-large-v3\r\n', body)
        self.assertIn(b'filename="audio.webm"', body)
        self.assertIn(b"\x1a\x45\xdf\xa3", body)
        self.assertTrue(body.endswith(f"--{boundary}--\r\n".encode("utf-8")))


class SummaryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.messages = [
            make_message(minutes=1, sender_role="doctor", original_content="What brings you in?", language="en"),
            make_message(minutes=2, original_content="Tengo fiebre.", translated_content="I have a fever."),
        ]

    def test_parses_structured_summary(self) -> None:
        reply = json.dumps(
            {
                "symptoms": ["fever"],
                "medications": ["paracetamol"],
                "followUpActions": ["blood test"],
            }
        )
        client = _StubChatClient(reply)

        summary = generate_medical_summary(self.messages, "en", client=client)

        self.assertEqual(summary.symptoms, ["fever"])
        self.assertEqual(summary.medications, ["paracetamol"])
        self.assertEqual(summary.follow_up_actions, ["blood test"])
        self.assertEqual(summary.message_count, 2)
        self.assertTrue(client.calls[0]["json_mode"])
        self.assertIn("patient: I have a fever.", client.calls[0]["messages"][1]["content"])

    def test_missing_categories_default_to_empty(self) -> None:
        summary = generate_medical_summary(self.messages, "en", client=_StubChatClient('{"symptoms": ["cough"]}'))

        self.assertEqual(summary.medications, [])
        self.assertEqual(summary.follow_up_actions, [])

    def test_malformed_reply_fails_closed(self) -> None:
        for reply in ("not json", "[1, 2]", '{"symptoms": "fever"}'):
            with self.subTest(reply=reply):
                with self.assertRaises(SummaryError):
                    generate_medical_summary(self.messages, "en", client=_StubChatClient(reply))

    def test_empty_conversation_is_rejected(self) -> None:
        with self.assertRaises(InvalidInputError):
            generate_medical_summary([], "en", client=_StubChatClient("{}"))

    def test_only_the_most_recent_messages_are_sent(self) -> None:
        messages = [make_message(minutes=i, original_content=f"line {i}", translated_content=None) for i in range(25)]
        client = _StubChatClient("{}")

        summary = generate_medical_summary(messages, "en", client=client)

        self.assertEqual(summary.message_count, 20)
        prompt = client.calls[0]["messages"][1]["content"]
        self.assertNotIn("line 4\n", prompt)
        self.assertIn("line 5\n", prompt)

    def test_output_language_follows_viewer(self) -> None:
        self.assertEqual(summary_output_language("doctor", "es"), "en")
        self.assertEqual(summary_output_language("patient", "es"), "es")

    def test_format_conversation_uses_original_for_doctor_lines(self) -> None:
        self.assertEqual(
            format_conversation(self.messages),
            "doctor: What brings you in?\npatient: I have a fever.",
        )


class LocalObjectStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.store = LocalObjectStore(root_dir=self.root, public_base_url="http://files.local/recordings/")

    def test_put_writes_blob_and_returns_public_url(self) -> None:
        url = self.store.put(b"audio", "doctor-1.webm")

        self.assertEqual(url, "http://files.local/recordings/doctor-1.webm")
        self.assertEqual((self.root / "doctor-1.webm").read_bytes(), b"audio")

    def test_existing_name_is_not_overwritten(self) -> None:
        self.store.put(b"first", "doctor-1.webm")

        with self.assertRaises(PersistenceError):
            self.store.put(b"second", "doctor-1.webm")
        self.assertEqual((self.root / "doctor-1.webm").read_bytes(), b"first")

    def test_names_escaping_the_root_are_rejected(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.store.put(b"audio", "../outside.webm")


if __name__ == "__main__":
    unittest.main()
