"""Tests for viewer-relative display, search and history grouping."""

from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone

from medbridge.views.content import select_content
from medbridge.views.history import format_bucket_label, group_history, history_stats
from medbridge.views.search import ELLIPSIS, SearchCursor, search_messages
from tests.helpers import make_message


class ContentSelectorTests(unittest.TestCase):
    def test_own_message_shows_original_with_translation_below(self) -> None:
        message = make_message(sender_role="doctor", original_content="Hello", translated_content="Hola")

        content = select_content(message, "doctor")

        self.assertEqual(content.primary, "Hello")
        self.assertEqual(content.secondary, "Hola")
        self.assertTrue(content.is_own_message)

    def test_other_party_message_shows_translation_first(self) -> None:
        message = make_message(sender_role="patient", original_content="Me duele", translated_content="It hurts")

        content = select_content(message, "doctor")

        self.assertEqual(content.primary, "It hurts")
        self.assertEqual(content.secondary, "Me duele")
        self.assertFalse(content.is_own_message)

    def test_other_party_message_without_translation_has_no_subtitle(self) -> None:
        message = make_message(sender_role="patient", original_content="Me duele", translated_content=None)

        content = select_content(message, "doctor")

        self.assertEqual(content.primary, "Me duele")
        self.assertIsNone(content.secondary)

    def test_own_message_without_translation_has_no_subtitle(self) -> None:
        message = make_message(sender_role="patient", translated_content=None)

        self.assertIsNone(select_content(message, "patient").secondary)

    def test_subtitle_identical_to_primary_is_dropped(self) -> None:
        message = make_message(sender_role="doctor", original_content="OK", translated_content="OK")

        self.assertIsNone(select_content(message, "doctor").secondary)
        self.assertIsNone(select_content(message, "patient").secondary)


class SearchEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.original_only = make_message(minutes=1, original_content="I have a fever", translated_content="Tengo calor")
        self.translated_only = make_message(minutes=2, original_content="Tengo fiebre", translated_content="I have a fever")
        self.both = make_message(minutes=3, original_content="Fever again", translated_content="fever otra vez")
        self.neither = make_message(minutes=4, original_content="Me duele la cabeza", translated_content="My head hurts")
        self.original_again = make_message(minutes=5, original_content="FEVER since Monday", translated_content="Desde el lunes")
        self.messages = [
            self.original_only,
            self.translated_only,
            self.both,
            self.neither,
            self.original_again,
        ]

    def test_match_types_for_seeded_conversation(self) -> None:
        results = search_messages(self.messages, "fever")

        by_id = {result.message.id: result.match_type for result in results}
        self.assertEqual(len(results), 4)
        self.assertEqual(by_id[self.original_only.id], "original")
        self.assertEqual(by_id[self.original_again.id], "original")
        self.assertEqual(by_id[self.translated_only.id], "translated")
        self.assertEqual(by_id[self.both.id], "both")
        self.assertNotIn(self.neither.id, by_id)

    def test_results_are_most_recent_first(self) -> None:
        results = search_messages(self.messages, "fever")

        self.assertEqual(
            [result.message.id for result in results],
            [self.original_again.id, self.both.id, self.translated_only.id, self.original_only.id],
        )

    def test_short_or_blank_queries_match_nothing(self) -> None:
        self.assertEqual(search_messages(self.messages, "f"), [])
        self.assertEqual(search_messages(self.messages, "   "), [])

    def test_query_is_matched_literally(self) -> None:
        message = make_message(original_content="Dose is 5.0 (mg)", translated_content=None)

        self.assertEqual(len(search_messages([message], "(mg)")), 1)
        self.assertEqual(search_messages([message], ".*"), [])

    def test_context_window_preserves_matched_case_and_adds_ellipses(self) -> None:
        text = "a" * 60 + "Fever" + "b" * 60
        message = make_message(original_content=text, translated_content=None)

        [result] = search_messages([message], "fever")

        self.assertEqual(result.matched_text, "Fever")
        self.assertEqual(result.context_before, ELLIPSIS + "a" * 50)
        self.assertEqual(result.context_after, "b" * 50 + ELLIPSIS)

    def test_short_content_has_no_ellipses(self) -> None:
        [result] = search_messages([make_message(original_content="high fever today")], "fever")

        self.assertEqual(result.context_before, "high ")
        self.assertEqual(result.context_after, " today")


class SearchCursorTests(unittest.TestCase):
    def test_navigation_clamps_and_jump_notifies(self) -> None:
        messages = [make_message(minutes=minutes, original_content="fever") for minutes in range(3)]
        jumped: list[str] = []
        cursor = SearchCursor(search_messages(messages, "fever"), on_jump=jumped.append)

        self.assertEqual(cursor.move_previous(), 0)
        self.assertEqual(cursor.move_next(), 1)
        self.assertEqual(cursor.move_next(), 2)
        self.assertEqual(cursor.move_next(), 2)
        self.assertEqual(cursor.jump(), messages[0].id)
        self.assertEqual(jumped, [messages[0].id])

        cursor.reset([])
        self.assertEqual(cursor.move_next(), 0)
        self.assertIsNone(cursor.selected)
        self.assertIsNone(cursor.jump())


class HistoryGrouperTests(unittest.TestCase):
    NOW = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)

    def test_buckets_descend_and_messages_ascend(self) -> None:
        today_late = make_message(created_at=datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc))
        today_early = make_message(created_at=datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc))
        yesterday = make_message(created_at=datetime(2026, 3, 1, 23, 59, tzinfo=timezone.utc))
        last_year = make_message(created_at=datetime(2025, 2, 24, 12, 0, tzinfo=timezone.utc))

        groups = group_history([today_late, last_year, today_early, yesterday], now=self.NOW)

        self.assertEqual([group.label for group in groups], ["Today", "Yesterday", "Mon, Feb 24, 2025"])
        self.assertEqual([m.id for m in groups[0].messages], [today_early.id, today_late.id])
        self.assertEqual(groups[0].day, date(2026, 3, 2))

    def test_same_year_label_omits_year(self) -> None:
        self.assertEqual(format_bucket_label(date(2026, 2, 24), date(2026, 3, 2)), "Tue, Feb 24")

    def test_buckets_use_utc_dates(self) -> None:
        offset = timezone(timedelta(hours=-5))
        late_evening_local = make_message(created_at=datetime(2026, 3, 1, 21, 0, tzinfo=offset))

        [group] = group_history([late_evening_local], now=self.NOW)

        self.assertEqual(group.label, "Today")

    def test_stats_count_roles_and_audio(self) -> None:
        messages = [
            make_message(sender_role="doctor"),
            make_message(sender_role="patient", audio_url="http://files/a.webm"),
            make_message(sender_role="patient"),
        ]

        stats = history_stats(messages)

        self.assertEqual((stats.total, stats.doctor, stats.patient, stats.audio), (3, 1, 2, 1))

    def test_empty_history(self) -> None:
        self.assertEqual(group_history([], now=self.NOW), [])
        self.assertEqual(history_stats([]).total, 0)


if __name__ == "__main__":
    unittest.main()
