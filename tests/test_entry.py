"""
Unit tests for the feed entry model.

Tests cover feedparser mapping, guid fallbacks and payload serialization.
"""

import json
import time
from datetime import datetime, timezone

import feedparser

from feed_relay.entry import FeedEntry, stable_id


class TestFromFeedparser:
    """Tests for FeedEntry.from_feedparser."""

    def test_full_entry(self) -> None:
        """Test mapping of a fully populated entry."""
        raw = feedparser.FeedParserDict(
            {
                "id": "https://jobs.example.com/jobs/1",
                "title": "Entry",
                "link": "https://jobs.example.com/jobs/1?source=rss",
                "published_parsed": time.struct_time((2024, 1, 1, 12, 0, 0, 0, 1, 0)),
                "summary": "short",
                "content": [{"value": "full content"}],
            }
        )

        entry = FeedEntry.from_feedparser(raw)

        assert entry.guid == "https://jobs.example.com/jobs/1"
        assert entry.title == "Entry"
        assert entry.link == "https://jobs.example.com/jobs/1?source=rss"
        assert entry.published_at == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert entry.body_text == "full content"

    def test_summary_used_without_content(self) -> None:
        """Test that the summary is the body when no content is present."""
        entry = FeedEntry.from_feedparser({"id": "1", "summary": "summary text"})

        assert entry.body_text == "summary text"

    def test_missing_fields_default_to_empty(self) -> None:
        """Test that missing fields map to empty values."""
        entry = FeedEntry.from_feedparser({"id": "1"})

        assert entry.title == ""
        assert entry.link == ""
        assert entry.body_text == ""
        assert entry.published_at is None

    def test_updated_time_fallback(self) -> None:
        """Test that the updated time is used when published is missing."""
        raw = {"id": "1", "updated_parsed": time.struct_time((2024, 2, 3, 4, 5, 6, 0, 1, 0))}

        entry = FeedEntry.from_feedparser(raw)

        assert entry.published_at == datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc)

    def test_guid_falls_back_to_link(self) -> None:
        """Test that the link is the guid when the feed has none."""
        entry = FeedEntry.from_feedparser({"link": "https://example.com/a"})

        assert entry.guid == "https://example.com/a"

    def test_guid_synthesized_when_no_id_or_link(self) -> None:
        """Test that guid-less, link-less entries get distinct keys."""
        first = FeedEntry.from_feedparser({"title": "First"})
        second = FeedEntry.from_feedparser({"title": "Second"})

        assert first.guid == stable_id("First", "", "")
        assert first.guid
        assert first.guid != second.guid


class TestFeedEntry:
    """Tests for FeedEntry helpers."""

    def test_action_url_prefers_url_guid(self) -> None:
        """Test the guid is the action URL when it is a URL."""
        entry = FeedEntry(guid="https://example.com/guid", link="https://example.com/link")

        assert entry.action_url == "https://example.com/guid"

    def test_action_url_falls_back_to_link(self) -> None:
        """Test the link is used when the guid is not a URL."""
        entry = FeedEntry(guid="tag:example.com,2024:1", link="https://example.com/link")

        assert entry.action_url == "https://example.com/link"

    def test_json_payload(self) -> None:
        """Test the payload written to storage."""
        entry = FeedEntry(
            guid="g",
            title="Café",
            link="https://example.com",
            published_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
            body_text="<b>body</b>",
        )

        payload = entry.to_json()

        assert "Café" in payload
        assert json.loads(payload) == {
            "guid": "g",
            "title": "Café",
            "link": "https://example.com",
            "published_at": "2024-01-01T12:00:00+00:00",
            "body_text": "<b>body</b>",
        }

    def test_json_without_published_time(self) -> None:
        """Test serialization of an entry without a publication time."""
        entry = FeedEntry(guid="g")

        assert json.loads(entry.to_json())["published_at"] is None
