"""Tests for feed administration controllers."""

from datetime import date

import pytest

from castkeeper.controllers import (
    DEFAULT_FLAGS,
    FeedAlreadyExistsError,
    FeedNotFoundError,
    add_feed,
    get_seen_items,
    remove_feed,
    set_feed_flags,
)
from castkeeper.db import Database


class TestAddFeed:
    """Tests for add_feed controller."""

    def test_add_feed_success(self, db: Database):
        """Test adding a new feed with default flags."""
        feed = add_feed(db, "https://example.com/feed.xml")

        assert feed.url == "https://example.com/feed.xml"
        assert feed.flags == DEFAULT_FLAGS == 3
        assert db.get_feed("https://example.com/feed.xml") is not None

    def test_add_feed_with_options(self, db: Database):
        """Test adding a feed with flags and a cutoff date."""
        add_feed(db, "https://example.com/feed.xml", flags=11, since=date(2024, 5, 1))

        stored = db.get_feed("https://example.com/feed.xml")
        assert stored.flags == 11
        assert stored.since == date(2024, 5, 1)

    def test_add_feed_duplicate_raises(self, db: Database):
        """Test that adding the same URL twice raises error."""
        add_feed(db, "https://example.com/feed.xml")

        with pytest.raises(FeedAlreadyExistsError) as exc_info:
            add_feed(db, "https://example.com/feed.xml")

        assert exc_info.value.url == "https://example.com/feed.xml"
        assert "already exists" in str(exc_info.value)


class TestRemoveFeed:
    """Tests for remove_feed controller."""

    def test_remove_feed_success(self, db: Database):
        """Test removing an existing feed."""
        add_feed(db, "https://example.com/feed.xml")

        remove_feed(db, "https://example.com/feed.xml")

        assert db.get_feed("https://example.com/feed.xml") is None

    def test_remove_feed_keeps_items(self, db: Database):
        """Test that seen items survive feed removal."""
        add_feed(db, "https://example.com/feed.xml")
        db.record_seen("abc", "https://cdn.example.com/ep1.mp3", "Episode 1", "Show")

        remove_feed(db, "https://example.com/feed.xml")

        assert db.has_seen("abc")

    def test_remove_feed_not_found(self, db: Database):
        """Test removing a non-existent feed raises error."""
        with pytest.raises(FeedNotFoundError) as exc_info:
            remove_feed(db, "https://missing.example/feed.xml")

        assert exc_info.value.url == "https://missing.example/feed.xml"


class TestSetFeedFlags:
    """Tests for set_feed_flags controller."""

    def test_set_flags(self, db: Database):
        """Test changing a feed's flags."""
        add_feed(db, "https://example.com/feed.xml")

        feed = set_feed_flags(db, "https://example.com/feed.xml", 7)

        assert feed.flags == 7

    def test_disable_feed(self, db: Database):
        """Test that negative flags disable a feed."""
        add_feed(db, "https://example.com/feed.xml")

        set_feed_flags(db, "https://example.com/feed.xml", -3)

        assert db.list_enabled_feeds() == []

    def test_set_flags_not_found(self, db: Database):
        """Test that an unknown feed raises error."""
        with pytest.raises(FeedNotFoundError):
            set_feed_flags(db, "https://missing.example/feed.xml", 3)


class TestGetSeenItems:
    """Tests for get_seen_items controller."""

    def test_filters_by_feed_title(self, db: Database):
        """Test that items can be filtered by feed title."""
        db.record_seen("a", "https://x/1.mp3", "One", "Show A")
        db.record_seen("b", "https://x/2.mp3", "Two", "Show B")

        items = get_seen_items(db, feed_title="Show B")

        assert [item.guid for item in items] == ["b"]
