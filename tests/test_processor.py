"""Tests for feed and item processing."""

from datetime import date, datetime
from unittest.mock import Mock, patch

import requests

from castkeeper.db import Database
from castkeeper.models import FeedConfig, ParsedItem
from castkeeper.processor import FeedReport, handle_item, process_feed
from castkeeper.rss import ParsedFeed

FEED_TITLE = "Podcast: The Show"


def make_item(guid="abc", url="https://cdn.example.com/ep1.mp3?x=1", title="Episode 1", published=None):
    return ParsedItem(guid=guid, url=url, title=title, published=published)


class TestHandleItem:
    """Tests for the handle_item function."""

    @patch("castkeeper.processor.save_enclosure")
    def test_new_item_saved_and_recorded(self, mock_save, db: Database, settings):
        """Test that a new item is downloaded and then recorded."""
        mock_save.return_value = True
        config = FeedConfig(url="https://example.com/feed.xml", flags=3)

        assert handle_item(make_item(), FEED_TITLE, config, db, settings) is True

        mock_save.assert_called_once()
        assert db.has_seen("abc")

    @patch("castkeeper.processor.save_enclosure")
    def test_seen_item_never_downloaded(self, mock_save, db: Database, settings):
        """Test that a known guid never reaches the download policy."""
        db.record_seen("abc", "https://cdn.example.com/ep1.mp3", "Episode 1", FEED_TITLE)
        config = FeedConfig(url="https://example.com/feed.xml", flags=3)

        assert handle_item(make_item(), FEED_TITLE, config, db, settings) is False

        mock_save.assert_not_called()

    @patch("castkeeper.processor.save_enclosure")
    def test_failed_download_not_recorded(self, mock_save, db: Database, settings):
        """Test that a failed download leaves the item eligible for retry."""
        mock_save.return_value = False
        config = FeedConfig(url="https://example.com/feed.xml", flags=3)

        assert handle_item(make_item(), FEED_TITLE, config, db, settings) is False

        assert not db.has_seen("abc")

    @patch("castkeeper.processor.save_enclosure")
    def test_incomplete_item_skipped(self, mock_save, settings):
        """Test that items missing guid, url or title are silently skipped."""
        store = Mock()
        config = FeedConfig(url="https://example.com/feed.xml", flags=3)

        for item in (make_item(guid=None), make_item(url=None), make_item(title=None)):
            assert handle_item(item, FEED_TITLE, config, store, settings) is False

        store.has_seen.assert_not_called()
        mock_save.assert_not_called()

    @patch("castkeeper.processor.save_enclosure")
    def test_catalog_bit_unset_only_observes(self, mock_save, settings):
        """Test that without the catalog bit nothing is stored or downloaded."""
        store = Mock()
        config = FeedConfig(url="https://example.com/feed.xml", flags=1)

        assert handle_item(make_item(), FEED_TITLE, config, store, settings) is False

        store.has_seen.assert_not_called()
        store.record_seen.assert_not_called()
        mock_save.assert_not_called()

    @patch("castkeeper.processor.save_enclosure")
    def test_without_store_collects_candidate(self, mock_save, settings):
        """Test that observe mode only surfaces the item."""
        config = FeedConfig(url="https://example.com/feed.xml", flags=3)
        candidates = []

        handle_item(make_item(), FEED_TITLE, config, None, settings, candidates)

        assert candidates == [make_item()]
        mock_save.assert_not_called()

    @patch("castkeeper.processor.save_enclosure")
    def test_old_item_skipped(self, mock_save, settings):
        """Test that items published on or before the cutoff are ignored."""
        store = Mock()
        store.has_seen.return_value = False
        config = FeedConfig(url="https://example.com/feed.xml", flags=3, since=date(2024, 1, 1))

        old = make_item(published=datetime(2023, 12, 31, 23, 0))
        midnight = make_item(published=datetime(2024, 1, 1, 0, 0))

        assert handle_item(old, FEED_TITLE, config, store, settings) is False
        assert handle_item(midnight, FEED_TITLE, config, store, settings) is False
        mock_save.assert_not_called()

    @patch("castkeeper.processor.save_enclosure")
    def test_newer_item_passes_cutoff(self, mock_save, settings):
        """Test that items published after the cutoff are processed."""
        mock_save.return_value = True
        store = Mock()
        store.has_seen.return_value = False
        config = FeedConfig(url="https://example.com/feed.xml", flags=3, since=date(2024, 1, 1))

        item = make_item(published=datetime(2024, 1, 2, 9, 0))
        assert handle_item(item, FEED_TITLE, config, store, settings) is True

    @patch("castkeeper.processor.save_enclosure")
    def test_unknown_date_never_too_old(self, mock_save, settings):
        """Test that a missing publish date does not trigger the cutoff."""
        mock_save.return_value = True
        store = Mock()
        store.has_seen.return_value = False
        config = FeedConfig(url="https://example.com/feed.xml", flags=3, since=date(2024, 1, 1))

        assert handle_item(make_item(published=None), FEED_TITLE, config, store, settings) is True


class TestScenarios:
    """End to end item scenarios against a fake transport."""

    @patch("castkeeper.fetch.requests.request")
    def test_download_and_catalog(self, mock_request, settings, make_response):
        """Test flags=3: directory created, file written, item recorded once."""
        mock_request.return_value = make_response(200, content=b"mp3 bytes")
        store = Mock()
        store.has_seen.return_value = False
        config = FeedConfig(url="https://example.com/feed.xml", flags=3)

        handle_item(make_item(), FEED_TITLE, config, store, settings)

        assert (settings.download_dir / "Podcast").is_dir()
        assert (settings.download_dir / "Podcast" / "ep1.mp3").read_bytes() == b"mp3 bytes"
        store.record_seen.assert_called_once_with(
            "abc", "https://cdn.example.com/ep1.mp3?x=1", "Episode 1", FEED_TITLE
        )

    @patch("castkeeper.fetch.requests.request")
    def test_catalog_only(self, mock_request, settings):
        """Test flags=8: item recorded, nothing fetched or written."""
        store = Mock()
        store.has_seen.return_value = False
        config = FeedConfig(url="https://example.com/feed.xml", flags=8)

        handle_item(make_item(), FEED_TITLE, config, store, settings)

        store.record_seen.assert_called_once_with(
            "abc", "https://cdn.example.com/ep1.mp3?x=1", "Episode 1", FEED_TITLE
        )
        mock_request.assert_not_called()
        assert not settings.download_dir.exists()


class TestProcessFeed:
    """Tests for the process_feed function."""

    @patch("castkeeper.processor.handle_item")
    def test_items_processed_in_order(self, mock_handle, settings):
        """Test that every item is handed over in document order."""
        mock_handle.return_value = True
        items = [make_item(guid="1"), make_item(guid="2"), make_item(guid="3")]
        parsed = ParsedFeed(title=FEED_TITLE, items=items)
        config = FeedConfig(url="https://example.com/feed.xml", flags=3)

        report = process_feed(parsed, config, Mock(), settings)

        assert [c.args[0].guid for c in mock_handle.call_args_list] == ["1", "2", "3"]
        assert report.title == FEED_TITLE
        assert report.items_found == 3
        assert report.items_saved == 3

    def test_empty_feed_returns_title(self, settings):
        """Test that an empty feed is valid and still yields its title."""
        parsed = ParsedFeed(title="Empty Show", items=[])
        config = FeedConfig(url="https://example.com/feed.xml", flags=3)

        report = process_feed(parsed, config, Mock(), settings)

        assert report == FeedReport(title="Empty Show", items_found=0, items_saved=0)

    @patch("castkeeper.processor.handle_item")
    def test_item_failure_does_not_stop_siblings(self, mock_handle, settings):
        """Test that an error on one item leaves the others processed."""
        mock_handle.side_effect = [requests.ConnectionError("down"), True, OSError("disk full")]
        items = [make_item(guid="1"), make_item(guid="2"), make_item(guid="3")]
        parsed = ParsedFeed(title=FEED_TITLE, items=items)
        config = FeedConfig(url="https://example.com/feed.xml", flags=3)

        report = process_feed(parsed, config, Mock(), settings)

        assert mock_handle.call_count == 3
        assert report.items_saved == 1

    @patch("castkeeper.processor.handle_item")
    def test_untitled_feed_skips_items(self, mock_handle, settings):
        """Test that a feed without a title is not processed."""
        parsed = ParsedFeed(title=None, items=[make_item()])
        config = FeedConfig(url="https://example.com/feed.xml", flags=3)

        report = process_feed(parsed, config, Mock(), settings)

        assert report.title is None
        mock_handle.assert_not_called()

    def test_observe_mode_collects_candidates(self, settings):
        """Test that without a store items come back as candidates."""
        parsed = ParsedFeed(title=FEED_TITLE, items=[make_item(), make_item(guid=None)])
        config = FeedConfig(url="https://example.com/feed.xml", flags=1)

        report = process_feed(parsed, config, None, settings)

        assert [item.guid for item in report.candidates] == ["abc"]
        assert report.items_saved == 0
