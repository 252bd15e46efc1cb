"""Shared test fixtures for castkeeper tests."""

import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest
from requests.structures import CaseInsensitiveDict

from castkeeper.config import Settings
from castkeeper.db import Database


SAMPLE_PODCAST_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Podcast: The Show</title>
    <link>https://example.com</link>
    <description>A test podcast</description>
    <lastBuildDate>Mon, 08 Jan 2024 12:00:00 GMT</lastBuildDate>
    <ttl>60</ttl>
    <item>
      <title>Episode 1</title>
      <guid>abc</guid>
      <pubDate>Mon, 01 Jan 2024 12:00:00 GMT</pubDate>
      <enclosure url="https://cdn.example.com/ep1.mp3?x=1" length="1234" type="audio/mpeg"/>
    </item>
    <item>
      <title>Episode 2</title>
      <guid>def</guid>
      <pubDate>Mon, 08 Jan 2024 12:00:00 GMT</pubDate>
      <enclosure url="https://cdn.example.com/ep2.mp3" length="1234" type="audio/mpeg"/>
    </item>
  </channel>
</rss>
"""


@pytest.fixture
def db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        database = Database(db_path)
        yield database
        database.close()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings that download into a temporary directory."""
    return Settings(download_dir=tmp_path / "downloads", timeout=5)


@pytest.fixture
def make_response():
    """Build fake requests responses."""

    def _make(status_code=200, headers=None, content=b"", chunks=None):
        response = Mock()
        response.status_code = status_code
        response.headers = CaseInsensitiveDict(headers or {})
        response.content = content
        response.iter_content = Mock(return_value=iter(chunks if chunks is not None else [content]))
        response.close = Mock()
        return response

    return _make
