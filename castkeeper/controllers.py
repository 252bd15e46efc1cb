"""Feed administration for castkeeper."""

from datetime import date
from typing import Optional

from .db import Database
from .models import FeedConfig, FeedFlags, SeenItem

DEFAULT_FLAGS = int(FeedFlags.DOWNLOAD_FEED | FeedFlags.CATALOG)


class FeedNotFoundError(Exception):
    """Raised when a feed is not found."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Feed '{url}' not found")


class FeedAlreadyExistsError(Exception):
    """Raised when trying to add a feed that already exists."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Feed '{url}' already exists")


def add_feed(
    db: Database,
    url: str,
    flags: int = DEFAULT_FLAGS,
    since: Optional[date] = None,
) -> FeedConfig:
    """Add a new feed to synchronize.

    Args:
        db: Database instance
        url: Feed URL
        flags: Behaviour flags (download feed and catalog items by default)
        since: Optional cutoff; items published on or before it are ignored

    Returns:
        The created FeedConfig

    Raises:
        FeedAlreadyExistsError: If a feed with the same URL exists
    """
    if db.get_feed(url):
        raise FeedAlreadyExistsError(url)

    return db.add_feed(FeedConfig(url=url, flags=flags, since=since))


def remove_feed(db: Database, url: str) -> None:
    """Stop tracking a feed.

    Raises:
        FeedNotFoundError: If feed not found
    """
    if not db.remove_feed(url):
        raise FeedNotFoundError(url)


def set_feed_flags(db: Database, url: str, flags: int) -> FeedConfig:
    """Change a feed's flags. Zero or negative values disable the feed.

    Args:
        db: Database instance
        url: Feed URL
        flags: New flags value

    Returns:
        The updated FeedConfig

    Raises:
        FeedNotFoundError: If feed not found
    """
    if not db.set_feed_flags(url, flags):
        raise FeedNotFoundError(url)
    return db.get_feed(url)


def get_seen_items(
    db: Database,
    feed_title: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[SeenItem]:
    """Get recorded items, most recent first."""
    return db.list_seen_items(feed_title=feed_title, limit=limit)
