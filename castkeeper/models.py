"""Data models for castkeeper."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import IntFlag
from typing import Optional


class FeedFlags(IntFlag):
    """Per-feed behaviour bits as stored in the feeds table."""

    DOWNLOAD_FEED = 1
    CATALOG = 2
    UNIQUE_NAMES = 4
    CATALOG_ONLY = 8
    PROBE_ONLY = 16
    ALWAYS_FETCH = 32
    DATE_PREFIX = 64

    @classmethod
    def decode(cls, value: int) -> "FeedFlags":
        """Decode a stored flags value. Negative values mean disabled."""
        if value <= 0:
            return cls(0)
        return cls(value & sum(member.value for member in cls))

    @property
    def catalogs(self) -> bool:
        """Items are recorded in the catalog (CATALOG_ONLY implies it)."""
        return bool(self & (FeedFlags.CATALOG | FeedFlags.CATALOG_ONLY))

    @property
    def saves_bytes(self) -> bool:
        return not self & FeedFlags.CATALOG_ONLY

    @property
    def probe_only(self) -> bool:
        return bool(self & FeedFlags.PROBE_ONLY)

    @property
    def unique_names(self) -> bool:
        return bool(self & FeedFlags.UNIQUE_NAMES)

    @property
    def date_prefix(self) -> bool:
        return bool(self & FeedFlags.DATE_PREFIX)

    @property
    def conditional(self) -> bool:
        """Cache validators are sent with the feed request."""
        return not self & FeedFlags.ALWAYS_FETCH


@dataclass
class FeedConfig:
    """Represents a subscribed feed."""

    url: str
    last_fetched: Optional[datetime] = None
    flags: int = 0
    etag: Optional[str] = None
    since: Optional[date] = None
    title: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.flags > 0

    @property
    def options(self) -> FeedFlags:
        return FeedFlags.decode(self.flags)


@dataclass
class SeenItem:
    """Represents an item that has already been processed."""

    guid: str
    url: str
    title: str
    feed_title: Optional[str] = None
    downloaded_at: Optional[datetime] = None


@dataclass
class ParsedItem:
    """Represents one item parsed from a feed document."""

    guid: Optional[str]
    url: Optional[str]
    title: Optional[str]
    published: Optional[datetime] = None

    @property
    def is_actionable(self) -> bool:
        return bool(self.guid and self.url and self.title)


@dataclass
class SyncResult:
    """Result of synchronizing a single feed."""

    url: str
    status: str  # "fetched", "not_modified", "gone" or "error"; moves set moved_to
    title: Optional[str] = None
    items_found: int = 0
    items_saved: int = 0
    moved_to: Optional[str] = None
    error: Optional[str] = None
    candidates: list[ParsedItem] = field(default_factory=list)
