"""RSS feed document parsing for castkeeper."""

from calendar import timegm
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import feedparser

from .models import ParsedItem

# Channel elements that are reported but never acted on
CHANNEL_INFO_FIELDS = {
    "lastBuildDate": "updated",
    "ttl": "ttl",
    "skipDays": "skipdays",
    "skipHours": "skiphours",
}


@dataclass
class ParsedFeed:
    """Represents a parsed feed document."""

    title: Optional[str]
    items: list[ParsedItem] = field(default_factory=list)
    info: dict[str, str] = field(default_factory=dict)


def parse_document(content: bytes) -> ParsedFeed:
    """Parse a feed document into its channel title and items.

    Items keep document order. feedparser never resolves external
    entities or loads external DTDs.

    Args:
        content: Raw feed document bytes

    Returns:
        ParsedFeed with the channel title (None if the feed has none)

    Raises:
        FeedParseError: If the content is not a usable feed
    """
    feed = feedparser.parse(content)

    title = (feed.feed.get("title") or "").strip() or None
    if feed.bozo and not feed.entries and title is None:
        raise FeedParseError(f"Failed to parse feed: {feed.bozo_exception}")

    info = {}
    for name, key in CHANNEL_INFO_FIELDS.items():
        value = feed.feed.get(key)
        if value:
            info[name] = str(value).strip()

    return ParsedFeed(
        title=title,
        items=[parse_item(entry) for entry in feed.entries],
        info=info,
    )


def parse_item(entry: dict) -> ParsedItem:
    """Extract guid, enclosure URL, title and publish date from an entry.

    Missing fields are left as None; deciding what to do with an
    incomplete item is up to the caller.
    """
    return ParsedItem(
        guid=_text(entry.get("id")),
        url=_enclosure_url(entry),
        title=_text(entry.get("title")),
        published=_parse_entry_date(entry),
    )


def _enclosure_url(entry: dict) -> Optional[str]:
    """Return the url attribute of the entry's first enclosure."""
    for enclosure in entry.get("enclosures") or []:
        href = enclosure.get("href") or enclosure.get("url")
        if href:
            return href.strip()
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_entry_date(entry: dict) -> Optional[datetime]:
    """Parse publication date from a feed entry.

    feedparser normalizes dates to UTC *_parsed tuples. Dates it could
    not parse are simply absent, so an unknown date is never an error.

    Args:
        entry: feedparser entry dict

    Returns:
        Naive local datetime if a date was found, None otherwise
    """
    date_fields = ["published_parsed", "updated_parsed", "created_parsed"]

    for field_name in date_fields:
        parsed_time = entry.get(field_name)
        if parsed_time:
            try:
                return datetime.fromtimestamp(timegm(parsed_time))
            except (ValueError, OverflowError, OSError, TypeError):
                continue

    return None


class FeedParseError(Exception):
    """Raised when a feed document cannot be parsed."""

    pass
