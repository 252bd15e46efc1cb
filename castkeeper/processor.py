"""Feed and item processing for castkeeper."""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Optional

import requests

from .config import Settings
from .db import Database
from .downloader import save_enclosure
from .models import FeedConfig, ParsedItem
from .rss import ParsedFeed

logger = logging.getLogger(__name__)


@dataclass
class FeedReport:
    """What processing a parsed feed produced."""

    title: Optional[str]
    items_found: int = 0
    items_saved: int = 0
    candidates: list[ParsedItem] = field(default_factory=list)


def process_feed(
    parsed: ParsedFeed,
    config: FeedConfig,
    store: Optional[Database],
    settings: Settings,
) -> FeedReport:
    """Run every item of a parsed feed through the item policy.

    Items are handled in document order. A failure on one item is logged
    and does not stop the others.

    Args:
        parsed: Parsed feed document
        config: Feed configuration
        store: Feed store, or None to only observe
        settings: Runtime settings

    Returns:
        FeedReport carrying the channel title, even for an empty feed
    """
    for name, value in parsed.info.items():
        logger.info("%s is %s", name, value)

    report = FeedReport(title=parsed.title, items_found=len(parsed.items))
    logger.info("Scanning feed %s", parsed.title)
    if parsed.title is None:
        return report

    for item in parsed.items:
        try:
            if handle_item(item, parsed.title, config, store, settings, report.candidates):
                report.items_saved += 1
        except (requests.RequestException, OSError, sqlite3.Error) as e:
            logger.warning("Item %s from %s failed: %s", item.guid, config.url, e)

    return report


def handle_item(
    item: ParsedItem,
    feed_title: str,
    config: FeedConfig,
    store: Optional[Database],
    settings: Settings,
    candidates: Optional[list[ParsedItem]] = None,
) -> bool:
    """Decide what to do with one feed item.

    Incomplete items and items older than the feed's cutoff are skipped.
    Without a store the item is only collected as a candidate. Otherwise,
    if the feed catalogs items and the guid is new, the download policy
    runs and the item is recorded only when it succeeds.

    Returns:
        True if the item was recorded as seen
    """
    if not item.is_actionable:
        return False

    if _is_too_old(item, config):
        logger.debug("Skipping %s: published before %s", item.guid, config.since)
        return False

    if store is None:
        logger.info("%s:guid=%s:url=%s:feed=%s", item.title, item.guid, item.url, feed_title)
        if candidates is not None:
            candidates.append(item)
        return False

    flags = config.options
    if not flags.catalogs:
        return False

    if store.has_seen(item.guid):
        return False

    if not save_enclosure(item.url, feed_title, item.title, item.published, flags, settings):
        return False

    store.record_seen(item.guid, item.url, item.title, feed_title)
    logger.info("Recorded %s:guid=%s:url=%s:feed=%s", item.title, item.guid, item.url, feed_title)
    return True


def _is_too_old(item: ParsedItem, config: FeedConfig) -> bool:
    """Check the item against the feed's cutoff date. Unknown dates pass."""
    if config.since is None or item.published is None:
        return False
    return item.published <= datetime.combine(config.since, time.min)
