"""Feed synchronization for castkeeper."""

import logging
import sqlite3
from dataclasses import replace
from datetime import datetime
from typing import Optional

import requests

from .config import Settings
from .db import Database
from .fetch import (
    FEED_MOVE_STATUSES,
    FetchError,
    RedirectLimitError,
    conditional_headers,
    redirect_location,
    request,
)
from .models import FeedConfig, FeedFlags, SyncResult
from .processor import process_feed
from .rss import FeedParseError, parse_document

logger = logging.getLogger(__name__)

GONE_STATUSES = (404, 410)


def sync_feed(
    config: FeedConfig,
    store: Optional[Database],
    settings: Settings,
    hops: int = 0,
) -> SyncResult:
    """Synchronize a single feed.

    Performs a conditional fetch and acts on the status: 200 processes
    the document, 304 changes nothing, 404/410 disable the feed, and a
    301-309 to a new Location moves the feed and syncs it again. Any
    other outcome leaves the stored state alone so the next run retries.

    Args:
        config: Feed to synchronize
        store: Feed store, or None for a side-effect free inspection
        settings: Runtime settings
        hops: Number of feed moves already followed in this sync

    Returns:
        SyncResult describing the outcome
    """
    try:
        return _sync(config, store, settings, hops)
    except (requests.RequestException, FetchError, FeedParseError, OSError, sqlite3.Error) as e:
        logger.warning("Feed %s failed: %s", config.url, e)
        return SyncResult(url=config.url, status="error", title=config.title, error=str(e))


def _sync(
    config: FeedConfig,
    store: Optional[Database],
    settings: Settings,
    hops: int,
) -> SyncResult:
    url = config.url
    logger.info("Fetching %s", url)
    started = datetime.now()

    response = request(url, settings, headers=conditional_headers(config))
    try:
        status = response.status_code
        etag = response.headers.get("ETag")
        for header in ("Last-Modified", "Expires", "ETag"):
            if response.headers.get(header):
                logger.debug("%s %s", header, response.headers[header])

        if status == 304:
            logger.info("Not modified: %s", url)
            return SyncResult(url=url, status="not_modified", title=config.title)

        if status in GONE_STATUSES:
            logger.warning("Status %s: feed %s is gone, disabling it", status, url)
            if store is not None:
                store.mark_feed_dead(url)
            return SyncResult(url=url, status="gone", title=config.title)

        if status != 200:
            target = redirect_location(response, url, FEED_MOVE_STATUSES)
            if target is None:
                raise FetchError(f"Unexpected status {status} for {url}")
        else:
            parsed = parse_document(response.content)
    finally:
        response.close()

    if status != 200:
        return _move(config, target, store, settings, hops)

    report = process_feed(parsed, config, store, settings)
    if report.title is None:
        logger.warning("Feed %s has no title; not advancing its fetch time", url)
    elif store is not None:
        store.update_feed_state(url, started, etag, report.title)
        logger.info("Updated feed %s at %s", report.title, started)

    return SyncResult(
        url=url,
        status="fetched",
        title=report.title,
        items_found=report.items_found,
        items_saved=report.items_saved,
        candidates=report.candidates,
    )


def _move(
    config: FeedConfig,
    target: str,
    store: Optional[Database],
    settings: Settings,
    hops: int,
) -> SyncResult:
    """Record a permanent feed move and sync the feed at its new URL."""
    if hops >= settings.max_redirects:
        raise RedirectLimitError(target, hops + 1)

    logger.warning("Feed moved: %s -> %s", config.url, target)
    if store is not None and not store.move_feed(config.url, target):
        logger.warning("Feed %s is already tracked; disabled %s", target, config.url)

    result = _sync(replace(config, url=target), store, settings, hops + 1)
    if result.moved_to is None:
        result.moved_to = target
    return result


def sync_all_feeds(store: Database, settings: Settings) -> list[SyncResult]:
    """Synchronize every enabled feed in the store.

    Args:
        store: Feed store
        settings: Runtime settings

    Returns:
        List of SyncResult for each feed, in URL order
    """
    results = []
    for config in store.list_enabled_feeds():
        results.append(sync_feed(config, store, settings))
    return results


def sync_url(url: str, settings: Settings) -> SyncResult:
    """Fetch a single feed URL for inspection without touching any store."""
    config = FeedConfig(url=url, flags=int(FeedFlags.DOWNLOAD_FEED))
    return sync_feed(config, None, settings)
