"""Enclosure download policy for castkeeper."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import requests

from .config import Settings
from .fetch import FetchError, request_following_redirect
from .models import FeedFlags
from .naming import resolve_destination

logger = logging.getLogger(__name__)


def save_enclosure(
    url: str,
    feed_title: str,
    item_title: Optional[str],
    published: Optional[datetime],
    flags: FeedFlags,
    settings: Settings,
) -> bool:
    """Apply the download policy to one enclosure.

    Args:
        url: Enclosure URL
        feed_title: Channel title (directory namespace)
        item_title: Item title (replacement filename)
        published: Item publish date
        flags: Feed flags
        settings: Runtime settings

    Returns:
        True if the item should be recorded as seen, False to retry it
        on the next run
    """
    if not flags.saves_bytes:
        logger.info("Cataloging without download: %s", url)
        return True

    path = resolve_destination(
        url, feed_title, item_title, published, flags, settings.download_dir
    )
    logger.info("file %s", path)
    return fetch_and_write(path, url, flags, settings)


def fetch_and_write(path: Path, url: str, flags: FeedFlags, settings: Settings) -> bool:
    """Fetch an enclosure and stream it to disk.

    In probe-only mode a HEAD request is issued and nothing is written.

    Returns:
        True on success, False on any network, status or I/O failure
    """
    method = "HEAD" if flags.probe_only else "GET"
    try:
        response = request_following_redirect(url, settings, method)
    except (requests.RequestException, FetchError) as e:
        logger.warning("Download failed for %s: %s", url, e)
        return False

    try:
        if not flags.probe_only:
            with open(path, "wb") as out:
                for chunk in response.iter_content(chunk_size=settings.chunk_size):
                    if chunk:
                        out.write(chunk)
    except (requests.RequestException, OSError) as e:
        logger.warning("Writing %s failed: %s", path, e)
        return False
    finally:
        response.close()

    return True
