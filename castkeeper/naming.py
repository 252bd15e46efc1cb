"""Destination filenames for downloaded enclosures."""

import re
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from .models import FeedFlags

# Feed titles often carry a tagline after one of these; tried in this order
TITLE_NOISE_MARKERS = [": ", " - ", " | ", " ("]

# A title slug (extension included) must be longer than this to be used
MIN_SLUG_LENGTH = 5

# Feed directory used when a title leaves nothing usable
UNTITLED_DIRECTORY = "untitled"


def url_basename(url: str) -> str:
    """Return the last path segment of a URL, ignoring any query string."""
    return url.split("?", 1)[0].rsplit("/", 1)[-1]


def sanitize_feed_title(title: str) -> str:
    """Strip a trailing tagline from a feed title.

    The first marker found (in TITLE_NOISE_MARKERS order) truncates the
    title at its first occurrence. Titles without a marker are unchanged.
    """
    for marker in TITLE_NOISE_MARKERS:
        index = title.find(marker)
        if index != -1:
            return title[:index]
    return title


def date_prefix(published: Optional[datetime]) -> str:
    """Compact yymmdd- stamp for a publish date, falling back to now."""
    return (published or datetime.now()).strftime("%y%m%d") + "-"


def title_slug(title: str, ext: str) -> str:
    """Collapse non-word runs in an item title to underscores."""
    return re.sub(r"\W+", "_", title) + ext


def feed_directory(root: Path, feed_title: str) -> Path:
    """Directory that holds a feed's downloads, always directly under root."""
    name = sanitize_feed_title(feed_title).replace("/", "_").strip()
    if name in ("", ".", ".."):
        name = title_slug(feed_title, "").strip("_") or UNTITLED_DIRECTORY
    return root / name


def resolve_destination(
    url: str,
    feed_title: str,
    item_title: Optional[str],
    published: Optional[datetime],
    flags: FeedFlags,
    root: Path,
) -> Path:
    """Compute where an enclosure should be written.

    The base name comes from the URL. If unique names are forced, or the
    base name already exists, a slug of the item title is used instead,
    and failing that the current time in milliseconds.

    Args:
        url: Enclosure URL
        feed_title: Channel title, used as the directory name
        item_title: Item title, used for the replacement name
        published: Item publish date, used for the optional date prefix
        flags: Feed flags
        root: Download root directory

    Returns:
        Destination path. The feed directory is created unless the feed
        is in probe-only mode.
    """
    prefix = date_prefix(published) if flags.date_prefix else ""
    basename = url_basename(url)

    directory = feed_directory(root, feed_title)
    if not flags.probe_only:
        directory.mkdir(parents=True, exist_ok=True)

    path = directory / (prefix + basename)
    if not (flags.unique_names or path.exists()):
        return path

    ext = _extension(basename)
    if item_title:
        slug = title_slug(item_title, ext)
        if len(slug) > MIN_SLUG_LENGTH:
            path = directory / (prefix + slug)
            if not path.exists():
                return path

    return directory / f"{prefix}{int(time.time() * 1000)}{ext}"


def _extension(basename: str) -> str:
    index = basename.rfind(".")
    return basename[index:] if index > -1 else ""
