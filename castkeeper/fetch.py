"""HTTP access for castkeeper.

Requests never follow redirects on their own; callers decide what a
redirect means (a moved feed, or a one-hop enclosure redirect).
"""

import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional
from urllib.parse import urljoin

import requests

from .config import Settings
from .models import FeedConfig

logger = logging.getLogger(__name__)

# Statuses treated as a permanent feed move
FEED_MOVE_STATUSES = range(301, 310)

# Statuses an enclosure download will follow one hop for
ITEM_REDIRECT_STATUSES = range(301, 400)


class FetchError(Exception):
    """Raised when a request fails in a way worth retrying next run."""

    pass


class RedirectLimitError(FetchError):
    """Raised when a feed keeps moving past the redirect cap."""

    def __init__(self, url: str, hops: int):
        self.url = url
        self.hops = hops
        super().__init__(f"Too many redirects ({hops}) ending at {url}")


def conditional_headers(config: FeedConfig) -> dict[str, str]:
    """Build the cache validator header for a feed request.

    The ETag takes precedence over the last fetch time; at most one of
    the two headers is ever returned.

    Args:
        config: Feed being requested

    Returns:
        Header dict, empty when the feed is always fetched or has no validator
    """
    if not config.options.conditional:
        return {}
    if config.etag:
        return {"If-None-Match": config.etag}
    if config.last_fetched is not None:
        return {"If-Modified-Since": _http_date(config.last_fetched)}
    return {}


def request(
    url: str,
    settings: Settings,
    method: str = "GET",
    headers: Optional[dict[str, str]] = None,
) -> requests.Response:
    """Issue a single request with redirects disabled.

    Args:
        url: URL to request
        settings: Runtime settings (timeout, user agent)
        method: HTTP method, GET or HEAD
        headers: Extra request headers

    Returns:
        The streamed response; the caller is responsible for closing it

    Raises:
        requests.RequestException: On network failure or a malformed URL
    """
    request_headers = {"User-Agent": settings.user_agent}
    if headers:
        request_headers.update(headers)

    logger.debug("%s %s %s", method, url, headers or "")
    return requests.request(
        method,
        url,
        headers=request_headers,
        allow_redirects=False,
        stream=True,
        timeout=settings.timeout,
    )


def redirect_location(
    response: requests.Response,
    url: str,
    statuses: range = ITEM_REDIRECT_STATUSES,
) -> Optional[str]:
    """Return the redirect target of a response, if it is one we follow.

    The Location header is resolved against the request URL. A Location
    equal to the request URL is not a redirect.

    Args:
        response: Response to inspect
        url: URL that produced the response
        statuses: Status codes that count as a redirect

    Returns:
        Absolute target URL, or None
    """
    if response.status_code not in statuses:
        return None
    location = response.headers.get("Location")
    if not location:
        return None
    target = urljoin(url, location.strip())
    if target == url:
        return None
    return target


def request_following_redirect(
    url: str,
    settings: Settings,
    method: str = "GET",
) -> requests.Response:
    """Request a URL, following at most one redirect by hand.

    Args:
        url: URL to request
        settings: Runtime settings
        method: HTTP method, GET or HEAD

    Returns:
        A response with status 200

    Raises:
        FetchError: If the final status is not 200
        requests.RequestException: On network failure
    """
    response = request(url, settings, method)
    if response.status_code == 200:
        return response

    logger.info("Unexpected status %s for %s", response.status_code, url)
    target = redirect_location(response, url, ITEM_REDIRECT_STATUSES)
    response.close()
    if target is None:
        raise FetchError(f"HTTP {response.status_code} for {url}")

    logger.info("Following redirect %s -> %s", url, target)
    response = request(target, settings, method)
    if response.status_code != 200:
        response.close()
        raise FetchError(f"HTTP {response.status_code} after redirect to {target}")
    return response


def _http_date(value: datetime) -> str:
    """Format a datetime as an HTTP date (naive values are local time)."""
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)
