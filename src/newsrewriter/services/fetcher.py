"""Single-attempt HTTP fetching with a browser-like identity."""

from __future__ import annotations

import logging

import requests

from newsrewriter.errors import FetchFailure
from newsrewriter.models import FetchedPage

__all__ = ["BLOCK_MARKERS", "DEFAULT_HEADERS", "DEFAULT_TIMEOUT", "MIN_BODY_BYTES", "PageFetcher"]

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/129.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}

DEFAULT_TIMEOUT = 15
MIN_BODY_BYTES = 50

# Firewall/CDN challenge pages; flagged, not rejected, at this layer
BLOCK_MARKERS = ("403 forbidden", "proxy error", "cloudflare")


class PageFetcher:
    """Fetch URLs as text. No retries: retry policy belongs to the caller."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session or requests.Session()
        self._session.headers.update(DEFAULT_HEADERS)

    def fetch_text(self, url: str, timeout_seconds: float = DEFAULT_TIMEOUT) -> FetchedPage:
        """GET ``url`` and return its body.

        Raises :class:`FetchFailure` on transport errors, non-2xx statuses and
        bodies shorter than :data:`MIN_BODY_BYTES`.
        """

        logger.debug("GET %s", url)
        try:
            response = self._session.get(url, timeout=timeout_seconds)
        except requests.RequestException as exc:
            logger.warning("Request for %s failed: %s", url, exc)
            raise FetchFailure(url, str(exc)) from exc

        status = response.status_code
        body = response.text or ""
        if status < 200 or status >= 300:
            logger.warning("Non-OK response (%d) from %s", status, url)
            raise FetchFailure(url, f"HTTP {status}", status_code=status)

        if len(body.encode("utf-8")) < MIN_BODY_BYTES:
            logger.warning("Response body from %s is too short (%d chars)", url, len(body))
            raise FetchFailure(url, "response body too short", status_code=status)

        lowered = body.lower()
        blocked = any(marker in lowered for marker in BLOCK_MARKERS)
        if blocked:
            logger.warning("Response from %s looks like an error/protection page", url)

        return FetchedPage(url=url, status_code=status, text=body, blocked=blocked)
