"""Candidate discovery from RSS/Atom feeds and XML sitemaps."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import cmp_to_key
from typing import List, Sequence
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from newsrewriter.dates import parse_datetime
from newsrewriter.errors import FetchFailure
from newsrewriter.models import SourceCandidate, utcnow
from newsrewriter.services.fetcher import PageFetcher

__all__ = [
    "SITEMAP_CANDIDATE_PATHS",
    "SitemapEntry",
    "SourceDiscoverer",
    "order_sitemap_entries",
    "parse_feed",
    "parse_leaf_sitemap",
    "sitemap_sequence",
]

logger = logging.getLogger(__name__)

DISCOVERY_TIMEOUT = 15
DEFAULT_MAX_ITEMS = 50

SITEMAP_CANDIDATE_PATHS = (
    "/sitemap_index.xml",
    "/sitemap.xml",
    "/wp-sitemap.xml",
    "/post-sitemap.xml",
    "/sitemap_posts.xml",
)

POST_SITEMAP_HINTS = ("post", "news", "article")
JUNK_SITEMAP_HINTS = ("image", "video", "author", "tag", "category")

_DIRECT_XML_RE = re.compile(r"\.xml($|\?)", re.IGNORECASE)
_SEQUENCE_RE = re.compile(r"(\d+)\.xml$")


@dataclass(slots=True)
class SitemapEntry:
    """A child sitemap listed in a sitemap index."""

    loc: str
    lastmod: float = 0.0


def _normalise_source_url(url: str) -> str:
    url = url.strip()
    if not re.match(r"^https?://", url, re.IGNORECASE):
        url = "https://" + url.lstrip("/")
    return url


def _strip_query(url: str) -> str:
    return url.split("?", 1)[0]


def _child_text(element: Tag, name: str) -> str:
    child = element.find(name, recursive=False)
    if child is None:
        return ""
    return child.get_text(strip=True)


def _entry_link(entry: Tag) -> str:
    """Return the link of an RSS ``<item>`` or Atom ``<entry>``."""

    fallback = ""
    for link in entry.find_all("link", recursive=False):
        if link.prefix:
            continue
        href = (link.get("href") or "").strip()
        if href:
            if link.get("rel") in (None, "alternate"):
                return href
            fallback = fallback or href
            continue
        text = link.get_text(strip=True)
        if text:
            return text
    return fallback


def parse_feed(xml: str, max_items: int = DEFAULT_MAX_ITEMS) -> List[SourceCandidate]:
    """Parse an RSS 2.0 or Atom document into candidates, in document order."""

    soup = BeautifulSoup(xml, "xml")
    channel = soup.find("channel")
    entries = channel.find_all("item", recursive=False) if channel is not None else []
    if not entries:
        entries = soup.find_all("entry")

    candidates: List[SourceCandidate] = []
    for entry in entries[:max_items]:
        raw_date = _child_text(entry, "pubDate") or _child_text(entry, "updated")
        published_at = parse_datetime(raw_date) if raw_date else utcnow()
        candidates.append(
            SourceCandidate(link=_strip_query(_entry_link(entry)), published_at=published_at)
        )

    logger.info("Parsed %d feed items", len(candidates))
    return candidates


def parse_leaf_sitemap(xml: str, max_items: int = DEFAULT_MAX_ITEMS) -> List[SourceCandidate]:
    """Parse a ``<urlset>`` sitemap; each ``<url>`` becomes a candidate."""

    soup = BeautifulSoup(xml, "xml")
    candidates: List[SourceCandidate] = []
    for url in soup.find_all("url")[:max_items]:
        lastmod = _child_text(url, "lastmod")
        candidates.append(
            SourceCandidate(
                link=_child_text(url, "loc"),
                published_at=parse_datetime(lastmod) if lastmod else utcnow(),
            )
        )

    logger.info("Parsed %d sitemap URLs", len(candidates))
    return candidates


def sitemap_sequence(loc: str) -> int:
    """Return the numeric suffix of a child sitemap name, ``-1`` when there is none."""

    match = _SEQUENCE_RE.search(loc)
    if match:
        return int(match.group(1))
    if "post-sitemap.xml" in loc:
        return 1
    return -1


def _compare_entries(a: SitemapEntry, b: SitemapEntry) -> int:
    seq_a = sitemap_sequence(a.loc)
    seq_b = sitemap_sequence(b.loc)
    if seq_a > -1 and seq_b > -1 and seq_a != seq_b:
        return seq_b - seq_a
    if a.lastmod == b.lastmod:
        return 0
    return 1 if b.lastmod > a.lastmod else -1


def order_sitemap_entries(entries: Sequence[SitemapEntry]) -> List[SitemapEntry]:
    """Filter an index down to post-like sitemaps and order them newest first."""

    def is_post_like(entry: SitemapEntry) -> bool:
        loc = entry.loc.lower()
        is_post = any(hint in loc for hint in POST_SITEMAP_HINTS)
        is_junk = any(hint in loc for hint in JUNK_SITEMAP_HINTS)
        return is_post and not is_junk

    post_like = [entry for entry in entries if is_post_like(entry)]
    logger.info("Filtered to %d post-like sitemaps", len(post_like))
    candidates = post_like or list(entries)
    return sorted(candidates, key=cmp_to_key(_compare_entries))


class SourceDiscoverer:
    """Produce candidate article links from a feed or from a site's sitemap."""

    def __init__(self, fetcher: PageFetcher | None = None, timeout: float = DISCOVERY_TIMEOUT) -> None:
        self._fetcher = fetcher or PageFetcher()
        self._timeout = timeout

    def discover(
        self, url: str, type: str = "RSS", max_items: int = DEFAULT_MAX_ITEMS
    ) -> List[SourceCandidate]:
        """Return candidates for ``url``; an empty list means nothing was found.

        Failures are logged and never raised: discovery problems simply mean
        there are no candidates this run.
        """

        url = _normalise_source_url(url)
        source_type = (type or "RSS").upper()
        logger.info("Starting discovery: %s (%s)", url, source_type)

        if source_type == "RSS":
            return self.discover_feed(url, max_items)
        return self.discover_sitemap(url, max_items)

    def discover_feed(self, url: str, max_items: int = DEFAULT_MAX_ITEMS) -> List[SourceCandidate]:
        try:
            page = self._fetcher.fetch_text(url, self._timeout)
        except FetchFailure as exc:
            logger.error("Feed could not be fetched: %s", exc)
            return []
        return parse_feed(page.text, max_items)

    def discover_sitemap(self, url: str, max_items: int = DEFAULT_MAX_ITEMS) -> List[SourceCandidate]:
        located = self._locate_sitemap(url)
        if located is None:
            logger.error("Could not find a valid sitemap XML for %s", url)
            return []

        xml, found_at = located
        soup = BeautifulSoup(xml, "xml")
        children = soup.find_all("sitemap")
        if not children:
            logger.info("Treating %s as leaf sitemap", found_at)
            return parse_leaf_sitemap(xml, max_items)

        logger.info("Processing index with %d child sitemaps", len(children))
        entries = []
        for child in children:
            lastmod = parse_datetime(_child_text(child, "lastmod"))
            entries.append(
                SitemapEntry(
                    loc=_child_text(child, "loc"),
                    lastmod=lastmod.timestamp() if lastmod is not None else 0.0,
                )
            )

        ordered = order_sitemap_entries(entries)
        if not ordered:
            return []

        target = ordered[0].loc
        logger.info("Using child sitemap: %s", target)
        try:
            leaf = self._fetcher.fetch_text(target, self._timeout)
        except FetchFailure as exc:
            logger.error("Failed to fetch child sitemap: %s", exc)
            return []
        return parse_leaf_sitemap(leaf.text, max_items)

    def _locate_sitemap(self, url: str) -> tuple[str, str] | None:
        """Return ``(xml, url)`` of the first usable sitemap document."""

        if _DIRECT_XML_RE.search(url):
            try:
                return self._fetcher.fetch_text(url, self._timeout).text, url
            except FetchFailure as exc:
                logger.warning("Sitemap could not be fetched: %s", exc)
                return None

        parsed = urlparse(url)
        domain = f"{parsed.scheme}://{parsed.netloc}"
        for path in SITEMAP_CANDIDATE_PATHS:
            target = domain + path
            try:
                xml = self._fetcher.fetch_text(target, self._timeout).text
            except FetchFailure:
                continue
            if "<sitemap" in xml or "<url" in xml:
                logger.info("Found sitemap XML at %s", target)
                return xml, target
        return None
