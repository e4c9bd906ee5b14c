"""Article scraping: title, main-content HTML and a representative image."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from newsrewriter.config import ScraperRules
from newsrewriter.errors import FetchFailure
from newsrewriter.models import ScrapedArticle
from newsrewriter.services.fetcher import PageFetcher

__all__ = [
    "ArticleScraper",
    "Selector",
    "extract_content_html",
    "extract_image_url",
    "extract_title",
    "html_to_text",
    "strip_boilerplate",
    "validate_scraped_content",
]

logger = logging.getLogger(__name__)

SCRAPE_TIMEOUT = 15


@dataclass(frozen=True, slots=True)
class Selector:
    """Minimal selector: a tag name, a ``.class`` token or an ``#id``."""

    tag: str | None = None
    class_name: str | None = None
    element_id: str | None = None

    @classmethod
    def parse(cls, selector: str) -> "Selector":
        selector = selector.strip()
        if not selector:
            raise ValueError("Empty selector")
        if selector.startswith("."):
            return cls(class_name=selector[1:])
        if selector.startswith("#"):
            return cls(element_id=selector[1:])
        return cls(tag=selector.lower())

    def matches(self, element: Tag) -> bool:
        if not isinstance(element, Tag):
            return False
        if self.tag is not None:
            return element.name == self.tag
        if self.class_name is not None:
            return self.class_name in _class_tokens(element)
        return element.get("id") == self.element_id

    def select_first(self, soup: BeautifulSoup | Tag) -> Tag | None:
        return soup.find(self.matches)


def _class_tokens(element: Tag) -> List[str]:
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return list(classes)


def _remove(elements: Iterable[Tag]) -> int:
    removed = 0
    for element in elements:
        if element.decomposed:
            continue
        element.decompose()
        removed += 1
    return removed


def html_to_text(html: str) -> str:
    """Return the tag-stripped, trimmed text of an HTML fragment."""

    if not html:
        return ""
    return BeautifulSoup(html, "lxml").get_text().strip()


def strip_boilerplate(soup: BeautifulSoup, rules: ScraperRules) -> None:
    """Remove non-content tags and elements whose class hits the denylist."""

    _remove(soup(rules.removed_tags))
    denied = set(rules.class_denylist)
    removed = _remove(soup.find_all(lambda tag: bool(denied.intersection(_class_tokens(tag)))))
    logger.debug("Removed %d boilerplate elements", removed)


def extract_title(soup: BeautifulSoup) -> str:
    for name in ("h1", "title"):
        element = soup.find(name)
        if element is not None:
            title = " ".join(element.get_text(" ").split())
            if title:
                return title
    return ""


def extract_image_url(soup: BeautifulSoup, base_url: str, containers: Sequence[Selector]) -> str | None:
    """Return ``og:image`` or the first image inside a content container."""

    meta = soup.find("meta", attrs={"property": "og:image"})
    if meta is not None and (meta.get("content") or "").strip():
        return urljoin(base_url, meta["content"].strip())

    def in_container(tag: Tag) -> bool:
        if tag.name != "img" or not (tag.get("src") or "").strip():
            return False
        return any(selector.matches(parent) for parent in tag.parents for selector in containers)

    image = soup.find(in_container)
    if image is None:
        return None
    return urljoin(base_url, image["src"].strip())


def extract_content_html(soup: BeautifulSoup, selectors: Sequence[Selector], min_chars: int) -> str:
    """Return the inner HTML of the first qualifying container, or all paragraphs."""

    for selector in selectors:
        node = selector.select_first(soup)
        if node is None:
            continue
        if len(node.get_text().strip()) > min_chars:
            return node.decode_contents()

    logger.warning("Could not find main content, falling back to <p> tags")
    return "".join(str(paragraph) for paragraph in soup.find_all("p"))


def validate_scraped_content(title: str, content: str, blocked_phrases: Iterable[str] | None = None) -> bool:
    """Return ``False`` when the page looks like a block or challenge page."""

    phrases = ScraperRules().blocked_phrases if blocked_phrases is None else blocked_phrases
    combined = f"{title} {content}".lower()
    return not any(phrase in combined for phrase in phrases)


class ArticleScraper:
    """Fetch an article page and reduce it to a :class:`ScrapedArticle`."""

    def __init__(
        self,
        fetcher: PageFetcher | None = None,
        rules: ScraperRules | None = None,
        timeout: float = SCRAPE_TIMEOUT,
    ) -> None:
        self._fetcher = fetcher or PageFetcher()
        self.rules = rules or ScraperRules()
        self._timeout = timeout
        self._content_selectors = [Selector.parse(value) for value in self.rules.content_selectors]
        self._image_containers = [Selector.parse(value) for value in self.rules.image_containers]

    def scrape(self, base_url: str, article_url: str) -> ScrapedArticle | None:
        """Return the scraped article or ``None`` when the page is unusable."""

        logger.info("Fetching article: %s", article_url)
        try:
            page = self._fetcher.fetch_text(article_url, self._timeout)
        except FetchFailure as exc:
            logger.error("Failed to fetch HTML: %s", exc)
            return None

        return self.parse(base_url, article_url, page.text)

    def parse(self, base_url: str, article_url: str, html: str) -> ScrapedArticle | None:
        soup = BeautifulSoup(html, "lxml")
        strip_boilerplate(soup, self.rules)

        title = extract_title(soup)
        image_url = extract_image_url(soup, base_url, self._image_containers)
        content_html = extract_content_html(
            soup, self._content_selectors, self.rules.min_container_chars
        )

        if not title or len(html_to_text(content_html)) < self.rules.min_content_chars:
            logger.error("Content too short or missing title: %s", article_url)
            return None

        if not validate_scraped_content(title, content_html, self.rules.blocked_phrases):
            logger.error("Content appears blocked or is a security page: %s", article_url)
            return None

        return ScrapedArticle(
            title=title,
            url=article_url,
            content_html=content_html,
            image_url=image_url,
        )
