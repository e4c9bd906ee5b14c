"""Campaign run orchestration.

:class:`ContentPipeline` wires discovery, selection, scraping and the optional
provider rewrite together.  Stages raise :class:`~newsrewriter.errors.PipelineError`
subclasses; :meth:`ContentPipeline.run_once` converts them into a
:class:`~newsrewriter.models.RunOutcome` so callers never see partial records.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol, Tuple
from urllib.parse import urlparse

from newsrewriter.config import CampaignConfig, CampaignsConfig
from newsrewriter.errors import (
    ConfigError,
    EmptyFinalContent,
    NoCandidates,
    NoNewCandidates,
    PipelineError,
    PublishFailed,
    ScrapeFailed,
    UnexpectedError,
)
from newsrewriter.logstore import ProcessedLogStore
from newsrewriter.models import (
    AIResult,
    ArticleRecord,
    ProcessedRecord,
    RunOutcome,
    ScrapedArticle,
    SourceTestResult,
)
from newsrewriter.services.discovery import SourceDiscoverer
from newsrewriter.services.prompts import PromptBuilder
from newsrewriter.services.provider import TextProvider
from newsrewriter.services.scraper import ArticleScraper, html_to_text
from newsrewriter.services.selection import select

__all__ = [
    "ContentPipeline",
    "LinkingContextFn",
    "Publisher",
    "RunMessages",
    "TEST_SOURCE_MAX_ITEMS",
    "source_base_url",
]

logger = logging.getLogger(__name__)

TEST_SOURCE_MAX_ITEMS = 10
TOKEN_OVERHEAD = 150

LinkingContextFn = Callable[[CampaignConfig], str]


class Publisher(Protocol):
    """Hands a finished article to the outside world and returns a reference to it."""

    def publish(self, record: ArticleRecord, campaign: CampaignConfig) -> str:  # pragma: no cover - protocol
        ...


class RunMessages:
    """Log through the module logger and keep ``"[LEVEL] message"`` lines for the run record."""

    def __init__(self) -> None:
        self.lines: List[str] = []

    def log(self, level: int, message: str, *args: object) -> None:
        logger.log(level, message, *args)
        text = message % args if args else message
        self.lines.append(f"[{logging.getLevelName(level)}] {text}")

    def info(self, message: str, *args: object) -> None:
        self.log(logging.INFO, message, *args)

    def warning(self, message: str, *args: object) -> None:
        self.log(logging.WARNING, message, *args)

    def error(self, message: str, *args: object) -> None:
        self.log(logging.ERROR, message, *args)


def source_base_url(url: str) -> str:
    """Return ``scheme://host/`` for ``url``; scheme-less URLs are treated as https."""

    url = url.strip()
    if "://" not in url:
        url = "https://" + url.lstrip("/")
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}/"


def estimate_tokens(content_html: str) -> int:
    return int(len(html_to_text(content_html)) / 4) + TOKEN_OVERHEAD


class ContentPipeline:
    """Run campaigns end to end with injected collaborators."""

    def __init__(
        self,
        campaigns: CampaignsConfig,
        log_store: ProcessedLogStore,
        discoverer: SourceDiscoverer,
        scraper: ArticleScraper,
        prompt_builder: PromptBuilder,
        provider: TextProvider,
        publisher: Publisher | None = None,
        linking_context: LinkingContextFn | None = None,
    ) -> None:
        self._campaigns = campaigns
        self._log_store = log_store
        self._discoverer = discoverer
        self._scraper = scraper
        self._prompt_builder = prompt_builder
        self._provider = provider
        self._publisher = publisher
        self._linking_context = linking_context

    def run_once(self, campaign_id: str) -> RunOutcome:
        """Process at most one new article for ``campaign_id``."""

        campaign_id = str(campaign_id)
        messages = RunMessages()
        try:
            record, target_ref = self._run(campaign_id, messages)
        except PipelineError as exc:
            messages.log(logging.INFO if exc.benign else logging.ERROR, "%s", exc)
            return RunOutcome(campaign_id=campaign_id, error=exc, messages=messages.lines)
        except Exception as exc:  # noqa: BLE001 - run boundary, reported through the outcome
            logger.exception("Unexpected failure while running campaign %s", campaign_id)
            error = UnexpectedError(f"{type(exc).__name__}: {exc}")
            error.__cause__ = exc
            messages.lines.append(f"[ERROR] {error}")
            return RunOutcome(campaign_id=campaign_id, error=error, messages=messages.lines)
        return RunOutcome(
            campaign_id=campaign_id, record=record, target_ref=target_ref, messages=messages.lines
        )

    def run_batch(self, campaign_id: str, limit: int = 1) -> int:
        """Call :meth:`run_once` up to ``limit`` times, stopping at the first failure.

        Returns the number of successful runs.
        """

        return sum(1 for outcome in self.batch_outcomes(campaign_id, limit) if outcome.ok)

    def batch_outcomes(self, campaign_id: str, limit: int = 1) -> List[RunOutcome]:
        """Like :meth:`run_batch` but return every outcome, the failing one last."""

        limit = max(1, int(limit))
        outcomes: List[RunOutcome] = []
        for _ in range(limit):
            outcome = self.run_once(campaign_id)
            outcomes.append(outcome)
            if outcome.error is not None:
                level = logging.INFO if outcome.error.benign else logging.ERROR
                logger.log(
                    level,
                    "Campaign %s stopped after %d article(s): %s",
                    campaign_id,
                    len(outcomes) - 1,
                    outcome.error_kind,
                )
                break
        return outcomes

    def test_source(self, url: str, type: str = "RSS") -> SourceTestResult:
        """Discover ``url`` and scrape its first item without touching the log store."""

        candidates = self._discoverer.discover(url, type, TEST_SOURCE_MAX_ITEMS)
        if not candidates:
            return SourceTestResult(error="No items found. Check URL or Source Type.")

        first = candidates[0]
        scraped = self._scraper.scrape(source_base_url(url), first.link)
        if scraped is None:
            return SourceTestResult(error=f"Found URL {first.link} but failed to scrape content.")
        return SourceTestResult(success=True, item=scraped)

    def _run(self, campaign_id: str, messages: RunMessages) -> Tuple[ArticleRecord, str]:
        config = self._campaigns.get(campaign_id)
        if not config.source.url:
            raise ConfigError(f"Campaign {campaign_id} has no source URL.")

        messages.info("Starting run for campaign %s (%s)", config.id, config.name)
        candidates = self._discoverer.discover(
            config.source.url, config.source.type, config.max_candidates
        )
        if not candidates:
            raise NoCandidates()
        messages.info("Discovered %d candidates", len(candidates))

        candidate = select(candidates, config, self._log_store.has_url_been_processed)
        if candidate is None:
            raise NoNewCandidates()
        messages.info("Selected: %s", candidate.link)

        scraped = self._scraper.scrape(source_base_url(config.source.url), candidate.link)
        if scraped is None:
            raise ScrapeFailed(f"Failed to scrape article content: {candidate.link}")

        result: Optional[AIResult] = None
        if config.processing_mode == "TRANSLATOR_SPIN":
            messages.warning("Translator spin is not available, publishing the source as is")

        if config.uses_provider:
            result = self._rewrite(scraped, config, messages)
            title = result.title or scraped.title
            content = result.content_html
        else:
            title = scraped.title
            content = scraped.content_html

        if not content.strip():
            raise EmptyFinalContent()

        record = ArticleRecord(
            title=title,
            content_html=content,
            image_url=scraped.image_url,
            source_url=candidate.link,
            slug=result.slug if result is not None else "",
            status=config.post_status,
            seo=result,
        )
        target_ref = self._publish(record, config)

        messages.info("Success: %s", title)
        self._log_store.append_record(
            ProcessedRecord(
                campaign_id=config.id,
                source_url=candidate.link,
                target_ref=target_ref,
                status="published" if config.post_status == "publish" else "draft",
                tokens_estimate=estimate_tokens(content) if result is not None else 0,
                messages=list(messages.lines),
            )
        )
        return record, target_ref

    def _rewrite(self, scraped: ScrapedArticle, config: CampaignConfig, messages: RunMessages) -> AIResult:
        if config.processing_mode == "AI_URL_DIRECT":
            prompt = self._prompt_builder.build_direct_url(scraped.url, config)
        else:
            linking = self._linking_context(config) if self._linking_context else ""
            prompt = self._prompt_builder.build(scraped, config, linking)

        messages.info(
            "Sending %s prompt to model %s (%s mode)",
            config.processing_mode,
            prompt.model,
            config.rewrite_mode,
        )
        result = self._provider.generate(prompt)
        messages.info("Received rewritten content (%d chars)", len(result.content_html))
        return result

    def _publish(self, record: ArticleRecord, config: CampaignConfig) -> str:
        if self._publisher is None:
            return ""
        try:
            reference = self._publisher.publish(record, config)
        except PipelineError:
            raise
        except Exception as exc:  # noqa: BLE001 - publisher is an arbitrary collaborator
            raise PublishFailed(f"Publisher rejected the article: {exc}") from exc
        return str(reference) if reference else ""
