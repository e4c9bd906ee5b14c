from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path

from newsrewriter.config import CampaignConfig, CampaignsConfig
from newsrewriter.logstore import InMemoryLogStore
from newsrewriter.models import AIResult, ArticleRecord, ScrapedArticle, SourceCandidate
from newsrewriter.publisher import JsonArticlePublisher, article_path
from newsrewriter.services.pipeline import ContentPipeline
from newsrewriter.services.prompts import PromptBuilder


def test_article_path_layout() -> None:
    url = "https://example.com/news/a"
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()

    path = article_path("7", url, datetime(2024, 5, 3, tzinfo=timezone.utc))

    assert path == f"articles/campaign=7/20240503/{digest}.json"


def test_publish_writes_article_blob(tmp_path: Path) -> None:
    record = ArticleRecord(
        title="Fresh title",
        content_html="<p>Rewritten body</p>",
        source_url="https://example.com/news/a",
        slug="fresh-title",
        seo=AIResult(title="Fresh title", meta_description="Short"),
    )
    campaign = CampaignConfig(id="7", category="retail")

    reference = JsonArticlePublisher(tmp_path).publish(record, campaign)

    assert reference.startswith("articles/campaign=7/")
    stored = json.loads((tmp_path / reference).read_text(encoding="utf-8"))
    assert stored["campaign_id"] == "7"
    assert stored["category"] == "retail"
    assert stored["title"] == "Fresh title"
    assert stored["content_html"] == "<p>Rewritten body</p>"
    assert stored["seo"]["meta_description"] == "Short"
    assert stored["published_at"]


class OneArticleSource:
    def discover(self, url, type="RSS", max_items=50):
        return [SourceCandidate(link="https://example.com/news/a")]

    def scrape(self, base_url, article_url):
        return ScrapedArticle(title="Source title", url=article_url, content_html="<p>Body</p>")


def test_pipeline_run_stores_article_through_publisher(tmp_path: Path) -> None:
    source = OneArticleSource()
    store = InMemoryLogStore()
    pipeline = ContentPipeline(
        campaigns=CampaignsConfig(campaigns=[{"id": "1", "source": {"url": "https://example.com/feed"}}]),
        log_store=store,
        discoverer=source,
        scraper=source,
        prompt_builder=PromptBuilder(),
        provider=None,
        publisher=JsonArticlePublisher(tmp_path),
    )

    outcome = pipeline.run_once("1")

    assert outcome.ok
    assert json.loads((tmp_path / outcome.target_ref).read_text(encoding="utf-8"))["title"] == "Source title"
    assert store.records[0].target_ref == outcome.target_ref
