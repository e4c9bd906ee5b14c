"""Local publisher that keeps finished articles as JSON blobs."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from pathlib import Path

from newsrewriter.config import CampaignConfig
from newsrewriter.logstore import resolve_blob_root, store_json
from newsrewriter.models import ArticleRecord

__all__ = ["ARTICLES_DIR", "JsonArticlePublisher", "article_path"]

logger = logging.getLogger(__name__)

ARTICLES_DIR = "articles"


def article_path(campaign_id: str, source_url: str, when: datetime | None = None) -> str:
    """Generate the blob path of an article based on its campaign, source URL and date."""

    datestamp = (when or datetime.now(timezone.utc)).strftime("%Y%m%d")
    url_hash = hashlib.sha1(source_url.encode("utf-8")).hexdigest()
    return f"{ARTICLES_DIR}/campaign={campaign_id}/{datestamp}/{url_hash}.json"


class JsonArticlePublisher:
    """Write each :class:`ArticleRecord` below the blob root and return its relative path."""

    def __init__(self, blob_root: str | Path | None = None) -> None:
        self.root: Path = resolve_blob_root(blob_root)

    def publish(self, record: ArticleRecord, campaign: CampaignConfig) -> str:
        path = article_path(campaign.id, record.source_url)
        payload = {
            "campaign_id": campaign.id,
            "category": campaign.category,
            "published_at": datetime.now(timezone.utc).isoformat(),
            **record.model_dump(mode="json"),
        }
        store_json(path, payload, blob_root=self.root)
        logger.info("Stored article %s as %s", record.title, path)
        return path
