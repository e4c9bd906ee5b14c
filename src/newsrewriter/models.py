"""Domain models passed between the pipeline stages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from newsrewriter.errors import PipelineError

__all__ = [
    "AIResult",
    "ArticleRecord",
    "FetchedPage",
    "ProcessedRecord",
    "PromptRequest",
    "RunOutcome",
    "ScrapedArticle",
    "SourceCandidate",
    "SourceTestResult",
    "utcnow",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FetchedPage(BaseModel):
    """Body of a successful GET together with its block-page flag."""

    url: str
    status_code: int
    text: str
    blocked: bool = False


class SourceCandidate(BaseModel):
    """A discovered article URL that has not been scraped yet."""

    link: str = ""
    published_at: Optional[datetime] = None

    @field_validator("published_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Naive times are UTC so they compare with the campaign start date
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def timestamp(self) -> float:
        """Return the publish time as a POSIX timestamp, ``0`` when unknown."""

        if self.published_at is None:
            return 0.0
        return self.published_at.timestamp()


class ScrapedArticle(BaseModel):
    """Representation of a scraped source article."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    content_html: str
    image_url: Optional[str] = None
    fetched_at: datetime = Field(default_factory=utcnow)


class PromptRequest(BaseModel):
    """Fully rendered instruction text ready to be sent to a provider."""

    model_config = ConfigDict(frozen=True)

    system_text: str
    temperature: float
    model: str
    use_web_tools: bool = Field(
        default=False,
        description="Ask the provider to use its built-in web retrieval tooling",
    )


class AIResult(BaseModel):
    """Canonical view of the provider's JSON answer."""

    title: str = ""
    content_html: str = ""
    meta_description: str = ""
    focus_keyphrase: str = ""
    long_tail_keyword: str = ""
    slug: str = ""
    image_alt: str = ""
    synonyms: str = ""
    raw_json: Dict[str, Any] = Field(default_factory=dict)


class ArticleRecord(BaseModel):
    """Article handed to the external publisher."""

    title: str
    content_html: str
    image_url: Optional[str] = None
    source_url: str
    slug: str = ""
    status: str = "draft"
    seo: Optional[AIResult] = None


class ProcessedRecord(BaseModel):
    """Append-only audit entry written after a successful run."""

    campaign_id: str
    source_url: str
    target_ref: str = ""
    status: str = ""
    tokens_estimate: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    messages: List[str] = Field(default_factory=list)


class RunOutcome(BaseModel):
    """Result of one pipeline run: either a record or an error, never both."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    campaign_id: str
    record: Optional[ArticleRecord] = None
    target_ref: str = ""
    error: Optional[PipelineError] = None
    messages: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and self.record is not None

    @property
    def error_kind(self) -> str | None:
        return self.error.kind if self.error is not None else None


class SourceTestResult(BaseModel):
    """Outcome of checking a source with a single discovery and scrape."""

    success: bool = False
    item: Optional[ScrapedArticle] = None
    error: Optional[str] = None
