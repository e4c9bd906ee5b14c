"""Configuration models and helpers for campaigns, providers and the scraper."""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from newsrewriter.dates import parse_datetime
from newsrewriter.errors import ConfigError

__all__ = [
    "CampaignConfig",
    "CampaignsConfig",
    "DEFAULT_CAMPAIGNS_PATH",
    "DEFAULT_SCRAPER_RULES_PATH",
    "FilterConfig",
    "ProviderSettings",
    "ScraperRules",
    "SourceConfig",
    "StyleConfig",
]

DEFAULT_CAMPAIGNS_PATH = Path(__file__).resolve().parents[2] / "data" / "campaigns.json"
DEFAULT_SCRAPER_RULES_PATH = Path(__file__).resolve().parents[2] / "data" / "scraper_rules.json"

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

ProcessingMode = Literal["AS_IS", "AI_REWRITE", "AI_URL_DIRECT", "TRANSLATOR_SPIN"]
RewriteMode = Literal["loose", "normal", "strict"]


def _load_json(config_path: Path) -> object:
    try:
        return json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Configuration file not found: {config_path}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in configuration file: {config_path}") from exc


class SourceConfig(BaseModel):
    """Where a campaign discovers its articles."""

    url: str = Field(default="", description="RSS feed URL, sitemap URL or site root")
    type: Literal["RSS", "DIRECT"] = Field(
        default="RSS",
        description="RSS for feeds, DIRECT for sitemap-based discovery of a site",
    )

    @field_validator("url", mode="before")
    @classmethod
    def _strip_url(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value


class FilterConfig(BaseModel):
    """Candidate filters applied before an article is selected."""

    start_date: Optional[datetime] = Field(
        default=None,
        description="Candidates published before this moment are skipped",
    )
    url_keywords: List[str] = Field(
        default_factory=list,
        description="Lower-case fragments; a candidate link must contain at least one",
    )

    @field_validator("start_date", mode="before")
    @classmethod
    def _parse_start_date(cls, value: object) -> object:
        if value is None or value == "":
            return None
        parsed = parse_datetime(value)  # type: ignore[arg-type]
        if parsed is None:
            raise ValueError(f"Unreadable start_date: {value!r}")
        return parsed

    @field_validator("url_keywords", mode="before")
    @classmethod
    def _split_keywords(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple)):
            keywords = [str(item).strip().lower() for item in value]
            return [keyword for keyword in keywords if keyword]
        return value


class StyleConfig(BaseModel):
    """Style parameters interpolated into rewrite prompts."""

    tone: str = "enthusiastic and conversational"
    audience: str = "general online readers"
    brand_voice: str = ""
    language: str = "English"
    min_words: int = Field(default=600, ge=0)
    max_words: int = Field(default=1000, ge=0)
    max_headings: int = Field(default=1, ge=0)
    match_length: bool = False
    match_headings: bool = False
    match_tone: bool = False
    match_brand_voice: bool = False


class CampaignConfig(BaseModel):
    """Parameter set controlling the generation runs of one campaign."""

    id: str = Field(..., description="Identifier used by the log store")
    name: str = Field(default="", description="Human friendly campaign name")
    status: Literal["active", "paused"] = "active"
    batch_size: int = Field(default=1, ge=1, description="Articles per scheduled run")
    source: SourceConfig = Field(default_factory=SourceConfig)
    filters: FilterConfig = Field(default_factory=FilterConfig)
    processing_mode: ProcessingMode = "AS_IS"
    rewrite_mode: RewriteMode = "normal"
    style: StyleConfig = Field(default_factory=StyleConfig)
    model: str = Field(default="gemini-2.5-flash", description="Provider model identifier")
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Baseline temperature; the rewrite mode may override it",
    )
    custom_prompt: str = Field(
        default="",
        description="Replaces the generated prompt body when longer than 10 characters",
    )
    category: str = Field(default="general", description="Niche label used in prompts")
    post_status: Literal["draft", "publish"] = "draft"
    max_candidates: int = Field(default=50, ge=1, description="Discovery cap per run")
    max_posts_limit: int = Field(
        default=5000,
        ge=0,
        description="Lifetime cap on processed articles for the campaign, 0 for unlimited",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("processing_mode", mode="before")
    @classmethod
    def _upper_mode(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("rewrite_mode", mode="before")
    @classmethod
    def _lower_mode(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def uses_provider(self) -> bool:
        """Return ``True`` when runs of this campaign call the text provider."""

        return self.processing_mode in ("AI_REWRITE", "AI_URL_DIRECT")


class CampaignsConfig(BaseModel):
    """Collection of :class:`CampaignConfig` entries; the read-only campaign store."""

    campaigns: List[CampaignConfig] = Field(default_factory=list)

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> "CampaignsConfig":
        """Load campaign definitions from a JSON file."""

        config_path = Path(path) if path else DEFAULT_CAMPAIGNS_PATH
        data = _load_json(config_path)

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Configuration file is invalid: {config_path}\n{exc}") from exc

    def dump(self, path: Path | str | None = None) -> None:
        """Persist the configuration back to disk as JSON."""

        config_path = Path(path) if path else DEFAULT_CAMPAIGNS_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(self.model_dump_json(indent=2), encoding="utf-8")

    def get(self, campaign_id: str) -> CampaignConfig:
        """Return the campaign with ``campaign_id`` or raise :class:`ConfigError`."""

        for campaign in self.campaigns:
            if campaign.id == str(campaign_id):
                return campaign
        raise ConfigError(f"Invalid campaign: {campaign_id}")

    def iter_campaigns(self) -> Iterable[CampaignConfig]:
        return iter(self.campaigns)

    def add_campaign(self, campaign: CampaignConfig) -> None:
        self.campaigns.append(campaign)


class ProviderSettings(BaseModel):
    """Credentials and endpoint settings for the text-generation provider."""

    provider: Literal["gemini", "openai"] = "gemini"
    gemini_api_key: str = ""
    openai_api_key: str = ""
    base_url: str = Field(default=DEFAULT_GEMINI_BASE_URL, description="generateContent API root")
    timeout: float = Field(default=60.0, gt=0)

    @classmethod
    def from_env(cls) -> "ProviderSettings":
        """Build settings from environment variables (a local ``.env`` is loaded on import)."""

        return cls(
            provider=os.environ.get("NEWSREWRITER_PROVIDER", "gemini").strip().lower() or "gemini",
            gemini_api_key=os.environ.get("GEMINI_API_KEY", "").strip(),
            openai_api_key=os.environ.get("OPENAI_API_KEY", "").strip(),
            base_url=os.environ.get("NEWSREWRITER_PROVIDER_BASE_URL", "").strip()
            or DEFAULT_GEMINI_BASE_URL,
        )

    @property
    def api_key(self) -> str:
        """Return the key of the active provider."""

        return self.openai_api_key if self.provider == "openai" else self.gemini_api_key


class ScraperRules(BaseModel):
    """Data-driven lists steering :class:`~newsrewriter.services.scraper.ArticleScraper`."""

    removed_tags: List[str] = Field(
        default_factory=lambda: ["script", "style", "noscript", "iframe", "svg"]
    )
    class_denylist: List[str] = Field(
        default_factory=lambda: [
            "jwplayer", "jw-player", "video-container", "sticky-video", "video-wrapper",
            "post-meta", "entry-meta", "article-meta", "author", "byline", "post-info",
            "date", "published", "updated", "time", "entry-date",
            "share-buttons", "social-icons", "related-posts", "social-share",
            "ads", "advertisement", "ad-container",
            "sidebar", "widget-area",
        ],
        description="Elements carrying one of these class tokens are removed",
    )
    content_selectors: List[str] = Field(
        default_factory=lambda: [
            ".entry-content",
            ".post-content",
            "article",
            "main",
            "#content",
            ".story-content",
            ".post_details",
            ".content-body",
        ],
        description="Main-content containers in priority order (tag, .class or #id)",
    )
    image_containers: List[str] = Field(
        default_factory=lambda: ["article", ".entry-content", ".post-content"],
    )
    blocked_phrases: List[str] = Field(
        default_factory=lambda: [
            "sorry, you have been blocked",
            "attention required! | cloudflare",
            "access denied",
            "403 forbidden",
            "please enable cookies",
            "security check to access",
            "challenge validation",
        ],
    )
    min_container_chars: int = 100
    min_content_chars: int = 50

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> "ScraperRules":
        """Load rules from JSON, falling back to the built-in defaults when the file is absent."""

        config_path = Path(path) if path else DEFAULT_SCRAPER_RULES_PATH
        try:
            data = _load_json(config_path)
        except FileNotFoundError:
            if path:
                raise
            return cls()

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Configuration file is invalid: {config_path}\n{exc}") from exc
