"""Service layer entry points for News Rewriter."""

from __future__ import annotations

from .discovery import SourceDiscoverer  # noqa: F401
from .fetcher import PageFetcher  # noqa: F401
from .normalizer import normalize  # noqa: F401
from .pipeline import ContentPipeline  # noqa: F401
from .prompts import PromptBuilder  # noqa: F401
from .provider import GenerativeTextClient, OpenAIChatClient, build_provider  # noqa: F401
from .scraper import ArticleScraper  # noqa: F401

__all__ = [
    "ArticleScraper",
    "ContentPipeline",
    "GenerativeTextClient",
    "OpenAIChatClient",
    "PageFetcher",
    "PromptBuilder",
    "SourceDiscoverer",
    "build_provider",
    "normalize",
]
