"""Run the active News Rewriter campaigns once, e.g. from cron."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure the src directory is on the Python path so the newsrewriter package can be imported
SRC_PATH = Path(__file__).resolve().parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from newsrewriter.config import CampaignsConfig, ProviderSettings, ScraperRules  # noqa: E402
from newsrewriter.errors import LogStoreCorrupted  # noqa: E402
from newsrewriter.logstore import JsonLogStore  # noqa: E402
from newsrewriter.publisher import JsonArticlePublisher  # noqa: E402
from newsrewriter.runner import run_campaigns  # noqa: E402
from newsrewriter.services.discovery import SourceDiscoverer  # noqa: E402
from newsrewriter.services.fetcher import PageFetcher  # noqa: E402
from newsrewriter.services.pipeline import ContentPipeline  # noqa: E402
from newsrewriter.services.prompts import PromptBuilder  # noqa: E402
from newsrewriter.services.provider import build_provider  # noqa: E402
from newsrewriter.services.scraper import ArticleScraper  # noqa: E402


def build_pipeline(
    campaigns: CampaignsConfig, log_store: JsonLogStore, blob_root: str | None = None
) -> ContentPipeline:
    fetcher = PageFetcher()
    return ContentPipeline(
        campaigns=campaigns,
        log_store=log_store,
        discoverer=SourceDiscoverer(fetcher),
        scraper=ArticleScraper(fetcher, ScraperRules.from_file()),
        prompt_builder=PromptBuilder(),
        provider=build_provider(ProviderSettings.from_env()),
        publisher=JsonArticlePublisher(blob_root),
    )


def main(argv: list[str] | None = None) -> None:
    """Process a batch for each active campaign and print a JSON summary."""

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", help="Path to campaigns.json")
    parser.add_argument("--blob-root", help="Directory holding the processed log and articles")
    parser.add_argument("--campaign", help="Only run the campaign with this id")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        campaigns = CampaignsConfig.from_file(args.config)
    except (FileNotFoundError, ValueError) as exc:
        logging.error("Could not load campaign configuration: %s", exc)
        sys.exit(1)

    selected = list(campaigns.iter_campaigns())
    if args.campaign:
        selected = [campaign for campaign in selected if campaign.id == args.campaign]

    log_store = JsonLogStore(args.blob_root)
    pipeline = build_pipeline(campaigns, log_store, args.blob_root)

    try:
        summary = run_campaigns(selected, pipeline, log_store)
    except LogStoreCorrupted as exc:
        logging.error("%s", exc)
        sys.exit(1)

    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
