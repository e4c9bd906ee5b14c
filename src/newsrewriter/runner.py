"""Scheduled runs over every active campaign."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from newsrewriter.config import CampaignConfig
from newsrewriter.logstore import ProcessedLogStore
from newsrewriter.services.pipeline import ContentPipeline

__all__ = ["MAX_CAMPAIGNS_PER_RUN", "limit_reached", "run_campaigns"]

logger = logging.getLogger(__name__)

MAX_CAMPAIGNS_PER_RUN = 3


def limit_reached(campaign: CampaignConfig, log_store: ProcessedLogStore) -> bool:
    """Return ``True`` once the campaign has processed ``max_posts_limit`` articles."""

    if campaign.max_posts_limit <= 0:
        return False
    return log_store.count_for_campaign(campaign.id) >= campaign.max_posts_limit


def run_campaigns(
    campaigns: Iterable[CampaignConfig],
    pipeline: ContentPipeline,
    log_store: ProcessedLogStore,
    max_campaigns: int = MAX_CAMPAIGNS_PER_RUN,
) -> List[Dict[str, object]]:
    """Run a batch for each active campaign and return one summary entry per campaign.

    Only campaigns that produced at least one article count towards
    ``max_campaigns``; idle ones do not use up a slot.
    """

    summary: List[Dict[str, object]] = []
    productive = 0

    for campaign in campaigns:
        if campaign.status != "active":
            continue
        if productive >= max_campaigns:
            logger.info("Reached %d productive campaigns, stopping", max_campaigns)
            break

        if limit_reached(campaign, log_store):
            logger.info(
                "Campaign %s reached its limit of %d articles, skipping",
                campaign.id,
                campaign.max_posts_limit,
            )
            summary.append(
                {
                    "campaign_id": campaign.id,
                    "name": campaign.name,
                    "processed": 0,
                    "target_refs": [],
                    "skipped": "max_posts_limit",
                }
            )
            continue

        logger.info("Running campaign %s (%s)", campaign.id, campaign.name)
        outcomes = pipeline.batch_outcomes(campaign.id, campaign.batch_size)
        succeeded = [outcome for outcome in outcomes if outcome.ok]
        if succeeded:
            productive += 1
        summary.append(
            {
                "campaign_id": campaign.id,
                "name": campaign.name,
                "processed": len(succeeded),
                "target_refs": [outcome.target_ref for outcome in succeeded],
            }
        )

    return summary
