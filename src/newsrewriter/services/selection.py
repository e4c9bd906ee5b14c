"""Candidate filtering, dedup and oldest-first selection."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from newsrewriter.config import CampaignConfig
from newsrewriter.models import SourceCandidate

__all__ = ["IsProcessedFn", "filter_candidates", "select"]

logger = logging.getLogger(__name__)

IsProcessedFn = Callable[[str, str], bool]


def filter_candidates(
    candidates: Iterable[SourceCandidate],
    config: CampaignConfig,
    is_processed_fn: IsProcessedFn,
) -> List[SourceCandidate]:
    """Return the candidates passing the date, keyword and dedup filters, in input order."""

    start = config.filters.start_date
    keywords = config.filters.url_keywords
    valid: List[SourceCandidate] = []

    for candidate in candidates:
        link = candidate.link
        if not link:
            continue

        # Undated candidates are never dropped by the cutoff
        if start is not None and candidate.published_at is not None:
            if candidate.published_at < start:
                continue

        if keywords:
            lowered = link.lower()
            if not any(keyword in lowered for keyword in keywords):
                continue

        if is_processed_fn(config.id, link):
            continue

        valid.append(candidate)

    logger.info("%d candidates passed filters for campaign %s", len(valid), config.id)
    return valid


def select(
    candidates: Iterable[SourceCandidate],
    config: CampaignConfig,
    is_processed_fn: IsProcessedFn,
) -> Optional[SourceCandidate]:
    """Return the oldest eligible candidate, or ``None`` when nothing is left."""

    valid = filter_candidates(candidates, config, is_processed_fn)
    if not valid:
        return None
    return sorted(valid, key=lambda candidate: candidate.timestamp())[0]
