from __future__ import annotations

from datetime import datetime, timezone

from newsrewriter.config import CampaignConfig
from newsrewriter.models import SourceCandidate
from newsrewriter.services.selection import filter_candidates, select


def candidate(link: str, day: int | None) -> SourceCandidate:
    published = datetime(2024, 5, day, tzinfo=timezone.utc) if day is not None else None
    return SourceCandidate(link=link, published_at=published)


def never_processed(campaign_id: str, url: str) -> bool:
    return False


def test_select_returns_oldest_candidate() -> None:
    config = CampaignConfig(id="1")
    candidates = [
        candidate("https://example.com/c", 9),
        candidate("https://example.com/a", 3),
        candidate("https://example.com/b", 6),
    ]

    chosen = select(candidates, config, never_processed)

    assert chosen is not None
    assert chosen.link == "https://example.com/a"


def test_undated_candidates_sort_first_and_survive_cutoff() -> None:
    config = CampaignConfig(id="1", filters={"start_date": "2024-05-05"})
    candidates = [candidate("https://example.com/dated", 9), candidate("https://example.com/undated", None)]

    chosen = select(candidates, config, never_processed)

    assert chosen is not None
    assert chosen.link == "https://example.com/undated"


def test_start_date_drops_older_candidates() -> None:
    config = CampaignConfig(id="1", filters={"start_date": "2024-05-05"})
    candidates = [candidate("https://example.com/old", 1), candidate("https://example.com/new", 7)]

    valid = filter_candidates(candidates, config, never_processed)

    assert [c.link for c in valid] == ["https://example.com/new"]


def test_keywords_match_case_insensitively() -> None:
    config = CampaignConfig(id="1", filters={"url_keywords": "Retail"})
    candidates = [
        candidate("https://example.com/RETAIL/openings", 1),
        candidate("https://example.com/sports/final", 2),
    ]

    valid = filter_candidates(candidates, config, never_processed)

    assert [c.link for c in valid] == ["https://example.com/RETAIL/openings"]


def test_keywords_excluding_everything_select_nothing() -> None:
    config = CampaignConfig(id="1", filters={"url_keywords": ["crypto"]})
    candidates = [candidate("https://example.com/retail/a", 1), candidate("https://example.com/food/b", 2)]

    assert select(candidates, config, never_processed) is None


def test_processed_links_and_empty_links_are_skipped() -> None:
    config = CampaignConfig(id="camp")
    seen = {("camp", "https://example.com/a")}
    candidates = [
        candidate("https://example.com/a", 1),
        candidate("", 2),
        candidate("https://example.com/b", 3),
    ]

    chosen = select(candidates, config, lambda campaign_id, url: (campaign_id, url) in seen)

    assert chosen is not None
    assert chosen.link == "https://example.com/b"


def test_filter_candidates_keeps_input_order() -> None:
    config = CampaignConfig(id="1")
    candidates = [candidate("https://example.com/z", 9), candidate("https://example.com/y", 1)]

    valid = filter_candidates(candidates, config, never_processed)

    assert [c.link for c in valid] == ["https://example.com/z", "https://example.com/y"]


def test_three_item_feed_selects_first_day() -> None:
    config = CampaignConfig(id="1")
    candidates = [
        candidate("https://example.com/day3", 3),
        candidate("https://example.com/day1", 1),
        candidate("https://example.com/day2", 2),
    ]

    assert select(candidates, config, never_processed).link == "https://example.com/day1"


def test_naive_candidate_dates_are_treated_as_utc() -> None:
    config = CampaignConfig(id="1", filters={"start_date": "2024-05-05T00:00:00+00:00"})
    candidates = [
        SourceCandidate(link="https://example.com/old", published_at=datetime(2024, 5, 1)),
        SourceCandidate(link="https://example.com/new", published_at=datetime(2024, 5, 7)),
    ]

    valid = filter_candidates(candidates, config, never_processed)

    assert [c.link for c in valid] == ["https://example.com/new"]
    assert candidates[1].published_at.tzinfo == timezone.utc
