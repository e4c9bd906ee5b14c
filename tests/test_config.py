import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

pytest.importorskip("pydantic")

from pydantic import ValidationError

from newsrewriter.config import (
    CampaignConfig,
    CampaignsConfig,
    DEFAULT_GEMINI_BASE_URL,
    ProviderSettings,
    ScraperRules,
)
from newsrewriter.dates import parse_datetime
from newsrewriter.errors import ConfigError


def test_round_trip(tmp_path: Path) -> None:
    config_path = tmp_path / "campaigns.json"
    config = CampaignsConfig(
        campaigns=[
            CampaignConfig(
                id="7",
                name="Retail",
                source={"url": " https://example.com/feed ", "type": "rss"},
                filters={"url_keywords": "Retail, , ECommerce "},
                processing_mode="ai_rewrite",
                rewrite_mode="Strict",
            )
        ]
    )
    config.dump(config_path)

    loaded = CampaignsConfig.from_file(config_path)
    campaign = loaded.get("7")
    assert campaign.name == "Retail"
    assert campaign.source.url == "https://example.com/feed"
    assert campaign.source.type == "RSS"
    assert campaign.filters.url_keywords == ["retail", "ecommerce"]
    assert campaign.processing_mode == "AI_REWRITE"
    assert campaign.rewrite_mode == "strict"
    assert campaign.uses_provider is True


def test_numeric_ids_are_strings() -> None:
    campaigns = CampaignsConfig.model_validate({"campaigns": [{"id": 12}]})

    assert campaigns.get("12").id == "12"
    assert campaigns.get(12).processing_mode == "AS_IS"


def test_get_unknown_campaign_raises_config_error() -> None:
    with pytest.raises(ConfigError):
        CampaignsConfig().get("missing")


def test_start_date_parsing() -> None:
    campaign = CampaignConfig(id="1", filters={"start_date": "2024-05-01"})
    assert campaign.filters.start_date == datetime(2024, 5, 1, tzinfo=timezone.utc)

    assert CampaignConfig(id="1", filters={"start_date": ""}).filters.start_date is None

    with pytest.raises(ValidationError):
        CampaignConfig(id="1", filters={"start_date": "not a date"})


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ValidationError):
        CampaignConfig(id="1", processing_mode="SUMMARIZE")
    with pytest.raises(ValidationError):
        CampaignConfig(id="1", temperature=3)
    with pytest.raises(ValidationError):
        CampaignConfig(id="1", batch_size=0)
    with pytest.raises(ValidationError):
        CampaignConfig(id="1", max_posts_limit=-1)


def test_max_posts_limit_defaults() -> None:
    assert CampaignConfig(id="1").max_posts_limit == 5000
    assert CampaignConfig(id="1", max_posts_limit=0).max_posts_limit == 0


def test_from_file_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        CampaignsConfig.from_file(tmp_path / "absent.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(ValueError):
        CampaignsConfig.from_file(broken)

    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps({"campaigns": [{"name": "no id"}]}), encoding="utf-8")
    with pytest.raises(ValueError):
        CampaignsConfig.from_file(invalid)


def test_provider_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("NEWSREWRITER_PROVIDER", "OpenAI")
    monkeypatch.setenv("OPENAI_API_KEY", " sk-test ")
    monkeypatch.setenv("GEMINI_API_KEY", "g-key")
    monkeypatch.delenv("NEWSREWRITER_PROVIDER_BASE_URL", raising=False)

    settings = ProviderSettings.from_env()

    assert settings.provider == "openai"
    assert settings.api_key == "sk-test"
    assert settings.base_url == DEFAULT_GEMINI_BASE_URL


def test_provider_settings_default_to_gemini(monkeypatch) -> None:
    monkeypatch.delenv("NEWSREWRITER_PROVIDER", raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "g-key")
    monkeypatch.setenv("NEWSREWRITER_PROVIDER_BASE_URL", "https://proxy.example.com/v1beta")

    settings = ProviderSettings.from_env()

    assert settings.provider == "gemini"
    assert settings.api_key == "g-key"
    assert settings.base_url == "https://proxy.example.com/v1beta"


def test_scraper_rules_from_file(tmp_path: Path) -> None:
    rules_path = tmp_path / "rules.json"
    rules_path.write_text(json.dumps({"content_selectors": [".story"], "min_content_chars": 10}), encoding="utf-8")

    rules = ScraperRules.from_file(rules_path)

    assert rules.content_selectors == [".story"]
    assert rules.min_content_chars == 10
    assert "cloudflare" in " ".join(rules.blocked_phrases)

    with pytest.raises(FileNotFoundError):
        ScraperRules.from_file(tmp_path / "absent.json")


def test_parse_datetime() -> None:
    parsed = parse_datetime("Tue, 07 May 2024 08:15:00 PDT")
    assert parsed.utcoffset() == timedelta(hours=-7)

    assert parse_datetime("2024-05-07T08:15:00").tzinfo == timezone.utc
    assert parse_datetime("yesterday-ish") is None
    assert parse_datetime("") is None
    assert parse_datetime(None) is None
