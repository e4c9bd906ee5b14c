from __future__ import annotations

from newsrewriter.config import CampaignConfig, StyleConfig
from newsrewriter.models import ScrapedArticle
from newsrewriter.services.prompts import (
    DEFAULT_LINKING_CONTEXT,
    PromptBuilder,
    SourceAnalysis,
    StyleInstructions,
    json_schema_block,
    resolve_temperature,
)


def article(content_html: str) -> ScrapedArticle:
    return ScrapedArticle(
        title="Store openings rise",
        url="https://example.com/retail/store-openings",
        content_html=content_html,
    )


def words(count: int) -> str:
    return " ".join(["word"] * count)


def test_resolve_temperature_policy() -> None:
    assert resolve_temperature("strict", 1.5) == 0.1
    assert resolve_temperature("normal", 1.5) == 0.5
    assert resolve_temperature("loose", 0.3) == 0.7
    assert resolve_temperature("loose", 1.1) == 1.1


def test_source_analysis_counts_paragraphs_headings_and_words() -> None:
    analysis = SourceAnalysis.from_html("<h2>Intro</h2> <p>One two three.</p> <p>Four five.</p> <h3>End</h3>")

    assert analysis.heading_count == 2
    assert analysis.word_count == 7
    assert analysis.paragraph_count == 3


def test_strict_prompt_lists_numbered_paragraphs() -> None:
    config = CampaignConfig(id="1", rewrite_mode="strict", temperature=1.2)
    scraped = article("<p>First paragraph.</p><p>Second paragraph.</p>")

    prompt = PromptBuilder().build(scraped, config)

    assert "PARAGRAPH 1:\nFirst paragraph." in prompt.system_text
    assert "PARAGRAPH 2:\nSecond paragraph." in prompt.system_text
    assert "exactly 2 paragraphs" in prompt.system_text
    assert prompt.system_text.endswith(json_schema_block())
    assert prompt.temperature == 0.1
    assert prompt.model == "gemini-2.5-flash"
    assert prompt.use_web_tools is False


def test_strict_without_paragraphs_uses_normal_body_at_strict_temperature() -> None:
    config = CampaignConfig(id="1", rewrite_mode="strict")

    prompt = PromptBuilder().build(article(""), config)

    assert "REWRITE the source article" in prompt.system_text
    assert prompt.temperature == 0.1


def test_normal_prompt_includes_campaign_context() -> None:
    config = CampaignConfig(
        id="1",
        category="retail",
        style=StyleConfig(language="German", audience="store managers", brand_voice="Dry wit"),
    )

    prompt = PromptBuilder().build(article("<p>Body text.</p>"), config)

    assert '"retail" website' in prompt.system_text
    assert "Write entirely in German." in prompt.system_text
    assert "TARGET AUDIENCE: store managers" in prompt.system_text
    assert "Adopt this Brand Voice: Dry wit" in prompt.system_text
    assert DEFAULT_LINKING_CONTEXT in prompt.system_text
    assert "NEGATIVE CONSTRAINTS" in prompt.system_text
    assert prompt.temperature == 0.5


def test_linking_context_is_passed_through() -> None:
    config = CampaignConfig(id="1", rewrite_mode="loose", temperature=0.9)

    prompt = PromptBuilder().build(article("<p>Body.</p>"), config, "- Older post: /older")

    assert "- Older post: /older" in prompt.system_text
    assert DEFAULT_LINKING_CONTEXT not in prompt.system_text
    assert "REIMAGINE" in prompt.system_text
    assert prompt.temperature == 0.9


def test_custom_prompt_replaces_body_but_keeps_constraints_and_schema() -> None:
    custom = "Write a short news brief for busy executives."
    config = CampaignConfig(id="1", custom_prompt=f"  {custom}  ")

    prompt = PromptBuilder().build(article("<p>Body.</p>"), config)

    assert prompt.system_text.startswith(custom)
    assert "NEGATIVE CONSTRAINTS" in prompt.system_text
    assert "REQUIRED JSON STRUCTURE" in prompt.system_text
    assert "professional journalist" not in prompt.system_text


def test_short_custom_prompt_is_ignored() -> None:
    config = CampaignConfig(id="1", custom_prompt="Be brief")

    prompt = PromptBuilder().build(article("<p>Body.</p>"), config)

    assert "professional journalist" in prompt.system_text


def test_match_length_window_and_summary_rule() -> None:
    style = StyleConfig(match_length=True)
    analysis = SourceAnalysis.from_html(f"<p>{words(100)}</p>")

    instructions = StyleInstructions.from_style(style, analysis)

    assert (instructions.min_words, instructions.max_words) == (70, 130)
    assert "approx 100 words" in instructions.length
    assert instructions.summary == "Do NOT include a summary section."


def test_match_length_minimum_is_floored() -> None:
    analysis = SourceAnalysis.from_html(f"<p>{words(40)}</p>")

    instructions = StyleInstructions.from_style(StyleConfig(match_length=True), analysis)

    assert instructions.min_words == 50
    assert instructions.max_words == 70


def test_long_targets_request_quick_summary() -> None:
    instructions = StyleInstructions.from_style(StyleConfig(), SourceAnalysis())

    assert "Quick Summary" in instructions.summary
    assert "Between 600 and 1000 words" in instructions.length


def test_match_headings_and_tone() -> None:
    analysis = SourceAnalysis.from_html("<h2>A</h2><p>x</p><h2>B</h2><p>y</p>")
    style = StyleConfig(match_headings=True, match_tone=True, match_brand_voice=True)

    instructions = StyleInstructions.from_style(style, analysis)

    assert "(2 subheadings)" in instructions.headings
    assert "replicate it exactly" in instructions.tone
    assert instructions.voice.startswith("Mirror the brand voice")


def test_direct_url_prompt_requests_web_tools() -> None:
    config = CampaignConfig(id="1", processing_mode="AI_URL_DIRECT", temperature=0.9, rewrite_mode="strict")

    prompt = PromptBuilder().build_direct_url("https://example.com/story", config)

    assert prompt.use_web_tools is True
    assert prompt.temperature == 0.9
    assert "INPUT URL: https://example.com/story" in prompt.system_text
    assert "REQUIRED JSON STRUCTURE" in prompt.system_text
