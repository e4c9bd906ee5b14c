"""Prompt construction for the rewrite and direct-URL generation modes.

Every rewrite prompt is assembled from three independent parts:

* a mode body (strict, normal or loose) rendered from :class:`PromptParams`;
* the fixed :func:`negative_constraints` block;
* the :func:`json_schema_block` describing the required answer.

A campaign's custom prompt may replace the body, never the other two parts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

from newsrewriter.config import CampaignConfig, StyleConfig
from newsrewriter.models import PromptRequest, ScrapedArticle
from newsrewriter.services.scraper import html_to_text

__all__ = [
    "DEFAULT_LINKING_CONTEXT",
    "PromptBuilder",
    "PromptParams",
    "SourceAnalysis",
    "StyleInstructions",
    "json_schema_block",
    "negative_constraints",
    "render_direct_url",
    "render_loose",
    "render_normal",
    "render_strict",
    "resolve_temperature",
]

DEFAULT_LINKING_CONTEXT = "No existing posts available."

STRICT_TEMPERATURE = 0.1
NORMAL_TEMPERATURE = 0.5
LOOSE_MIN_TEMPERATURE = 0.7

LENGTH_TOLERANCE = 30
MIN_TARGET_WORDS = 50
SUMMARY_MIN_WORDS = 600
CUSTOM_PROMPT_MIN_CHARS = 10

_PARAGRAPH_END_RE = re.compile(r"\s*</p>\s*", re.IGNORECASE)
_HEADING_RE = re.compile(r"<h[23][^>]*>", re.IGNORECASE)


# ── Shared fragments ──────────────────────────────────────────────────────


def negative_constraints() -> str:
    """Return the banned-phrasing block injected into every prompt."""

    return """NEGATIVE CONSTRAINTS (CRITICAL):
1.  **FORBIDDEN VOCABULARY**: Strictly do NOT use the following words or phrases. They make the text sound robotic and AI-generated:
    - "Delve", "Dive in", "In this article", "In the realm of", "Landscape", "Tapestry", "Testament", "Underscore", "Showcase"
    - "Pivotal", "Nuanced", "Resonate", "It is important to note", "Furthermore", "Moreover", "In conclusion"
    - "Breathtaking", "Stunning", "Seamless", "Immersive" (unless describing VR).
2.  **NO FLUFF**: Do not use generic openers like "In the fast-paced world of..." or "Let's explore...".
3.  **NO HEDGING**: Be confident. Don't say "It remains to be seen." Say "We are waiting to see."
4.  **HUMAN VARIANCE**: Do not start every sentence with "The [Noun]..." or "With [Noun]...". Vary your sentence structure."""


def json_schema_block() -> str:
    """Return the JSON structure every answer must follow."""

    return """REQUIRED JSON STRUCTURE:
{
  "htmlContent": "<p>...</p>",
  "seo": {
    "focusKeyphrase": "Main keyword",
    "longTailKeyword": "Specific search phrase",
    "seoTitle": "Optimized Title",
    "metaDescription": "Summary",
    "slug": "url-slug",
    "imageAlt": "Alt text",
    "synonyms": "keyword1, keyword2"
  }
}"""


def resolve_temperature(mode: str, configured: float) -> float:
    """Apply the rewrite-mode temperature policy to the configured baseline."""

    mode = (mode or "").lower()
    if mode == "strict":
        return STRICT_TEMPERATURE
    if mode == "loose":
        return max(LOOSE_MIN_TEMPERATURE, float(configured))
    return NORMAL_TEMPERATURE


# ── Source analysis and computed instructions ─────────────────────────────


@dataclass(slots=True)
class SourceAnalysis:
    """Length and structure measurements of the scraped source HTML."""

    word_count: int = 0
    heading_count: int = 0
    paragraphs: List[str] = field(default_factory=list)

    @classmethod
    def from_html(cls, html: str) -> "SourceAnalysis":
        plain = html_to_text(html)
        paragraphs = []
        # Paragraph boundaries are </p> tags only; <br>-separated text stays one paragraph
        for chunk in _PARAGRAPH_END_RE.split(html or ""):
            text = " ".join(html_to_text(chunk).split())
            if text:
                paragraphs.append(text)
        return cls(
            word_count=len(plain.split()),
            heading_count=len(_HEADING_RE.findall(html or "")),
            paragraphs=paragraphs,
        )

    @property
    def paragraph_count(self) -> int:
        return len(self.paragraphs)

    def paragraphs_text(self) -> str:
        return "".join(
            f"PARAGRAPH {index}:\n{text}\n\n" for index, text in enumerate(self.paragraphs, start=1)
        )


@dataclass(slots=True)
class StyleInstructions:
    """Instruction fragments computed once and shared by every mode template."""

    tone: str
    voice: str
    length: str
    headings: str
    summary: str
    min_words: int
    max_words: int

    @classmethod
    def from_style(cls, style: StyleConfig, analysis: SourceAnalysis) -> "StyleInstructions":
        if style.match_tone:
            tone = "Analyze the source tone and replicate it exactly."
        else:
            tone = f"Tone: {style.tone}."

        if style.brand_voice.strip():
            voice = f"Adopt this Brand Voice: {style.brand_voice.strip()}"
        elif style.match_brand_voice:
            voice = "Mirror the brand voice of the source publication."
        else:
            voice = ""

        min_words, max_words = style.min_words, style.max_words
        if style.match_length and analysis.word_count > 0:
            min_words = max(MIN_TARGET_WORDS, analysis.word_count - LENGTH_TOLERANCE)
            max_words = analysis.word_count + LENGTH_TOLERANCE
            length = (
                f"Keep the length similar to the source (approx {analysis.word_count} words, "
                f"within ±{LENGTH_TOLERANCE} words)."
            )
        else:
            length = f"Target word count: Between {min_words} and {max_words} words."

        if style.match_headings:
            headings = (
                "Maintain the same heading structure as the source "
                f"({analysis.heading_count} subheadings)."
            )
        else:
            headings = f"Use approximately {style.max_headings} subheadings (<h2> or <h3>)."

        if max_words >= SUMMARY_MIN_WORDS:
            summary = "Include a <h3>Quick Summary</h3> at the very top with 3 bullet points."
        else:
            summary = "Do NOT include a summary section."

        return cls(
            tone=tone,
            voice=voice,
            length=length,
            headings=headings,
            summary=summary,
            min_words=min_words,
            max_words=max_words,
        )

    def style_lines(self, *extra: str) -> str:
        lines = [self.tone, self.voice, *extra]
        return "\n".join(f"- {line}" for line in lines if line)


@dataclass(slots=True)
class PromptParams:
    """Everything a mode template interpolates."""

    category: str
    language: str
    audience: str
    source_title: str
    source_content: str
    analysis: SourceAnalysis
    instructions: StyleInstructions
    linking_context: str = DEFAULT_LINKING_CONTEXT


# ── Mode templates ────────────────────────────────────────────────────────


def render_strict(params: PromptParams) -> str:
    count = params.analysis.paragraph_count
    return f"""You are an expert human editor for a "{params.category}" blog.
Your task is to REWRITE the source text PARAGRAPH BY PARAGRAPH.

LANGUAGE: Write entirely in {params.language}.
TARGET AUDIENCE: {params.audience}

STRICT REWRITE RULES:
1. **1-to-1 Mapping**: The source has {count} paragraphs. You must output exactly {count} paragraphs in the 'htmlContent'.
   - Source Para 1 -> Your Para 1
   - Source Para 2 -> Your Para 2
   - ...and so on.
2. **Fact Preservation**: Do not add new opinions, outside facts, or future predictions. Only rewrite what is there.
3. **Structure**: Keep the flow identical. If the source discusses Topic A then Topic B, you must do the same.

{negative_constraints()}

TONE & STYLE:
{params.instructions.style_lines()}

SEO INSTRUCTIONS:
- Derive a Focus Keyphrase from the main entity of the text.
- SEO Title: Must be click-worthy, under 60 chars, and include the keyphrase.
- Meta Description: Under 160 chars, acting as a hook.

SOURCE TITLE: "{params.source_title}"
SOURCE PARAGRAPHS (Plain Text):
{params.analysis.paragraphs_text()}
EXISTING CONTEXT (for internal linking only if relevant):
{params.linking_context}

FORMATTING:
- Output valid HTML for the 'htmlContent' (use <p>, <h2>, <h3>, <ul>, <li>).
- DO NOT use <h1>, <html>, or <body> tags.
- Remove external links, "Read More" prompts, or calls to action from the source.

OUTPUT FORMAT:
Return ONLY a JSON object (no markdown fences)."""


def render_normal(params: PromptParams) -> str:
    ins = params.instructions
    return f"""You are a professional journalist for a "{params.category}" website.
Your task is to REWRITE the source article to be unique and plagiarism-free, while keeping the original meaning.

LANGUAGE: Write entirely in {params.language}.
TARGET AUDIENCE: {params.audience}

REWRITE GUIDELINES:
1. **Flow**: Read the source, understand the core message, and write it in your own words.
2. **No Robot Speak**: Avoid the forbidden words list below strictly.
3. **Balancing**: Keep all the key facts (names, dates, numbers) exactly as they are. You can rephrase the analysis or descriptions.
4. **Formatting**: Break up large walls of text into smaller, readable paragraphs (2-3 sentences max).

{negative_constraints()}

TONE & STYLE:
{ins.style_lines()}

{ins.length}
{ins.headings}
{ins.summary}

SOURCE TITLE: "{params.source_title}"
SOURCE CONTENT:
{params.source_content}

EXISTING CONTEXT:
{params.linking_context}

OUTPUT FORMAT:
Return ONLY a JSON object (no markdown fences)."""


def render_loose(params: PromptParams) -> str:
    ins = params.instructions
    return f"""You are a creative senior columnist for a "{params.category}" blog.
Your task is to REIMAGINE the source story to make it more engaging.

LANGUAGE: Write entirely in {params.language}.
TARGET AUDIENCE: {params.audience}

CREATIVE RULES:
1. **The Hook**: Don't just repeat the news. Find the most exciting angle and start with that.
2. **Engagement**: Ask a rhetorical question or address the reader directly.
3. **Freedom**: You can merge paragraphs, reorder points for dramatic effect, and add connective context if it helps the reader understand.
4. **Accuracy**: You can change the flow, but do NOT make up quotes or invent numbers.

{negative_constraints()}

TONE & STYLE:
{ins.style_lines("Make it punchy. Use short sentences mixed with long ones for rhythm.")}

{ins.length}
{ins.headings}
{ins.summary}

SOURCE TITLE: "{params.source_title}"
SOURCE CONTENT:
{params.source_content}

EXISTING CONTEXT:
{params.linking_context}

OUTPUT FORMAT:
Return ONLY a JSON object (no markdown fences)."""


def render_direct_url(source_url: str, config: CampaignConfig) -> str:
    style = config.style
    brand_voice = style.brand_voice.strip() or "Neutral"
    return f"""You are a professional web editor for a "{config.category}" blog.
Your task is to read the URL provided, understand the content, and write a FRESH, ORIGINAL article based on it.

LANGUAGE: Write entirely in {style.language}.

INPUT URL: {source_url}

WRITING RULES:
1. **Fresh Perspective**: Do not just summarize. Explain *why* this matters to the reader.
2. **Structure**: Use a strong Hook -> Body (with <h2> headings) -> Conclusion.
3. **Plagiarism Check**: Do not copy sentences directly from the source. Paraphrase everything.
4. **Formatting**: Use clean HTML (<p>, <h2>, <ul>, <strong>). No <h1>.

{negative_constraints()}

TONE: {style.tone}
TARGET AUDIENCE: {style.audience}
BRAND VOICE: {brand_voice}

LENGTH: {style.min_words} - {style.max_words} words.

{json_schema_block()}
DO NOT wrap the JSON in markdown code blocks."""


_MODE_TEMPLATES = {
    "normal": render_normal,
    "loose": render_loose,
}


class PromptBuilder:
    """Turn a scraped article and a campaign into a :class:`PromptRequest`."""

    def build(
        self,
        scraped: ScrapedArticle,
        config: CampaignConfig,
        linking_context: str = "",
    ) -> PromptRequest:
        mode = config.rewrite_mode
        analysis = SourceAnalysis.from_html(scraped.content_html)
        params = PromptParams(
            category=config.category,
            language=config.style.language,
            audience=config.style.audience,
            source_title=scraped.title,
            source_content=scraped.content_html,
            analysis=analysis,
            instructions=StyleInstructions.from_style(config.style, analysis),
            linking_context=linking_context.strip() or DEFAULT_LINKING_CONTEXT,
        )

        custom = config.custom_prompt.strip()
        if len(custom) > CUSTOM_PROMPT_MIN_CHARS:
            # The mode bodies embed the constraints already; custom text gets them appended
            text = "\n\n".join([custom, negative_constraints(), json_schema_block()])
        else:
            if mode == "strict" and analysis.paragraph_count > 0:
                body = render_strict(params)
            else:
                body = _MODE_TEMPLATES.get(mode, render_normal)(params)
            text = f"{body}\n\n{json_schema_block()}"

        return PromptRequest(
            system_text=text,
            temperature=resolve_temperature(mode, config.temperature),
            model=config.model,
        )

    def build_direct_url(self, source_url: str, config: CampaignConfig) -> PromptRequest:
        """Build the single-shot prompt that lets the provider read ``source_url`` itself."""

        return PromptRequest(
            system_text=render_direct_url(source_url, config),
            temperature=float(config.temperature),
            model=config.model,
            use_web_tools=True,
        )
