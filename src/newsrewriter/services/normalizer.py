"""Map provider JSON onto :class:`~newsrewriter.models.AIResult`."""

from __future__ import annotations

from typing import Any, Mapping

from newsrewriter.models import AIResult

__all__ = ["normalize"]

_SEO_FIELDS = {
    "title": "seoTitle",
    "meta_description": "metaDescription",
    "focus_keyphrase": "focusKeyphrase",
    "long_tail_keyword": "longTailKeyword",
    "slug": "slug",
    "image_alt": "imageAlt",
}


def _string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def normalize(raw_json: Mapping[str, Any]) -> AIResult:
    """Best-effort mapping; absent or wrongly typed fields become empty strings."""

    seo = raw_json.get("seo")
    if not isinstance(seo, Mapping):
        seo = {}

    synonyms = seo.get("synonyms")
    if isinstance(synonyms, list):
        synonyms = ", ".join(item for item in synonyms if isinstance(item, str))

    return AIResult(
        content_html=_string(raw_json.get("htmlContent")),
        synonyms=_string(synonyms),
        raw_json=dict(raw_json),
        **{field: _string(seo.get(key)) for field, key in _SEO_FIELDS.items()},
    )
