"""Lenient timestamp parsing for feed, sitemap and campaign dates."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from dateutil.parser import ParserError
from dateutil.parser import parse as parse_date

__all__ = ["TZINFOS", "parse_datetime"]

# Common timezone abbreviations found in RSS pubDate values
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "MST": timezone(timedelta(hours=-7)),
    "MDT": timezone(timedelta(hours=-6)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
}


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse ``value`` into an aware datetime, returning ``None`` when it cannot be read.

    Naive results are assumed to be UTC so every returned value can be compared
    with every other one.
    """

    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = parse_date(text, tzinfos=TZINFOS)
        except (ParserError, ValueError, OverflowError):
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
