from __future__ import annotations

import logging
import re
from datetime import datetime, tzinfo
from typing import Callable, Optional

import dateparser

LOGGER = logging.getLogger(__name__)

DateParser = Callable[[str, datetime], Optional[datetime]]

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY

# Order matters: the first pattern that matches decides the unit.
# The lookbehind keeps "1.5 days" from being read as "5 days".
_RELATIVE_PATTERNS: list[tuple[re.Pattern[str], int]] = [
    (re.compile(r"(?<![\d.,])(\d+)\s*(?:weeks?|wks?|w)\b", re.IGNORECASE), MINUTES_PER_WEEK),
    (re.compile(r"(?<![\d.,])(\d+)\s*(?:days?|d)\b", re.IGNORECASE), MINUTES_PER_DAY),
    (re.compile(r"(?<![\d.,])(\d+)\s*(?:hours?|hrs?|h)\b", re.IGNORECASE), MINUTES_PER_HOUR),
]


def parse_relative_minutes(text: str) -> int | None:
    """Parse "N weeks", "N days" or "N hours" into minutes (weeks win over days over hours)."""
    value = (text or "").strip()
    if not value:
        return None
    for pattern, unit_minutes in _RELATIVE_PATTERNS:
        match = pattern.search(value)
        if match:
            return int(match.group(1)) * unit_minutes
    return None


def build_date_parser(tz: tzinfo) -> DateParser:
    def _parse(text: str, now: datetime) -> datetime | None:
        return parse_datetime_text(text, now=now, tz=tz)

    return _parse


def parse_datetime_text(text: str, *, now: datetime, tz: tzinfo) -> datetime | None:
    value = (text or "").strip()
    if not value:
        return None
    base = now.astimezone(tz).replace(tzinfo=None)
    settings = {
        "RELATIVE_BASE": base,
        "PREFER_DATES_FROM": "future",
        "TIMEZONE": str(tz),
        "RETURN_AS_TIMEZONE_AWARE": True,
    }
    try:
        parsed = dateparser.parse(value, settings=settings)
    except ValueError:
        LOGGER.info("Date parse rejected input: text_len=%s", len(value))
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed
