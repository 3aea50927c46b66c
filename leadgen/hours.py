"""
Opening hours parsing.

Counts how many distinct weekdays a venue is open from either an OSM-style
opening_hours string ("Mo-Fr 07:00-22:00; Sa 08:00-20:00") or Foursquare-style
structured hours ({"regular": [{"day": 1, "open": ..., "close": ...}]}).
"""

import re
from typing import Any, Optional

WEEKDAYS = ["Mo", "Tu", "We", "Th", "Fr", "Sa", "Su"]

_DAY_RE = re.compile(r"\b(Mo|Tu|We|Th|Fr|Sa|Su)(?![a-z])")
_RANGE_RE = re.compile(r"\b(Mo|Tu|We|Th|Fr|Sa|Su)\s*-\s*(Mo|Tu|We|Th|Fr|Sa|Su)(?![a-z])")
_ALWAYS_OPEN_TOKENS = ("24/7", "open 24 hours")


def count_open_days(raw: Any) -> Optional[int]:
    """
    Count distinct weekdays covered by an hours value.

    Returns:
        1-7, or None when hours are absent or no day could be read.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        return _count_from_text(raw)
    if isinstance(raw, dict):
        regular = raw.get("regular")
        if regular:
            return _count_from_entries(regular)
        display = raw.get("display")
        if isinstance(display, str):
            return _count_from_text(display)
        return None
    if isinstance(raw, (list, tuple)):
        return _count_from_entries(raw)
    return None


def _count_from_text(text: str) -> Optional[int]:
    text = text.strip()
    if not text:
        return None

    lowered = text.lower()
    if any(token in lowered for token in _ALWAYS_OPEN_TOKENS):
        return 7

    found = set(_DAY_RE.findall(text))

    # Ranges like "Mo-Fr" cover every day in between
    for start, end in _RANGE_RE.findall(text):
        start_idx = WEEKDAYS.index(start)
        end_idx = WEEKDAYS.index(end)
        for day in WEEKDAYS[start_idx:end_idx + 1]:
            found.add(day)

    return len(found) or None


def _count_from_entries(entries) -> Optional[int]:
    days = set()
    for entry in entries:
        if isinstance(entry, dict) and entry.get("day") is not None:
            days.add(entry["day"])
    return len(days) or None
