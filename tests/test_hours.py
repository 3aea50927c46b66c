"""
Test opening-hours parsing into days open per week.
"""

import os
import sys

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _root)

from leadgen.hours import count_open_days


def test_osm_ranges_and_single_days():
    assert count_open_days("Mo-Fr 08:00-18:00; Sa 09:00-12:00") == 6
    assert count_open_days("Mo-Su 07:00-23:00") == 7
    assert count_open_days("Tu,Th 10:00-14:00") == 2


def test_day_tokens_directly_followed_by_times():
    assert count_open_days("Mo-Fr08:00-18:00") == 5
    assert count_open_days("Sa09:00-12:00") == 1


def test_weekday_words_are_not_day_tokens():
    assert count_open_days("Sunday brunch only") is None


def test_always_open():
    assert count_open_days("24/7") == 7
    assert count_open_days("Open 24 hours") == 7


def test_reversed_range_does_not_wrap():
    # Only the two named endpoints count
    assert count_open_days("Fr-Mo 10:00-02:00") == 2


def test_repeated_days_count_once():
    assert count_open_days("Mo 08:00-12:00; Mo 14:00-18:00; Tu 08:00-12:00") == 2


def test_structured_regular_hours():
    hours = {
        "regular": [
            {"day": 1, "open": "0800", "close": "1200"},
            {"day": 1, "open": "1400", "close": "1800"},
            {"day": 2, "open": "0800", "close": "1800"},
            {"day": 6, "open": "1000", "close": "1600"},
        ]
    }
    assert count_open_days(hours) == 3


def test_display_fallback():
    assert count_open_days({"display": "Mo-We 09:00-17:00"}) == 3


def test_missing_or_unreadable_is_none():
    assert count_open_days(None) is None
    assert count_open_days("") is None
    assert count_open_days("by appointment") is None
    assert count_open_days({}) is None
    assert count_open_days({"regular": []}) is None
