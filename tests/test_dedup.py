"""
Test per-run deduplication of candidates by external id.
"""

import os
import sys

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _root)

from leadgen.dedup import Deduper
from leadgen.normalize import Candidate


def _c(external_id):
    return Candidate(external_id=external_id, name=f"Venue {external_id}")


def test_known_ids_are_filtered():
    deduper = Deduper(["a", "b"])
    fresh, duplicates = deduper.filter_new([_c("a"), _c("c"), _c("b")])
    assert [c.external_id for c in fresh] == ["c"]
    assert duplicates == 2


def test_repeats_in_same_batch_count_as_duplicates():
    deduper = Deduper()
    fresh, duplicates = deduper.filter_new([_c("x"), _c("x"), _c("y")])
    assert [c.external_id for c in fresh] == ["x", "y"]
    assert duplicates == 1


def test_filter_does_not_mark_seen():
    deduper = Deduper()
    deduper.filter_new([_c("x")])
    assert deduper.is_new("x")
    deduper.mark_seen("x")
    assert not deduper.is_new("x")
    assert len(deduper) == 1


def test_blank_ids_never_new():
    deduper = Deduper(["", None])
    assert len(deduper) == 0
    assert deduper.is_new("") is False
