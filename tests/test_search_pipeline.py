"""
Test the neighborhood search pipeline end to end against a fake provider
and a temporary SQLite database.
"""

import os
import sys

import pytest

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _root)

from conftest import FakeFetcher
from leadgen import db
from leadgen.errors import InvalidBoundaryError, NotFoundError, ProviderError, ValidationError
from leadgen.fetch import PlacesPage
from leadgen.geo import MAX_SEARCH_RADIUS_M
from leadgen.normalize import Candidate
from leadgen.rules import CampaignRule
from leadgen.search import fetch_rule_candidates, resolve_search_area, run_neighborhood_search

BOUNDARY = {
    "lat": 0.5,
    "lng": 0.5,
    "boundingbox": ["0", "1", "0", "1"],
    "geojson": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]},
}


def _candidate(external_id, name=None, lat=0.5, lng=0.5, rating=4.5):
    return Candidate(
        external_id=external_id,
        name=name or f"Venue {external_id}",
        address=f"{external_id} Main St",
        latitude=lat,
        longitude=lng,
        rating=rating,
        hours="Mo-Su 08:00-20:00",
    )


def _setup(rules=None, boundary=BOUNDARY):
    campaign = db.create_campaign("Coffee beans", "Single-origin wholesale coffee")
    db.create_campaign_rules(campaign["id"], rules or [CampaignRule(venue_type="cafe", min_rating=4.0)])
    neighborhood = db.create_neighborhood(campaign["id"], "Clifton", "Clifton, Bristol", boundary)
    return campaign["id"], neighborhood["id"]


def test_search_filters_and_stores(temp_db):
    campaign_id, nb_id = _setup()
    fetcher = FakeFetcher([PlacesPage(results=[
        _candidate("a"),
        _candidate("b", rating=3.0),
        _candidate("c", lat=5.0, lng=5.0),
        _candidate("d"),
    ])])

    summary = run_neighborhood_search(campaign_id, nb_id, fetcher)

    assert summary.total_found == 4
    assert summary.filtered == 2
    assert summary.duplicates_skipped == 0
    assert [v["fsq_id"] for v in summary.new_venues] == ["a", "d"]

    nb = db.get_neighborhood(nb_id)
    assert nb["status"] == "completed"
    assert nb["venues_found"] == 2
    assert nb["searched_at"]

    searches = db.list_neighborhood_searches(campaign_id)
    assert len(searches) == 1
    assert searches[0]["venues_found"] == 2


def test_second_run_inserts_nothing(temp_db):
    campaign_id, nb_id = _setup()
    page = [_candidate("a"), _candidate("b")]

    run_neighborhood_search(campaign_id, nb_id, FakeFetcher([PlacesPage(results=list(page))]))
    summary = run_neighborhood_search(campaign_id, nb_id, FakeFetcher([PlacesPage(results=list(page))]))

    assert summary.new_venues == []
    assert summary.duplicates_skipped == 2
    assert len(db.get_venues_by_campaign(campaign_id)) == 2
    assert db.get_neighborhood(nb_id)["venues_found"] == 2
    # Upserted, not duplicated
    assert len(db.list_neighborhood_searches(campaign_id)) == 1


def test_venue_found_by_two_rules_stored_once(temp_db):
    campaign_id, nb_id = _setup(rules=[CampaignRule(venue_type="cafe"), CampaignRule(venue_type="bakery")])
    fetcher = FakeFetcher([
        PlacesPage(results=[_candidate("a"), _candidate("b")]),
        PlacesPage(results=[_candidate("b"), _candidate("c")]),
    ])

    summary = run_neighborhood_search(campaign_id, nb_id, fetcher)

    assert sorted(v["fsq_id"] for v in summary.new_venues) == ["a", "b", "c"]
    assert summary.duplicates_skipped == 1
    assert [call["categories"] for call in fetcher.calls] == [["cat.cafe"], ["cat.bakery"]]


def test_single_rule_run(temp_db):
    campaign_id, nb_id = _setup(rules=[CampaignRule(venue_type="cafe"), CampaignRule(venue_type="bar")])
    bar_rule = [r for r in db.list_campaign_rules(campaign_id) if r["venue_type"] == "bar"][0]
    fetcher = FakeFetcher([PlacesPage(results=[_candidate("z")])])

    run_neighborhood_search(campaign_id, nb_id, fetcher, rule_id=bar_rule["id"])

    assert len(fetcher.calls) == 1
    assert fetcher.calls[0]["categories"] == ["cat.bar"]


def test_radius_is_capped(temp_db):
    big = {"boundingbox": [40.0, 42.0, -75.0, -72.0]}
    campaign_id, nb_id = _setup(boundary=big)
    fetcher = FakeFetcher([])

    run_neighborhood_search(campaign_id, nb_id, fetcher)

    assert fetcher.calls[0]["radius"] == MAX_SEARCH_RADIUS_M


def test_point_only_neighborhood_uses_default_radius():
    lat, lng, radius = resolve_search_area({"lat": 51.0, "lon": -2.0})
    assert (lat, lng, radius) == (51.0, -2.0, 5000)


def test_invalid_boundary_leaves_status_untouched(temp_db):
    campaign_id, nb_id = _setup(boundary={"geojson": None})

    with pytest.raises(InvalidBoundaryError):
        run_neighborhood_search(campaign_id, nb_id, FakeFetcher([]))

    assert db.get_neighborhood(nb_id)["status"] == "pending"


def test_provider_failure_resets_to_pending(temp_db):
    campaign_id, nb_id = _setup()

    class FailingFetcher(FakeFetcher):
        def search(self, *args, **kwargs):
            raise ProviderError("geoapify search failed (500)")

    with pytest.raises(ProviderError):
        run_neighborhood_search(campaign_id, nb_id, FailingFetcher([]))

    nb = db.get_neighborhood(nb_id)
    assert nb["status"] == "pending"
    assert nb["venues_found"] == 0


def test_missing_inputs_and_unknown_neighborhood(temp_db):
    campaign_id, nb_id = _setup()
    with pytest.raises(ValidationError):
        run_neighborhood_search("", nb_id, FakeFetcher([]))
    with pytest.raises(NotFoundError):
        run_neighborhood_search(campaign_id, "missing", FakeFetcher([]))

    other = db.create_campaign("Other", None)
    with pytest.raises(NotFoundError):
        run_neighborhood_search(other["id"], nb_id, FakeFetcher([]))


def test_pagination_stops_at_cap():
    pages = [PlacesPage(results=[_candidate(f"{p}-{i}") for i in range(50)], next_cursor=str(p + 1)) for p in range(10)]
    fetcher = FakeFetcher(pages)

    candidates = fetch_rule_candidates(fetcher, 0, 0, 1000, ["cat"], page_size=50, max_results=300)

    assert len(candidates) == 300
    assert len(fetcher.calls) == 6
