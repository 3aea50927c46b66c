"""
Test places fetchers against a fake HTTP session: pagination, retry, errors.
"""

import os
import sys

import pytest
import requests

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _root)

from conftest import FakeResponse, FakeSession
from leadgen.errors import ProviderError
from leadgen.fetch import FoursquareFetcher, GeoapifyFetcher, get_fetcher


def _features(n, start=0):
    return [
        {"properties": {"place_id": f"g{i}", "name": f"Cafe {i}", "lat": 1.0, "lon": 2.0}}
        for i in range(start, start + n)
    ]


def test_geoapify_full_page_has_next_offset(no_sleep):
    session = FakeSession([FakeResponse(payload={"features": _features(2)})])
    fetcher = GeoapifyFetcher(api_key="k", session=session, sleep=no_sleep)

    page = fetcher.search(51.5, -0.1, 80000, ["catering.cafe"], limit=2)

    assert [c.external_id for c in page.results] == ["g0", "g1"]
    assert page.next_cursor == "2"
    params = session.calls[0][2]["params"]
    assert params["filter"] == "circle:-0.1,51.5,50000"
    assert params["categories"] == "catering.cafe"


def test_geoapify_short_page_ends(no_sleep):
    session = FakeSession([FakeResponse(payload={"features": _features(1, start=2)})])
    fetcher = GeoapifyFetcher(api_key="k", session=session, sleep=no_sleep)

    page = fetcher.search(51.5, -0.1, 1000, ["catering.cafe"], limit=2, cursor="2")

    assert page.next_cursor is None
    assert session.calls[0][2]["params"]["offset"] == "2"


def test_foursquare_cursor_from_link_header(no_sleep):
    link = '<https://api.foursquare.com/v3/places/search?cursor=abc123&limit=50>; rel="next"'
    session = FakeSession([
        FakeResponse(payload={"results": [{"fsq_id": "f1", "name": "Bar One"}]}, headers={"link": link}),
    ])
    fetcher = FoursquareFetcher(api_key="k", session=session, sleep=no_sleep)

    page = fetcher.search(40.0, -73.0, 1000, ["13003"])

    assert page.next_cursor == "abc123"
    assert session.calls[0][2]["headers"]["Authorization"] == "k"


def test_rate_limit_is_retried(no_sleep):
    session = FakeSession([
        FakeResponse(status_code=429),
        FakeResponse(payload={"features": []}),
    ])
    fetcher = GeoapifyFetcher(api_key="k", session=session, sleep=no_sleep)

    page = fetcher.search(0, 0, 100, ["catering"])

    assert page.results == []
    assert fetcher.get_stats()["total_requests"] == 2


def test_connection_errors_exhaust_retries(no_sleep):
    session = FakeSession([requests.exceptions.ConnectionError("down")] * 4)
    fetcher = GeoapifyFetcher(api_key="k", session=session, sleep=no_sleep)

    with pytest.raises(ProviderError):
        fetcher.search(0, 0, 100, ["catering"])
    assert len(session.calls) == 4


def test_client_error_is_not_retried(no_sleep):
    session = FakeSession([FakeResponse(status_code=401, text="bad key")])
    fetcher = GeoapifyFetcher(api_key="k", session=session, sleep=no_sleep)

    with pytest.raises(ProviderError):
        fetcher.search(0, 0, 100, ["catering"])
    assert len(session.calls) == 1


def test_get_fetcher_requires_key(monkeypatch):
    monkeypatch.delenv("GEOAPIFY_API_KEY", raising=False)
    monkeypatch.setenv("PLACES_PROVIDER", "geoapify")
    with pytest.raises(ValueError):
        get_fetcher()

    monkeypatch.setenv("FOURSQUARE_API_KEY", "fsq")
    assert isinstance(get_fetcher("foursquare"), FoursquareFetcher)

    with pytest.raises(ValueError):
        get_fetcher("yelp")
