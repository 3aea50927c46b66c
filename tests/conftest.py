"""
Shared fixtures: a throwaway SQLite database and small fakes for the
network collaborators (places provider, AI providers, HTTP responses).
"""

import os
import sys

import pytest

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _root)

from leadgen import db
from leadgen.fetch import PlacesPage
from leadgen.errors import QuotaExceededError


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    monkeypatch.setenv("LEADGEN_DB_PATH", str(tmp_path / "leadgen.db"))
    db.init_db()
    return tmp_path / "leadgen.db"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None, text=""):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.headers = headers or {}
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Returns queued responses in order and records every call."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)


class FakeFetcher:
    """Places provider serving fixed pages per call, recording search args."""

    def __init__(self, pages):
        self.pages = list(pages)
        self.calls = []

    def categories_for(self, venue_types):
        return [f"cat.{t}" for t in venue_types]

    def search(self, lat, lng, radius_m, categories, limit=50, cursor=None):
        self.calls.append({"lat": lat, "lng": lng, "radius": radius_m, "categories": categories, "cursor": cursor})
        if not self.pages:
            return PlacesPage(results=[], next_cursor=None)
        return self.pages.pop(0)


class FakeAIProvider:
    """
    AI provider answering from a script.

    Each entry of `script` is keyed by model name and is either a response
    string or an exception to raise.
    """

    def __init__(self, name, script=None, default=None):
        self.name = name
        self.script = dict(script or {})
        self.default = default
        self.calls = []

    def complete(self, prompt, model, system=None):
        self.calls.append((model, prompt))
        outcome = self.script.get(model, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            raise QuotaExceededError(f"{model}: 429 quota exceeded")
        return outcome


@pytest.fixture
def no_sleep():
    return lambda seconds: None
