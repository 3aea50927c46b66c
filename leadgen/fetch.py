"""
Places provider clients.

Handles places search API calls with:
- One page per call (offset or cursor pagination)
- Rate limiting and delays
- Exponential backoff on errors
- Request counting and logging

Every client returns normalized Candidates, so the search pipeline does not
depend on provider field names.
"""

import os
import re
import time
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import requests

from .categories import (
    FOURSQUARE_CATEGORIES,
    FOURSQUARE_DEFAULT,
    GEOAPIFY_CATEGORIES,
    GEOAPIFY_DEFAULT,
    map_venue_types,
)
from .errors import ProviderError
from .geo import capped_radius
from .normalize import Candidate, normalize_foursquare_place, normalize_geoapify_feature, normalize_places

logger = logging.getLogger(__name__)

# API Configuration
GEOAPIFY_PLACES_URL = "https://api.geoapify.com/v2/places"
FOURSQUARE_SEARCH_URL = "https://api.foursquare.com/v3/places/search"
FOURSQUARE_FIELDS = "fsq_id,name,location,geocodes,categories,rating,stats,tel,website,hours"
REQUEST_DELAY = 0.1      # Base delay between requests to respect rate limits
REQUEST_TIMEOUT = 30
MAX_RETRIES = 3          # Maximum retry attempts on failure
BACKOFF_FACTOR = 2       # Exponential backoff multiplier

_CURSOR_RE = re.compile(r"cursor=([^&>]+)")


@dataclass
class PlacesPage:
    """One page of search results."""

    results: List[Candidate] = field(default_factory=list)
    next_cursor: Optional[str] = None


class PlacesFetcher:
    """
    Base class for places providers: shared session, retries and stats.

    Attributes:
        request_count: Total API requests made
        total_results: Total places fetched
    """

    provider = ""
    category_map: Dict[str, List[str]] = {}
    default_categories: List[str] = []

    def __init__(self, session: Optional[requests.Session] = None, sleep=time.sleep):
        self.request_count = 0
        self.total_results = 0
        self.session = session or requests.Session()
        self._sleep = sleep

    def categories_for(self, venue_types: Sequence[str]) -> List[str]:
        """Provider category tokens for a rule's venue type label(s)."""
        return map_venue_types(venue_types, self.category_map, self.default_categories)

    def _make_request(
        self,
        url: str,
        params: Dict,
        headers: Optional[Dict] = None,
        retry_count: int = 0,
    ) -> requests.Response:
        """
        Make a single API request with retry logic.

        Retries timeouts, connection errors and HTTP 429 with exponential
        backoff; any other non-2xx status fails immediately.

        Raises:
            ProviderError: when the request cannot be completed
        """
        try:
            # Add small delay to respect rate limits
            self._sleep(REQUEST_DELAY)

            response = self.session.get(url, params=params, headers=headers, timeout=REQUEST_TIMEOUT)
            self.request_count += 1
        except requests.exceptions.RequestException as e:
            if retry_count < MAX_RETRIES:
                wait_time = BACKOFF_FACTOR ** retry_count
                logger.warning(
                    f"{self.provider} request error: {e}. Retrying in {wait_time}s "
                    f"({retry_count + 1}/{MAX_RETRIES})"
                )
                self._sleep(wait_time)
                return self._make_request(url, params, headers, retry_count + 1)
            logger.error(f"Max retries exceeded. Last error: {e}")
            raise ProviderError(f"{self.provider} search failed: {e}") from e

        if response.status_code == 429:
            if retry_count < MAX_RETRIES:
                wait_time = BACKOFF_FACTOR ** retry_count * 5
                logger.warning(
                    f"Rate limited. Waiting {wait_time}s before retry "
                    f"({retry_count + 1}/{MAX_RETRIES})"
                )
                self._sleep(wait_time)
                return self._make_request(url, params, headers, retry_count + 1)
            logger.error("Max retries exceeded for rate limit")

        if not response.ok:
            raise ProviderError(
                f"{self.provider} search failed ({response.status_code}): {response.text[:500]}"
            )
        return response

    def search(
        self,
        lat: float,
        lng: float,
        radius_m: float,
        categories: List[str],
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> PlacesPage:
        raise NotImplementedError

    def get_stats(self) -> Dict:
        """Return current fetching statistics."""
        return {
            "provider": self.provider,
            "total_requests": self.request_count,
            "total_results_fetched": self.total_results,
        }


class GeoapifyFetcher(PlacesFetcher):
    """Geoapify Places API (OpenStreetMap data). Offset pagination."""

    provider = "geoapify"
    category_map = GEOAPIFY_CATEGORIES
    default_categories = GEOAPIFY_DEFAULT

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        """
        Args:
            api_key: Geoapify API key. If None, reads from GEOAPIFY_API_KEY.

        Raises:
            ValueError: If no API key is provided or found in environment.
        """
        super().__init__(**kwargs)
        self.api_key = api_key or os.getenv("GEOAPIFY_API_KEY")
        if not self.api_key:
            raise ValueError(
                "No API key provided. Set GEOAPIFY_API_KEY environment "
                "variable or pass api_key parameter."
            )

    def search(self, lat, lng, radius_m, categories, limit=50, cursor=None) -> PlacesPage:
        """
        Fetch one page of places inside a circle.

        The cursor is the result offset. A full page means there may be more.
        """
        offset = int(cursor or 0)
        radius = capped_radius(radius_m)
        params = {
            "categories": ",".join(categories),
            "filter": f"circle:{lng},{lat},{int(round(radius))}",
            "bias": f"proximity:{lng},{lat}",
            "limit": str(limit),
            "offset": str(offset),
            "apiKey": self.api_key,
        }
        logger.debug(f"Geoapify search at ({lat:.4f}, {lng:.4f}) r={radius} offset={offset}")

        data = self._make_request(GEOAPIFY_PLACES_URL, params).json()
        features = data.get("features") or []
        self.total_results += len(features)

        results = normalize_places(features, normalize_geoapify_feature)
        has_more = len(features) == limit
        return PlacesPage(
            results=results,
            next_cursor=str(offset + limit) if has_more else None,
        )


class FoursquareFetcher(PlacesFetcher):
    """Foursquare Places API v3. Cursor pagination through the Link header."""

    provider = "foursquare"
    category_map = FOURSQUARE_CATEGORIES
    default_categories = FOURSQUARE_DEFAULT

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key or os.getenv("FOURSQUARE_API_KEY")
        if not self.api_key:
            raise ValueError(
                "No API key provided. Set FOURSQUARE_API_KEY environment "
                "variable or pass api_key parameter."
            )

    def search(self, lat, lng, radius_m, categories, limit=50, cursor=None) -> PlacesPage:
        params = {
            "ll": f"{lat},{lng}",
            "radius": str(capped_radius(radius_m)),
            "categories": ",".join(categories),
            "limit": str(limit),
            "fields": FOURSQUARE_FIELDS,
        }
        if cursor:
            params["cursor"] = cursor
        headers = {"Accept": "application/json", "Authorization": self.api_key}

        response = self._make_request(FOURSQUARE_SEARCH_URL, params, headers=headers)
        places = response.json().get("results") or []
        self.total_results += len(places)

        next_cursor = None
        link = response.headers.get("link") or response.headers.get("Link")
        if link:
            match = _CURSOR_RE.search(link)
            if match:
                next_cursor = match.group(1)

        return PlacesPage(
            results=normalize_places(places, normalize_foursquare_place),
            next_cursor=next_cursor,
        )


FETCHERS = {
    "geoapify": GeoapifyFetcher,
    "foursquare": FoursquareFetcher,
}


def get_fetcher(provider: Optional[str] = None, **kwargs) -> PlacesFetcher:
    """Build the configured places provider (PLACES_PROVIDER, default geoapify)."""
    name = (provider or os.getenv("PLACES_PROVIDER") or "geoapify").strip().lower()
    if name not in FETCHERS:
        raise ValueError(f"Unknown places provider '{name}'. Choose from: {', '.join(FETCHERS)}")
    return FETCHERS[name](**kwargs)
