"""
Area lookup against OpenStreetMap.

Nominatim resolves a free-text area to boundary polygons; Overpass lists
the named suburbs/neighbourhoods inside a parent area so they can be staged
as campaign neighborhoods in bulk.
"""

import os
import time
import logging
from typing import Dict, List, Optional

import requests

from .errors import ProviderError, ValidationError
from .geo import approximate_area_sq_km

logger = logging.getLogger(__name__)

NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "LeadGenApp/1.0 (leadgen@example.com)"
DEFAULT_OVERPASS_ENDPOINTS = [
    "https://overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
    "https://maps.mail.ru/osm/tools/overpass/api/interpreter",
]
REQUEST_TIMEOUT = 30
BULK_BOUNDARY_DELAY = 1.1  # Nominatim allows 1 request/second

RELATION_AREA_OFFSET = 3600000000
WAY_AREA_OFFSET = 2400000000

SUB_AREA_QUERY = """
[out:json][timeout:25];
area({area_id})->.searchArea;
(
  node["place"~"suburb|neighbourhood|quarter"](area.searchArea);
  way["place"~"suburb|neighbourhood|quarter"](area.searchArea);
  relation["place"~"suburb|neighbourhood|quarter"](area.searchArea);
);
out center bb;
"""


def _user_agent() -> str:
    return os.getenv("NOMINATIM_USER_AGENT") or DEFAULT_USER_AGENT


def _overpass_endpoints() -> List[str]:
    raw = os.getenv("OVERPASS_ENDPOINTS")
    if not raw:
        return list(DEFAULT_OVERPASS_ENDPOINTS)
    return [e.strip() for e in raw.split(",") if e.strip()]


def _nominatim_results(query: str, session=None) -> List[Dict]:
    """Raw Nominatim results that carry a Polygon/MultiPolygon boundary."""
    http = session or requests
    params = {
        "q": query,
        "format": "json",
        "polygon_geojson": "1",
        "limit": "5",
        "addressdetails": "1",
    }
    try:
        resp = http.get(
            NOMINATIM_SEARCH_URL,
            params=params,
            headers={"User-Agent": _user_agent()},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.exceptions.RequestException as e:
        raise ProviderError(f"Nominatim search failed: {e}") from e

    if not resp.ok:
        raise ProviderError(f"Nominatim search failed ({resp.status_code})")

    return [
        r for r in resp.json()
        if (r.get("geojson") or {}).get("type") in ("Polygon", "MultiPolygon")
    ]


def search_area(query: str, session=None) -> List[Dict]:
    """
    Look up an area by name.

    Returns:
        List of {"osmId", "osmType", "name", "displayName", "lat", "lng",
        "boundingbox", "geojson", "type"}
    """
    if not query or not query.strip():
        raise ValidationError("Missing 'query' parameter")

    results = _nominatim_results(query, session=session)
    logger.info(f"Nominatim '{query}': {len(results)} area(s) with boundaries")

    return [
        {
            "osmId": r.get("osm_id"),
            "osmType": r.get("osm_type"),
            "name": r.get("name") or query,
            "displayName": r.get("display_name"),
            "lat": float(r["lat"]),
            "lng": float(r["lon"]),
            "boundingbox": r.get("boundingbox"),
            "geojson": r.get("geojson"),
            "type": r.get("type"),
        }
        for r in results
    ]


def overpass_area_id(osm_id: int, osm_type: str) -> int:
    """Overpass area id for a parent relation or way. Nodes do not form areas."""
    if osm_type == "relation":
        return RELATION_AREA_OFFSET + int(osm_id)
    if osm_type == "way":
        return WAY_AREA_OFFSET + int(osm_id)
    raise ValidationError("Only relations and ways can be used as parent areas.")


def _query_overpass(query: str, session=None) -> Dict:
    """POST the query to each endpoint in turn; first success wins."""
    http = session or requests
    last_error: Optional[str] = None

    for endpoint in _overpass_endpoints():
        try:
            resp = http.post(
                endpoint,
                data={"data": query},
                headers={"User-Agent": _user_agent()},
                timeout=REQUEST_TIMEOUT,
            )
            if resp.ok:
                return resp.json()
            last_error = f"{endpoint} returned {resp.status_code}"
        except (requests.exceptions.RequestException, ValueError) as e:
            last_error = f"{endpoint}: {e}"
        logger.warning(f"Overpass endpoint failed: {last_error}")

    raise ProviderError(f"Overpass API failed ({last_error})")


def get_sub_areas(osm_id: int, osm_type: str, parent_name: Optional[str] = None, session=None) -> List[Dict]:
    """
    Named suburbs, neighbourhoods and quarters inside a parent area,
    largest first.

    Returns:
        List of {"osmId", "name", "displayName", "lat", "lon",
        "approxSizeSqKm", "parentName"}
    """
    if not osm_id or not osm_type:
        raise ValidationError("Missing osmId or osmType")

    area_id = overpass_area_id(osm_id, osm_type)
    data = _query_overpass(SUB_AREA_QUERY.format(area_id=area_id), session=session)
    parent = parent_name or ""

    sub_areas = []
    for el in data.get("elements", []):
        name = (el.get("tags") or {}).get("name")
        if not name:
            continue
        center = el.get("center") or {}
        size = approximate_area_sq_km(el["bounds"]) if el.get("bounds") else 0.0
        sub_areas.append({
            "osmId": el.get("id"),
            "name": name,
            "displayName": f"{name}, {parent or 'Unknown Region'}",
            "lat": center.get("lat") or el.get("lat") or 0,
            "lon": center.get("lon") or el.get("lon") or 0,
            "approxSizeSqKm": round(size, 2),
            "parentName": parent,
        })

    sub_areas.sort(key=lambda a: a["approxSizeSqKm"], reverse=True)
    logger.info(f"Overpass area {area_id}: {len(sub_areas)} named sub-area(s)")
    return sub_areas


def _pick_boundary(results: List[Dict]) -> Optional[Dict]:
    for r in results:
        if r.get("category") == "boundary" or r.get("type") == "administrative" or r.get("osm_type") == "relation":
            return r
    return results[0] if results else None


def fetch_bulk_boundaries(areas: List[Dict], session=None, sleep=time.sleep) -> List[Dict]:
    """
    Attach precise Nominatim polygons to staged sub-areas.

    Areas that cannot be resolved keep their point and get null
    boundingbox/geojson; one failure never aborts the batch.
    """
    if areas is None or not isinstance(areas, list):
        raise ValidationError("Missing or invalid areas array")

    enriched = []
    for area in areas:
        sleep(BULK_BOUNDARY_DELAY)
        query = area.get("displayName") or area.get("name") or ""
        try:
            match = _pick_boundary(_nominatim_results(query, session=session))
        except ProviderError as e:
            logger.error(f"Failed to fetch exact boundary for {query}: {e}")
            match = None

        if match and match.get("geojson"):
            enriched.append({
                **area,
                "lat": float(match["lat"]),
                "lon": float(match["lon"]),
                "boundingbox": match.get("boundingbox"),
                "geojson": match["geojson"],
            })
        else:
            enriched.append({**area, "boundingbox": None, "geojson": None})

    return enriched
