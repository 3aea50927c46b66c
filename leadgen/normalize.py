"""
Place data normalization module.

Transforms raw places provider responses (Geoapify, Foursquare) into a
single Candidate record so rule and dedup code never sees provider fields.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import logging

from .hours import count_open_days

logger = logging.getLogger(__name__)

MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="


@dataclass
class Candidate:
    """A venue returned by a places provider, not yet accepted or stored."""

    external_id: str
    name: str
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    rating: Optional[float] = None
    total_ratings: Optional[int] = None
    hours: Any = None
    phone: Optional[str] = None
    website: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    source: str = ""

    @property
    def opening_days(self) -> Optional[int]:
        return count_open_days(self.hours)


def generate_maps_url(name: str, address: str = "", lat: Optional[float] = None, lng: Optional[float] = None) -> str:
    """Google Maps search link for a venue; address preferred over coordinates."""
    if address:
        query = f"{name}, {address}"
    else:
        query = f"{name} {lat or 0},{lng or 0}"
    return MAPS_SEARCH_URL + quote(query, safe="")


def normalize_geoapify_feature(feature: Dict) -> Candidate:
    """
    Transform a Geoapify Places feature into a Candidate.

    Geoapify (OSM) data has no ratings; phone, website and hours live in
    the raw datasource tags.

    Args:
        feature: GeoJSON Feature, or its bare properties dict
    """
    props = feature.get("properties", feature)
    raw = (props.get("datasource") or {}).get("raw") or {}

    return Candidate(
        external_id=str(props.get("place_id") or ""),
        name=props.get("name") or "",
        address=props.get("formatted") or "",
        latitude=props.get("lat"),
        longitude=props.get("lon"),
        rating=None,
        total_ratings=None,
        hours=raw.get("opening_hours") or None,
        phone=raw.get("phone") or raw.get("contact:phone") or None,
        website=raw.get("website") or raw.get("contact:website") or None,
        categories=list(props.get("categories") or []),
        source="geoapify",
    )


def normalize_foursquare_place(place: Dict) -> Candidate:
    """
    Transform a Foursquare v3 place into a Candidate.

    Foursquare rates on a 10-point scale; ratings are halved so rule floors
    use the same 5-point scale for every provider.
    """
    location = place.get("location") or {}
    main = (place.get("geocodes") or {}).get("main") or {}
    rating = place.get("rating")

    return Candidate(
        external_id=str(place.get("fsq_id") or ""),
        name=place.get("name") or "",
        address=location.get("formatted_address") or location.get("address") or "",
        latitude=main.get("latitude"),
        longitude=main.get("longitude"),
        rating=round(rating / 2, 1) if isinstance(rating, (int, float)) else None,
        total_ratings=(place.get("stats") or {}).get("total_ratings"),
        hours=place.get("hours") or None,
        phone=place.get("tel") or None,
        website=place.get("website") or None,
        categories=[c.get("name") for c in place.get("categories") or [] if c.get("name")],
        source="foursquare",
    )


def normalize_places(places: List[Dict], adapter) -> List[Candidate]:
    """
    Normalize a list of raw provider records with the given adapter.

    Records without an id or a name are dropped.
    """
    normalized = []
    for place in places:
        try:
            candidate = adapter(place)
        except (AttributeError, KeyError, TypeError) as e:
            logger.warning(f"Failed to normalize place: {e}")
            continue
        if not candidate.external_id or not candidate.name:
            continue
        normalized.append(candidate)
    return normalized


def to_venue_record(
    candidate: Candidate,
    campaign_id: str,
    neighborhood_id: Optional[str] = None,
) -> Dict:
    """
    Transform a Candidate into a venue row for insertion.

    The fsq_id column holds the provider's external id for every provider.
    """
    hours = candidate.hours
    if isinstance(hours, str):
        opening_hours = {"display": hours}
    else:
        opening_hours = hours

    return {
        "campaign_id": campaign_id,
        "neighborhood_id": neighborhood_id,
        "fsq_id": candidate.external_id,
        "name": candidate.name,
        "address": candidate.address,
        "latitude": candidate.latitude or 0,
        "longitude": candidate.longitude or 0,
        "rating": candidate.rating,
        "total_ratings": candidate.total_ratings,
        "opening_hours": opening_hours,
        "opening_days_count": candidate.opening_days,
        "phone": candidate.phone,
        "website": candidate.website,
        "google_maps_url": generate_maps_url(
            candidate.name,
            candidate.address,
            candidate.latitude,
            candidate.longitude,
        ),
        "types": candidate.categories,
        "status": "new",
    }
