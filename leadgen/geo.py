"""
Geographic utilities for neighborhood-scoped searches.

Derives a search circle from a neighborhood's bounding box and checks whether
a venue falls inside the neighborhood polygon.
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple, Union

# Rough conversion: 1 degree latitude ~ 111 km
METERS_PER_DEGREE_LAT = 111000.0
KM_PER_DEGREE_LAT = 111.0

# Places providers reject larger radii
MAX_SEARCH_RADIUS_M = 50000
# Used when a neighborhood only has a center point
DEFAULT_POINT_RADIUS_M = 5000

Number = Union[str, int, float]


def _unpack_bbox(boundingbox: Sequence[Number]) -> Tuple[float, float, float, float]:
    """Return (south, north, west, east) as floats. Nominatim sends strings."""
    south, north, west, east = (float(v) for v in boundingbox[:4])
    return south, north, west, east


def bounding_box_center(boundingbox: Sequence[Number]) -> Dict[str, float]:
    """
    Get the center point of a bounding box.

    Args:
        boundingbox: [south, north, west, east]

    Returns:
        {"lat": ..., "lng": ...}
    """
    south, north, west, east = _unpack_bbox(boundingbox)
    return {
        "lat": (south + north) / 2,
        "lng": (west + east) / 2,
    }


def bounding_box_radius(boundingbox: Sequence[Number]) -> int:
    """
    Approximate radius in meters that covers a bounding box.

    Half of the box diagonal, with longitude degrees shrunk by the cosine of
    the mean latitude. Callers cap the result at MAX_SEARCH_RADIUS_M.

    Args:
        boundingbox: [south, north, west, east]

    Returns:
        Radius in whole meters
    """
    south, north, west, east = _unpack_bbox(boundingbox)

    lat_diff = abs(north - south)
    lng_diff = abs(east - west)

    lat_meters = lat_diff * METERS_PER_DEGREE_LAT
    lng_meters = lng_diff * METERS_PER_DEGREE_LAT * math.cos(math.radians((south + north) / 2))

    return int(round(math.sqrt(lat_meters ** 2 + lng_meters ** 2) / 2))


def capped_radius(radius_m: float) -> int:
    """Clamp a radius to what the places providers accept."""
    return int(min(radius_m, MAX_SEARCH_RADIUS_M))


def is_within_boundary(lat: float, lng: float, geojson: Optional[Dict]) -> bool:
    """
    Check if a point is inside a GeoJSON Polygon or MultiPolygon.

    Only the outer ring of each polygon is tested. Missing or unsupported
    geometry allows the point.
    """
    if not geojson or not isinstance(geojson, dict):
        return True

    geom_type = geojson.get("type")
    coordinates = geojson.get("coordinates") or []
    point = (float(lng), float(lat))

    if geom_type == "Polygon":
        if not coordinates:
            return True
        return _point_in_ring(point, coordinates[0])

    if geom_type == "MultiPolygon":
        if not coordinates:
            return True
        return any(
            _point_in_ring(point, polygon[0])
            for polygon in coordinates
            if polygon
        )

    return True


def _point_in_ring(point: Tuple[float, float], ring: List[Sequence[float]]) -> bool:
    """Ray casting test. Ring coordinates are [lng, lat] pairs."""
    x, y = point
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = float(ring[i][0]), float(ring[i][1])
        xj, yj = float(ring[j][0]), float(ring[j][1])
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def approximate_area_sq_km(bounds: Optional[Dict[str, float]]) -> float:
    """
    Rough area of an Overpass bounds dict (minlat/minlon/maxlat/maxlon).

    Used to rank sub-areas by size; not a geodesic area.
    """
    if not bounds:
        return 0.0

    lat_km = abs(bounds["maxlat"] - bounds["minlat"]) * KM_PER_DEGREE_LAT
    mid_lat = (bounds["maxlat"] + bounds["minlat"]) / 2
    lon_km = (
        abs(bounds["maxlon"] - bounds["minlon"])
        * KM_PER_DEGREE_LAT
        * math.cos(math.radians(mid_lat))
    )
    return lat_km * lon_km
