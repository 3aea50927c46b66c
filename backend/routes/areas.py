"""
Area lookup endpoints (Nominatim / Overpass).
"""

from fastapi import APIRouter

from backend.models.schemas import BulkBoundariesRequest, SubAreasRequest
from leadgen.geocode import fetch_bulk_boundaries, get_sub_areas, search_area

router = APIRouter(prefix="/areas", tags=["areas"])


@router.get("/search")
def search(query: str = ""):
    return {"areas": search_area(query)}


@router.post("/sub-areas")
def sub_areas(body: SubAreasRequest):
    return {"subAreas": get_sub_areas(body.osmId, body.osmType, body.parentName)}


@router.post("/bulk-boundaries")
def bulk_boundaries(body: BulkBoundariesRequest):
    return {"enrichedAreas": fetch_bulk_boundaries(body.areas)}
