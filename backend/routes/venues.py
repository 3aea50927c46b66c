"""
Venue search, import, update and personnel research endpoints.
"""

import logging

from fastapi import APIRouter, Depends

from backend.models.schemas import (
    BulkVenueStatusRequest,
    ImportVenuesRequest,
    PersonnelRequest,
    ResearchVenuesRequest,
    SearchVenuesRequest,
    UpdateVenueRequest,
)
from backend.services.providers import get_places_fetcher_factory, get_registry, get_research_chain
from leadgen import db
from leadgen.errors import NotFoundError, ValidationError
from leadgen.importer import import_venues
from leadgen.research import research_venue, research_venues
from leadgen.search import run_neighborhood_search

logger = logging.getLogger(__name__)

router = APIRouter(tags=["venues"])


@router.post("/search-venues")
def search_venues(body: SearchVenuesRequest, fetcher_factory=Depends(get_places_fetcher_factory)):
    if not body.campaignId or not body.neighborhoodId:
        raise ValidationError("Missing campaignId or neighborhoodId")
    summary = run_neighborhood_search(
        body.campaignId,
        body.neighborhoodId,
        fetcher_factory(),
        rule_id=body.ruleId,
    )
    return summary.to_dict()


@router.patch("/venues")
def update_venue_statuses(body: BulkVenueStatusRequest):
    if not body.venueIds or not body.status:
        raise ValidationError("Missing venueIds or status")
    updated = db.update_venues_status(body.venueIds, body.status)
    logger.info(f"Marked {updated} venue(s) {body.status}")
    return {"updated": updated, "status": body.status}


@router.patch("/venues/{venue_id}")
def update_venue(venue_id: str, body: UpdateVenueRequest):
    if not db.get_venue(venue_id):
        raise NotFoundError("Venue not found")
    fields = {k: v for k, v in body.model_dump().items() if v is not None}
    if not fields:
        raise ValidationError("Nothing to update")
    db.update_venue(venue_id, **fields)
    return db.get_venue(venue_id)


@router.post("/import-venues")
def import_pasted_venues(body: ImportVenuesRequest):
    return import_venues(
        body.campaignId,
        body.text,
        neighborhood_id=body.neighborhoodId,
        source_name=body.sourceName,
    )


@router.post("/get-personnel")
def get_personnel(body: PersonnelRequest, chain=Depends(get_research_chain)):
    return research_venue(body.venueId, chain)


@router.post("/research-venues")
def research_selected(body: ResearchVenuesRequest, chain=Depends(get_research_chain)):
    if not body.venueIds:
        raise ValidationError("Missing venueIds")
    return research_venues(body.venueIds, chain)


@router.post("/research/reset-quota")
def reset_quota(registry=Depends(get_registry)):
    cleared = registry.exhausted
    registry.reset()
    logger.info(f"Cleared exhausted models: {cleared}")
    return {"cleared": cleared}
