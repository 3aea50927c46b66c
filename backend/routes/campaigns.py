"""
Campaign, neighborhood and search-history endpoints.
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter

from backend.models.schemas import CreateCampaignRequest, CreateNeighborhoodsRequest, NotionSettingsRequest
from leadgen import db
from leadgen.errors import NotFoundError, ValidationError
from leadgen.notion import NotionClient
from leadgen.rules import expand_rule_selection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["campaigns"])


def _public_campaign(campaign: Dict) -> Dict:
    """Campaign row without the Notion secret."""
    out = {k: v for k, v in campaign.items() if k != "notion_token"}
    out["notion_configured"] = bool(campaign.get("notion_token") and campaign.get("notion_database_id"))
    return out


def _require_campaign(campaign_id: str) -> Dict:
    campaign = db.get_campaign(campaign_id)
    if not campaign:
        raise NotFoundError("Campaign not found")
    return campaign


@router.post("/campaigns", status_code=201)
def create_campaign(body: CreateCampaignRequest):
    groups = [(body.venueTypes, body.rules)] if body.venueTypes else []
    groups += [(group.venueTypes, group.rules) for group in body.ruleGroups]

    rules = []
    for venue_types, constraints in groups:
        rules.extend(expand_rule_selection(
            venue_types,
            min_rating=constraints.minRating,
            min_opening_days=constraints.minOpeningDays,
            exclude_chains=constraints.excludeChains,
            exclude_keywords=[kw for kw in constraints.excludeKeywords if kw.strip()],
            custom_notes=constraints.customNotes or None,
        ))
    if not rules:
        raise ValidationError("Select at least one venue type")

    campaign = db.create_campaign(body.name, body.productDescription)
    stored_rules = db.create_campaign_rules(campaign["id"], rules)
    logger.info(f"Campaign {campaign['id'][:8]} created with {len(stored_rules)} rule(s)")
    return {**_public_campaign(campaign), "rules": stored_rules}


@router.get("/campaigns")
def list_campaigns():
    return {"campaigns": [_public_campaign(c) for c in db.list_campaigns()]}


@router.get("/campaigns/{campaign_id}")
def get_campaign(campaign_id: str):
    campaign = _require_campaign(campaign_id)
    return {**_public_campaign(campaign), "rules": db.list_campaign_rules(campaign_id)}


@router.delete("/campaigns/{campaign_id}")
def delete_campaign(campaign_id: str):
    _require_campaign(campaign_id)
    venues_deleted = db.delete_campaign(campaign_id)
    return {"deleted": True, "venuesDeleted": venues_deleted}


@router.put("/campaigns/{campaign_id}/notion")
def update_notion_settings(campaign_id: str, body: NotionSettingsRequest):
    _require_campaign(campaign_id)
    result: Dict = {}
    if body.validateConnection and body.notionToken and body.notionDatabaseId:
        result = NotionClient(body.notionToken).validate_connection(body.notionDatabaseId)
        if not result.get("valid"):
            raise ValidationError(f"Notion connection failed: {result.get('error')}")

    db.update_campaign_notion_settings(campaign_id, body.notionToken, body.notionDatabaseId)
    return {**_public_campaign(db.get_campaign(campaign_id)), **result}


@router.get("/campaigns/{campaign_id}/neighborhoods")
def list_neighborhoods(campaign_id: str):
    _require_campaign(campaign_id)
    return {"neighborhoods": db.list_neighborhoods(campaign_id)}


@router.post("/campaigns/{campaign_id}/neighborhoods", status_code=201)
def add_neighborhoods(campaign_id: str, body: CreateNeighborhoodsRequest):
    _require_campaign(campaign_id)
    if not body.neighborhoods:
        raise ValidationError("No neighborhoods to add")

    created = []
    for nb in body.neighborhoods:
        lng = nb.lng if nb.lng is not None else nb.lon
        boundary = {
            "lat": nb.lat,
            "lng": lng,
            "boundingbox": nb.boundingbox,
            "geojson": nb.geojson,
        }
        created.append(db.create_neighborhood(
            campaign_id,
            nb.name,
            display_name=nb.displayName or nb.name,
            boundary=boundary,
        ))
    return {"neighborhoods": created}


@router.delete("/neighborhoods/{neighborhood_id}")
def delete_neighborhood(neighborhood_id: str):
    if not db.get_neighborhood(neighborhood_id):
        raise NotFoundError("Neighborhood not found")
    venues_deleted = db.delete_neighborhood(neighborhood_id)
    return {"deleted": True, "venuesDeleted": venues_deleted}


@router.get("/campaigns/{campaign_id}/searches")
def list_searches(campaign_id: str):
    _require_campaign(campaign_id)
    return {"searches": db.list_neighborhood_searches(campaign_id)}


@router.get("/campaigns/{campaign_id}/venues")
def list_venues(campaign_id: str, neighborhood_id: Optional[str] = None):
    _require_campaign(campaign_id)
    venues = db.get_venues_by_campaign(campaign_id, neighborhood_id=neighborhood_id)
    personnel = db.get_personnel_by_venues([v["id"] for v in venues])
    return {
        "venues": [{**v, "personnel": personnel.get(v["id"], [])} for v in venues],
    }
