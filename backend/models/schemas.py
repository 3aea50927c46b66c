"""
Pydantic schemas for the lead generation API.

Request bodies use the camelCase keys the dashboard sends.
"""

from typing import Optional, List, Any, Dict
from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Campaigns
# ---------------------------------------------------------------------------

class RuleConstraints(BaseModel):
    minRating: float = 0
    minOpeningDays: int = 0
    excludeChains: bool = False
    excludeKeywords: List[str] = []
    customNotes: Optional[str] = None


class RuleGroup(BaseModel):
    venueTypes: List[str] = []
    rules: RuleConstraints = RuleConstraints()


class CreateCampaignRequest(BaseModel):
    """
    Request body for POST /campaigns: one rule per venue type.

    Each entry of ruleGroups carries its own constraints. The top-level
    venueTypes/rules pair is a single group.
    """

    name: str
    productDescription: Optional[str] = None
    venueTypes: List[str] = []
    rules: RuleConstraints = RuleConstraints()
    ruleGroups: List[RuleGroup] = []


class NotionSettingsRequest(BaseModel):
    notionToken: Optional[str] = None
    notionDatabaseId: Optional[str] = None
    validateConnection: bool = False


# ---------------------------------------------------------------------------
# Neighborhoods and areas
# ---------------------------------------------------------------------------

class NeighborhoodIn(BaseModel):
    name: str
    displayName: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    lon: Optional[float] = None
    boundingbox: Optional[List[Any]] = None
    geojson: Optional[Dict[str, Any]] = None


class CreateNeighborhoodsRequest(BaseModel):
    """Request body for POST /campaigns/{id}/neighborhoods (single or staged bulk add)."""

    neighborhoods: List[NeighborhoodIn]


class SubAreasRequest(BaseModel):
    osmId: Optional[int] = None
    osmType: Optional[str] = None
    parentName: Optional[str] = None


class BulkBoundariesRequest(BaseModel):
    areas: Optional[List[Dict[str, Any]]] = None


# ---------------------------------------------------------------------------
# Venues
# ---------------------------------------------------------------------------

class SearchVenuesRequest(BaseModel):
    campaignId: Optional[str] = None
    neighborhoodId: Optional[str] = None
    ruleId: Optional[str] = None


class UpdateVenueRequest(BaseModel):
    status: Optional[str] = None
    phone: Optional[str] = None


class BulkVenueStatusRequest(BaseModel):
    venueIds: List[str] = []
    status: Optional[str] = None


class ImportVenuesRequest(BaseModel):
    campaignId: Optional[str] = None
    neighborhoodId: Optional[str] = None
    sourceName: Optional[str] = None
    text: Optional[str] = None


class PersonnelRequest(BaseModel):
    venueId: Optional[str] = None


class ResearchVenuesRequest(BaseModel):
    venueIds: List[str] = []


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

class ExportNotionRequest(BaseModel):
    """Request body for POST /export-notion; token/database fall back to campaign settings."""

    campaignId: Optional[str] = None
    notionToken: Optional[str] = None
    notionDatabaseId: Optional[str] = None
    venueIds: Optional[List[str]] = None
