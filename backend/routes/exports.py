"""
CSV download and Notion export endpoints.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import Response

from backend.models.schemas import ExportNotionRequest
from leadgen import db
from leadgen.errors import NotFoundError, ValidationError
from leadgen.export import export_campaign_csv, export_venues_to_notion

router = APIRouter(tags=["exports"])


@router.get("/export-csv")
def export_csv(campaignId: Optional[str] = None, neighborhoodId: Optional[str] = None):
    csv_text = export_campaign_csv(campaignId, neighborhoodId)
    filename = f"leads-{date.today().isoformat()}.csv"
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/export-notion")
def export_notion(body: ExportNotionRequest):
    if not body.campaignId:
        raise ValidationError("Missing campaignId, notionToken, or notionDatabaseId")
    campaign = db.get_campaign(body.campaignId)
    if not campaign:
        raise NotFoundError("Campaign not found")

    token = body.notionToken or campaign.get("notion_token")
    database_id = body.notionDatabaseId or campaign.get("notion_database_id")
    return export_venues_to_notion(body.campaignId, token, database_id, venue_ids=body.venueIds)
