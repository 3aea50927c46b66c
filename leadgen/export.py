"""
Export module for saving leads to CSV or pushing them to Notion.

CSV: one row per (venue, personnel) pair, or one row with blank personnel
columns for venues nobody has been found for.
Notion: one page per venue, sequential with a fixed delay between calls.
"""

import csv
import io
import time
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from . import db
from .errors import NotFoundError, NotionAuthError, ValidationError
from .notion import NotionClient

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Venue Name",
    "Address",
    "Rating",
    "Total Ratings",
    "Opening Days",
    "Venue Phone",
    "Website",
    "Google Maps",
    "Categories",
    "Status",
    "Personnel Name",
    "Personnel Title",
    "Personnel Phone",
    "Personnel Email",
    "Recommended Pitch",
]

NOTION_REQUEST_DELAY = 0.35  # Notion allows ~3 requests/second


def _fmt(value) -> str:
    """Blank for None; integral floats without the trailing .0."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _venue_columns(venue: Dict) -> List[str]:
    return [
        venue.get("name") or "",
        venue.get("address") or "",
        _fmt(venue.get("rating")),
        _fmt(venue.get("total_ratings")),
        _fmt(venue.get("opening_days_count")),
        venue.get("phone") or "",
        venue.get("website") or "",
        venue.get("google_maps_url") or "",
        "; ".join(venue.get("types") or []),
        venue.get("status") or "",
    ]


def generate_csv(rows: Iterable[Tuple[Dict, List[Dict]]]) -> str:
    """
    CSV text for (venue, personnel) pairs.

    Fields containing a comma, quote or newline are quoted with internal
    quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADERS)

    for venue, personnel in rows:
        venue_cols = _venue_columns(venue)
        if not personnel:
            writer.writerow(venue_cols + [""] * 5)
            continue
        for person in personnel:
            writer.writerow(venue_cols + [
                person.get("name") or "",
                person.get("title") or "",
                person.get("phone") or "",
                person.get("email") or "",
                person.get("recommended_pitch") or "",
            ])

    return buffer.getvalue().rstrip("\n")


def load_export_rows(
    campaign_id: str,
    neighborhood_id: Optional[str] = None,
    venue_ids: Optional[List[str]] = None,
) -> List[Tuple[Dict, List[Dict]]]:
    """Stored venues of a campaign paired with their personnel."""
    venues = db.get_venues_by_campaign(campaign_id, neighborhood_id=neighborhood_id, venue_ids=venue_ids)
    personnel = db.get_personnel_by_venues([v["id"] for v in venues])
    return [(venue, personnel.get(venue["id"], [])) for venue in venues]


def export_campaign_csv(campaign_id: str, neighborhood_id: Optional[str] = None) -> str:
    if not campaign_id:
        raise ValidationError("Missing campaignId")
    return generate_csv(load_export_rows(campaign_id, neighborhood_id))


def format_contacts(venue: Dict, personnel: List[Dict]) -> str:
    """Contacts column: one block per person, separated by '---'."""
    lines: List[str] = []
    for i, person in enumerate(personnel):
        lines.append(f"{person.get('title') or 'Contact'}: {person['name']}")
        phone = person.get("phone") or venue.get("phone")
        if phone:
            lines.append(f"Phone: {phone}")
        if person.get("email"):
            lines.append(f"Email: {person['email']}")
        if i < len(personnel) - 1:
            lines.append("---")

    if not lines and venue.get("phone"):
        lines.append(f"Venue Phone: {venue['phone']}")
    return "\n".join(lines)


def format_recommended(venue: Dict, personnel: List[Dict]) -> str:
    """Recommended column: schedule line plus each person's pitch."""
    lines: List[str] = []
    if venue.get("opening_days_count"):
        lines.append(f"Schedule: Open {venue['opening_days_count']} days/week")
    for person in personnel:
        if person.get("recommended_pitch"):
            lines.append(f"\nFor {person['name']} ({person.get('title') or 'Contact'}):")
            lines.append(person["recommended_pitch"])
    return "\n".join(lines)


def build_notion_fields(venue: Dict, personnel: List[Dict]) -> Dict:
    return {
        "venue_name": venue.get("name") or "",
        "address": venue.get("address") or "",
        "google_maps_url": venue.get("google_maps_url") or None,
        "contacts": format_contacts(venue, personnel),
        "recommended": format_recommended(venue, personnel),
    }


def export_venues_to_notion(
    campaign_id: str,
    notion_token: str,
    database_id: str,
    venue_ids: Optional[List[str]] = None,
    client: Optional[NotionClient] = None,
    sleep=time.sleep,
) -> Dict:
    """
    Push venues to a Notion database, one page each.

    The first failure being an auth failure aborts the batch with
    NotionAuthError; other failures are collected. Venues that went through
    are flagged notion_exported; re-exporting them is allowed.

    Returns:
        {"exported", "total", "errors"}
    """
    if not campaign_id or not notion_token or not database_id:
        raise ValidationError("Missing campaignId, notionToken, or notionDatabaseId")

    rows = load_export_rows(campaign_id, venue_ids=venue_ids)
    if not rows:
        raise NotFoundError("No venues found to export")

    client = client or NotionClient(notion_token)
    exported_ids: List[str] = []
    errors: List[str] = []

    for venue, personnel in rows:
        try:
            client.create_page(database_id, build_notion_fields(venue, personnel))
        except NotionAuthError as e:
            errors.append(f"{venue['name']}: {e}")
            if len(errors) == 1:
                raise NotionAuthError(
                    "Notion authentication failed. Check your integration token and make sure "
                    "the database is connected to the integration."
                ) from e
        except Exception as e:
            logger.warning(f"Notion export failed for {venue['name']}: {e}")
            errors.append(f"{venue['name']}: {e}")
        else:
            exported_ids.append(venue["id"])

        sleep(NOTION_REQUEST_DELAY)

    db.mark_venues_exported(exported_ids)
    logger.info(f"Exported {len(exported_ids)}/{len(rows)} venues to Notion")

    return {
        "exported": len(exported_ids),
        "total": len(rows),
        "errors": errors,
    }
