"""
Manual venue import from pasted text.

Input is alternating name/address lines (blank lines ignored). Imported
venues get synthetic "manual_" external ids and skip by name, since they
have no provider id to dedup on.
"""

import time
import uuid
import logging
from typing import Dict, List, Optional

from . import db
from .errors import DuplicateVenueError, NotFoundError, ValidationError
from .normalize import generate_maps_url

logger = logging.getLogger(__name__)

MANUAL_ID_PREFIX = "manual_"


def parse_venue_text(text: str) -> List[Dict[str, str]]:
    """Pair non-blank lines as (name, address); a trailing name gets an empty address."""
    lines = [line.strip() for line in (text or "").splitlines()]
    lines = [line for line in lines if line]

    venues = []
    for i in range(0, len(lines), 2):
        name = lines[i]
        address = lines[i + 1] if i + 1 < len(lines) else ""
        venues.append({"name": name, "address": address})
    return venues


def _manual_id() -> str:
    return f"{MANUAL_ID_PREFIX}{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def _resolve_neighborhood(campaign_id: str, neighborhood_id: Optional[str], source_name: Optional[str]) -> Optional[str]:
    """Find or create a completed neighborhood named after the import source."""
    if not source_name:
        return neighborhood_id
    existing = db.find_neighborhood_by_name(campaign_id, source_name)
    if existing:
        return existing["id"]
    created = db.create_neighborhood(campaign_id, source_name, display_name=source_name, status="completed")
    logger.info(f"Created import neighborhood '{source_name}' for campaign {campaign_id[:8]}")
    return created["id"]


def import_venues(
    campaign_id: str,
    text: str,
    neighborhood_id: Optional[str] = None,
    source_name: Optional[str] = None,
) -> Dict:
    """
    Import pasted venues into a campaign.

    Returns:
        {"total", "imported", "duplicatesSkipped", "venues"}
    """
    if not campaign_id or not text:
        raise ValidationError("Missing campaignId or text")
    if not db.get_campaign(campaign_id):
        raise NotFoundError("Campaign not found")

    parsed = parse_venue_text(text)
    if not parsed:
        raise ValidationError("No venues found in pasted text")

    target_neighborhood = _resolve_neighborhood(campaign_id, neighborhood_id, source_name)

    existing_names = {name.lower() for name in db.get_venue_names(campaign_id)}
    fresh = [v for v in parsed if v["name"].lower() not in existing_names]

    inserted = []
    for venue in fresh:
        try:
            row = db.insert_venue({
                "campaign_id": campaign_id,
                "neighborhood_id": target_neighborhood,
                "fsq_id": _manual_id(),
                "name": venue["name"],
                "address": venue["address"],
                "google_maps_url": generate_maps_url(venue["name"], venue["address"]),
                "status": "new",
            })
        except DuplicateVenueError as e:
            logger.warning(f"Skipping {venue['name']}: {e}")
            continue
        inserted.append(row)

    logger.info(f"Imported {len(inserted)}/{len(parsed)} venues into campaign {campaign_id[:8]}")
    return {
        "total": len(parsed),
        "imported": len(inserted),
        "duplicatesSkipped": len(parsed) - len(fresh),
        "venues": inserted,
    }
