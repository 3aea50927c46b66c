"""
Neighborhood venue search.

For each campaign rule, pages through the places provider around the
neighborhood, applies the rule, drops venues the campaign already has and
stores the rest one by one. Rules run sequentially so provider rate limits
hold and every result stays attributable to its rule.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from . import db
from .dedup import Deduper
from .errors import DuplicateVenueError, InvalidBoundaryError, NotFoundError, ValidationError
from .geo import DEFAULT_POINT_RADIUS_M, bounding_box_center, bounding_box_radius, capped_radius
from .normalize import Candidate, to_venue_record
from .rules import CampaignRule, rejection_reason

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
MAX_RESULTS_PER_RULE = 300


@dataclass
class SearchSummary:
    total_found: int = 0
    filtered: int = 0
    duplicates_skipped: int = 0
    new_venues: List[Dict] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "totalFound": self.total_found,
            "filtered": self.filtered,
            "duplicatesSkipped": self.duplicates_skipped,
            "newVenues": len(self.new_venues),
            "venues": self.new_venues,
        }


def resolve_search_area(boundary: Optional[Dict]) -> Tuple[float, float, int]:
    """
    Search circle (lat, lng, radius_m) for a neighborhood boundary.

    Bounding box preferred (radius capped); otherwise center point with a
    fixed radius.

    Raises:
        InvalidBoundaryError: neither a bounding box nor a point is stored
    """
    if not boundary:
        raise InvalidBoundaryError("Neighborhood has no valid boundary data")

    bbox = boundary.get("boundingbox")
    if bbox and len(bbox) >= 4:
        center = bounding_box_center(bbox)
        return center["lat"], center["lng"], capped_radius(bounding_box_radius(bbox))

    lat = boundary.get("lat")
    lng = boundary.get("lng", boundary.get("lon"))
    if lat is not None and lng is not None:
        return float(lat), float(lng), DEFAULT_POINT_RADIUS_M

    raise InvalidBoundaryError("Neighborhood has no valid boundary data")


def fetch_rule_candidates(
    fetcher,
    lat: float,
    lng: float,
    radius_m: int,
    categories: List[str],
    page_size: int = PAGE_SIZE,
    max_results: int = MAX_RESULTS_PER_RULE,
) -> List[Candidate]:
    """Page through the provider until it runs out or max_results is reached."""
    candidates: List[Candidate] = []
    cursor = None
    while True:
        page = fetcher.search(lat, lng, radius_m, categories, limit=page_size, cursor=cursor)
        candidates.extend(page.results)
        if not page.next_cursor or len(candidates) >= max_results:
            break
        cursor = page.next_cursor
    return candidates


def run_neighborhood_search(
    campaign_id: str,
    neighborhood_id: str,
    fetcher,
    rule_id: Optional[str] = None,
    filter_to_boundary: bool = True,
) -> SearchSummary:
    """
    Search one neighborhood for every rule of a campaign (or a single rule).

    Args:
        fetcher: places provider with categories_for() and search()
        rule_id: restrict the run to this rule
        filter_to_boundary: drop venues outside the neighborhood polygon,
            when the neighborhood has one

    Returns:
        SearchSummary with counts and the inserted venue rows

    Raises:
        ValidationError, NotFoundError, InvalidBoundaryError before any
        side effect; anything raised mid-run after the neighborhood is
        reset to pending.
    """
    if not campaign_id or not neighborhood_id:
        raise ValidationError("Missing campaignId or neighborhoodId")

    rules = [CampaignRule.from_row(r) for r in db.list_campaign_rules(campaign_id, rule_id)]
    if not rules:
        raise NotFoundError("No campaign rules found")

    neighborhood = db.get_neighborhood(neighborhood_id)
    if not neighborhood or neighborhood["campaign_id"] != campaign_id:
        raise NotFoundError("Neighborhood not found")

    boundary = neighborhood.get("boundary_polygon") or {}
    lat, lng, radius = resolve_search_area(boundary)
    geometry = boundary.get("geojson") if filter_to_boundary else None

    logger.info(
        f"Searching '{neighborhood['name']}' at ({lat:.5f}, {lng:.5f}) r={radius}m "
        f"for {len(rules)} rule(s)"
    )
    db.update_neighborhood_status(neighborhood_id, "searching")

    summary = SearchSummary()
    try:
        deduper = Deduper(db.get_venue_external_ids(campaign_id))

        for rule in rules:
            categories = fetcher.categories_for([rule.venue_type])
            logger.info(f"Rule {rule.venue_type}: categories {categories}")

            candidates = fetch_rule_candidates(fetcher, lat, lng, radius, categories)
            summary.total_found += len(candidates)

            accepted = []
            for candidate in candidates:
                reason = rejection_reason(candidate, rule, geometry)
                if reason:
                    logger.debug(f"REJECTED ({reason}): {candidate.name}")
                    continue
                accepted.append(candidate)
            summary.filtered += len(accepted)

            fresh, duplicates = deduper.filter_new(accepted)
            summary.duplicates_skipped += duplicates

            inserted = 0
            for candidate in fresh:
                try:
                    venue = db.insert_venue(to_venue_record(candidate, campaign_id, neighborhood_id))
                except DuplicateVenueError:
                    summary.duplicates_skipped += 1
                    deduper.mark_seen(candidate.external_id)
                    continue
                summary.new_venues.append(venue)
                deduper.mark_seen(candidate.external_id)
                inserted += 1

            logger.info(
                f"Rule {rule.venue_type}: found {len(candidates)}, passed {len(accepted)}, "
                f"duplicates {duplicates}, new {inserted}"
            )
            if rule.id:
                db.upsert_neighborhood_search(campaign_id, neighborhood_id, rule.id, inserted)

        db.update_neighborhood_status(
            neighborhood_id,
            "completed",
            new_venues=len(summary.new_venues),
            stamp_searched=True,
        )
    except Exception:
        logger.exception(f"Search failed for neighborhood {neighborhood_id}; resetting to pending")
        db.update_neighborhood_status(neighborhood_id, "pending")
        raise

    return summary
