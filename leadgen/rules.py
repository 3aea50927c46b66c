"""
Campaign rule evaluation.

A rule is one venue type's filter configuration inside a campaign. Checks run
in a fixed order and the first failing check rejects the candidate. Missing
data (no rating, unreadable hours) never rejects.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .geo import is_within_boundary
from .normalize import Candidate

# Well-known chain brands, matched as substrings of the lowercased name
CHAIN_KEYWORDS = (
    "starbucks", "mcdonald", "burger king", "subway", "dunkin",
    "costa coffee", "pret a manger", "tim hortons", "kfc",
    "domino", "pizza hut", "taco bell", "wendy", "chick-fil-a",
    "panera", "chipotle", "five guys", "shake shack", "popeyes",
)

REJECT_CHAIN = "chain"
REJECT_KEYWORD = "keyword"
REJECT_RATING = "rating"
REJECT_OPENING_DAYS = "opening_days"
REJECT_BOUNDARY = "boundary"


@dataclass
class CampaignRule:
    """Filter configuration for one venue type."""

    venue_type: str
    min_rating: float = 0
    min_opening_days: int = 0
    exclude_chains: bool = False
    exclude_keywords: List[str] = field(default_factory=list)
    custom_notes: Optional[str] = None
    id: Optional[str] = None
    campaign_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict) -> "CampaignRule":
        return cls(
            id=row.get("id"),
            campaign_id=row.get("campaign_id"),
            venue_type=row.get("venue_type") or "",
            min_rating=row.get("min_rating") or 0,
            min_opening_days=row.get("min_opening_days") or 0,
            exclude_chains=bool(row.get("exclude_chains")),
            exclude_keywords=list(row.get("exclude_keywords") or []),
            custom_notes=row.get("custom_notes"),
        )


def rejection_reason(
    candidate: Candidate,
    rule: CampaignRule,
    boundary_geometry: Optional[Dict] = None,
) -> Optional[str]:
    """
    Return which check rejects the candidate, or None if it passes.

    Keyword matching is plain substring matching on name and address, so a
    street named after an excluded keyword also rejects.
    """
    name_lower = (candidate.name or "").lower()

    if rule.exclude_chains:
        if any(chain in name_lower for chain in CHAIN_KEYWORDS):
            return REJECT_CHAIN

    keywords = [kw.lower() for kw in rule.exclude_keywords if kw and kw.strip()]
    if keywords:
        address_lower = (candidate.address or "").lower()
        if any(kw in name_lower or kw in address_lower for kw in keywords):
            return REJECT_KEYWORD

    if rule.min_rating and rule.min_rating > 0:
        if candidate.rating is not None and candidate.rating < rule.min_rating:
            return REJECT_RATING

    if rule.min_opening_days and rule.min_opening_days > 0:
        days = candidate.opening_days
        if days is not None and days < rule.min_opening_days:
            return REJECT_OPENING_DAYS

    if boundary_geometry and candidate.latitude is not None and candidate.longitude is not None:
        if not is_within_boundary(candidate.latitude, candidate.longitude, boundary_geometry):
            return REJECT_BOUNDARY

    return None


def accept(
    candidate: Candidate,
    rule: CampaignRule,
    boundary_geometry: Optional[Dict] = None,
) -> bool:
    """True when the candidate passes every check of the rule."""
    return rejection_reason(candidate, rule, boundary_geometry) is None


def expand_rule_selection(venue_types: List[str], **constraints) -> List[CampaignRule]:
    """
    One rule per selected venue type, all sharing the same constraints.

    Blank and repeated venue types are skipped.
    """
    rules = []
    seen = set()
    for venue_type in venue_types:
        label = (venue_type or "").strip()
        if not label or label.lower() in seen:
            continue
        seen.add(label.lower())
        rules.append(CampaignRule(venue_type=label, **constraints))
    return rules
