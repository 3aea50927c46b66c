"""
Venue Lead Generation Engine - Core Package

This package finds venues in campaign neighborhoods, filters them against
campaign rules, researches decision-makers with an AI fallback chain, and
exports the leads to CSV or Notion.

Architecture:
    errors: Domain exception hierarchy (mapped to HTTP statuses by the backend)
    geo: Bounding-box center/radius, point-in-polygon, area estimates
    hours: Opening-hours parsing into days open per week
    categories: Venue type -> places-provider category tables
    normalize: Provider payloads -> Candidate, Candidate -> venue row
    rules: CampaignRule and the rejection checks (chain, keyword, rating, days, boundary)
    dedup: Per-campaign external id deduplication
    fetch: Geoapify / Foursquare clients with pagination and retry
    search: Neighborhood search pipeline (fetch, filter, dedup, persist)
    research: Personnel research over Gemini models with a Groq fallback
    notion: Notion API client
    export: CSV generation and Notion batch export
    geocode: Nominatim area search and Overpass sub-area discovery
    importer: Manual venue import from pasted text
    db: SQLite persistence (campaigns, rules, neighborhoods, venues, personnel)
"""

from .errors import (
    LeadGenError,
    ValidationError,
    NotFoundError,
    InvalidBoundaryError,
    DuplicateVenueError,
    ProviderError,
    AIProviderError,
    QuotaExceededError,
    ModelUnavailableError,
    AllProvidersExhaustedError,
    NotionAuthError,
)
from .geo import bounding_box_center, bounding_box_radius, capped_radius, is_within_boundary
from .hours import count_open_days
from .normalize import Candidate, normalize_places, to_venue_record
from .rules import CampaignRule, rejection_reason, accept, expand_rule_selection
from .dedup import Deduper
from .fetch import PlacesFetcher, GeoapifyFetcher, FoursquareFetcher, get_fetcher
from .search import SearchSummary, run_neighborhood_search
from .research import (
    ModelExhaustionRegistry,
    PersonnelResearchChain,
    build_default_chain,
    research_venue,
    research_venues,
)
from .export import generate_csv, export_campaign_csv, export_venues_to_notion
from .geocode import search_area, get_sub_areas, fetch_bulk_boundaries
from .importer import parse_venue_text, import_venues

__all__ = [
    # Errors
    "LeadGenError",
    "ValidationError",
    "NotFoundError",
    "InvalidBoundaryError",
    "DuplicateVenueError",
    "ProviderError",
    "AIProviderError",
    "QuotaExceededError",
    "ModelUnavailableError",
    "AllProvidersExhaustedError",
    "NotionAuthError",
    # Geo / hours
    "bounding_box_center",
    "bounding_box_radius",
    "capped_radius",
    "is_within_boundary",
    "count_open_days",
    # Candidates and rules
    "Candidate",
    "normalize_places",
    "to_venue_record",
    "CampaignRule",
    "rejection_reason",
    "accept",
    "expand_rule_selection",
    "Deduper",
    # Search
    "PlacesFetcher",
    "GeoapifyFetcher",
    "FoursquareFetcher",
    "get_fetcher",
    "SearchSummary",
    "run_neighborhood_search",
    # Research
    "ModelExhaustionRegistry",
    "PersonnelResearchChain",
    "build_default_chain",
    "research_venue",
    "research_venues",
    # Export / areas / import
    "generate_csv",
    "export_campaign_csv",
    "export_venues_to_notion",
    "search_area",
    "get_sub_areas",
    "fetch_bulk_boundaries",
    "parse_venue_text",
    "import_venues",
]

__version__ = "1.0.0"
