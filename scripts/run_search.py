#!/usr/bin/env python3
"""
Search campaign neighborhoods for venues.

Runs every rule of the campaign against one neighborhood, or against every
pending neighborhood when --neighborhood-id is omitted.

Usage:
    python scripts/run_search.py --campaign-id <uuid>
    python scripts/run_search.py --campaign-id <uuid> --neighborhood-id <uuid>
    python scripts/run_search.py --campaign-id <uuid> --provider foursquare

Environment Variables:
    PLACES_PROVIDER: geoapify (default) or foursquare
    GEOAPIFY_API_KEY / FOURSQUARE_API_KEY: key for the chosen provider
    LEADGEN_DB_PATH: SQLite file (default data/leadgen.db)
"""

import os
import sys
import argparse
import logging

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from leadgen.db import init_db, list_neighborhoods
from leadgen.errors import LeadGenError
from leadgen.fetch import get_fetcher
from leadgen.search import run_neighborhood_search

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def main():
    load_dotenv()
    parser = argparse.ArgumentParser(description="Search campaign neighborhoods for venues")
    parser.add_argument("--campaign-id", required=True, help="Campaign to search for")
    parser.add_argument("--neighborhood-id", help="Single neighborhood (default: all pending)")
    parser.add_argument("--rule-id", help="Run only this campaign rule")
    parser.add_argument("--provider", choices=["geoapify", "foursquare"], help="Places provider (default: PLACES_PROVIDER env)")
    parser.add_argument("--no-boundary-filter", action="store_true", help="Keep venues outside the neighborhood polygon")
    args = parser.parse_args()

    init_db()
    try:
        fetcher = get_fetcher(args.provider)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.neighborhood_id:
        targets = [args.neighborhood_id]
    else:
        targets = [nb["id"] for nb in list_neighborhoods(args.campaign_id) if nb["status"] == "pending"]
    if not targets:
        print("No pending neighborhoods to search.")
        return

    total_new = 0
    for neighborhood_id in targets:
        try:
            summary = run_neighborhood_search(
                args.campaign_id,
                neighborhood_id,
                fetcher,
                rule_id=args.rule_id,
                filter_to_boundary=not args.no_boundary_filter,
            )
        except LeadGenError as e:
            logger.error(f"Neighborhood {neighborhood_id[:8]} failed: {e}")
            continue
        total_new += len(summary.new_venues)
        print(
            f"{neighborhood_id[:8]}: found {summary.total_found}, passed {summary.filtered}, "
            f"duplicates {summary.duplicates_skipped}, new {len(summary.new_venues)}"
        )

    stats = fetcher.get_stats()
    print(f"\nDone. {total_new} new venues; {stats.get('total_requests', 0)} provider requests.")


if __name__ == "__main__":
    main()
