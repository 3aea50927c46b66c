#!/usr/bin/env python3
"""
Research decision-makers for stored venues.

Tries the Gemini models in order and falls back to Groq once they are all
exhausted. Venues with no findable phone number are skipped without a
research call.

Usage:
    python scripts/research_venues.py --campaign-id <uuid>
    python scripts/research_venues.py --campaign-id <uuid> --limit 10
    python scripts/research_venues.py --venue-id <uuid> --venue-id <uuid>

Environment Variables:
    GEMINI_API_KEY: primary provider
    GROQ_API_KEY: fallback provider (GROQ_MODEL, GROQ_BASE_URL optional)
"""

import os
import sys
import argparse
import logging

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from leadgen.db import get_venues_by_campaign, init_db
from leadgen.research import build_default_chain, research_venues

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def main():
    load_dotenv()
    parser = argparse.ArgumentParser(description="Research venue personnel with the AI fallback chain")
    parser.add_argument("--campaign-id", help="Research the campaign's venues still in status 'new'")
    parser.add_argument("--venue-id", action="append", default=[], help="Venue to research (repeatable)")
    parser.add_argument("--limit", type=int, default=None, help="Max venues to research")
    args = parser.parse_args()

    if not args.campaign_id and not args.venue_id:
        parser.error("Provide --campaign-id or at least one --venue-id")

    init_db()
    venue_ids = list(args.venue_id)
    if args.campaign_id:
        venue_ids += [v["id"] for v in get_venues_by_campaign(args.campaign_id) if v["status"] == "new"]
    if args.limit:
        venue_ids = venue_ids[:args.limit]
    if not venue_ids:
        print("No venues to research.")
        return

    print(f"Researching {len(venue_ids)} venue(s)...")
    result = research_venues(venue_ids, build_default_chain())

    print(f"\nResearched: {result['researched']}")
    print(f"Skipped (no phone): {result['skipped']}")
    if result["errors"]:
        print(f"Errors ({len(result['errors'])}):")
        for error in result["errors"]:
            print(f"  - {error}")


if __name__ == "__main__":
    main()
