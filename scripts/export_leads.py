#!/usr/bin/env python3
"""
Export campaign leads to CSV or Notion.

Usage:
    python scripts/export_leads.py --campaign-id <uuid>
    python scripts/export_leads.py --campaign-id <uuid> --neighborhood-id <uuid> -o leads.csv
    python scripts/export_leads.py --campaign-id <uuid> --notion

Notion credentials come from --notion-token / --notion-database-id or the
campaign's saved settings.
"""

import os
import sys
import argparse
import logging
from datetime import datetime

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from leadgen.db import get_campaign, init_db
from leadgen.errors import LeadGenError
from leadgen.export import export_campaign_csv, export_venues_to_notion

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
)


def main():
    load_dotenv()
    parser = argparse.ArgumentParser(description="Export campaign leads")
    parser.add_argument("--campaign-id", required=True, help="Campaign to export")
    parser.add_argument("--neighborhood-id", help="CSV only: restrict to one neighborhood")
    parser.add_argument("--output", "-o", help="CSV path (default: output/leads_<timestamp>.csv)")
    parser.add_argument("--notion", action="store_true", help="Push to Notion instead of writing CSV")
    parser.add_argument("--notion-token", help="Notion integration token")
    parser.add_argument("--notion-database-id", help="Notion database id")
    args = parser.parse_args()

    init_db()
    campaign = get_campaign(args.campaign_id)
    if not campaign:
        print(f"Campaign {args.campaign_id} not found.")
        sys.exit(1)

    try:
        if args.notion:
            result = export_venues_to_notion(
                args.campaign_id,
                args.notion_token or campaign.get("notion_token"),
                args.notion_database_id or campaign.get("notion_database_id"),
            )
            print(f"Exported {result['exported']}/{result['total']} venues to Notion")
            for error in result["errors"]:
                print(f"  - {error}")
            return

        csv_text = export_campaign_csv(args.campaign_id, args.neighborhood_id)
    except LeadGenError as e:
        print(f"Error: {e}")
        sys.exit(1)

    path = args.output
    if not path:
        os.makedirs("output", exist_ok=True)
        path = f"output/leads_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    with open(path, "w", encoding="utf-8") as f:
        f.write(csv_text)
    print(f"Wrote {csv_text.count(chr(10))} rows to {path}")


if __name__ == "__main__":
    main()
