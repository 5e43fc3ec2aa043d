#!/usr/bin/env python3
"""
Local Sync Script
Runs one Airtable -> Supabase subscriber mirror pass from a shell.
"""

import asyncio
import os
import sys
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from helpdesk.services.registry import build_services
from helpdesk.sync import sync_subscribers


def main():
    print("=" * 60)
    print("LOCAL SUBSCRIBER SYNC")
    print("=" * 60)

    services = build_services()
    if services.mirror is None:
        print("ERROR: Airtable and Supabase must both be configured")
        sys.exit(1)

    print(f"\nAirtable base: {services.airtable.config.base_id}")
    print(f"Airtable table: {services.airtable.config.subscribers_table}")

    result = asyncio.run(sync_subscribers(services.mirror))

    if not result["success"]:
        print(f"ERROR: {result.get('error')}")
        sys.exit(1)

    print(f"\nStats: {result['stats']}")
    print("\n" + "=" * 60)
    print("SYNC COMPLETE!")
    print("=" * 60)


if __name__ == "__main__":
    main()
