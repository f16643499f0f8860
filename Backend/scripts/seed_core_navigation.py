#!/usr/bin/env python3
"""
Seed Core Navigation Script

Creates the admin navigation tables if needed and inserts the core
navigation items (dashboard, products, orders, ...). Existing registry rows
are never overwritten, so the script is safe to run repeatedly.

Usage:
    cd Backend
    python scripts/seed_core_navigation.py

    # Also print the tree a store would see afterwards:
    python scripts/seed_core_navigation.py --show-store <store_id>

Requirements:
    - Database connection (DATABASE_URL env var)
"""

import argparse
import asyncio
import json
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from admin_nav.core.config import get_settings
from admin_nav.core.db import AsyncSessionLocal, Base, engine
from admin_nav.navigation.service import create_navigation_service

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def seed(show_store: str | None) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    service = create_navigation_service(get_settings(), AsyncSessionLocal)
    inserted = await service.seed_core_navigation()
    logger.info(f"Inserted {inserted} core navigation item(s)")

    if show_store:
        tree = await service.build_navigation_for_tenant(show_store)
        print(json.dumps([node.model_dump() for node in tree], indent=2))

    await engine.dispose()


def main():
    parser = argparse.ArgumentParser(
        description="Seed the core admin navigation items"
    )
    parser.add_argument(
        "--show-store",
        metavar="STORE_ID",
        default=None,
        help="Print the navigation tree for this store after seeding"
    )

    args = parser.parse_args()
    asyncio.run(seed(args.show_store))


if __name__ == "__main__":
    main()
