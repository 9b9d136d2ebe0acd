#!/usr/bin/env python3
"""
Database initialisation script for the SQL statistics cache.

Creates the campaign_stats_cache table (and its indexes) used when
MAILSTATS_CACHE__BACKEND=sql.

Usage:
    python scripts/init_db.py [--drop-existing]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mailstats.common.config import get_settings
from mailstats.common.database import close_db, create_tables, drop_tables, init_db
from mailstats.common.logger import get_logger

logger = get_logger(__name__)


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Initialize the MailStats statistics cache database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating",
    )

    args = parser.parse_args()

    settings = get_settings()
    logger.info(
        "Initializing database",
        host=settings.database.host,
        port=settings.database.port,
        name=settings.database.name,
    )

    await init_db()
    try:
        if args.drop_existing:
            logger.warning("Dropping existing tables...")
            await drop_tables()
        await create_tables()
    finally:
        await close_db()

    logger.info("Database initialization complete!")


if __name__ == "__main__":
    asyncio.run(main())
