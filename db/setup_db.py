#!/usr/bin/env python
"""
Database setup script for QuickForm
This script creates the tables defined in db/schema.py
"""

import asyncio
import logging
import sys

from sqlalchemy.ext.asyncio import AsyncEngine

from db.database import Base, engine
import db.schema  # noqa: F401  registers tables on Base.metadata

logger = logging.getLogger("backend.db")


async def create_tables(target: AsyncEngine = engine) -> None:
    """Create all tables that don't exist yet"""
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(target: AsyncEngine = engine) -> None:
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    try:
        asyncio.run(create_tables())
    except Exception:
        logger.exception("Error setting up tables")
        return 1
    logger.info("Database setup completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
