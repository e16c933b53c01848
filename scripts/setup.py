#!/usr/bin/env python3
"""Setup script for the cabin booking API."""

import asyncio
import logging
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from cabinops.core.database import async_session_factory, close_db
from cabinops.models import BookingPolicy, Cabin

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def setup_database() -> None:
    """Bring the database schema up to date."""
    logger.info("Setting up database...")

    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def report_reference_data() -> None:
    """Warn about missing reference data the booking engine reads."""
    try:
        async with async_session_factory() as db:
            cabins = (await db.execute(select(func.count()).select_from(Cabin))).scalar_one()
            policies = (await db.execute(select(func.count()).select_from(BookingPolicy))).scalar_one()
    finally:
        await close_db()

    logger.info(f"Found {cabins} cabins and {policies} booking policies")
    if not cabins:
        logger.warning("No cabins yet; bookings cannot be created until the catalogue is loaded")
    if not policies:
        logger.warning("No booking policy yet; bookings are only bounded by cabin capacity")


def main() -> None:
    """Main setup function."""
    logger.info("Starting cabin booking API setup...")

    setup_database()
    asyncio.run(report_reference_data())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn cabinops.main:app --reload")


if __name__ == "__main__":
    main()
