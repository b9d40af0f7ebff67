import asyncio
import logging

from core.database import Database
from core.logging import setup_logging
# Importing the package registers every table on Base.metadata
import models  # noqa: F401

logger = logging.getLogger(__name__)


async def init_database(database: Database = None):
    database = database or Database()
    logger.info("Connecting to database...")
    try:
        logger.info("Creating tables...")
        await database.create_all()
        logger.info("Tables created successfully.")
    finally:
        await database.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
