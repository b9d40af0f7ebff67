"""
Core utilities and configuration for the synchronization pipeline.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Explicit database handle (engine and session factory)
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import Database
    from core.exceptions import FetchError, ParseError
    from core.logging import setup_logging

Example:
    setup_logging()

    db = Database()
    async with db.session() as session:
        # Perform database operations
        pass
    await db.dispose()
"""

__all__ = [
    "config",
    "database",
    "exceptions",
    "logging",
]
