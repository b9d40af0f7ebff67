"""
Health check endpoint with database and sync status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, SyncJobInfo
from ingestion.tracker import latest_jobs
from models.base import SyncStatus
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Latest sync job of every dataset
    """

    # Check database connectivity
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection failed: {str(e)}")

    jobs = []
    failed = 0

    if db_connected:
        try:
            for job in await latest_jobs(db):
                if job.status == SyncStatus.FAILED:
                    failed += 1
                jobs.append(SyncJobInfo.from_orm(job))
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch sync jobs: {str(e)}")

    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        latest_jobs=jobs,
        total_datasets=len(jobs),
        failed_datasets=failed
    )
