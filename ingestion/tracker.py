"""
Sync job lifecycle: RUNNING, then COMPLETED or FAILED exactly once.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InvalidJobTransition, SyncException
from ingestion.results import SyncCounters
from models.base import SyncStatus
from models.sync_job import SyncJob
import logging

logger = logging.getLogger(__name__)


class SyncJobTracker:
    """
    Track one run of one dataset in the sync_jobs table.

    Only the job id is kept between calls: the record loop rolls back
    failed writes on the same session, which expires loaded objects.
    """

    def __init__(self, db_session: AsyncSession, dataset_type: str):
        self.db = db_session
        self.dataset_type = dataset_type
        self.job_id: Optional[int] = None
        self.started_at: Optional[datetime] = None

    async def open(self) -> SyncJob:
        """Create a RUNNING job with zeroed counters, committed immediately"""
        job = SyncJob(
            dataset_type=self.dataset_type,
            status=SyncStatus.RUNNING,
            started_at=datetime.utcnow(),
            records_seen=0,
            records_created=0,
            records_updated=0,
            records_failed=0
        )
        self.db.add(job)
        await self.db.commit()
        await self.db.refresh(job)

        self.job_id = job.id
        self.started_at = job.started_at
        logger.info(f"Started sync job {job.id} for {self.dataset_type}")
        return job

    async def complete(self, counters: SyncCounters) -> SyncJob:
        """Close as COMPLETED, even when some records failed"""
        error_details = {"record_errors": counters.error_samples} if counters.error_samples else None
        return await self._close(SyncStatus.COMPLETED, counters, None, error_details)

    async def fail(self, counters: SyncCounters, error: Exception) -> SyncJob:
        """Close as FAILED with the fatal error's message"""
        if isinstance(error, SyncException):
            message = error.message
            details = error.to_dict()
        else:
            message = str(error) or type(error).__name__
            details = {"error_type": type(error).__name__, "message": message}
        if counters.error_samples:
            details["record_errors"] = counters.error_samples
        return await self._close(SyncStatus.FAILED, counters, message, details)

    async def _close(self, status, counters, error_message, error_details) -> SyncJob:
        if self.job_id is None:
            raise InvalidJobTransition(
                "Sync job was never opened",
                context={"dataset": self.dataset_type}
            )

        job = await self.db.get(SyncJob, self.job_id, populate_existing=True)
        if job.is_terminal:
            raise InvalidJobTransition(
                f"Sync job {job.id} is already {job.status.value}",
                context={"dataset": self.dataset_type, "job_id": job.id, "requested": status.value}
            )

        finished_at = datetime.utcnow()
        job.status = status
        job.finished_at = finished_at
        job.duration_seconds = (finished_at - job.started_at).total_seconds()
        job.records_seen = counters.seen
        job.records_created = counters.created
        job.records_updated = counters.updated
        job.records_failed = counters.failed
        job.error_message = error_message
        job.error_details = error_details
        await self.db.commit()

        logger.info(
            f"Sync job {job.id} for {self.dataset_type} {status.value}: "
            f"{counters.seen} seen, {counters.created} created, "
            f"{counters.updated} updated, {counters.failed} failed"
        )
        return job


async def latest_jobs(db_session: AsyncSession) -> List[SyncJob]:
    """Most recent job of each dataset type"""
    latest_ids = (
        select(func.max(SyncJob.id))
        .group_by(SyncJob.dataset_type)
    )
    result = await db_session.execute(
        select(SyncJob)
        .where(SyncJob.id.in_(latest_ids))
        .order_by(SyncJob.dataset_type)
    )
    return list(result.scalars().all())


async def recent_jobs(
    db_session: AsyncSession,
    limit: int = 20,
    dataset_type: Optional[str] = None
) -> List[SyncJob]:
    """Job history, newest first"""
    query = select(SyncJob).order_by(SyncJob.started_at.desc(), SyncJob.id.desc()).limit(limit)
    if dataset_type:
        query = query.where(SyncJob.dataset_type == dataset_type)
    result = await db_session.execute(query)
    return list(result.scalars().all())
