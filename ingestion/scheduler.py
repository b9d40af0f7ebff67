import logging
from typing import Iterable, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import settings
from core.database import Database
from ingestion.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Run the full synchronization on a fixed interval"""

    def __init__(
        self,
        database: Database,
        interval_minutes: Optional[int] = None,
        datasets: Optional[Iterable[str]] = None
    ):
        self.database = database
        self.interval_minutes = interval_minutes or settings.SYNC_INTERVAL_MINUTES
        self.datasets = list(datasets) if datasets else None
        self.scheduler = AsyncIOScheduler()

    async def run_sync_job(self):
        """Job to run the orchestrator"""
        logger.info("Scheduler: Starting sync job")
        try:
            report = await Orchestrator(self.database).run(self.datasets)
            if report.failed:
                logger.warning(
                    f"Scheduler: {len(report.failed)} dataset(s) failed: "
                    f"{', '.join(r.dataset for r in report.failed)}"
                )
        except Exception:
            # Keep the scheduler alive; the next tick retries
            logger.exception("Scheduler: sync job failed")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_sync_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="sync_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info(f"Sync scheduler started (every {self.interval_minutes} minutes)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Sync scheduler stopped")
