import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from ingestion.orchestrator import SyncReport
from ingestion.results import SyncResult
from ingestion.scheduler import SyncScheduler
from models.base import SyncStatus


@pytest.mark.asyncio
async def test_scheduler_initialization():
    scheduler = SyncScheduler(MagicMock(), interval_minutes=30)
    assert scheduler.scheduler is not None
    assert scheduler.interval_minutes == 30
    assert scheduler.datasets is None


@pytest.mark.asyncio
async def test_scheduler_job_execution():
    database = MagicMock()
    with patch("ingestion.scheduler.Orchestrator") as mock_orchestrator_cls:
        mock_orchestrator = MagicMock()
        mock_orchestrator.run = AsyncMock(return_value=SyncReport(results=[
            SyncResult(dataset="deputes", status=SyncStatus.COMPLETED),
            SyncResult(dataset="maires", status=SyncStatus.FAILED, error_message="HTTP 503"),
        ]))
        mock_orchestrator_cls.return_value = mock_orchestrator

        scheduler = SyncScheduler(database, datasets=["deputes", "maires"])
        await scheduler.run_sync_job()

        mock_orchestrator_cls.assert_called_once_with(database)
        mock_orchestrator.run.assert_awaited_once_with(["deputes", "maires"])


@pytest.mark.asyncio
async def test_scheduler_job_survives_errors():
    with patch("ingestion.scheduler.Orchestrator") as mock_orchestrator_cls:
        mock_orchestrator_cls.return_value.run = AsyncMock(side_effect=RuntimeError("database unreachable"))

        scheduler = SyncScheduler(MagicMock())
        # Must not raise
        await scheduler.run_sync_job()


@pytest.mark.asyncio
async def test_scheduler_start_and_stop():
    scheduler = SyncScheduler(MagicMock(), interval_minutes=60)

    scheduler.start()
    try:
        job = scheduler.scheduler.get_job("sync_job")
        assert job is not None
        assert job.max_instances == 1
    finally:
        scheduler.stop()

    # AsyncIOScheduler finishes shutting down on the next loop iteration
    await asyncio.sleep(0)
    assert scheduler.scheduler.running is False
