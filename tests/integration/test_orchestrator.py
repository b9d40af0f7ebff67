"""
Integration tests: multi-dataset runs
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from ingestion.notifications import ChangeNotifier
from ingestion.orchestrator import Orchestrator, collect_store_totals
from ingestion.tracker import SyncJobTracker
from models.base import SyncStatus
from models.sync_job import SyncJob


@pytest.fixture
def orchestrator(database, registry, fetcher_factory):
    return Orchestrator(database, registry=registry, fetcher_factory=fetcher_factory, notifier=ChangeNotifier())


@pytest.mark.asyncio
async def test_default_sequence_all_succeed(orchestrator, all_sources):
    report = await orchestrator.run()

    assert [r.dataset for r in report.results] == ["deputes", "senateurs", "maires", "lois"]
    assert all(r.status == SyncStatus.COMPLETED for r in report.results)
    assert report.exit_code == 0
    assert report.totals == {
        "deputes": 1, "senateurs": 2, "maires": 3, "groupes": 3, "lois": 2, "scrutins": 0
    }
    assert all_sources.count("deputes_an") == 0


@pytest.mark.asyncio
async def test_failed_dataset_does_not_stop_the_sequence(orchestrator, database, sources, deputes_payload, lois_payload):
    sources.add("deputes", deputes_payload)
    sources.add("senateurs", b"unavailable", status=500)
    sources.add("maires", b"", status=404)
    sources.add("lois", lois_payload)

    report = await orchestrator.run()

    statuses = {r.dataset: r.status for r in report.results}
    assert statuses == {
        "deputes": SyncStatus.COMPLETED,
        "senateurs": SyncStatus.FAILED,
        "maires": SyncStatus.FAILED,
        "lois": SyncStatus.COMPLETED,
    }
    assert [r.dataset for r in report.failed] == ["senateurs", "maires"]
    assert report.exit_code == 1
    assert report.totals["lois"] == 2
    assert report.totals["senateurs"] == 0

    data = report.to_dict()
    assert data["success"] is False
    assert data["datasets"][1]["status"] == "FAILED"
    assert data["datasets"][1]["error_message"]

    async with database.session() as session:
        jobs = (await session.execute(select(SyncJob).order_by(SyncJob.id))).scalars().all()
    assert [(j.dataset_type, j.status) for j in jobs] == [
        ("deputes", SyncStatus.COMPLETED),
        ("senateurs", SyncStatus.FAILED),
        ("maires", SyncStatus.FAILED),
        ("lois", SyncStatus.COMPLETED),
    ]


@pytest.mark.asyncio
async def test_unknown_dataset_is_reported_not_raised(orchestrator, all_sources):
    report = await orchestrator.run(["inconnu", "lois"])

    assert report.results[0].dataset == "inconnu"
    assert report.results[0].status == SyncStatus.FAILED
    assert report.results[0].job_id is None
    assert report.results[1].status == SyncStatus.COMPLETED
    assert report.exit_code == 1


@pytest.mark.asyncio
async def test_explicit_dataset_list(orchestrator, all_sources):
    report = await orchestrator.run(["deputes_an"])

    assert [r.dataset for r in report.results] == ["deputes_an"]
    assert report.results[0].counters.created == 2
    assert report.totals["deputes"] == 2


@pytest.mark.asyncio
async def test_store_totals_on_empty_store(db_session):
    assert await collect_store_totals(db_session) == {
        "deputes": 0, "senateurs": 0, "maires": 0, "groupes": 0, "lois": 0, "scrutins": 0
    }


def connection_reset() -> OperationalError:
    return OperationalError("INSERT INTO sync_jobs", {}, Exception("connection reset"))


@pytest.mark.asyncio
async def test_job_that_cannot_be_opened_fails_only_its_dataset(orchestrator, database, all_sources):
    open_job = SyncJobTracker.open

    async def open_or_reset(tracker):
        if tracker.dataset_type == "deputes":
            raise connection_reset()
        return await open_job(tracker)

    with patch.object(SyncJobTracker, "open", open_or_reset):
        report = await orchestrator.run()

    statuses = {r.dataset: r.status for r in report.results}
    assert statuses == {
        "deputes": SyncStatus.FAILED,
        "senateurs": SyncStatus.COMPLETED,
        "maires": SyncStatus.COMPLETED,
        "lois": SyncStatus.COMPLETED,
    }
    assert report.results[0].job_id is None
    assert "Could not open sync job" in report.results[0].error_message
    assert report.exit_code == 1
    assert report.totals["deputes"] == 0
    assert report.totals["lois"] == 2
    assert all_sources.count("deputes") == 0

    async with database.session() as session:
        jobs = (await session.execute(select(SyncJob))).scalars().all()
    assert sorted(j.dataset_type for j in jobs) == ["lois", "maires", "senateurs"]


@pytest.mark.asyncio
async def test_job_that_cannot_be_closed_still_reports_failure(orchestrator, sources, lois_payload):
    sources.add("maires", b"", status=404)
    sources.add("lois", lois_payload)

    with patch.object(SyncJobTracker, "fail", AsyncMock(side_effect=connection_reset())):
        report = await orchestrator.run(["maires", "lois"])

    assert [r.status for r in report.results] == [SyncStatus.FAILED, SyncStatus.COMPLETED]
    assert "404" in report.results[0].error_message
    assert report.exit_code == 1


@pytest.mark.asyncio
async def test_unexpected_error_at_dataset_boundary_does_not_stop_the_sequence(orchestrator, all_sources):
    run_dataset = Orchestrator._run_dataset

    async def run_or_crash(self, name):
        if name == "senateurs":
            raise RuntimeError("session factory exhausted")
        return await run_dataset(self, name)

    with patch.object(Orchestrator, "_run_dataset", run_or_crash):
        report = await orchestrator.run()

    assert [r.status for r in report.results] == [
        SyncStatus.COMPLETED, SyncStatus.FAILED, SyncStatus.COMPLETED, SyncStatus.COMPLETED
    ]
    assert report.results[1].error_message == "session factory exhausted"
    assert report.to_dict()["success"] is False
