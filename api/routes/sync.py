"""
Sync trigger and status endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from api.dependencies import get_db, get_database, verify_sync_key
from core.database import Database
from core.exceptions import UnknownDatasetError, SyncAlreadyRunningError
from ingestion.datasets import build_registry
from ingestion.orchestrator import Orchestrator, collect_store_totals
from ingestion.runner import SyncRunner
from ingestion.tracker import latest_jobs, recent_jobs
from models.sync_job import SyncJob
from schemas.api import (
    SyncTriggerResponse,
    SyncReportResponse,
    SyncStatusResponse,
    SyncJobsResponse,
    SyncJobInfo,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sync", tags=["Sync"])


def _pipeline_options(request: Request) -> dict:
    """Registry and fetcher factory configured on the application"""
    state = request.app.state
    return {
        "registry": getattr(state, "registry", None) or build_registry(),
        "fetcher_factory": state.fetcher_factory,
        "notifier": getattr(state, "notifier", None),
    }


@router.post("/tout", response_model=SyncReportResponse, dependencies=[Depends(verify_sync_key)])
async def sync_all(request: Request, database: Database = Depends(get_database)):
    """Run every default dataset in sequence; failures do not stop the sequence"""
    request_id = getattr(request.state, "request_id", "-")
    logger.info(f"[{request_id}] POST /api/v1/sync/tout")

    report = await Orchestrator(database, **_pipeline_options(request)).run()
    data = report.to_dict()

    return SyncReportResponse(
        message="Synchronisation complète terminée" if data["success"] else "Synchronisation terminée avec des erreurs",
        success=data["success"],
        duration_seconds=data["duration_seconds"],
        datasets=data["datasets"],
        totals=data["totals"],
    )


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(request: Request, db: AsyncSession = Depends(get_db)):
    """Store totals and the latest job of each dataset"""
    jobs = await latest_jobs(db)
    return SyncStatusResponse(
        totals=await collect_store_totals(db),
        derniers_jobs=[SyncJobInfo.from_orm(job) for job in jobs],
        datasets=sorted(_pipeline_options(request)["registry"]),
    )


@router.get("/jobs", response_model=SyncJobsResponse)
async def sync_jobs(
    limit: int = Query(20, ge=1, le=200, description="Number of jobs to return"),
    dataset: str = Query(None, description="Filter by dataset"),
    db: AsyncSession = Depends(get_db)
):
    """Sync job history, newest first"""
    jobs = await recent_jobs(db, limit=limit, dataset_type=dataset)
    return SyncJobsResponse(jobs=[SyncJobInfo.from_orm(job) for job in jobs], count=len(jobs))


@router.post("/{dataset}", response_model=SyncTriggerResponse, dependencies=[Depends(verify_sync_key)])
async def sync_dataset(dataset: str, request: Request, db: AsyncSession = Depends(get_db)):
    """
    Synchronize one dataset.

    A run that fails outright still answers 200 with status FAILED and
    the error message; the job history keeps the details.
    """
    request_id = getattr(request.state, "request_id", "-")
    logger.info(f"[{request_id}] POST /api/v1/sync/{dataset}")

    runner = SyncRunner(db, **_pipeline_options(request))
    try:
        result = await runner.run(dataset)
    except UnknownDatasetError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except SyncAlreadyRunningError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    job = await db.get(SyncJob, result.job_id) if result.job_id else None
    verb = "terminée" if result.succeeded else "échouée"

    return SyncTriggerResponse(
        message=f"Synchronisation {dataset} {verb}",
        dataset=dataset,
        status=result.status,
        resultat=result.counters.to_summary(),
        job=SyncJobInfo.from_orm(job) if job else None,
        duration_seconds=round(result.duration_seconds, 3),
        error_message=result.error_message,
    )
