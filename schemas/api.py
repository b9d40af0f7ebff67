"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict
from datetime import datetime
from models.base import SyncStatus


# ============================================================================
# Sync Schemas
# ============================================================================

class SyncCounts(BaseModel):
    """Per-run outcome counts"""
    traites: int = 0
    crees: int = 0
    misAJour: int = 0
    erreurs: int = 0


class SyncJobInfo(BaseModel):
    """Sync job as stored in the audit trail"""
    id: int
    dataset_type: str
    status: SyncStatus
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    records_seen: int = 0
    records_created: int = 0
    records_updated: int = 0
    records_failed: int = 0
    error_message: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True


class SyncTriggerResponse(BaseModel):
    """Response of a single-dataset trigger"""
    message: str
    dataset: str
    status: SyncStatus
    resultat: SyncCounts
    job: Optional[SyncJobInfo] = None
    duration_seconds: float = 0.0
    error_message: Optional[str] = None

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "message": "Synchronisation deputes terminée",
                "dataset": "deputes",
                "status": "COMPLETED",
                "resultat": {"traites": 577, "crees": 3, "misAJour": 574, "erreurs": 0},
                "duration_seconds": 12.4
            }
        }


class DatasetReport(BaseModel):
    dataset: str
    status: SyncStatus
    job_id: Optional[int] = None
    duration_seconds: float = 0.0
    resultat: SyncCounts
    error_message: Optional[str] = None

    class Config:
        use_enum_values = True


class SyncReportResponse(BaseModel):
    """Response of the all-datasets trigger"""
    message: str
    success: bool
    duration_seconds: float
    datasets: List[DatasetReport]
    totals: Dict[str, int] = Field(default_factory=dict)


class SyncStatusResponse(BaseModel):
    """Store totals and latest job per dataset"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    totals: Dict[str, int]
    derniers_jobs: List[SyncJobInfo] = Field(default_factory=list)
    datasets: List[str] = Field(default_factory=list)


class SyncJobsResponse(BaseModel):
    jobs: List[SyncJobInfo]
    count: int


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """
    Health check response model.

    `status` is declared last so the validator sees the other fields.
    """
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    latest_jobs: List[SyncJobInfo] = Field(default_factory=list)
    total_datasets: int = 0
    failed_datasets: int = 0
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")

    @validator("status", pre=True, always=True)
    def determine_status(cls, v, values):
        """Determine overall health status"""
        if not values.get("database_connected", False):
            return "unhealthy"

        failed = values.get("failed_datasets", 0)
        total = values.get("total_datasets", 0)

        if total == 0 or failed == 0:
            return "healthy"
        elif failed < total:
            return "degraded"
        else:
            return "unhealthy"
