from sqlalchemy import Column, Integer, String, Enum, DateTime, Float, Text, JSON, Index
from datetime import datetime
from models.base import Base, SyncStatus


class SyncJob(Base):
    """
    Audit record of one pipeline run against one dataset.

    Purpose:
    - Append-only history of all sync runs
    - Outcome counts for the operational dashboard
    - Error summary when a run fails outright

    Lifecycle:
    - Created RUNNING with all counters at zero when a run starts
    - Closed exactly once as COMPLETED or FAILED, then never modified
    """
    __tablename__ = "sync_jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    dataset_type = Column(String(50), nullable=False, index=True)
    status = Column(Enum(SyncStatus), default=SyncStatus.RUNNING, nullable=False, index=True)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    finished_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    records_seen = Column(Integer, nullable=False, default=0)
    records_created = Column(Integer, nullable=False, default=0)
    records_updated = Column(Integer, nullable=False, default=0)
    records_failed = Column(Integer, nullable=False, default=0)

    # Error tracking
    error_message = Column(Text, nullable=True)
    error_details = Column(JSON, nullable=True)

    __table_args__ = (
        Index("idx_sync_job_dataset_started", "dataset_type", "started_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status != SyncStatus.RUNNING
