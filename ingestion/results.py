"""
Per-record results and run-level counters.

Mapping and upsert each end in a RecordResult; the runner folds every
result into SyncCounters, so the skip-and-count policy lives in one place.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import enum

from core.exceptions import SyncException, RecordError
from models.base import SyncStatus


class RecordOutcome(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass
class RecordResult:
    """Outcome of one source record"""
    outcome: RecordOutcome
    key: Optional[str] = None
    error: Optional[RecordError] = None
    position: Optional[int] = None

    @classmethod
    def failed(cls, error: RecordError, position: Optional[int] = None, key: Optional[str] = None) -> "RecordResult":
        return cls(outcome=RecordOutcome.FAILED, key=key, error=error, position=position)

    @property
    def ok(self) -> bool:
        return self.outcome != RecordOutcome.FAILED


@dataclass
class SyncCounters:
    """Aggregated outcome counts of one dataset run"""
    seen: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    error_samples: List[Dict[str, Any]] = field(default_factory=list)

    max_error_samples = 20

    def record(self, result: RecordResult):
        self.seen += 1
        if result.outcome == RecordOutcome.CREATED:
            self.created += 1
        elif result.outcome == RecordOutcome.UPDATED:
            self.updated += 1
        else:
            self.failed += 1
            if result.error is not None:
                self._sample({
                    "position": result.position,
                    "key": result.key,
                    "error_type": type(result.error).__name__,
                    "message": result.error.message,
                })

    def add_parse_failure(self, position: Optional[int], reason: str, entry: Optional[str] = None):
        """Rows or archive entries that never became records still count as seen"""
        self.seen += 1
        self.failed += 1
        self._sample({"position": position, "entry": entry, "error_type": "ParseFailure", "message": reason})

    def _sample(self, detail: Dict[str, Any]):
        if len(self.error_samples) < self.max_error_samples:
            self.error_samples.append(detail)

    @property
    def changed(self) -> bool:
        return (self.created + self.updated) > 0

    def to_summary(self) -> Dict[str, int]:
        """Summary in the shape returned by the trigger surface"""
        return {
            "traites": self.seen,
            "crees": self.created,
            "misAJour": self.updated,
            "erreurs": self.failed,
        }


@dataclass
class SyncResult:
    """Structured outcome of one dataset run, returned instead of raising"""
    dataset: str
    status: SyncStatus
    counters: SyncCounters = field(default_factory=SyncCounters)
    job_id: Optional[int] = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    duration_seconds: float = 0.0
    error_message: Optional[str] = None

    @classmethod
    def not_started(cls, dataset: str, error: Exception) -> "SyncResult":
        """A run refused or aborted before any job was opened"""
        if isinstance(error, SyncException):
            message = error.message
        else:
            message = str(error) or type(error).__name__
        return cls(dataset=dataset, status=SyncStatus.FAILED, error_message=message)

    @property
    def succeeded(self) -> bool:
        return self.status == SyncStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dataset": self.dataset,
            "status": self.status.value,
            "job_id": self.job_id,
            "started_at": self.started_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "resultat": self.counters.to_summary(),
            "error_message": self.error_message,
        }
