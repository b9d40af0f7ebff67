"""
Custom exceptions for the synchronization pipeline with structured error context.

Every exception carries a context dictionary for debugging and for the
error summary stored on the sync job.

Exception Hierarchy:
    SyncException (base)
    ├── FatalSyncError              aborts the current dataset run
    │   ├── FetchError
    │   ├── ParseError
    │   ├── AggregateRecountFailure
    │   ├── UnknownDatasetError
    │   └── SyncAlreadyRunningError
    ├── RecordError                 recovered inside the per-record loop
    │   ├── RecordMappingFailure
    │   └── UpsertFailure
    └── InvalidJobTransition
"""

from typing import Optional, Dict, Any
from datetime import datetime


class SyncException(Exception):
    """
    Base exception for all synchronization errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (dataset, url, key, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Fatal Errors
# ============================================================================

class FatalSyncError(SyncException):
    """Base exception for errors that abort a whole dataset run."""
    pass


class FetchError(FatalSyncError):
    """
    Exception raised when a source cannot be retrieved.

    Context should include:
        - url: The endpoint that failed
        - status_code: HTTP status code (None for transport errors)
        - attempts: Number of attempts made
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        status_code: Optional[int] = None,
        retryable: bool = False
    ):
        super().__init__(message, context, original_exception)
        self.status_code = status_code
        self.retryable = retryable
        if status_code is not None:
            self.context["status_code"] = status_code


class ParseError(FatalSyncError):
    """
    Exception raised when a payload's overall shape is unrecognized.

    Context should include:
        - format: Source format name (json, csv, archive)
        - expected_field: Field that was expected (if applicable)
    """
    pass


class AggregateRecountFailure(FatalSyncError):
    """
    Exception raised when member counts cannot be recomputed.

    Entity rows are already correct when this happens; the group
    counters are stale until the next successful run.
    """
    pass


class UnknownDatasetError(FatalSyncError):
    """Exception raised for a dataset identifier without a configured endpoint."""
    pass


class SyncAlreadyRunningError(FatalSyncError):
    """Exception raised when a run of the same dataset is already in progress."""
    pass


# ============================================================================
# Per-record Errors
# ============================================================================

class RecordError(SyncException):
    """Base exception for failures confined to a single source record."""
    pass


class RecordMappingFailure(RecordError):
    """
    Exception raised when a source record cannot be normalized.

    Context should include:
        - dataset: Dataset being synchronized
        - field_name: Field that was missing or invalid
        - position: Index of the record in the source
    """
    pass


class UpsertFailure(RecordError):
    """
    Exception raised when the store rejects a record write.

    Context should include:
        - table_name: Target table
        - natural_key: Natural key of the record
    """
    pass


# ============================================================================
# Job Tracking Errors
# ============================================================================

class InvalidJobTransition(SyncException):
    """Exception raised when a terminal sync job is modified again."""
    pass
