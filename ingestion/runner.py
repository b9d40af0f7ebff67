# ============================================================================
# File: ingestion/runner.py
# Description: Runs one dataset through fetch, parse, map, upsert and recount
# ============================================================================
"""
Sync Runner - Synchronizes one dataset end to end.

This module provides:
- Per-dataset lock so the same dataset never runs twice at once in a process
- Sync job tracking (RUNNING, then COMPLETED or FAILED exactly once)
- Partial failure support (a bad record is counted, the loop continues)
- Fatal errors captured on the job and returned as a FAILED SyncResult
- Change signals for the resource types a successful run touched
"""

import asyncio
import time
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.exceptions import (
    FatalSyncError,
    InvalidJobTransition,
    RecordMappingFailure,
    UpsertFailure,
    SyncAlreadyRunningError,
)
from ingestion.datasets import DatasetDefinition, build_registry, get_dataset
from ingestion.fetcher import SourceFetcher
from ingestion.formats import ParseResult
from ingestion.mappers import RecordMapper, MappingContext
from ingestion.notifications import ChangeNotifier, default_notifier
from ingestion.recount import recount_group_members
from ingestion.results import RecordResult, SyncCounters, SyncResult
from ingestion.tracker import SyncJobTracker
from ingestion.upsert import UpsertEngine
from models.base import SyncStatus

logger = logging.getLogger(__name__)

# Per-record failures beyond this many are logged at DEBUG
MAX_LOGGED_RECORD_ERRORS = 10
PROGRESS_EVERY = 1000

_dataset_locks: Dict[str, asyncio.Lock] = {}


def dataset_lock(dataset: str) -> asyncio.Lock:
    if dataset not in _dataset_locks:
        _dataset_locks[dataset] = asyncio.Lock()
    return _dataset_locks[dataset]


class SyncRunner:
    """
    Dataset synchronizer

    Responsibilities:
    - Orchestrate fetch → parse → map → upsert → recount for one dataset
    - Keep every record's failure local to that record
    - Record accurate sync job metrics
    """

    def __init__(
        self,
        db_session: AsyncSession,
        registry: Optional[Dict[str, DatasetDefinition]] = None,
        fetcher_factory: Callable[[], SourceFetcher] = SourceFetcher,
        notifier: Optional[ChangeNotifier] = None
    ):
        self.db = db_session
        self.registry = registry if registry is not None else build_registry()
        self.fetcher_factory = fetcher_factory
        self.notifier = notifier or default_notifier

    async def run(self, dataset: str) -> SyncResult:
        """
        Synchronize one dataset.

        Returns:
            SyncResult with the job id, final status and counters. Fatal
            pipeline errors end up as status FAILED, never as an exception.

        Raises:
            UnknownDatasetError: If the dataset has no definition
            SyncAlreadyRunningError: If the dataset is already running in this process
        """
        definition = get_dataset(dataset, self.registry)
        lock = dataset_lock(definition.name)
        if lock.locked():
            raise SyncAlreadyRunningError(
                f"Dataset '{definition.name}' is already being synchronized",
                context={"dataset": definition.name}
            )

        async with lock:
            return await self._run(definition)

    async def _run(self, definition: DatasetDefinition) -> SyncResult:
        counters = SyncCounters()
        tracker = SyncJobTracker(self.db, definition.name)
        started = time.monotonic()

        try:
            await tracker.open()
        except SQLAlchemyError as e:
            logger.error(f"Could not open sync job for {definition.name}: {e}")
            await self._rollback_quietly()
            return SyncResult(
                dataset=definition.name,
                status=SyncStatus.FAILED,
                counters=counters,
                duration_seconds=time.monotonic() - started,
                error_message=f"Could not open sync job: {type(e).__name__}"
            )

        result = SyncResult(
            dataset=definition.name,
            status=SyncStatus.RUNNING,
            counters=counters,
            job_id=tracker.job_id,
            started_at=tracker.started_at
        )
        logger.info(f"Starting sync of {definition.name} from {definition.url}")

        try:
            async with self.fetcher_factory() as fetcher:
                # --------------------------------------------------
                # PHASE 1: FETCH + PARSE
                # --------------------------------------------------
                parsed = await self._fetch_and_parse(definition, fetcher)
                for failure in parsed.failures:
                    counters.add_parse_failure(failure.position, failure.reason, failure.entry)

                # --------------------------------------------------
                # PHASE 2: MAP + UPSERT, ONE RECORD AT A TIME
                # --------------------------------------------------
                mapper = definition.mapper_factory(fetcher)
                context = MappingContext(self.db, definition.name)
                records = await mapper.prepare(parsed.records, context)
                upsert = UpsertEngine(self.db)

                for position, record in enumerate(records):
                    record_result = await self._process_record(definition, mapper, context, upsert, record, position)
                    counters.record(record_result)
                    if not record_result.ok:
                        self._log_record_failure(definition.name, counters, record_result)
                    if counters.seen % PROGRESS_EVERY == 0:
                        logger.info(f"{definition.name}: {counters.seen} records processed...")

            # --------------------------------------------------
            # PHASE 3: RECOUNT GROUP MEMBERS
            # --------------------------------------------------
            if definition.chambre is not None:
                await recount_group_members(self.db, definition.model, definition.chambre)

            # --------------------------------------------------
            # PHASE 4: FINALIZE
            # --------------------------------------------------
            await tracker.complete(counters)
            result.status = SyncStatus.COMPLETED

        except FatalSyncError as e:
            logger.error(
                f"Sync of {definition.name} failed: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            await self._close_failed(tracker, counters, e)
            result.status = SyncStatus.FAILED
            result.error_message = e.message

        except Exception as e:
            logger.exception(f"Unexpected error while synchronizing {definition.name}")
            await self._close_failed(tracker, counters, e)
            result.status = SyncStatus.FAILED
            result.error_message = str(e) or type(e).__name__

        result.duration_seconds = time.monotonic() - started

        if result.succeeded and counters.changed:
            for resource in definition.resources:
                self.notifier.resource_changed(resource)

        return result

    async def _close_failed(self, tracker: SyncJobTracker, counters: SyncCounters, error: Exception):
        """Record the fatal error on the job; a store that refuses even that is only logged"""
        await self._rollback_quietly()
        try:
            await tracker.fail(counters, error)
        except (SQLAlchemyError, InvalidJobTransition) as e:
            logger.error(f"Could not mark sync job {tracker.job_id} as FAILED: {e}")
            await self._rollback_quietly()

    async def _rollback_quietly(self):
        try:
            await self.db.rollback()
        except SQLAlchemyError as e:
            logger.error(f"Rollback failed: {e}")

    async def _fetch_and_parse(self, definition: DatasetDefinition, fetcher: SourceFetcher) -> ParseResult:
        source_format = definition.source_format
        if source_format.payload == "archive":
            async with fetcher.open_archive(definition.url) as archive:
                return source_format.parse(archive)

        payload = await fetcher.fetch_bytes(definition.url)
        return source_format.parse(payload)

    async def _process_record(
        self,
        definition: DatasetDefinition,
        mapper: RecordMapper,
        context: MappingContext,
        upsert: UpsertEngine,
        record: Dict[str, Any],
        position: int
    ) -> RecordResult:
        """Map and write one record; every failure becomes a FAILED result"""
        try:
            entity = await mapper.map(record, context)
        except RecordMappingFailure as e:
            e.context.setdefault("position", position)
            return RecordResult.failed(e, position)
        except ValidationError as e:
            return RecordResult.failed(
                RecordMappingFailure(
                    f"Invalid record: {e.error_count()} validation error(s)",
                    context={"dataset": definition.name, "position": position, "errors": e.errors()},
                    original_exception=e
                ),
                position
            )
        except SQLAlchemyError as e:
            # Group lookup-or-create rejected by the store
            await self.db.rollback()
            return RecordResult.failed(
                UpsertFailure(
                    "Could not resolve political group",
                    context={"dataset": definition.name, "position": position},
                    original_exception=e
                ),
                position
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            return RecordResult.failed(
                RecordMappingFailure(
                    f"Malformed record: {e}",
                    context={"dataset": definition.name, "position": position},
                    original_exception=e
                ),
                position
            )

        key = entity.key_value()
        try:
            outcome = await upsert.upsert(definition.model, entity)
        except UpsertFailure as e:
            return RecordResult.failed(e, position, key=key)

        return RecordResult(outcome=outcome, key=key, position=position)

    @staticmethod
    def _log_record_failure(dataset: str, counters: SyncCounters, record_result: RecordResult):
        error = record_result.error
        message = f"{dataset}: record {record_result.position} skipped: {error.message}"
        if counters.failed <= MAX_LOGGED_RECORD_ERRORS:
            logger.error(message, extra={"error_context": error.to_dict()})
        else:
            logger.debug(message, extra={"error_context": error.to_dict()})
