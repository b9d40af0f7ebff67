"""
Run several datasets in sequence and summarize the outcome.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import Database
from core.exceptions import FatalSyncError
from ingestion.datasets import DEFAULT_SEQUENCE, DatasetDefinition, build_registry
from ingestion.fetcher import SourceFetcher
from ingestion.notifications import ChangeNotifier
from ingestion.results import SyncResult
from ingestion.runner import SyncRunner
from models.base import SyncStatus
from models.elus import Depute, Senateur, Maire
from models.groupe_politique import GroupePolitique
from models.loi import Loi
from models.scrutin import Scrutin
import logging

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Outcome of a multi-dataset run"""
    results: List[SyncResult] = field(default_factory=list)
    totals: Dict[str, int] = field(default_factory=dict)
    started_at: datetime = field(default_factory=datetime.utcnow)
    duration_seconds: float = 0.0

    @property
    def failed(self) -> List[SyncResult]:
        return [r for r in self.results if r.status == SyncStatus.FAILED]

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "success": not self.failed,
            "datasets": [r.to_dict() for r in self.results],
            "totals": self.totals,
        }


async def collect_store_totals(db_session: AsyncSession) -> Dict[str, int]:
    """Row counts shown after a run and by the status endpoint"""

    async def count(query) -> int:
        return (await db_session.execute(query)).scalar_one()

    return {
        "deputes": await count(select(func.count(Depute.id)).where(Depute.mandat_en_cours.is_(True))),
        "senateurs": await count(select(func.count(Senateur.id)).where(Senateur.mandat_en_cours.is_(True))),
        "maires": await count(select(func.count(Maire.id))),
        "groupes": await count(select(func.count(GroupePolitique.id)).where(GroupePolitique.actif.is_(True))),
        "lois": await count(select(func.count(Loi.id))),
        "scrutins": await count(select(func.count(Scrutin.id))),
    }


class Orchestrator:
    """
    Sequence dataset runs.

    Each dataset gets its own session so a broken run cannot leave the
    next one with a poisoned transaction. A failed dataset never stops
    the sequence.
    """

    def __init__(
        self,
        database: Database,
        registry: Optional[Dict[str, DatasetDefinition]] = None,
        fetcher_factory: Callable[[], SourceFetcher] = SourceFetcher,
        notifier: Optional[ChangeNotifier] = None
    ):
        self.database = database
        self.registry = registry if registry is not None else build_registry()
        self.fetcher_factory = fetcher_factory
        self.notifier = notifier

    async def run(self, datasets: Optional[Iterable[str]] = None) -> SyncReport:
        names = list(datasets) if datasets else list(DEFAULT_SEQUENCE)
        report = SyncReport()
        started = time.monotonic()
        logger.info(f"Starting synchronization of {', '.join(names)}")

        for name in names:
            try:
                result = await self._run_dataset(name)
            except FatalSyncError as e:
                logger.error(f"Sync of {name} not started: {e.message}")
                result = SyncResult.not_started(name, e)
            except Exception as e:
                logger.exception(f"Sync of {name} aborted")
                result = SyncResult.not_started(name, e)
            report.results.append(result)

        try:
            async with self.database.session() as session:
                report.totals = await collect_store_totals(session)
        except SQLAlchemyError as e:
            logger.error(f"Could not collect store totals: {e}")
        report.duration_seconds = time.monotonic() - started

        for result in report.results:
            summary = result.counters.to_summary()
            logger.info(
                f"  {result.dataset}: {result.status.value} in {result.duration_seconds:.1f}s "
                f"({summary['traites']} seen, {summary['crees']} created, "
                f"{summary['misAJour']} updated, {summary['erreurs']} failed)"
            )
        logger.info(f"Synchronization finished in {report.duration_seconds:.1f}s, totals: {report.totals}")
        return report

    async def _run_dataset(self, name: str) -> SyncResult:
        async with self.database.session() as session:
            runner = SyncRunner(
                session,
                registry=self.registry,
                fetcher_factory=self.fetcher_factory,
                notifier=self.notifier
            )
            return await runner.run(name)
