"""
Synchronization pipeline for French public datasets.

Modules:
    datasets: Dataset definitions (source URL, format, mapper, target table)
    fetcher: HTTP retrieval with retries and archive extraction
    upsert: Idempotent create-or-replace by natural key
    tracker: Sync job lifecycle and history queries
    recount: Political group member counts
    runner: One dataset end to end (fetch → parse → map → upsert → recount)
    orchestrator: Several datasets in sequence with a combined report
    scheduler: APScheduler integration for periodic runs
    notifications: Change signals for downstream caches

Subpackages:
    formats: Payload parsers (JSON lists, delimited text, archives)
    mappers: Source record → normalized entity

Architecture:
    Each dataset run follows the same phases:

    1. Fetch - Retrieve the payload with retry logic
    2. Parse - Turn it into raw records; unreadable rows are counted, not fatal
    3. Map + Upsert - One record at a time, each committed on its own
    4. Recount - Recompute group member counts for chamber datasets

    Fatal errors (unreachable source, unrecognized payload) end the run as
    FAILED; per-record errors are counted and the loop continues.

Usage:
    from core.database import Database
    from ingestion.orchestrator import Orchestrator

    database = Database()
    report = await Orchestrator(database).run(["deputes", "senateurs"])
    print(report.to_dict())
"""

__all__ = [
    "datasets",
    "fetcher",
    "upsert",
    "tracker",
    "recount",
    "runner",
    "orchestrator",
    "scheduler",
    "notifications",
]
