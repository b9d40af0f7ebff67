"""
Run the synchronization pipeline from the command line.

    python -m scripts.run_sync                 # deputes, senateurs, maires, lois
    python -m scripts.run_sync deputes_an      # one dataset
    python -m scripts.run_sync scrutins deputes_an
    python -m scripts.run_sync --list

Exits with status 1 when any dataset failed.
"""

import asyncio
import logging
from typing import List, Optional

import typer

from core.database import Database
from core.logging import setup_logging
from ingestion.datasets import DEFAULT_SEQUENCE, build_registry
from ingestion.orchestrator import Orchestrator, SyncReport

logger = logging.getLogger(__name__)

app = typer.Typer(help="Synchronize public datasets into the database.")


@app.command()
def main(
    datasets: Optional[List[str]] = typer.Argument(None, help="Datasets to synchronize (default: deputes, senateurs, maires, lois)"),
    list_datasets: bool = typer.Option(False, "--list", help="List configured datasets and exit"),
    create_tables: bool = typer.Option(False, "--create-tables", help="Create missing tables before running"),
) -> None:
    """Synchronize the given datasets, in order."""
    setup_logging()
    registry = build_registry()
    datasets = list(datasets) if datasets else None

    if list_datasets:
        for name, definition in registry.items():
            marker = "*" if name in DEFAULT_SEQUENCE else " "
            typer.echo(f"{marker} {name:<12} {definition.label}")
        typer.echo("(* = part of the default sequence)")
        raise typer.Exit()

    unknown = [name for name in datasets or [] if name not in registry]
    if unknown:
        typer.echo(f"Unknown dataset(s): {', '.join(unknown)}", err=True)
        raise typer.Exit(code=2)

    report = asyncio.run(_run(datasets, create_tables))

    for result in report.results:
        summary = result.counters.to_summary()
        typer.echo(
            f"{result.dataset:<12} {result.status.value:<10} "
            f"traites={summary['traites']} crees={summary['crees']} "
            f"misAJour={summary['misAJour']} erreurs={summary['erreurs']} "
            f"({result.duration_seconds:.1f}s)"
        )
        if result.error_message:
            typer.echo(f"  error: {result.error_message}")
    typer.echo(f"Totals: {report.totals}")

    raise typer.Exit(code=report.exit_code)


async def _run(datasets: Optional[List[str]], create_tables: bool) -> SyncReport:
    database = Database()
    try:
        if create_tables:
            await database.create_all()
        return await Orchestrator(database).run(datasets)
    finally:
        await database.dispose()


if __name__ == "__main__":
    app()
