"""
Command-line interface for headline-anchor.

Provides commands to run the pipeline, initialize the database, seed
sources and run one-off reconciliation passes.

Usage:
    headline-anchor run            # Pollers + sweeper (+ query API)
    headline-anchor init-db        # Create tables and indexes
    headline-anchor seed-sources   # Upsert sources from JSON
    headline-anchor sweep          # One reconciliation pass
    headline-anchor stats          # Aggregate counts
"""

import asyncio
import signal
from pathlib import Path

import click

from headline_anchor.config.settings import get_settings
from headline_anchor.observability.logging import setup_logging
from headline_anchor.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Headline Anchor - tamper-evident tracking of news feed headlines."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command()
@click.option("--mock-ledger", is_flag=True, help="Use the in-memory mock ledger")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
@click.option("--api/--no-api", default=True, help="Serve the query API in-process")
def run(mock_ledger: bool, metrics: bool, api: bool) -> None:
    """Run feed polling and reconciliation until interrupted."""
    from headline_anchor.services.pipeline_service import PipelineService

    settings = get_settings()

    async def run_pipeline():
        service = PipelineService(use_mock_ledger=mock_ledger)

        if metrics:
            get_metrics().start_server()

        server = None
        if api:
            import uvicorn

            from headline_anchor.api.app import create_app
            from headline_anchor.api.dependencies import set_pipeline

            set_pipeline(service)
            server = uvicorn.Server(
                uvicorn.Config(
                    create_app(),
                    host=settings.api_host,
                    port=settings.api_port,
                    log_level="info",
                )
            )
            # Signals are handled below
            server.install_signal_handlers = lambda: None

        async def shutdown():
            if server is not None:
                server.should_exit = True
            await service.stop()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(shutdown()))

        if server is not None:
            click.echo(f"Query API on http://{settings.api_host}:{settings.api_port}")
            await asyncio.gather(service.start(), server.serve())
        else:
            await service.start()

    asyncio.run(run_pipeline())


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from headline_anchor.sources.repository import SourcesRepository
    from headline_anchor.storage.database import Database
    from headline_anchor.tracking.repository import TrackingRepository

    async def run_init():
        db = Database()
        await db.connect()
        try:
            await SourcesRepository(db).create_table()
            await TrackingRepository(db).create_tables()
        finally:
            await db.close()

        click.echo("Database initialized successfully")

    asyncio.run(run_init())


@main.command("seed-sources")
@click.argument(
    "path",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def seed_sources(path: Path | None) -> None:
    """Upsert sources from a JSON file (bundled defaults if PATH is omitted)."""
    from headline_anchor.sources.service import SourcesService
    from headline_anchor.storage.database import Database

    async def run_seed():
        db = Database()
        await db.connect()
        try:
            service = SourcesService(db)
            await service.repository.create_table()
            count = await service.seed_from_json(path)
        finally:
            await db.close()

        click.echo(f"Seeded {count} sources")

    asyncio.run(run_seed())


@main.command()
@click.option("--mock-ledger", is_flag=True, help="Use the in-memory mock ledger")
def sweep(mock_ledger: bool) -> None:
    """Run one reconciliation pass and print the result."""
    from headline_anchor.anchoring.config import AnchoringConfig
    from headline_anchor.anchoring.gate import AnchoringGate
    from headline_anchor.anchoring.sweeper import ReconciliationSweeper
    from headline_anchor.services.pipeline_service import create_ledger_client
    from headline_anchor.storage.database import Database
    from headline_anchor.tracking.repository import TrackingRepository

    async def run_sweep():
        config = AnchoringConfig()
        ledger = create_ledger_client(config, use_mock=mock_ledger)
        db = Database()
        await db.connect()
        try:
            repo = TrackingRepository(db)
            gate = AnchoringGate(ledger)
            result = await ReconciliationSweeper(repo, gate, config).run_once()
        finally:
            await ledger.close()
            await db.close()
        return result

    result = asyncio.run(run_sweep())

    click.echo("\nReconciliation Result:")
    click.echo("-" * 40)
    click.echo(f"  Pending items:      {result.pending_items}")
    click.echo(f"  Pending changes:    {result.pending_changes}")
    click.echo(f"  Items anchored:     {result.retried_items}")
    click.echo(f"  Changes anchored:   {result.retried_changes}")
    click.echo(f"  Changes backfilled: {result.backfilled_changes}")
    click.echo(f"  Failed:             {result.failed}")
    click.echo("-" * 40)

    if result.capacity_exhausted:
        click.echo(
            click.style(
                f"Ledger capacity exhausted, {result.still_waiting} records waiting",
                fg="yellow",
            )
        )
    else:
        click.echo(click.style(f"Retried {result.retried}/{result.pending}", fg="green"))


@main.command()
def stats() -> None:
    """Print aggregate counts."""
    from headline_anchor.storage.database import Database
    from headline_anchor.tracking.repository import TrackingRepository

    async def run_stats():
        db = Database()
        await db.connect()
        try:
            return await TrackingRepository(db).get_stats()
        finally:
            await db.close()

    result = asyncio.run(run_stats())
    click.echo(f"Tracked items: {result.tracked}")
    click.echo(f"Changes:       {result.changes}")
    click.echo(f"Anchored:      {result.anchored}")
    click.echo(f"Sources:       {result.sources}")


if __name__ == "__main__":
    main()
