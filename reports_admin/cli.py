"""
Admin CLI for the reports archiver.

Provides commands for inspecting archived executions and for running an
archive cycle by hand.
"""

import asyncio
import json
import sys

import click

from reports_archiver.archiver import ReportsArchiver
from reports_common.config import ArchiverConfig
from reports_persistence.sqlite_persistency import SQLiteMetadataPersistency


def get_config() -> ArchiverConfig:
    """Get the archiver configuration from the environment."""
    return ArchiverConfig.from_env()


def get_persistency() -> SQLiteMetadataPersistency:
    """Get the persistency instance."""
    return SQLiteMetadataPersistency(get_config().db_path)


def run_async(coro):
    """Helper to run async functions in CLI commands."""
    return asyncio.run(coro)


@click.group()
def cli():
    """Reports Admin - Inspect and run the reports archiver."""
    pass


@cli.group()
def executions():
    """Manage archived executions."""
    pass


@cli.group()
def archive():
    """Run and inspect archive cycles."""
    pass


# ============================================================================
# Execution Commands
# ============================================================================


@executions.command("list")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def executions_list(json_output: bool):
    """List all executions archived locally."""

    async def list_executions():
        store = get_persistency()
        await store.initialize()

        try:
            archived = await store.get_all()

            if json_output:
                click.echo(json.dumps([e.to_dict() for e in archived], indent=2))
                return

            if not archived:
                click.echo("No archived executions found.")
                return

            click.echo(f"\n{'ID':<8} {'Date':<12} {'Time':<10} {'Tests':<7} {'Description'}")
            click.echo("-" * 70)
            for e in archived:
                click.echo(
                    f"{e.id:<8} {e.date or '':<12} {e.time or '':<10} "
                    f"{e.num_of_tests:<7} {e.description or ''}"
                )
            click.echo()

        finally:
            await store.close()

    run_async(list_executions())


@executions.command("remove")
@click.argument("execution_id", type=int)
def executions_remove(execution_id: int):
    """Forget an archived execution so a later cycle can archive it again."""

    async def remove():
        store = get_persistency()
        await store.initialize()

        try:
            if not await store.remove(execution_id):
                click.echo(f"Error: Execution not found: {execution_id}", err=True)
                sys.exit(1)
            click.echo(f"✓ Execution removed: {execution_id}")

        finally:
            await store.close()

    run_async(remove())


# ============================================================================
# Archive Commands
# ============================================================================


@archive.command("run")
@click.option(
    "--force",
    is_flag=True,
    help="Run even if ARCHIVER_ENABLED is not set",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def archive_run(force: bool, json_output: bool):
    """Run one archive cycle and wait for it to finish."""
    config = get_config()
    if force:
        config = config.with_overrides(enabled=True)
    if not config.enabled:
        click.echo(
            "Error: Archiver is disabled (set ARCHIVER_ENABLED or use --force)",
            err=True,
        )
        sys.exit(1)

    async def run_once():
        store = SQLiteMetadataPersistency(config.db_path)
        await store.initialize()
        archiver = ReportsArchiver(config, store)

        try:
            record = await archiver.archive_once()
            health = archiver.health()
        finally:
            await archiver.stop()
            await store.close()

        if health["status"] != "UP":
            click.echo(f"Error: {health['details']['reports_archiver']}", err=True)
            sys.exit(1)

        if record is None:
            click.echo("Nothing to archive.")
            return

        if json_output:
            click.echo(json.dumps(record.to_dict(), indent=2))
            return

        click.echo("✓ Archive cycle completed")
        click.echo(f"  Remote executions: {record.remote_executions}")
        click.echo(f"  Attempted:         {list(record.archived_ids)}")
        click.echo(f"  Archived:          {list(record.succeeded_ids)}")

    run_async(run_once())


if __name__ == "__main__":
    cli()
