"""
Command line interface for usage-stats.

Inspect and drive the stats store kept under ~/.usage-stats:

    usage-stats status
    usage-stats preview
    usage-stats opt-out
    usage-stats report --account https://api.github.com --repository demo
"""

import asyncio
import json
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from usage_stats import config
from usage_stats.activity import UiActivityMonitor
from usage_stats.client import StatsClient
from usage_stats.models import Account, LaunchStats, Repository
from usage_stats.storage import JsonFileKeyValueStore, SqliteStatsDatabase
from usage_stats.store import StatsStore
from usage_stats.version import __version__


def build_store() -> StatsStore:
    """Create a StatsStore backed by the files in config.BASE_DIR."""
    return StatsStore(
        kv=JsonFileKeyValueStore(config.KV_STORE_PATH),
        db=SqliteStatsDatabase(config.STATS_DB_PATH),
        transport=StatsClient(),
        activity_monitor=UiActivityMonitor(),
        execution_mode=config.get_execution_mode(),
    )


def _format_ms(value: int) -> str:
    if not value:
        return "never"
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M:%S")


debug_option = click.option("--debug", is_flag=True, help="Enable debug logging")


@click.group()
@click.version_option(__version__, prog_name="usage-stats")
def cli():
    """Usage stats aggregation and reporting."""


@cli.command()
@debug_option
def status(debug):
    """Show opt-out state and reporting schedule."""
    config.setup_logging(debug)
    store = build_store()
    scheduler = store.scheduler

    table = Table(title="Usage Stats", show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Opted out", "yes" if store.get_opt_out() else "no")
    table.add_row("Opt status acknowledged", "yes" if store.opt_status.ping_sent else "no")
    table.add_row("Execution mode", scheduler.execution_mode.value)
    table.add_row("Last report", _format_ms(scheduler.get_last_report_time()))
    table.add_row("Next report due", _format_ms(scheduler.next_report_due()))
    table.add_row("Endpoint", config.STATS_ENDPOINT)
    table.add_row("Data directory", str(config.BASE_DIR))
    table.add_row("What is collected", config.SAMPLES_URL)

    Console().print(table)


@cli.command()
@debug_option
def preview(debug):
    """Print the report that would be sent now."""
    config.setup_logging(debug)
    store = build_store()
    report = asyncio.run(store.get_daily_stats([], []))
    click.echo(json.dumps(report, indent=2, sort_keys=True))


@cli.command("opt-out")
@debug_option
def opt_out(debug):
    """Stop reporting usage stats."""
    config.setup_logging(debug)
    asyncio.run(_set_opt_out(True))
    click.echo("Usage stats disabled.")


@cli.command("opt-in")
@debug_option
def opt_in(debug):
    """Resume reporting usage stats."""
    config.setup_logging(debug)
    asyncio.run(_set_opt_out(False))
    click.echo("Usage stats enabled.")


async def _set_opt_out(value: bool) -> None:
    store = build_store()
    await store.start()
    await store.set_opt_out(value)


@cli.command("record-launch")
@click.argument("main_ready", type=click.FloatRange(min=0))
@click.argument("load", type=click.FloatRange(min=0))
@click.argument("renderer_ready", type=click.FloatRange(min=0))
@debug_option
def record_launch(main_ready, load, renderer_ready, debug):
    """Record one launch sample (milliseconds)."""
    config.setup_logging(debug)
    store = build_store()
    asyncio.run(store.record_launch_stats(LaunchStats(main_ready, load, renderer_ready)))
    click.echo("Launch recorded.")


@cli.command()
@click.option("--account", "accounts", multiple=True, metavar="ENDPOINT",
              help="API endpoint of a signed-in account (repeatable)")
@click.option("--repository", "repositories", multiple=True, metavar="NAME",
              help="Local repository (repeatable)")
@click.option("--github-repository", "github_repositories", multiple=True, metavar="OWNER/NAME",
              help="Repository hosted on GitHub (repeatable)")
@click.option("--force", is_flag=True, help="Ignore the 24 hour interval")
@debug_option
def report(accounts, repositories, github_repositories, force, debug):
    """Send the daily usage report if it is due."""
    config.setup_logging(debug)

    account_list = [Account(login="", endpoint=endpoint) for endpoint in accounts]
    repository_list = [Repository(name=name) for name in repositories]
    repository_list += [
        Repository(name=name.split("/")[-1], github_repository=name)
        for name in github_repositories
    ]

    async def _report() -> bool:
        store = build_store()
        await store.start()
        return await store.report_stats(account_list, repository_list, force=force)

    if asyncio.run(_report()):
        click.echo("Stats reported.")
    else:
        click.echo("No report sent.", err=True)


def main():
    cli()


if __name__ == "__main__":
    main()
