# whoson/cli.py
from contextlib import contextmanager
from datetime import timedelta

import click
from flask import current_app

from .models import init_db
from .shifts import count_clocked_in, count_total_assigned
from .sources import HttpShiftSource
from .sync import SyncPolicy


@contextmanager
def _policy():
    """Sync policy for the CLI; a configured WHOSON_API_URL takes precedence over the app's own source."""
    api_url = current_app.config.get("WHOSON_API_URL")
    if not api_url:
        yield current_app.extensions["whoson.sync_policy"]
        return
    with HttpShiftSource(
        api_url.rstrip("/") + "/api/shifts/list",
        timeout=current_app.config["SHIFT_FEED_TIMEOUT"],
    ) as source:
        yield SyncPolicy(
            current_app.extensions["whoson.store"], source,
            freshness_threshold=timedelta(seconds=current_app.config["SYNC_FRESHNESS_SECONDS"]),
        )


def register_cli(app):
    @app.cli.command("init-db")
    def init_db_command():
        """Create the local cache tables."""
        init_db(current_app.extensions["whoson.store"].engine)
        click.echo("Database initialized (SQLAlchemy)")

    @app.cli.command("sync-cache")
    @click.option("--workgroup", default=None, help="Only show this workgroup id.")
    @click.option("--force", is_flag=True, help="Bypass the cache and fetch now.")
    @click.option("--raw", is_flag=True, help="Print raw assignments instead of grouped shifts.")
    def sync_cache_command(workgroup, force, raw):
        """Sync the local cache and print who is on shift."""
        with _policy() as policy:
            result = policy.sync(workgroup, force_sync=force, grouped=not raw)

        for warning in result.warnings:
            click.secho(f"warning: {warning}", fg="yellow", err=True)

        if raw:
            for r in result.data:
                status = "in" if r.clocked_in else "out"
                click.echo(f"{r.id}  {r.name}  {r.local_start_date} - {r.local_end_date}  {r.covering_member or '-'} ({status})")
        else:
            for g in result.data:
                clocked = sum(1 for a in g.assignments if a.clocked_in)
                click.echo(f"{g.name} @ {g.location or '-'}  {g.local_start_date} - {g.local_end_date}  [{clocked}/{len(g.assignments)} in]")
                for a in g.assignments:
                    click.echo(f"    {'*' if a.clocked_in else ' '} {a.name}")
            click.echo(f"{count_clocked_in(result.data)} clocked in of {count_total_assigned(result.data)} assigned")

        label = "fresh" if result.is_fresh_data else "cached"
        synced = result.last_sync_timestamp.isoformat() if result.last_sync_timestamp else "never"
        click.echo(f"Data is {label} (last sync: {synced})")
