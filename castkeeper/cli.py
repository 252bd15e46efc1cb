"""CLI commands for castkeeper."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from .config import DEFAULT_DB_PATH, Settings
from .controllers import (
    DEFAULT_FLAGS,
    FeedAlreadyExistsError,
    FeedNotFoundError,
    add_feed,
    get_seen_items,
    remove_feed,
    set_feed_flags,
)
from .db import Database
from .models import FeedFlags, SyncResult
from .syncer import sync_all_feeds, sync_url


@click.group()
@click.version_option(package_name="castkeeper")
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_DB_PATH,
    envvar="CASTKEEPER_DB",
    show_default=True,
    help="SQLite database holding feeds and seen items",
)
@click.option(
    "--download-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    envvar="CASTKEEPER_DIR",
    show_default=True,
    help="Directory that receives one subdirectory per feed",
)
@click.option(
    "--timeout",
    type=int,
    default=30,
    envvar="CASTKEEPER_TIMEOUT",
    show_default=True,
    help="Per-request timeout in seconds",
)
@click.option("-v", "--verbose", count=True, help="Log progress (-vv for debug output)")
@click.pass_context
def cli(ctx: click.Context, db_path: Path, download_dir: Path, timeout: int, verbose: int):
    """castkeeper - Archive podcast feeds and their enclosures."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    ctx.obj = {
        "db_path": db_path,
        "settings": Settings(download_dir=download_dir, timeout=timeout),
    }


@cli.command()
@click.argument("urls", nargs=-1)
@click.pass_obj
def sync(obj: dict, urls: tuple[str, ...]):
    """Synchronize feeds and download new items.

    Without URLS, every enabled feed in the database is synchronized.
    With URLS, each feed is fetched for inspection only: its items are
    listed and nothing is downloaded or recorded.
    """
    settings = obj["settings"]

    if urls:
        for url in urls:
            result = sync_url(url, settings)
            _print_sync_result(result)
            for item in result.candidates:
                click.echo(f"    {item.title}:guid={item.guid}:url={item.url}")
        return

    db = Database(obj["db_path"])
    try:
        if not db.list_enabled_feeds():
            click.echo("No enabled feeds. Use 'castkeeper add' to add one.")
            return

        results = sync_all_feeds(db, settings)
        total_saved = 0
        for result in results:
            _print_sync_result(result)
            total_saved += result.items_saved

        click.echo()
        if total_saved > 0:
            click.echo(click.style(f"Saved {total_saved} new item(s) total!", fg="green", bold=True))
        else:
            click.echo(click.style("No new items.", fg="yellow"))
    finally:
        db.close()


def _print_sync_result(result: SyncResult):
    """Print a single sync result."""
    click.echo(click.style(f"  {result.title or result.url}", fg="white", bold=True))

    if result.moved_to:
        click.echo(click.style(f"    Moved to {result.moved_to}", fg="yellow"))

    if result.status == "error":
        click.echo(click.style(f"    Error: {result.error}", fg="red"))
    elif result.status == "gone":
        click.echo(click.style("    Feed is gone; disabled", fg="red"))
    elif result.status == "not_modified":
        click.echo("    Not modified")
    else:
        status_color = "green" if result.items_saved > 0 else "white"
        click.echo(
            f"    Found: {result.items_found} | "
            + click.style(f"Saved: {result.items_saved}", fg=status_color)
        )


@cli.command()
@click.argument("url")
@click.option(
    "--flags",
    type=int,
    default=DEFAULT_FLAGS,
    show_default=True,
    help="Behaviour bits: 1 fetch, 2 catalog, 4 unique names, 8 catalog only, "
    "16 probe only, 32 always fetch, 64 date prefix",
)
@click.option(
    "--since",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Ignore items published on or before this date",
)
@click.pass_obj
def add(obj: dict, url: str, flags: int, since: Optional[datetime]):
    """Add a new feed to synchronize."""
    db = Database(obj["db_path"])
    try:
        add_feed(db, url, flags=flags, since=since.date() if since else None)
        click.echo(click.style(f"Added feed '{url}'", fg="green"))
    except FeedAlreadyExistsError as e:
        click.echo(click.style(f"Error: {e}", fg="red"))
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.argument("url")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_obj
def remove(obj: dict, url: str, yes: bool):
    """Stop tracking a feed. Recorded items are kept."""
    db = Database(obj["db_path"])
    try:
        if not yes:
            click.confirm(f"Remove feed '{url}'?", abort=True)

        remove_feed(db, url)
        click.echo(click.style(f"Removed feed '{url}'", fg="green"))
    except FeedNotFoundError as e:
        click.echo(click.style(f"Error: {e}", fg="red"))
        raise SystemExit(1)
    finally:
        db.close()


@cli.command("set-flags")
@click.argument("url")
@click.argument("flags", type=int)
@click.pass_obj
def set_flags(obj: dict, url: str, flags: int):
    """Change the behaviour flags of a feed."""
    db = Database(obj["db_path"])
    try:
        feed = set_feed_flags(db, url, flags)
        click.echo(click.style(f"Flags for '{url}' set to {feed.flags}", fg="green"))
    except FeedNotFoundError as e:
        click.echo(click.style(f"Error: {e}", fg="red"))
        raise SystemExit(1)
    finally:
        db.close()


@cli.command("list-feeds")
@click.pass_obj
def list_feeds(obj: dict):
    """List all configured feeds."""
    db = Database(obj["db_path"])
    try:
        feeds = db.list_feeds()
        if not feeds:
            click.echo("No feeds configured yet. Use 'castkeeper add' to add one.")
            return

        click.echo(click.style(f"Configured feeds ({len(feeds)}):", fg="cyan", bold=True))
        click.echo()

        for feed in feeds:
            click.echo(click.style(f"  {feed.title or feed.url}", fg="white", bold=True))
            click.echo(f"    URL: {feed.url}")
            if feed.enabled:
                names = ", ".join(flag.name.lower() for flag in FeedFlags if flag in feed.options)
                click.echo(f"    Flags: {feed.flags} ({names})")
            else:
                click.echo(click.style(f"    Flags: {feed.flags} (disabled)", fg="bright_black"))
            if feed.since:
                click.echo(f"    Since: {feed.since.isoformat()}")
            if feed.last_fetched:
                click.echo(f"    Last fetched: {feed.last_fetched.strftime('%Y-%m-%d %H:%M')}")
            click.echo()
    finally:
        db.close()


@cli.command()
@click.option("--feed", "-f", "feed_title", help="Only show items from this feed title")
@click.option("--limit", "-n", type=int, default=20, show_default=True, help="Maximum items to show")
@click.pass_obj
def items(obj: dict, feed_title: Optional[str], limit: int):
    """List recorded items, most recent first."""
    db = Database(obj["db_path"])
    try:
        seen = get_seen_items(db, feed_title=feed_title, limit=limit)
        if not seen:
            click.echo("No items recorded.")
            return

        click.echo(click.style(f"Recorded items ({len(seen)}):", fg="cyan", bold=True))
        click.echo()

        for item in seen:
            click.echo(f"  {item.title}")
            click.echo(f"       Feed: {item.feed_title}")
            click.echo(f"       URL: {item.url}")
            if item.downloaded_at:
                click.echo(f"       Recorded: {item.downloaded_at.strftime('%Y-%m-%d %H:%M')}")
            click.echo()
    finally:
        db.close()


if __name__ == "__main__":
    cli()
