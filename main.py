#!/usr/bin/env python3
"""
FeedPoster - Feed to Forum Publisher
====================================

Main application entry point with CLI interface for feed management and polling.

Usage:
    python main.py --help                    # Show all commands
    python main.py init-db                   # Initialize database
    python main.py add-feed URL ...          # Add or update a feed
    python main.py list-feeds                # Show configured feeds
    python main.py check-feed URL            # Fetch a feed without posting
    python main.py pull                      # Pull every feed once
    python main.py run                       # Start the interval scheduler
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from feedposter.config.settings import ContentMode, get_settings
from feedposter.database.models import Feed
from feedposter.database.schema import DatabaseSchema
from feedposter.ingestion.feed_fetcher import FeedFetcher
from feedposter.runtime import create_app, open_database
from feedposter.storage.feed_repository import FeedRepository
from feedposter.storage.ledger_repository import LedgerRepository
from feedposter.utils.logging import configure_application_logging
from feedposter.utils.exceptions import FeedPosterError

console = Console()
logger = logging.getLogger(__name__)


def _setup(ctx):
    settings = get_settings()
    configure_application_logging(
        log_level="DEBUG" if ctx.obj.get('debug') else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )
    return settings


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """FeedPoster - publish syndication feed entries as forum topics."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.pass_context
def init_db(ctx):
    """Initialize database schema."""
    settings = _setup(ctx)
    try:
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()
        if schema.verify_schema():
            console.print(f"[bold green]✅ Database initialized at {settings.database.path}[/bold green]")
        else:
            console.print("[bold red]❌ Schema verification failed[/bold red]")
            sys.exit(1)
    except Exception as e:
        console.print(f"[bold red]❌ Database error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument('url')
@click.option('--category', '-c', required=True, type=int, help='Target category id')
@click.option('--interval', '-i', required=True, type=int, help='Poll interval in seconds')
@click.option('--username', '-u', default='', help='Poster username')
@click.option('--tags', default='', help='Comma-separated tags')
@click.option('--entries', 'entries_to_pull', default=4, type=int, help='Entries to pull per poll')
@click.option('--timestamp', type=click.Choice(['now', 'feed']), default='now',
              help="'feed' backdates topics to the entry publish date")
@click.option('--mode', type=click.Choice([m.value for m in ContentMode]), default=None,
              help='Content mode (default from settings)')
@click.option('--selector', default=None, help='CSS selector of the content region (link mode)')
@click.pass_context
def add_feed(ctx, url, category, interval, username, tags, entries_to_pull, timestamp, mode, selector):
    """Add or update a feed."""
    settings = _setup(ctx)
    db = open_database(settings)
    ledger = LedgerRepository(db)
    feeds = FeedRepository(db, ledger=ledger)
    try:
        feed = Feed(
            url=url,
            category=category,
            interval=interval,
            username=username,
            tags=tags,
            entries_to_pull=entries_to_pull,
            timestamp=timestamp,
            content_mode=mode,
            content_selector=selector,
        )
        feeds.save_feed(feed)
        console.print(f"[bold green]✅ Saved {feed}[/bold green]")
    except (FeedPosterError, ValueError) as e:
        console.print(f"[bold red]❌ Could not save feed: {e}[/bold red]")
        sys.exit(1)
    finally:
        db.close_all_connections()


@cli.command()
@click.argument('url')
@click.pass_context
def remove_feed(ctx, url):
    """Delete a feed and its ledger."""
    settings = _setup(ctx)
    db = open_database(settings)
    ledger = LedgerRepository(db)
    feeds = FeedRepository(db, ledger=ledger)
    try:
        if feeds.delete_feed(url):
            console.print(f"[bold green]✅ Deleted {url}[/bold green]")
        else:
            console.print(f"[yellow]⚠️ No feed configured for {url}[/yellow]")
    finally:
        db.close_all_connections()


@cli.command()
@click.pass_context
def list_feeds(ctx):
    """Show configured feeds."""
    settings = _setup(ctx)
    db = open_database(settings)
    ledger = LedgerRepository(db)
    feeds = FeedRepository(db, ledger=ledger)
    try:
        configured = feeds.list_feeds()
        if not configured:
            console.print("[yellow]No feeds configured[/yellow]")
            return

        table = Table(title=f"Configured Feeds ({len(configured)})")
        table.add_column("URL", style="cyan")
        table.add_column("Category")
        table.add_column("User")
        table.add_column("Interval")
        table.add_column("Entries")
        table.add_column("Timestamp")
        table.add_column("Mode")
        table.add_column("Posted", style="green")

        for feed in configured:
            mode = (feed.content_mode or settings.content.mode).value
            table.add_row(
                feed.url,
                str(feed.category),
                feed.username or "-",
                f"{feed.interval}s",
                str(feed.entries_to_pull),
                feed.timestamp,
                mode,
                str(ledger.count(feed.url)),
            )
        console.print(table)
    finally:
        db.close_all_connections()


@cli.command()
@click.argument('url')
@click.option('--entries', default=None, type=int, help='Entries to show (default from settings)')
@click.pass_context
def check_feed(ctx, url, entries):
    """Fetch a feed and show its entries without posting."""
    _setup(ctx)

    async def run_check():
        fetcher = FeedFetcher()
        return await fetcher.check_feed(url, entries)

    try:
        items = asyncio.run(run_check())
    except FeedPosterError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)

    table = Table(title=f"{url} ({len(items)} entries)")
    table.add_column("Title", style="cyan")
    table.add_column("Identifier")
    table.add_column("Published")
    table.add_column("Tags")
    for item in items:
        table.add_row(
            str(item.title or "-"),
            str(item.identifier or "-"),
            item.publish_date.strftime('%Y-%m-%d %H:%M'),
            ", ".join(item.tags) or "-",
        )
    console.print(table)


@cli.command()
@click.option('--interval', type=int, default=None, help='Only pull feeds with this interval')
@click.pass_context
def pull(ctx, interval):
    """Pull feeds once and publish new entries."""
    _setup(ctx)

    async def run_pull():
        app = create_app()
        try:
            return await app.scheduler.run_once(interval)
        finally:
            await app.close()

    try:
        result = asyncio.run(run_pull())
    except FeedPosterError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)

    table = Table(title="Pull Results")
    table.add_column("Feed", style="cyan")
    table.add_column("Status")
    table.add_column("Published", style="green")
    table.add_column("Already posted")
    table.add_column("Invalid")
    table.add_column("Failed", style="red")
    table.add_column("Not backdated", style="yellow")
    for feed_result in result.feed_results:
        table.add_row(
            feed_result.feed_url,
            "✅" if feed_result.success else f"❌ {feed_result.error}",
            str(feed_result.published),
            str(feed_result.duplicates),
            str(feed_result.invalid),
            str(feed_result.failed),
            str(feed_result.undated),
        )
    console.print(table)


@cli.command()
@click.pass_context
def run(ctx):
    """Start the interval scheduler until interrupted."""
    _setup(ctx)

    async def run_scheduler():
        app = create_app()
        try:
            await app.scheduler.run_forever()
        finally:
            await app.close()

    console.print("[bold blue]🚀 Starting FeedPoster scheduler (Ctrl+C to stop)[/bold blue]")
    try:
        asyncio.run(run_scheduler())
    except KeyboardInterrupt:
        console.print("\n[yellow]Scheduler stopped[/yellow]")
    except FeedPosterError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument('tid', type=int)
@click.pass_context
def purge_topic(ctx, tid):
    """Forget a purged topic so its entry can be posted again."""
    settings = _setup(ctx)
    db = open_database(settings)
    ledger = LedgerRepository(db)
    feeds = FeedRepository(db, ledger=ledger)
    try:
        removed = ledger.purge_topic(tid, feeds.list_feed_urls())
        console.print(f"Removed {removed} ledger entries for topic {tid}")
    finally:
        db.close_all_connections()


@cli.command()
@click.confirmation_option(prompt='Delete every feed and its ledger?')
@click.pass_context
def uninstall(ctx):
    """Delete all feeds and ledgers."""
    settings = _setup(ctx)
    db = open_database(settings)
    ledger = LedgerRepository(db)
    feeds = FeedRepository(db, ledger=ledger)
    try:
        count = feeds.delete_all_feeds()
        console.print(f"[bold green]✅ Deleted {count} feeds[/bold green]")
    finally:
        db.close_all_connections()


if __name__ == "__main__":
    cli()
