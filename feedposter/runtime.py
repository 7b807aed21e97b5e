"""
FeedPoster Runtime Wiring
=========================

Builds the store handles and services used by the CLI and the scheduler.
"""

from dataclasses import dataclass
from typing import Optional

from .config.settings import FeedPosterSettings, get_settings
from .database.connection import DatabaseConnection
from .database.schema import DatabaseSchema
from .forum.base import ForumClient, TimeIndexStore
from .forum.http_client import HttpForumClient
from .ingestion.feed_fetcher import FeedFetcher
from .processing.pipeline import FeedPipeline
from .processing.publisher import EntryPublisher
from .scheduler.poll_scheduler import PollScheduler
from .storage.feed_repository import FeedRepository
from .storage.index_repository import SqliteTimeIndexStore
from .storage.ledger_repository import LedgerRepository
from .utils.logging import get_logger_for_component


def open_database(settings: FeedPosterSettings) -> DatabaseConnection:
    """Create the schema if needed and open a pooled connection."""
    DatabaseSchema(settings.database.path).create_tables()
    return DatabaseConnection(settings.database.path, pool_size=settings.database.pool_size)


@dataclass
class FeedPosterApp:
    """Assembled components sharing one database handle."""

    settings: FeedPosterSettings
    db: DatabaseConnection
    feeds: FeedRepository
    ledger: LedgerRepository
    index_store: Optional[TimeIndexStore]
    forum: ForumClient
    pipeline: FeedPipeline
    scheduler: PollScheduler

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.forum.close()
        self.db.close_all_connections()


def create_app(
    settings: Optional[FeedPosterSettings] = None,
    forum: Optional[ForumClient] = None,
    db: Optional[DatabaseConnection] = None,
    index_store: Optional[TimeIndexStore] = None,
) -> FeedPosterApp:
    """Create the schema if needed and wire every component.

    Backdating (``timestamp=feed``) only takes effect through a time index
    store the forum actually reads. The SQLite store in our own database is
    used when ``forum.local_time_index`` is set; without any store, feeds
    asking for their own timestamps are reported at startup and on every
    pull that publishes from them.

    Args:
        settings: Application settings (default: global settings)
        forum: Forum client; an HttpForumClient is built from settings otherwise
        db: Database handle; one is opened from settings otherwise
        index_store: Time index store used for backdating
    """
    settings = settings or get_settings()
    logger = get_logger_for_component("runtime")

    if db is None:
        db = open_database(settings)

    if forum is None:
        forum = HttpForumClient()

    ledger = LedgerRepository(db)
    feeds = FeedRepository(db, ledger=ledger)
    if index_store is None and settings.forum.local_time_index:
        index_store = SqliteTimeIndexStore(db)

    if index_store is None:
        backdated = [feed.url for feed in feeds.list_feeds() if feed.uses_feed_timestamp]
        if backdated:
            logger.warning(
                f"{len(backdated)} feed(s) use timestamp=feed but no time index store is "
                f"configured; their topics will keep the time they were posted: {', '.join(backdated)}"
            )

    publisher = EntryPublisher(forum, ledger, index_store=index_store, settings=settings)
    pipeline = FeedPipeline(FeedFetcher(), publisher, settings=settings)
    scheduler = PollScheduler(feeds, ledger, pipeline, settings=settings)

    return FeedPosterApp(
        settings=settings,
        db=db,
        feeds=feeds,
        ledger=ledger,
        index_store=index_store,
        forum=forum,
        pipeline=pipeline,
        scheduler=scheduler,
    )
