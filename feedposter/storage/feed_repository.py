"""
Feed Repository
===============

Repository pattern implementation for feed configuration.
Feeds are keyed by canonical URL; deleting a feed also drops its ledger.
"""

from typing import Iterable, List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Feed
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode
from .ledger_repository import LedgerRepository


class FeedRepository:
    """Repository for managing feed configuration in the database."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        ledger: Optional[LedgerRepository] = None,
    ):
        """Initialize feed repository.

        Args:
            db_connection: Database connection manager
            ledger: Ledger to clean up when feeds are deleted
        """
        self.db = db_connection
        self.ledger = ledger or LedgerRepository(db_connection)
        self.logger = get_logger_for_component("feed_repository")

    def save_feed(self, feed: Feed) -> None:
        """Create or update a feed by URL.

        Raises:
            DatabaseError: If database operation fails
        """
        try:
            with self.db.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO feeds (
                        url, category, username, tags, interval,
                        entries_to_pull, timestamp, content_mode, content_selector
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (url) DO UPDATE SET
                        category = excluded.category,
                        username = excluded.username,
                        tags = excluded.tags,
                        interval = excluded.interval,
                        entries_to_pull = excluded.entries_to_pull,
                        timestamp = excluded.timestamp,
                        content_mode = excluded.content_mode,
                        content_selector = excluded.content_selector
                """,
                    (
                        feed.url,
                        feed.category,
                        feed.username,
                        feed.tags,
                        feed.interval,
                        feed.entries_to_pull,
                        feed.timestamp,
                        feed.content_mode.value if feed.content_mode else None,
                        feed.content_selector,
                    ),
                )
                conn.commit()

            self.logger.info(f"Saved feed {feed.url}")

        except Exception as e:
            self.logger.error(f"Failed to save feed {feed.url}: {e}")
            raise DatabaseError(
                f"Failed to save feed: {e}", error_code=ErrorCode.DATABASE_ERROR
            )

    def get_feed(self, url: str) -> Optional[Feed]:
        """Get feed by URL (trailing slashes are ignored)."""
        row = self.db.execute_one(
            "SELECT * FROM feeds WHERE url = ?", (url.strip().rstrip("/"),)
        )
        return self._row_to_feed(row) if row else None

    def list_feeds(self) -> List[Feed]:
        """Get all configured feeds.

        Rows that no longer validate are logged and left out.
        """
        rows = self.db.execute_query("SELECT * FROM feeds ORDER BY created_at, url")
        feeds = []
        for row in rows:
            feed = self._row_to_feed(row)
            if feed:
                feeds.append(feed)
        return feeds

    def list_feeds_for_interval(self, interval: int) -> List[Feed]:
        return [feed for feed in self.list_feeds() if feed.interval == interval]

    def list_feed_urls(self) -> List[str]:
        rows = self.db.execute_query("SELECT url FROM feeds ORDER BY url")
        return [row["url"] for row in rows]

    def list_intervals(self) -> List[int]:
        """Distinct configured poll intervals."""
        rows = self.db.execute_query(
            "SELECT DISTINCT interval FROM feeds ORDER BY interval"
        )
        return [row["interval"] for row in rows]

    def delete_feed(self, url: str) -> bool:
        """Delete a feed and its ledger namespace.

        Returns:
            True if the feed existed
        """
        url = url.strip().rstrip("/")
        try:
            deleted = self.db.execute_update("DELETE FROM feeds WHERE url = ?", (url,))
        except Exception as e:
            raise DatabaseError(
                f"Failed to delete feed {url}: {e}", error_code=ErrorCode.DATABASE_ERROR
            )

        self.ledger.delete_all_for_feed(url)
        if deleted:
            self.logger.info(f"Deleted feed {url}")
        return deleted > 0

    def delete_all_feeds(self) -> int:
        """Delete every feed and its ledger (plugin uninstall)."""
        urls = self.list_feed_urls()
        for url in urls:
            self.delete_feed(url)
        return len(urls)

    def replace_feeds(self, feeds: Iterable[Feed]) -> int:
        """Replace the feed configuration with the submitted list.

        Feed rows are removed and re-saved; ledgers are kept, so re-saving
        an unchanged configuration never causes reposts.
        """
        feeds = list(feeds)
        try:
            self.db.execute_update("DELETE FROM feeds")
        except Exception as e:
            raise DatabaseError(
                f"Failed to clear feeds: {e}", error_code=ErrorCode.DATABASE_ERROR
            )

        for feed in feeds:
            self.save_feed(feed)
        self.logger.info(f"Saved {len(feeds)} feeds")
        return len(feeds)

    def _row_to_feed(self, row) -> Optional[Feed]:
        try:
            return Feed.from_db_row(row)
        except Exception as e:
            self.logger.warning(f"Skipping invalid feed row {dict(row).get('url')}: {e}")
            return None
