"""
Dedup Ledger Repository
=======================

Per-feed durable record of entry identifiers that were turned into topics.
Each feed URL is a namespace holding an ordered set of identifiers scored by
the topic id they produced. An identifier present for a feed is never
published again for that feed.
"""

from typing import Iterable, List, Optional

from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class LedgerRepository:
    """SQLite-backed dedup ledger."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize ledger repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("ledger")

    def is_new(self, feed_url: str, identifier: str) -> bool:
        """True iff the identifier is absent from the feed's ledger."""
        try:
            row = self.db.execute_one(
                "SELECT 1 FROM feed_ledger WHERE feed_url = ? AND identifier = ?",
                (feed_url, identifier),
            )
            return row is None
        except Exception as e:
            raise DatabaseError(
                f"Failed to check ledger for {feed_url}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            )

    def record(self, feed_url: str, identifier: str, topic_id: int) -> None:
        """Insert or re-score an identifier. Re-inserting is harmless."""
        try:
            self.db.execute_update(
                """
                INSERT INTO feed_ledger (feed_url, identifier, topic_id)
                VALUES (?, ?, ?)
                ON CONFLICT (feed_url, identifier) DO UPDATE SET topic_id = excluded.topic_id
                """,
                (feed_url, identifier, topic_id),
            )
            self.logger.debug(f"Recorded {identifier} -> topic {topic_id} for {feed_url}")
        except Exception as e:
            raise DatabaseError(
                f"Failed to record ledger entry for {feed_url}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            )

    def purge(self, feed_url: str, topic_id: int) -> int:
        """Remove the feed's rows scored with the given topic id.

        Returns:
            Number of rows removed
        """
        return self.purge_topic(topic_id, [feed_url])

    def purge_topic(self, topic_id: int, feed_urls: Iterable[str]) -> int:
        """Remove rows scored with topic_id from every listed feed namespace."""
        urls = list(feed_urls)
        if not urls:
            return 0

        placeholders = ", ".join("?" for _ in urls)
        try:
            removed = self.db.execute_update(
                f"DELETE FROM feed_ledger WHERE topic_id = ? AND feed_url IN ({placeholders})",
                (topic_id, *urls),
            )
        except Exception as e:
            raise DatabaseError(
                f"Failed to purge topic {topic_id} from ledger: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            )

        if removed:
            self.logger.info(f"Purged topic {topic_id} from ledger ({removed} rows)")
        return removed

    def delete_all_for_feed(self, feed_url: str) -> int:
        """Drop the feed's whole ledger namespace."""
        try:
            removed = self.db.execute_update(
                "DELETE FROM feed_ledger WHERE feed_url = ?", (feed_url,)
            )
        except Exception as e:
            raise DatabaseError(
                f"Failed to delete ledger for {feed_url}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            )
        self.logger.info(f"Deleted {removed} ledger entries for {feed_url}")
        return removed

    def get_topic_id(self, feed_url: str, identifier: str) -> Optional[int]:
        row = self.db.execute_one(
            "SELECT topic_id FROM feed_ledger WHERE feed_url = ? AND identifier = ?",
            (feed_url, identifier),
        )
        return row["topic_id"] if row else None

    def list_identifiers(self, feed_url: str) -> List[str]:
        """Identifiers of a feed ordered by topic id."""
        rows = self.db.execute_query(
            "SELECT identifier FROM feed_ledger WHERE feed_url = ? ORDER BY topic_id, identifier",
            (feed_url,),
        )
        return [row["identifier"] for row in rows]

    def count(self, feed_url: str) -> int:
        row = self.db.execute_one(
            "SELECT COUNT(*) AS total FROM feed_ledger WHERE feed_url = ?", (feed_url,)
        )
        return row["total"] if row else 0
