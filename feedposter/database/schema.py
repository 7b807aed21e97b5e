"""
FeedPoster Database Schema
==========================

SQLite schema for the local stores:
- feeds: configured syndication sources, keyed by canonical URL
- feed_ledger: per-feed dedup ledger (entry identifier -> topic id)
- object_fields: hash-style entity fields (e.g. topic:12 timestamp)
- sorted_sets: time-ordered indexes (e.g. topics:tid) scored by timestamp
"""

import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class DatabaseSchema:
    """Database schema manager for the FeedPoster SQLite database."""

    def __init__(self, db_path: str = "data/feedposter.db"):
        """Initialize database schema manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("PRAGMA foreign_keys = ON")

            self._create_feeds_table(conn)
            self._create_ledger_table(conn)
            self._create_object_fields_table(conn)
            self._create_sorted_sets_table(conn)

            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_feeds_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS feeds (
                url TEXT PRIMARY KEY,
                category INTEGER NOT NULL,
                username TEXT NOT NULL DEFAULT '',
                tags TEXT NOT NULL DEFAULT '',
                interval INTEGER NOT NULL CHECK (interval > 0),
                entries_to_pull INTEGER NOT NULL DEFAULT 4,
                timestamp TEXT NOT NULL DEFAULT 'now',
                content_mode TEXT,
                content_selector TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_ledger_table(self, conn: sqlite3.Connection) -> None:
        """Ledger rows are scored by the topic id they produced."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS feed_ledger (
                feed_url TEXT NOT NULL,
                identifier TEXT NOT NULL,
                topic_id INTEGER NOT NULL,
                recorded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (feed_url, identifier)
            )
        """
        )

    def _create_object_fields_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS object_fields (
                object_key TEXT NOT NULL,
                field TEXT NOT NULL,
                value TEXT,
                PRIMARY KEY (object_key, field)
            )
        """
        )

    def _create_sorted_sets_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sorted_sets (
                set_key TEXT NOT NULL,
                member TEXT NOT NULL,
                score REAL NOT NULL,
                PRIMARY KEY (set_key, member)
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_feeds_interval ON feeds(interval)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_ledger_topic ON feed_ledger(topic_id)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_sorted_sets_score ON sorted_sets(set_key, score)"
        )

    def verify_schema(self) -> bool:
        """Check that every table exists."""
        expected = {"feeds", "feed_ledger", "object_fields", "sorted_sets"}
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).fetchall()
        missing = expected - {row[0] for row in rows}
        if missing:
            logger.error(f"Missing tables: {', '.join(sorted(missing))}")
            return False
        return True
