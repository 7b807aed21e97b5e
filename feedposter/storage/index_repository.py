"""
Time Index Repository
=====================

SQLite implementation of the forum's hash fields and time-ordered indexes,
used when the ingestion database is shared with the forum's index store.
"""

from typing import Any, List, Optional

from ..database.connection import DatabaseConnection
from ..forum.base import ReindexBatch, TimeIndexStore
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class SqliteTimeIndexStore(TimeIndexStore):
    """Hash fields in object_fields, ordered indexes in sorted_sets."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("time_index")

    def set_field(self, key: str, field_name: str, value: Any) -> None:
        try:
            with self.db.get_connection() as conn:
                self._set_field(conn, key, field_name, value)
                conn.commit()
        except Exception as e:
            raise DatabaseError(
                f"Failed to set {key}.{field_name}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            )

    def add_to_ordered_indexes(self, keys: List[str], score: float, member: Any) -> None:
        try:
            with self.db.get_connection() as conn:
                self._add_to_indexes(conn, keys, score, member)
                conn.commit()
        except Exception as e:
            raise DatabaseError(
                f"Failed to index {member} at {score}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            )

    def reindex(self, batch: ReindexBatch) -> None:
        """Apply the batch in one local transaction."""
        try:
            with self.db.transaction() as conn:
                for key, field_name, value in batch.field_writes:
                    self._set_field(conn, key, field_name, value)
                for keys, score, member in batch.index_writes:
                    self._add_to_indexes(conn, keys, score, member)
        except Exception as e:
            raise DatabaseError(
                f"Failed to apply reindex batch: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            )

    def get_field(self, key: str, field_name: str) -> Optional[str]:
        row = self.db.execute_one(
            "SELECT value FROM object_fields WHERE object_key = ? AND field = ?",
            (key, field_name),
        )
        return row["value"] if row else None

    def get_score(self, key: str, member: Any) -> Optional[float]:
        row = self.db.execute_one(
            "SELECT score FROM sorted_sets WHERE set_key = ? AND member = ?",
            (key, str(member)),
        )
        return row["score"] if row else None

    def list_members(self, key: str) -> List[str]:
        """Members of an ordered index, ascending by score."""
        rows = self.db.execute_query(
            "SELECT member FROM sorted_sets WHERE set_key = ? ORDER BY score, member",
            (key,),
        )
        return [row["member"] for row in rows]

    @staticmethod
    def _set_field(conn, key: str, field_name: str, value: Any) -> None:
        conn.execute(
            """
            INSERT INTO object_fields (object_key, field, value) VALUES (?, ?, ?)
            ON CONFLICT (object_key, field) DO UPDATE SET value = excluded.value
            """,
            (key, field_name, None if value is None else str(value)),
        )

    @staticmethod
    def _add_to_indexes(conn, keys: List[str], score: float, member: Any) -> None:
        conn.executemany(
            """
            INSERT INTO sorted_sets (set_key, member, score) VALUES (?, ?, ?)
            ON CONFLICT (set_key, member) DO UPDATE SET score = excluded.score
            """,
            [(key, str(member), score) for key in keys],
        )
