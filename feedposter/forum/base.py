"""
Forum Service Interfaces
========================

Abstract base classes for the forum services the publisher consumes:
topic creation, user lookup/update, site configuration and the
time-ordered indexes that chronological listings read from.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..database.models import TopicResult


DEFAULT_POST_DELAY = 10


class ForumClient(ABC):
    """Topic, user and configuration operations of the forum."""

    @abstractmethod
    async def create_topic(
        self,
        uid: int,
        title: str,
        content: str,
        category_id: int,
        tags: List[str],
    ) -> TopicResult:
        """Create a topic with its main post.

        Raises:
            PublishError: If the forum rejects the topic
        """

    @abstractmethod
    async def get_uid_by_username(self, username: str) -> Optional[int]:
        """Resolve a username to a uid, None when unknown."""

    @abstractmethod
    async def set_user_field(self, uid: int, field: str, value: Any) -> None:
        """Set a single field on a user record."""

    @abstractmethod
    async def get_config(self) -> Dict[str, Any]:
        """Site configuration; must include postDelay and newbiePostDelay."""

    async def close(self) -> None:
        """Release client resources."""


def parse_delay(value: Any, default: int = DEFAULT_POST_DELAY) -> int:
    """Parse a delay config value (numeric string), falling back to the default."""
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed or default


@dataclass
class ReindexBatch:
    """Field writes and ordered-index insertions applied together.

    Applied best-effort: a store may use a transaction but callers must not
    rely on all-or-nothing semantics.
    """
    field_writes: List[Tuple[str, str, Any]] = field(default_factory=list)
    index_writes: List[Tuple[List[str], float, Any]] = field(default_factory=list)

    def set_field(self, key: str, field_name: str, value: Any) -> "ReindexBatch":
        self.field_writes.append((key, field_name, value))
        return self

    def add_to_indexes(self, keys: List[str], score: float, member: Any) -> "ReindexBatch":
        self.index_writes.append((list(keys), score, member))
        return self


class TimeIndexStore(ABC):
    """Hash fields and scored ordered indexes of the forum database."""

    @abstractmethod
    def set_field(self, key: str, field_name: str, value: Any) -> None:
        """Set one field of the entity stored under key."""

    @abstractmethod
    def add_to_ordered_indexes(self, keys: List[str], score: float, member: Any) -> None:
        """Add (or re-score) member in every listed ordered index."""

    def reindex(self, batch: ReindexBatch) -> None:
        """Apply a batch of writes."""
        for key, field_name, value in batch.field_writes:
            self.set_field(key, field_name, value)
        for keys, score, member in batch.index_writes:
            self.add_to_ordered_indexes(keys, score, member)
