"""
FeedPoster Storage Layer
========================

Repository pattern implementations for data access abstraction.

This module provides:
- Feed repository for feed configuration
- Ledger repository for per-feed deduplication
- SQLite time-index store for timestamp backdating
"""

from .feed_repository import FeedRepository
from .ledger_repository import LedgerRepository
from .index_repository import SqliteTimeIndexStore

__all__ = [
    "FeedRepository",
    "LedgerRepository",
    "SqliteTimeIndexStore",
]
