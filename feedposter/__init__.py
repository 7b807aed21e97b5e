"""
FeedPoster - Feed to Forum Publisher
====================================

Polls syndication feeds on configured intervals and publishes new entries
as forum topics, exactly once per feed entry.

Main Components:
- Database: SQLite with connection pooling and schema management
- Configuration: environment variables with Pydantic validation
- Ingestion: feed fetching, entry normalization, linked-page extraction
- Processing: entry publishing with dedup ledger and timestamp backdating
- Scheduler: interval-driven polling
"""

__version__ = "1.0.0"
__author__ = "FeedPoster Development Team"
__description__ = "Publishes syndication feed entries as forum topics"

from .config.settings import get_settings
from .database.connection import DatabaseConnection
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedPosterError

__all__ = [
    "get_settings",
    "DatabaseConnection",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedPosterError",
]
