"""
FeedPoster Ingestion Module
===========================

Feed retrieval and content resolution components.

This module handles:
- Feed fetching and entry normalization
- Content region extraction from linked pages
- HTML to Markdown conversion
"""

from .feed_fetcher import FeedFetcher
from .content_cleaner import ContentCleaner
from .content_resolver import (
    ContentResolver,
    InlineContentResolver,
    LinkFetchContentResolver,
    get_content_resolver,
)

__all__ = [
    "FeedFetcher",
    "ContentCleaner",
    "ContentResolver",
    "InlineContentResolver",
    "LinkFetchContentResolver",
    "get_content_resolver",
]
