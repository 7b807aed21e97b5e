"""
FeedPoster Forum Integration
============================

Interfaces of the forum services consumed by the publisher and an HTTP
client implementation.
"""

from .base import ForumClient, TimeIndexStore, ReindexBatch, parse_delay
from .http_client import HttpForumClient

__all__ = [
    "ForumClient",
    "TimeIndexStore",
    "ReindexBatch",
    "parse_delay",
    "HttpForumClient",
]
