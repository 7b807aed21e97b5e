"""
FeedPoster Processing Module
============================

Entry publishing and the per-feed pull pipeline.
"""

from .publisher import EntryPublisher, EntryOutcome
from .pipeline import FeedPipeline, FeedPullResult, PollResult

__all__ = [
    'EntryPublisher',
    'EntryOutcome',
    'FeedPipeline',
    'FeedPullResult',
    'PollResult',
]
