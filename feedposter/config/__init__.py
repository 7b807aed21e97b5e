"""
FeedPoster Configuration
========================
"""

from .settings import FeedPosterSettings, ContentMode, get_settings

__all__ = ["FeedPosterSettings", "ContentMode", "get_settings"]
