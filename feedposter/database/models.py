"""
FeedPoster Data Models
======================

Pydantic data models for type safety and validation throughout the application.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator

from ..config.settings import ContentMode
from ..utils.validators import URLValidator, split_tags


FEED_TIMESTAMP_POLICY = "feed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_milliseconds(moment: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are taken as UTC)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


class Feed(BaseModel):
    """Configured syndication source. The canonical URL is its identity."""
    url: str = Field(..., description="Canonical feed URL")
    category: int = Field(..., ge=0, description="Target forum category id")
    username: str = Field(default="", description="Poster username")
    tags: str = Field(default="", description="Comma-separated static tags")
    interval: int = Field(..., gt=0, description="Poll interval in seconds")
    entries_to_pull: int = Field(default=4, ge=1, description="Max entries pulled per poll")
    timestamp: str = Field(default="now", description="'feed' backdates posts to the entry date")
    content_mode: Optional[ContentMode] = Field(default=None, description="Overrides the default content mode")
    content_selector: Optional[str] = Field(default=None, description="Overrides the content region selector")

    @field_validator('url')
    @classmethod
    def canonicalize_url(cls, v):
        """Strip whitespace and trailing slashes."""
        return URLValidator.canonicalize_feed_url(v)

    @field_validator('entries_to_pull', mode='before')
    @classmethod
    def default_entries_to_pull(cls, v):
        """Blank or zero counts fall back to the default of 4."""
        if v in (None, "", 0, "0"):
            return 4
        return v

    @field_validator('content_selector')
    @classmethod
    def blank_selector_is_unset(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    @property
    def uses_feed_timestamp(self) -> bool:
        return self.timestamp == FEED_TIMESTAMP_POLICY

    @property
    def tag_list(self) -> List[str]:
        return split_tags(self.tags)

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]) -> "Feed":
        """Create Feed from a database row."""
        return cls(**dict(row))

    def __str__(self) -> str:
        return f"Feed({self.url} every {self.interval}s)"


class FeedEntry(BaseModel):
    """One parsed item of a feed document, normalized from feedparser output."""
    id: Optional[str] = Field(default=None, description="Entry id/guid")
    title: Optional[Any] = Field(default=None, description="Entry title; validated before publishing")
    link: Optional[str] = Field(default=None, description="Entry link")
    published: Optional[datetime] = Field(default=None, description="Declared publish date")
    date: Optional[datetime] = Field(default=None, description="Generic declared date")
    updated: Optional[datetime] = Field(default=None, description="Declared update date")
    tags: List[str] = Field(default_factory=list, description="Category/tag terms")
    content: Optional[str] = Field(default=None, description="Inline content")
    observed_at: datetime = Field(default_factory=utcnow, description="When the entry was parsed")

    @field_validator('tags', mode='before')
    @classmethod
    def drop_falsy_terms(cls, v):
        if not v:
            return []
        return [term for term in v if term]

    @property
    def identifier(self) -> Optional[str]:
        """Stable ledger identifier: id, else link, else title."""
        return self.id or self.link or (self.title if isinstance(self.title, str) else None)

    @property
    def publish_date(self) -> datetime:
        """Declared date (published, date, updated) or the observation time."""
        return self.published or self.date or self.updated or self.observed_at

    def __str__(self) -> str:
        return f"FeedEntry({self.identifier})"


@dataclass
class TopicResult:
    """Identifiers of a topic created through the forum posting API."""
    topic_id: int
    post_id: int
    category_id: int
    uid: int
