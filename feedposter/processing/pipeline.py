"""
Feed Pipeline
=============

Pull-and-publish sequence for a single feed: fetch entries, reorder them
oldest first and publish them one at a time. A feed that cannot be fetched
is skipped for the cycle; entry failures never stop the remaining entries.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..config.settings import ContentMode, FeedPosterSettings, get_settings
from ..database.models import Feed
from ..ingestion.content_resolver import ContentResolver, get_content_resolver
from ..ingestion.feed_fetcher import FeedFetcher
from ..utils.logging import get_logger_for_component, log_duration
from ..utils.exceptions import FeedFetchError, handle_exception
from .publisher import EntryOutcome, EntryPublisher


@dataclass
class FeedPullResult:
    """Outcome of pulling one feed."""

    feed_url: str
    success: bool
    entries_seen: int = 0
    published: int = 0
    duplicates: int = 0
    invalid: int = 0
    failed: int = 0
    undated: int = 0
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def count(self, outcome: EntryOutcome) -> None:
        if outcome in (EntryOutcome.PUBLISHED, EntryOutcome.PUBLISHED_UNDATED):
            self.published += 1
            if outcome == EntryOutcome.PUBLISHED_UNDATED:
                self.undated += 1
        elif outcome == EntryOutcome.DUPLICATE:
            self.duplicates += 1
        elif outcome == EntryOutcome.INVALID:
            self.invalid += 1
        else:
            self.failed += 1


@dataclass
class PollResult:
    """Outcome of one scheduler tick."""

    interval: Optional[int]
    feed_results: List[FeedPullResult] = field(default_factory=list)

    @property
    def feeds_processed(self) -> int:
        return len(self.feed_results)

    @property
    def feeds_failed(self) -> int:
        return sum(1 for r in self.feed_results if not r.success)

    @property
    def topics_published(self) -> int:
        return sum(r.published for r in self.feed_results)

    def summary(self) -> Dict[str, int]:
        return {
            "feeds": self.feeds_processed,
            "failed_feeds": self.feeds_failed,
            "published": self.topics_published,
            "duplicates": sum(r.duplicates for r in self.feed_results),
            "invalid": sum(r.invalid for r in self.feed_results),
            "failed_entries": sum(r.failed for r in self.feed_results),
            "undated": sum(r.undated for r in self.feed_results),
        }


class FeedPipeline:
    """Runs fetch -> chronological reorder -> publish for a feed."""

    def __init__(
        self,
        fetcher: FeedFetcher,
        publisher: EntryPublisher,
        settings: Optional[FeedPosterSettings] = None,
    ):
        self.fetcher = fetcher
        self.publisher = publisher
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("pipeline")
        self._resolvers: Dict[tuple, ContentResolver] = {}

    def resolver_for(self, feed: Feed) -> ContentResolver:
        """Resolver for the feed's content mode (feed override, else default)."""
        mode = feed.content_mode or self.settings.content.mode
        selector = feed.content_selector if mode == ContentMode.LINK else None
        key = (mode, selector)
        if key not in self._resolvers:
            self._resolvers[key] = get_content_resolver(mode, selector=selector)
        return self._resolvers[key]

    async def pull_feed(self, feed: Feed) -> FeedPullResult:
        """Pull one feed and publish its new entries oldest first."""
        result = FeedPullResult(feed_url=feed.url, success=True)

        with log_duration(self.logger, "feed pull", feed_url=feed.url):
            try:
                entries = await self.fetcher.fetch_entries(feed.url, feed.entries_to_pull)
            except FeedFetchError as e:
                self.logger.warning(f"unable to pull feed {feed.url}: {e}", extra=e.to_dict())
                result.success = False
                result.error = str(e)
                return result
            except Exception as e:
                error = handle_exception(e, self.logger, "pull feed", context={"feed_url": feed.url})
                result.success = False
                result.error = str(error)
                return result

            result.entries_seen = len(entries)
            resolver = self.resolver_for(feed)

            # Feeds list newest first
            for entry in reversed(entries):
                outcome = await self.publisher.publish(feed, entry, resolver)
                result.count(outcome)

        self.logger.info(
            f"Pulled {feed.url}: {result.published} published, "
            f"{result.duplicates} already posted, {result.invalid} invalid, {result.failed} failed"
        )
        if result.undated:
            self.logger.warning(
                f"{result.undated} topic(s) from {feed.url} were not backdated although "
                f"the feed uses timestamp=feed, they keep their post time"
            )
        return result
